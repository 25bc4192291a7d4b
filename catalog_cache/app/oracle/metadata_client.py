"""
HTTP change oracle backed by the catalog server's metadata endpoint.
"""

from typing import Any, Dict, Optional

import httpx

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException, get_circuit_breaker
from shared.errors import OracleUnavailable
from shared.logging import get_logger


class MetadataClient:
    """Fetches the version map from ``GET <base_url><path>``.

    No retries: the endpoint is polled on every mount and every
    ``stale_time``, so a failed poll is simply reported and the next one
    tries again. Repeated failures open the circuit breaker.
    """

    def __init__(
        self,
        base_url: str,
        path: str = "/api/metadata",
        *,
        timeout: float = 10.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.path = path
        self.timeout = timeout
        self.logger = get_logger("catalog_cache.oracle.metadata_client")
        self.circuit_breaker = circuit_breaker or get_circuit_breaker(
            "catalog_metadata",
            failure_threshold=3,
            recovery_timeout=30.0
        )

    @property
    def url(self) -> str:
        return f"{self.base_url}{self.path}"

    async def fetch_versions(self) -> Dict[str, Any]:
        async def _request():
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.url)

            if response.status_code != 200:
                raise OracleUnavailable(
                    f"Metadata endpoint returned {response.status_code}",
                    details={"url": self.url, "status_code": response.status_code},
                )

            try:
                data = response.json()
            except ValueError as exc:
                raise OracleUnavailable(
                    "Metadata endpoint returned invalid JSON",
                    details={"url": self.url},
                ) from exc

            if not isinstance(data, dict):
                raise OracleUnavailable(
                    "Metadata endpoint returned a non-object body",
                    details={"url": self.url, "type": type(data).__name__},
                )
            return data

        try:
            return await self.circuit_breaker.call(_request)
        except OracleUnavailable:
            raise
        except CircuitBreakerOpenException as exc:
            raise OracleUnavailable(str(exc), details={"url": self.url}) from exc
        except httpx.HTTPError as exc:
            self.logger.warning("Metadata request failed", url=self.url, error=str(exc))
            raise OracleUnavailable(
                f"Metadata request failed: {exc}",
                details={"url": self.url},
            ) from exc
