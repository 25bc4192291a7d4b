"""
HTTP client for the catalog server's read endpoints.
"""

from typing import Any, Awaitable, Callable, Optional

import httpx

from shared.circuit_breaker import CircuitBreaker, get_circuit_breaker
from shared.errors import ExternalServiceError
from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception


class CatalogClient:
    """Reads catalog payloads (prompts, LoRAs, gallery albums, ...) as JSON."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = get_logger("catalog_cache.catalog_client")
        self.circuit_breaker = circuit_breaker or get_circuit_breaker(
            "catalog_server",
            failure_threshold=5,
            recovery_timeout=30.0
        )

    async def get_json(self, path: str) -> Any:
        """GET ``path`` and return its JSON body.

        Transport errors are retried; anything still failing surfaces as
        ``ExternalServiceError``.
        """
        try:
            return await self.circuit_breaker.call(self._get_with_retry, path)
        except ExternalServiceError:
            raise
        except RetryError as exc:
            raise ExternalServiceError(
                service="catalog_server",
                message=str(exc.last_exception),
                details={"path": path, "attempts": exc.attempts}
            ) from exc
        except Exception as exc:
            self.logger.error("Catalog request failed", path=path, error=str(exc))
            raise ExternalServiceError(
                service="catalog_server",
                message=str(exc),
                details={"path": path}
            ) from exc

    @retry_on_exception((httpx.TransportError,), config=RetryConfig(max_attempts=3, base_delay=0.5))
    async def _get_with_retry(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(url)

        if response.status_code == 200:
            self.logger.debug("Catalog payload retrieved", url=url)
            try:
                return response.json()
            except ValueError as exc:
                raise ExternalServiceError(
                    service="catalog_server",
                    message="Response is not valid JSON",
                    details={"path": path}
                ) from exc

        self.logger.error(
            "Catalog request returned an error status",
            url=url,
            status_code=response.status_code,
            response=response.text[:500]
        )
        raise ExternalServiceError(
            service="catalog_server",
            message=f"Unexpected status {response.status_code}",
            details={"path": path, "status_code": response.status_code}
        )

    def fetcher(self, path: str) -> Callable[[], Awaitable[Any]]:
        """A zero-argument fetcher bound to ``path``, suitable for ``ResourceCache``."""
        async def fetch() -> Any:
            return await self.get_json(path)

        fetch.__name__ = f"fetch{path.replace('/', '_')}"
        return fetch
