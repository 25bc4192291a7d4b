"""
Unit tests for the cache exception hierarchy.
"""

from shared.errors import (
    CatalogCacheException,
    ErrorResponse,
    ExternalServiceError,
    FetchError,
    OracleUnavailable,
    PersistenceError,
)


class TestErrors:

    def test_fetch_error_wraps_cause(self):
        cause = ConnectionError("refused")

        error = FetchError("prompts", cause)

        assert error.code == "FETCH_ERROR"
        assert error.cause is cause
        assert error.cache_key == "prompts"
        assert error.message == "Failed to load prompts: refused"
        assert error.details["cause"] == "ConnectionError"

    def test_to_response_lifts_cache_key(self):
        response = FetchError("loras", RuntimeError("boom")).to_response()

        assert isinstance(response, ErrorResponse)
        assert response.cache_key == "loras"
        assert "cache_key" not in response.details
        assert response.model_dump()["code"] == "FETCH_ERROR"

    def test_codes(self):
        assert OracleUnavailable().code == "ORACLE_UNAVAILABLE"
        assert PersistenceError().code == "PERSISTENCE_ERROR"

        error = ExternalServiceError("catalog_server", "timeout", details={"path": "/api/prompts"})
        assert error.code == "EXTERNAL_SERVICE_ERROR"
        assert str(error) == "catalog_server: timeout"
        assert error.cache_key is None

    def test_hierarchy(self):
        for error in (FetchError("k"), OracleUnavailable(), PersistenceError(), ExternalServiceError("s")):
            assert isinstance(error, CatalogCacheException)
