"""
Client for the hosted edge functions (sync-feed, set-featured-teacher).
"""

import httpx

from avara.config import settings
from avara.errors import ConfigurationError, RemoteFunctionError
from avara.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RemoteFunctionsClient:
    """Invokes edge functions with the service-role key. Each call has a hard timeout."""

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        timeout: float | None = None,
    ):
        self._base_url = base_url
        self._service_key = service_key
        self.timeout = timeout or settings.REMOTE_FUNCTION_TIMEOUT

    def _endpoint(self, name: str) -> tuple[str, str]:
        base_url = self._base_url or settings.functions_base_url()
        service_key = self._service_key or settings.SUPABASE_SERVICE_ROLE_KEY
        if not base_url:
            raise ConfigurationError("Supabase URL not configured", error_code="config_error")
        if not service_key:
            raise ConfigurationError(
                "Supabase Service Role Key not configured", error_code="config_error"
            )
        return f"{base_url.rstrip('/')}/{name}", service_key

    async def invoke(self, name: str, body: dict | None = None) -> dict:
        """
        POST to an edge function and return its JSON body.

        Raises:
            ConfigurationError: URL or service key missing
            RemoteFunctionError: timeout, network failure, non-2xx or non-JSON answer
        """
        url, service_key = self._endpoint(name)
        headers = {
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=body or {}, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Edge function timed out", function=name, timeout=self.timeout)
            raise RemoteFunctionError(f"{name} timed out", function_name=name) from e
        except httpx.RequestError as e:
            logger.warning(
                "Edge function unreachable",
                function=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RemoteFunctionError(f"{name} unreachable: {e}", function_name=name) from e

        if not response.is_success:
            logger.error(
                "Edge function returned error",
                function=name,
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise RemoteFunctionError(
                f"{name} failed (HTTP {response.status_code})",
                function_name=name,
                status_code=response.status_code,
                recoverable=response.status_code >= 500,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteFunctionError(
                f"{name} returned a non-JSON response", function_name=name
            ) from e

        return data if isinstance(data, dict) else {}


remote_functions = RemoteFunctionsClient()
