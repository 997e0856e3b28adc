"""
Error taxonomy shared by services and routes.

Services raise these; routes map them onto HTTP status codes. Provider and
remote-function failures are converted into result objects at the
orchestration boundary and only reach routes as data.
"""


class AvaraError(Exception):
    """Base class for domain errors."""

    status_code = 500

    def __init__(self, message: str, error_code: str | None = None, recoverable: bool = False):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.recoverable = recoverable


class Unauthenticated(AvaraError):
    """No valid session."""

    status_code = 401


class ValidationError(AvaraError):
    """Malformed input such as an unknown enum value or a missing field."""

    status_code = 400


class NotFound(AvaraError):
    """Resource absent or not owned by the caller. The two cases are indistinguishable."""

    status_code = 404


class ConfigurationError(AvaraError):
    """Missing or invalid server configuration."""

    status_code = 500


class AuthIntegrationExpired(AvaraError):
    """The provider rejected the refresh token; the user has to reconnect."""

    status_code = 401


class TransientProviderError(AvaraError):
    """Network failure or timeout talking to a provider. Safe to retry later."""

    status_code = 503

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message, error_code=error_code, recoverable=True)


class ProviderUnavailable(AvaraError):
    """Provider API call failed at the HTTP level."""

    status_code = 502

    def __init__(
        self, message: str, error_code: str | None = None, status_code: int | None = None
    ):
        super().__init__(message, error_code=error_code, recoverable=True)
        self.provider_status = status_code


class ProviderResponseInvalid(AvaraError):
    """Provider answered with a body we cannot interpret."""

    status_code = 502


class RemoteFunctionError(AvaraError):
    """A hosted edge function failed or could not be reached."""

    status_code = 502

    def __init__(
        self,
        message: str,
        function_name: str,
        status_code: int | None = None,
        recoverable: bool = True,
    ):
        super().__init__(message, error_code=function_name, recoverable=recoverable)
        self.function_name = function_name
        self.remote_status = status_code
