"""Custom exceptions for ntrn."""


class NtrnError(Exception):
    """Base exception for all ntrn errors."""


class ProjectNotFoundError(NtrnError):
    """Raised when the source project directory does not exist."""


class ProviderNotConfiguredError(NtrnError):
    """Raised when no AI provider has been selected or no API key is available."""


class ProviderAPIError(NtrnError):
    """Raised when an AI provider returns an error response."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        self.provider = provider
        self.status_code = status_code
        prefix = f"{provider} API error"
        if status_code is not None:
            prefix += f" {status_code}"
        super().__init__(f"{prefix}: {message}")
