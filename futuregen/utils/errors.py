"""Custom exception classes for the FutureGen service."""

from typing import Optional


class FutureGenError(Exception):
    """Base exception for all FutureGen errors."""
    pass


class ConfigurationError(FutureGenError):
    """Configuration or credential errors. Never retried."""
    pass


class InvalidRequestError(FutureGenError):
    """Request is missing something the selected path requires."""
    pass


class ImageProcessingError(FutureGenError):
    """Error processing image data."""
    pass


class ImageDecodeError(ImageProcessingError):
    """Image payload could not be decoded or re-encoded."""
    pass


class APIError(FutureGenError):
    """Base class for API-related errors."""
    pass


class ProviderError(APIError):
    """Generic provider API error with status code."""

    def __init__(self, provider: str, message: str, status_code: int = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider} error: {message}")


class AuthenticationError(ProviderError):
    """API authentication failed."""

    def __init__(self, provider: str):
        super().__init__(provider, "Authentication failed", 401)


class RateLimitError(ProviderError):
    """API rate limit exceeded."""

    def __init__(self, provider: str, retry_after: int = None):
        self.retry_after = retry_after
        message = f"Rate limit exceeded (429)"
        if retry_after:
            message += f", retry after {retry_after}s"
        super().__init__(provider, message, 429)


class PermissionDeniedError(ProviderError):
    """API key lacks access to the requested model (403)."""

    def __init__(self, provider: str, model: str, detail: Optional[str] = None):
        self.model = model
        self.detail = detail
        message = (
            f"Access denied for model {model}. "
            "Your API key might not have access to this preview model yet."
        )
        if detail:
            message += f" ({detail})"
        super().__init__(provider, message, 403)


class GenerationError(FutureGenError):
    """Errors during image generation."""
    pass


class ContentBlockedError(GenerationError):
    """Generation stopped by a recitation or safety filter."""

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)
