"""Custom wakeclip exceptions."""


class WakeclipError(Exception):
    """Base exception for wakeclip errors."""

    recovery_suggestion = "Try the operation again."

    def __init__(
        self, message: str, original_error: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.original_error = original_error


class InvalidInputError(WakeclipError, ValueError):
    """Exception raised for caller mistakes such as empty audio data or keys.

    Not retried: the same input will fail the same way.
    """

    recovery_suggestion = "Provide non-empty audio data and a non-empty cache key."


class ConfigError(WakeclipError):
    """Exception raised when the configuration file holds invalid values."""

    recovery_suggestion = "Edit the config file or delete it to regenerate."


class ProviderError(WakeclipError):
    """Base exception for text generator and speech synthesizer failures."""

    recovery_suggestion = "Check your internet connection and API keys, then try again."


class ProviderAuthError(ProviderError):
    """Exception raised for authentication failures.

    This typically occurs when:
    - API key is missing or invalid
    - Account has insufficient credits
    - API key permissions are insufficient
    """

    recovery_suggestion = "Verify the provider API key environment variable."


class ProviderAPIError(ProviderError):
    """Exception raised for API communication errors.

    This typically occurs when:
    - API server is unavailable (5xx errors)
    - Rate limits are exceeded (429 error)
    - Request format is invalid (4xx errors)
    - Network connectivity issues
    - The provider returned an empty response
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.status_code = status_code


class StorageError(WakeclipError):
    """Exception raised when cache files or the cache index cannot be written or read."""

    recovery_suggestion = "Check file permissions and available disk space."


class PipelineError(WakeclipError):
    """Exception raised when one stage of audio generation fails.

    Args:
        stage: Pipeline stage that failed ("text", "speech" or "cache")
        original_error: The underlying failure
    """

    def __init__(self, stage: str, original_error: Exception) -> None:
        super().__init__(
            f"Audio generation failed during {stage} stage: {original_error}",
            original_error,
        )
        self.stage = stage

    @property
    def recovery_suggestion(self) -> str:  # type: ignore[override]
        if isinstance(self.original_error, WakeclipError):
            return self.original_error.recovery_suggestion
        return WakeclipError.recovery_suggestion
