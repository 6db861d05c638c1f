class SoundbexError(Exception):
    """Base class for all service errors."""


class ValidationError(SoundbexError):
    """A required parameter is missing or malformed."""


class NotFoundError(SoundbexError):
    """Requested resource was not found (unknown or expired)."""


class UpstreamUnavailable(SoundbexError):
    """Network failure, timeout or non-2xx answer from a third-party service."""


class UpstreamShapeError(SoundbexError):
    """Third-party response could not be parsed into the expected shape."""


class ResolutionExhausted(SoundbexError):
    """Every extraction strategy failed. Internal only, absorbed into the fallback."""

    def __init__(self, video_id: str, tried: int) -> None:
        super().__init__(f"No strategy resolved {video_id} ({tried} tried)")
        self.video_id = video_id
        self.tried = tried
