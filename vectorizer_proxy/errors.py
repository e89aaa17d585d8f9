class RelayError(Exception):
    """Base for failures rendered as a JSON ``{error, message}`` body."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> dict:
        return {"error": self.error, "message": self.message}


class MissingImage(RelayError):
    status_code = 400
    error = "Bad request"


class UploadTooLarge(RelayError):
    status_code = 413
    error = "Payload too large"


class UpstreamError(RelayError):
    """The vectorizer answered with a non-success status."""

    error = "Vectorizer.ai API error"

    def to_body(self) -> dict:
        return {**super().to_body(), "status": self.status_code}


class TransportError(RelayError):
    """No response was received from the vectorizer."""
