"""Domain errors raised by services and mapped to HTTP responses in app.main."""


class KnuggetError(Exception):
    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.public_message
        super().__init__(self.message)


class NotFoundError(KnuggetError):
    """Record is absent or owned by someone else; callers cannot tell which."""

    status_code = 404
    public_message = "Not found"


class InsufficientCreditsError(KnuggetError):
    status_code = 402
    public_message = "Insufficient credits"

    def __init__(self, needed: int, current: int):
        self.needed = needed
        self.current = current
        super().__init__(f"Insufficient credits: need {needed}, have {current}")


class UpstreamError(KnuggetError):
    """Completion service failed or returned nothing usable."""

    status_code = 502
    public_message = "Upstream service failure"


class RecordIntegrityError(KnuggetError):
    """A stored JSON column could not be decoded."""

    status_code = 500
    public_message = "Stored record is corrupt"
