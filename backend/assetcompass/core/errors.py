"""
Error taxonomy for the trade execution and valuation engine.

Each error carries a stable ``code`` so the API layer can return a
structured body naming the precondition that failed.
"""


class TrackerError(Exception):
    """Base class for errors surfaced to callers."""

    code = "tracker_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "detail": self.message}


class InvalidInput(TrackerError):
    """A caller-supplied value failed a precondition (amount, value, currency)."""

    code = "invalid_input"


class UnsupportedCurrency(InvalidInput):
    """No live rate and no configured seed exist for a currency pair."""

    code = "unsupported_currency"


class NotFound(TrackerError):
    """The referenced holding does not exist."""

    code = "not_found"


class PriceUnavailable(TrackerError):
    """The price oracle could not construct any price, not even a fallback."""

    code = "price_unavailable"


class FetchFailure(Exception):
    """
    An upstream provider call failed (network, timeout, malformed payload,
    rate limit). Raised by providers and absorbed by the price oracle.
    """
