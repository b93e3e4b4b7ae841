"""
Exceptions raised by the billing pipeline.

Row-level and event-level malformation never shows up here; those records are
skipped by the parsers.
"""


class BillingError(Exception):
    """Base exception for billing runs."""


class NetworkError(BillingError):
    """Feed or roster document could not be fetched."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(BillingError):
    """Document is not valid calendar or tabular syntax."""


class InvalidArgument(BillingError, ValueError):
    """Caller passed a month/year outside the supported range."""


class DeliveryError(Exception):
    """LINE Messaging API rejected a reply or push."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
