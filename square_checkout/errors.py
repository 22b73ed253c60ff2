"""
errors.py — Error Types for the Checkout Adapter

Every failure that can reach a client is expressed as a `CheckoutError`.
The route layer renders these uniformly as `{"error": message}` with the
carried HTTP status code.

Taxonomy:
    • Client input errors (400): InvalidCartError, MissingSourceError
    • Configuration errors (500): MissingCredentialsError, NoActiveLocationError
    • Upstream errors (500): GatewayError
    • Orchestration errors (500): OrderTotalError
"""

from typing import List, Optional


class CheckoutError(Exception):
    """Base class for all errors surfaced by the order and checkout endpoints."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class InvalidCartError(CheckoutError):
    """Raised when the submitted cart is missing or normalizes to nothing."""

    def __init__(self, message: str = "Cart is empty or invalid."):
        super().__init__(message, status_code=400)


class MissingSourceError(CheckoutError):
    """Raised when the checkout body carries no usable payment source token."""

    def __init__(self, message: str = "Missing payment source token."):
        super().__init__(message, status_code=400)


class ConfigurationError(CheckoutError):
    """Raised when the deployment is missing configuration needed for a request."""


class MissingCredentialsError(ConfigurationError):
    def __init__(self, message: str = "Missing SQUARE_ACCESS_TOKEN."):
        super().__init__(message)


class NoActiveLocationError(ConfigurationError):
    def __init__(self, message: str = "No active Square location is configured."):
        super().__init__(message)


class GatewayError(CheckoutError):
    """
    Raised when a call to the Square API fails.

    Attributes:
        upstream_status (Optional[int]): HTTP status returned by Square, or None
            when the request never produced a response (transport failure).
        errors (list): The raw `errors` list from Square's response envelope.
    """

    def __init__(self, message: str, upstream_status: Optional[int] = None, errors: Optional[List] = None):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.errors = errors or []


class OrderTotalError(CheckoutError):
    """Raised when a created order has no usable total, so no payment may be captured."""

    def __init__(self, message: str = "Unable to determine order total for payment."):
        super().__init__(message)
