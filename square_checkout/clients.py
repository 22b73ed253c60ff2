"""
This module provides the communication client for the Square commerce API.

The client encapsulates:
- Environment selection (sandbox vs. production) from the configured app ID and flags
- Authentication and versioning headers on every request
- Translation of Square's error envelope into GatewayError
- The three calls the adapter needs: list locations, create order, create payment

No retries are performed. Each create call carries a fresh idempotency key so the
caller of this service can safely retry a whole request.
"""

import logging
import uuid
from typing import Iterable, Optional

import httpx

from .errors import GatewayError, MissingCredentialsError, NoActiveLocationError
from .models import GatewaySettings, NormalizedLine

SQUARE_VERSION = "2025-10-16"
SANDBOX_BASE_URL = "https://connect.squareupsandbox.com"
PRODUCTION_BASE_URL = "https://connect.squareup.com"

SANDBOX = "sandbox"
PRODUCTION = "production"

DEFAULT_TIMEOUT = httpx.Timeout(5.0, read=8.0)

log = logging.getLogger(__name__)


def resolve_environment(settings: GatewaySettings) -> str:
    """
    Picks the Square environment for the given settings.

    The application ID is the strongest signal: sandbox IDs start with
    "sandbox-" or contain "sq0idb-", production IDs contain "sq0idp-".
    The sandbox check runs first. Only when the app ID says nothing is the
    explicit SQUARE_ENVIRONMENT flag consulted; the default is sandbox.

    Args:
        settings (GatewaySettings): Resolved request settings.

    Returns:
        str: "sandbox" or "production".
    """
    app_id = settings.app_id or ""
    if app_id.startswith("sandbox-") or "sq0idb-" in app_id:
        return SANDBOX
    if "sq0idp-" in app_id:
        return PRODUCTION
    if settings.environment.lower() == PRODUCTION:
        return PRODUCTION
    return SANDBOX


def get_api_base(settings: GatewaySettings) -> str:
    return PRODUCTION_BASE_URL if resolve_environment(settings) == PRODUCTION else SANDBOX_BASE_URL


def extract_error_message(payload, status_code: int) -> str:
    """Joins the `detail` (or `code`) of every error in Square's envelope."""
    errors = payload.get("errors") if isinstance(payload, dict) else None
    details = []
    if isinstance(errors, list):
        for error in errors:
            if not isinstance(error, dict):
                continue
            detail = error.get("detail") or error.get("code")
            if detail:
                details.append(str(detail))
    return ", ".join(details) or f"Square API error ({status_code})"


def new_idempotency_key() -> str:
    return str(uuid.uuid4())


class SquareClient:
    """
    Client for the Square REST API.

    Settings are bound per instance, so one client serves exactly one request's
    configuration. An existing httpx.Client may be passed in; in that case the
    caller keeps ownership and `close()` leaves it open.
    """
    def __init__(self, settings: GatewaySettings, http_client: Optional[httpx.Client] = None):
        self.settings = settings
        self.base_url = get_api_base(settings)
        self._owns_client = http_client is None
        if http_client is None:
            timeout = httpx.Timeout(settings.timeout_seconds) if settings.timeout_seconds else DEFAULT_TIMEOUT
            http_client = httpx.Client(timeout=timeout)
        self.client = http_client

    def close(self):
        """Closes the HTTP client session if this instance created it."""
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def call(self, path: str, method: str = "GET", body: Optional[dict] = None,
             headers: Optional[dict] = None) -> dict:
        """
        Sends one request to the Square API and returns the parsed JSON payload.

        Args:
            path (str): API path, e.g. "/v2/orders".
            method (str): HTTP method.
            body (Optional[dict]): JSON body to send.
            headers (Optional[dict]): Extra headers; these override the defaults.

        Returns:
            dict: The decoded response body.

        Raises:
            MissingCredentialsError: If no access token is configured. No request is sent.
            GatewayError: On transport failure, a non-2xx status or an unparseable body.
        """
        if not self.settings.access_token:
            raise MissingCredentialsError()

        request_headers = httpx.Headers({
            "Authorization": f"Bearer {self.settings.access_token}",
            "Content-Type": "application/json",
            "Square-Version": SQUARE_VERSION,
        })
        request_headers.update(headers or {})

        try:
            response = self.client.request(method, f"{self.base_url}{path}", json=body, headers=request_headers)
        except httpx.HTTPError as e:
            log.error(f"Square {method} {path} failed before a response was received: {e}")
            raise GatewayError(f"Square API request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.is_success:
            message = extract_error_message(payload, response.status_code)
            log.warning(f"Square {method} {path} returned HTTP {response.status_code}: {message}")
            errors = payload.get("errors") if isinstance(payload, dict) else None
            raise GatewayError(message, upstream_status=response.status_code,
                               errors=errors if isinstance(errors, list) else None)

        if not isinstance(payload, dict):
            raise GatewayError(f"Square API returned an invalid response ({response.status_code})",
                               upstream_status=response.status_code)
        return payload

    def resolve_location(self) -> str:
        """
        Returns the location to sell against.

        A configured SQUARE_LOCATION_ID is trusted without a network call.
        Otherwise the first location with status ACTIVE is used.

        Raises:
            NoActiveLocationError: If no location is configured and none is active.
            GatewayError: If the location lookup fails.
        """
        if self.settings.location_id:
            return self.settings.location_id

        payload = self.call("/v2/locations")
        locations = payload.get("locations") or []
        for location in locations:
            if isinstance(location, dict) and location.get("status") == "ACTIVE" and location.get("id"):
                return location["id"]
        raise NoActiveLocationError()

    def create_order(self, location_id: str, lines: Iterable[NormalizedLine]) -> dict:
        payload = {
            "idempotency_key": new_idempotency_key(),
            "order": {
                "location_id": location_id,
                "line_items": [line.to_line_item() for line in lines],
            },
        }
        return self.call("/v2/orders", method="POST", body=payload)

    def create_payment(self, source_id: str, location_id: str, order_id: str, amount: int,
                       currency: str, buyer_email_address: Optional[str] = None) -> dict:
        """
        Captures a payment for an existing order.

        The payment is created with autocomplete enabled, so funds are captured
        immediately without a separate completion call.
        """
        payload = {
            "source_id": source_id,
            "idempotency_key": new_idempotency_key(),
            "location_id": location_id,
            "amount_money": {"amount": amount, "currency": currency},
            "order_id": order_id,
            "autocomplete": True,
        }
        if buyer_email_address:
            payload["buyer_email_address"] = buyer_email_address
        return self.call("/v2/payments", method="POST", body=payload)
