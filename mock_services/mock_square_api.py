"""
mock_square_api.py — Mock Implementation of the Square Commerce API (REST)

This module provides a simulated Square API for local runs and tests of the
checkout adapter. It exposes a FastAPI application that mimics the parts of
Square's behavior the adapter depends on, including its error envelope
(`{"errors": [{"category", "code", "detail"}]}`).

Simulation Scenarios:
    • Location listing with one inactive and one active location
    • Order pricing from a small in-memory catalog (modifiers add to the unit price)
    • Unknown catalog IDs rejected with NOT_FOUND
    • Zero-priced items producing a zero order total
    • Declined card (source "cnon:card-declined") → CARD_DECLINED
    • Idempotency key replay returning the original response

Endpoints:
    GET  /v2/locations
    POST /v2/orders
    POST /v2/payments

Port:
    Default: 8002 (HTTP)
"""

import logging
import time
import uuid
from typing import Dict, List, Optional

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

app = FastAPI(title="Mock Square API")
log = logging.getLogger(__name__)

DECLINED_SOURCE = "cnon:card-declined"

CATALOG_PRICES: Dict[str, int] = {
    "ITEM_LATTE": 450,
    "ITEM_BAGEL": 300,
    "ITEM_FREE_SAMPLE": 0,
    "MOD_OAT_MILK": 75,
    "MOD_EXTRA_SHOT": 100,
    "MOD_CREAM_CHEESE": 125,
}

DEFAULT_LOCATIONS = [
    {"id": "L_WAREHOUSE", "name": "Warehouse", "status": "INACTIVE"},
    {"id": "L_MAIN", "name": "Main Street", "status": "ACTIVE"},
]

locations: List[dict] = []
orders: Dict[str, dict] = {}
idempotent_responses: Dict[str, dict] = {}


def reset_state():
    """Restores the default locations and forgets all orders and idempotency keys."""
    locations[:] = [dict(location) for location in DEFAULT_LOCATIONS]
    orders.clear()
    idempotent_responses.clear()


reset_state()


class SquareApiError(Exception):
    """Carries one Square-style error and the HTTP status to return it with."""
    def __init__(self, status_code: int, category: str, code: str, detail: str):
        self.status_code = status_code
        self.error = {"category": category, "code": code, "detail": detail}


@app.exception_handler(SquareApiError)
async def square_error_handler(request: Request, exc: SquareApiError):
    return JSONResponse({"errors": [exc.error]}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"category": "INVALID_REQUEST_ERROR", "code": "INVALID_VALUE",
         "detail": f"{'.'.join(str(p) for p in error['loc'])}: {error['msg']}"}
        for error in exc.errors()
    ]
    return JSONResponse({"errors": errors}, status_code=400)


def check_headers(authorization: Optional[str], square_version: Optional[str]):
    if not authorization or not authorization.startswith("Bearer ") or not authorization[7:].strip():
        raise SquareApiError(401, "AUTHENTICATION_ERROR", "UNAUTHORIZED",
                             "This request could not be authorized.")
    if not square_version:
        raise SquareApiError(400, "INVALID_REQUEST_ERROR", "MISSING_REQUIRED_PARAMETER",
                             "Missing required header: Square-Version.")


class Modifier(BaseModel):
    catalog_object_id: str
    quantity: str = "1"


class LineItem(BaseModel):
    catalog_object_id: str
    quantity: str
    modifiers: List[Modifier] = []


class OrderDraft(BaseModel):
    location_id: str
    line_items: List[LineItem]


class CreateOrderRequest(BaseModel):
    """
    Represents a Square CreateOrder request payload.

    Attributes:
        idempotency_key (str): Client-generated key; repeated keys replay the first response.
        order (OrderDraft): Location and line items of the new order.
    """
    idempotency_key: str
    order: OrderDraft


class Money(BaseModel):
    amount: int
    currency: str


class CreatePaymentRequest(BaseModel):
    """
    Represents a Square CreatePayment request payload.

    Attributes:
        source_id (str): Card nonce or other payment source.
        idempotency_key (str): Client-generated key; repeated keys replay the first response.
        location_id (str): Location the payment is taken at.
        amount_money (Money): Amount in the smallest currency unit.
        order_id (str): Order the payment pays for. Must exist and match the amount.
        autocomplete (bool): Capture immediately when true.
        buyer_email_address (Optional[str]): Receipt address.
    """
    source_id: str
    idempotency_key: str
    location_id: str
    amount_money: Money
    order_id: str
    autocomplete: bool = True
    buyer_email_address: Optional[str] = None


def parse_quantity(raw: str) -> int:
    try:
        quantity = int(raw)
    except ValueError:
        quantity = 0
    if quantity <= 0:
        raise SquareApiError(400, "INVALID_REQUEST_ERROR", "INVALID_VALUE",
                             f"Invalid quantity {raw!r}.")
    return quantity


def price_of(catalog_object_id: str) -> int:
    if catalog_object_id not in CATALOG_PRICES:
        raise SquareApiError(404, "INVALID_REQUEST_ERROR", "NOT_FOUND",
                             f"Object `{catalog_object_id}` not found.")
    return CATALOG_PRICES[catalog_object_id]


def now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@app.get("/v2/locations")
def list_locations(
        authorization: Optional[str] = Header(None),
        square_version: Optional[str] = Header(None),
):
    check_headers(authorization, square_version)
    return {"locations": locations}


@app.post("/v2/orders")
def create_order(
        request: CreateOrderRequest,
        authorization: Optional[str] = Header(None),
        square_version: Optional[str] = Header(None),
):
    """
    Prices and stores a new order.

    Each line costs (item price + sum of modifier price × modifier quantity) × quantity.

    Raises:
        SquareApiError: For unknown locations, unknown catalog IDs or invalid quantities.
    """
    check_headers(authorization, square_version)
    if request.idempotency_key in idempotent_responses:
        log.info(f"[SQ] Replaying order for idempotency key {request.idempotency_key}")
        return idempotent_responses[request.idempotency_key]

    if not any(location["id"] == request.order.location_id for location in locations):
        raise SquareApiError(404, "INVALID_REQUEST_ERROR", "NOT_FOUND",
                             f"Location `{request.order.location_id}` not found.")

    line_items = []
    total = 0
    for item in request.order.line_items:
        quantity = parse_quantity(item.quantity)
        unit_price = price_of(item.catalog_object_id)
        for modifier in item.modifiers:
            unit_price += price_of(modifier.catalog_object_id) * parse_quantity(modifier.quantity)
        line_total = unit_price * quantity
        total += line_total
        line_items.append({
            "uid": uuid.uuid4().hex[:12],
            "catalog_object_id": item.catalog_object_id,
            "quantity": item.quantity,
            "modifiers": [m.model_dump() for m in item.modifiers],
            "total_money": {"amount": line_total, "currency": "USD"},
        })

    order_id = f"ord_{uuid.uuid4().hex[:16]}"
    order = {
        "id": order_id,
        "location_id": request.order.location_id,
        "state": "OPEN",
        "line_items": line_items,
        "total_money": {"amount": total, "currency": "USD"},
        "created_at": now(),
    }
    orders[order_id] = order
    response = {"order": order}
    idempotent_responses[request.idempotency_key] = response
    log.info(f"[SQ] Order {order_id} created with total {total}.")
    return response


@app.post("/v2/payments")
def create_payment(
        request: CreatePaymentRequest,
        authorization: Optional[str] = Header(None),
        square_version: Optional[str] = Header(None),
):
    """
    Processes a payment for a stored order.

    This endpoint simulates different outcomes based on the provided `source_id`:
        - "cnon:card-declined" → CARD_DECLINED (HTTP 400)
        - Any other source → COMPLETED (or APPROVED without autocomplete)
    """
    check_headers(authorization, square_version)
    if request.idempotency_key in idempotent_responses:
        return idempotent_responses[request.idempotency_key]

    order = orders.get(request.order_id)
    if order is None:
        raise SquareApiError(404, "INVALID_REQUEST_ERROR", "NOT_FOUND",
                             f"Order `{request.order_id}` not found.")
    if request.amount_money.amount != order["total_money"]["amount"]:
        raise SquareApiError(400, "INVALID_REQUEST_ERROR", "INVALID_VALUE",
                             "The amount_money does not match the order total.")
    if request.source_id == DECLINED_SOURCE:
        log.warning(f"[SQ] Payment for order {request.order_id} declined.")
        raise SquareApiError(400, "PAYMENT_METHOD_ERROR", "CARD_DECLINED",
                             "Authorization error: 'CARD_DECLINED'")

    payment_id = f"pay_{uuid.uuid4().hex[:16]}"
    payment = {
        "id": payment_id,
        "status": "COMPLETED" if request.autocomplete else "APPROVED",
        "order_id": request.order_id,
        "location_id": request.location_id,
        "amount_money": request.amount_money.model_dump(),
        "receipt_url": f"https://squareup.com/receipt/preview/{payment_id}",
        "created_at": now(),
    }
    if request.buyer_email_address:
        payment["buyer_email_address"] = request.buyer_email_address
    if request.autocomplete:
        order["state"] = "COMPLETED"

    response = {"payment": payment}
    idempotent_responses[request.idempotency_key] = response
    log.info(f"[SQ] Payment {payment_id} for order {request.order_id} succeeded.")
    return response


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8002)
