"""
workflow.py — Core Orchestration Logic for Orders and Checkout

This module sequences the Square API calls for the two inbound endpoints.

Workflow Overview:
    Create order:  validate cart → resolve location → create order → respond
    Checkout:      validate source token → validate cart → read buyer email →
                   resolve location → create order → derive total → capture payment → respond

Every step depends on the result of the previous one, so steps run strictly in
sequence and the first failure aborts the rest. Failures are raised as
CheckoutError subclasses and rendered by the route layer.

Known limitation: if payment capture fails after the order was created, the
order stays open on Square's side. No compensating call is made.
"""

import math
from typing import Any, List, Optional, Tuple

from .cart import normalize_cart
from .clients import SquareClient
from .errors import InvalidCartError, MissingSourceError, OrderTotalError
from .logging_config import get_logger
from .models import NormalizedLine

DEFAULT_CURRENCY = "USD"

log = get_logger(__name__)


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _clean_string(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _validated_lines(body: dict) -> List[NormalizedLine]:
    lines = normalize_cart(body.get("cart"))
    if not lines:
        raise InvalidCartError()
    return lines


def derive_total(order: dict) -> Tuple[Any, str]:
    """
    Reads the amount and currency to charge from a created order.

    Args:
        order (dict): The `order` object returned by Square.

    Returns:
        Tuple[number, str]: The positive amount and its currency ("USD" if absent).

    Raises:
        OrderTotalError: If the order has no ID or its total is missing,
            non-numeric, non-finite or not positive.
    """
    total_money = _as_dict(order.get("total_money"))
    amount = total_money.get("amount")
    if isinstance(amount, str):
        try:
            amount = float(amount)
        except ValueError:
            amount = None
    if isinstance(amount, float) and amount.is_integer():
        amount = int(amount)

    if not order.get("id") or isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise OrderTotalError()
    try:
        usable = math.isfinite(float(amount)) and amount > 0
    except OverflowError:
        usable = False
    if not usable:
        raise OrderTotalError()

    currency = total_money.get("currency")
    return amount, currency if isinstance(currency, str) else DEFAULT_CURRENCY


def create_order_workflow(body: Any, client: SquareClient) -> dict:
    """
    Creates a Square order from the submitted cart.

    Args:
        body (Any): Parsed request body; anything other than an object counts as empty.
        client (SquareClient): Gateway bound to this request's settings.

    Returns:
        dict: orderId, state, locationId, totalMoney and the full order, each None if absent.

    Raises:
        InvalidCartError: If the cart is missing or has no valid lines.
        NoActiveLocationError: If no location can be resolved.
        GatewayError: If a Square call fails.
    """
    body = _as_dict(body)
    lines = _validated_lines(body)
    log.info(f"[Order] Creating order for {len(lines)} normalized line(s).")

    location_id = client.resolve_location()
    response = client.create_order(location_id, lines)
    order = response.get("order")
    order_data = _as_dict(order)

    log.info(f"[Order: {order_data.get('id')}] Order created at location {location_id} "
             f"(state: {order_data.get('state')}).")
    return {
        "orderId": order_data.get("id") or None,
        "state": order_data.get("state") or None,
        "locationId": location_id,
        "totalMoney": order_data.get("total_money") or None,
        "order": order,
    }


def checkout_workflow(body: Any, client: SquareClient) -> dict:
    """
    Creates a Square order and immediately captures a payment for its total.

    The source token is checked first, then the cart, so a request missing
    both reports the missing token. The order total is taken from Square's
    response, never from the client.

    Args:
        body (Any): Parsed request body with `cart`, `sourceId` and optional
            `buyerEmailAddress`.
        client (SquareClient): Gateway bound to this request's settings.

    Returns:
        dict: orderId, paymentId, paymentStatus, receiptUrl and the charged totalMoney.

    Raises:
        MissingSourceError: If `sourceId` is missing or blank.
        InvalidCartError: If the cart is missing or has no valid lines.
        NoActiveLocationError: If no location can be resolved.
        OrderTotalError: If the created order has no usable total.
        GatewayError: If a Square call fails.
    """
    body = _as_dict(body)
    source_id = _clean_string(body.get("sourceId"))
    if not source_id:
        raise MissingSourceError()

    lines = _validated_lines(body)
    buyer_email_address = _clean_string(body.get("buyerEmailAddress"))

    location_id = client.resolve_location()
    log.info(f"[Checkout] Step 1: Creating order for {len(lines)} line(s) at location {location_id}.")
    order = _as_dict(client.create_order(location_id, lines).get("order"))
    amount, currency = derive_total(order)
    order_id = order["id"]
    log_prefix = f"[Order: {order_id}]"

    log.info(f"{log_prefix} Step 2: Capturing payment of {amount} {currency}.")
    try:
        payment_response = client.create_payment(
            source_id=source_id,
            location_id=location_id,
            order_id=order_id,
            amount=amount,
            currency=currency,
            buyer_email_address=buyer_email_address,
        )
    except Exception:
        log.error(f"{log_prefix} Payment capture failed. The order remains open on Square.")
        raise

    payment = _as_dict(payment_response.get("payment"))
    log.info(f"{log_prefix} Payment {payment.get('id')} completed with status {payment.get('status')}.")
    return {
        "orderId": order_id,
        "paymentId": payment.get("id") or None,
        "paymentStatus": payment.get("status") or None,
        "receiptUrl": payment.get("receipt_url") or None,
        "totalMoney": {"amount": amount, "currency": currency},
    }
