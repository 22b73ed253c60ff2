import json

import httpx
import pytest

from square_checkout.clients import SquareClient
from square_checkout.errors import (GatewayError, InvalidCartError, MissingSourceError,
                                    NoActiveLocationError, OrderTotalError)
from square_checkout.models import GatewaySettings
from square_checkout.workflow import checkout_workflow, create_order_workflow, derive_total

CART = [
    {"catalog_object_id": "ITEM_LATTE", "quantity": 1, "modifier_catalog_object_ids": ["MOD_OAT_MILK"]},
    {"catalog_object_id": "ITEM_LATTE", "quantity": 2, "modifier_catalog_object_ids": ["MOD_OAT_MILK"]},
]


class FakeSquare:
    """Records requests and answers them from canned payloads keyed by path."""

    def __init__(self, **responses):
        self.responses = {
            "/v2/locations": (200, {"locations": [{"id": "L1", "status": "ACTIVE"}]}),
            "/v2/orders": (200, {"order": {"id": "O1", "state": "OPEN",
                                           "total_money": {"amount": 1575, "currency": "CAD"}}}),
            "/v2/payments": (200, {"payment": {"id": "P1", "status": "COMPLETED",
                                               "receipt_url": "https://receipt/P1"}}),
        }
        self.responses.update({f"/v2/{name}": value for name, value in responses.items()})
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        status, payload = self.responses[request.url.path]
        return httpx.Response(status, json=payload)

    def paths(self):
        return [request.url.path for request in self.requests]

    def body(self, path):
        return next(json.loads(r.content) for r in self.requests if r.url.path == path)

    def client(self, **settings):
        settings.setdefault("access_token", "EAAA-token")
        return SquareClient(GatewaySettings(**settings),
                            http_client=httpx.Client(transport=httpx.MockTransport(self)))


def test_create_order_happy_path():
    square = FakeSquare()

    result = create_order_workflow({"cart": CART}, square.client())

    assert square.paths() == ["/v2/locations", "/v2/orders"]
    assert square.body("/v2/orders")["order"]["line_items"] == [{
        "catalog_object_id": "ITEM_LATTE",
        "quantity": "3",
        "modifiers": [{"catalog_object_id": "MOD_OAT_MILK", "quantity": "1"}],
    }]
    assert result["orderId"] == "O1"
    assert result["state"] == "OPEN"
    assert result["locationId"] == "L1"
    assert result["totalMoney"] == {"amount": 1575, "currency": "CAD"}
    assert result["order"]["id"] == "O1"


def test_create_order_tolerates_missing_fields():
    square = FakeSquare(orders=(200, {}))

    result = create_order_workflow({"cart": CART}, square.client(location_id="L9"))

    assert result == {"orderId": None, "state": None, "locationId": "L9", "totalMoney": None, "order": None}


@pytest.mark.parametrize("body", [None, [], "x", {}, {"cart": []}, {"cart": "A"}, {"cart": [{"quantity": 2}]}])
def test_create_order_rejects_empty_cart_without_calling_square(body):
    square = FakeSquare()

    with pytest.raises(InvalidCartError):
        create_order_workflow(body, square.client())
    assert square.requests == []


def test_create_order_without_active_location():
    square = FakeSquare(locations=(200, {"locations": [{"id": "L1", "status": "INACTIVE"}]}))

    with pytest.raises(NoActiveLocationError):
        create_order_workflow({"cart": CART}, square.client())
    assert square.paths() == ["/v2/locations"]


def test_create_order_propagates_gateway_message():
    square = FakeSquare(orders=(400, {"errors": [{"code": "NOT_FOUND", "detail": "Object not found."}]}))

    with pytest.raises(GatewayError, match="Object not found."):
        create_order_workflow({"cart": CART}, square.client())


def test_checkout_happy_path():
    square = FakeSquare()

    result = checkout_workflow(
        {"cart": CART, "sourceId": "  cnon:ok  ", "buyerEmailAddress": " buyer@example.com "},
        square.client(),
    )

    assert square.paths() == ["/v2/locations", "/v2/orders", "/v2/payments"]
    payment = square.body("/v2/payments")
    assert payment["source_id"] == "cnon:ok"
    assert payment["location_id"] == "L1"
    assert payment["order_id"] == "O1"
    assert payment["amount_money"] == {"amount": 1575, "currency": "CAD"}
    assert payment["autocomplete"] is True
    assert payment["buyer_email_address"] == "buyer@example.com"
    assert payment["idempotency_key"] != square.body("/v2/orders")["idempotency_key"]
    assert result == {
        "orderId": "O1",
        "paymentId": "P1",
        "paymentStatus": "COMPLETED",
        "receiptUrl": "https://receipt/P1",
        "totalMoney": {"amount": 1575, "currency": "CAD"},
    }


def test_checkout_omits_blank_email_and_defaults_currency():
    square = FakeSquare(orders=(200, {"order": {"id": "O1", "total_money": {"amount": 500}}}),
                        payments=(200, {}))

    result = checkout_workflow({"cart": CART, "sourceId": "cnon:ok", "buyerEmailAddress": "   "},
                               square.client())

    assert "buyer_email_address" not in square.body("/v2/payments")
    assert result["totalMoney"] == {"amount": 500, "currency": "USD"}
    assert result["paymentId"] is None
    assert result["paymentStatus"] is None
    assert result["receiptUrl"] is None


@pytest.mark.parametrize("source_id", [None, "", "   ", 123])
def test_checkout_requires_source_before_cart(source_id):
    square = FakeSquare()

    with pytest.raises(MissingSourceError):
        checkout_workflow({"cart": [], "sourceId": source_id}, square.client())
    assert square.requests == []


def test_checkout_rejects_empty_cart():
    square = FakeSquare()

    with pytest.raises(InvalidCartError):
        checkout_workflow({"cart": [{"catalog_object_id": " "}], "sourceId": "cnon:ok"}, square.client())
    assert square.requests == []


@pytest.mark.parametrize("order", [
    {"id": "O1", "total_money": {"amount": 0, "currency": "USD"}},
    {"id": "O1", "total_money": {"amount": -100, "currency": "USD"}},
    {"id": "O1", "total_money": {"amount": "abc"}},
    {"id": "O1", "total_money": {"amount": True}},
    {"id": "O1"},
    {"total_money": {"amount": 100}},
    {"id": "O1", "total_money": {"amount": 10 ** 400}},
    {"id": "O1", "total_money": {"amount": "1e400"}},
])
def test_checkout_never_captures_without_a_positive_total(order):
    square = FakeSquare(orders=(200, {"order": order}))

    with pytest.raises(OrderTotalError, match="Unable to determine order total for payment."):
        checkout_workflow({"cart": CART, "sourceId": "cnon:ok"}, square.client())
    assert "/v2/payments" not in square.paths()


def test_checkout_payment_failure_surfaces_after_order_creation():
    square = FakeSquare(payments=(400, {"errors": [{"code": "CARD_DECLINED", "detail": "Card declined."}]}))

    with pytest.raises(GatewayError, match="Card declined."):
        checkout_workflow({"cart": CART, "sourceId": "cnon:ok"}, square.client())
    assert square.paths() == ["/v2/locations", "/v2/orders", "/v2/payments"]


def test_derive_total_accepts_numeric_strings():
    assert derive_total({"id": "O1", "total_money": {"amount": "1200", "currency": "EUR"}}) == (1200, "EUR")
    assert derive_total({"id": "O1", "total_money": {"amount": 99.0, "currency": 5}}) == (99, "USD")
