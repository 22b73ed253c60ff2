"""
main.py — FastAPI Entry Point for the Square Checkout Adapter

This module provides the REST API interface that storefront clients call.
Each request is handled independently: configuration is resolved, the cart is
normalized and the Square API is driven synchronously for that request only.

Responsibilities:
    • Accept carts for order creation (POST /api/orders)
    • Accept carts plus a payment token for checkout (POST /api/checkout)
    • Convert every failure into a JSON `{"error": ...}` response
    • Provide system health information

Runtime configuration:
    `app.state.runtime_env` (or `request.state.runtime_env`, an extension hook for
    deployments that attach per-tenant values to the request)
    may hold a mapping of configuration values that take precedence over the
    process environment. `app.state.http_client` may hold a shared httpx.Client.
"""

import json
from typing import Any, Callable

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from .clients import SquareClient
from .config import resolve_settings
from .errors import CheckoutError
from .logging_config import setup_logging, get_logger
from .workflow import checkout_workflow, create_order_workflow

# Initialization
setup_logging()
log = get_logger(__name__)
app = FastAPI(title="Square Checkout Adapter")
app.state.runtime_env = None
app.state.http_client = None


async def read_json_body(request: Request) -> Any:
    """Returns the parsed request body, or None if it is empty or not valid JSON."""
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (ValueError, RecursionError):
        log.warning("Request body is not valid JSON; treating it as empty.")
        return None


def build_client(request: Request) -> SquareClient:
    # request.state.runtime_env is an optional per-request hook.
    runtime_env = getattr(request.state, "runtime_env", None)
    if runtime_env is None:
        runtime_env = request.app.state.runtime_env
    settings = resolve_settings(runtime_env)
    return SquareClient(settings, http_client=request.app.state.http_client)


async def run_workflow(request: Request, workflow: Callable[[Any, SquareClient], dict],
                       fallback_message: str) -> JSONResponse:
    """
    Runs a workflow for one request and renders its result or error.

    This is the single error boundary of each endpoint: known CheckoutErrors keep
    their status code, anything else becomes a 500 carrying its message.
    """
    body = await read_json_body(request)
    try:
        client = build_client(request)
        try:
            result = await run_in_threadpool(workflow, body, client)
        finally:
            client.close()
    except CheckoutError as e:
        log.warning(f"{request.url.path} failed with {e.status_code}: {e.message}")
        return JSONResponse({"error": e.message}, status_code=e.status_code)
    except Exception as e:
        log.exception(f"Unexpected error while handling {request.url.path}")
        return JSONResponse({"error": str(e) or fallback_message}, status_code=500)
    return JSONResponse(result)


# API Endpoint: create an order from a cart
@app.post("/api/orders")
async def create_order(request: Request):
    """
    Creates a Square order from the submitted cart.

    Body:
        {"cart": [CartLine, ...]}

    Returns:
        200: {orderId, state, locationId, totalMoney, order}
        400: {error} if the cart is empty or invalid
        500: {error} if no location is available or Square rejects the call
    """
    return await run_workflow(request, create_order_workflow, "Unable to create order.")


# API Endpoint: create an order and capture its payment
@app.post("/api/checkout")
async def checkout(request: Request):
    """
    Creates a Square order and captures a payment for its total.

    Body:
        {"cart": [CartLine, ...], "sourceId": str, "buyerEmailAddress": str (optional)}

    Returns:
        200: {orderId, paymentId, paymentStatus, receiptUrl, totalMoney}
        400: {error} if the source token is missing or the cart is empty
        500: {error} if no location is available, the order total is unusable
             or Square rejects a call
    """
    return await run_workflow(request, checkout_workflow, "Checkout failed.")


# Health Check Endpoint
@app.get("/health")
def health_check():
    """
    Simple health check endpoint for container orchestrators.

    Returns:
        dict: A basic JSON object indicating service availability.
    """
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
