"""
config.py — Per-Request Configuration Resolution

Square credentials and environment may differ between deployments sharing one
process (e.g. multiple tenants), so settings are resolved for every request
instead of being read once at import time.

Each key is looked up in two sources:
    1. A runtime-scoped mapping attached to the app or the request
    2. The process environment (os.environ)
A key that is present in the runtime mapping wins, even when its value is empty.
"""

import math
import os
from typing import Mapping, Optional

from .logging_config import get_logger
from .models import GatewaySettings

ACCESS_TOKEN_KEY = "SQUARE_ACCESS_TOKEN"
LOCATION_ID_KEY = "SQUARE_LOCATION_ID"
ENVIRONMENT_KEY = "SQUARE_ENVIRONMENT"
APP_ID_KEYS = ("SQUARE_APP_ID", "PUBLIC_SQUARE_APP_ID")
TIMEOUT_KEY = "SQUARE_TIMEOUT_SECONDS"

log = get_logger(__name__)


def get_env(runtime_env: Optional[Mapping[str, Optional[str]]], key: str) -> Optional[str]:
    """
    Returns the value for `key`, preferring the runtime-scoped mapping.

    Args:
        runtime_env (Optional[Mapping]): Runtime-scoped values, may be None.
        key (str): Configuration key.

    Returns:
        Optional[str]: The configured value, or None if neither source has it.
    """
    if runtime_env is not None:
        value = runtime_env.get(key)
        if value is not None:
            return value
    return os.environ.get(key)


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None or not str(raw).strip():
        return None
    try:
        timeout = float(raw)
    except ValueError:
        log.warning(f"Ignoring invalid {TIMEOUT_KEY} value {raw!r}.")
        return None
    if not math.isfinite(timeout) or timeout <= 0:
        log.warning(f"Ignoring non-positive {TIMEOUT_KEY} value {raw!r}.")
        return None
    return timeout


def resolve_settings(runtime_env: Optional[Mapping[str, Optional[str]]] = None) -> GatewaySettings:
    """
    Builds the GatewaySettings for one request.

    The application ID is taken from SQUARE_APP_ID, falling back to
    PUBLIC_SQUARE_APP_ID when the former is missing or empty.
    """
    app_id = ""
    for key in APP_ID_KEYS:
        app_id = get_env(runtime_env, key) or ""
        if app_id:
            break

    return GatewaySettings(
        access_token=get_env(runtime_env, ACCESS_TOKEN_KEY) or None,
        location_id=get_env(runtime_env, LOCATION_ID_KEY) or None,
        environment=get_env(runtime_env, ENVIRONMENT_KEY) or "",
        app_id=app_id,
        timeout_seconds=_parse_timeout(get_env(runtime_env, TIMEOUT_KEY)),
    )
