"""
cart.py — Cart Normalization

Turns an untrusted, client-submitted cart into canonical line items.

Rules:
    • Lines without a non-blank string `catalog_object_id` are dropped.
    • Quantities that are not finite positive numbers become 1; others are floored.
    • Modifiers come from `modifiers` (structured entries) if that yields at least
      one valid entry, otherwise from `modifier_catalog_object_ids` (flat IDs,
      quantity 1 each). Repeated modifier IDs are merged, never duplicated.
    • Lines with the same catalog ID and the same sorted modifier list are merged
      and their quantities summed. Output keeps first-occurrence order.

No I/O happens here; the functions are safe to call with any JSON value.
"""

import math
from typing import Any, Dict, List, Optional, Tuple

from .logging_config import get_logger
from .models import IdentityKey, ModifierEntry, NormalizedLine

log = get_logger(__name__)


def coerce_quantity(raw: Any) -> int:
    """
    Converts an arbitrary JSON value into a positive integer quantity.

    Examples:
        "abc" -> 1, -5 -> 1, 0 -> 1, 3.7 -> 3, "2" -> 2, None -> 1
    """
    if isinstance(raw, bool):
        value = 1.0 if raw else 0.0
    elif isinstance(raw, (int, float)):
        try:
            value = float(raw)
        except OverflowError:
            return 1
    elif isinstance(raw, str):
        text = raw.strip()
        if "_" in text:
            return 1
        try:
            value = float(text) if text else 0.0
        except ValueError:
            return 1
    else:
        return 1

    if not math.isfinite(value) or value <= 0:
        return 1
    return max(math.floor(value), 1)


def _clean_id(raw: Any) -> str:
    return raw.strip() if isinstance(raw, str) else ""


def _structured_modifiers(raw_modifiers: Any) -> List[ModifierEntry]:
    if not isinstance(raw_modifiers, list):
        return []

    totals: Dict[str, int] = {}
    for entry in raw_modifiers:
        if not isinstance(entry, dict):
            continue
        modifier_id = _clean_id(entry.get("catalog_object_id"))
        if not modifier_id:
            continue
        totals[modifier_id] = totals.get(modifier_id, 0) + coerce_quantity(entry.get("quantity"))

    return [ModifierEntry(catalog_object_id=m_id, quantity=qty) for m_id, qty in sorted(totals.items())]


def _flat_modifiers(raw_ids: Any) -> List[ModifierEntry]:
    if not isinstance(raw_ids, list):
        return []
    unique_ids = {_clean_id(m_id) for m_id in raw_ids} - {""}
    return [ModifierEntry(catalog_object_id=m_id, quantity=1) for m_id in sorted(unique_ids)]


def extract_modifiers(raw_line: Dict[str, Any]) -> Tuple[ModifierEntry, ...]:
    """Returns the sorted, deduplicated modifiers of a raw cart line."""
    # Structured entries win only when at least one of them is valid.
    modifiers = _structured_modifiers(raw_line.get("modifiers"))
    if not modifiers:
        modifiers = _flat_modifiers(raw_line.get("modifier_catalog_object_ids"))
    return tuple(modifiers)


def parse_cart_line(raw_line: Any) -> Optional[NormalizedLine]:
    """
    Validates a single raw cart line.

    Args:
        raw_line (Any): One element of the submitted cart.

    Returns:
        Optional[NormalizedLine]: The parsed line, or None if the line is rejected.
    """
    if not isinstance(raw_line, dict):
        return None

    catalog_object_id = _clean_id(raw_line.get("catalog_object_id"))
    if not catalog_object_id:
        return None

    return NormalizedLine(
        catalog_object_id=catalog_object_id,
        modifiers=extract_modifiers(raw_line),
        quantity=coerce_quantity(raw_line.get("quantity")),
    )


def normalize_cart(raw_cart: Any) -> List[NormalizedLine]:
    """
    Normalizes a raw cart into deduplicated line items.

    Args:
        raw_cart (Any): The `cart` value from the request body. Anything other
            than a list is treated as an empty cart.

    Returns:
        List[NormalizedLine]: Grouped lines in first-insertion order. Empty if
        nothing valid was submitted; callers decide whether that is an error.
    """
    if not isinstance(raw_cart, list):
        return []

    grouped: Dict[IdentityKey, NormalizedLine] = {}
    rejected = 0
    for raw_line in raw_cart:
        line = parse_cart_line(raw_line)
        if line is None:
            rejected += 1
            continue

        existing = grouped.get(line.identity_key)
        if existing is None:
            grouped[line.identity_key] = line
        else:
            grouped[line.identity_key] = existing.model_copy(
                update={"quantity": existing.quantity + line.quantity}
            )

    if rejected:
        log.debug(f"Discarded {rejected} invalid cart line(s).")
    return list(grouped.values())
