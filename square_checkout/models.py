"""
models.py — Data Models for Cart Normalization and Gateway Configuration

This module defines the typed records that flow between the normalizer,
the gateway client and the orchestration workflow. All models are frozen:
they are built once per request and never mutated afterwards.

Models:
    - ModifierEntry: A single modifier selection with its quantity.
    - NormalizedLine: A deduplicated, quantity-aggregated cart line.
    - GatewaySettings: Per-request configuration for the Square API client.
"""

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

IdentityKey = Tuple[str, Tuple[Tuple[str, int], ...]]


class ModifierEntry(BaseModel):
    """
    Represents one modifier attached to a cart line.

    Attributes:
        catalog_object_id (str): Catalog ID of the modifier.
        quantity (int): How many times the modifier applies. Always >= 1.
    """
    model_config = ConfigDict(frozen=True)

    catalog_object_id: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)


class NormalizedLine(BaseModel):
    """
    Represents a canonical cart line after normalization.

    Two raw cart lines collapse into one NormalizedLine when they share the
    same catalog ID and the same sorted modifier list (see `identity_key`).

    Attributes:
        catalog_object_id (str): Catalog ID of the sellable item.
        modifiers (Tuple[ModifierEntry, ...]): Modifiers sorted by catalog ID,
            one entry per modifier ID.
        quantity (int): Total quantity across all merged raw lines. Always >= 1.
    """
    model_config = ConfigDict(frozen=True)

    catalog_object_id: str = Field(..., min_length=1)
    modifiers: Tuple[ModifierEntry, ...] = ()
    quantity: int = Field(1, ge=1)

    @property
    def identity_key(self) -> IdentityKey:
        return line_identity(self.catalog_object_id, self.modifiers)

    def to_line_item(self) -> dict:
        """Renders the line in the shape Square expects inside `order.line_items`."""
        line_item = {
            "catalog_object_id": self.catalog_object_id,
            "quantity": str(self.quantity),
        }
        if self.modifiers:
            line_item["modifiers"] = [
                {"catalog_object_id": m.catalog_object_id, "quantity": str(m.quantity)}
                for m in self.modifiers
            ]
        return line_item

    def to_cart_line(self) -> dict:
        """Renders the line back into the inbound cart wire format."""
        cart_line = {"catalog_object_id": self.catalog_object_id, "quantity": self.quantity}
        if self.modifiers:
            cart_line["modifiers"] = [
                {"catalog_object_id": m.catalog_object_id, "quantity": m.quantity}
                for m in self.modifiers
            ]
        return cart_line


def line_identity(catalog_object_id: str, modifiers) -> IdentityKey:
    """Builds the grouping key for a line from its catalog ID and sorted modifiers."""
    return catalog_object_id, tuple((m.catalog_object_id, m.quantity) for m in modifiers)


class GatewaySettings(BaseModel):
    """
    Configuration for one request's Square API calls.

    Attributes:
        access_token (Optional[str]): Bearer credential. Missing or empty means
            every gateway call fails before touching the network.
        location_id (Optional[str]): Location override. When set, no location
            lookup is performed.
        environment (str): Explicit environment flag ("production" or anything else).
        app_id (str): Square application ID, used to infer the environment.
        timeout_seconds (Optional[float]): Overall timeout for outbound calls.
            None keeps the default connect/read timeouts.
    """
    model_config = ConfigDict(frozen=True)

    access_token: Optional[str] = None
    location_id: Optional[str] = None
    environment: str = ""
    app_id: str = ""
    timeout_seconds: Optional[float] = Field(None, gt=0)
