"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, cartctl.toml only contains overrides.
An empty file (or none at all) is a valid configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- cartctl.toml sections ---


class StorageConfig(BaseModel):
    """[storage] section."""

    model_config = {"frozen": True}

    db_name: str = "cart.db"


class CatalogConfig(BaseModel):
    """[catalog] section."""

    model_config = {"frozen": True}

    path: str = "discounts.toml"


class PricingConfig(BaseModel):
    """[pricing] section."""

    model_config = {"frozen": True}

    currency_places: int = Field(default=2, ge=0, le=6)


class CouponConfig(BaseModel):
    """[coupon] section."""

    model_config = {"frozen": True}

    validation_timeout: float = Field(default=10.0, gt=0)
