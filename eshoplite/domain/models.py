"""
Domain models for the eShopLite storefront.

Defines the read-only records served by the Products and StoreInfo backends.
Field names are matched case-insensitively on decode, so `Name`, `name` and
`NAME` all populate the same field.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

from pydantic import BaseModel, Field, model_validator


class Resource(BaseModel):
    """
    Base for flat, immutable records addressable by integer id.
    """

    id: int = Field(..., description="Primary key.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "extra": "ignore",
    }

    @classmethod
    def _wire_names(cls) -> Dict[str, str]:
        names: Dict[str, str] = {}
        for field_name, info in cls.model_fields.items():
            wire = info.alias or field_name
            names[field_name.lower()] = wire
            names[wire.lower()] = wire
        return names

    @model_validator(mode="before")
    @classmethod
    def _fold_case(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        wire_names = cls._wire_names()
        folded: Dict[str, Any] = {}
        for key, value in data.items():
            canonical = wire_names.get(key.lower(), key) if isinstance(key, str) else key
            # An exact-case key wins over a differently-cased duplicate.
            if canonical in folded and key != canonical:
                continue
            folded[canonical] = value
        return folded


class Product(Resource):
    """
    A product listed by the Products service.
    """

    name: str = Field("", description="Display name.")
    description: str = Field("", description="Marketing description.")
    price: Decimal = Field(Decimal("0"), description="Unit price.")
    image_url: str = Field("", alias="imageUrl", description="Relative image path.")


class StoreInfo(Resource):
    """
    A physical store listed by the StoreInfo service.
    """

    name: str = Field("", description="Store name.")
    city: str = Field("", description="City the store is located in.")
    state: str = Field("", description="State code.")
    hours: str = Field("", description="Opening hours, free text.")


__all__ = ["Product", "Resource", "StoreInfo"]
