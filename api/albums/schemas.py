"""
Album request/response models.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class Album(BaseModel):
    id: str = Field(..., min_length=1, max_length=200)
    title: str = Field(..., min_length=1, max_length=500)
    artist: str = Field(default="", max_length=500)
    # Accepts 56.99 or "56.99"; kept as Decimal so the store and responses see the exact digits.
    price: Decimal | None = None
