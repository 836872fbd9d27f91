"""
Guide2Umrah Backend: Package & Service Schemas
================================================

What:  Pydantic models for the offering endpoints.
How:   `*Fields` models validate the multipart form values of create/update
       requests; `*Response` models serialize rows back to clients.

Form values arrive as strings, so the input models accept the shapes the
dashboard sends:
    price:         "2299", "2299,-", "1.399,-", "1.399,50", "€ 1399.50"
    destinations:  JSON text '[{"city": "Makkah", "nights": 5}]' or empty
"""

import json
import math
import re
import uuid
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

_PRICE_NOISE = re.compile(r"[€\s]")
_DOTTED_THOUSANDS = re.compile(r"\d{1,3}(\.\d{3})+")

# Largest amount a NUMERIC(10, 2) column holds
MAX_PRICE = 99_999_999.99


def parse_price(value: Any) -> float:
    """
    Turns a Dutch/English formatted price into a float.

    "1.399" and "12.500,-" are read as thousands; "1399.50" as decimals.
    Raises ValueError for anything that is not a finite amount between
    0 and MAX_PRICE.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        amount = float(value)
    else:
        text = _PRICE_NOISE.sub("", str(value or ""))
        if text.endswith((",-", ".-")):
            text = text[:-2]
        if "," in text and "." in text:
            # 1.399,50 → thousands separator is the dot
            text = text.replace(".", "").replace(",", ".")
        elif _DOTTED_THOUSANDS.fullmatch(text):
            text = text.replace(".", "")
        else:
            text = text.replace(",", ".")
        if not text:
            raise ValueError("Prijs is vereist.")
        try:
            amount = float(text)
        except ValueError:
            raise ValueError(f"Ongeldige prijs: '{value}'.")

    if not math.isfinite(amount) or amount < 0:
        raise ValueError("Prijs moet een positief bedrag zijn.")
    if amount > MAX_PRICE:
        raise ValueError("Prijs is te hoog.")
    return round(amount, 2)


class Destination(BaseModel):
    """One stop of a package itinerary (embedded, no identity of its own)."""
    city: str = Field(min_length=1, max_length=100, description="e.g. Makkah, Madinah")
    nights: int = Field(ge=1, le=60, description="Nights spent in this city")
    hotel: Optional[str] = Field(default=None, max_length=200)

    @field_validator("city", mode="before")
    @classmethod
    def strip_city(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("hotel", mode="before")
    @classmethod
    def blank_hotel_is_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or None
        return v


# ══════════════════════════════════════════════════════════════════════════
# Input Models: validated form values
# ══════════════════════════════════════════════════════════════════════════


class ServiceFields(BaseModel):
    """Text fields of a Service create/update request."""
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    price: float

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_required_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> float:
        return parse_price(v)


class PackageFields(ServiceFields):
    """Text fields of a Package create/update request."""
    date: str = Field(min_length=1, max_length=100)
    destinations: List[Destination] = Field(default_factory=list)

    @field_validator("date", mode="before")
    @classmethod
    def strip_date(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("destinations", mode="before")
    @classmethod
    def decode_destinations(cls, v: Any) -> Any:
        """The dashboard posts destinations as a JSON string inside the form."""
        if v is None:
            return []
        if isinstance(v, str):
            if not v.strip():
                return []
            try:
                v = json.loads(v)
            except json.JSONDecodeError:
                raise ValueError("Bestemmingen moeten een JSON-lijst zijn.")
        if not isinstance(v, list):
            raise ValueError("Bestemmingen moeten een JSON-lijst zijn.")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ServiceResponse(BaseModel):
    """Full representation of a Service."""
    id: uuid.UUID
    name: str
    description: str
    price: float = Field(description="Price in euro")
    photos: List[str] = Field(description="Public image URLs; the first is the cover")
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PackageResponse(ServiceResponse):
    """Full representation of a Package, including its itinerary."""
    date: str = Field(description="Departure/return text as shown on the site")
    destinations: List[Destination] = Field(default_factory=list)


class OfferingCreatedResponse(BaseModel):
    """
    Returned by POST /api/packages and POST /api/services with HTTP 201.

    `url` is the cover photo, kept for clients of the single-photo API.
    """
    message: str
    id: uuid.UUID
    url: str
    urls: List[str]
