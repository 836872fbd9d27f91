"""
Guide2Umrah Backend: Package & Service Models
===============================================

What:  ORM models for the two things the agency sells: Umrah packages and
       ancillary services (visa handling, transfers, ...).
How:   Both share `OfferingMixin` columns; Package adds a departure date and
       embedded destinations.
Who:   OfferingService for CRUD; Alembic for schema management.

Embedding:
    Photos and destinations belong to exactly one offering and are never
    queried on their own, so they live in JSON columns instead of child
    tables:

        photos:       ["https://cdn.../umrah-packages/<uuid>.jpg", ...]
        destinations: [{"city": "Makkah", "nights": 5, "hotel": "..."}, ...]

    A JSON column is replaced as a whole on update; callers always assign a
    new list, never mutate in place.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import JSON, DateTime, Index, Numeric, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from guide2umrah.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OfferingMixin:
    """Columns shared by every offering table."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Euro amount; asdecimal=False so the API emits a JSON number
    price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)

    photos: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Public image URLs, first one is the cover photo",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )


class Package(OfferingMixin, Base):
    """
    An Umrah travel package.

    `date` is display text chosen by the agency ("27/02 - 08/03"), not a
    parsed date range; the site shows it verbatim.
    """

    __tablename__ = "packages"

    date: Mapped[str] = mapped_column(String(100), nullable=False)

    destinations: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Embedded itinerary stops: city, nights, hotel",
    )

    __table_args__ = (
        Index("idx_packages_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Package(id={self.id}, name='{self.name}', date='{self.date}')>"


class Service(OfferingMixin, Base):
    """An ancillary offering, handled exactly like a Package minus date and itinerary."""

    __tablename__ = "services"

    __table_args__ = (
        Index("idx_services_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name='{self.name}')>"
