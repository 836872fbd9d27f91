"""Initial schema: users, packages, services, email_subscriptions

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the four tables of the Guide2Umrah backend.
How:   Photos and destinations are JSON columns; ids are UUIDs generated by
       the application, so no database extension is needed.

Rollback: downgrade() drops every table (destructive, all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, comment: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
        comment=comment,
    )


def _offering_columns() -> list:
    """Columns shared by packages and services (see OfferingMixin)."""
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, comment="Price in euro"),
        sa.Column(
            "photos",
            sa.JSON(),
            nullable=False,
            comment="Public image URLs, first one is the cover photo",
        ),
        _timestamp("created_at", "When the offering was added (UTC)"),
        _timestamp("updated_at", "Last edit (UTC)"),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, comment="Login email, lowercased"),
        sa.Column("password_hash", sa.String(255), nullable=False),
        _timestamp("created_at", "When the account was created (UTC)"),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "packages",
        *_offering_columns(),
        sa.Column("date", sa.String(100), nullable=False, comment="Travel dates as display text"),
        sa.Column(
            "destinations",
            sa.JSON(),
            nullable=False,
            comment="Embedded itinerary stops: city, nights, hotel",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_packages"),
    )
    op.create_index("idx_packages_created_at", "packages", ["created_at"])

    op.create_table(
        "services",
        *_offering_columns(),
        sa.PrimaryKeyConstraint("id", name="pk_services"),
    )
    op.create_index("idx_services_created_at", "services", ["created_at"])

    op.create_table(
        "email_subscriptions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        _timestamp("subscription_date", "When the address was added (UTC)"),
        sa.PrimaryKeyConstraint("id", name="pk_email_subscriptions"),
        sa.UniqueConstraint("email", name="uq_email_subscriptions_email"),
    )


def downgrade() -> None:
    op.drop_table("email_subscriptions")
    op.drop_index("idx_services_created_at", table_name="services")
    op.drop_table("services")
    op.drop_index("idx_packages_created_at", table_name="packages")
    op.drop_table("packages")
    op.drop_table("users")
