"""SQLAlchemy models for pushzone state.

This module defines the two key-value tables backing the stores:
- options: durable settings and progress records
- transients: short-lived records with an optional expiry (leases, caches)
"""

from __future__ import annotations

from sqlalchemy import Float, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


class Option(Base):
    """Durable key-value record."""

    __tablename__ = "options"

    key: Mapped[str] = mapped_column(String(191), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)


class Transient(Base):
    """Key-value record that stops existing once expires_at has passed."""

    __tablename__ = "transients"

    key: Mapped[str] = mapped_column(String(191), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    # Unix timestamp; NULL means no expiry
    expires_at: Mapped[float | None] = mapped_column(Float, nullable=True)

    __table_args__ = (Index("ix_transients_expires_at", "expires_at"),)
