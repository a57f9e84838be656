"""
==============================================================================
SQLAlchemy ORM Models Module
==============================================================================

ORM models backing the two narrow collaborators of the scanning engine
(access lookup and scan recording).

This module defines:
- ExhibitionStatus: Enum for exhibition lifecycle
- Exhibition: An event hosting exhibitors
- Exhibitor: A booth with a secure scanner link
- ScanRecord: One recorded successful scan

Database Schema:
---------------

    ┌─────────────────────────────────────────────────────────────────┐
    │                          exhibitions                             │
    ├─────────────────────────────────────────────────────────────────┤
    │ id (VARCHAR, PK)                                                │
    │ name, description, location                                     │
    │ start_date, end_date (DATE)                                     │
    │ status (ENUM: draft, active, completed)                         │
    └─────────────────────────────────────────────────────────────────┘
                                    │ 1:N (CASCADE DELETE)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────┐
    │                          exhibitors                              │
    ├─────────────────────────────────────────────────────────────────┤
    │ id (VARCHAR, PK)                                                │
    │ exhibition_id (FK → exhibitions.id)                             │
    │ name, company, email, phone_number                              │
    │ secure_token (VARCHAR, UNIQUE)                                  │
    │ is_active (BOOLEAN)                                             │
    └─────────────────────────────────────────────────────────────────┘
                                    │ 1:N (CASCADE DELETE)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────┐
    │                         scan_records                             │
    ├─────────────────────────────────────────────────────────────────┤
    │ id (VARCHAR, PK)                                                │
    │ exhibitor_id (FK → exhibitors.id)                               │
    │ exhibition_id (FK → exhibitions.id)                             │
    │ payload (TEXT, raw decoded string)                              │
    │ scanned_at (DATETIME)                                           │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from __future__ import annotations

import enum
import secrets
import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, relationship

from expo_scanner.db.database import Base


def generate_secure_token() -> str:
    """Generate an unguessable scanner link token."""
    return f"token-{secrets.token_urlsafe(24)}"


# =============================================================================
# ENUMS
# =============================================================================

class ExhibitionStatus(str, enum.Enum):
    """Exhibition lifecycle: draft, active, completed."""

    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# EXHIBITION MODEL
# =============================================================================

class Exhibition(Base):
    """An exhibition event hosting many exhibitors."""

    __tablename__ = "exhibitions"

    id: str = Column(
        String(64),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    name: str = Column(String(200), nullable=False)

    description: Optional[str] = Column(Text, nullable=True)

    location: str = Column(String(200), nullable=False, default="")

    start_date: Optional[date] = Column(Date, nullable=True)

    end_date: Optional[date] = Column(Date, nullable=True)

    status: ExhibitionStatus = Column(
        Enum(ExhibitionStatus),
        default=ExhibitionStatus.DRAFT,
        nullable=False,
    )

    created_at: datetime = Column(DateTime, default=func.now(), nullable=False)

    updated_at: datetime = Column(
        DateTime,
        default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    exhibitors: Mapped[List["Exhibitor"]] = relationship(
        "Exhibitor",
        back_populates="exhibition",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"Exhibition(id={self.id!r}, name={self.name!r}, status={self.status!r})"


# =============================================================================
# EXHIBITOR MODEL
# =============================================================================

class Exhibitor(Base):
    """
    Exhibitor booth with a secure scanner link.

    The scanner link carries the exhibitor id as a path segment and the
    secure token as the ``token`` query parameter. ``is_active`` is toggled
    by the management layer; the scanner only reads it.

    Attributes:
        id: Exhibitor identity (path segment of the scanner link)
        exhibition_id: Owning exhibition
        name: Contact name
        company: Company shown in the scanner header
        email: Contact email
        phone_number: Optional contact phone
        secure_token: Token required by the scanner link
        is_active: Scanner link enabled
    """

    __tablename__ = "exhibitors"

    # =========================================================================
    # COLUMNS
    # =========================================================================

    id: str = Column(
        String(64),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        doc="Exhibitor identity"
    )

    exhibition_id: str = Column(
        String(64),
        ForeignKey("exhibitions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: str = Column(String(200), nullable=False)

    company: str = Column(String(200), nullable=False, default="")

    email: str = Column(String(200), nullable=False, default="")

    phone_number: Optional[str] = Column(String(50), nullable=True)

    secure_token: str = Column(
        String(128),
        unique=True,
        nullable=False,
        default=generate_secure_token,
        doc="Token carried by the scanner link"
    )

    is_active: bool = Column(
        Boolean,
        default=True,
        nullable=False,
        doc="Scanner link enabled"
    )

    created_at: datetime = Column(DateTime, default=func.now(), nullable=False)

    updated_at: datetime = Column(
        DateTime,
        default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # =========================================================================
    # RELATIONSHIPS
    # =========================================================================

    exhibition: Mapped["Exhibition"] = relationship(
        "Exhibition",
        back_populates="exhibitors",
    )

    scans: Mapped[List["ScanRecord"]] = relationship(
        "ScanRecord",
        back_populates="exhibitor",
        cascade="all, delete-orphan",
    )

    # =========================================================================
    # METHODS
    # =========================================================================

    def scanner_url(self, base_url: str) -> str:
        """Build the scanner link handed to the exhibitor."""
        return f"{base_url.rstrip('/')}/scanner/{self.id}?token={self.secure_token}"

    def __repr__(self) -> str:
        return (
            f"Exhibitor(id={self.id!r}, "
            f"company={self.company!r}, "
            f"is_active={self.is_active})"
        )


# =============================================================================
# SCAN RECORD MODEL
# =============================================================================

class ScanRecord(Base):
    """A successful scan recorded for an exhibitor. Payload is stored verbatim."""

    __tablename__ = "scan_records"

    id: str = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    exhibitor_id: str = Column(
        String(64),
        ForeignKey("exhibitors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    exhibition_id: str = Column(
        String(64),
        ForeignKey("exhibitions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    payload: str = Column(Text, nullable=False)

    scanned_at: datetime = Column(DateTime, default=func.now(), nullable=False)

    exhibitor: Mapped["Exhibitor"] = relationship(
        "Exhibitor",
        back_populates="scans",
    )

    def __repr__(self) -> str:
        return f"ScanRecord(id={self.id!r}, exhibitor_id={self.exhibitor_id!r})"
