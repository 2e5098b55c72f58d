"""
Modelli SQLAlchemy per i Siti
Progetto: Energy Billing (Gestionale Contratti Energia)

Contiene:
- Site: sito del cliente, collegato al più a un contratto
- SiteAmount: importo annuo HT di una prestazione sul sito
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.contract import Contract


class Site(Base, UUIDMixin, TimestampMixin):
    """
    Sito di un cliente.

    Attributes:
        client_id: UUID del cliente proprietario
        contract_id: UUID del contratto collegato (opzionale)
        name: Nome del sito, riportato nelle righe multi-site
        address: Indirizzo
        meter_reference: Riferimento contatore

    Relationships:
        amounts: Importi annui per prestazione
        contract: Contratto collegato
    """

    __tablename__ = "sites"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    contract_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("contracts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    meter_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    amounts: Mapped[List["SiteAmount"]] = relationship(
        "SiteAmount",
        back_populates="site",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    contract: Mapped[Optional["Contract"]] = relationship(
        "Contract",
        back_populates="sites",
        lazy="noload",
    )

    def __repr__(self) -> str:
        return f"<Site(id={self.id}, name={self.name})>"


class SiteAmount(Base, UUIDMixin):
    """Importo annuo HT fatturabile per una prestazione su un sito."""

    __tablename__ = "site_amounts"

    site_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    activity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("activities.id", ondelete="RESTRICT"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Importo annuo HT",
    )

    site: Mapped["Site"] = relationship("Site", back_populates="amounts")

    __table_args__ = (
        UniqueConstraint("site_id", "activity_id", name="uq_site_amounts_site_activity"),
        CheckConstraint("amount >= 0", name="ck_site_amounts_amount_positive"),
    )
