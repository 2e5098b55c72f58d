"""
Modelli SQLAlchemy per la Fatturazione
Progetto: Energy Billing (Gestionale Contratti Energia)

Contiene:
- Invoice: Fattura di contratto per un periodo
- InvoiceLine: Righe della fattura
- CreditNote: Avoir su una o più fatture dello stesso cliente
- CreditNoteLine: Righe dell'avoir (importi negativi)
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin


credit_note_invoices = Table(
    "credit_note_invoices",
    Base.metadata,
    Column("credit_note_id", Uuid, ForeignKey("credit_notes.id", ondelete="CASCADE"), primary_key=True),
    Column("invoice_id", Uuid, ForeignKey("invoices.id", ondelete="RESTRICT"), primary_key=True),
)


class Invoice(Base, UUIDMixin, TimestampMixin):
    """
    Modello per le fatture di contratto.

    Una fattura materializza un periodo fatturabile calcolato dallo scheduler.

    Attributes:
        contract_id: UUID del contratto
        client_id: UUID del cliente (denormalizzato)
        invoice_number: Numero progressivo annuale (FAC-YYYY-NNNN), None per le proforma
        invoice_date / due_date: Data emissione e scadenza
        period_start_date / period_end_date: Periodo fatturato (inclusivo)
        status: proforma | due | paid | overdue | finalized
        subtotal / tax / total: Importi HT, TVA, TTC
        billing_key: Chiave di idempotenza "{contract_id}:{period_start}",
            valorizzata solo per le fatture non proforma (unique)

    Relationships:
        lines: Righe della fattura
    """

    __tablename__ = "invoices"

    contract_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("contracts.id", ondelete="RESTRICT"),
        nullable=False,
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
    )

    invoice_number: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        unique=True,
        doc="Numero fattura progressivo annuale (formato: FAC-YYYY-NNNN)",
    )

    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    period_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    period_end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="due")

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    billing_key: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        unique=True,
        doc="Chiave di idempotenza contratto+inizio periodo (solo fatture non proforma)",
    )

    lines: Mapped[List["InvoiceLine"]] = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceLine.line_number",
    )

    __table_args__ = (
        Index("ix_invoices_contract_id", "contract_id"),
        Index("ix_invoices_client_id", "client_id"),
        Index("ix_invoices_contract_period_end", "contract_id", "period_end_date"),
        CheckConstraint("subtotal >= 0", name="ck_invoices_subtotal_positive"),
        CheckConstraint("total >= 0", name="ck_invoices_total_positive"),
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, number={self.invoice_number}, total={self.total})>"


class InvoiceLine(Base, UUIDMixin, TimestampMixin):
    """Riga della fattura: una prestazione (per sito o aggregata) nel periodo."""

    __tablename__ = "invoice_lines"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("1"))
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    site_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    activity_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="lines")


class CreditNote(Base, UUIDMixin, TimestampMixin):
    """
    Avoir: storno delle righe di una o più fatture dello stesso cliente.

    Attributes:
        credit_note_number: Numero progressivo (AV-YYYY-NNNN)
        client_id / contract_id: Cliente e contratto della prima fattura stornata
        reason: Motivo dell'avoir
        status: Sempre 'finalized' alla creazione
        subtotal / tax / total: Importi negativi
    """

    __tablename__ = "credit_notes"

    credit_note_number: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)

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
    )

    credit_note_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="finalized")

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    lines: Mapped[List["CreditNoteLine"]] = relationship(
        "CreditNoteLine",
        back_populates="credit_note",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CreditNoteLine.line_number",
    )

    invoices: Mapped[List["Invoice"]] = relationship(
        "Invoice",
        secondary=credit_note_invoices,
        lazy="selectin",
    )

    @property
    def original_invoice_ids(self) -> list[uuid.UUID]:
        return [invoice.id for invoice in self.invoices]

    def __repr__(self) -> str:
        return f"<CreditNote(number={self.credit_note_number}, total={self.total})>"


class CreditNoteLine(Base, UUIDMixin, TimestampMixin):
    """Riga dell'avoir (prezzo e totale negativi)."""

    __tablename__ = "credit_note_lines"

    credit_note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("credit_notes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("1"))
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    site_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    activity_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    credit_note: Mapped["CreditNote"] = relationship("CreditNote", back_populates="lines")
