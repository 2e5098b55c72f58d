"""
Modelli SQLAlchemy per gli Indici
Progetto: Energy Billing (Gestionale Contratti Energia)

Contiene:
- Index: indice standard (valori manuali) o calcolato (formula)
- IndexValue: valore mensile di un indice standard

I valori degli indici calcolati non vengono mai salvati: sono ricalcolati
a ogni lettura da app.engines.index_evaluator.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin


class Index(Base, UUIDMixin, TimestampMixin):
    """
    Indice economico (es. PEG, TCFM).

    Attributes:
        code: Codice univoco usato nelle formule
        label / unit / description: Dati descrittivi
        type: 'standard' o 'calculated'
        formula: Espressione aritmetica sui codici di altri indici (solo calculated)
        decimals: Decimali di arrotondamento dei valori calcolati (None = default 4)
    """

    __tablename__ = "indices"

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="standard")
    formula: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    decimals: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    values: Mapped[List["IndexValue"]] = relationship(
        "IndexValue",
        back_populates="index",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    def __repr__(self) -> str:
        return f"<Index(code={self.code}, type={self.type})>"


class IndexValue(Base, UUIDMixin, TimestampMixin):
    """
    Valore di un indice standard per un mese.

    Il periodo "YYYY-MM" si ordina cronologicamente come stringa.
    """

    __tablename__ = "index_values"

    index_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("indices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    period: Mapped[str] = mapped_column(String(7), nullable=False, doc="Periodo YYYY-MM")
    value: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    source: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    index: Mapped["Index"] = relationship("Index", back_populates="values")

    __table_args__ = (
        UniqueConstraint("index_id", "period", name="uq_index_values_index_period"),
    )
