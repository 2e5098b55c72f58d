"""
Modelli SQLAlchemy per Contratti e Prestazioni
Progetto: Energy Billing (Gestionale Contratti Energia)

Contiene:
- Activity: prestazione fatturabile (codice + etichetta)
- Contract: contratto con échéancier di fatturazione
- contract_activities: associazione contratto <-> prestazioni coperte
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING, List

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    String,
    Table,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.site import Site


contract_activities = Table(
    "contract_activities",
    Base.metadata,
    Column("contract_id", Uuid, ForeignKey("contracts.id", ondelete="CASCADE"), primary_key=True),
    Column("activity_id", Uuid, ForeignKey("activities.id", ondelete="RESTRICT"), primary_key=True),
)


class Activity(Base, UUIDMixin, TimestampMixin):
    """
    Prestazione fatturabile, referenziata dai contratti e dagli importi dei siti.

    Attributes:
        code: Codice univoco (es. P1, P2)
        label: Descrizione riportata in fattura
    """

    __tablename__ = "activities"

    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Activity(code={self.code}, label={self.label})>"


class Contract(Base, UUIDMixin, TimestampMixin):
    """
    Contratto di servizi energetici.

    Attributes:
        client_id: UUID del cliente
        billing_schedule: Annuel | Semestriel | Trimestriel | Mensuel | Variable
        start_date / end_date: Validità del contratto (end_date >= start_date)
        status: Actif | Suspendu | Terminé
        invoicing_type: multi-site | global
        monthly_billing: Échéancier Variable, lista di
            {"month": 1-12, "day": 1-31, "percentage": "8.33"}

    Relationships:
        sites: Siti collegati (Site.contract_id)
        activities: Prestazioni coperte

    Properties:
        site_ids / activity_ids: identificativi usati dagli snapshot dello scheduler
    """

    __tablename__ = "contracts"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID del cliente",
    )

    billing_schedule: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="Annuel",
        doc="Échéancier di fatturazione",
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Actif")

    invoicing_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="multi-site",
        doc="Righe per sito (multi-site) o per prestazione (global)",
    )

    monthly_billing: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Échéancier mensile per billing_schedule = Variable",
    )

    sites: Mapped[List["Site"]] = relationship(
        "Site",
        back_populates="contract",
        lazy="selectin",
    )

    activities: Mapped[List["Activity"]] = relationship(
        "Activity",
        secondary=contract_activities,
        lazy="selectin",
    )

    @property
    def site_ids(self) -> list[uuid.UUID]:
        return [site.id for site in self.sites]

    @property
    def activity_ids(self) -> list[uuid.UUID]:
        return [activity.id for activity in self.activities]

    __table_args__ = (
        Index("ix_contracts_client_id", "client_id"),
        Index("ix_contracts_status", "status"),
        CheckConstraint("end_date >= start_date", name="ck_contracts_dates"),
    )

    def __repr__(self) -> str:
        return (
            f"<Contract(id={self.id}, schedule={self.billing_schedule}, "
            f"{self.start_date}..{self.end_date})>"
        )
