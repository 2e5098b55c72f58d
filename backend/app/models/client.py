"""
Modello SQLAlchemy per i Clienti
Progetto: Energy Billing (Gestionale Contratti Energia)
"""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin


class Client(Base, UUIDMixin, TimestampMixin):
    """
    Cliente titolare di contratti e siti.

    Attributes:
        name: Ragione sociale
        client_type: 'private' o 'public'
        address, postal_code, city: Indirizzo di fatturazione
    """

    __tablename__ = "clients"

    name: Mapped[str] = mapped_column(String(255), nullable=False, doc="Ragione sociale")

    client_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="private",
        doc="Tipo cliente: 'private' o 'public'",
    )

    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name})>"
