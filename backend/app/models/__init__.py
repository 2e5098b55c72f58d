"""
Modelli Database SQLAlchemy
Progetto: Energy Billing (Gestionale Contratti Energia)

Import centralizzato di tutti i modelli per Alembic e usage generico.

Modelli:
- Client: Anagrafica clienti
- Activity: Prestazioni fatturabili
- Contract: Contratti con échéancier di fatturazione
- Site / SiteAmount: Siti e importi annui per prestazione
- Invoice / InvoiceLine: Fatture di periodo
- CreditNote / CreditNoteLine: Avoirs
- Index / IndexValue: Indici e valori mensili
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from app.models.client import Client
from app.models.contract import Activity, Contract, contract_activities
from app.models.site import Site, SiteAmount
from app.models.invoice import Invoice, InvoiceLine, CreditNote, CreditNoteLine, credit_note_invoices
from app.models.index import Index, IndexValue

__all__ = [
    "Base",
    "Client",
    "Activity",
    "Contract",
    "contract_activities",
    "Site",
    "SiteAmount",
    "Invoice",
    "InvoiceLine",
    "CreditNote",
    "CreditNoteLine",
    "credit_note_invoices",
    "Index",
    "IndexValue",
]
