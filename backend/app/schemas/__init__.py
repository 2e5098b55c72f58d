"""
Schemas Pydantic per il progetto Energy Billing

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
degli input degli engine e la serializzazione delle risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from app.schemas import ContractCreate, BillablePeriod, etc.

from app.schemas.client import ClientCreate, ClientRead, ClientType
from app.schemas.contract import (
    ActivityCreate,
    ActivityRead,
    BillingSchedule,
    ContractCreate,
    ContractRead,
    ContractStatus,
    InvoicingType,
    MonthlyBilling,
    SiteAmountBase,
    SiteCreate,
    SiteRead,
)
from app.schemas.billing import (
    ActivitySnapshot,
    BatchBillingFailure,
    BatchBillingItem,
    BatchBillingReport,
    BatchBillingRequest,
    BillablePeriod,
    ContractSnapshot,
    InvoiceSnapshot,
    SiteAmountSnapshot,
    SiteSnapshot,
)
from app.schemas.invoice import (
    CreateInvoiceFromPeriod,
    CreditNoteCreate,
    CreditNoteLineRead,
    CreditNoteRead,
    InvoiceLineBase,
    InvoiceLineRead,
    InvoiceRead,
    InvoiceStatus,
    InvoiceStatusUpdate,
    InvoiceTotals,
)
from app.schemas.index import (
    IndexCreate,
    IndexRead,
    IndexSnapshot,
    IndexType,
    IndexValueCreate,
    IndexValueRead,
    IndexValueSnapshot,
)

__all__ = [
    # Client schemas
    "ClientCreate",
    "ClientRead",
    "ClientType",
    # Contract schemas
    "ActivityCreate",
    "ActivityRead",
    "BillingSchedule",
    "ContractCreate",
    "ContractRead",
    "ContractStatus",
    "InvoicingType",
    "MonthlyBilling",
    "SiteAmountBase",
    "SiteCreate",
    "SiteRead",
    # Billing schemas
    "ActivitySnapshot",
    "BatchBillingFailure",
    "BatchBillingItem",
    "BatchBillingReport",
    "BatchBillingRequest",
    "BillablePeriod",
    "ContractSnapshot",
    "InvoiceSnapshot",
    "SiteAmountSnapshot",
    "SiteSnapshot",
    # Invoice schemas
    "CreateInvoiceFromPeriod",
    "CreditNoteCreate",
    "CreditNoteLineRead",
    "CreditNoteRead",
    "InvoiceLineBase",
    "InvoiceLineRead",
    "InvoiceRead",
    "InvoiceStatus",
    "InvoiceStatusUpdate",
    "InvoiceTotals",
    # Index schemas
    "IndexCreate",
    "IndexRead",
    "IndexSnapshot",
    "IndexType",
    "IndexValueCreate",
    "IndexValueRead",
    "IndexValueSnapshot",
]
