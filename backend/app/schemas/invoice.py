"""
Schemas Pydantic per Fatture e Avoirs
Progetto: Energy Billing (Gestionale Contratti Energia)

Contiene:
- Enum InvoiceStatus e tabella delle transizioni consentite
- Schemas per le righe (fattura e avoir condividono la stessa forma)
- Schemas per Invoice e CreditNote
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class InvoiceStatus(str, Enum):
    """Stato della fattura."""
    PROFORMA = "proforma"
    DUE = "due"
    PAID = "paid"
    OVERDUE = "overdue"
    FINALIZED = "finalized"


# Una fattura finalizzata resta immutabile: cambia solo lo stato.
ALLOWED_STATUS_TRANSITIONS: dict[InvoiceStatus, set[InvoiceStatus]] = {
    InvoiceStatus.PROFORMA: {InvoiceStatus.DUE},
    InvoiceStatus.DUE: {InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.FINALIZED},
    InvoiceStatus.OVERDUE: {InvoiceStatus.PAID, InvoiceStatus.FINALIZED},
    InvoiceStatus.PAID: {InvoiceStatus.FINALIZED},
    InvoiceStatus.FINALIZED: {InvoiceStatus.PAID, InvoiceStatus.OVERDUE},
}


def can_transition(current: str, new: str) -> bool:
    """True se il passaggio di stato current -> new è consentito."""
    try:
        current_status = InvoiceStatus(current)
        new_status = InvoiceStatus(new)
    except ValueError:
        return False
    return new_status in ALLOWED_STATUS_TRANSITIONS[current_status]


# -------------------------------------------------------------------
# Schemas per le righe
# -------------------------------------------------------------------

class InvoiceLineBase(BaseModel):
    """Riga di fattura o di avoir."""

    description: str = Field(..., min_length=1, description="Descrizione della riga")
    quantity: Decimal = Field(default=Decimal("1"), description="Quantità")
    unit_price: Decimal = Field(..., description="Prezzo unitario HT", serialization_alias="unitPrice")
    total: Decimal = Field(..., description="Totale riga HT")
    site_id: Optional[uuid.UUID | str] = Field(None, serialization_alias="siteId")
    activity_code: Optional[str] = Field(None, serialization_alias="activityCode")

    model_config = ConfigDict(from_attributes=True)


class InvoiceLineRead(InvoiceLineBase):
    """Riga di fattura persistita."""

    id: uuid.UUID
    line_number: int = Field(..., serialization_alias="lineNumber")


class InvoiceTotals(BaseModel):
    """Totali calcolati da un insieme di righe."""

    subtotal: Decimal
    tax: Decimal
    total: Decimal


# -------------------------------------------------------------------
# Schemas per Invoice
# -------------------------------------------------------------------

class CreateInvoiceFromPeriod(BaseModel):
    """Richiesta di generazione fattura per un periodo fatturabile."""

    contract_id: uuid.UUID = Field(..., description="UUID del contratto")
    period_start: date = Field(..., description="Inizio del periodo da fatturare")
    invoice_date: Optional[date] = Field(None, description="Data fattura (default: oggi)")
    is_proforma: bool = Field(default=False, description="Genera una proforma")


class InvoiceStatusUpdate(BaseModel):
    """Cambio di stato di una fattura."""

    status: InvoiceStatus


class InvoiceRead(BaseModel):
    """Schema per la lettura di una fattura."""

    id: uuid.UUID
    invoice_number: Optional[str] = Field(None, serialization_alias="invoiceNumber")
    contract_id: uuid.UUID = Field(..., serialization_alias="contractId")
    client_id: uuid.UUID = Field(..., serialization_alias="clientId")
    invoice_date: date = Field(..., serialization_alias="date")
    due_date: date = Field(..., serialization_alias="dueDate")
    period_start_date: Optional[date] = Field(None, serialization_alias="periodStartDate")
    period_end_date: Optional[date] = Field(None, serialization_alias="periodEndDate")
    status: InvoiceStatus
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    lines: list[InvoiceLineRead] = Field(default_factory=list, serialization_alias="lineItems")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def is_proforma(self) -> bool:
        return self.status == InvoiceStatus.PROFORMA


# -------------------------------------------------------------------
# Schemas per CreditNote
# -------------------------------------------------------------------

class CreditNoteCreate(BaseModel):
    """Richiesta di avoir su una o più fatture dello stesso cliente."""

    invoice_ids: list[uuid.UUID] = Field(..., description="Fatture da stornare")
    reason: str = Field(..., description="Motivo dell'avoir")
    credit_note_date: Optional[date] = Field(None, description="Data avoir (default: oggi)")

    @field_validator("invoice_ids")
    @classmethod
    def validate_invoice_ids(cls, v: list[uuid.UUID]) -> list[uuid.UUID]:
        if not v:
            raise ValueError("Nessuna fattura indicata")
        return list(dict.fromkeys(v))

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Un motivo è obbligatorio per generare un avoir")
        return v


class CreditNoteLineRead(InvoiceLineBase):
    """Riga di avoir persistita."""

    id: uuid.UUID
    line_number: int = Field(..., serialization_alias="lineNumber")


class CreditNoteRead(BaseModel):
    """Schema per la lettura di un avoir."""

    id: uuid.UUID
    credit_note_number: str = Field(..., serialization_alias="creditNoteNumber")
    client_id: uuid.UUID = Field(..., serialization_alias="clientId")
    contract_id: Optional[uuid.UUID] = Field(None, serialization_alias="contractId")
    credit_note_date: date = Field(..., serialization_alias="date")
    original_invoice_ids: list[uuid.UUID] = Field(
        default_factory=list,
        serialization_alias="originalInvoiceIds",
    )
    reason: str
    status: str
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    lines: list[CreditNoteLineRead] = Field(default_factory=list, serialization_alias="lineItems")

    model_config = ConfigDict(from_attributes=True)
