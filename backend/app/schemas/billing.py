"""
Schemas Pydantic per la Fatturazione di Contratto
Progetto: Energy Billing (Gestionale Contratti Energia)

Contiene:
- Snapshot immutabili in input agli engine (contratto, siti, fatture, prestazioni)
- BillablePeriod: periodo fatturabile calcolato dallo scheduler
- Richieste e report della fatturazione batch

Gli snapshot accettano sia dizionari sia oggetti ORM (from_attributes=True);
billing_schedule è una stringa libera: un valore sconosciuto ricade sulla
semantica annuale invece di invalidare il contratto.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from app.schemas.contract import MonthlyBilling

EntityId = Union[uuid.UUID, str]


# -------------------------------------------------------------------
# Snapshot in input
# -------------------------------------------------------------------

class SiteAmountSnapshot(BaseModel):
    """Coppia (prestazione, importo annuo HT) di un sito."""

    activity_id: EntityId
    amount: Decimal

    model_config = ConfigDict(from_attributes=True, frozen=True)


class SiteSnapshot(BaseModel):
    """Sito con i suoi importi annui per prestazione."""

    id: EntityId
    name: str = ""
    contract_id: Optional[EntityId] = None
    amounts: list[SiteAmountSnapshot] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True, frozen=True)


class ActivitySnapshot(BaseModel):
    """Prestazione fatturabile (codice + etichetta)."""

    id: EntityId
    code: str
    label: str

    model_config = ConfigDict(from_attributes=True, frozen=True)


class ContractSnapshot(BaseModel):
    """Dati del contratto necessari allo scheduler."""

    id: EntityId
    client_id: Optional[EntityId] = None
    site_ids: list[EntityId] = Field(default_factory=list)
    activity_ids: list[EntityId] = Field(default_factory=list)
    billing_schedule: str = "Annuel"
    start_date: date
    end_date: date
    status: str = "Actif"
    invoicing_type: str = "multi-site"
    monthly_billing: list[MonthlyBilling] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True, frozen=True)


class InvoiceSnapshot(BaseModel):
    """Fattura già emessa, ridotta ai campi che determinano il prossimo periodo."""

    contract_id: EntityId
    period_end_date: Optional[date] = None
    status: str = "due"

    model_config = ConfigDict(from_attributes=True, frozen=True)


# -------------------------------------------------------------------
# Output dello scheduler
# -------------------------------------------------------------------

class BillablePeriod(BaseModel):
    """
    Periodo fatturabile non ancora fatturato.

    Non è persistito: si materializza in una fattura. La coppia
    (contract_id, period_start) è la chiave di idempotenza.
    """

    contract_id: EntityId
    period_start: date = Field(..., serialization_alias="periodStart")
    period_end: date = Field(..., serialization_alias="periodEnd")
    billing_schedule: str = Field(..., serialization_alias="billingSchedule")
    billing_factor: Decimal = Field(..., serialization_alias="billingFactor")
    amount: Decimal = Field(..., description="Importo HT del periodo")
    billing_day: Optional[int] = Field(
        None,
        serialization_alias="billingDay",
        description="Giorno di emissione (solo échéancier Variable)",
    )

    model_config = ConfigDict(frozen=True)

    @computed_field
    @property
    def billing_key(self) -> str:
        """Chiave di idempotenza del periodo: '{contract_id}:{period_start}'."""
        return build_billing_key(self.contract_id, self.period_start)


def build_billing_key(contract_id: EntityId, period_start: date) -> str:
    return f"{contract_id}:{period_start.isoformat()}"


# -------------------------------------------------------------------
# Fatturazione batch
# -------------------------------------------------------------------

class BatchBillingItem(BaseModel):
    """Periodo selezionato per la generazione della fattura."""

    contract_id: uuid.UUID
    period_start: date


class BatchBillingRequest(BaseModel):
    """Richiesta di fatturazione batch."""

    items: list[BatchBillingItem] = Field(..., min_length=1)
    invoice_date: Optional[date] = Field(None, description="Data fattura (default: oggi)")


class BatchBillingFailure(BaseModel):
    """Esito negativo di un singolo elemento del batch."""

    contract_id: uuid.UUID
    period_start: date
    reason: str


class BatchBillingReport(BaseModel):
    """Esito per elemento della fatturazione batch (successo parziale ammesso)."""

    requested: int
    succeeded: int
    failed: int
    invoice_ids: list[uuid.UUID] = Field(default_factory=list)
    failures: list[BatchBillingFailure] = Field(default_factory=list)

    @computed_field
    @property
    def message(self) -> str:
        """Riepilogo leggibile: conteggi e motivi concatenati."""
        text = f"{self.succeeded} fatture su {self.requested} generate con successo."
        if self.failures:
            reasons = ", ".join(f.reason for f in self.failures)
            text += f" Errori per {self.failed} fatture: {reasons}"
        return text
