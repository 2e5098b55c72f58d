"""
Schemas Pydantic per Contratti, Siti e Prestazioni
Progetto: Energy Billing (Gestionale Contratti Energia)

Contiene:
- Enums: BillingSchedule, ContractStatus, InvoicingType
- Schemas per MonthlyBilling (échéancier variabile)
- Schemas per Contract, Site, SiteAmount, Activity

La validazione strutturale del contratto (date, percentuali mensili) vive
qui, nel livello di input: lo scheduler non solleva mai eccezioni e tratta
un contratto incoerente come non fatturabile.
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
    field_validator,
    model_validator,
)


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class BillingSchedule(str, Enum):
    """Periodicità di fatturazione del contratto."""
    ANNUEL = "Annuel"
    SEMESTRIEL = "Semestriel"
    TRIMESTRIEL = "Trimestriel"
    MENSUEL = "Mensuel"
    VARIABLE = "Variable"


class ContractStatus(str, Enum):
    """Stato del contratto. Solo i contratti attivi vengono fatturati in batch."""
    ACTIF = "Actif"
    SUSPENDU = "Suspendu"
    TERMINE = "Terminé"


class InvoicingType(str, Enum):
    """Modalità di raggruppamento delle righe fattura."""
    MULTI_SITE = "multi-site"
    GLOBAL = "global"


# -------------------------------------------------------------------
# Schemas per MonthlyBilling
# -------------------------------------------------------------------

class MonthlyBilling(BaseModel):
    """Voce dell'échéancier variabile: quota dell'importo annuo per un mese."""

    month: int = Field(..., ge=1, le=12, description="Mese di calendario (1-12)")
    day: int = Field(default=1, ge=1, le=31, description="Giorno del mese di emissione")
    percentage: Decimal = Field(
        ...,
        ge=0,
        le=100,
        description="Percentuale dell'importo annuo fatturata nel mese",
    )

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Schemas per Activity
# -------------------------------------------------------------------

class ActivityBase(BaseModel):
    """Schema base per una prestazione fatturabile."""

    code: str = Field(..., min_length=1, max_length=20, description="Codice prestazione (es. P1)")
    label: str = Field(..., min_length=1, max_length=255, description="Descrizione prestazione")

    model_config = ConfigDict(from_attributes=True)


class ActivityCreate(ActivityBase):
    """Schema per la creazione di una prestazione."""

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()


class ActivityRead(ActivityBase):
    """Schema per la lettura di una prestazione."""

    id: uuid.UUID = Field(..., description="UUID della prestazione")


# -------------------------------------------------------------------
# Schemas per Site
# -------------------------------------------------------------------

class SiteAmountBase(BaseModel):
    """Importo annuo HT di una prestazione su un sito."""

    activity_id: uuid.UUID = Field(..., description="UUID della prestazione")
    amount: Decimal = Field(..., ge=0, description="Importo annuo HT")

    model_config = ConfigDict(from_attributes=True)


class SiteCreate(BaseModel):
    """Schema per la creazione di un sito con i suoi importi annui."""

    client_id: uuid.UUID = Field(..., description="UUID del cliente")
    name: str = Field(..., min_length=1, max_length=255, description="Nome del sito")
    address: Optional[str] = Field(None, max_length=500, description="Indirizzo")
    amounts: list[SiteAmountBase] = Field(
        default_factory=list,
        description="Importi annui per prestazione",
    )

    @field_validator("amounts")
    @classmethod
    def validate_unique_activities(cls, v: list[SiteAmountBase]) -> list[SiteAmountBase]:
        """Una prestazione compare al massimo una volta per sito."""
        seen = set()
        for amount in v:
            if amount.activity_id in seen:
                raise ValueError(f"Prestazione {amount.activity_id} duplicata sul sito")
            seen.add(amount.activity_id)
        return v


class SiteRead(BaseModel):
    """Schema per la lettura di un sito."""

    id: uuid.UUID
    client_id: uuid.UUID
    contract_id: Optional[uuid.UUID] = None
    name: str
    address: Optional[str] = None
    amounts: list[SiteAmountBase] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Schemas per Contract
# -------------------------------------------------------------------

class ContractBase(BaseModel):
    """Schema base per il contratto."""

    client_id: uuid.UUID = Field(..., description="UUID del cliente")
    site_ids: list[uuid.UUID] = Field(..., description="Siti coperti dal contratto")
    activity_ids: list[uuid.UUID] = Field(..., description="Prestazioni coperte dal contratto")
    billing_schedule: BillingSchedule = Field(
        default=BillingSchedule.ANNUEL,
        description="Échéancier di fatturazione",
    )
    start_date: date = Field(..., description="Data inizio contratto")
    end_date: date = Field(..., description="Data fine contratto")
    status: ContractStatus = Field(default=ContractStatus.ACTIF, description="Stato contratto")
    invoicing_type: InvoicingType = Field(
        default=InvoicingType.MULTI_SITE,
        description="Righe per sito (multi-site) o aggregate per prestazione (global)",
    )
    monthly_billing: list[MonthlyBilling] = Field(
        default_factory=list,
        description="Échéancier mensile (solo per billing_schedule = Variable)",
    )

    model_config = ConfigDict(from_attributes=True)


class ContractCreate(ContractBase):
    """
    Schema per la creazione di un contratto.

    Regole:
    - almeno un sito e una prestazione
    - end_date >= start_date
    - per l'échéancier Variable: un solo valore per mese e somma
      delle percentuali pari a 100
    """

    @model_validator(mode="after")
    def validate_contract(self) -> "ContractCreate":
        if not self.site_ids:
            raise ValueError("Selezionare almeno un sito")
        if not self.activity_ids:
            raise ValueError("Selezionare almeno una prestazione")
        if self.end_date < self.start_date:
            raise ValueError("La data di fine deve essere successiva alla data di inizio")

        if self.billing_schedule == BillingSchedule.VARIABLE:
            months = [entry.month for entry in self.monthly_billing]
            if len(months) != len(set(months)):
                raise ValueError("Ogni mese può comparire una sola volta nell'échéancier")
            total = sum((entry.percentage for entry in self.monthly_billing), Decimal("0"))
            if total != Decimal("100"):
                raise ValueError(
                    "La somma delle percentuali di fatturazione mensile deve essere uguale a 100 "
                    f"(attuale: {total})"
                )
        return self


class ContractRead(ContractBase):
    """Schema per la lettura di un contratto."""

    id: uuid.UUID = Field(..., description="UUID del contratto")
    created_at: datetime
    updated_at: datetime
