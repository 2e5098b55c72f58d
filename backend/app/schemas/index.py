"""
Schemas Pydantic per Indici e Valori di Indice
Progetto: Energy Billing (Gestionale Contratti Energia)

Contiene:
- Enum IndexType (standard | calculated)
- Schemas per Index (creazione, lettura, snapshot per l'evaluator)
- Schemas per IndexValue (creazione, lettura/valore calcolato)

I valori degli indici calcolati hanno la stessa forma di quelli salvati
ma non vengono mai persistiti: id = "calc-{index_id}-{period}".
"""

import re
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

EntityId = Union[uuid.UUID, str]

PERIOD_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class IndexType(str, Enum):
    """Tipo di indice."""
    STANDARD = "standard"
    CALCULATED = "calculated"


# -------------------------------------------------------------------
# Schemas per Index
# -------------------------------------------------------------------

class IndexBase(BaseModel):
    """Schema base per un indice."""

    code: str = Field(..., min_length=1, max_length=50, description="Codice univoco (es. PEG)")
    label: str = Field(..., min_length=1, max_length=255, description="Etichetta")
    unit: Optional[str] = Field(None, max_length=50, description="Unità di misura")
    description: Optional[str] = Field(None, description="Descrizione")
    type: IndexType = Field(default=IndexType.STANDARD, description="standard o calculated")
    formula: Optional[str] = Field(
        None,
        max_length=1000,
        description="Formula aritmetica che referenzia altri codici indice",
    )
    decimals: Optional[int] = Field(
        None,
        ge=0,
        le=10,
        description="Decimali di arrotondamento (default 4)",
    )

    model_config = ConfigDict(from_attributes=True)


class IndexCreate(IndexBase):
    """Schema per la creazione di un indice."""

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Il codice indice non può essere vuoto")
        return v

    @model_validator(mode="after")
    def validate_formula(self) -> "IndexCreate":
        if self.type == IndexType.CALCULATED:
            if not self.formula or not self.formula.strip():
                raise ValueError("Un indice calcolato richiede una formula")
        elif self.formula:
            raise ValueError("Solo gli indici calcolati possono avere una formula")
        return self


class IndexRead(IndexBase):
    """Schema per la lettura di un indice."""

    id: uuid.UUID = Field(..., description="UUID dell'indice")


class IndexSnapshot(BaseModel):
    """Indice ridotto ai campi usati dall'evaluator."""

    id: EntityId
    code: str
    type: str = IndexType.STANDARD.value
    formula: Optional[str] = None
    decimals: Optional[int] = None

    model_config = ConfigDict(from_attributes=True, frozen=True)


# -------------------------------------------------------------------
# Schemas per IndexValue
# -------------------------------------------------------------------

class IndexValueCreate(BaseModel):
    """Schema per la registrazione manuale di un valore di indice standard."""

    period: str = Field(..., description="Periodo nel formato YYYY-MM")
    value: Decimal = Field(..., description="Valore numerico")
    source: Optional[str] = Field(None, max_length=255, description="Fonte del valore")
    comment: Optional[str] = Field(None, description="Commento")

    @field_validator("period")
    @classmethod
    def validate_period(cls, v: str) -> str:
        v = v.strip()
        if not PERIOD_PATTERN.match(v):
            raise ValueError("Il periodo deve avere il formato YYYY-MM")
        return v

    @field_validator("value", mode="before")
    @classmethod
    def convert_decimal_comma(cls, v):
        """Accetta la virgola decimale (es. '42,5')."""
        if isinstance(v, str):
            v = v.strip().replace(",", ".")
        return v

    @field_validator("value")
    @classmethod
    def validate_finite(cls, v: Decimal) -> Decimal:
        if not v.is_finite():
            raise ValueError("Il valore deve essere un numero finito")
        return v


class IndexValueSnapshot(BaseModel):
    """Valore registrato di un indice per un periodo."""

    index_id: EntityId
    period: str
    value: Decimal

    model_config = ConfigDict(from_attributes=True, frozen=True)


class IndexValueRead(BaseModel):
    """Valore di indice, registrato o calcolato."""

    id: EntityId
    index_id: EntityId = Field(..., serialization_alias="indexId")
    period: str
    value: Decimal
    source: Optional[str] = None
    comment: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
