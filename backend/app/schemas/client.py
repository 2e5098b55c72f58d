"""
Schemas Pydantic per l'entità Client
Progetto: Energy Billing (Gestionale Contratti Energia)
"""

import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClientType(str, Enum):
    """Tipo di cliente."""
    PRIVATE = "private"
    PUBLIC = "public"


class ClientBase(BaseModel):
    """Schema base per il cliente."""

    name: str = Field(..., min_length=1, max_length=255, description="Ragione sociale")
    client_type: ClientType = Field(default=ClientType.PRIVATE, description="Cliente privato o pubblico")
    address: Optional[str] = Field(None, max_length=500, description="Indirizzo")
    postal_code: Optional[str] = Field(None, max_length=10, description="Codice postale")
    city: Optional[str] = Field(None, max_length=100, description="Città")

    model_config = ConfigDict(from_attributes=True)


class ClientCreate(ClientBase):
    """Schema per la creazione di un cliente."""

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("La ragione sociale non può essere vuota")
        return v


class ClientRead(ClientBase):
    """Schema per la lettura di un cliente."""

    id: uuid.UUID = Field(..., description="UUID del cliente")
    created_at: datetime.datetime
    updated_at: datetime.datetime
