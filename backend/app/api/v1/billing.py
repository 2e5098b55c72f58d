"""
Router FastAPI per la Fatturazione di Contratto
Progetto: Energy Billing (Gestionale Contratti Energia)

Definisce gli endpoint per il calcolo dei periodi fatturabili e per la
fatturazione batch.
"""

import logging
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.billing import BatchBillingReport, BatchBillingRequest, BillablePeriod
from app.services.batch_billing_service import BatchBillingService
from app.services.billing_service import BillingService

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/billing",
    tags=["Fatturazione"],
)


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_billing_service() -> BillingService:
    return BillingService()


def get_batch_billing_service() -> BatchBillingService:
    """Il service batch apre una sessione per ogni elemento: non usa get_db."""
    return BatchBillingService()


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "/due",
    name="periodi_fatturabili",
    summary="Periodi da fatturare",
    description="Calcola i periodi fatturabili dei contratti attivi alla data indicata.",
    response_model=list[BillablePeriod],
    status_code=status.HTTP_200_OK,
)
async def get_due_periods(
    as_of: Optional[date] = Query(None, description="Data di riferimento (default: oggi)"),
    contract_id: Optional[uuid.UUID] = Query(None, description="Limita a un contratto"),
    db: AsyncSession = Depends(get_db),
    service: BillingService = Depends(get_billing_service),
) -> list[BillablePeriod]:
    return await service.get_due_periods(
        db=db,
        as_of=as_of or date.today(),
        contract_id=contract_id,
    )


@router.get(
    "/pending-count",
    name="contratti_da_fatturare",
    summary="Contratti da fatturare",
    description="Numero di contratti attivi con una fattura da emettere.",
    status_code=status.HTTP_200_OK,
)
async def get_pending_count(
    as_of: Optional[date] = Query(None, description="Data di riferimento (default: oggi)"),
    db: AsyncSession = Depends(get_db),
    service: BillingService = Depends(get_billing_service),
) -> dict:
    as_of = as_of or date.today()
    count = await service.count_to_invoice(db=db, as_of=as_of)
    return {"as_of": as_of, "contracts": count}


@router.post(
    "/batch",
    name="fatturazione_batch",
    summary="Fatturazione batch",
    description=(
        "Genera in parallelo le fatture dei periodi selezionati. "
        "Il successo è per elemento: gli errori sono riportati nel report."
    ),
    response_model=BatchBillingReport,
    status_code=status.HTTP_200_OK,
)
async def generate_batch(
    request: BatchBillingRequest,
    service: BatchBillingService = Depends(get_batch_billing_service),
) -> BatchBillingReport:
    return await service.generate(request.items, request.invoice_date)
