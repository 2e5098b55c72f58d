"""
Router FastAPI per Fatture e Avoirs
Progetto: Energy Billing (Gestionale Contratti Energia)
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.invoice import (
    CreateInvoiceFromPeriod,
    CreditNoteCreate,
    CreditNoteRead,
    InvoiceRead,
    InvoiceStatusUpdate,
)
from app.services.credit_note_service import CreditNoteService
from app.services.invoice_service import InvoiceService

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/invoices",
    tags=["Fatture"],
)

credit_notes_router = APIRouter(
    prefix="/credit-notes",
    tags=["Avoirs"],
)


def get_invoice_service() -> InvoiceService:
    return InvoiceService()


def get_credit_note_service() -> CreditNoteService:
    return CreditNoteService()


# -------------------------------------------------------------------
# Endpoints per Fatture
# -------------------------------------------------------------------

@router.post(
    "/from-period",
    name="fattura_da_periodo",
    summary="Genera fattura da periodo",
    description=(
        "Genera la fattura (o la proforma) di un periodo fatturabile. "
        "Un periodo già fatturato restituisce 409."
    ),
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice_from_period(
    data: CreateInvoiceFromPeriod,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    invoice = await service.create_from_period(
        db=db,
        contract_id=data.contract_id,
        period_start=data.period_start,
        invoice_date=data.invoice_date,
        is_proforma=data.is_proforma,
    )
    return InvoiceRead.model_validate(invoice)


@router.get(
    "/{invoice_id}",
    name="fattura_dettaglio",
    summary="Dettaglio fattura",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def get_invoice(
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    invoice = await service.get_by_id(db=db, invoice_id=invoice_id)
    return InvoiceRead.model_validate(invoice)


@router.patch(
    "/{invoice_id}/status",
    name="fattura_cambio_stato",
    summary="Cambio stato fattura",
    description="Aggiorna lo stato della fattura secondo le transizioni consentite.",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def update_invoice_status(
    data: InvoiceStatusUpdate,
    invoice_id: uuid.UUID = Path(..., description="UUID della fattura"),
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    invoice = await service.update_status(db=db, invoice_id=invoice_id, new_status=data.status)
    return InvoiceRead.model_validate(invoice)


# -------------------------------------------------------------------
# Endpoints per Avoirs
# -------------------------------------------------------------------

@credit_notes_router.post(
    "",
    name="crea_avoir",
    summary="Crea avoir",
    description="Storna integralmente una o più fatture dello stesso cliente.",
    response_model=CreditNoteRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_credit_note(
    data: CreditNoteCreate,
    db: AsyncSession = Depends(get_db),
    service: CreditNoteService = Depends(get_credit_note_service),
) -> CreditNoteRead:
    credit_note = await service.create_from_invoices(
        db=db,
        invoice_ids=data.invoice_ids,
        reason=data.reason,
        credit_note_date=data.credit_note_date,
    )
    return CreditNoteRead.model_validate(credit_note)


@credit_notes_router.get(
    "/{credit_note_id}",
    name="dettaglio_avoir",
    summary="Dettaglio avoir",
    response_model=CreditNoteRead,
)
async def get_credit_note(
    credit_note_id: uuid.UUID = Path(..., description="UUID dell'avoir"),
    db: AsyncSession = Depends(get_db),
    service: CreditNoteService = Depends(get_credit_note_service),
) -> CreditNoteRead:
    credit_note = await service.get_by_id(db=db, credit_note_id=credit_note_id)
    return CreditNoteRead.model_validate(credit_note)
