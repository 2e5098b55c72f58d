"""
Router FastAPI per Indici e Valori di Indice
Progetto: Energy Billing (Gestionale Contratti Energia)
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.index import IndexCreate, IndexRead, IndexValueCreate, IndexValueRead
from app.services.index_service import IndexService

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/indices",
    tags=["Indici"],
)

PERIOD_QUERY = r"^\d{4}-(0[1-9]|1[0-2])$"


def get_index_service() -> IndexService:
    return IndexService()


@router.get(
    "",
    name="indici_lista",
    summary="Lista indici",
    response_model=list[IndexRead],
    status_code=status.HTTP_200_OK,
)
async def list_indices(
    db: AsyncSession = Depends(get_db),
    service: IndexService = Depends(get_index_service),
) -> list[IndexRead]:
    return [IndexRead.model_validate(i) for i in await service.get_all(db=db)]


@router.post(
    "",
    name="crea_indice",
    summary="Crea indice",
    description="Crea un indice standard o calcolato (con formula).",
    response_model=IndexRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_index(
    data: IndexCreate,
    db: AsyncSession = Depends(get_db),
    service: IndexService = Depends(get_index_service),
) -> IndexRead:
    return IndexRead.model_validate(await service.create(db=db, data=data))


@router.get(
    "/{index_id}/values",
    name="valori_indice",
    summary="Valori indice",
    description=(
        "Valori registrati per gli indici standard, calcolati al volo "
        "per gli indici calcolati."
    ),
    response_model=list[IndexValueRead],
    status_code=status.HTTP_200_OK,
)
async def get_index_values(
    index_id: uuid.UUID = Path(..., description="UUID dell'indice"),
    start: Optional[str] = Query(None, pattern=PERIOD_QUERY, description="Periodo iniziale YYYY-MM"),
    end: Optional[str] = Query(None, pattern=PERIOD_QUERY, description="Periodo finale YYYY-MM"),
    db: AsyncSession = Depends(get_db),
    service: IndexService = Depends(get_index_service),
) -> list[IndexValueRead]:
    return await service.get_values(db=db, index_id=index_id, start=start, end=end)


@router.post(
    "/{index_id}/values",
    name="crea_valore_indice",
    summary="Registra valore indice",
    response_model=IndexValueRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_index_value(
    data: IndexValueCreate,
    index_id: uuid.UUID = Path(..., description="UUID dell'indice"),
    db: AsyncSession = Depends(get_db),
    service: IndexService = Depends(get_index_service),
) -> IndexValueRead:
    value = await service.create_value(db=db, index_id=index_id, data=data)
    return IndexValueRead.model_validate(value)
