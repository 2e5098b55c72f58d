"""
Router FastAPI per Contratti, Siti, Prestazioni e Clienti
Progetto: Energy Billing (Gestionale Contratti Energia)

Anagrafiche minime da cui leggono lo scheduler e la generazione fatture.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.client import ClientCreate, ClientRead
from app.schemas.contract import (
    ActivityCreate,
    ActivityRead,
    ContractCreate,
    ContractRead,
    SiteCreate,
    SiteRead,
)
from app.services.client_service import ClientService
from app.services.contract_service import ContractService
from app.services.site_service import ActivityService, SiteService

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contracts", tags=["Contratti"])
sites_router = APIRouter(prefix="/sites", tags=["Siti"])
activities_router = APIRouter(prefix="/activities", tags=["Prestazioni"])
clients_router = APIRouter(prefix="/clients", tags=["Clienti"])


# -------------------------------------------------------------------
# Contratti
# -------------------------------------------------------------------

@router.post(
    "",
    name="crea_contratto",
    summary="Crea contratto",
    description="Crea un contratto e vi collega i siti indicati.",
    response_model=ContractRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_contract(
    data: ContractCreate,
    db: AsyncSession = Depends(get_db),
    service: ContractService = Depends(ContractService),
) -> ContractRead:
    return ContractRead.model_validate(await service.create(db=db, data=data))


@router.get(
    "/{contract_id}",
    name="contratto_dettaglio",
    summary="Dettaglio contratto",
    response_model=ContractRead,
)
async def get_contract(
    contract_id: uuid.UUID = Path(..., description="UUID del contratto"),
    db: AsyncSession = Depends(get_db),
    service: ContractService = Depends(ContractService),
) -> ContractRead:
    return ContractRead.model_validate(await service.get_by_id(db=db, contract_id=contract_id))


# -------------------------------------------------------------------
# Siti
# -------------------------------------------------------------------

@sites_router.post(
    "",
    name="crea_sito",
    summary="Crea sito",
    description="Crea un sito con gli importi annui HT per prestazione.",
    response_model=SiteRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_site(
    data: SiteCreate,
    db: AsyncSession = Depends(get_db),
    service: SiteService = Depends(SiteService),
) -> SiteRead:
    return SiteRead.model_validate(await service.create(db=db, data=data))


@sites_router.get(
    "/{site_id}",
    name="sito_dettaglio",
    summary="Dettaglio sito",
    response_model=SiteRead,
)
async def get_site(
    site_id: uuid.UUID = Path(..., description="UUID del sito"),
    db: AsyncSession = Depends(get_db),
    service: SiteService = Depends(SiteService),
) -> SiteRead:
    return SiteRead.model_validate(await service.get_by_id(db=db, site_id=site_id))


# -------------------------------------------------------------------
# Prestazioni
# -------------------------------------------------------------------

@activities_router.get(
    "",
    name="prestazioni_lista",
    summary="Lista prestazioni",
    response_model=list[ActivityRead],
)
async def list_activities(
    db: AsyncSession = Depends(get_db),
    service: ActivityService = Depends(ActivityService),
) -> list[ActivityRead]:
    return [ActivityRead.model_validate(a) for a in await service.get_all(db=db)]


@activities_router.post(
    "",
    name="crea_prestazione",
    summary="Crea prestazione",
    response_model=ActivityRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_activity(
    data: ActivityCreate,
    db: AsyncSession = Depends(get_db),
    service: ActivityService = Depends(ActivityService),
) -> ActivityRead:
    return ActivityRead.model_validate(await service.create(db=db, data=data))


# -------------------------------------------------------------------
# Clienti
# -------------------------------------------------------------------

@clients_router.post(
    "",
    name="crea_cliente",
    summary="Crea cliente",
    response_model=ClientRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_client(
    data: ClientCreate,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(ClientService),
) -> ClientRead:
    return ClientRead.model_validate(await service.create(db=db, client_data=data))


@clients_router.get(
    "/{client_id}",
    name="cliente_dettaglio",
    summary="Dettaglio cliente",
    response_model=ClientRead,
)
async def get_client(
    client_id: uuid.UUID = Path(..., description="UUID del cliente"),
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(ClientService),
) -> ClientRead:
    return ClientRead.model_validate(await service.get_by_id(db=db, client_id=client_id))
