"""
Service Layer per i Contratti
Progetto: Energy Billing (Gestionale Contratti Energia)

Definisce la creazione dei contratti e il collegamento dei siti.
La coerenza delle date e dell'échéancier Variable è già garantita da
ContractCreate.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BusinessValidationError, NotFoundError
from app.models import Contract
from app.schemas.contract import ContractCreate
from app.services.client_service import ClientService
from app.services.site_service import ActivityService, SiteService

# Logger per questo modulo
logger = logging.getLogger(__name__)


class ContractService:
    """
    Service per la gestione dei contratti.

    Implementa:
    - Verifica di cliente, siti e prestazioni
    - Collegamento dei siti al contratto (un sito appartiene a un solo contratto)
    """

    def __init__(self) -> None:
        self.clients = ClientService()
        self.sites = SiteService()
        self.activities = ActivityService()

    async def get_by_id(self, db: AsyncSession, contract_id: uuid.UUID) -> Contract:
        """
        Recupera un contratto con siti e prestazioni.

        Raises:
            NotFoundError: Se il contratto non esiste
        """
        result = await db.execute(select(Contract).where(Contract.id == contract_id))
        contract = result.scalar_one_or_none()

        if not contract:
            raise NotFoundError(f"Contratto {contract_id} non trovato")

        return contract

    async def create(self, db: AsyncSession, data: ContractCreate) -> Contract:
        """
        Crea un contratto e vi collega i siti indicati.

        Steps:
        1. Verifica che il cliente esista
        2. Verifica siti (esistenti, del cliente, non già sotto contratto)
        3. Verifica prestazioni
        4. Salva il contratto con l'échéancier serializzato in JSON

        Raises:
            NotFoundError: Cliente, sito o prestazione inesistente
            BusinessValidationError: Sito di un altro cliente o già collegato
        """
        # Step 1
        await self.clients.get_by_id(db, data.client_id)

        # Step 2
        site_ids = list(dict.fromkeys(data.site_ids))
        sites = await self.sites.get_many(db, site_ids)
        for site in sites:
            if site.client_id != data.client_id:
                raise BusinessValidationError(
                    f"Il sito '{site.name}' non appartiene al cliente del contratto"
                )
            if site.contract_id is not None:
                raise BusinessValidationError(
                    f"Il sito '{site.name}' è già collegato al contratto {site.contract_id}"
                )

        # Step 3
        activities = await self.activities.get_many(db, list(dict.fromkeys(data.activity_ids)))

        # Step 4
        contract = Contract(
            client_id=data.client_id,
            billing_schedule=data.billing_schedule.value,
            start_date=data.start_date,
            end_date=data.end_date,
            status=data.status.value,
            invoicing_type=data.invoicing_type.value,
            monthly_billing=[entry.model_dump(mode="json") for entry in data.monthly_billing],
        )
        contract.activities.extend(activities)
        contract.sites.extend(sites)

        db.add(contract)
        await db.commit()

        logger.info(
            "Creato contratto %s per il cliente %s (%s, %s - %s, %s siti)",
            contract.id, contract.client_id, contract.billing_schedule,
            contract.start_date, contract.end_date, len(sites),
        )
        return await self.get_by_id(db, contract.id)


contract_service = ContractService()
