"""
Service Layer per l'entità Client
Progetto: Energy Billing (Gestionale Contratti Energia)
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models import Client
from app.schemas.client import ClientCreate

# Logger per questo modulo
logger = logging.getLogger(__name__)


class ClientService:
    """Service per la creazione e la lettura dei clienti."""

    async def get_by_id(self, db: AsyncSession, client_id: uuid.UUID) -> Client:
        """
        Recupera un cliente tramite ID.

        Raises:
            NotFoundError: Se il cliente non esiste
        """
        result = await db.execute(select(Client).where(Client.id == client_id))
        client = result.scalar_one_or_none()

        if not client:
            raise NotFoundError(f"Cliente {client_id} non trovato")

        return client

    async def create(self, db: AsyncSession, client_data: ClientCreate) -> Client:
        """Crea un nuovo cliente."""
        client = Client(
            name=client_data.name,
            client_type=client_data.client_type.value,
            address=client_data.address,
            postal_code=client_data.postal_code,
            city=client_data.city,
        )
        db.add(client)
        await db.commit()

        logger.info("Creato cliente: %s (id: %s)", client.name, client.id)
        return client


client_service = ClientService()
