"""
Service Layer per Siti e Prestazioni
Progetto: Energy Billing (Gestionale Contratti Energia)

Anagrafiche minime da cui lo scheduler legge gli importi annui.
"""

import logging
import uuid
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateError, NotFoundError
from app.models import Activity, Site, SiteAmount
from app.schemas.contract import ActivityCreate, SiteCreate
from app.services.client_service import ClientService

logger = logging.getLogger(__name__)


class ActivityService:
    """Catalogo delle prestazioni fatturabili."""

    async def get_all(self, db: AsyncSession) -> List[Activity]:
        """Recupera tutte le prestazioni ordinate per codice."""
        result = await db.execute(select(Activity).order_by(Activity.code))
        return list(result.scalars().all())

    async def get_many(self, db: AsyncSession, activity_ids: list[uuid.UUID]) -> List[Activity]:
        """
        Recupera le prestazioni indicate.

        Raises:
            NotFoundError: Se una prestazione non esiste
        """
        result = await db.execute(select(Activity).where(Activity.id.in_(activity_ids)))
        activities = list(result.scalars().all())
        found = {a.id for a in activities}
        missing = [str(i) for i in activity_ids if i not in found]
        if missing:
            raise NotFoundError(f"Prestazioni non trovate: {', '.join(missing)}")
        return activities

    async def create(self, db: AsyncSession, data: ActivityCreate) -> Activity:
        """
        Crea una prestazione.

        Raises:
            DuplicateError: Se il codice è già in uso
        """
        existing = await db.execute(select(Activity).where(Activity.code == data.code))
        if existing.scalar_one_or_none() is not None:
            raise DuplicateError(f"Prestazione con codice '{data.code}' già esistente")

        activity = Activity(code=data.code, label=data.label)
        db.add(activity)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.error(f"Errore di integrità durante creazione prestazione: {e}")
            raise DuplicateError(f"Prestazione con codice '{data.code}' già esistente")

        logger.info("Creata prestazione %s (%s)", activity.code, activity.label)
        return activity


class SiteService:
    """Siti dei clienti con gli importi annui per prestazione."""

    def __init__(self) -> None:
        self.clients = ClientService()
        self.activities = ActivityService()

    async def get_by_id(self, db: AsyncSession, site_id: uuid.UUID) -> Site:
        result = await db.execute(select(Site).where(Site.id == site_id))
        site = result.scalar_one_or_none()
        if not site:
            raise NotFoundError(f"Sito {site_id} non trovato")
        return site

    async def get_many(self, db: AsyncSession, site_ids: list[uuid.UUID]) -> List[Site]:
        """
        Recupera i siti indicati.

        Raises:
            NotFoundError: Se un sito non esiste
        """
        result = await db.execute(select(Site).where(Site.id.in_(site_ids)))
        sites = list(result.scalars().all())
        found = {s.id for s in sites}
        missing = [str(i) for i in site_ids if i not in found]
        if missing:
            raise NotFoundError(f"Siti non trovati: {', '.join(missing)}")
        return sites

    async def create(self, db: AsyncSession, data: SiteCreate) -> Site:
        """
        Crea un sito con i suoi importi annui.

        Raises:
            NotFoundError: Cliente o prestazione inesistente
        """
        await self.clients.get_by_id(db, data.client_id)
        if data.amounts:
            await self.activities.get_many(db, [a.activity_id for a in data.amounts])

        site = Site(
            client_id=data.client_id,
            name=data.name,
            address=data.address,
        )
        for entry in data.amounts:
            site.amounts.append(SiteAmount(activity_id=entry.activity_id, amount=entry.amount))

        db.add(site)
        await db.commit()

        logger.info("Creato sito %s per il cliente %s", site.name, site.client_id)
        return await self.get_by_id(db, site.id)


activity_service = ActivityService()
site_service = SiteService()
