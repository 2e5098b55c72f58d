"""
Service Layer per gli Indici
Progetto: Energy Billing (Gestionale Contratti Energia)

Gestisce il catalogo degli indici e i valori mensili degli indici
standard. I valori degli indici calcolati sono prodotti dall'evaluator
a ogni lettura.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import BusinessValidationError, DuplicateError, NotFoundError
from app.engines.expression import SAFE_EXPRESSION
from app.engines.index_evaluator import code_pattern, index_values_for, referenced_codes
from app.models import Index, IndexValue
from app.schemas.index import (
    IndexCreate,
    IndexSnapshot,
    IndexType,
    IndexValueCreate,
    IndexValueRead,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)


class IndexService:
    """
    Service per indici e valori di indice.

    Implementa:
    - Codice indice univoco
    - Un solo valore per (indice, periodo)
    - Nessun valore manuale sugli indici calcolati
    - Lettura dei valori registrati o calcolati, con filtro di periodo
    """

    async def get_all(self, db: AsyncSession) -> List[Index]:
        """Recupera tutti gli indici ordinati per codice."""
        result = await db.execute(select(Index).order_by(Index.code))
        return list(result.scalars().all())

    async def get_by_id(self, db: AsyncSession, index_id: uuid.UUID) -> Index:
        """
        Recupera un indice tramite ID.

        Raises:
            NotFoundError: Se l'indice non esiste
        """
        result = await db.execute(select(Index).where(Index.id == index_id))
        index = result.scalar_one_or_none()

        if not index:
            raise NotFoundError(f"Indice {index_id} non trovato")

        return index

    async def create(self, db: AsyncSession, data: IndexCreate) -> Index:
        """
        Crea un indice.

        Per un indice calcolato la formula, una volta tolti i codici degli
        indici esistenti, deve contenere solo numeri, operatori e parentesi.

        Raises:
            DuplicateError: Codice già in uso
            BusinessValidationError: Formula con riferimenti sconosciuti
        """
        existing = await db.execute(select(Index).where(Index.code == data.code))
        if existing.scalar_one_or_none() is not None:
            raise DuplicateError(f"Indice con codice '{data.code}' già esistente")

        if data.type == IndexType.CALCULATED:
            indices = [IndexSnapshot.model_validate(i) for i in await self.get_all(db)]
            self._check_formula(data.formula, indices)

        index = Index(
            code=data.code,
            label=data.label,
            unit=data.unit,
            description=data.description,
            type=data.type.value,
            formula=data.formula.strip() if data.formula else None,
            decimals=data.decimals,
        )
        db.add(index)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.error(f"Errore di integrità durante creazione indice: {e}")
            raise DuplicateError(f"Indice con codice '{data.code}' già esistente")

        logger.info("Creato indice %s (%s)", index.code, index.type)
        return index

    @staticmethod
    def _check_formula(formula: str, indices: list[IndexSnapshot]) -> None:
        """
        Verifica che la formula referenzi solo indici esistenti.

        Raises:
            BusinessValidationError: Se restano simboli non riconosciuti
        """
        residual = formula
        for code in referenced_codes(formula, indices):
            residual = code_pattern(code).sub("1", residual)
        if not SAFE_EXPRESSION.match(residual):
            raise BusinessValidationError(
                f"La formula contiene riferimenti o caratteri non validi: {formula}"
            )

    async def create_value(
        self,
        db: AsyncSession,
        index_id: uuid.UUID,
        data: IndexValueCreate,
    ) -> IndexValue:
        """
        Registra il valore mensile di un indice standard.

        Raises:
            NotFoundError: Indice inesistente
            BusinessValidationError: Indice calcolato
            DuplicateError: Valore già registrato per il periodo
        """
        index = await self.get_by_id(db, index_id)
        if index.type == IndexType.CALCULATED.value:
            raise BusinessValidationError(
                f"L'indice {index.code} è calcolato: i suoi valori non possono essere inseriti"
            )

        existing = await db.execute(
            select(IndexValue).where(
                IndexValue.index_id == index_id,
                IndexValue.period == data.period,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise DuplicateError(
                f"Valore già registrato per l'indice {index.code} nel periodo {data.period}"
            )

        value = IndexValue(
            index_id=index_id,
            period=data.period,
            value=data.value,
            source=data.source,
            comment=data.comment,
        )
        db.add(value)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.error(f"Errore di integrità durante registrazione valore indice: {e}")
            raise DuplicateError(
                f"Valore già registrato per l'indice {index.code} nel periodo {data.period}"
            )

        logger.info("Registrato valore %s per indice %s, periodo %s", data.value, index.code, data.period)
        return value

    async def get_values(
        self,
        db: AsyncSession,
        index_id: uuid.UUID,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> list[IndexValueRead]:
        """
        Valori di un indice: registrati se standard, calcolati se calculated.

        Args:
            db: Sessione database
            index_id: UUID dell'indice
            start / end: Periodi "YYYY-MM" inclusivi (opzionali)

        Raises:
            NotFoundError: Se l'indice non esiste
        """
        index = await self.get_by_id(db, index_id)
        target = IndexSnapshot.model_validate(index)

        if index.type == IndexType.CALCULATED.value:
            indices = [IndexSnapshot.model_validate(i) for i in await self.get_all(db)]
            result = await db.execute(select(IndexValue))
        else:
            indices = [target]
            result = await db.execute(select(IndexValue).where(IndexValue.index_id == index_id))

        values = index_values_for(
            target,
            indices,
            result.scalars().all(),
            start=start,
            end=end,
            default_decimals=settings.index_default_decimals,
            source=settings.calculated_index_source,
        )
        return [IndexValueRead.model_validate(v) for v in values]


index_service = IndexService()
