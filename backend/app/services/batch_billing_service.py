"""
Service Layer per la Fatturazione Batch
Progetto: Energy Billing (Gestionale Contratti Energia)

Genera in parallelo le fatture dei periodi selezionati. Ogni elemento
usa una propria sessione database: il fallimento di un elemento non
annulla gli altri e viene riportato nel report finale.
"""

import asyncio
import logging
import uuid
from datetime import date
from typing import Callable, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import AsyncSessionLocal
from app.core.exceptions import AppException
from app.schemas.billing import (
    BatchBillingFailure,
    BatchBillingItem,
    BatchBillingReport,
)
from app.services.invoice_service import InvoiceService

# Logger per questo modulo
logger = logging.getLogger(__name__)


class BatchBillingService:
    """
    Service per la generazione di più fatture in una sola richiesta.

    Args:
        session_factory: Factory di sessioni async (default AsyncSessionLocal)
        invoice_service: Service usato per ogni singola fattura
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        invoice_service: Optional[InvoiceService] = None,
    ) -> None:
        self.session_factory = session_factory or AsyncSessionLocal
        self.invoice_service = invoice_service or InvoiceService()

    async def _generate_one(
        self,
        item: BatchBillingItem,
        invoice_date: date,
    ) -> uuid.UUID:
        async with self.session_factory() as session:
            invoice = await self.invoice_service.create_from_period(
                session,
                item.contract_id,
                item.period_start,
                invoice_date=invoice_date,
                is_proforma=False,
            )
            return invoice.id

    async def _generate_contract(
        self,
        entries: list[tuple[int, BatchBillingItem]],
        invoice_date: date,
    ) -> list[tuple[int, object]]:
        """Fattura in sequenza i periodi di uno stesso contratto, dal più vecchio."""
        outcomes = []
        for position, item in sorted(entries, key=lambda entry: entry[1].period_start):
            try:
                outcome = await self._generate_one(item, invoice_date)
            except Exception as e:
                outcome = e
            outcomes.append((position, outcome))
        return outcomes

    async def generate(
        self,
        items: Iterable[BatchBillingItem],
        invoice_date: Optional[date] = None,
    ) -> BatchBillingReport:
        """
        Genera le fatture dei periodi indicati.

        I contratti sono elaborati in parallelo con asyncio.gather; i periodi
        di uno stesso contratto in sequenza, per data di inizio crescente.
        Gli errori di un elemento non interrompono gli altri.

        Args:
            items: Coppie (contratto, inizio periodo) da fatturare
            invoice_date: Data fattura comune (default: oggi)

        Returns:
            BatchBillingReport: conteggi, id delle fatture create e motivi
            dei fallimenti nell'ordine degli elementi richiesti
        """
        items = list(items)
        invoice_date = invoice_date or date.today()

        by_contract: dict[uuid.UUID, list[tuple[int, BatchBillingItem]]] = {}
        for position, item in enumerate(items):
            by_contract.setdefault(item.contract_id, []).append((position, item))

        grouped = await asyncio.gather(
            *(self._generate_contract(entries, invoice_date) for entries in by_contract.values())
        )
        results: list[object] = [None] * len(items)
        for outcomes in grouped:
            for position, outcome in outcomes:
                results[position] = outcome

        invoice_ids: list[uuid.UUID] = []
        failures: list[BatchBillingFailure] = []
        for item, outcome in zip(items, results):
            if isinstance(outcome, Exception):
                reason = outcome.detail if isinstance(outcome, AppException) else str(outcome)
                if not isinstance(outcome, AppException):
                    logger.exception(
                        "Errore imprevisto nella fatturazione batch", exc_info=outcome
                    )
                logger.warning(
                    "Fatturazione batch: contratto %s, periodo %s non fatturato: %s",
                    item.contract_id, item.period_start, reason,
                )
                failures.append(
                    BatchBillingFailure(
                        contract_id=item.contract_id,
                        period_start=item.period_start,
                        reason=reason or outcome.__class__.__name__,
                    )
                )
            else:
                invoice_ids.append(outcome)

        report = BatchBillingReport(
            requested=len(items),
            succeeded=len(invoice_ids),
            failed=len(failures),
            invoice_ids=invoice_ids,
            failures=failures,
        )
        logger.info("Fatturazione batch completata: %s", report.message)
        return report


batch_billing_service = BatchBillingService()
