"""
Service Layer per la Fatturazione di Contratto
Progetto: Energy Billing (Gestionale Contratti Energia)

Carica dal database gli snapshot di contratti, siti e fatture ed esegue
lo scheduler per ottenere i periodi fatturabili.
"""

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.engines.scheduler import (
    PROFORMA_STATUS,
    compute_billable_periods,
    compute_due_periods,
    count_contracts_to_invoice,
)
from app.models import Contract, Invoice
from app.schemas.billing import (
    BillablePeriod,
    ContractSnapshot,
    InvoiceSnapshot,
    SiteSnapshot,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)


class BillingService:
    """
    Service per il calcolo dei periodi fatturabili.

    Non scrive nulla: la materializzazione dei periodi in fatture è
    responsabilità di InvoiceService.
    """

    # -------------------------------------------------------------------
    # Caricamento snapshot
    # -------------------------------------------------------------------

    async def get_contract(
        self,
        db: AsyncSession,
        contract_id: uuid.UUID,
        for_update: bool = False,
    ) -> Contract:
        """
        Recupera un contratto con siti e prestazioni.

        Raises:
            NotFoundError: Se il contratto non esiste
        """
        stmt = select(Contract).where(Contract.id == contract_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        contract = result.scalar_one_or_none()

        if not contract:
            raise NotFoundError(f"Contratto {contract_id} non trovato")

        return contract

    async def get_invoice_snapshots(
        self,
        db: AsyncSession,
        contract_ids: Optional[list[uuid.UUID]] = None,
    ) -> list[InvoiceSnapshot]:
        """Fatture non proforma ridotte a (contratto, fine periodo, stato)."""
        stmt = select(
            Invoice.contract_id,
            Invoice.period_end_date,
            Invoice.status,
        ).where(Invoice.status != PROFORMA_STATUS)
        if contract_ids is not None:
            stmt = stmt.where(Invoice.contract_id.in_(contract_ids))

        result = await db.execute(stmt)
        return [
            InvoiceSnapshot(
                contract_id=row.contract_id,
                period_end_date=row.period_end_date,
                status=row.status,
            )
            for row in result.all()
        ]

    @staticmethod
    def contract_snapshot(contract: Contract) -> ContractSnapshot:
        return ContractSnapshot.model_validate(contract)

    @staticmethod
    def site_snapshots(contract: Contract) -> list[SiteSnapshot]:
        return [SiteSnapshot.model_validate(site) for site in contract.sites]

    # -------------------------------------------------------------------
    # Periodi fatturabili
    # -------------------------------------------------------------------

    async def get_contract_periods(
        self,
        db: AsyncSession,
        contract: Contract,
        as_of: date,
    ) -> list[BillablePeriod]:
        """Periodi fatturabili di un singolo contratto, indipendentemente dal suo stato."""
        invoices = await self.get_invoice_snapshots(db, [contract.id])
        return compute_billable_periods(
            self.contract_snapshot(contract),
            invoices,
            self.site_snapshots(contract),
            as_of,
        )

    async def get_due_periods(
        self,
        db: AsyncSession,
        as_of: date,
        contract_id: Optional[uuid.UUID] = None,
    ) -> list[BillablePeriod]:
        """
        Periodi da fatturare alla data `as_of` (vista della fatturazione batch).

        Args:
            db: Sessione database
            as_of: Data di riferimento (esclusiva per l'inizio del periodo)
            contract_id: Limita il calcolo a un contratto

        Returns:
            list[BillablePeriod]: periodi dei contratti attivi, per contratto
            e in ordine cronologico

        Raises:
            NotFoundError: Se contract_id è indicato ma non esiste
        """
        if contract_id is not None:
            contracts = [await self.get_contract(db, contract_id)]
        else:
            result = await db.execute(select(Contract).order_by(Contract.start_date))
            contracts = list(result.scalars().all())

        if not contracts:
            return []

        invoices = await self.get_invoice_snapshots(db, [c.id for c in contracts])
        sites = [site for c in contracts for site in self.site_snapshots(c)]

        periods = compute_due_periods(
            [self.contract_snapshot(c) for c in contracts],
            invoices,
            sites,
            as_of,
        )

        logger.info(
            "Calcolati %s periodi fatturabili su %s contratti (as_of=%s)",
            len(periods), len(contracts), as_of,
        )
        return periods

    async def count_to_invoice(self, db: AsyncSession, as_of: date) -> int:
        """Numero di contratti attivi con una fattura da emettere."""
        result = await db.execute(select(Contract))
        contracts = list(result.scalars().all())
        invoices = await self.get_invoice_snapshots(db, [c.id for c in contracts])
        return count_contracts_to_invoice(
            [self.contract_snapshot(c) for c in contracts],
            invoices,
            as_of,
        )


billing_service = BillingService()
