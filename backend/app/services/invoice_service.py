"""
Service Layer per la Fatturazione
Progetto: Energy Billing (Gestionale Contratti Energia)

Definisce la logica di business per la generazione delle fatture
a partire dai periodi fatturabili e per la gestione del loro stato.
"""

import logging
import uuid
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    BusinessValidationError,
    ConflictError,
    NotFoundError,
)
from app.engines.invoice_lines import build_invoice_lines, compute_totals
from app.models import Invoice, InvoiceLine
from app.schemas.billing import ActivitySnapshot, build_billing_key
from app.schemas.contract import ContractStatus
from app.schemas.invoice import InvoiceStatus, can_transition
from app.services.billing_service import BillingService

# Logger per questo modulo
logger = logging.getLogger(__name__)

# Limite del progressivo annuale (formato a 4 cifre)
MAX_SEQUENCE = 9999


async def next_sequence_number(
    db: AsyncSession,
    model,
    column,
    prefix: str,
    issue_date: date,
) -> str:
    """
    Genera il prossimo numero progressivo annuale "{prefix}-YYYY-NNNN".

    Logica:
    1. Acquisisce un advisory lock PostgreSQL per (prefisso, anno)
    2. Cerca l'ultimo numero emesso nell'anno
    3. Incrementa il progressivo con zero-padding a 4 cifre

    Raises:
        ConflictError: Se si supera il limite di 9999 documenti annui
    """
    year = issue_date.year
    year_prefix = f"{prefix}-{year}-"

    # SELECT FOR UPDATE non blocca nulla se non esistono righe per l'anno
    await db.execute(
        text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))"),
        {"lock_key": year_prefix},
    )

    stmt = (
        select(column)
        .where(column.like(f"{year_prefix}%"))
        .order_by(column.desc())
        .limit(1)
    )
    result = await db.execute(stmt)
    last_number = result.scalar_one_or_none()

    next_number = int(last_number.rsplit("-", 1)[1]) + 1 if last_number else 1

    if next_number > MAX_SEQUENCE:
        raise ConflictError(f"Limite numerazione {model.__tablename__} raggiunto per l'anno {year}")

    return f"{year_prefix}{next_number:04d}"


class InvoiceService:
    """
    Service per la gestione delle fatture di contratto.

    Implementa:
    - Generazione fattura da un periodo fatturabile (idempotente per
      contratto + inizio periodo)
    - Fatture proforma (senza numero, ignorate dallo scheduler)
    - Numerazione progressiva annuale
    - Transizioni di stato consentite
    """

    def __init__(self, billing: Optional[BillingService] = None) -> None:
        self.billing = billing or BillingService()

    async def create_from_period(
        self,
        db: AsyncSession,
        contract_id: uuid.UUID,
        period_start: date,
        invoice_date: Optional[date] = None,
        is_proforma: bool = False,
    ) -> Invoice:
        """
        Genera la fattura di un periodo fatturabile.

        Steps:
        1. Blocca il contratto (SELECT FOR UPDATE) e verifica che sia attivo
        2. Verifica che il periodo non sia già fatturato (billing_key)
        3. Ricalcola i periodi fatturabili alla data fattura: `period_start`
           deve essere l'inizio del primo periodo non fatturato
        4. Costruisce righe e totali (TVA da configurazione)
        5. Calcola la scadenza (termini di pagamento da configurazione)
        6. Assegna il numero progressivo (solo fatture non proforma)
        7. Salva; una violazione di unicità diventa ConflictError

        Args:
            db: Sessione database
            contract_id: UUID del contratto
            period_start: Inizio del periodo da fatturare
            invoice_date: Data fattura (default: oggi)
            is_proforma: Se True genera una proforma

        Returns:
            Invoice: La fattura creata con le righe caricate

        Raises:
            NotFoundError: Contratto inesistente
            BusinessValidationError: Contratto non attivo, periodo non fatturabile
                o non ancora il primo da fatturare, nessuna prestazione
            ConflictError: Periodo già fatturato
        """
        invoice_date = invoice_date or date.today()

        # Step 1
        contract = await self.billing.get_contract(db, contract_id, for_update=True)
        if contract.status != ContractStatus.ACTIF.value:
            raise BusinessValidationError(
                f"Il contratto {contract_id} non è attivo (stato: {contract.status})"
            )

        # Step 2
        billing_key = build_billing_key(contract.id, period_start)
        if not is_proforma:
            existing = await self._get_by_billing_key(db, billing_key)
            if existing is not None:
                raise ConflictError(
                    f"Il periodo che inizia il {period_start} è già fatturato "
                    f"({existing.invoice_number})"
                )

        # Step 3
        periods = await self.billing.get_contract_periods(db, contract, invoice_date)
        period = next((p for p in periods if p.period_start == period_start), None)
        if period is None:
            raise BusinessValidationError(
                f"Nessun periodo fatturabile che inizia il {period_start} "
                f"per il contratto {contract_id}"
            )
        # I periodi si fatturano in ordine: la fattura fissa l'ultima data fatturata
        if period is not periods[0]:
            raise BusinessValidationError(
                f"Periodo precedente non ancora fatturato: fatturare prima il periodo "
                f"che inizia il {periods[0].period_start}"
            )

        # Step 4
        lines = build_invoice_lines(
            period,
            self.billing.contract_snapshot(contract),
            self.billing.site_snapshots(contract),
            [ActivitySnapshot.model_validate(a) for a in contract.activities],
        )
        if not lines:
            raise BusinessValidationError(
                "Nessuna prestazione fatturabile trovata per i siti di questo contratto"
            )
        totals = compute_totals(lines, settings.invoice_vat_rate)

        # Step 5
        due_date = invoice_date + timedelta(days=settings.invoice_payment_terms_days)

        # Step 6
        invoice_number = None
        if not is_proforma:
            invoice_number = await next_sequence_number(
                db,
                Invoice,
                Invoice.invoice_number,
                settings.invoice_number_prefix,
                invoice_date,
            )

        invoice = Invoice(
            contract_id=contract.id,
            client_id=contract.client_id,
            invoice_number=invoice_number,
            invoice_date=invoice_date,
            due_date=due_date,
            period_start_date=period.period_start,
            period_end_date=period.period_end,
            status=InvoiceStatus.PROFORMA.value if is_proforma else InvoiceStatus.DUE.value,
            subtotal=totals.subtotal,
            tax=totals.tax,
            total=totals.total,
            billing_key=None if is_proforma else billing_key,
        )
        for line_number, line in enumerate(lines, start=1):
            invoice.lines.append(
                InvoiceLine(line_number=line_number, **line.model_dump())
            )

        db.add(invoice)

        # Step 7
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.error(f"Errore di integrità durante creazione fattura: {e}")
            raise ConflictError(
                f"Il periodo che inizia il {period_start} è già stato fatturato"
            )

        logger.info(
            "Creata fattura %s per contratto %s, periodo %s - %s, totale %s",
            invoice_number or "proforma", contract.id,
            period.period_start, period.period_end, totals.total,
        )

        return await self.get_by_id(db, invoice.id)

    async def _get_by_billing_key(self, db: AsyncSession, billing_key: str) -> Optional[Invoice]:
        result = await db.execute(select(Invoice).where(Invoice.billing_key == billing_key))
        return result.scalar_one_or_none()

    async def get_by_id(self, db: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
        """
        Recupera una fattura con le righe.

        Raises:
            NotFoundError: Se la fattura non esiste
        """
        result = await db.execute(select(Invoice).where(Invoice.id == invoice_id))
        invoice = result.scalar_one_or_none()

        if not invoice:
            raise NotFoundError(f"Fattura {invoice_id} non trovata")

        return invoice

    async def update_status(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
        new_status: InvoiceStatus,
    ) -> Invoice:
        """
        Cambia lo stato di una fattura secondo le transizioni consentite.

        Una proforma che diventa 'due' riceve numero e billing_key: da quel
        momento il periodo risulta fatturato.

        Raises:
            NotFoundError: Se la fattura non esiste
            BusinessValidationError: Transizione non consentita
            ConflictError: Periodo già fatturato da un'altra fattura
        """
        invoice = await self.get_by_id(db, invoice_id)
        new_status = InvoiceStatus(new_status)

        if not can_transition(invoice.status, new_status.value):
            raise BusinessValidationError(
                f"Transizione di stato non consentita: {invoice.status} -> {new_status.value}"
            )

        if invoice.status == InvoiceStatus.PROFORMA.value:
            invoice.invoice_number = await next_sequence_number(
                db,
                Invoice,
                Invoice.invoice_number,
                settings.invoice_number_prefix,
                invoice.invoice_date,
            )
            if invoice.period_start_date is not None:
                invoice.billing_key = build_billing_key(invoice.contract_id, invoice.period_start_date)

        old_status = invoice.status
        invoice.status = new_status.value

        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.error(f"Errore di integrità durante cambio stato fattura: {e}")
            raise ConflictError("Il periodo di questa proforma è già stato fatturato")

        logger.info("Fattura %s: stato %s -> %s", invoice_id, old_status, new_status.value)
        return await self.get_by_id(db, invoice_id)


invoice_service = InvoiceService()
