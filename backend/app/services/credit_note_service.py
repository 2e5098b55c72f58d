"""
Service Layer per gli Avoirs
Progetto: Energy Billing (Gestionale Contratti Energia)

Un avoir storna integralmente una o più fatture dello stesso cliente:
le righe sono copiate con importo negativo e la TVA è la somma negata
delle TVA delle fatture d'origine.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.engines.invoice_lines import negate_lines
from app.models import CreditNote, CreditNoteLine, Invoice
from app.schemas.invoice import InvoiceLineBase, InvoiceStatus
from app.services.invoice_service import next_sequence_number

logger = logging.getLogger(__name__)


class CreditNoteService:
    async def create_from_invoices(
        self,
        db: AsyncSession,
        invoice_ids: Iterable[uuid.UUID],
        reason: str,
        credit_note_date: Optional[date] = None,
    ) -> CreditNote:
        """
        Crea un avoir a storno totale delle fatture indicate.

        Regole:
        - almeno una fattura e un motivo
        - tutte le fatture esistono, nessuna è una proforma
        - tutte le fatture appartengono allo stesso cliente
        - subtotal = somma delle righe negate, tax = -somma(|tax|)

        Raises:
            BusinessValidationError: Richiesta non valida
            NotFoundError: Fattura inesistente
            ConflictError: Numero avoir duplicato
        """
        invoice_ids = list(dict.fromkeys(invoice_ids))
        if not invoice_ids:
            raise BusinessValidationError("Nessuna fattura indicata")
        if not reason or not reason.strip():
            raise BusinessValidationError("Un motivo è obbligatorio per generare un avoir")

        result = await db.execute(select(Invoice).where(Invoice.id.in_(invoice_ids)))
        found = {invoice.id: invoice for invoice in result.scalars().all()}

        missing = [str(i) for i in invoice_ids if i not in found]
        if missing:
            raise NotFoundError(f"Fatture non trovate: {', '.join(missing)}")

        # Ordine della richiesta: la prima fattura determina cliente e contratto
        invoices = [found[i] for i in invoice_ids]

        proformas = [inv for inv in invoices if inv.status == InvoiceStatus.PROFORMA.value]
        if proformas:
            numbers = ", ".join(inv.invoice_number or str(inv.id) for inv in proformas)
            raise BusinessValidationError(
                f"Impossibile generare un avoir: le fatture seguenti sono proforma: {numbers}"
            )

        first = invoices[0]
        if any(inv.client_id != first.client_id for inv in invoices):
            raise BusinessValidationError("Tutte le fatture devono appartenere allo stesso cliente")

        credited_lines: list[InvoiceLineBase] = []
        for invoice in invoices:
            credited_lines.extend(
                negate_lines(
                    invoice.invoice_number,
                    [InvoiceLineBase.model_validate(line) for line in invoice.lines],
                )
            )

        subtotal = sum((line.total for line in credited_lines), Decimal("0"))
        tax = -sum((abs(inv.tax) for inv in invoices), Decimal("0"))
        total = subtotal + tax

        cn_date = credit_note_date or date.today()
        cn_number = await next_sequence_number(
            db,
            CreditNote,
            CreditNote.credit_note_number,
            settings.credit_note_number_prefix,
            cn_date,
        )

        credit_note = CreditNote(
            credit_note_number=cn_number,
            client_id=first.client_id,
            contract_id=first.contract_id,
            credit_note_date=cn_date,
            reason=reason.strip(),
            status=InvoiceStatus.FINALIZED.value,
            subtotal=subtotal,
            tax=tax,
            total=total,
        )
        credit_note.invoices.extend(invoices)
        for line_number, line in enumerate(credited_lines, start=1):
            credit_note.lines.append(
                CreditNoteLine(line_number=line_number, **line.model_dump())
            )

        db.add(credit_note)

        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.error(f"Errore di integrità durante creazione avoir: {e}")
            raise ConflictError("Errore durante la creazione dell'avoir")

        logger.info(
            "Creato avoir %s su %s fatture del cliente %s, totale %s",
            cn_number, len(invoices), first.client_id, total,
        )
        return await self.get_by_id(db, credit_note.id)

    async def get_by_id(self, db: AsyncSession, credit_note_id: uuid.UUID) -> CreditNote:
        result = await db.execute(select(CreditNote).where(CreditNote.id == credit_note_id))
        credit_note = result.scalar_one_or_none()
        if not credit_note:
            raise NotFoundError(f"Avoir {credit_note_id} non trovato")
        return credit_note


credit_note_service = CreditNoteService()
