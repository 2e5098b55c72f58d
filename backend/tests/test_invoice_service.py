"""
Unit tests per InvoiceService.

La sessione database è un AsyncMock; BillingService è reale ma con i
metodi di accesso ai dati sostituiti, così che righe e totali vengano
calcolati dagli engine veri.
"""

from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.models import Invoice
from app.schemas.billing import BillablePeriod
from app.schemas.invoice import InvoiceStatus
from app.services.billing_service import BillingService
from app.services.invoice_service import InvoiceService, next_sequence_number

INVOICE_DATE = date(2025, 1, 15)


@pytest.fixture
def year_2024(mock_contract):
    """Periodo annuale 2024 del contratto di test (1.200 HT)."""
    return BillablePeriod(
        contract_id=mock_contract.id,
        period_start=date(2024, 1, 1),
        period_end=date(2024, 12, 31),
        billing_schedule="Annuel",
        billing_factor=Decimal("1"),
        amount=Decimal("1200.00"),
    )


@pytest.fixture
def billing(mock_contract, year_2024):
    billing = BillingService()
    billing.get_contract = AsyncMock(return_value=mock_contract)
    billing.get_contract_periods = AsyncMock(return_value=[year_2024])
    return billing


@pytest.fixture
def service(billing, mock_db):
    service = InvoiceService(billing=billing)
    service._get_by_billing_key = AsyncMock(return_value=None)
    # get_by_id restituisce l'oggetto passato a db.add()
    service.get_by_id = AsyncMock(side_effect=lambda db, invoice_id: mock_db.add.call_args[0][0])
    return service


@pytest.fixture
def sequence():
    with patch(
        "app.services.invoice_service.next_sequence_number",
        new=AsyncMock(return_value="FAC-2025-0001"),
    ) as mocked:
        yield mocked


# ============================================================
# Tests per create_from_period
# ============================================================


class TestCreateFromPeriod:
    """Generazione della fattura di un periodo fatturabile."""

    @pytest.mark.asyncio
    async def test_create_invoice(self, service, billing, mock_db, mock_contract, sequence):
        """Test fattura numerata con righe, TVA al 10% e scadenza a 30 giorni."""
        invoice = await service.create_from_period(
            mock_db, mock_contract.id, date(2024, 1, 1), invoice_date=INVOICE_DATE
        )

        assert invoice.invoice_number == "FAC-2025-0001"
        assert invoice.status == InvoiceStatus.DUE.value
        assert invoice.contract_id == mock_contract.id
        assert invoice.client_id == mock_contract.client_id
        assert invoice.period_start_date == date(2024, 1, 1)
        assert invoice.period_end_date == date(2024, 12, 31)
        assert invoice.subtotal == Decimal("1200.00")
        assert invoice.tax == Decimal("120.00")
        assert invoice.total == Decimal("1320.00")
        assert invoice.due_date == INVOICE_DATE + timedelta(days=30)
        assert invoice.billing_key == f"{mock_contract.id}:2024-01-01"

        assert len(invoice.lines) == 1
        line = invoice.lines[0]
        assert line.line_number == 1
        assert line.total == Decimal("1200.00")
        assert line.site_id == mock_contract.sites[0].id
        assert line.activity_code == "P1"

        billing.get_contract.assert_awaited_once_with(mock_db, mock_contract.id, for_update=True)
        billing.get_contract_periods.assert_awaited_once_with(mock_db, mock_contract, INVOICE_DATE)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_proforma(self, service, mock_db, mock_contract, sequence):
        """Test proforma: nessun numero, nessuna chiave di idempotenza."""
        invoice = await service.create_from_period(
            mock_db, mock_contract.id, date(2024, 1, 1),
            invoice_date=INVOICE_DATE, is_proforma=True,
        )

        assert invoice.status == InvoiceStatus.PROFORMA.value
        assert invoice.invoice_number is None
        assert invoice.billing_key is None
        sequence.assert_not_awaited()
        service._get_by_billing_key.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_period_already_invoiced(self, service, mock_db, mock_contract, sequence):
        """Test periodo già fatturato: ConflictError e nessun salvataggio."""
        service._get_by_billing_key.return_value = MagicMock(invoice_number="FAC-2024-0007")

        with pytest.raises(ConflictError) as exc_info:
            await service.create_from_period(
                mock_db, mock_contract.id, date(2024, 1, 1), invoice_date=INVOICE_DATE
            )

        assert "FAC-2024-0007" in exc_info.value.detail
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_period_not_billable(self, service, billing, mock_db, mock_contract, sequence):
        """Test periodo non fatturabile alla data fattura."""
        billing.get_contract_periods.return_value = []

        with pytest.raises(BusinessValidationError):
            await service.create_from_period(
                mock_db, mock_contract.id, date(2024, 1, 1), invoice_date=INVOICE_DATE
            )

        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_period_start(self, service, mock_db, mock_contract, sequence):
        with pytest.raises(BusinessValidationError):
            await service.create_from_period(
                mock_db, mock_contract.id, date(2024, 2, 1), invoice_date=INVOICE_DATE
            )

    @pytest.mark.asyncio
    async def test_later_period_before_earlier_one(
        self, service, billing, mock_db, mock_contract, year_2024, sequence
    ):
        """Test il 2025 non si fattura finché il 2024 è ancora da fatturare."""
        year_2025 = year_2024.model_copy(
            update={"period_start": date(2025, 1, 1), "period_end": date(2025, 12, 31)}
        )
        billing.get_contract_periods.return_value = [year_2024, year_2025]

        with pytest.raises(BusinessValidationError) as exc_info:
            await service.create_from_period(
                mock_db, mock_contract.id, date(2025, 1, 1), invoice_date=INVOICE_DATE
            )

        assert "2024-01-01" in exc_info.value.detail
        mock_db.add.assert_not_called()
        sequence.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_earliest_of_several_periods(
        self, service, billing, mock_db, mock_contract, year_2024, sequence
    ):
        year_2025 = year_2024.model_copy(
            update={"period_start": date(2025, 1, 1), "period_end": date(2025, 12, 31)}
        )
        billing.get_contract_periods.return_value = [year_2024, year_2025]

        invoice = await service.create_from_period(
            mock_db, mock_contract.id, date(2024, 1, 1), invoice_date=INVOICE_DATE
        )

        assert invoice.period_end_date == date(2024, 12, 31)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["Suspendu", "Terminé"])
    async def test_inactive_contract(self, service, billing, mock_db, mock_contract, sequence, status):
        """Test un contratto sospeso o terminato non viene fatturato."""
        mock_contract.status = status

        with pytest.raises(BusinessValidationError):
            await service.create_from_period(
                mock_db, mock_contract.id, date(2024, 1, 1), invoice_date=INVOICE_DATE
            )

        billing.get_contract_periods.assert_not_awaited()
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_billable_activities(self, service, mock_db, mock_contract, sequence):
        """Test contratto senza prestazioni nel catalogo: nessuna riga."""
        mock_contract.activities = []

        with pytest.raises(BusinessValidationError):
            await service.create_from_period(
                mock_db, mock_contract.id, date(2024, 1, 1), invoice_date=INVOICE_DATE
            )

    @pytest.mark.asyncio
    async def test_contract_not_found(self, service, billing, mock_db, sequence):
        billing.get_contract.side_effect = NotFoundError("Contratto non trovato")

        with pytest.raises(NotFoundError):
            await service.create_from_period(mock_db, "missing", date(2024, 1, 1))

    @pytest.mark.asyncio
    async def test_concurrent_insert_becomes_conflict(self, service, mock_db, mock_contract, sequence):
        """Test violazione di unicità al commit: rollback e ConflictError."""
        mock_db.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate billing_key"))

        with pytest.raises(ConflictError):
            await service.create_from_period(
                mock_db, mock_contract.id, date(2024, 1, 1), invoice_date=INVOICE_DATE
            )

        mock_db.rollback.assert_awaited_once()


# ============================================================
# Tests per next_sequence_number
# ============================================================


class TestNextSequenceNumber:
    """Numerazione progressiva annuale."""

    @staticmethod
    def _results(last_number):
        lock = MagicMock()
        last = MagicMock()
        last.scalar_one_or_none.return_value = last_number
        return [lock, last]

    @pytest.mark.asyncio
    async def test_first_number_of_year(self, mock_db):
        mock_db.execute.side_effect = self._results(None)

        number = await next_sequence_number(
            mock_db, Invoice, Invoice.invoice_number, "FAC", date(2025, 3, 1)
        )

        assert number == "FAC-2025-0001"
        lock_call = mock_db.execute.await_args_list[0]
        assert lock_call.args[1] == {"lock_key": "FAC-2025-"}

    @pytest.mark.asyncio
    async def test_increments_last_number(self, mock_db):
        mock_db.execute.side_effect = self._results("FAC-2025-0041")

        number = await next_sequence_number(
            mock_db, Invoice, Invoice.invoice_number, "FAC", date(2025, 3, 1)
        )

        assert number == "FAC-2025-0042"

    @pytest.mark.asyncio
    async def test_limit_reached(self, mock_db):
        mock_db.execute.side_effect = self._results("FAC-2025-9999")

        with pytest.raises(ConflictError):
            await next_sequence_number(
                mock_db, Invoice, Invoice.invoice_number, "FAC", date(2025, 3, 1)
            )


# ============================================================
# Tests per update_status
# ============================================================


def make_stored_invoice(status, invoice_number="FAC-2025-0003"):
    return MagicMock(
        status=status,
        invoice_number=invoice_number,
        invoice_date=INVOICE_DATE,
        contract_id="ctr-1",
        period_start_date=date(2024, 1, 1),
        billing_key=None,
    )


class TestUpdateStatus:
    """Transizioni di stato della fattura."""

    @pytest.fixture
    def status_service(self, billing):
        return InvoiceService(billing=billing)

    @pytest.mark.asyncio
    async def test_proforma_becomes_due(self, status_service, mock_db, sequence):
        """Test proforma -> due: numero e chiave di idempotenza assegnati."""
        invoice = make_stored_invoice("proforma", invoice_number=None)
        status_service.get_by_id = AsyncMock(return_value=invoice)

        await status_service.update_status(mock_db, "inv-1", InvoiceStatus.DUE)

        assert invoice.status == "due"
        assert invoice.invoice_number == "FAC-2025-0001"
        assert invoice.billing_key == "ctr-1:2024-01-01"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_due_becomes_paid(self, status_service, mock_db, sequence):
        invoice = make_stored_invoice("due")
        status_service.get_by_id = AsyncMock(return_value=invoice)

        await status_service.update_status(mock_db, "inv-1", "paid")

        assert invoice.status == "paid"
        assert invoice.invoice_number == "FAC-2025-0003"
        sequence.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transition_not_allowed(self, status_service, mock_db, sequence):
        """Test una fattura emessa non torna proforma."""
        invoice = make_stored_invoice("paid")
        status_service.get_by_id = AsyncMock(return_value=invoice)

        with pytest.raises(BusinessValidationError):
            await status_service.update_status(mock_db, "inv-1", InvoiceStatus.PROFORMA)

        assert invoice.status == "paid"
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_proforma_period_already_invoiced(self, status_service, mock_db, sequence):
        invoice = make_stored_invoice("proforma", invoice_number=None)
        status_service.get_by_id = AsyncMock(return_value=invoice)
        mock_db.commit.side_effect = IntegrityError("UPDATE", {}, Exception("duplicate billing_key"))

        with pytest.raises(ConflictError):
            await status_service.update_status(mock_db, "inv-1", InvoiceStatus.DUE)

        mock_db.rollback.assert_awaited_once()
