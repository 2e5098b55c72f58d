"""
Unit tests per l'aggregazione delle righe fattura e degli avoirs.
"""

from datetime import date
from decimal import Decimal

import pytest

from app.engines.invoice_lines import build_invoice_lines, compute_totals, negate_lines
from app.schemas.billing import BillablePeriod
from app.schemas.invoice import InvoiceLineBase


@pytest.fixture
def quarter():
    """Primo trimestre 2024, fattore 0,25."""
    return BillablePeriod(
        contract_id="ctr-1",
        period_start=date(2024, 1, 1),
        period_end=date(2024, 3, 31),
        billing_schedule="Trimestriel",
        billing_factor=Decimal("0.25"),
        amount=Decimal("1000.00"),
    )


@pytest.fixture
def two_sites(site_factory):
    return [
        site_factory("site-1", {"act-p1": 4000, "act-p2": 800}, name="Chaufferie Nord"),
        site_factory("site-2", {"act-p1": 2000, "act-p3": 1000}, name="Chaufferie Sud"),
    ]


# ============================================================
# Tests per build_invoice_lines
# ============================================================


class TestBuildInvoiceLines:
    """Righe per sito (multi-site) o per prestazione (global)."""

    def test_multi_site_lines(self, quarter, contract_factory, two_sites, activities):
        """Test una riga per sito e prestazione coperta."""
        contract = contract_factory(site_ids=["site-1", "site-2"], activity_ids=["act-p1", "act-p2"])

        lines = build_invoice_lines(quarter, contract, two_sites, activities)

        assert [(l.site_id, l.activity_code, l.total) for l in lines] == [
            ("site-1", "P1", Decimal("1000.00")),
            ("site-1", "P2", Decimal("200.00")),
            ("site-2", "P1", Decimal("500.00")),
        ]
        assert lines[0].description == (
            "Prestation: Conduite et petit entretien (Trimestriel) "
            "- Site: Chaufferie Nord - Période du 01/01/2024 au 31/03/2024"
        )
        assert lines[0].quantity == Decimal("1")
        assert lines[0].unit_price == lines[0].total

    def test_global_lines(self, quarter, contract_factory, two_sites, activities):
        """Test righe aggregate per prestazione su tutti i siti."""
        contract = contract_factory(
            site_ids=["site-1", "site-2"],
            activity_ids=["act-p1", "act-p2"],
            invoicing_type="global",
        )

        lines = build_invoice_lines(quarter, contract, two_sites, activities)

        assert [(l.activity_code, l.total, l.site_id) for l in lines] == [
            ("P1", Decimal("1500.00"), None),
            ("P2", Decimal("200.00"), None),
        ]
        assert lines[0].description == (
            "Prestation: Conduite et petit entretien (Trimestriel) "
            "- Période du 01/01/2024 au 31/03/2024"
        )

    def test_invoicing_type_override(self, quarter, contract_factory, two_sites, activities):
        contract = contract_factory(site_ids=["site-1", "site-2"])

        lines = build_invoice_lines(quarter, contract, two_sites, activities, invoicing_type="global")

        assert len(lines) == 1
        assert lines[0].total == Decimal("1500.00")

    def test_unlinked_site_is_excluded(self, quarter, contract_factory, two_sites, activities):
        contract = contract_factory(site_ids=["site-2"])

        lines = build_invoice_lines(quarter, contract, two_sites, activities)

        assert [(l.site_id, l.total) for l in lines] == [("site-2", Decimal("500.00"))]

    def test_activity_missing_from_catalog_is_excluded(self, quarter, contract_factory, two_sites, activity_p2):
        """Test prestazione coperta ma assente dal catalogo: nessuna riga."""
        contract = contract_factory(site_ids=["site-1"], activity_ids=["act-p1", "act-p2"])

        lines = build_invoice_lines(quarter, contract, two_sites, [activity_p2])

        assert [l.activity_code for l in lines] == ["P2"]

    def test_no_covered_amounts(self, quarter, contract_factory, two_sites, activities):
        contract = contract_factory(site_ids=["site-1"], activity_ids=["act-p3"])

        assert build_invoice_lines(quarter, contract, two_sites, activities) == []

    def test_line_amounts_rounded_to_cents(self, contract_factory, site_factory, activities):
        """Test importo mensile su 1.000 annui: 83,33."""
        period = BillablePeriod(
            contract_id="ctr-1",
            period_start=date(2024, 1, 1),
            period_end=date(2024, 1, 31),
            billing_schedule="Mensuel",
            billing_factor=Decimal("1") / Decimal("12"),
            amount=Decimal("83.33"),
        )
        contract = contract_factory(billing_schedule="Mensuel")
        sites = [site_factory("site-1", {"act-p1": 1000})]

        lines = build_invoice_lines(period, contract, sites, activities)

        assert lines[0].total == Decimal("83.33")


# ============================================================
# Tests per compute_totals / negate_lines
# ============================================================


def line(total, description="Prestation"):
    return InvoiceLineBase(description=description, unit_price=Decimal(total), total=Decimal(total))


class TestTotals:
    def test_compute_totals(self):
        """Test imponibile, TVA al 10% e totale."""
        totals = compute_totals([line("1000.00"), line("200.00")], Decimal("10"))

        assert totals.subtotal == Decimal("1200.00")
        assert totals.tax == Decimal("120.00")
        assert totals.total == Decimal("1320.00")

    def test_tax_rounded_half_up(self):
        totals = compute_totals([line("0.05")], Decimal("10"))

        assert totals.tax == Decimal("0.01")

    def test_no_lines(self):
        totals = compute_totals([], Decimal("10"))

        assert totals.total == Decimal("0.00")


class TestNegateLines:
    def test_negate_lines(self):
        """Test righe di avoir negative con riferimento alla fattura."""
        lines = negate_lines("FAC-2025-0001", [line("1000.00", "Prestation: P1")])

        assert lines[0].total == Decimal("-1000.00")
        assert lines[0].unit_price == Decimal("-1000.00")
        assert lines[0].description == "Avoir sur facture FAC-2025-0001: Prestation: P1"

    def test_already_negative_stays_negative(self):
        lines = negate_lines("FAC-2025-0002", [line("-50.00")])

        assert lines[0].total == Decimal("-50.00")
