"""
Aggregazione degli importi in righe fattura
Progetto: Energy Billing (Gestionale Contratti Energia)

Trasforma un periodo fatturabile in righe fattura:
- multi-site: una riga per (sito, prestazione coperta)
- global: una riga per prestazione, sommata su tutti i siti
Calcola inoltre i totali e le righe negative degli avoirs.
"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from app.schemas.billing import (
    ActivitySnapshot,
    BillablePeriod,
    ContractSnapshot,
    SiteSnapshot,
)
from app.schemas.contract import InvoicingType
from app.schemas.invoice import InvoiceLineBase, InvoiceTotals

CENT = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _fr_date(d: date) -> str:
    return d.strftime("%d/%m/%Y")


def period_label(period: BillablePeriod) -> str:
    return f"Période du {_fr_date(period.period_start)} au {_fr_date(period.period_end)}"


def build_invoice_lines(
    period: BillablePeriod,
    contract: ContractSnapshot,
    sites: Iterable[SiteSnapshot],
    activities: Iterable[ActivitySnapshot],
    invoicing_type: Optional[str] = None,
) -> list[InvoiceLineBase]:
    """
    Righe fattura del periodo.

    Sono considerate solo le prestazioni esistenti nel catalogo e coperte
    dal contratto, sui siti collegati al contratto. Ogni importo annuo è
    moltiplicato per il fattore di prorata del periodo.
    """
    invoicing_type = invoicing_type or contract.invoicing_type
    activity_map = {a.id: a for a in activities}
    covered = set(contract.activity_ids)
    site_ids = set(contract.site_ids)
    factor = period.billing_factor
    label = period_label(period)

    contract_sites = [s for s in sites if s.id in site_ids]

    if invoicing_type == InvoicingType.GLOBAL.value:
        aggregated: dict = {}
        for site in contract_sites:
            for entry in site.amounts:
                activity = activity_map.get(entry.activity_id)
                if activity is None or activity.id not in covered:
                    continue
                aggregated.setdefault(activity.id, [activity, Decimal("0")])
                aggregated[activity.id][1] += entry.amount * factor

        lines = []
        for activity, total in aggregated.values():
            total = _money(total)
            lines.append(
                InvoiceLineBase(
                    description=f"Prestation: {activity.label} ({period.billing_schedule}) - {label}",
                    quantity=Decimal("1"),
                    unit_price=total,
                    total=total,
                    activity_code=activity.code,
                )
            )
        return lines

    lines = []
    for site in contract_sites:
        for entry in site.amounts:
            activity = activity_map.get(entry.activity_id)
            if activity is None or activity.id not in covered:
                continue
            total = _money(entry.amount * factor)
            lines.append(
                InvoiceLineBase(
                    description=(
                        f"Prestation: {activity.label} ({period.billing_schedule}) "
                        f"- Site: {site.name} - {label}"
                    ),
                    quantity=Decimal("1"),
                    unit_price=total,
                    total=total,
                    site_id=site.id,
                    activity_code=activity.code,
                )
            )
    return lines


def compute_totals(lines: Iterable[InvoiceLineBase], vat_rate: Decimal) -> InvoiceTotals:
    """Imponibile, TVA (vat_rate in percentuale) e totale, arrotondati al centesimo."""
    subtotal = _money(sum((line.total for line in lines), Decimal("0")))
    tax = _money(subtotal * vat_rate / Decimal("100"))
    return InvoiceTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


def negate_lines(invoice_number: str, lines: Iterable[InvoiceLineBase]) -> list[InvoiceLineBase]:
    """Righe di avoir: importi negativi e riferimento alla fattura d'origine."""
    return [
        InvoiceLineBase(
            description=f"Avoir sur facture {invoice_number}: {line.description}",
            quantity=line.quantity,
            unit_price=-abs(line.unit_price),
            total=-abs(line.total),
            site_id=line.site_id,
            activity_code=line.activity_code,
        )
        for line in lines
    ]
