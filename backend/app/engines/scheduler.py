"""
Billing Scheduler
Progetto: Energy Billing (Gestionale Contratti Energia)

Determina, per un contratto, i periodi di fatturazione scaduti e non
ancora fatturati e l'importo HT dovuto per ciascuno.

Funzioni pure: nessun I/O, nessuno stato condiviso. Il chiamante fornisce
snapshot già caricati e decide quando ricalcolare.
"""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from app.engines.periods import (
    billing_factor,
    clamp,
    day_after,
    normalize_schedule,
    period_end,
)
from app.schemas.billing import (
    BillablePeriod,
    ContractSnapshot,
    InvoiceSnapshot,
    SiteSnapshot,
)
from app.schemas.contract import BillingSchedule, ContractStatus

logger = logging.getLogger(__name__)

PROFORMA_STATUS = "proforma"
CENT = Decimal("0.01")


def is_structurally_valid(contract: ContractSnapshot) -> bool:
    """
    Verifica minima di coerenza del contratto.

    Un contratto con fine precedente all'inizio, o con un échéancier
    Variable la cui somma non vale 100, non è fatturabile.
    """
    if contract.end_date < contract.start_date:
        return False
    if normalize_schedule(contract.billing_schedule) == BillingSchedule.VARIABLE.value:
        total = sum((entry.percentage for entry in contract.monthly_billing), Decimal("0"))
        if total != Decimal("100"):
            return False
    return True


def last_invoiced_end(contract: ContractSnapshot, invoices: Iterable[InvoiceSnapshot]) -> Optional[date]:
    """Fine periodo più recente tra le fatture non proforma del contratto."""
    ends = [
        inv.period_end_date
        for inv in invoices
        if inv.contract_id == contract.id
        and inv.status != PROFORMA_STATUS
        and inv.period_end_date is not None
    ]
    return max(ends) if ends else None


def next_billing_start(contract: ContractSnapshot, invoices: Iterable[InvoiceSnapshot]) -> date:
    """Giorno successivo all'ultimo periodo fatturato, oppure inizio contratto."""
    last_end = last_invoiced_end(contract, invoices)
    return day_after(last_end) if last_end is not None else contract.start_date


def annual_amount(contract: ContractSnapshot, sites: Iterable[SiteSnapshot]) -> Decimal:
    """
    Somma degli importi annui HT delle prestazioni coperte dal contratto
    sui siti collegati. Nessuna corrispondenza vale zero.
    """
    site_ids = set(contract.site_ids)
    activity_ids = set(contract.activity_ids)
    total = Decimal("0")
    for site in sites:
        if site.id not in site_ids:
            continue
        for entry in site.amounts:
            if entry.activity_id in activity_ids:
                total += entry.amount
    return total


def _variable_share(contract: ContractSnapshot, month: int) -> tuple[Decimal, Optional[int]]:
    for entry in contract.monthly_billing:
        if entry.month == month:
            return entry.percentage / Decimal("100"), entry.day
    return Decimal("0"), None


def compute_billable_periods(
    contract: ContractSnapshot,
    invoices: Iterable[InvoiceSnapshot],
    sites: Iterable[SiteSnapshot],
    as_of: date,
) -> list[BillablePeriod]:
    """
    Calcola i periodi fatturabili di un contratto fino ad `as_of`.

    Algoritmo:
    1. Il primo periodo parte dal giorno dopo l'ultima fattura non proforma
       (o dall'inizio contratto).
    2. Finché l'inizio è precedente sia ad `as_of` sia alla fine contratto:
       calcola la fine secondo l'échéancier, limitata alla fine contratto;
       importo = somma annua delle prestazioni coperte x fattore di prorata.
    3. Il periodo successivo parte dal giorno dopo la fine del precedente.

    Returns:
        list[BillablePeriod]: periodi in ordine cronologico, contigui e
        senza sovrapposizioni. I periodi a importo zero sono inclusi.
    """
    if not is_structurally_valid(contract):
        logger.debug("Contratto %s strutturalmente non valido: nessun periodo", contract.id)
        return []

    invoices = list(invoices)
    schedule = normalize_schedule(contract.billing_schedule)
    yearly = annual_amount(contract, sites)

    periods: list[BillablePeriod] = []
    start = next_billing_start(contract, invoices)

    while start < as_of and start < contract.end_date:
        end = clamp(period_end(start, schedule), contract.end_date)
        if start > end:
            break

        billing_day = None
        if schedule == BillingSchedule.VARIABLE.value:
            factor, billing_day = _variable_share(contract, start.month)
        else:
            factor = billing_factor(schedule)

        periods.append(
            BillablePeriod(
                contract_id=contract.id,
                period_start=start,
                period_end=end,
                billing_schedule=contract.billing_schedule,
                billing_factor=factor,
                amount=(yearly * factor).quantize(CENT, rounding=ROUND_HALF_UP),
                billing_day=billing_day,
            )
        )
        start = day_after(end)

    return periods


def compute_due_periods(
    contracts: Iterable[ContractSnapshot],
    invoices: Iterable[InvoiceSnapshot],
    sites: Iterable[SiteSnapshot],
    as_of: date,
) -> list[BillablePeriod]:
    """
    Periodi fatturabili di tutti i contratti attivi (vista della fatturazione batch).

    Le fatture proforma vengono ignorate; l'ordine è per contratto e,
    all'interno del contratto, cronologico.
    """
    invoices_by_contract: dict = defaultdict(list)
    for inv in invoices:
        if inv.status != PROFORMA_STATUS:
            invoices_by_contract[inv.contract_id].append(inv)

    sites = list(sites)
    results: list[BillablePeriod] = []
    for contract in contracts:
        if contract.status != ContractStatus.ACTIF.value:
            continue
        results.extend(
            compute_billable_periods(
                contract,
                invoices_by_contract.get(contract.id, []),
                sites,
                as_of,
            )
        )
    return results


def next_billing_date(contract: ContractSnapshot, invoices: Iterable[InvoiceSnapshot]) -> date:
    """Data in cui il prossimo periodo diventa fatturabile (fine periodo + 1 giorno)."""
    start = next_billing_start(contract, invoices)
    return day_after(period_end(start, contract.billing_schedule))


def count_contracts_to_invoice(
    contracts: Iterable[ContractSnapshot],
    invoices: Iterable[InvoiceSnapshot],
    as_of: date,
) -> int:
    """Numero di contratti attivi con una fattura da emettere (indicatore dashboard)."""
    invoices = list(invoices)
    count = 0
    for contract in contracts:
        if contract.status != ContractStatus.ACTIF.value:
            continue
        due_on = next_billing_date(contract, invoices)
        if as_of > due_on and due_on < contract.end_date:
            count += 1
    return count
