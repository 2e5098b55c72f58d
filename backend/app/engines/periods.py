"""
Aritmetica dei periodi di fatturazione
Progetto: Energy Billing (Gestionale Contratti Energia)

Primitive pure su date: spostamento di N mesi/anni, fine periodo per
échéancier, fattore di prorata, clamp alla fine del contratto.
"""

from calendar import monthrange
from datetime import date, timedelta
from decimal import Decimal

from app.schemas.contract import BillingSchedule

# Mesi coperti da un periodo per ciascun échéancier.
# Variable fattura mese per mese con la quota del suo échéancier.
PERIOD_MONTHS: dict[str, int] = {
    BillingSchedule.ANNUEL.value: 12,
    BillingSchedule.SEMESTRIEL.value: 6,
    BillingSchedule.TRIMESTRIEL.value: 3,
    BillingSchedule.MENSUEL.value: 1,
    BillingSchedule.VARIABLE.value: 1,
}

# Fattore di prorata dell'importo annuo per periodo
BILLING_FACTORS: dict[str, Decimal] = {
    BillingSchedule.ANNUEL.value: Decimal("1"),
    BillingSchedule.SEMESTRIEL.value: Decimal("1") / Decimal("2"),
    BillingSchedule.TRIMESTRIEL.value: Decimal("1") / Decimal("4"),
    BillingSchedule.MENSUEL.value: Decimal("1") / Decimal("12"),
}


def normalize_schedule(schedule: str) -> str:
    """Restituisce l'échéancier riconosciuto, oppure Annuel per valori sconosciuti."""
    value = schedule.value if isinstance(schedule, BillingSchedule) else schedule
    if value in PERIOD_MONTHS:
        return value
    return BillingSchedule.ANNUEL.value


def add_months(d: date, months: int) -> date:
    """
    Sposta una data di N mesi di calendario.

    Il giorno viene limitato all'ultimo giorno del mese di arrivo
    (31 gennaio + 1 mese = 28/29 febbraio).
    """
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, monthrange(year, month)[1])
    return date(year, month, day)


def add_years(d: date, years: int) -> date:
    """Sposta una data di N anni (29 febbraio -> 28 febbraio negli anni non bisestili)."""
    return add_months(d, 12 * years)


def day_after(d: date) -> date:
    return d + timedelta(days=1)


def clamp(d: date, limit: date) -> date:
    return min(d, limit)


def period_end(start: date, schedule: str) -> date:
    """Fine (inclusiva) del periodo che inizia a `start`: start + durata - 1 giorno."""
    schedule = normalize_schedule(schedule)
    if schedule == BillingSchedule.ANNUEL.value:
        end = add_years(start, 1)
    else:
        end = add_months(start, PERIOD_MONTHS[schedule])
    return end - timedelta(days=1)


def billing_factor(schedule: str) -> Decimal:
    """
    Quota dell'importo annuo attribuita a un periodo.

    Per Variable il fattore dipende dal mese e viene calcolato dallo scheduler.
    """
    return BILLING_FACTORS.get(normalize_schedule(schedule), Decimal("1"))
