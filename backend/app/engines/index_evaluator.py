"""
Index Formula Evaluator
Progetto: Energy Billing (Gestionale Contratti Energia)

Calcola, per un indice calcolato, il valore di ogni periodo presente nei
valori registrati: i codici degli altri indici nella formula vengono
sostituiti con il loro valore del periodo e l'espressione risultante
viene valutata.

Regole:
- sostituzione per parola intera, codici più lunghi per primi, così che
  "P1" non alteri mai il token "P12";
- l'indice stesso è escluso dalla sostituzione (nessuna ricorsione);
- un valore mancante per un codice referenziato esclude il periodo;
- l'espressione sostituita deve superare SAFE_EXPRESSION, altrimenti il
  periodo viene escluso;
- la risoluzione è a un solo livello: un indice calcolato referenziato da
  un'altra formula non ha valori registrati, quindi quel periodo fallisce.

L'evaluator non segnala errori al chiamante: l'assenza del valore è l'unico
segnale. Il motivo dell'esclusione viene loggato a livello DEBUG.
"""

import logging
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional

from app.engines.expression import ExpressionError, evaluate, is_safe
from app.schemas.index import (
    IndexSnapshot,
    IndexType,
    IndexValueRead,
    IndexValueSnapshot,
)

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 4
CALCULATED_SOURCE = "Calculé"


def code_pattern(code: str) -> re.Pattern:
    """Regex che trova il codice come parola intera (metacaratteri escapati)."""
    return re.compile(rf"\b{re.escape(code)}\b")


def format_number(value: Decimal) -> str:
    """Notazione posizionale, mai esponenziale (1E+2 -> 100)."""
    return format(value, "f")


def round_value(value: Decimal, decimals: int) -> Decimal:
    return value.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)


def referenced_codes(formula: str, indices: Iterable[IndexSnapshot]) -> list[str]:
    """Codici indice presenti nella formula, dal più lungo al più corto."""
    ordered = sorted(indices, key=lambda idx: len(idx.code), reverse=True)
    return [idx.code for idx in ordered if code_pattern(idx.code).search(formula)]


def substitute(
    formula: str,
    patterns: list[tuple[IndexSnapshot, re.Pattern]],
    lookup: dict,
    period: str,
) -> Optional[str]:
    """
    Sostituisce i codici referenziati con i valori del periodo.

    Returns:
        L'espressione sostituita, oppure None se manca il valore di un
        indice referenziato.
    """
    for idx, pattern in patterns:
        if not pattern.search(formula):
            continue
        value = lookup.get((idx.id, period))
        if value is None:
            logger.debug("Periodo %s: valore mancante per l'indice %s", period, idx.code)
            return None
        text = format_number(value)
        formula = pattern.sub(lambda _match: text, formula)
    return formula


def compute_index_values(
    target: IndexSnapshot,
    indices: Iterable[IndexSnapshot],
    values: Iterable[IndexValueSnapshot],
    default_decimals: int = DEFAULT_DECIMALS,
    source: str = CALCULATED_SOURCE,
) -> list[IndexValueRead]:
    """
    Valori calcolati dell'indice `target` per ogni periodo registrato.

    Args:
        target: indice calcolato da valutare
        indices: catalogo completo degli indici
        values: tutti i valori registrati (periodi "YYYY-MM")
        default_decimals: precisione se l'indice non ne definisce una
        source: sorgente riportata sui valori calcolati

    Returns:
        list[IndexValueRead]: un valore per periodo valido, in ordine
        crescente di periodo. Lista vuota se l'indice non è calcolato o
        non ha formula.
    """
    if target.type != IndexType.CALCULATED.value or not target.formula:
        return []

    lookup: dict = {}
    periods = set()
    for v in values:
        lookup.setdefault((v.index_id, v.period), v.value)
        periods.add(v.period)

    others = sorted(
        (idx for idx in indices if idx.id != target.id),
        key=lambda idx: len(idx.code),
        reverse=True,
    )
    patterns = [(idx, code_pattern(idx.code)) for idx in others]
    decimals = target.decimals if target.decimals is not None else default_decimals

    results: list[IndexValueRead] = []
    for period in sorted(periods):
        expression = substitute(target.formula, patterns, lookup, period)
        if expression is None:
            continue

        if not is_safe(expression):
            logger.debug(
                "Indice %s, periodo %s: formula rifiutata dopo la sostituzione (%r)",
                target.code, period, expression,
            )
            continue

        try:
            value = round_value(evaluate(expression), decimals)
        except (ExpressionError, InvalidOperation) as e:
            logger.debug("Indice %s, periodo %s: valutazione fallita (%s)", target.code, period, e)
            continue

        results.append(
            IndexValueRead(
                id=f"calc-{target.id}-{period}",
                index_id=target.id,
                period=period,
                value=value,
                source=source,
                comment=f"Formule : {target.formula}",
            )
        )

    return results


def index_values_for(
    target: IndexSnapshot,
    indices: Iterable[IndexSnapshot],
    values: Iterable[IndexValueSnapshot],
    start: Optional[str] = None,
    end: Optional[str] = None,
    default_decimals: int = DEFAULT_DECIMALS,
    source: str = CALCULATED_SOURCE,
) -> list:
    """
    Valori da mostrare per un indice: registrati se standard, calcolati se calculated.

    `start` e `end` ("YYYY-MM", inclusivi) limitano i periodi restituiti.
    I valori registrati sono restituiti così come sono (oggetti ORM o snapshot).
    """
    values = list(values)
    if target.type == IndexType.CALCULATED.value:
        selected = compute_index_values(target, indices, values, default_decimals, source)
    else:
        selected = sorted(
            (v for v in values if v.index_id == target.id),
            key=lambda v: v.period,
        )

    return [
        v for v in selected
        if (start is None or v.period >= start) and (end is None or v.period <= end)
    ]
