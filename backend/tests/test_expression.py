"""
Unit tests per il valutatore di espressioni aritmetiche.
"""

from decimal import Decimal

import pytest

from app.engines.expression import ExpressionError, evaluate, is_safe


class TestEvaluate:
    """Quattro operazioni con precedenza e parentesi."""

    @pytest.mark.parametrize(
        "expression, expected",
        [
            ("2 + 3 * 4", Decimal("14")),
            ("(2 + 3) * 4", Decimal("20")),
            ("10 / 4", Decimal("2.5")),
            ("10 - 4 - 3", Decimal("3")),
            ("-3 + 5", Decimal("2")),
            ("--2", Decimal("2")),
            ("2 * -3", Decimal("-6")),
            (".5 + 1.25", Decimal("1.75")),
            ("  42  ", Decimal("42")),
        ],
    )
    def test_evaluate(self, expression, expected):
        assert evaluate(expression) == expected

    def test_result_is_decimal(self):
        """Test nessun errore di virgola mobile (0.1 + 0.2)."""
        assert evaluate("0.1 + 0.2") == Decimal("0.3")


class TestRejectedExpressions:
    """Espressioni non sicure o non calcolabili."""

    @pytest.mark.parametrize(
        "expression",
        [
            "1 / 0",
            "2 ** 3",
            "PEG * 2",
            "__import__('os')",
            "",
            "   ",
            "(1 + 2",
            "1 + 2)",
            "1.2.3",
            "3 +",
        ],
    )
    def test_raises_expression_error(self, expression):
        with pytest.raises(ExpressionError):
            evaluate(expression)

    def test_deep_nesting_is_rejected(self):
        """Test parentesi annidate oltre il limite: ExpressionError, non RecursionError."""
        with pytest.raises(ExpressionError):
            evaluate("(" * 250 + "40" + ")" * 250)

    def test_deep_unary_signs_are_rejected(self):
        with pytest.raises(ExpressionError):
            evaluate("-" * 500 + "40")

    def test_nesting_within_limit(self):
        assert evaluate("(" * 50 + "40" + ")" * 50) == Decimal("40")

    def test_is_safe(self):
        assert is_safe("(40 + 2) * 1.1")
        assert not is_safe("40 * X")
        assert not is_safe("40; 2")
        assert not is_safe("")
