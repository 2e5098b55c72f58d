"""
Unit tests per IndexService.
"""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.exceptions import BusinessValidationError, DuplicateError
from app.schemas.index import IndexCreate, IndexValueCreate
from app.services.index_service import IndexService


def orm_index(code, formula=None, decimals=None):
    return MagicMock(
        id=uuid.uuid4(),
        code=code,
        type="calculated" if formula else "standard",
        formula=formula,
        decimals=decimals,
    )


def orm_value(index, period, value):
    return MagicMock(
        id=uuid.uuid4(),
        index_id=index.id,
        period=period,
        value=Decimal(value),
        source="CRE",
        comment=None,
    )


class TestCreateIndex:
    """Catalogo degli indici."""

    @pytest.mark.asyncio
    async def test_create_calculated_index(self, mock_db, result_factory):
        """Test formula che referenzia solo indici esistenti."""
        peg = orm_index("PEG")
        mock_db.execute.side_effect = [result_factory([]), result_factory([peg])]
        data = IndexCreate(code="MARGE", label="Marge", type="calculated", formula=" PEG * 1.1 ", decimals=2)

        index = await IndexService().create(mock_db, data)

        assert index.code == "MARGE"
        assert index.type == "calculated"
        assert index.formula == "PEG * 1.1"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_formula_with_unknown_code(self, mock_db, result_factory):
        mock_db.execute.side_effect = [result_factory([]), result_factory([orm_index("PEG")])]
        data = IndexCreate(code="MARGE", label="Marge", type="calculated", formula="PEG * BRENT")

        with pytest.raises(BusinessValidationError):
            await IndexService().create(mock_db, data)

        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_code(self, mock_db, result_factory):
        mock_db.execute.return_value = result_factory([orm_index("PEG")])

        with pytest.raises(DuplicateError):
            await IndexService().create(mock_db, IndexCreate(code="PEG", label="PEG"))


class TestIndexValues:
    """Valori registrati e calcolati."""

    @pytest.mark.asyncio
    async def test_create_value_on_calculated_index(self, mock_db):
        service = IndexService()
        service.get_by_id = AsyncMock(return_value=orm_index("MARGE", formula="PEG * 1.1"))

        with pytest.raises(BusinessValidationError):
            await service.create_value(mock_db, uuid.uuid4(), IndexValueCreate(period="2025-01", value="40"))

    @pytest.mark.asyncio
    async def test_create_duplicate_value(self, mock_db, result_factory):
        peg = orm_index("PEG")
        service = IndexService()
        service.get_by_id = AsyncMock(return_value=peg)
        mock_db.execute.return_value = result_factory([orm_value(peg, "2025-01", "40")])

        with pytest.raises(DuplicateError):
            await service.create_value(mock_db, peg.id, IndexValueCreate(period="2025-01", value="41"))

    @pytest.mark.asyncio
    async def test_create_value(self, mock_db, result_factory):
        """Test valore con virgola decimale."""
        peg = orm_index("PEG")
        service = IndexService()
        service.get_by_id = AsyncMock(return_value=peg)
        mock_db.execute.return_value = result_factory([])

        value = await service.create_value(mock_db, peg.id, IndexValueCreate(period="2025-01", value="42,5"))

        assert value.value == Decimal("42.5")
        assert value.period == "2025-01"

    @pytest.mark.asyncio
    async def test_get_calculated_values(self, mock_db, result_factory):
        """Test valori di un indice calcolato prodotti a ogni lettura."""
        peg = orm_index("PEG")
        marge = orm_index("MARGE", formula="PEG * 1.1", decimals=2)
        service = IndexService()
        service.get_by_id = AsyncMock(return_value=marge)
        service.get_all = AsyncMock(return_value=[peg, marge])
        mock_db.execute.return_value = result_factory(
            [orm_value(peg, "2025-01", "40"), orm_value(peg, "2025-02", "42")]
        )

        values = await service.get_values(mock_db, marge.id, start="2025-02")

        assert [(v.period, v.value, v.source) for v in values] == [("2025-02", Decimal("46.20"), "Calculé")]
        assert values[0].id == f"calc-{marge.id}-2025-02"

    @pytest.mark.asyncio
    async def test_get_standard_values(self, mock_db, result_factory):
        peg = orm_index("PEG")
        service = IndexService()
        service.get_by_id = AsyncMock(return_value=peg)
        mock_db.execute.return_value = result_factory(
            [orm_value(peg, "2025-02", "42"), orm_value(peg, "2025-01", "40")]
        )

        values = await service.get_values(mock_db, peg.id)

        assert [v.period for v in values] == ["2025-01", "2025-02"]
        assert values[0].source == "CRE"
