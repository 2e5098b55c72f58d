"""
Pytest configuration and fixtures per i test di fatturazione e indici.

Gli engine lavorano su snapshot pydantic; i service ricevono oggetti
con gli stessi attributi dei modelli ORM (mock semplici) e una
AsyncSession simulata.
"""

import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.billing import (
    ActivitySnapshot,
    ContractSnapshot,
    InvoiceSnapshot,
    SiteAmountSnapshot,
    SiteSnapshot,
)
from app.schemas.index import IndexSnapshot, IndexValueSnapshot


# ============================================================
# Fixtures per AsyncSession Mock
# ============================================================


@pytest.fixture
def mock_db():
    """Crea un mock di AsyncSession."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    return db


def scalars_result(items):
    """Risultato di db.execute() che restituisce `items` da scalars().all()."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(items)
    result.scalar_one_or_none.return_value = items[0] if items else None
    return result


class FakeSessionFactory:
    """Factory di sessioni async: registra ogni sessione aperta."""

    def __init__(self):
        self.sessions = []

    def __call__(self):
        factory = self

        class _Session:
            async def __aenter__(self):
                factory.sessions.append(self)
                return self

            async def __aexit__(self, exc_type, exc, tb):
                return False

        return _Session()


@pytest.fixture
def session_factory():
    return FakeSessionFactory()


# ============================================================
# Fixtures per Prestazioni, Siti e Contratti (snapshot)
# ============================================================


@pytest.fixture
def activity_p1():
    return ActivitySnapshot(id="act-p1", code="P1", label="Conduite et petit entretien")


@pytest.fixture
def activity_p2():
    return ActivitySnapshot(id="act-p2", code="P2", label="Maintenance préventive")


@pytest.fixture
def activity_p3():
    return ActivitySnapshot(id="act-p3", code="P3", label="Garantie totale")


@pytest.fixture
def activities(activity_p1, activity_p2, activity_p3):
    return [activity_p1, activity_p2, activity_p3]


def make_site(site_id, amounts, name=None, contract_id="ctr-1"):
    """Crea uno SiteSnapshot da un dizionario {activity_id: importo annuo}."""
    return SiteSnapshot(
        id=site_id,
        name=name or f"Site {site_id}",
        contract_id=contract_id,
        amounts=[
            SiteAmountSnapshot(activity_id=activity_id, amount=Decimal(str(amount)))
            for activity_id, amount in amounts.items()
        ],
    )


def make_contract(**kwargs):
    """Crea un ContractSnapshot con valori di default sovrascrivibili."""
    data = {
        "id": "ctr-1",
        "client_id": "cli-1",
        "site_ids": ["site-1"],
        "activity_ids": ["act-p1"],
        "billing_schedule": "Annuel",
        "start_date": date(2024, 1, 1),
        "end_date": date(2026, 12, 31),
        "status": "Actif",
        "invoicing_type": "multi-site",
        "monthly_billing": [],
    }
    data.update(kwargs)
    return ContractSnapshot(**data)


def make_invoice(period_end_date, status="due", contract_id="ctr-1"):
    return InvoiceSnapshot(
        contract_id=contract_id,
        period_end_date=period_end_date,
        status=status,
    )


@pytest.fixture
def site_4000():
    """Sito con importo annuo totale di 4.000 su P1."""
    return make_site("site-1", {"act-p1": "4000"}, name="Chaufferie Nord")


# ============================================================
# Fixtures per Indici (snapshot)
# ============================================================


def make_index(index_id, code, formula=None, decimals=None):
    return IndexSnapshot(
        id=index_id,
        code=code,
        type="calculated" if formula else "standard",
        formula=formula,
        decimals=decimals,
    )


def make_values(index_id, values):
    """Crea IndexValueSnapshot da un dizionario {periodo: valore}."""
    return [
        IndexValueSnapshot(index_id=index_id, period=period, value=Decimal(str(value)))
        for period, value in values.items()
    ]


@pytest.fixture
def peg_index():
    return make_index("idx-peg", "PEG")


@pytest.fixture
def marge_index():
    return make_index("idx-marge", "MARGE", formula="PEG * 1.1", decimals=2)


@pytest.fixture
def peg_values():
    return make_values("idx-peg", {"2025-01": "40", "2025-02": "42"})


# ============================================================
# Mock ORM per i service
# ============================================================


class MockActivity:
    """Mock del modello Activity."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.code = kwargs.get('code', 'P1')
        self.label = kwargs.get('label', 'Conduite et petit entretien')


class MockSiteAmount:
    """Mock del modello SiteAmount."""
    def __init__(self, **kwargs):
        self.activity_id = kwargs.get('activity_id', uuid.uuid4())
        self.amount = kwargs.get('amount', Decimal("1200.00"))


class MockSite:
    """Mock del modello Site."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.name = kwargs.get('name', 'Chaufferie Nord')
        self.contract_id = kwargs.get('contract_id', None)
        self.client_id = kwargs.get('client_id', uuid.uuid4())
        self.amounts = kwargs.get('amounts', [])


class MockContract:
    """Mock del modello Contract con siti e prestazioni caricati."""
    def __init__(self, **kwargs):
        self.id = kwargs.get('id', uuid.uuid4())
        self.client_id = kwargs.get('client_id', uuid.uuid4())
        self.billing_schedule = kwargs.get('billing_schedule', 'Annuel')
        self.start_date = kwargs.get('start_date', date(2024, 1, 1))
        self.end_date = kwargs.get('end_date', date(2026, 12, 31))
        self.status = kwargs.get('status', 'Actif')
        self.invoicing_type = kwargs.get('invoicing_type', 'multi-site')
        self.monthly_billing = kwargs.get('monthly_billing', [])
        self.sites = kwargs.get('sites', [])
        self.activities = kwargs.get('activities', [])

    @property
    def site_ids(self):
        return [s.id for s in self.sites]

    @property
    def activity_ids(self):
        return [a.id for a in self.activities]


@pytest.fixture
def mock_activity():
    return MockActivity()


@pytest.fixture
def mock_contract(mock_activity):
    """Contratto annuale 2024-2026 con un sito da 1.200 su P1."""
    contract_id = uuid.uuid4()
    site = MockSite(
        contract_id=contract_id,
        amounts=[MockSiteAmount(activity_id=mock_activity.id, amount=Decimal("1200.00"))],
    )
    return MockContract(id=contract_id, sites=[site], activities=[mock_activity])


# ============================================================
# Factory come fixture
# ============================================================


@pytest.fixture
def contract_factory():
    return make_contract


@pytest.fixture
def site_factory():
    return make_site


@pytest.fixture
def invoice_factory():
    return make_invoice


@pytest.fixture
def index_factory():
    return make_index


@pytest.fixture
def values_factory():
    return make_values


@pytest.fixture
def result_factory():
    return scalars_result
