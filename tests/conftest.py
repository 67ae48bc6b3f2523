"""
Pytest fixtures for the credit underwriting test suite.

Provides:
- Structured logging configuration and log capture
- Financial model and debt instrument builders
- In-memory and SQLite-backed metric registry stores
- A deterministic clock

No external services are required: the relational registry store runs
against in-memory SQLite.
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from credit_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from credit_kernel.domain.clock import DeterministicClock
from credit_kernel.domain.financial_model import FinancialModel, FinancialPeriod, PeriodType
from credit_kernel.domain.instruments import DebtInstrument, InstrumentSource
from credit_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from credit_services.registry_store import InMemoryRegistryStore, SqlAlchemyRegistryStore

FIXED_TIME = datetime(2024, 6, 30, 9, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture credit_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            run_full_underwrite(request)
            logs = captured_logs()
            assert any(r["message"] == "underwrite_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("credit_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(FIXED_TIME)


# =============================================================================
# Financial model builders
# =============================================================================


def _period(
    period_id: str,
    period_end: date,
    period_type: PeriodType = PeriodType.FYE,
    income: dict | None = None,
    balance: dict | None = None,
    cashflow: dict | None = None,
) -> FinancialPeriod:
    return FinancialPeriod(
        period_id=period_id,
        period_end=period_end,
        type=period_type,
        income=income or {},
        balance=balance or {},
        cashflow=cashflow or {},
    )


@pytest.fixture
def make_period():
    """Factory for a single FinancialPeriod."""
    return _period


@pytest.fixture
def make_model():
    """
    Factory for a one-period FYE model from flat statement dicts.

    Usage::

        model = make_model(income={"revenue": 100}, cashflow={"ebitda": 40})
    """

    def _make(
        income: dict | None = None,
        balance: dict | None = None,
        cashflow: dict | None = None,
        deal_id: str = "deal-001",
        period_type: PeriodType = PeriodType.FYE,
        period_end: date = date(2023, 12, 31),
    ) -> FinancialModel:
        return FinancialModel(
            deal_id=deal_id,
            periods=(
                _period(
                    f"{period_type.value}-{period_end.year}",
                    period_end,
                    period_type,
                    income,
                    balance,
                    cashflow,
                ),
            ),
        )

    return _make


@pytest.fixture
def strong_model():
    """
    Operating company with $1M revenue and $400k EBITDA.

    Balance sheet supports every snapshot ratio; leverage is 2.5x.
    """
    return FinancialModel(
        deal_id="deal-strong",
        periods=(
            _period(
                "FYE-2022",
                date(2022, 12, 31),
                income={"revenue": 900000, "netIncome": 200000, "interest": 45000},
                balance={"cash": 150000, "shortTermDebt": 100000, "longTermDebt": 950000},
                cashflow={"ebitda": 350000},
            ),
            _period(
                "FYE-2023",
                date(2023, 12, 31),
                income={"revenue": 1000000, "netIncome": 250000, "interest": 50000},
                balance={
                    "cash": 200000,
                    "accountsReceivable": 150000,
                    "inventory": 100000,
                    "shortTermDebt": 100000,
                    "longTermDebt": 900000,
                },
                cashflow={"ebitda": 400000},
            ),
        ),
    )


@pytest.fixture
def proposed_term_loan():
    """10-year, $1M, 5.5%, monthly-pay proposed loan."""
    return DebtInstrument(
        id="loan-proposed",
        source=InstrumentSource.PROPOSED,
        principal=Decimal("1000000"),
        rate=Decimal("0.055"),
        amortization_months=120,
        term_months=120,
    )


@pytest.fixture
def existing_loan():
    """Zero-rate $120k loan over 60 months: exactly $24,000 a year."""
    return DebtInstrument(
        id="loan-existing",
        source=InstrumentSource.EXISTING,
        principal=Decimal("120000"),
        rate=Decimal("0"),
        amortization_months=60,
    )


# =============================================================================
# Registry stores
# =============================================================================


@pytest.fixture
def memory_store():
    return InMemoryRegistryStore()


@pytest.fixture
def sql_store():
    """SqlAlchemyRegistryStore over a fresh in-memory SQLite database."""
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    yield SqlAlchemyRegistryStore(get_session_factory())
    reset_engine()


@pytest.fixture(params=["memory", "sql"])
def registry_store(request):
    """Run a test against both registry store backends."""
    if request.param == "memory":
        yield InMemoryRegistryStore()
        return
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    yield SqlAlchemyRegistryStore(get_session_factory())
    reset_engine()
