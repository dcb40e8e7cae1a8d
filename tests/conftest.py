"""Shared fixtures for the loan_payoff tests."""

import logging
import os
from datetime import date
from decimal import Decimal

import pytest

# The web module opens its store at import time; keep it off the disk
os.environ.setdefault("COMPARISON_DATABASE_URL", "sqlite://")


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logging.getLogger("loan_payoff").handlers.clear()


@pytest.fixture
def start() -> date:
    return date(2024, 1, 1)


@pytest.fixture
def mortgage() -> dict:
    """100k at 5 % over 30 years, paid monthly."""
    return {
        "balance": Decimal("100000"),
        "annual_rate_percent": Decimal("5"),
        "periodic_payment": Decimal("536.82"),
        "frequency": "monthly",
        "start_date": date(2024, 1, 1),
    }
