"""Shared fixtures for the Bkper CLI test suite."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from bkper_cli.audit import configure_logging
from bkper_cli.config import get_settings
from bkper_cli.models import Book, Transaction


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path):
    """
    Fresh settings and logging for every test.

    Runs from an empty directory so a developer's .env never leaks in,
    and re-binds logging to the current (captured) stderr.
    """
    monkeypatch.chdir(tmp_path)
    for name in (
        "BKPER_ACCESS_TOKEN",
        "BKPER_API_KEY",
        "BKPER_API_URL",
        "BKPER_MERGE_AMOUNT_POLICY",
        "LOG_LEVEL",
        "DEFAULT_OUTPUT_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    configure_logging(level="WARNING")
    yield
    get_settings.cache_clear()


@pytest.fixture
def book() -> Book:
    return Book(id="book-1", name="Company", fractionDigits=2, decimalSeparator="DOT")


def created(day: int) -> datetime:
    """Creation timestamp on the given day of January 2018 (UTC)."""
    return datetime(2018, 1, day, 12, 0, tzinfo=timezone.utc)


def make_transaction(
    id: str,
    description: str = "",
    amount: str | None = None,
    posted: bool = False,
    created_day: int | None = None,
    **kwargs,
) -> Transaction:
    return Transaction(
        id=id,
        description=description,
        amount=Decimal(amount) if amount is not None else None,
        posted=posted,
        created_at=created(created_day) if created_day is not None else None,
        **kwargs,
    )
