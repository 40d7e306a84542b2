"""
Shared fixtures.

The clock is frozen at 2026-03-15 so numbering and monthly statistics
are deterministic. Password hashing uses few rounds to keep tests fast.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from invoicer.config import InvoicingSettings
from invoicer.models import ClientData, ProductData, UserRegistration
from invoicer.orchestrator import InvoicingService
from invoicer.services import InMemoryStore, Pbkdf2PasswordHasher


class FrozenClock:
    """Callable clock that only moves when a test moves it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 3, 15, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings():
    return InvoicingSettings(_env_file=None, log_json=False)


@pytest.fixture
def store(settings):
    return InMemoryStore(default_country=settings.default_country)


@pytest.fixture
def service(store, settings, clock):
    return InvoicingService(
        store=store,
        settings=settings,
        clock=clock,
        hasher=Pbkdf2PasswordHasher(rounds=1000),
    )


@pytest.fixture
def owner(service):
    result = service.register_user(UserRegistration(
        email="ana@example.com",
        password="secret123",
        first_name="Ana",
        last_name="García",
    ))
    assert result.success
    return result.value


@pytest.fixture
def other_owner(service):
    result = service.register_user(UserRegistration(
        email="bob@example.com",
        password="secret456",
        first_name="Bob",
    ))
    assert result.success
    return result.value


@pytest.fixture
def client(service, owner):
    result = service.create_client(owner.id, ClientData(
        name="Acme S.L.",
        email="billing@acme.es",
        tax_id="B12345678",
    ))
    assert result.success
    return result.value


@pytest.fixture
def product(service, owner):
    result = service.create_product(owner.id, ProductData(
        name="Consulting hour",
        description="Senior consulting",
        unit_price=Decimal("19.99"),
        code="CONS-1",
    ))
    assert result.success
    return result.value
