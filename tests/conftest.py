"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and installs the in-memory Supabase fake for
every test that asks for `fake_db`.
"""

import sys
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterator, List

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.product import Product  # noqa: E402
from domain.ticket import Ticket  # noqa: E402
from domain.user import User, UserRole  # noqa: E402
from repositories.client import set_supabase  # noqa: E402
from repositories.product_repository import create_product  # noqa: E402
from repositories.user_repository import create_user  # noqa: E402
from tests.fakes import FakeSupabase  # noqa: E402


@pytest.fixture
def fake_db() -> Iterator[FakeSupabase]:
    db = FakeSupabase()
    set_supabase(db)  # type: ignore[arg-type]
    yield db
    set_supabase(None)


@pytest.fixture
def make_product(fake_db: FakeSupabase) -> Callable[..., Product]:
    counter = iter(range(1, 10_000))

    def _make(
        price: str = "10.00",
        stock: int = 10,
        status: bool = True,
        title: str = "",
        category: str = "general",
    ) -> Product:
        n = next(counter)
        return create_product(
            title=title or f"Product {n}",
            code=f"SKU-{n:04d}",
            price=Decimal(price),
            stock=stock,
            category=category,
            status=status,
        )

    return _make


@pytest.fixture
def make_user(fake_db: FakeSupabase) -> Callable[..., User]:
    counter = iter(range(1, 10_000))

    def _make(role: UserRole = UserRole.USER, first_name: str = "Ana") -> User:
        return create_user(f"buyer{next(counter)}@example.com", first_name, role=role)

    return _make


class RecordingNotifier:
    """Collects confirmation calls instead of sending email."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def __call__(self, email: str, ticket: Ticket, display_name: str, products) -> None:
        self.calls.append((email, ticket, display_name, products))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
