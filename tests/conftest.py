from __future__ import annotations

import logging
from typing import Iterator, List

import pytest

from repowiki.github.client import GitHubClient
from repowiki.llm.schemas import SubsystemListSchema, SubsystemSchema
from repowiki.models import Subsystem
from repowiki.prompting import PromptBuilder
from tests._fixtures.fakes import FakeGitHub

SHOP_FILES = {
    "README.md": "# Shop\n\nA small storefront where customers sign in and buy things.\n",
    "src/auth/login.py": "def login(user, password):\n    check(user)\n    return session(user)\n\n\ndef logout(user):\n    drop(user)\n",
    "src/cart/cart.py": "class Cart:\n    def add(self, item):\n        self.items.append(item)\n",
    "src/checkout/pay.py": "def pay(cart, card):\n    charge(card, cart.total)\n",
    "package-lock.json": "{}",
    "tests/test_cart.py": "def test_cart():\n    pass\n",
    "assets/logo.png": "binary",
}


def make_subsystem(subsystem_id: str, name: str, paths: List[str]) -> Subsystem:
    return Subsystem(
        id=subsystem_id,
        name=name,
        description=f"{name} for storefront customers",
        user_journey=f"A customer uses {name.lower()} while shopping",
        relevant_paths=list(paths),
        entry_points=list(paths[:1]),
    )


def make_subsystem_list(*names: str) -> SubsystemListSchema:
    items = names or ("Customer Sign-In", "Shopping Cart", "Checkout")
    return SubsystemListSchema(
        product_summary="A storefront for browsing and buying products.",
        subsystems=[
            SubsystemSchema(
                id=name.lower().replace(" ", "-"),
                name=name,
                description=f"{name} capability of the store",
                user_journey=f"Shoppers interact with {name} during a visit",
                relevant_paths=["src/auth/login.py"],
                entry_points=["src/auth/login.py"],
            )
            for name in items
        ],
    )


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub(files=dict(SHOP_FILES))


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def github_client(fake_github: FakeGitHub, sleeps: List[float]) -> GitHubClient:
    return GitHubClient(transport=fake_github, sleep=sleeps.append, fetch_concurrency=1)


@pytest.fixture
def prompts() -> PromptBuilder:
    return PromptBuilder()


@pytest.fixture(autouse=True)
def _restore_loggers() -> Iterator[None]:
    """Undo handler changes made by ``configure_logging`` inside a test."""
    names = ("repowiki", "uvicorn", "uvicorn.error", "uvicorn.access")
    saved = {}
    for name in names:
        logger = logging.getLogger(name)
        saved[name] = (list(logger.handlers), logger.level, logger.propagate)
    yield
    for name, (handlers, level, propagate) in saved.items():
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            if handler not in handlers:
                handler.close()
        logger.handlers = handlers
        logger.setLevel(level)
        logger.propagate = propagate
