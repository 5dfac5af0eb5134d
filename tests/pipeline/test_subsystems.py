"""Tests for subsystem extraction and the naming guardrail."""

from __future__ import annotations

import pytest

from repowiki.errors import InvalidSubsystemNamesError
from repowiki.llm.schemas import SubsystemListSchema
from repowiki.models import RepoFileContent
from repowiki.pipeline.subsystems import extract_subsystems, forbidden_subsystem_names
from repowiki.prompting import PromptBuilder
from tests._fixtures.fakes import FakeGenerator
from tests.conftest import make_subsystem, make_subsystem_list

SIGNALS = [RepoFileContent(path="README.md", content="# Shop\nBuy things.", size=18)]


def test_extract_subsystems_returns_domain_objects(prompts: PromptBuilder) -> None:
    generator = FakeGenerator({SubsystemListSchema: make_subsystem_list()})
    result = extract_subsystems("acme/shop", ["README.md"], SIGNALS, generator=generator, prompts=prompts)

    assert [subsystem.id for subsystem in result.subsystems] == [
        "customer-sign-in",
        "shopping-cart",
        "checkout",
    ]
    assert result.product_summary.startswith("A storefront")
    prompt = generator.calls[0]["prompt"]
    assert "### README.md" in prompt
    assert "Forbidden names: frontend, backend, api" in prompt


def test_forbidden_name_rejects_whole_list(prompts: PromptBuilder) -> None:
    generator = FakeGenerator({SubsystemListSchema: make_subsystem_list("Checkout", "API", "Shopping Cart")})
    with pytest.raises(InvalidSubsystemNamesError) as excinfo:
        extract_subsystems("acme/shop", ["README.md"], SIGNALS, generator=generator, prompts=prompts)

    details = excinfo.value.details
    assert details["offendingNames"] == ["API"]
    assert "api" in details["forbiddenNames"]


def test_forbidden_match_is_exact_and_case_insensitive() -> None:
    subsystems = [
        make_subsystem("frontend", " Frontend ", ["a.py"]),
        make_subsystem("api-keys", "API Keys", ["b.py"]),
    ]
    assert forbidden_subsystem_names(subsystems) == [" Frontend "]
