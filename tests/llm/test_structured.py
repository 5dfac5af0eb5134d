"""Tests for schema-constrained generation."""

from __future__ import annotations

import pytest

from repowiki.errors import GenerationError
from repowiki.llm.schemas import EvidenceMappingSchema, SignalPathSelection, SubsystemListSchema
from repowiki.llm.structured import StructuredGenerator


class _RecordingRunner:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.calls: list[dict[str, object]] = []

    def run(self, prompt, *, system=None, temperature=None):
        self.calls.append({"prompt": prompt, "system": system, "temperature": temperature})
        return self.reply


def test_generate_appends_schema_and_parses_reply() -> None:
    runner = _RecordingRunner('```json\n{"paths": [" README.md ", "src/app.py"]}\n```')
    generator = StructuredGenerator(runner)

    result = generator.generate("Pick files", SignalPathSelection, temperature=0.1)

    assert result.paths == ["README.md", "src/app.py"]
    call = runner.calls[0]
    assert call["temperature"] == 0.1
    assert call["system"] == StructuredGenerator.SYSTEM_PROMPT
    assert str(call["prompt"]).startswith("Pick files\n\n# OUTPUT FORMAT")
    assert '"paths"' in str(call["prompt"])


def test_parse_accepts_camel_case_keys() -> None:
    reply = '{"evidence": [{"path": "a.py", "startLine": 2, "endLine": 5, "rationale": "r", "score": 0.7}]}'
    mapping = StructuredGenerator.parse(reply, EvidenceMappingSchema)
    assert mapping.evidence[0].start_line == 2
    assert mapping.evidence[0].end_line == 5


def test_parse_rejects_invalid_json() -> None:
    with pytest.raises(GenerationError) as excinfo:
        StructuredGenerator.parse("not json", SignalPathSelection)
    assert excinfo.value.details == {"schema": "SignalPathSelection"}


def test_parse_rejects_schema_mismatch() -> None:
    reply = (
        '{"productSummary": "A storefront app.", "subsystems": ['
        '{"id": "Bad Id!", "name": "Cart", "description": "Cart things here",'
        ' "userJourney": "Shoppers add items to their cart", "relevantPaths": ["a"], "entryPoints": ["a"]}]}'
    )
    with pytest.raises(GenerationError):
        StructuredGenerator.parse(reply, SubsystemListSchema)


def test_subsystem_list_requires_unique_ids() -> None:
    subsystem = (
        '{"id": "cart", "name": "Cart", "description": "Cart things here",'
        ' "userJourney": "Shoppers add items to their cart", "relevantPaths": ["a"], "entryPoints": ["a"]}'
    )
    reply = f'{{"productSummary": "A storefront app.", "subsystems": [{subsystem}, {subsystem}, {subsystem}]}}'
    with pytest.raises(GenerationError):
        StructuredGenerator.parse(reply, SubsystemListSchema)


def test_subsystem_ids_are_normalised() -> None:
    subsystem = (
        '{{"id": " {sid} ", "name": "Cart {sid}", "description": "Cart things here",'
        ' "userJourney": "Shoppers add items to their cart", "relevantPaths": ["a"], "entryPoints": ["a"]}}'
    )
    items = ", ".join(subsystem.format(sid=sid) for sid in ("Cart", "wish-list", "checkout"))
    parsed = StructuredGenerator.parse(
        f'{{"productSummary": "A storefront app.", "subsystems": [{items}]}}', SubsystemListSchema
    )
    assert [item.id for item in parsed.subsystems] == ["cart", "wish-list", "checkout"]
    assert parsed.subsystems[0].external_services == []
