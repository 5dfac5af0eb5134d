"""Output shapes requested from the generation backend."""

from __future__ import annotations

import re
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..models import Subsystem, SubsystemList

_SUBSYSTEM_ID_PATTERN = re.compile(r"^[a-z0-9-]+$")


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _strip_all(values: List[str]) -> List[str]:
    return [value.strip() for value in values]


class SignalPathSelection(_Schema):
    paths: List[str] = Field(min_length=1)

    @field_validator("paths")
    @classmethod
    def _strip_paths(cls, value: List[str]) -> List[str]:
        return [path for path in _strip_all(value) if path]


class SubsystemSchema(_Schema):
    id: str
    name: str = Field(min_length=3)
    description: str = Field(min_length=10)
    user_journey: str = Field(min_length=20)
    relevant_paths: List[str] = Field(min_length=1)
    entry_points: List[str] = Field(min_length=1, max_length=3)
    external_services: List[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _normalise_id(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip().lower()
            if not _SUBSYSTEM_ID_PATTERN.match(value):
                raise ValueError("id must match [a-z0-9-]+")
        return value

    @field_validator("name", "description", "user_journey", mode="before")
    @classmethod
    def _strip_text(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("relevant_paths", "entry_points", "external_services")
    @classmethod
    def _strip_items(cls, value: List[str]) -> List[str]:
        return _strip_all(value)

    def to_subsystem(self) -> Subsystem:
        return Subsystem(
            id=self.id,
            name=self.name,
            description=self.description,
            user_journey=self.user_journey,
            relevant_paths=list(self.relevant_paths),
            entry_points=list(self.entry_points),
            external_services=list(self.external_services),
        )


class SubsystemListSchema(_Schema):
    product_summary: str = Field(min_length=10)
    subsystems: List[SubsystemSchema] = Field(min_length=3, max_length=8)

    @field_validator("product_summary", mode="before")
    @classmethod
    def _strip_summary(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _unique_ids(self) -> "SubsystemListSchema":
        ids = [subsystem.id for subsystem in self.subsystems]
        if len(ids) != len(set(ids)):
            raise ValueError("subsystem ids must be unique")
        return self

    def to_subsystem_list(self) -> SubsystemList:
        return SubsystemList(
            product_summary=self.product_summary,
            subsystems=[subsystem.to_subsystem() for subsystem in self.subsystems],
        )


class EvidenceItemSchema(_Schema):
    path: str
    start_line: int
    end_line: int
    rationale: str = ""
    score: float = 0.5


class EvidenceMappingSchema(_Schema):
    evidence: List[EvidenceItemSchema] = Field(default_factory=list)


class WikiDraftSchema(_Schema):
    markdown: str


__all__ = [
    "EvidenceItemSchema",
    "EvidenceMappingSchema",
    "SignalPathSelection",
    "SubsystemListSchema",
    "SubsystemSchema",
    "WikiDraftSchema",
]
