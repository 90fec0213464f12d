"""Core models: the caller-facing world state and planner configuration."""
from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


_FACT_MAP = TypeAdapter(dict[str, bool])
_FACT_VALUE = TypeAdapter(bool)


def _empty_fact_map() -> dict[str, bool]:
    return {}


@dataclass(slots=True)
class WorldState:
    """Mutable partial assignment of fact names to boolean values.

    Facts that are absent are unknown, not false. Equality and hashing depend
    only on the set of ``(fact, value)`` pairs, never on insertion order. The
    planner snapshots states before searching, so mutating a state after it
    was handed to :func:`goapplan.planner.plan` has no effect on the search.
    Do not change a state while it is a set member or a dict key; its hash
    follows its content and the container would lose track of it.

    Values are validated as pydantic booleans, so ``"false"`` or ``0`` mean
    False and anything that is not boolean-like raises ``ValidationError``.
    """

    facts: dict[str, bool] = field(default_factory=_empty_fact_map)

    def __post_init__(self) -> None:
        self.facts = coerce_facts(self.facts)

    @classmethod
    def from_mapping(cls, mapping: Conditions) -> WorldState:
        """Construct a world state by copying the given facts."""
        return cls(facts=dict(_as_mapping(mapping)))

    def set(self, fact: str, value: bool) -> None:  # noqa: FBT001
        """Assert ``fact`` with ``value``, overwriting any previous value."""
        self.facts[fact] = coerce_fact(value)

    def get(self, fact: str) -> bool | None:
        """Return the asserted value for ``fact`` or ``None`` when unknown."""
        return self.facts.get(fact)

    def satisfies(self, other: Conditions) -> bool:
        """Return whether every fact asserted in ``other`` holds here."""
        return self.mismatch_count(other) == 0

    def mismatch_count(self, other: Conditions) -> int:
        """Count the facts of ``other`` that are missing or differ here."""
        return sum(
            1
            for name, value in _as_mapping(other).items()
            if self.facts.get(name) != value
        )

    def overlay(self, other: Conditions) -> WorldState:
        """Return a new state with every fact of ``other`` written over this one."""
        merged = dict(self.facts)
        merged.update(_as_mapping(other))
        return WorldState(facts=merged)

    def copy(self) -> WorldState:
        """Return an independent copy of the state."""
        return WorldState(facts=dict(self.facts))

    def as_dict(self) -> dict[str, bool]:
        """Return the facts as a plain dictionary sorted by fact name."""
        return dict(sorted(self.facts.items()))

    def __contains__(self, fact: object) -> bool:
        return fact in self.facts

    def __iter__(self) -> Iterator[str]:
        return iter(self.facts)

    def __len__(self) -> int:
        return len(self.facts)

    def __hash__(self) -> int:
        """Hash on content so equal states collapse in sets and dict keys."""
        return hash(frozenset(self.facts.items()))


Conditions = Mapping[str, bool] | WorldState


def coerce_fact(value: object) -> bool:
    """Validate a single fact value the way pydantic validates ``bool`` fields."""
    return _FACT_VALUE.validate_python(value)


def coerce_facts(conditions: Mapping[str, object]) -> dict[str, bool]:
    """Validate a fact mapping into a fresh ``{name: bool}`` dictionary."""
    return _FACT_MAP.validate_python(dict(conditions))


def _as_mapping(conditions: Conditions) -> Mapping[str, bool]:
    if isinstance(conditions, WorldState):
        return conditions.facts
    return coerce_facts(conditions)


class HeuristicKind(StrEnum):
    """Remaining-cost estimates understood by the planner."""

    MISMATCH = "mismatch"
    ZERO = "zero"


class PlannerPolicy(BaseModel):
    """Planner configuration for the GOAP A* search."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    heuristic: HeuristicKind = HeuristicKind.MISMATCH
    max_expansions: Annotated[int, Field(ge=1)] | None = None
    reopen_closed: bool = True
