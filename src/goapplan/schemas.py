"""Pydantic schema describing GOAP actions."""

from __future__ import annotations

from typing import Annotated

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from goapplan.models import WorldState, coerce_fact


def _empty_conditions() -> dict[str, bool]:
    return {}


class Action(BaseModel):
    """Named, costed transformation between world states.

    Actions are built up by the caller (``add_precondition`` and
    ``add_postcondition`` mutate them) and then shared by reference with the
    planner, which snapshots their conditions before searching. The name is
    only used for reporting; uniqueness is not enforced.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    name: str = Field(..., description="Identifier used when reporting plans")
    cost: Annotated[float, Field(gt=0, allow_inf_nan=False)] = 1.0
    preconditions: dict[str, bool] = Field(
        default_factory=_empty_conditions,
        validation_alias=AliasChoices("preconditions", "pre_conditions"),
    )
    postconditions: dict[str, bool] = Field(
        default_factory=_empty_conditions,
        validation_alias=AliasChoices("postconditions", "post_conditions"),
    )

    def add_precondition(self, fact: str, value: bool = True) -> Action:  # noqa: FBT001, FBT002
        """Require ``fact`` to hold ``value`` before the action applies."""
        self.preconditions[fact] = coerce_fact(value)
        return self

    def add_postcondition(self, fact: str, value: bool = True) -> Action:  # noqa: FBT001, FBT002
        """Assert ``fact`` as ``value`` once the action has been applied."""
        self.postconditions[fact] = coerce_fact(value)
        return self

    def is_applicable(self, state: WorldState) -> bool:
        """Return whether all preconditions are satisfied by the world state."""
        return state.satisfies(self.preconditions)

    def apply(self, state: WorldState) -> WorldState:
        """Return the successor state with the postconditions overlaid."""
        return state.overlay(self.postconditions)
