"""Step registry - ordered onboarding steps per role.

The registry is built once at startup from plain data (role -> ordered step
ids) and is read-only afterwards. The last step of each sequence is terminal.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from onboardgate.engine.errors import StepRegistryError, UnknownStep
from onboardgate.models import Role, StepDefinition

logger = logging.getLogger(__name__)

DEFAULT_STEPS: dict[str, list[str]] = {
    Role.CREATOR.value: ["personal", "categories", "social", "rates"],
    Role.ORGANIZATION.value: ["company", "goals", "preferences"],
}


class StepRegistry:
    """Lookup table for role step sequences."""

    def __init__(self, definitions: Iterable[StepDefinition]):
        by_role: dict[Role, list[StepDefinition]] = {}
        for definition in definitions:
            by_role.setdefault(definition.role, []).append(definition)

        self._steps: dict[Role, tuple[StepDefinition, ...]] = {}
        for role, steps in by_role.items():
            steps.sort(key=lambda s: s.order)
            self._validate_sequence(role, steps)
            self._steps[role] = tuple(steps)

        if not self._steps:
            raise StepRegistryError("Step registry needs at least one role")

    @staticmethod
    def _validate_sequence(role: Role, steps: list[StepDefinition]) -> None:
        orders = [s.order for s in steps]
        if orders != list(range(1, len(steps) + 1)):
            raise StepRegistryError(
                f"Steps for {role.value} must be numbered 1..{len(steps)}, got {orders}"
            )

        ids = [s.id for s in steps]
        if len(set(ids)) != len(ids):
            raise StepRegistryError(f"Duplicate step ids for {role.value}: {ids}")

        terminals = [s.order for s in steps if s.terminal]
        if terminals != [len(steps)]:
            raise StepRegistryError(
                f"Exactly the last step of {role.value} must be terminal, got {terminals}"
            )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, list[str]]) -> "StepRegistry":
        """Build from {role: [step_id, ...]}; the last id of each list is terminal."""
        definitions = []
        for role_name, step_ids in mapping.items():
            try:
                role = Role(role_name)
            except ValueError:
                raise StepRegistryError(f"Unknown role in step registry: {role_name!r}")
            if not isinstance(step_ids, list):
                raise StepRegistryError(
                    f"Steps for {role.value} must be a list of step ids, "
                    f"got {type(step_ids).__name__}"
                )
            if not step_ids:
                raise StepRegistryError(f"Role {role.value} has no steps")
            for index, step_id in enumerate(step_ids, start=1):
                if not isinstance(step_id, str) or not step_id.strip():
                    raise StepRegistryError(
                        f"Step {index} of {role.value} must have a non-empty string id, got {step_id!r}"
                    )
                try:
                    definitions.append(
                        StepDefinition(
                            role=role,
                            order=index,
                            id=step_id,
                            terminal=index == len(step_ids),
                        )
                    )
                except ValidationError as e:
                    raise StepRegistryError(f"Invalid step {step_id!r} for {role.value}: {e}")
        return cls(definitions)

    @classmethod
    def from_file(cls, path: str | Path) -> "StepRegistry":
        """Build from a JSON file with the same shape as DEFAULT_STEPS."""
        try:
            data: Any = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StepRegistryError(f"Cannot read step registry file {path}: {e}")
        if not isinstance(data, dict):
            raise StepRegistryError(f"Step registry file {path} must contain a JSON object")
        return cls.from_mapping(data)

    @classmethod
    def default(cls) -> "StepRegistry":
        return cls.from_mapping(DEFAULT_STEPS)

    def _sequence(self, role: Role | str) -> tuple[StepDefinition, ...]:
        try:
            return self._steps[Role(role)]
        except (KeyError, ValueError):
            raise UnknownStep(str(getattr(role, "value", role)))

    @property
    def roles(self) -> list[Role]:
        return list(self._steps)

    def steps(self, role: Role | str) -> list[StepDefinition]:
        """Return the ordered steps for a role."""
        return list(self._sequence(role))

    def step_count(self, role: Role | str) -> int:
        return len(self._sequence(role))

    def step(self, role: Role | str, order: int) -> StepDefinition:
        """Return step N of a role's flow, or raise UnknownStep."""
        sequence = self._sequence(role)
        if isinstance(order, bool) or not isinstance(order, int) or not 1 <= order <= len(sequence):
            raise UnknownStep(sequence[0].role.value, order)
        return sequence[order - 1]

    def is_terminal(self, role: Role | str, order: int) -> bool:
        return self.step(role, order).terminal

    def terminal_order(self, role: Role | str) -> int:
        return len(self._sequence(role))

    def resolve(self, role: Role | str, ref: int | str) -> StepDefinition:
        """
        Resolve a step reference to its definition.

        ref may be a step order (int or numeric string) or a step id slug.
        """
        sequence = self._sequence(role)
        # str.isdigit() also accepts superscripts and non-ASCII digits
        if isinstance(ref, str) and ref.isascii() and ref.isdigit():
            ref = int(ref)
        if isinstance(ref, int):
            return self.step(role, ref)
        for definition in sequence:
            if definition.id == ref:
                return definition
        raise UnknownStep(sequence[0].role.value, ref)

    def describe(self) -> dict[str, list[str]]:
        """Return {role: [step ids]} for logging and introspection."""
        return {role.value: [s.id for s in steps] for role, steps in self._steps.items()}


def load_registry(steps_file: str | None = None) -> StepRegistry:
    """Load the configured registry, falling back to the built-in flows."""
    if steps_file:
        registry = StepRegistry.from_file(steps_file)
        logger.info(f"Loaded step registry from {steps_file}: {registry.describe()}")
    else:
        registry = StepRegistry.default()
        logger.info(f"Using built-in step registry: {registry.describe()}")
    return registry
