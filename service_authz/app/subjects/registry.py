"""
Subject registry for the authorization engine.

The registry is the single source of truth for which actions may be
performed on which subject types, and which resource attributes a rule
condition may read. It is built once at import and never mutated.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Tuple

from shared.errors import UnknownActionOrSubject

MANAGE = "manage"


@dataclass(frozen=True)
class SubjectDefinition:
    """Action vocabulary and attribute shape of one subject type."""
    name: str
    actions: FrozenSet[str]
    attributes: FrozenSet[str]


class SubjectRegistry:
    """Read-only lookup of legal (action, subject type) pairs."""

    def __init__(self, definitions: Iterable[SubjectDefinition]):
        subjects: Dict[str, SubjectDefinition] = {}
        for definition in definitions:
            # manage is legal on every subject type
            subjects[definition.name] = SubjectDefinition(
                name=definition.name,
                actions=definition.actions | {MANAGE},
                attributes=definition.attributes,
            )
        self._subjects: Mapping[str, SubjectDefinition] = MappingProxyType(subjects)

    def is_valid(self, action: str, subject_type: str) -> bool:
        """Check whether an action is defined for a subject type."""
        definition = self._subjects.get(subject_type)
        if definition is None:
            return False
        return action in definition.actions

    def validate(self, action: str, subject_type: str) -> None:
        """Raise UnknownActionOrSubject for an undefined pair."""
        if not self.is_valid(action, subject_type):
            raise UnknownActionOrSubject(action, subject_type)

    def has_subject(self, subject_type: str) -> bool:
        return subject_type in self._subjects

    def actions_for(self, subject_type: str) -> FrozenSet[str]:
        """Get the action vocabulary of a subject type."""
        return self._get(subject_type).actions

    def attributes_for(self, subject_type: str) -> FrozenSet[str]:
        """Get the attribute shape of a subject type."""
        return self._get(subject_type).attributes

    def subject_types(self) -> Tuple[str, ...]:
        return tuple(self._subjects)

    def _get(self, subject_type: str) -> SubjectDefinition:
        definition = self._subjects.get(subject_type)
        if definition is None:
            raise UnknownActionOrSubject(MANAGE, subject_type)
        return definition


DEFAULT_REGISTRY = SubjectRegistry([
    SubjectDefinition(
        name="Organization",
        actions=frozenset({"read", "update", "delete", "transfer_ownership", "export", "invite"}),
        attributes=frozenset({"id", "owner_id", "name", "plan"}),
    ),
    SubjectDefinition(
        name="Project",
        actions=frozenset({"create", "read", "update", "delete", "export"}),
        attributes=frozenset({"id", "owner_id", "organization_id", "name", "visibility"}),
    ),
    SubjectDefinition(
        name="User",
        actions=frozenset({"create", "read", "update", "delete", "invite"}),
        attributes=frozenset({"id", "email", "role", "organization_id"}),
    ),
    SubjectDefinition(
        name="Billing",
        actions=frozenset({"read", "update", "export"}),
        attributes=frozenset({"id", "organization_id", "plan", "owner_id"}),
    ),
    SubjectDefinition(
        name="Invite",
        actions=frozenset({"create", "read", "delete"}),
        attributes=frozenset({"id", "email", "role", "organization_id", "inviter_id"}),
    ),
])
