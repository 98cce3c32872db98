"""
Rule data models for the authorization engine.
"""

from typing import Dict, Any, Optional, FrozenSet, Iterable, Mapping, Tuple, Union
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

from shared.errors import InvalidRuleDefinition, ValidationError
from ..subjects.registry import DEFAULT_REGISTRY, MANAGE, SubjectRegistry


class RuleEffect(str, Enum):
    """Rule effect types."""
    ALLOW = "allow"
    DENY = "deny"


class Decision(str, Enum):
    """Outcome of a single authorization query."""
    ALLOW = "allow"
    DENY = "deny"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOW


class Role(str, Enum):
    """Principal roles, declared in order of precedence."""
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    BILLING = "BILLING"

    @property
    def precedence(self) -> int:
        """Lower value means higher precedence."""
        return list(Role).index(self)


class RuleConditionOperator(str, Enum):
    """Rule condition operators."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    NOT_IN = "not_in"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"


@dataclass(frozen=True)
class PrincipalRef:
    """Placeholder for a principal attribute, resolved when an Ability is built."""
    attribute: str = "id"


ConditionValue = Union[str, int, float, bool, Tuple[Any, ...], FrozenSet[Any], PrincipalRef]


@dataclass(frozen=True)
class RuleCondition:
    """Predicate over one resource attribute."""
    field: str
    operator: RuleConditionOperator
    value: ConditionValue
    description: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.value, list):
            object.__setattr__(self, "value", tuple(self.value))
        if self.operator in (RuleConditionOperator.IN, RuleConditionOperator.NOT_IN):
            if not isinstance(self.value, (tuple, frozenset, PrincipalRef)):
                raise InvalidRuleDefinition(
                    f"Operator '{self.operator.value}' needs a collection value",
                    {"field": self.field, "operator": self.operator.value}
                )

    @property
    def references_principal(self) -> bool:
        return isinstance(self.value, PrincipalRef)


def owner_condition() -> RuleCondition:
    """resource.owner_id == principal.id"""
    return RuleCondition(
        field="owner_id",
        operator=RuleConditionOperator.EQUALS,
        value=PrincipalRef("id"),
        description="Principal owns the resource"
    )


def not_owner_condition() -> RuleCondition:
    """resource.owner_id != principal.id"""
    return RuleCondition(
        field="owner_id",
        operator=RuleConditionOperator.NOT_EQUALS,
        value=PrincipalRef("id"),
        description="Principal does not own the resource"
    )


@dataclass(frozen=True)
class Rule:
    """Authorization rule.

    A rule grants or denies ``actions`` on ``subject_types`` when all of
    its ``conditions`` hold. ``fields`` optionally narrows the rule to
    specific resource attributes. Rules are validated against the subject
    registry on construction and are immutable afterwards.
    """
    rule_id: str
    effect: RuleEffect
    actions: FrozenSet[str]
    subject_types: FrozenSet[str]
    conditions: Tuple[RuleCondition, ...] = ()
    fields: Optional[FrozenSet[str]] = None
    reason: Optional[str] = None
    registry: SubjectRegistry = field(default=DEFAULT_REGISTRY, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "actions", _as_frozenset(self.actions))
        object.__setattr__(self, "subject_types", _as_frozenset(self.subject_types))
        object.__setattr__(self, "conditions", tuple(self.conditions))
        if self.fields is not None:
            object.__setattr__(self, "fields", _as_frozenset(self.fields))
        self._validate()

    def _validate(self):
        details = {"rule_id": self.rule_id}
        if not self.actions:
            raise InvalidRuleDefinition("Rule has no actions", details)
        if not self.subject_types:
            raise InvalidRuleDefinition("Rule has no subject types", details)

        for subject_type in sorted(self.subject_types):
            for action in sorted(self.actions):
                if not self.registry.is_valid(action, subject_type):
                    raise InvalidRuleDefinition(
                        f"Action '{action}' is not defined for subject '{subject_type}'",
                        {**details, "action": action, "subject_type": subject_type}
                    )

            attributes = self.registry.attributes_for(subject_type)
            for condition in self.conditions:
                if condition.field not in attributes:
                    raise InvalidRuleDefinition(
                        f"Condition reads unknown attribute '{condition.field}' of '{subject_type}'",
                        {**details, "attribute": condition.field, "subject_type": subject_type}
                    )
            for name in sorted(self.fields or ()):
                if name not in attributes:
                    raise InvalidRuleDefinition(
                        f"Field '{name}' is not an attribute of '{subject_type}'",
                        {**details, "attribute": name, "subject_type": subject_type}
                    )

    @property
    def is_inverted(self) -> bool:
        return self.effect == RuleEffect.DENY

    @property
    def is_conditional(self) -> bool:
        return bool(self.conditions)

    def matches_action(self, action: str) -> bool:
        return action in self.actions or MANAGE in self.actions

    def matches_subject_type(self, subject_type: str) -> bool:
        return subject_type in self.subject_types

    def matches_field(self, field_name: Optional[str]) -> bool:
        if field_name is None or self.fields is None:
            return True
        return field_name in self.fields


def allow(rule_id: str, actions: Iterable[str], subject_types: Iterable[str], **kwargs) -> Rule:
    """Build an allow rule."""
    return Rule(rule_id=rule_id, effect=RuleEffect.ALLOW, actions=actions,
                subject_types=subject_types, **kwargs)


def deny(rule_id: str, actions: Iterable[str], subject_types: Iterable[str], **kwargs) -> Rule:
    """Build a deny rule."""
    return Rule(rule_id=rule_id, effect=RuleEffect.DENY, actions=actions,
                subject_types=subject_types, **kwargs)


def _as_frozenset(value) -> FrozenSet[str]:
    if isinstance(value, str):
        return frozenset({value})
    return frozenset(value)


class Principal(BaseModel):
    """Authenticated principal being authorized."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Principal ID")
    role: Role = Field(..., description="Principal role")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Extra identity attributes")

    def get_attribute(self, name: str) -> Any:
        """Resolve an identity attribute referenced by a rule condition."""
        if name == "id":
            return self.id
        if name == "role":
            return self.role.value
        if name not in self.attributes:
            raise ValidationError(
                f"Principal is missing attribute '{name}'",
                {"principal_id": self.id, "attribute": name}
            )
        return self.attributes[name]


@dataclass(frozen=True)
class ResourceInstance:
    """Snapshot of a concrete resource handed in by the caller."""
    subject_type: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def has(self, name: str) -> bool:
        return name in self.attributes

    def get(self, name: str) -> Any:
        return self.attributes[name]


def subject(subject_type: str, **attributes) -> ResourceInstance:
    """Tag a set of resource attributes with their subject type."""
    return ResourceInstance(subject_type=subject_type, attributes=attributes)


@dataclass(frozen=True)
class OwnershipContext:
    """Resources the principal is known to own, supplied by the caller."""
    owned_resource_ids: FrozenSet[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "owned_resource_ids", frozenset(self.owned_resource_ids))


@dataclass
class EvaluationResult:
    """Result of rule evaluation."""
    decision: Decision
    reason: Optional[str] = None
    matched_rule: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.decision.allowed
