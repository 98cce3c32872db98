"""
Ability: the compiled, queryable permission set of one principal.
"""

import time
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from shared.logging import get_logger
from shared.errors import (
    AuthorizationError, MissingResourceAttribute, UnknownActionOrSubject, ValidationError
)
from shared.metrics import MetricsCollector
from ..subjects.registry import DEFAULT_REGISTRY, SubjectRegistry
from .models import (
    Rule, RuleCondition, RuleConditionOperator, Principal, ResourceInstance,
    Decision, EvaluationResult, PrincipalRef
)

Subject = Union[str, ResourceInstance]

# A condition whose principal references have been resolved
BoundCondition = Tuple[RuleCondition, Any]


class Ability:
    """Permission set for one principal, evaluated first-match-wins.

    Rules are scanned in the order given; the compiler guarantees deny
    rules come first. The first rule matching the action (or ``manage``),
    the subject type, the requested field and its conditions decides.
    No match means deny.

    Type-level queries (a subject type string instead of a resource
    instance) treat a conditional allow as matching, since it grants the
    action for at least some instances, and skip conditional denies,
    which only carve exceptions out of concrete instances.
    """

    def __init__(
        self,
        principal: Principal,
        rules: Sequence[Rule],
        registry: SubjectRegistry = DEFAULT_REGISTRY,
        metrics: Optional[MetricsCollector] = None,
        log_decisions: bool = False,
    ):
        self.logger = get_logger("authz.ability")
        self._principal = principal
        self._rules: Tuple[Rule, ...] = tuple(rules)
        self._registry = registry
        self._metrics = metrics
        self._log_decisions = log_decisions

        # Principal references are resolved once, here
        self._bound: Dict[str, Tuple[Tuple[Rule, Tuple[BoundCondition, ...]], ...]] = {}
        by_subject: Dict[str, List[Tuple[Rule, Tuple[BoundCondition, ...]]]] = {}
        for rule in self._rules:
            bound = tuple(
                (condition, self._resolve_value(condition.value))
                for condition in rule.conditions
            )
            for subject_type in rule.subject_types:
                by_subject.setdefault(subject_type, []).append((rule, bound))
        for subject_type, entries in by_subject.items():
            self._bound[subject_type] = tuple(entries)

    @property
    def principal(self) -> Principal:
        return self._principal

    @property
    def principal_id(self) -> str:
        return self._principal.id

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    def evaluate(self, action: str, subject: Subject, field: Optional[str] = None) -> Decision:
        """Decide a single authorization query."""
        return self.explain(action, subject, field).decision

    def can(self, action: str, subject: Subject, field: Optional[str] = None) -> bool:
        return self.evaluate(action, subject, field) is Decision.ALLOW

    def cannot(self, action: str, subject: Subject, field: Optional[str] = None) -> bool:
        return not self.can(action, subject, field)

    def authorize(self, action: str, subject: Subject, field: Optional[str] = None) -> EvaluationResult:
        """Evaluate and raise AuthorizationError unless the action is allowed."""
        result = self.explain(action, subject, field)
        if not result.allowed:
            subject_type, _ = self._split_subject(subject)
            raise AuthorizationError(
                f"Principal may not {action} {subject_type}",
                {
                    "principal_id": self.principal_id,
                    "action": action,
                    "subject_type": subject_type,
                    "field": field,
                    "reason": result.reason,
                    "matched_rule": result.matched_rule,
                }
            )
        return result

    def explain(self, action: str, subject: Subject, field: Optional[str] = None) -> EvaluationResult:
        """Decide a query and report which rule decided it."""
        start_time = time.perf_counter()
        subject_type, instance = self._split_subject(subject)
        self._validate_query(action, subject_type, field)

        try:
            rule = self._first_match(action, subject_type, instance, field)
        except MissingResourceAttribute as e:
            self.logger.warning(
                "Missing resource attribute",
                principal_id=self.principal_id,
                action=action,
                subject_type=subject_type,
                attribute=e.attribute,
                rule_id=e.rule_id
            )
            self._record_error("missing_resource_attribute")
            raise

        if rule is None:
            result = EvaluationResult(
                decision=Decision.DENY,
                reason="No applicable rules matched"
            )
        else:
            result = EvaluationResult(
                decision=Decision.DENY if rule.is_inverted else Decision.ALLOW,
                reason=rule.reason or f"Rule '{rule.rule_id}' matched",
                matched_rule=rule.rule_id
            )

        log = self.logger.info if self._log_decisions else self.logger.debug
        log(
            "Authorization decision",
            principal_id=self.principal_id,
            action=action,
            subject_type=subject_type,
            field=field,
            decision=result.decision.value,
            rule_id=result.matched_rule
        )

        if self._metrics:
            self._metrics.record_decision(
                subject_type, action, result.decision.value,
                time.perf_counter() - start_time
            )

        return result

    def relevant_rule_for(self, action: str, subject: Subject, field: Optional[str] = None) -> Optional[Rule]:
        """Get the rule that decides a query, if any."""
        subject_type, instance = self._split_subject(subject)
        self._validate_query(action, subject_type, field)
        return self._first_match(action, subject_type, instance, field)

    def rules_for(self, action: str, subject_type: str) -> Tuple[Rule, ...]:
        """Get the rules that may apply to an action on a subject type, in evaluation order."""
        self._validate_query(action, subject_type, None)
        return tuple(
            rule for rule, _ in self._bound.get(subject_type, ())
            if rule.matches_action(action)
        )

    def permitted_fields(self, action: str, subject: Subject) -> Tuple[str, ...]:
        """Get the attributes of a subject the action is allowed on."""
        subject_type, _ = self._split_subject(subject)
        self._validate_query(action, subject_type, None)
        return tuple(
            name for name in sorted(self._registry.attributes_for(subject_type))
            if self.can(action, subject, name)
        )

    def _first_match(
        self,
        action: str,
        subject_type: str,
        instance: Optional[ResourceInstance],
        field: Optional[str],
    ) -> Optional[Rule]:
        for rule, conditions in self._bound.get(subject_type, ()):
            if not rule.matches_action(action) or not rule.matches_field(field):
                continue

            if conditions:
                if instance is None:
                    if rule.is_inverted:
                        continue
                elif not self._conditions_hold(rule, conditions, instance):
                    continue

            return rule
        return None

    def _conditions_hold(
        self,
        rule: Rule,
        conditions: Tuple[BoundCondition, ...],
        instance: ResourceInstance,
    ) -> bool:
        for condition, value in conditions:
            if not instance.has(condition.field):
                raise MissingResourceAttribute(instance.subject_type, condition.field, rule.rule_id)
            if not self._evaluate_condition(condition, instance.get(condition.field), value):
                return False
        return True

    def _evaluate_condition(self, condition: RuleCondition, field_value: Any, value: Any) -> bool:
        """Evaluate a single condition against a resource attribute."""
        operator = condition.operator
        try:
            if operator == RuleConditionOperator.EQUALS:
                return field_value == value

            elif operator == RuleConditionOperator.NOT_EQUALS:
                return field_value != value

            elif operator == RuleConditionOperator.IN:
                return field_value in value

            elif operator == RuleConditionOperator.NOT_IN:
                return field_value not in value

            elif operator == RuleConditionOperator.GREATER_THAN:
                return field_value > value

            elif operator == RuleConditionOperator.LESS_THAN:
                return field_value < value

            elif operator == RuleConditionOperator.CONTAINS:
                return value in field_value

            elif operator == RuleConditionOperator.STARTS_WITH:
                return _as_text(condition, field_value, value).startswith(value)

            elif operator == RuleConditionOperator.ENDS_WITH:
                return _as_text(condition, field_value, value).endswith(value)

        except TypeError as e:
            raise ValidationError(
                f"Attribute '{condition.field}' cannot be compared with operator '{operator.value}'",
                {"attribute": condition.field, "operator": operator.value, "error": str(e)}
            )

        raise ValidationError(
            f"Unknown condition operator '{operator}'",
            {"attribute": condition.field}
        )

    def _resolve_value(self, value: Any) -> Any:
        if isinstance(value, PrincipalRef):
            return self._principal.get_attribute(value.attribute)
        return value

    def _split_subject(self, subject: Subject) -> Tuple[str, Optional[ResourceInstance]]:
        if isinstance(subject, ResourceInstance):
            return subject.subject_type, subject
        if isinstance(subject, str):
            return subject, None
        raise ValidationError(
            "Subject must be a subject type name or a ResourceInstance",
            {"subject": repr(subject)}
        )

    def _validate_query(self, action: str, subject_type: str, field: Optional[str]) -> None:
        try:
            self._registry.validate(action, subject_type)
            if field is not None and field not in self._registry.attributes_for(subject_type):
                raise UnknownActionOrSubject(action, subject_type, {"field": field})
        except UnknownActionOrSubject as e:
            self.logger.warning(
                "Unknown action or subject",
                principal_id=self.principal_id,
                **e.details
            )
            self._record_error("unknown_action_or_subject")
            raise

    def _record_error(self, error_type: str) -> None:
        if self._metrics:
            self._metrics.record_error(error_type)


def _as_text(condition: RuleCondition, field_value: Any, value: Any) -> str:
    if not isinstance(field_value, str) or not isinstance(value, str):
        raise ValidationError(
            f"Attribute '{condition.field}' needs a string for operator '{condition.operator.value}'",
            {"attribute": condition.field, "operator": condition.operator.value}
        )
    return field_value
