"""
Role compiler for the authorization engine.

Turns a role (and an optional ownership context) into the ordered rule
sequence an Ability evaluates. Every deny rule is placed ahead of every
allow rule, so a scoped exception is never shadowed by a blanket grant
under first-match evaluation.
"""

from typing import Callable, Dict, Iterable, List, Optional, Tuple

from shared.logging import get_logger
from shared.errors import InvalidRuleDefinition
from ..subjects.registry import DEFAULT_REGISTRY, MANAGE, SubjectRegistry
from .models import (
    Rule, RuleCondition, RuleConditionOperator, Role, OwnershipContext,
    allow, deny, owner_condition, not_owner_condition
)

RuleList = Tuple[Rule, ...]


def order_rules(rules: Iterable[Rule]) -> RuleList:
    """Stable partition placing deny rules before allow rules."""
    rules = list(rules)
    return tuple(
        [rule for rule in rules if rule.is_inverted] +
        [rule for rule in rules if not rule.is_inverted]
    )


def combine_rules(*rule_lists: Iterable[Rule]) -> RuleList:
    """Merge several rule lists into one deny-first sequence.

    Rules sharing a rule_id are kept once, at their first occurrence.
    """
    seen = set()
    merged: List[Rule] = []
    for rules in rule_lists:
        for rule in rules:
            if rule.rule_id in seen:
                continue
            seen.add(rule.rule_id)
            merged.append(rule)
    return order_rules(merged)


class RoleCompiler:
    """Compiles roles into ordered rule sequences."""

    def __init__(self, registry: SubjectRegistry = DEFAULT_REGISTRY):
        self.logger = get_logger("authz.role_compiler")
        self.registry = registry
        self._policies: Dict[Role, Callable[[Optional[OwnershipContext]], List[Rule]]] = {
            Role.ADMIN: self._admin_rules,
            Role.MEMBER: self._member_rules,
            Role.BILLING: self._billing_rules,
        }

    def compile(self, role: Role, context: Optional[OwnershipContext] = None) -> RuleList:
        """Compile a role into its ordered rule sequence."""
        try:
            role = Role(role)
        except ValueError:
            raise InvalidRuleDefinition(f"Unknown role '{role}'", {"role": str(role)})

        rules = order_rules(self._policies[role](context))

        self.logger.info(
            "Role compiled",
            role=role.value,
            rule_count=len(rules),
            owned_resources=len(context.owned_resource_ids) if context else 0
        )
        return rules

    def _admin_rules(self, context: Optional[OwnershipContext]) -> List[Rule]:
        # Administrators run the tenant but only owners may change who owns it
        return [
            self._deny(
                "admin.deny-transfer-ownership",
                {"transfer_ownership"}, {"Organization"},
                conditions=(not_owner_condition(),),
                reason="Only the owner may transfer organization ownership"
            ),
            self._deny(
                "admin.deny-organization-update-delete",
                {"update", "delete"}, {"Organization"},
                conditions=(not_owner_condition(),),
                reason="Only the owner may update or delete the organization"
            ),
            self._allow(
                "admin.manage-all",
                {MANAGE}, self.registry.subject_types(),
                reason="Administrators manage every subject"
            ),
        ]

    def _member_rules(self, context: Optional[OwnershipContext]) -> List[Rule]:
        rules = [
            self._allow("member.read-users", {"read"}, {"User"},
                        reason="Members may read users"),
            self._allow("member.create-projects", {"create"}, {"Project"},
                        reason="Members may create projects"),
            self._allow(
                "member.manage-own-projects",
                {MANAGE}, {"Project"},
                conditions=(owner_condition(),),
                reason="Members manage projects they own"
            ),
        ]
        if context and context.owned_resource_ids:
            rules.append(self._allow(
                "member.manage-owned-projects",
                {MANAGE}, {"Project"},
                conditions=(RuleCondition(
                    field="id",
                    operator=RuleConditionOperator.IN,
                    value=frozenset(context.owned_resource_ids),
                    description="Project is listed in the ownership context"
                ),),
                reason="Members manage projects listed as owned"
            ))
        return rules

    def _billing_rules(self, context: Optional[OwnershipContext]) -> List[Rule]:
        return [
            self._allow("billing.manage-billing", {MANAGE}, {"Billing"},
                        reason="Billing users manage billing"),
        ]

    def _allow(self, rule_id, actions, subject_types, **kwargs) -> Rule:
        return allow(rule_id, actions, subject_types, registry=self.registry, **kwargs)

    def _deny(self, rule_id, actions, subject_types, **kwargs) -> Rule:
        return deny(rule_id, actions, subject_types, registry=self.registry, **kwargs)
