"""
Rules engine package.

Defines the rule model, the role compiler and the Ability evaluator.
A role compiles into an ordered rule sequence with every deny ahead of
every allow; an Ability binds that sequence to one principal and
decides queries first-match-wins, defaulting to deny.

Modules of interest:
- models: Rule, conditions, principal, resource instance and decisions.
- compiler: Role policies and deny-first ordering.
- ability: Evaluation algorithm with condition checks.
- factory: Builds Abilities for principals with a compiled rule cache.
"""

from .models import (
    Decision, EvaluationResult, OwnershipContext, Principal, PrincipalRef,
    ResourceInstance, Role, Rule, RuleCondition, RuleConditionOperator,
    RuleEffect, allow, deny, subject
)
from .compiler import RoleCompiler, combine_rules, order_rules
from .ability import Ability
from .factory import AbilityFactory

__all__ = [
    "Ability",
    "AbilityFactory",
    "Decision",
    "EvaluationResult",
    "OwnershipContext",
    "Principal",
    "PrincipalRef",
    "ResourceInstance",
    "Role",
    "RoleCompiler",
    "Rule",
    "RuleCondition",
    "RuleConditionOperator",
    "RuleEffect",
    "allow",
    "combine_rules",
    "deny",
    "order_rules",
    "subject",
]
