"""
Ability factory for the authorization engine.
"""

import threading
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .ability import Ability
from .compiler import RoleCompiler, RuleList
from .models import OwnershipContext, Principal, Role

CacheKey = Tuple[Role, Optional[OwnershipContext]]


class AbilityFactory:
    """Builds Abilities for authenticated principals.

    Compiled rule sequences depend only on (role, ownership context), so
    they are cached and shared between Abilities. The cache is bounded
    and evicts least recently used entries.
    """

    def __init__(
        self,
        compiler: Optional[RoleCompiler] = None,
        cache_size: int = 128,
        metrics: Optional[MetricsCollector] = None,
        log_decisions: bool = False,
    ):
        self.logger = get_logger("authz.ability_factory")
        self.compiler = compiler or RoleCompiler()
        self.cache_size = cache_size
        self.metrics = metrics
        self.log_decisions = log_decisions
        self._rule_cache: "OrderedDict[CacheKey, RuleList]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def for_principal(self, principal: Principal, context: Optional[OwnershipContext] = None) -> Ability:
        """Build the Ability of an authenticated principal."""
        rules = self.rules_for_role(principal.role, context)

        ability = Ability(
            principal,
            rules,
            registry=self.compiler.registry,
            metrics=self.metrics,
            log_decisions=self.log_decisions,
        )

        self.logger.info(
            "Ability created",
            principal_id=principal.id,
            role=principal.role.value,
            rule_count=len(rules)
        )
        return ability

    def rules_for_role(self, role: Role, context: Optional[OwnershipContext] = None) -> RuleList:
        """Get the compiled rules of a role, compiling on first use."""
        # An empty context compiles to the same rules as no context
        if context is not None and not context.owned_resource_ids:
            context = None
        key = (Role(role), context)

        with self._lock:
            rules = self._rule_cache.get(key)
            if rules is not None:
                self._rule_cache.move_to_end(key)
                self._hits += 1

        if rules is not None:
            self.logger.debug("Rule cache hit", role=key[0].value)
            self._record_cache_lookup(hit=True)
            return rules

        rules = self.compiler.compile(key[0], context)
        self._record_cache_lookup(hit=False)
        if self.metrics:
            self.metrics.record_compilation(key[0].value)

        with self._lock:
            self._misses += 1
            if self.cache_size > 0:
                self._rule_cache[key] = rules
                self._rule_cache.move_to_end(key)
                while len(self._rule_cache) > self.cache_size:
                    self._rule_cache.popitem(last=False)

        return rules

    def clear_cache(self):
        """Drop every cached rule sequence."""
        with self._lock:
            self._rule_cache.clear()
        self.logger.info("Rule cache cleared")

    def cache_info(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            return {
                "size": len(self._rule_cache),
                "max_size": self.cache_size,
                "hits": self._hits,
                "misses": self._misses,
            }

    def _record_cache_lookup(self, hit: bool):
        if self.metrics:
            self.metrics.record_cache_lookup(hit)
