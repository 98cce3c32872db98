"""
Composition root for the authorization engine.
"""

from typing import Optional

from prometheus_client import CollectorRegistry

from shared.config import AuthzConfig, get_config
from shared.logging import configure_logging, get_logger
from shared.metrics import get_metrics_collector
from .subjects.registry import DEFAULT_REGISTRY, SubjectRegistry
from .rules.compiler import RoleCompiler
from .rules.factory import AbilityFactory


def create_factory(
    config: Optional[AuthzConfig] = None,
    registry: SubjectRegistry = DEFAULT_REGISTRY,
    metrics_registry: Optional[CollectorRegistry] = None,
) -> AbilityFactory:
    """Create a configured AbilityFactory."""
    config = config or get_config()
    configure_logging(config.service_name, config.log_level)
    logger = get_logger(f"{config.service_name}.bootstrap")

    metrics = None
    if config.enable_metrics:
        metrics = get_metrics_collector(config.service_name, metrics_registry)

    factory = AbilityFactory(
        compiler=RoleCompiler(registry),
        cache_size=config.rule_cache_size,
        metrics=metrics,
        log_decisions=config.log_decisions,
    )

    logger.info(
        "Authorization engine ready",
        env=config.env,
        subject_types=list(registry.subject_types()),
        rule_cache_size=config.rule_cache_size,
        metrics_enabled=metrics is not None
    )
    return factory
