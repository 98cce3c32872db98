"""
Tests for configuration, logging and engine bootstrap.
"""

import pydantic
import pytest
from prometheus_client import CollectorRegistry

from shared.config import AuthzConfig, get_config
from shared.errors import MissingResourceAttribute
from shared.logging import (
    add_correlation_context, add_service_context, clear_context,
    set_principal_context, set_request_id
)
from service_authz.app.bootstrap import create_factory
from service_authz.app.rules.models import Principal, Role, subject


class TestConfig:
    """Test cases for AuthzConfig."""

    def test_defaults(self, monkeypatch):
        for name in ("AUTHZ_ENV", "AUTHZ_LOG_LEVEL", "AUTHZ_RULE_CACHE_SIZE", "AUTHZ_ENABLE_METRICS"):
            monkeypatch.delenv(name, raising=False)

        config = get_config()

        assert config.env == "local"
        assert config.log_level == "info"
        assert config.service_name == "authz"
        assert config.rule_cache_size == 128
        assert config.enable_metrics is True
        assert config.log_decisions is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("AUTHZ_RULE_CACHE_SIZE", "16")
        monkeypatch.setenv("AUTHZ_ENABLE_METRICS", "false")
        monkeypatch.setenv("AUTHZ_LOG_LEVEL", "debug")

        config = AuthzConfig()

        assert config.rule_cache_size == 16
        assert config.enable_metrics is False
        assert config.log_level == "debug"

    def test_negative_cache_size_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            AuthzConfig(rule_cache_size=-1)


class TestLoggingContext:
    """Test cases for structured logging processors."""

    def test_correlation_context(self):
        request_id = set_request_id()
        set_principal_context("user-1")

        event = add_correlation_context(None, "info", {"event": "x"})

        assert event["request_id"] == request_id
        assert event["principal_id"] == "user-1"

    def test_cleared_context(self):
        set_request_id("req-1")
        clear_context()

        assert add_correlation_context(None, "info", {"event": "x"}) == {"event": "x"}

    def test_service_context(self):
        event = add_service_context(None, "info", {"logger": "authz.ability"})

        assert event["service"] == "authz"


class TestCreateFactory:
    """Test cases for create_factory."""

    def test_default_config_twice(self, monkeypatch):
        monkeypatch.delenv("AUTHZ_ENABLE_METRICS", raising=False)

        first = create_factory(AuthzConfig())
        second = create_factory(AuthzConfig())

        assert first.metrics is not None
        assert first.metrics is second.metrics

    def test_without_metrics(self):
        factory = create_factory(AuthzConfig(enable_metrics=False, rule_cache_size=4))

        assert factory.metrics is None
        assert factory.cache_size == 4

    def test_with_metrics(self):
        registry = CollectorRegistry()
        factory = create_factory(AuthzConfig(enable_metrics=True), metrics_registry=registry)

        ability = factory.for_principal(Principal(id="user-1", role=Role.ADMIN))
        ability.can("read", "Invite")

        assert registry.get_sample_value(
            "authz_decisions_total",
            {"subject_type": "Invite", "action": "read", "decision": "allow"}
        ) == 1.0

    def test_error_response(self):
        factory = create_factory(AuthzConfig(enable_metrics=False, log_decisions=True))
        ability = factory.for_principal(Principal(id="user-1", role=Role.ADMIN))

        with pytest.raises(MissingResourceAttribute) as exc_info:
            ability.can("transfer_ownership", subject("Organization", id="org-1", name="Acme"))

        response = exc_info.value.to_response()
        assert response.code == "MISSING_RESOURCE_ATTRIBUTE"
        assert response.details["attribute"] == "owner_id"
        assert response.details["rule_id"] == "admin.deny-transfer-ownership"
