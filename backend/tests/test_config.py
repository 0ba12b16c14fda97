"""Configuration and plan catalog tests."""

import pytest
import structlog
import yaml
from pydantic import ValidationError

from chatflow.config.plans import (
    DEFAULT_PLANS,
    FREE_PLAN,
    CompactionStrategy,
    PlanCatalog,
    PlanType,
    RoutingTier,
)
from chatflow.config.settings import CoreSettings, RoutingSettings
from chatflow.core.exceptions import ConfigurationError
from chatflow.core.logging import configure_logging
from chatflow.types import Message, MessageRole

CATALOG_DATA = {
    "plans": [
        {
            "plan": "starter",
            "smart_routing": False,
            "context_token_budget": 1000,
            "models": [
                {"model_id": "small-model", "display_name": "Small", "tier": "casual"},
            ],
        },
        {
            "plan": "pro",
            "context_token_budget": 6000,
            "compaction_strategy": "smart-summary",
            "models": [
                {"model_id": "small-model", "display_name": "Small", "tier": "casual"},
                {"model_id": "big-model", "display_name": "Big", "tier": "expert", "cost_per_1m": 12.5},
            ],
        },
    ]
}


class TestPlanCatalog:
    """Tests for PlanCatalog."""

    def test_default_catalog_has_every_plan(self, catalog):
        """Test the built-in catalog."""
        assert set(catalog.plans()) == set(PlanType)
        assert catalog.get(FREE_PLAN).smart_routing is False
        assert len(catalog.models_for(FREE_PLAN)) == 1

    def test_from_dict(self):
        """Test building a catalog from plain data."""
        catalog = PlanCatalog.from_dict(CATALOG_DATA)

        pro = catalog.get("pro")
        assert pro.compaction_strategy == CompactionStrategy.SMART_SUMMARY
        assert pro.models[1].tier == RoutingTier.EXPERT
        assert pro.model_ids() == ["small-model", "big-model"]
        assert "pro" in catalog
        assert PlanType.APEX not in catalog
        assert "platinum" not in catalog

    def test_from_yaml(self, tmp_path):
        """Test loading a catalog from YAML."""
        path = tmp_path / "plans.yaml"
        path.write_text(yaml.safe_dump(CATALOG_DATA), encoding="utf-8")

        catalog = PlanCatalog.from_yaml(path)

        assert catalog.get(PlanType.STARTER).pinned_model.model_id == "small-model"
        assert catalog.plan_supports_tier(PlanType.PRO, RoutingTier.EXPERT)
        assert not catalog.plan_supports_tier(PlanType.PRO, RoutingTier.MEDIUM)

    def test_missing_yaml(self, tmp_path):
        """Test that a missing file is a configuration error."""
        with pytest.raises(ConfigurationError):
            PlanCatalog.from_yaml(tmp_path / "missing.yaml")

    def test_invalid_data(self):
        """Test rejection of malformed catalogs."""
        with pytest.raises(ConfigurationError):
            PlanCatalog.from_dict({})

        with pytest.raises(ConfigurationError):
            PlanCatalog.from_dict({"plans": [{"plan": "pro", "models": []}]})

    def test_free_plan_cannot_route(self):
        """Test that the free plan is always pinned."""
        data = {
            "plans": [
                {
                    "plan": "starter",
                    "smart_routing": True,
                    "models": [{"model_id": "m", "display_name": "M", "tier": "casual"}],
                }
            ]
        }

        with pytest.raises(ConfigurationError):
            PlanCatalog.from_dict(data)

    def test_duplicate_plan(self):
        """Test that a plan cannot be defined twice."""
        with pytest.raises(ConfigurationError):
            PlanCatalog(DEFAULT_PLANS + DEFAULT_PLANS[:1])

    def test_unknown_plan_lookup(self, catalog):
        """Test lookup errors."""
        with pytest.raises(ConfigurationError):
            catalog.get("platinum")

    def test_catalog_is_immutable(self, catalog):
        """Test that plan entries cannot be modified."""
        with pytest.raises(ValidationError):
            catalog.get(PlanType.PRO).context_token_budget = 1


class TestSettings:
    """Tests for settings classes."""

    def test_log_level_normalized(self):
        """Test log level normalization."""
        assert CoreSettings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        """Test that unknown levels are rejected."""
        with pytest.raises(ValidationError):
            CoreSettings(log_level="verbose")

    def test_empty_hard_block_message(self):
        """Test that the safety reply cannot be blank."""
        with pytest.raises(ValidationError):
            CoreSettings(hard_block_message="   ")

    def test_env_prefix(self, monkeypatch):
        """Test environment overrides."""
        monkeypatch.setenv("ROUTING_TOKENS_PER_WORD", "2.0")

        assert RoutingSettings().tokens_per_word == 2.0

    def test_configure_logging(self):
        """Test that logging configuration accepts a level."""
        configure_logging("WARNING")

        assert structlog.is_configured()
        configure_logging("DEBUG", json_output=True)
        structlog.reset_defaults()


class TestMessage:
    """Tests for Message helpers."""

    def test_constructors(self):
        """Test role constructors."""
        assert Message.user("a").role == MessageRole.USER
        assert Message.assistant("a").role == MessageRole.ASSISTANT
        assert Message.system("a", important=True).important is True

    def test_to_dict(self):
        """Test serialization."""
        data = Message.user("hello").to_dict()

        assert data["role"] == "user"
        assert data["content"] == "hello"
        assert data["timestamp"] is None
