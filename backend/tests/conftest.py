"""Shared fixtures for chatflow tests."""

from typing import List

import pytest

from chatflow.config.plans import PlanCatalog, default_catalog
from chatflow.config.settings import (
    ClassifierSettings,
    CompactionSettings,
    CoreSettings,
    RoutingSettings,
    ValidationSettings,
)
from chatflow.types import Message


@pytest.fixture
def catalog() -> PlanCatalog:
    return default_catalog()


@pytest.fixture
def core_settings() -> CoreSettings:
    return CoreSettings(generation_timeout_seconds=2.0)


@pytest.fixture
def classifier_settings() -> ClassifierSettings:
    return ClassifierSettings()


@pytest.fixture
def routing_settings() -> RoutingSettings:
    return RoutingSettings(use_tiktoken=False)


@pytest.fixture
def compaction_settings() -> CompactionSettings:
    return CompactionSettings()


@pytest.fixture
def validation_settings() -> ValidationSettings:
    return ValidationSettings()


@pytest.fixture
def long_conversation() -> List[Message]:
    """Thirty alternating turns, each roughly 60 tokens."""
    messages = []
    for i in range(30):
        text = f"Message number {i} talking about the deployment pipeline " + "x" * 200
        if i % 2 == 0:
            messages.append(Message.user(text))
        else:
            messages.append(Message.assistant(text))
    return messages
