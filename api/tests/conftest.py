from __future__ import annotations
import pytest
from agrisense.obs.metrics import metrics_registry
from tests.fakes import RecordingChannel

@pytest.fixture(autouse=True)
def reset_metrics():
    metrics_registry.reset()
    yield

@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()
