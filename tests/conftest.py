"""Pytest configuration and shared fixtures.

Usage Guide:
- For scheduler/queue timing tests: use the `clock` fixture (virtual time)
- For pipeline tests without a network: use tests.fixtures.pipeline.ScriptedTransport
- For envelope builders: import from tests.fixtures.api_responses
"""

import pytest

from paced_rest.config import PacingConfig
from tests.fixtures.pipeline import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    """Virtual clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
def pacing_config() -> PacingConfig:
    """Pacing config matching the production defaults."""
    return PacingConfig(
        min_request_interval_ms=600,
        page_size=100,
        default_retry_after_s=15.0,
    )


@pytest.fixture
def fast_pacing_config() -> PacingConfig:
    """Pacing config with minimal real-time delays for client tests."""
    return PacingConfig(
        min_request_interval_ms=5,
        page_size=100,
        default_retry_after_s=0.01,
    )


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Settings are lru_cached; keep env changes from leaking between tests."""
    from paced_rest.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
