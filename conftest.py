"""pytest configuration: keep rdiff state from leaking between tests."""

import pytest

from rdiff_core import Config, reset_match_stats, reset_parameters


@pytest.fixture(autouse=True)
def _reset_rdiff_state():
    yield
    Config.reset_defaults()
    reset_parameters()
    reset_match_stats()
