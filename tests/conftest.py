import pytest

from foxsheet.config import override_config


@pytest.fixture(autouse=True)
def _isolated_config():
    """Keep FOXSHEET_* variables of the host out of every test."""
    with override_config() as repo:
        yield repo
