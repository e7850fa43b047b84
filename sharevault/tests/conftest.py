import pytest

from sharevault import metrics
from sharevault.tests import ALICE, mk_world


@pytest.fixture
def world():
    """Three agents weighted 1:1:2, fees and incentive off, minimum stake 1."""
    return mk_world((1, 1, 2))


@pytest.fixture
def staked_world(world):
    world.vault.stake(ALICE, 1000)
    return world


@pytest.fixture
def metric_value():
    def _read(name: str, **labels) -> float:
        return metrics.REGISTRY.get_sample_value(name, labels or None) or 0.0
    return _read
