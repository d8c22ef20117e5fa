import pytest

from dessim.process import Process
from dessim.scheduler import Simulation


@pytest.fixture
def sim():
    return Simulation()


@pytest.fixture
def berths(sim):
    return sim.create_pool("Berths", 8)


@pytest.fixture
def make_proc(sim):
    """Factory for bare processes used as pool clients outside the run loop."""
    def _make(name="P", life_cycle=None):
        return Process(sim, name, life_cycle=life_cycle)
    return _make
