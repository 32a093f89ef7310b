import pytest

from knightbus.roster import Roster
from knightbus.utils import IdClock


@pytest.fixture
def roster():
    """A roster whose ids start at 1000 and count up, so tests can predict them."""
    return Roster(name="test-roster", id_clock=IdClock(clock=lambda: 1000))


@pytest.fixture
def hong_and_kim(roster):
    hong = roster.add_knight("Hong", "Rogue", 50)
    kim = roster.add_client("Kim", "Mage", 30, "urgent")
    return hong, kim
