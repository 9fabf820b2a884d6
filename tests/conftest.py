from datetime import datetime, timedelta, timezone

import pytest

from radici.onboarding import start_roster
from radici.roster import RosterManager

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class TickingClock:
    """Clock that advances one second on every call."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def manager(clock):
    return RosterManager(clock=clock)


@pytest.fixture
def base_roster(manager):
    """Applicant (1) and Italian ancestor (2) only."""
    return start_roster(
        {
            "first_name": "Maria",
            "birth_last_name": "Rossi",
            "ancestor_first_name": "Giuseppe",
            "ancestor_birth_last_name": "Rossi",
        },
        manager=manager,
    )


@pytest.fixture
def family_roster(manager):
    """Applicant (1), ancestor (2), spouse (3) and two children (4, 5)."""
    return start_roster(
        {
            "first_name": "Maria",
            "birth_last_name": "Rossi",
            "ancestor_first_name": "Giuseppe",
            "ancestor_birth_last_name": "Rossi",
            "include_spouse": True,
            "children": 2,
        },
        manager=manager,
    )

