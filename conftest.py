import random

import pytest

from lifesim.models import Character, CharacterStats, EventContext, GameState
from lifesim.storage import SaveGateway, SaveQueue


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def character() -> Character:
    """A healthy 30-year-old in Baku, 2010."""
    return Character(
        name="Leyla",
        country="Azerbaijan",
        birth_year=1980,
        birth_city="baku",
        age=30,
        stats=CharacterStats(health=70, happiness=60, wealth=1000, energy=80),
        skills={"intelligence": 30, "creativity": 30, "social": 30,
                "physical": 30, "business": 20, "technical": 20},
        relationships={"family": 60, "friends": 40, "romantic": 0, "colleagues": 0},
    )


@pytest.fixture
def game_state() -> GameState:
    return GameState()


@pytest.fixture
def context() -> EventContext:
    return EventContext(level="level_1", difficulty="medium")


@pytest.fixture
def gateway(tmp_path) -> SaveGateway:
    return SaveGateway(tmp_path)


@pytest.fixture
def queue(gateway) -> SaveQueue:
    return SaveQueue(gateway, retry_delay=0)
