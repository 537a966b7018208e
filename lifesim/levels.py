"""Level and difficulty descriptors, and the complexity tier derived from a level.

Levels gate how dangerous and how elaborate events get:

    demo, level_1, level_2   simple tier   ±15 vitals/skills, ±300 wealth
    level_3 … level_10       complex tier  ±30 vitals/skills, ±500 wealth

Difficulty is chosen once per playthrough and scales risky-choice death
chances and the starting vitals.
"""

from __future__ import annotations

import logging
import re

from pydantic import BaseModel, ConfigDict

from lifesim.models import EventEffects, GameEvent, GameState

logger = logging.getLogger(__name__)


class Level(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    death_chance: float  # risk advertised to the AI source for choice C
    historical_density: float
    required_crystals: int
    reward_crystals: int


class Difficulty(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    death_chance_multiplier: float
    historical_density: float
    starting_bonus: EventEffects


class ComplexityTier(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    max_vital: int  # health, happiness, energy, skills
    max_wealth: int
    chained_events: bool
    recent_choices: int  # how many past decisions the AI prompt sees


SIMPLE_TIER = ComplexityTier(
    name="simple", max_vital=15, max_wealth=300, chained_events=False, recent_choices=5,
)
COMPLEX_TIER = ComplexityTier(
    name="complex", max_vital=30, max_wealth=500, chained_events=True, recent_choices=10,
)

COMPLEX_FROM_LEVEL = 3


def _level(n: int, death: float, density: float, required: int, reward: int) -> Level:
    return Level(
        id=f"level_{n}", name=f"Level {n}",
        death_chance=death, historical_density=density,
        required_crystals=required, reward_crystals=reward,
    )


LEVELS: dict[str, Level] = {
    "demo": Level(
        id="demo", name="Demo Run", death_chance=0.1, historical_density=0.1,
        required_crystals=0, reward_crystals=10,
    ),
    "level_1": _level(1, 0.15, 0.1, 0, 15),
    "level_2": _level(2, 0.2, 0.15, 20, 20),
    "level_3": _level(3, 0.25, 0.2, 40, 25),
    "level_4": _level(4, 0.35, 0.25, 60, 30),
    "level_5": _level(5, 0.45, 0.3, 80, 40),
    "level_6": _level(6, 0.55, 0.4, 100, 50),
    "level_7": _level(7, 0.65, 0.5, 130, 60),
    "level_8": _level(8, 0.75, 0.6, 160, 70),
    "level_9": _level(9, 0.85, 0.7, 200, 85),
    "level_10": _level(10, 0.95, 0.8, 250, 100),
}

LEVEL_ORDER = list(LEVELS)

DIFFICULTIES: dict[str, Difficulty] = {
    "easy": Difficulty(
        id="easy", name="Easy", death_chance_multiplier=0.5, historical_density=0.8,
        starting_bonus=EventEffects(health=20, happiness=20, energy=20, wealth=500),
    ),
    "medium": Difficulty(
        id="medium", name="Medium", death_chance_multiplier=1.0, historical_density=1.0,
        starting_bonus=EventEffects(health=0, happiness=0, energy=0, wealth=0),
    ),
    "hard": Difficulty(
        id="hard", name="Hard", death_chance_multiplier=1.5, historical_density=1.2,
        starting_bonus=EventEffects(health=-20, happiness=-20, energy=-20, wealth=-300),
    ),
}


def level_number(level_id: str) -> int:
    """demo → 0, level_N → N, anything else → 1."""
    if level_id == "demo":
        return 0
    match = re.fullmatch(r"level_(\d+)", level_id)
    return int(match.group(1)) if match else 1


def get_level(level_id: str) -> Level:
    level = LEVELS.get(level_id)
    if level is None:
        raise KeyError(f"Unknown level: {level_id!r}")
    return level


def get_difficulty(difficulty_id: str) -> Difficulty:
    difficulty = DIFFICULTIES.get(difficulty_id)
    if difficulty is None:
        raise KeyError(f"Unknown difficulty: {difficulty_id!r}")
    return difficulty


def next_level(level_id: str) -> str | None:
    idx = LEVEL_ORDER.index(level_id)
    return LEVEL_ORDER[idx + 1] if idx + 1 < len(LEVEL_ORDER) else None


def complexity_for(level_id: str) -> ComplexityTier:
    return SIMPLE_TIER if level_number(level_id) < COMPLEX_FROM_LEVEL else COMPLEX_TIER


# ---------------------------------------------------------------------------
# Magnitude caps
# ---------------------------------------------------------------------------

def _cap(value: int | None, limit: int) -> int | None:
    if value is None:
        return None
    return max(-limit, min(limit, value))


def cap_effects(effects: EventEffects, tier: ComplexityTier) -> EventEffects:
    """Clamp every delta to the tier's magnitude limits. death_chance is untouched."""
    relationships = None
    if effects.relationships is not None:
        relationships = {k: _cap(v, tier.max_vital) for k, v in effects.relationships.items()}
    return effects.model_copy(update={
        "health": _cap(effects.health, tier.max_vital),
        "happiness": _cap(effects.happiness, tier.max_vital),
        "energy": _cap(effects.energy, tier.max_vital),
        "skills": _cap(effects.skills, tier.max_vital),
        "wealth": _cap(effects.wealth, tier.max_wealth),
        "relationships": relationships,
    })


def cap_event(event: GameEvent, tier: ComplexityTier) -> GameEvent:
    capped = {key: cap_effects(fx, tier) for key, fx in event.effects.items()}
    return event.model_copy(update={"effects": capped})


# ---------------------------------------------------------------------------
# Progression
# ---------------------------------------------------------------------------

def complete_level(game_state: GameState, level_id: str | None = None) -> str | None:
    """Mark a level completed, paying its reward once and unlocking the next level.

    Mutates game_state. Returns the next level id, or None after the last level.
    """
    level = get_level(level_id or game_state.current_level)
    if level.id not in game_state.completed_levels:
        game_state.completed_levels.append(level.id)
        game_state.crystals += level.reward_crystals
        logger.info("level %s completed (+%d crystals)", level.id, level.reward_crystals)

    following = next_level(level.id)
    if following is not None and following not in game_state.unlocked_levels:
        game_state.unlocked_levels.append(following)
    return following
