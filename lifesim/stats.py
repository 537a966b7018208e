"""Stat model: bounded vitals, effect merging, aging and derived traits.

Bounds:
  health, happiness, energy, skills, relationships   [0, 100]
  wealth                                              [0, ∞)

All functions are pure: they return a new Character and never mutate the
one passed in. Persistence is the caller's job.

Death is evaluated after every apply_effects(): health <= 0 kills the
character. A dead character's vitals are frozen; further apply_effects()
calls only append the audit record to history.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from statistics import mean

from lifesim.levels import Difficulty
from lifesim.models import (
    MAX_AGE,
    STAT_MAX,
    STAT_MIN,
    Character,
    CharacterSeed,
    CharacterStats,
    EventEffects,
    HistoryEntry,
)

logger = logging.getLogger(__name__)

DEFAULT_DEATH_CAUSE = "Health reached zero"
NATURAL_DEATH_CAUSE = "Natural causes"
NATURAL_DEATH_AGE = 80
NATURAL_DEATH_CHANCE = 0.1


class CharacterDeadError(RuntimeError):
    """Raised when an operation needs a living character."""


def clamp(value: int, low: int, high: int | None = None) -> int:
    """Clamp value to [low, high]; high=None means unbounded above."""
    if value < low:
        return low
    if high is not None and value > high:
        return high
    return value


def now_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------

def _add(a: int | None, b: int | None) -> int | None:
    if a is None and b is None:
        return None
    return (a or 0) + (b or 0)


def merge_effects(base: EventEffects, delta: EventEffects) -> EventEffects:
    """Canonical field-wise sum of two effect records.

    death_chance is not additive: the delta's value wins when present.
    """
    relationships: dict[str, int] | None = None
    if base.relationships is not None or delta.relationships is not None:
        relationships = dict(base.relationships or {})
        for name, value in (delta.relationships or {}).items():
            relationships[name] = relationships.get(name, 0) + value
    return EventEffects(
        health=_add(base.health, delta.health),
        happiness=_add(base.happiness, delta.happiness),
        wealth=_add(base.wealth, delta.wealth),
        energy=_add(base.energy, delta.energy),
        skills=_add(base.skills, delta.skills),
        relationships=relationships,
        death_chance=delta.death_chance if delta.death_chance is not None else base.death_chance,
    )


def _apply_stats(stats: CharacterStats, effects: EventEffects) -> CharacterStats:
    return CharacterStats(
        health=clamp(stats.health + (effects.health or 0), STAT_MIN, STAT_MAX),
        happiness=clamp(stats.happiness + (effects.happiness or 0), STAT_MIN, STAT_MAX),
        wealth=clamp(stats.wealth + (effects.wealth or 0), 0),
        energy=clamp(stats.energy + (effects.energy or 0), STAT_MIN, STAT_MAX),
    )


def _apply_skills(skills: dict[str, int], delta: int | None) -> dict[str, int]:
    if not delta:
        return dict(skills)
    return {name: clamp(value + delta, STAT_MIN, STAT_MAX) for name, value in skills.items()}


def _apply_relationships(
    relationships: dict[str, int], deltas: dict[str, int] | None
) -> dict[str, int]:
    updated = dict(relationships)
    for name, value in (deltas or {}).items():
        updated[name] = clamp(updated.get(name, 0) + value, STAT_MIN, STAT_MAX)
    return updated


def apply_effects(
    character: Character,
    effects: EventEffects,
    *,
    cause: str | None = None,
    record: HistoryEntry | None = None,
) -> Character:
    """Merge effect deltas into the character's vitals, clamp, and check for death.

    `record`, when given, is appended to history even for a dead character
    (audit trail); vitals of a dead character never change.
    """
    history = list(character.history)
    if record is not None:
        history.append(record)

    if not character.is_alive:
        return character.model_copy(update={"history": history})

    updated = character.model_copy(update={
        "stats": _apply_stats(character.stats, effects),
        "skills": _apply_skills(character.skills, effects.skills),
        "relationships": _apply_relationships(character.relationships, effects.relationships),
        "history": history,
    })
    if updated.stats.health <= 0:
        updated = kill(updated, cause or DEFAULT_DEATH_CAUSE)
    return refresh_flags(updated)


def kill(character: Character, cause: str) -> Character:
    if not character.is_alive:
        return character
    logger.info("character %s died at age %d: %s", character.name, character.age, cause)
    return character.model_copy(update={"is_alive": False, "death_cause": cause})


# ---------------------------------------------------------------------------
# Aging
# ---------------------------------------------------------------------------

def _age_skill_drift(age: int) -> dict[str, int]:
    if age < 20:
        return {"intelligence": 2, "physical": 1}
    if age < 50:
        return {"intelligence": 1, "business": 1}
    if age < 70:
        return {"physical": -1}
    return {"physical": -2, "intelligence": -1}


def age_up(character: Character, years: int = 1, rng: random.Random | None = None) -> Character:
    """Advance age by `years` (>= 1), drifting skills by life stage.

    Age stops at MAX_AGE; reaching it is a natural death.
    """
    if years < 1:
        raise ValueError(f"years must be >= 1, got {years}")
    if not character.is_alive:
        return character
    rng = rng or random.Random()

    new_age = min(character.age + years, MAX_AGE)
    skills = dict(character.skills)
    for name, delta in _age_skill_drift(new_age).items():
        if name in skills:
            skills[name] = clamp(skills[name] + delta, STAT_MIN, STAT_MAX)
    updated = character.model_copy(update={"age": new_age, "skills": skills})

    if new_age >= MAX_AGE:
        updated = kill(updated, NATURAL_DEATH_CAUSE)
    elif new_age >= NATURAL_DEATH_AGE and rng.random() < NATURAL_DEATH_CHANCE:
        updated = kill(updated, NATURAL_DEATH_CAUSE)
    return refresh_flags(updated)


# ---------------------------------------------------------------------------
# Traits
# ---------------------------------------------------------------------------

_TRAITS: list[tuple[str, Callable[[Character], bool]]] = [
    ("sickly", lambda c: c.stats.health < 20),
    ("vigorous", lambda c: c.stats.health > 90),
    ("depressed", lambda c: c.stats.happiness < 20),
    ("joyful", lambda c: c.stats.happiness > 90),
    ("broke", lambda c: c.stats.wealth < 100 and c.age > 18),
    ("rich", lambda c: c.stats.wealth > 500_000),
    ("dull", lambda c: bool(c.skills) and mean(c.skills.values()) < 10),
    ("genius", lambda c: bool(c.skills) and mean(c.skills.values()) > 90),
]


def compute_flags(character: Character) -> list[str]:
    return [flag for flag, condition in _TRAITS if condition(character)]


def refresh_flags(character: Character) -> Character:
    """Replace flags with the set derived from current vitals (never merged)."""
    return character.model_copy(update={"flags": compute_flags(character)})


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def create_character(
    seed: CharacterSeed, difficulty: Difficulty, rng: random.Random | None = None
) -> Character:
    """Build a fresh character, applying the difficulty's starting bonus once."""
    rng = rng or random.Random()
    base = CharacterStats(health=100, happiness=100, energy=100, wealth=1000)
    skills = {
        "intelligence": 20 + rng.randrange(20),
        "creativity": 20 + rng.randrange(20),
        "social": 20 + rng.randrange(20),
        "physical": 20 + rng.randrange(20),
        "business": 10 + rng.randrange(15),
        "technical": 10 + rng.randrange(15),
    }
    relationships = {
        "family": 50 + rng.randrange(30),
        "friends": 30 + rng.randrange(20),
        "romantic": 0,
        "colleagues": 0,
    }
    character = Character(
        name=seed.name,
        country=seed.country,
        birth_year=seed.birth_year,
        birth_city=seed.birth_city,
        age=18,
        stats=_apply_stats(base, difficulty.starting_bonus),
        skills=skills,
        relationships=relationships,
        profession=seed.profession,
    )
    return refresh_flags(character)


def regenerate_energy(character: Character, amount: int) -> Character:
    if not character.is_alive:
        return character
    stats = character.stats.model_copy(
        update={"energy": clamp(character.stats.energy + amount, STAT_MIN, STAT_MAX)}
    )
    return refresh_flags(character.model_copy(update={"stats": stats}))
