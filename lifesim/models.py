"""Core domain models.

Every pipeline stage (selection, resolution, achievements, persistence)
operates on these types. Pydantic is used for validation and serialisation
at every data boundary: the save file, the AI event payload, and the HTTP API.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

ChoiceKey = Literal["A", "B", "C", "D"]

STAT_MIN = 0
STAT_MAX = 100
MAX_AGE = 150

SKILL_NAMES = (
    "intelligence",
    "creativity",
    "social",
    "physical",
    "business",
    "technical",
)

RELATIONSHIP_NAMES = ("family", "friends", "romantic", "colleagues")


class EventSource(str, Enum):
    """Provenance of an event. Every source produces the same GameEvent shape."""

    GEMINI = "gemini"
    FALLBACK = "fallback"
    HISTORICAL = "historical"
    SYSTEM = "system"


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------

class EventEffects(BaseModel):
    """Signed deltas produced by one choice. Absent fields mean "no change"."""

    health: int | None = None
    happiness: int | None = None
    wealth: int | None = None
    energy: int | None = None
    skills: int | None = None  # applied to every named skill
    relationships: dict[str, int] | None = None
    death_chance: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices("death_chance", "deathChance"),
    )

    def is_empty(self) -> bool:
        return not any(
            v is not None for v in self.model_dump(exclude={"death_chance"}).values()
        )


# ---------------------------------------------------------------------------
# Character
# ---------------------------------------------------------------------------

class CharacterStats(BaseModel):
    health: int = Field(default=100, ge=STAT_MIN, le=STAT_MAX)
    happiness: int = Field(default=100, ge=STAT_MIN, le=STAT_MAX)
    wealth: int = Field(default=1000, ge=0)
    energy: int = Field(default=100, ge=STAT_MIN, le=STAT_MAX)


class HistoryEntry(BaseModel):
    """A resolved event, appended to the character's permanent history."""

    age: int = Field(ge=0)
    event_id: str
    situation: str = Field(min_length=1)
    source: EventSource
    choice: str
    effects: EventEffects = Field(default_factory=EventEffects)
    death: bool = False
    explanation: str | None = None  # judge verdict for custom choices
    timestamp: int = Field(ge=0)  # epoch ms


class OwnedAsset(BaseModel):
    id: str
    name: str
    cost: int = Field(ge=0)


class Character(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    country: str = Field(min_length=1)
    birth_year: int = Field(ge=1850)
    birth_city: str = ""
    age: int = Field(default=0, ge=0, le=MAX_AGE)
    stats: CharacterStats = Field(default_factory=CharacterStats)
    skills: dict[str, int] = Field(
        default_factory=lambda: {name: 0 for name in SKILL_NAMES}
    )
    relationships: dict[str, int] = Field(
        default_factory=lambda: {name: 0 for name in RELATIONSHIP_NAMES}
    )
    profession: str | None = None
    is_alive: bool = True
    death_cause: str | None = None
    history: list[HistoryEntry] = Field(default_factory=list)
    assets: list[OwnedAsset] = Field(default_factory=list)
    flags: list[str] = Field(default_factory=list)

    @property
    def current_year(self) -> int:
        return self.birth_year + self.age


class CharacterSeed(BaseModel):
    """Player input at character creation."""

    name: str = Field(min_length=1, max_length=50)
    country: str = "Azerbaijan"
    birth_year: int = Field(default=2000, ge=1850)
    birth_city: str = "baku"
    profession: str | None = None


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class StatFloor(BaseModel):
    """A single named stat minimum, e.g. wealth >= 150."""

    name: str
    value: int


class Eligibility(BaseModel):
    min_age: int | None = None
    max_age: int | None = None
    min_stat: StatFloor | None = None
    profession: str | None = None  # exact match, or "any"
    year: int | None = None  # historical templates only
    affected_cities: list[str] = Field(default_factory=list)
    min_level: int = 0  # lowest level number the template may appear on


class EventTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    situation: str
    choices: dict[ChoiceKey, str]
    effects: dict[ChoiceKey, EventEffects]
    eligibility: Eligibility = Field(default_factory=Eligibility)
    category: str = "life"

    @property
    def is_historical(self) -> bool:
        return self.eligibility.year is not None


class GameEvent(BaseModel):
    """An immutable prompt with 3 or 4 choices and their effects."""

    model_config = ConfigDict(frozen=True)

    id: str
    source: EventSource
    situation: str = Field(min_length=1)
    choices: dict[ChoiceKey, str]
    effects: dict[ChoiceKey, EventEffects]
    category: str = "life"


# ---------------------------------------------------------------------------
# Game state and persistence
# ---------------------------------------------------------------------------

class GameSettings(BaseModel):
    sound_enabled: bool = True
    music_enabled: bool = True
    ai_enabled: bool = True
    language: str = "en"
    theme: Literal["light", "dark", "system"] = "system"


class GameState(BaseModel):
    current_level: str = "demo"
    difficulty: str = "medium"
    crystals: int = Field(default=0, ge=0)
    unlocked_levels: list[str] = Field(default_factory=lambda: ["demo", "level_1"])
    completed_levels: list[str] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)
    settings: GameSettings = Field(default_factory=GameSettings)
    current_day: int = Field(default=0, ge=0)
    events_resolved: int = Field(default=0, ge=0)
    total_play_time: float = Field(default=0.0, ge=0)
    daily_reward_last_claimed: int | None = None  # epoch ms; persisted for clients, not read by the engine


class SaveData(BaseModel):
    """The unit of persistence: one slot on disk."""

    version: int = Field(ge=1)
    character: Character
    game_state: GameState
    timestamp: int  # epoch ms


class EventContext(BaseModel):
    """Where and when an event is being selected. None fields derive from the character."""

    level: str = "demo"
    difficulty: str = "medium"
    year: int | None = None
    city: str | None = None

    def year_for(self, character: Character) -> int:
        return self.year if self.year is not None else character.current_year

    def city_for(self, character: Character) -> str:
        return self.city if self.city is not None else character.birth_city
