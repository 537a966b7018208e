"""Achievement rules and the engine that unlocks them.

Rules are stateless. Unlock state lives in GameState.achievements, which
only grows; crystals for a rule are paid exactly once, on the transition
from locked to unlocked.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from pydantic import BaseModel, ConfigDict, Field

from lifesim.models import Character, GameState

logger = logging.getLogger(__name__)


class Achievement(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    icon: str = ""
    reward: int = Field(ge=0)  # crystals
    predicate: Callable[[Character, GameState], bool] = Field(exclude=True)

    def is_met(self, character: Character, game_state: GameState) -> bool:
        return bool(self.predicate(character, game_state))


ACHIEVEMENTS: list[Achievement] = [
    Achievement(
        id="first_day", title="First Day", description="Live through your first day.",
        icon="sunrise", reward=5,
        predicate=lambda c, gs: gs.current_day >= 1,
    ),
    Achievement(
        id="survivor", title="Survivor", description="Reach the age of 50.",
        icon="shield", reward=20,
        predicate=lambda c, gs: c.age >= 50,
    ),
    Achievement(
        id="wealthy", title="Wealthy", description="Accumulate $10,000.",
        icon="coins", reward=15,
        predicate=lambda c, gs: c.stats.wealth >= 10_000,
    ),
    Achievement(
        id="healthy", title="Picture of Health",
        description="Keep health at 90 or above after ten days.",
        icon="heart", reward=10,
        predicate=lambda c, gs: c.stats.health >= 90 and gs.current_day >= 10,
    ),
    Achievement(
        id="centenarian", title="Centenarian", description="Live to 100.",
        icon="cake", reward=50,
        predicate=lambda c, gs: c.age >= 100,
    ),
    Achievement(
        id="happy_life", title="Happy Life", description="Reach happiness of 80 or more.",
        icon="smile", reward=25,
        predicate=lambda c, gs: c.stats.happiness >= 80,
    ),
]


class AchievementEngine:
    def __init__(self, rules: Iterable[Achievement] | None = None) -> None:
        self._rules = list(ACHIEVEMENTS if rules is None else rules)

    @property
    def rules(self) -> list[Achievement]:
        return list(self._rules)

    def get(self, achievement_id: str) -> Achievement | None:
        return next((r for r in self._rules if r.id == achievement_id), None)

    def check_achievements(self, character: Character, game_state: GameState) -> list[Achievement]:
        """Unlock every rule that now holds. Returns only the newly unlocked rules.

        Mutates game_state: appends to achievements, adds reward crystals.
        """
        unlocked: list[Achievement] = []
        for rule in self._rules:
            if rule.id in game_state.achievements:
                continue
            if not rule.is_met(character, game_state):
                continue
            game_state.achievements.append(rule.id)
            game_state.crystals += rule.reward
            unlocked.append(rule)
            logger.info("achievement unlocked: %s (+%d crystals)", rule.id, rule.reward)
        return unlocked


def reset_achievements(game_state: GameState) -> None:
    """Clear all unlocks. Only for a new game; crystals already paid stay."""
    game_state.achievements.clear()
