"""Game session: runs one save slot's gameplay loop.

Turn flow (choose()):
  1. Resolve the chosen option against the pending event.
  2. Apply the resolution to the character and append the history record.
  3. Every EVENTS_PER_AGE_UP resolved events, age the character one year.
  4. Check achievements (may unlock rewards).
  5. Queue a save of the whole slot.

Ticks run on a fixed interval (run_ticker) and are skipped while a choice
is being resolved or once the character is dead.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable

from pydantic import BaseModel

from lifesim.achievements import AchievementEngine, reset_achievements
from lifesim.ai import AIEventSource, AIJudge
from lifesim.assets import apply_passive_effects, buy_asset, sell_asset
from lifesim.catalog import EventCatalog
from lifesim.levels import complete_level, get_difficulty, get_level
from lifesim.llm import LLM
from lifesim.models import Character, CharacterSeed, EventContext, GameEvent, GameState
from lifesim.resolver import ChoiceResolver, InvalidChoiceError, Resolution, apply_resolution
from lifesim.selector import EventSelector
from lifesim.stats import age_up, create_character, regenerate_energy
from lifesim.storage import SaveGateway, SaveQueue

logger = logging.getLogger(__name__)

EVENTS_PER_AGE_UP = 4
ENERGY_PER_TICK = 5


class TurnResult(BaseModel):
    resolution: Resolution
    character: Character
    unlocked: list[str]
    aged: bool = False


class GameSession:
    def __init__(
        self,
        slot: int,
        character: Character,
        game_state: GameState,
        *,
        selector: EventSelector,
        resolver: ChoiceResolver,
        queue: SaveQueue,
        achievements: AchievementEngine | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.slot = slot
        self._character = character
        self._game_state = game_state
        self._selector = selector
        self._resolver = resolver
        self._queue = queue
        self._achievements = achievements or AchievementEngine()
        self._rng = rng or random.Random()
        self._pending: GameEvent | None = None

    @classmethod
    def new_game(
        cls,
        slot: int,
        seed: CharacterSeed,
        *,
        difficulty: str = "medium",
        level: str = "demo",
        selector: EventSelector,
        resolver: ChoiceResolver,
        queue: SaveQueue,
        achievements: AchievementEngine | None = None,
        rng: random.Random | None = None,
    ) -> GameSession:
        """Create a fresh character and game state. Crystals and unlocks do not carry over."""
        rng = rng or random.Random()
        get_level(level)
        character = create_character(seed, get_difficulty(difficulty), rng)
        game_state = GameState(current_level=level, difficulty=difficulty)
        reset_achievements(game_state)
        logger.info("new game in slot %d: %s (%s, %s)", slot, character.name, level, difficulty)
        return cls(
            slot, character, game_state,
            selector=selector, resolver=resolver, queue=queue,
            achievements=achievements, rng=rng,
        )

    # -- state --------------------------------------------------------------

    @property
    def character(self) -> Character:
        return self._character

    @property
    def game_state(self) -> GameState:
        return self._game_state

    @property
    def pending_event(self) -> GameEvent | None:
        return self._pending

    @property
    def context(self) -> EventContext:
        return EventContext(
            level=self._game_state.current_level,
            difficulty=self._game_state.difficulty,
        )

    def persist(self) -> asyncio.Future[bool]:
        return self._queue.submit(self.slot, self._character, self._game_state)

    # -- turn ---------------------------------------------------------------

    async def next_event(self) -> GameEvent:
        if self._pending is None:
            self._pending = await self._selector.select_event(
                self._character, self.context,
                ai_enabled=self._game_state.settings.ai_enabled,
            )
        return self._pending

    async def choose(self, choice: str, custom_text: str | None = None) -> TurnResult:
        event = self._pending
        if event is None:
            raise InvalidChoiceError("no pending event to choose for")

        resolution = await self._resolver.resolve_choice(
            event, choice, self._character, self.context, custom_text,
        )
        if self._pending is not event:
            # cancelled while the judge was thinking; nothing applies
            raise InvalidChoiceError(f"event {event.id} was cancelled")
        self._pending = None

        character = apply_resolution(self._character, event, resolution)
        self._game_state.events_resolved += 1

        aged = False
        if character.is_alive and self._game_state.events_resolved % EVENTS_PER_AGE_UP == 0:
            character = age_up(character, 1, self._rng)
            aged = True
        self._character = character

        unlocked = self._achievements.check_achievements(character, self._game_state)
        self.persist()
        return TurnResult(
            resolution=resolution,
            character=character,
            unlocked=[a.id for a in unlocked],
            aged=aged,
        )

    def cancel_event(self) -> bool:
        """Discard the pending event. Applies no effects and keeps history."""
        if self._pending is None:
            return False
        logger.debug("cancelled event %s", self._pending.id)
        self._pending = None
        return True

    # -- ticks --------------------------------------------------------------

    def tick(self, interval: float = 1.0) -> bool:
        """One timer tick. Returns False when skipped."""
        if self._resolver.busy or not self._character.is_alive:
            return False
        character = apply_passive_effects(self._character)
        character = regenerate_energy(character, ENERGY_PER_TICK)
        self._character = character
        self._game_state.current_day += 1
        self._game_state.total_play_time += interval
        self._achievements.check_achievements(character, self._game_state)
        self.persist()
        return True

    # -- progression & assets -----------------------------------------------

    def complete_level(self) -> str | None:
        following = complete_level(self._game_state)
        self.persist()
        return following

    def buy_asset(self, asset_id: str) -> Character:
        self._character = buy_asset(self._character, asset_id)
        self.persist()
        return self._character

    def sell_asset(self, asset_id: str) -> int:
        self._character, proceeds = sell_asset(self._character, asset_id)
        self.persist()
        return proceeds

    async def close(self) -> None:
        await self._queue.drain()


async def run_ticker(session: GameSession, interval: float, stop: asyncio.Event) -> int:
    """Tick `session` every `interval` seconds until `stop` is set. Returns ticks applied."""
    applied = 0
    while not stop.is_set():
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except asyncio.TimeoutError:
            if session.tick(interval):
                applied += 1
    return applied


# ---------------------------------------------------------------------------
# SessionRegistry: one live session per slot
# ---------------------------------------------------------------------------

class SessionRegistry:
    """Builds sessions with shared collaborators and caches them by slot."""

    def __init__(
        self,
        queue: SaveQueue,
        *,
        catalog: EventCatalog | None = None,
        llm: LLM | None = None,
        ai_timeout: float = 10.0,
        judge_timeout: float = 8.0,
        rng_factory: Callable[[], random.Random] = random.Random,
    ) -> None:
        self._queue = queue
        self._catalog = catalog or EventCatalog()
        self._llm = llm
        self._ai_timeout = ai_timeout
        self._judge_timeout = judge_timeout
        self._rng_factory = rng_factory
        self._sessions: dict[int, GameSession] = {}

    @property
    def gateway(self) -> SaveGateway:
        return self._queue.gateway

    def _collaborators(self, rng: random.Random) -> dict:
        ai_source = AIEventSource(self._llm) if self._llm is not None else None
        judge = AIJudge(self._llm) if self._llm is not None else None
        return {
            "selector": EventSelector(self._catalog, ai_source, ai_timeout=self._ai_timeout, rng=rng),
            "resolver": ChoiceResolver(judge, judge_timeout=self._judge_timeout, rng=rng),
            "queue": self._queue,
            "rng": rng,
        }

    def get(self, slot: int) -> GameSession | None:
        """Return the live session for `slot`, loading it from disk if needed."""
        if slot in self._sessions:
            return self._sessions[slot]
        save = self.gateway.load(slot)
        if save is None:
            return None
        rng = self._rng_factory()
        session = GameSession(slot, save.character, save.game_state, **self._collaborators(rng))
        self._sessions[slot] = session
        return session

    def new_game(
        self, slot: int, seed: CharacterSeed, difficulty: str = "medium", level: str = "demo"
    ) -> GameSession:
        rng = self._rng_factory()
        session = GameSession.new_game(
            slot, seed, difficulty=difficulty, level=level, **self._collaborators(rng),
        )
        self._sessions[slot] = session
        session.persist()
        return session

    async def flush(self) -> None:
        """Wait for every queued write to land."""
        await self._queue.drain()

    def drop(self, slot: int) -> None:
        self._sessions.pop(slot, None)

    async def close(self) -> None:
        await self._queue.close()
        self._sessions.clear()
