"""Choice resolution: turn (event, choice) into an effect delta and a death verdict.

Resolution order:
  1. Reject dead characters, unknown keys, and a second submission for an
     event that is already being resolved.
  2. Custom "D" text goes to the judge (fallback verdict on any failure).
  3. Choice C with a death_chance rolls for death. The chance is scaled by
     the difficulty multiplier and capped at 1.0. Death overrides the
     nominal effects with DEATH_EFFECTS.
  4. Otherwise the nominal effects apply, scaled by the nearest historical
     impact for (country, year) if one exists.

resolve_choice() computes only; apply_resolution() writes the outcome into
the character and appends the history record.
"""

from __future__ import annotations

import asyncio
import logging
import random

from pydantic import BaseModel

from lifesim.ai import FALLBACK_VERDICT, AIJudge, Verdict
from lifesim.history import apply_historical_impact, historical_context
from lifesim.levels import get_difficulty
from lifesim.llm import LLMError
from lifesim.models import Character, EventContext, EventEffects, GameEvent, HistoryEntry
from lifesim.prompts import PromptError
from lifesim.stats import CharacterDeadError, apply_effects, now_ms

logger = logging.getLogger(__name__)

RISKY_CHOICE = "C"
CUSTOM_CHOICE = "D"

DEATH_EFFECTS = EventEffects(health=-100, happiness=-100, wealth=0, skills=0)

DEATH_CAUSES = [
    "Fatal accident",
    "Health complications",
    "Criminal activity gone wrong",
    "Natural disaster",
    "Occupational hazard",
    "Unforeseen circumstances",
]


class InvalidChoiceError(ValueError):
    """Raised for a choice key the event does not offer."""


class ResolutionInProgressError(RuntimeError):
    """Raised when a second choice arrives for an event still being resolved."""


class Resolution(BaseModel):
    event_id: str
    choice: str
    choice_text: str
    effects: EventEffects
    is_death: bool = False
    death_cause: str | None = None
    explanation: str | None = None
    historical_event: str | None = None  # title of the impact applied, if any


class ChoiceResolver:
    def __init__(
        self,
        judge: AIJudge | None = None,
        *,
        judge_timeout: float = 8.0,
        rng: random.Random | None = None,
    ) -> None:
        self._judge = judge
        self._judge_timeout = judge_timeout
        self._rng = rng or random.Random()
        self._in_flight: set[str] = set()

    @property
    def busy(self) -> bool:
        return bool(self._in_flight)

    def is_resolving(self, event_id: str) -> bool:
        return event_id in self._in_flight

    async def resolve_choice(
        self,
        event: GameEvent,
        choice: str,
        character: Character,
        context: EventContext,
        custom_text: str | None = None,
    ) -> Resolution:
        if not character.is_alive:
            raise CharacterDeadError(f"{character.name} is dead; choices can no longer be resolved")
        if event.id in self._in_flight:
            raise ResolutionInProgressError(f"event {event.id} is already being resolved")

        custom = choice == CUSTOM_CHOICE and bool(custom_text and custom_text.strip())
        if not custom and choice not in event.choices:
            raise InvalidChoiceError(f"event {event.id} has no choice {choice!r}")

        self._in_flight.add(event.id)
        try:
            if custom:
                return await self._resolve_custom(event, custom_text.strip(), character, context)
            return self._resolve_fixed(event, choice, character, context)
        finally:
            self._in_flight.discard(event.id)

    # -- fixed choices ------------------------------------------------------

    def _resolve_fixed(
        self, event: GameEvent, choice: str, character: Character, context: EventContext
    ) -> Resolution:
        effects = event.effects.get(choice, EventEffects())
        choice_text = event.choices[choice]

        if choice == RISKY_CHOICE and effects.death_chance is not None:
            multiplier = get_difficulty(context.difficulty).death_chance_multiplier
            chance = min(1.0, effects.death_chance * multiplier)
            if self._rng.random() < chance:
                cause = self._rng.choice(DEATH_CAUSES)
                logger.info("risky choice on %s was fatal (p=%.2f): %s", event.id, chance, cause)
                return Resolution(
                    event_id=event.id, choice=choice, choice_text=choice_text,
                    effects=DEATH_EFFECTS, is_death=True, death_cause=cause,
                )

        historical = historical_context(character.country, context.year_for(character))
        if historical is not None:
            effects = apply_historical_impact(effects, historical)
        return Resolution(
            event_id=event.id, choice=choice, choice_text=choice_text,
            effects=effects.model_copy(update={"death_chance": None}),
            historical_event=historical.title if historical else None,
        )

    # -- custom choice ------------------------------------------------------

    async def _resolve_custom(
        self, event: GameEvent, text: str, character: Character, context: EventContext
    ) -> Resolution:
        verdict = await self._judge_choice(event, text, character, context)
        return Resolution(
            event_id=event.id, choice=CUSTOM_CHOICE, choice_text=text,
            effects=verdict.effects, explanation=verdict.explanation,
        )

    async def _judge_choice(
        self, event: GameEvent, text: str, character: Character, context: EventContext
    ) -> Verdict:
        if self._judge is None:
            return FALLBACK_VERDICT
        try:
            return await asyncio.wait_for(
                self._judge.evaluate(character, event, text, context),
                timeout=self._judge_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("choice judge timed out after %.1fs; accepting choice", self._judge_timeout)
        except (LLMError, PromptError, ValueError) as e:
            logger.warning("choice judge failed (%s); accepting choice", e)
        return FALLBACK_VERDICT


def apply_resolution(character: Character, event: GameEvent, resolution: Resolution) -> Character:
    """Write a resolution into the character and append its history record."""
    record = HistoryEntry(
        age=character.age,
        event_id=event.id,
        situation=event.situation,
        source=event.source,
        choice=resolution.choice_text,
        effects=resolution.effects,
        death=resolution.is_death,
        explanation=resolution.explanation,
        timestamp=now_ms(),
    )
    return apply_effects(
        character, resolution.effects, cause=resolution.death_cause, record=record,
    )
