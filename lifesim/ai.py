"""AI collaborators: the event source and the custom-choice judge.

Both treat model output as untrusted. Responses are stripped of markdown
fences, parsed as JSON and validated with pydantic; anything that does not
fit raises AIPayloadError. Neither class swallows errors. Fallback policy
lives with the callers (EventSelector, ChoiceResolver).
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError, model_validator

from lifesim.llm import LLM
from lifesim.models import Character, EventContext, EventEffects, EventSource, GameEvent
from lifesim.prompts import (
    EVENT_TEMPLATE,
    JUDGE_TEMPLATE,
    build_event_context,
    build_judge_context,
    render_prompt,
)

logger = logging.getLogger(__name__)

JUDGE_MAX_SKILL_BONUS = 3

_FENCE_RE = re.compile(r"```(?:json)?\n?")


class AIPayloadError(ValueError):
    """Raised when model output cannot be parsed into the expected shape."""


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------

def strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def parse_json_object(text: str) -> dict[str, Any]:
    try:
        data = json.loads(strip_fences(text))
    except json.JSONDecodeError as e:
        raise AIPayloadError(f"Model returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise AIPayloadError(f"Model output must be a JSON object, got {type(data).__name__}")
    return data


class EventPayload(BaseModel):
    """The AI wire shape: {situation, A, B, C, D?, effects: {A, B, C, D?}}."""

    situation: str = Field(min_length=1)
    A: str = Field(min_length=1)
    B: str = Field(min_length=1)
    C: str = Field(min_length=1)
    D: str | None = None
    effects: dict[str, EventEffects]

    @model_validator(mode="after")
    def _effects_cover_choices(self) -> EventPayload:
        required = {"A", "B", "C"} | ({"D"} if self.D else set())
        missing = required - set(self.effects)
        if missing:
            raise ValueError(f"effects missing for choices {sorted(missing)}")
        return self

    def to_event(self, event_id: str) -> GameEvent:
        keys = ["A", "B", "C"] + (["D"] if self.D else [])
        return GameEvent(
            id=event_id,
            source=EventSource.GEMINI,
            situation=self.situation.strip(),
            choices={key: getattr(self, key).strip() for key in keys},
            effects={key: self.effects[key] for key in keys},
            category="ai",
        )


def parse_event_payload(text: str, event_id: str | None = None) -> GameEvent:
    data = parse_json_object(text)
    try:
        payload = EventPayload.model_validate(data)
    except ValidationError as e:
        raise AIPayloadError(f"Invalid event structure from model: {e}") from e
    return payload.to_event(event_id or f"ai-{uuid.uuid4().hex[:12]}")


# ---------------------------------------------------------------------------
# Event source
# ---------------------------------------------------------------------------

class AIEventSource:
    """Generates events with an LLM. Raises on any failure."""

    def __init__(self, llm: LLM) -> None:
        self._llm = llm

    async def generate(
        self,
        character: Character,
        context: EventContext,
        recent_situations: list[str] | None = None,
    ) -> GameEvent:
        prompt = render_prompt(
            EVENT_TEMPLATE,
            build_event_context(character, context, recent_situations or []),
        )
        text = await self._llm("event", prompt)
        return parse_event_payload(text)


# ---------------------------------------------------------------------------
# Judge
# ---------------------------------------------------------------------------

class Verdict(BaseModel):
    is_valid: bool = Field(validation_alias=AliasChoices("is_valid", "isValid"))
    explanation: str = ""
    effects: EventEffects = Field(default_factory=EventEffects)


FALLBACK_VERDICT = Verdict(
    is_valid=True,
    explanation="Your choice has been accepted.",
    effects=EventEffects(skills=1),
)


class AIJudge:
    """Scores a free-text "D" choice. The skills bonus is clamped to 0..3."""

    def __init__(self, llm: LLM) -> None:
        self._llm = llm

    async def evaluate(
        self,
        character: Character,
        event: GameEvent,
        custom_text: str,
        context: EventContext,
    ) -> Verdict:
        prompt = render_prompt(
            JUDGE_TEMPLATE,
            build_judge_context(character, event, custom_text, context),
        )
        data = parse_json_object(await self._llm("judge", prompt))
        try:
            verdict = Verdict.model_validate(data)
        except ValidationError as e:
            raise AIPayloadError(f"Invalid verdict from model: {e}") from e

        bonus = verdict.effects.skills or 0
        if not verdict.is_valid:
            bonus = 0
        bonus = max(0, min(JUDGE_MAX_SKILL_BONUS, bonus))
        effects = verdict.effects.model_copy(update={"skills": bonus, "death_chance": None})
        logger.debug("judge verdict valid=%s bonus=%d", verdict.is_valid, bonus)
        return verdict.model_copy(update={"effects": effects})
