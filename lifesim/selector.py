"""Event selection: AI first when enabled, the static catalog otherwise.

Every event leaves select_event() through the same gate:

    source validation strategy  →  complexity-tier magnitude cap  →  recency cache

so no source is trusted to respect the level's effect limits.
"""

from __future__ import annotations

import asyncio
import logging
import random
import uuid
from collections import deque
from collections.abc import Callable

from lifesim.ai import AIEventSource, AIPayloadError
from lifesim.catalog import EventCatalog
from lifesim.levels import cap_event, complexity_for
from lifesim.llm import LLMError
from lifesim.models import Character, EventContext, EventSource, EventTemplate, GameEvent
from lifesim.prompts import PromptError
from lifesim.stats import CharacterDeadError

logger = logging.getLogger(__name__)

RECENT_CACHE_SIZE = 10
REQUIRED_CHOICES = ("A", "B", "C")


# ---------------------------------------------------------------------------
# Per-source validation strategies
# ---------------------------------------------------------------------------

def _revalidate(event: GameEvent) -> GameEvent:
    """Full structural check for untrusted sources."""
    for key in REQUIRED_CHOICES:
        if not event.choices.get(key, "").strip():
            raise AIPayloadError(f"event {event.id} has no text for choice {key}")
        if key not in event.effects:
            raise AIPayloadError(f"event {event.id} has no effects for choice {key}")
    if set(event.choices) != set(event.effects):
        raise AIPayloadError(f"event {event.id} choices and effects keys differ")
    return GameEvent.model_validate(event.model_dump())


def _trusted(event: GameEvent) -> GameEvent:
    return event


VALIDATION_STRATEGIES: dict[EventSource, Callable[[GameEvent], GameEvent]] = {
    EventSource.GEMINI: _revalidate,
    EventSource.FALLBACK: _trusted,
    EventSource.HISTORICAL: _trusted,
    EventSource.SYSTEM: _trusted,
}

if set(VALIDATION_STRATEGIES) != set(EventSource):
    raise RuntimeError("every EventSource needs a validation strategy")


def validate_event(event: GameEvent, level: str) -> GameEvent:
    """Run the source's strategy, then clamp magnitudes to the level's tier."""
    checked = VALIDATION_STRATEGIES[event.source](event)
    return cap_event(checked, complexity_for(level))


def event_from_template(template: EventTemplate) -> GameEvent:
    if template.is_historical:
        source = EventSource.HISTORICAL
    elif template.category == "mundane":
        source = EventSource.SYSTEM
    else:
        source = EventSource.FALLBACK
    return GameEvent(
        id=f"{template.id}-{uuid.uuid4().hex[:8]}",
        source=source,
        situation=template.situation,
        choices=dict(template.choices),
        effects=dict(template.effects),
        category=template.category,
    )


# ---------------------------------------------------------------------------
# Selector
# ---------------------------------------------------------------------------

class EventSelector:
    """Picks the next event for a character.

    Holds the recency cache (last RECENT_CACHE_SIZE situations, FIFO) for
    one session. The AI source is optional; any failure, timeout, invalid
    payload or repeated situation falls back to the catalog.
    """

    def __init__(
        self,
        catalog: EventCatalog | None = None,
        ai_source: AIEventSource | None = None,
        *,
        ai_timeout: float = 10.0,
        rng: random.Random | None = None,
        cache_size: int = RECENT_CACHE_SIZE,
    ) -> None:
        self._catalog = catalog or EventCatalog()
        self._ai = ai_source
        self._ai_timeout = ai_timeout
        self._rng = rng or random.Random()
        self._recent: deque[str] = deque(maxlen=cache_size)

    @property
    def recent(self) -> list[str]:
        return list(self._recent)

    def remember(self, situation: str) -> None:
        self._recent.append(situation)

    async def select_event(
        self, character: Character, context: EventContext, *, ai_enabled: bool = True
    ) -> GameEvent:
        if not character.is_alive:
            raise CharacterDeadError(f"{character.name} is dead; no further events")

        event = None
        if self._ai is not None and ai_enabled:
            event = await self._try_ai(character, context)
        if event is None:
            template = self._catalog.pick(character, context, self._recent, self._rng)
            event = validate_event(event_from_template(template), context.level)

        self.remember(event.situation)
        logger.debug("selected event %s source=%s", event.id, event.source.value)
        return event

    async def _try_ai(self, character: Character, context: EventContext) -> GameEvent | None:
        try:
            generated = await asyncio.wait_for(
                self._ai.generate(character, context, self.recent),
                timeout=self._ai_timeout,
            )
            event = validate_event(generated, context.level)
        except asyncio.TimeoutError:
            logger.warning("AI event source timed out after %.1fs; using catalog", self._ai_timeout)
            return None
        except (LLMError, PromptError, ValueError) as e:
            logger.warning("AI event source failed (%s); using catalog", e)
            return None

        if event.situation in self._recent:
            logger.warning("AI event source repeated a recent situation; using catalog")
            return None
        return event
