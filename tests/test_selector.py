"""Tests for lifesim.selector: AI with fallback, tier caps, recency cache."""

import json
import random
from unittest.mock import AsyncMock, patch

import pytest

from lifesim.ai import AIEventSource
from lifesim.catalog import EventCatalog
from lifesim.llm import HttpLLM
from lifesim.models import EventContext, EventSource
from lifesim.selector import RECENT_CACHE_SIZE, EventSelector, event_from_template, validate_event
from lifesim.stats import CharacterDeadError, kill
from tests.helpers import (
    GEMINI_NON_TEXT,
    OPENAI_NULL_TEXT,
    FailingLLM,
    SlowLLM,
    StubLLM,
    ai_event_json,
    event,
    http_reply,
    template,
)


def _catalog(n: int) -> EventCatalog:
    return EventCatalog([template(f"t{i}") for i in range(n)])


# ---------------------------------------------------------------------------
# Recency cache
# ---------------------------------------------------------------------------

async def test_never_repeats_a_cached_situation_while_alternatives_exist(character, context) -> None:
    selector = EventSelector(_catalog(RECENT_CACHE_SIZE + 2), rng=random.Random(5))
    for _ in range(100):
        recent = selector.recent
        evt = await selector.select_event(character, context)
        assert evt.situation not in recent


async def test_cache_is_bounded_fifo(character, context) -> None:
    selector = EventSelector(_catalog(30), rng=random.Random(1))
    seen = [(await selector.select_event(character, context)).situation for _ in range(15)]
    assert selector.recent == seen[-RECENT_CACHE_SIZE:]


async def test_small_pool_still_returns_events(character, context) -> None:
    selector = EventSelector(_catalog(2), rng=random.Random(2))
    for _ in range(10):
        assert (await selector.select_event(character, context)).situation.startswith("Situation")


async def test_dead_character_rejected(character, context) -> None:
    selector = EventSelector(_catalog(3))
    with pytest.raises(CharacterDeadError):
        await selector.select_event(kill(character, "x"), context)


# ---------------------------------------------------------------------------
# AI source and fallback
# ---------------------------------------------------------------------------

async def test_ai_event_used_when_valid(character, context) -> None:
    llm = StubLLM({"event": [ai_event_json()]})
    selector = EventSelector(_catalog(3), AIEventSource(llm))
    evt = await selector.select_event(character, context)
    assert evt.source is EventSource.GEMINI
    assert evt.effects["C"].death_chance == 0.2
    assert llm.calls[0][0] == "event"


async def test_ai_wealth_capped_to_simple_tier(character) -> None:
    payload = ai_event_json(effects={"A": {"wealth": 1000}, "B": {"health": -90}, "C": {"wealth": -5000}})
    selector = EventSelector(_catalog(3), AIEventSource(StubLLM({"event": [payload]})))
    evt = await selector.select_event(character, EventContext(level="level_1"))
    assert evt.effects["A"].wealth == 300
    assert evt.effects["B"].health == -15
    assert evt.effects["C"].wealth == -300


async def test_ai_wealth_capped_to_complex_tier(character) -> None:
    payload = ai_event_json(effects={"A": {"wealth": 1000}, "B": {}, "C": {}})
    selector = EventSelector(_catalog(3), AIEventSource(StubLLM({"event": [payload]})))
    evt = await selector.select_event(character, EventContext(level="level_5"))
    assert evt.effects["A"].wealth == 500


@pytest.mark.parametrize("response", [
    "not json at all",
    "[1, 2, 3]",
    json.dumps({"situation": "x", "A": "a", "B": "b", "effects": {"A": {}, "B": {}}}),
    json.dumps({"situation": "x", "A": "a", "B": "b", "C": "c", "effects": {"A": {}, "B": {}}}),
    json.dumps({"situation": "", "A": "a", "B": "b", "C": "c", "effects": {"A": {}, "B": {}, "C": {}}}),
])
async def test_malformed_ai_output_falls_back(character, context, response) -> None:
    selector = EventSelector(_catalog(3), AIEventSource(StubLLM({"event": [response]})))
    evt = await selector.select_event(character, context)
    assert evt.source is EventSource.FALLBACK


async def test_ai_error_falls_back(character, context) -> None:
    selector = EventSelector(_catalog(3), AIEventSource(FailingLLM()))
    assert (await selector.select_event(character, context)).source is EventSource.FALLBACK


async def test_ai_timeout_falls_back(character, context) -> None:
    selector = EventSelector(_catalog(3), AIEventSource(SlowLLM(5.0)), ai_timeout=0.01)
    assert (await selector.select_event(character, context)).source is EventSource.FALLBACK


@pytest.mark.parametrize("fmt, body", [("openai", OPENAI_NULL_TEXT), ("gemini", GEMINI_NON_TEXT)])
async def test_non_text_llm_reply_falls_back(character, context, fmt, body) -> None:
    llm = HttpLLM("http://localhost:8080", provider_format=fmt)
    selector = EventSelector(_catalog(3), AIEventSource(llm))
    with patch("httpx.AsyncClient.post", AsyncMock(return_value=http_reply(body))):
        evt = await selector.select_event(character, context)
    assert evt.source is EventSource.FALLBACK


async def test_ai_disabled_skips_llm(character, context) -> None:
    llm = StubLLM({})
    selector = EventSelector(_catalog(3), AIEventSource(llm))
    evt = await selector.select_event(character, context, ai_enabled=False)
    assert evt.source is EventSource.FALLBACK
    assert llm.calls == []


async def test_ai_repeat_of_recent_situation_falls_back(character, context) -> None:
    payload = ai_event_json()
    llm = StubLLM({"event": [payload, payload]})
    selector = EventSelector(_catalog(3), AIEventSource(llm))
    first = await selector.select_event(character, context)
    second = await selector.select_event(character, context)
    assert first.source is EventSource.GEMINI
    assert second.source is EventSource.FALLBACK


async def test_prompt_lists_recent_situations(character, context) -> None:
    llm = StubLLM({"event": [ai_event_json()]})
    selector = EventSelector(_catalog(3), AIEventSource(llm))
    selector.remember("You found a wallet on the tram.")
    await selector.select_event(character, context)
    assert "You found a wallet on the tram." in llm.calls[0][1]


# ---------------------------------------------------------------------------
# Source tagging and validation strategies
# ---------------------------------------------------------------------------

def test_event_from_template_tags_source() -> None:
    assert event_from_template(template("g")).source is EventSource.FALLBACK
    hist = template("h", year=1991, affected_cities=["baku"])
    assert event_from_template(hist).source is EventSource.HISTORICAL


def test_event_ids_are_unique_per_instance() -> None:
    t = template("g")
    assert event_from_template(t).id != event_from_template(t).id


def test_validate_event_rejects_incomplete_gemini_event() -> None:
    from lifesim.models import EventEffects

    broken = event({"A": EventEffects(), "B": EventEffects()}, source=EventSource.GEMINI)
    with pytest.raises(ValueError):
        validate_event(broken, "level_1")


def test_validate_event_caps_catalog_events() -> None:
    from lifesim.models import EventEffects

    rich = event({"A": EventEffects(wealth=5000), "B": EventEffects(), "C": EventEffects()})
    assert validate_event(rich, "demo").effects["A"].wealth == 300
