"""Test doubles and builders shared across test modules."""

import asyncio
import json
from unittest.mock import MagicMock

from lifesim.llm import LLMError
from lifesim.models import Eligibility, EventEffects, EventSource, EventTemplate, GameEvent


class StubLLM:
    """Deterministic LLM stand-in for tests.

    Provide a dict mapping stage name → list of responses (in call order).
    Raises if a stage is called more times than responses were provided.
    """

    def __init__(self, responses: dict[str, list[str]]) -> None:
        self._queues: dict[str, list[str]] = {k: list(v) for k, v in responses.items()}
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, stage: str, prompt: str) -> str:
        self.calls.append((stage, prompt))
        queue = self._queues.get(stage)
        if not queue:
            raise AssertionError(
                f"StubLLM: unexpected call to stage={stage!r} "
                f"(no responses queued). calls so far: {self.calls}"
            )
        return queue.pop(0)


class FailingLLM:
    async def __call__(self, stage: str, prompt: str) -> str:
        raise LLMError("backend unreachable")


class SlowLLM:
    def __init__(self, delay: float = 1.0) -> None:
        self.delay = delay

    async def __call__(self, stage: str, prompt: str) -> str:
        await asyncio.sleep(self.delay)
        return "{}"


class GatedLLM:
    """Blocks every call until `gate` is set, then returns `response`."""

    def __init__(self, response: str) -> None:
        self.response = response
        self.gate = asyncio.Event()

    async def __call__(self, stage: str, prompt: str) -> str:
        await self.gate.wait()
        return self.response


def ai_event_json(**overrides) -> str:
    payload = {
        "situation": "A stranger offers you a ride across the border.",
        "A": "Accept",
        "B": "Decline",
        "C": "Hide in the trunk",
        "effects": {
            "A": {"happiness": 5, "wealth": -20},
            "B": {"energy": 5},
            "C": {"wealth": 100, "deathChance": 0.2},
        },
    }
    payload.update(overrides)
    return json.dumps(payload)


def template(id: str, situation: str | None = None, **eligibility) -> EventTemplate:
    return EventTemplate(
        id=id,
        situation=situation or f"Situation {id}",
        choices={"A": "a", "B": "b", "C": "c"},
        effects={
            "A": EventEffects(happiness=1),
            "B": EventEffects(energy=1),
            "C": EventEffects(wealth=1),
        },
        eligibility=Eligibility(**eligibility),
    )


def event(effects: dict[str, EventEffects] | None = None, **kwargs) -> GameEvent:
    effects = effects or {
        "A": EventEffects(health=10, wealth=100),
        "B": EventEffects(happiness=-5),
        "C": EventEffects(wealth=500, death_chance=1.0),
    }
    fields = {
        "id": "evt-1",
        "source": EventSource.FALLBACK,
        "situation": "Something happens.",
        "choices": {key: f"choice {key}" for key in effects},
        "effects": effects,
    }
    fields.update(kwargs)
    return GameEvent(**fields)


def http_reply(body) -> MagicMock:
    """A successful httpx response whose JSON body is `body`."""
    resp = MagicMock()
    resp.status_code = 200
    resp.json.return_value = body
    resp.raise_for_status = MagicMock()
    return resp


GEMINI_NON_TEXT = {"candidates": [{"content": {"parts": [{"text": 7}]}}]}
OPENAI_NULL_TEXT = {"choices": [{"text": None}]}
