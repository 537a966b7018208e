"""Tests for lifesim.prompts: Handlebars rendering and prompt contexts."""

import pytest

from lifesim.models import EventContext, EventSource, HistoryEntry
from lifesim.prompts import (
    EVENT_TEMPLATE,
    JUDGE_TEMPLATE,
    PromptError,
    build_event_context,
    build_judge_context,
    render_prompt,
)
from tests.helpers import event


# ── render_prompt ────────────────────────────────────────────


def test_render_simple_variable():
    assert render_prompt("Hello {{name}}!", {"name": "World"}) == "Hello World!"


def test_render_last_helper():
    result = render_prompt("{{#last items 2}}[{{this}}]{{/last}}", {"items": [1, 2, 3]})
    assert result == "[2][3]"


def test_render_last_helper_else_branch():
    assert render_prompt("{{#last items 2}}x{{else}}empty{{/last}}", {"items": []}) == "empty"


def test_render_invalid_template():
    with pytest.raises(PromptError):
        render_prompt("{{> missing_partial}}", {})


# ── event prompt ─────────────────────────────────────────────


def _history(n: int) -> list[HistoryEntry]:
    return [
        HistoryEntry(age=20 + i, event_id=f"e{i}", situation=f"Situation number {i}",
                     source=EventSource.FALLBACK, choice=f"Choice {i}", timestamp=0)
        for i in range(n)
    ]


def test_simple_tier_shows_last_five_choices(character):
    c = character.model_copy(update={"history": _history(8)})
    prompt = render_prompt(EVENT_TEMPLATE, build_event_context(c, EventContext(level="level_1"), []))
    assert "Situation number 2" not in prompt
    assert "Situation number 3" in prompt
    assert "Situation number 7" in prompt
    assert "Keep the event simple" in prompt


def test_complex_tier_shows_ten_choices_and_chaining(character):
    c = character.model_copy(update={"history": _history(12)})
    prompt = render_prompt(EVENT_TEMPLATE, build_event_context(c, EventContext(level="level_4"), []))
    assert "Situation number 1 " not in prompt
    assert "Situation number 2" in prompt
    assert "continue storylines" in prompt
    assert "+/-500" in prompt


def test_no_history_renders_placeholder(character):
    prompt = render_prompt(EVENT_TEMPLATE, build_event_context(character, EventContext(), []))
    assert "none yet" in prompt
    assert "Normal peacetime conditions" in prompt


def test_free_text_is_not_html_escaped(character):
    ctx = build_judge_context(character, event(situation="Tom's bar & grill"), "I'd leave", EventContext())
    prompt = render_prompt(JUDGE_TEMPLATE, ctx)
    assert "Tom's bar & grill" in prompt
    assert "I'd leave" in prompt
