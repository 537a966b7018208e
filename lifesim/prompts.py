"""Handlebars prompt rendering for the AI event source and the choice judge."""

from collections.abc import Callable
from typing import Any

import pybars

from lifesim.history import historical_prompt_context
from lifesim.levels import complexity_for, get_level
from lifesim.models import SKILL_NAMES, Character, EventContext, GameEvent


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_last(this, options, items, count):
    """{{#last array N}}...{{else}}...{{/last}}: iterate over the last N items."""
    items = list(items)
    if not items:
        return options["inverse"](this)
    result = []
    for item in items[-int(count):]:
        result.extend(options["fn"](item))
    return result


_HELPERS: dict[str, Callable] = {
    "last": _helper_last,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Templates ────────────────────────────────────────────

EVENT_TEMPLATE = """\
You are the narrator of a life simulation game. Create one life event.

CHARACTER:
- Name: {{char.name}}, age {{char.age}}, from {{char.city}}, {{char.country}}
- Year: {{year}}
- Profession: {{char.profession}}
- Health: {{char.health}}/100, Happiness: {{char.happiness}}/100, Energy: {{char.energy}}/100
- Wealth: ${{char.wealth}}
- Skills:{{#each skills}} {{name}} {{value}}/100;{{/each}}
- Relationships:{{#each relationships}} {{name}} {{value}}/100;{{/each}}

HISTORICAL CONTEXT: {{{history_context}}}

LEVEL: {{level.name}} ({{tier.name}} complexity)
- Effect limits: health/happiness/energy/skills at most +/-{{tier.max_vital}}, wealth at most +/-{{tier.max_wealth}}
- Choice C is risky: include "deathChance": {{level.death_chance}} in effects.C
{{#if tier.chained_events}}- Events may continue storylines from earlier choices.
{{else}}- Keep the event simple and self-contained.
{{/if}}
RECENT CHOICES:
{{#last recent_choices tier.recent_choices}}- age {{age}}: {{{situation}}} -> {{{choice}}}
{{else}}- none yet
{{/last}}
DO NOT REPEAT THESE SITUATIONS:
{{#each recent_situations}}- {{{this}}}
{{/each}}
Reply with JSON only, in this shape:
{"situation": "...", "A": "...", "B": "...", "C": "...",
 "effects": {
   "A": {"health": 0, "happiness": 0, "wealth": 0, "energy": 0, "skills": 0},
   "B": {"health": 0, "happiness": 0, "wealth": 0, "energy": 0, "skills": 0},
   "C": {"health": 0, "happiness": 0, "wealth": 0, "energy": 0, "skills": 0, "deathChance": 0.0}
 }
}
"""

JUDGE_TEMPLATE = """\
You are judging a player's free-form choice in a life simulation game.

SITUATION: {{{situation}}}
PLAYER'S CHOICE: {{{custom_text}}}

CHARACTER: {{char.name}}, age {{char.age}}, {{char.country}}, year {{year}}
- Health {{char.health}}/100, Happiness {{char.happiness}}/100, Wealth ${{char.wealth}}
- Profession: {{char.profession}}

TASK:
1. Decide whether the choice is realistic for the situation and era.
2. A sensible, creative choice earns a skills bonus of 1 to 3; an unrealistic one earns 0.
3. Explain the consequence in one or two sentences.

Reply with JSON only:
{"isValid": true, "explanation": "...", "effects": {"health": 0, "happiness": 0, "wealth": 0, "skills": 0}}
"""


# ── Context builders ─────────────────────────────────────


def _char_context(character: Character, city: str) -> dict[str, Any]:
    return {
        "name": character.name,
        "age": character.age,
        "country": character.country,
        "city": city.title() if city else "unknown city",
        "profession": character.profession or "Unemployed",
        "health": character.stats.health,
        "happiness": character.stats.happiness,
        "energy": character.stats.energy,
        "wealth": character.stats.wealth,
    }


def build_event_context(
    character: Character,
    context: EventContext,
    recent_situations: list[str],
) -> dict[str, Any]:
    """Assemble template variables for EVENT_TEMPLATE."""
    year = context.year_for(character)
    level = get_level(context.level)
    tier = complexity_for(context.level)
    recent_choices = [
        {"age": h.age, "situation": h.situation, "choice": h.choice}
        for h in character.history
    ]
    return {
        "char": _char_context(character, context.city_for(character)),
        "year": year,
        "skills": [
            {"name": name, "value": character.skills.get(name, 0)} for name in SKILL_NAMES
        ],
        "relationships": [
            {"name": name, "value": value} for name, value in character.relationships.items()
        ],
        "history_context": historical_prompt_context(character.country, year, character.age),
        "level": level.model_dump(),
        "tier": tier.model_dump(),
        "recent_choices": recent_choices,
        "recent_situations": list(recent_situations),
    }


def build_judge_context(
    character: Character,
    event: GameEvent,
    custom_text: str,
    context: EventContext,
) -> dict[str, Any]:
    return {
        "char": _char_context(character, context.city_for(character)),
        "year": context.year_for(character),
        "situation": event.situation,
        "custom_text": custom_text,
    }
