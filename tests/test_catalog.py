"""Tests for lifesim.catalog: eligibility and pick order."""

import random

from lifesim.catalog import BASIC_TEMPLATES, EventCatalog, is_eligible
from lifesim.models import EventContext, StatFloor
from tests.helpers import template


# ---------------------------------------------------------------------------
# Eligibility
# ---------------------------------------------------------------------------

def test_age_bounds_are_inclusive(character, context) -> None:
    assert is_eligible(template("t", min_age=30, max_age=30), character, context)
    assert not is_eligible(template("t", min_age=31), character, context)
    assert not is_eligible(template("t", max_age=29), character, context)


def test_min_stat_checks_vitals_skills_and_relationships(character, context) -> None:
    assert is_eligible(template("t", min_stat=StatFloor(name="wealth", value=1000)), character, context)
    assert not is_eligible(template("t", min_stat=StatFloor(name="wealth", value=1001)), character, context)
    assert is_eligible(template("t", min_stat=StatFloor(name="intelligence", value=30)), character, context)
    assert not is_eligible(template("t", min_stat=StatFloor(name="family", value=61)), character, context)
    assert not is_eligible(template("t", min_stat=StatFloor(name="luck", value=1)), character, context)


def test_profession_exact_or_any(character, context) -> None:
    doctor = character.model_copy(update={"profession": "Doctor"})
    assert is_eligible(template("t", profession="any"), character, context)
    assert is_eligible(template("t", profession="Doctor"), doctor, context)
    assert not is_eligible(template("t", profession="Doctor"), character, context)


def test_min_level(character) -> None:
    t = template("t", min_level=3)
    assert not is_eligible(t, character, EventContext(level="level_2"))
    assert is_eligible(t, character, EventContext(level="level_3"))


def test_historical_needs_exact_year_and_city(character) -> None:
    t = template("t", year=1991, affected_cities=["baku"])
    assert is_eligible(t, character, EventContext(year=1991))
    assert not is_eligible(t, character, EventContext(year=1992))
    assert not is_eligible(t, character, EventContext(year=1991, city="shaki"))


# ---------------------------------------------------------------------------
# pick()
# ---------------------------------------------------------------------------

def test_historical_templates_take_priority(character) -> None:
    catalog = EventCatalog([
        template("generic1"), template("generic2"),
        template("hist", year=1991, affected_cities=["baku"]),
    ])
    ctx = EventContext(year=1991)
    rng = random.Random(0)
    assert all(catalog.pick(character, ctx, (), rng).id == "hist" for _ in range(20))


def test_recent_situations_are_skipped(character, context) -> None:
    catalog = EventCatalog([template("a"), template("b")])
    rng = random.Random(0)
    for _ in range(20):
        assert catalog.pick(character, context, ["Situation a"], rng).id == "b"


def test_recency_ignored_when_it_would_empty_the_pool(character, context) -> None:
    catalog = EventCatalog([template("a"), template("b")])
    picked = catalog.pick(character, context, ["Situation a", "Situation b"], random.Random(0))
    assert picked.id in {"a", "b"}


def test_recent_historical_falls_back_to_generic(character) -> None:
    catalog = EventCatalog([template("generic"), template("hist", year=1991, affected_cities=["baku"])])
    picked = catalog.pick(character, EventContext(year=1991), ["Situation hist"], random.Random(0))
    assert picked.id == "generic"


def test_mundane_event_when_nothing_eligible(character, context) -> None:
    catalog = EventCatalog([template("kids", max_age=10)])
    picked = catalog.pick(character, context, (), random.Random(0))
    assert picked.category == "mundane"
    assert "Baku" in picked.situation
    assert set(picked.choices) == {"A", "B", "C"}


def test_default_catalog_always_has_something(character) -> None:
    catalog = EventCatalog()
    assert len(catalog) == len(BASIC_TEMPLATES) + 7
    for level in ("demo", "level_1", "level_5"):
        assert catalog.filter_eligible(character, EventContext(level=level))


def test_basic_templates_offer_three_choices_with_effects() -> None:
    for t in BASIC_TEMPLATES:
        assert set(t.choices) == {"A", "B", "C"} == set(t.effects)
