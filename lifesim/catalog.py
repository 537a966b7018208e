"""Event catalog: static templates and eligibility filtering.

Selection rules (pick()):
  1. Filter every template through its eligibility predicate.
  2. Drop templates whose situation was shown recently.
  3. Among what is left, templates tied to the exact (year, city) pair win
     over generic ones.
  4. If step 2 emptied the pool, repeat step 3 on the unfiltered pool.
  5. If nothing is eligible at all, synthesize a mundane event.
  6. Uniform random choice among the final pool.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Collection, Iterable

from lifesim.history import CITY_TEMPLATES
from lifesim.levels import level_number
from lifesim.models import (
    Character,
    Eligibility,
    EventContext,
    EventEffects,
    EventTemplate,
    StatFloor,
)

logger = logging.getLogger(__name__)


def _t(
    id: str, situation: str,
    a: tuple[str, EventEffects], b: tuple[str, EventEffects], c: tuple[str, EventEffects],
    category: str = "life", **eligibility,
) -> EventTemplate:
    return EventTemplate(
        id=id,
        situation=situation,
        choices={"A": a[0], "B": b[0], "C": c[0]},
        effects={"A": a[1], "B": b[1], "C": c[1]},
        eligibility=Eligibility(**eligibility),
        category=category,
    )


BASIC_TEMPLATES: list[EventTemplate] = [
    _t(
        "work_offer", "You are offered a weekend side job. Extra money never hurts.",
        ("Take it", EventEffects(wealth=50, energy=-20, happiness=-10)),
        ("Turn it down", EventEffects(energy=10, happiness=5)),
        ("Take it and cut corners for a bonus", EventEffects(wealth=150, energy=-10, death_chance=0.05)),
        category="career", min_age=16,
    ),
    _t(
        "health_check", "It is time for a routine medical checkup.",
        ("Go to the doctor", EventEffects(health=15, wealth=-30)),
        ("Skip it", EventEffects(energy=10)),
        ("Self-medicate with whatever is in the cabinet", EventEffects(health=-5, wealth=10, death_chance=0.05)),
        category="health",
    ),
    _t(
        "friend_meeting", "An old friend invites you to spend the evening together.",
        ("Meet up", EventEffects(happiness=20, energy=-10, wealth=-20, relationships={"friends": 10})),
        ("Say you are busy", EventEffects(energy=5, relationships={"friends": -5})),
        ("Turn it into an all-night party", EventEffects(happiness=30, health=-15, wealth=-60, death_chance=0.05)),
        category="social",
    ),
    _t(
        "learning_opportunity", "Free online courses open up. New skills may come in handy.",
        ("Study", EventEffects(energy=-25, happiness=10, skills=5)),
        ("Rest instead", EventEffects(energy=20)),
        ("Cram everything in a week", EventEffects(energy=-40, skills=10, health=-10)),
        category="education", min_age=14, max_age=30,
    ),
    _t(
        "family_help", "Relatives ask for help with family matters.",
        ("Help them", EventEffects(happiness=15, energy=-15, wealth=10, relationships={"family": 10})),
        ("Politely refuse", EventEffects(happiness=-10, energy=10, relationships={"family": -10})),
        ("Take charge of everything", EventEffects(happiness=5, energy=-30, relationships={"family": 20})),
        category="social",
    ),
    _t(
        "sickness", "You feel unwell. Maybe you are coming down with something.",
        ("Rest at home", EventEffects(health=10, energy=10, wealth=-20)),
        ("Ignore it", EventEffects(health=-15, energy=-10)),
        ("Work through it", EventEffects(health=-25, wealth=40, death_chance=0.1)),
        category="health",
    ),
    _t(
        "celebration", "There is a festival in town!",
        ("Join in", EventEffects(happiness=25, energy=-20, wealth=-30)),
        ("Watch from the side", EventEffects(happiness=10, energy=-5)),
        ("Climb the stage scaffolding for the best view", EventEffects(happiness=35, health=-10, death_chance=0.1)),
        category="social",
    ),
    _t(
        "investment", "A promising venture is looking for investors.",
        ("Invest", EventEffects(wealth=-100, happiness=5)),
        ("Keep your savings", EventEffects(happiness=5)),
        ("Go all in on borrowed money", EventEffects(wealth=400, happiness=-10, death_chance=0.15)),
        category="finance", min_age=18, min_stat=StatFloor(name="wealth", value=150),
    ),
    _t(
        "romantic_encounter", "You meet someone interesting. Could this be serious?",
        ("Go on a date", EventEffects(happiness=30, energy=-15, wealth=-25, relationships={"romantic": 15})),
        ("Take it slow", EventEffects(happiness=10, energy=-5, relationships={"romantic": 5})),
        ("Elope tonight", EventEffects(happiness=40, wealth=-200, relationships={"romantic": 30, "family": -20})),
        category="romance", min_age=16, max_age=50,
    ),
    _t(
        "career_opportunity", "You are offered a promotion, with more responsibility.",
        ("Accept", EventEffects(wealth=100, happiness=15, energy=-25)),
        ("Decline", EventEffects(happiness=-5, energy=10)),
        ("Demand double or walk", EventEffects(wealth=300, relationships={"colleagues": -20}, death_chance=0.05)),
        category="career", min_age=22, max_age=60,
    ),
    _t(
        "health_crisis", "Doctors find a serious problem. Treatment is urgent.",
        ("Expensive treatment", EventEffects(health=40, wealth=-200)),
        ("Cheap treatment", EventEffects(health=20, wealth=-50)),
        ("Refuse treatment", EventEffects(health=-30, death_chance=0.2)),
        category="health", min_age=40,
    ),
    _t(
        "family_tragedy", "Tragedy strikes your family. Your relatives need support.",
        ("Support them fully", EventEffects(happiness=-30, energy=-20, wealth=-100, relationships={"family": 20})),
        ("Offer partial support", EventEffects(happiness=-15, energy=-10, wealth=-50)),
        ("Drown the grief in drink", EventEffects(happiness=-10, health=-20, death_chance=0.1)),
        category="social", min_age=25,
    ),
    _t(
        "windfall", "A distant relative leaves you an unexpected inheritance!",
        ("Invest wisely", EventEffects(wealth=200, happiness=20)),
        ("Save it conservatively", EventEffects(wealth=150, happiness=10)),
        ("Blow it in Monte Carlo", EventEffects(wealth=500, happiness=40, death_chance=0.1)),
        category="finance", min_age=18,
    ),
    _t(
        "midlife_crisis", "You are rethinking your life. Time for a change?",
        ("Change careers", EventEffects(happiness=30, wealth=-150, energy=-20)),
        ("Start a hobby", EventEffects(happiness=20, wealth=-50, energy=-10)),
        ("Buy a motorcycle and ride cross-country", EventEffects(happiness=40, wealth=-300, death_chance=0.15)),
        category="life", min_age=35, max_age=55, min_level=1,
    ),
    _t(
        "retirement_decision", "Retirement is on the horizon. When do you stop working?",
        ("Retire early", EventEffects(happiness=25, wealth=-100, energy=30)),
        ("Work longer", EventEffects(happiness=-10, wealth=200, energy=-20)),
        ("Go part-time", EventEffects(happiness=15, wealth=50, energy=10)),
        category="career", min_age=55,
    ),
    _t(
        "code_review", "A production outage traces back to your commit.",
        ("Own it and write the postmortem", EventEffects(skills=5, happiness=-5, relationships={"colleagues": 10})),
        ("Quietly patch it", EventEffects(energy=-15, skills=3)),
        ("Blame the intern", EventEffects(wealth=100, relationships={"colleagues": -25})),
        category="career", profession="Programmer", min_level=1,
    ),
    _t(
        "night_shift", "The emergency ward is short-staffed tonight.",
        ("Take the extra shift", EventEffects(wealth=80, energy=-30, skills=3)),
        ("Go home and sleep", EventEffects(energy=20)),
        ("Treat a patient with an untested protocol", EventEffects(skills=10, happiness=15, death_chance=0.1)),
        category="career", profession="Doctor", min_level=1,
    ),
    _t(
        "startup_pitch", "An investor gives you five minutes to pitch.",
        ("Pitch the safe plan", EventEffects(wealth=150, energy=-10)),
        ("Ask for mentoring instead", EventEffects(skills=5, relationships={"colleagues": 10})),
        ("Promise a moonshot you cannot deliver", EventEffects(wealth=500, happiness=-10, death_chance=0.2)),
        category="career", profession="Entrepreneur", min_level=3,
    ),
    _t(
        "loan_shark", "A man with gold teeth offers quick money, no questions asked.",
        ("Walk away", EventEffects(happiness=-5)),
        ("Borrow a little", EventEffects(wealth=200, happiness=-10)),
        ("Borrow a lot and bet it", EventEffects(wealth=800, health=-20, death_chance=0.3)),
        category="crime", min_age=18, min_level=3,
    ),
]


def mundane_event(city: str) -> EventTemplate:
    """Always-eligible low-stakes template used when nothing else fits."""
    place = city.title() if city else "town"
    return _t(
        "mundane_day", f"Life in {place} goes on as usual. What will you do today?",
        ("Work and earn a little", EventEffects(wealth=10, energy=-5)),
        ("Rest and recover", EventEffects(energy=10, happiness=5)),
        ("Learn something new", EventEffects(energy=-5, happiness=5, skills=1)),
        category="mundane",
    )


def _stat_value(character: Character, name: str) -> int | None:
    if hasattr(character.stats, name):
        return getattr(character.stats, name)
    if name in character.skills:
        return character.skills[name]
    return character.relationships.get(name)


def is_eligible(template: EventTemplate, character: Character, context: EventContext) -> bool:
    rules = template.eligibility
    if rules.min_age is not None and character.age < rules.min_age:
        return False
    if rules.max_age is not None and character.age > rules.max_age:
        return False
    if rules.min_stat is not None:
        value = _stat_value(character, rules.min_stat.name)
        if value is None or value < rules.min_stat.value:
            return False
    if rules.profession not in (None, "any") and rules.profession != character.profession:
        return False
    if rules.min_level > level_number(context.level):
        return False
    if rules.year is not None:
        if rules.year != context.year_for(character):
            return False
        if context.city_for(character) not in rules.affected_cities:
            return False
    return True


def _prioritize(pool: list[EventTemplate]) -> list[EventTemplate]:
    historical = [t for t in pool if t.is_historical]
    return historical or pool


class EventCatalog:
    """A collection of event templates with eligibility-aware selection."""

    def __init__(self, templates: Iterable[EventTemplate] | None = None) -> None:
        if templates is None:
            templates = [*BASIC_TEMPLATES, *CITY_TEMPLATES]
        self._templates = list(templates)

    def __len__(self) -> int:
        return len(self._templates)

    @property
    def templates(self) -> list[EventTemplate]:
        return list(self._templates)

    def filter_eligible(self, character: Character, context: EventContext) -> list[EventTemplate]:
        return [t for t in self._templates if is_eligible(t, character, context)]

    def pick(
        self,
        character: Character,
        context: EventContext,
        recent: Collection[str] = (),
        rng: random.Random | None = None,
    ) -> EventTemplate:
        rng = rng or random.Random()
        eligible = self.filter_eligible(character, context)
        if not eligible:
            logger.warning("no eligible templates for %s (age %d); using mundane event",
                           character.name, character.age)
            return mundane_event(context.city_for(character))

        fresh = [t for t in eligible if t.situation not in recent]
        if not fresh:
            logger.debug("all %d eligible templates seen recently; ignoring recency", len(eligible))
            fresh = eligible
        return rng.choice(_prioritize(fresh))
