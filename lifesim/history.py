"""Historical context, 1850 onward.

Two kinds of history shape play:

  Country impacts   a nationwide event near the character's current year
                    scales health/wealth/happiness deltas by an impact factor
                    (e.g. Great Depression: wealth × 0.3).
  City templates    events that happened in a specific city in a specific
                    year; they become eligible only for that exact pair and
                    take priority over generic events.
"""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict

from lifesim.models import Eligibility, EventEffects, EventTemplate

CONTEXT_WINDOW_YEARS = 5


class Impact(BaseModel):
    model_config = ConfigDict(frozen=True)

    health: float = 1.0
    wealth: float = 1.0
    happiness: float = 1.0


class HistoricalEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    country: str
    year: int
    title: str
    description: str
    impact: Impact
    tags: tuple[str, ...] = ()


def _h(country: str, year: int, title: str, description: str,
       health: float, wealth: float, happiness: float, *tags: str) -> HistoricalEvent:
    return HistoricalEvent(
        country=country, year=year, title=title, description=description,
        impact=Impact(health=health, wealth=wealth, happiness=happiness), tags=tags,
    )


COUNTRY_EVENTS: list[HistoricalEvent] = [
    _h("USA", 1861, "Civil War", "American Civil War begins", 0.7, 0.8, 0.6, "war", "crisis"),
    _h("USA", 1918, "Spanish Flu", "Pandemic sweeps the nation", 0.5, 0.9, 0.7, "pandemic", "health"),
    _h("USA", 1929, "Great Depression", "Stock market crash, economic collapse", 0.9, 0.3, 0.4, "economic", "crisis"),
    _h("USA", 1941, "WW2", "United States enters World War II", 0.7, 0.8, 0.7, "war"),
    _h("USA", 1950, "Post-war Boom", "Economic prosperity and growth", 1.0, 1.3, 1.2, "prosperity"),
    _h("USA", 1969, "Moon Landing", "First human on the moon", 1.0, 1.1, 1.2, "achievement"),
    _h("USA", 1973, "Oil Crisis", "Energy crisis affects economy", 0.95, 0.7, 0.8, "economic"),
    _h("USA", 1987, "Stock Market Crash", "Black Monday market collapse", 1.0, 0.6, 0.7, "economic"),
    _h("USA", 2001, "9/11 Attacks", "Terrorist attacks shake nation", 0.9, 0.8, 0.5, "crisis", "terror"),
    _h("USA", 2008, "Financial Crisis", "Housing market collapse, recession", 0.95, 0.5, 0.6, "economic", "crisis"),
    _h("USA", 2020, "COVID-19 Pandemic", "Global pandemic lockdowns", 0.7, 0.7, 0.6, "pandemic", "health"),
    _h("Russia", 1914, "WW1", "Russian Empire enters World War I", 0.6, 0.7, 0.5, "war"),
    _h("Russia", 1917, "Russian Revolution", "Bolshevik Revolution, civil war", 0.5, 0.4, 0.3, "revolution", "war"),
    _h("Russia", 1941, "Great Patriotic War", "Nazi invasion of Soviet Union", 0.4, 0.5, 0.4, "war", "crisis"),
    _h("Russia", 1961, "Space Race", "Gagarin first in space", 1.0, 0.9, 1.3, "achievement"),
    _h("Russia", 1986, "Chernobyl Disaster", "Nuclear catastrophe", 0.6, 0.8, 0.5, "disaster", "health"),
    _h("Russia", 1991, "USSR Collapse", "Soviet Union dissolves", 0.8, 0.4, 0.5, "crisis", "economic"),
    _h("Russia", 1998, "Economic Crisis", "Ruble collapse, default", 0.9, 0.3, 0.4, "economic", "crisis"),
    _h("India", 1947, "Independence", "Independence and partition", 0.7, 0.8, 1.1, "political"),
    _h("India", 1991, "Economic Liberalization", "Market reforms begin", 1.0, 1.3, 1.2, "reform", "prosperity"),
    _h("India", 2000, "IT Boom", "Technology sector explosion", 1.0, 1.4, 1.2, "prosperity", "technology"),
    _h("Germany", 1914, "WW1", "World War I begins", 0.6, 0.7, 0.5, "war"),
    _h("Germany", 1918, "WW1 Defeat", "Germany loses, harsh terms", 0.7, 0.4, 0.3, "war", "crisis"),
    _h("Germany", 1923, "Hyperinflation", "Currency collapse", 0.8, 0.2, 0.3, "economic", "crisis"),
    _h("Germany", 1939, "WW2", "Nazi Germany starts World War II", 0.5, 0.6, 0.5, "war"),
    _h("Germany", 1945, "WW2 Defeat", "Total defeat, division", 0.4, 0.3, 0.2, "war", "crisis"),
    _h("Germany", 1961, "Berlin Wall", "City divided by wall", 0.9, 0.7, 0.5, "crisis"),
    _h("Germany", 1989, "Wall Falls", "Berlin Wall falls, reunification", 1.0, 1.2, 1.4, "achievement"),
    _h("Germany", 2015, "Refugee Crisis", "Mass migration influx", 0.95, 0.9, 0.8, "crisis"),
    _h("Japan", 1923, "Great Kanto Earthquake", "Devastating Tokyo earthquake", 0.5, 0.5, 0.4, "disaster"),
    _h("Japan", 1941, "WW2", "Japan enters World War II", 0.6, 0.7, 0.6, "war"),
    _h("Japan", 1945, "Atomic Bombs", "Hiroshima and Nagasaki", 0.3, 0.4, 0.2, "war", "disaster"),
    _h("Japan", 1960, "Economic Miracle", "Rapid post-war growth", 1.1, 1.5, 1.3, "prosperity"),
    _h("Japan", 1989, "Asset Bubble", "Economic bubble peaks", 1.0, 1.4, 1.2, "prosperity"),
    _h("Japan", 1991, "Lost Decade Begins", "Economic stagnation", 1.0, 0.7, 0.7, "economic"),
    _h("Japan", 2011, "Fukushima Disaster", "Earthquake, tsunami, nuclear meltdown", 0.6, 0.7, 0.5, "disaster", "health"),
    _h("Brazil", 1964, "Military Coup", "Military dictatorship begins", 0.8, 0.7, 0.5, "crisis"),
    _h("Brazil", 1985, "Democracy Restored", "Return to civilian rule", 0.95, 0.9, 1.2, "reform"),
    _h("Brazil", 1994, "Real Plan", "Currency reform, stability", 1.0, 1.2, 1.1, "economic", "reform"),
    _h("Brazil", 2016, "Political Crisis", "Impeachment, corruption scandals", 0.95, 0.7, 0.6, "crisis"),
    _h("Azerbaijan", 1918, "Democratic Republic", "First democratic republic in the Muslim East", 0.9, 0.9, 1.2, "political"),
    _h("Azerbaijan", 1920, "Soviet Rule", "The Red Army enters Baku", 0.8, 0.6, 0.5, "political", "crisis"),
    _h("Azerbaijan", 1941, "World War II", "Baku oil fuels the Soviet front", 0.6, 0.7, 0.6, "war"),
    _h("Azerbaijan", 1990, "Black January", "Soviet troops storm Baku", 0.6, 0.8, 0.3, "crisis"),
    _h("Azerbaijan", 1991, "Independence", "Restoration of independence", 0.9, 0.6, 1.2, "political"),
    _h("Azerbaijan", 1994, "Contract of the Century", "Western oil consortium signs in Baku", 1.0, 1.3, 1.1, "economic", "prosperity"),
]


def historical_context(country: str, year: int) -> HistoricalEvent | None:
    """Nearest country event within ±5 years of `year`; ties go to the earlier year."""
    best: HistoricalEvent | None = None
    best_distance = math.inf
    for event in COUNTRY_EVENTS:
        if event.country != country:
            continue
        distance = abs(event.year - year)
        if distance <= CONTEXT_WINDOW_YEARS and distance < best_distance:
            best, best_distance = event, distance
    return best


def apply_historical_impact(effects: EventEffects, event: HistoricalEvent) -> EventEffects:
    """Scale health/wealth/happiness by the event's impact, flooring to int."""
    update: dict[str, int] = {}
    if effects.health is not None:
        update["health"] = math.floor(effects.health * event.impact.health)
    if effects.wealth is not None:
        update["wealth"] = math.floor(effects.wealth * event.impact.wealth)
    if effects.happiness is not None:
        update["happiness"] = math.floor(effects.happiness * event.impact.happiness)
    return effects.model_copy(update=update)


def historical_prompt_context(country: str, year: int, age: int) -> str:
    event = historical_context(country, year)
    if event is None:
        return f"It is {year} in {country}. Normal peacetime conditions."
    return (
        f"It is {year} in {country}. Historical context: {event.title} - "
        f"{event.description}. This significantly affects daily life, economy, "
        f"and opportunities. The character is {age} years old during this period."
    )


# ---------------------------------------------------------------------------
# City templates
# ---------------------------------------------------------------------------

def _city_event(
    id: str, year: int, cities: list[str], title: str, description: str,
    a: tuple[str, EventEffects], b: tuple[str, EventEffects], c: tuple[str, EventEffects],
) -> EventTemplate:
    return EventTemplate(
        id=id,
        situation=f"{year}. {title}\n\n{description}",
        choices={"A": a[0], "B": b[0], "C": c[0]},
        effects={"A": a[1], "B": b[1], "C": c[1]},
        eligibility=Eligibility(year=year, affected_cities=cities),
        category="historical",
    )


CITY_TEMPLATES: list[EventTemplate] = [
    _city_event(
        "adr_1918", 1918, ["baku", "ganja"],
        "Proclamation of the Democratic Republic",
        "On 28 May the first democratic republic of the Muslim East is proclaimed.",
        ("Actively support the new government", EventEffects(happiness=15, wealth=10, energy=5)),
        ("Stay neutral and watch", EventEffects(happiness=5, energy=10)),
        ("Voice doubts about its stability", EventEffects(happiness=-5, wealth=5)),
    ),
    _city_event(
        "baku_battle_1918", 1918, ["baku"],
        "Battle of Baku",
        "September fighting to free the city.",
        ("Join the fight for the city", EventEffects(health=-10, happiness=20, wealth=5)),
        ("Help the wounded and refugees", EventEffects(health=5, happiness=15, energy=-5)),
        ("Stay home to protect the family", EventEffects(health=5, energy=10)),
    ),
    _city_event(
        "soviet_1920", 1920, ["baku", "ganja", "sumgait"],
        "Soviet rule established",
        "The Red Army enters Baku and installs Soviet power.",
        ("Support the new authorities", EventEffects(happiness=-5, wealth=15)),
        ("Keep your head down", EventEffects(happiness=-10, energy=5)),
        ("Join the underground resistance", EventEffects(health=-15, happiness=10, death_chance=0.3)),
    ),
    _city_event(
        "sumgait_founding_1949", 1949, ["sumgait"],
        "A new industrial city",
        "Sumgait is founded as a chemical and metallurgy hub.",
        ("Take a job at the new plant", EventEffects(wealth=40, health=-5)),
        ("Stay in your old trade", EventEffects(happiness=5)),
        ("Speculate on housing for the workers", EventEffects(wealth=80, happiness=-5, death_chance=0.1)),
    ),
    _city_event(
        "black_january_1990", 1990, ["baku"],
        "Black January",
        "Soviet troops storm Baku on the night of 20 January.",
        ("Shelter with your family", EventEffects(health=5, happiness=-15)),
        ("Help carry the wounded", EventEffects(health=-5, happiness=5, energy=-15)),
        ("Go out to the barricades", EventEffects(happiness=10, health=-20, death_chance=0.25)),
    ),
    _city_event(
        "independence_1991", 1991, ["baku", "ganja", "sumgait", "lankaran", "shaki"],
        "Independence restored",
        "Azerbaijan declares the restoration of its independence.",
        ("Celebrate in the streets", EventEffects(happiness=20, energy=-10)),
        ("Start a private business", EventEffects(wealth=50, energy=-15)),
        ("Take pride in the historic moment", EventEffects(happiness=25, energy=10)),
    ),
    _city_event(
        "contract_1994", 1994, ["baku"],
        "Contract of the Century",
        "Foreign oil companies arrive in Baku after a landmark deal.",
        ("Learn English and apply to a foreign firm", EventEffects(skills=5, wealth=60, energy=-10)),
        ("Open a cafe for expats", EventEffects(wealth=100, energy=-20)),
        ("Gamble savings on oil-field land", EventEffects(wealth=250, happiness=-10, death_chance=0.05)),
    ),
]
