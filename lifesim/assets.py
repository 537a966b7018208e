"""Purchasable assets and their passive per-tick effects."""

from __future__ import annotations

import logging
import math

from pydantic import BaseModel, ConfigDict

from lifesim.models import Character, EventEffects, OwnedAsset
from lifesim.stats import CharacterDeadError, apply_effects, merge_effects, refresh_flags

logger = logging.getLogger(__name__)

RESALE_RATIO = 0.8


class AssetError(ValueError):
    """Raised for an unknown asset, a duplicate purchase, or insufficient funds."""


class AssetSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str
    cost: int
    passive: EventEffects | None = None


ASSETS: dict[str, AssetSpec] = {
    spec.id: spec
    for spec in [
        AssetSpec(id="vehicle_1", name="Sedan", category="vehicle", cost=5_000,
                  passive=EventEffects(happiness=2)),
        AssetSpec(id="vehicle_2", name="Sports car", category="vehicle", cost=75_000,
                  passive=EventEffects(happiness=10)),
        AssetSpec(id="property_1", name="City apartment", category="property", cost=120_000),
        AssetSpec(id="property_2", name="Country house", category="property", cost=450_000),
        AssetSpec(id="investment_1", name="Stock portfolio", category="investment", cost=20_000,
                  passive=EventEffects(wealth=500)),
        AssetSpec(id="investment_2", name="Crypto wallet", category="investment", cost=10_000),
    ]
}


def get_asset(asset_id: str) -> AssetSpec:
    spec = ASSETS.get(asset_id)
    if spec is None:
        raise AssetError(f"Unknown asset: {asset_id!r}")
    return spec


def owns(character: Character, asset_id: str) -> bool:
    return any(a.id == asset_id for a in character.assets)


def sale_price(cost: int) -> int:
    return math.floor(cost * RESALE_RATIO)


def buy_asset(character: Character, asset_id: str) -> Character:
    spec = get_asset(asset_id)
    if not character.is_alive:
        raise CharacterDeadError(f"{character.name} is dead and cannot buy assets")
    if owns(character, asset_id):
        raise AssetError(f"{character.name} already owns {spec.name}")
    if character.stats.wealth < spec.cost:
        raise AssetError(
            f"{spec.name} costs ${spec.cost}, only ${character.stats.wealth} available"
        )

    stats = character.stats.model_copy(update={"wealth": character.stats.wealth - spec.cost})
    assets = [*character.assets, OwnedAsset(id=spec.id, name=spec.name, cost=spec.cost)]
    logger.info("%s bought %s for $%d", character.name, spec.name, spec.cost)
    return refresh_flags(character.model_copy(update={"stats": stats, "assets": assets}))


def sell_asset(character: Character, asset_id: str) -> tuple[Character, int]:
    """Sell an owned asset at 80% of its purchase cost. Returns (character, proceeds)."""
    if not character.is_alive:
        raise CharacterDeadError(f"{character.name} is dead and cannot sell assets")
    owned = next((a for a in character.assets if a.id == asset_id), None)
    if owned is None:
        raise AssetError(f"{character.name} does not own {asset_id!r}")

    proceeds = sale_price(owned.cost)
    stats = character.stats.model_copy(update={"wealth": character.stats.wealth + proceeds})
    assets = [a for a in character.assets if a.id != asset_id]
    logger.info("%s sold %s for $%d", character.name, owned.name, proceeds)
    return refresh_flags(character.model_copy(update={"stats": stats, "assets": assets})), proceeds


def passive_effects(character: Character) -> EventEffects:
    total = EventEffects()
    for owned in character.assets:
        spec = ASSETS.get(owned.id)
        if spec is not None and spec.passive is not None:
            total = merge_effects(total, spec.passive)
    return total


def apply_passive_effects(character: Character) -> Character:
    """Apply one tick of every owned asset's passive effect. No history record."""
    effects = passive_effects(character)
    if effects.is_empty():
        return character
    return apply_effects(character, effects)
