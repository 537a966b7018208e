"""JSON file storage for save slots.

Each slot is one versioned JSON document. There is no database; reads and
writes go through SaveGateway, which migrates old documents forward and
validates them with pydantic on the way in.

Directory layout:

    {base}/
      saves/
        slot_0.json     ← SaveData {version, character, game_state, timestamp}
        slot_1.json
        slot_2.json

Load policy: a document that parses but fails validation is repaired
field by field and returned; the failure is handed to the ErrorReporter.
Only unparseable documents load as None.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ValidationError

from lifesim.models import MAX_AGE, STAT_MAX, STAT_MIN, Character, GameState, SaveData
from lifesim.stats import DEFAULT_DEATH_CAUSE, now_ms

logger = logging.getLogger(__name__)

MAX_SLOTS = 3
CURRENT_VERSION = 1

UNKNOWN_DEATH_CAUSE = "Unknown causes"


class SlotError(ValueError):
    """Raised for a slot number outside [0, MAX_SLOTS)."""


class SaveIntegrityError(ValueError):
    """A save document failed validation or an integrity check on load."""

    def __init__(self, slot: int, problems: list[str]) -> None:
        self.slot = slot
        self.problems = problems
        super().__init__(f"slot {slot}: " + "; ".join(problems))


# ---------------------------------------------------------------------------
# Error reporting collaborator
# ---------------------------------------------------------------------------

class ErrorReporter(Protocol):
    def report(self, error: Exception) -> None: ...


class LoggingErrorReporter:
    def report(self, error: Exception) -> None:
        logger.error("save integrity failure: %s", error)


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------

def _migrate_v0_to_v1(raw: dict[str, Any]) -> dict[str, Any]:
    data = dict(raw)
    if "gameState" in data and "game_state" not in data:
        data["game_state"] = data.pop("gameState")
    game_state = data.get("game_state")
    if game_state is None:
        data["game_state"] = {"achievements": []}
    elif isinstance(game_state, dict):
        data["game_state"] = {"achievements": [], **game_state}
    # any other shape is left for validation to report and repair
    return data


# MIGRATIONS[n] upgrades a version-n document to version n + 1.
MIGRATIONS: list[Callable[[dict[str, Any]], dict[str, Any]]] = [
    _migrate_v0_to_v1,
]

if len(MIGRATIONS) != CURRENT_VERSION:
    raise RuntimeError(f"expected {CURRENT_VERSION} migration steps, found {len(MIGRATIONS)}")


def migrate(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply every migration step from the document's version up to CURRENT_VERSION."""
    data = dict(raw)
    version = data.get("version", 0)
    if not isinstance(version, int) or version < 0:
        version = 0
    while version < CURRENT_VERSION:
        data = MIGRATIONS[version](data)
        version += 1
        data["version"] = version
        logger.info("migrated save document to v%d", version)
    return data


# ---------------------------------------------------------------------------
# Integrity and repair
# ---------------------------------------------------------------------------

def integrity_problems(save: SaveData) -> list[str]:
    """Cross-field rules the schema alone cannot express."""
    problems = []
    c = save.character
    if c.is_alive and c.stats.health <= 0:
        problems.append("character is alive with health <= 0")
    if not c.is_alive and c.stats.health > 0 and not c.death_cause:
        problems.append("character is dead with health > 0 and no death cause")
    return problems


def _salvage(model: type[BaseModel], raw: Any, defaults: dict[str, Any]) -> BaseModel:
    """Validate raw against model, replacing invalid fields with defaults.

    Invalid items inside list fields are dropped individually.
    """
    data = dict(defaults)
    if isinstance(raw, dict):
        data.update({k: v for k, v in raw.items() if k in model.model_fields})

    for _ in range(10):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            for err in e.errors():
                loc = err["loc"]
                if not loc or loc[0] not in data:
                    continue
                field = loc[0]
                value = data[field]
                if len(loc) > 1 and isinstance(value, list) and isinstance(loc[1], int):
                    value[loc[1]] = None
                elif field in defaults:
                    data[field] = defaults[field]
                else:
                    del data[field]
            for field, value in data.items():
                if isinstance(value, list):
                    data[field] = [item for item in value if item is not None]
    return model.model_validate(data)


def _clamp_stats(raw: Any) -> Any:
    if not isinstance(raw, dict):
        return raw
    stats = dict(raw)
    for name in ("health", "happiness", "energy"):
        if isinstance(stats.get(name), (int, float)):
            stats[name] = int(max(STAT_MIN, min(STAT_MAX, stats[name])))
    if isinstance(stats.get("wealth"), (int, float)):
        stats["wealth"] = int(max(0, stats["wealth"]))
    return stats


def _clamp_scores(raw: Any) -> Any:
    if not isinstance(raw, dict):
        return raw
    return {
        k: int(max(STAT_MIN, min(STAT_MAX, v))) if isinstance(v, (int, float)) else v
        for k, v in raw.items()
    }


def repair(data: dict[str, Any]) -> SaveData:
    """Best-effort SaveData from an invalid document."""
    char_raw = data.get("character")
    if isinstance(char_raw, dict):
        char_raw = dict(char_raw)
        char_raw["stats"] = _clamp_stats(char_raw.get("stats"))
        char_raw["skills"] = _clamp_scores(char_raw.get("skills"))
        char_raw["relationships"] = _clamp_scores(char_raw.get("relationships"))
        if isinstance(char_raw.get("age"), (int, float)):
            char_raw["age"] = int(max(0, min(MAX_AGE, char_raw["age"])))
        char_raw = {k: v for k, v in char_raw.items() if v is not None or k in ("profession", "death_cause")}
    character = _salvage(
        Character, char_raw,
        {"name": "Unknown", "country": "Unknown", "birth_year": 2000},
    )
    game_state = _salvage(GameState, data.get("game_state"), GameState().model_dump())

    if character.is_alive and character.stats.health <= 0:
        character = character.model_copy(update={"is_alive": False, "death_cause": DEFAULT_DEATH_CAUSE})
    elif not character.is_alive and character.stats.health > 0 and not character.death_cause:
        character = character.model_copy(update={"death_cause": UNKNOWN_DEATH_CAUSE})

    timestamp = data.get("timestamp")
    return SaveData(
        version=CURRENT_VERSION,
        character=character,
        game_state=game_state,
        timestamp=timestamp if isinstance(timestamp, int) else now_ms(),
    )


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

class SaveMeta(BaseModel):
    slot: int
    timestamp: int
    character_name: str
    age: int
    is_alive: bool
    level: str


def default_game_state() -> GameState:
    return GameState()


def default_character() -> Character:
    return Character(name="Player", country="Azerbaijan", birth_year=2000, birth_city="baku", age=18)


class SaveGateway:
    def __init__(self, base_path: Path, reporter: ErrorReporter | None = None) -> None:
        self._saves = base_path / "saves"
        self._saves.mkdir(parents=True, exist_ok=True)
        self._reporter = reporter or LoggingErrorReporter()

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _slot_file(self, slot: int) -> Path:
        if not isinstance(slot, int) or isinstance(slot, bool) or not 0 <= slot < MAX_SLOTS:
            raise SlotError(f"Invalid slot {slot!r}; expected 0..{MAX_SLOTS - 1}")
        return self._saves / f"slot_{slot}.json"

    def _write(self, path: Path, save: SaveData) -> None:
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(save.model_dump_json(indent=2))
        tmp.replace(path)

    # ------------------------------------------------------------------
    # Full saves
    # ------------------------------------------------------------------

    def save(self, slot: int, character: Character, game_state: GameState) -> bool:
        path = self._slot_file(slot)
        save = SaveData(
            version=CURRENT_VERSION, character=character,
            game_state=game_state, timestamp=now_ms(),
        )
        try:
            self._write(path, save)
        except OSError:
            logger.exception("failed to write slot %d", slot)
            return False
        logger.info("saved slot %d (%s, age %d)", slot, character.name, character.age)
        return True

    def load(self, slot: int) -> SaveData | None:
        path = self._slot_file(slot)
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            self._reporter.report(SaveIntegrityError(slot, [f"unreadable: {e}"]))
            return None
        if not isinstance(raw, dict):
            self._reporter.report(SaveIntegrityError(slot, ["document is not a JSON object"]))
            return None

        try:
            data = migrate(raw)
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            self._reporter.report(SaveIntegrityError(slot, [f"migration failed: {e}"]))
            return repair(raw)
        try:
            save = SaveData.model_validate(data)
        except ValidationError as e:
            problems = [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]
            self._reporter.report(SaveIntegrityError(slot, problems))
            return repair(data)

        problems = integrity_problems(save)
        if problems:
            self._reporter.report(SaveIntegrityError(slot, problems))
            return repair(save.model_dump())
        logger.info("loaded slot %d", slot)
        return save

    # ------------------------------------------------------------------
    # Partial saves (read-merge-write)
    # ------------------------------------------------------------------

    def save_character(self, slot: int, character: Character) -> bool:
        existing = self.load(slot)
        game_state = existing.game_state if existing else default_game_state()
        return self.save(slot, character, game_state)

    def save_game_state(self, slot: int, game_state: GameState) -> bool:
        existing = self.load(slot)
        character = existing.character if existing else default_character()
        return self.save(slot, character, game_state)

    # ------------------------------------------------------------------
    # Slot management
    # ------------------------------------------------------------------

    def list_saves(self) -> list[SaveMeta]:
        metas = []
        for slot in range(MAX_SLOTS):
            path = self._slot_file(slot)
            if not path.exists():
                continue
            try:
                raw = migrate(json.loads(path.read_text()))
                character = raw["character"]
                metas.append(SaveMeta(
                    slot=slot,
                    timestamp=raw.get("timestamp", 0),
                    character_name=character["name"],
                    age=character.get("age", 0),
                    is_alive=character.get("is_alive", True),
                    level=raw["game_state"].get("current_level", "demo"),
                ))
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("skipping unreadable slot %d: %s", slot, e)
        return metas

    def delete_save(self, slot: int) -> bool:
        path = self._slot_file(slot)
        if not path.exists():
            return False
        path.unlink()
        logger.info("deleted slot %d", slot)
        return True

    def export_save(self, slot: int) -> str | None:
        path = self._slot_file(slot)
        if not path.exists():
            return None
        return path.read_text()

    def import_save(self, slot: int, text: str) -> bool:
        """Validate strictly (after migration) and write. Never repairs."""
        path = self._slot_file(slot)
        try:
            raw = json.loads(text)
            if not isinstance(raw, dict):
                raise ValueError("document is not a JSON object")
            save = SaveData.model_validate(migrate(raw))
        except ValueError as e:
            logger.warning("rejected import into slot %d: %s", slot, e)
            return False
        if integrity_problems(save):
            logger.warning("rejected import into slot %d: %s", slot, integrity_problems(save))
            return False
        try:
            self._write(path, save)
        except OSError:
            logger.exception("failed to import into slot %d", slot)
            return False
        return True


# ---------------------------------------------------------------------------
# SaveQueue: background writes with completion signalling
# ---------------------------------------------------------------------------

class SaveQueue:
    """Serialises writes to a SaveGateway on a background asyncio task.

    submit() returns a future resolving to the final save() result. A failed
    write is retried up to `retries` more times. drain() waits for every
    write submitted so far.
    """

    def __init__(self, gateway: SaveGateway, *, retries: int = 3, retry_delay: float = 0.05) -> None:
        self._gateway = gateway
        self._retries = retries
        self._retry_delay = retry_delay
        self._queue: asyncio.Queue | None = None
        self._worker: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def gateway(self) -> SaveGateway:
        return self._gateway

    def _ensure_worker(self) -> asyncio.Queue:
        loop = asyncio.get_running_loop()
        if self._loop is not loop or self._worker is None or self._worker.done():
            self._loop = loop
            self._queue = asyncio.Queue()
            self._worker = loop.create_task(self._run(self._queue))
        return self._queue

    def submit(self, slot: int, character: Character, game_state: GameState) -> asyncio.Future[bool]:
        queue = self._ensure_worker()
        future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        # Snapshot now; later mutation of game_state must not leak into this write.
        queue.put_nowait((slot, character.model_copy(deep=True), game_state.model_copy(deep=True), future))
        return future

    async def _run(self, queue: asyncio.Queue) -> None:
        while True:
            slot, character, game_state, future = await queue.get()
            try:
                ok = await self._write_with_retries(slot, character, game_state)
                if not future.done():
                    future.set_result(ok)
            except Exception as e:
                if not future.done():
                    future.set_exception(e)
            finally:
                queue.task_done()

    async def _write_with_retries(self, slot: int, character: Character, game_state: GameState) -> bool:
        for attempt in range(self._retries + 1):
            if await asyncio.to_thread(self._gateway.save, slot, character, game_state):
                return True
            if attempt < self._retries:
                logger.warning("save to slot %d failed; retry %d/%d", slot, attempt + 1, self._retries)
                await asyncio.sleep(self._retry_delay)
        logger.error("save to slot %d failed after %d attempts", slot, self._retries + 1)
        return False

    async def drain(self) -> None:
        if self._queue is not None and self._loop is asyncio.get_running_loop():
            await self._queue.join()

    async def close(self) -> None:
        await self.drain()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
        self._worker = None
