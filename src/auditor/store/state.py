"""Application state with an explicit load/save lifecycle.

State is kept in named slots of a key-value storage backend, each slot
holding one JSON document:

    theme          "light" | "dark"
    user_photo     base64 image string or null
    scorecard      array of Criterion
    ncgs           array of ZeroToleranceRule
    interactions   array of Interaction, most recent first

``StateRepository`` loads these slots into an ``AppState`` and writes them
back. Missing slots fall back to defaults (stock scorecard and NCG rules,
empty history); slots that exist but cannot be decoded raise
StateLoadError rather than being silently replaced. Stored results that
predate the score ledger (no ``maxPoints``, totals that disagree with the
lines) are rebuilt against the loaded rubric. Failed writes raise
StateSaveError.

Classes:
    StorageBackend: Protocol for slot storage.
    JsonFileStorage: One ``<slot>.json`` file per slot in a directory.
    InMemoryStorage: Dict-backed storage for tests and ephemeral runs.
    AppState: Loaded application state.
    StateRepository: Load/save lifecycle over a backend.

Example:
    >>> repo = StateRepository(JsonFileStorage(Path(".qa_data")))
    >>> state = repo.load()
    >>> store = repo.interaction_store(state)
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from src.auditor.store.interaction_store import InteractionStore
from src.common.scorecard.errors import (
    RubricImbalanceWarning,
    StateLoadError,
    StateSaveError,
)
from src.common.scorecard.results import Interaction, restore_stored_result
from src.common.scorecard.rubric import (
    DEFAULT_NCG_RULES,
    DEFAULT_SCORECARD,
    Criterion,
    Rubric,
    ZeroToleranceRule,
    check_balance,
)


logger = logging.getLogger(__name__)


SLOT_THEME = "theme"
SLOT_USER_PHOTO = "user_photo"
SLOT_SCORECARD = "scorecard"
SLOT_NCGS = "ncgs"
SLOT_INTERACTIONS = "interactions"

ALL_SLOTS = (SLOT_THEME, SLOT_USER_PHOTO, SLOT_SCORECARD, SLOT_NCGS, SLOT_INTERACTIONS)

ThemeType = Literal["light", "dark"]

_THEME = TypeAdapter(ThemeType)
_USER_PHOTO = TypeAdapter(str | None)
_CRITERIA = TypeAdapter(list[Criterion])
_NCG_RULES = TypeAdapter(list[ZeroToleranceRule])
_INTERACTIONS = TypeAdapter(list[Interaction])


# =============================================================================
# Storage Backends
# =============================================================================


class StorageBackend(Protocol):
    """Key-value storage of JSON text per named slot."""

    def get(self, slot: str) -> str | None:
        """Return the slot's JSON text, or None if the slot is empty."""
        ...

    def set(self, slot: str, value: str) -> None:
        """Store JSON text in a slot."""
        ...


class InMemoryStorage:
    """Dict-backed storage backend."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._slots: dict[str, str] = dict(initial or {})

    def get(self, slot: str) -> str | None:
        return self._slots.get(slot)

    def set(self, slot: str, value: str) -> None:
        self._slots[slot] = value


class JsonFileStorage:
    """Stores each slot as ``<directory>/<slot>.json``.

    Writes go to a temporary file that is then renamed over the slot file,
    so a reader never sees a partially written slot.
    """

    def __init__(self, directory: Path | str) -> None:
        """Initialize the backend.

        Args:
            directory: Directory for slot files (created on first write).
        """
        self.directory = Path(directory)

    def _path(self, slot: str) -> Path:
        return self.directory / f"{slot}.json"

    def get(self, slot: str) -> str | None:
        path = self._path(slot)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, slot: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{slot}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, self._path(slot))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


# =============================================================================
# Application State
# =============================================================================


class AppState(BaseModel):
    """Loaded application state.

    Attributes:
        theme: UI theme preference.
        user_photo: Base64 profile image, if any.
        rubric: Current scorecard and zero-tolerance rules.
        interactions: Evaluation history, most recent first.
    """

    model_config = ConfigDict(frozen=True)

    theme: ThemeType = "light"
    user_photo: str | None = None
    rubric: Rubric = Field(
        default_factory=lambda: Rubric(criteria=DEFAULT_SCORECARD, zero_tolerance=DEFAULT_NCG_RULES)
    )
    interactions: tuple[Interaction, ...] = Field(default_factory=tuple)

    def rubric_warning(self) -> RubricImbalanceWarning | None:
        """Return the imbalance warning for the current rubric, if any."""
        return check_balance(self.rubric)


# =============================================================================
# Repository
# =============================================================================


class StateRepository:
    """Loads and saves AppState through a storage backend."""

    def __init__(self, backend: StorageBackend) -> None:
        """Initialize the repository.

        Args:
            backend: Slot storage to read from and write to.
        """
        self.backend = backend

    def load(self) -> AppState:
        """Load every slot into an AppState.

        Missing slots fall back to defaults. The loaded rubric is checked for
        balance (imbalance is logged, never fatal).

        Raises:
            StateLoadError: If a stored slot cannot be decoded.
        """
        fields: dict[str, Any] = {}

        theme = self._read(SLOT_THEME, _THEME)
        if theme is not None:
            fields["theme"] = theme
        photo = self._read(SLOT_USER_PHOTO, _USER_PHOTO)
        if photo is not None:
            fields["user_photo"] = photo

        criteria = self._read(SLOT_SCORECARD, _CRITERIA)
        rules = self._read(SLOT_NCGS, _NCG_RULES)
        fields["rubric"] = self._build_rubric(
            DEFAULT_SCORECARD if criteria is None else criteria,
            DEFAULT_NCG_RULES if rules is None else rules,
        )

        stored = self._read(SLOT_INTERACTIONS)
        if stored is not None:
            fields["interactions"] = self._load_interactions(stored, fields["rubric"])

        state = AppState(**fields)
        check_balance(state.rubric)
        logger.info(
            "Loaded state: %d criteria, %d NCG rules, %d interactions",
            len(state.rubric.criteria),
            len(state.rubric.zero_tolerance),
            len(state.interactions),
        )
        return state

    def save(self, state: AppState) -> None:
        """Write every slot of an AppState."""
        self._write(SLOT_THEME, state.theme)
        self._write(SLOT_USER_PHOTO, state.user_photo)
        self.save_rubric(state.rubric)
        self.save_interactions(state.interactions)

    def save_rubric(self, rubric: Rubric) -> RubricImbalanceWarning | None:
        """Write the scorecard and NCG slots.

        Returns:
            The imbalance warning for the saved rubric, if any.
        """
        self._write(SLOT_SCORECARD, _CRITERIA.dump_python(list(rubric.criteria), mode="json", by_alias=True))
        self._write(SLOT_NCGS, _NCG_RULES.dump_python(list(rubric.zero_tolerance), mode="json", by_alias=True))
        return check_balance(rubric)

    def save_interactions(self, interactions: tuple[Interaction, ...] | list[Interaction]) -> None:
        """Write the interaction history slot."""
        self._write(
            SLOT_INTERACTIONS,
            _INTERACTIONS.dump_python(list(interactions), mode="json", by_alias=True),
        )

    def interaction_store(self, state: AppState) -> InteractionStore:
        """Create an InteractionStore seeded from state that persists on append."""
        return InteractionStore(state.interactions, on_change=self.save_interactions)

    def _read(self, slot: str, adapter: TypeAdapter | None = None) -> Any:
        text = self.backend.get(slot)
        if text is None:
            return None
        try:
            value = json.loads(text)
            if adapter is not None:
                value = adapter.validate_python(value)
        except (json.JSONDecodeError, ValidationError) as e:
            raise StateLoadError(slot, str(e)) from e
        return value

    def _load_interactions(self, stored: Any, rubric: Rubric) -> tuple[Interaction, ...]:
        """Validate the stored history, rebuilding results saved without a ledger.

        Raises:
            StateLoadError: If an entry cannot be validated or rebuilt.
        """
        if not isinstance(stored, list):
            raise StateLoadError(
                SLOT_INTERACTIONS, f"expected a JSON array, got {type(stored).__name__}"
            )

        weights = {c.id: c.weight for c in rubric.criteria}
        interactions: list[Interaction] = []
        rebuilt = 0
        for index, item in enumerate(stored):
            try:
                interactions.append(Interaction.model_validate(item))
                continue
            except ValidationError as e:
                error: Exception = e

            result = item.get("result") if isinstance(item, dict) else None
            if not isinstance(result, dict):
                raise StateLoadError(SLOT_INTERACTIONS, f"entry {index}: {error}") from error
            try:
                restored = restore_stored_result(result, weights)
                interactions.append(Interaction.model_validate({**item, "result": restored}))
            except (TypeError, ValueError) as e:
                raise StateLoadError(SLOT_INTERACTIONS, f"entry {index}: {e}") from e
            rebuilt += 1

        if rebuilt:
            logger.warning(
                "Rebuilt %d stored result(s) with missing or inconsistent scores",
                rebuilt,
            )
        return tuple(interactions)

    def _write(self, slot: str, value: Any) -> None:
        try:
            self.backend.set(slot, json.dumps(value, ensure_ascii=False))
        except OSError as e:
            raise StateSaveError(slot, str(e)) from e

    def _build_rubric(self, criteria: Any, rules: Any) -> Rubric:
        try:
            return Rubric(criteria=tuple(criteria), zero_tolerance=tuple(rules))
        except ValidationError as e:
            raise StateLoadError(SLOT_SCORECARD, str(e)) from e
