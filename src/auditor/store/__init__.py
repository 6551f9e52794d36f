"""Interaction history and application state persistence.

Modules:
    interaction_store: Most-recent-first, append-only interaction store
    state: AppState, storage backends and the load/save repository
"""

from src.auditor.store.interaction_store import InteractionStore
from src.auditor.store.state import (
    AppState,
    InMemoryStorage,
    JsonFileStorage,
    StateRepository,
    StorageBackend,
)

__all__ = [
    "InteractionStore",
    "AppState",
    "InMemoryStorage",
    "JsonFileStorage",
    "StateRepository",
    "StorageBackend",
]
