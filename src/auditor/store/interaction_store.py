"""Ordered, append-only collection of evaluated interactions.

The store keeps interactions most-recent-first. The only mutation is
``append`` (a prepend), which runs without awaiting and is therefore atomic
under the event loop: concurrent evaluations that complete in any order each
land at the head, so ordering reflects completion order.

Persistence is delegated: an optional ``on_change`` callback receives the
new snapshot on every append (``StateRepository.interaction_store`` wires
it to the storage backend). The snapshot is persisted before it becomes
visible, so a failed write leaves the store unchanged.

Example:
    >>> store = InteractionStore()
    >>> interaction = store.record("Ana", "Agente: Bom dia...", result)
    >>> store.all()[0] is interaction
    True
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from src.common.scorecard.results import AnalysisResult, Interaction


logger = logging.getLogger(__name__)


ChangeCallback = Callable[[tuple[Interaction, ...]], None]


class InteractionStore:
    """Most-recent-first store of Interaction records.

    No update or delete operations are exposed.
    """

    def __init__(
        self,
        interactions: Iterable[Interaction] | None = None,
        on_change: ChangeCallback | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            interactions: Existing history, already most-recent-first.
            on_change: Called with the new snapshot on every append, before
                the store adopts it; an exception aborts the append.
        """
        self._items: tuple[Interaction, ...] = tuple(interactions or ())
        self._on_change = on_change

    def append(self, interaction: Interaction) -> None:
        """Prepend an interaction to the history.

        Each call adds a new record; appending the same record twice stores
        it twice. If ``on_change`` raises, the history is left as it was.
        """
        items = (interaction, *self._items)
        if self._on_change is not None:
            self._on_change(items)
        self._items = items
        logger.info(
            "Stored interaction %s for agent '%s' (score=%s, history=%d)",
            interaction.id,
            interaction.agent_name,
            interaction.result.total_score if interaction.result else None,
            len(self._items),
        )

    def record(
        self,
        agent_name: str,
        transcript: str,
        result: AnalysisResult | None,
    ) -> Interaction:
        """Create an Interaction with a fresh id and store it.

        The interaction date is the result's audit date when available,
        otherwise today.

        Returns:
            The stored Interaction.
        """
        fields: dict[str, Any] = {"agent_name": agent_name, "transcript": transcript, "result": result}
        if result is not None and result.audit_date:
            fields["date"] = result.audit_date
        interaction = Interaction(**fields)
        self.append(interaction)
        return interaction

    def all(self) -> tuple[Interaction, ...]:
        """Return an immutable snapshot of the history, most recent first."""
        return self._items

    def __iter__(self) -> Iterator[Interaction]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)
