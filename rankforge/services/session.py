"""
Draft Session — an explicit handle on the character being edited.

Replaces an ambient "current draft" global: the calling layer creates one
session per edit and passes it around.

INVARIANTS:
- One mutation in flight at a time (a re-entrant lock guards the draft)
- `transaction()` is all-or-nothing: if the block raises, the draft is
  restored to its state when the block was entered
"""

import copy
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from rankforge.models.catalog import Catalog
from rankforge.models.character import CharacterDraft
from rankforge.models.failure import DraftStateError, FailureKind
from rankforge.services.character_builder import new_character

logger = logging.getLogger(__name__)

DraftOperation = Callable[..., CharacterDraft]


class DraftSession:
    """Holds a catalog and at most one draft in progress."""

    def __init__(self, catalog: Catalog, draft: CharacterDraft | None = None):
        self.catalog = catalog
        self._draft = draft
        self._lock = threading.RLock()

    @property
    def has_draft(self) -> bool:
        return self._draft is not None

    @property
    def draft(self) -> CharacterDraft:
        """
        The draft in progress.

        Raises:
            DraftStateError: If no draft has been started
        """
        if self._draft is None:
            raise DraftStateError("No character draft in progress", kind=FailureKind.NO_DRAFT)
        return self._draft

    def start(self, draft: CharacterDraft) -> CharacterDraft:
        """Begin editing an existing draft (e.g. one loaded from storage)."""
        with self._lock:
            self._draft = draft
            return draft

    def start_new(self, name: str, is_wild_card: bool = True) -> CharacterDraft:
        return self.start(new_character(self.catalog, name, is_wild_card))

    def discard(self) -> None:
        with self._lock:
            self._draft = None

    def apply(self, operation: DraftOperation, *args: Any, **kwargs: Any) -> CharacterDraft:
        """
        Run an engine operation against the current draft and keep its result.

        `operation` is any `(draft, catalog, ...) -> draft` engine function.
        On failure the current draft is unchanged.
        """
        with self._lock:
            updated = operation(self.draft, self.catalog, *args, **kwargs)
            self._draft = updated
            return updated

    def query(self, operation: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a read-only `(draft, catalog, ...)` function against the draft."""
        with self._lock:
            return operation(self.draft, self.catalog, *args, **kwargs)

    @contextmanager
    def transaction(self) -> Iterator["DraftSession"]:
        """
        Group several operations; restore the draft if any of them raises.

            with session.transaction():
                session.apply(add_hindrance, 3)
                session.apply(allocate_hindrance_points, Category.EDGES, 1)
                session.apply(add_edge, 7)
        """
        with self._lock:
            snapshot = copy.deepcopy(self.draft)
            try:
                yield self
            except Exception:
                logger.info("Rolling back draft %r after failed transaction", snapshot.name)
                self._draft = snapshot
                raise
