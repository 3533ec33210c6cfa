"""All-or-nothing execution of a merge plan."""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from .errors import GraphOperationFailure, GraphStoreUnavailable
from .operations import MergeOperation
from .storage import GraphSession

logger = logging.getLogger(__name__)


class TransactionCoordinator:
    """Applies a list of merge operations inside a single transaction.

    Operations run strictly in order.  The first failure rolls the whole
    transaction back and surfaces as :class:`GraphOperationFailure`; nothing
    from the plan remains in the store.  A failed commit is reported the
    same way, with the index one past the last operation.  The session is
    closed on every exit path.  A store that cannot be opened raises
    :class:`GraphStoreUnavailable`.
    """

    def __init__(self, session_factory: Callable[[], GraphSession]) -> None:
        self.session_factory = session_factory

    def _open(self) -> GraphSession:
        try:
            return self.session_factory()
        except Exception as exc:
            logger.error("Could not open graph session: %s", exc)
            raise GraphStoreUnavailable(exc) from exc

    def apply(self, operations: Iterable[MergeOperation]) -> int:
        """Execute *operations*; return how many were applied."""
        with self._open() as session:
            session.begin()
            applied = 0
            for index, operation in enumerate(operations, start=1):
                try:
                    session.execute(operation)
                except Exception as exc:
                    logger.error("Error during transaction at operation #%d: %s", index, exc)
                    session.rollback()
                    raise GraphOperationFailure(index, operation, exc) from exc
                applied += 1
            try:
                session.commit()
            except Exception as exc:
                # The session still counts as open, so close() rolls it back.
                logger.error("Error committing transaction: %s", exc)
                raise GraphOperationFailure(applied + 1, "COMMIT", exc) from exc
        logger.info("Committed %d merge operations", applied)
        return applied
