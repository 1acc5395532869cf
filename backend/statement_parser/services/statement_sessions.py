"""In-memory registry of extraction controllers, one per uploaded statement."""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from typing import Callable, Optional

from statement_parser.core.config import get_settings
from statement_parser.services.extraction_controller import ExtractionController

logger = logging.getLogger(__name__)


class StatementSessionStore:
    def __init__(
        self,
        max_sessions: int,
        controller_factory: Callable[[], ExtractionController] = ExtractionController,
    ) -> None:
        self._max_sessions = max_sessions
        self._controller_factory = controller_factory
        self._sessions: OrderedDict[str, ExtractionController] = OrderedDict()

    def create(self) -> tuple[str, ExtractionController]:
        session_id = uuid.uuid4().hex
        controller = self._controller_factory()
        self._sessions[session_id] = controller
        while len(self._sessions) > self._max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("Evicted statement session %s", evicted)
        return session_id, controller

    def get(self, session_id: str) -> Optional[ExtractionController]:
        controller = self._sessions.get(session_id)
        if controller is not None:
            self._sessions.move_to_end(session_id)
        return controller

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)


_store: StatementSessionStore | None = None


def get_session_store() -> StatementSessionStore:
    global _store
    if _store is None:
        _store = StatementSessionStore(get_settings().statement_sessions_max)
    return _store
