"""Modal dialog ownership - at most one open, lockout supersedes all."""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from ..core.models import DialogKind

log = logging.getLogger(__name__)


class DialogService:
    """Tracks which modal dialog (if any) currently owns the screen.

    Observer callbacks:
        on_opened(kind, data) - a dialog was opened
        on_closed(kind) - a dialog was closed (also on supersede)
    """

    def __init__(self) -> None:
        self._open: Optional[DialogKind] = None
        self.on_opened: Optional[Callable[[DialogKind, Any], None]] = None
        self.on_closed: Optional[Callable[[DialogKind], None]] = None

    @property
    def current(self) -> Optional[DialogKind]:
        return self._open

    @property
    def any_open(self) -> bool:
        return self._open is not None

    def is_open(self, kind: DialogKind) -> bool:
        return self._open == kind

    def open(self, kind: DialogKind, data: Any = None) -> bool:
        """Open a dialog. Refused while another is open, except LOCKOUT."""
        if self._open == kind:
            return True
        if self._open is not None:
            if kind != DialogKind.LOCKOUT:
                log.info("[DIALOG] %s refused: %s already open",
                         kind.value, self._open.value)
                return False
            log.info("[DIALOG] lockout supersedes %s", self._open.value)
            self.close(self._open)
        self._open = kind
        log.debug("[DIALOG] opened %s", kind.value)
        if self.on_opened:
            self.on_opened(kind, data)
        return True

    def close(self, kind: Optional[DialogKind] = None) -> bool:
        """Close ``kind`` (or whatever is open). Idempotent.

        Returns True only if a dialog was actually closed.
        """
        if self._open is None or (kind is not None and self._open != kind):
            return False
        closed = self._open
        self._open = None
        log.debug("[DIALOG] closed %s", closed.value)
        if self.on_closed:
            self.on_closed(closed)
        return True
