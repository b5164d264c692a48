from __future__ import annotations

import logging
from typing import Optional

log = logging.getLogger(__name__)


class HostDocument:
    """Root element of the bot's rendered document.

    Only ``lang`` and ``dir`` are tracked. Both change together through
    :meth:`apply`; nothing else in the package writes them.
    """

    def __init__(self, lang: Optional[str] = None, dir: str = "ltr") -> None:
        self._lang = lang or None
        self._dir = dir

    @property
    def lang(self) -> Optional[str]:
        return self._lang

    @property
    def dir(self) -> str:
        return self._dir

    def apply(self, lang: str, direction: str) -> None:
        if direction not in ("ltr", "rtl"):
            raise ValueError(f"Invalid text direction: {direction!r}")
        self._lang, self._dir = lang, direction
        log.debug("Document root set to lang=%s dir=%s", lang, direction)

    def attributes(self) -> dict[str, Optional[str]]:
        return {"lang": self._lang, "dir": self._dir}
