"""Initial locale resolution.

Precedence, first match wins:

1. the persisted preference, when it names a registered locale;
2. the user agent's preferred languages (exact code, then primary subtag);
3. the ``lang`` already present on the host document root;
4. the fallback locale.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional, Protocol, Sequence

from .document import HostDocument
from .registry import LocaleRegistry, canonical_tag

log = logging.getLogger(__name__)

# gettext lookup order
LOCALE_ENV_VARS = ("LANGUAGE", "LC_ALL", "LC_MESSAGES", "LANG")


class PreferenceSource(Protocol):
    async def load(self) -> Optional[str]: ...


def system_languages(environ: Optional[Mapping[str, str]] = None) -> list[str]:
    """Preferred languages reported by the process environment, best first."""
    env = os.environ if environ is None else environ
    found: list[str] = []
    for var in LOCALE_ENV_VARS:
        raw = env.get(var, "")
        if not raw:
            continue
        parts = raw.split(":") if var == "LANGUAGE" else [raw]
        for part in parts:
            tag = canonical_tag(part)
            if tag and tag not in ("C", "POSIX") and tag not in found:
                found.append(tag)
    return found


class LocaleDetector:
    def __init__(
        self,
        registry: LocaleRegistry,
        fallback: str,
        preferences: Optional[PreferenceSource] = None,
        user_languages: Optional[Sequence[str]] = None,
        document: Optional[HostDocument] = None,
    ) -> None:
        if fallback not in registry:
            raise ValueError(f"Fallback locale {fallback!r} is not registered")
        self.registry = registry
        self.fallback = fallback
        self.preferences = preferences
        self.user_languages = list(user_languages) if user_languages is not None else system_languages()
        self.document = document

    async def _stored(self) -> Optional[str]:
        if self.preferences is None:
            return None
        try:
            return await self.preferences.load()
        except Exception as e:
            log.error("Reading stored locale preference failed: %s", e)
            return None

    async def detect_initial_locale(self) -> str:
        stored = await self._stored()
        if stored in self.registry:
            log.info("Initial locale %s (stored preference)", stored)
            return stored  # type: ignore[return-value]
        if stored:
            log.warning("Ignoring stored locale %r: not registered", stored)

        for lang in self.user_languages:
            code = self.registry.match(lang)
            if code:
                log.info("Initial locale %s (user agent language %s)", code, lang)
                return code

        if self.document is not None:
            code = self.registry.match(self.document.lang)
            if code:
                log.info("Initial locale %s (document lang)", code)
                return code

        log.info("Initial locale %s (fallback)", self.fallback)
        return self.fallback


_detected: Optional[str] = None


async def detect_once(detector: LocaleDetector) -> str:
    """Run detection at most once per process and remember the result."""
    global _detected
    if _detected is None:
        _detected = await detector.detect_initial_locale()
    return _detected


def reset_detection() -> None:
    global _detected
    _detected = None
