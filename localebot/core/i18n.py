from __future__ import annotations

import asyncio
import json
import logging
import re
from importlib import resources
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional

from .errors import ErrorKind, ResourceResolutionError


log = logging.getLogger(__name__)

BundleLoader = Callable[[str], Awaitable[Mapping[str, Any]]]

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


def flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, str]:
    """Flatten nested translation objects into ``{"a.b.c": "text"}``."""
    out: Dict[str, str] = {}
    for key, value in data.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            out.update(flatten(value, path))
        elif value is not None:
            out[path] = str(value)
    return out


def substitute(template: str, params: Optional[Mapping[str, Any]]) -> str:
    if not params:
        return template

    def _repl(m: re.Match[str]) -> str:
        name = m.group(1)
        if name in params:
            return str(params[name])
        return m.group(0)

    return _PLACEHOLDER_RE.sub(_repl, template)


class ResourceStore:
    """Per-locale translation bundles with fallback lookup.

    Bundles are flattened once on insertion so that :meth:`resolve` is a
    pair of dict lookups. The fallback bundle must cover every key used by
    the UI; gaps are reported at construction time.
    """

    def __init__(
        self,
        bundles: Mapping[str, Mapping[str, Any]],
        fallback: str,
        loader: Optional[BundleLoader] = None,
        debug: bool = False,
    ) -> None:
        self.fallback = fallback
        self.debug = debug
        self._loader = loader
        self._bundles: Dict[str, Dict[str, str]] = {
            code: flatten(data) for code, data in bundles.items()
        }
        if fallback not in self._bundles:
            raise ValueError(f"Fallback locale {fallback!r} has no bundle")
        self._missing: set[tuple[str, str]] = set()
        self._warn_fallback_gaps()

    # -- inspection -----------------------------------------------------
    def has_bundle(self, code: str) -> bool:
        return code in self._bundles

    def bundle_codes(self) -> list[str]:
        return list(self._bundles)

    def keys(self, code: str) -> set[str]:
        return set(self._bundles.get(code, {}))

    @property
    def missing_keys(self) -> set[tuple[str, str]]:
        return set(self._missing)

    def diagnostics(self) -> list[tuple[ErrorKind, str, str]]:
        """Recorded lookup problems as (kind, locale, key), sorted."""
        return [(ErrorKind.MISSING_KEY, locale, key) for locale, key in sorted(self._missing)]

    def fallback_gaps(self) -> Dict[str, set[str]]:
        reference = self._bundles[self.fallback].keys()
        gaps: Dict[str, set[str]] = {}
        for code, bundle in self._bundles.items():
            extra = bundle.keys() - reference
            if extra:
                gaps[code] = set(extra)
        return gaps

    def _warn_fallback_gaps(self) -> None:
        for code, extra in self.fallback_gaps().items():
            sample = ", ".join(sorted(extra)[:5])
            log.warning(
                "Fallback bundle %s lacks %d key(s) defined by %s: %s%s",
                self.fallback, len(extra), code, sample, "..." if len(extra) > 5 else "",
            )

    # -- lookup ---------------------------------------------------------
    def resolve(self, locale: str, key: str, params: Optional[Mapping[str, Any]] = None) -> str:
        text = self._bundles.get(locale, {}).get(key)
        if text is None:
            text = self._bundles[self.fallback].get(key)
            if text is None:
                self._record_missing(locale, key)
                return key
            # I18N_DEBUG lifts fallback hits into the regular log
            log.log(
                logging.INFO if self.debug else logging.DEBUG,
                "Key %s missing in %s, served from %s", key, locale, self.fallback,
            )
        return substitute(text, params)

    def _record_missing(self, locale: str, key: str) -> None:
        if (locale, key) in self._missing:
            return
        self._missing.add((locale, key))
        log.warning(
            "%s: translation key %r (locale %s, fallback %s)",
            ErrorKind.MISSING_KEY.value, key, locale, self.fallback,
        )

    # -- loading --------------------------------------------------------
    def add_bundle(self, code: str, data: Mapping[str, Any]) -> None:
        self._bundles[code] = flatten(data)

    async def ensure(self, code: str) -> None:
        """Make sure a bundle for ``code`` is available.

        Raises :class:`ResourceResolutionError` when none can be produced.
        """
        if code in self._bundles:
            return
        if self._loader is None:
            raise ResourceResolutionError(code, f"No bundle for locale {code!r}")
        try:
            data = await self._loader(code)
        except ResourceResolutionError:
            raise
        except Exception as e:
            raise ResourceResolutionError(code, f"Loading bundle {code!r} failed: {e}") from e
        if not isinstance(data, Mapping):
            raise ResourceResolutionError(code, f"Bundle {code!r} is not an object")
        self.add_bundle(code, data)
        log.info("Loaded bundle %s (%d keys)", code, len(self._bundles[code]))


def read_packaged_bundle(code: str, package: str = "localebot.locales") -> Dict[str, Any]:
    text = resources.files(package).joinpath(f"{code}.json").read_text(encoding="utf-8")
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"{code}.json: expected a JSON object")
    return data


def load_packaged_bundles(codes: Iterable[str], package: str = "localebot.locales") -> Dict[str, Dict[str, Any]]:
    bundles: Dict[str, Dict[str, Any]] = {}
    for code in codes:
        try:
            bundles[code] = read_packaged_bundle(code, package)
        except Exception as e:
            log.warning("Failed to load locale %s: %s", code, e)
    return bundles


def with_timeout(loader: BundleLoader, seconds: float) -> BundleLoader:
    async def _load(code: str) -> Mapping[str, Any]:
        try:
            return await asyncio.wait_for(loader(code), timeout=seconds)
        except asyncio.TimeoutError as e:
            raise ResourceResolutionError(code, f"Loading bundle {code!r} timed out after {seconds}s") from e

    return _load


def t(key: str, **kwargs: Any) -> str:
    """Translate ``key`` in the process-wide active locale."""
    from .controller import get_controller

    return get_controller().t(key, **kwargs)
