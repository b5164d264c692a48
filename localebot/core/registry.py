"""Catalog of the locales the bot can be rendered in."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from .errors import UnknownLocaleError


@dataclass(frozen=True)
class LocaleDescriptor:
    code: str
    display_name: str
    native_name: str
    is_rtl: bool = False

    @property
    def direction(self) -> str:
        return "rtl" if self.is_rtl else "ltr"

    @property
    def primary_subtag(self) -> str:
        return primary_subtag(self.code)


def canonical_tag(code: str) -> str:
    # en_US.UTF-8 / sr_RS@latin -> en-US / sr-RS, case kept
    return code.split(".", 1)[0].split("@", 1)[0].replace("_", "-").strip()


def normalize_code(code: str) -> str:
    # comparison form only: EN_us -> en-us
    return canonical_tag(code).lower()


def primary_subtag(code: str) -> str:
    return normalize_code(code).split("-", 1)[0]


class LocaleRegistry:
    """Read-only, ordered set of :class:`LocaleDescriptor`.

    The set is fixed when the registry is built; there is no runtime
    registration. Codes must be unique.
    """

    def __init__(self, locales: Iterable[LocaleDescriptor]) -> None:
        self._locales: tuple[LocaleDescriptor, ...] = tuple(locales)
        self._by_code: dict[str, LocaleDescriptor] = {}
        self._by_normalized: dict[str, LocaleDescriptor] = {}
        for loc in self._locales:
            if loc.code in self._by_code:
                raise ValueError(f"Duplicate locale code: {loc.code}")
            self._by_code[loc.code] = loc
            self._by_normalized.setdefault(normalize_code(loc.code), loc)

    def list_locales(self) -> tuple[LocaleDescriptor, ...]:
        return self._locales

    def codes(self) -> list[str]:
        return [loc.code for loc in self._locales]

    def get(self, code: Optional[str]) -> Optional[LocaleDescriptor]:
        if not code:
            return None
        return self._by_code.get(code)

    def find(self, code: Optional[str]) -> LocaleDescriptor:
        loc = self.get(code)
        if loc is None:
            raise UnknownLocaleError(code)
        return loc

    def match(self, candidate: Optional[str]) -> Optional[str]:
        """Match a loosely formatted language tag against the registry.

        Exact code first (case and ``_``/``-`` insensitive), then the first
        registered locale sharing the primary subtag, so ``en`` or ``en-GB``
        both resolve to ``en-US`` when that is the only English entry.
        """
        if not candidate:
            return None
        norm = normalize_code(candidate)
        if not norm or norm in {"c", "posix"}:
            return None
        exact = self._by_normalized.get(norm)
        if exact is not None:
            return exact.code
        primary = norm.split("-", 1)[0]
        for loc in self._locales:
            if loc.primary_subtag == primary:
                return loc.code
        return None

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code in self._by_code

    def __iter__(self) -> Iterator[LocaleDescriptor]:
        return iter(self._locales)

    def __len__(self) -> int:
        return len(self._locales)


DEFAULT_LOCALES: tuple[LocaleDescriptor, ...] = (
    LocaleDescriptor("zh-CN", "Chinese", "中文"),
    LocaleDescriptor("en-US", "English", "English"),
    LocaleDescriptor("ar", "Arabic", "العربية", is_rtl=True),
)


def default_registry() -> LocaleRegistry:
    return LocaleRegistry(DEFAULT_LOCALES)
