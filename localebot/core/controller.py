"""Owner of the process-wide active locale.

All locale-dependent rendering reads :class:`ActiveLocaleState` from the
controller; only :meth:`LocaleController.switch_to` changes it. Each switch
gets a sequence token, and only the result holding the most recent token may
touch the state, the document root or the stored preference. Older results
are dropped when they resume.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from .document import HostDocument
from .errors import ErrorKind
from .i18n import ResourceStore
from .registry import LocaleDescriptor, LocaleRegistry

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActiveLocaleState:
    code: str
    direction: str
    switching: bool = False
    last_error: Optional[ErrorKind] = None


class SwitchOutcome(str, Enum):
    APPLIED = "applied"
    UNCHANGED = "unchanged"
    SUPERSEDED = "superseded"
    FAILED = "failed"


@dataclass(frozen=True)
class SwitchResult:
    outcome: SwitchOutcome
    code: str
    error: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.outcome is not SwitchOutcome.FAILED


class PreferenceSink(Protocol):
    async def save(self, code: str) -> None: ...


StateObserver = Callable[[ActiveLocaleState], None]


class LocaleController:
    def __init__(
        self,
        registry: LocaleRegistry,
        store: ResourceStore,
        initial: str,
        document: Optional[HostDocument] = None,
        preferences: Optional[PreferenceSink] = None,
    ) -> None:
        desc = registry.find(initial)
        self.registry = registry
        self.store = store
        self.document = document
        self.preferences = preferences
        self._state = ActiveLocaleState(code=desc.code, direction=desc.direction)
        self._issued = 0
        self._in_flight: Optional[int] = None
        self._observers: list[StateObserver] = []
        self._persist_lock = asyncio.Lock()
        if document is not None:
            document.apply(desc.code, desc.direction)
        log.info("Active locale %s (%s)", desc.code, desc.direction)

    # -- reading --------------------------------------------------------
    def get_state(self) -> ActiveLocaleState:
        return self._state

    @property
    def code(self) -> str:
        return self._state.code

    def descriptor(self) -> LocaleDescriptor:
        return self.registry.find(self._state.code)

    def t(self, key: str, **kwargs: Any) -> str:
        return self.store.resolve(self._state.code, key, kwargs or None)

    # -- observers ------------------------------------------------------
    def subscribe(self, callback: StateObserver) -> None:
        if callback not in self._observers:
            self._observers.append(callback)

    def unsubscribe(self, callback: StateObserver) -> None:
        if callback in self._observers:
            self._observers.remove(callback)

    def _notify(self) -> None:
        state = self._state
        for callback in list(self._observers):
            try:
                callback(state)
            except Exception as e:
                log.error("Locale observer %r failed: %s", callback, e)

    def _set(self, **changes: Any) -> None:
        new = replace(self._state, **changes)
        if new != self._state:
            self._state = new
            self._notify()

    def clear_error(self) -> None:
        self._set(last_error=None)

    async def wait_idle(self) -> ActiveLocaleState:
        """Return the first state with no switch in flight."""
        if not self._state.switching:
            return self._state
        idle: asyncio.Future = asyncio.get_running_loop().create_future()

        def _on_state(state: ActiveLocaleState) -> None:
            if not state.switching and not idle.done():
                idle.set_result(state)

        self.subscribe(_on_state)
        try:
            return await idle
        finally:
            self.unsubscribe(_on_state)

    # -- switching ------------------------------------------------------
    async def switch_to(self, code: str) -> SwitchResult:
        if code == self._state.code:
            if self._in_flight is not None:
                # back to the current locale while another switch is pending
                self._issued += 1
                self._in_flight = None
                log.info("Pending locale switch cancelled, staying on %s", code)
                self._set(switching=False)
            return SwitchResult(SwitchOutcome.UNCHANGED, code)

        desc = self.registry.get(code)
        if desc is None:
            log.warning("Rejected switch to unknown locale %r", code)
            self._set(last_error=ErrorKind.UNKNOWN_LOCALE)
            return SwitchResult(SwitchOutcome.FAILED, code, ErrorKind.UNKNOWN_LOCALE)

        self._issued += 1
        token = self._issued
        self._in_flight = token
        log.debug("Switch #%d to %s started", token, code)
        self._set(switching=True)

        try:
            await self.store.ensure(code)
        except asyncio.CancelledError:
            if token == self._issued:
                self._in_flight = None
                self._set(switching=False)
            raise
        except Exception as e:
            if token != self._issued:
                log.debug("Switch #%d to %s failed after being superseded: %s", token, code, e)
                return SwitchResult(SwitchOutcome.SUPERSEDED, code)
            self._in_flight = None
            log.error("Switch to %s failed, keeping %s: %s", code, self._state.code, e)
            self._set(switching=False, last_error=ErrorKind.RESOURCE_RESOLUTION_FAILURE)
            return SwitchResult(SwitchOutcome.FAILED, code, ErrorKind.RESOURCE_RESOLUTION_FAILURE)

        if token != self._issued:
            log.debug("Switch #%d to %s superseded by #%d", token, code, self._issued)
            return SwitchResult(SwitchOutcome.SUPERSEDED, code)

        self._in_flight = None
        self._apply(desc)
        await self._persist()
        return SwitchResult(SwitchOutcome.APPLIED, code)

    def _apply(self, desc: LocaleDescriptor) -> None:
        # state and document change together, before anyone is notified
        self._state = ActiveLocaleState(code=desc.code, direction=desc.direction)
        if self.document is not None:
            self.document.apply(desc.code, desc.direction)
        log.info("Locale switched to %s (%s)", desc.code, desc.direction)
        self._notify()

    async def _persist(self) -> None:
        if self.preferences is None:
            return
        async with self._persist_lock:
            code = self._state.code
            try:
                await self.preferences.save(code)
            except Exception as e:
                log.error("Persisting locale preference %s failed: %s", code, e)


_controller: Optional[LocaleController] = None


def init_controller(
    registry: LocaleRegistry,
    store: ResourceStore,
    initial: str,
    document: Optional[HostDocument] = None,
    preferences: Optional[PreferenceSink] = None,
) -> LocaleController:
    global _controller
    if _controller is None:
        _controller = LocaleController(registry, store, initial, document, preferences)
    return _controller


def get_controller() -> LocaleController:
    if _controller is None:
        raise RuntimeError("Locale controller not initialized")
    return _controller


def reset_controller() -> None:
    global _controller
    _controller = None
