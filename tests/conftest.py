"""
Pytest configuration and fixtures for the locale subsystem tests.
"""
from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

import pytest

from localebot.core import controller as controller_mod
from localebot.core import detector as detector_mod
from localebot.core.controller import LocaleController
from localebot.core.document import HostDocument
from localebot.core.i18n import ResourceStore
from localebot.core.registry import LocaleDescriptor, LocaleRegistry


ZH = {
    "greeting": "你好，{name}",
    "only_fallback": "仅中文",
    "language": {
        "title": "界面语言",
        "current": "当前语言：{name}",
        "expanded": "已展开",
        "collapsed": "已收起",
        "switching": "正在切换到 {name}",
        "busy": "请稍候",
        "open": "选择语言",
        "close": "收起",
        "already_selected": "已经是当前语言",
        "changed": "已切换为：{name}",
        "failed": "切换失败，仍使用 {name}",
        "unknown": "不支持该语言",
    },
    "errors": {"generic": "出错了"},
}

EN = {
    "greeting": "Hello, {name}",
    "language": {
        "title": "Interface language",
        "current": "Current language: {name}",
        "expanded": "Expanded",
        "collapsed": "Collapsed",
        "switching": "Switching to {name}",
        "busy": "Please wait",
        "open": "Choose language",
        "close": "Collapse",
        "already_selected": "Already selected",
        "changed": "Changed to: {name}",
        "failed": "Failed, still using {name}",
        "unknown": "Unsupported language",
    },
    "errors": {"generic": "Something went wrong"},
}

AR = {"greeting": "مرحبا {name}"}


class MemoryPreferences:
    def __init__(self, code: Optional[str] = None) -> None:
        self.code = code
        self.saved: list[str] = []
        self.loads = 0

    async def load(self) -> Optional[str]:
        self.loads += 1
        return self.code

    async def save(self, code: str) -> None:
        self.saved.append(code)
        self.code = code


class RecordingDocument(HostDocument):
    def __init__(self, lang: Optional[str] = None) -> None:
        super().__init__(lang)
        self.history: list[tuple[str, str]] = []

    def apply(self, lang: str, direction: str) -> None:
        super().apply(lang, direction)
        self.history.append((lang, direction))


class GatedLoader:
    """Bundle loader whose results are released by the test."""

    def __init__(self, bundles: Mapping[str, Mapping[str, Any]]) -> None:
        self.bundles = bundles
        self.gates: dict[str, asyncio.Event] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[str] = []

    def gate(self, code: str) -> asyncio.Event:
        return self.gates.setdefault(code, asyncio.Event())

    async def __call__(self, code: str) -> Mapping[str, Any]:
        self.calls.append(code)
        await self.gate(code).wait()
        if code in self.failures:
            raise self.failures[code]
        return self.bundles[code]


@pytest.fixture(autouse=True)
def _reset_process_state():
    detector_mod.reset_detection()
    controller_mod.reset_controller()
    yield
    detector_mod.reset_detection()
    controller_mod.reset_controller()


@pytest.fixture
def registry() -> LocaleRegistry:
    return LocaleRegistry([
        LocaleDescriptor("zh-CN", "Chinese", "中文"),
        LocaleDescriptor("en-US", "English", "English"),
        LocaleDescriptor("ar", "Arabic", "العربية", is_rtl=True),
    ])


@pytest.fixture
def store() -> ResourceStore:
    return ResourceStore({"zh-CN": ZH, "en-US": EN, "ar": AR}, fallback="zh-CN")


@pytest.fixture
def document() -> RecordingDocument:
    return RecordingDocument()


@pytest.fixture
def preferences() -> MemoryPreferences:
    return MemoryPreferences()


@pytest.fixture
def controller(registry, store, document, preferences) -> LocaleController:
    return LocaleController(registry, store, "zh-CN", document=document, preferences=preferences)
