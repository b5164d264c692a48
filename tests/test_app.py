from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram import Update

from localebot.core.config import Settings
from localebot.core.controller import init_controller
from localebot.core.error_handler import ErrorHandler
from localebot.core.i18n import ResourceStore, load_packaged_bundles
from localebot.core.registry import default_registry
from localebot import main as main_mod
from localebot.main import init_locale, set_bot_commands, watch_locale

from .conftest import MemoryPreferences


def packaged_store() -> ResourceStore:
    return ResourceStore(load_packaged_bundles(default_registry().codes()), fallback="zh-CN")


def test_settings_parse_owner_ids_and_defaults(monkeypatch):
    monkeypatch.setenv("OWNER_IDS", "1, 2,3")
    monkeypatch.setenv("DOCUMENT_LANG", "")
    s = Settings()
    assert s.OWNER_IDS == [1, 2, 3]
    assert s.DOCUMENT_LANG is None
    assert s.FALLBACK_LOCALE == "zh-CN"
    assert s.PREFERENCE_KEY == "locale"


@pytest.mark.asyncio
async def test_init_locale_detects_and_loads_bundles():
    prefs = MemoryPreferences()
    ctl = await init_locale(preferences=prefs, user_languages=["ar_EG"])
    assert ctl.get_state().code == "ar"
    assert ctl.get_state().direction == "rtl"
    assert ctl.document.attributes() == {"lang": "ar", "dir": "rtl"}
    assert ctl.store.has_bundle("ar") and ctl.store.has_bundle("zh-CN")
    assert not ctl.store.has_bundle("en-US")
    # ar ships without help.text, served from the fallback bundle
    assert ctl.t("help.text").startswith("可用命令")

    result = await ctl.switch_to("en-US")
    assert result.ok
    assert ctl.store.has_bundle("en-US")
    assert ctl.t("commands.help") == "Show help"
    assert prefs.saved == ["en-US"]


@pytest.mark.asyncio
async def test_bot_commands_follow_active_locale():
    ctl = init_controller(default_registry(), packaged_store(), "zh-CN")
    app = MagicMock()
    app.bot.set_my_commands = AsyncMock()

    await set_bot_commands(app)
    commands = app.bot.set_my_commands.await_args.args[0]
    assert [c.description for c in commands] == ["开始", "显示帮助", "切换界面语言"]

    watch_locale(app, ctl)
    await ctl.switch_to("en-US")
    for _ in range(5):
        await asyncio.sleep(0)
    commands = app.bot.set_my_commands.await_args.args[0]
    assert [c.description for c in commands] == ["Start", "Show help", "Change interface language"]
    assert app.bot.set_my_commands.await_count == 2


@pytest.mark.asyncio
async def test_error_handler_replies_in_active_locale():
    init_controller(default_registry(), packaged_store(), "en-US")
    update = MagicMock(spec=Update)
    update.effective_user = None
    update.effective_chat = None
    update.effective_message = MagicMock()
    update.effective_message.reply_text = AsyncMock()
    context = MagicMock()
    context.error = RuntimeError("boom")

    await ErrorHandler.handle_error(update, context)
    update.effective_message.reply_text.assert_awaited_once_with("Something went wrong. Please try again later.")


@pytest.mark.asyncio
async def test_error_handler_ignores_unmodified_message():
    update = MagicMock(spec=Update)
    update.effective_message = MagicMock()
    update.effective_message.reply_text = AsyncMock()
    context = MagicMock()
    context.error = RuntimeError("Message is not modified: same content")

    await ErrorHandler.handle_error(update, context)
    update.effective_message.reply_text.assert_not_awaited()


@pytest.mark.asyncio
async def test_command_refresh_task_is_held_until_done():
    ctl = init_controller(default_registry(), packaged_store(), "zh-CN")
    release = asyncio.Event()

    async def slow_set_commands(commands):
        await release.wait()

    app = MagicMock()
    app.bot.set_my_commands = AsyncMock(side_effect=slow_set_commands)
    watch_locale(app, ctl)
    before = set(main_mod._command_tasks)

    await ctl.switch_to("en-US")
    await asyncio.sleep(0)
    (task,) = main_mod._command_tasks - before
    assert not task.done()

    release.set()
    await task
    await asyncio.sleep(0)
    assert task not in main_mod._command_tasks
