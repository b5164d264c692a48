from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, List, Mapping, Optional

from telegram import BotCommand, Update
from telegram.ext import Application, ApplicationBuilder, CommandHandler, ContextTypes

from .core.config import settings
from .core.controller import ActiveLocaleState, LocaleController, init_controller
from .core.detector import LocaleDetector, detect_once
from .core.document import HostDocument
from .core.error_handler import setup_error_handlers
from .core.i18n import ResourceStore, load_packaged_bundles, read_packaged_bundle, t, with_timeout
from .core.logging_config import get_logger, setup_logging
from .core.registry import LocaleRegistry, default_registry
from .features.language import register as register_language
from .infra import db
from .infra.migrate import migrate
from .infra.preferences_repo import StoredPreference

log = get_logger(__name__)


async def load_bundle(code: str) -> Mapping[str, Any]:
    return await asyncio.to_thread(read_packaged_bundle, code)


def build_store(registry: LocaleRegistry, preload: List[str]) -> ResourceStore:
    codes = [settings.FALLBACK_LOCALE] + [c for c in preload if c != settings.FALLBACK_LOCALE]
    bundles = load_packaged_bundles(c for c in codes if c in registry)
    loader = load_bundle
    if settings.BUNDLE_LOAD_TIMEOUT:
        loader = with_timeout(load_bundle, settings.BUNDLE_LOAD_TIMEOUT)
    return ResourceStore(bundles, settings.FALLBACK_LOCALE, loader=loader, debug=settings.I18N_DEBUG)


async def init_locale(
    registry: Optional[LocaleRegistry] = None,
    preferences: Optional[StoredPreference] = None,
    user_languages: Optional[List[str]] = None,
) -> LocaleController:
    """Detect the initial locale and create the process-wide controller."""
    registry = registry or default_registry()
    document = HostDocument(lang=settings.DOCUMENT_LANG)
    detector = LocaleDetector(
        registry,
        settings.FALLBACK_LOCALE,
        preferences=preferences,
        user_languages=user_languages,
        document=document,
    )
    initial = await detect_once(detector)
    store = build_store(registry, [initial])
    return init_controller(registry, store, initial, document=document, preferences=preferences)


async def set_bot_commands(app: Application) -> None:
    cmds: List[BotCommand] = [
        BotCommand("start", t("commands.start")),
        BotCommand("help", t("commands.help")),
        BotCommand("language", t("commands.language")),
    ]
    await app.bot.set_my_commands(cmds)


# strong references to running command refreshes
_command_tasks: set[asyncio.Task] = set()


def watch_locale(app: Application, controller: LocaleController) -> None:
    """Re-localise the bot command list whenever the active locale changes."""
    last = {"code": controller.code}

    def _on_change(state: ActiveLocaleState) -> None:
        if state.code == last["code"]:
            return
        last["code"] = state.code
        task = asyncio.get_running_loop().create_task(set_bot_commands(app))
        _command_tasks.add(task)
        task.add_done_callback(_command_tasks.discard)
        task.add_done_callback(_log_failure)

    controller.subscribe(_on_change)


def _log_failure(task: asyncio.Task) -> None:
    if not task.cancelled() and task.exception() is not None:
        log.error("Updating bot commands failed: %s", task.exception())


def make_app(controller: LocaleController) -> Application:
    async def on_startup(app: Application) -> None:
        await set_bot_commands(app)
        watch_locale(app, controller)

    app = (
        ApplicationBuilder()
        .token(settings.BOT_TOKEN)
        .concurrent_updates(True)
        .post_init(on_startup)
        .build()
    )

    app.add_handler(CommandHandler("start", start))
    app.add_handler(CommandHandler("help", help_))
    register_language(app)

    setup_error_handlers(app)
    return app


async def start(update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.effective_message:
        return
    first_name = update.effective_user.first_name if update.effective_user else ""
    await update.effective_message.reply_text(t("start.welcome", first_name=first_name or ""))


async def help_(update: Update, _: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.effective_message:
        return
    await update.effective_message.reply_text(t("help.text"))


async def bootstrap() -> LocaleController:
    await db.init_engine(settings.DATABASE_URL)
    sessions = db.init_sessionmaker()
    await migrate()
    return await init_locale(preferences=StoredPreference(sessions, settings.PREFERENCE_KEY))


def main() -> None:
    # Ensure data directory exists for SQLite path
    Path("data").mkdir(exist_ok=True)
    setup_logging(log_file=settings.LOG_FILE, debug=settings.DEBUG)
    if not settings.BOT_TOKEN:
        raise SystemExit("BOT_TOKEN is not set")

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    controller = loop.run_until_complete(bootstrap())
    log.info("Bot starting in %s", controller.code)

    app = make_app(controller)
    app.run_polling(allowed_updates=["message", "callback_query"], drop_pending_updates=True)


if __name__ == "__main__":
    main()
