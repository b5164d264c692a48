from __future__ import annotations

from telegram.ext import Application, CallbackQueryHandler, CommandHandler

from .handlers import language_cmd, on_callback


def register(app: Application) -> None:
    app.add_handler(CommandHandler("language", language_cmd))
    app.add_handler(CallbackQueryHandler(on_callback, pattern=r"^lang:"))
