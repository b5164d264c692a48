"""Update-level error handling with owner notifications."""

from __future__ import annotations

import asyncio
import html
import logging
import traceback
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from telegram import Update
from telegram.error import RetryAfter, TelegramError, TimedOut
from telegram.ext import Application, ContextTypes

from .config import settings
from .i18n import t

log = logging.getLogger(__name__)

# Error messages that are expected and never reported
IGNORE_ERRORS = (
    "Message is not modified",
    "Message to edit not found",
    "Query is too old",
)

T = TypeVar("T")


class ErrorHandler:
    """Centralized error handling with owner notifications."""

    @staticmethod
    async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        error = context.error
        if error is None:
            return
        if any(ignore in str(error) for ignore in IGNORE_ERRORS):
            log.debug("Ignoring known error: %s", error)
            return

        log.error("Exception while handling an update:", exc_info=error)

        try:
            report = ErrorHandler._format_error_message(error, update)
            await ErrorHandler._notify_owners(context, report)

            if isinstance(update, Update) and update.effective_message:
                await ErrorHandler._send_with_retry(
                    update.effective_message.reply_text,
                    t("errors.generic"),
                    retry_label="reply_text",
                )
        except Exception as e:
            log.error("Error in error handler: %s", e)

    @staticmethod
    def _format_error_message(error: BaseException, update: object) -> str:
        tb_string = "".join(traceback.format_exception(None, error, error.__traceback__))
        if len(tb_string) > 2000:
            tb_string = tb_string[-2000:]

        parts = [
            "<b>🚨 Bot Error Report</b>",
            f"<b>Time:</b> {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}",
            f"<b>Error:</b> <code>{html.escape(str(error))}</code>",
        ]
        if isinstance(update, Update):
            if update.effective_user:
                parts.append(f"User ID: {update.effective_user.id}")
            if update.effective_chat:
                parts.append(f"Chat ID: {update.effective_chat.id}")
        parts.extend(["", "<b>Traceback:</b>", f"<pre>{html.escape(tb_string)}</pre>"])
        return "\n".join(parts)

    @staticmethod
    async def _notify_owners(context: ContextTypes.DEFAULT_TYPE, report: str) -> None:
        for owner_id in settings.OWNER_IDS:
            await ErrorHandler._send_with_retry(
                context.bot.send_message,
                chat_id=owner_id,
                text=report[:4000],
                parse_mode="HTML",
                retry_label=f"notify_owner_{owner_id}",
            )

    @staticmethod
    async def _send_with_retry(
        func: Callable[..., Awaitable[T]],
        *args: Any,
        retry_label: str = "send_message",
        max_attempts: int = 3,
        **kwargs: Any,
    ) -> T | None:
        """Best-effort wrapper around Telegram API calls with backoff."""
        attempt = 0
        while attempt < max_attempts:
            try:
                return await func(*args, **kwargs)
            except RetryAfter as exc:
                attempt += 1
                retry_after = exc.retry_after
                if hasattr(retry_after, "total_seconds"):
                    retry_after = retry_after.total_seconds()
                wait_time = int(retry_after) + 1
                log.warning(
                    "Flood control on %s, retrying in %ss (attempt %s/%s)",
                    retry_label, wait_time, attempt, max_attempts,
                )
                await asyncio.sleep(wait_time)
            except TimedOut:
                attempt += 1
                wait_time = 2 ** attempt
                log.warning(
                    "Timeout on %s, retrying in %ss (attempt %s/%s)",
                    retry_label, wait_time, attempt, max_attempts,
                )
                await asyncio.sleep(wait_time)
            except TelegramError as exc:
                log.error("Telegram error on %s: %s", retry_label, exc)
                break
        return None


def setup_error_handlers(application: Application) -> None:
    application.add_error_handler(ErrorHandler.handle_error)
    log.info("Error handlers configured")
