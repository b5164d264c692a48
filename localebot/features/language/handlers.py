"""Language menu: the inline keyboard that lists and switches locales.

The menu is rendered from the controller's state only. Its text always
states the current language and whether the list is expanded, collapsed
or switching, so it reads correctly without the button decorations.
"""

from __future__ import annotations

import logging
from typing import Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import BadRequest
from telegram.ext import ContextTypes

from ...core.controller import LocaleController, SwitchOutcome, get_controller

log = logging.getLogger(__name__)

CB_OPEN = "lang:open"
CB_CLOSE = "lang:close"
CB_BUSY = "lang:busy"
CB_SET = "lang:set:"


def build_menu(
    controller: LocaleController,
    expanded: bool,
    pending: Optional[str] = None,
) -> tuple[str, InlineKeyboardMarkup]:
    state = controller.get_state()
    current = controller.registry.find(state.code)
    busy = pending is not None or state.switching

    lines = [
        controller.t("language.title"),
        controller.t("language.current", name=current.native_name),
    ]
    target = controller.registry.get(pending) if pending else None
    if busy and target is not None:
        lines.append(controller.t("language.switching", name=target.native_name))
    elif busy:
        lines.append(controller.t("language.busy"))
    else:
        lines.append(controller.t("language.expanded" if expanded else "language.collapsed"))
    text = "\n".join(lines)

    if not expanded:
        label = f"🌐 {current.native_name} · {controller.t('language.open')} ▾"
        toggle = InlineKeyboardButton(label, callback_data=CB_BUSY if busy else CB_OPEN)
        return text, InlineKeyboardMarkup([[toggle]])

    rows: list[list[InlineKeyboardButton]] = []
    for loc in controller.registry.list_locales():
        if busy and loc.code == pending:
            label = f"⏳ {loc.native_name}"
        elif loc.code == state.code:
            label = f"✓ {loc.native_name}"
        else:
            label = loc.native_name
        rows.append([InlineKeyboardButton(label, callback_data=CB_BUSY if busy else f"{CB_SET}{loc.code}")])
    rows.append([InlineKeyboardButton(f"▴ {controller.t('language.close')}", callback_data=CB_BUSY if busy else CB_CLOSE)])
    return text, InlineKeyboardMarkup(rows)


async def render(update: Update, controller: LocaleController, expanded: bool, pending: Optional[str] = None) -> None:
    """Edit the menu message in place, or send it when there is none."""
    text, markup = build_menu(controller, expanded, pending)
    try:
        if update.callback_query and update.callback_query.message:
            await update.callback_query.message.edit_text(text, reply_markup=markup)
        else:
            await update.effective_message.reply_text(text, reply_markup=markup)
    except BadRequest as e:
        if "Message is not modified" in str(e):
            return
        raise


async def language_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not update.effective_message:
        return
    await render(update, get_controller(), expanded=False)


async def select_locale(update: Update, controller: LocaleController, code: str) -> None:
    query = update.callback_query
    state = controller.get_state()

    if code == state.code and not state.switching:
        await query.answer(controller.t("language.already_selected"))
        return

    target = controller.registry.get(code)
    if target is None:
        await controller.switch_to(code)
        await query.answer(controller.t("language.unknown"), show_alert=True)
        controller.clear_error()
        return

    if code != state.code:
        await render(update, controller, expanded=True, pending=code)

    result = await controller.switch_to(code)
    if result.outcome is SwitchOutcome.SUPERSEDED:
        # redraw this message once the newer selection has settled
        await query.answer()
        await controller.wait_idle()
        await render(update, controller, expanded=True)
        return

    await render(update, controller, expanded=True)
    if result.ok:
        await query.answer(controller.t("language.changed", name=controller.descriptor().native_name))
    else:
        log.info("Language switch to %s failed: %s", code, result.error)
        await query.answer(
            controller.t("language.failed", name=controller.descriptor().native_name),
            show_alert=True,
        )
        controller.clear_error()


async def on_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    if not query:
        return
    data = query.data or ""
    controller = get_controller()

    if data == CB_OPEN:
        await query.answer()
        return await render(update, controller, expanded=True)
    if data == CB_CLOSE:
        await query.answer()
        return await render(update, controller, expanded=False)
    if data == CB_BUSY:
        if controller.get_state().switching:
            await query.answer(controller.t("language.busy"))
            return
        # left over from a switch that already finished
        await query.answer()
        return await render(update, controller, expanded=True)
    if data.startswith(CB_SET):
        return await select_locale(update, controller, data[len(CB_SET):])
    await query.answer()
