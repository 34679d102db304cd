from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Any

from telegram import Update
from telegram.ext import (
    CallbackContext,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)

from birthday_tracker.birthday_book import BirthdayBook
from birthday_tracker.date_logic import days_in_month, days_until_next, month_name, validate_month_day
from birthday_tracker.models import MONTH_NAMES, BirthdayRecord
from birthday_tracker.ordering import distance_label, ordered_view
from birthday_tracker.settings import Settings, today_for

LOGGER = logging.getLogger(__name__)

(
    STATE_ADD_NAME,
    STATE_ADD_MONTH,
    STATE_ADD_DAY,
    STATE_DELETE_SELECT,
) = range(4)

BOOK_KEY = "birthday_book"
PENDING_ADD_KEY = "pending_add_birthday"
PENDING_DELETE_KEY = "pending_delete_birthday"

APP_TITLE = "🎂 Birthday Tracker"


@dataclass(frozen=True)
class HandlerDependencies:
    settings: Settings


@dataclass(frozen=True)
class BirthdayCardRow:
    record_id: str
    name: str
    day: int
    month: int
    days_until: int


def is_authorized(update: Update, settings: Settings) -> bool:
    effective_user = update.effective_user
    effective_chat = update.effective_chat
    if effective_user is None or effective_chat is None:
        return False
    return (
        effective_user.id == settings.telegram_allowed_user_id
        and effective_chat.id == settings.telegram_allowed_chat_id
    )


async def _deny_unauthorized(update: Update) -> None:
    if update.effective_message:
        await update.effective_message.reply_text("This bot is restricted to its configured owner.")


def get_book(chat_data: dict[str, Any]) -> BirthdayBook:
    book = chat_data.get(BOOK_KEY)
    if not isinstance(book, BirthdayBook):
        book = BirthdayBook()
        chat_data[BOOK_KEY] = book
    return book


def parse_month_text(raw_text: str) -> int:
    value = raw_text.strip().lower()
    if not value:
        raise ValueError("Month cannot be empty")

    if value.isdigit():
        month = int(value)
        if month < 1 or month > 12:
            raise ValueError(f"Invalid month: {month}")
        return month

    if len(value) < 3:
        raise ValueError(f"Unknown month: {raw_text.strip()}")

    matches = [index for index, name in enumerate(MONTH_NAMES, start=1) if name.lower().startswith(value)]
    if len(matches) != 1:
        raise ValueError(f"Unknown month: {raw_text.strip()}")
    return matches[0]


def parse_day_text(raw_text: str, month: int) -> int:
    value = raw_text.strip()
    if not value.isdigit():
        raise ValueError("Day must be a number")
    day = int(value)
    validate_month_day(month, day)
    return day


def avatar_initial(name: str) -> str:
    stripped = name.strip()
    return stripped[0].upper() if stripped else "?"


def build_card_rows(records: Iterable[BirthdayRecord], today: date, leap_day_rule: str) -> list[BirthdayCardRow]:
    return [
        BirthdayCardRow(
            record_id=record.record_id,
            name=record.name,
            day=record.day,
            month=record.month,
            days_until=days_until_next(record.day, record.month, today, leap_day_rule),
        )
        for record in ordered_view(records, today, leap_day_rule)
    ]


def _render_splash() -> str:
    return "🎂\nBirthday Tracker\nNever miss a celebration"


def _render_help() -> str:
    return (
        "Commands:\n"
        "/start - Show the splash screen and your birthdays\n"
        "/list - Show birthdays sorted by soonest\n"
        "/add - Add a birthday (name, month, day)\n"
        "/delete - Remove a birthday\n"
        "/cancel - Cancel the active add/delete wizard\n"
        "/help - Show this help message"
    )


def _render_home(rows: list[BirthdayCardRow]) -> str:
    if not rows:
        return (
            f"{APP_TITLE}\n\n"
            "🎈\n"
            "No birthdays added yet\n"
            "Send /add to add your first birthday"
        )

    lines = [APP_TITLE, ""]
    for index, row in enumerate(rows, start=1):
        lines.append(f"{index}. [{avatar_initial(row.name)}] {row.name}")
        lines.append(f"   {month_name(row.month)} {row.day} | {distance_label(row.days_until)}")
        lines.append("")
    return "\n".join(lines).rstrip()


def _render_delete_selection(rows: list[BirthdayCardRow]) -> str:
    lines = ["Delete birthday wizard started.", "Reply with the number of the entry to remove:"]
    for index, row in enumerate(rows, start=1):
        lines.append(f"{index}. {row.name} | {month_name(row.month)} {row.day}")
    return "\n".join(lines)


def _home_text(book: BirthdayBook, settings: Settings) -> str:
    rows = build_card_rows(book.records, today_for(settings), settings.leap_day_rule)
    return _render_home(rows)


async def start_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    settings = deps.settings
    if not is_authorized(update, settings):
        await _deny_unauthorized(update)
        return

    await update.effective_message.reply_text(_render_splash())

    job_queue = context.job_queue
    if job_queue is None:
        await update.effective_message.reply_text(_home_text(get_book(context.chat_data), settings))
        return

    chat_id = update.effective_chat.id
    job_queue.run_once(
        show_home_job,
        when=settings.splash_seconds,
        chat_id=chat_id,
        name=f"splash-{chat_id}",
    )


async def show_home_job(context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    text = _home_text(get_book(context.chat_data), deps.settings)
    await context.bot.send_message(chat_id=context.job.chat_id, text=text)


async def help_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return
    await update.effective_message.reply_text(_render_help())


async def list_command(update: Update, context: CallbackContext) -> None:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    settings = deps.settings
    if not is_authorized(update, settings):
        await _deny_unauthorized(update)
        return

    await update.effective_message.reply_text(_home_text(get_book(context.chat_data), settings))


async def add_start(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    context.user_data[PENDING_ADD_KEY] = {}
    await update.effective_message.reply_text(
        "Add birthday wizard started.\nStep 1/3: Send the person's name."
    )
    return STATE_ADD_NAME


async def add_name(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    name = (update.effective_message.text or "").strip()
    if not name:
        await update.effective_message.reply_text("Name cannot be empty. Please send a name.")
        return STATE_ADD_NAME

    context.user_data[PENDING_ADD_KEY] = {"name": name}
    await update.effective_message.reply_text(
        "Step 2/3: Send the month as a number (1-12) or a name like March."
    )
    return STATE_ADD_MONTH


async def add_month(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    try:
        month = parse_month_text(update.effective_message.text or "")
    except ValueError as exc:
        await update.effective_message.reply_text(
            f"{exc}. Please send a month number (1-12) or name."
        )
        return STATE_ADD_MONTH

    pending = context.user_data.get(PENDING_ADD_KEY, {})
    pending["month"] = month
    context.user_data[PENDING_ADD_KEY] = pending

    await update.effective_message.reply_text(
        f"Step 3/3: Send the day of {month_name(month)} (1-{days_in_month(month)})."
    )
    return STATE_ADD_DAY


async def add_day(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    settings = deps.settings
    if not is_authorized(update, settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    pending = context.user_data.get(PENDING_ADD_KEY)
    if not isinstance(pending, dict) or "name" not in pending or "month" not in pending:
        await update.effective_message.reply_text("Add session expired. Send /add to start again.")
        return ConversationHandler.END

    month = int(pending["month"])
    try:
        day = parse_day_text(update.effective_message.text or "", month)
    except ValueError as exc:
        await update.effective_message.reply_text(
            f"{exc}. Please send a day between 1 and {days_in_month(month)}."
        )
        return STATE_ADD_DAY

    book = get_book(context.chat_data)
    record = book.add(str(pending["name"]), day, month)
    context.user_data.pop(PENDING_ADD_KEY, None)

    await update.effective_message.reply_text(
        f"Added {record.name} ({month_name(record.month)} {record.day})."
    )
    await update.effective_message.reply_text(_home_text(book, settings))
    LOGGER.info("Added birthday for %s", record.name)
    return ConversationHandler.END


async def delete_start(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    settings = deps.settings
    if not is_authorized(update, settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    book = get_book(context.chat_data)
    if not book:
        await update.effective_message.reply_text("No birthdays added yet.")
        return ConversationHandler.END

    rows = build_card_rows(book.records, today_for(settings), settings.leap_day_rule)
    context.user_data[PENDING_DELETE_KEY] = [row.record_id for row in rows]
    await update.effective_message.reply_text(_render_delete_selection(rows))
    return STATE_DELETE_SELECT


async def delete_select(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    settings = deps.settings
    if not is_authorized(update, settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    record_ids = context.user_data.get(PENDING_DELETE_KEY)
    if not isinstance(record_ids, list):
        await update.effective_message.reply_text("Delete session expired. Send /delete to start again.")
        return ConversationHandler.END

    raw_text = (update.effective_message.text or "").strip()
    if not raw_text.isdigit():
        await update.effective_message.reply_text("Please send the entry number shown in the list.")
        return STATE_DELETE_SELECT

    selected = int(raw_text)
    if selected < 1 or selected > len(record_ids):
        await update.effective_message.reply_text(f"Entry must be between 1 and {len(record_ids)}.")
        return STATE_DELETE_SELECT

    book = get_book(context.chat_data)
    record = book.get(record_ids[selected - 1])
    context.user_data.pop(PENDING_DELETE_KEY, None)
    if record is None or not book.remove(record.record_id):
        await update.effective_message.reply_text("That birthday was already removed.")
        return ConversationHandler.END

    await update.effective_message.reply_text(f"Deleted {record.name}.")
    await update.effective_message.reply_text(_home_text(book, settings))
    LOGGER.info("Deleted birthday for %s", record.name)
    return ConversationHandler.END


async def cancel_command(update: Update, context: CallbackContext) -> int:
    deps: HandlerDependencies = context.application.bot_data["handler_deps"]
    if not is_authorized(update, deps.settings):
        await _deny_unauthorized(update)
        return ConversationHandler.END

    context.user_data.pop(PENDING_ADD_KEY, None)
    context.user_data.pop(PENDING_DELETE_KEY, None)
    await update.effective_message.reply_text("Wizard canceled.")
    return ConversationHandler.END


def build_handlers() -> list:
    add_conversation = ConversationHandler(
        entry_points=[CommandHandler("add", add_start)],
        states={
            STATE_ADD_NAME: [MessageHandler(filters.TEXT & ~filters.COMMAND, add_name)],
            STATE_ADD_MONTH: [MessageHandler(filters.TEXT & ~filters.COMMAND, add_month)],
            STATE_ADD_DAY: [MessageHandler(filters.TEXT & ~filters.COMMAND, add_day)],
        },
        fallbacks=[CommandHandler("cancel", cancel_command)],
        name="add_birthday_conversation",
        persistent=False,
    )

    delete_conversation = ConversationHandler(
        entry_points=[CommandHandler("delete", delete_start)],
        states={
            STATE_DELETE_SELECT: [MessageHandler(filters.TEXT & ~filters.COMMAND, delete_select)],
        },
        fallbacks=[CommandHandler("cancel", cancel_command)],
        name="delete_birthday_conversation",
        persistent=False,
    )

    # Conversations come first so their /cancel fallback ends the active wizard.
    return [
        add_conversation,
        delete_conversation,
        CommandHandler("start", start_command),
        CommandHandler("help", help_command),
        CommandHandler("list", list_command),
        CommandHandler("cancel", cancel_command),
    ]
