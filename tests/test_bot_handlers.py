import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest
from telegram.ext import CommandHandler, ConversationHandler

from birthday_tracker.birthday_book import BirthdayBook
from birthday_tracker.bot_handlers import (
    BOOK_KEY,
    PENDING_ADD_KEY,
    STATE_ADD_DAY,
    STATE_ADD_MONTH,
    STATE_ADD_NAME,
    STATE_DELETE_SELECT,
    BirthdayCardRow,
    HandlerDependencies,
    _render_home,
    add_day,
    add_month,
    add_name,
    add_start,
    avatar_initial,
    build_handlers,
    cancel_command,
    delete_select,
    delete_start,
    help_command,
    is_authorized,
    list_command,
    parse_day_text,
    parse_month_text,
    show_home_job,
    start_command,
)
from birthday_tracker.settings import Settings


def _settings() -> Settings:
    return Settings(
        telegram_bot_token="token",
        telegram_allowed_user_id=111,
        telegram_allowed_chat_id=222,
        timezone="UTC",
    )


@dataclass
class FakeUser:
    id: int


@dataclass
class FakeChat:
    id: int


@dataclass
class FakeMessage:
    text: str | None = None
    replies: list[str] = field(default_factory=list)

    async def reply_text(self, text: str) -> None:
        self.replies.append(text)


@dataclass
class FakeUpdate:
    effective_user: FakeUser
    effective_chat: FakeChat
    effective_message: FakeMessage = field(default_factory=FakeMessage)


@dataclass
class FakeApplication:
    bot_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class FakeContext:
    application: FakeApplication
    user_data: dict[str, Any] = field(default_factory=dict)
    chat_data: dict[str, Any] = field(default_factory=dict)
    job_queue: Any = None


def _context() -> FakeContext:
    application = FakeApplication(bot_data={"handler_deps": HandlerDependencies(settings=_settings())})
    return FakeContext(application=application)


def _update(text: str | None = None, *, user_id: int = 111, chat_id: int = 222) -> FakeUpdate:
    return FakeUpdate(
        effective_user=FakeUser(id=user_id),
        effective_chat=FakeChat(id=chat_id),
        effective_message=FakeMessage(text=text),
    )


def test_parse_month_text_number_and_name() -> None:
    assert parse_month_text("3") == 3
    assert parse_month_text(" 12 ") == 12
    assert parse_month_text("March") == 3
    assert parse_month_text("sep") == 9


@pytest.mark.parametrize("raw", ["", "0", "13", "ju", "Smarch"])
def test_parse_month_text_rejects_invalid(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_month_text(raw)


def test_parse_day_text_respects_month_table() -> None:
    assert parse_day_text("29", 2) == 29

    with pytest.raises(ValueError):
        parse_day_text("30", 2)
    with pytest.raises(ValueError):
        parse_day_text("first", 1)


def test_avatar_initial() -> None:
    assert avatar_initial("alice") == "A"
    assert avatar_initial("") == "?"


def test_render_home_empty_state() -> None:
    message = _render_home([])

    assert "No birthdays added yet" in message
    assert "/add" in message


def test_render_home_cards() -> None:
    message = _render_home(
        [
            BirthdayCardRow(record_id="1", name="alice", day=10, month=3, days_until=0),
            BirthdayCardRow(record_id="2", name="Bob", day=11, month=3, days_until=1),
            BirthdayCardRow(record_id="3", name="Cleo", day=1, month=3, days_until=357),
        ]
    )

    assert message == (
        "🎂 Birthday Tracker\n"
        "\n"
        "1. [A] alice\n"
        "   March 10 | 🎉 Today!\n"
        "\n"
        "2. [B] Bob\n"
        "   March 11 | Tomorrow\n"
        "\n"
        "3. [C] Cleo\n"
        "   March 1 | in 357 days"
    )


def test_is_authorized_true() -> None:
    assert is_authorized(_update(), _settings()) is True


def test_is_authorized_false() -> None:
    assert is_authorized(_update(chat_id=999), _settings()) is False


def test_add_wizard_adds_record() -> None:
    context = _context()

    assert asyncio.run(add_start(_update("/add"), context)) == STATE_ADD_NAME

    blank = _update("   ")
    assert asyncio.run(add_name(blank, context)) == STATE_ADD_NAME
    assert "Name cannot be empty" in blank.effective_message.replies[0]

    assert asyncio.run(add_name(_update("Alice"), context)) == STATE_ADD_MONTH

    bad_month = _update("Smarch")
    assert asyncio.run(add_month(bad_month, context)) == STATE_ADD_MONTH
    assert asyncio.run(add_month(_update("April"), context)) == STATE_ADD_DAY

    bad_day = _update("31")
    assert asyncio.run(add_day(bad_day, context)) == STATE_ADD_DAY
    assert "between 1 and 30" in bad_day.effective_message.replies[0]

    done = _update("30")
    assert asyncio.run(add_day(done, context)) == ConversationHandler.END

    book: BirthdayBook = context.chat_data[BOOK_KEY]
    assert [(r.name, r.day, r.month) for r in book.records] == [("Alice", 30, 4)]
    assert PENDING_ADD_KEY not in context.user_data
    assert done.effective_message.replies[0] == "Added Alice (April 30)."
    assert "Alice" in done.effective_message.replies[1]


def test_delete_wizard_removes_selected_record() -> None:
    context = _context()
    book = BirthdayBook()
    alice = book.add("Alice", 14, 3)
    book.add("Bob", 22, 8)
    context.chat_data[BOOK_KEY] = book

    start = _update("/delete")
    assert asyncio.run(delete_start(start, context)) == STATE_DELETE_SELECT

    out_of_range = _update("5")
    assert asyncio.run(delete_select(out_of_range, context)) == STATE_DELETE_SELECT

    position = next(
        index
        for index, line in enumerate(start.effective_message.replies[0].splitlines()[2:], start=1)
        if "Alice" in line
    )
    done = _update(str(position))
    assert asyncio.run(delete_select(done, context)) == ConversationHandler.END

    assert book.get(alice.record_id) is None
    assert [r.name for r in book.records] == ["Bob"]
    assert done.effective_message.replies[0] == "Deleted Alice."


def test_delete_with_empty_book_ends() -> None:
    context = _context()
    update = _update("/delete")

    assert asyncio.run(delete_start(update, context)) == ConversationHandler.END
    assert update.effective_message.replies == ["No birthdays added yet."]


def test_start_without_job_queue_shows_splash_then_home() -> None:
    context = _context()
    update = _update("/start")

    asyncio.run(start_command(update, context))

    assert update.effective_message.replies[0].endswith("Never miss a celebration")
    assert "No birthdays added yet" in update.effective_message.replies[1]


def test_unauthorized_list_is_refused() -> None:
    context = _context()
    update = _update("/list", user_id=5)

    asyncio.run(list_command(update, context))

    assert update.effective_message.replies == ["This bot is restricted to its configured owner."]
    assert BOOK_KEY not in context.chat_data


@dataclass
class FakeJobQueue:
    scheduled: list[dict[str, Any]] = field(default_factory=list)

    def run_once(self, callback, when, chat_id, name) -> None:
        self.scheduled.append({"callback": callback, "when": when, "chat_id": chat_id, "name": name})


def test_start_schedules_home_after_splash() -> None:
    context = _context()
    context.job_queue = FakeJobQueue()
    update = _update("/start")

    asyncio.run(start_command(update, context))

    assert len(update.effective_message.replies) == 1
    assert context.job_queue.scheduled == [
        {"callback": show_home_job, "when": 2.0, "chat_id": 222, "name": "splash-222"}
    ]


@dataclass
class FakeBot:
    sent_messages: list[tuple[int, str]] = field(default_factory=list)

    async def send_message(self, chat_id: int, text: str) -> None:
        self.sent_messages.append((chat_id, text))


@dataclass
class FakeJob:
    chat_id: int


def test_show_home_job_sends_sorted_list() -> None:
    context = _context()
    book = BirthdayBook()
    book.add("Zed", 1, 1)
    context.chat_data[BOOK_KEY] = book
    context.bot = FakeBot()
    context.job = FakeJob(chat_id=222)

    asyncio.run(show_home_job(context))

    chat_id, text = context.bot.sent_messages[0]
    assert chat_id == 222
    assert "[Z] Zed" in text
    assert "January 1" in text


def test_conversations_are_registered_before_standalone_cancel() -> None:
    handlers = build_handlers()

    cancel_index = next(
        index
        for index, handler in enumerate(handlers)
        if isinstance(handler, CommandHandler) and "cancel" in handler.commands
    )
    conversation_indexes = [
        index for index, handler in enumerate(handlers) if isinstance(handler, ConversationHandler)
    ]

    assert len(conversation_indexes) == 2
    assert all(index < cancel_index for index in conversation_indexes)
    for index in conversation_indexes:
        fallbacks = handlers[index].fallbacks
        assert any(isinstance(fallback, CommandHandler) and "cancel" in fallback.commands for fallback in fallbacks)


def test_cancel_clears_pending_wizard_and_ends() -> None:
    context = _context()
    asyncio.run(add_start(_update("/add"), context))
    asyncio.run(add_name(_update("Alice"), context))

    update = _update("/cancel")
    assert asyncio.run(cancel_command(update, context)) == ConversationHandler.END

    assert PENDING_ADD_KEY not in context.user_data
    assert update.effective_message.replies == ["Wizard canceled."]
    assert BOOK_KEY not in context.chat_data


def test_help_lists_commands() -> None:
    update = _update("/help")

    asyncio.run(help_command(update, _context()))

    message = update.effective_message.replies[0]
    for command in ("/start", "/list", "/add", "/delete", "/cancel", "/help"):
        assert command in message
