"""Asynchronous Telegram bot for the 3D print scheduler."""

import asyncio
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from aiogram import Bot, Dispatcher, BaseMiddleware, F
from aiogram.filters import Command
from aiogram.types import CallbackQuery, ErrorEvent, Message, TelegramObject
from aiogram.enums import ParseMode
from aiogram.client.default import DefaultBotProperties
from aiogram.utils.formatting import Text, Bold
from aiogram.utils.keyboard import InlineKeyboardBuilder

import config
from queue_items import PrintItem, WaitUntilItem, describe
from session import SchedulerSession
from state import StateStore
from ticker import RemainingTimeTicker
from time_utils import (
    COMPLETED,
    format_clock,
    format_duration,
    format_relative_timestamp,
    is_valid_clock_time,
    parse_completion_time,
    parse_duration_text,
)

logger = logging.getLogger(__name__)

dp = Dispatcher()
bot: Optional[Bot] = None
session = SchedulerSession(
    StateStore(config.STATE_FILE, config.DEFAULT_GAP_MINUTES),
    default_gap_minutes=config.DEFAULT_GAP_MINUTES,
)

# (item id, end time) of current prints already reported as finished
_notified: set[tuple[str, datetime]] = set()


def setup_logging() -> None:
    """Rotating file logging."""
    log_path = Path(config.LOG_FILE)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
    )
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logging.basicConfig(handlers=[handler], level=getattr(logging, config.LOG_LEVEL, logging.INFO))


def _current_end_time() -> Optional[datetime]:
    current = session.current
    return current.end_time if current is not None else None


async def on_remaining_tick(remaining: str) -> None:
    """Report a finished print to the admin once, then stop ticking."""
    current = session.current
    if remaining != COMPLETED or current is None:
        return
    await ticker.stop()
    key = (current.item.id, current.end_time)
    if key in _notified:
        return
    _notified.add(key)
    logger.info("Current print %r finished", current.item.name)
    if not config.NOTIFY_ON_COMPLETE or bot is None or not config.ADMIN_ID:
        return
    try:
        msg = Text(Bold("Print finished:"), f" {current.item.name}")
        await bot.send_message(config.ADMIN_ID, **msg.as_kwargs())
    except Exception as e:
        logger.warning("Failed to send completion notice: %s", e)


ticker = RemainingTimeTicker(
    _current_end_time, on_remaining_tick, interval=config.TICK_INTERVAL_SECONDS
)


async def sync_ticker() -> None:
    """Run the ticker only while there is a current print."""
    if session.current is None:
        await ticker.stop()
    elif not ticker.running:
        ticker.start()


# --- Auth middleware ---
class AuthMiddleware(BaseMiddleware):
    """Allow only whitelisted users."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        if event.from_user is None:
            return await handler(event, data)
        if event.from_user.id not in config.WHITELIST:
            await event.answer("Access denied")
            return
        return await handler(event, data)


# --- Argument parsing ---
def remove_command_from_message(message_text: str) -> str:
    """Remove the leading /command from message.text and return its arguments."""
    if not message_text:
        return ""
    tokens = message_text.strip().split(maxsplit=1)
    if tokens and tokens[0].startswith("/"):
        return tokens[1].strip() if len(tokens) > 1 else ""
    return message_text.strip()


def parse_position(text: str) -> Optional[int]:
    """1-based queue position as shown by /queue."""
    text = (text or "").strip().lstrip("#")
    if not text.isdigit():
        return None
    return int(text)


def split_when(args: str) -> tuple[str, str]:
    """Split ``<when> <rest>`` where <when> may be ``YYYY-MM-DD HH:MM`` (two tokens)."""
    tokens = args.split()
    if len(tokens) >= 2 and len(tokens[0]) == 10 and tokens[0].count("-") == 2:
        return f"{tokens[0]} {tokens[1]}", " ".join(tokens[2:])
    if not tokens:
        return "", ""
    return tokens[0], " ".join(tokens[1:])


# --- Rendering ---
def render_status(now: datetime) -> Text:
    parts: list[Any] = []
    current = session.current
    if current is None:
        parts.append("No print running.\n")
    else:
        parts += [
            Bold("Printing now:"),
            f" {current.item.name}\n",
            Bold("Finishes:"),
            f" {format_relative_timestamp(current.end_time, now)}\n",
            Bold("Remaining:"),
            f" {session.remaining()}\n",
        ]
    banner = session.banner()
    if banner is not None:
        parts += [Bold("Queue completes:"), f" {format_relative_timestamp(banner, now)}"]
    else:
        parts.append("Queue is empty.")
    return Text(*parts)


def render_queue(now: datetime) -> Text:
    projection = session.projection()
    if not projection:
        return Text("Queue is empty. Add a print with /add <duration> <name>.")
    parts: list[Any] = [
        Bold(f"Queue ({len(projection)}):"),
        f" starts {format_relative_timestamp(session.anchor(), now)}\n",
    ]
    for position, entry in enumerate(projection, start=1):
        item = entry.item
        parts.append(f"{position}. [{describe(item)}] {item.name}")
        if isinstance(item, WaitUntilItem):
            parts.append(f" until {item.wait_until}\n")
            parts.append(f"   resumes {format_relative_timestamp(entry.end, now)}\n")
        else:
            parts.append(f", {format_duration(item.duration_minutes)}\n")
            parts.append(
                f"   {format_relative_timestamp(entry.start, now)}"
                f" to {format_relative_timestamp(entry.end, now)}\n"
            )
    parts += [Bold("Queue completes:"), f" {format_relative_timestamp(projection[-1].end, now)}"]
    return Text(*parts)


def presets_keyboard():
    builder = InlineKeyboardBuilder()
    for minutes in config.GAP_PRESETS:
        builder.button(text=f"{format_duration(minutes)} gap", callback_data=f"quick:gap:{minutes}")
    for clock in config.WAIT_PRESETS:
        hh, mm = (int(x) for x in clock.split(":"))
        label = format_clock(datetime(2000, 1, 1, hh, mm))
        builder.button(text=f"Wait {label}", callback_data=f"quick:wait:{clock}")
    builder.adjust(2)
    return builder.as_markup()


# --- Handlers ---
@dp.message(Command("start"))
async def start(message: Message) -> None:
    """Handle /start command."""
    await message.reply(**Text("3D print scheduler ready. Send /help for commands.").as_kwargs())


@dp.message(Command("help"))
async def help_handler(message: Message) -> None:
    """Handle /help command - list commands."""
    builder = Text(
        Bold("Queue:"),
        "\n",
        "/queue - Show queue with projected times\n",
        "/add <duration> <name> - Queue a print (e.g. /add 2h30m Phone Stand)\n",
        "/gap [duration] - Queue prep time (default gap if omitted)\n",
        "/wait <HH:MM> - Pause the queue until a time of day\n",
        "/gapafter <pos> [duration] - Insert a gap after an item\n",
        "/waitafter <pos> <HH:MM> - Insert a wait after an item\n",
        "/move <from> <to> - Reorder\n",
        "/dup <pos> - Duplicate an item to the end of the queue\n",
        "/remove <pos> - Remove an item\n",
        "/presets - Quick-add gaps and waits\n\n",
        Bold("Current print:"),
        "\n",
        "/status - Current print, remaining time, queue completion\n",
        "/next <pos> - Start a queued print now\n",
        "/current <when> <name> - Set the running print\n",
        "/finish <when> - Change when the running print finishes\n",
        "/clear - Clear the running print\n\n",
        Bold("Settings:"),
        "\n",
        "/defaultgap [duration] - Show or set the default gap\n",
        "/reset - Clear everything\n\n",
        "<duration> is 90, 90m, 2h or 1h30m. ",
        "<when> is a duration, HH:MM today, or YYYY-MM-DD HH:MM.",
    )
    await message.reply(**builder.as_kwargs())


@dp.message(Command("status"))
async def status_handler(message: Message) -> None:
    """Handle /status command."""
    await message.reply(**render_status(session.clock()).as_kwargs())


@dp.message(Command("queue"))
async def queue_handler(message: Message) -> None:
    """Handle /queue command - list projected timeline."""
    await message.reply(**render_queue(session.clock()).as_kwargs())


@dp.message(Command("add"))
async def add_handler(message: Message) -> None:
    """Handle /add <duration> <name>."""
    args = remove_command_from_message(message.text or "")
    when, _, name = args.partition(" ")
    minutes = parse_duration_text(when)
    item = session.add_print(name, minutes) if minutes is not None else None
    if item is None:
        await message.reply(**Text("Usage: /add <duration> <name>, e.g. /add 2h30m Phone Stand").as_kwargs())
        return
    await message.reply(
        **Text("Queued ", Bold(item.name), f" ({format_duration(item.duration_minutes)}).").as_kwargs()
    )


@dp.message(Command("gap"))
async def gap_handler(message: Message) -> None:
    """Handle /gap [duration]."""
    args = remove_command_from_message(message.text or "")
    minutes = parse_duration_text(args) if args else None
    item = session.add_gap(minutes) if (minutes is not None or not args) else None
    if item is None:
        await message.reply(**Text("Usage: /gap [duration], e.g. /gap 30m").as_kwargs())
        return
    await message.reply(**Text(f"Queued {format_duration(item.duration_minutes)} gap.").as_kwargs())


@dp.message(Command("wait"))
async def wait_handler(message: Message) -> None:
    """Handle /wait <HH:MM>."""
    args = remove_command_from_message(message.text or "")
    item = session.add_wait(args)
    if item is None:
        await message.reply(**Text("Usage: /wait <HH:MM>, e.g. /wait 08:00").as_kwargs())
        return
    await message.reply(**Text(f"Queued wait until {item.wait_until}.").as_kwargs())


@dp.message(Command("gapafter"))
async def gap_after_handler(message: Message) -> None:
    """Handle /gapafter <pos> [duration]."""
    pos_text, _, rest = remove_command_from_message(message.text or "").partition(" ")
    position = parse_position(pos_text)
    target = session.item_at(position) if position is not None else None
    minutes = parse_duration_text(rest) if rest.strip() else None
    if target is None or (rest.strip() and minutes is None):
        await message.reply(**Text("Usage: /gapafter <pos> [duration]").as_kwargs())
        return
    item = session.insert_gap_after(target.id, minutes)
    if item is None:
        await message.reply(**Text("Gap must be longer than 0 minutes.").as_kwargs())
        return
    await message.reply(
        **Text(f"Inserted {format_duration(item.duration_minutes)} gap after {position}.").as_kwargs()
    )


@dp.message(Command("waitafter"))
async def wait_after_handler(message: Message) -> None:
    """Handle /waitafter <pos> <HH:MM>."""
    pos_text, _, clock = remove_command_from_message(message.text or "").partition(" ")
    position = parse_position(pos_text)
    target = session.item_at(position) if position is not None else None
    if target is None or not is_valid_clock_time(clock):
        await message.reply(**Text("Usage: /waitafter <pos> <HH:MM>").as_kwargs())
        return
    item = session.insert_wait_after(target.id, clock)
    await message.reply(**Text(f"Inserted wait until {item.wait_until} after {position}.").as_kwargs())


@dp.message(Command("remove"))
async def remove_handler(message: Message) -> None:
    """Handle /remove <pos>."""
    position = parse_position(remove_command_from_message(message.text or ""))
    target = session.item_at(position) if position is not None else None
    if target is None:
        await message.reply(**Text("Usage: /remove <pos>").as_kwargs())
        return
    session.remove(target.id)
    await message.reply(**Text("Removed ", Bold(target.name), ".").as_kwargs())


@dp.message(Command("dup"))
async def duplicate_handler(message: Message) -> None:
    """Handle /dup <pos>."""
    position = parse_position(remove_command_from_message(message.text or ""))
    target = session.item_at(position) if position is not None else None
    if target is None:
        await message.reply(**Text("Usage: /dup <pos>").as_kwargs())
        return
    session.duplicate(target.id)
    await message.reply(**Text("Duplicated ", Bold(target.name), " to the end of the queue.").as_kwargs())


@dp.message(Command("move"))
async def move_handler(message: Message) -> None:
    """Handle /move <from> <to>."""
    tokens = remove_command_from_message(message.text or "").split()
    positions = [parse_position(t) for t in tokens]
    if len(positions) != 2 or None in positions or not session.move(positions[0], positions[1]):
        await message.reply(**Text("Usage: /move <from> <to>").as_kwargs())
        return
    await message.reply(**Text(f"Moved {positions[0]} to {positions[1]}.").as_kwargs())


@dp.message(Command("next"))
async def next_handler(message: Message) -> None:
    """Handle /next <pos> - start a queued print now."""
    position = parse_position(remove_command_from_message(message.text or ""))
    target = session.item_at(position) if position is not None else None
    if target is None:
        await message.reply(**Text("Usage: /next <pos>").as_kwargs())
        return
    if not isinstance(target, PrintItem):
        await message.reply(**Text(f"Only prints can be started; {target.name} is a {describe(target).lower()}.").as_kwargs())
        return
    current = session.promote(target.id)
    await sync_ticker()
    now = session.clock()
    await message.reply(
        **Text(
            "Printing ", Bold(current.item.name),
            f", finishes {format_relative_timestamp(current.end_time, now)}.",
        ).as_kwargs()
    )


@dp.message(Command("current"))
async def current_handler(message: Message) -> None:
    """Handle /current <when> <name>."""
    when, name = split_when(remove_command_from_message(message.text or ""))
    now = session.clock()
    current = None
    if ":" in when:
        end_time = parse_completion_time(when, now)
        if end_time is not None:
            current = session.set_current_until(name, end_time)
    else:
        minutes = parse_duration_text(when)
        if minutes is not None:
            current = session.set_current_remaining(name, minutes)
    if current is None:
        await message.reply(
            **Text("Usage: /current <when> <name>, e.g. /current 1h20m Benchy. The finish time must be in the future.").as_kwargs()
        )
        return
    await sync_ticker()
    await message.reply(
        **Text(
            "Printing ", Bold(current.item.name),
            f", finishes {format_relative_timestamp(current.end_time, now)}.",
        ).as_kwargs()
    )


@dp.message(Command("finish"))
async def finish_handler(message: Message) -> None:
    """Handle /finish <when> - update the running print's end time."""
    when, _ = split_when(remove_command_from_message(message.text or ""))
    now = session.clock()
    if session.current is None:
        await message.reply(**Text("No print running.").as_kwargs())
        return
    updated = False
    if ":" in when:
        end_time = parse_completion_time(when, now)
        if end_time is not None:
            updated = session.update_end_time(end_time)
    else:
        minutes = parse_duration_text(when)
        if minutes is not None:
            updated = session.update_remaining(minutes)
    if not updated:
        await message.reply(**Text("Usage: /finish <when>, e.g. /finish 45m or /finish 18:30").as_kwargs())
        return
    await sync_ticker()
    await message.reply(
        **Text(f"Finishes {format_relative_timestamp(session.current.end_time, now)}.").as_kwargs()
    )


@dp.message(Command("clear"))
async def clear_handler(message: Message) -> None:
    """Handle /clear - clear the running print."""
    cleared = session.clear_current()
    await sync_ticker()
    text = "Current print cleared." if cleared else "No print running."
    await message.reply(**Text(text).as_kwargs())


@dp.message(Command("defaultgap"))
async def default_gap_handler(message: Message) -> None:
    """Handle /defaultgap [duration]."""
    args = remove_command_from_message(message.text or "")
    if args:
        minutes = parse_duration_text(args)
        if minutes is None or not session.set_default_gap(minutes):
            await message.reply(**Text("Usage: /defaultgap [duration], e.g. /defaultgap 20m").as_kwargs())
            return
    gap = format_duration(session.state.default_gap_minutes)
    await message.reply(**Text(Bold("Default gap:"), f" {gap}").as_kwargs())


@dp.message(Command("reset"))
async def reset_handler(message: Message) -> None:
    """Handle /reset - clear queue, current print and settings."""
    session.reset()
    await sync_ticker()
    await message.reply(**Text("Scheduler reset.").as_kwargs())


@dp.message(Command("presets"))
async def presets_handler(message: Message) -> None:
    """Handle /presets - quick-add keyboard."""
    await message.reply(
        **Text("Tap to add to the end of the queue:").as_kwargs(), reply_markup=presets_keyboard()
    )


@dp.callback_query(F.data.startswith("quick:"))
async def quick_add_handler(callback: CallbackQuery) -> None:
    """Handle preset buttons: ``quick:gap:<minutes>`` or ``quick:wait:<HH:MM>``."""
    _, _, rest = (callback.data or "").partition(":")
    kind, _, value = rest.partition(":")
    item = None
    if kind == "gap" and value.isdigit():
        item = session.add_gap(int(value))
    elif kind == "wait":
        item = session.add_wait(value)
    if item is None:
        await callback.answer("Unknown preset")
        return
    if kind == "gap":
        await callback.answer(f"Queued {format_duration(item.duration_minutes)} gap")
    else:
        await callback.answer(f"Queued wait until {item.wait_until}")


@dp.error()
async def error_handler(event: ErrorEvent) -> None:
    """Notify admin on handler exceptions."""
    exception = event.exception
    logger.exception("Handler error: %s", exception)
    if bot is None or not config.ADMIN_ID:
        return
    try:
        msg = Text("Error: ", str(exception))
        await bot.send_message(config.ADMIN_ID, **msg.as_kwargs())
    except Exception as e:
        logger.warning("Failed to notify admin: %s", e)


# --- Setup ---
def setup() -> None:
    """Register middleware."""
    dp.message.middleware(AuthMiddleware())
    dp.callback_query.middleware(AuthMiddleware())


async def main() -> None:
    """Run bot with polling."""
    global bot
    setup_logging()
    bot = Bot(
        token=config.get_required("BOT_TOKEN"),
        default=DefaultBotProperties(parse_mode=ParseMode.MARKDOWN_V2),
    )
    setup()
    await sync_ticker()
    try:
        await dp.start_polling(bot)
    except Exception as e:
        logger.exception("Bot error: %s", e)
        raise
    finally:
        await ticker.stop()


if __name__ == "__main__":
    asyncio.run(main())
