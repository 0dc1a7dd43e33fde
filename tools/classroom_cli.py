"""Classroom CLI: drive the marketplace API and a lesson chat from a terminal.

Usage:
    fluentx-classroom login student@example.com secret123
    fluentx-classroom search --query business --available
    fluentx-classroom slots tutor-1
    fluentx-classroom book tutor-1 slot-42
    fluentx-classroom --role tutor login tutor@example.com secret123
    fluentx-classroom --role tutor week --offset 1
    fluentx-classroom --role tutor chat booking-7
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from fluentx.api import AuthApi, ScheduleApi, TutorApi, TutorScheduleApi
from fluentx.classroom import DEFAULT_END_MESSAGE
from fluentx.booking import BookingFlow
from fluentx.config import Settings, get_settings
from fluentx.errors import ApiError, FluentXError
from fluentx.http import SESSION_COOKIE, ApiClient
from fluentx.models import ChatMessage, TutorSearchParams
from fluentx.realtime import ChatRelay, SessionChannel, SocketChannel
from fluentx.storage import USER_FULLNAME_KEY, LocalStore

logger = logging.getLogger("fluentx.cli")

# The cookie session is kept between invocations under this key
SESSION_TOKEN_KEY = "fxv_session_token"


def _settings_from_args(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    if args.api_url:
        settings.api_url = args.api_url
    if args.socket_url:
        settings.socket_url = args.socket_url
    return settings


def _open_client(settings: Settings, store: LocalStore) -> ApiClient:
    client = ApiClient(settings.api_url, timeout=settings.http_timeout, store=store)
    token = store.get(SESSION_TOKEN_KEY)
    if token:
        client.cookies.set(SESSION_COOKIE, token)
    client.register_unauthorized_handler(lambda: store.remove(SESSION_TOKEN_KEY))
    return client


def _print_message(message: ChatMessage) -> None:
    line = f"[{message.timestamp}] {message.sender_type}: {message.text}"
    if message.correction:
        line += f"  (correction: {message.correction})"
    if message.attachment is not None:
        line += f"  [file: {message.attachment.name}]"
    print(line)


async def cmd_login(args, client: ApiClient, store: LocalStore) -> None:
    await AuthApi(client, portal=args.role).login(args.email, args.password)
    if client.session_token:
        store.set(SESSION_TOKEN_KEY, client.session_token)
    print(f"[cli] logged in to the {args.role} portal as {store.get(USER_FULLNAME_KEY) or args.email}")


async def cmd_search(args, client: ApiClient, store: LocalStore) -> None:
    params = TutorSearchParams(
        query=args.query,
        is_available=True if args.available else None,
        sort_by=args.sort,
        page=args.page,
    )
    result = await TutorApi(client).search_tutors(params)
    print(f"[cli] {result.total} tutor(s) found")
    for tutor in result.tutors:
        rating = f"{tutor.rating:.1f}" if tutor.rating is not None else "-"
        print(f"  {tutor.user_id}  {tutor.display_name or tutor.first_name}  rating={rating}")


async def cmd_slots(args, client: ApiClient, store: LocalStore) -> None:
    flow = BookingFlow(ScheduleApi(client), args.tutor_id)
    await flow.open()
    if flow.error:
        raise ApiError(flow.error)
    groups = flow.date_groups()
    if not groups:
        print("[cli] no available slots in the next 7 days")
    for group in groups:
        print(group.label)
        for option in group.slots:
            print(f"  {option.time_label} KST  ({option.slot.slot_id})")


async def cmd_book(args, client: ApiClient, store: LocalStore) -> None:
    flow = BookingFlow(ScheduleApi(client), args.tutor_id)
    await flow.open()
    if flow.error:
        raise ApiError(flow.error)
    try:
        flow.select(args.slot_id)
    except KeyError:
        raise ApiError(f"Slot {args.slot_id} is not available") from None
    summary = flow.summary()
    if not await flow.confirm():
        raise ApiError(flow.error or "Failed to book slot")
    print(f"[cli] booked {summary}")


async def cmd_week(args, client: ApiClient, store: LocalStore) -> None:
    week = await TutorScheduleApi(client).get_week_schedule(args.offset)
    print(f"[cli] week {week.week_start} to {week.week_end}")
    for slot in week.slots:
        line = f"  {slot.date} {slot.time}  {slot.status}"
        if slot.student_name:
            line += f"  {slot.student_name} ({slot.booking_id})"
        print(line)


async def cmd_chat(args, settings: Settings, store: LocalStore) -> None:
    channel = SocketChannel(
        settings.socket_url,
        token=store.get(SESSION_TOKEN_KEY),
        reconnection_attempts=settings.reconnection_attempts,
        reconnection_delay=settings.reconnection_delay,
        reconnection_delay_max=settings.reconnection_delay_max,
    )
    session = SessionChannel(
        channel,
        on_lesson_ended=lambda data: print(f"[cli] lesson ended: {data.message or ''}"),
    )
    chat = ChatRelay(channel, args.session_id, on_message=_print_message)
    try:
        await channel.connect()
        async with session.joined(args.session_id), chat:
            print(f"[cli] joined {args.session_id} as {args.role}; type to chat, Ctrl-D to leave")
            if args.role == "tutor":
                print("[cli] /end sends the end-of-lesson notice")
            # give the server a moment to answer the history request
            await asyncio.sleep(0.5)
            for message in chat.messages:
                _print_message(message)
            while True:
                line = await asyncio.to_thread(sys.stdin.readline)
                if not line:
                    break
                text = line.strip()
                if args.role == "tutor" and text == "/end":
                    if await session.end_lesson(DEFAULT_END_MESSAGE):
                        print("[cli] lesson ended")
                elif text:
                    await chat.send_message(text)
    finally:
        await channel.destroy()


async def run(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    store = LocalStore(settings.state_file)
    try:
        if args.command == "chat":
            await cmd_chat(args, settings, store)
            return 0
        if args.command in TUTOR_COMMANDS and args.role != "tutor":
            raise FluentXError(f"'{args.command}' needs --role tutor")
        async with _open_client(settings, store) as client:
            await COMMANDS[args.command](args, client, store)
    except ApiError as e:
        print(f"[cli] error: {e.message}", file=sys.stderr)
        return 1
    except FluentXError as e:
        print(f"[cli] error: {e}", file=sys.stderr)
        return 2
    return 0


COMMANDS = {
    "login": cmd_login,
    "search": cmd_search,
    "slots": cmd_slots,
    "book": cmd_book,
    "week": cmd_week,
}
TUTOR_COMMANDS = {"week"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="FluentX classroom client: tutor search, booking and lesson chat"
    )
    parser.add_argument("--api-url", default=None,
                        help="REST API base URL (default: FLUENTX_API_URL or http://localhost:8765)")
    parser.add_argument("--socket-url", default=None,
                        help="Socket server URL (default: FLUENTX_SOCKET_URL or http://localhost:8766)")
    parser.add_argument("--role", choices=["student", "tutor"], default="student",
                        help="Portal to log in to and side to take in a lesson (default: student)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Log in and remember the session")
    login.add_argument("email")
    login.add_argument("password")

    search = sub.add_parser("search", help="Search tutors")
    search.add_argument("--query", default=None, help="Free-text search")
    search.add_argument("--available", action="store_true", help="Only tutors available now")
    search.add_argument("--sort", default=None,
                        choices=["rating", "price-low", "price-high", "popular", "newest"])
    search.add_argument("--page", type=int, default=None)

    slots = sub.add_parser("slots", help="List a tutor's open slots (KST) for the next 7 days")
    slots.add_argument("tutor_id")

    book = sub.add_parser("book", help="Book one of a tutor's open slots")
    book.add_argument("tutor_id")
    book.add_argument("slot_id")

    week = sub.add_parser("week", help="Show the tutor's own slots for a week (tutor only)")
    week.add_argument("--offset", type=int, default=0, help="Weeks from the current one")

    chat = sub.add_parser("chat", help="Join a lesson chat")
    chat.add_argument("session_id")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
