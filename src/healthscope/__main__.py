"""HealthScope entry point.

Changes:
  - 2026-10-09: Added --stream for chat (prints reply text as it arrives).
  - 2026-10-08: New notes are analyzed on save when auto_analyze is enabled.
  - 2026-10-07: Initial CLI: chat, conversations, note add/list, analyze, set-key.
"""

import argparse
import asyncio
import logging
import math
import mimetypes
import sys
from importlib.metadata import version as get_version
from pathlib import Path

from healthscope.chat import ChatMessage, ChatSessionManager
from healthscope.config import Settings, get_settings
from healthscope.errors import ClientNotConfiguredError, HealthScopeError, format_error
from healthscope.health import ContextBuilder, HealthNote, Journal, QuickLogEntry
from healthscope.llm import AnthropicClient, create_client
from healthscope.logging_setup import setup_logging
from healthscope.storage import FileDocumentStore, FileSecretStore

logger = logging.getLogger(__name__)


def _make_client(settings: Settings) -> AnthropicClient | None:
    try:
        return create_client(settings, FileSecretStore(settings=settings))
    except ClientNotConfiguredError:
        logger.debug("No API key configured")
        return None


def _make_manager(
    settings: Settings, client: AnthropicClient | None
) -> tuple[ChatSessionManager, Journal]:
    store = FileDocumentStore()
    journal = Journal(store)
    manager = ChatSessionManager(
        client,
        store,
        journal,
        model=settings.anthropic_model,
        system_prompt=settings.system_prompt,
        metadata={"user_id": settings.user_id} if settings.user_id else None,
        context_builder=ContextBuilder(
            max_history=settings.max_history_notes, custom_prompt=settings.analysis_prompt
        ),
    )
    return manager, journal


def _parse_log(raw: str) -> tuple[str, float]:
    name, sep, value = raw.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {raw!r}")
    try:
        number = float(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"value for {name!r} must be a number") from e
    if not math.isfinite(number):
        raise argparse.ArgumentTypeError(f"value for {name!r} must be a finite number")
    return name.strip(), number


def _print_analysis(note: HealthNote) -> None:
    result = note.analysis_results
    if result is None:
        return
    if result.categories:
        print(f"  Categories: {', '.join(result.categories)}")
    for key, value in result.structured_data.items():
        print(f"  {key}: {value}")
    for insight in result.insights:
        print(f"  - {insight}")


# =========================================================================
# Commands
# =========================================================================


async def run_chat(settings: Settings, args: argparse.Namespace) -> int:
    client = _make_client(settings)
    try:
        manager, _ = _make_manager(settings, client)
        image_data = None
        media_type = "image/jpeg"
        if args.image:
            image_data = Path(args.image).read_bytes()
            media_type = mimetypes.guess_type(args.image)[0] or media_type
        message = ChatMessage.user(args.message, image_data, media_type)

        if args.stream:
            async for delta in manager.stream_message(message, args.conversation):
                print(delta, end="", flush=True)
            print()
            conversation = manager.current_conversation
            reply = conversation.messages[-1] if conversation else None
            if reply is not None and reply.is_error:
                print(reply.content)
        else:
            reply = await manager.send_message(message, args.conversation)
            print(reply.content)

        conversation = manager.current_conversation
        if conversation is not None:
            print(f"\n[conversation {conversation.id}]", file=sys.stderr)
        return 1 if reply is not None and reply.is_error else 0
    finally:
        if client is not None:
            await client.aclose()


def run_conversations(settings: Settings) -> int:
    manager, _ = _make_manager(settings, None)
    conversations = manager.list_conversations()
    if not conversations:
        print("No conversations yet.")
    for conversation in conversations:
        print(
            f"{conversation.id}  {conversation.created_at[:19]}  "
            f"{conversation.title} ({len(conversation.messages)} messages)"
        )
    return 0


async def run_note_add(settings: Settings, args: argparse.Namespace) -> int:
    client = _make_client(settings) if settings.auto_analyze else None
    try:
        manager, journal = _make_manager(settings, client)
        units = {t.name: t.unit for t in await journal.list_quick_log_types()}
        note = HealthNote(
            content=args.content,
            tags=set(args.tag or []),
            quick_log_data=[
                QuickLogEntry(type=name, value=value, unit=units.get(name))
                for name, value in args.log or []
            ],
        )
        await journal.add_note(note)
        print(f"Saved note {note.id}")

        if client is not None:
            try:
                await manager.analyze_note(note)
            except HealthScopeError as e:
                logger.warning("Automatic analysis failed for %s: %s", note.id, e)
                print(format_error(e), file=sys.stderr)
            else:
                _print_analysis(await journal.get_note(note.id))
        return 0
    finally:
        if client is not None:
            await client.aclose()


async def run_note_list(settings: Settings) -> int:
    _, journal = _make_manager(settings, None)
    notes = await journal.list_notes()
    if not notes:
        print("No notes yet.")
    for note in notes:
        tags = f"  [{', '.join(sorted(note.tags))}]" if note.tags else ""
        print(f"{note.id}  {note.timestamp:%Y-%m-%d %H:%M}  {note.content[:60]}{tags}")
        _print_analysis(note)
    return 0


async def run_analyze(settings: Settings, args: argparse.Namespace) -> int:
    client = _make_client(settings)
    try:
        manager, journal = _make_manager(settings, client)
        note = await journal.get_note(args.note_id)
        if note is None:
            print(f"Unknown note: {args.note_id}", file=sys.stderr)
            return 1
        await manager.analyze_note(note)
        _print_analysis(await journal.get_note(note.id))
        return 0
    finally:
        if client is not None:
            await client.aclose()


def run_set_key(settings: Settings, args: argparse.Namespace) -> int:
    FileSecretStore(settings=settings).set_api_key(args.key.strip())
    print("API key saved.")
    return 0


# =========================================================================
# Entry point
# =========================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="healthscope",
        description="HealthScope - AI analysis and chat for your health journal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  healthscope set-key sk-ant-...              Store your Anthropic API key
  healthscope note add "Headache after lunch" --tag headache --log "Pain Level=6"
  healthscope note list                       Show notes with their analysis
  healthscope chat "How has my sleep been?"   Ask about your data
  healthscope chat --stream "Any patterns?"   Stream the reply as it arrives
""",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"%(prog)s {get_version('healthscope')}",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    chat = commands.add_parser("chat", help="Send a chat message")
    chat.add_argument("message", help="Message text")
    chat.add_argument("--conversation", "-c", default=None, help="Continue this conversation")
    chat.add_argument("--image", default=None, help="Attach an image file")
    chat.add_argument("--stream", action="store_true", help="Print the reply as it streams")

    commands.add_parser("conversations", help="List stored conversations")

    note = commands.add_parser("note", help="Manage journal notes")
    note_commands = note.add_subparsers(dest="note_command", required=True)
    note_add = note_commands.add_parser("add", help="Add a note")
    note_add.add_argument("content", help="Note text")
    note_add.add_argument("--tag", "-t", action="append", help="Tag (repeatable)")
    note_add.add_argument(
        "--log", "-l", action="append", type=_parse_log, help="Quick log NAME=VALUE (repeatable)"
    )
    note_commands.add_parser("list", help="List notes, newest first")

    analyze = commands.add_parser("analyze", help="Analyze a stored note")
    analyze.add_argument("note_id", help="Note ID")

    set_key = commands.add_parser("set-key", help="Store the Anthropic API key")
    set_key.add_argument("key", help="API key")

    return parser


def dispatch(settings: Settings, args: argparse.Namespace) -> int:
    if args.command == "chat":
        return asyncio.run(run_chat(settings, args))
    if args.command == "conversations":
        return run_conversations(settings)
    if args.command == "note" and args.note_command == "add":
        return asyncio.run(run_note_add(settings, args))
    if args.command == "note":
        return asyncio.run(run_note_list(settings))
    if args.command == "analyze":
        return asyncio.run(run_analyze(settings, args))
    return run_set_key(settings, args)


def main() -> None:
    """Main entry point."""
    args = build_parser().parse_args()
    setup_logging(level="DEBUG" if args.debug else "INFO")

    settings = get_settings()
    try:
        exit_code = dispatch(settings, args)
    except HealthScopeError as e:
        print(format_error(e), file=sys.stderr)
        exit_code = 1
    except KeyboardInterrupt:
        logger.info("HealthScope stopped.")
        exit_code = 130
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
