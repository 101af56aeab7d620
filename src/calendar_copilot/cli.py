from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Dict, List, Optional, Sequence

import orjson

from .bootstrap import configure_logging
from .client import CalendarClientError, get_calendar_client
from .domain import OperationResult, serialize_result
from .interpreter import CommandInterpreter
from .orchestrator import CalendarChatOrchestrator


def _dump(result: OperationResult) -> str:
    return orjson.dumps(serialize_result(result), option=orjson.OPT_INDENT_2).decode()


async def _interpret(text: str) -> int:
    client = get_calendar_client()
    try:
        result = await CommandInterpreter().handle(text)
    finally:
        await client.disconnect()
    if result.is_fallthrough:
        print(text.strip())
        return 0
    print(_dump(result))
    return 0 if result.ok else 1


async def _chat() -> int:
    orchestrator = CalendarChatOrchestrator()
    client = get_calendar_client()
    history: List[Dict[str, str]] = []
    print("Calendar Copilot. Empty line or Ctrl-D to quit.")
    try:
        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            if not line.strip():
                break
            reply = await orchestrator.respond(history, line)
            print(reply.text)
            if reply.has_command and reply.result is not None:
                print(_dump(reply.result))
            history.extend(
                [
                    {"role": "user", "content": line},
                    {"role": "assistant", "content": reply.text},
                ]
            )
    finally:
        await client.disconnect()
    return 0


async def _ping() -> int:
    client = get_calendar_client()
    connected = await client.connect()
    try:
        if not connected:
            print(orjson.dumps({"connected": False}).decode())
            return 1
        try:
            raw = await client.call("get-current-time", {})
        except CalendarClientError as exc:
            print(orjson.dumps({"connected": True, "error": str(exc)}).decode())
            return 1
        print(orjson.dumps({"connected": True, "currentTime": raw}, option=orjson.OPT_INDENT_2).decode())
        return 0
    finally:
        await client.disconnect()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="calendar-copilot", description="Run calendar commands written by a language model.")
    parser.add_argument("--log-level", default=None, help="Override CALENDAR_COPILOT_LOG_LEVEL.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    interpret = subparsers.add_parser("interpret", help="Run the command embedded in TEXT (or stdin).")
    interpret.add_argument("text", nargs="?", help="Model output; read from stdin when omitted.")

    subparsers.add_parser("chat", help="Interactive chat that can act on your calendar.")
    subparsers.add_parser("ping", help="Check the calendar backend connection.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "interpret":
        text = args.text if args.text is not None else sys.stdin.read()
        return asyncio.run(_interpret(text))
    if args.command == "chat":
        return asyncio.run(_chat())
    return asyncio.run(_ping())


if __name__ == "__main__":
    sys.exit(main())
