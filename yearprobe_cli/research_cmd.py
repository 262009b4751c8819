# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Research CLI Commands

Commands:
- research: Run one release-year research call and print the result
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import NoReturn

from yearprobe_core.config import YearProbeConfig
from yearprobe_core.engine import build_agent
from yearprobe_core.schema.evidence import AgentResult


def format_result(artist: str, title: str, result: AgentResult) -> str:
    """Human-readable summary of a research result."""
    if result.year:
        header = f"{artist} - {title}: {result.year} (confidence {result.confidence:.2f})"
    else:
        header = f"{artist} - {title}: no year found"
    lines = [header, f"  Sources: {result.sources_count}", f"  Reasoning: {result.reasoning}"]
    for item in (result.evidence or [])[:5]:
        lines.append(f"  - [{item.source_type.value}] {item.year} {item.source}")
    return "\n".join(lines)


async def _research(args: argparse.Namespace) -> AgentResult:
    config = YearProbeConfig.from_env()
    agent = build_agent(config, enforce_delay=not args.no_delay)
    try:
        return await agent.research(args.artist, args.title)
    finally:
        await agent.close()


def cmd_research(args: argparse.Namespace) -> int:
    """Resolve the original release year of one song."""
    result = asyncio.run(_research(args))

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(format_result(args.artist, args.title, result))

    return 0 if result.year else 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="yearprobe",
        description="Evidence-based release-year research",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    research_parser = subparsers.add_parser(
        "research",
        help="Determine the original release year of a song",
    )
    research_parser.add_argument("artist", help="Artist name")
    research_parser.add_argument("title", help="Song or album title")
    research_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result as JSON",
    )
    research_parser.add_argument(
        "--no-delay",
        action="store_true",
        help="Skip the minimum delay between research calls",
    )
    research_parser.set_defaults(func=cmd_research)

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the research CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
