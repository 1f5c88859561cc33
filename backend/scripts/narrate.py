#!/usr/bin/env python3
"""
Read the dashboard aloud.

Loads projects from a running ProjectDeck API, applies the same filters as
the dashboard, and narrates the visible list in auto mode through the local
audio player (ffplay by default, see DECK_PLAYER_COMMAND).

Usage:
    python -m scripts.narrate [--type pro] [--category formation] [--favorites]
                              [--search text] [--start N] [--api URL]
"""

import argparse
import asyncio

from projectdeck.client import Dashboard, DeckClient
from projectdeck.client.filters import FilterState
from projectdeck.client.narration import NarrationPhase
from projectdeck.exceptions import DeckException
from projectdeck.logging_config import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


def build_filters(args: argparse.Namespace) -> FilterState:
    filters = FilterState(favorite_only=args.favorites, search=args.search or "")
    for name in args.type or []:
        filters = filters.toggle_type(name)
    for name in args.category or []:
        filters = filters.toggle_category(name)
    return filters


def print_status(status) -> None:
    if status.phase is NarrationPhase.SYNTHESIZING:
        print(f"[{status.active_index + 1}] synthesizing...")
    elif status.phase is NarrationPhase.PLAYING:
        print(f"[{status.active_index + 1}] playing")


async def main():
    parser = argparse.ArgumentParser(description="Narrate the visible projects in auto mode")
    parser.add_argument("--type", action="append", help="Only this project type (repeatable)")
    parser.add_argument("--category", action="append", help="Only this category (repeatable)")
    parser.add_argument("--favorites", action="store_true", help="Only favorite projects")
    parser.add_argument("--search", type=str, help="Free-text search on title and description")
    parser.add_argument("--start", type=int, default=0, help="Index in the visible list to start from")
    parser.add_argument("--api", type=str, default=None, help="ProjectDeck API base URL")

    args = parser.parse_args()

    async with DeckClient(base_url=args.api) as client:
        dashboard = Dashboard(client, on_notice=lambda notice: print(f"! {notice.message}"))
        if not await dashboard.load():
            return

        dashboard.set_filters(build_filters(args))
        shown, total = dashboard.counts
        print(f"{shown} / {total} projects")
        if not shown:
            return

        for index, project in enumerate(dashboard.visible()):
            print(f"  {index + 1}. {project.title}")

        dashboard.narration.subscribe(print_status)
        try:
            dashboard.toggle_auto(True, min(max(args.start, 0), shown - 1))
            await dashboard.narration.join()
        except DeckException as e:
            logger.error(f"Narration stopped: {e.message}")
        finally:
            await dashboard.aclose()


if __name__ == "__main__":
    asyncio.run(main())
