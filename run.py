# -*- coding: utf-8 -*-
# ============================================================================ #
# UmbraDex Core                                                                #
# Copyright (c) 2025 MAX                                                       #
# Licensed under the MIT License                                               #
# ============================================================================ #

"""
Single Entry Point for UmbraDex Core.
Loads the configuration, builds the services and prints the mission board
and/or Pokedex cache state for one user.
"""

import argparse
import asyncio
import sys

from services.bootstrap import build_services, initialize_logging, resolve_timezone
from services.config.config_service import load_config
from services.exceptions import ConfigLoadError
from utils.logging_utils import get_module_logger
from utils.observability import metrics

# Setup logger
logger = get_module_logger("main")


def _print_missions(board) -> None:
    print(f"Gold: {board.user_gold}  XP: {board.user_xp}  Level: {board.user_level}")
    for label, missions in (("Active", board.active), ("Completed", board.completed), ("Locked", board.locked)):
        print(f"{label} ({len(missions)})")
        for entry in missions:
            marker = " [claimable]" if entry.can_claim else ""
            print(
                f"  #{entry.mission.id} {entry.mission.title}: "
                f"{entry.current_value}/{entry.mission.requirement_value} "
                f"({entry.progress_percentage:.0%}){marker}"
            )
    if board.error:
        print(f"Error: {board.error}")


def _print_pokedex(result, cache) -> None:
    caught = sum(1 for pokemon in cache.entities if pokemon.is_caught)
    favorites = sum(1 for pokemon in cache.entities if pokemon.is_favorite)
    print(f"Pokedex: {len(cache.entities)} entries, {caught} caught, {favorites} favorites")
    if not result.success:
        print(f"Error: {result.error_message}")


async def run(args) -> int:
    config = load_config(config_file=args.config)
    initialize_logging(config)
    resolve_timezone(config, logger=logger)

    services = build_services(config, access_token=args.access_token)
    services.start()
    try:
        if args.pokedex:
            result = await services.pokedex.load_pokedex(args.user_id)
            _print_pokedex(result, services.cache)
        if args.missions:
            board = await services.missions.load_missions(args.user_id)
            _print_missions(board)
    finally:
        await services.close()

    logger.debug("Metrics: %s", metrics.get_stats())
    return 0


def main(argv=None) -> int:
    """Main execution flow."""
    parser = argparse.ArgumentParser(description="UmbraDex client services")
    parser.add_argument("--user-id", required=True, help="Profile id of the user to load")
    parser.add_argument("--access-token", default=None, help="User JWT for row-level security")
    parser.add_argument("--config", default=None, help="Optional JSON config file")
    parser.add_argument("--missions", action="store_true", help="Print the reconciled mission board")
    parser.add_argument("--pokedex", action="store_true", help="Load the Pokedex and print cache state")
    args = parser.parse_args(argv)

    if not args.missions and not args.pokedex:
        args.missions = True

    try:
        return asyncio.run(run(args))
    except ConfigLoadError as e:
        logger.error("Configuration error: %s", e.message)
        return 2
    except KeyboardInterrupt:
        logger.info("Received KeyboardInterrupt, shutting down...")
        return 130


if __name__ == "__main__":
    sys.exit(main())
