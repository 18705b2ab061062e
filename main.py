#!/usr/bin/env python3
"""
main.py - Main entry point for the strategy bots.

This script provides CLI access to:
1. The lumberjack strategy (chop wood, craft axes)
2. The capture-the-flag main loop strategy

Usage:
    python main.py lumberjack --dry-run         Chop wood in a simulated forest
    python main.py lumberjack --host localhost  Chop wood on a real server
    python main.py ctf --dry-run --max-ticks 200
    python main.py ctf --host localhost --team BLUE

SAFETY NOTE:
Bots are intended to be used only where automation is explicitly
allowed by the server owner. Do not use this in violation of any
server's terms of service.
"""

import argparse
import logging
import sys
import time
from typing import Tuple

from integration import (
    BotAPI,
    BridgeConfig,
    CTFUtils,
    MineflayerBot,
    MineflayerCTF,
    SimulatedBot,
    SimulatedCTF,
    build_arena,
    build_forest,
)
from integration.bot_api import MATCH_STARTED
from strategies import CTFStrategy, LumberjackStrategy
from utils import BotConfig, build_bot_config, load_config, setup_logging

logger = logging.getLogger(__name__)


def apply_cli_overrides(bot_config: BotConfig, args) -> BotConfig:
    """Command line values win over the configuration file."""
    if args.dry_run:
        bot_config.dry_run = True
    if args.host:
        bot_config.host = args.host
    if args.port:
        bot_config.port = args.port
    if args.username:
        bot_config.username = args.username
    if args.max_runtime:
        bot_config.max_runtime_minutes = args.max_runtime
    if args.max_ticks:
        bot_config.max_ticks = args.max_ticks
    if args.log_level:
        bot_config.log_level = args.log_level
    if getattr(args, 'team', None):
        bot_config.team = args.team.upper()
    if getattr(args, 'goal', None):
        bot_config.lumberjack.goal_points = args.goal
    return bot_config


def create_bot(bot_config: BotConfig) -> BotAPI:
    """Simulated bot for dry runs, otherwise a connected Mineflayer bot."""
    if bot_config.dry_run:
        return SimulatedBot(username=bot_config.username or "DryRunBot",
                            team=bot_config.team or 'BLUE')

    bridge_config = BridgeConfig(
        host=bot_config.host,
        port=bot_config.port,
        username=bot_config.username or "StrategyBot",
        auth=bot_config.auth,
        team=bot_config.team,
        known_bots=set(bot_config.known_bots),
    )
    bot = MineflayerBot(bridge_config)
    bot.connect()
    return bot


def print_config(bot_config: BotConfig) -> None:
    print(f"\nConfiguration:")
    print(f"  Strategy: {bot_config.strategy}")
    print(f"  Host: {bot_config.host}:{bot_config.port}")
    print(f"  Username: {bot_config.username or '(not set)'}")
    print(f"  Team: {bot_config.team or '(from server)'}")
    print(f"  Max runtime: {bot_config.max_runtime_minutes} minutes")
    print(f"  Dry run: {bot_config.dry_run}")
    print()
    if bot_config.dry_run:
        print("⚠️  DRY RUN MODE: playing in a simulated world, no server involved")
        print()


def run_lumberjack(bot_config: BotConfig) -> int:
    """Run the lumberjack strategy. Returns points gathered."""
    bot = create_bot(bot_config)
    strategy = LumberjackStrategy(bot, bot_config.lumberjack).register()
    bot.set_debug(bot_config.log_level.upper() == 'DEBUG')

    if isinstance(bot, SimulatedBot):
        build_forest(bot, log_name=bot_config.lumberjack.log_name)
        bot.spawn()

    points = 0
    try:
        points = strategy.run()
    except KeyboardInterrupt:
        print("\nBot stopped by user")
    finally:
        if isinstance(bot, MineflayerBot):
            bot.disconnect()

    print("\n" + "=" * 60)
    print("📊 Session Summary")
    print("=" * 60)
    print(f"Points gathered: {points}")
    print(f"Goal reached: {strategy.goal_reached}")
    print("=" * 60)
    return points


def create_ctf(bot: BotAPI) -> CTFUtils:
    if isinstance(bot, SimulatedBot):
        return SimulatedCTF(bot)
    return MineflayerCTF(bot)


def run_ctf(bot_config: BotConfig) -> Tuple[int, dict]:
    """Run the capture-the-flag strategy. Returns passes and the action summary."""
    bot = create_bot(bot_config)
    ctf = create_ctf(bot)
    if not bot_config.dry_run:
        # plain servers announce no matches: spawning starts the loop
        bot_config.ctf.auto_start = True
    strategy = CTFStrategy(bot, ctf, bot_config.ctf).register()

    if isinstance(bot, SimulatedBot):
        build_arena(bot)
        bot.spawn()
        bot.emit(MATCH_STARTED)

    max_ticks = bot_config.max_ticks
    if max_ticks is None and bot_config.dry_run:
        max_ticks = 200

    passes = 0
    start = time.time()
    try:
        passes = strategy.run(max_ticks=max_ticks,
                              max_runtime_seconds=bot_config.max_runtime_minutes * 60)
    except KeyboardInterrupt:
        print("\nBot stopped by user")
        strategy.stop()
    finally:
        if isinstance(bot, MineflayerBot):
            bot.disconnect()
        if bot_config.action_log_file:
            strategy.action_logger.save(bot_config.action_log_file)

    summary = strategy.action_logger.get_summary()
    print("\n" + "=" * 60)
    print("📊 Session Summary")
    print("=" * 60)
    print(f"Runtime: {(time.time() - start) / 60:.1f} minutes")
    print(f"Loop passes: {summary['total_passes']}")
    print(f"Deaths: {strategy.death_count}")
    for handler, count in sorted(summary['action_counts'].items(), key=lambda kv: -kv[1]):
        print(f"  {handler}: {count}")
    print("=" * 60)
    return passes, summary


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--config', type=str, default='config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--dry-run', action='store_true',
                        help='Play in a simulated world instead of a server')
    parser.add_argument('--host', type=str, default=None,
                        help='Server host')
    parser.add_argument('--port', type=int, default=None,
                        help='Server port')
    parser.add_argument('--username', type=str, default=None,
                        help='Minecraft username')
    parser.add_argument('--max-runtime', type=int, default=None,
                        help='Maximum runtime in minutes')
    parser.add_argument('--max-ticks', type=int, default=None,
                        help='Maximum main loop passes')
    parser.add_argument('--log-level', type=str, default=None,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Strategy bots - gather wood or play capture the flag",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py lumberjack --dry-run          Chop wood in a simulated forest
  python main.py lumberjack --goal 20          Stop after 20 points
  python main.py ctf --dry-run --max-ticks 200 Simulated capture the flag
  python main.py ctf --host localhost --team RED
        """
    )
    subparsers = parser.add_subparsers(dest='command', help='Available strategies')

    lumberjack_parser = subparsers.add_parser('lumberjack', help='Chop wood and craft axes')
    add_common_arguments(lumberjack_parser)
    lumberjack_parser.add_argument('--goal', type=int, default=None,
                                   help='Points (logs + apples) to gather')

    ctf_parser = subparsers.add_parser('ctf', help='Play capture the flag')
    add_common_arguments(ctf_parser)
    ctf_parser.add_argument('--team', type=str, default=None,
                            help='Team name (BLUE or RED)')
    return parser


def main(argv=None) -> int:
    """Main entry point with subcommand support."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        print("\n💡 Quick start:")
        print("  python main.py lumberjack --dry-run")
        return 1

    bot_config = build_bot_config(load_config(args.config) if args.config else {})
    bot_config.strategy = args.command
    apply_cli_overrides(bot_config, args)
    setup_logging(bot_config.log_level, bot_config.log_file)

    print("=" * 60)
    print(f"🤖 Strategy Bot - {args.command}")
    print("=" * 60)
    print_config(bot_config)

    if args.command == 'lumberjack':
        run_lumberjack(bot_config)
    elif args.command == 'ctf':
        run_ctf(bot_config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
