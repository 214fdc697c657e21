"""
Benchmark per-tier decision latency.

Runs turn decisions on randomly dealt contexts for each skill tier and
reports how long a decision takes compared to the tier's time budget. The
search checks its deadline only between iterations, so small overruns are
expected; large ones point at an expensive rollout.

Usage:
    python benchmarks/benchmark_decisions.py
    python benchmarks/benchmark_decisions.py --decisions 50 --tiers easy hard
    python benchmarks/benchmark_decisions.py --players 4 --seed 7 --output results.json

Output:
    - Console: latency table per tier
    - JSON: per-tier statistics (with --output)
"""

import argparse
import asyncio
import json
import logging
import sys
import time
from typing import Any, Dict, List

import numpy as np
from rich.console import Console
from rich.table import Table

from vintobot.bot.context import DecisionContext, PlayerView
from vintobot.bot.decision import MCTSBotDecisionService
from vintobot.config import TIER_CONFIGS, get_tier_config
from vintobot.game.cards import Card
from vintobot.game.constants import CANONICAL_DECK, MAX_PLAYERS, MIN_PLAYERS

logger = logging.getLogger(__name__)

HAND_SIZE = 4


def setup_logging(log_level: str = 'WARNING'):
    """
    Setup console logging.

    Args:
        log_level: Logging level
    """
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    logging.basicConfig(
        level=getattr(logging, log_level),
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def random_context(rng: np.random.Generator, num_players: int, tier: str) -> DecisionContext:
    """
    Deal a random mid-round position for a bot.

    Args:
        rng: Random generator
        num_players: Seats at the table (bot included)
        tier: Tier name recorded in the context

    Returns:
        DecisionContext with the bot at a random seat
    """
    deck = list(CANONICAL_DECK)
    rng.shuffle(deck)

    bot_seat = int(rng.integers(num_players))
    players: List[PlayerView] = []
    bot = None
    for seat in range(num_players):
        player_id = f"player-{seat}"
        hand = [Card(deck.pop(), f"{player_id}-{i}") for i in range(HAND_SIZE)]
        if seat == bot_seat:
            known = set(int(p) for p in rng.choice(HAND_SIZE, size=2, replace=False))
            bot = PlayerView(player_id, HAND_SIZE, cards=hand, known_positions=known)
            players.append(bot)
        else:
            players.append(PlayerView(player_id, HAND_SIZE))

    opponents = [p.player_id for p in players if p is not bot]
    seen = opponents[int(rng.integers(len(opponents)))]
    opponent_knowledge = {seen: {int(rng.integers(HAND_SIZE)): Card(deck.pop(), 'seen')}}

    return DecisionContext(
        bot_id=bot.player_id,
        bot_player=bot,
        players=players,
        tier=tier,
        turn_count=int(rng.integers(0, 4 * num_players)),
        discard_top=Card(deck.pop(), 'discard'),
        opponent_knowledge=opponent_knowledge,
        deck_size=len(deck),
    )


def benchmark_tier(tier: str, num_decisions: int, num_players: int, seed: int) -> Dict[str, Any]:
    """
    Time turn decisions for one tier.

    Args:
        tier: Tier name
        num_decisions: Decisions to time
        num_players: Seats per random context
        seed: Base seed

    Returns:
        Latency statistics in milliseconds
    """
    config = get_tier_config(tier)
    rng = np.random.default_rng(seed)
    service = MCTSBotDecisionService(tier, rng=np.random.default_rng(seed + 1))

    latencies = []
    iterations = []
    for _ in range(num_decisions):
        players = num_players or int(rng.integers(MIN_PLAYERS, MAX_PLAYERS + 1))
        context = random_context(rng, players, tier)

        start = time.perf_counter()
        asyncio.run(service.decide_turn_action(context))
        latencies.append((time.perf_counter() - start) * 1000.0)
        iterations.append(service.last_result.iterations)

    latencies = np.array(latencies)
    overrun = np.maximum(0.0, latencies - config.time_limit_ms)
    return {
        'tier': tier,
        'decisions': num_decisions,
        'time_limit_ms': config.time_limit_ms,
        'iteration_cap': config.iterations,
        'mean_ms': float(latencies.mean()),
        'p95_ms': float(np.percentile(latencies, 95)),
        'max_ms': float(latencies.max()),
        'max_overrun_ms': float(overrun.max()),
        'mean_iterations': float(np.mean(iterations)),
    }


def print_results(results: List[Dict[str, Any]], console: Console):
    table = Table(title="Decision Latency Benchmark")
    table.add_column("Tier", style="cyan", no_wrap=True)
    for column in ("Budget", "Mean", "P95", "Max", "Overrun", "Iterations"):
        table.add_column(column, justify="right")

    for r in results:
        overrun_style = "red" if r['max_overrun_ms'] > 0 else "green"
        table.add_row(
            r['tier'],
            f"{r['time_limit_ms']:.0f}ms",
            f"{r['mean_ms']:.1f}ms",
            f"{r['p95_ms']:.1f}ms",
            f"{r['max_ms']:.1f}ms",
            f"[{overrun_style}]{r['max_overrun_ms']:.1f}ms[/{overrun_style}]",
            f"{r['mean_iterations']:.0f}",
        )

    console.print(table)


def save_results_json(results: List[Dict[str, Any]], filepath: str):
    """
    Save benchmark results to JSON.

    Args:
        results: Per-tier statistics
        filepath: Output JSON path
    """
    with open(filepath, "w") as f:
        json.dump(results, f, indent=2)

    logger.info(f"Results saved to: {filepath}")


def main():
    """Run decision benchmark."""
    parser = argparse.ArgumentParser(description="Benchmark bot decision latency per tier")
    parser.add_argument(
        "--decisions",
        type=int,
        default=20,
        help="Turn decisions per tier (default: 20)",
    )
    parser.add_argument(
        "--tiers",
        nargs="+",
        default=sorted(TIER_CONFIGS),
        choices=sorted(TIER_CONFIGS),
        help="Tiers to benchmark (default: all)",
    )
    parser.add_argument(
        "--players",
        type=int,
        default=0,
        help="Players per table (default: 0 = random 2-6)",
    )
    parser.add_argument("--seed", type=int, default=0, help="Random seed (default: 0)")
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Optional JSON output path",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    args = parser.parse_args()
    setup_logging(args.log_level)

    if args.players and not MIN_PLAYERS <= args.players <= MAX_PLAYERS:
        parser.error(f"--players must be between {MIN_PLAYERS} and {MAX_PLAYERS}")

    results = []
    for tier in args.tiers:
        logger.info(f"Benchmarking {tier} tier ({args.decisions} decisions)")
        results.append(benchmark_tier(tier, args.decisions, args.players, args.seed))

    console = Console()
    print_results(results, console)

    if args.output:
        save_results_json(results, args.output)


if __name__ == "__main__":
    main()
