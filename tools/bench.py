#!/usr/bin/env python3
"""
Benchmark: nodes visited and time per move for each computer difficulty.

Run before and after touching move ordering or evaluation to see the effect
on node counts (fewer nodes at equal depth means better pruning) and on the
latency a player waits after the thinking delay.

Usage: python3 tools/bench.py [medium|hard ...]
"""
import os
import sys
import time

REPO = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO not in sys.path:
    sys.path.insert(0, REPO)

import chess

from engine.search import Difficulty, SearchState, choose_move

# Fixed positions spanning opening, middlegame, and endgame.
POSITIONS = [
    ("Start",        chess.STARTING_FEN),
    ("After 1.e4",   "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"),
    ("Italian",      "r1bqkbnr/pppp1ppp/2n5/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R b KQkq - 3 3"),
    ("Mid-open",     "r1bqkb1r/pppp1ppp/2n2n2/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R w KQkq - 4 4"),
    ("Complex mid",  "r2q1rk1/ppp2ppp/2np1n2/2b1p1B1/2B1P1b1/2NP1N2/PPP2PPP/R2Q1RK1 w - - 0 8"),
    ("Mate in 1",    "6k1/5ppp/8/8/8/8/5PPP/R5K1 w - - 0 1"),
    ("Pawn ending",  "8/5pk1/6p1/7p/7P/6P1/5PK1/8 w - - 0 1"),
    ("Pawn race",    "8/1p4k1/p7/P1K5/8/8/8/8 w - - 0 1"),
]


def run_position(label: str, fen: str, difficulty: Difficulty) -> dict:
    """Search one position and return the chosen move with its metrics."""
    board = chess.Board(fen)
    state = SearchState()
    start = time.monotonic()
    candidate = choose_move(board, difficulty, state=state)
    time_ms = max(1, int((time.monotonic() - start) * 1000))
    return {
        "label": label,
        "move": candidate.san if candidate else "(none)",
        "depth": state.depth,
        "score": state.best_score,
        "nodes": state.node_count,
        "nps": state.node_count * 1000 // time_ms,
        "time_ms": time_ms,
    }


def main(argv: list[str]) -> None:
    """Run all positions for each requested difficulty and print a table."""
    levels = [Difficulty(arg) for arg in argv] or [Difficulty.MEDIUM, Difficulty.HARD]
    for difficulty in levels:
        print(f"Difficulty: {difficulty.value}")
        print(
            f"{'Position':<14} {'Move':<8} {'Depth':>5} {'Score':>7} "
            f"{'Nodes':>8} {'NPS':>8} {'Time(ms)':>9}"
        )
        print("-" * 70)
        results = [run_position(label, fen, difficulty) for label, fen in POSITIONS]
        for r in results:
            print(
                f"{r['label']:<14} {r['move']:<8} {r['depth']:>5} {r['score']:>7} "
                f"{r['nodes']:>8,} {r['nps']:>8,} {r['time_ms']:>9,}"
            )
        avg_nodes = sum(r["nodes"] for r in results) // len(results)
        avg_time = sum(r["time_ms"] for r in results) // len(results)
        print("-" * 70)
        print(f"{'AVERAGE':<14} {'':<8} {'':>5} {'':>7} {avg_nodes:>8,} {'':>8} {avg_time:>9,}")
        print()


if __name__ == "__main__":
    main(sys.argv[1:])
