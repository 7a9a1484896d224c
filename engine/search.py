"""
Search entry point: fixed-depth negamax with alpha-beta pruning and static
move ordering, plus the randomized "easy" opponent.

This module defines the interface the room scheduler depends on:

    choose_move(board, difficulty, rng=None, state=None) -> MoveCandidate | None

The side that moves is always ``board.turn``. The board is searched in place
with push/pop and is restored exactly before the function returns, so callers
observe no change to legal moves, side to move, or move stack.

Strength levels:
    easy    no search; mostly a uniformly random legal move, sometimes a
            random capture. Non-deterministic.
    medium  2 plies of negamax, 3 when the root has few legal moves.
    hard    3 plies of negamax, 4 when the root has few legal moves.

Medium and hard are deterministic: the same position always yields the same
move, because ordering is static and ties go to the earliest candidate.
"""

import enum
import random
from dataclasses import dataclass
from typing import Iterable

import chess

from engine.constants import (
    EASY_RANDOM_PROBABILITY,
    INFINITY,
    NARROW_ROOT_MOVES,
    SEARCH_DEPTHS,
)
from engine.evaluate import color_sign, evaluate
from engine.rules import MoveCandidate, Terminal, classify


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass
class SearchState:
    """
    Bookkeeping for one call to choose_move.

    Attributes:
        node_count: Positions visited, including leaves. Reported by the
                    scheduler's log line and by tools/bench.py.
        depth:      Depth in plies actually searched at the root (after the
                    narrow-root extension). 0 for easy or terminal positions.
        best_score: Root score of the chosen move from the mover's view.
    """

    node_count: int = 0
    depth: int = 0
    best_score: int = 0


def _order_key(board: chess.Board, move: chess.Move) -> int:
    if board.is_capture(move):
        return 0
    if move.promotion is not None:
        return 1
    if board.gives_check(move):
        return 2
    return 3


def _order_moves(board: chess.Board, moves: Iterable[chess.Move]) -> list[chess.Move]:
    """
    Order moves for better alpha-beta pruning.

    Captures first, then promotions, then checking moves, then everything
    else. Within a bucket the generator's order is kept (sorted() is stable),
    which is what makes root tie-breaking deterministic.
    """
    return sorted(moves, key=lambda move: _order_key(board, move))


def negamax(
    board: chess.Board,
    depth: int,
    alpha: int,
    beta: int,
    color: int,
    state: SearchState,
) -> int:
    """
    Negamax search with alpha-beta pruning.

    Args:
        board: Current position. Modified in place via push/pop and always
               restored on return, including on cut-offs.
        depth: Remaining depth in plies.
        alpha: Lower bound of the search window.
        beta:  Upper bound of the search window.
        color: +1 if White is to move at this node, -1 if Black.
        state: Node counter.

    Returns:
        Score from the perspective of the side to move at this node.
    """
    state.node_count += 1

    if depth == 0 or classify(board) is not Terminal.ONGOING:
        return color * evaluate(board)

    best_score = -INFINITY
    for move in _order_moves(board, board.legal_moves):
        board.push(move)
        try:
            score = -negamax(board, depth - 1, -beta, -alpha, -color, state)
        finally:
            board.pop()

        if score > best_score:
            best_score = score
        if best_score > alpha:
            alpha = best_score
        # Beta cutoff: the opponent already has a better alternative.
        if alpha >= beta:
            break

    return best_score


def search_depth(difficulty: Difficulty | str, root_moves: int) -> int:
    """Base depth for the difficulty, one ply deeper on narrow roots."""
    depth = SEARCH_DEPTHS[Difficulty(difficulty).value]
    if root_moves <= NARROW_ROOT_MOVES:
        depth += 1
    return depth


def _choose_easy(board: chess.Board, moves: list[chess.Move], rng) -> chess.Move:
    if rng.random() < EASY_RANDOM_PROBABILITY:
        return rng.choice(moves)
    captures = [m for m in moves if board.is_capture(m)]
    return rng.choice(captures or moves)


def _choose_searched(board: chess.Board, moves: list[chess.Move], depth: int, state: SearchState) -> chess.Move:
    color = color_sign(board.turn)
    alpha = -INFINITY
    best_score = -INFINITY
    best_move = None

    for move in _order_moves(board, moves):
        board.push(move)
        try:
            score = -negamax(board, depth - 1, -INFINITY, -alpha, -color, state)
        finally:
            board.pop()

        # Strict comparison: the first move reaching the maximum wins.
        if score > best_score:
            best_score = score
            best_move = move
        if best_score > alpha:
            alpha = best_score

    state.best_score = best_score
    return best_move


def choose_move(
    board: chess.Board,
    difficulty: Difficulty | str,
    rng: random.Random | None = None,
    state: SearchState | None = None,
) -> MoveCandidate | None:
    """
    Pick a move for the side to move.

    Args:
        board:      The position. Searched in place, restored before return.
        difficulty: "easy", "medium" or "hard" (or the Difficulty enum).
        rng:        Random source for easy play; defaults to the random module.
        state:      Optional SearchState to receive node count and depth.

    Returns:
        The chosen move with its metadata, or None if there are no legal
        moves (checkmate or stalemate).
    """
    difficulty = Difficulty(difficulty)
    state = state if state is not None else SearchState()
    moves = list(board.legal_moves)
    if not moves:
        return None

    if difficulty is Difficulty.EASY:
        move = _choose_easy(board, moves, rng or random)
    else:
        state.depth = search_depth(difficulty, len(moves))
        move = _choose_searched(board, moves, state.depth, state)

    return MoveCandidate.from_move(board, move)
