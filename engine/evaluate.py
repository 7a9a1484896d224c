"""
Static evaluation: material, piece-square tables, and mobility.

The score is White-relative: positive means White is better. The search
multiplies it by the side's colour sign (+1 White, -1 Black) when it reaches
a leaf, so each negamax node still sees "higher is better for me".

Terminal positions short-circuit the sum:
    - checkmate scores CHECKMATE_SCORE against the side to move (the mated
      side), i.e. -CHECKMATE_SCORE when White is mated and +CHECKMATE_SCORE
      when Black is mated;
    - every drawn ending scores DRAW_SCORE.
"""

import chess

from engine.constants import (
    CHECKMATE_SCORE,
    DRAW_SCORE,
    MOBILITY_WEIGHT,
    PIECE_VALUES,
    PST,
)
from engine.rules import Terminal, classify


def color_sign(color: chess.Color) -> int:
    return 1 if color == chess.WHITE else -1


def piece_score(piece_type: int, color: chess.Color, square: chess.Square) -> int:
    """
    Material plus positional bonus of one piece, from its owner's point of view.

    White pieces mirror the rank (sq ^ 56) because the tables are printed
    with a8 first; Black pieces use the square directly.
    """
    idx = square ^ 56 if color == chess.WHITE else square
    return PIECE_VALUES[piece_type] + PST[piece_type][idx]


def evaluate(board: chess.Board) -> int:
    """
    White-relative centipawn evaluation of ``board``.

    Args:
        board: The position to score. Not modified.

    Returns:
        +/-CHECKMATE_SCORE for checkmate, DRAW_SCORE for any draw, otherwise
        material + piece-square sum plus a small mobility term for the side
        to move.

    Example:
        >>> import chess
        >>> evaluate(chess.Board())  # symmetric start, White has 20 moves
        40
    """
    state = classify(board)
    if state is Terminal.CHECKMATE:
        return -CHECKMATE_SCORE * color_sign(board.turn)
    if state is not Terminal.ONGOING:
        return DRAW_SCORE

    score = 0
    for sq, piece in board.piece_map().items():
        score += color_sign(piece.color) * piece_score(piece.piece_type, piece.color, sq)

    mobility = board.legal_moves.count()
    score += color_sign(board.turn) * mobility * MOBILITY_WEIGHT
    return score
