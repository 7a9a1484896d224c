"""
Rules adapter: the thin layer between room state and python-chess.

python-chess owns every chess rule (move generation, check detection, draw
conditions, FEN and SAN). This module only reshapes what it offers into the
vocabulary the rest of the service speaks: candidate moves with ordering
metadata, a terminal-state classification, and human-readable status text.
"""

import enum
from dataclasses import dataclass

import chess


class Terminal(enum.Enum):
    """Classification of a position for game-over purposes."""

    ONGOING = "ongoing"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    THREEFOLD_REPETITION = "threefold_repetition"
    INSUFFICIENT_MATERIAL = "insufficient_material"
    FIFTY_MOVES = "fifty_moves"


_DRAW_TEXT: dict[Terminal, str] = {
    Terminal.STALEMATE: "Draw by stalemate.",
    Terminal.THREEFOLD_REPETITION: "Draw by threefold repetition.",
    Terminal.INSUFFICIENT_MATERIAL: "Draw by insufficient material.",
    Terminal.FIFTY_MOVES: "Draw by fifty-move rule.",
}


@dataclass(frozen=True)
class MoveCandidate:
    """
    A legal move plus the metadata used for ordering and display.

    Attributes:
        move:       The underlying python-chess move.
        from_sq:    Origin square name, e.g. "e2".
        to_sq:      Destination square name, e.g. "e4".
        promotion:  Promotion piece symbol ("q", "r", "b", "n") or None.
        is_capture: True for captures, including en passant.
        is_check:   True if the move gives check.
        san:        Standard algebraic notation in the position it was made from.
    """

    move: chess.Move
    from_sq: str
    to_sq: str
    promotion: str | None
    is_capture: bool
    is_check: bool
    san: str

    @classmethod
    def from_move(cls, board: chess.Board, move: chess.Move) -> "MoveCandidate":
        """Describe ``move`` as played from ``board`` (which is not modified)."""
        return cls(
            move=move,
            from_sq=chess.square_name(move.from_square),
            to_sq=chess.square_name(move.to_square),
            promotion=chess.piece_symbol(move.promotion) if move.promotion else None,
            is_capture=board.is_capture(move),
            is_check=board.gives_check(move),
            san=board.san(move),
        )

    def to_dict(self) -> dict:
        return {
            "from": self.from_sq,
            "to": self.to_sq,
            "promotion": self.promotion,
            "capture": self.is_capture,
            "check": self.is_check,
            "san": self.san,
        }


def classify(board: chess.Board) -> Terminal:
    """
    Classify the position as ongoing or as one specific game-over reason.

    Repetition is judged as chess.js does: the current position has occurred
    three times, without requiring a claim.
    """
    if not any(board.generate_legal_moves()):
        return Terminal.CHECKMATE if board.is_check() else Terminal.STALEMATE
    if board.is_insufficient_material():
        return Terminal.INSUFFICIENT_MATERIAL
    if board.is_repetition(3):
        return Terminal.THREEFOLD_REPETITION
    if board.halfmove_clock >= 100:
        return Terminal.FIFTY_MOVES
    return Terminal.ONGOING


def color_name(color: chess.Color) -> str:
    return "White" if color == chess.WHITE else "Black"


class RulesOracle:
    """
    One board position and the operations the room layer needs on it.

    The search engine works on ``oracle.board`` directly through push/pop;
    everything else goes through the methods here.
    """

    def __init__(self, fen: str = chess.STARTING_FEN) -> None:
        self.board: chess.Board = chess.Board(fen)

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    @property
    def turn(self) -> chess.Color:
        return self.board.turn

    def fen(self) -> str:
        return self.board.fen()

    def terminal(self) -> Terminal:
        return classify(self.board)

    def is_over(self) -> bool:
        return self.terminal() is not Terminal.ONGOING

    def candidates(self, from_square: str | None = None) -> list[MoveCandidate]:
        """
        Legal moves in python-chess enumeration order, optionally only those
        leaving ``from_square``. An unknown square name yields no moves.
        """
        if from_square is None:
            moves = list(self.board.legal_moves)
        else:
            try:
                origin = chess.parse_square(from_square)
            except ValueError:
                return []
            moves = [m for m in self.board.legal_moves if m.from_square == origin]
        return [MoveCandidate.from_move(self.board, m) for m in moves]

    def occupancy(self) -> dict[str, str]:
        """Square name -> piece symbol (upper case White, lower case Black)."""
        return {
            chess.square_name(sq): piece.symbol()
            for sq, piece in self.board.piece_map().items()
        }

    def status_text(self) -> str:
        state = self.terminal()
        if state is Terminal.ONGOING:
            return f"{color_name(self.board.turn)} to move"
        if state is Terminal.CHECKMATE:
            return f"Checkmate. {color_name(not self.board.turn)} wins."
        return _DRAW_TEXT[state]

    # -----------------------------------------------------------------------
    # Mutation
    # -----------------------------------------------------------------------

    def resolve(self, from_sq: str, to_sq: str, promotion: str | None = None) -> chess.Move | None:
        """
        Turn square names into a legal move, or None if there is none.

        A pawn reaching the last rank without an explicit promotion piece is
        promoted to a queen.
        """
        try:
            origin = chess.parse_square(from_sq)
            target = chess.parse_square(to_sq)
        except ValueError:
            return None
        promo = None
        if promotion:
            try:
                promo = chess.Piece.from_symbol(promotion.lower()).piece_type
            except ValueError:
                return None
        move = chess.Move(origin, target, promotion=promo)
        if move in self.board.legal_moves:
            return move
        if promo is None:
            queening = chess.Move(origin, target, promotion=chess.QUEEN)
            if queening in self.board.legal_moves:
                return queening
        return None

    def apply(self, from_sq: str, to_sq: str, promotion: str | None = None) -> MoveCandidate | None:
        """Play the move if legal and return its description; None otherwise."""
        move = self.resolve(from_sq, to_sq, promotion)
        if move is None:
            return None
        return self.push(move)

    def push(self, move: chess.Move) -> MoveCandidate:
        played = MoveCandidate.from_move(self.board, move)
        self.board.push(move)
        return played

    def undo(self) -> chess.Move:
        return self.board.pop()

    def reset(self) -> None:
        self.board.reset()
