"""
Computer-opponent package.

This package implements the built-in opponent used by computer rooms:
fixed-depth negamax search with alpha-beta pruning, static move ordering,
and a hand-crafted evaluation function. Chess rules come from python-chess.

Modules:
    constants  Piece values, piece-square tables, and search parameters
    rules      Adapter over python-chess: candidates, terminal states, status
    evaluate   Static position evaluation (material + PST + mobility)
    search     Easy random play and negamax search for medium/hard
"""
