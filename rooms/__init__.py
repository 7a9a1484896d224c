"""
Room package: seats, sessions, and the computer-move scheduler.

Modules:
    models     Side, Seat variants, RoomMode, LastMove
    errors     User-facing error taxonomy (RoomError and subclasses)
    seating    Pure seat-assignment decision
    session    RoomSession: per-room state and generation token
    scheduler  AIScheduler: delayed computer moves with staleness checks
    registry   SessionRegistry: room lifecycle and inbound operations
    notifier   Outbound event boundary
"""
