"""Houseboard — live house points leaderboard backend.

Ingests scoring events from a supervised generator process and from direct
submissions, stores them append-only, serves time-windowed standings, and
pushes every new event to connected WebSocket clients.
"""

__version__ = "0.1.0"
