"""Game domain services: elimination, redemption voting, round flow, timers.

This package contains the game rules that HTTP routes and socket handlers
call into, keeping transport concerns separated from core game mechanics.
Every mutating operation runs inside a single store transaction and
broadcasts to connected clients only after it has committed.
"""
