"""Game domain services: role/room assignment, leader election, the
per-game state machine, the game registry and the cooldown timer.

This package contains pure(ish) domain logic that should be imported by
HTTP routes and socket handlers, keeping transport concerns separated
from core game mechanics.
"""
