"""Match domain services: ball resolution, innings control, timers, rooms.

This package holds the game mechanics that socket handlers call into,
keeping transport concerns separated from core match logic.
"""
