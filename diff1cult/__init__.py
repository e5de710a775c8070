"""Diff1cult: finds game-source changes that affect Harmony patch targets."""

__version__ = "0.1.0"
