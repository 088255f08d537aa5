"""
Marble It Up! Ultra world record checker.

Polls the leaderboard backend, announces new world records through Discord
webhooks and tracks the weekly challenge rotation.
"""

__version__ = "1.0.0"
