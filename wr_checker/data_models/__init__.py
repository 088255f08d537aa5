"""
Data transfer objects for scores and weekly challenges.
"""

from .score import Score, Replay, RecapEntry, parse_timestamp
from .weekly import (
    ChallengeDescriptor, ChallengeBucket, ChallengeLevel,
    PhysicsMod, PhysicsModKind, NameLang, describe_physics_mod
)

__all__ = [
    'Score', 'Replay', 'RecapEntry', 'parse_timestamp',
    'ChallengeDescriptor', 'ChallengeBucket', 'ChallengeLevel',
    'PhysicsMod', 'PhysicsModKind', 'NameLang', 'describe_physics_mod',
]
