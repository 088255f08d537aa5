"""
Weekly challenge data models.

The backend stores the current and previous challenge as a JSON string in the
``ScoreBuckets`` column of the challenge stats row. These models decode that
payload into immutable objects.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from wr_checker.data_models.score import parse_timestamp

logger = logging.getLogger(__name__)

ModValue = Union[float, int, bool, str]


class PhysicsModKind(Enum):
    """Every known physics modifier, keyed by its wire name."""

    GRAVITY = ("gravity", float, "Gravity")
    JUMP_MULT = ("jumpmult", float, "Jump Height")
    JUMP_FORCE = ("jumpforce", float, "Jump Force")
    BOUNCE_MULT = ("bouncemult", float, "Bounce Force")
    SCALE_MULT = ("scalemult", float, "Marble Size")
    MASS_MULT = ("massmult", float, "Mass")
    FRICTION_MULT = ("frictionmult", float, "Friction Force")
    BLAST_JUMP_MULT = ("blastjumpmult", float, "Blast Height")
    BLAST_PUSH_MULT = ("blastpushmult", float, "Blast Push")
    BLAST_RANGE_MULT = ("blastrangemult", float, "Blast Range")
    BLAST_COOLDOWN_MULT = ("blastcooldownmult", float, "Blast Cooldown")
    ROLL_X = ("rollX", float, "Roll Force X")
    ROLL_Y = ("rollY", float, "Roll Force Y")
    CAN_BLAST = ("canblast", bool, "Blast Available")
    AIR_JUMPS = ("airjumps", int, "Air Jumps")
    NO_POWERUPS = ("nopowerups", bool, "No Powerups")
    REVERSE = ("reverse", bool, "Level Reversed")
    CHECKPOINT_GEMS = ("checkpointgems", bool, "Checkpoints Add Gems")
    NO_GEMS = ("nogems", bool, "No Gems")
    NO_TIME_TRAVEL = ("notimetravel", bool, "No Time Travels")
    TROPHY_GEM = ("trophygem", bool, "Trophy Adds Gem")
    TROPHY_END = ("trophyend", bool, "Trophy is Goal")
    BOOMERANG = ("boomerang", bool, "Boomerang")
    START_POWERUP = ("startpowerup", str, "Start With")
    REPLACE_POWERUP = ("replacepowerup", str, "Replace Powerups")
    PLATFORM_SPEED = ("platformspeed", float, "Platform Speed")
    BLAST_X = ("blastX", float, "Blast X")
    BLAST_Y = ("blastY", float, "Blast Y")
    IMPACT_X = ("impX", float, "Impact X")
    IMPACT_Y = ("impY", float, "Impact Y")
    USE_SOUNDS = ("usesounds", bool, "Use Sounds")
    MEGA_FORCE = ("megaforce", float, "Mega Force")
    FULL_SHADOW = ("fullshadow", bool, "Full Shadow")
    MP_SPAWN_OFFSET = ("mpspawnoffset", bool, "MP Spawn Offset")

    def __init__(self, wire_key: str, value_type: type, label: str):
        self.wire_key = wire_key
        self.value_type = value_type
        self.label = label

    @classmethod
    def from_wire(cls, key: str) -> Optional["PhysicsModKind"]:
        for kind in cls:
            if kind.wire_key == key:
                return kind
        return None


@dataclass(frozen=True)
class PhysicsMod:
    """A single typed physics modifier."""
    kind: PhysicsModKind
    value: ModValue

    @classmethod
    def from_wire(cls, key: str, raw: Any) -> "PhysicsMod":
        kind = PhysicsModKind.from_wire(key)
        if kind is None:
            raise ValueError(f"Unknown physics modifier: {key}")
        if kind.value_type is bool and not isinstance(raw, bool):
            raise ValueError(f"Physics modifier {key} expects a boolean, got {raw!r}")
        return cls(kind=kind, value=kind.value_type(raw))


def _as_percentage(value: float) -> str:
    return f"{value * 100:g}%"


def describe_physics_mod(mod: PhysicsMod) -> str:
    """Display string for a physics modifier."""
    if mod.kind.value_type is float:
        return f"{mod.kind.label}: {_as_percentage(mod.value)}"
    if mod.kind.value_type is bool:
        return mod.kind.label
    return f"{mod.kind.label}: {mod.value}"


def parse_physics_mods(raw: Any) -> Tuple[PhysicsMod, ...]:
    """
    Decode a ``physicsmod`` object.
    
    Unknown modifier keys are logged and dropped so a new modifier on the
    backend does not block the weekly announcement.
    """
    if not raw:
        return ()
    if not isinstance(raw, dict):
        raise ValueError(f"Physics modifiers must be an object, got {type(raw).__name__}")

    mods: List[PhysicsMod] = []
    for key, value in raw.items():
        if PhysicsModKind.from_wire(key) is None:
            logger.warning(f"Skipping unknown physics modifier '{key}'")
            continue
        mods.append(PhysicsMod.from_wire(key, value))
    return tuple(mods)


class NameLang(Enum):
    """Languages available for challenge names."""
    EN = "en"
    ES = "es"
    FR = "fr"
    DE = "de"
    IT = "it"
    JP = "jp"
    AR = "ar"
    ZH_CN = "zh-CN"
    ZH_TW = "zh-TW"
    NL = "nl"
    KO = "ko"
    PT = "pt"
    RU = "ru"
    TR = "tr"


@dataclass(frozen=True)
class ChallengeLevel:
    """A level within a weekly challenge."""
    name: str
    id: str
    physics_modifiers: Tuple[PhysicsMod, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChallengeLevel":
        return cls(
            name=data['name'],
            id=data['id'],
            physics_modifiers=parse_physics_mods(data.get('physicsmod')),
        )


@dataclass(frozen=True)
class ChallengeBucket:
    """One weekly challenge: its levels, names and active period."""
    chapter_set: str
    challenge_id: str
    levels: Tuple[ChallengeLevel, ...]
    names: Dict[str, str]
    start_date: datetime
    end_date: datetime

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChallengeBucket":
        bucket = cls(
            chapter_set=data['chapterSet'],
            challenge_id=str(data['challengeID']),
            levels=tuple(ChallengeLevel.from_dict(level) for level in data.get('levels', [])),
            names=dict(data.get('name') or {}),
            start_date=parse_timestamp(data['startDate']),
            end_date=parse_timestamp(data['endDate']),
        )
        if bucket.start_date >= bucket.end_date:
            raise ValueError(
                f"Challenge {bucket.challenge_id} starts at {bucket.start_date} "
                f"but ends at {bucket.end_date}"
            )
        return bucket

    def get_name(self, lang: NameLang = NameLang.EN) -> str:
        return self.names.get(lang.value, "Unknown")

    def lookup_id(self, index: int) -> str:
        """Positional backend id of the level at ``index``."""
        return f"{self.chapter_set}{index}"

    @property
    def physics_modifiers(self) -> Tuple[PhysicsMod, ...]:
        """Modifiers of the first level, shared by the whole challenge."""
        if not self.levels:
            return ()
        return self.levels[0].physics_modifiers


@dataclass(frozen=True)
class ChallengeDescriptor:
    """The current and previous weekly challenge."""
    current: ChallengeBucket
    previous: ChallengeBucket
    object_id: Optional[str] = None
    sheet_id: Optional[int] = None
    cur_id: Optional[int] = None

    @classmethod
    def from_score_buckets(cls, score_buckets: Union[str, Dict[str, Any]],
                           object_id: Optional[str] = None) -> "ChallengeDescriptor":
        """Decode the ``ScoreBuckets`` payload, which arrives as a JSON string."""
        data = json.loads(score_buckets) if isinstance(score_buckets, str) else score_buckets
        return cls(
            current=ChallengeBucket.from_dict(data['current']),
            previous=ChallengeBucket.from_dict(data['previous']),
            object_id=object_id,
            sheet_id=data.get('sheetID'),
            cur_id=data.get('curID'),
        )
