from sqlalchemy import (
    Column, Integer, String, DateTime, Float, Text, Index, CheckConstraint
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

class ScoreRecord(Base):
    """
    Append-only world record history.
    
    One row per world record ever observed. The autoincrement id doubles as
    the per-level sequence; rows are never updated or deleted.
    """
    __tablename__ = 'scores'
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    level_id = Column(String(50), nullable=False)
    
    time = Column(Float, nullable=False)
    username = Column(String(100), nullable=False)
    user_id = Column(String(100), nullable=False)
    skin_used = Column(String(100), nullable=False)
    replay_version = Column(Integer, nullable=False)
    platform = Column(String(50), nullable=False)
    
    # Stored as naive UTC
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)
    
    # Metadata
    recorded_at = Column(DateTime, default=func.now())
    
    __table_args__ = (
        Index('ix_scores_level_time', 'level_id', 'time'),
        CheckConstraint('time > 0', name='ck_scores_time_positive'),
    )
    
    def __repr__(self):
        return f"<ScoreRecord(level_id='{self.level_id}', time={self.time}, username='{self.username}')>"

class Metadata(Base):
    """Generic key/value state, e.g. the last seen weekly challenge end date."""
    __tablename__ = 'metadata'
    
    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    
    def __repr__(self):
        return f"<Metadata(key='{self.key}', value='{self.value}')>"

class WeeklyHistory(Base):
    """
    Finished weekly challenges.
    
    Archives each announced previous challenge with its modifiers and the
    final winning score of every level.
    """
    __tablename__ = 'weekly_history'
    
    start_date = Column(DateTime, primary_key=True)
    end_date = Column(DateTime, nullable=False)
    challenge_id = Column(String(100), nullable=False)
    name = Column(String(200), nullable=False)
    physics_mods = Column(Text, nullable=False)  # JSON list of display strings
    scores = Column(Text, nullable=False)        # JSON list of score dicts
    
    def __repr__(self):
        return f"<WeeklyHistory(challenge_id='{self.challenge_id}', name='{self.name}')>"
