# app/models/stats.py
from sqlalchemy import Column, String, Integer, DateTime
from datetime import datetime

from ..db import Base


class PlayerStats(Base):
    """ウォレット単位の通算成績。コアからは加算のみで読み返さない。"""

    __tablename__ = "player_stats"

    wallet = Column(String, primary_key=True)

    kills = Column(Integer, nullable=False, default=0)
    saves = Column(Integer, nullable=False, default=0)
    correct_detections = Column(Integer, nullable=False, default=0)
    jester_wins = Column(Integer, nullable=False, default=0)

    games_played = Column(Integer, nullable=False, default=0)
    games_won = Column(Integer, nullable=False, default=0)
    reputation = Column(Integer, nullable=False, default=0)

    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
