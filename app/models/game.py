# app/models/game.py
from sqlalchemy import (
    Column,
    String,
    Integer,
    ForeignKey,
    DateTime,
    JSON,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from ..db import Base


class Action(Base):
    """夜行動（kill / investigate / protect）。1人1フェーズ1件。"""

    __tablename__ = "actions"

    id = Column(String, primary_key=True)
    room_id = Column(String, ForeignKey("rooms.id"), nullable=False, index=True)
    player_id = Column(String, ForeignKey("players.id"), nullable=False)
    phase = Column(Integer, nullable=False)

    action_type = Column(String, nullable=False)
    target_id = Column(String, ForeignKey("players.id"), nullable=True)  # None = 取り下げ
    result = Column(String, nullable=True)  # investigate の結果 'impostor' / 'innocent'

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("room_id", "player_id", "phase", name="uq_action_once_per_phase"),
    )


class Vote(Base):
    """昼の投票。target_id が None ならスキップ。"""

    __tablename__ = "votes"

    id = Column(String, primary_key=True)
    room_id = Column(String, ForeignKey("rooms.id"), nullable=False, index=True)
    player_id = Column(String, ForeignKey("players.id"), nullable=False)
    phase = Column(Integer, nullable=False)

    target_id = Column(String, ForeignKey("players.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("room_id", "player_id", "phase", name="uq_vote_once_per_phase"),
    )


class GameResult(Base):
    __tablename__ = "game_results"

    id = Column(String, primary_key=True)
    room_id = Column(String, ForeignKey("rooms.id"), unique=True, nullable=False)

    # オンチェーンの claim キー（0x + 64桁 hex）
    game_id = Column(String(66), unique=True, index=True, nullable=False)
    winner_team = Column(String, nullable=False)  # impostors / citizens / jester

    # [{wallet, nickname, role, won, rep_delta}, ...]（席順）
    player_results = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    room = relationship("Room", back_populates="game_result")


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String, primary_key=True)
    room_id = Column(String, ForeignKey("rooms.id"), nullable=False, index=True)
    player_id = Column(String, ForeignKey("players.id"), nullable=False)
    phase = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    player = relationship("Player")
