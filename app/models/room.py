# app/models/room.py
from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from ..db import Base


class Room(Base):
    __tablename__ = "rooms"

    id = Column(String, primary_key=True)
    code = Column(String(6), unique=True, index=True, nullable=False)

    status = Column(String, nullable=False, default="lobby")  # lobby/night/day/voting/ended
    phase = Column(Integer, nullable=False, default=0)
    host_wallet = Column(String, nullable=False)

    # 変更検知用のカウンタ（受理された更新ごとに +1）
    version = Column(Integer, nullable=False, default=0)

    # ★ 直前の夜の犠牲者 / 直前の昼の追放者（Player.id）
    last_killed_id = Column(String, nullable=True)
    last_voted_out_id = Column(String, nullable=True)

    phase_started_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    ended_at = Column(DateTime, nullable=True)

    players = relationship(
        "Player",
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="Player.seat_no",
    )
    game_result = relationship(
        "GameResult",
        back_populates="room",
        uselist=False,
        cascade="all, delete-orphan",
    )


class Player(Base):
    __tablename__ = "players"

    id = Column(String, primary_key=True)
    room_id = Column(String, ForeignKey("rooms.id"), nullable=False, index=True)

    wallet = Column(String, nullable=False)  # 小文字に正規化済み
    nickname = Column(String, nullable=False)

    role = Column(String, nullable=True)  # 開始前は None
    is_alive = Column(Boolean, nullable=False, default=True)
    is_ready = Column(Boolean, nullable=False, default=False)
    is_host = Column(Boolean, nullable=False, default=False)

    seat_no = Column(Integer, nullable=False, default=0)
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    room = relationship("Room", back_populates="players")

    # 同じ部屋に同じウォレットで二重参加させない
    __table_args__ = (
        UniqueConstraint("room_id", "wallet", name="uq_player_room_wallet"),
    )
