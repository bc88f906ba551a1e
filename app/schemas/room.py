# app/schemas/room.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import RoleLiteral, StatusLiteral, WalletStr, WinnerLiteral


class RoomCreate(BaseModel):
    wallet: WalletStr
    nickname: str = Field(min_length=1, max_length=32)


class RoomJoinRequest(BaseModel):
    code: str = Field(min_length=1)
    wallet: WalletStr
    nickname: str = Field(min_length=1, max_length=32)


class RoomJoinOut(BaseModel):
    room_id: str
    code: str
    player_id: str


class WalletRequest(BaseModel):
    """司会操作（start / transition 以外も含む）の共通ボディ"""
    wallet: WalletStr


class ReadyUpdate(BaseModel):
    wallet: WalletStr
    ready: bool = True


# --- スナップショット ---

class PlayerView(BaseModel):
    id: str
    wallet: str
    nickname: str
    is_alive: bool
    is_ready: bool
    is_host: bool
    seat_no: int
    # 本人・死亡者・終了後のみ公開
    role: Optional[RoleLiteral] = None


class InvestigationView(BaseModel):
    phase: int
    target_id: str
    result: str


class RoomSnapshot(BaseModel):
    id: str
    code: str
    status: StatusLiteral
    phase: int
    version: int
    host_wallet: str
    players: list[PlayerView]

    my_id: Optional[str] = None
    my_role: Optional[RoleLiteral] = None
    my_investigations: list[InvestigationView] = []

    last_killed_id: Optional[str] = None
    last_voted_out_id: Optional[str] = None
    phase_deadline: Optional[datetime] = None

    winner_team: Optional[WinnerLiteral] = None
    game_id: Optional[str] = None


# --- チャット ---

class ChatCreate(BaseModel):
    wallet: WalletStr
    content: str


class ChatMessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    player_id: str
    nickname: str
    phase: int
    content: str
    created_at: datetime
