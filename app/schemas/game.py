# app/schemas/game.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import ActionTypeLiteral, RoleLiteral, StatusLiteral, WalletStr, WinnerLiteral


class ActionCreate(BaseModel):
    """夜行動のリクエストボディ（target_id=None で取り下げ）"""
    wallet: WalletStr
    action_type: ActionTypeLiteral
    target_id: Optional[str] = None


class ActionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    room_id: str
    player_id: str
    phase: int
    action_type: ActionTypeLiteral
    target_id: Optional[str] = None


class VoteCreate(BaseModel):
    """昼投票のリクエストボディ（target_id=None でスキップ）"""
    wallet: WalletStr
    target_id: Optional[str] = None


class VoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    room_id: str
    player_id: str
    phase: int
    target_id: Optional[str] = None


class TransitionRequest(BaseModel):
    wallet: WalletStr
    # 呼び出し側が「今処理しようとしている」フェーズ（必須）。再送時の二重処理防止用
    expected_status: StatusLiteral
    expected_phase: int


# --- 解決結果 ---

class WinDeclaration(BaseModel):
    winner_team: WinnerLiteral
    impostors_alive: int
    citizens_alive: int
    reason: str


class InvestigationResult(BaseModel):
    detective_id: str
    target_id: str
    result: str  # 'impostor' / 'innocent'


class NightOutcome(BaseModel):
    killed_player_id: Optional[str] = None
    was_protected: bool = False

    # 以下は内部処理用（レスポンスには出さない）
    targeted_player_id: Optional[str] = Field(default=None, exclude=True)
    killer_ids: list[str] = Field(default_factory=list, exclude=True)
    protector_ids: list[str] = Field(default_factory=list, exclude=True)
    investigations: list[InvestigationResult] = Field(default_factory=list, exclude=True)


class DayTallyItem(BaseModel):
    target_id: str
    weight: int


class DayOutcome(BaseModel):
    voted_out_id: Optional[str] = None
    jester_win: bool = False
    skip_weight: int = 0
    tally: list[DayTallyItem] = []


class TransitionOut(BaseModel):
    room_id: str
    status: StatusLiteral
    phase: int
    night: Optional[NightOutcome] = None
    day: Optional[DayOutcome] = None
    winner: Optional[WinDeclaration] = None
    game_id: Optional[str] = None


class PhaseProgressOut(BaseModel):
    """現在フェーズの提出状況（司会向け）"""
    room_id: str
    status: StatusLiteral
    phase: int
    alive_total: int
    expected: int
    submitted: int
    all_done: bool


# --- ゲーム結果 ---

class PlayerResultOut(BaseModel):
    wallet: str
    nickname: str
    role: RoleLiteral
    won: bool
    rep_delta: int


class GameResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    game_id: str
    room_id: str
    winner_team: WinnerLiteral
    player_results: list[PlayerResultOut]
    created_at: datetime
