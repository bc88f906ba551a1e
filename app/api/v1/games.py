# app/api/v1/games.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...api.deps import get_db_dep, get_room_machine
from ...schemas.game import (
    ActionCreate,
    ActionOut,
    TransitionOut,
    TransitionRequest,
    VoteCreate,
    VoteOut,
)
from ...schemas.room import RoomSnapshot, WalletRequest
from ...services.room_machine import RoomStateMachine

router = APIRouter(prefix="/rooms", tags=["games"])


# -----------------------------
# 🎮 ゲーム開始（司会のみ）
# -----------------------------
@router.post("/{room_id}/start", response_model=RoomSnapshot)
def start_game(
    room_id: str,
    data: WalletRequest,
    db: Session = Depends(get_db_dep),
    machine: RoomStateMachine = Depends(get_room_machine),
):
    """
    - lobby のときのみ
    - 6〜10人、全員が準備完了
    - 役職を配って phase=1 の夜へ
    """
    machine.start(db, room_id, data.wallet)
    return machine.snapshot(db, room_id, data.wallet)


# -----------------------------
# 🌙 夜行動
# -----------------------------
@router.post("/{room_id}/action", response_model=ActionOut)
def submit_action(
    room_id: str,
    data: ActionCreate,
    db: Session = Depends(get_db_dep),
    machine: RoomStateMachine = Depends(get_room_machine),
):
    """
    夜行動（kill / investigate / protect）:
    - night のときのみ、生存者のみ
    - kill は impostor、investigate は detective、protect は doctor だけ
    - 同じフェーズで再送した場合は上書き
    """
    action = machine.submit_action(db, room_id, data.wallet, data.action_type, data.target_id)
    return ActionOut.model_validate(action)


# -----------------------------
# ☀️ 昼投票
# -----------------------------
@router.post("/{room_id}/vote", response_model=VoteOut)
def submit_vote(
    room_id: str,
    data: VoteCreate,
    db: Session = Depends(get_db_dep),
    machine: RoomStateMachine = Depends(get_room_machine),
):
    """day / voting のときのみ。target_id を省略するとスキップ票。"""
    vote = machine.submit_vote(db, room_id, data.wallet, data.target_id)
    return VoteOut.model_validate(vote)


# -----------------------------
# ⏭ フェーズ遷移（司会のみ）
# -----------------------------
@router.post("/{room_id}/transition", response_model=TransitionOut)
def transition(
    room_id: str,
    data: TransitionRequest,
    db: Session = Depends(get_db_dep),
    machine: RoomStateMachine = Depends(get_room_machine),
):
    """
    - night → 夜の集計 → day（または ended）
    - day → voting（集計なし）
    - voting → 昼の集計 → 次の night（または ended）
    """
    return machine.transition(
        db,
        room_id,
        data.wallet,
        expected_status=data.expected_status,
        expected_phase=data.expected_phase,
    )
