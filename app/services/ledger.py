# app/services/ledger.py
"""
夜行動 / 昼投票の台帳。

(room, player, phase) をキーにした上書き保存（last-write-wins）。
状態チェック（フェーズ・生存・役職）は呼び出し側の RoomStateMachine で行う。
"""
import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from ..models.game import Action, Vote


class ActionLedger:
    def __init__(self, db: Session):
        self.db = db

    def get(self, room_id: str, player_id: str, phase: int) -> Action | None:
        return (
            self.db.query(Action)
            .filter(
                Action.room_id == room_id,
                Action.player_id == player_id,
                Action.phase == phase,
            )
            .one_or_none()
        )

    def submit(
        self,
        room_id: str,
        player_id: str,
        phase: int,
        action_type: str,
        target_id: str | None,
    ) -> Action:
        # 既存の行動があれば上書き（UPSERT的挙動）
        existing = self.get(room_id, player_id, phase)
        if existing:
            existing.action_type = action_type
            existing.target_id = target_id
            existing.result = None
            existing.updated_at = datetime.utcnow()
            action = existing
        else:
            action = Action(
                id=str(uuid.uuid4()),
                room_id=room_id,
                player_id=player_id,
                phase=phase,
                action_type=action_type,
                target_id=target_id,
            )
            self.db.add(action)

        self.db.flush()
        return action

    def list_for_phase(self, room_id: str, phase: int) -> list[Action]:
        return (
            self.db.query(Action)
            .filter(Action.room_id == room_id, Action.phase == phase)
            .order_by(Action.created_at.asc(), Action.id.asc())
            .all()
        )

    def record_result(self, action: Action, result: str) -> None:
        action.result = result
        self.db.add(action)


class VoteLedger:
    def __init__(self, db: Session):
        self.db = db

    def get(self, room_id: str, player_id: str, phase: int) -> Vote | None:
        return (
            self.db.query(Vote)
            .filter(
                Vote.room_id == room_id,
                Vote.player_id == player_id,
                Vote.phase == phase,
            )
            .one_or_none()
        )

    def submit(
        self,
        room_id: str,
        player_id: str,
        phase: int,
        target_id: str | None,
    ) -> Vote:
        existing = self.get(room_id, player_id, phase)
        if existing:
            existing.target_id = target_id
            existing.updated_at = datetime.utcnow()
            vote = existing
        else:
            vote = Vote(
                id=str(uuid.uuid4()),
                room_id=room_id,
                player_id=player_id,
                phase=phase,
                target_id=target_id,
            )
            self.db.add(vote)

        self.db.flush()
        return vote

    def list_for_phase(self, room_id: str, phase: int) -> list[Vote]:
        return (
            self.db.query(Vote)
            .filter(Vote.room_id == room_id, Vote.phase == phase)
            .order_by(Vote.created_at.asc(), Vote.id.asc())
            .all()
        )
