# app/services/snapshot.py
from datetime import timedelta

from sqlalchemy.orm import Session

from ..config import Settings, settings as default_settings
from ..models.game import Action
from ..models.room import Room
from ..schemas.room import InvestigationView, PlayerView, RoomSnapshot
from .rules import (
    ACTION_INVESTIGATE,
    STATUS_DAY,
    STATUS_ENDED,
    STATUS_NIGHT,
    STATUS_VOTING,
)


def phase_timer_sec(status: str, config: Settings = default_settings) -> int | None:
    return {
        STATUS_NIGHT: config.night_timer_sec,
        STATUS_DAY: config.day_timer_sec,
        STATUS_VOTING: config.voting_timer_sec,
    }.get(status)


def build_snapshot(
    db: Session,
    room: Room,
    wallet: str | None = None,
    config: Settings = default_settings,
) -> RoomSnapshot:
    """
    表示用のスナップショット。
    役職は「本人」「死亡者」「ゲーム終了後の全員」だけ公開する。
    """
    viewer = None
    if wallet:
        wallet = wallet.lower()
        viewer = next((p for p in room.players if p.wallet == wallet), None)

    ended = room.status == STATUS_ENDED

    players = []
    for p in room.players:
        visible = ended or not p.is_alive or (viewer is not None and p.id == viewer.id)
        players.append(
            PlayerView(
                id=p.id,
                wallet=p.wallet,
                nickname=p.nickname,
                is_alive=p.is_alive,
                is_ready=p.is_ready,
                is_host=p.is_host,
                seat_no=p.seat_no,
                role=p.role if visible else None,
            )
        )

    # 占い結果は本人にだけ見せる
    investigations: list[InvestigationView] = []
    if viewer is not None:
        rows = (
            db.query(Action)
            .filter(
                Action.room_id == room.id,
                Action.player_id == viewer.id,
                Action.action_type == ACTION_INVESTIGATE,
                Action.result.isnot(None),
            )
            .order_by(Action.phase.asc())
            .all()
        )
        investigations = [
            InvestigationView(phase=a.phase, target_id=a.target_id, result=a.result)
            for a in rows
        ]

    deadline = None
    timer = phase_timer_sec(room.status, config)
    if timer is not None and room.phase_started_at is not None:
        deadline = room.phase_started_at + timedelta(seconds=timer)

    result = room.game_result

    return RoomSnapshot(
        id=room.id,
        code=room.code,
        status=room.status,
        phase=room.phase,
        version=room.version or 0,
        host_wallet=room.host_wallet,
        players=players,
        my_id=viewer.id if viewer else None,
        my_role=viewer.role if viewer else None,
        my_investigations=investigations,
        last_killed_id=room.last_killed_id,
        last_voted_out_id=room.last_voted_out_id,
        phase_deadline=deadline,
        winner_team=result.winner_team if result else None,
        game_id=result.game_id if result else None,
    )
