# app/services/night.py
from collections.abc import Iterable, Sequence

from ..models.game import Action
from ..models.room import Player
from ..schemas.game import InvestigationResult, NightOutcome
from .rules import (
    ACTION_INVESTIGATE,
    ACTION_KILL,
    ACTION_PROTECT,
    IMPOSTOR,
    RESULT_IMPOSTOR,
    RESULT_INNOCENT,
)


def tally_kills(actions: Iterable[Action]) -> dict[str, list[str]]:
    """ターゲットごとに、そのターゲットを選んだ impostor の id を集める。"""
    kill_votes: dict[str, list[str]] = {}
    for a in actions:
        if a.action_type != ACTION_KILL or not a.target_id:
            continue
        kill_votes.setdefault(a.target_id, []).append(a.player_id)
    return kill_votes


def resolve_night(players: Sequence[Player], actions: Sequence[Action]) -> NightOutcome:
    """
    夜の行動を集計して結果を返す（DB は触らない）。

    - kill: 最多票のターゲットを襲撃。同票なら席順が一番若いプレイヤー
    - protect: 襲撃ターゲットを守っていれば襲撃失敗
    - investigate: 対象が impostor かどうかを判定
    死亡反映・結果保存・勝敗判定は RoomStateMachine 側で行う。
    """
    by_id = {p.id: p for p in players}

    kill_votes = {
        target_id: voters
        for target_id, voters in tally_kills(actions).items()
        if target_id in by_id
    }

    targeted_id: str | None = None
    if kill_votes:
        targeted_id = min(
            kill_votes,
            key=lambda tid: (-len(kill_votes[tid]), by_id[tid].seat_no),
        )

    protector_ids = [
        a.player_id
        for a in actions
        if a.action_type == ACTION_PROTECT and targeted_id and a.target_id == targeted_id
    ]
    was_protected = bool(protector_ids)

    killed_id = None
    killer_ids: list[str] = []
    if targeted_id and not was_protected:
        killed_id = targeted_id
        killer_ids = list(kill_votes[targeted_id])

    investigations: list[InvestigationResult] = []
    for a in actions:
        if a.action_type != ACTION_INVESTIGATE or not a.target_id:
            continue
        target = by_id.get(a.target_id)
        if target is None:
            continue
        investigations.append(
            InvestigationResult(
                detective_id=a.player_id,
                target_id=target.id,
                result=RESULT_IMPOSTOR if target.role == IMPOSTOR else RESULT_INNOCENT,
            )
        )

    return NightOutcome(
        killed_player_id=killed_id,
        was_protected=was_protected,
        targeted_player_id=targeted_id,
        killer_ids=killer_ids,
        protector_ids=protector_ids if was_protected else [],
        investigations=investigations,
    )
