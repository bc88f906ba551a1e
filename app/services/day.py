# app/services/day.py
from collections.abc import Sequence

from ..models.game import Vote
from ..models.room import Player
from ..schemas.game import DayOutcome, DayTallyItem
from .rules import JESTER, MAYOR, MAYOR_VOTE_WEIGHT


def vote_weight(role: str | None) -> int:
    return MAYOR_VOTE_WEIGHT if role == MAYOR else 1


def resolve_day(players: Sequence[Player], votes: Sequence[Vote]) -> DayOutcome:
    """
    昼投票の集計:
    - mayor の票は 2、それ以外は 1
    - スキップ票も重み付きで合計
    - 追放されるのは「スキップ合計」と「他の全候補」を厳密に上回った1人だけ
      （スキップと同数・候補同士の同数なら誰も追放しない）
    - 追放者が jester なら jester_win=True
    死亡反映・勝敗判定は RoomStateMachine 側で行う。
    """
    by_id = {p.id: p for p in players}

    totals: dict[str, int] = {}
    skip_weight = 0
    for v in votes:
        voter = by_id.get(v.player_id)
        if voter is None or not voter.is_alive:
            continue

        weight = vote_weight(voter.role)
        if v.target_id is None:
            skip_weight += weight
            continue

        target = by_id.get(v.target_id)
        if target is None or not target.is_alive:
            continue
        totals[target.id] = totals.get(target.id, 0) + weight

    voted_out_id = None
    if totals:
        top = max(totals.values())
        leaders = [tid for tid, w in totals.items() if w == top]
        if top > skip_weight and len(leaders) == 1:
            voted_out_id = leaders[0]

    tally = [
        DayTallyItem(target_id=tid, weight=w)
        for tid, w in sorted(totals.items(), key=lambda kv: (-kv[1], by_id[kv[0]].seat_no))
    ]

    jester_win = voted_out_id is not None and by_id[voted_out_id].role == JESTER

    return DayOutcome(
        voted_out_id=voted_out_id,
        jester_win=jester_win,
        skip_weight=skip_weight,
        tally=tally,
    )
