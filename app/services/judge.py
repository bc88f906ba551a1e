# app/services/judge.py
import logging
from collections.abc import Sequence

from ..models.room import Player
from ..schemas.game import WinDeclaration
from .errors import GameInvariantError
from .rules import (
    TEAM_CITIZEN,
    TEAM_IMPOSTOR,
    WINNER_CITIZENS,
    WINNER_IMPOSTORS,
    WINNER_JESTER,
    team_of,
)

logger = logging.getLogger(__name__)


def count_alive(players: Sequence[Player]) -> tuple[int, int]:
    """(生存 impostor 数, 生存 citizen 陣営数)。jester はどちらにも数えない。"""
    alive = [p for p in players if p.is_alive]
    impostors = sum(1 for p in alive if team_of(p.role) == TEAM_IMPOSTOR)
    citizens = sum(1 for p in alive if team_of(p.role) == TEAM_CITIZEN)
    return impostors, citizens


def judge_game(players: Sequence[Player]) -> WinDeclaration | None:
    """
    生存メンバーから勝敗を判定する。
    - impostor 数 >= citizen 陣営数 → impostors の勝ち
    - impostor 数 == 0 → citizens の勝ち
    - それ以外は続行（None）
    jester の勝利は昼の追放でのみ決まるので、ここでは扱わない。
    """
    impostors, citizens = count_alive(players)

    impostor_win = impostors >= citizens
    citizen_win = impostors == 0

    if impostor_win and citizen_win:
        logger.error(
            "both factions satisfy a win condition (impostors=%d citizens=%d)",
            impostors,
            citizens,
        )
        raise GameInvariantError("Win condition is ambiguous")

    if impostor_win:
        return WinDeclaration(
            winner_team=WINNER_IMPOSTORS,
            impostors_alive=impostors,
            citizens_alive=citizens,
            reason="Impostors are equal to or more than citizens.",
        )
    if citizen_win:
        return WinDeclaration(
            winner_team=WINNER_CITIZENS,
            impostors_alive=impostors,
            citizens_alive=citizens,
            reason="All impostors are dead.",
        )
    return None


def jester_declaration(players: Sequence[Player]) -> WinDeclaration:
    impostors, citizens = count_alive(players)
    return WinDeclaration(
        winner_team=WINNER_JESTER,
        impostors_alive=impostors,
        citizens_alive=citizens,
        reason="The jester was voted out.",
    )
