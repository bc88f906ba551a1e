# app/services/results.py
import secrets
import uuid
from collections.abc import Sequence

from ..models.game import GameResult
from ..models.room import Player
from .rules import (
    JESTER,
    REP_REWARDS,
    TEAM_CITIZEN,
    TEAM_IMPOSTOR,
    WINNER_CITIZENS,
    WINNER_IMPOSTORS,
    WINNER_JESTER,
    team_of,
)


def new_game_id() -> str:
    # 32 バイトの claim キー
    return "0x" + secrets.token_hex(32)


def player_won(player: Player, winner_team: str, eliminated_jester_id: str | None) -> bool:
    if winner_team == WINNER_JESTER:
        return player.role == JESTER and player.id == eliminated_jester_id

    team = team_of(player.role)
    if team == TEAM_IMPOSTOR:
        return winner_team == WINNER_IMPOSTORS
    if team == TEAM_CITIZEN:
        return winner_team == WINNER_CITIZENS
    return False


def rep_delta(player: Player, won: bool) -> int:
    delta = REP_REWARDS["win"] if won else REP_REWARDS["loss"]
    if team_of(player.role) == TEAM_IMPOSTOR and player.is_alive:
        delta += REP_REWARDS["survive_as_impostor"]
    if won and player.role == JESTER:
        delta += REP_REWARDS["jester_win"]
    return delta


def compute_player_results(
    winner_team: str,
    players: Sequence[Player],
    eliminated_jester_id: str | None = None,
) -> list[dict]:
    """役職・勝利陣営・生存状況だけから決まるので、同じ入力なら常に同じ結果になる。"""
    results = []
    for p in sorted(players, key=lambda m: m.seat_no):
        won = player_won(p, winner_team, eliminated_jester_id)
        results.append(
            {
                "wallet": p.wallet,
                "nickname": p.nickname,
                "role": p.role,
                "won": won,
                "rep_delta": rep_delta(p, won),
            }
        )
    return results


def build_game_result(
    room_id: str,
    winner_team: str,
    players: Sequence[Player],
    eliminated_jester_id: str | None = None,
) -> GameResult:
    return GameResult(
        id=str(uuid.uuid4()),
        room_id=room_id,
        game_id=new_game_id(),
        winner_team=winner_team,
        player_results=compute_player_results(winner_team, players, eliminated_jester_id),
    )
