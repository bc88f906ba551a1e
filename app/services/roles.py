# app/services/roles.py
import logging
import random

from .errors import GameInvariantError
from .rules import (
    CITIZEN,
    DEFAULT_DISTRIBUTION_SIZE,
    DETECTIVE,
    DOCTOR,
    IMPOSTOR,
    JESTER,
    MAYOR,
    ROLE_DISTRIBUTION,
)

logger = logging.getLogger(__name__)

# 配役表から役職リストを組み立てる順番（残りは citizen で埋める）
_SPECIAL_ROLE_ORDER = (IMPOSTOR, DETECTIVE, DOCTOR, JESTER, MAYOR)


def role_composition(player_count: int) -> list[str]:
    """
    n人に対する役職構成（シャッフル前）を返す。
    表にない人数は 6人用の構成をベースに citizen で埋める。
    """
    distribution = ROLE_DISTRIBUTION.get(
        player_count, ROLE_DISTRIBUTION[DEFAULT_DISTRIBUTION_SIZE]
    )

    roles: list[str] = []
    for role in _SPECIAL_ROLE_ORDER:
        roles.extend([role] * distribution.get(role, 0))

    if len(roles) > player_count:
        logger.error(
            "role table needs %d special roles but only %d players",
            len(roles),
            player_count,
        )
        raise GameInvariantError("Role distribution does not fit player count")

    while len(roles) < player_count:
        roles.append(CITIZEN)

    return roles


def assign_roles(player_count: int, rng: random.Random | None = None) -> list[str]:
    """
    役職をランダムな順番で返す。構成（各役職の人数）は同じ n なら常に同じ。
    戻り値の i 番目を席順 i 番目のプレイヤーに配る想定。
    """
    roles = role_composition(player_count)
    (rng or random).shuffle(roles)
    return roles
