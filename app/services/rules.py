# app/services/rules.py
"""
役職・陣営・報酬などのゲーム定数。
配役表や報酬値は「設定データ」として扱い、ロジック側に直書きしない。
"""

# -----------------------------
# 役職 / 陣営
# -----------------------------
IMPOSTOR = "impostor"
DETECTIVE = "detective"
DOCTOR = "doctor"
JESTER = "jester"
MAYOR = "mayor"
CITIZEN = "citizen"

ROLES = (IMPOSTOR, DETECTIVE, DOCTOR, JESTER, MAYOR, CITIZEN)

TEAM_IMPOSTOR = "impostor"
TEAM_CITIZEN = "citizen"
TEAM_NEUTRAL = "neutral"

ROLE_TEAM = {
    IMPOSTOR: TEAM_IMPOSTOR,
    DETECTIVE: TEAM_CITIZEN,
    DOCTOR: TEAM_CITIZEN,
    MAYOR: TEAM_CITIZEN,
    CITIZEN: TEAM_CITIZEN,
    JESTER: TEAM_NEUTRAL,
}

# 勝利陣営（GameResult.winner_team）
WINNER_IMPOSTORS = "impostors"
WINNER_CITIZENS = "citizens"
WINNER_JESTER = "jester"

# -----------------------------
# 部屋ステータス
# -----------------------------
STATUS_LOBBY = "lobby"
STATUS_NIGHT = "night"
STATUS_DAY = "day"
STATUS_VOTING = "voting"
STATUS_ENDED = "ended"

# -----------------------------
# 夜行動
# -----------------------------
ACTION_KILL = "kill"
ACTION_INVESTIGATE = "investigate"
ACTION_PROTECT = "protect"

# 行動 → 実行できる役職
ACTION_ROLE = {
    ACTION_KILL: IMPOSTOR,
    ACTION_INVESTIGATE: DETECTIVE,
    ACTION_PROTECT: DOCTOR,
}

RESULT_IMPOSTOR = "impostor"
RESULT_INNOCENT = "innocent"

# 市長の票は2票分
MAYOR_VOTE_WEIGHT = 2

# -----------------------------
# 👥 人数ごとの配役（残りは citizen）
# -----------------------------
DEFAULT_DISTRIBUTION_SIZE = 6

ROLE_DISTRIBUTION: dict[int, dict[str, int]] = {
    6: {IMPOSTOR: 2, DETECTIVE: 1, DOCTOR: 0, JESTER: 0, MAYOR: 0},
    7: {IMPOSTOR: 2, DETECTIVE: 1, DOCTOR: 1, JESTER: 0, MAYOR: 0},
    8: {IMPOSTOR: 2, DETECTIVE: 1, DOCTOR: 1, JESTER: 1, MAYOR: 0},
    9: {IMPOSTOR: 3, DETECTIVE: 1, DOCTOR: 1, JESTER: 1, MAYOR: 1},
    10: {IMPOSTOR: 3, DETECTIVE: 1, DOCTOR: 1, JESTER: 1, MAYOR: 1},
}

# -----------------------------
# 評判ポイント
# -----------------------------
REP_REWARDS = {
    "win": 10,
    "loss": -5,
    "survive_as_impostor": 5,
    "jester_win": 15,
}


def team_of(role: str | None) -> str | None:
    return ROLE_TEAM.get(role)
