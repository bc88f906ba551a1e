# app/schemas/stats.py
from pydantic import BaseModel, ConfigDict


class PlayerStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    wallet: str
    kills: int = 0
    saves: int = 0
    correct_detections: int = 0
    jester_wins: int = 0
    games_played: int = 0
    games_won: int = 0
    reputation: int = 0
