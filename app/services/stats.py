# app/services/stats.py
from abc import ABC, abstractmethod
from datetime import datetime

from sqlalchemy.orm import Session

from ..models.stats import PlayerStats

STAT_COUNTERS = (
    "kills",
    "saves",
    "correct_detections",
    "jester_wins",
    "games_played",
    "games_won",
    "reputation",
)


class StatsRecorder(ABC):
    """ウォレット単位の成績カウンタ。ゲーム進行側は書き込むだけで読み返さない。"""

    @abstractmethod
    def increment(self, db: Session, wallet: str, **counters: int) -> None:
        ...


class SqlStatsRecorder(StatsRecorder):
    def increment(self, db: Session, wallet: str, **counters: int) -> None:
        unknown = set(counters) - set(STAT_COUNTERS)
        if unknown:
            raise ValueError(f"unknown stat counters: {sorted(unknown)}")

        stats = db.get(PlayerStats, wallet)
        if stats is None:
            stats = PlayerStats(wallet=wallet, **{name: 0 for name in STAT_COUNTERS})
            db.add(stats)
            # 同じトランザクション内の2回目の加算で見つけられるように flush
            db.flush()

        for name, amount in counters.items():
            setattr(stats, name, (getattr(stats, name) or 0) + amount)
        stats.updated_at = datetime.utcnow()
