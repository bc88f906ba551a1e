# app/api/v1/stats.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ...api.deps import get_db_dep
from ...models.stats import PlayerStats
from ...schemas.stats import PlayerStatsOut

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/{wallet}", response_model=PlayerStatsOut)
def get_stats(
    wallet: str,
    db: Session = Depends(get_db_dep),
):
    stats = db.get(PlayerStats, wallet.lower())
    if stats is None:
        raise HTTPException(status_code=404, detail="Stats not found")
    return stats
