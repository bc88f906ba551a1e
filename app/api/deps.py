# app/api/deps.py

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.services.room_machine import RoomStateMachine


def get_db_dep() -> Generator[Session, None, None]:
    """
    FastAPI の Depends で使う DB セッション依存関数。
    エンドポイント側では `db: Session = Depends(get_db_dep)` で利用。
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_room_machine(request: Request) -> RoomStateMachine:
    """アプリ起動時に1つだけ作った状態機械（部屋ごとのロックを保持）を返す。"""
    return request.app.state.room_machine
