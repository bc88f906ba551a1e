# tests/conftest.py
import random
import uuid

import pytest
from sqlalchemy.orm import Session
from fastapi.testclient import TestClient

from app.db import Base, engine, SessionLocal
from app.main import app
from app.models.room import Room, Player
from app.services.room_machine import RoomStateMachine


@pytest.fixture(scope="function")
def db() -> Session:
    """
    テストごとにクリーンな DB を用意するフィクスチャ。
    アプリ本体と同じ engine を使う。
    """
    # 既存テーブルを全部削除してから、再作成
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db: Session) -> TestClient:
    """
    通常の FastAPI app をそのまま使う TestClient。
    DI の上書きは行わない（db フィクスチャでテーブルは初期化済み）。
    """
    with TestClient(app) as c:
        yield c


@pytest.fixture(scope="function")
def machine() -> RoomStateMachine:
    return RoomStateMachine(rng=random.Random(1234))


@pytest.fixture(scope="function")
def seed_room(db: Session):
    """
    役職を指定して、進行中の部屋を直接作るファクトリ。
    seed_room(["impostor", "citizen", ...], status="night", phase=1)
    host は先頭のプレイヤー。wallet は "0xp1", "0xp2", ... になる。
    """

    def _seed(
        roles: list[str | None],
        status: str = "night",
        phase: int = 1,
    ) -> tuple[Room, list[Player]]:
        room = Room(
            id=str(uuid.uuid4()),
            code=uuid.uuid4().hex[:6].upper(),
            status=status,
            phase=phase,
            host_wallet="0xp1",
            version=1,
        )
        db.add(room)
        db.flush()

        players: list[Player] = []
        for i, role in enumerate(roles, start=1):
            p = Player(
                id=f"{room.id[:8]}-p{i}",
                room_id=room.id,
                wallet=f"0xp{i}",
                nickname=f"Player{i}",
                role=role,
                is_alive=True,
                is_ready=True,
                is_host=(i == 1),
                seat_no=i,
            )
            db.add(p)
            players.append(p)

        db.commit()
        db.refresh(room)
        for p in players:
            db.refresh(p)
        return room, players

    return _seed
