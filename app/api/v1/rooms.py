# app/api/v1/rooms.py

import asyncio
import time
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ...api.deps import get_db_dep, get_room_machine
from ...db import SessionLocal
from ...models.game import ChatMessage
from ...schemas.game import GameResultOut, PhaseProgressOut
from ...schemas.room import (
    ReadyUpdate,
    RoomCreate,
    RoomJoinOut,
    RoomJoinRequest,
    RoomSnapshot,
)
from ...services.room_machine import RoomStateMachine
from ...services.rules import STATUS_DAY

router = APIRouter(
    prefix="/rooms",
    tags=["rooms"],
)


# -----------------------------
# 部屋の作成・参加
# -----------------------------

@router.post("", response_model=RoomJoinOut)
def create_room(
    data: RoomCreate,
    db: Session = Depends(get_db_dep),
    machine: RoomStateMachine = Depends(get_room_machine),
):
    room, host = machine.create_room(db, data.wallet, data.nickname)
    return RoomJoinOut(room_id=room.id, code=room.code, player_id=host.id)


@router.post("/join", response_model=RoomJoinOut)
def join_room(
    data: RoomJoinRequest,
    db: Session = Depends(get_db_dep),
    machine: RoomStateMachine = Depends(get_room_machine),
):
    room, player = machine.join_room(db, data.code, data.wallet, data.nickname)
    return RoomJoinOut(room_id=room.id, code=room.code, player_id=player.id)


@router.post("/{room_id}/ready")
def set_ready(
    room_id: str,
    data: ReadyUpdate,
    db: Session = Depends(get_db_dep),
    machine: RoomStateMachine = Depends(get_room_machine),
):
    player = machine.set_ready(db, room_id, data.wallet, data.ready)
    return {"player_id": player.id, "is_ready": player.is_ready}


# -----------------------------
# 🔍 スナップショット
# -----------------------------

@router.get("/{room_id}", response_model=RoomSnapshot)
def get_room(
    room_id: str,
    wallet: Optional[str] = None,
    db: Session = Depends(get_db_dep),
    machine: RoomStateMachine = Depends(get_room_machine),
):
    """wallet を渡すと、その人の役職（my_role）と占い結果も含めて返す。"""
    return machine.snapshot(db, room_id, wallet)


@router.get("/{room_id}/progress", response_model=PhaseProgressOut)
def get_progress(
    room_id: str,
    db: Session = Depends(get_db_dep),
    machine: RoomStateMachine = Depends(get_room_machine),
):
    return machine.phase_progress(db, room_id)


@router.get("/{room_id}/result", response_model=GameResultOut)
def get_result(
    room_id: str,
    db: Session = Depends(get_db_dep),
    machine: RoomStateMachine = Depends(get_room_machine),
):
    return machine.get_result(db, room_id)


def format_sse(event: str, data: str) -> str:
    return f"event: {event}\ndata: {data}\n\n"


@router.get("/{room_id}/stream")
def stream_room(
    room_id: str,
    request: Request,
    wallet: Optional[str] = None,
    db: Session = Depends(get_db_dep),
    machine: RoomStateMachine = Depends(get_room_machine),
):
    """
    Server-Sent Events:
    - room_update: rooms.version が変わるたびにスナップショットを送る
    - chat: 昼のあいだに増えたチャット
    - heartbeat: 一定時間ごと
    """
    # 存在チェックだけ先に行う（無ければ 404）
    machine.snapshot(db, room_id, wallet)

    cfg = machine.settings
    # 接続前のチャットは送らない
    initial_chat = db.query(ChatMessage).filter(ChatMessage.room_id == room_id).count()

    def _poll(last_version: int, seen_chat: int):
        session = SessionLocal()
        try:
            snap = machine.snapshot(session, room_id, wallet)
            events = []
            if snap.version != last_version:
                events.append(format_sse("room_update", snap.model_dump_json()))

            if snap.status == STATUS_DAY:
                for m in machine.list_chat(session, room_id, offset=seen_chat):
                    events.append(format_sse("chat", m.model_dump_json()))
                    seen_chat += 1
            return snap.version, seen_chat, events
        finally:
            session.close()

    async def event_stream():
        last_version = -1
        seen_chat = initial_chat
        last_sent = time.monotonic()
        while True:
            if await request.is_disconnected():
                break

            last_version, seen_chat, events = await run_in_threadpool(
                _poll, last_version, seen_chat
            )
            for event in events:
                yield event
                last_sent = time.monotonic()

            if time.monotonic() - last_sent > cfg.stream_heartbeat_sec:
                yield format_sse("heartbeat", f'{{"timestamp": {int(time.time())}}}')
                last_sent = time.monotonic()

            await asyncio.sleep(cfg.stream_poll_interval_sec)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
