# app/api/v1/chat.py

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...api.deps import get_db_dep, get_room_machine
from ...schemas.room import ChatCreate, ChatMessageOut
from ...services.room_machine import RoomStateMachine

router = APIRouter(prefix="/rooms", tags=["chat"])


@router.get("/{room_id}/chat", response_model=list[ChatMessageOut])
def list_chat(
    room_id: str,
    phase: Optional[int] = None,
    db: Session = Depends(get_db_dep),
    machine: RoomStateMachine = Depends(get_room_machine),
):
    return machine.list_chat(db, room_id, phase)


@router.post("/{room_id}/chat", response_model=ChatMessageOut)
def post_chat(
    room_id: str,
    data: ChatCreate,
    db: Session = Depends(get_db_dep),
    machine: RoomStateMachine = Depends(get_room_machine),
):
    """昼（day）の間だけ、生存者のみ発言できる。"""
    return machine.post_chat(db, room_id, data.wallet, data.content)
