# app/api/v1/__init__.py

from fastapi import APIRouter

from . import rooms, games, chat, stats

api_router = APIRouter()

# それぞれの router 側で prefix を持っている前提にする
api_router.include_router(rooms.router)  # rooms.router 内で prefix="/rooms"
api_router.include_router(games.router)  # games.router も prefix="/rooms"（進行系）
api_router.include_router(chat.router)
api_router.include_router(stats.router)  # prefix="/stats"
