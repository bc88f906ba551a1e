import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .db import Base, engine
from . import models  # noqa: F401  テーブル定義を Base に登録
from .api.v1 import api_router as api_v1_router
from .services.errors import GameError, GameInvariantError
from .services.room_machine import RoomStateMachine

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# モデルからテーブル作成（開発用）
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Shadow Rooms API",
    version="0.1.0",
)

# 部屋ごとのロックを持つので、プロセスに1つだけ作る
app.state.room_machine = RoomStateMachine()


@app.exception_handler(GameError)
async def handle_game_error(request: Request, exc: GameError):
    if isinstance(exc, GameInvariantError):
        logger.error("invariant violation on %s %s: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.include_router(api_v1_router, prefix="/api")


@app.get("/")
def read_root():
    return {"message": "Shadow Rooms API is running"}
