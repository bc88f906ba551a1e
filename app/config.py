# app/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite:///./shadow.db"

    min_players: int = 6
    max_players: int = 10

    room_code_length: int = 6
    # 読み間違えやすい 0/O・1/I は除外
    room_code_alphabet: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
    room_code_attempts: int = 10

    # 表示用の目安のみ（フェーズを進めるのは外部から呼ばれる /transition）
    night_timer_sec: int = 30
    day_timer_sec: int = 90
    voting_timer_sec: int = 30

    chat_max_length: int = 200
    chat_history_limit: int = 100

    stream_poll_interval_sec: float = 1.0
    stream_heartbeat_sec: float = 30.0

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )


settings = Settings()
