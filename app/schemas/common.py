# app/schemas/common.py
from typing import Annotated, Literal

from pydantic import AfterValidator

RoleLiteral = Literal["impostor", "detective", "doctor", "jester", "mayor", "citizen"]
StatusLiteral = Literal["lobby", "night", "day", "voting", "ended"]
WinnerLiteral = Literal["impostors", "citizens", "jester"]
ActionTypeLiteral = Literal["kill", "investigate", "protect"]


def _normalize_wallet(value: str) -> str:
    # ウォレットアドレスは小文字で同一視する
    value = value.strip().lower()
    if not value:
        raise ValueError("wallet must not be empty")
    return value


WalletStr = Annotated[str, AfterValidator(_normalize_wallet)]
