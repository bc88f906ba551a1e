# app/services/errors.py
"""
ゲーム進行で発生するエラー。

ルーター側では HTTPException と同じ形（{"detail": ...}）で返す。
サービス層は FastAPI に依存しないよう、ここで独自の例外を定義する。
"""


class GameError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class GameValidationError(GameError):
    """入力不正・状態不一致（フェーズ違い、死亡者の行動など）"""
    status_code = 400


class GamePermissionError(GameValidationError):
    """司会以外の操作、役職に合わない行動"""
    status_code = 403


class GameNotFoundError(GameError):
    status_code = 404


class GameConflictError(GameError):
    """解決済みフェーズの二重処理など"""
    status_code = 409


class GameInvariantError(GameError):
    """役職表の不整合や勝者が2陣営になった等、起きてはいけない状態"""
    status_code = 500
