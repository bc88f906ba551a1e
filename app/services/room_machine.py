# app/services/room_machine.py
"""
部屋の状態遷移（lobby → night → day → voting → night → … → ended）。

- 更新系の操作は部屋ごとのロックの中で1トランザクションとして実行する。
  途中で例外が出たら rollback し、部屋は元の状態のまま残る。
- 読み取り（スナップショット等）はロックを取らない。コミット済みの状態だけが見える。
- 夜・昼の集計そのものは night.py / day.py / judge.py の純粋関数に任せる。
"""
import logging
import random
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy.orm import Session

from ..config import Settings, settings as default_settings
from ..models.game import Action, ChatMessage, GameResult, Vote
from ..models.room import Player, Room
from ..schemas.game import PhaseProgressOut, TransitionOut, WinDeclaration
from ..schemas.room import ChatMessageOut, RoomSnapshot
from .day import resolve_day
from .errors import (
    GameConflictError,
    GameInvariantError,
    GameNotFoundError,
    GamePermissionError,
    GameValidationError,
)
from .judge import jester_declaration, judge_game
from .ledger import ActionLedger, VoteLedger
from .night import resolve_night
from .results import build_game_result
from .roles import assign_roles
from .rules import (
    ACTION_ROLE,
    RESULT_IMPOSTOR,
    STATUS_DAY,
    STATUS_ENDED,
    STATUS_LOBBY,
    STATUS_NIGHT,
    STATUS_VOTING,
)
from .snapshot import build_snapshot
from .stats import SqlStatsRecorder, StatsRecorder

logger = logging.getLogger(__name__)


class _RoomLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class RoomLockRegistry:
    """
    部屋 id ごとの排他ロック。RoomStateMachine のインスタンスが持つ。
    待っている人も含めて誰も使っていないロックは辞書から外す。
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, _RoomLock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, room_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(room_id)
            if entry is None:
                entry = self._locks[room_id] = _RoomLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[room_id]


class RoomStateMachine:
    def __init__(
        self,
        stats: Optional[StatsRecorder] = None,
        config: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.stats = stats or SqlStatsRecorder()
        self.settings = config or default_settings
        self.rng = rng
        self._locks = RoomLockRegistry()

    # -----------------------------
    # 共通ヘルパー
    # -----------------------------
    @contextmanager
    def _transaction(self, db: Session) -> Iterator[None]:
        try:
            yield
            db.commit()
        except Exception:
            db.rollback()
            raise

    @contextmanager
    def _mutation(self, db: Session, room_id: str) -> Iterator[None]:
        with self._locks.hold(room_id):
            with self._transaction(db):
                yield

    def _get_room(self, db: Session, room_id: str) -> Room:
        room = db.get(Room, room_id)
        if room is None:
            raise GameNotFoundError("Room not found")
        return room

    def _get_player(self, db: Session, room: Room, wallet: str) -> Player:
        player = (
            db.query(Player)
            .filter(Player.room_id == room.id, Player.wallet == wallet.lower())
            .one_or_none()
        )
        if player is None:
            raise GameNotFoundError("Player not found")
        return player

    def _get_target(self, db: Session, room: Room, actor: Player, target_id: str) -> Player:
        target = db.get(Player, target_id)
        if target is None or target.room_id != room.id:
            raise GameNotFoundError("Target player not found")
        if not target.is_alive:
            raise GameValidationError("Target is already dead")
        if target.id == actor.id:
            raise GameValidationError("Cannot target yourself")
        return target

    def _players(self, db: Session, room: Room) -> list[Player]:
        return (
            db.query(Player)
            .filter(Player.room_id == room.id)
            .order_by(Player.seat_no.asc())
            .all()
        )

    @staticmethod
    def _require_host(room: Room, wallet: str) -> None:
        if room.host_wallet != wallet.lower():
            raise GamePermissionError("Only host can do this")

    @staticmethod
    def _touch(room: Room) -> None:
        room.version = (room.version or 0) + 1

    @staticmethod
    def _enter(room: Room, status: str) -> None:
        room.status = status
        room.phase_started_at = datetime.utcnow()

    def _new_room_code(self, db: Session) -> str:
        cfg = self.settings
        rng = self.rng or random
        for _ in range(cfg.room_code_attempts):
            code = "".join(
                rng.choice(cfg.room_code_alphabet) for _ in range(cfg.room_code_length)
            )
            if db.query(Room).filter(Room.code == code).first() is None:
                return code
        logger.error("could not find a free room code after %d attempts", cfg.room_code_attempts)
        raise GameConflictError("Failed to generate room code")

    # -----------------------------
    # 🏠 ロビー
    # -----------------------------
    def create_room(self, db: Session, wallet: str, nickname: str) -> tuple[Room, Player]:
        wallet = wallet.lower()
        room_id = str(uuid.uuid4())
        # 新しい部屋はまだ誰からも見えないのでロック不要
        with self._transaction(db):
            room = Room(
                id=room_id,
                code=self._new_room_code(db),
                status=STATUS_LOBBY,
                phase=0,
                host_wallet=wallet,
                version=1,
            )
            db.add(room)
            db.flush()

            host = Player(
                id=str(uuid.uuid4()),
                room_id=room.id,
                wallet=wallet,
                nickname=nickname,
                is_alive=True,
                is_ready=True,
                is_host=True,
                seat_no=1,
            )
            db.add(host)

        logger.info("room %s (%s) created by %s", room.id, room.code, wallet)
        return room, host

    def join_room(self, db: Session, code: str, wallet: str, nickname: str) -> tuple[Room, Player]:
        wallet = wallet.lower()
        room = db.query(Room).filter(Room.code == code.strip().upper()).one_or_none()
        if room is None:
            raise GameNotFoundError("Room not found")

        with self._mutation(db, room.id):
            db.refresh(room)
            players = self._players(db, room)

            # 同じウォレットで再参加した場合は既存のプレイヤーを返す
            existing = next((p for p in players if p.wallet == wallet), None)
            if existing is not None:
                return room, existing

            if room.status != STATUS_LOBBY:
                raise GameValidationError("Game already started")
            if len(players) >= self.settings.max_players:
                raise GameValidationError("Room is full")

            player = Player(
                id=str(uuid.uuid4()),
                room_id=room.id,
                wallet=wallet,
                nickname=nickname,
                is_alive=True,
                is_ready=False,
                is_host=False,
                seat_no=max((p.seat_no for p in players), default=0) + 1,
            )
            db.add(player)
            self._touch(room)

        logger.info("player %s joined room %s", wallet, room.id)
        return room, player

    def set_ready(self, db: Session, room_id: str, wallet: str, ready: bool = True) -> Player:
        with self._mutation(db, room_id):
            room = self._get_room(db, room_id)
            if room.status != STATUS_LOBBY:
                raise GameValidationError("Game already started")
            player = self._get_player(db, room, wallet)
            player.is_ready = ready
            self._touch(room)
        return player

    # -----------------------------
    # 🎮 ゲーム開始
    # -----------------------------
    def start(self, db: Session, room_id: str, wallet: str) -> Room:
        with self._mutation(db, room_id):
            room = self._get_room(db, room_id)
            self._require_host(room, wallet)

            if room.status != STATUS_LOBBY:
                raise GameConflictError("Game already started")

            players = self._players(db, room)
            n = len(players)
            if n < self.settings.min_players:
                raise GameValidationError(f"Need at least {self.settings.min_players} players")
            if n > self.settings.max_players:
                raise GameValidationError(f"Max {self.settings.max_players} players")
            if any(not p.is_ready for p in players):
                raise GameValidationError("Not all players ready")

            roles = assign_roles(n, self.rng)
            if len(roles) != n:
                raise GameInvariantError("Role assignment mismatch")

            # 席順に配る（役職リスト側がシャッフル済み）
            for p, role in zip(players, roles):
                p.role = role
                p.is_alive = True

            room.phase = 1
            self._enter(room, STATUS_NIGHT)
            self._touch(room)

        logger.info("room %s started with %d players", room.id, n)
        return room

    # -----------------------------
    # 🌙 夜行動 / ☀️ 投票
    # -----------------------------
    def submit_action(
        self,
        db: Session,
        room_id: str,
        wallet: str,
        action_type: str,
        target_id: Optional[str],
    ) -> Action:
        with self._mutation(db, room_id):
            room = self._get_room(db, room_id)
            if room.status != STATUS_NIGHT:
                raise GameValidationError("Not in night phase")

            player = self._get_player(db, room, wallet)
            if not player.is_alive:
                raise GameValidationError("Dead player cannot act")

            required_role = ACTION_ROLE.get(action_type)
            if required_role is None:
                raise GameValidationError(f"Unknown action type: {action_type}")
            if player.role != required_role:
                raise GamePermissionError(f"Only {required_role} can {action_type}")

            if target_id is not None:
                self._get_target(db, room, player, target_id)

            action = ActionLedger(db).submit(
                room.id, player.id, room.phase, action_type, target_id
            )
            self._touch(room)
        return action

    def submit_vote(
        self,
        db: Session,
        room_id: str,
        wallet: str,
        target_id: Optional[str],
    ) -> Vote:
        with self._mutation(db, room_id):
            room = self._get_room(db, room_id)
            if room.status not in (STATUS_DAY, STATUS_VOTING):
                raise GameValidationError("Not in voting phase")

            player = self._get_player(db, room, wallet)
            if not player.is_alive:
                raise GameValidationError("Dead player cannot vote")

            if target_id is not None:
                self._get_target(db, room, player, target_id)

            vote = VoteLedger(db).submit(room.id, player.id, room.phase, target_id)
            self._touch(room)
        return vote

    # -----------------------------
    # ⏭ フェーズ遷移（司会のみ）
    # -----------------------------
    def transition(
        self,
        db: Session,
        room_id: str,
        wallet: str,
        expected_status: str,
        expected_phase: int,
    ) -> TransitionOut:
        """
        expected_status / expected_phase は呼び出し側が「今解決しようとしている」フェーズ。
        再送で同じ値が届いた場合は、すでに先へ進んでいるので 409 にする。
        """
        if expected_status is None or expected_phase is None:
            raise GameValidationError("expected_status and expected_phase are required")

        with self._mutation(db, room_id):
            room = self._get_room(db, room_id)
            self._require_host(room, wallet)

            if room.status != expected_status or room.phase != expected_phase:
                raise GameConflictError("Phase already resolved")

            if room.status == STATUS_NIGHT:
                out = self._resolve_night(db, room)
            elif room.status == STATUS_DAY:
                # 議論 → 投票（集計はしない）
                self._enter(room, STATUS_VOTING)
                out = TransitionOut(room_id=room.id, status=room.status, phase=room.phase)
            elif room.status == STATUS_VOTING:
                out = self._resolve_day(db, room)
            elif room.status == STATUS_ENDED:
                raise GameConflictError("Game already ended")
            else:
                raise GameValidationError("Invalid state for transition")

            self._touch(room)

        logger.info("room %s transitioned to %s (phase %d)", room.id, out.status, out.phase)
        return out

    def _resolve_night(self, db: Session, room: Room) -> TransitionOut:
        players = self._players(db, room)
        by_id = {p.id: p for p in players}

        ledger = ActionLedger(db)
        actions = ledger.list_for_phase(room.id, room.phase)
        outcome = resolve_night(players, actions)

        if outcome.killed_player_id:
            by_id[outcome.killed_player_id].is_alive = False
            for killer_id in outcome.killer_ids:
                self.stats.increment(db, by_id[killer_id].wallet, kills=1)

        for protector_id in outcome.protector_ids:
            self.stats.increment(db, by_id[protector_id].wallet, saves=1)

        action_by_player = {a.player_id: a for a in actions}
        for inv in outcome.investigations:
            ledger.record_result(action_by_player[inv.detective_id], inv.result)
            if inv.result == RESULT_IMPOSTOR:
                self.stats.increment(db, by_id[inv.detective_id].wallet, correct_detections=1)

        room.last_killed_id = outcome.killed_player_id

        winner = judge_game(players)
        game_id = None
        if winner is not None:
            game_id = self._finish(db, room, players, winner)
        else:
            self._enter(room, STATUS_DAY)

        logger.info(
            "room %s night %d resolved: killed=%s protected=%s",
            room.id,
            room.phase,
            outcome.killed_player_id,
            outcome.was_protected,
        )
        return TransitionOut(
            room_id=room.id,
            status=room.status,
            phase=room.phase,
            night=outcome,
            winner=winner,
            game_id=game_id,
        )

    def _resolve_day(self, db: Session, room: Room) -> TransitionOut:
        resolved_phase = room.phase
        players = self._players(db, room)
        by_id = {p.id: p for p in players}

        votes = VoteLedger(db).list_for_phase(room.id, room.phase)
        outcome = resolve_day(players, votes)

        room.last_voted_out_id = outcome.voted_out_id
        if outcome.voted_out_id:
            by_id[outcome.voted_out_id].is_alive = False

        game_id = None
        if outcome.jester_win:
            # jester が追放された時点で単独勝利（人数判定はしない）
            jester = by_id[outcome.voted_out_id]
            winner: Optional[WinDeclaration] = jester_declaration(players)
            self.stats.increment(db, jester.wallet, jester_wins=1)
            game_id = self._finish(db, room, players, winner, eliminated_jester_id=jester.id)
        else:
            winner = judge_game(players)
            if winner is not None:
                game_id = self._finish(db, room, players, winner)
            else:
                room.phase += 1
                self._enter(room, STATUS_NIGHT)

        logger.info(
            "room %s day %d resolved: voted_out=%s jester_win=%s",
            room.id,
            resolved_phase,
            outcome.voted_out_id,
            outcome.jester_win,
        )
        return TransitionOut(
            room_id=room.id,
            status=room.status,
            phase=room.phase,
            day=outcome,
            winner=winner,
            game_id=game_id,
        )

    def _finish(
        self,
        db: Session,
        room: Room,
        players: list[Player],
        winner: WinDeclaration,
        eliminated_jester_id: Optional[str] = None,
    ) -> str:
        existing = db.query(GameResult).filter(GameResult.room_id == room.id).one_or_none()
        if existing is not None:
            logger.error("room %s already has game result %s", room.id, existing.game_id)
            raise GameInvariantError("Game result already exists")

        result = build_game_result(room.id, winner.winner_team, players, eliminated_jester_id)
        db.add(result)

        for entry in result.player_results:
            self.stats.increment(
                db,
                entry["wallet"],
                games_played=1,
                games_won=1 if entry["won"] else 0,
                reputation=entry["rep_delta"],
            )

        self._enter(room, STATUS_ENDED)
        room.ended_at = datetime.utcnow()

        logger.info(
            "room %s ended: winner=%s game_id=%s",
            room.id,
            winner.winner_team,
            result.game_id,
        )
        return result.game_id

    # -----------------------------
    # 💬 チャット（昼のみ）
    # -----------------------------
    def post_chat(self, db: Session, room_id: str, wallet: str, content: str) -> ChatMessageOut:
        with self._mutation(db, room_id):
            room = self._get_room(db, room_id)
            if room.status != STATUS_DAY:
                raise GameValidationError("Chat only available during day")

            player = self._get_player(db, room, wallet)
            if not player.is_alive:
                raise GameValidationError("Dead player cannot chat")

            text = content[: self.settings.chat_max_length].strip()
            if not text:
                raise GameValidationError("Empty message")

            message = ChatMessage(
                id=str(uuid.uuid4()),
                room_id=room.id,
                player_id=player.id,
                phase=room.phase,
                content=text,
                created_at=datetime.utcnow(),
            )
            db.add(message)

        return ChatMessageOut(
            id=message.id,
            player_id=player.id,
            nickname=player.nickname,
            phase=message.phase,
            content=message.content,
            created_at=message.created_at,
        )

    # -----------------------------
    # 🔍 読み取り
    # -----------------------------
    def snapshot(self, db: Session, room_id: str, wallet: Optional[str] = None) -> RoomSnapshot:
        room = self._get_room(db, room_id)
        return build_snapshot(db, room, wallet, self.settings)

    def get_result(self, db: Session, room_id: str) -> GameResult:
        room = self._get_room(db, room_id)
        if room.game_result is None:
            raise GameNotFoundError("Game result not found")
        return room.game_result

    def list_chat(
        self,
        db: Session,
        room_id: str,
        phase: Optional[int] = None,
        offset: int = 0,
    ) -> list[ChatMessageOut]:
        room = self._get_room(db, room_id)
        q = db.query(ChatMessage).filter(ChatMessage.room_id == room.id)
        if phase is not None:
            q = q.filter(ChatMessage.phase == phase)
        rows = (
            q.order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
            .offset(offset)
            .limit(self.settings.chat_history_limit)
            .all()
        )
        return [
            ChatMessageOut(
                id=m.id,
                player_id=m.player_id,
                nickname=m.player.nickname,
                phase=m.phase,
                content=m.content,
                created_at=m.created_at,
            )
            for m in rows
        ]

    def phase_progress(self, db: Session, room_id: str) -> PhaseProgressOut:
        """
        現在フェーズの提出状況:
        - lobby: 準備完了の人数
        - night: 行動できる役職（impostor / detective / doctor）のうち行動済みの人数
        - day / voting: 生存者のうち投票済みの人数
        """
        room = self._get_room(db, room_id)
        players = self._players(db, room)
        alive = [p for p in players if p.is_alive]
        alive_ids = {p.id for p in alive}

        if room.status == STATUS_LOBBY:
            expected = len(players)
            submitted = sum(1 for p in players if p.is_ready)
        elif room.status == STATUS_NIGHT:
            actors = {p.id for p in alive if p.role in ACTION_ROLE.values()}
            expected = len(actors)
            submitted = sum(
                1
                for a in ActionLedger(db).list_for_phase(room.id, room.phase)
                if a.player_id in actors and a.target_id is not None
            )
        elif room.status in (STATUS_DAY, STATUS_VOTING):
            expected = len(alive)
            submitted = sum(
                1
                for v in VoteLedger(db).list_for_phase(room.id, room.phase)
                if v.player_id in alive_ids
            )
        else:
            expected = 0
            submitted = 0

        return PhaseProgressOut(
            room_id=room.id,
            status=room.status,
            phase=room.phase,
            alive_total=len(alive),
            expected=expected,
            submitted=submitted,
            all_done=submitted >= expected,
        )
