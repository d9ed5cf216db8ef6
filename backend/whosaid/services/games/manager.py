"""Authoritative phase transitions for a game session.

Every mutating operation is one read-modify-write under the per-code lock:
load the session, check every precondition, mutate, save. A failed check
raises before anything is written, so the stored session is never left
half-updated.

Round completion counts connected players only, both on the submit paths
and when a disconnect is reconciled, so a player who drops mid-round can
never stall the table.
"""

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Dict, List, NamedTuple, Optional

from . import errors
from .prompts import select_random_prompt
from .scoring import calculate_results, shuffle_responses
from .state import (
    Phase, Player, PlayerGuesses, Response, Round, ROUND_START_PHASES, Session,
)
from .validation import (
    generate_opaque_id, generate_session_code, sanitize_nickname, sanitize_response_text,
)

logger = logging.getLogger(__name__)

MAX_PLAYERS = 8
DEFAULT_CODE_ATTEMPTS = 10


class JoinResult(NamedTuple):
    session: Session
    player: Player


class DisconnectResult(NamedTuple):
    session: Session
    new_host: Optional[Player]
    phase_changed: bool


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GameStateManager:
    def __init__(self, store, rng=None, clock=None, code_attempts: int = DEFAULT_CODE_ATTEMPTS):
        self.store = store
        self.rng = rng or random.Random()
        self.clock = clock or _utcnow
        self.code_attempts = code_attempts

    # ---- reads ----

    def get_session(self, code: str) -> Session:
        session = self.store.get(code)
        if session is None:
            raise errors.SessionNotFound()
        return session

    def shuffle_responses(self, round_: Round) -> List[Response]:
        return shuffle_responses(round_, self.rng)

    def delete_session(self, code: str) -> None:
        self.store.delete(code)

    # ---- lifecycle ----

    def _unique_code(self) -> str:
        for _ in range(self.code_attempts):
            code = generate_session_code()
            if not self.store.exists(code):
                return code
        raise errors.CodeGenerationExhausted()

    def create_session(self, host_nickname: str) -> Session:
        result = sanitize_nickname(host_nickname)
        if not result.is_valid:
            raise errors.InvalidNickname(result.error)

        code = self._unique_code()
        now = self.clock()
        host = Player(
            id=generate_opaque_id(),
            nickname=result.sanitized,
            joined_at=now,
            is_host=True,
            is_connected=True,
        )
        session = Session(
            code=code,
            host_id=host.id,
            created_at=now,
            expires_at=now + timedelta(seconds=self.store.ttl_sec),
            players={host.id: host},
        )
        self.store.create(session)
        logger.info('[create] code=%s host=%s', code, host.id)
        return session

    def join_session(self, code: str, nickname: str) -> JoinResult:
        with self.store.locked(code):
            session = self.get_session(code)
            result = sanitize_nickname(nickname)
            if not result.is_valid:
                raise errors.InvalidNickname(result.error)
            if session.phase != Phase.LOBBY:
                raise errors.SessionInProgress()
            if len(session.players) >= MAX_PLAYERS:
                raise errors.SessionFull()
            wanted = result.sanitized.lower()
            if any(p.nickname.lower() == wanted for p in session.players.values()):
                raise errors.NicknameTaken()

            player = Player(
                id=generate_opaque_id(),
                nickname=result.sanitized,
                joined_at=self.clock(),
                is_host=False,
                is_connected=True,
            )
            session.players[player.id] = player
            self.store.save(session)
        logger.info('[join] code=%s player=%s count=%d', code, player.id, len(session.players))
        return JoinResult(session, player)

    def start_round(self, code: str, host_id: str, prompt: Optional[str] = None) -> Session:
        with self.store.locked(code):
            session = self.get_session(code)
            if session.host_id != host_id:
                raise errors.NotHost('Only host can start rounds')
            if session.phase not in ROUND_START_PHASES:
                raise errors.WrongPhase('Cannot start round in current phase')

            if isinstance(prompt, str) and prompt.strip():
                selected = prompt.strip()
            else:
                selected = select_random_prompt(session.used_prompts, self.rng)

            round_ = Round(round_number=len(session.rounds), prompt=selected)
            session.rounds.append(round_)
            session.current_round = round_.round_number
            session.phase = Phase.RESPONDING
            session.used_prompts.append(selected)
            self.store.save(session)
        logger.info('[start_round] code=%s round=%d', code, round_.round_number)
        return session

    def end_game(self, code: str, host_id: str) -> Session:
        """Authorize ending the game; the caller deletes the session afterwards."""
        session = self.get_session(code)
        if session.host_id != host_id:
            raise errors.NotHost('Only host can end game')
        return session

    # ---- submissions ----

    def _require_player(self, session: Session, player_id: str) -> Player:
        player = session.players.get(player_id)
        if player is None:
            raise errors.PlayerNotFound()
        return player

    def _current_round(self, session: Session) -> Round:
        round_ = session.current
        if round_ is None:
            # Phase says a round is running but there is none; treat as stale
            raise errors.WrongPhase('No active round')
        return round_

    def submit_response(self, code: str, player_id: str, text: str) -> Session:
        with self.store.locked(code):
            session = self.get_session(code)
            self._require_player(session, player_id)
            if session.phase != Phase.RESPONDING:
                raise errors.WrongPhase('Not in responding phase')
            round_ = self._current_round(session)
            if round_.response_by(player_id) is not None:
                raise errors.AlreadySubmitted('Response already submitted')
            result = sanitize_response_text(text)
            if not result.is_valid:
                raise errors.EmptyResponse(result.error)

            response = Response(
                id=generate_opaque_id(),
                player_id=player_id,
                text=result.sanitized,
                submitted_at=self.clock(),
            )
            round_.responses[response.id] = response
            self._advance_if_complete(session)
            self.store.save(session)
        return session

    def submit_guesses(self, code: str, player_id: str, guesses: Dict[str, str]) -> Session:
        with self.store.locked(code):
            session = self.get_session(code)
            self._require_player(session, player_id)
            if session.phase != Phase.GUESSING:
                raise errors.WrongPhase('Not in guessing phase')
            round_ = self._current_round(session)
            if player_id in round_.guesses:
                raise errors.AlreadySubmitted('Guesses already submitted')
            guesses = dict(guesses or {})
            if len(guesses) != len(round_.responses):
                raise errors.IncompleteGuesses()
            for response_id in guesses:
                if response_id not in round_.responses:
                    raise errors.UnknownResponseId()
            for guessed_id in guesses.values():
                if guessed_id not in session.players:
                    raise errors.UnknownPlayerId()

            round_.guesses[player_id] = PlayerGuesses(
                player_id=player_id,
                guesses=guesses,
                submitted_at=self.clock(),
            )
            self._advance_if_complete(session)
            self.store.save(session)
        return session

    # ---- completion ----

    def _advance_if_complete(self, session: Session) -> bool:
        """Move responding -> guessing or guessing -> reveal once every
        connected player has submitted. Returns True when the phase moved.

        Only looks at the current phase, so a round already past a stage
        can never be advanced twice.
        """
        round_ = session.current
        connected = {p.id for p in session.connected_players()}
        if round_ is None or not connected:
            return False

        if session.phase == Phase.RESPONDING:
            submitted = {r.player_id for r in round_.responses.values()}
            if connected <= submitted:
                session.phase = Phase.GUESSING
                logger.info('[advance] code=%s round=%d -> guessing', session.code, round_.round_number)
                return True
        elif session.phase == Phase.GUESSING:
            if connected <= set(round_.guesses):
                round_.results = calculate_results(session, round_)
                session.phase = Phase.REVEAL
                logger.info('[advance] code=%s round=%d -> reveal', session.code, round_.round_number)
                return True
        return False

    # ---- disconnects ----

    def handle_disconnect(self, code: str, player_id: str) -> DisconnectResult:
        with self.store.locked(code):
            session = self.get_session(code)
            player = self._require_player(session, player_id)
            player.is_connected = False

            new_host = None
            if player.is_host and session.host_id == player_id:
                # sorted() is stable, so equal join times fall back to join order
                candidates = sorted(
                    (p for p in session.players.values() if p.id != player_id and p.is_connected),
                    key=lambda p: p.joined_at,
                )
                if candidates:
                    new_host = candidates[0]
                    new_host.is_host = True
                    player.is_host = False
                    session.host_id = new_host.id
                    logger.info('[failover] code=%s host %s -> %s', code, player_id, new_host.id)

            # A disconnect can complete at most one stage: the round that just
            # reached guessing still needs guesses from the remaining players.
            phase_changed = self._advance_if_complete(session)
            self.store.save(session)
        logger.info('[disconnect] code=%s player=%s phase_changed=%s', code, player_id, phase_changed)
        return DisconnectResult(session, new_host, phase_changed)
