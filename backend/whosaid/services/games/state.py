"""In-memory game session model and its storage form.

Maps are stored as ordered ``[key, value]`` pair lists so that the roster
and round order survive a JSON round trip unchanged.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class Phase(str, Enum):
    LOBBY = 'lobby'
    RESPONDING = 'responding'
    GUESSING = 'guessing'
    REVEAL = 'reveal'


# Phases a new round may start from
ROUND_START_PHASES = (Phase.LOBBY, Phase.REVEAL)
# Phases during which response authorship must stay hidden
ANONYMOUS_PHASES = (Phase.RESPONDING, Phase.GUESSING)


def _ts(value: datetime) -> str:
    return value.isoformat()


def _parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value)


@dataclass
class Player:
    id: str
    nickname: str
    joined_at: datetime
    is_host: bool = False
    is_connected: bool = True

    def to_dict(self):
        return {
            'id': self.id,
            'nickname': self.nickname,
            'is_host': self.is_host,
            'is_connected': self.is_connected,
            'joined_at': _ts(self.joined_at),
        }

    def to_public_dict(self):
        return {
            'id': self.id,
            'nickname': self.nickname,
            'isHost': self.is_host,
            'isConnected': self.is_connected,
            'joinedAt': _ts(self.joined_at),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            nickname=data['nickname'],
            is_host=bool(data['is_host']),
            is_connected=bool(data['is_connected']),
            joined_at=_parse_ts(data['joined_at']),
        )


@dataclass
class Response:
    id: str
    player_id: str
    text: str
    submitted_at: datetime

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'text': self.text,
            'submitted_at': _ts(self.submitted_at),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data['id'],
            player_id=data['player_id'],
            text=data['text'],
            submitted_at=_parse_ts(data['submitted_at']),
        )


@dataclass
class PlayerGuesses:
    player_id: str
    guesses: Dict[str, str]  # response id -> guessed player id
    submitted_at: datetime

    def to_dict(self):
        return {
            'player_id': self.player_id,
            'guesses': [[rid, pid] for rid, pid in self.guesses.items()],
            'submitted_at': _ts(self.submitted_at),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            player_id=data['player_id'],
            guesses={rid: pid for rid, pid in data['guesses']},
            submitted_at=_parse_ts(data['submitted_at']),
        )


@dataclass
class ResultEntry:
    response_id: str
    text: str
    actual_author: str
    guessed_by: Dict[str, str]  # guesser id -> guessed player id

    def to_dict(self):
        return {
            'response_id': self.response_id,
            'text': self.text,
            'actual_author': self.actual_author,
            'guessed_by': [[g, pid] for g, pid in self.guessed_by.items()],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            response_id=data['response_id'],
            text=data['text'],
            actual_author=data['actual_author'],
            guessed_by={g: pid for g, pid in data['guessed_by']},
        )


@dataclass
class RoundResults:
    responses: List[ResultEntry]
    penalties: Dict[str, int]  # player id -> wrong guesses this round

    def to_dict(self):
        return {
            'responses': [r.to_dict() for r in self.responses],
            'penalties': [[pid, n] for pid, n in self.penalties.items()],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            responses=[ResultEntry.from_dict(r) for r in data['responses']],
            penalties={pid: int(n) for pid, n in data['penalties']},
        )


@dataclass
class Round:
    round_number: int
    prompt: str
    responses: Dict[str, Response] = field(default_factory=dict)
    guesses: Dict[str, PlayerGuesses] = field(default_factory=dict)
    results: Optional[RoundResults] = None

    def response_by(self, player_id: str) -> Optional[Response]:
        for response in self.responses.values():
            if response.player_id == player_id:
                return response
        return None

    def to_dict(self):
        return {
            'round_number': self.round_number,
            'prompt': self.prompt,
            'responses': [[rid, r.to_dict()] for rid, r in self.responses.items()],
            'guesses': [[pid, g.to_dict()] for pid, g in self.guesses.items()],
            'results': self.results.to_dict() if self.results else None,
        }

    @classmethod
    def from_dict(cls, data):
        results = data.get('results')
        return cls(
            round_number=int(data['round_number']),
            prompt=data['prompt'],
            responses={rid: Response.from_dict(r) for rid, r in data['responses']},
            guesses={pid: PlayerGuesses.from_dict(g) for pid, g in data['guesses']},
            results=RoundResults.from_dict(results) if results else None,
        )


@dataclass
class Session:
    code: str
    host_id: str
    created_at: datetime
    expires_at: datetime
    phase: Phase = Phase.LOBBY
    current_round: int = 0
    rounds: List[Round] = field(default_factory=list)
    players: Dict[str, Player] = field(default_factory=dict)
    used_prompts: List[str] = field(default_factory=list)
    # Storage row version this copy was read at; not part of the game state
    version: int = field(default=0, compare=False, repr=False)

    @property
    def current(self) -> Optional[Round]:
        if 0 <= self.current_round < len(self.rounds):
            return self.rounds[self.current_round]
        return None

    def connected_players(self) -> List[Player]:
        return [p for p in self.players.values() if p.is_connected]

    def to_dict(self):
        return {
            'code': self.code,
            'host_id': self.host_id,
            'phase': self.phase.value,
            'current_round': self.current_round,
            'rounds': [r.to_dict() for r in self.rounds],
            'players': [[pid, p.to_dict()] for pid, p in self.players.items()],
            'used_prompts': list(self.used_prompts),
            'created_at': _ts(self.created_at),
            'expires_at': _ts(self.expires_at),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            code=data['code'],
            host_id=data['host_id'],
            phase=Phase(data['phase']),
            current_round=int(data['current_round']),
            rounds=[Round.from_dict(r) for r in data['rounds']],
            players={pid: Player.from_dict(p) for pid, p in data['players']},
            used_prompts=list(data['used_prompts']),
            created_at=_parse_ts(data['created_at']),
            expires_at=_parse_ts(data['expires_at']),
        )

    def to_public_dict(self):
        """Read model for clients. Authors are only exposed once revealed."""
        current_round_info = None
        round_ = self.current
        if round_ is not None:
            current_round_info = {
                'roundNumber': round_.round_number,
                'prompt': round_.prompt,
                'responseCount': len(round_.responses),
                'guessCount': len(round_.guesses),
            }
            if self.phase in (Phase.GUESSING, Phase.REVEAL):
                responses = []
                for r in round_.responses.values():
                    item = {'id': r.id, 'text': r.text}
                    if self.phase == Phase.REVEAL:
                        item['playerId'] = r.player_id
                    responses.append(item)
                current_round_info['responses'] = responses
            if self.phase == Phase.REVEAL and round_.results:
                # Local import: payloads depends on this module
                from .payloads import results_to_public
                current_round_info['results'] = results_to_public(self, round_.results)

        return {
            'code': self.code,
            'hostId': self.host_id,
            'phase': self.phase.value,
            'currentRound': self.current_round,
            'totalRounds': len(self.rounds),
            'players': [p.to_public_dict() for p in self.players.values()],
            'currentRoundInfo': current_round_info,
            'createdAt': _ts(self.created_at),
            'expiresAt': _ts(self.expires_at),
        }
