"""Named failures raised by the session state machine.

Each error carries a ``kind`` from a closed set so transports can map it to
a status without inspecting messages.
"""

VALIDATION = 'validation'
STATE = 'state'
AUTHORIZATION = 'authorization'
NOT_FOUND = 'not_found'
STORAGE = 'storage'

ERROR_KINDS = (VALIDATION, STATE, AUTHORIZATION, NOT_FOUND, STORAGE)


class GameError(Exception):
    kind = STATE
    default_message = 'Game error'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


# Validation
class InvalidNickname(GameError):
    kind = VALIDATION
    default_message = 'Invalid nickname'


class EmptyResponse(GameError):
    kind = VALIDATION
    default_message = 'Response cannot be empty'


class IncompleteGuesses(GameError):
    kind = VALIDATION
    default_message = 'Must guess for all responses'


# State
class WrongPhase(GameError):
    default_message = 'Action not allowed in the current phase'


class AlreadySubmitted(GameError):
    default_message = 'Already submitted this round'


class SessionFull(GameError):
    default_message = 'Game is full'


class SessionInProgress(GameError):
    default_message = 'Cannot join game in progress'


class NicknameTaken(GameError):
    default_message = 'Nickname already taken'


class ConcurrentUpdate(GameError):
    default_message = 'Game was modified concurrently, please retry'


# Authorization
class NotHost(GameError):
    kind = AUTHORIZATION
    default_message = 'Only the host can do that'


# Not found
class SessionNotFound(GameError):
    kind = NOT_FOUND
    default_message = 'Game not found'


class PlayerNotFound(GameError):
    kind = NOT_FOUND
    default_message = 'Player not found'


class UnknownResponseId(GameError):
    kind = NOT_FOUND
    default_message = 'Invalid response ID'


class UnknownPlayerId(GameError):
    kind = NOT_FOUND
    default_message = 'Invalid player ID in guess'


# Storage
class StorageError(GameError):
    kind = STORAGE
    default_message = 'Game storage unavailable'


class CodeGenerationExhausted(StorageError):
    default_message = 'Failed to generate unique game code'
