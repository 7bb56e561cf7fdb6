from enum import Enum


class GameError(str, Enum):
    VALIDATION_ERROR = 'VALIDATION_ERROR'
    CREATE_FAILED = 'CREATE_FAILED'
    GAME_NOT_FOUND = 'GAME_NOT_FOUND'
    GAME_FULL = 'GAME_FULL'
    NAME_TAKEN = 'NAME_TAKEN'
    GAME_IN_PROGRESS = 'GAME_IN_PROGRESS'
    NOT_IN_GAME = 'NOT_IN_GAME'
    NOT_HOST = 'NOT_HOST'
    START_FAILED = 'START_FAILED'
    INVALID_ACTION = 'INVALID_ACTION'


ERROR_MESSAGES = {
    GameError.VALIDATION_ERROR: 'Invalid request',
    GameError.CREATE_FAILED: 'Failed to create game',
    GameError.GAME_NOT_FOUND: 'Game not found',
    GameError.GAME_FULL: 'Game is full',
    GameError.NAME_TAKEN: 'That name is already taken in this game',
    GameError.GAME_IN_PROGRESS: 'Game already in progress',
    GameError.NOT_IN_GAME: 'You are not in a game',
    GameError.NOT_HOST: 'Only the host can do that',
    GameError.START_FAILED: 'Cannot start game',
    GameError.INVALID_ACTION: 'That action is not allowed right now',
}


def error_payload(code: GameError, message: str = None) -> dict:
    return {'message': message or ERROR_MESSAGES[code], 'code': code.value}
