"""Shape checks for inbound payloads, applied before anything reaches a game."""
import re

from kingslayer.models import MAX_PLAYERS, MIN_PLAYERS

ROOM_CODE_RE = re.compile(r'^[A-Z0-9]{6}$')
MAX_NAME_LENGTH = 20


class ValidationError(ValueError):
    pass


def _payload(data):
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Payload must be an object')
    return data


def player_name(value):
    if not isinstance(value, str):
        raise ValidationError('playerName is required')
    name = value.strip()
    if not 1 <= len(name) <= MAX_NAME_LENGTH:
        raise ValidationError(f'playerName must be 1-{MAX_NAME_LENGTH} characters')
    return name


def player_count(value):
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError('playerCount must be an integer')
    if not MIN_PLAYERS <= value <= MAX_PLAYERS or value % 2:
        raise ValidationError(f'playerCount must be even and between {MIN_PLAYERS} and {MAX_PLAYERS}')
    return value


def room_code(value):
    if not isinstance(value, str) or not ROOM_CODE_RE.match(value.upper()):
        raise ValidationError('roomCode must be 6 characters A-Z or 0-9')
    return value.upper()


def room_index(value):
    if isinstance(value, bool) or value not in (0, 1):
        raise ValidationError('room must be 0 or 1')
    return value


def player_ref(value, field_name, nullable=False):
    if value is None and nullable:
        return None
    if not isinstance(value, str) or not value:
        raise ValidationError(f'{field_name} is required')
    return value


def create_game(data):
    data = _payload(data)
    return player_name(data.get('playerName')), player_count(data.get('playerCount'))


def join_game(data):
    data = _payload(data)
    return room_code(data.get('roomCode')), player_name(data.get('playerName')), bool(data.get('reconnect', False))


def confirm_room(data):
    return room_index(_payload(data).get('room'))


def target(data, field_name='targetId', nullable=False):
    return player_ref(_payload(data).get(field_name), field_name, nullable=nullable)
