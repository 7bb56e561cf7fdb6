from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
import random
import string
import time
import uuid

LEADER_COOLDOWN_SEC = 120
MIN_PLAYERS = 6
MAX_PLAYERS = 14
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


class Phase(str, Enum):
    LOBBY = 'lobby'
    SETUP = 'setup'
    PLAYING = 'playing'
    ENDED = 'ended'


class Team(str, Enum):
    RED = 'RED'
    BLUE = 'BLUE'

    @property
    def opponent(self) -> 'Team':
        return Team.BLUE if self is Team.RED else Team.RED


class RoleType(str, Enum):
    KING = 'KING'
    ASSASSIN = 'ASSASSIN'
    GATEKEEPER = 'GATEKEEPER'
    SWORDSMITH = 'SWORDSMITH'
    GUARD = 'GUARD'
    SPY = 'SPY'
    SERVANT = 'SERVANT'


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_room_code(length=6):
    """Generate a short room code from A-Z0-9. Uniqueness is the registry's job."""
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))


def generate_player_id():
    return str(uuid.uuid4())


@dataclass(frozen=True)
class FakeRole:
    """The identity a Spy shows to other players. Never truthful."""
    type: RoleType
    team: Team

    def to_dict(self):
        return {'type': self.type.value, 'team': self.team.value}


@dataclass(frozen=True)
class Role:
    type: RoleType
    team: Team
    fake_role: Optional[FakeRole] = None

    def __post_init__(self):
        if (self.fake_role is not None) != (self.type is RoleType.SPY):
            raise ValueError('fake_role is carried by SPY and only by SPY')
        if self.fake_role is not None and self.fake_role.type in (RoleType.KING, RoleType.SPY):
            raise ValueError(f'{self.fake_role.type.value} cannot be used as a fake role')

    def to_dict(self):
        data = {'type': self.type.value, 'team': self.team.value}
        if self.fake_role is not None:
            data['fakeRole'] = self.fake_role.to_dict()
        return data


@dataclass
class Player:
    id: str
    name: str
    sid: Optional[str] = None
    connected: bool = True
    role: Optional[Role] = None
    current_room: int = 0
    is_host: bool = False
    is_ready: bool = False
    is_role_ready: bool = False
    is_room_confirmed: bool = False
    has_used_ability: bool = False
    can_assassinate: bool = False
    is_leader: bool = False
    pointing_at: Optional[str] = None

    def reset_for_lobby(self):
        self.role = None
        self.current_room = 0
        self.is_ready = False
        self.is_role_ready = False
        self.is_room_confirmed = False
        self.has_used_ability = False
        self.can_assassinate = False
        self.is_leader = False
        self.pointing_at = None

    def to_dict(self):
        data = {
            'id': self.id,
            'name': self.name,
            'connected': self.connected,
            'currentRoom': self.current_room,
            'isHost': self.is_host,
            'isReady': self.is_ready,
            'isRoleReady': self.is_role_ready,
            'isRoomConfirmed': self.is_room_confirmed,
            'hasUsedAbility': self.has_used_ability,
            'canAssassinate': self.can_assassinate,
            'isLeader': self.is_leader,
            'pointingAt': self.pointing_at,
        }
        if self.role is not None:
            data['role'] = self.role.to_dict()
        return data


@dataclass
class Room:
    players: List[str] = field(default_factory=list)
    leader_id: Optional[str] = None
    leader_elected_at: Optional[int] = None

    def discard(self, player_id: str) -> None:
        self.players = [pid for pid in self.players if pid != player_id]

    def to_dict(self):
        data = {'players': list(self.players)}
        if self.leader_id is not None:
            data['leaderId'] = self.leader_id
            data['leaderElectedAt'] = self.leader_elected_at
        return data


@dataclass
class RoomTimer:
    cooldown: Optional[int] = None
    started_at: Optional[int] = None

    def start(self, seconds: int) -> None:
        self.cooldown = seconds
        self.started_at = now_ms()

    def tick(self) -> bool:
        """Decrement by one second, never below zero. Returns True if the value changed."""
        if self.cooldown and self.cooldown > 0:
            self.cooldown -= 1
            return True
        return False


@dataclass(frozen=True)
class Victory:
    winner: Team
    reason: str

    def to_dict(self):
        return {'winner': self.winner.value, 'reason': self.reason}


@dataclass
class GameSession:
    room_code: str
    player_count: int
    original_host_id: str
    phase: Phase = Phase.LOBBY
    players: Dict[str, Player] = field(default_factory=dict)
    rooms: List[Room] = field(default_factory=lambda: [Room(), Room()])
    timers: List[RoomTimer] = field(default_factory=lambda: [RoomTimer(), RoomTimer()])
    # servant id -> king id, only for 14-player games
    servant_info: Optional[Dict[str, str]] = None
    victory: Optional[Victory] = None

    @property
    def host(self) -> Optional[Player]:
        return next((p for p in self.players.values() if p.is_host), None)

    def find_by_name(self, name: str) -> Optional[Player]:
        lowered = name.lower()
        return next((p for p in self.players.values() if p.name.lower() == lowered), None)

    def timer_values(self):
        return {
            'room0Timer': self.timers[0].cooldown,
            'room1Timer': self.timers[1].cooldown,
        }

    def to_dict(self):
        timers = {}
        for idx, timer in enumerate(self.timers):
            if timer.cooldown is not None:
                timers[f'room{idx}LeaderCooldown'] = timer.cooldown
                timers[f'room{idx}TimerStarted'] = timer.started_at
        data = {
            'id': self.room_code,
            'roomCode': self.room_code,
            'phase': self.phase.value,
            'playerCount': self.player_count,
            'players': {pid: p.to_dict() for pid, p in self.players.items()},
            'rooms': [room.to_dict() for room in self.rooms],
            'timers': timers,
        }
        if self.servant_info is not None:
            data['servantInfo'] = dict(self.servant_info)
        if self.victory is not None:
            data['victory'] = self.victory.to_dict()
        return data
