import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from kingslayer.errors import GameError
from kingslayer.models import (
    LEADER_COOLDOWN_SEC, GameSession, Phase, Player, generate_player_id, generate_room_code,
)
from . import session

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 1000


@dataclass
class JoinResult:
    game: Optional[GameSession] = None
    player_id: Optional[str] = None
    error: Optional[GameError] = None
    is_reconnection: bool = False

    @property
    def success(self) -> bool:
        return self.error is None


class GameRegistry:
    """Owns every live game, keyed by room code, plus the player -> room code index.

    Callers take ``lock`` around each unit of work so that requests and timer
    ticks are applied one at a time.
    """

    def __init__(self, cooldown_sec: int = LEADER_COOLDOWN_SEC, code_length: int = 6):
        self.cooldown_sec = cooldown_sec
        self.code_length = code_length
        self.lock = threading.RLock()
        self._games: Dict[str, GameSession] = {}
        self._player_games: Dict[str, str] = {}

    def __len__(self):
        return len(self._games)

    def __contains__(self, room_code):
        return room_code.upper() in self._games

    def _unique_room_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_room_code(self.code_length)
            if code not in self:
                return code
        raise RuntimeError('Unable to allocate a unique room code')

    # ---- lifecycle ----

    def create_game(self, host_name: str, player_count: int, sid: Optional[str] = None) -> Tuple[GameSession, str]:
        room_code = self._unique_room_code()
        player_id = generate_player_id()
        game = GameSession(room_code=room_code, player_count=player_count, original_host_id=player_id)
        game.players[player_id] = Player(id=player_id, name=host_name, sid=sid, is_host=True)
        self._games[room_code] = game
        self._player_games[player_id] = room_code
        logger.info(f"[game-created] game={room_code} host={player_id} size={player_count}")
        return game, player_id

    def join_game(self, room_code: str, player_name: str, sid: Optional[str] = None,
                  reconnect: bool = False) -> JoinResult:
        game = self.get_game(room_code)
        if game is None:
            return JoinResult(error=GameError.GAME_NOT_FOUND)

        if reconnect:
            existing = game.find_by_name(player_name)
            if existing is not None and not existing.connected:
                existing.sid = sid
                existing.connected = True
                self._player_games[existing.id] = game.room_code
                if game.host is None:
                    existing.is_host = True
                    logger.info(f"[host-restore] game={game.room_code} host={existing.id}")
                logger.info(f"[reconnect] game={game.room_code} player={existing.id}")
                return JoinResult(game=game, player_id=existing.id, is_reconnection=True)

        if game.phase is not Phase.LOBBY:
            return JoinResult(error=GameError.GAME_IN_PROGRESS)
        if len(game.players) >= game.player_count:
            return JoinResult(error=GameError.GAME_FULL)
        if game.find_by_name(player_name) is not None:
            return JoinResult(error=GameError.NAME_TAKEN)

        player_id = generate_player_id()
        game.players[player_id] = Player(id=player_id, name=player_name, sid=sid)
        self._player_games[player_id] = game.room_code
        logger.info(f"[player-joined] game={game.room_code} player={player_id} ({len(game.players)}/{game.player_count})")
        return JoinResult(game=game, player_id=player_id)

    def _remove_player(self, game: GameSession, player_id: str) -> Player:
        player = game.players.pop(player_id)
        self._player_games.pop(player_id, None)
        for room in game.rooms:
            room.discard(player_id)
            if room.leader_id == player_id:
                room.leader_id = None
        # the departed player may have been the last one holding setup back
        session.begin_playing_if_ready(game, self.cooldown_sec)
        return player

    def leave_game(self, player_id: str) -> Optional[GameSession]:
        """Remove a player. Returns the surviving game, or None if it was destroyed (or never existed)."""
        game = self.get_game_by_player_id(player_id)
        if game is None or player_id not in game.players:
            return None

        departed = self._remove_player(game, player_id)
        if not game.players:
            del self._games[game.room_code]
            logger.info(f"[game-destroyed] game={game.room_code} last player left")
            return None

        if departed.is_host:
            new_host = next(iter(game.players.values()))
            new_host.is_host = True
            logger.info(f"[host-transfer] game={game.room_code} {departed.name} -> {new_host.name}")
        return game

    def kick_player(self, host_id: str, target_id: str) -> Optional[GameSession]:
        game = self.get_game_by_player_id(host_id)
        if game is None or host_id == target_id:
            return None
        host = game.players.get(host_id)
        if host is None or not host.is_host or target_id not in game.players:
            return None
        self._remove_player(game, target_id)
        logger.info(f"[kick] game={game.room_code} target={target_id}")
        return game

    # ---- connections ----

    def disconnect_player(self, player_id: str) -> Optional[GameSession]:
        game = self.get_game_by_player_id(player_id)
        if game is None or player_id not in game.players:
            return None
        player = game.players[player_id]
        player.connected = False
        player.sid = None
        logger.info(f"[disconnect] game={game.room_code} player={player_id} phase={game.phase.value}")
        return game

    # ---- lookups ----

    def get_game(self, room_code: str) -> Optional[GameSession]:
        if not room_code:
            return None
        return self._games.get(room_code.upper())

    def get_game_by_player_id(self, player_id: str) -> Optional[GameSession]:
        room_code = self._player_games.get(player_id)
        return self._games.get(room_code) if room_code else None

    def playing_games(self) -> List[GameSession]:
        return [g for g in self._games.values() if g.phase is Phase.PLAYING]
