from collections import Counter
from typing import Optional

from kingslayer.models import GameSession, now_ms


def majority_needed(room_size: int) -> int:
    return room_size // 2 + 1


def check_leader_election(game: GameSession, room_index: int) -> Optional[str]:
    """Recount pointing in one room and install a majority leader if there is one.

    Only pointing between players of the same room counts. Without a strict
    majority nothing changes; the sitting leader keeps the role. The room's
    cooldown is never touched here.

    Returns the id of a newly elected leader, or None when leadership did not change.
    """
    room = game.rooms[room_index]
    members = set(room.players)
    tally = Counter(
        game.players[pid].pointing_at
        for pid in room.players
        if pid in game.players and game.players[pid].pointing_at in members
    )
    needed = majority_needed(len(room.players))
    winner = next((pid for pid, count in tally.items() if count >= needed), None)
    if winner is None or winner == room.leader_id:
        return None

    if room.leader_id and room.leader_id in game.players:
        game.players[room.leader_id].is_leader = False
    room.leader_id = winner
    room.leader_elected_at = now_ms()
    game.players[winner].is_leader = True
    return winner
