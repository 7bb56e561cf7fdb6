import random
from typing import Dict, List, Sequence, Tuple

from kingslayer.models import FakeRole, Player, Role, RoleType, Team

BASE_ROLE_TYPES = (RoleType.KING, RoleType.ASSASSIN, RoleType.GATEKEEPER)

# (minimum player count, role type added for each team)
ROLE_THRESHOLDS = (
    (8, RoleType.SWORDSMITH),
    (10, RoleType.SPY),
    (12, RoleType.GUARD),
    (14, RoleType.SERVANT),
)

SPY_FAKE_ROLE_CHOICES = tuple(
    rt for rt in RoleType if rt not in (RoleType.KING, RoleType.SPY)
)


def distribute_roles(player_count: int, rng=random) -> List[Role]:
    """Return exactly ``player_count`` roles, split evenly between the teams, shuffled.

    Both spies share one randomly drawn fake role type; each spy poses as a
    member of the opposing team.
    """
    if player_count % 2 or not 6 <= player_count <= 14:
        raise ValueError(f'Unsupported player count: {player_count}')

    roles: List[Role] = []
    for role_type in BASE_ROLE_TYPES:
        roles.append(Role(role_type, Team.RED))
        roles.append(Role(role_type, Team.BLUE))

    for threshold, role_type in ROLE_THRESHOLDS:
        if player_count < threshold:
            continue
        if role_type is RoleType.SPY:
            fake_type = rng.choice(SPY_FAKE_ROLE_CHOICES)
            for team in (Team.RED, Team.BLUE):
                roles.append(Role(RoleType.SPY, team, FakeRole(fake_type, team.opponent)))
        else:
            roles.append(Role(role_type, Team.RED))
            roles.append(Role(role_type, Team.BLUE))

    rng.shuffle(roles)
    return roles


def assign_rooms(player_ids: Sequence[str], rng=random) -> Tuple[List[str], List[str]]:
    """Shuffle and split at the floor midpoint: (room0, room1)."""
    shuffled = list(player_ids)
    rng.shuffle(shuffled)
    midpoint = len(shuffled) // 2
    return shuffled[:midpoint], shuffled[midpoint:]


def build_servant_info(players: Dict[str, Player]) -> Dict[str, str]:
    """Map each servant to the king of the same team."""
    kings = {
        p.role.team: pid for pid, p in players.items()
        if p.role is not None and p.role.type is RoleType.KING
    }
    info = {}
    for pid, p in players.items():
        if p.role is None or p.role.type is not RoleType.SERVANT:
            continue
        king_id = kings.get(p.role.team)
        if king_id:
            info[pid] = king_id
    return info
