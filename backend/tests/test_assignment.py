import random
from collections import Counter

import pytest

from kingslayer.models import FakeRole, Player, Role, RoleType, Team
from kingslayer.services.games.assignment import assign_rooms, build_servant_info, distribute_roles


@pytest.mark.parametrize('count', [6, 8, 10, 12, 14])
def test_distribute_roles_exact_size_and_balanced_teams(count):
    roles = distribute_roles(count)
    assert len(roles) == count
    teams = Counter(r.team for r in roles)
    assert teams[Team.RED] == teams[Team.BLUE] == count // 2


@pytest.mark.parametrize('count,expected', [
    (6, {RoleType.KING, RoleType.ASSASSIN, RoleType.GATEKEEPER}),
    (8, {RoleType.KING, RoleType.ASSASSIN, RoleType.GATEKEEPER, RoleType.SWORDSMITH}),
    (10, {RoleType.KING, RoleType.ASSASSIN, RoleType.GATEKEEPER, RoleType.SWORDSMITH, RoleType.SPY}),
    (12, {RoleType.KING, RoleType.ASSASSIN, RoleType.GATEKEEPER, RoleType.SWORDSMITH, RoleType.SPY,
          RoleType.GUARD}),
    (14, set(RoleType)),
])
def test_role_kinds_added_at_thresholds(count, expected):
    roles = distribute_roles(count)
    kinds = Counter(r.type for r in roles)
    assert set(kinds) == expected
    # one of each kind per team
    assert all(n == 2 for n in kinds.values())


def test_spy_fake_role_is_shared_and_never_king_or_spy():
    rng = random.Random(7)
    for _ in range(50):
        spies = [r for r in distribute_roles(10, rng=rng) if r.type is RoleType.SPY]
        assert len(spies) == 2
        fake_types = {s.fake_role.type for s in spies}
        assert len(fake_types) == 1
        assert fake_types.isdisjoint({RoleType.KING, RoleType.SPY})
        for spy in spies:
            assert spy.fake_role.team is spy.team.opponent


def test_only_spies_carry_fake_roles():
    for role in distribute_roles(14):
        assert (role.fake_role is not None) == (role.type is RoleType.SPY)


@pytest.mark.parametrize('count', [4, 7, 16])
def test_distribute_roles_rejects_unsupported_counts(count):
    with pytest.raises(ValueError):
        distribute_roles(count)


def test_role_variant_rules_are_enforced():
    with pytest.raises(ValueError):
        Role(RoleType.KING, Team.RED, FakeRole(RoleType.ASSASSIN, Team.BLUE))
    with pytest.raises(ValueError):
        Role(RoleType.SPY, Team.RED)
    with pytest.raises(ValueError):
        Role(RoleType.SPY, Team.RED, FakeRole(RoleType.KING, Team.BLUE))


def test_assign_rooms_partitions_input():
    ids = [f'p{i}' for i in range(12)]
    room0, room1 = assign_rooms(ids)
    assert len(room0) == len(room1) == 6
    assert set(room0) | set(room1) == set(ids)
    assert not set(room0) & set(room1)
    assert ids == [f'p{i}' for i in range(12)]


def test_assign_rooms_odd_split_puts_extra_in_room1():
    room0, room1 = assign_rooms(['a', 'b', 'c'])
    assert (len(room0), len(room1)) == (1, 2)


def test_build_servant_info_pairs_same_team_king():
    players = {
        'rk': Player(id='rk', name='rk', role=Role(RoleType.KING, Team.RED)),
        'bk': Player(id='bk', name='bk', role=Role(RoleType.KING, Team.BLUE)),
        'rs': Player(id='rs', name='rs', role=Role(RoleType.SERVANT, Team.RED)),
        'bs': Player(id='bs', name='bs', role=Role(RoleType.SERVANT, Team.BLUE)),
        'ra': Player(id='ra', name='ra', role=Role(RoleType.ASSASSIN, Team.RED)),
    }
    assert build_servant_info(players) == {'rs': 'rk', 'bs': 'bk'}
