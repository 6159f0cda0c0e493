import pytest

from splitgroups.services.balance_service import compute_group_balances
from tests.ledger_helpers import add_expense, make_group


def test_equal_split_balances():
    g = make_group(1, {2: "accepted", 3: "accepted"})
    add_expense(g, 1, {1: 33.33, 2: 33.33, 3: 33.33})

    nets = compute_group_balances(g)

    assert nets[1] == pytest.approx(66.66)
    assert nets[2] == pytest.approx(-33.33)
    assert nets[3] == pytest.approx(-33.33)


def test_seeds_creator_and_accepted_members_only():
    g = make_group(1, {2: "accepted", 3: "pending", 4: "declined"})

    assert compute_group_balances(g) == {1: 0.0, 2: 0.0}


def test_settled_splits_do_not_count():
    g = make_group(1, {2: "accepted", 3: "accepted"})
    add_expense(g, 1, {1: 10, 2: 10, 3: 10}, settled={2})

    nets = compute_group_balances(g)

    assert nets == {1: 10.0, 2: 0.0, 3: -10.0}


def test_payer_share_is_ignored():
    g = make_group(1, {2: "accepted"})
    add_expense(g, 2, {1: 40, 2: 60})

    assert compute_group_balances(g) == {1: -40.0, 2: 40.0}


def test_departed_member_drops_out_of_balances():
    g = make_group(1, {2: "accepted"})
    add_expense(g, 1, {1: 20, 2: 20, 3: 20})  # user 3 has left

    nets = compute_group_balances(g)

    assert 3 not in nets
    assert nets == {1: 20.0, 2: -20.0}


def test_balances_sum_to_zero():
    g = make_group(1, {2: "accepted", 3: "accepted", 4: "accepted"})
    add_expense(g, 1, {1: 25.5, 2: 25.5, 3: 25.5, 4: 25.5})
    add_expense(g, 2, {1: 12.34, 3: 7.66, 4: 30})
    add_expense(g, 4, {2: 0.01, 3: 99.99}, settled={3})
    add_expense(g, 3, {1: 33.33, 2: 33.33, 3: 33.33})

    nets = compute_group_balances(g)

    assert sum(nets.values()) == pytest.approx(0, abs=0.01)
