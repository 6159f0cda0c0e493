import threading
from datetime import datetime

import pytest
from sqlmodel import Session, SQLModel, create_engine, select

from splitgroups.errors import ConcurrentUpdate, Forbidden, InvalidAmount, NotFound
from splitgroups.models.expense import SplitType
from splitgroups.models.notification import Notification
from splitgroups.models.transaction import Transaction
from splitgroups.models.user import User
from splitgroups.services import expense_service, group_service, settlement_service
from splitgroups.services.balance_service import compute_group_balances
from splitgroups.services.settlement_service import (
    SETTLEMENT_CATEGORY, claim_splits, select_splits_to_settle, settle_with_member,
)
from tests.ledger_helpers import add_expense, make_group


def owe(session, group, payer, creditor, amount):
    """Record an expense paid by ``creditor`` where ``payer`` owes ``amount``."""
    return expense_service.add_expense(
        session, group.id, creditor, "Share", amount * 2, SplitType.custom,
        [{"user_id": creditor.id, "amount": amount}, {"user_id": payer.id, "amount": amount}],
    )


def test_only_whole_splits_are_settled(session, users, group):
    first = owe(session, group, users["b"], users["a"], 25)
    second = owe(session, group, users["b"], users["a"], 15)

    settled = settle_with_member(session, group.id, users["b"], users["a"].id, 30)

    assert settled == 25
    session.refresh(first); session.refresh(second)
    b_first = next(s for s in first.splits if s.user_id == users["b"].id)
    b_second = next(s for s in second.splits if s.user_id == users["b"].id)
    assert b_first.settled and b_first.settled_at is not None
    assert not b_second.settled
    assert compute_group_balances(group)[users["b"].id] == pytest.approx(-15)


def test_later_smaller_split_can_still_fit():
    g = make_group(1, {2: "accepted"})
    add_expense(g, 1, {1: 25, 2: 25})
    add_expense(g, 1, {1: 15, 2: 15})
    add_expense(g, 1, {1: 5, 2: 5})

    splits, total = select_splits_to_settle(g, 2, 1, 30)

    assert [s.amount for s in splits] == [25, 5]
    assert total == 30


def test_only_debts_to_that_member_are_settled():
    g = make_group(1, {2: "accepted", 3: "accepted"})
    add_expense(g, 3, {2: 10, 3: 10})
    add_expense(g, 1, {2: 10, 1: 10}, settled={2})

    assert select_splits_to_settle(g, 2, 1, 50) == ([], 0.0)


def test_records_transaction_and_notifies(session, users, group):
    owe(session, group, users["b"], users["c"], 12.5)

    settled = settle_with_member(session, group.id, users["b"], users["c"].id, 12.5)

    assert settled == 12.5
    tx = session.exec(select(Transaction)).one()
    assert tx.user_id == users["b"].id
    assert tx.type == "expense"
    assert tx.amount == 12.5
    assert tx.category == SETTLEMENT_CATEGORY
    assert tx.description == 'Settlement in "Trip"'
    received = session.exec(
        select(Notification).where(Notification.user_id == users["c"].id, Notification.type == "settlement_received")
    ).all()
    assert len(received) == 1


def test_no_transaction_when_nothing_settled_or_disabled(session, users, group):
    assert settle_with_member(session, group.id, users["b"], users["c"].id, 10) == 0
    assert session.exec(select(Transaction)).all() == []

    group_service.update_group(session, group.id, users["a"], auto_settle_transaction=False)
    owe(session, group, users["b"], users["c"], 10)
    assert settle_with_member(session, group.id, users["b"], users["c"].id, 10) == 10
    assert session.exec(select(Transaction)).all() == []


def test_settle_validation(session, users, group):
    with pytest.raises(InvalidAmount):
        settle_with_member(session, group.id, users["b"], users["a"].id, 0)
    with pytest.raises(Forbidden):
        settle_with_member(session, group.id, users["d"], users["a"].id, 10)
    with pytest.raises(NotFound):
        settle_with_member(session, group.id, users["b"], users["d"].id, 10)
    with pytest.raises(NotFound):
        settle_with_member(session, group.id, users["b"], users["b"].id, 10)


@pytest.mark.parametrize("amount", [float("nan"), float("inf")])
def test_settle_rejects_non_finite_amount(session, users, group, amount):
    owe(session, group, users["b"], users["a"], 10)

    with pytest.raises(InvalidAmount):
        settle_with_member(session, group.id, users["b"], users["a"].id, amount)
    assert session.exec(select(Transaction)).all() == []


def test_claim_skips_already_settled_split(session, users, group):
    e = owe(session, group, users["b"], users["a"], 10)
    split = next(s for s in e.splits if s.user_id == users["b"].id)

    assert claim_splits(session, [split], datetime.utcnow()) is True
    assert claim_splits(session, [split], datetime.utcnow()) is False
    session.rollback()


def test_gives_up_when_splits_keep_changing(session, users, group, monkeypatch):
    owe(session, group, users["b"], users["a"], 10)
    monkeypatch.setattr(settlement_service, "claim_splits", lambda *args: False)

    with pytest.raises(ConcurrentUpdate):
        settle_with_member(session, group.id, users["b"], users["a"].id, 10)
    assert session.exec(select(Transaction)).all() == []


def test_concurrent_settles_claim_a_split_once(tmp_path, monkeypatch):
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        alice = User(name="Alice", email="alice@example.com")
        bob = User(name="Bob", email="bob@example.com")
        s.add(alice); s.add(bob); s.commit()
        g = group_service.create_group(s, alice, "Trip")
        group_service.invite_member(s, g.id, alice, bob.email)
        group_service.respond_to_invite(s, g.id, bob, True)
        owe(s, g, bob, alice, 25)
        group_id, alice_id, bob_id = g.id, alice.id, bob.id

    # both writers pick the same open split before either one writes
    barrier = threading.Barrier(2)
    seen = threading.local()
    real_select = settlement_service.select_splits_to_settle

    def select_then_wait(*args):
        picked = real_select(*args)
        if not getattr(seen, "waited", False):
            seen.waited = True
            barrier.wait(timeout=10)
        return picked

    monkeypatch.setattr(settlement_service, "select_splits_to_settle", select_then_wait)

    results, errors = [], []

    def settle():
        try:
            with Session(engine) as s:
                results.append(settle_with_member(s, group_id, s.get(User, bob_id), alice_id, 25))
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=settle) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    assert sorted(results) == [0, 25]
    with Session(engine) as s:
        assert [tx.amount for tx in s.exec(select(Transaction)).all()] == [25]
    engine.dispose()
