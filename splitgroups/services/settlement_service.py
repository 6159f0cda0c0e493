# splitgroups/services/settlement_service.py
import logging
import math
from datetime import datetime
from typing import Dict, List, Sequence, Tuple
from sqlalchemy import update
from sqlmodel import Session, col

from splitgroups.errors import ConcurrentUpdate, Forbidden, InvalidAmount, NotFound
from splitgroups.models.expense import ExpenseSplit
from splitgroups.models.group import SplitGroup
from splitgroups.models.user import User
from splitgroups.services.balance_service import compute_group_balances
from splitgroups.services import notification_service, transaction_service
from splitgroups.services.group_service import load_group

logger = logging.getLogger(__name__)

SETTLEMENT_CATEGORY = "Split Group Settlement"
EPSILON = 0.005
MAX_ATTEMPTS = 3


def suggest_settlements(nets: Dict[int, float]) -> List[dict]:
    creditors = [[uid, amt] for uid, amt in nets.items() if amt > EPSILON]
    debtors = [[uid, -amt] for uid, amt in nets.items() if amt < -EPSILON]
    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)
    i = j = 0
    settlements = []
    while i < len(creditors) and j < len(debtors):
        creditor_id, cred_amt = creditors[i]
        debtor_id, debt_amt = debtors[j]
        pay = min(cred_amt, debt_amt)
        if pay > 0:
            settlements.append({"from": debtor_id, "to": creditor_id, "amount": round(pay, 2)})
        creditors[i][1] = cred_amt - pay
        debtors[j][1] = debt_amt - pay
        # half a cent absorbs float noise left over from the subtraction
        if creditors[i][1] <= EPSILON:
            i += 1
        if debtors[j][1] <= EPSILON:
            j += 1
    return settlements


def get_simplified_debts(group: SplitGroup) -> List[dict]:
    return suggest_settlements(compute_group_balances(group))


def select_splits_to_settle(group: SplitGroup, payer_id: int, member_id: int, amount: float) -> Tuple[List[ExpenseSplit], float]:
    """Pick the payer's open splits on expenses paid by member_id, oldest first.

    Only whole splits are taken; a split that does not fit in what is left of
    ``amount`` stays open and the scan moves on to the next one.
    """
    chosen = []
    total = 0.0
    for e in group.expenses:
        if e.paid_by != member_id:
            continue
        for split in e.splits:
            if split.user_id != payer_id or split.settled:
                continue
            if round(total + split.amount, 2) <= amount:
                chosen.append(split)
                total = round(total + split.amount, 2)
    return chosen, total


def claim_splits(session: Session, splits: Sequence[ExpenseSplit], when: datetime) -> bool:
    """Mark splits settled only where they are still open.

    Returns False when another writer settled any of them first; the caller
    must roll back since some rows may already be claimed in this transaction.
    """
    if not splits:
        return True
    ids = [s.id for s in splits]
    result = session.connection().execute(
        update(ExpenseSplit)
        .where(col(ExpenseSplit.id).in_(ids), ExpenseSplit.settled == False)  # noqa: E712
        .values(settled=True, settled_at=when)
    )
    return result.rowcount == len(ids)


def settle_with_member(session: Session, group_id: int, payer: User, member_id: int, amount: float) -> float:
    if amount is None or not math.isfinite(amount) or amount <= 0:
        raise InvalidAmount("Settlement amount must be positive")

    for attempt in range(1, MAX_ATTEMPTS + 1):
        group = load_group(session, group_id, for_update=True)
        if not group.is_participant(payer.id):
            raise Forbidden("Only group members can settle")
        if member_id == payer.id or not group.is_participant(member_id):
            raise NotFound("Member not found in this group")

        splits, settled_amount = select_splits_to_settle(group, payer.id, member_id, amount)
        now = datetime.utcnow()
        if not claim_splits(session, splits, now):
            session.rollback()
            logger.warning("Splits in group %s were settled concurrently, retrying (%d/%d)",
                           group_id, attempt, MAX_ATTEMPTS)
            continue

        if group.auto_settle_transaction and settled_amount > 0:
            transaction_service.create_transaction(
                session,
                user_id=payer.id,
                type="expense",
                amount=settled_amount,
                description=f'Settlement in "{group.name}"',
                category=SETTLEMENT_CATEGORY,
                date=now,
            )
        group_name = group.name
        session.commit()
        break
    else:
        raise ConcurrentUpdate("Group changed while settling, try again")

    logger.info("User %s settled %.2f of %.2f with user %s in group %s",
                payer.id, settled_amount, amount, member_id, group_id)

    notification_service.create_notification(
        session,
        member_id,
        "settlement_received",
        "Settlement Received",
        f'{payer.name} settled {settled_amount:.2f} with you in "{group_name}"',
        {"groupId": group_id, "amount": settled_amount},
    )
    return settled_amount
