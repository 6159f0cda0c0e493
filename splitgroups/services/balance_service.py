# splitgroups/services/balance_service.py
from typing import Dict
from splitgroups.models.group import SplitGroup

def compute_group_balances(group: SplitGroup) -> Dict[int, float]:
    """Net balance per participant: positive is owed to them, negative they owe.

    Only unsettled splits count. A split is applied only when both its user
    and the payer are current participants, so the map always sums to zero.
    """
    nets = {uid: 0.0 for uid in group.participant_ids()}

    for e in group.expenses:
        payer_id = e.paid_by
        if payer_id not in nets:
            continue
        for split in e.splits:
            if split.settled or split.user_id == payer_id:
                continue
            if split.user_id not in nets:
                continue
            nets[payer_id] += split.amount
            nets[split.user_id] -= split.amount

    for k in nets:
        nets[k] = round(nets[k], 2)
    return nets
