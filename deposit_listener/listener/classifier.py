"""
Deposit classification. Pure; depends only on its arguments.
"""

from __future__ import annotations

from deposit_listener.config.settings import EVM_TX_MESSAGE_TYPE
from deposit_listener.listener.models import (
    DepositCandidate,
    DepositCategory,
    WatchTarget,
)


def classify(
    candidate: DepositCandidate,
    target: WatchTarget,
    evm_message_type: str = EVM_TX_MESSAGE_TYPE,
) -> DepositCategory:
    """
    evm: the transaction's message action is the EVM transaction type.
    cast: the target resolved to a cast address and the deposit landed on it.
    direct: everything else.
    """
    if candidate.action_type == evm_message_type:
        return DepositCategory.EVM
    if target.is_cast and candidate.receiver == target.resolved_address:
        return DepositCategory.CAST
    return DepositCategory.DIRECT
