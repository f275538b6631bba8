"""
Tests for deposit classification precedence: evm, then cast, then direct.
"""

from __future__ import annotations

from deposit_listener.config.settings import EVM_TX_MESSAGE_TYPE
from deposit_listener.listener.classifier import classify
from deposit_listener.listener.models import (
    DepositCandidate,
    DepositCategory,
    ResolutionState,
    WatchTarget,
)

WATCHED = "sei1watched"


def _candidate(action_type="/cosmos.bank.v1beta1.MsgSend", receiver=WATCHED):
    return DepositCandidate(
        hash="H",
        height=1,
        action_type=action_type,
        amount="1usei",
        receiver=receiver,
    )


def _target(state):
    return WatchTarget(
        raw_identifier="0x" + "11" * 20,
        resolved_address=WATCHED,
        state=state,
        prefix="sei",
    )


def test_evm_action_is_evm_regardless_of_receiver():
    candidate = _candidate(action_type=EVM_TX_MESSAGE_TYPE, receiver="sei1elsewhere")
    assert classify(candidate, _target(ResolutionState.REGISTERED)) is DepositCategory.EVM


def test_evm_takes_precedence_over_cast():
    candidate = _candidate(action_type=EVM_TX_MESSAGE_TYPE)
    assert classify(candidate, _target(ResolutionState.CAST)) is DepositCategory.EVM


def test_cast_target_receiving_is_cast():
    assert classify(_candidate(), _target(ResolutionState.CAST)) is DepositCategory.CAST


def test_cast_target_other_receiver_is_direct():
    candidate = _candidate(receiver="sei1elsewhere")
    assert classify(candidate, _target(ResolutionState.CAST)) is DepositCategory.DIRECT


def test_non_cast_targets_are_direct():
    for state in (ResolutionState.REGISTERED, ResolutionState.CONTRACT, ResolutionState.UNRESOLVED):
        assert classify(_candidate(), _target(state)) is DepositCategory.DIRECT


def test_custom_evm_message_type():
    """Another chain's EVM message type can be configured."""
    candidate = _candidate(action_type="/other.evm.MsgTx")
    target = _target(ResolutionState.REGISTERED)
    assert classify(candidate, target) is DepositCategory.DIRECT
    assert classify(candidate, target, evm_message_type="/other.evm.MsgTx") is DepositCategory.EVM
