"""
Read-only checks against a live RPC endpoint
"""

import pytest

from solana_txflow import BlockhashAnchor
from solana_txflow.protocols.system import NONCE_ACCOUNT_LENGTH

pytestmark = pytest.mark.integration


def test_latest_blockhash_has_validity_window(rpc):
    anchor = rpc.get_latest_blockhash()
    height = rpc.get_block_height()

    assert isinstance(anchor, BlockhashAnchor)
    assert anchor.last_valid_block_height is not None
    assert anchor.last_valid_block_height >= height
    assert not anchor.is_expired(height)


def test_slot_advances(rpc):
    assert rpc.get_slot() > 0


def test_rent_exemption_for_nonce_account(rpc):
    lamports = rpc.get_minimum_balance_for_rent_exemption(NONCE_ACCOUNT_LENGTH)
    assert lamports > 0


def test_unknown_signature_has_no_status(rpc):
    unseen = "1" * 64
    assert rpc.get_signature_status(unseen) is None
