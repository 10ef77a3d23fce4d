"""
Unit tests for system program instructions and nonce accounts
"""

import struct
import unittest

from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.system_program import TransferParams
from solders.system_program import transfer as solders_transfer

from solana_txflow.protocols.system import (
    SYSTEM_PROGRAM,
    SYSTEM_PROGRAM_ID,
    SYSVAR_RECENT_BLOCKHASHES_ID,
    NONCE_ACCOUNT_LENGTH,
    NonceAccount,
    transfer,
    create_account,
    create_account_with_seed,
    assign,
    allocate,
    advance_nonce_account,
    initialize_nonce_account,
    withdraw_nonce_account,
    authorize_nonce_account,
    create_nonce_account,
    decode_system_instruction,
    is_advance_nonce,
)
from solana_txflow.types import build_instruction
from solana_txflow.errors import EncodingError, ErrorCode


class TestSystemInstructions(unittest.TestCase):

    def setUp(self):
        self.a = Pubkey.new_unique()
        self.b = Pubkey.new_unique()
        self.owner = Pubkey.new_unique()

    def test_program_id(self):
        self.assertEqual(str(SYSTEM_PROGRAM), SYSTEM_PROGRAM_ID)

    def test_transfer(self):
        ix = transfer(self.a, self.b, 1_000)

        self.assertEqual(ix.program_id, SYSTEM_PROGRAM)
        self.assertEqual(ix.data, struct.pack("<IQ", 2, 1_000))
        self.assertTrue(ix.accounts[0].is_signer and ix.accounts[0].is_writable)
        self.assertFalse(ix.accounts[1].is_signer)
        self.assertTrue(ix.accounts[1].is_writable)

    def test_transfer_negative_lamports(self):
        with self.assertRaises(EncodingError):
            transfer(self.a, self.b, -1)

    def test_create_account(self):
        ix = create_account(self.a, self.b, 500, 80, self.owner)

        self.assertEqual(len(ix.data), 4 + 8 + 8 + 32)
        self.assertEqual(ix.signers, (self.a, self.b))
        decoded = decode_system_instruction(ix)
        self.assertEqual(decoded["type"], "create_account")
        self.assertEqual(decoded["lamports"], 500)
        self.assertEqual(decoded["space"], 80)
        self.assertEqual(decoded["owner"], self.owner)

    def test_create_account_with_seed(self):
        ix = create_account_with_seed(self.a, self.b, self.a, "seed", 1, 2, self.owner)
        decoded = decode_system_instruction(ix)

        self.assertEqual(decoded["seed"], "seed")
        self.assertEqual(decoded["base"], self.a)
        # base equal to funder adds no extra signer
        self.assertEqual(len(ix.accounts), 2)

        other_base = Pubkey.new_unique()
        ix = create_account_with_seed(self.a, self.b, other_base, "seed", 1, 2, self.owner)
        self.assertEqual(len(ix.accounts), 3)
        self.assertTrue(ix.accounts[2].is_signer)

    def test_assign_and_allocate(self):
        self.assertEqual(decode_system_instruction(assign(self.a, self.owner))["owner"], self.owner)
        self.assertEqual(decode_system_instruction(allocate(self.a, 64))["space"], 64)

    def test_advance_nonce(self):
        ix = advance_nonce_account(self.a, self.b)

        self.assertEqual(ix.data, struct.pack("<I", 4))
        self.assertEqual(str(ix.accounts[1].pubkey), SYSVAR_RECENT_BLOCKHASHES_ID)
        self.assertEqual(ix.signers, (self.b,))
        self.assertTrue(is_advance_nonce(ix))
        self.assertFalse(is_advance_nonce(transfer(self.a, self.b, 1)))
        self.assertFalse(is_advance_nonce(None))

    def test_nonce_instructions_decode(self):
        self.assertEqual(
            decode_system_instruction(initialize_nonce_account(self.a, self.b))["authorized"],
            self.b,
        )
        withdraw = withdraw_nonce_account(self.a, self.b, self.owner, 7)
        self.assertEqual(decode_system_instruction(withdraw)["lamports"], 7)
        self.assertEqual(withdraw.signers, (self.b,))

        authorize = authorize_nonce_account(self.a, self.b, self.owner)
        self.assertEqual(decode_system_instruction(authorize)["authorized"], self.owner)

    def test_create_nonce_account(self):
        ixs = create_nonce_account(self.a, self.b, self.owner, 1_447_680)

        self.assertEqual(len(ixs), 2)
        created = decode_system_instruction(ixs[0])
        self.assertEqual(created["space"], NONCE_ACCOUNT_LENGTH)
        self.assertEqual(created["owner"], SYSTEM_PROGRAM)
        self.assertEqual(decode_system_instruction(ixs[1])["type"], "initialize_nonce_account")

    def test_decode_foreign_program(self):
        ix = build_instruction(Pubkey.new_unique(), [], b"\x02\x00\x00\x00")
        with self.assertRaises(EncodingError) as ctx:
            decode_system_instruction(ix)
        self.assertEqual(ctx.exception.code, ErrorCode.INVALID_MESSAGE)

    def test_decode_unknown_index(self):
        ix = build_instruction(SYSTEM_PROGRAM, [], b"\x63\x00\x00\x00")
        with self.assertRaises(EncodingError) as ctx:
            decode_system_instruction(ix)
        self.assertEqual(ctx.exception.code, ErrorCode.INVALID_MESSAGE)

    def test_matches_solders_transfer(self):
        src, dst = Pubkey.new_unique(), Pubkey.new_unique()
        expected = solders_transfer(TransferParams(from_pubkey=src, to_pubkey=dst, lamports=1_000))
        ix = transfer(src, dst, 1_000)

        self.assertEqual(ix.data, bytes(expected.data))
        self.assertEqual(ix.program_id, expected.program_id)


class TestNonceAccount(unittest.TestCase):

    def _data(self, authority, nonce, state=1):
        return struct.pack("<II32s32sQ", 1, state, bytes(authority), bytes(nonce), 5000)

    def test_parse(self):
        authority = Pubkey.new_unique()
        nonce = Hash.new_unique()
        account = NonceAccount.from_bytes(self._data(authority, nonce))

        self.assertTrue(account.is_initialized)
        self.assertEqual(account.authority, authority)
        self.assertEqual(account.nonce, nonce)
        self.assertEqual(account.lamports_per_signature, 5000)

    def test_uninitialized(self):
        account = NonceAccount.from_bytes(self._data(Pubkey.new_unique(), Hash.new_unique(), state=0))
        self.assertFalse(account.is_initialized)

    def test_too_short(self):
        with self.assertRaises(EncodingError):
            NonceAccount.from_bytes(b"\x00" * 10)


if __name__ == "__main__":
    unittest.main()
