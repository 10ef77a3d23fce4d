"""
System program and sysvar constants
"""

from ...infra.layout import InstructionLayout, u64, pubkey, string

# Program IDs
SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"

# Sysvar accounts
SYSVAR_CLOCK_ID = "SysvarC1ock11111111111111111111111111111111"
SYSVAR_RENT_ID = "SysvarRent111111111111111111111111111111111"
SYSVAR_REWARDS_ID = "SysvarRewards111111111111111111111111111111"
SYSVAR_STAKE_HISTORY_ID = "SysvarStakeHistory1111111111111111111111111"
SYSVAR_RECENT_BLOCKHASHES_ID = "SysvarRecentB1ockHashes11111111111111111111"

# Nonce account: version u32, state u32, authority, nonce, lamports_per_signature u64
NONCE_ACCOUNT_LENGTH = 80

LAMPORTS_PER_SOL = 1_000_000_000

# Instruction layouts (u32 discriminant, bincode encoding)
SYSTEM_INSTRUCTION_LAYOUTS = {
    "create_account": InstructionLayout(
        0, [u64("lamports"), u64("space"), pubkey("owner")], name="CreateAccount"
    ),
    "assign": InstructionLayout(1, [pubkey("owner")], name="Assign"),
    "transfer": InstructionLayout(2, [u64("lamports")], name="Transfer"),
    "create_account_with_seed": InstructionLayout(
        3,
        [pubkey("base"), string("seed"), u64("lamports"), u64("space"), pubkey("owner")],
        name="CreateAccountWithSeed",
    ),
    "advance_nonce_account": InstructionLayout(4, [], name="AdvanceNonceAccount"),
    "withdraw_nonce_account": InstructionLayout(5, [u64("lamports")], name="WithdrawNonceAccount"),
    "initialize_nonce_account": InstructionLayout(6, [pubkey("authorized")], name="InitializeNonceAccount"),
    "authorize_nonce_account": InstructionLayout(7, [pubkey("authorized")], name="AuthorizeNonceAccount"),
    "allocate": InstructionLayout(8, [u64("space")], name="Allocate"),
}
