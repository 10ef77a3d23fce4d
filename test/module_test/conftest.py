"""
Shared configuration and fixtures for module integration tests.

These tests talk to a live cluster (use devnet). They send real
transactions and spend the test wallet's lamports.

Environment Variables:
    SOLANA_RPC_URL: RPC endpoint URL (required)
    SOLANA_PRIVATE_KEY: Base58 encoded private key (required if no keypair path)
    SOLANA_KEYPAIR_PATH: Path to keypair JSON file (alternative to private key)
"""

import json
import os
import sys
from pathlib import Path

import base58
import pytest
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env_or_fail(key: str) -> str:
    """Get required environment variable or raise error"""
    value = os.getenv(key)
    if not value:
        raise EnvironmentError(
            f"Missing required environment variable: {key}\n"
            f"Please set {key} in your .env file or environment."
        )
    return value


def get_rpc_url() -> str:
    """Get Solana RPC URL from environment"""
    return get_env_or_fail("SOLANA_RPC_URL")


def get_keypair():
    """
    Get Keypair from environment.

    Tries in order:
    1. SOLANA_PRIVATE_KEY - base58 encoded private key
    2. SOLANA_KEYPAIR_PATH - path to keypair JSON file
    """
    from solders.keypair import Keypair

    private_key = os.getenv("SOLANA_PRIVATE_KEY")
    if private_key:
        return Keypair.from_bytes(base58.b58decode(private_key))

    keypair_path = os.getenv("SOLANA_KEYPAIR_PATH")
    if keypair_path:
        path = Path(keypair_path)
        if not path.exists():
            raise FileNotFoundError(f"Keypair file not found: {keypair_path}")
        with open(path) as f:
            return Keypair.from_bytes(bytes(json.load(f)))

    raise EnvironmentError(
        "No wallet configured. Set either:\n"
        "  SOLANA_PRIVATE_KEY - base58 encoded private key\n"
        "  SOLANA_KEYPAIR_PATH - path to keypair JSON file"
    )


def skip_if_no_config():
    """Check if required config is available, return skip message if not"""
    try:
        get_rpc_url()
        get_keypair()
        return None
    except (EnvironmentError, FileNotFoundError) as e:
        return str(e)


@pytest.fixture(scope="module")
def rpc():
    """Live RPC client; skipped without SOLANA_RPC_URL"""
    try:
        url = get_rpc_url()
    except EnvironmentError as e:
        pytest.skip(str(e))

    from solana_txflow import RpcClient

    client = RpcClient(url)
    yield client
    client.close()


@pytest.fixture(scope="module")
def client():
    """LedgerClient with live RPC and real wallet"""
    skip_msg = skip_if_no_config()
    if skip_msg:
        pytest.skip(skip_msg)

    from solana_txflow import LedgerClient

    ledger = LedgerClient(rpc_url=get_rpc_url(), keypair=get_keypair())
    yield ledger
    ledger.close()
