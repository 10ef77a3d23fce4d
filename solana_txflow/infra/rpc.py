"""
RPC Client for Solana

Thin JSON-RPC request/response mapping:
- One request per call, no retries (retry policy lives in the sender)
- Per-call timeout management
- Transport failures raised as TransportError, node errors as RpcError
"""

from __future__ import annotations

import base64
import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import httpx
from solders.hash import Hash
from solders.pubkey import Pubkey

from ..types import BlockhashAnchor, SignatureStatus
from ..errors import RpcError, TransportError, ConfigurationError
from ..config import config as global_config
from ..protocols.system.nonce import NonceAccount

logger = logging.getLogger(__name__)

Address = Union[Pubkey, str]


@dataclass
class RpcClientConfig:
    """
    RPC client runtime configuration

    Allows per-client overrides while pulling defaults from the global
    config (solana_txflow.config.RpcConfig).

    Usage:
        # Use all defaults from environment
        client = RpcClient(endpoint)

        # Override specific settings
        config = RpcClientConfig(timeout_seconds=5, commitment="finalized")
        client = RpcClient(endpoint, config=config)
    """
    timeout_seconds: float = None
    commitment: str = None

    def __post_init__(self):
        """Apply defaults from global config for any unset values"""
        if self.timeout_seconds is None:
            self.timeout_seconds = global_config.rpc.timeout_seconds
        if self.commitment is None:
            self.commitment = global_config.rpc.commitment


class RpcClient:
    """
    Solana JSON-RPC client

    An explicitly-owned handle: create one per endpoint and pass it to
    whatever needs it. Safe to share between threads.

    Usage:
        rpc = RpcClient("https://api.devnet.solana.com")

        anchor = rpc.get_latest_blockhash()
        signature = rpc.send_transaction(tx.serialize())
        status = rpc.get_signature_status(signature)

        # Custom RPC call
        result = rpc.call("getSlot", [])
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        config: Optional[RpcClientConfig] = None,
    ):
        """
        Initialize RPC client

        Args:
            endpoint: RPC endpoint URL (defaults to SOLANA_RPC_URL)
            config: RPC configuration options
        """
        endpoint = endpoint or global_config.rpc.url
        if not endpoint:
            raise ConfigurationError.missing("RPC endpoint")

        self._endpoint = endpoint
        self._config = config or RpcClientConfig()
        self._client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()
        self._request_ids = itertools.count(1)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def commitment(self) -> str:
        """Default commitment level"""
        return self._config.commitment

    @property
    def timeout_seconds(self) -> float:
        return self._config.timeout_seconds

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client (thread-safe)"""
        if self._client is None:
            with self._client_lock:
                # Double-check after acquiring lock
                if self._client is None:
                    self._client = httpx.Client(
                        timeout=self._config.timeout_seconds,
                        headers={"Content-Type": "application/json"},
                    )
        return self._client

    def call(
        self,
        method: str,
        params: Optional[List[Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Make a single JSON-RPC call

        Args:
            method: RPC method name
            params: RPC parameters
            timeout: Optional timeout override for this call

        Returns:
            RPC result

        Raises:
            TransportError: Network, HTTP or malformed-response failure
            RpcError: Node returned a JSON-RPC error object
        """
        client = self._get_client()
        body = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params or [],
        }
        timeout_val = timeout or self._config.timeout_seconds

        try:
            response = client.post(self._endpoint, json=body, timeout=timeout_val)
            response.raise_for_status()
            result = response.json()

        except httpx.TimeoutException as e:
            logger.warning(f"RPC timeout: {method} @ {self._endpoint}")
            raise TransportError.timeout(self._endpoint, timeout_val) from e

        except httpx.HTTPStatusError as e:
            logger.warning(f"RPC HTTP error: {method} @ {self._endpoint}: {e.response.status_code}")
            raise TransportError.http_status(self._endpoint, e.response.status_code) from e

        except httpx.RequestError as e:
            logger.warning(f"RPC connection error: {method} @ {self._endpoint}: {e}")
            raise TransportError.connection_failed(self._endpoint, e) from e

        except ValueError as e:
            logger.warning(f"RPC invalid response: {method} @ {self._endpoint}: {e}")
            raise TransportError.invalid_response(self._endpoint, e) from e

        if not isinstance(result, dict):
            raise TransportError.invalid_response(self._endpoint)

        if "error" in result:
            error = result["error"] or {}
            error_msg = error.get("message", str(error))
            raise RpcError(
                f"RPC error: {error_msg}",
                endpoint=self._endpoint,
                rpc_error_code=error.get("code"),
                rpc_error_data=error.get("data"),
            )

        return result.get("result")

    def _commitment(self, commitment: Optional[str]) -> Dict[str, str]:
        return {"commitment": commitment or self.commitment}

    # ------------------------------------------------------------------
    # Blockhash / height

    def get_latest_blockhash(self, commitment: Optional[str] = None) -> BlockhashAnchor:
        """
        Get latest blockhash

        Returns:
            BlockhashAnchor with blockhash and lastValidBlockHeight
        """
        result = self.call("getLatestBlockhash", [self._commitment(commitment)])
        value = (result or {}).get("value") or {}
        if "blockhash" not in value:
            raise TransportError.invalid_response(self._endpoint)
        return BlockhashAnchor(
            blockhash=Hash.from_string(value["blockhash"]),
            last_valid_block_height=value.get("lastValidBlockHeight"),
        )

    def get_recent_blockhash(self, commitment: Optional[str] = None) -> Tuple[BlockhashAnchor, Optional[int]]:
        """Get (anchor, valid_until_height)"""
        anchor = self.get_latest_blockhash(commitment)
        return anchor, anchor.last_valid_block_height

    def get_block_height(self, commitment: Optional[str] = None, timeout: Optional[float] = None) -> int:
        """Get current block height"""
        return self.call("getBlockHeight", [self._commitment(commitment)], timeout=timeout)

    def get_slot(self, commitment: Optional[str] = None) -> int:
        """Get current slot"""
        return self.call("getSlot", [self._commitment(commitment)])

    # ------------------------------------------------------------------
    # Transactions

    def send_transaction(
        self,
        transaction: bytes,
        skip_preflight: bool = False,
        preflight_commitment: Optional[str] = None,
        max_retries: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Send signed transaction

        Args:
            transaction: Serialized signed transaction bytes
            skip_preflight: Skip preflight simulation
            preflight_commitment: Preflight commitment level
            max_retries: Node-side rebroadcast limit

        Returns:
            Transaction signature (base58)
        """
        tx_data = base64.b64encode(transaction).decode("ascii")

        options: Dict[str, Any] = {
            "skipPreflight": skip_preflight,
            "preflightCommitment": preflight_commitment or self.commitment,
            "encoding": "base64",
        }
        if max_retries is not None:
            options["maxRetries"] = max_retries

        return self.call("sendTransaction", [tx_data, options], timeout=timeout)

    def simulate_transaction(
        self,
        transaction: bytes,
        commitment: Optional[str] = None,
        sig_verify: bool = False,
    ) -> Dict[str, Any]:
        """
        Simulate transaction execution

        Args:
            transaction: Transaction bytes (signatures may be empty when sig_verify is False)
            commitment: Commitment level
            sig_verify: Verify signatures during simulation

        Returns:
            Simulation result value (err, logs, unitsConsumed)
        """
        tx_data = base64.b64encode(transaction).decode("ascii")
        params = [
            tx_data,
            {
                "commitment": commitment or self.commitment,
                "encoding": "base64",
                "sigVerify": sig_verify,
            },
        ]
        result = self.call("simulateTransaction", params)
        return (result or {}).get("value") or {}

    def get_signature_statuses(
        self,
        signatures: Sequence[str],
        search_transaction_history: bool = False,
        timeout: Optional[float] = None,
    ) -> List[Optional[SignatureStatus]]:
        """
        Get statuses for signatures

        Returns:
            One entry per signature; None where the node has not seen it
        """
        params: List[Any] = [list(signatures)]
        if search_transaction_history:
            params.append({"searchTransactionHistory": True})
        result = self.call("getSignatureStatuses", params, timeout=timeout)
        values = (result or {}).get("value") or []
        statuses: List[Optional[SignatureStatus]] = []
        for i in range(len(signatures)):
            value = values[i] if i < len(values) else None
            statuses.append(SignatureStatus.from_rpc(value) if value else None)
        return statuses

    def get_signature_status(
        self,
        signature: str,
        search_transaction_history: bool = False,
        timeout: Optional[float] = None,
    ) -> Optional[SignatureStatus]:
        """Get status of one signature; None if not (yet) seen"""
        return self.get_signature_statuses(
            [signature],
            search_transaction_history=search_transaction_history,
            timeout=timeout,
        )[0]

    # ------------------------------------------------------------------
    # Fees and rent

    def get_minimum_balance_for_rent_exemption(
        self,
        data_length: int,
        commitment: Optional[str] = None,
    ) -> int:
        """Lamports needed to make an account of data_length bytes rent exempt"""
        return self.call(
            "getMinimumBalanceForRentExemption",
            [data_length, self._commitment(commitment)],
        )

    def get_fee_calculator_for_blockhash(
        self,
        blockhash: Union[Hash, str],
        commitment: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Fee calculator for a blockhash (legacy nodes)

        Returns:
            {"lamportsPerSignature": n} or None if the blockhash is unknown
        """
        result = self.call(
            "getFeeCalculatorForBlockhash",
            [str(blockhash), self._commitment(commitment)],
        )
        value = (result or {}).get("value")
        return value.get("feeCalculator") if value else None

    def get_fee_for_message(
        self,
        message: bytes,
        commitment: Optional[str] = None,
    ) -> Optional[int]:
        """Fee in lamports for a serialized message; None if its blockhash expired"""
        msg_data = base64.b64encode(bytes(message)).decode("ascii")
        result = self.call("getFeeForMessage", [msg_data, self._commitment(commitment)])
        return (result or {}).get("value")

    # ------------------------------------------------------------------
    # Accounts

    def get_account_info(
        self,
        address: Address,
        encoding: str = "base64",
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Get account information

        Returns:
            Account info or None if not found
        """
        params = [
            str(address),
            {
                "encoding": encoding,
                "commitment": commitment or self.commitment,
            },
        ]
        result = self.call("getAccountInfo", params, timeout=timeout)
        return result.get("value") if result else None

    def get_balance(self, address: Address, commitment: Optional[str] = None) -> int:
        """Get balance in lamports"""
        result = self.call("getBalance", [str(address), self._commitment(commitment)])
        return (result or {}).get("value", 0)

    def get_nonce_account(
        self,
        address: Address,
        commitment: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Optional[NonceAccount]:
        """Fetch and decode a durable nonce account; None if it does not exist"""
        info = self.get_account_info(address, encoding="base64", commitment=commitment, timeout=timeout)
        if not info:
            return None
        data = info.get("data")
        if isinstance(data, list):
            data = data[0]
        return NonceAccount.from_bytes(base64.b64decode(data))

    def request_airdrop(
        self,
        address: Address,
        lamports: int,
        commitment: Optional[str] = None,
    ) -> str:
        """Request test lamports (devnet/testnet only); returns the airdrop signature"""
        return self.call("requestAirdrop", [str(address), lamports, self._commitment(commitment)])

    def close(self):
        """Close HTTP client"""
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
