"""
Test RPC Client with Mocks

Tests for RPC client request/response mapping with mocked httpx responses.
"""

import base64
import struct
import sys
from pathlib import Path
from unittest.mock import Mock, patch

import httpx
import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from solana_txflow.infra.rpc import RpcClient, RpcClientConfig
from solana_txflow.errors import ConfigurationError, ErrorCode, RpcError, TransportError

ENDPOINT = "https://rpc.example.com"


def _response(result=None, error=None):
    response = Mock()
    response.status_code = 200
    body = {"jsonrpc": "2.0", "id": 1}
    if error is not None:
        body["error"] = error
    else:
        body["result"] = result
    response.json.return_value = body
    response.raise_for_status = Mock()
    return response


def _status_error(code):
    response = Mock()
    response.status_code = code
    response.raise_for_status = Mock(
        side_effect=httpx.HTTPStatusError("error", request=Mock(), response=response)
    )
    return response


def test_rpc_config_defaults():
    """RpcClientConfig pulls defaults from global config"""
    config = RpcClientConfig()

    assert config.timeout_seconds > 0
    assert config.commitment in ("processed", "confirmed", "finalized")


def test_rpc_config_override():
    config = RpcClientConfig(timeout_seconds=3.0, commitment="finalized")

    assert config.timeout_seconds == 3.0
    assert config.commitment == "finalized"


def test_rpc_client_requires_endpoint():
    with patch("solana_txflow.infra.rpc.global_config") as mock_config:
        mock_config.rpc.url = ""
        with pytest.raises(ConfigurationError):
            RpcClient(None, config=RpcClientConfig(timeout_seconds=1.0, commitment="confirmed"))


def test_rpc_call_success():
    with patch.object(httpx.Client, "post", return_value=_response(12345)) as post:
        client = RpcClient(ENDPOINT)
        assert client.call("getSlot", []) == 12345

        body = post.call_args.kwargs["json"]
        assert body["method"] == "getSlot"
        assert body["jsonrpc"] == "2.0"


def test_rpc_call_error_object():
    error = {"code": -32002, "message": "Transaction simulation failed", "data": {"logs": []}}
    with patch.object(httpx.Client, "post", return_value=_response(error=error)):
        client = RpcClient(ENDPOINT)
        with pytest.raises(RpcError) as exc_info:
            client.call("sendTransaction", [])

    assert not isinstance(exc_info.value, TransportError)
    assert exc_info.value.rpc_error_code == -32002
    assert "simulation failed" in str(exc_info.value)


def test_rpc_timeout_is_transport_error():
    with patch.object(httpx.Client, "post", side_effect=httpx.TimeoutException("Timeout")):
        client = RpcClient(ENDPOINT, RpcClientConfig(timeout_seconds=1.0, commitment="confirmed"))
        with pytest.raises(TransportError) as exc_info:
            client.call("getSlot", [])

    assert exc_info.value.code == ErrorCode.RPC_TIMEOUT
    assert exc_info.value.recoverable
    assert "timed out" in str(exc_info.value).lower()


def test_rpc_single_attempt():
    """The client never retries; retry policy belongs to the sender"""
    with patch.object(httpx.Client, "post", side_effect=[_status_error(429), _response(1)]) as post:
        client = RpcClient(ENDPOINT)
        with pytest.raises(TransportError) as exc_info:
            client.call("getSlot", [])

    assert exc_info.value.code == ErrorCode.RPC_RATE_LIMITED
    assert post.call_count == 1


def test_rpc_http_error():
    with patch.object(httpx.Client, "post", return_value=_status_error(502)):
        client = RpcClient(ENDPOINT)
        with pytest.raises(TransportError) as exc_info:
            client.call("getSlot", [])
    assert exc_info.value.code == ErrorCode.RPC_HTTP_ERROR


def test_rpc_connection_error():
    with patch.object(httpx.Client, "post", side_effect=httpx.ConnectError("refused")):
        client = RpcClient(ENDPOINT)
        with pytest.raises(TransportError) as exc_info:
            client.call("getSlot", [])
    assert exc_info.value.code == ErrorCode.RPC_CONNECTION_FAILED


def test_rpc_invalid_json():
    response = Mock()
    response.raise_for_status = Mock()
    response.json.side_effect = ValueError("not json")
    with patch.object(httpx.Client, "post", return_value=response):
        client = RpcClient(ENDPOINT)
        with pytest.raises(TransportError) as exc_info:
            client.call("getSlot", [])
    assert exc_info.value.code == ErrorCode.RPC_INVALID_RESPONSE


def test_per_call_timeout():
    with patch.object(httpx.Client, "post", return_value=_response(7)) as post:
        client = RpcClient(ENDPOINT, RpcClientConfig(timeout_seconds=10.0, commitment="confirmed"))
        client.get_block_height(timeout=2.5)
    assert post.call_args.kwargs["timeout"] == 2.5


def test_get_latest_blockhash():
    blockhash = Hash.new_unique()
    result = {"context": {"slot": 1}, "value": {"blockhash": str(blockhash), "lastValidBlockHeight": 150}}
    with patch.object(httpx.Client, "post", return_value=_response(result)):
        client = RpcClient(ENDPOINT)
        anchor = client.get_latest_blockhash()
        anchor2, height = client.get_recent_blockhash()

    assert anchor.blockhash == blockhash
    assert anchor.last_valid_block_height == 150
    assert anchor2 == anchor
    assert height == 150


def test_send_transaction_base64():
    with patch.object(httpx.Client, "post", return_value=_response("5sig")) as post:
        client = RpcClient(ENDPOINT)
        signature = client.send_transaction(b"\x01\x02\x03", skip_preflight=True)

    params = post.call_args.kwargs["json"]["params"]
    assert signature == "5sig"
    assert base64.b64decode(params[0]) == b"\x01\x02\x03"
    assert params[1]["encoding"] == "base64"
    assert params[1]["skipPreflight"] is True


def test_get_signature_statuses():
    result = {
        "context": {"slot": 120},
        "value": [
            {"slot": 100, "confirmations": 3, "err": None, "confirmationStatus": "confirmed"},
            None,
        ],
    }
    with patch.object(httpx.Client, "post", return_value=_response(result)):
        client = RpcClient(ENDPOINT)
        statuses = client.get_signature_statuses(["a", "b"])

    assert statuses[0].slot == 100
    assert statuses[0].confirmations == 3
    assert statuses[0].err is None
    assert statuses[1] is None


def test_get_signature_status_history_flag():
    result = {"context": {"slot": 1}, "value": [None]}
    with patch.object(httpx.Client, "post", return_value=_response(result)) as post:
        client = RpcClient(ENDPOINT)
        assert client.get_signature_status("a", search_transaction_history=True) is None

    params = post.call_args.kwargs["json"]["params"]
    assert params[1] == {"searchTransactionHistory": True}


def test_get_nonce_account():
    authority = Pubkey.new_unique()
    nonce = Hash.new_unique()
    data = struct.pack("<II32s32sQ", 1, 1, bytes(authority), bytes(nonce), 5000)
    result = {
        "context": {"slot": 1},
        "value": {"data": [base64.b64encode(data).decode(), "base64"], "lamports": 1, "owner": "x"},
    }
    with patch.object(httpx.Client, "post", return_value=_response(result)):
        client = RpcClient(ENDPOINT)
        account = client.get_nonce_account(Pubkey.new_unique())

    assert account.nonce == nonce
    assert account.authority == authority


def test_get_account_info_not_found():
    with patch.object(httpx.Client, "post", return_value=_response({"context": {"slot": 1}, "value": None})):
        client = RpcClient(ENDPOINT)
        assert client.get_account_info(Pubkey.new_unique()) is None
        assert client.get_nonce_account(Pubkey.new_unique()) is None


def test_fee_and_rent_helpers():
    with patch.object(httpx.Client, "post", return_value=_response(1_447_680)):
        client = RpcClient(ENDPOINT)
        assert client.get_minimum_balance_for_rent_exemption(80) == 1_447_680

    fee_result = {"context": {"slot": 1}, "value": {"feeCalculator": {"lamportsPerSignature": 5000}}}
    with patch.object(httpx.Client, "post", return_value=_response(fee_result)):
        client = RpcClient(ENDPOINT)
        assert client.get_fee_calculator_for_blockhash(Hash.new_unique()) == {"lamportsPerSignature": 5000}

    with patch.object(httpx.Client, "post", return_value=_response({"context": {"slot": 1}, "value": 5000})):
        client = RpcClient(ENDPOINT)
        assert client.get_fee_for_message(b"\x00") == 5000


def test_context_manager_closes_client():
    with patch.object(httpx.Client, "post", return_value=_response(1)):
        with RpcClient(ENDPOINT) as client:
            client.get_slot()
            assert client._client is not None
        assert client._client is None
