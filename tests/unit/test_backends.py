"""Unit tests for execution backends."""

import json
from pathlib import Path

import pytest
import requests
import responses
from eth_abi import decode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from mfh_deployments.backends import HARDHAT_DEFAULT_ACCOUNT, InMemoryBackend, JsonRpcBackend
from mfh_deployments.exceptions import ArtifactNotFoundError, BackendError
from mfh_deployments.types import WiringOperation

RPC_URL = "http://127.0.0.1:8545"
SENDER = HARDHAT_DEFAULT_ACCOUNT
TOKEN = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
NEW_CONTRACT = "0xe7f1725e7734ce288f8367e1bb143e90bb3f0512"
TX_HASH = "0x" + "ab" * 32


class FakeNode:
    """Dispatches JSON-RPC requests by method, recording what was sent."""

    def __init__(self, receipts=None, pending_polls=0):
        self.requests = []
        self.receipt = receipts or {
            "status": "0x1",
            "blockNumber": "0x2a",
            "gasUsed": "0x5208",
            "contractAddress": NEW_CONTRACT,
        }
        self.pending_polls = pending_polls

    def __call__(self, request):
        payload = json.loads(request.body)
        self.requests.append(payload)
        method = payload["method"]

        if method == "eth_accounts":
            result = [SENDER.lower()]
        elif method == "eth_chainId":
            result = "0x7a69"
        elif method == "eth_sendTransaction":
            result = TX_HASH
        elif method == "eth_getTransactionReceipt":
            if self.pending_polls > 0:
                self.pending_polls -= 1
                result = None
            else:
                result = self.receipt
        else:
            return (200, {}, json.dumps({"jsonrpc": "2.0", "id": payload["id"], "error": {"code": -32601, "message": "method not found"}}))

        return (200, {}, json.dumps({"jsonrpc": "2.0", "id": payload["id"], "result": result}))

    def sent(self, method):
        return [r for r in self.requests if r["method"] == method]


@pytest.fixture
def rpc_backend(artifacts_dir: Path) -> JsonRpcBackend:
    """JSON-RPC backend that never sleeps."""
    return JsonRpcBackend(RPC_URL, artifacts_dir, confirmation_timeout=5, sleep=lambda s: None)


class TestInMemoryBackend:
    """Test the deterministic in-memory backend."""

    def test_deploy_returns_distinct_checksummed_addresses(self, backend: InMemoryBackend):
        """Test that each deployment gets its own address."""
        first = backend.deploy("MFHToken", (), SENDER)
        second = backend.deploy("TreasuryVault", (SENDER,), SENDER)

        assert first.address != second.address
        assert first.address == to_checksum_address(first.address)
        assert backend.contract_at(first.address) == "MFHToken"
        assert [d[0] for d in backend.deployments] == ["MFHToken", "TreasuryVault"]

    def test_addresses_are_deterministic(self):
        """Test that two backends produce the same address sequence."""
        a = InMemoryBackend().deploy("MFHToken", (), SENDER)
        b = InMemoryBackend().deploy("MFHToken", (), SENDER)

        assert a.address == b.address

    def test_injected_deploy_failure(self):
        """Test that a failing contract raises BackendError and records nothing."""
        backend = InMemoryBackend(fail_deploy={"LoanModule"})

        with pytest.raises(BackendError):
            backend.deploy("LoanModule", (), SENDER)

        assert backend.deployments == []

    def test_call_records_operation(self, backend: InMemoryBackend):
        """Test that calls against deployed contracts are recorded."""
        staking = backend.deploy("StakingRewards", (TOKEN,), SENDER)

        receipt = backend.call(staking.address, "StakingRewards", WiringOperation.SET_TOKEN, (TOKEN,), SENDER)

        assert receipt.status == 1
        assert backend.calls[0].operation is WiringOperation.SET_TOKEN
        assert backend.calls[0].args == (TOKEN,)

    def test_call_to_wrong_contract_raises(self, backend: InMemoryBackend):
        """Test that calling an address without that contract raises BackendError."""
        with pytest.raises(BackendError):
            backend.call(TOKEN, "StakingRewards", WiringOperation.SET_TOKEN, (TOKEN,), SENDER)

    def test_injected_call_failure(self):
        """Test that an injected call failure raises BackendError."""
        backend = InMemoryBackend(fail_calls={("StakingRewards", WiringOperation.SET_TOKEN)})
        staking = backend.deploy("StakingRewards", (TOKEN,), SENDER)

        with pytest.raises(BackendError):
            backend.call(staking.address, "StakingRewards", WiringOperation.SET_TOKEN, (TOKEN,), SENDER)

        assert backend.calls == []


class TestJsonRpcBackend:
    """Test the JSON-RPC backend against a mocked node."""

    @responses.activate
    def test_default_account_is_first_unlocked_account(self, rpc_backend: JsonRpcBackend):
        """Test that eth_accounts[0] is used and checksummed."""
        responses.add_callback(responses.POST, RPC_URL, callback=FakeNode())

        assert rpc_backend.default_account() == SENDER

    @responses.activate
    def test_no_accounts_raises(self, rpc_backend: JsonRpcBackend):
        """Test that a node without unlocked accounts is rejected."""
        responses.add(responses.POST, RPC_URL, json={"jsonrpc": "2.0", "id": 1, "result": []})

        with pytest.raises(BackendError):
            rpc_backend.default_account()

    @responses.activate
    def test_chain_id(self, rpc_backend: JsonRpcBackend):
        """Test decoding eth_chainId."""
        responses.add_callback(responses.POST, RPC_URL, callback=FakeNode())

        assert rpc_backend.chain_id() == 31337

    @responses.activate
    def test_deploy_without_constructor_args(self, rpc_backend: JsonRpcBackend):
        """Test deploying a contract whose constructor takes nothing."""
        node = FakeNode()
        responses.add_callback(responses.POST, RPC_URL, callback=node)

        receipt = rpc_backend.deploy("MFHToken", (), SENDER)

        assert receipt.address == to_checksum_address(NEW_CONTRACT)
        assert receipt.transaction_hash == TX_HASH
        assert receipt.block_number == 42
        assert receipt.gas_used == 21000
        assert receipt.abi[0]["type"] == "constructor"

        tx = node.sent("eth_sendTransaction")[0]["params"][0]
        assert tx["from"] == SENDER
        assert tx["data"] == "0x608060405234801561001057600080fd5b50"
        assert "to" not in tx

    @responses.activate
    def test_deploy_appends_encoded_constructor_args(self, rpc_backend: JsonRpcBackend):
        """Test that constructor arguments are ABI-encoded after the bytecode."""
        node = FakeNode()
        responses.add_callback(responses.POST, RPC_URL, callback=node)

        rpc_backend.deploy("StakingRewards", (TOKEN,), SENDER)

        data = node.sent("eth_sendTransaction")[0]["params"][0]["data"]
        bytecode = "0x60806040523480156100105760"
        assert data.startswith(bytecode)
        (decoded,) = decode(["address"], bytes.fromhex(data[len(bytecode):]))
        assert to_checksum_address(decoded) == TOKEN

    @responses.activate
    def test_deploy_polls_until_mined(self, rpc_backend: JsonRpcBackend):
        """Test that pending receipts are polled."""
        node = FakeNode(pending_polls=2)
        responses.add_callback(responses.POST, RPC_URL, callback=node)

        rpc_backend.deploy("MFHToken", (), SENDER)

        assert len(node.sent("eth_getTransactionReceipt")) == 3

    @responses.activate
    def test_confirmation_timeout_raises(self, artifacts_dir: Path):
        """Test that a transaction never mined raises BackendError."""
        backend = JsonRpcBackend(RPC_URL, artifacts_dir, confirmation_timeout=0, sleep=lambda s: None)
        responses.add_callback(responses.POST, RPC_URL, callback=FakeNode(pending_polls=10))

        with pytest.raises(BackendError) as exc_info:
            backend.deploy("MFHToken", (), SENDER)

        assert "not confirmed" in str(exc_info.value)

    @responses.activate
    def test_reverted_deployment_raises(self, rpc_backend: JsonRpcBackend):
        """Test that a zero-status receipt raises BackendError."""
        responses.add_callback(
            responses.POST,
            RPC_URL,
            callback=FakeNode(receipts={"status": "0x0", "blockNumber": "0x1", "gasUsed": "0x1"}),
        )

        with pytest.raises(BackendError) as exc_info:
            rpc_backend.deploy("MFHToken", (), SENDER)

        assert "reverted" in str(exc_info.value)

    @responses.activate
    def test_rpc_error_raises(self, rpc_backend: JsonRpcBackend):
        """Test that a JSON-RPC error object raises BackendError."""
        responses.add(
            responses.POST,
            RPC_URL,
            json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "insufficient funds"}},
        )

        with pytest.raises(BackendError) as exc_info:
            rpc_backend.deploy("MFHToken", (), SENDER)

        assert "insufficient funds" in str(exc_info.value)

    @responses.activate
    def test_http_error_raises(self, rpc_backend: JsonRpcBackend):
        """Test that a non-200 response raises BackendError."""
        responses.add(responses.POST, RPC_URL, status=502)

        with pytest.raises(BackendError) as exc_info:
            rpc_backend.default_account()

        assert "502" in str(exc_info.value)

    @responses.activate
    def test_network_error_raises(self, rpc_backend: JsonRpcBackend):
        """Test that connection failures raise BackendError."""
        responses.add(responses.POST, RPC_URL, body=requests.ConnectionError("refused"))

        with pytest.raises(BackendError):
            rpc_backend.default_account()

    @responses.activate
    def test_non_json_body_raises(self, rpc_backend: JsonRpcBackend):
        """Test that a 200 response that is not JSON raises BackendError."""
        responses.add(
            responses.POST,
            RPC_URL,
            body="<html><body>502 Bad Gateway</body></html>",
            content_type="text/html",
        )

        with pytest.raises(BackendError) as exc_info:
            rpc_backend.default_account()

        assert "non-JSON" in str(exc_info.value)

    @responses.activate
    def test_non_object_body_raises(self, rpc_backend: JsonRpcBackend):
        """Test that a JSON body that is not a JSON-RPC object raises BackendError."""
        responses.add(responses.POST, RPC_URL, json=["unexpected"])

        with pytest.raises(BackendError):
            rpc_backend.chain_id()

    def test_missing_artifact_raises(self, rpc_backend: JsonRpcBackend):
        """Test that an uncompiled contract fails before any RPC traffic."""
        with pytest.raises(BackendError) as exc_info:
            rpc_backend.deploy("LoanModule", (), SENDER)

        assert isinstance(exc_info.value.__cause__, ArtifactNotFoundError)
        assert "LoanModule" in str(exc_info.value)

    @pytest.mark.parametrize(
        "content",
        [
            '{"contractName": "USDT", "abi": []}',
            "not json at all",
        ],
        ids=["missing-bytecode", "not-json"],
    )
    def test_malformed_artifact_raises(self, tmp_path: Path, content: str):
        """Test that an unreadable compilation artifact raises BackendError."""
        artifact = tmp_path / "contracts" / "USDT.sol" / "USDT.json"
        artifact.parent.mkdir(parents=True)
        artifact.write_text(content)
        backend = JsonRpcBackend(RPC_URL, tmp_path, sleep=lambda s: None)

        with pytest.raises(BackendError) as exc_info:
            backend.deploy("USDT", (SENDER, SENDER), SENDER)

        assert "USDT" in str(exc_info.value)

    def test_wrong_argument_count_raises(self, rpc_backend: JsonRpcBackend):
        """Test that mismatched constructor arguments raise BackendError."""
        with pytest.raises(BackendError):
            rpc_backend.deploy("StakingRewards", (), SENDER)

    @responses.activate
    def test_call_encodes_selector_and_args(self, rpc_backend: JsonRpcBackend):
        """Test that calls target the module with selector plus encoded args."""
        node = FakeNode()
        responses.add_callback(responses.POST, RPC_URL, callback=node)
        escrow = "0x1234567890123456789012345678901234567890"

        receipt = rpc_backend.call(escrow, "EscrowManager", WiringOperation.SET_TRUSTED, (TOKEN, True), SENDER)

        assert receipt.status == 1
        tx = node.sent("eth_sendTransaction")[0]["params"][0]
        assert tx["to"] == escrow
        data = bytes.fromhex(tx["data"][2:])
        assert data[:4] == function_signature_to_4byte_selector("setTrusted(address,bool)")
        address, flag = decode(["address", "bool"], data[4:])
        assert to_checksum_address(address) == TOKEN
        assert flag is True

    @responses.activate
    def test_call_encodes_numeric_policy(self, rpc_backend: JsonRpcBackend):
        """Test encoding a uint256 argument."""
        node = FakeNode()
        responses.add_callback(responses.POST, RPC_URL, callback=node)

        rpc_backend.call(TOKEN, "LoanModule", WiringOperation.SET_INTEREST_RATE, (500,), SENDER)

        data = bytes.fromhex(node.sent("eth_sendTransaction")[0]["params"][0]["data"][2:])
        assert decode(["uint256"], data[4:]) == (500,)
