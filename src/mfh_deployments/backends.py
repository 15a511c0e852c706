"""Execution backends that submit and confirm transactions."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import requests
import structlog
from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_utils import function_signature_to_4byte_selector, keccak, to_bytes, to_checksum_address

from .constants import CONFIRMATION_POLL_SECONDS, CONFIRMATION_TIMEOUT_SECONDS, RPC_TIMEOUT_SECONDS
from .exceptions import ArtifactNotFoundError, BackendError
from .parsers import find_compilation_artifact, parse_compilation_artifact
from .types import CallReceipt, DeployReceipt, WiringOperation

log = structlog.get_logger(__name__)

# First account of hardhat's default mnemonic
HARDHAT_DEFAULT_ACCOUNT = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


class ExecutionBackend(ABC):
    """
    Submits deployments and configuration calls and waits for confirmation.

    Both operations block until the transaction is confirmed and raise
    BackendError if it is rejected.
    """

    @abstractmethod
    def default_account(self) -> str:
        """Return the account used when no sender is configured."""

    @abstractmethod
    def deploy(self, contract: str, args: Sequence[Any], sender: str) -> DeployReceipt:
        """Deploy a contract and return its confirmed receipt."""

    @abstractmethod
    def call(
        self,
        address: str,
        contract: str,
        operation: WiringOperation,
        args: Sequence[Any],
        sender: str,
    ) -> CallReceipt:
        """Issue a state-changing call and return its confirmed receipt."""


@dataclass(frozen=True)
class RecordedCall:
    """A configuration call observed by the in-memory backend."""

    address: str
    contract: str
    operation: WiringOperation
    args: Tuple[Any, ...]
    sender: str


class InMemoryBackend(ExecutionBackend):
    """
    A deterministic, in-memory backend used for tests and dry runs.

    Addresses are derived from the sender and its nonce. Failures can be
    injected per contract name (deployments) or per (contract, operation)
    pair (calls).
    """

    def __init__(
        self,
        account: str = HARDHAT_DEFAULT_ACCOUNT,
        fail_deploy: Iterable[str] = (),
        fail_calls: Iterable[Tuple[str, WiringOperation]] = (),
    ):
        self.account = to_checksum_address(account)
        self.fail_deploy = set(fail_deploy)
        self.fail_calls = set(fail_calls)
        self.deployments: List[Tuple[str, Tuple[Any, ...], str]] = []
        self.calls: List[RecordedCall] = []
        self._code: Dict[str, str] = {}
        self._nonces: Dict[str, int] = {}
        self._block = 0

    def default_account(self) -> str:
        return self.account

    def _next_tx(self, sender: str) -> Tuple[str, int]:
        nonce = self._nonces.get(sender, 0)
        self._nonces[sender] = nonce + 1
        self._block += 1
        return "0x" + keccak(text=f"tx:{sender}:{nonce}").hex(), nonce

    def deploy(self, contract: str, args: Sequence[Any], sender: str) -> DeployReceipt:
        if contract in self.fail_deploy:
            raise BackendError(f"execution reverted: {contract} constructor")

        tx_hash, nonce = self._next_tx(sender)
        address = to_checksum_address(keccak(text=f"{sender}:{nonce}")[-20:])
        self._code[address] = contract
        self.deployments.append((contract, tuple(args), address))

        return DeployReceipt(
            address=address,
            transaction_hash=tx_hash,
            block_number=self._block,
            gas_used=21_000 + 1_000 * len(args),
        )

    def call(
        self,
        address: str,
        contract: str,
        operation: WiringOperation,
        args: Sequence[Any],
        sender: str,
    ) -> CallReceipt:
        if self._code.get(address) != contract:
            raise BackendError(f"No {contract} contract at {address}")
        if (contract, operation) in self.fail_calls:
            raise BackendError(f"execution reverted: {contract}.{operation.function_name}")

        tx_hash, _ = self._next_tx(sender)
        self.calls.append(RecordedCall(address, contract, operation, tuple(args), sender))

        return CallReceipt(transaction_hash=tx_hash, block_number=self._block, gas_used=30_000)

    def contract_at(self, address: str) -> Optional[str]:
        return self._code.get(address)


class JsonRpcBackend(ExecutionBackend):
    """
    Backend for a node that holds unlocked accounts (hardhat node, anvil).

    Bytecode and ABIs come from hardhat compilation artifacts.
    """

    def __init__(
        self,
        rpc_url: str,
        artifacts_dir: Path,
        timeout: float = RPC_TIMEOUT_SECONDS,
        confirmation_timeout: float = CONFIRMATION_TIMEOUT_SECONDS,
        poll_interval: float = CONFIRMATION_POLL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the backend.

        Args:
            rpc_url: RPC endpoint URL
            artifacts_dir: Root of the hardhat artifacts tree
            timeout: Per-request HTTP timeout in seconds
            confirmation_timeout: How long to wait for a receipt in seconds
            poll_interval: Delay between receipt polls in seconds
            sleep: Sleep function (injectable for tests)
        """
        self.rpc_url = rpc_url
        self.artifacts_dir = Path(artifacts_dir)
        self.timeout = timeout
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._contracts: Dict[str, Dict[str, Any]] = {}
        self._request_id = 0

    def _rpc(self, method: str, params: List[Any]) -> Any:
        """
        Make a JSON-RPC call.

        Raises:
            BackendError: On HTTP, network, RPC or malformed-response errors
        """
        self._request_id += 1
        try:
            response = requests.post(
                self.rpc_url,
                json={
                    "jsonrpc": "2.0",
                    "method": method,
                    "params": params,
                    "id": self._request_id,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise BackendError(f"Network error during {method}: {e}") from e

        # Check for HTTP errors
        if response.status_code != 200:
            raise BackendError(f"{method} failed with HTTP status {response.status_code}")

        try:
            result = response.json()
        except ValueError as e:
            raise BackendError(f"{method} returned a non-JSON response: {e}") from e
        if not isinstance(result, dict):
            raise BackendError(f"{method} returned an invalid JSON-RPC response: {result!r}")

        # Check for RPC errors
        if "error" in result:
            error = result["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise BackendError(f"{method} rejected: {message}")

        return result.get("result")

    def chain_id(self) -> int:
        return int(self._rpc("eth_chainId", []), 16)

    def default_account(self) -> str:
        accounts = self._rpc("eth_accounts", [])
        if not accounts:
            raise BackendError(f"Node at {self.rpc_url} exposes no unlocked accounts")
        return to_checksum_address(accounts[0])

    def _contract(self, name: str) -> Dict[str, Any]:
        """
        Load (and cache) the compilation artifact for a contract.

        Raises:
            BackendError: If the artifact is missing or malformed
        """
        if name not in self._contracts:
            try:
                path = find_compilation_artifact(self.artifacts_dir, name)
                self._contracts[name] = parse_compilation_artifact(path)
            except ArtifactNotFoundError as e:
                raise BackendError(str(e)) from e
            except (KeyError, ValueError, OSError) as e:
                raise BackendError(f"Unreadable compilation artifact for '{name}': {e}") from e
        return self._contracts[name]

    def _wait_for_receipt(self, tx_hash: str) -> Dict[str, Any]:
        """
        Poll for a transaction receipt until it is mined.

        Raises:
            BackendError: If the transaction reverted or was not mined in time
        """
        deadline = time.monotonic() + self.confirmation_timeout
        while True:
            receipt = self._rpc("eth_getTransactionReceipt", [tx_hash])
            if receipt is not None:
                break
            if time.monotonic() >= deadline:
                raise BackendError(
                    f"Transaction {tx_hash} not confirmed within {self.confirmation_timeout}s"
                )
            self._sleep(self.poll_interval)

        if int(receipt.get("status", "0x1"), 16) != 1:
            raise BackendError(f"Transaction {tx_hash} reverted")

        log.debug(
            "transaction_confirmed",
            transaction_hash=tx_hash,
            block_number=int(receipt["blockNumber"], 16),
        )
        return receipt

    def deploy(self, contract: str, args: Sequence[Any], sender: str) -> DeployReceipt:
        compiled = self._contract(contract)

        constructor = next(
            (item for item in compiled["abi"] if item.get("type") == "constructor"), None
        )
        types = [i["type"] for i in constructor["inputs"]] if constructor else []
        data = compiled["bytecode"] + _encode_args(types, args).hex()

        tx_hash = self._rpc("eth_sendTransaction", [{"from": sender, "data": data}])
        receipt = self._wait_for_receipt(tx_hash)

        if not receipt.get("contractAddress"):
            raise BackendError(f"Receipt for {tx_hash} has no contract address")

        return DeployReceipt(
            address=to_checksum_address(receipt["contractAddress"]),
            transaction_hash=tx_hash,
            block_number=int(receipt["blockNumber"], 16),
            gas_used=int(receipt["gasUsed"], 16),
            abi=compiled["abi"],
        )

    def call(
        self,
        address: str,
        contract: str,
        operation: WiringOperation,
        args: Sequence[Any],
        sender: str,
    ) -> CallReceipt:
        selector = function_signature_to_4byte_selector(operation.value)
        data = "0x" + (selector + _encode_args(list(operation.arg_types), args)).hex()

        tx_hash = self._rpc(
            "eth_sendTransaction", [{"from": sender, "to": address, "data": data}]
        )
        receipt = self._wait_for_receipt(tx_hash)

        return CallReceipt(
            transaction_hash=tx_hash,
            block_number=int(receipt["blockNumber"], 16),
            gas_used=int(receipt["gasUsed"], 16),
            status=int(receipt.get("status", "0x1"), 16),
        )


def _coerce(abi_type: str, value: Any) -> Any:
    if abi_type.endswith("[]"):
        return [_coerce(abi_type[:-2], v) for v in value]
    if abi_type == "address":
        return to_checksum_address(value)
    if abi_type.startswith("bytes") and isinstance(value, str):
        return to_bytes(hexstr=value)
    if abi_type.startswith(("uint", "int")) and isinstance(value, str):
        return int(value, 0)
    return value


def _encode_args(types: List[str], args: Sequence[Any]) -> bytes:
    """
    ABI-encode arguments for a constructor or call.

    Raises:
        BackendError: If the arguments do not match the types
    """
    if len(types) != len(args):
        raise BackendError(f"Expected {len(types)} arguments, got {len(args)}")
    try:
        return encode(types, [_coerce(t, a) for t, a in zip(types, args)])
    except (EncodingError, ValueError, TypeError) as e:
        raise BackendError(f"Cannot encode arguments {list(args)} as {types}: {e}") from e
