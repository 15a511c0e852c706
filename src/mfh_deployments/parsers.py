"""Deployment and compilation artifact file parsers for mfh-deployments library."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import ArtifactNotFoundError, DefectiveDeploymentError
from .types import DeployedArtifact

CHAIN_ID_FILE = ".chainId"


def parse_deployment_file(file_path: Path) -> DeployedArtifact:
    """
    Parse a hardhat-deploy deployment JSON file into an artifact.

    The contract name is taken from the file name, as hardhat-deploy does.

    Args:
        file_path: Path to {ContractName}.json

    Returns:
        DeployedArtifact with address, constructor args and receipt fields

    Raises:
        DefectiveDeploymentError: If the file is not JSON or has no address
    """
    try:
        with open(file_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise DefectiveDeploymentError(
            f"Malformed deployment file {file_path}: {e}"
        ) from e

    if not isinstance(data, dict) or "address" not in data:
        raise DefectiveDeploymentError(
            f"Missing address in deployment file: {file_path}"
        )

    # Receipt fields take precedence over top-level copies
    receipt: Dict[str, Any] = data.get("receipt") or {}

    block_number = receipt.get("blockNumber", data.get("blockNumber"))
    gas_used = receipt.get("gasUsed")
    status = receipt.get("status", 1)

    return DeployedArtifact(
        name=file_path.stem,
        address=data["address"],
        constructor_args=tuple(data.get("args", [])),
        confirmed=_to_int(status) == 1,
        gas_used=_to_int(gas_used),
        transaction_hash=data.get("transactionHash", receipt.get("transactionHash")),
        block_number=_to_int(block_number),
        abi=data.get("abi"),
    )


def serialize_artifact(artifact: DeployedArtifact) -> Dict[str, Any]:
    """
    Convert an artifact to hardhat-deploy's deployment file layout.

    Args:
        artifact: Artifact to serialize

    Returns:
        JSON-serializable dictionary
    """
    receipt: Dict[str, Any] = {"status": 1 if artifact.confirmed else 0}
    if artifact.block_number is not None:
        receipt["blockNumber"] = artifact.block_number
    if artifact.gas_used is not None:
        # hardhat-deploy stores gasUsed as a decimal string
        receipt["gasUsed"] = str(artifact.gas_used)
    if artifact.transaction_hash is not None:
        receipt["transactionHash"] = artifact.transaction_hash

    result: Dict[str, Any] = {
        "address": artifact.address,
        "abi": artifact.abi or [],
        "args": [_to_json_value(a) for a in artifact.constructor_args],
        "receipt": receipt,
        "numDeployments": 1,
    }
    if artifact.transaction_hash is not None:
        result["transactionHash"] = artifact.transaction_hash

    return result


def write_deployment_file(artifact: DeployedArtifact, network_dir: Path) -> Path:
    """
    Atomically write an artifact to {network_dir}/{name}.json.

    The file is written to a temporary sibling and moved into place, so an
    interrupted write never leaves a partial deployment file.

    Args:
        artifact: Artifact to persist
        network_dir: Per-network registry directory (created if missing)

    Returns:
        Path of the written file
    """
    network_dir.mkdir(parents=True, exist_ok=True)
    target = network_dir / f"{artifact.name}.json"

    fd, tmp_name = tempfile.mkstemp(dir=network_dir, prefix=f".{artifact.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(serialize_artifact(artifact), f, indent=2)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    return target


def read_chain_id(network_dir: Path) -> Optional[int]:
    """
    Read the chain id marker of a registry directory.

    Returns:
        Chain id, or None if no marker exists
    """
    marker = network_dir / CHAIN_ID_FILE
    if not marker.exists():
        return None
    return int(marker.read_text().strip())


def write_chain_id(network_dir: Path, chain_id: int) -> None:
    """Write the chain id marker, creating the directory if needed."""
    network_dir.mkdir(parents=True, exist_ok=True)
    (network_dir / CHAIN_ID_FILE).write_text(f"{chain_id}\n")


def find_compilation_artifact(artifacts_dir: Path, contract_name: str) -> Path:
    """
    Locate a hardhat compilation artifact for a contract.

    Assumption: artifacts live at artifacts/**/{Name}.sol/{Name}.json, with
    debug files named {Name}.dbg.json alongside.

    Args:
        artifacts_dir: Root of the hardhat artifacts tree
        contract_name: Contract name

    Returns:
        Path to the artifact JSON file

    Raises:
        ArtifactNotFoundError: If no artifact exists for the contract
    """
    for candidate in sorted(artifacts_dir.rglob(f"{contract_name}.json")):
        if not candidate.name.endswith(".dbg.json"):
            return candidate

    raise ArtifactNotFoundError(
        f"No compilation artifact for '{contract_name}' under {artifacts_dir}. "
        "Compile the contracts first."
    )


def parse_compilation_artifact(file_path: Path) -> Dict[str, Any]:
    """
    Parse a hardhat compilation artifact.

    Args:
        file_path: Path to artifact JSON file

    Returns:
        Dictionary with contract_name, abi and bytecode

    Raises:
        KeyError: If abi or bytecode is missing
    """
    with open(file_path) as f:
        data = json.load(f)

    return {
        "contract_name": data.get("contractName", file_path.stem),
        "abi": data["abi"],
        "bytecode": data["bytecode"],
    }


def _to_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)


def _to_json_value(value: Any) -> Any:
    # Large integers are stored as strings, as hardhat-deploy does
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value) if abs(value) >= 2**53 else value
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, (list, tuple)):
        return [_to_json_value(v) for v in value]
    return value
