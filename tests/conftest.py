"""Shared pytest fixtures for mfh-deployments tests."""

import shutil
from pathlib import Path

import pytest

from mfh_deployments.backends import InMemoryBackend
from mfh_deployments.config import DeployConfig
from mfh_deployments.deployer import ModuleDeployer
from mfh_deployments.registry import ArtifactRegistry

TREASURY = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
MULTISIG = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
VRF_COORDINATOR = "0x8103b0a8a00be2ddc778e6e7eaa21791cd364625"
LINK_TOKEN = "0x779877a7b0d9e8603169ddbd7836e478b4624789"
KEY_HASH = "0x474e34a077df58807dbe9c96d3c009b23b3c6d0cce433e59bbf5b34f823bc56c"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def artifacts_dir(fixtures_dir: Path) -> Path:
    """Return the sample hardhat compilation artifacts tree."""
    return fixtures_dir / "artifacts"


@pytest.fixture
def sample_network_dir(fixtures_dir: Path, tmp_path: Path) -> Path:
    """Copy the sample sepolia deployments into a writable directory."""
    target = tmp_path / "deployments" / "sepolia"
    shutil.copytree(fixtures_dir / "deployments" / "sepolia", target)
    return target


@pytest.fixture
def backend() -> InMemoryBackend:
    """Create a fresh in-memory execution backend."""
    return InMemoryBackend()


@pytest.fixture
def registry() -> ArtifactRegistry:
    """Create an empty in-memory registry."""
    return ArtifactRegistry("localhost")


@pytest.fixture
def persisted_registry(tmp_path: Path) -> ArtifactRegistry:
    """Create an empty registry persisted under a temporary directory."""
    return ArtifactRegistry.open("localhost", tmp_path / "deployments" / "localhost")


@pytest.fixture
def deployer(backend: InMemoryBackend) -> ModuleDeployer:
    """Create a module deployer sending from the backend's default account."""
    return ModuleDeployer(backend, backend.default_account())


@pytest.fixture
def full_config() -> DeployConfig:
    """Configuration with every optional input set."""
    return DeployConfig(
        treasury=TREASURY,
        multisig=MULTISIG,
        vrf_coordinator=VRF_COORDINATOR,
        link_token=LINK_TOKEN,
        key_hash=KEY_HASH,
    )
