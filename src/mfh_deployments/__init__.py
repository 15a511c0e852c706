"""
mfh-deployments: idempotent deployment and post-deploy wiring for the MFH platform contracts
"""

from importlib.metadata import PackageNotFoundError, version

from .backends import ExecutionBackend, InMemoryBackend, JsonRpcBackend
from .config import DeployConfig
from .deployer import ModuleDeployer
from .exceptions import (
    ArtifactNotFoundError,
    BackendError,
    ConfigurationMissingError,
    DefectiveDeploymentError,
    DependencyCycleError,
    DeploymentError,
    DeploymentFailure,
    DuplicateArtifactError,
    InvalidConfigurationError,
    NetworkMismatchError,
    UnknownUnitError,
    UnresolvedDependencyError,
    UnresolvedWiringTargetError,
    WiringFailure,
)
from .modules import build_units, select_units
from .orchestrator import Orchestrator
from .registry import ArtifactRegistry, open_registry
from .types import (
    DeployedArtifact,
    DeployOutcome,
    DeployResult,
    ModuleDescriptor,
    ModuleName,
    RunReport,
    Unit,
    UnitReport,
    WiringOperation,
    WiringStep,
)
from .wiring import WiringEngine, platform_wiring_steps

try:
    __version__ = version("mfh-deployments")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "ArtifactRegistry",
    "open_registry",
    "ModuleDeployer",
    "Orchestrator",
    "WiringEngine",
    "ExecutionBackend",
    "InMemoryBackend",
    "JsonRpcBackend",
    "DeployConfig",
    "build_units",
    "select_units",
    "platform_wiring_steps",
    "DeployedArtifact",
    "DeployOutcome",
    "DeployResult",
    "ModuleDescriptor",
    "ModuleName",
    "RunReport",
    "Unit",
    "UnitReport",
    "WiringOperation",
    "WiringStep",
    "DeploymentError",
    "UnresolvedDependencyError",
    "DuplicateArtifactError",
    "DeploymentFailure",
    "BackendError",
    "ConfigurationMissingError",
    "InvalidConfigurationError",
    "DependencyCycleError",
    "DefectiveDeploymentError",
    "NetworkMismatchError",
    "ArtifactNotFoundError",
    "UnknownUnitError",
    "WiringFailure",
    "UnresolvedWiringTargetError",
]
