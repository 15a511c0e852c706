"""Artifact registry for mfh-deployments library."""

from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

import structlog

from .constants import NETWORK_CONFIG, NULL_ADDRESS
from .exceptions import DuplicateArtifactError, NetworkMismatchError, UnresolvedDependencyError
from .parsers import parse_deployment_file, read_chain_id, write_chain_id, write_deployment_file
from .paths import get_network_dir
from .types import DeployedArtifact, ModuleName

log = structlog.get_logger(__name__)

NameLike = Union[ModuleName, str]


def _key(name: NameLike) -> str:
    # ModuleName(...) rejects misspelled names before any lookup happens
    return ModuleName(name).value


class ArtifactRegistry:
    """
    Append-only mapping from module name to deployed artifact for one network.

    When created with a directory, every recorded artifact is persisted as a
    hardhat-deploy deployment file, and existing files are loaded on open.
    """

    def __init__(self, network: str, directory: Optional[Path] = None):
        """
        Initialize the registry.

        Args:
            network: Network name the artifacts belong to
            directory: Per-network directory to persist to (None for in-memory)
        """
        self.network = network
        self.directory = directory
        self._artifacts: Dict[str, DeployedArtifact] = {}

    @classmethod
    def open(cls, network: str, directory: Path) -> "ArtifactRegistry":
        """
        Open a persisted registry, loading every deployment file it holds.

        Args:
            network: Network name
            directory: Per-network directory (may not exist yet)

        Returns:
            ArtifactRegistry populated from disk

        Raises:
            NetworkMismatchError: If the directory's chain id differs from the network's
            DefectiveDeploymentError: If a deployment file is malformed
        """
        registry = cls(network, directory)

        expected_chain_id = NETWORK_CONFIG.get(network, {}).get("chain_id")
        recorded_chain_id = read_chain_id(directory) if directory.exists() else None
        if (
            recorded_chain_id is not None
            and expected_chain_id is not None
            and recorded_chain_id != expected_chain_id
        ):
            raise NetworkMismatchError(
                f"{directory} holds deployments for chain {recorded_chain_id}, "
                f"but network '{network}' is chain {expected_chain_id}"
            )

        if directory.exists():
            for file_path in sorted(directory.glob("*.json")):
                artifact = parse_deployment_file(file_path)
                registry._artifacts[artifact.name] = artifact

        log.info(
            "registry_loaded",
            network=network,
            directory=str(directory),
            artifacts=len(registry._artifacts),
        )
        return registry

    def get_or_null(self, name: NameLike) -> Optional[DeployedArtifact]:
        """Return the artifact recorded under name, or None. Never raises for known names."""
        return self._artifacts.get(_key(name))

    def resolve(self, name: NameLike) -> str:
        """
        Resolve a module's address.

        Raises:
            UnresolvedDependencyError: If no artifact named name exists
        """
        artifact = self.get_or_null(name)
        if artifact is None:
            raise UnresolvedDependencyError(_key(name), self.network)
        return artifact.address

    def resolve_optional(self, name: NameLike, default: str = NULL_ADDRESS) -> str:
        """Resolve an optional collaborator, falling back to the null address."""
        artifact = self.get_or_null(name)
        return artifact.address if artifact is not None else default

    def record(self, artifact: DeployedArtifact) -> None:
        """
        Append an artifact. The only mutator; persists before returning.

        Raises:
            DuplicateArtifactError: If an artifact with the same name exists
        """
        key = _key(artifact.name)
        if key in self._artifacts:
            raise DuplicateArtifactError(
                f"Artifact '{key}' already recorded on network '{self.network}' "
                f"at {self._artifacts[key].address}"
            )

        if self.directory is not None:
            chain_id = NETWORK_CONFIG.get(self.network, {}).get("chain_id")
            if chain_id is not None and read_chain_id(self.directory) is None:
                write_chain_id(self.directory, chain_id)
            write_deployment_file(artifact, self.directory)

        self._artifacts[key] = artifact
        log.debug("artifact_recorded", network=self.network, name=key, address=artifact.address)

    def names(self) -> List[str]:
        return list(self._artifacts)

    def __contains__(self, name: object) -> bool:
        try:
            return _key(name) in self._artifacts  # type: ignore[arg-type]
        except ValueError:
            return False

    def __len__(self) -> int:
        return len(self._artifacts)

    def __iter__(self) -> Iterator[DeployedArtifact]:
        return iter(list(self._artifacts.values()))


def open_registry(
    network: str, deployments_root: Optional[Union[Path, str]] = None
) -> ArtifactRegistry:
    """
    Open the persisted registry for a network.

    Args:
        network: Network name
        deployments_root: Custom deployments directory (defaults to ./deployments)

    Returns:
        ArtifactRegistry backed by {deployments_root}/{network}
    """
    return ArtifactRegistry.open(network, get_network_dir(network, deployments_root))
