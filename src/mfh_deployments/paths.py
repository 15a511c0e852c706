"""Path management utilities for mfh-deployments library."""

from pathlib import Path
from typing import Optional, Union


def get_default_deployments_dir() -> Path:
    """
    Get default deployments directory (current working directory).

    Returns:
        Path to ./deployments
    """
    return Path.cwd() / "deployments"


def get_default_artifacts_dir() -> Path:
    """
    Get default hardhat compilation artifacts directory.

    Returns:
        Path to ./artifacts
    """
    return Path.cwd() / "artifacts"


def get_network_dir(
    network: str, deployments_root: Optional[Union[Path, str]] = None
) -> Path:
    """
    Get the per-network registry directory.

    Args:
        network: Network name (e.g., "sepolia")
        deployments_root: Custom deployments directory (defaults to ./deployments)

    Returns:
        Path to {deployments_root}/{network}
    """
    if deployments_root is None:
        deployments_root = get_default_deployments_dir()
    else:
        deployments_root = Path(deployments_root).absolute()

    return deployments_root / network
