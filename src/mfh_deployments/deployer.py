"""Idempotent per-module deployment."""

import structlog

from .backends import ExecutionBackend
from .exceptions import BackendError, DeploymentFailure
from .registry import ArtifactRegistry
from .types import DeployedArtifact, DeployOutcome, DeployResult, ModuleDescriptor

log = structlog.get_logger(__name__)


class ModuleDeployer:
    """Deploys a module once per network and records it in the registry."""

    def __init__(self, backend: ExecutionBackend, sender: str):
        """
        Initialize the deployer.

        Args:
            backend: Execution backend that submits and confirms deployments
            sender: Deploying account
        """
        self.backend = backend
        self.sender = sender

    def deploy(self, descriptor: ModuleDescriptor, registry: ArtifactRegistry) -> DeployResult:
        """
        Deploy a module unless it is already recorded.

        Args:
            descriptor: Module to deploy
            registry: Registry for the target network

        Returns:
            DeployResult with the artifact and whether it was newly deployed

        Raises:
            UnresolvedDependencyError: If a declared dependency is not deployed
            ConfigurationMissingError: If the module's build needs an absent input
            DeploymentFailure: If the backend rejects the deployment
        """
        name = descriptor.tag.value

        existing = registry.get_or_null(descriptor.tag)
        if existing is not None:
            log.info(
                "module_already_deployed",
                module=name,
                address=existing.address,
                network=registry.network,
            )
            return DeployResult(existing, DeployOutcome.ALREADY_DEPLOYED)

        # Fail before building if any prerequisite is missing
        for dependency in sorted(descriptor.dependencies, key=lambda d: d.value):
            registry.resolve(dependency)

        args = tuple(descriptor.build(registry))

        try:
            receipt = self.backend.deploy(name, args, self.sender)
        except BackendError as e:
            raise DeploymentFailure(name, e) from e

        artifact = DeployedArtifact(
            name=name,
            address=receipt.address,
            constructor_args=args,
            confirmed=True,
            gas_used=receipt.gas_used,
            transaction_hash=receipt.transaction_hash,
            block_number=receipt.block_number,
            abi=receipt.abi,
        )
        registry.record(artifact)

        log.info(
            "module_deployed",
            module=name,
            address=artifact.address,
            gas_used=artifact.gas_used,
            network=registry.network,
        )
        return DeployResult(artifact, DeployOutcome.DEPLOYED)
