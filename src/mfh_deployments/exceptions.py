"""Custom exception classes for mfh-deployments library."""

from typing import Optional, Sequence


class DeploymentError(Exception):
    """Base exception for deployment-related errors."""

    pass


class UnresolvedDependencyError(DeploymentError, LookupError):
    """Raised when a named prerequisite artifact is missing from the registry."""

    def __init__(self, name: str, network: Optional[str] = None):
        self.name = name
        self.network = network
        where = f" on network '{network}'" if network else ""
        super().__init__(f"Module '{name}' has not been deployed{where}")


class DuplicateArtifactError(DeploymentError, ValueError):
    """Raised when recording an artifact under a name that already exists."""

    pass


class DeploymentFailure(DeploymentError, RuntimeError):
    """Raised when the execution backend rejects a module deployment."""

    def __init__(self, module: str, cause: BaseException):
        self.module = module
        self.cause = cause
        super().__init__(f"Deployment of '{module}' failed: {cause}")


class BackendError(DeploymentError, RuntimeError):
    """Raised by an execution backend when a transaction is rejected or lost."""

    pass


class ConfigurationMissingError(DeploymentError, ValueError):
    """Raised when a required environment input is absent."""

    def __init__(self, variable: str, module: Optional[str] = None):
        self.variable = variable
        self.module = module
        needed_by = f" (required by {module})" if module else ""
        super().__init__(f"Missing required configuration ${variable}{needed_by}")


class InvalidConfigurationError(DeploymentError, ValueError):
    """Raised when an environment input is present but malformed."""

    pass


class DependencyCycleError(DeploymentError, ValueError):
    """Raised when declared dependencies form a cycle."""

    def __init__(self, cycle: Sequence[str]):
        self.cycle = tuple(cycle)
        super().__init__(f"Dependency cycle detected: {' -> '.join(self.cycle)}")


class DefectiveDeploymentError(DeploymentError, ValueError):
    """Raised when a persisted deployment file cannot be parsed."""

    pass


class NetworkMismatchError(DeploymentError, ValueError):
    """Raised when a deployments directory belongs to a different chain."""

    pass


class ArtifactNotFoundError(DeploymentError, FileNotFoundError):
    """Raised when a compilation artifact for a contract cannot be found."""

    pass


class UnknownUnitError(DeploymentError, KeyError):
    """Raised when a unit tag is not in the catalogue."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ""


class WiringFailure(DeploymentError, RuntimeError):
    """Raised when any wiring step fails; the remaining steps are not run."""

    def __init__(self, message: str, step_index: Optional[int] = None):
        self.step_index = step_index
        super().__init__(message)


class UnresolvedWiringTargetError(WiringFailure, UnresolvedDependencyError):
    """Raised when a wiring step references a module that was never deployed."""

    def __init__(self, name: str, step_index: int, network: Optional[str] = None):
        self.name = name
        self.network = network
        self.step_index = step_index
        DeploymentError.__init__(
            self, f"Wiring step {step_index} requires '{name}', which has not been deployed"
        )
