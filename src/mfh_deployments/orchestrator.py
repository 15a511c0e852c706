"""Unit-by-unit deployment with per-unit failure isolation."""

from typing import Sequence

import structlog

from .deployer import ModuleDeployer
from .exceptions import (
    ConfigurationMissingError,
    DeploymentFailure,
    InvalidConfigurationError,
    UnresolvedDependencyError,
)
from .graph import order_modules, order_units
from .registry import ArtifactRegistry
from .types import RunReport, Unit, UnitReport

log = structlog.get_logger(__name__)

SKIP_HINT = "likely already deployed or misconfigured"

# Failures isolated at the unit boundary; anything else propagates
UNIT_FAILURES = (
    DeploymentFailure,
    UnresolvedDependencyError,
    ConfigurationMissingError,
    InvalidConfigurationError,
)


class Orchestrator:
    """
    Runs units in dependency order, isolating failures per unit.

    A failed unit is logged and skipped; later units are still attempted.
    Partial progress is never rolled back.
    """

    def __init__(self, deployer: ModuleDeployer, registry: ArtifactRegistry):
        self.deployer = deployer
        self.registry = registry

    def run_unit(self, unit: Unit) -> UnitReport:
        """
        Deploy every module of one unit in dependency order.

        Modules deployed before a failure stay recorded.

        Args:
            unit: Unit to run

        Returns:
            UnitReport; error is set if the unit failed
        """
        report = UnitReport(unit.tag)
        log.info("unit_started", unit=unit.tag, network=self.registry.network)

        try:
            for descriptor in order_modules(unit.modules):
                report.results.append(self.deployer.deploy(descriptor, self.registry))
        except UNIT_FAILURES as e:
            report.error = e
            log.warning(
                "unit_skipped",
                unit=unit.tag,
                hint=SKIP_HINT,
                error=str(e),
                error_type=type(e).__name__,
            )
            return report

        log.info("unit_completed", unit=unit.tag, modules=len(report.results))
        return report

    def run_all(self, units: Sequence[Unit]) -> RunReport:
        """
        Run every unit, never aborting on a unit failure.

        Args:
            units: Units in declaration order

        Returns:
            RunReport in execution order

        Raises:
            DependencyCycleError: If units or modules depend on each other cyclically
        """
        ordered = order_units(units)
        # Surface module-level cycles before anything is deployed
        for unit in ordered:
            order_modules(unit.modules)

        report = RunReport()
        for unit in ordered:
            report.units.append(self.run_unit(unit))

        if report.ok:
            log.info("run_completed", units=len(report.units))
        else:
            log.warning(
                "run_completed_with_failures",
                units=len(report.units),
                failed=report.failed_units,
            )
        return report
