"""Post-deployment wiring: ordered configuration calls with abort-on-failure."""

from typing import List, Sequence

import structlog

from .backends import ExecutionBackend
from .config import DeployConfig
from .constants import SECONDS_PER_DAY
from .exceptions import (
    BackendError,
    DeploymentError,
    UnresolvedDependencyError,
    UnresolvedWiringTargetError,
    WiringFailure,
)
from .registry import ArtifactRegistry
from .types import CallReceipt, ModuleName, WiringOperation, WiringStep

log = structlog.get_logger(__name__)

M = ModuleName
Op = WiringOperation


class WiringEngine:
    """
    Issues configuration calls against deployed modules, strictly in order.

    Any failure aborts the remaining steps, since later steps may rely on
    the side effects of earlier ones.
    """

    def __init__(self, backend: ExecutionBackend, sender: str):
        self.backend = backend
        self.sender = sender

    def run_wiring(
        self, steps: Sequence[WiringStep], registry: ArtifactRegistry
    ) -> List[CallReceipt]:
        """
        Run every wiring step.

        Wiring calls are not idempotency-checked: running again re-issues
        every call.

        Args:
            steps: Steps in execution order
            registry: Registry to resolve addresses from (read-only)

        Returns:
            Receipts of the confirmed calls, in order

        Raises:
            UnresolvedWiringTargetError: If a step's target or argument is not deployed
            WiringFailure: If an argument cannot be resolved or the backend rejects a call
        """
        receipts: List[CallReceipt] = []

        for index, step in enumerate(steps, start=1):
            try:
                address = registry.resolve(step.target)
                args = tuple(step.resolve_args(registry))
            except UnresolvedDependencyError as e:
                log.error("wiring_aborted", step=index, action=step.label(), error=str(e))
                raise UnresolvedWiringTargetError(e.name, index, registry.network) from e
            except DeploymentError as e:
                log.error("wiring_aborted", step=index, action=step.label(), error=str(e))
                raise WiringFailure(
                    f"Wiring step {index} ({step.label()}) failed: {e}", index
                ) from e

            try:
                receipt = self.backend.call(
                    address, step.target.value, step.operation, args, self.sender
                )
            except BackendError as e:
                log.error("wiring_aborted", step=index, action=step.label(), error=str(e))
                raise WiringFailure(
                    f"Wiring step {index} ({step.label()}) failed: {e}", index
                ) from e

            receipts.append(receipt)
            log.info(
                "wiring_step",
                step=index,
                action=step.label(),
                target=address,
                transaction_hash=receipt.transaction_hash,
            )

        log.info("wiring_complete", steps=len(receipts), network=registry.network)
        return receipts


def _address_of(name: ModuleName):
    return lambda r: (r.resolve(name),)


def _optional_address_of(name: ModuleName):
    return lambda r: (r.resolve_optional(name),)


def platform_wiring_steps(config: DeployConfig) -> List[WiringStep]:
    """
    Build the platform's post-deploy configuration sequence.

    Numeric policy defaults and the engagement trigger are included only
    when configured; otherwise module-internal defaults stand.

    Args:
        config: Environment-sourced overrides

    Returns:
        Steps in execution order
    """
    steps = [
        # Token injection
        WiringStep(M.STAKING_REWARDS, Op.SET_TOKEN, _address_of(M.MFH_TOKEN)),
        WiringStep(M.REWARD_DISTRIBUTOR, Op.SET_TOKEN, _address_of(M.MFH_TOKEN)),
        WiringStep(M.BOOST_ENGINE, Op.SET_PAYMENT_TOKEN, _address_of(M.MFH_TOKEN)),
        WiringStep(M.CHECK_IN_REWARD, Op.SET_TOKEN, _address_of(M.MFH_TOKEN)),
        WiringStep(M.LOAN_MODULE, Op.SET_TOKEN, _address_of(M.MFH_TOKEN)),
        # Escrow is optional for these modules
        WiringStep(M.BUY_NOW_PAY_LATER, Op.SET_ESCROW, _optional_address_of(M.ESCROW_MANAGER)),
        WiringStep(M.LOAN_MODULE, Op.SET_ESCROW, _optional_address_of(M.ESCROW_MANAGER)),
        # Treasury injection into fee modules
        WiringStep(M.BOOST_ENGINE, Op.SET_TREASURY, _address_of(M.TREASURY_VAULT)),
        WiringStep(M.MARKETPLACE_CORE, Op.SET_TREASURY, _address_of(M.TREASURY_VAULT)),
        WiringStep(M.RENTAL_ENGINE, Op.SET_TREASURY, _address_of(M.TREASURY_VAULT)),
        WiringStep(M.MARKETPLACE_CORE, Op.SET_ROYALTY_MANAGER, _address_of(M.ROYALTY_MANAGER)),
    ]

    # Modules allowed to release assets held in escrow
    for trusted in (M.BUY_NOW_PAY_LATER, M.LOAN_MODULE, M.RENTAL_ENGINE):
        steps.append(
            WiringStep(
                M.ESCROW_MANAGER,
                Op.SET_TRUSTED,
                lambda r, name=trusted: (r.resolve(name), True),
                description=f"EscrowManager.setTrusted({trusted.value})",
            )
        )

    if config.interest_rate_bps is not None:
        rate = config.interest_rate_bps
        steps.append(WiringStep(M.LOAN_MODULE, Op.SET_INTEREST_RATE, lambda r: (rate,)))

    if config.installment_duration_days is not None:
        duration = config.installment_duration_days * SECONDS_PER_DAY
        steps.append(
            WiringStep(M.LOAN_MODULE, Op.SET_INSTALLMENT_DURATION, lambda r: (duration,))
        )

    if config.engagement_trigger is not None:
        trigger = config.engagement_trigger
        steps.append(WiringStep(M.REWARD_DISTRIBUTOR, Op.SET_TRIGGER, lambda r: (trigger,)))

    return steps
