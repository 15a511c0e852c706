"""Data types and dataclasses for mfh-deployments library."""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, FrozenSet, List, Optional, Tuple

if TYPE_CHECKING:
    from .registry import ArtifactRegistry


class ModuleName(str, Enum):
    """
    Typed identifier of a deployable module.

    Value strings are the on-chain contract names and the registry keys.
    """

    MFH_TOKEN = "MFHToken"
    TREASURY_VAULT = "TreasuryVault"
    STAKING_REWARDS = "StakingRewards"
    NFT_MINTING = "NFTMinting"
    BOOST_ENGINE = "BoostEngine"
    ROYALTY_MANAGER = "RoyaltyManager"
    MARKETPLACE_CORE = "MarketplaceCore"
    BUY_NOW_PAY_LATER = "BuyNowPayLater"
    AUCTION_MODULE = "AuctionModule"
    BIDDING_SYSTEM = "BiddingSystem"
    RENTAL_ENGINE = "RentalEngine"
    LEASE_AGREEMENT = "LeaseAgreement"
    LOAN_MODULE = "LoanModule"
    REWARD_DISTRIBUTOR = "RewardDistributor"
    SECRET_JACKPOT = "SecretJackpot"
    CHECK_IN_REWARD = "CheckInReward"
    MULTISIG_ADMIN = "MultiSigAdmin"
    ESCROW_MANAGER = "EscrowManager"
    USDT = "USDT"

    def __str__(self) -> str:
        return self.value


class WiringOperation(Enum):
    """
    Closed set of configuration entry points issued during wiring.

    Value strings are canonical Solidity signatures and define the call data.
    """

    SET_TOKEN = "setToken(address)"
    SET_PAYMENT_TOKEN = "setPaymentToken(address)"
    SET_TREASURY = "setTreasury(address)"
    SET_ROYALTY_MANAGER = "setRoyaltyManager(address)"
    SET_TRUSTED = "setTrusted(address,bool)"
    SET_ESCROW = "setEscrow(address)"
    SET_TRIGGER = "setTrigger(address)"
    SET_INTEREST_RATE = "setInterestRate(uint256)"
    SET_INSTALLMENT_DURATION = "setInstallmentDuration(uint256)"

    @property
    def function_name(self) -> str:
        return self.value.split("(", 1)[0]

    @property
    def arg_types(self) -> Tuple[str, ...]:
        inner = self.value[self.value.index("(") + 1 : -1]
        return tuple(inner.split(",")) if inner else ()


# Configuration entry points each module exposes
SUPPORTED_OPERATIONS: Dict[ModuleName, FrozenSet[WiringOperation]] = {
    ModuleName.STAKING_REWARDS: frozenset({WiringOperation.SET_TOKEN}),
    ModuleName.REWARD_DISTRIBUTOR: frozenset(
        {WiringOperation.SET_TOKEN, WiringOperation.SET_TRIGGER}
    ),
    ModuleName.CHECK_IN_REWARD: frozenset({WiringOperation.SET_TOKEN}),
    ModuleName.BOOST_ENGINE: frozenset(
        {WiringOperation.SET_PAYMENT_TOKEN, WiringOperation.SET_TREASURY}
    ),
    ModuleName.ROYALTY_MANAGER: frozenset({WiringOperation.SET_TREASURY}),
    ModuleName.MARKETPLACE_CORE: frozenset(
        {WiringOperation.SET_TREASURY, WiringOperation.SET_ROYALTY_MANAGER}
    ),
    ModuleName.BUY_NOW_PAY_LATER: frozenset({WiringOperation.SET_ESCROW}),
    ModuleName.RENTAL_ENGINE: frozenset({WiringOperation.SET_TREASURY}),
    ModuleName.LOAN_MODULE: frozenset(
        {
            WiringOperation.SET_TOKEN,
            WiringOperation.SET_ESCROW,
            WiringOperation.SET_INTEREST_RATE,
            WiringOperation.SET_INSTALLMENT_DURATION,
        }
    ),
    ModuleName.ESCROW_MANAGER: frozenset({WiringOperation.SET_TRUSTED}),
}


@dataclass(frozen=True)
class DeployedArtifact:
    """Recorded identity of a deployed module on one network."""

    # Required fields
    name: str  # Contract name, e.g., "MFHToken"
    address: str  # Checksummed address
    constructor_args: Tuple[Any, ...] = ()
    confirmed: bool = True

    # Optional fields (from the confirmation receipt)
    gas_used: Optional[int] = None
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    abi: Optional[List[Dict[str, Any]]] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class DeployReceipt:
    """Confirmation of a contract creation transaction."""

    address: str
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    abi: Optional[List[Dict[str, Any]]] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class CallReceipt:
    """Confirmation of a configuration call."""

    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    status: int = 1


@dataclass(frozen=True)
class ModuleDescriptor:
    """
    What a module needs resolved from the registry before it can be deployed.

    ``build`` receives the registry and returns the constructor arguments.
    Dependencies are names, not object references.
    """

    tag: ModuleName
    build: Callable[["ArtifactRegistry"], Tuple[Any, ...]]
    dependencies: FrozenSet[ModuleName] = frozenset()


@dataclass(frozen=True)
class Unit:
    """A named group of modules deployed together."""

    tag: str
    modules: Tuple[ModuleDescriptor, ...]

    @property
    def provides(self) -> FrozenSet[ModuleName]:
        return frozenset(m.tag for m in self.modules)

    @property
    def external_dependencies(self) -> FrozenSet[ModuleName]:
        """Dependencies satisfied outside this unit."""
        deps = frozenset().union(*(m.dependencies for m in self.modules))
        return deps - self.provides


@dataclass(frozen=True)
class WiringStep:
    """
    One configuration call issued against an already-deployed module.

    Raises:
        ValueError: If the target module does not expose the operation
    """

    target: ModuleName
    operation: WiringOperation
    resolve_args: Callable[["ArtifactRegistry"], Tuple[Any, ...]]
    description: Optional[str] = None

    def __post_init__(self) -> None:
        supported = SUPPORTED_OPERATIONS.get(self.target, frozenset())
        if self.operation not in supported:
            raise ValueError(
                f"{self.target.value} does not support {self.operation.value}"
            )

    def label(self) -> str:
        return self.description or f"{self.target.value}.{self.operation.function_name}"


class DeployOutcome(Enum):
    """Result kind of a module deploy request."""

    DEPLOYED = "deployed"
    ALREADY_DEPLOYED = "already-deployed"


@dataclass(frozen=True)
class DeployResult:
    """Artifact returned by the module deployer plus how it was obtained."""

    artifact: DeployedArtifact
    outcome: DeployOutcome


@dataclass
class UnitReport:
    """Outcome of running one unit."""

    tag: str
    results: List[DeployResult] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunReport:
    """Outcome of an orchestrator run, in execution order."""

    units: List[UnitReport] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(u.ok for u in self.units)

    @property
    def failed_units(self) -> List[str]:
        return [u.tag for u in self.units if not u.ok]

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1
