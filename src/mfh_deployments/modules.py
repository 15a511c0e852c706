"""The platform catalogue: every deployable module grouped into units."""

from typing import Dict, List, Optional

from .config import DeployConfig
from .constants import DAILY_CHECK_IN_REWARD, JACKPOT_AMOUNT, JACKPOT_VRF_FEE
from .exceptions import UnknownUnitError
from .types import ModuleDescriptor, ModuleName, Unit

M = ModuleName

# Default "deploy everything" sequence
DEFAULT_UNIT_ORDER = [
    "TokenModule",
    "NFTModules",
    "MarketplaceModule",
    "RentalsModule",
    "FinanceModule",
    "RewardsModule",
    "EscrowModule",
]


def build_units(config: DeployConfig, deployer: str) -> Dict[str, Unit]:
    """
    Build every catalogued unit.

    Constructor argument resolvers close over the configuration; module
    addresses are resolved from the registry when each module is built.

    Args:
        config: Environment-sourced overrides
        deployer: Deploying account, the fallback for address overrides

    Returns:
        Mapping of unit tag to Unit, default units first in default order
    """
    multisig = config.multisig or deployer
    treasury = config.treasury or deployer
    admin = config.admin or deployer
    minter = config.minter or deployer
    signers = list(config.multisig_signers) or [deployer]

    def secret_jackpot_args(registry):
        coordinator, link_token, key_hash = config.vrf_parameters(M.SECRET_JACKPOT.value)
        return (
            registry.resolve(M.STAKING_REWARDS),
            coordinator,
            link_token,
            key_hash,
            JACKPOT_VRF_FEE,
            registry.resolve(M.MFH_TOKEN),
            JACKPOT_AMOUNT,
        )

    units = [
        Unit(
            "TokenModule",
            (
                ModuleDescriptor(M.MFH_TOKEN, lambda r: ()),
                ModuleDescriptor(M.TREASURY_VAULT, lambda r: (multisig,)),
                ModuleDescriptor(
                    M.STAKING_REWARDS,
                    lambda r: (r.resolve(M.MFH_TOKEN),),
                    frozenset({M.MFH_TOKEN}),
                ),
            ),
        ),
        Unit(
            "NFTModules",
            (
                ModuleDescriptor(
                    M.NFT_MINTING,
                    lambda r: (r.resolve(M.MFH_TOKEN),),
                    frozenset({M.MFH_TOKEN}),
                ),
                ModuleDescriptor(
                    M.BOOST_ENGINE,
                    lambda r: (r.resolve(M.MFH_TOKEN), multisig),
                    frozenset({M.MFH_TOKEN}),
                ),
                ModuleDescriptor(
                    M.ROYALTY_MANAGER,
                    lambda r: (r.resolve(M.MFH_TOKEN), multisig),
                    frozenset({M.MFH_TOKEN}),
                ),
            ),
        ),
        Unit(
            "MarketplaceModule",
            (
                ModuleDescriptor(
                    M.MARKETPLACE_CORE,
                    lambda r: (
                        r.resolve(M.NFT_MINTING),
                        r.resolve(M.MFH_TOKEN),
                        treasury,
                        r.resolve(M.ROYALTY_MANAGER),
                    ),
                    frozenset({M.NFT_MINTING, M.MFH_TOKEN, M.ROYALTY_MANAGER}),
                ),
                # Escrow is an optional collaborator: the null address until deployed
                ModuleDescriptor(
                    M.BUY_NOW_PAY_LATER,
                    lambda r: (
                        r.resolve(M.NFT_MINTING),
                        r.resolve(M.MFH_TOKEN),
                        r.resolve_optional(M.ESCROW_MANAGER),
                    ),
                    frozenset({M.NFT_MINTING, M.MFH_TOKEN}),
                ),
                ModuleDescriptor(
                    M.AUCTION_MODULE,
                    lambda r: (r.resolve(M.NFT_MINTING), r.resolve(M.MFH_TOKEN)),
                    frozenset({M.NFT_MINTING, M.MFH_TOKEN}),
                ),
                ModuleDescriptor(
                    M.BIDDING_SYSTEM,
                    lambda r: (r.resolve(M.NFT_MINTING), r.resolve(M.MFH_TOKEN)),
                    frozenset({M.NFT_MINTING, M.MFH_TOKEN}),
                ),
            ),
        ),
        Unit(
            "RentalsModule",
            (
                ModuleDescriptor(
                    M.RENTAL_ENGINE,
                    lambda r: (r.resolve(M.NFT_MINTING),),
                    frozenset({M.NFT_MINTING}),
                ),
                ModuleDescriptor(
                    M.LEASE_AGREEMENT,
                    lambda r: (r.resolve(M.NFT_MINTING), r.resolve(M.RENTAL_ENGINE)),
                    frozenset({M.NFT_MINTING, M.RENTAL_ENGINE}),
                ),
            ),
        ),
        Unit(
            "FinanceModule",
            (
                ModuleDescriptor(
                    M.LOAN_MODULE,
                    lambda r: (
                        r.resolve(M.NFT_MINTING),
                        r.resolve(M.MFH_TOKEN),
                        r.resolve_optional(M.ESCROW_MANAGER),
                    ),
                    frozenset({M.NFT_MINTING, M.MFH_TOKEN}),
                ),
            ),
        ),
        Unit(
            "RewardsModule",
            (
                ModuleDescriptor(
                    M.REWARD_DISTRIBUTOR,
                    lambda r: (r.resolve(M.MFH_TOKEN),),
                    frozenset({M.MFH_TOKEN}),
                ),
                ModuleDescriptor(
                    M.SECRET_JACKPOT,
                    secret_jackpot_args,
                    frozenset({M.STAKING_REWARDS, M.MFH_TOKEN}),
                ),
                ModuleDescriptor(
                    M.CHECK_IN_REWARD,
                    lambda r: (r.resolve(M.MFH_TOKEN), DAILY_CHECK_IN_REWARD),
                    frozenset({M.MFH_TOKEN}),
                ),
            ),
        ),
        Unit(
            "EscrowModule",
            (
                ModuleDescriptor(M.MULTISIG_ADMIN, lambda r: (signers,)),
                # Canonical two-argument form: collateral registry, admin multisig
                ModuleDescriptor(
                    M.ESCROW_MANAGER,
                    lambda r: (r.resolve(M.NFT_MINTING), r.resolve(M.MULTISIG_ADMIN)),
                    frozenset({M.NFT_MINTING, M.MULTISIG_ADMIN}),
                ),
            ),
        ),
        Unit(
            "USDTToken",
            (ModuleDescriptor(M.USDT, lambda r: (admin, minter)),),
        ),
    ]

    return {unit.tag: unit for unit in units}


def select_units(units: Dict[str, Unit], tags: Optional[List[str]] = None) -> List[Unit]:
    """
    Pick units by tag.

    Args:
        units: Catalogue from build_units()
        tags: Unit tags to run (defaults to DEFAULT_UNIT_ORDER)

    Returns:
        Units in the requested order

    Raises:
        UnknownUnitError: If a tag is not catalogued
    """
    if tags is None:
        tags = DEFAULT_UNIT_ORDER

    unknown = [t for t in tags if t not in units]
    if unknown:
        raise UnknownUnitError(
            f"Unknown unit(s): {', '.join(unknown)}. "
            f"Available: {', '.join(units)}"
        )

    return [units[t] for t in tags]
