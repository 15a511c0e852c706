"""Environment-sourced configuration for mfh-deployments library."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from eth_utils import is_address, to_checksum_address

from .constants import (
    ENV_ADMIN,
    ENV_DEPLOYER,
    ENV_ENGAGEMENT_TRIGGER,
    ENV_INSTALLMENT_DAYS,
    ENV_INTEREST_RATE_BPS,
    ENV_KEY_HASH,
    ENV_LINK_TOKEN,
    ENV_MINTER,
    ENV_MULTISIG,
    ENV_MULTISIG_SIGNERS,
    ENV_TREASURY,
    ENV_VRF_COORDINATOR,
    MAX_BASIS_POINTS,
    NETWORK_CONFIG,
)
from .exceptions import ConfigurationMissingError, InvalidConfigurationError


@dataclass(frozen=True)
class DeployConfig:
    """
    Named optional inputs read from the environment.

    Address overrides fall back to the deploying account; randomness-service
    parameters have no fallback; numeric policy defaults are applied only
    when set.
    """

    treasury: Optional[str] = None
    multisig: Optional[str] = None
    multisig_signers: Tuple[str, ...] = ()
    admin: Optional[str] = None
    minter: Optional[str] = None
    deployer: Optional[str] = None
    vrf_coordinator: Optional[str] = None
    link_token: Optional[str] = None
    key_hash: Optional[str] = None
    installment_duration_days: Optional[int] = None
    interest_rate_bps: Optional[int] = None
    engagement_trigger: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DeployConfig":
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            DeployConfig with every recognised variable parsed

        Raises:
            InvalidConfigurationError: If a variable is present but malformed
        """
        if environ is None:
            environ = os.environ

        def get(name: str) -> Optional[str]:
            value = environ.get(name)
            # Treat blank values from .env templates as unset
            return value.strip() if value and value.strip() else None

        signers_raw = get(ENV_MULTISIG_SIGNERS)
        signers: Tuple[str, ...] = ()
        if signers_raw is not None:
            signers = tuple(
                _address(ENV_MULTISIG_SIGNERS, s.strip())
                for s in signers_raw.split(",")
                if s.strip()
            )

        interest_rate = _integer(ENV_INTEREST_RATE_BPS, get(ENV_INTEREST_RATE_BPS))
        if interest_rate is not None and not 0 <= interest_rate <= MAX_BASIS_POINTS:
            raise InvalidConfigurationError(
                f"${ENV_INTEREST_RATE_BPS} must be between 0 and {MAX_BASIS_POINTS}, "
                f"got {interest_rate}"
            )

        installment_days = _integer(ENV_INSTALLMENT_DAYS, get(ENV_INSTALLMENT_DAYS))
        if installment_days is not None and installment_days <= 0:
            raise InvalidConfigurationError(
                f"${ENV_INSTALLMENT_DAYS} must be positive, got {installment_days}"
            )

        return cls(
            treasury=_optional_address(ENV_TREASURY, get(ENV_TREASURY)),
            multisig=_optional_address(ENV_MULTISIG, get(ENV_MULTISIG)),
            multisig_signers=signers,
            admin=_optional_address(ENV_ADMIN, get(ENV_ADMIN)),
            minter=_optional_address(ENV_MINTER, get(ENV_MINTER)),
            deployer=_optional_address(ENV_DEPLOYER, get(ENV_DEPLOYER)),
            # Passed through unchecked until a module needs them
            vrf_coordinator=get(ENV_VRF_COORDINATOR),
            link_token=get(ENV_LINK_TOKEN),
            key_hash=get(ENV_KEY_HASH),
            installment_duration_days=installment_days,
            interest_rate_bps=interest_rate,
            engagement_trigger=_optional_address(
                ENV_ENGAGEMENT_TRIGGER, get(ENV_ENGAGEMENT_TRIGGER)
            ),
        )

    def require(self, field_name: str, variable: str, module: Optional[str] = None) -> str:
        """
        Return a required value or fail.

        Raises:
            ConfigurationMissingError: If the value is unset
        """
        value = getattr(self, field_name)
        if value is None:
            raise ConfigurationMissingError(variable, module)
        return value

    def vrf_parameters(self, module: str) -> Tuple[str, str, str]:
        """
        Return (coordinator, link token, key hash) for a randomness consumer.

        Raises:
            ConfigurationMissingError: If any of the three is unset
            InvalidConfigurationError: If any is malformed
        """
        coordinator = self.require("vrf_coordinator", ENV_VRF_COORDINATOR, module)
        link = self.require("link_token", ENV_LINK_TOKEN, module)
        key_hash = self.require("key_hash", ENV_KEY_HASH, module)

        if not (key_hash.startswith("0x") and len(key_hash) == 66):
            raise InvalidConfigurationError(f"${ENV_KEY_HASH} must be a 32-byte hex string")

        return (
            _address(ENV_VRF_COORDINATOR, coordinator),
            _address(ENV_LINK_TOKEN, link),
            key_hash,
        )


def resolve_rpc_url(network: str, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """
    Get the RPC URL for a network from its environment variable or default.

    Args:
        network: Network name
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        RPC URL, or None if neither is available
    """
    if environ is None:
        environ = os.environ

    network_config = NETWORK_CONFIG.get(network)
    if network_config is None:
        return environ.get(f"{network.upper()}_RPC_URL")

    return environ.get(network_config["rpc_env"]) or network_config["default_rpc_url"]


def _address(variable: str, value: str) -> str:
    if not is_address(value):
        raise InvalidConfigurationError(f"${variable} is not a valid address: {value!r}")
    return to_checksum_address(value)


def _optional_address(variable: str, value: Optional[str]) -> Optional[str]:
    return None if value is None else _address(variable, value)


def _integer(variable: str, value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise InvalidConfigurationError(f"${variable} must be an integer, got {value!r}") from e
