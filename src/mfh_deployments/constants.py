"""Configuration constants for mfh-deployments library."""

# Sentinel for optional collaborators that are not deployed yet
NULL_ADDRESS = "0x0000000000000000000000000000000000000000"

# Network configuration based on ethereum-lists/chains
NETWORK_CONFIG = {
    "hardhat": {
        "chain_id": 31337,
        "chain_name": "Hardhat",
        "default_rpc_url": "http://127.0.0.1:8545",
        "rpc_env": "HARDHAT_RPC_URL",
        "block_explorer_url": None,
    },
    "localhost": {
        "chain_id": 31337,
        "chain_name": "Hardhat",
        "default_rpc_url": "http://127.0.0.1:8545",
        "rpc_env": "LOCALHOST_RPC_URL",
        "block_explorer_url": None,
    },
    "sepolia": {
        "chain_id": 11155111,
        "chain_name": "Sepolia",
        "default_rpc_url": None,
        "rpc_env": "SEPOLIA_RPC_URL",
        "block_explorer_url": "https://sepolia.etherscan.io",
    },
}

DEFAULT_NETWORK = "localhost"

# Environment-sourced overrides
ENV_TREASURY = "TREASURY_ADDRESS"
ENV_MULTISIG = "MULTISIG_ADDRESS"
ENV_MULTISIG_SIGNERS = "MULTISIG_SIGNERS"
ENV_ADMIN = "ADMIN_ADDRESS"
ENV_MINTER = "MINTER_ADDRESS"
ENV_DEPLOYER = "DEPLOYER_ADDRESS"
ENV_VRF_COORDINATOR = "VRF_COORDINATOR"
ENV_LINK_TOKEN = "LINK_TOKEN"
ENV_KEY_HASH = "KEY_HASH"
ENV_INSTALLMENT_DAYS = "INSTALLMENT_DURATION_DAYS"
ENV_INTEREST_RATE_BPS = "INTEREST_RATE_BPS"
ENV_ENGAGEMENT_TRIGGER = "ENGAGEMENT_TRIGGER_ADDRESS"

MAX_BASIS_POINTS = 10_000
SECONDS_PER_DAY = 86_400

# Rewards parameters, 18-decimal token units
WEI = 10**18
JACKPOT_VRF_FEE = WEI // 10  # 0.1 LINK
JACKPOT_AMOUNT = 1_000 * WEI
DAILY_CHECK_IN_REWARD = 25 * WEI

# Confirmation polling for JSON-RPC backends
RPC_TIMEOUT_SECONDS = 30
CONFIRMATION_TIMEOUT_SECONDS = 120
CONFIRMATION_POLL_SECONDS = 0.5
