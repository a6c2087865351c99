"""Static chain and token tables for the payment flow."""

from __future__ import annotations

from typing import Dict

# LI.FI and the token tables use the zero address for a chain's native asset.
NATIVE_TOKEN_ADDRESS = "0x0000000000000000000000000000000000000000"
# Some aggregators report native assets with this placeholder instead.
NATIVE_PLACEHOLDER = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"

# Sentinel used in TOKEN_BY_CHAIN for "no deployment on this chain".
UNAVAILABLE_TOKEN_ADDRESS = NATIVE_TOKEN_ADDRESS

CHAIN_METADATA: Dict[int, Dict[str, object]] = {
    1: {
        "name": "ethereum",
        "display_name": "Ethereum",
        "native_currency": "ETH",
        "native_currency_name": "Ether",
        "rpc_url": "https://eth.llamarpc.com",
        "explorer_url": "https://etherscan.io",
        "usdc": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        "aliases": ["eth", "mainnet", "ethereum"],
    },
    42161: {
        "name": "arbitrum",
        "display_name": "Arbitrum",
        "native_currency": "ETH",
        "native_currency_name": "Ether",
        "rpc_url": "https://arb1.arbitrum.io/rpc",
        "explorer_url": "https://arbiscan.io",
        "usdc": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
        "aliases": ["arb", "arbitrum", "arbitrum one"],
    },
    10: {
        "name": "optimism",
        "display_name": "Optimism",
        "native_currency": "ETH",
        "native_currency_name": "Ether",
        "rpc_url": "https://mainnet.optimism.io",
        "explorer_url": "https://optimistic.etherscan.io",
        "usdc": "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",
        "aliases": ["op", "optimism"],
    },
    137: {
        "name": "polygon",
        "display_name": "Polygon",
        "native_currency": "MATIC",
        "native_currency_name": "MATIC",
        "rpc_url": "https://polygon-rpc.com",
        "explorer_url": "https://polygonscan.com",
        "usdc": "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359",
        "aliases": ["matic", "polygon", "pol"],
    },
    8453: {
        "name": "base",
        "display_name": "Base",
        "native_currency": "ETH",
        "native_currency_name": "Ether",
        "rpc_url": "https://mainnet.base.org",
        "explorer_url": "https://basescan.org",
        "usdc": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
        "aliases": ["base", "base-mainnet"],
    },
}

# Tokens a recipient can ask to be paid in, with their decimals.
RECEIVE_TOKENS: Dict[str, int] = {
    "ETH": 18,
    "USDC": 6,
    "USDT": 6,
    "DAI": 18,
    "WBTC": 8,
    "ARB": 18,
    "OP": 18,
    "POL": 18,
    "LINK": 18,
    "UNI": 18,
    "AAVE": 18,
}

_Z = UNAVAILABLE_TOKEN_ADDRESS

TOKEN_BY_CHAIN: Dict[str, Dict[int, str]] = {
    "USDC": {chain_id: str(meta["usdc"]) for chain_id, meta in CHAIN_METADATA.items()},
    "USDT": {
        1: "0xdAC17F958D2ee523a2206206994597C13D831ec7",
        42161: "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
        10: "0x94b008aA00579c1307B0EF2c499aD98a8ce58e58",
        137: "0xc2132D05D31c914a87C6611C10748AEb04B58e8F",
        8453: _Z,
    },
    "DAI": {
        1: "0x6B175474E89094C44Da98b954EedeAC495271d0F",
        42161: "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1",
        10: "0xDA10009cBd5D07dd0CeCc66161FC93D7c9000da1",
        137: "0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063",
        8453: "0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb",
    },
    "WBTC": {
        1: "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599",
        42161: "0x2f2a2543B76A4166549F7aaB2e75Bef0aefC5B0f",
        10: "0x68f180fcCe6836688e9084f035309E29Bf0A2095",
        137: "0x1BFD67037B42Cf73acF2047067bd4F2C47D9BfD6",
        8453: _Z,
    },
    "ARB": {
        1: "0xB50721BCf8d664c30412Cfbc6cf7a15145234ad1",
        42161: "0x912CE59144191C1204E64559FE8253a0e49E6548",
        10: _Z,
        137: _Z,
        8453: _Z,
    },
    "OP": {1: _Z, 42161: _Z, 10: "0x4200000000000000000000000000000000000042", 137: _Z, 8453: _Z},
    "POL": {1: "0x455e53CBB86018Ac2B8092FdCd39d8444aFFC3F6", 42161: _Z, 10: _Z, 137: _Z, 8453: _Z},
    "LINK": {
        1: "0x514910771AF9Ca656af840dff83E8264EcF986CA",
        42161: "0xf97f4df75117a78c1A5a0DBb814Af92458539FB4",
        10: "0x350a791Bfc2C21F9Ed5d10980Dad2e2638ffa7f6",
        137: "0x53E0bca35eC356BD5ddDFebbD1Fc0fD03FaBad39",
        8453: _Z,
    },
    "UNI": {
        1: "0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984",
        42161: "0xFa7F8980b0f1E64A2062791cc3b0871572f1F7f0",
        10: "0x6fd9d7AD17242c41f7131d257212c54A0e816691",
        137: "0xb33EaAd8d922B1083446DC23f610c2567fB5180f",
        8453: _Z,
    },
    "AAVE": {
        1: "0x7Fc66500c84A76Ad7e9c93437bFc5Ac33E2DDaE9",
        42161: "0xba5DdD1f9d7F570dc94a51479a000E3BCE967196",
        10: "0x76FB31fb4af56892A25e32cFC43De717950c9278",
        137: "0xD6DF932A45C0f255f85145f286eA0b292B21C90B",
        8453: _Z,
    },
}

# Symbols served by the native asset rather than a token contract.
NATIVE_SYMBOLS = frozenset({"ETH"})

# EIP-1193 / wallet error codes
USER_REJECTED_ERROR_CODE = 4001
UNRECOGNIZED_CHAIN_ERROR_CODE = 4902

# ERC-20
ERC20_APPROVE_SELECTOR = "0x095ea7b3"    # approve(address,uint256)
ERC20_ALLOWANCE_SELECTOR = "0xdd62ed3e"  # allowance(address,address)
MAX_UINT256 = 2**256 - 1
