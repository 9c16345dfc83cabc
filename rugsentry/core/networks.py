"""
Supported networks for RugSentry
Network table, address format validation and address-type inference
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import InvalidTargetError
from .model import AddressType, Target


EVM_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")
BASE58_ADDRESS = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
XRP_ADDRESS = re.compile(r"^r[1-9A-HJ-NP-Za-km-z]{24,34}$")
CARDANO_ADDRESS = re.compile(r"^(addr1|stake1)[02-9ac-hj-np-z]{45,110}$")


@dataclass(frozen=True)
class NetworkConfig:
    id: str
    display_name: str
    chain_id: int
    currency: str
    is_evm: bool
    address_pattern: re.Pattern
    explorer_url: str

    def is_valid_address(self, address: str) -> bool:
        return bool(address) and bool(self.address_pattern.match(address))

    def normalize_address(self, address: str) -> str:
        """Canonical form used for cache keys. Only hex addresses fold case."""
        return address.lower() if self.is_evm else address


SUPPORTED_NETWORKS: Dict[str, NetworkConfig] = {
    "ethereum": NetworkConfig("ethereum", "Ethereum", 1, "ETH", True, EVM_ADDRESS, "https://etherscan.io"),
    "solana": NetworkConfig("solana", "Solana", 101, "SOL", False, BASE58_ADDRESS, "https://solscan.io"),
    "bnb": NetworkConfig("bnb", "BNB Smart Chain", 56, "BNB", True, EVM_ADDRESS, "https://bscscan.com"),
    "polygon": NetworkConfig("polygon", "Polygon", 137, "MATIC", True, EVM_ADDRESS, "https://polygonscan.com"),
    "arbitrum": NetworkConfig("arbitrum", "Arbitrum One", 42161, "ETH", True, EVM_ADDRESS, "https://arbiscan.io"),
    "avalanche": NetworkConfig("avalanche", "Avalanche C-Chain", 43114, "AVAX", True, EVM_ADDRESS, "https://snowtrace.io"),
    "base": NetworkConfig("base", "Base", 8453, "ETH", True, EVM_ADDRESS, "https://basescan.org"),
    "optimism": NetworkConfig("optimism", "Optimism", 10, "ETH", True, EVM_ADDRESS, "https://optimistic.etherscan.io"),
    "fantom": NetworkConfig("fantom", "Fantom Opera", 250, "FTM", True, EVM_ADDRESS, "https://ftmscan.com"),
    "blast": NetworkConfig("blast", "Blast", 81457, "ETH", True, EVM_ADDRESS, "https://blastscan.io"),
    "xrp": NetworkConfig("xrp", "XRP Ledger", 0, "XRP", False, XRP_ADDRESS, "https://xrpscan.com"),
    "cardano": NetworkConfig("cardano", "Cardano", 1815, "ADA", False, CARDANO_ADDRESS, "https://cardanoscan.io"),
}

EVM_NETWORKS = tuple(n.id for n in SUPPORTED_NETWORKS.values() if n.is_evm)

NETWORK_ALIASES = {
    "eth": "ethereum",
    "mainnet": "ethereum",
    "bsc": "bnb",
    "binance": "bnb",
    "matic": "polygon",
    "sol": "solana",
    "avax": "avalanche",
    "arb": "arbitrum",
    "op": "optimism",
    "ftm": "fantom",
    "ada": "cardano",
    "ripple": "xrp",
}

# Addresses whose type is known without touching the chain
WELL_KNOWN_ADDRESSES: Dict[str, Dict[str, AddressType]] = {
    "solana": {
        "11111111111111111111111111111111": AddressType.PROGRAM,
        "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA": AddressType.PROGRAM,
        "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8": AddressType.PROGRAM,
        "Stake11111111111111111111111111111111111111": AddressType.STAKING_CONTRACT,
    },
    "ethereum": {
        "0x00000000219ab540356cbb839cbe05303d7705fa": AddressType.STAKING_CONTRACT,
        "0xae7ab96520de3a18e5e111b5eaab095312d7fe84": AddressType.STAKING_CONTRACT,
        "0x5c69bee701ef814a2b6a3edd4b1652cb9cc5aa6f": AddressType.PROGRAM,
        "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2": AddressType.TOKEN,
    },
}


def resolve_network_id(network: str) -> str:
    key = (network or "").strip().lower()
    return NETWORK_ALIASES.get(key, key)


def get_network(network: str) -> NetworkConfig:
    network_id = resolve_network_id(network)
    config = SUPPORTED_NETWORKS.get(network_id)
    if config is None:
        raise InvalidTargetError(f"Unsupported network: {network!r}", network=network)
    return config


def list_networks() -> List[NetworkConfig]:
    return list(SUPPORTED_NETWORKS.values())


def infer_address_type(network: str,
                       address: str,
                       hint: Optional[AddressType] = None) -> AddressType:
    """Infer what kind of object an address is.

    An explicit hint always wins. Otherwise well-known ids are looked up,
    Cardano and XRP addresses are classified by prefix, and anything else
    is treated as a token contract.
    """
    if hint is not None:
        return hint

    config = SUPPORTED_NETWORKS.get(network)
    lookup_key = config.normalize_address(address) if config else address
    known = WELL_KNOWN_ADDRESSES.get(network, {}).get(lookup_key)
    if known is not None:
        return known

    if network == "cardano":
        return AddressType.STAKING_CONTRACT if address.startswith("stake1") else AddressType.WALLET
    if network == "xrp":
        return AddressType.WALLET
    return AddressType.TOKEN


def validate_target(target: Target) -> NetworkConfig:
    """Check the target address against its network's format.

    Raises InvalidTargetError on an unknown network or malformed address.
    """
    config = get_network(target.network)
    if not config.is_valid_address(target.address):
        raise InvalidTargetError(
            f"Malformed {config.display_name} address: {target.address!r}",
            network=target.network,
            address=target.address,
        )
    return config


def cache_address(target: Target) -> str:
    config = SUPPORTED_NETWORKS.get(target.network)
    return config.normalize_address(target.address) if config else target.address
