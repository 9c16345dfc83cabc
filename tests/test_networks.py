"""
Test suite for network resolution and address validation
"""

import pytest

from rugsentry.core.errors import InvalidTargetError
from rugsentry.core.model import AddressType, Target
from rugsentry.core.networks import (
    EVM_NETWORKS,
    cache_address,
    get_network,
    infer_address_type,
    list_networks,
    resolve_network_id,
    validate_target,
)


@pytest.mark.parametrize("network,address", [
    ("ethereum", "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"),
    ("bnb", "0x" + "0" * 40),
    ("solana", "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"),
    ("xrp", "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"),
    ("cardano", "addr1" + "q" * 58),
])
def test_valid_addresses(network, address):
    config = validate_target(Target.create(network, address))
    assert config.id == network


@pytest.mark.parametrize("network,address", [
    ("ethereum", ""),
    ("ethereum", "0x123"),
    ("ethereum", "0x" + "g" * 40),
    ("solana", "0x" + "ab" * 20),
    ("solana", "0OIl" * 10),
    ("xrp", "xHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh"),
])
def test_malformed_addresses(network, address):
    with pytest.raises(InvalidTargetError) as exc_info:
        validate_target(Target.create(network, address))
    assert exc_info.value.network == network


def test_unknown_network():
    with pytest.raises(InvalidTargetError):
        get_network("dogechain")


def test_aliases():
    assert resolve_network_id("BSC") == "bnb"
    assert resolve_network_id(" sol ") == "solana"
    assert get_network("matic").id == "polygon"


def test_evm_networks_share_address_format():
    assert "ethereum" in EVM_NETWORKS
    assert "solana" not in EVM_NETWORKS
    assert all(n.is_evm == (n.id in EVM_NETWORKS) for n in list_networks())


def test_cache_address_folds_hex_case_only():
    evm = Target.create("ethereum", "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2")
    sol = Target.create("solana", "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
    assert cache_address(evm) == "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
    assert cache_address(sol) == sol.address


class TestAddressTypeInference:
    def test_well_known_program(self):
        assert infer_address_type("solana", "11111111111111111111111111111111") is AddressType.PROGRAM

    def test_cardano_prefixes(self):
        assert infer_address_type("cardano", "stake1abc") is AddressType.STAKING_CONTRACT
        assert infer_address_type("cardano", "addr1abc") is AddressType.WALLET

    def test_xrp_is_wallet(self):
        assert infer_address_type("xrp", "rHb9CJAWyB4rj91VRWn96DkukG4bwdtyTh") is AddressType.WALLET

    def test_default_is_token(self):
        assert infer_address_type("ethereum", "0x" + "ab" * 20) is AddressType.TOKEN

    def test_hint_wins(self):
        assert infer_address_type("ethereum", "0x" + "ab" * 20, AddressType.PROXY) is AddressType.PROXY
