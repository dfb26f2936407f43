# Keys and addresses
from .addresses import (
    AddressType,
    ECAddress,
    FactoidAddress,
    RCD1,
    is_valid,
    is_valid_ec,
    is_valid_factoid,
    make_bip44_ec_address,
    make_bip44_factoid_address,
    make_factoid_address_from_koinify,
)
from .identity_keys import IdentityKey, make_bip44_identity_key

# Chains and entries
from .entry import Entry, entry_cost, commit_entry, reveal_entry, get_entry
from .chain import Chain, commit_chain, reveal_chain, chain_exists, get_all_chain_entries

# Identities
from .identity import ActiveKeySet, get_identity_chain_id, keys_at_height

# Blocks
from .ablock import ABlock, get_ablock
from .ecblock import ECBlock, get_ecblock
from .blocks import DBlock, EBlock, FBlock, Anchors

# Transactions
from .transaction import FactoidTransaction

# Transport
from .config import RPCConfig
from .errors import FactomError
from .jsonrpc import Client, JSON2Request, JSON2Response, JSONError, set_default_client

__all__ = [
    # Keys and addresses
    "AddressType",
    "ECAddress",
    "FactoidAddress",
    "RCD1",
    "is_valid",
    "is_valid_ec",
    "is_valid_factoid",
    "make_bip44_ec_address",
    "make_bip44_factoid_address",
    "make_factoid_address_from_koinify",
    "IdentityKey",
    "make_bip44_identity_key",
    # Chains and entries
    "Entry",
    "entry_cost",
    "commit_entry",
    "reveal_entry",
    "get_entry",
    "Chain",
    "commit_chain",
    "reveal_chain",
    "chain_exists",
    "get_all_chain_entries",
    # Identities
    "ActiveKeySet",
    "get_identity_chain_id",
    "keys_at_height",
    # Blocks
    "ABlock",
    "get_ablock",
    "ECBlock",
    "get_ecblock",
    "DBlock",
    "EBlock",
    "FBlock",
    "Anchors",
    # Transactions
    "FactoidTransaction",
    # Transport
    "RPCConfig",
    "FactomError",
    "Client",
    "JSON2Request",
    "JSON2Response",
    "JSONError",
    "set_default_client",
]
