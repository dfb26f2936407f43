import logging

from factom import crypto
from factom.addresses import ECAddress
from factom.blocks import get_eblock
from factom.config import CHAIN_COMMIT_SURCHARGE, ZERO_HASH
from factom.entry import Entry, check_entry_size, entry_cost, get_entry
from factom.errors import ChainPending
from factom.jsonrpc import JSON2Request, JSONError, get_client

logger = logging.getLogger(__name__)


def chain_id_from_ext_ids(ext_ids) -> str:
    """SHA256 over the concatenated SHA256 of each ExtID, in order."""
    digests = b"".join(crypto.sha256(x) for x in ext_ids)
    return crypto.sha256(digests).hex()


class Chain:
    """A new chain, identified by the ExtIDs of its first entry."""

    def __init__(self, first_entry: Entry):
        self.first_entry = first_entry
        self.chain_id = chain_id_from_ext_ids(first_entry.ext_ids)
        self.first_entry.chain_id = self.chain_id

    def __str__(self):
        return "ChainID: %s\n%s" % (self.chain_id, self.first_entry)

    def __repr__(self):
        return "Chain(%s)" % self.chain_id


# -------------------------------------------------------------------------
# Commit / reveal
# -------------------------------------------------------------------------

def chain_commit_message(chain: Chain, ec: ECAddress, ms=None) -> bytes:
    entry_hash = chain.first_entry.hash()
    chain_id = bytes.fromhex(chain.chain_id)
    signed = (
        b"\x00"
        + crypto.milli_timestamp(ms)
        + crypto.shad(chain_id)
        + crypto.shad(entry_hash + chain_id)   # weld
        + entry_hash
        + bytes([entry_cost(chain.first_entry) + CHAIN_COMMIT_SURCHARGE])
    )
    return signed + ec.pub + ec.sign(signed)


def compose_chain_commit(chain: Chain, ec: ECAddress, ms=None) -> JSON2Request:
    message = chain_commit_message(chain, ec, ms)
    return JSON2Request("commit-chain", params={"message": message.hex()})


def compose_chain_reveal(chain: Chain) -> JSON2Request:
    check_entry_size(chain.first_entry)
    return JSON2Request("reveal-chain", params={"entry": chain.first_entry.to_bytes().hex()})


def commit_chain(chain: Chain, ec: ECAddress, client=None) -> str:
    """Pay for a new chain; returns the commit transaction id."""
    resp = get_client(client).send_factomd_request(compose_chain_commit(chain, ec))
    if resp.error is not None:
        raise resp.error
    logger.info("Committed chain %s", chain.chain_id)
    return resp.result.get("txid", "")


def reveal_chain(chain: Chain, client=None) -> str:
    resp = get_client(client).send_factomd_request(compose_chain_reveal(chain))
    if resp.error is not None:
        raise resp.error
    return resp.result.get("entryhash", "")


# -------------------------------------------------------------------------
# Reads
# -------------------------------------------------------------------------

def get_chain_head(chain_id: str, client=None) -> str:
    """KeyMR of the newest Entry Block of the chain.

    Raises ChainPending if the chain has no block yet but factomd has it in
    the current process list.
    """
    result = get_client(client).factomd_request("chain-head", {"chainid": chain_id})
    head = result.get("chainhead", "")
    if not head and result.get("chaininprocesslist"):
        raise ChainPending(chain_id)
    return head


def chain_exists(chain_id: str, client=None) -> bool:
    """True if the chain has a head or is waiting in the process list."""
    try:
        return get_chain_head(chain_id, client) != ""
    except ChainPending:
        return True
    except JSONError:
        return False


def _walk_eblocks(chain_id, client):
    """Yield the chain's Entry Blocks from newest to oldest."""
    keymr = get_chain_head(chain_id, client)
    while keymr and keymr != ZERO_HASH:
        eblock = get_eblock(keymr, client)
        yield eblock
        keymr = eblock.prev_keymr


def get_all_eblock_entries(eblock, client=None):
    return [get_entry(e.entry_hash, client) for e in eblock.entries]


def get_all_chain_entries(chain_id: str, client=None):
    """Every entry of the chain, oldest first."""
    client = get_client(client)
    entries = []
    for eblock in _walk_eblocks(chain_id, client):
        entries = get_all_eblock_entries(eblock, client) + entries
    return entries


def get_all_chain_entries_at_height(chain_id: str, height: int, client=None):
    """Entries of the chain in blocks at or below directory block ``height``."""
    client = get_client(client)
    entries = []
    for eblock in _walk_eblocks(chain_id, client):
        if eblock.dbheight > height:
            continue
        entries = get_all_eblock_entries(eblock, client) + entries
    return entries


def get_first_entry(chain_id: str, client=None) -> Entry:
    client = get_client(client)
    first = None
    for eblock in _walk_eblocks(chain_id, client):
        first = eblock
    if first is None or not first.entries:
        raise ValueError("chain %s has no entries" % chain_id)
    return get_entry(first.entries[0].entry_hash, client)
