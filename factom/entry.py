import json
import logging
import math

from factom import crypto
from factom.addresses import ECAddress
from factom.config import ENTRY_HEADER_SIZE, MAX_ENTRY_PAYLOAD
from factom.errors import EntryTooLarge
from factom.jsonrpc import JSON2Request, get_client

logger = logging.getLogger(__name__)


def _to_bytes(value) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class Entry:
    """
    A Factom Entry: a ChainID, an ordered list of External IDs and Content.
    ExtIDs and Content are raw bytes; str values are utf-8 encoded.
    """

    def __init__(self, chain_id: str = "", ext_ids=None, content=b""):
        self.chain_id = chain_id
        self.ext_ids = [_to_bytes(x) for x in (ext_ids or [])]
        self.content = _to_bytes(content)

    # ---------------------------------------------------------------------
    # Binary form
    # ---------------------------------------------------------------------

    def ext_ids_bytes(self) -> bytes:
        buf = bytearray()
        for ext_id in self.ext_ids:
            if len(ext_id) > 0xFFFF:
                raise ValueError("External ID cannot be larger than 65535 bytes")
            buf += len(ext_id).to_bytes(2, "big")
            buf += ext_id
        return bytes(buf)

    def to_bytes(self) -> bytes:
        chain_id = bytes.fromhex(self.chain_id)
        if len(chain_id) != 32:
            raise ValueError("ChainID must be 32 bytes")
        ext = self.ext_ids_bytes()
        if len(ext) > 0xFFFF:
            raise ValueError("External IDs section cannot be larger than 65535 bytes")
        return b"\x00" + chain_id + len(ext).to_bytes(2, "big") + ext + self.content

    @staticmethod
    def from_bytes(data: bytes) -> "Entry":
        if len(data) < ENTRY_HEADER_SIZE:
            raise ValueError("Entry binary is too short")
        if data[0] != 0:
            raise ValueError("unsupported Entry version %d" % data[0])
        chain_id = data[1:33].hex()
        ext_size = int.from_bytes(data[33:35], "big")
        end = ENTRY_HEADER_SIZE + ext_size
        if end > len(data):
            raise ValueError("External IDs section overruns the Entry")

        ext_ids = []
        pos = ENTRY_HEADER_SIZE
        while pos < end:
            if pos + 2 > end:
                raise ValueError("truncated External ID length")
            size = int.from_bytes(data[pos:pos + 2], "big")
            pos += 2
            if pos + size > end:
                raise ValueError("External ID overruns the ExtIDs section")
            ext_ids.append(data[pos:pos + size])
            pos += size
        return Entry(chain_id, ext_ids, data[end:])

    def hash(self) -> bytes:
        return crypto.sha52(self.to_bytes())

    def hash_hex(self) -> str:
        return self.hash().hex()

    # ---------------------------------------------------------------------
    # JSON form
    # ---------------------------------------------------------------------

    def to_dict(self):
        return {
            "chainid": self.chain_id,
            "extids": [x.hex() for x in self.ext_ids],
            "content": self.content.hex(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @staticmethod
    def from_dict(data: dict) -> "Entry":
        return Entry(
            chain_id=data.get("chainid", ""),
            ext_ids=[bytes.fromhex(x) for x in data.get("extids") or []],
            content=bytes.fromhex(data.get("content") or ""),
        )

    def __eq__(self, other):
        return (
            isinstance(other, Entry)
            and self.chain_id == other.chain_id
            and self.ext_ids == other.ext_ids
            and self.content == other.content
        )

    def __str__(self):
        lines = ["EntryHash: %s" % self.hash_hex(), "ChainID: %s" % self.chain_id]
        for ext_id in self.ext_ids:
            lines.append("ExtID: %s" % ext_id.decode("utf-8", "replace"))
        lines.append("Content:")
        lines.append(self.content.decode("utf-8", "replace"))
        return "\n".join(lines) + "\n"

    def __repr__(self):
        return "Entry(chain_id=%s, ext_ids=%d, content=%d bytes)" % (
            self.chain_id, len(self.ext_ids), len(self.content))


def check_entry_size(entry: Entry) -> int:
    """Payload size of ``entry`` (everything after the header); raises
    EntryTooLarge past 10 KiB."""
    payload = len(entry.to_bytes()) - ENTRY_HEADER_SIZE
    if payload > MAX_ENTRY_PAYLOAD:
        raise EntryTooLarge(payload)
    return payload


def entry_cost(entry: Entry) -> int:
    """Entry Credits needed to commit ``entry``: one per started KiB of payload."""
    payload = check_entry_size(entry)
    return max(1, math.ceil(payload / 1024))


# -------------------------------------------------------------------------
# Commit / reveal
# -------------------------------------------------------------------------

def entry_commit_message(entry: Entry, ec: ECAddress, ms=None) -> bytes:
    signed = (
        b"\x00"
        + crypto.milli_timestamp(ms)
        + entry.hash()
        + bytes([entry_cost(entry)])
    )
    return signed + ec.pub + ec.sign(signed)


def compose_entry_commit(entry: Entry, ec: ECAddress, ms=None) -> JSON2Request:
    message = entry_commit_message(entry, ec, ms)
    return JSON2Request("commit-entry", params={"message": message.hex()})


def compose_entry_reveal(entry: Entry) -> JSON2Request:
    check_entry_size(entry)
    return JSON2Request("reveal-entry", params={"entry": entry.to_bytes().hex()})


def commit_entry(entry: Entry, ec: ECAddress, client=None) -> str:
    """Pay for ``entry``; returns the commit transaction id."""
    req = compose_entry_commit(entry, ec)
    resp = get_client(client).send_factomd_request(req)
    if resp.error is not None:
        raise resp.error
    logger.info("Committed entry %s", entry.hash_hex())
    return resp.result.get("txid", "")


def reveal_entry(entry: Entry, client=None) -> str:
    """Publish ``entry``; returns its entry hash."""
    resp = get_client(client).send_factomd_request(compose_entry_reveal(entry))
    if resp.error is not None:
        raise resp.error
    return resp.result.get("entryhash", "")


def get_entry(entry_hash: str, client=None) -> Entry:
    result = get_client(client).factomd_request("entry-by-hash", {"hash": entry_hash})
    return Entry.from_dict(result)


def get_pending_entries(client=None):
    """Entries factomd has accepted but not yet put in a block."""
    return get_client(client).factomd_request("pending-entries", {}) or []
