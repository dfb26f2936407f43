"""
ecblock.py - Entry Credit Block decoding.

Entries are tagged by ``ecid`` when factomd sends it. Older daemons omit the
tag, so the variant is then recognised by the fields the object carries.
"""

import enum

from factom.errors import UnknownECID
from factom.jsonrpc import get_client


class ECID(enum.IntEnum):
    SERVER_INDEX_NUMBER = 0
    MINUTE_NUMBER = 1
    CHAIN_COMMIT = 2
    ENTRY_COMMIT = 3
    BALANCE_INCREASE = 4


def _millitime(value) -> int:
    """ms timestamp from the 6-byte hex string factomd sends (or a plain int)."""
    if isinstance(value, int):
        return value
    return int.from_bytes(bytes.fromhex(value or ""), "big")


class ECServerIndexNumber:
    def __init__(self, server_index_number=0):
        self.server_index_number = server_index_number

    def type(self):
        return ECID.SERVER_INDEX_NUMBER

    @staticmethod
    def from_dict(data):
        return ECServerIndexNumber(data.get("serverindexnumber", 0))

    def __str__(self):
        return "ServerIndexNumber: %d\n" % self.server_index_number


class ECMinuteNumber:
    def __init__(self, number=0):
        self.number = number

    def type(self):
        return ECID.MINUTE_NUMBER

    @staticmethod
    def from_dict(data):
        return ECMinuteNumber(data.get("number", 0))

    def __str__(self):
        return "MinuteNumber: %d\n" % self.number


class ECEntryCommit:
    def __init__(self, version=0, milli_time=0, entry_hash="", credits=0,
                 ec_pub_key="", sig=""):
        self.version = version
        self.milli_time = milli_time
        self.entry_hash = entry_hash
        self.credits = credits
        self.ec_pub_key = ec_pub_key
        self.sig = sig

    def type(self):
        return ECID.ENTRY_COMMIT

    @staticmethod
    def from_dict(data):
        return ECEntryCommit(
            version=data.get("version", 0),
            milli_time=_millitime(data.get("millitime")),
            entry_hash=data.get("entryhash", ""),
            credits=data.get("credits", 0),
            ec_pub_key=data.get("ecpubkey", ""),
            sig=data.get("sig", ""),
        )

    def __str__(self):
        return (
            "ECEntryCommit {\n"
            "\tVersion: %d\n\tMilliTime: %d\n\tEntryHash: %s\n"
            "\tCredits: %d\n\tECPubKey: %s\n\tSignature: %s\n"
            "}\n"
        ) % (self.version, self.milli_time, self.entry_hash,
             self.credits, self.ec_pub_key, self.sig)


class ECChainCommit(ECEntryCommit):
    def __init__(self, version=0, milli_time=0, chain_id_hash="", weld="",
                 entry_hash="", credits=0, ec_pub_key="", sig=""):
        super().__init__(version, milli_time, entry_hash, credits, ec_pub_key, sig)
        self.chain_id_hash = chain_id_hash
        self.weld = weld

    def type(self):
        return ECID.CHAIN_COMMIT

    @staticmethod
    def from_dict(data):
        return ECChainCommit(
            version=data.get("version", 0),
            milli_time=_millitime(data.get("millitime")),
            chain_id_hash=data.get("chainidhash", ""),
            weld=data.get("weld", ""),
            entry_hash=data.get("entryhash", ""),
            credits=data.get("credits", 0),
            ec_pub_key=data.get("ecpubkey", ""),
            sig=data.get("sig", ""),
        )

    def __str__(self):
        return (
            "ECChainCommit {\n"
            "\tVersion: %d\n\tMilliTime: %d\n\tChainIDHash: %s\n\tWeld: %s\n"
            "\tEntryHash: %s\n\tCredits: %d\n\tECPubKey: %s\n\tSignature: %s\n"
            "}\n"
        ) % (self.version, self.milli_time, self.chain_id_hash, self.weld,
             self.entry_hash, self.credits, self.ec_pub_key, self.sig)


class ECBalanceIncrease:
    def __init__(self, ec_pub_key="", txid="", index=0, num_ec=0):
        self.ec_pub_key = ec_pub_key
        self.txid = txid
        self.index = index
        self.num_ec = num_ec

    def type(self):
        return ECID.BALANCE_INCREASE

    @staticmethod
    def from_dict(data):
        return ECBalanceIncrease(
            ec_pub_key=data.get("ecpubkey", ""),
            txid=data.get("txid", ""),
            index=data.get("index", 0),
            num_ec=data.get("numec", 0),
        )

    def __str__(self):
        return (
            "ECBalanceIncrease {\n"
            "\tECPubKey: %s\n\tTXID: %s\n\tIndex: %d\n\tNumEC: %d\n"
            "}\n"
        ) % (self.ec_pub_key, self.txid, self.index, self.num_ec)


EC_ENTRY_TYPES = {
    ECID.SERVER_INDEX_NUMBER: ECServerIndexNumber,
    ECID.MINUTE_NUMBER: ECMinuteNumber,
    ECID.CHAIN_COMMIT: ECChainCommit,
    ECID.ENTRY_COMMIT: ECEntryCommit,
    ECID.BALANCE_INCREASE: ECBalanceIncrease,
}


def _infer_ecid(data: dict):
    if "serverindexnumber" in data:
        return ECID.SERVER_INDEX_NUMBER
    if "number" in data:
        return ECID.MINUTE_NUMBER
    if "entryhash" in data:
        return ECID.CHAIN_COMMIT if "chainidhash" in data else ECID.ENTRY_COMMIT
    if "numec" in data:
        return ECID.BALANCE_INCREASE
    return None


def decode_ec_entry(data: dict):
    tag = data.get("ecid") if "ecid" in data else _infer_ecid(data)
    if isinstance(tag, bool) or not isinstance(tag, int) or tag not in EC_ENTRY_TYPES:
        raise UnknownECID(tag)
    return EC_ENTRY_TYPES[tag].from_dict(data)


class ECBlock:
    def __init__(self, header=None, header_hash="", full_hash="", entries=None):
        header = header or {}
        self.body_hash = header.get("bodyhash", "")
        self.prev_header_hash = header.get("prevheaderhash", "")
        self.prev_full_hash = header.get("prevfullhash", "")
        self.dbheight = header.get("dbheight", 0)
        self.header_hash = header_hash
        self.full_hash = full_hash
        self.entries = entries or []

    @staticmethod
    def from_dict(data: dict) -> "ECBlock":
        body = data.get("body") or {}
        return ECBlock(
            header=data.get("header"),
            header_hash=data.get("headerhash", ""),
            full_hash=data.get("fullhash", ""),
            entries=[decode_ec_entry(e) for e in body.get("entries") or []],
        )

    def __str__(self):
        s = "HeaderHash: %s\n" % self.header_hash
        s += "PrevHeaderHash: %s\n" % self.prev_header_hash
        s += "FullHash: %s\n" % self.full_hash
        s += "PrevFullHash: %s\n" % self.prev_full_hash
        s += "BodyHash: %s\n" % self.body_hash
        s += "DBHeight: %d\n" % self.dbheight
        s += "Entries:\n"
        for entry in self.entries:
            s += str(entry)
        return s


def get_ecblock(keymr: str, client=None):
    """Returns (ECBlock, raw bytes)."""
    result = get_client(client).factomd_request("entrycredit-block", {"keymr": keymr})
    return ECBlock.from_dict(result.get("ecblock") or {}), bytes.fromhex(result.get("rawdata") or "")


def get_ecblock_by_height(height: int, client=None):
    result = get_client(client).factomd_request("ecblock-by-height", {"height": height})
    return ECBlock.from_dict(result.get("ecblock") or {}), bytes.fromhex(result.get("rawdata") or "")
