"""
ablock.py - Admin Block decoding.

Every admin entry carries an ``adminidtype`` tag (0..14). ABlock.from_dict
reads the tag by name and builds the matching AdminEntry subclass.
"""

import enum

from factom.errors import UnknownAdminID
from factom.jsonrpc import get_client


class AdminID(enum.IntEnum):
    MINUTE_NUMBER = 0
    DB_SIGNATURE = 1
    REVEAL_HASH = 2
    ADD_HASH = 3
    INCREASE_SERVER_COUNT = 4
    ADD_FEDERATED_SERVER = 5
    ADD_AUDIT_SERVER = 6
    REMOVE_FEDERATED_SERVER = 7
    ADD_FEDERATED_SERVER_KEY = 8
    ADD_FEDERATED_SERVER_BTC_KEY = 9
    SERVER_FAULT = 10
    COINBASE_DESCRIPTOR = 11
    COINBASE_DESCRIPTOR_CANCEL = 12
    ADD_AUTHORITY_ADDRESS = 13
    ADD_AUTHORITY_EFFICIENCY = 14


class AdminEntry:
    """Base for the admin entry variants.

    FIELDS maps each attribute to its JSON key and default; subclasses only
    declare their tag, title and fields.
    """

    ADMIN_ID = None
    TITLE = ""
    FIELDS = ()

    def __init__(self, **values):
        for attr, key, default in self.FIELDS:
            setattr(self, attr, values.get(attr, default))

    @classmethod
    def from_dict(cls, data: dict):
        return cls(**{attr: data.get(key, default) for attr, key, default in cls.FIELDS})

    def type(self) -> AdminID:
        return self.ADMIN_ID

    def to_dict(self):
        d = {"adminidtype": int(self.ADMIN_ID)}
        for attr, key, _ in self.FIELDS:
            d[key] = getattr(self, attr)
        return d

    def __str__(self):
        s = "%s {\n" % self.TITLE
        for attr, _, _ in self.FIELDS:
            label = "".join(part.capitalize() for part in attr.split("_"))
            s += "\t%s: %s\n" % (label, getattr(self, attr))
        return s + "}\n"

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, self.ADMIN_ID.name)


class AdminMinuteNumber(AdminEntry):
    ADMIN_ID = AdminID.MINUTE_NUMBER
    TITLE = "MinuteNumber"
    FIELDS = (("minute_number", "minutenumber", 0),)

    def __str__(self):
        return "MinuteNumber: %d\n" % self.minute_number


class AdminDBSignature(AdminEntry):
    ADMIN_ID = AdminID.DB_SIGNATURE
    TITLE = "DBSignature"
    FIELDS = (
        ("identity_chain_id", "identityadminchainid", ""),
        ("previous_signature", "prevdbsig", None),
    )

    @property
    def pub(self):
        return (self.previous_signature or {}).get("pub", "")

    @property
    def sig(self):
        return (self.previous_signature or {}).get("sig", "")

    def __str__(self):
        return (
            "DBSignature {\n"
            "\tIdentityChainID: %s\n"
            "\tPreviousSignature {\n\t\tPub: %s\n\t\tSig: %s\n\t}\n"
            "}\n" % (self.identity_chain_id, self.pub, self.sig)
        )


class AdminRevealHash(AdminEntry):
    ADMIN_ID = AdminID.REVEAL_HASH
    TITLE = "RevealHash"
    FIELDS = (
        ("identity_chain_id", "identitychainid", ""),
        ("matryoshka_hash", "mhash", ""),
    )


class AdminAddHash(AdminEntry):
    ADMIN_ID = AdminID.ADD_HASH
    TITLE = "AddHash"
    FIELDS = AdminRevealHash.FIELDS


class AdminIncreaseServerCount(AdminEntry):
    ADMIN_ID = AdminID.INCREASE_SERVER_COUNT
    TITLE = "IncreaseServerCount"
    FIELDS = (("amount", "amount", 0),)

    def __str__(self):
        return "IncreaseServerCount: %d\n" % self.amount


class AdminAddFederatedServer(AdminEntry):
    ADMIN_ID = AdminID.ADD_FEDERATED_SERVER
    TITLE = "AddFederatedServer"
    FIELDS = (
        ("identity_chain_id", "identitychainid", ""),
        ("dbheight", "dbheight", 0),
    )


class AdminAddAuditServer(AdminEntry):
    ADMIN_ID = AdminID.ADD_AUDIT_SERVER
    TITLE = "AddAuditServer"
    FIELDS = AdminAddFederatedServer.FIELDS


class AdminRemoveFederatedServer(AdminEntry):
    ADMIN_ID = AdminID.REMOVE_FEDERATED_SERVER
    TITLE = "RemoveFederatedServer"
    FIELDS = AdminAddFederatedServer.FIELDS


class AdminAddFederatedServerKey(AdminEntry):
    ADMIN_ID = AdminID.ADD_FEDERATED_SERVER_KEY
    TITLE = "AddFederatedServerKey"
    FIELDS = (
        ("identity_chain_id", "identitychainid", ""),
        ("key_priority", "keypriority", 0),
        ("public_key", "publickey", ""),
        ("dbheight", "dbheight", 0),
    )


class AdminAddFederatedServerBTCKey(AdminEntry):
    ADMIN_ID = AdminID.ADD_FEDERATED_SERVER_BTC_KEY
    TITLE = "AddFederatedServerBTCKey"
    FIELDS = (
        ("identity_chain_id", "identitychainid", ""),
        ("key_priority", "keypriority", 0),
        ("key_type", "keytype", 0),
        ("ecdsa_public_key", "ecdsapublickey", ""),
    )


class AdminServerFault(AdminEntry):
    ADMIN_ID = AdminID.SERVER_FAULT
    TITLE = "ServerFault"
    FIELDS = (
        ("timestamp", "timestamp", ""),
        ("server_id", "serverid", ""),
        ("audit_server_id", "auditserverid", ""),
        ("vm_index", "vmindex", 0),
        ("dbheight", "dbheight", 0),
        ("height", "height", 0),
        ("signature_list", "signaturelist", None),
    )


class AdminCoinbaseDescriptor(AdminEntry):
    ADMIN_ID = AdminID.COINBASE_DESCRIPTOR
    TITLE = "CoinbaseDescriptor"
    FIELDS = (("outputs", "outputs", ()),)

    def __str__(self):
        s = "CoinbaseDescriptor {\n"
        for out in self.outputs or []:
            s += "\tOutput {\n\t\tAmount: %s\n\t\tAddress: %s\n\t}\n" % (
                out.get("amount", 0), out.get("address", ""))
        return s + "}\n"


class AdminCoinbaseDescriptorCancel(AdminEntry):
    ADMIN_ID = AdminID.COINBASE_DESCRIPTOR_CANCEL
    TITLE = "CoinbaseDescriptorCancel"
    FIELDS = (
        ("descriptor_height", "descriptor_height", 0),
        ("descriptor_index", "descriptor_index", 0),
    )


class AdminAddAuthorityAddress(AdminEntry):
    ADMIN_ID = AdminID.ADD_AUTHORITY_ADDRESS
    TITLE = "AddAuthorityAddress"
    FIELDS = (
        ("identity_chain_id", "identitychainid", ""),
        ("factoid_address", "factoidaddress", ""),
    )


class AdminAddAuthorityEfficiency(AdminEntry):
    ADMIN_ID = AdminID.ADD_AUTHORITY_EFFICIENCY
    TITLE = "AddAuthorityEfficiency"
    FIELDS = (
        ("identity_chain_id", "identitychainid", ""),
        ("efficiency", "efficiency", 0),
    )


ADMIN_ENTRY_TYPES = {
    cls.ADMIN_ID: cls
    for cls in (
        AdminMinuteNumber,
        AdminDBSignature,
        AdminRevealHash,
        AdminAddHash,
        AdminIncreaseServerCount,
        AdminAddFederatedServer,
        AdminAddAuditServer,
        AdminRemoveFederatedServer,
        AdminAddFederatedServerKey,
        AdminAddFederatedServerBTCKey,
        AdminServerFault,
        AdminCoinbaseDescriptor,
        AdminCoinbaseDescriptorCancel,
        AdminAddAuthorityAddress,
        AdminAddAuthorityEfficiency,
    )
}


def decode_admin_entry(data: dict) -> AdminEntry:
    tag = data.get("adminidtype")
    if isinstance(tag, bool) or not isinstance(tag, int) or tag not in ADMIN_ENTRY_TYPES:
        raise UnknownAdminID(tag)
    return ADMIN_ENTRY_TYPES[tag].from_dict(data)


class ABlock:
    def __init__(self, prev_backref_hash="", dbheight=0, backref_hash="",
                 lookup_hash="", entries=None):
        self.prev_backref_hash = prev_backref_hash
        self.dbheight = dbheight
        self.backref_hash = backref_hash
        self.lookup_hash = lookup_hash
        self.entries = entries or []

    @staticmethod
    def from_dict(data: dict) -> "ABlock":
        header = data.get("header") or {}
        return ABlock(
            prev_backref_hash=header.get("prevbackrefhash", ""),
            dbheight=header.get("dbheight", 0),
            backref_hash=data.get("backreferencehash", ""),
            lookup_hash=data.get("lookuphash", ""),
            entries=[decode_admin_entry(e) for e in data.get("abentries") or []],
        )

    def __str__(self):
        s = "BackReferenceHash: %s\n" % self.backref_hash
        s += "LookupHash: %s\n" % self.lookup_hash
        s += "PrevBackreferenceHash: %s\n" % self.prev_backref_hash
        s += "DBHeight: %d\n" % self.dbheight
        s += "ABEntries {\n"
        for entry in self.entries:
            s += str(entry)
        return s + "}\n"


def get_ablock(keymr: str, client=None) -> ABlock:
    result = get_client(client).factomd_request("admin-block", {"keymr": keymr})
    return ABlock.from_dict(result.get("ablock") or {})


def get_ablock_by_height(height: int, client=None):
    """Returns (ABlock, raw bytes)."""
    result = get_client(client).factomd_request("ablock-by-height", {"height": height})
    raw = bytes.fromhex(result.get("rawdata") or "")
    return ABlock.from_dict(result.get("ablock") or {}), raw
