import enum

from nacl.signing import SigningKey

from factom import crypto
from factom.config import (
    ADDRESS_LENGTH,
    BODY_LENGTH,
    COIN_TYPE_FACTOID,
    EC_PUB_PREFIX,
    EC_SEC_PREFIX,
    FACTOID_PUB_PREFIX,
    FACTOID_SEC_PREFIX,
    HARDENED,
    PREFIX_LENGTH,
)
from factom.errors import InvalidAddress, InvalidSeed


class AddressType(enum.Enum):
    INVALID = 0
    FACTOID_PUB = 1
    FACTOID_SEC = 2
    EC_PUB = 3
    EC_SEC = 4


_PREFIXES = {
    FACTOID_PUB_PREFIX: AddressType.FACTOID_PUB,
    FACTOID_SEC_PREFIX: AddressType.FACTOID_SEC,
    EC_PUB_PREFIX: AddressType.EC_PUB,
    EC_SEC_PREFIX: AddressType.EC_SEC,
}


def classify(s) -> AddressType:
    """Return the variety of an address string, or AddressType.INVALID."""
    payload = crypto.decode_base58(s)
    if len(payload) != ADDRESS_LENGTH:
        return AddressType.INVALID
    if not crypto.has_valid_checksum(payload):
        return AddressType.INVALID
    return _PREFIXES.get(payload[:PREFIX_LENGTH], AddressType.INVALID)


def is_valid(s) -> bool:
    return classify(s) is not AddressType.INVALID


def is_valid_ec(s) -> bool:
    return classify(s) in (AddressType.EC_PUB, AddressType.EC_SEC)


def is_valid_factoid(s) -> bool:
    return classify(s) in (AddressType.FACTOID_PUB, AddressType.FACTOID_SEC)


def address_body(s) -> bytes:
    """The 32-byte body of a valid address string."""
    if not is_valid(s):
        raise InvalidAddress("Invalid Address %r" % (s,))
    return crypto.decode_base58(s)[PREFIX_LENGTH:PREFIX_LENGTH + BODY_LENGTH]


def _secret_body(s, expected: AddressType) -> bytes:
    if classify(s) is not expected:
        raise InvalidAddress("Invalid Address, not a %s string" % expected.name)
    return address_body(s)


# -------------------------------------------------------------------------
# RCD
# -------------------------------------------------------------------------

class RCD1:
    """Redeem Condition Datastructure type 1: a single Ed25519 key."""

    TYPE = 1

    def __init__(self, pub: bytes):
        if len(pub) != 32:
            raise InvalidSeed("RCD1 public key must be 32 bytes")
        self.pub = bytes(pub)

    def type(self):
        return self.TYPE

    def to_bytes(self) -> bytes:
        return bytes([self.TYPE]) + self.pub

    @classmethod
    def from_bytes(cls, data: bytes) -> "RCD1":
        if len(data) < 33 or data[0] != cls.TYPE:
            raise ValueError("unsupported RCD type")
        return cls(data[1:33])

    def hash(self) -> bytes:
        return crypto.shad(self.to_bytes())

    def address(self) -> str:
        return factoid_address_from_rcd_hash(self.hash())

    def __eq__(self, other):
        return isinstance(other, RCD1) and self.pub == other.pub

    def __repr__(self):
        return "RCD1(%s)" % self.pub.hex()


def factoid_address_from_rcd_hash(rcd_hash: bytes) -> str:
    return crypto.encode_checked(FACTOID_PUB_PREFIX, rcd_hash)


def ec_address_from_pub(pub: bytes) -> str:
    return crypto.encode_checked(EC_PUB_PREFIX, pub)


# -------------------------------------------------------------------------
# Key pairs
# -------------------------------------------------------------------------

class _KeyPair:
    PUB_PREFIX = b""
    SEC_PREFIX = b""

    def __init__(self, sec: bytes, pub: bytes = None):
        if not isinstance(sec, (bytes, bytearray)) or len(sec) != 32:
            raise InvalidSeed("secret key portion must be 32 bytes")
        self.sec = bytes(sec)
        self.pub = crypto.public_key(self.sec) if pub is None else bytes(pub)

    @classmethod
    def generate(cls):
        return cls(bytes(SigningKey.generate()))

    def sign(self, msg: bytes) -> bytes:
        return crypto.sign(self.sec, msg)

    def verify(self, msg: bytes, sig: bytes) -> bool:
        return crypto.verify(self.pub, msg, sig)

    def sec_string(self) -> str:
        return crypto.encode_checked(self.SEC_PREFIX, self.sec)

    def __str__(self):
        return self.pub_string()

    def __eq__(self, other):
        return type(self) is type(other) and self.sec == other.sec and self.pub == other.pub

    def __hash__(self):
        return hash((type(self), self.pub))


class ECAddress(_KeyPair):
    """Entry Credit key pair. Its public string carries the raw Ed25519 key."""

    PUB_PREFIX = EC_PUB_PREFIX
    SEC_PREFIX = EC_SEC_PREFIX

    def pub_string(self) -> str:
        return ec_address_from_pub(self.pub)

    @classmethod
    def from_string(cls, s) -> "ECAddress":
        return cls(_secret_body(s, AddressType.EC_SEC))

    def __repr__(self):
        return "ECAddress(%s)" % self.pub_string()


class FactoidAddress(_KeyPair):
    """Factoid key pair. Its public string carries the RCD1 hash."""

    PUB_PREFIX = FACTOID_PUB_PREFIX
    SEC_PREFIX = FACTOID_SEC_PREFIX

    @property
    def rcd(self) -> RCD1:
        return RCD1(self.pub)

    def rcd_hash(self) -> bytes:
        return self.rcd.hash()

    def pub_string(self) -> str:
        return factoid_address_from_rcd_hash(self.rcd_hash())

    @classmethod
    def from_string(cls, s) -> "FactoidAddress":
        return cls(_secret_body(s, AddressType.FACTOID_SEC))

    def __repr__(self):
        return "FactoidAddress(%s)" % self.pub_string()


def make_ec_address(seed: bytes) -> ECAddress:
    return ECAddress(seed)


def make_factoid_address(seed: bytes) -> FactoidAddress:
    return FactoidAddress(seed)


def make_factoid_address_from_koinify(words: str) -> FactoidAddress:
    return FactoidAddress(crypto.koinify_key(words))


def make_bip44_factoid_address(words: str, account=HARDENED, chain=0, index=0) -> FactoidAddress:
    return FactoidAddress(crypto.bip44_key(words, COIN_TYPE_FACTOID, account, chain, index))


def make_bip44_ec_address(words: str, account=HARDENED, chain=0, index=0) -> ECAddress:
    return ECAddress(crypto.bip44_key(words, COIN_TYPE_FACTOID, account, chain, index))
