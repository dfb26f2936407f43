import enum

from nacl.signing import SigningKey

from factom import crypto
from factom.config import (
    BODY_LENGTH,
    COIN_TYPE_IDENTITY,
    HARDENED,
    ID_KEY_LENGTH,
    ID_KEY_PREFIX_LENGTH,
    ID_PUB_PREFIX,
    ID_SEC_PREFIX,
)
from factom.errors import InvalidAddress, InvalidSeed


class IdentityKeyType(enum.Enum):
    INVALID = 0
    IDPUB = 1
    IDSEC = 2


def identity_key_type(s) -> IdentityKeyType:
    payload = crypto.decode_base58(s)
    if len(payload) != ID_KEY_LENGTH or not crypto.has_valid_checksum(payload):
        return IdentityKeyType.INVALID
    prefix = payload[:ID_KEY_PREFIX_LENGTH]
    if prefix == ID_PUB_PREFIX:
        return IdentityKeyType.IDPUB
    if prefix == ID_SEC_PREFIX:
        return IdentityKeyType.IDSEC
    return IdentityKeyType.INVALID


def is_valid_identity_key(s) -> bool:
    return identity_key_type(s) is not IdentityKeyType.INVALID


def _body(s) -> bytes:
    return crypto.decode_base58(s)[ID_KEY_PREFIX_LENGTH:ID_KEY_PREFIX_LENGTH + BODY_LENGTH]


def identity_pub_bytes(s) -> bytes:
    """Raw Ed25519 public key out of an idpub string."""
    if identity_key_type(s) is not IdentityKeyType.IDPUB:
        raise InvalidAddress("invalid Identity Public Key %r" % (s,))
    return _body(s)


class IdentityKey:
    """An Ed25519 key pair used to sign identity chain entries.

    A key built with ``from_pub_string`` has no secret and can only verify.
    """

    def __init__(self, sec: bytes = None, pub: bytes = None):
        if sec is not None:
            if len(sec) != 32:
                raise InvalidSeed("secret key portion must be 32 bytes")
            sec = bytes(sec)
            pub = crypto.public_key(sec)
        elif pub is None or len(pub) != 32:
            raise InvalidSeed("public key must be 32 bytes")
        self.sec = sec
        self.pub = bytes(pub)

    @classmethod
    def generate(cls) -> "IdentityKey":
        return cls(bytes(SigningKey.generate()))

    @classmethod
    def from_string(cls, s) -> "IdentityKey":
        if identity_key_type(s) is not IdentityKeyType.IDSEC:
            raise InvalidAddress("invalid Identity Private Key")
        return cls(_body(s))

    @classmethod
    def from_pub_string(cls, s) -> "IdentityKey":
        return cls(pub=identity_pub_bytes(s))

    def has_secret(self) -> bool:
        return self.sec is not None

    def pub_string(self) -> str:
        return crypto.encode_checked(ID_PUB_PREFIX, self.pub)

    def sec_string(self) -> str:
        if self.sec is None:
            return ""
        return crypto.encode_checked(ID_SEC_PREFIX, self.sec)

    def sign(self, msg: bytes) -> bytes:
        if self.sec is None:
            raise InvalidSeed("identity key has no secret")
        return crypto.sign(self.sec, msg)

    def verify(self, msg: bytes, sig: bytes) -> bool:
        return crypto.verify(self.pub, msg, sig)

    def __str__(self):
        return self.pub_string()

    def __repr__(self):
        return "IdentityKey(%s)" % self.pub_string()

    def __eq__(self, other):
        return isinstance(other, IdentityKey) and self.pub == other.pub

    def __hash__(self):
        return hash(self.pub)


def make_identity_key(sec: bytes) -> IdentityKey:
    return IdentityKey(sec)


def make_bip44_identity_key(words: str, account=HARDENED, chain=0, index=0) -> IdentityKey:
    return IdentityKey(crypto.bip44_key(words, COIN_TYPE_IDENTITY, account, chain, index))
