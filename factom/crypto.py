import hashlib
import hmac
import time

import base58
from bip_utils import Bip32Secp256k1
from mnemonic import Mnemonic
from nacl.signing import SigningKey, VerifyKey
from nacl.exceptions import BadSignatureError, CryptoError

from factom.config import (
    BIP44_PURPOSE,
    CHECKSUM_LENGTH,
    HARDENED,
    KOINIFY_INDEX,
)
from factom.errors import InvalidMnemonic, InvalidSeed

_MNEMONIC = Mnemonic("english")

MNEMONIC_WORDS = 12


# -------------------------------------------------------------------------
# Hashes
# -------------------------------------------------------------------------

def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def shad(data: bytes) -> bytes:
    """Double SHA256: sha256(sha256(data))."""
    return sha256(sha256(data))


def sha52(data: bytes) -> bytes:
    """Entry hash: sha256(sha512(data) + data)."""
    return sha256(hashlib.sha512(data).digest() + data)


def milli_timestamp(ms=None) -> bytes:
    """6-byte big-endian milliseconds since the epoch."""
    if ms is None:
        ms = int(time.time() * 1000)
    return int(ms).to_bytes(6, "big")


# -------------------------------------------------------------------------
# base58 with a 4-byte shad checksum
# -------------------------------------------------------------------------

def checksum(data: bytes) -> bytes:
    return shad(data)[:CHECKSUM_LENGTH]


def encode_checked(prefix: bytes, body: bytes) -> str:
    payload = prefix + body
    return base58.b58encode(payload + checksum(payload)).decode("ascii")


def decode_base58(s) -> bytes:
    """Decode a base58 string, returning b"" for anything malformed."""
    if not isinstance(s, str) or not s:
        return b""
    try:
        return base58.b58decode(s)
    except ValueError:
        return b""


def has_valid_checksum(payload: bytes) -> bool:
    if len(payload) <= CHECKSUM_LENGTH:
        return False
    body, check = payload[:-CHECKSUM_LENGTH], payload[-CHECKSUM_LENGTH:]
    return hmac.compare_digest(checksum(body), check)


# -------------------------------------------------------------------------
# Ed25519
# -------------------------------------------------------------------------

def _signing_key(seed: bytes) -> SigningKey:
    if not isinstance(seed, (bytes, bytearray)) or len(seed) != 32:
        raise InvalidSeed("secret key portion must be 32 bytes")
    return SigningKey(bytes(seed))


def public_key(seed: bytes) -> bytes:
    return bytes(_signing_key(seed).verify_key)


def sign(seed: bytes, msg: bytes) -> bytes:
    return _signing_key(seed).sign(msg).signature


def verify(pub: bytes, msg: bytes, sig: bytes) -> bool:
    try:
        VerifyKey(bytes(pub)).verify(msg, bytes(sig))
        return True
    except (BadSignatureError, CryptoError, ValueError, TypeError):
        return False


# -------------------------------------------------------------------------
# BIP-39
# -------------------------------------------------------------------------

def parse_mnemonic(words: str) -> str:
    """Normalise a 12 word phrase and check its BIP-39 checksum."""
    if not isinstance(words, str):
        raise InvalidMnemonic("mnemonic must be a string")
    normalized = " ".join(words.lower().split())
    if len(normalized.split(" ")) != MNEMONIC_WORDS:
        raise InvalidMnemonic("Wrong number of words in mnemonic")
    if not _MNEMONIC.check(normalized):
        raise InvalidMnemonic("Invalid mnemonic")
    return normalized


def mnemonic_to_seed(words: str) -> bytes:
    return Mnemonic.to_seed(parse_mnemonic(words), passphrase="")


def new_mnemonic() -> str:
    return _MNEMONIC.generate(strength=128)


# -------------------------------------------------------------------------
# BIP-32
# -------------------------------------------------------------------------

def _master(words: str):
    return Bip32Secp256k1.FromSeed(mnemonic_to_seed(words))


def _private_key(node) -> bytes:
    return node.PrivateKey().Raw().ToBytes()


def koinify_key(words: str) -> bytes:
    """Factoid seed from a Koinify crowd-sale phrase: master / 7'."""
    return _private_key(_master(words).ChildKey(HARDENED + KOINIFY_INDEX))


def bip44_key(words: str, coin_type: int, account: int, chain: int, index: int) -> bytes:
    """Seed at m / 44' / coin' / account / chain / index.

    The caller passes ``account`` already hardened.
    """
    path = (HARDENED + BIP44_PURPOSE, HARDENED + coin_type, account, chain, index)
    node = _master(words)
    for child in path:
        node = node.ChildKey(child)
    return _private_key(node)
