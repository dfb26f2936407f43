"""
database.py - the wallet's on-disk key store.

A single sqlite table holds named buckets of key/value pairs:

    Factoids        FA... -> Fs...
    Entry Credits   EC... -> Es...
    Identity Keys   idpub... -> idsec...

plus, outside any bucket, "DB Seed" (the BIP-39 mnemonic and the next
derivation index per key class, as JSON) and "Next Seed" (the 64 byte
BIP-39 seed of that mnemonic).
"""

import json
import logging
import sqlite3
import threading

from factom import crypto
from factom.addresses import (
    ECAddress,
    FactoidAddress,
    make_bip44_ec_address,
    make_bip44_factoid_address,
)
from factom.config import (
    DB_SEED_KEY,
    EC_BUCKET,
    FACTOID_BUCKET,
    HARDENED,
    IDENTITY_BUCKET,
    NEXT_SEED_KEY,
    SEED_LENGTH,
    SEED_PREFIX,
)
from factom.errors import NoSuchAddress
from factom.identity_keys import IdentityKey

logger = logging.getLogger(__name__)

ROOT_BUCKET = ""


def seed_string(seed: bytes) -> str:
    """Human readable export of a 64 byte wallet seed."""
    if len(seed) != SEED_LENGTH:
        return ""
    return crypto.encode_checked(SEED_PREFIX, seed)


class DBSeed:
    """The mnemonic every generated key derives from, and where each key
    class has got to along its BIP-44 path."""

    def __init__(self, mnemonic: str, next_factoid_index=0, next_ec_index=0):
        self.mnemonic = crypto.parse_mnemonic(mnemonic)
        self.next_factoid_index = next_factoid_index
        self.next_ec_index = next_ec_index

    @classmethod
    def new_random(cls) -> "DBSeed":
        return cls(crypto.new_mnemonic())

    def seed(self) -> bytes:
        return crypto.mnemonic_to_seed(self.mnemonic)

    def seed_string(self) -> str:
        return seed_string(self.seed())

    def next_fct_address(self) -> FactoidAddress:
        addr = make_bip44_factoid_address(self.mnemonic, HARDENED, 0, self.next_factoid_index)
        self.next_factoid_index += 1
        return addr

    def next_ec_address(self) -> ECAddress:
        addr = make_bip44_ec_address(self.mnemonic, HARDENED, 0, self.next_ec_index)
        self.next_ec_index += 1
        return addr

    def to_dict(self):
        return {
            "mnemonic": self.mnemonic,
            "nextfactoidaddressindex": self.next_factoid_index,
            "nextecaddressindex": self.next_ec_index,
        }

    @staticmethod
    def from_dict(data: dict) -> "DBSeed":
        return DBSeed(
            data["mnemonic"],
            data.get("nextfactoidaddressindex", 0),
            data.get("nextecaddressindex", 0),
        )


class WalletDatabase:
    """sqlite3 backed bucket store. ``":memory:"`` gives a throwaway wallet."""

    def __init__(self, path=":memory:"):
        self.path = path
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(path, check_same_thread=False)
        with self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS kv ("
                " bucket TEXT NOT NULL,"
                " key TEXT NOT NULL,"
                " value BLOB NOT NULL,"
                " PRIMARY KEY (bucket, key))"
            )
        logger.debug("Wallet database opened at %s", path)

    # ---------------------------------------------------------------------
    # Raw bucket access
    # ---------------------------------------------------------------------

    def put(self, bucket: str, key: str, value: bytes):
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO kv (bucket, key, value) VALUES (?, ?, ?)",
                (bucket, key, value),
            )

    def get(self, bucket: str, key: str):
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM kv WHERE bucket = ? AND key = ?", (bucket, key)
            ).fetchone()
        return None if row is None else bytes(row[0])

    def delete(self, bucket: str, key: str) -> bool:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "DELETE FROM kv WHERE bucket = ? AND key = ?", (bucket, key))
        return cur.rowcount > 0

    def items(self, bucket: str):
        """All (key, value) pairs of a bucket, in key order."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT key, value FROM kv WHERE bucket = ? ORDER BY key", (bucket,)
            ).fetchall()
        return [(k, bytes(v)) for k, v in rows]

    def close(self):
        with self._lock:
            self._conn.close()
        logger.debug("Wallet database %s closed", self.path)

    # ---------------------------------------------------------------------
    # Seed
    # ---------------------------------------------------------------------

    def get_db_seed(self):
        raw = self.get(ROOT_BUCKET, DB_SEED_KEY)
        if raw is None:
            return None
        return DBSeed.from_dict(json.loads(raw.decode("utf-8")))

    def put_db_seed(self, seed: DBSeed):
        with self._lock:
            self.put(ROOT_BUCKET, DB_SEED_KEY, json.dumps(seed.to_dict()).encode("utf-8"))
            if self.get(ROOT_BUCKET, NEXT_SEED_KEY) is None:
                self.put(ROOT_BUCKET, NEXT_SEED_KEY, seed.seed())

    def get_or_create_db_seed(self) -> DBSeed:
        with self._lock:
            seed = self.get_db_seed()
            if seed is None:
                seed = DBSeed.new_random()
                self.put_db_seed(seed)
                logger.info("Created new wallet seed")
            return seed

    def get_next_seed(self) -> bytes:
        return self.get(ROOT_BUCKET, NEXT_SEED_KEY) or b""

    # ---------------------------------------------------------------------
    # Keys
    # ---------------------------------------------------------------------

    def insert_fct(self, addr: FactoidAddress):
        self.put(FACTOID_BUCKET, addr.pub_string(), addr.sec_string().encode("ascii"))

    def insert_ec(self, addr: ECAddress):
        self.put(EC_BUCKET, addr.pub_string(), addr.sec_string().encode("ascii"))

    def insert_identity_key(self, key: IdentityKey):
        self.put(IDENTITY_BUCKET, key.pub_string(), key.sec_string().encode("ascii"))

    def _secret(self, bucket, pub):
        raw = self.get(bucket, pub)
        if raw is None:
            raise NoSuchAddress()
        return raw.decode("ascii")

    def get_fct(self, pub: str) -> FactoidAddress:
        return FactoidAddress.from_string(self._secret(FACTOID_BUCKET, pub))

    def get_ec(self, pub: str) -> ECAddress:
        return ECAddress.from_string(self._secret(EC_BUCKET, pub))

    def get_identity_key(self, pub: str) -> IdentityKey:
        return IdentityKey.from_string(self._secret(IDENTITY_BUCKET, pub))

    def all_fct(self):
        return [FactoidAddress.from_string(v.decode("ascii")) for _, v in self.items(FACTOID_BUCKET)]

    def all_ec(self):
        return [ECAddress.from_string(v.decode("ascii")) for _, v in self.items(EC_BUCKET)]

    def all_identity_keys(self):
        return [IdentityKey.from_string(v.decode("ascii")) for _, v in self.items(IDENTITY_BUCKET)]

    def remove(self, pub: str):
        """Delete an FA/EC/idpub key; the bucket comes from the string."""
        if pub.startswith("F"):
            bucket = FACTOID_BUCKET
        elif pub.startswith("E"):
            bucket = EC_BUCKET
        elif pub.startswith("idpub"):
            bucket = IDENTITY_BUCKET
        else:
            raise NoSuchAddress()
        if not self.delete(bucket, pub):
            raise NoSuchAddress()
