"""
config.py - factom configuration constants.
Endpoints, protocol sizes and key prefixes shared by the client and the wallet.
"""

import os
import threading

# Default endpoints (host:port)
FACTOMD_SERVER = "localhost:8088"
WALLET_SERVER = "localhost:8089"

# HTTP timeout for a single JSON-RPC round trip (seconds)
DEFAULT_TIMEOUT = 10.0

# JSON-RPC
JSONRPC_VERSION = "2.0"
API_VERSION = "2.0"
WALLET_VERSION = "0.2.0"

# Address encoding
PREFIX_LENGTH = 2
BODY_LENGTH = 32
CHECKSUM_LENGTH = 4
ADDRESS_LENGTH = PREFIX_LENGTH + BODY_LENGTH + CHECKSUM_LENGTH

FACTOID_PUB_PREFIX = bytes([0x5F, 0xB1])
FACTOID_SEC_PREFIX = bytes([0x64, 0x78])
EC_PUB_PREFIX = bytes([0x59, 0x2A])
EC_SEC_PREFIX = bytes([0x5D, 0xB6])

# Identity keys use a longer prefix
ID_KEY_PREFIX_LENGTH = 5
ID_KEY_LENGTH = ID_KEY_PREFIX_LENGTH + BODY_LENGTH + CHECKSUM_LENGTH
ID_KEY_STRING_LENGTH = 55
ID_PUB_PREFIX = bytes([0x03, 0x45, 0xEF, 0x9D, 0xE0])
ID_SEC_PREFIX = bytes([0x03, 0x45, 0xF3, 0xD0, 0xD6])

# Wallet seed export prefix
SEED_PREFIX = bytes([0x13, 0xDD])
SEED_LENGTH = 64

# BIP-32 / BIP-44
HARDENED = 0x80000000
KOINIFY_INDEX = 7
BIP44_PURPOSE = 44
# Entry Credit keys derive under the Factoid coin type
COIN_TYPE_FACTOID = 131
COIN_TYPE_IDENTITY = 281

# Entries
ENTRY_HEADER_SIZE = 35
MAX_ENTRY_PAYLOAD = 10240
CHAIN_COMMIT_SURCHARGE = 10

ZERO_HASH = "0" * 64
FACTOID_BLOCK_CHAIN_ID = "000000000000000000000000000000000000000000000000000000000000000f"

# Wallet storage layout
FACTOID_BUCKET = "Factoids"
EC_BUCKET = "Entry Credits"
IDENTITY_BUCKET = "Identity Keys"
DB_SEED_KEY = "DB Seed"
NEXT_SEED_KEY = "Next Seed"

TX_NAME_MAX_LENGTH = 32


class RPCConfig:
    """Connection settings for the factomd and factom-walletd endpoints."""

    def __init__(
        self,
        factomd_server=FACTOMD_SERVER,
        wallet_server=WALLET_SERVER,
        factomd_rpc_user="",
        factomd_rpc_password="",
        wallet_rpc_user="",
        wallet_rpc_password="",
        factomd_tls_enable=False,
        factomd_tls_cert_file="",
        wallet_tls_enable=False,
        wallet_tls_cert_file="",
        wallet_tls_key_file="",
        factomd_timeout=DEFAULT_TIMEOUT,
        wallet_timeout=DEFAULT_TIMEOUT,
    ):
        self.factomd_server = factomd_server
        self.wallet_server = wallet_server
        self.factomd_rpc_user = factomd_rpc_user
        self.factomd_rpc_password = factomd_rpc_password
        self.wallet_rpc_user = wallet_rpc_user
        self.wallet_rpc_password = wallet_rpc_password
        self.factomd_tls_enable = factomd_tls_enable
        self.factomd_tls_cert_file = factomd_tls_cert_file
        self.wallet_tls_enable = wallet_tls_enable
        self.wallet_tls_cert_file = wallet_tls_cert_file
        self.wallet_tls_key_file = wallet_tls_key_file
        self.factomd_timeout = factomd_timeout
        self.wallet_timeout = wallet_timeout
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls, environ=None):
        """Build a config from FACTOMD_* / FACTOM_WALLET_* environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            factomd_server=env.get("FACTOMD_SERVER", FACTOMD_SERVER),
            wallet_server=env.get("FACTOM_WALLET_SERVER", WALLET_SERVER),
            factomd_rpc_user=env.get("FACTOMD_RPC_USER", ""),
            factomd_rpc_password=env.get("FACTOMD_RPC_PASSWORD", ""),
            wallet_rpc_user=env.get("FACTOM_WALLET_RPC_USER", ""),
            wallet_rpc_password=env.get("FACTOM_WALLET_RPC_PASSWORD", ""),
        )

    def set_factomd_server(self, server):
        with self._lock:
            self.factomd_server = server

    def set_wallet_server(self, server):
        with self._lock:
            self.wallet_server = server

    def set_factomd_rpc_config(self, user, password):
        with self._lock:
            self.factomd_rpc_user = user
            self.factomd_rpc_password = password

    def set_wallet_rpc_config(self, user, password):
        with self._lock:
            self.wallet_rpc_user = user
            self.wallet_rpc_password = password

    def set_factomd_encryption(self, enabled, cert_file):
        with self._lock:
            self.factomd_tls_enable = enabled
            self.factomd_tls_cert_file = cert_file

    def set_wallet_encryption(self, enabled, cert_file, key_file=None):
        """``key_file`` is only needed by the walletd side of the connection."""
        with self._lock:
            self.wallet_tls_enable = enabled
            self.wallet_tls_cert_file = cert_file
            if key_file is not None:
                self.wallet_tls_key_file = key_file

    def endpoint(self, target):
        """Return (url, auth, timeout, verify) for "factomd" or "wallet"."""
        with self._lock:
            if target == "factomd":
                tls, cert = self.factomd_tls_enable, self.factomd_tls_cert_file
                server, timeout = self.factomd_server, self.factomd_timeout
                user, password = self.factomd_rpc_user, self.factomd_rpc_password
            else:
                tls, cert = self.wallet_tls_enable, self.wallet_tls_cert_file
                server, timeout = self.wallet_server, self.wallet_timeout
                user, password = self.wallet_rpc_user, self.wallet_rpc_password

        scheme = "https" if tls else "http"
        url = "%s://%s/v2" % (scheme, server)
        auth = (user, password) if user or password else None
        verify = cert if tls and cert else True
        return url, auth, timeout, verify
