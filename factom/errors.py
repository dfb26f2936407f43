class FactomError(Exception):
    """Base class for every error raised by the factom package."""


class InvalidAddress(FactomError, ValueError):
    """Address string has the wrong length, prefix or checksum."""


class InvalidSeed(FactomError, ValueError):
    """A 32-byte Ed25519 seed was expected."""


class InvalidMnemonic(FactomError, ValueError):
    """BIP-39 validation failed or the phrase is not exactly 12 words."""


class UnknownAdminID(FactomError, ValueError):
    def __init__(self, admin_id):
        super().__init__("unknown admin block entry type %r" % (admin_id,))
        self.admin_id = admin_id


class UnknownECID(FactomError, ValueError):
    def __init__(self, ecid):
        super().__init__("unknown entry credit block entry type %r" % (ecid,))
        self.ecid = ecid


class EntryTooLarge(FactomError, ValueError):
    def __init__(self, size):
        super().__init__("Entry cannot be larger than 10KB (payload is %d bytes)" % size)
        self.size = size


class ChainPending(FactomError):
    """The chain has no head yet but sits in the current process list."""

    def __init__(self, chain_id=""):
        super().__init__("Chain not yet included in a Directory Block")
        self.chain_id = chain_id


class TXExists(FactomError):
    def __init__(self):
        super().__init__("wallet: Transaction name already exists")


class TXNotFound(FactomError):
    def __init__(self):
        super().__init__("wallet: Transaction name was not found")


class TXInvalidName(FactomError):
    def __init__(self):
        super().__init__("wallet: Transaction name is not valid")


class NoSuchAddress(FactomError):
    def __init__(self):
        super().__init__("wallet: No such address")


class TransportError(FactomError):
    """HTTP, TLS or I/O failure below the JSON-RPC envelope."""


class CredentialsError(TransportError):
    """The endpoint answered 401 Unauthorized."""
