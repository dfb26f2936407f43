"""
wallet.py - the in-process wallet behind factom-walletd.

Owns the key store and the named transactions being built. Every mutation
runs under one re-entrant lock.
"""

import logging
import os
import re
import threading

from factom.addresses import (
    AddressType,
    ECAddress,
    FactoidAddress,
    address_body,
    classify,
    ec_address_from_pub,
    factoid_address_from_rcd_hash,
    is_valid,
)
from factom.chain import Chain, compose_chain_commit, compose_chain_reveal
from factom.config import TX_NAME_MAX_LENGTH
from factom.entry import Entry, compose_entry_commit, compose_entry_reveal
from factom.errors import (
    FactomError,
    InvalidAddress,
    TXExists,
    TXInvalidName,
    TXNotFound,
)
from factom.identity_keys import IdentityKey, IdentityKeyType, identity_key_type
from factom.jsonrpc import JSON2Request
from factom.transaction import FactoidTransaction
from factom.wallet.database import DBSeed, WalletDatabase

logger = logging.getLogger(__name__)

_BAD_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def _addresses(group, to_string):
    return [{"address": to_string(a.address), "amount": a.amount} for a in group]


def transaction_to_dict(name: str, tx: FactoidTransaction, rate: int = None):
    """Wallet JSON for a transaction under construction."""
    return {
        "tx-name": name,
        "txid": tx.txid(),
        "totalinputs": tx.total_inputs(),
        "totaloutputs": tx.total_outputs(),
        "totalecoutputs": tx.total_ec_outputs(),
        "feespaid": max(0, tx.fees_paid()),
        "feesrequired": tx.calculate_fee(rate) if rate else 0,
        "signed": tx.is_signed(),
        "timestamp": tx.milli_timestamp,
        "inputs": _addresses(tx.inputs, factoid_address_from_rcd_hash),
        "outputs": _addresses(tx.outputs, factoid_address_from_rcd_hash),
        "ecoutputs": _addresses(tx.ec_outputs, ec_address_from_pub),
    }


class Wallet:
    def __init__(self, db: WalletDatabase, txdb=None):
        self.db = db
        self.txdb = txdb
        self.transactions = {}
        self._lock = threading.RLock()
        self.db.get_or_create_db_seed()

    # =====================================================================
    # Addresses
    # =====================================================================

    def generate_ec_address(self) -> ECAddress:
        with self._lock:
            seed = self.db.get_or_create_db_seed()
            addr = seed.next_ec_address()
            self.db.put_db_seed(seed)
            self.db.insert_ec(addr)
        logger.info("Generated Entry Credit address %s", addr.pub_string())
        return addr

    def generate_fct_address(self) -> FactoidAddress:
        with self._lock:
            seed = self.db.get_or_create_db_seed()
            addr = seed.next_fct_address()
            self.db.put_db_seed(seed)
            self.db.insert_fct(addr)
        logger.info("Generated Factoid address %s", addr.pub_string())
        return addr

    def insert_ec_address(self, addr: ECAddress):
        with self._lock:
            self.db.insert_ec(addr)
        logger.info("Imported Entry Credit address %s", addr.pub_string())

    def insert_fct_address(self, addr: FactoidAddress):
        with self._lock:
            self.db.insert_fct(addr)
        logger.info("Imported Factoid address %s", addr.pub_string())

    def insert_identity_key(self, key: IdentityKey):
        with self._lock:
            self.db.insert_identity_key(key)
        logger.info("Imported identity key %s", key.pub_string())

    def get_ec_address(self, pub: str) -> ECAddress:
        return self.db.get_ec(pub)

    def get_fct_address(self, pub: str) -> FactoidAddress:
        return self.db.get_fct(pub)

    def get_identity_key(self, pub: str) -> IdentityKey:
        return self.db.get_identity_key(pub)

    def get_all_addresses(self):
        """Returns ([FactoidAddress], [ECAddress])."""
        return self.db.all_fct(), self.db.all_ec()

    def get_all_identity_keys(self):
        return self.db.all_identity_keys()

    def remove_address(self, pub: str):
        with self._lock:
            self.db.remove(pub)
        logger.info("Removed address %s", pub)

    def get_seed(self) -> str:
        """The wallet mnemonic."""
        return self.db.get_or_create_db_seed().mnemonic

    def get_db_seed(self) -> DBSeed:
        return self.db.get_or_create_db_seed()

    def sign_data(self, signer: str, data: bytes):
        """Sign ``data`` with a held key; returns (public key, signature)."""
        kind = classify(signer)
        if kind is AddressType.FACTOID_PUB:
            key = self.get_fct_address(signer)
        elif kind is AddressType.EC_PUB:
            key = self.get_ec_address(signer)
        elif identity_key_type(signer) is IdentityKeyType.IDPUB:
            key = self.get_identity_key(signer)
        else:
            raise InvalidAddress("%s is not a public address or identity key" % signer)
        return key.pub, key.sign(data)

    # =====================================================================
    # Chains and entries
    # =====================================================================

    def compose_chain(self, chain: Chain, ec_pub: str):
        """Returns (commit, reveal) requests paid by a held EC address."""
        ec = self.get_ec_address(ec_pub)
        return compose_chain_commit(chain, ec), compose_chain_reveal(chain)

    def compose_entry(self, entry: Entry, ec_pub: str):
        ec = self.get_ec_address(ec_pub)
        return compose_entry_commit(entry, ec), compose_entry_reveal(entry)

    # =====================================================================
    # Transaction builder
    # =====================================================================

    def _tx(self, name) -> FactoidTransaction:
        try:
            return self.transactions[name]
        except KeyError:
            raise TXNotFound() from None

    def get_transactions(self):
        with self._lock:
            return dict(self.transactions)

    def new_transaction(self, name: str) -> FactoidTransaction:
        with self._lock:
            if name in self.transactions:
                raise TXExists()
            if not name or len(name) > TX_NAME_MAX_LENGTH or _BAD_NAME_CHARS.search(name):
                raise TXInvalidName()
            tx = FactoidTransaction()
            self.transactions[name] = tx
        logger.info("New transaction %s", name)
        return tx

    def delete_transaction(self, name: str):
        with self._lock:
            self._tx(name)
            del self.transactions[name]
        logger.info("Deleted transaction %s", name)

    @staticmethod
    def _check_amount(amount):
        if amount < 0:
            raise ValueError("amount cannot be negative")

    def add_input(self, name: str, address: str, amount: int):
        with self._lock:
            self._check_amount(amount)
            tx = self._tx(name)
            if classify(address) is not AddressType.FACTOID_PUB:
                raise InvalidAddress("Invalid Address")
            fa = self.get_fct_address(address)
            rcd_hash = fa.rcd_hash()
            for inp in tx.inputs:
                if inp.address == rcd_hash:
                    inp.amount = amount
                    tx.clear_signatures()
                    return tx
            tx.add_input(fa.rcd, amount)
            return tx

    def _output_body(self, address, kind):
        if not is_valid(address) or classify(address) is not kind:
            raise InvalidAddress("Invalid Address")
        return address_body(address)

    def add_output(self, name: str, address: str, amount: int):
        with self._lock:
            self._check_amount(amount)
            tx = self._tx(name)
            tx.add_output(self._output_body(address, AddressType.FACTOID_PUB), amount)
            return tx

    def add_ec_output(self, name: str, address: str, amount: int):
        with self._lock:
            self._check_amount(amount)
            tx = self._tx(name)
            tx.add_ec_output(self._output_body(address, AddressType.EC_PUB), amount)
            return tx

    @staticmethod
    def _check_balanced(tx):
        if tx.total_inputs() != tx.total_outputs() + tx.total_ec_outputs():
            raise FactomError("Inputs and outputs don't add up")

    def add_fee(self, name: str, address: str, rate: int):
        """Raise ``address``'s input by the fee owed at ``rate``."""
        with self._lock:
            tx = self._tx(name)
            self._check_balanced(tx)
            fee = tx.calculate_fee(rate)
            rcd_hash = self.get_fct_address(address).rcd_hash()
            for inp in tx.inputs:
                if inp.address == rcd_hash:
                    inp.amount += fee
                    tx.clear_signatures()
                    return tx
        raise FactomError("%s is not an input to the transaction." % address)

    def sub_fee(self, name: str, address: str, rate: int):
        """Take the fee owed at ``rate`` out of ``address``'s output."""
        with self._lock:
            tx = self._tx(name)
            if not is_valid(address):
                raise InvalidAddress("Invalid Address")
            self._check_balanced(tx)
            fee = tx.calculate_fee(rate)
            body = address_body(address)
            for out in tx.outputs:
                if out.address == body:
                    if out.amount < fee:
                        raise FactomError("Output %s is too small to pay the fee" % address)
                    out.amount -= fee
                    tx.clear_signatures()
                    return tx
        raise FactomError("%s is not an output to the transaction." % address)

    def sign_transaction(self, name: str, force=False, rate: int = None):
        """Sign every input with its wallet key.

        Unless ``force`` is set, the fee paid must cover the fee owed at
        ``rate`` without exceeding ten times it.
        """
        with self._lock:
            tx = self._tx(name)
            if not tx.inputs:
                raise FactomError("Transaction has no inputs")
            if not force:
                paid = tx.fees_paid()
                required = tx.calculate_fee(rate) if rate else 0
                if paid < required:
                    raise FactomError("Insufficient Fee")
                if required and paid > 10 * required:
                    raise FactomError("Overpaying Fee")
            message = tx.marshal_sig()
            signatures = []
            for rcd in tx.rcds:
                fa = self.get_fct_address(rcd.address())
                signatures.append(fa.sign(message))
            tx.signatures = signatures
        logger.info("Signed transaction %s (%s)", name, tx.txid())
        return tx

    def compose_transaction(self, name: str) -> JSON2Request:
        with self._lock:
            tx = self._tx(name)
            raw = tx.to_bytes()
        return JSON2Request("factoid-submit", params={"transaction": raw.hex()})

    def transaction_hash(self, name: str) -> str:
        with self._lock:
            return self._tx(name).txid()

    def close(self):
        with self._lock:
            self.db.close()
            if self.txdb is not None:
                self.txdb.close()


# -------------------------------------------------------------------------
# Import / export
# -------------------------------------------------------------------------

def import_wallet_from_mnemonic(mnemonic: str, path: str) -> Wallet:
    """A fresh wallet file whose generated keys derive from ``mnemonic``."""
    if path != ":memory:" and os.path.exists(path):
        raise FactomError("File already exists: %s" % path)
    seed = DBSeed(mnemonic)
    db = WalletDatabase(path)
    db.put_db_seed(seed)
    logger.info("Imported wallet seed into %s", path)
    return Wallet(db)


def export_wallet(path: str):
    """Returns (mnemonic, [FactoidAddress], [ECAddress]) held in ``path``."""
    if not os.path.exists(path):
        raise FactomError("No wallet file at %s" % path)
    wallet = Wallet(WalletDatabase(path))
    try:
        fcts, ecs = wallet.get_all_addresses()
        return wallet.get_seed(), fcts, ecs
    finally:
        wallet.close()
