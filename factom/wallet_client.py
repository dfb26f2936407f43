"""
wallet_client.py - calls into a running factom-walletd.

The wallet keeps the secrets; these helpers only move public data and names
over JSON-RPC. Address arguments are checked locally before any request.
"""

import base64
import logging
import os

from factom.addresses import AddressType, ECAddress, FactoidAddress, classify
from factom.chain import Chain
from factom.entry import Entry
from factom.errors import InvalidAddress
from factom.factomd import get_ec_rate, get_factoid_balance
from factom.identity_keys import IdentityKey
from factom.jsonrpc import JSON2Request, get_client

logger = logging.getLogger(__name__)


class TransAddressInfo:
    def __init__(self, address, amount):
        self.address = address
        self.amount = amount

    def to_dict(self):
        return {"address": self.address, "amount": self.amount}


class Transaction:
    """A wallet transaction as walletd reports it."""

    def __init__(self, data: dict = None):
        data = data or {}
        self.name = data.get("tx-name") or data.get("name", "")
        self.txid = data.get("txid", "")
        self.block_height = data.get("blockheight", 0)
        self.fees_paid = data.get("feespaid", 0)
        self.fees_required = data.get("feesrequired", 0)
        self.is_signed = data.get("signed", False)
        self.timestamp = data.get("timestamp", 0)
        self.total_inputs = data.get("totalinputs", 0)
        self.total_outputs = data.get("totaloutputs", 0)
        self.total_ec_outputs = data.get("totalecoutputs", 0)
        self.inputs = [TransAddressInfo(a.get("address", ""), a.get("amount", 0))
                       for a in data.get("inputs") or []]
        self.outputs = [TransAddressInfo(a.get("address", ""), a.get("amount", 0))
                        for a in data.get("outputs") or []]
        self.ec_outputs = [TransAddressInfo(a.get("address", ""), a.get("amount", 0))
                           for a in data.get("ecoutputs") or []]

    @staticmethod
    def from_dict(data):
        return Transaction(data)

    def __str__(self):
        s = ""
        if self.name:
            s += "Name: %s\n" % self.name
        if self.txid:
            s += "TxID: %s\n" % self.txid
        s += "TotalInputs: %d\nTotalOutputs: %d\nTotalECOutputs: %d\n" % (
            self.total_inputs, self.total_outputs, self.total_ec_outputs)
        for title, rows in (("Input", self.inputs), ("Output", self.outputs),
                            ("ECOutput", self.ec_outputs)):
            for r in rows:
                s += "%s: %s %d\n" % (title, r.address, r.amount)
        s += "FeesPaid: %d\nFeesRequired: %d\nSigned: %s\n" % (
            self.fees_paid, self.fees_required, self.is_signed)
        return s


def _require(address, kind: AddressType, what: str):
    if classify(address) is not kind:
        raise InvalidAddress("%s is not %s address" % (address, what))


def _transactions(result):
    return [Transaction(t) for t in (result or {}).get("transactions") or []]


# -------------------------------------------------------------------------
# Addresses
# -------------------------------------------------------------------------

def _ec_pair(data):
    return ECAddress.from_string(data["secret"])


def _fct_pair(data):
    return FactoidAddress.from_string(data["secret"])


def _pair(data):
    if classify(data.get("secret", "")) is AddressType.EC_SEC:
        return _ec_pair(data)
    return _fct_pair(data)


def generate_ec_address(client=None) -> ECAddress:
    return _ec_pair(get_client(client).wallet_request("generate-ec-address"))


def generate_factoid_address(client=None) -> FactoidAddress:
    return _fct_pair(get_client(client).wallet_request("generate-factoid-address"))


def import_addresses(*secrets, client=None):
    """Store Fs/Es secrets in the wallet; returns the key pairs."""
    params = {"addresses": [{"secret": s} for s in secrets]}
    result = get_client(client).wallet_request("import-addresses", params)
    return [_pair(a) for a in result.get("addresses") or []]


def import_koinify(words: str, client=None) -> FactoidAddress:
    return _fct_pair(get_client(client).wallet_request("import-koinify", {"words": words}))


def fetch_address(address: str, client=None):
    result = get_client(client).wallet_request("address", {"address": address})
    return _pair(result)


def fetch_addresses(client=None):
    """Returns ([FactoidAddress], [ECAddress]) held by the wallet."""
    result = get_client(client).wallet_request("all-addresses")
    fcts, ecs = [], []
    for a in result.get("addresses") or []:
        pair = _pair(a)
        (ecs if isinstance(pair, ECAddress) else fcts).append(pair)
    return fcts, ecs


def remove_address(address: str, client=None):
    get_client(client).wallet_request("remove-address", {"address": address})


def wallet_backup(client=None):
    """Returns (seed mnemonic, [addresses])."""
    result = get_client(client).wallet_request("wallet-backup")
    return result.get("wallet-seed", ""), [_pair(a) for a in result.get("addresses") or []]


def wallet_balances(client=None) -> dict:
    return get_client(client).wallet_request("wallet-balances")


def wallet_properties(client=None):
    """Returns (wallet version, wallet API version)."""
    result = get_client(client).wallet_request("properties")
    return result.get("walletversion", ""), result.get("walletapiversion", "")


def get_wallet_height(client=None) -> int:
    return get_client(client).wallet_request("get-height").get("height", 0)


# -------------------------------------------------------------------------
# Transaction builder
# -------------------------------------------------------------------------

def new_transaction(name: str, client=None) -> Transaction:
    return Transaction(get_client(client).wallet_request("new-transaction", {"tx-name": name}))


def delete_transaction(name: str, client=None):
    get_client(client).wallet_request("delete-transaction", {"tx-name": name})


def list_transactions(client=None):
    return _transactions(get_client(client).wallet_request("transactions"))


def list_transactions_address(address: str, client=None):
    return _transactions(get_client(client).wallet_request("transactions", {"address": address}))


def list_transactions_id(txid: str, client=None):
    return _transactions(get_client(client).wallet_request("transactions", {"txid": txid}))


def list_transactions_range(start: int, end: int, client=None):
    params = {"range": {"start": start, "end": end}}
    return _transactions(get_client(client).wallet_request("transactions", params))


def get_tmp_transactions(client=None):
    return _transactions(get_client(client).wallet_request("tmp-transactions"))


def get_tmp_transaction(name: str, client=None) -> Transaction:
    for tx in get_tmp_transactions(client):
        if tx.name == name:
            return tx
    raise ValueError("Transaction %s not found" % name)


def transaction_hash(name: str, client=None) -> str:
    result = get_client(client).wallet_request("transaction-hash", {"tx-name": name})
    return result.get("txid", "")


def _value_request(method, name, address, amount, client):
    params = {"tx-name": name, "address": address, "amount": amount}
    return Transaction(get_client(client).wallet_request(method, params))


def add_transaction_input(name: str, address: str, amount: int, client=None) -> Transaction:
    _require(address, AddressType.FACTOID_PUB, "a Factoid")
    return _value_request("add-input", name, address, amount, client)


def add_transaction_output(name: str, address: str, amount: int, client=None) -> Transaction:
    _require(address, AddressType.FACTOID_PUB, "a Factoid")
    return _value_request("add-output", name, address, amount, client)


def add_transaction_ec_output(name: str, address: str, amount: int, client=None) -> Transaction:
    _require(address, AddressType.EC_PUB, "an Entry Credit")
    return _value_request("add-ec-output", name, address, amount, client)


def add_transaction_fee(name: str, address: str, client=None) -> Transaction:
    _require(address, AddressType.FACTOID_PUB, "a Factoid")
    params = {"tx-name": name, "address": address}
    return Transaction(get_client(client).wallet_request("add-fee", params))


def sub_transaction_fee(name: str, address: str, client=None) -> Transaction:
    _require(address, AddressType.FACTOID_PUB, "a Factoid")
    params = {"tx-name": name, "address": address}
    return Transaction(get_client(client).wallet_request("sub-fee", params))


def sign_transaction(name: str, force=False, client=None) -> Transaction:
    params = {"tx-name": name, "force": force}
    return Transaction(get_client(client).wallet_request("sign-transaction", params))


def compose_transaction(name: str, client=None) -> JSON2Request:
    """The factoid-submit request walletd builds for a signed transaction."""
    result = get_client(client).wallet_request("compose-transaction", {"tx-name": name})
    return JSON2Request.from_dict(result)


def send_transaction(name: str, client=None) -> Transaction:
    """Submit a signed wallet transaction to factomd, then forget it."""
    client = get_client(client)
    tx = get_tmp_transaction(name, client)
    if not tx.is_signed:
        raise ValueError("Cannot send unsigned transaction")
    req = compose_transaction(name, client)
    resp = client.send_factomd_request(req)
    if resp.error is not None:
        raise resp.error
    delete_transaction(name, client)
    logger.info("Sent transaction %s (%s)", name, tx.txid)
    return tx


def _random_name():
    return os.urandom(16).hex()


def send_factoid(from_addr: str, to_addr: str, amount: int, force=False, client=None) -> Transaction:
    """Move ``amount`` factoshis; the fee comes from the sender when it can
    afford it, otherwise out of the amount received."""
    client = get_client(client)
    name = _random_name()
    new_transaction(name, client)
    add_transaction_input(name, from_addr, amount, client)
    add_transaction_output(name, to_addr, amount, client)
    if get_factoid_balance(from_addr, client) > amount:
        add_transaction_fee(name, from_addr, client)
    else:
        sub_transaction_fee(name, to_addr, client)
    sign_transaction(name, force, client)
    return send_transaction(name, client)


def buy_ec(from_addr: str, to_addr: str, amount: int, force=False, client=None) -> Transaction:
    """Convert ``amount`` factoshis into Entry Credits."""
    client = get_client(client)
    name = _random_name()
    new_transaction(name, client)
    add_transaction_input(name, from_addr, amount, client)
    add_transaction_ec_output(name, to_addr, amount, client)
    add_transaction_fee(name, from_addr, client)
    sign_transaction(name, force, client)
    return send_transaction(name, client)


def buy_exact_ec(from_addr: str, to_addr: str, credits: int, force=False, client=None) -> Transaction:
    """Buy exactly ``credits`` Entry Credits at the current rate."""
    client = get_client(client)
    return buy_ec(from_addr, to_addr, credits * get_ec_rate(client), force, client)


# -------------------------------------------------------------------------
# Chains and entries paid from wallet keys
# -------------------------------------------------------------------------

def _commit_reveal(result):
    return (JSON2Request.from_dict(result.get("commit") or {}),
            JSON2Request.from_dict(result.get("reveal") or {}))


def wallet_compose_chain_commit_reveal(chain: Chain, ec_pub: str, force=False, client=None):
    """Returns (commit, reveal) requests signed by the wallet's EC key."""
    _require(ec_pub, AddressType.EC_PUB, "an Entry Credit")
    params = {"chain": {"firstentry": chain.first_entry.to_dict()},
              "ecpub": ec_pub, "force": force}
    return _commit_reveal(get_client(client).wallet_request("compose-chain", params))


def wallet_compose_entry_commit_reveal(entry: Entry, ec_pub: str, force=False, client=None):
    _require(ec_pub, AddressType.EC_PUB, "an Entry Credit")
    params = {"entry": entry.to_dict(), "ecpub": ec_pub, "force": force}
    return _commit_reveal(get_client(client).wallet_request("compose-entry", params))


# -------------------------------------------------------------------------
# Identity keys and signing
# -------------------------------------------------------------------------

def import_identity_keys(*secrets, client=None):
    params = {"keys": [{"secret": s} for s in secrets]}
    result = get_client(client).wallet_request("import-identity-keys", params)
    return [IdentityKey.from_string(k["secret"]) for k in result.get("keys") or []]


def identity_keys_at_height(chain_id: str, height: int, client=None):
    """idpub strings the wallet computed as active for the identity."""
    params = {"chainid": chain_id, "height": height}
    return get_client(client).wallet_request("identity-keys-at-height", params).get("keys") or []


def sign_data(signer: str, data: bytes, client=None):
    """Have the wallet sign ``data`` with a held FA/EC/idpub key.

    Returns (public key, signature) as bytes.
    """
    params = {"signer": signer, "data": base64.b64encode(data).decode("ascii")}
    result = get_client(client).wallet_request("sign-data", params)
    return base64.b64decode(result.get("pubkey", "")), base64.b64decode(result.get("signature", ""))
