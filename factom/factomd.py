"""
factomd.py - the read/submit side of the factomd API.

Every call takes an optional ``client``; the process default client is used
when it is omitted. Responses are wrapped in small record classes that keep
the JSON field names as attributes and print like the factom-cli output.
"""

import logging
from decimal import Decimal, InvalidOperation

from factom.errors import FactomError
from factom.jsonrpc import get_client

logger = logging.getLogger(__name__)

FACTOSHIS_PER_FACTOID = 100000000


def factoshi_to_factoid(factoshis: int) -> str:
    """``123456789`` -> ``"1.23456789"``."""
    sign = "-" if factoshis < 0 else ""
    whole, frac = divmod(abs(int(factoshis)), FACTOSHIS_PER_FACTOID)
    return "%s%d.%08d" % (sign, whole, frac)


def factoid_to_factoshi(amount) -> int:
    """Parse a decimal Factoid amount; more than 8 decimals is an error."""
    try:
        value = Decimal(str(amount).strip()) * FACTOSHIS_PER_FACTOID
    except InvalidOperation as err:
        raise ValueError("invalid Factoid amount %r" % (amount,)) from err
    if value != value.to_integral_value():
        raise ValueError("Factoid amount %r has more than 8 decimals" % (amount,))
    return int(value)


class _Record:
    """Plain JSON object wrapper; FIELDS lists (attribute, json key, label)."""

    FIELDS = ()

    def __init__(self, data=None):
        data = data or {}
        for attr, key, _ in self.FIELDS:
            setattr(self, attr, data.get(key))
        self.raw = data

    @classmethod
    def from_dict(cls, data):
        return cls(data)

    def to_dict(self):
        return dict(self.raw)

    def __str__(self):
        return "".join("%s: %s\n" % (label, getattr(self, attr))
                       for attr, _, label in self.FIELDS)


# -------------------------------------------------------------------------
# Node information
# -------------------------------------------------------------------------

class Properties(_Record):
    FIELDS = (
        ("factomd_version", "factomdversion", "FactomdVersion"),
        ("factomd_api_version", "factomdapiversion", "FactomdAPIVersion"),
        ("wallet_version", "walletversion", "WalletVersion"),
        ("wallet_api_version", "walletapiversion", "WalletAPIVersion"),
    )


class Heights(_Record):
    FIELDS = (
        ("directory_block_height", "directoryblockheight", "DirectoryBlockHeight"),
        ("leader_height", "leaderheight", "LeaderHeight"),
        ("entry_block_height", "entryblockheight", "EntryBlockHeight"),
        ("entry_height", "entryheight", "EntryHeight"),
    )


class CurrentMinuteInfo(_Record):
    FIELDS = (
        ("leader_height", "leaderheight", "LeaderHeight"),
        ("directory_block_height", "directoryblockheight", "DirectoryBlockHeight"),
        ("minute", "minute", "Minute"),
        ("current_block_start_time", "currentblockstarttime", "CurrentBlockStartTime"),
        ("current_minute_start_time", "currentminutestarttime", "CurrentMinuteStartTime"),
        ("current_time", "currenttime", "CurrentTime"),
        ("directory_block_in_seconds", "directoryblockinseconds", "DirectoryBlockInSeconds"),
        ("stall_detected", "stalldetected", "StallDetected"),
        ("fault_timeout", "faulttimeout", "FaultTimeout"),
        ("round_timeout", "roundtimeout", "RoundTimeout"),
    )


class TPSRate(_Record):
    FIELDS = (
        ("instant", "instanttxrate", "InstantTxRate"),
        ("total", "totaltxrate", "TotalTxRate"),
    )


class Diagnostics(_Record):
    FIELDS = (
        ("name", "name", "Name"),
        ("id", "id", "ID"),
        ("public_key", "publickey", "PublicKey"),
        ("role", "role", "Role"),
        ("leader_height", "leaderheight", "LeaderHeight"),
        ("current_minute", "currentminute", "CurrentMinute"),
        ("current_minute_duration", "currentminuteduration", "CurrentMinuteDuration"),
        ("previous_minute_duration", "previousminuteduration", "PrevMinuteDuration"),
        ("balance_hash", "balancehash", "BalanceHash"),
        ("temp_balance_hash", "tempbalancehash", "TempBalanceHash"),
        ("last_block_from_dbstate", "lastblockfromdbstate", "LastBlockFromDBState"),
    )

    def __init__(self, data=None):
        super().__init__(data)
        self.syncing = self.raw.get("syncing") or {}
        self.auth_set = self.raw.get("authset") or {}
        self.elections = self.raw.get("elections") or {}

    def __str__(self):
        s = super().__str__()
        s += "Status: %s\n" % self.syncing.get("status", "")
        for missing in self.syncing.get("missing") or []:
            s += "Missing: %s\n" % missing
        s += "InProgress: %s\n" % self.elections.get("inprogress", False)
        s += "Leaders {\n"
        for leader in self.auth_set.get("leaders") or []:
            s += " ID: %s\n VM: %s\n ProcessListHeight: %s\n" % (
                leader.get("id"), leader.get("vm"), leader.get("listheight"))
        s += "}\nAudits {\n"
        for audit in self.auth_set.get("audits") or []:
            s += " ID: %s\n Online: %s\n" % (audit.get("id"), audit.get("online"))
        return s + "}\n"


class AnchorSigningKey(_Record):
    FIELDS = (
        ("block_chain", "blockchain", "BlockChain"),
        ("level", "level", "Level"),
        ("key_type", "keytype", "KeyType"),
        ("signing_key", "key", "SigningKey"),
    )


class Authority(_Record):
    FIELDS = (
        ("chain_id", "chainid", "AuthorityChainID"),
        ("management_chain_id", "manageid", "ManagementChainID"),
        ("matryoshka_hash", "matroyshka", "MatryoshkaHash"),  # sic, factomd spelling
        ("signing_key", "signingkey", "SigningKey"),
        ("status", "status", "Status"),
    )

    def __init__(self, data=None):
        super().__init__(data)
        self.anchor_keys = [AnchorSigningKey(k) for k in self.raw.get("anchorkeys") or []]

    def __str__(self):
        s = super().__str__() + "AnchorKeys {\n"
        for key in self.anchor_keys:
            s += str(key)
        return s + "}\n"


def get_properties(client=None) -> Properties:
    """factomd and walletd versions; walletd is asked only if it answers."""
    client = get_client(client)
    props = dict(client.factomd_request("properties") or {})
    try:
        props.update(client.wallet_request("properties") or {})
    except FactomError as err:  # walletd is optional here
        logger.debug("wallet properties unavailable: %s", err)
    return Properties(props)


def get_heights(client=None) -> Heights:
    return Heights(get_client(client).factomd_request("heights"))


def get_current_minute(client=None) -> CurrentMinuteInfo:
    return CurrentMinuteInfo(get_client(client).factomd_request("current-minute"))


def get_tps(client=None):
    """Returns (instant, total) transaction rates."""
    rate = TPSRate(get_client(client).factomd_request("tps-rate"))
    return rate.instant, rate.total


def get_diagnostics(client=None) -> Diagnostics:
    return Diagnostics(get_client(client).factomd_request("diagnostics"))


def get_authorities(client=None):
    result = get_client(client).factomd_request("authorities") or {}
    return [Authority(a) for a in result.get("authorities") or []]


# -------------------------------------------------------------------------
# Balances
# -------------------------------------------------------------------------

class BalanceResponse:
    """One address in a multiple-*-balances answer."""

    def __init__(self, ack=0, saved=0, err=""):
        self.ack = ack
        self.saved = saved
        self.err = err

    @staticmethod
    def from_dict(data: dict) -> "BalanceResponse":
        return BalanceResponse(data.get("ack", 0), data.get("saved", 0), data.get("err", ""))

    def __repr__(self):
        return "BalanceResponse(ack=%d, saved=%d)" % (self.ack, self.saved)


def get_ec_balance(address: str, client=None) -> int:
    result = get_client(client).factomd_request("entry-credit-balance", {"address": address})
    return result.get("balance", 0)


def get_factoid_balance(address: str, client=None) -> int:
    result = get_client(client).factomd_request("factoid-balance", {"address": address})
    return result.get("balance", 0)


def _multiple_balances(method, addresses, client):
    result = get_client(client).factomd_request(method, {"addresses": list(addresses)})
    return (
        result.get("currentheight", 0),
        result.get("lastsavedheight", 0),
        [BalanceResponse.from_dict(b) for b in result.get("balances") or []],
    )


def get_multiple_fct_balances(addresses, client=None):
    """Returns (current height, last saved height, [BalanceResponse])."""
    return _multiple_balances("multiple-fct-balances", addresses, client)


def get_multiple_ec_balances(addresses, client=None):
    return _multiple_balances("multiple-ec-balances", addresses, client)


def get_ec_rate(client=None) -> int:
    """Factoshis per Entry Credit."""
    return get_client(client).factomd_request("entry-credit-rate").get("rate", 0)


# -------------------------------------------------------------------------
# Acknowledgements and receipts
# -------------------------------------------------------------------------

class GeneralTransactionData(_Record):
    FIELDS = (
        ("transaction_date", "transactiondate", "TransactionDate"),
        ("transaction_date_string", "transactiondatestring", "Date"),
        ("block_date", "blockdate", "BlockDate"),
        ("block_date_string", "blockdatestring", "BlockDateString"),
        ("status", "status", "Status"),
    )


class FactoidTxStatus(_Record):
    FIELDS = (("txid", "txid", "TxID"),)

    def __init__(self, data=None):
        super().__init__(data)
        self.data = GeneralTransactionData(self.raw)

    @property
    def status(self):
        return self.data.status

    def __str__(self):
        return "TxID: %s\nStatus: %s\nDate: %s\n" % (
            self.txid, self.data.status, self.data.transaction_date_string)


class EntryStatus(_Record):
    FIELDS = (
        ("commit_txid", "committxid", "TxID"),
        ("entry_hash", "entryhash", "EntryHash"),
    )

    def __init__(self, data=None):
        super().__init__(data)
        self.commit_data = GeneralTransactionData(self.raw.get("commitdata"))
        self.entry_data = GeneralTransactionData(self.raw.get("entrydata"))

    def __str__(self):
        s = ""
        if self.entry_hash:
            s += "EntryHash: %s\nStatus: %s\nDate: %s\n" % (
                self.entry_hash, self.entry_data.status,
                self.entry_data.transaction_date_string)
        s += "TxID: %s\nStatus: %s\nDate: %s\n" % (
            self.commit_txid, self.commit_data.status,
            self.commit_data.transaction_date_string)
        return s


def _ack(hash, chain_id, full_transaction, client):
    params = {"hash": hash, "chainid": chain_id}
    if full_transaction:
        params["fulltransaction"] = full_transaction
    return get_client(client).factomd_request("ack", params)


def entry_commit_ack(txid: str, full_transaction="", client=None) -> EntryStatus:
    return EntryStatus(_ack(txid, "c", full_transaction, client))


def entry_reveal_ack(entry_hash: str, chain_id: str, full_transaction="", client=None) -> EntryStatus:
    return EntryStatus(_ack(entry_hash, chain_id, full_transaction, client))


def factoid_ack(txid: str, full_transaction="", client=None) -> FactoidTxStatus:
    return FactoidTxStatus(_ack(txid, "f", full_transaction, client))


def legacy_factoid_ack(txid: str, client=None) -> FactoidTxStatus:
    """The pre-"ack" factoid-ack method some older nodes still serve."""
    return FactoidTxStatus(get_client(client).factomd_request("factoid-ack", {"txid": txid}))


def legacy_entry_ack(txid: str, client=None) -> EntryStatus:
    return EntryStatus(get_client(client).factomd_request("entry-ack", {"txid": txid}))


class MerkleNode:
    def __init__(self, left="", right="", top=""):
        self.left = left
        self.right = right
        self.top = top


class Receipt(_Record):
    FIELDS = (
        ("entry_block_keymr", "entryblockkeymr", "EntryBlockKeyMR"),
        ("directory_block_keymr", "directoryblockkeymr", "DirectoryBlockKeyMR"),
        ("bitcoin_transaction_hash", "bitcointransactionhash", "BitcoinTransactionHash"),
        ("bitcoin_block_hash", "bitcoinblockhash", "BitcoinBlockHash"),
    )

    def __init__(self, data=None):
        super().__init__(data)
        self.entry_hash = (self.raw.get("entry") or {}).get("key", "")
        self.merkle_branch = [
            MerkleNode(n.get("left", ""), n.get("right", ""), n.get("top", ""))
            for n in self.raw.get("merklebranch") or []
        ]


def get_receipt(hash: str, client=None) -> Receipt:
    result = get_client(client).factomd_request("receipt", {"hash": hash})
    return Receipt(result.get("receipt"))


# -------------------------------------------------------------------------
# Transactions and raw data
# -------------------------------------------------------------------------

class PendingTransaction(_Record):
    FIELDS = (
        ("txid", "transactionid", "TxID"),
        ("status", "status", "Status"),
        ("fees", "fees", "Fees"),
    )

    def __init__(self, data=None):
        super().__init__(data)
        self.inputs = self.raw.get("inputs") or []
        self.outputs = self.raw.get("outputs") or []
        self.ec_outputs = self.raw.get("ecoutputs") or []


def get_pending_transactions(address="", client=None):
    params = {"address": address} if address else None
    result = get_client(client).factomd_request("pending-transactions", params) or []
    return [PendingTransaction(t) for t in result]


def get_transaction(txid: str, client=None) -> dict:
    """factomd's view of a transaction and the blocks that include it."""
    return get_client(client).factomd_request("transaction", {"hash": txid})


def factoid_submit(tx_hex: str, client=None):
    """Submit a signed Factoid transaction; returns (message, txid)."""
    result = get_client(client).factomd_request("factoid-submit", {"transaction": tx_hex})
    logger.info("Submitted Factoid transaction %s", result.get("txid", ""))
    return result.get("message", ""), result.get("txid", "")


def get_raw(hash: str, client=None) -> bytes:
    result = get_client(client).factomd_request("get-raw-data", {"hash": hash})
    return bytes.fromhex(result.get("data") or "")


def send_raw_message(message: str, client=None) -> str:
    result = get_client(client).factomd_request("send-raw-message", {"message": message})
    return result.get("message", "")
