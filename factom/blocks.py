"""
blocks.py - Directory, Entry and Factoid blocks and their anchors.

Each class decodes the JSON factomd returns and can dump itself with str().
Admin and Entry Credit blocks live in ablock.py and ecblock.py.
"""

from factom.jsonrpc import get_client


def _lines(pairs):
    return "".join("%s: %s\n" % (k, v) for k, v in pairs)


# -------------------------------------------------------------------------
# Directory Block
# -------------------------------------------------------------------------

class DBlockEntry:
    def __init__(self, chain_id, keymr):
        self.chain_id = chain_id
        self.keymr = keymr

    def to_dict(self):
        return {"chainid": self.chain_id, "keymr": self.keymr}


class DBlock:
    def __init__(self, dbhash="", keymr="", header_hash="", header=None, entries=None):
        self.dbhash = dbhash
        self.keymr = keymr
        self.header_hash = header_hash
        header = header or {}
        self.version = header.get("version", 0)
        self.network_id = header.get("networkid", 0)
        self.body_mr = header.get("bodymr", "")
        self.prev_keymr = header.get("prevkeymr", "")
        self.prev_full_hash = header.get("prevfullhash", "")
        self.timestamp = header.get("timestamp", 0)
        self.dbheight = header.get("dbheight", 0)
        self.block_count = header.get("blockcount", 0)
        self.chain_id = header.get("chainid", "")
        self.entries = entries or []

    @staticmethod
    def from_dict(data: dict) -> "DBlock":
        return DBlock(
            dbhash=data.get("dbhash", ""),
            keymr=data.get("keymr", ""),
            header_hash=data.get("headerhash") or "",
            header=data.get("header"),
            entries=[
                DBlockEntry(e.get("chainid", ""), e.get("keymr", ""))
                for e in data.get("dbentries") or []
            ],
        )

    def keymr_for_chain(self, chain_id):
        for entry in self.entries:
            if entry.chain_id == chain_id:
                return entry.keymr
        return ""

    def __str__(self):
        s = _lines([
            ("DBHash", self.dbhash),
            ("KeyMR", self.keymr),
            ("HeaderHash", self.header_hash),
            ("Version", self.version),
            ("NetworkID", self.network_id),
            ("BodyMR", self.body_mr),
            ("PrevKeyMR", self.prev_keymr),
            ("PrevFullHash", self.prev_full_hash),
            ("Timestamp", self.timestamp),
            ("DBHeight", self.dbheight),
            ("BlockCount", self.block_count),
        ])
        s += "DBEntries {\n"
        for e in self.entries:
            s += "\tChainID: %s\n\tKeyMR: %s\n" % (e.chain_id, e.keymr)
        return s + "}\n"


# -------------------------------------------------------------------------
# Entry Block
# -------------------------------------------------------------------------

class EBEntry:
    def __init__(self, entry_hash, timestamp):
        self.entry_hash = entry_hash
        self.timestamp = timestamp


class EBlock:
    def __init__(self, header=None, entries=None):
        header = header or {}
        self.sequence_number = header.get("blocksequencenumber", 0)
        self.chain_id = header.get("chainid", "")
        self.prev_keymr = header.get("prevkeymr", "")
        self.timestamp = header.get("timestamp", 0)
        self.dbheight = header.get("dbheight", 0)
        self.entries = entries or []

    @staticmethod
    def from_dict(data: dict) -> "EBlock":
        return EBlock(
            header=data.get("header"),
            entries=[
                EBEntry(e.get("entryhash", ""), e.get("timestamp", 0))
                for e in data.get("entrylist") or []
            ],
        )

    def __str__(self):
        s = _lines([
            ("BlockSequenceNumber", self.sequence_number),
            ("ChainID", self.chain_id),
            ("PrevKeyMR", self.prev_keymr),
            ("Timestamp", self.timestamp),
            ("DBHeight", self.dbheight),
        ])
        s += "EBEntries {\n"
        for e in self.entries:
            s += "\tTimestamp: %s\n\tEntryHash: %s\n" % (e.timestamp, e.entry_hash)
        return s + "}\n"


# -------------------------------------------------------------------------
# Factoid Block
# -------------------------------------------------------------------------

class TransactionAddress:
    def __init__(self, amount, address, user_address=""):
        self.amount = amount
        self.address = address
        self.user_address = user_address

    @staticmethod
    def from_dict(data: dict) -> "TransactionAddress":
        return TransactionAddress(
            data.get("amount", 0), data.get("address", ""), data.get("useraddress", ""))

    def to_dict(self):
        return {"amount": self.amount, "address": self.address, "useraddress": self.user_address}


class SignedTransactionAddress(TransactionAddress):
    """An input together with the RCD and signatures that unlock it."""

    def __init__(self, amount, address, user_address="", rcd="", signatures=None):
        super().__init__(amount, address, user_address)
        self.rcd = rcd
        self.signatures = signatures or []


class FBTransaction:
    def __init__(self, txid="", block_height=0, milli_timestamp=0,
                 inputs=None, outputs=None, ec_outputs=None):
        self.txid = txid
        self.block_height = block_height
        self.milli_timestamp = milli_timestamp
        self.inputs = inputs or []
        self.outputs = outputs or []
        self.ec_outputs = ec_outputs or []

    @staticmethod
    def from_dict(data: dict) -> "FBTransaction":
        inputs = data.get("inputs") or []
        rcds = data.get("rcds") or []
        sigblocks = data.get("sigblocks") or []
        if len(inputs) != len(rcds) or len(inputs) != len(sigblocks):
            raise ValueError("invalid signature counts")

        signed = []
        for raw, rcd, sigblock in zip(inputs, rcds, sigblocks):
            addr = TransactionAddress.from_dict(raw)
            signed.append(SignedTransactionAddress(
                addr.amount, addr.address, addr.user_address,
                rcd, list(sigblock.get("signatures") or [])))

        return FBTransaction(
            txid=data.get("txid", ""),
            block_height=data.get("blockheight", 0),
            milli_timestamp=data.get("millitimestamp", 0),
            inputs=signed,
            outputs=[TransactionAddress.from_dict(o) for o in data.get("outputs") or []],
            ec_outputs=[TransactionAddress.from_dict(o) for o in data.get("outecs") or []],
        )

    def to_dict(self):
        return {
            "txid": self.txid,
            "blockheight": self.block_height,
            "millitimestamp": self.milli_timestamp,
            "inputs": [TransactionAddress.to_dict(i) for i in self.inputs],
            "outputs": [o.to_dict() for o in self.outputs],
            "outecs": [o.to_dict() for o in self.ec_outputs],
            "rcds": [i.rcd for i in self.inputs],
            "sigblocks": [{"signatures": i.signatures} for i in self.inputs],
        }

    def total_inputs(self):
        return sum(i.amount for i in self.inputs)

    def total_outputs(self):
        return sum(o.amount for o in self.outputs)

    def total_ec_outputs(self):
        return sum(o.amount for o in self.ec_outputs)

    def __str__(self):
        s = _lines([
            ("TxID", self.txid),
            ("Blockheight", self.block_height),
            ("Timestamp", self.milli_timestamp),
        ])
        for title, rows in (("Inputs", self.inputs), ("Outputs", self.outputs),
                            ("OutECs", self.ec_outputs)):
            if rows:
                s += "%s:\n" % title
                for r in rows:
                    s += "    %s %s\n" % (r.user_address or r.address, r.amount)
        return s


class FBlock:
    """Factoid block. Unlike the other blocks it has no nested header object."""

    def __init__(self, data: dict = None):
        data = data or {}
        self.body_mr = data.get("bodymr", "")
        self.prev_keymr = data.get("prevkeymr", "")
        self.prev_ledger_keymr = data.get("prevledgerkeymr", "")
        self.exchange_rate = data.get("exchrate", 0)
        self.dbheight = data.get("dbheight", 0)
        self.chain_id = data.get("chainid", "")
        self.keymr = data.get("keymr", "")
        self.ledger_keymr = data.get("ledgerkeymr", "")
        self.transactions = [FBTransaction.from_dict(t) for t in data.get("transactions") or []]

    @staticmethod
    def from_dict(data: dict) -> "FBlock":
        return FBlock(data)

    def to_dict(self):
        return {
            "bodymr": self.body_mr,
            "prevkeymr": self.prev_keymr,
            "prevledgerkeymr": self.prev_ledger_keymr,
            "exchrate": self.exchange_rate,
            "dbheight": self.dbheight,
            "transactions": [t.to_dict() for t in self.transactions],
            "chainid": self.chain_id,
            "keymr": self.keymr,
            "ledgerkeymr": self.ledger_keymr,
        }

    def __str__(self):
        s = _lines([
            ("BodyMR", self.body_mr),
            ("PrevKeyMR", self.prev_keymr),
            ("PrevLedgerKeyMR", self.prev_ledger_keymr),
            ("ExchRate", self.exchange_rate),
            ("DBHeight", self.dbheight),
        ])
        s += "Transactions {\n"
        for t in self.transactions:
            s += str(t) + "\n"
        return s + "}\n"


# -------------------------------------------------------------------------
# Anchors
# -------------------------------------------------------------------------

class AnchorBitcoin:
    def __init__(self, transaction_hash, block_hash):
        self.transaction_hash = transaction_hash
        self.block_hash = block_hash


class MerkleNode:
    def __init__(self, left="", right="", top=""):
        self.left = left
        self.right = right
        self.top = top


class AnchorEthereum:
    def __init__(self, data: dict):
        self.record_height = data.get("recordheight", 0)
        self.dbheight_max = data.get("dbheightmax", 0)
        self.dbheight_min = data.get("dbheightmin", 0)
        self.window_mr = data.get("windowmr", "")
        self.merkle_branch = [
            MerkleNode(n.get("left", ""), n.get("right", ""), n.get("top", ""))
            for n in data.get("merklebranch") or []
        ]
        self.contract_address = data.get("contractaddress", "")
        self.txid = data.get("txid", "")
        self.block_hash = data.get("blockhash", "")
        self.tx_index = data.get("txindex", 0)


class Anchors:
    """Anchor records for one directory block.

    factomd sends ``false`` (or null) for a blockchain it has not anchored
    into yet; both decode to None.
    """

    def __init__(self, height=0, keymr="", bitcoin=None, ethereum=None):
        self.height = height
        self.keymr = keymr
        self.bitcoin = bitcoin
        self.ethereum = ethereum

    @staticmethod
    def from_dict(data: dict) -> "Anchors":
        btc = data.get("bitcoin")
        eth = data.get("ethereum")
        return Anchors(
            height=data.get("directoryblockheight", 0),
            keymr=data.get("directoryblockkeymr", ""),
            bitcoin=AnchorBitcoin(btc.get("transactionhash", ""), btc.get("blockhash", ""))
            if isinstance(btc, dict) else None,
            ethereum=AnchorEthereum(eth) if isinstance(eth, dict) else None,
        )

    def __str__(self):
        s = "Height: %d\nKeyMR: %s\n" % (self.height, self.keymr)
        if self.bitcoin is not None:
            s += "Bitcoin {\n TransactionHash: %s\n BlockHash: %s\n}\n" % (
                self.bitcoin.transaction_hash, self.bitcoin.block_hash)
        else:
            s += "Bitcoin {}\n"
        if self.ethereum is not None:
            eth = self.ethereum
            s += "Ethereum {\n"
            s += " RecordHeight: %d\n DBHeightMax: %d\n DBHeightMin: %d\n" % (
                eth.record_height, eth.dbheight_max, eth.dbheight_min)
            s += " WindowMR: %s\n MerkleBranch {\n" % eth.window_mr
            for node in eth.merkle_branch:
                s += "  Left: %s\n  Right: %s\n  Top: %s\n" % (node.left, node.right, node.top)
            s += " }\n ContractAddress: %s\n TxID: %s\n BlockHash: %s\n TxIndex: %d\n}\n" % (
                eth.contract_address, eth.txid, eth.block_hash, eth.tx_index)
        else:
            s += "Ethereum {}\n"
        return s


# -------------------------------------------------------------------------
# Fetchers
# -------------------------------------------------------------------------

def _raw(result):
    return bytes.fromhex(result.get("rawdata") or "")


def get_dblock_by_height(height, client=None):
    """Returns (DBlock, raw bytes)."""
    result = get_client(client).factomd_request("dblock-by-height", {"height": height})
    return DBlock.from_dict(result.get("dblock") or {}), _raw(result)


def get_dblock(keymr, client=None):
    """Directory block by KeyMR, returned in the dblock-by-height shape."""
    client = get_client(client)
    result = client.factomd_request("directory-block-by-keymr", {"keymr": keymr})
    height = (result.get("header") or {}).get("sequencenumber", 0)
    return get_dblock_by_height(height, client)


def get_dblock_head(client=None) -> str:
    return get_client(client).factomd_request("directory-block-head").get("keymr", "")


def get_eblock(keymr, client=None) -> EBlock:
    result = get_client(client).factomd_request("entry-block-by-keymr", {"keymr": keymr})
    return EBlock.from_dict(result)


def get_fblock(keymr, client=None):
    result = get_client(client).factomd_request("factoid-block", {"keymr": keymr})
    return FBlock.from_dict(result.get("fblock") or {}), _raw(result)


def get_fblock_by_height(height, client=None):
    result = get_client(client).factomd_request("fblock-by-height", {"height": height})
    return FBlock.from_dict(result.get("fblock") or {}), _raw(result)


def get_anchors(hash, client=None) -> Anchors:
    return Anchors.from_dict(get_client(client).factomd_request("anchors", {"hash": hash}))


def get_anchors_by_height(height, client=None) -> Anchors:
    return Anchors.from_dict(get_client(client).factomd_request("anchors", {"height": height}))
