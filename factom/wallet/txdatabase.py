"""
txdatabase.py - local cache of Factoid blocks for the wallet's history calls.

Blocks are fetched once through fblock-by-height and kept as JSON in
sqlite, keyed by height and KeyMR. Every query first catches the cache up to
the network's newest Factoid block.
"""

import json
import logging
import sqlite3
import threading

from factom.addresses import AddressType, classify
from factom.blocks import FBlock, get_dblock, get_dblock_head, get_fblock, get_fblock_by_height
from factom.config import FACTOID_BLOCK_CHAIN_ID, ZERO_HASH
from factom.errors import FactomError
from factom.jsonrpc import get_client

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 1000


class TXDatabase:
    def __init__(self, path=":memory:", client=None):
        self.path = path
        self.client = client
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(path, check_same_thread=False)
        with self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS fblocks ("
                " height INTEGER PRIMARY KEY,"
                " keymr TEXT NOT NULL UNIQUE,"
                " data TEXT NOT NULL)"
            )

    def close(self):
        with self._lock:
            self._conn.close()

    # ---------------------------------------------------------------------
    # Storage
    # ---------------------------------------------------------------------

    def _save(self, fblock: FBlock):
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO fblocks (height, keymr, data) VALUES (?, ?, ?)",
                (fblock.dbheight, fblock.keymr, json.dumps(fblock.to_dict())),
            )

    def _load(self, column, value):
        with self._lock:
            row = self._conn.execute(
                "SELECT data FROM fblocks WHERE %s = ?" % column, (value,)
            ).fetchone()
        return None if row is None else FBlock.from_dict(json.loads(row[0]))

    def get_fblock(self, keymr: str):
        return self._load("keymr", keymr)

    def get_fblock_by_height(self, height: int):
        return self._load("height", height)

    def head_height(self) -> int:
        """Height of the newest cached block, -1 when empty."""
        with self._lock:
            row = self._conn.execute("SELECT MAX(height) FROM fblocks").fetchone()
        return -1 if row is None or row[0] is None else row[0]

    def _clear(self):
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM fblocks")

    # ---------------------------------------------------------------------
    # Sync
    # ---------------------------------------------------------------------

    def _newest_fblock(self, client) -> FBlock:
        dblock, _ = get_dblock(get_dblock_head(client), client)
        keymr = dblock.keymr_for_chain(FACTOID_BLOCK_CHAIN_ID)
        if not keymr:
            raise FactomError("Directory block has no Factoid block")
        fblock, _ = get_fblock(keymr, client)
        return fblock

    def update(self) -> str:
        """Fetch every block written since the last update; returns the
        KeyMR of the newest Factoid block."""
        client = get_client(self.client)
        newest = self._newest_fblock(client)

        with self._lock:
            start = self.head_height() + 1
            genesis = self.get_fblock_by_height(0)
            if genesis is not None:
                remote, _ = get_fblock_by_height(0, client)
                if remote.keymr != genesis.keymr:
                    logger.warning("Factoid genesis block changed, resyncing from 0")
                    self._clear()
                    start = 0

            for height in range(start, newest.dbheight + 1):
                if height % PROGRESS_EVERY == 0 and newest.dbheight - start > PROGRESS_EVERY:
                    logger.info("Fetching block %d / %d", height, newest.dbheight)
                fblock, _ = get_fblock_by_height(height, client)
                self._save(fblock)
        return newest.keymr

    # ---------------------------------------------------------------------
    # Queries
    # ---------------------------------------------------------------------

    def get_all_txs(self):
        """Every non-empty Factoid transaction, newest block first."""
        self.update()
        fblock = self.get_fblock_by_height(self.head_height())
        if fblock is None:
            raise FactomError("FBlock Chain has not finished syncing")

        txs = []
        while True:
            for tx in fblock.transactions:
                if tx.inputs or tx.outputs:
                    tx.block_height = fblock.dbheight
                    txs.append(tx)
            prev = fblock.prev_keymr
            if not prev or prev == ZERO_HASH:
                break
            fblock = self.get_fblock(prev)
            if fblock is None:
                raise FactomError("Missing fblock in database: %s" % prev)
        return txs

    def get_tx(self, txid: str):
        for tx in self.get_all_txs():
            if tx.txid == txid:
                return tx
        raise FactomError("Transaction not found")

    def get_tx_address(self, address: str):
        """Transactions touching ``address``: FA via inputs and outputs, EC
        via EC outputs."""
        kind = classify(address)
        if kind is AddressType.FACTOID_PUB:
            def touches(tx):
                return any(a.user_address == address for a in tx.inputs + tx.outputs)
        elif kind is AddressType.EC_PUB:
            def touches(tx):
                return any(a.user_address == address for a in tx.ec_outputs)
        else:
            raise FactomError("not a valid address")
        return [tx for tx in self.get_all_txs() if touches(tx)]

    def get_tx_range(self, start: int, end: int):
        if start < 0 or end < 0:
            raise FactomError("Range cannot have negative numbers")
        return [tx for tx in self.get_all_txs() if start <= tx.block_height <= end]
