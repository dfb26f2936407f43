import json
import unittest

from factom import crypto
from factom.addresses import ECAddress
from factom.entry import (
    Entry,
    compose_entry_commit,
    compose_entry_reveal,
    commit_entry,
    entry_commit_message,
    entry_cost,
    get_entry,
    reveal_entry,
)
from factom.errors import EntryTooLarge

from fakes import FakeClient, ZERO_EC_SEC

CHAIN_ID = "5a402200c5cf278e47905ce52d7d64529a0291829a7bd230072c5468be709069"
ENTRY_HASH = "52385948ea3ab6fd67b07664ac6a30ae5f6afa94427a547c142517beaa9054d0"
ENTRY_HEX = (
    "005a402200c5cf278e47905ce52d7d64529a0291829a7bd230072c5468be709069"
    "0035"
    "001854686973206973207468652066697273742065787469642e"
    "00195468697320697320746865207365636f6e642065787469642e"
    "546869732069732061207465737420456e7472792e"
)


def sample_entry():
    return Entry(
        CHAIN_ID,
        [b"This is the first extid.", b"This is the second extid."],
        b"This is a test Entry.",
    )


class TestEntryEncoding(unittest.TestCase):
    def setUp(self):
        self.entry = sample_entry()

    def test_binary(self):
        self.assertEqual(self.entry.to_bytes().hex(), ENTRY_HEX)

    def test_parse_binary(self):
        parsed = Entry.from_bytes(bytes.fromhex(ENTRY_HEX))
        self.assertEqual(parsed, self.entry)

    def test_hash(self):
        self.assertEqual(self.entry.hash_hex(), ENTRY_HASH)
        self.assertEqual(self.entry.hash(), crypto.sha52(self.entry.to_bytes()))

    def test_json(self):
        expected = {
            "chainid": CHAIN_ID,
            "extids": [
                "54686973206973207468652066697273742065787469642e",
                "5468697320697320746865207365636f6e642065787469642e",
            ],
            "content": "546869732069732061207465737420456e7472792e",
        }
        self.assertEqual(json.loads(self.entry.to_json()), expected)
        self.assertEqual(Entry.from_dict(expected), self.entry)

    def test_str(self):
        expected = (
            "EntryHash: %s\n"
            "ChainID: %s\n"
            "ExtID: This is the first extid.\n"
            "ExtID: This is the second extid.\n"
            "Content:\n"
            "This is a test Entry.\n"
        ) % (ENTRY_HASH, CHAIN_ID)
        self.assertEqual(str(self.entry), expected)

    def test_str_values_are_utf8(self):
        self.assertEqual(Entry(CHAIN_ID, ["test"], "test!").to_bytes(),
                         Entry(CHAIN_ID, [b"test"], b"test!").to_bytes())

    def test_empty_extid_kept(self):
        entry = Entry(CHAIN_ID, [b"", b"x"], b"")
        self.assertEqual(Entry.from_bytes(entry.to_bytes()).ext_ids, [b"", b"x"])

    def test_malformed_binary(self):
        raw = bytes.fromhex(ENTRY_HEX)
        with self.assertRaises(ValueError):
            Entry.from_bytes(raw[:20])
        with self.assertRaises(ValueError):
            Entry.from_bytes(b"\x01" + raw[1:])
        bad_size = raw[:33] + (0xFFFF).to_bytes(2, "big") + raw[35:]
        with self.assertRaises(ValueError):
            Entry.from_bytes(bad_size)

    def test_bad_chain_id(self):
        with self.assertRaises(ValueError):
            Entry("abcd", [], b"").to_bytes()


class TestEntryCost(unittest.TestCase):
    def test_small_entry_costs_one(self):
        self.assertEqual(entry_cost(sample_entry()), 1)
        self.assertEqual(entry_cost(Entry(CHAIN_ID)), 1)

    def test_one_credit_per_kib(self):
        self.assertEqual(entry_cost(Entry(CHAIN_ID, content=bytes(1024))), 1)
        self.assertEqual(entry_cost(Entry(CHAIN_ID, content=bytes(1025))), 2)
        self.assertEqual(entry_cost(Entry(CHAIN_ID, content=bytes(10240))), 10)

    def test_monotone(self):
        last = 0
        for size in range(0, 10241, 256):
            cost = entry_cost(Entry(CHAIN_ID, content=bytes(size)))
            self.assertGreaterEqual(cost, last)
            last = cost

    def test_too_large(self):
        with self.assertRaises(EntryTooLarge):
            entry_cost(Entry(CHAIN_ID, content=bytes(10241)))

    def test_reveal_checks_size(self):
        with self.assertRaises(EntryTooLarge):
            compose_entry_reveal(Entry(CHAIN_ID, [b"x"], bytes(10240)))
        reveal = compose_entry_reveal(Entry(CHAIN_ID, content=bytes(10240)))
        self.assertEqual(len(reveal.params["entry"]), 2 * (35 + 10240))


class TestEntryCommit(unittest.TestCase):
    def setUp(self):
        self.ec = ECAddress.from_string(ZERO_EC_SEC)
        self.entry = Entry(
            "954d5a49fd70d9b8bcdb35d252267829957f7ef7fa6c74f88419bdc5e82209f4",
            [b"test"], b"test!")

    def test_commit_layout(self):
        msg = entry_commit_message(self.entry, self.ec, ms=1453149058599)
        self.assertEqual(len(msg), 136)
        self.assertEqual(msg[0], 0)
        self.assertEqual(msg[1:7].hex(), "0152566ef627")
        self.assertEqual(
            msg[7:72].hex(),
            "285ed45081d5b8819a678d13c7c2d04f704b34c74e8aaecd9bd34609bee04720"
            "01"
            "3b6a27bcceb6a42d62a3a8d02a6f0d73653215771de243a63ac048a18b59da29",
        )

    def test_commit_signature_verifies(self):
        msg = entry_commit_message(self.entry, self.ec)
        signed, pub, sig = msg[:40], msg[40:72], msg[72:]
        self.assertEqual(pub, self.ec.pub)
        self.assertTrue(crypto.verify(pub, signed, sig))

    def test_compose_commit(self):
        req = compose_entry_commit(self.entry, self.ec)
        self.assertEqual(req.method, "commit-entry")
        self.assertEqual(len(bytes.fromhex(req.params["message"])), 136)

    def test_compose_reveal(self):
        req = compose_entry_reveal(self.entry)
        self.assertEqual(req.method, "reveal-entry")
        self.assertEqual(
            req.params["entry"],
            "00954d5a49fd70d9b8bcdb35d252267829957f7ef7fa6c74f88419bdc5e82209f4"
            "00060004746573747465737421",
        )


class TestEntryCalls(unittest.TestCase):
    def test_commit_and_reveal(self):
        client = FakeClient({
            "commit-entry": {"message": "Entry Commit Success", "txid": "aa" * 32},
            "reveal-entry": {"message": "Entry Reveal Success", "entryhash": ENTRY_HASH},
        })
        entry = sample_entry()
        self.assertEqual(commit_entry(entry, ECAddress.from_string(ZERO_EC_SEC), client), "aa" * 32)
        self.assertEqual(reveal_entry(entry, client), ENTRY_HASH)
        self.assertEqual(client.methods(), ["commit-entry", "reveal-entry"])

    def test_get_entry(self):
        client = FakeClient({"entry-by-hash": sample_entry().to_dict()})
        self.assertEqual(get_entry(ENTRY_HASH, client), sample_entry())
        self.assertEqual(client.calls[0][1], {"hash": ENTRY_HASH})


if __name__ == '__main__':
    unittest.main()
