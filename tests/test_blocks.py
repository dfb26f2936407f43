import unittest

from factom.ablock import (
    ABlock,
    AdminAddAuthorityAddress,
    AdminDBSignature,
    AdminID,
    AdminMinuteNumber,
    decode_admin_entry,
    get_ablock,
)
from factom.blocks import (
    Anchors,
    DBlock,
    EBlock,
    FBlock,
    get_anchors_by_height,
    get_dblock,
    get_fblock_by_height,
)
from factom.ecblock import (
    ECID,
    ECBlock,
    ECChainCommit,
    ECEntryCommit,
    decode_ec_entry,
)
from factom.errors import UnknownAdminID, UnknownECID

from fakes import FakeClient, fixture_result, load_fixture


class TestABlock(unittest.TestCase):
    def setUp(self):
        self.ablock = ABlock.from_dict(load_fixture("ablock.json")["ablock"])

    def test_entry_types_in_order(self):
        types = [int(e.type()) for e in self.ablock.entries]
        self.assertEqual(types, [1, 0, 2, 3, 4, 5, 6, 7, 8, 9, 13, 14])

    def test_header(self):
        self.assertEqual(self.ablock.dbheight, 20000)
        self.assertEqual(self.ablock.backref_hash,
                         "c8ad13a2aea0f961bf73ac9e79ae8aa0d77ddf59e7d02931de7b9e53a3a20c5e")

    def test_variant_fields(self):
        sig = self.ablock.entries[0]
        self.assertIsInstance(sig, AdminDBSignature)
        self.assertEqual(sig.pub, "0426a802617848d4d16d87830fc521f4d136bb2d0c352850919c2679f189613a")
        self.assertIsInstance(self.ablock.entries[1], AdminMinuteNumber)
        self.assertEqual(self.ablock.entries[1].minute_number, 1)
        auth = self.ablock.entries[10]
        self.assertIsInstance(auth, AdminAddAuthorityAddress)
        self.assertEqual(auth.factoid_address, "FA1y5ZGuHSLmf2TqNf6hVMkPiNGyQpQDTFJvDLRkKQaoPo4bmbgu")

    def test_to_dict_round_trip(self):
        for entry in self.ablock.entries:
            again = decode_admin_entry(entry.to_dict())
            self.assertEqual(again.to_dict(), entry.to_dict())

    def test_unknown_tag(self):
        with self.assertRaises(UnknownAdminID):
            decode_admin_entry({"adminidtype": 99})
        with self.assertRaises(UnknownAdminID):
            decode_admin_entry({"minutenumber": 1})

    def test_str(self):
        s = str(self.ablock)
        self.assertIn("DBHeight: 20000", s)
        self.assertIn("MinuteNumber: 1", s)

    def test_get_ablock(self):
        client = FakeClient({"admin-block": load_fixture("ablock.json")})
        ablock = get_ablock("ab" * 32, client)
        self.assertEqual(ablock.entries[-1].type(), AdminID.ADD_AUTHORITY_EFFICIENCY)


class TestECBlock(unittest.TestCase):
    def setUp(self):
        self.ecblock = ECBlock.from_dict(load_fixture("ecblock.json")["ecblock"])

    def test_entry_shapes(self):
        types = [e.type() for e in self.ecblock.entries]
        self.assertEqual(len(types), 14)
        self.assertEqual(types[:4], [ECID.SERVER_INDEX_NUMBER, ECID.CHAIN_COMMIT,
                                     ECID.ENTRY_COMMIT, ECID.MINUTE_NUMBER])
        self.assertEqual(types[7], ECID.CHAIN_COMMIT)
        self.assertEqual(self.ecblock.entries[-1].number, 10)

    def test_commits(self):
        chain_commit = self.ecblock.entries[1]
        self.assertIsInstance(chain_commit, ECChainCommit)
        self.assertEqual(chain_commit.credits, 11)
        self.assertEqual(chain_commit.milli_time, 1447267231401)
        entry_commit = self.ecblock.entries[2]
        self.assertIsInstance(entry_commit, ECEntryCommit)
        self.assertNotIsInstance(entry_commit, ECChainCommit)
        self.assertEqual(entry_commit.credits, 1)

    def test_header(self):
        self.assertEqual(self.ecblock.dbheight, 10199)
        self.assertEqual(self.ecblock.header_hash,
                         "a7baaa24e477a0acef165461d70ec94ff3f33ad15562ecbe937967a761929a17")

    def test_tagged_entries(self):
        self.assertEqual(decode_ec_entry({"ecid": 1, "number": 3}).number, 3)
        with self.assertRaises(UnknownECID):
            decode_ec_entry({"ecid": 9})
        with self.assertRaises(UnknownECID):
            decode_ec_entry({"foo": 1})


class TestDBlock(unittest.TestCase):
    def setUp(self):
        self.result = fixture_result("dblock.json")
        self.dblock = DBlock.from_dict(self.result["dblock"])

    def test_decode(self):
        self.assertEqual(self.dblock.keymr,
                         "cde346e7ed87957edfd68c432c984f35596f29c7d23de6f279351cddecd5dc66")
        self.assertEqual(self.dblock.dbheight, 100)
        self.assertEqual(self.dblock.header_hash, "")
        self.assertEqual(len(self.dblock.entries), 4)

    def test_keymr_for_chain(self):
        self.assertEqual(
            self.dblock.keymr_for_chain("000000000000000000000000000000000000000000000000000000000000000f"),
            "d9a1de8b02f686a9d4232fa7c8420aa0d9538969923c8eee812352c402c4db0d")
        self.assertEqual(self.dblock.keymr_for_chain("ff" * 32), "")

    def test_get_dblock_by_keymr(self):
        client = FakeClient({
            "directory-block-by-keymr": {"header": {"sequencenumber": 100}},
            "dblock-by-height": self.result,
        })
        dblock, raw = get_dblock(self.dblock.keymr, client)
        self.assertEqual(dblock.dbheight, 100)
        self.assertEqual(raw[:1], b"\x00")
        self.assertEqual(client.calls[1], ("dblock-by-height", {"height": 100}))


class TestEBlock(unittest.TestCase):
    def test_decode(self):
        eblock = EBlock.from_dict(fixture_result("eblock.json"))
        self.assertEqual(eblock.sequence_number, 35990)
        self.assertEqual(eblock.dbheight, 75893)
        self.assertEqual([e.entry_hash[:8] for e in eblock.entries], ["cefd9554", "61a7f925"])
        self.assertIn("EBEntries {", str(eblock))


class TestFBlock(unittest.TestCase):
    def setUp(self):
        self.fixture = load_fixture("fblock.json")
        self.fblock = FBlock.from_dict(self.fixture["fblock"])

    def test_decode(self):
        self.assertEqual(self.fblock.keymr,
                         "cfcac07b29ccfa413aeda646b5d386006468189939dfdfa6415b97cc35f2ea1a")
        self.assertEqual(self.fblock.exchange_rate, 90900)
        self.assertEqual(len(self.fblock.transactions), 2)

    def test_transaction(self):
        tx = self.fblock.transactions[1]
        self.assertEqual(tx.txid, "1ec91421e01d95267f3deb9b9d5f29d3438387a0280a5ffa5e9a60f235212ae8")
        self.assertEqual(tx.inputs[0].user_address, "FA2SCdYb8iBYmMcmeUjHB8NhKx6DqH3wDovkumgbKt4oNkD3TJMg")
        self.assertEqual(tx.inputs[0].rcd,
                         "016664074524dd6a58e6593780717233b56d381a6798e5ee5ba75564bde589a6bf")
        self.assertEqual(tx.total_inputs() - tx.total_outputs(), 26268275436 - 26267184636)

    def test_to_dict_round_trip(self):
        self.assertEqual(FBlock.from_dict(self.fblock.to_dict()).to_dict(), self.fblock.to_dict())
        self.assertEqual(self.fblock.to_dict(), self.fixture["fblock"])

    def test_mismatched_signatures(self):
        data = dict(self.fixture["fblock"]["transactions"][1], sigblocks=[])
        with self.assertRaises(ValueError):
            FBlock.from_dict({"transactions": [data]})

    def test_get_by_height(self):
        client = FakeClient({"fblock-by-height": self.fixture})
        fblock, raw = get_fblock_by_height(20002, client)
        self.assertEqual(fblock.dbheight, 20002)
        self.assertEqual(raw, bytes.fromhex(self.fixture["rawdata"]))


class TestAnchors(unittest.TestCase):
    def test_decode(self):
        anchors = Anchors.from_dict(fixture_result("anchors.json"))
        self.assertEqual(anchors.height, 200000)
        self.assertEqual(anchors.bitcoin.transaction_hash,
                         "6d2d1e506528ae3b476d70fb05517bbbb152a4698a23ff78b4d87249027f53ca")
        self.assertEqual(anchors.ethereum.record_height, 200001)
        self.assertEqual(anchors.ethereum.tx_index, 31)
        self.assertEqual(len(anchors.ethereum.merkle_branch), 10)

    def test_false_and_null_are_absent(self):
        for missing in (False, None):
            anchors = Anchors.from_dict({"directoryblockheight": 5, "bitcoin": missing,
                                         "ethereum": missing})
            self.assertIsNone(anchors.bitcoin)
            self.assertIsNone(anchors.ethereum)
            self.assertIn("Bitcoin {}", str(anchors))

    def test_get_by_height(self):
        client = FakeClient({"anchors": fixture_result("anchors.json")})
        anchors = get_anchors_by_height(200000, client)
        self.assertEqual(anchors.keymr,
                         "ce86fc790dd1462aea255adaa64e2f21c871995df2c2c119352d869fa1d7269f")
        self.assertEqual(client.calls, [("anchors", {"height": 200000})])


if __name__ == '__main__':
    unittest.main()
