import unittest

from factom.factomd import (
    entry_commit_ack,
    factoid_ack,
    factoid_submit,
    factoid_to_factoshi,
    factoshi_to_factoid,
    get_authorities,
    get_ec_balance,
    get_ec_rate,
    get_heights,
    get_multiple_fct_balances,
    get_properties,
    get_raw,
    get_tps,
)
from factom.jsonrpc import JSONError

from fakes import FakeClient


class TestAmounts(unittest.TestCase):
    def test_factoshi_to_factoid(self):
        self.assertEqual(factoshi_to_factoid(123456789), "1.23456789")
        self.assertEqual(factoshi_to_factoid(5), "0.00000005")
        self.assertEqual(factoshi_to_factoid(-100000000), "-1.00000000")

    def test_factoid_to_factoshi(self):
        self.assertEqual(factoid_to_factoshi("1.5"), 150000000)
        self.assertEqual(factoid_to_factoshi(" 0.00000001 "), 1)
        with self.assertRaises(ValueError):
            factoid_to_factoshi("0.000000001")
        with self.assertRaises(ValueError):
            factoid_to_factoshi("lots")


class TestQueries(unittest.TestCase):
    def test_heights(self):
        client = FakeClient({"heights": {"directoryblockheight": 10, "leaderheight": 11,
                                         "entryblockheight": 10, "entryheight": 9}})
        heights = get_heights(client)
        self.assertEqual(heights.leader_height, 11)
        self.assertIn("EntryHeight: 9", str(heights))

    def test_properties_without_wallet(self):
        client = FakeClient({"properties": {"factomdversion": "6.0.0",
                                            "factomdapiversion": "2.0"}})
        props = get_properties(client)
        self.assertEqual(props.factomd_version, "6.0.0")
        self.assertIsNone(props.wallet_version)

    def test_balances_and_rate(self):
        client = FakeClient({
            "entry-credit-balance": {"balance": 42},
            "entry-credit-rate": {"rate": 1000},
            "multiple-fct-balances": {
                "currentheight": 5, "lastsavedheight": 4,
                "balances": [{"ack": 10, "saved": 8, "err": ""},
                             {"ack": 0, "saved": 0, "err": "Error decoding address"}],
            },
        })
        self.assertEqual(get_ec_balance("EC...", client), 42)
        self.assertEqual(get_ec_rate(client), 1000)
        current, saved, balances = get_multiple_fct_balances(["FA1", "FA2"], client)
        self.assertEqual((current, saved), (5, 4))
        self.assertEqual(balances[0].ack, 10)
        self.assertEqual(balances[1].err, "Error decoding address")
        self.assertEqual(client.calls[-1][1], {"addresses": ["FA1", "FA2"]})

    def test_tps(self):
        client = FakeClient({"tps-rate": {"instanttxrate": 1.5, "totaltxrate": 0.5}})
        self.assertEqual(get_tps(client), (1.5, 0.5))

    def test_authorities(self):
        client = FakeClient({"authorities": {"authorities": [{
            "chainid": "88" * 32, "status": "federated",
            "anchorkeys": [{"blockchain": "BTC", "level": 0, "keytype": 0, "key": "abcd"}],
        }]}})
        auths = get_authorities(client)
        self.assertEqual(auths[0].status, "federated")
        self.assertEqual(auths[0].anchor_keys[0].signing_key, "abcd")

    def test_raw(self):
        client = FakeClient({"get-raw-data": {"data": "00ff"}})
        self.assertEqual(get_raw("ab" * 32, client), b"\x00\xff")


class TestAcks(unittest.TestCase):
    def test_factoid_ack(self):
        client = FakeClient({"ack": {"txid": "aa" * 32, "status": "TransactionACK",
                                     "transactiondatestring": "2017-01-01"}})
        status = factoid_ack("aa" * 32, client=client)
        self.assertEqual(status.status, "TransactionACK")
        self.assertEqual(client.calls[0][1], {"hash": "aa" * 32, "chainid": "f"})

    def test_entry_commit_ack(self):
        client = FakeClient({"ack": {"committxid": "bb" * 32, "entryhash": "",
                                     "commitdata": {"status": "DBlockConfirmed"}}})
        status = entry_commit_ack("bb" * 32, client=client)
        self.assertEqual(status.commit_data.status, "DBlockConfirmed")
        self.assertEqual(client.calls[0][1]["chainid"], "c")

    def test_submit(self):
        client = FakeClient({"factoid-submit": {"message": "Successfully submitted",
                                                "txid": "cc" * 32}})
        self.assertEqual(factoid_submit("00", client), ("Successfully submitted", "cc" * 32))

    def test_error_propagates(self):
        client = FakeClient({"ack": JSONError(-32602, "Invalid params")})
        with self.assertRaises(JSONError):
            factoid_ack("zz", client=client)


if __name__ == '__main__':
    unittest.main()
