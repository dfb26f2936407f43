import unittest

from factom import wallet_client
from factom.addresses import ECAddress, FactoidAddress
from factom.errors import InvalidAddress
from factom.jsonrpc import JSON2Request, JSONError
from factom.transaction import FactoidTransaction
from factom.wallet import Wallet, WalletDatabase
from factom.wallet.wsapi import dispatch

from fakes import FCT_SEC_1, FCT_SEC_2, ZERO_EC_SEC, FakeClient

RATE = 100


class LoopbackClient(FakeClient):
    """factomd answers from the table; walletd calls go straight to a wallet."""

    def __init__(self, wallet, responses=None):
        super().__init__(responses)
        self.wallet = wallet
        self.wallet_calls = []

    def wallet_request(self, method, params=None):
        self.wallet_calls.append(method)
        resp = dispatch(self.wallet, JSON2Request(method, params=params), self)
        if resp.error is not None:
            raise resp.error
        return resp.result


class TestWalletClient(unittest.TestCase):
    def setUp(self):
        self.wallet = Wallet(WalletDatabase())
        self.submitted = []
        self.client = LoopbackClient(self.wallet, {
            "entry-credit-rate": {"rate": RATE},
            "factoid-balance": {"balance": 10 ** 9},
            "factoid-submit": self.submit,
        })
        self.fa1, = wallet_client.import_addresses(FCT_SEC_1, client=self.client)
        self.payee = FactoidAddress.from_string(FCT_SEC_2).pub_string()

    def tearDown(self):
        self.wallet.close()

    def submit(self, params):
        self.submitted.append(params["transaction"])
        return {"message": "Successfully submitted", "txid": "00" * 32}

    def sent_tx(self):
        return FactoidTransaction.from_bytes(bytes.fromhex(self.submitted[-1]))

    def test_addresses(self):
        self.assertIsInstance(self.fa1, FactoidAddress)
        ec = wallet_client.generate_ec_address(client=self.client)
        self.assertIsInstance(ec, ECAddress)
        fcts, ecs = wallet_client.fetch_addresses(client=self.client)
        self.assertEqual((fcts, ecs), ([self.fa1], [ec]))
        self.assertEqual(wallet_client.fetch_address(ec.pub_string(), client=self.client), ec)
        wallet_client.remove_address(ec.pub_string(), client=self.client)
        self.assertEqual(wallet_client.fetch_addresses(client=self.client)[1], [])

    def test_properties_and_height(self):
        self.assertEqual(wallet_client.wallet_properties(client=self.client), ("0.2.0", "2.0"))
        self.assertEqual(wallet_client.get_wallet_height(client=self.client), 0)

    def test_send_factoid_sender_pays(self):
        wallet_client.send_factoid(self.fa1.pub_string(), self.payee, 10000, client=self.client)
        tx = self.sent_tx()
        self.assertTrue(tx.validate_signatures())
        self.assertEqual(tx.total_outputs(), 10000)
        self.assertEqual(tx.fees_paid(), 12 * RATE)
        self.assertEqual(wallet_client.get_tmp_transactions(client=self.client), [])

    def test_send_factoid_receiver_pays(self):
        self.client.responses["factoid-balance"] = {"balance": 10000}
        wallet_client.send_factoid(self.fa1.pub_string(), self.payee, 10000, client=self.client)
        tx = self.sent_tx()
        self.assertEqual(tx.total_inputs(), 10000)
        self.assertEqual(tx.total_outputs(), 10000 - 12 * RATE)

    def test_buy_exact_ec(self):
        ec_pub = ECAddress.from_string(ZERO_EC_SEC).pub_string()
        wallet_client.buy_exact_ec(self.fa1.pub_string(), ec_pub, 5, client=self.client)
        tx = self.sent_tx()
        self.assertEqual(tx.total_ec_outputs(), 5 * RATE)
        self.assertEqual(tx.ec_output_addresses(), [ec_pub])

    def test_addresses_checked_before_asking_the_wallet(self):
        wallet_client.new_transaction("tx", client=self.client)
        before = len(self.client.wallet_calls)
        ec_pub = ECAddress.from_string(ZERO_EC_SEC).pub_string()
        with self.assertRaises(InvalidAddress):
            wallet_client.add_transaction_input("tx", ec_pub, 1, client=self.client)
        with self.assertRaises(InvalidAddress):
            wallet_client.add_transaction_ec_output("tx", self.payee, 1, client=self.client)
        self.assertEqual(len(self.client.wallet_calls), before)

    def test_unsigned_transaction_is_not_sent(self):
        tx = wallet_client.new_transaction("tx", client=self.client)
        self.assertIn("Signed: False", str(tx))
        with self.assertRaises(ValueError):
            wallet_client.send_transaction("tx", client=self.client)
        self.assertEqual(self.submitted, [])

    def test_wallet_errors(self):
        with self.assertRaises(JSONError) as cm:
            wallet_client.delete_transaction("missing", client=self.client)
        self.assertEqual(cm.exception.code, -32603)

    def test_sign_data(self):
        pub, sig = wallet_client.sign_data(self.fa1.pub_string(), b"payload", client=self.client)
        self.assertEqual(pub, self.fa1.pub)
        self.assertTrue(self.fa1.verify(b"payload", sig))


if __name__ == '__main__':
    unittest.main()
