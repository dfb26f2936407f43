import unittest

from factom.addresses import FactoidAddress, ECAddress
from factom.transaction import (
    FactoidTransaction,
    decode_varint,
    encode_varint,
)

from fakes import FCT_SEC_1, FCT_SEC_2, ZERO_EC_SEC, load_fixture

TXID = "1ec91421e01d95267f3deb9b9d5f29d3438387a0280a5ffa5e9a60f235212ae8"


def raw_fixture_tx():
    """The second transaction of the recorded Factoid block, as bytes."""
    raw = load_fixture("fblock.json")["rawdata"]
    start = raw.index("020152566ef627")
    return bytes.fromhex(raw[start:start + 2 * 181])


class TestVarint(unittest.TestCase):
    def test_known_values(self):
        self.assertEqual(encode_varint(0), b"\x00")
        self.assertEqual(encode_varint(127), b"\x7f")
        self.assertEqual(encode_varint(128), b"\x81\x00")
        self.assertEqual(encode_varint(26268275436).hex(), "e1edd8a56c")

    def test_decode(self):
        self.assertEqual(decode_varint(bytes.fromhex("e1edd8a56c")), (26268275436, 5))
        self.assertEqual(decode_varint(b"\xff\x81\x00", 1), (128, 3))
        with self.assertRaises(ValueError):
            decode_varint(b"\x81")

    def test_negative(self):
        with self.assertRaises(ValueError):
            encode_varint(-1)


class TestRecordedTransaction(unittest.TestCase):
    def setUp(self):
        self.raw = raw_fixture_tx()
        self.tx = FactoidTransaction.from_bytes(self.raw)

    def test_decode(self):
        self.assertEqual(len(self.raw), 181)
        self.assertEqual(self.tx.milli_timestamp, 1453149058599)
        self.assertEqual(self.tx.total_inputs(), 26268275436)
        self.assertEqual(self.tx.total_outputs(), 26267184636)
        self.assertEqual(self.tx.input_addresses(),
                         ["FA2SCdYb8iBYmMcmeUjHB8NhKx6DqH3wDovkumgbKt4oNkD3TJMg"])
        self.assertEqual(self.tx.output_addresses(),
                         ["FA3XME5vdcjG8jPT188UFkum9BeAJJLgwyCkGB12QLsDA2qQaBET"])

    def test_txid(self):
        self.assertEqual(self.tx.txid(), TXID)

    def test_encode(self):
        self.assertEqual(self.tx.to_bytes(), self.raw)

    def test_signatures(self):
        self.assertTrue(self.tx.validate_signatures())
        self.tx.outputs[0].amount += 1
        self.assertFalse(self.tx.validate_signatures())

    def test_fee(self):
        """One started KiB, ten per output and one per input."""
        self.assertEqual(self.tx.calculate_fee(1000), 12 * 1000)

    def test_trailing_bytes(self):
        with self.assertRaises(ValueError):
            FactoidTransaction.from_bytes(self.raw + b"\x00")


class TestBuildTransaction(unittest.TestCase):
    def setUp(self):
        self.payer = FactoidAddress.from_string(FCT_SEC_1)
        self.payee = FactoidAddress.from_string(FCT_SEC_2)
        self.ec = ECAddress.from_string(ZERO_EC_SEC)
        self.tx = FactoidTransaction(milli_timestamp=1500000000000)
        self.tx.add_input(self.payer.rcd, 5000)
        self.tx.add_output(self.payee.rcd_hash(), 3000)
        self.tx.add_ec_output(self.ec.pub, 1000)

    def sign(self):
        msg = self.tx.marshal_sig()
        self.tx.signatures = [self.payer.sign(msg)]

    def test_totals(self):
        self.assertEqual(self.tx.fees_paid(), 1000)
        self.assertEqual(self.tx.ec_output_addresses(), [self.ec.pub_string()])

    def test_unsigned_cannot_encode(self):
        self.assertFalse(self.tx.is_signed())
        with self.assertRaises(ValueError):
            self.tx.to_bytes()
        padded = self.tx.to_bytes(pad_signatures=True)
        self.assertTrue(padded.endswith(bytes(64)))

    def test_signed_round_trip(self):
        self.sign()
        self.assertTrue(self.tx.is_signed())
        self.assertTrue(self.tx.validate_signatures())
        again = FactoidTransaction.from_bytes(self.tx.to_bytes())
        self.assertEqual(again.txid(), self.tx.txid())
        self.assertTrue(again.validate_signatures())

    def test_changes_clear_signatures(self):
        self.sign()
        self.tx.add_output(self.payee.rcd_hash(), 1)
        self.assertFalse(self.tx.is_signed())

    def test_fee_grows_with_outputs(self):
        before = self.tx.calculate_fee(100)
        self.tx.add_output(self.payee.rcd_hash(), 1)
        self.assertEqual(self.tx.calculate_fee(100), before + 10 * 100)

    def test_wrong_key_fails_validation(self):
        msg = self.tx.marshal_sig()
        self.tx.signatures = [self.payee.sign(msg)]
        self.assertFalse(self.tx.validate_signatures())


if __name__ == '__main__':
    unittest.main()
