import os
import unittest

from factom.config import ID_KEY_STRING_LENGTH
from factom.errors import InvalidAddress, InvalidSeed
from factom.identity_keys import (
    IdentityKey,
    IdentityKeyType,
    identity_key_type,
    identity_pub_bytes,
    is_valid_identity_key,
    make_bip44_identity_key,
)

from fakes import YELLOW

IDPUB = "idpub1p4YkMzskVrtbK45nBHaikGda9w5SMvKvVsQtgVUfLK5Y8tByb"
IDSEC = "idsec2wH72BNR9QZhTMGDbxwLWGrghZQexZvLTros2wCekkc62N9h7s"


class TestIdentityKey(unittest.TestCase):
    def test_bip44_first_key(self):
        """m/44'/281'/0'/0/0 of the yellow phrase."""
        key = make_bip44_identity_key(YELLOW)
        self.assertEqual(key.pub_string(), "idpub2Q7m3YwkQMmNQUVpfcED52b7nFmYFWkiMGGF41srZ9hZZYmC5p")
        self.assertEqual(IdentityKey.from_string(key.sec_string()), key)
        self.assertNotEqual(make_bip44_identity_key(YELLOW, index=1), key)

    def test_from_secret_string(self):
        key = IdentityKey.from_string(IDSEC)
        self.assertEqual(key.pub_string(), IDPUB)
        self.assertEqual(identity_pub_bytes(IDPUB), key.pub)

    def test_string_lengths(self):
        self.assertEqual(len(IDPUB), ID_KEY_STRING_LENGTH)
        self.assertEqual(len(IDSEC), ID_KEY_STRING_LENGTH)

    def test_classify(self):
        self.assertEqual(identity_key_type(IDPUB), IdentityKeyType.IDPUB)
        self.assertEqual(identity_key_type(IDSEC), IdentityKeyType.IDSEC)
        self.assertFalse(is_valid_identity_key(IDPUB[:-1] + "c"))
        self.assertFalse(is_valid_identity_key("EC1m9mouvUQeEidmqpUYpYtXg8fvTYi6GNHaKg8KMLbdMBrFfmUa"))
        self.assertFalse(is_valid_identity_key(""))

    def test_random_round_trip(self):
        for _ in range(20):
            seed = os.urandom(32)
            key = IdentityKey(seed)
            self.assertEqual(identity_key_type(key.sec_string()), IdentityKeyType.IDSEC)
            self.assertEqual(IdentityKey.from_string(key.sec_string()).sec, seed)

    def test_public_only_key(self):
        """A key read from an idpub verifies but cannot sign."""
        full = IdentityKey.from_string(IDSEC)
        public = IdentityKey.from_pub_string(IDPUB)
        self.assertFalse(public.has_secret())
        self.assertEqual(public.sec_string(), "")
        sig = full.sign(b"Hello Factom!")
        self.assertTrue(public.verify(b"Hello Factom!", sig))
        with self.assertRaises(InvalidSeed):
            public.sign(b"Hello Factom!")

    def test_wrong_kind_of_string(self):
        with self.assertRaises(InvalidAddress):
            IdentityKey.from_string(IDPUB)
        with self.assertRaises(InvalidAddress):
            IdentityKey.from_pub_string(IDSEC)


if __name__ == '__main__':
    unittest.main()
