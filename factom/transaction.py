"""
transaction.py - Factoid transaction binary format.

    varint version (2)
    6 byte millisecond timestamp
    1 byte input count, 1 byte output count, 1 byte EC output count
    inputs, outputs, EC outputs: varint amount + 32 byte address body
    per input: RCD (0x01 + 32 byte key) then its 64 byte signature

The signed region and the transaction id cover everything up to the RCDs.
"""

import math

from factom import crypto
from factom.addresses import RCD1, ec_address_from_pub, factoid_address_from_rcd_hash

VERSION = 2
SIGNATURE_LENGTH = 64


# -------------------------------------------------------------------------
# Varint: big-endian base 128, high bit set on every byte but the last
# -------------------------------------------------------------------------

def encode_varint(n: int) -> bytes:
    if n < 0:
        raise ValueError("varint cannot be negative")
    out = [n & 0x7F]
    n >>= 7
    while n:
        out.append(0x80 | (n & 0x7F))
        n >>= 7
    return bytes(reversed(out))


def decode_varint(data: bytes, pos: int = 0):
    """Returns (value, position after the varint)."""
    value = 0
    while True:
        if pos >= len(data):
            raise ValueError("truncated varint")
        b = data[pos]
        pos += 1
        value = (value << 7) | (b & 0x7F)
        if not b & 0x80:
            return value, pos


class TransAddress:
    """An amount paired with a 32 byte address body (an RCD hash or EC key)."""

    def __init__(self, amount: int, address: bytes):
        if len(address) != 32:
            raise ValueError("address body must be 32 bytes")
        self.amount = amount
        self.address = bytes(address)

    def to_bytes(self) -> bytes:
        return encode_varint(self.amount) + self.address

    def __eq__(self, other):
        return (isinstance(other, TransAddress)
                and self.amount == other.amount and self.address == other.address)

    def __repr__(self):
        return "TransAddress(%d, %s)" % (self.amount, self.address.hex())


class FactoidTransaction:
    def __init__(self, milli_timestamp: int = None, inputs=None, outputs=None,
                 ec_outputs=None, rcds=None, signatures=None):
        if milli_timestamp is None:
            milli_timestamp = int.from_bytes(crypto.milli_timestamp(), "big")
        self.milli_timestamp = milli_timestamp
        self.inputs = inputs or []
        self.outputs = outputs or []
        self.ec_outputs = ec_outputs or []
        self.rcds = rcds or []
        # one 64 byte signature (or None while unsigned) per input
        self.signatures = signatures or []

    # ---------------------------------------------------------------------
    # Building
    # ---------------------------------------------------------------------

    def add_input(self, rcd: RCD1, amount: int):
        self.inputs.append(TransAddress(amount, rcd.hash()))
        self.rcds.append(rcd)
        self.signatures.append(None)
        self.clear_signatures()

    def add_output(self, rcd_hash: bytes, amount: int):
        self.outputs.append(TransAddress(amount, rcd_hash))
        self.clear_signatures()

    def add_ec_output(self, ec_pub: bytes, amount: int):
        self.ec_outputs.append(TransAddress(amount, ec_pub))
        self.clear_signatures()

    def clear_signatures(self):
        self.signatures = [None] * len(self.inputs)

    def is_signed(self) -> bool:
        return bool(self.inputs) and all(s is not None for s in self.signatures)

    # ---------------------------------------------------------------------
    # Binary form
    # ---------------------------------------------------------------------

    def marshal_sig(self) -> bytes:
        """The bytes every input signs."""
        for group in (self.inputs, self.outputs, self.ec_outputs):
            if len(group) > 0xFF:
                raise ValueError("too many inputs or outputs")
        buf = bytearray(encode_varint(VERSION))
        buf += self.milli_timestamp.to_bytes(6, "big")
        buf += bytes([len(self.inputs), len(self.outputs), len(self.ec_outputs)])
        for group in (self.inputs, self.outputs, self.ec_outputs):
            for addr in group:
                buf += addr.to_bytes()
        return bytes(buf)

    def to_bytes(self, pad_signatures=False) -> bytes:
        """Full transaction. Unsigned inputs raise unless ``pad_signatures``
        asks for zero filled signature slots (used for sizing)."""
        if len(self.rcds) != len(self.inputs):
            raise ValueError("every input needs an RCD")
        buf = bytearray(self.marshal_sig())
        for i, rcd in enumerate(self.rcds):
            sig = self.signatures[i] if i < len(self.signatures) else None
            if sig is None:
                if not pad_signatures:
                    raise ValueError("input %d is not signed" % i)
                sig = bytes(SIGNATURE_LENGTH)
            buf += rcd.to_bytes() + sig
        return bytes(buf)

    @staticmethod
    def from_bytes(data: bytes) -> "FactoidTransaction":
        version, pos = decode_varint(data, 0)
        if version != VERSION:
            raise ValueError("unsupported transaction version %d" % version)
        if pos + 9 > len(data):
            raise ValueError("transaction header is too short")
        ts = int.from_bytes(data[pos:pos + 6], "big")
        n_in, n_out, n_ec = data[pos + 6], data[pos + 7], data[pos + 8]
        pos += 9

        def read_addresses(count, pos):
            group = []
            for _ in range(count):
                amount, pos = decode_varint(data, pos)
                if pos + 32 > len(data):
                    raise ValueError("truncated address")
                group.append(TransAddress(amount, data[pos:pos + 32]))
                pos += 32
            return group, pos

        inputs, pos = read_addresses(n_in, pos)
        outputs, pos = read_addresses(n_out, pos)
        ec_outputs, pos = read_addresses(n_ec, pos)

        rcds, sigs = [], []
        for _ in range(n_in):
            end = pos + 33 + SIGNATURE_LENGTH
            if end > len(data):
                raise ValueError("truncated RCD or signature")
            rcds.append(RCD1.from_bytes(data[pos:pos + 33]))
            sigs.append(data[pos + 33:end])
            pos = end
        if pos != len(data):
            raise ValueError("%d trailing bytes after transaction" % (len(data) - pos))
        return FactoidTransaction(ts, inputs, outputs, ec_outputs, rcds, sigs)

    def txid(self) -> str:
        return crypto.sha256(self.marshal_sig()).hex()

    def validate_signatures(self) -> bool:
        """Each input's RCD must hash to the input address and sign the tx."""
        if not self.is_signed() or len(self.rcds) != len(self.inputs):
            return False
        message = self.marshal_sig()
        for inp, rcd, sig in zip(self.inputs, self.rcds, self.signatures):
            if rcd.hash() != inp.address:
                return False
            if not crypto.verify(rcd.pub, message, sig):
                return False
        return True

    # ---------------------------------------------------------------------
    # Amounts
    # ---------------------------------------------------------------------

    def total_inputs(self) -> int:
        return sum(a.amount for a in self.inputs)

    def total_outputs(self) -> int:
        return sum(a.amount for a in self.outputs)

    def total_ec_outputs(self) -> int:
        return sum(a.amount for a in self.ec_outputs)

    def fees_paid(self) -> int:
        return self.total_inputs() - self.total_outputs() - self.total_ec_outputs()

    def calculate_fee(self, rate: int) -> int:
        """Factoshis owed at ``rate`` factoshis per EC: one EC per started KiB,
        ten per output, one per signature."""
        size = len(self.to_bytes(pad_signatures=True))
        ecs = math.ceil(size / 1024)
        ecs += 10 * (len(self.outputs) + len(self.ec_outputs))
        ecs += len(self.inputs)
        return ecs * rate

    # ---------------------------------------------------------------------
    # Display
    # ---------------------------------------------------------------------

    def input_addresses(self):
        return [factoid_address_from_rcd_hash(a.address) for a in self.inputs]

    def output_addresses(self):
        return [factoid_address_from_rcd_hash(a.address) for a in self.outputs]

    def ec_output_addresses(self):
        return [ec_address_from_pub(a.address) for a in self.ec_outputs]

    def __repr__(self):
        return "FactoidTransaction(%s, in=%d, out=%d, ec=%d)" % (
            self.txid(), len(self.inputs), len(self.outputs), len(self.ec_outputs))
