"""
identity.py - Identity chains and the key-replacement rules.

An identity chain's first entry declares a priority ordered list of idpub
keys (index 0 is the highest priority). Later "ReplaceKey" entries swap one
slot for a new key when signed by a key of equal or higher priority.
ActiveKeySet folds those entries into the key list valid at a height.
"""

import json
import logging
from collections import namedtuple

from factom import crypto
from factom.chain import Chain, chain_id_from_ext_ids, get_all_chain_entries_at_height
from factom.config import ID_KEY_STRING_LENGTH
from factom.entry import Entry, get_entry
from factom.identity_keys import (
    IdentityKey,
    IdentityKeyType,
    identity_key_type,
    identity_pub_bytes,
)
from factom.jsonrpc import get_client

logger = logging.getLogger(__name__)

REPLACE_KEY = b"ReplaceKey"
ATTRIBUTE = b"IdentityAttribute"
ENDORSEMENT = b"IdentityAttributeEndorsement"

SIGNATURE_LENGTH = 64
CHAIN_ID_HEX_LENGTH = 64

ApplyResult = namedtuple("ApplyResult", ["accepted", "reason"])


def get_identity_chain_id(name_parts) -> str:
    return chain_id_from_ext_ids([p.encode("utf-8") if isinstance(p, str) else p
                                  for p in name_parts])


def new_identity_chain(name_parts, keys) -> Chain:
    """First entry of a new identity: the name as ExtIDs, the keys as content."""
    content = json.dumps(
        {"version": 1, "keys": [k.pub_string() for k in keys]},
        separators=(",", ":"),
    )
    return Chain(Entry(ext_ids=list(name_parts), content=content))


def _replace_key_message(chain_id: str, old_pub: str, new_pub: str) -> bytes:
    return (chain_id + old_pub + new_pub).encode("ascii")


def new_key_replacement_entry(chain_id: str, old: IdentityKey, new: IdentityKey,
                              signer: IdentityKey) -> Entry:
    old_pub, new_pub = old.pub_string(), new.pub_string()
    sig = signer.sign(_replace_key_message(chain_id, old_pub, new_pub))
    return Entry(chain_id, [REPLACE_KEY, old_pub, new_pub, sig, signer.pub_string()])


# -------------------------------------------------------------------------
# Key replacement state machine
# -------------------------------------------------------------------------

class ActiveKeySet:
    """The identity's current keys plus every key it has ever used.

    ``keys`` keeps its length for the life of the identity. A key that left
    the set can never come back because ``historical`` remembers it.
    """

    def __init__(self, chain_id: str, initial_keys):
        self.chain_id = chain_id
        self.keys = []
        for pub in initial_keys:
            if identity_key_type(pub) is not IdentityKeyType.IDPUB:
                raise ValueError("invalid Identity Public Key %r in first entry" % (pub,))
            if pub in self.keys:
                raise ValueError("duplicate key %s in first entry" % pub)
            self.keys.append(pub)
        self.historical = set(self.keys)

    @staticmethod
    def from_first_entry(entry: Entry) -> "ActiveKeySet":
        try:
            declared = json.loads(entry.content.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as err:
            raise ValueError("first entry content is not a key declaration") from err
        if not isinstance(declared, dict) or not isinstance(declared.get("keys"), list):
            raise ValueError("first entry content is not a key declaration")
        return ActiveKeySet(entry.chain_id, declared["keys"])

    def priority(self, pub: str) -> int:
        """Slot of ``pub`` in the active list, or -1."""
        try:
            return self.keys.index(pub)
        except ValueError:
            return -1

    def apply(self, entry: Entry) -> ApplyResult:
        """Try one chain entry as a key replacement."""
        ext = entry.ext_ids
        if len(ext) < 5 or ext[0] != REPLACE_KEY:
            return ApplyResult(False, "not a key replacement")
        if (len(ext[1]) != ID_KEY_STRING_LENGTH or len(ext[2]) != ID_KEY_STRING_LENGTH
                or len(ext[3]) != SIGNATURE_LENGTH):
            return self._reject("malformed key replacement")

        try:
            old_pub = ext[1].decode("ascii")
            new_pub = ext[2].decode("ascii")
            signer_pub = ext[4].decode("ascii")
        except UnicodeDecodeError:
            return self._reject("key is not ascii")
        if identity_key_type(old_pub) is not IdentityKeyType.IDPUB \
                or identity_key_type(new_pub) is not IdentityKeyType.IDPUB:
            return self._reject("invalid identity key")

        slot = self.priority(old_pub)
        if slot < 0:
            return self._reject("old key %s is not active" % old_pub)
        if new_pub in self.historical:
            return self._reject("new key %s was already used" % new_pub)

        signer_slot = self.priority(signer_pub)
        if signer_slot < 0 or signer_slot > slot:
            return self._reject("signer %s cannot replace priority %d" % (signer_pub, slot))

        message = _replace_key_message(self.chain_id, old_pub, new_pub)
        if not crypto.verify(identity_pub_bytes(signer_pub), message, ext[3]):
            return self._reject("bad signature")

        self.keys[slot] = new_pub
        self.historical.add(new_pub)
        logger.debug("Identity %s: priority %d key replaced", self.chain_id, slot)
        return ApplyResult(True, "")

    def _reject(self, reason):
        logger.warning("Identity %s: ignoring key replacement: %s", self.chain_id, reason)
        return ApplyResult(False, reason)

    def identity_keys(self):
        return [IdentityKey.from_pub_string(k) for k in self.keys]


def keys_at_height(chain_id: str, height: int, client=None):
    """Active identity keys (verification only) as of directory block ``height``."""
    entries = get_all_chain_entries_at_height(chain_id, height, client)
    if not entries:
        raise ValueError("identity chain %s has no entries at height %d" % (chain_id, height))
    keyset = ActiveKeySet.from_first_entry(entries[0])
    for entry in entries[1:]:
        keyset.apply(entry)
    return keyset.identity_keys()


# -------------------------------------------------------------------------
# Attributes and endorsements
# -------------------------------------------------------------------------

def _attribute_message(receiver: str, destination: str, content: bytes) -> bytes:
    return (receiver + destination).encode("ascii") + crypto.sha256(content)


def new_attribute_entry(receiver_chain_id: str, destination_chain_id: str,
                        attributes_json, signer: IdentityKey, signer_chain_id: str) -> Entry:
    if isinstance(attributes_json, str):
        attributes_json = attributes_json.encode("utf-8")
    sig = signer.sign(_attribute_message(receiver_chain_id, destination_chain_id, attributes_json))
    return Entry(
        destination_chain_id,
        [ATTRIBUTE, receiver_chain_id, sig, signer.pub_string(), signer_chain_id],
        attributes_json,
    )


def new_endorsement_entry(destination_chain_id: str, entry_hash: str,
                          signer: IdentityKey, signer_chain_id: str) -> Entry:
    sig = signer.sign((destination_chain_id + entry_hash).encode("ascii"))
    return Entry(
        destination_chain_id,
        [ENDORSEMENT, sig, signer.pub_string(), signer_chain_id],
        entry_hash,
    )


def _signer_pub(ext_id: bytes):
    try:
        s = ext_id.decode("ascii")
    except UnicodeDecodeError:
        return None
    if identity_key_type(s) is not IdentityKeyType.IDPUB:
        return None
    return identity_pub_bytes(s)


def is_valid_attribute_entry(entry: Entry) -> bool:
    """Shape and signature check. The signer's key is not checked against
    the keys its identity had at that height."""
    ext = entry.ext_ids
    if len(ext) < 5 or ext[0] != ATTRIBUTE:
        return False
    if (len(ext[1]) != CHAIN_ID_HEX_LENGTH or len(ext[2]) != SIGNATURE_LENGTH
            or len(ext[3]) != ID_KEY_STRING_LENGTH or len(ext[4]) != CHAIN_ID_HEX_LENGTH):
        return False
    pub = _signer_pub(ext[3])
    if pub is None:
        return False
    try:
        message = _attribute_message(ext[1].decode("ascii"), entry.chain_id, entry.content)
    except UnicodeDecodeError:
        return False
    return crypto.verify(pub, message, ext[2])


def is_valid_endorsement_entry(entry: Entry) -> bool:
    ext = entry.ext_ids
    if len(ext) < 4 or ext[0] != ENDORSEMENT:
        return False
    if (len(ext[1]) != SIGNATURE_LENGTH or len(ext[2]) != ID_KEY_STRING_LENGTH
            or len(ext[3]) != CHAIN_ID_HEX_LENGTH):
        return False
    pub = _signer_pub(ext[2])
    if pub is None:
        return False
    return crypto.verify(pub, entry.chain_id.encode("ascii") + entry.content, ext[1])


def is_valid_attribute(entry_hash: str, client=None) -> bool:
    return is_valid_attribute_entry(get_entry(entry_hash, get_client(client)))


def is_valid_endorsement(entry_hash: str, client=None) -> bool:
    return is_valid_endorsement_entry(get_entry(entry_hash, get_client(client)))
