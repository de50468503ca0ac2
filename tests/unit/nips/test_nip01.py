"""
Unit tests for nips.nip01 module.

Tests:
- serialize_event() canonical form and compute_event_id()
- sign_event() with every key form, immutability of the input
- verify_event() fail-closed behaviour and tamper sensitivity
- sign_message() / verify_message()
- PrivateKey.sign_event / PublicKey.verify_event shortcuts
"""

import hashlib
import json
from dataclasses import replace

import pytest

from nostrkit.exceptions import MalformedMessageError
from nostrkit.models.event import Event
from nostrkit.models.keys import PrivateKey
from nostrkit.nips.nip01 import (
    compute_event_id,
    serialize_event,
    sign_event,
    sign_message,
    verify_event,
    verify_message,
)


# =============================================================================
# Canonical Serialization
# =============================================================================


class TestSerializeEvent:
    """serialize_event() / compute_event_id()."""

    def test_canonical_form(self, unsigned_event):
        expected = json.dumps(
            [
                0,
                unsigned_event.pubkey,
                unsigned_event.created_at,
                unsigned_event.kind,
                [list(t) for t in unsigned_event.tags],
                unsigned_event.content,
            ],
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode("utf-8")
        assert serialize_event(unsigned_event) == expected

    def test_no_whitespace(self, unsigned_event):
        assert b", " not in serialize_event(unsigned_event)

    def test_unicode_not_escaped(self, unsigned_event):
        event = replace(unsigned_event, content="⚡ gm")
        assert "⚡".encode() in serialize_event(event)

    def test_id_is_sha256_hex(self, unsigned_event):
        expected = hashlib.sha256(serialize_event(unsigned_event)).hexdigest()
        assert compute_event_id(unsigned_event) == expected

    def test_id_ignores_existing_id_and_sig(self, unsigned_event):
        stamped = unsigned_event.with_signature("f" * 64, "e" * 128)
        assert compute_event_id(stamped) == compute_event_id(unsigned_event)

    def test_tag_order_changes_id(self, unsigned_event):
        reordered = replace(unsigned_event, tags=list(reversed(unsigned_event.tags)))
        assert compute_event_id(reordered) != compute_event_id(unsigned_event)

    def test_lone_surrogate_raises_typed_error(self, unsigned_event):
        with pytest.raises(MalformedMessageError, match="UTF-8"):
            serialize_event(replace(unsigned_event, content="\ud800"))

    def test_duplicate_tags_kept(self, unsigned_event):
        doubled = replace(unsigned_event, tags=[*unsigned_event.tags, unsigned_event.tags[0]])
        assert compute_event_id(doubled) != compute_event_id(unsigned_event)


# =============================================================================
# Signing
# =============================================================================


class TestSignEvent:
    """sign_event()."""

    def test_populates_id_and_sig(self, unsigned_event, private_key):
        signed = sign_event(unsigned_event, private_key)
        assert signed.id == compute_event_id(unsigned_event)
        assert signed.sig is not None
        assert len(signed.sig) == 128

    def test_input_not_mutated(self, unsigned_event, private_key):
        sign_event(unsigned_event, private_key)
        assert unsigned_event.id is None
        assert unsigned_event.sig is None

    @pytest.mark.parametrize("form", ["hex", "raw"])
    def test_accepts_key_forms(self, unsigned_event, private_key, form):
        signed = sign_event(unsigned_event, getattr(private_key, form))
        assert verify_event(signed)

    def test_resigning_ignores_previous_signature(self, signed_event, private_key):
        stale = replace(signed_event, content="edited")
        resigned = sign_event(stale, private_key)
        assert resigned.id != signed_event.id
        assert verify_event(resigned)

    def test_fresh_signature_each_call(self, unsigned_event, private_key):
        first = sign_event(unsigned_event, private_key)
        second = sign_event(unsigned_event, private_key)
        assert first.id == second.id
        assert first.sig != second.sig

    def test_pubkey_mismatch_raises(self, unsigned_event):
        with pytest.raises(ValueError, match="pubkey"):
            sign_event(unsigned_event, PrivateKey.generate())

    def test_lone_surrogate_raises(self, unsigned_event, private_key):
        with pytest.raises(MalformedMessageError):
            sign_event(replace(unsigned_event, tags=[["t", "\udfff"]]), private_key)

    def test_private_key_shortcut(self, unsigned_event, private_key):
        assert verify_event(private_key.sign_event(unsigned_event))


# =============================================================================
# Verification
# =============================================================================


class TestVerifyEvent:
    """verify_event() is fail-closed and never raises."""

    def test_valid(self, signed_event):
        assert verify_event(signed_event) is True

    def test_valid_dict(self, signed_event):
        assert verify_event(signed_event.to_dict()) is True

    def test_unsigned_rejected(self, unsigned_event):
        assert verify_event(unsigned_event) is False

    def test_missing_sig_rejected(self, signed_event):
        assert verify_event(replace(signed_event, sig=None)) is False

    def test_missing_id_rejected(self, signed_event):
        assert verify_event(replace(signed_event, id=None)) is False

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("content", "hello nostr!"),
            ("created_at", 1700000001),
            ("kind", 2),
            ("tags", [["t", "nostr"]]),
            ("pubkey", "c" * 64),
        ],
    )
    def test_tampered_field_rejected(self, signed_event, field, value):
        assert verify_event(replace(signed_event, **{field: value})) is False

    def test_tampered_id_rejected(self, signed_event):
        forged = replace(signed_event, id="0" * 64)
        assert verify_event(forged) is False

    def test_id_of_other_event_rejected(self, signed_event, private_key):
        other = sign_event(replace(signed_event.unsigned(), content="other"), private_key)
        assert verify_event(replace(signed_event, id=other.id)) is False

    def test_id_checked_before_signature(self, signed_event, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "nostrkit.nips.nip01.schnorr_verify", lambda *args: calls.append(args) or True
        )
        assert verify_event(replace(signed_event, content="tampered")) is False
        assert calls == []

    def test_tampered_sig_rejected(self, signed_event):
        flipped = ("0" if signed_event.sig[0] != "0" else "1") + signed_event.sig[1:]
        assert verify_event(replace(signed_event, sig=flipped)) is False

    def test_uppercase_id_rejected(self, signed_event):
        assert verify_event(replace(signed_event, id=signed_event.id.upper())) is False

    @pytest.mark.parametrize("sig", ["zz" * 64, "ab", ""])
    def test_malformed_sig_rejected(self, signed_event, sig):
        assert verify_event(replace(signed_event, sig=sig)) is False

    def test_non_hex_pubkey_rejected(self, signed_event):
        event = replace(signed_event.unsigned(), pubkey="zz" * 32)
        event = event.with_signature(compute_event_id(event), signed_event.sig)
        assert verify_event(event) is False

    @pytest.mark.parametrize("data", [{}, {"id": "a"}, {"pubkey": 1, "created_at": 0, "kind": 1}])
    def test_malformed_dict_rejected(self, data):
        assert verify_event(data) is False

    @pytest.mark.parametrize(
        "field, value",
        [("content", "\ud800"), ("tags", [["t", "\ud800"]])],
    )
    def test_lone_surrogate_rejected(self, signed_event, field, value):
        assert verify_event(replace(signed_event, **{field: value})) is False
        assert verify_event({**signed_event.to_dict(), field: value}) is False

    def test_lone_surrogate_from_wire_json(self, signed_event):
        raw = json.dumps({**signed_event.to_dict(), "content": "\ud800"})
        assert verify_event(json.loads(raw)) is False

    def test_public_key_shortcut(self, signed_event, private_key):
        assert private_key.public_key.verify_event(signed_event) is True
        assert PrivateKey.generate().public_key.verify_event(signed_event) is False


# =============================================================================
# Message Signatures
# =============================================================================


class TestMessageSignatures:
    """sign_message() / verify_message()."""

    def test_round_trip_with_handles(self, private_key):
        signature = sign_message("hello", private_key)
        assert verify_message("hello", signature, private_key.public_key)

    def test_round_trip_with_hex(self, private_key):
        signature = sign_message("hello", private_key.hex)
        assert verify_message("hello", signature, private_key.public_key.hex)

    def test_unrelated_to_event_id(self, signed_event, private_key):
        # A message signature over the serialized event is not an event signature
        signature = sign_message(signed_event.to_json(), private_key)
        assert signature != signed_event.sig
        assert verify_event(replace(signed_event, sig=signature)) is False

    def test_wrong_message(self, private_key):
        assert not verify_message("bye", sign_message("hello", private_key), private_key.public_key)

    @pytest.mark.parametrize("public_key", ["not hex", "ab" * 10, 42])
    def test_malformed_public_key(self, private_key, public_key):
        assert verify_message("hello", sign_message("hello", private_key), public_key) is False

    def test_event_round_trip_through_dict(self, unsigned_event, private_key):
        signed = sign_event(unsigned_event, private_key)
        assert verify_event(Event.from_dict(json.loads(signed.to_json())))
