"""
Hashing & Signing Tests

Verifies:
1. Canonical JSON is independent of key order
2. Signatures verify and reject tampering
3. Decision hashes ignore reason order and surrounding whitespace
4. Derived identifiers are deterministic
"""
from dataclasses import dataclass
from datetime import datetime, timezone

from decision_engine.models.ssot import BiasSeverity
from decision_engine.services.policy.hashing import (
    canonical_json,
    deterministic_uuid,
    hash_data,
    hash_decision,
    hash_pii,
    sha256_hex,
    short_hash,
    sign_hash,
    verify_signature,
)


class TestCanonicalJson:

    def test_key_order_does_not_matter(self):
        assert canonical_json({"b": 1, "a": 2}) == canonical_json({"a": 2, "b": 1})

    def test_compact_separators(self):
        assert canonical_json({"a": [1, 2]}) == '{"a":[1,2]}'

    def test_enums_and_datetimes_serialize(self):
        moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        text = canonical_json({"severity": BiasSeverity.HIGH, "at": moment})
        assert '"severity":"high"' in text
        assert "2024-01-02T03:04:05+00:00" in text

    def test_dataclasses_serialize(self):
        @dataclass
        class Point:
            x: int
            y: int

        assert canonical_json(Point(1, 2)) == '{"x":1,"y":2}'

    def test_unicode_kept(self):
        assert "é" in canonical_json({"name": "évaluation"})


class TestDigests:

    def test_sha256_known_value(self):
        assert sha256_hex("abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_hash_data_is_stable(self):
        assert hash_data({"x": 1, "y": [1, 2]}) == hash_data({"y": [1, 2], "x": 1})

    def test_short_hash_length(self):
        assert len(short_hash({"x": 1})) == 16
        assert hash_data({"x": 1}).startswith(short_hash({"x": 1}))


class TestSignatures:

    def test_round_trip(self):
        digest = hash_data({"card": "x"})
        signature = sign_hash(digest, "secret")
        assert verify_signature(digest, signature, "secret")

    def test_wrong_secret_rejected(self):
        digest = hash_data({"card": "x"})
        assert not verify_signature(digest, sign_hash(digest, "secret"), "other")

    def test_bit_flip_rejected(self):
        digest = hash_data({"card": "x"})
        signature = sign_hash(digest, "secret")
        flipped = ("0" if signature[0] != "0" else "1") + signature[1:]
        assert not verify_signature(digest, flipped, "secret")

    def test_non_string_signature_rejected(self):
        assert not verify_signature("abc", None, "secret")


class TestDecisionHash:

    def test_reason_order_ignored(self):
        a = hash_decision("Letter", ["x", "y"], "v1", timestamp="2024-01-01T00:00:00Z")
        b = hash_decision("Letter", ["y", "x"], "v1", timestamp="2024-01-01T00:00:00Z")
        assert a == b

    def test_letter_whitespace_ignored(self):
        a = hash_decision("  Letter\n", ["x"], "v1", timestamp="t")
        b = hash_decision("Letter", ["x"], "v1", timestamp="t")
        assert a == b

    def test_content_change_detected(self):
        a = hash_decision("Letter", ["x"], "v1", timestamp="t")
        b = hash_decision("Letter!", ["x"], "v1", timestamp="t")
        assert a != b


class TestDerivedIdentifiers:

    def test_deterministic_uuid(self):
        assert deterministic_uuid("decision-1") == deterministic_uuid("decision-1")
        assert deterministic_uuid("decision-1") != deterministic_uuid("decision-2")
        assert deterministic_uuid("decision-1", "other") != deterministic_uuid("decision-1")

    def test_hash_pii_normalizes(self):
        assert hash_pii(" Sam@Example.com ", salt="s") == hash_pii("sam@example.com", salt="s")
        assert hash_pii("sam@example.com", salt="s") != hash_pii("sam@example.com", salt="t")
