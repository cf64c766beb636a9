"""
Fingerprint Tests
=================
"""

from ascii_pet.visitors import make_fingerprint


class TestFingerprint:
    """Tests for visitor fingerprint derivation."""

    def test_deterministic(self):
        a = make_fingerprint("203.0.113.7", "Mozilla/5.0")
        b = make_fingerprint("203.0.113.7", "Mozilla/5.0")
        assert a == b
        assert len(a) == 64

    def test_distinct_inputs_distinct_keys(self):
        base = make_fingerprint("203.0.113.7", "Mozilla/5.0")
        assert make_fingerprint("203.0.113.8", "Mozilla/5.0") != base
        assert make_fingerprint("203.0.113.7", "curl/8.0") != base

    def test_query_mixed_in(self):
        plain = make_fingerprint("1.2.3.4", "ua")
        assert make_fingerprint("1.2.3.4", "ua", query="pet=dog") != plain
        assert make_fingerprint("1.2.3.4", "ua", query="") == plain

    def test_raw_key_is_bounded(self):
        """A huge User-Agent is truncated to max_bytes."""
        raw = make_fingerprint("1.2.3.4", "x" * 100_000, max_bytes=511, hashed=False)
        assert len(raw.encode("utf-8")) <= 511
        assert raw.startswith("1.2.3.4|xxx")

    def test_truncation_is_stable(self):
        """Inputs that agree on the first max_bytes map to the same key."""
        ua = "y" * 600
        a = make_fingerprint("1.2.3.4", ua + "tail-one")
        b = make_fingerprint("1.2.3.4", ua + "tail-two")
        assert a == b

    def test_truncation_drops_split_multibyte(self):
        raw = make_fingerprint("a", "é" * 40, max_bytes=21, hashed=False)
        assert len(raw.encode("utf-8")) <= 20
        raw.encode("utf-8").decode("utf-8")

    def test_missing_values(self):
        assert make_fingerprint(None, None, hashed=False) == "unknown|"
