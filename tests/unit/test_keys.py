"""Unit tests for backend key derivation."""

import hashlib

import pytest

from pagecache.keys import derive_key, hash_identifier

pytestmark = pytest.mark.unit


class TestDeriveKey:
    def test_deterministic(self):
        assert derive_key("/home", "html") == derive_key("/home", "html")

    def test_layout_is_prefix_hash_suffix(self):
        digest = hashlib.sha256(b"/home").hexdigest()
        assert derive_key("/home", "pdf", prefix="site:") == f"site:{digest}pdf"

    def test_defaults_to_bare_hash(self):
        assert derive_key("/home") == hash_identifier("/home")
        assert len(derive_key("/home")) == 64

    def test_suffixes_do_not_collide(self):
        assert derive_key("/report", "pdf") != derive_key("/report", "html")
        assert derive_key("/report", "pdf") != derive_key("/report")

    def test_prefix_isolates_namespaces(self):
        assert derive_key("/home", prefix="a:") != derive_key("/home", prefix="b:")

    def test_distinct_identifiers(self):
        keys = {derive_key(f"/page/{i}") for i in range(500)}
        assert len(keys) == 500

    @pytest.mark.parametrize("identifier", ["", "/ünïcødé/🚀", "a" * 10_000, "\ud800 lone surrogate", "with\nnewline"])
    def test_any_string_hashes(self, identifier):
        key = derive_key(identifier)
        assert len(key) == 64
        assert all(c in "0123456789abcdef" for c in key)

    def test_none_suffix_treated_as_empty(self):
        assert derive_key("/home", None) == derive_key("/home")
