"""Unit tests for cache key generation."""

import pytest

from resilient_cache.cache.keys import CacheKeyGenerator, build_key, validate_key
from resilient_cache.exceptions import CacheKeyError, CacheValidationError


class TestCacheKeyGenerator:
    """Test suite for CacheKeyGenerator class."""

    def test_generate_documented_example(self):
        """Test the canonical namespace:name:value layout."""
        key = CacheKeyGenerator.generate("api", {"path": "/x", "user": "42"})

        assert key == "api:path:/x:user:42"

    def test_generate_order_independent(self):
        """Test that parameter insertion order doesn't affect key."""
        key1 = build_key("api", {"path": "/x", "user": "42"})
        key2 = build_key("api", {"user": "42", "path": "/x"})

        assert key1 == key2

    def test_generate_order_independent_many_params(self):
        """Test determinism across every permutation of several params."""
        from itertools import permutations

        pairs = [("limit", 25), ("user", "42"), ("sort", "recent"), ("page", 2)]
        keys = {build_key("conversations", dict(p)) for p in permutations(pairs)}

        assert len(keys) == 1

    def test_none_values_omitted(self):
        """Test that a None param produces the same key as a missing one."""
        assert build_key("api", {"user": "42", "page": None}) == build_key(
            "api", {"user": "42"}
        )

    def test_different_params_different_keys(self):
        """Test that different params generate different keys."""
        key1 = build_key("api", {"user": "42"})
        key2 = build_key("api", {"user": "43"})

        assert key1 != key2

    def test_different_namespaces_different_keys(self):
        """Test that the namespace is part of the key."""
        params = {"user": "42"}

        assert build_key("conversations", params) != build_key("messages", params)

    def test_no_params_is_namespace(self):
        """Test that an empty or missing param set yields the namespace."""
        assert build_key("voices") == "voices"
        assert build_key("voices", {}) == "voices"

    def test_boolean_rendering(self):
        """Test booleans render in lowercase."""
        assert build_key("api", {"archived": True}) == "api:archived:true"
        assert build_key("api", {"archived": False}) == "api:archived:false"

    def test_numeric_rendering(self):
        """Test numbers render with str()."""
        assert build_key("api", {"limit": 25}) == "api:limit:25"

    def test_nested_values_deterministic(self):
        """Test nested mappings render independently of insertion order."""
        key1 = build_key("api", {"query": {"a": 1, "b": 2}})
        key2 = build_key("api", {"query": {"b": 2, "a": 1}})

        assert key1 == key2
        assert key1 == 'api:query:{"a":1,"b":2}'

    def test_empty_namespace_raises_error(self):
        """Test that an empty namespace is rejected."""
        with pytest.raises(CacheKeyError):
            build_key("", {"user": "42"})

    def test_non_mapping_params_raise_error(self):
        """Test that params must be a mapping."""
        with pytest.raises(CacheValidationError) as exc_info:
            build_key("api", ["user", "42"])

        assert "params" in str(exc_info.value)


class TestValidateKey:
    """Test suite for key validation."""

    def test_valid_key_returned(self):
        assert validate_key("api:user:42") == "api:user:42"

    def test_empty_key_rejected(self):
        with pytest.raises(CacheKeyError):
            validate_key("")

    def test_non_string_key_rejected(self):
        with pytest.raises(CacheKeyError) as exc_info:
            validate_key(42)

        assert "int" in str(exc_info.value)

    def test_key_error_is_value_error(self):
        """Test caller errors are also ValueErrors."""
        with pytest.raises(ValueError):
            validate_key("")
