"""Tests for lifecycle flags and operation options."""

import pytest

from docbridge.store.exceptions import InvalidArgumentError
from docbridge.store.options import CollectionType, Direction, Flags, Format, Options


class TestFlags:
    """Test flag combination."""

    def test_default_is_connect(self):
        assert Flags.DEFAULT == Flags.CONNECT

    def test_flags_combine(self):
        flags = Flags.CONNECT | Flags.CREATE | Flags.ASSERT
        assert flags & Flags.CREATE
        assert not (flags & ~Flags.CREATE) & Flags.CREATE


class TestOptionsCoerce:
    """Test normalisation of option values."""

    def test_none_gives_defaults(self):
        options = Options.coerce(None)
        assert options.format is Format.STANDARD
        assert options.many is None
        assert options.direction is Direction.ANY
        assert options.collection_type is CollectionType.DOCUMENT

    def test_instance_is_returned_as_is(self):
        options = Options(format=Format.KEY)
        assert Options.coerce(options) is options

    def test_mapping_with_string_values(self):
        options = Options.coerce({"format": "handle", "direction": "in", "many": True})
        assert options.format is Format.HANDLE
        assert options.direction is Direction.IN
        assert options.many is True

    def test_unknown_keys_go_to_native(self):
        options = Options.coerce({"format": "key", "bypass_document_validation": True})
        assert options.native == {"bypass_document_validation": True}

    def test_explicit_native_is_merged(self):
        options = Options.coerce({"native": {"a": 1}, "b": 2})
        assert options.native == {"a": 1, "b": 2}

    def test_invalid_format_raises(self):
        with pytest.raises(InvalidArgumentError):
            Options.coerce({"format": "xml"})

    def test_negative_limit_raises(self):
        with pytest.raises(InvalidArgumentError):
            Options.coerce({"limit": -1})

    def test_non_mapping_raises(self):
        with pytest.raises(InvalidArgumentError):
            Options.coerce(["format", "key"])


class TestOptionsHelpers:
    """Test defaults, cardinality and pagination helpers."""

    def test_with_defaults_keeps_explicit_values(self):
        options = Options(many=True).with_defaults(many=False)
        assert options.many is True

    def test_with_defaults_fills_unset_values(self):
        options = Options().with_defaults(many=False)
        assert options.many is False

    def test_is_many(self):
        assert Options().is_many(True) is True
        assert Options(many=False).is_many(True) is False

    def test_limit_without_start_starts_at_zero(self):
        assert Options(limit=5).pagination() == (0, 5)

    def test_no_pagination(self):
        assert Options().pagination() == (None, None)

    def test_start_without_limit(self):
        assert Options(start=3).pagination() == (3, None)
