"""Tests for BSON to JSON normalization and schema inference."""

import datetime

import pytest
from bson import Binary, Decimal128, Int64, ObjectId

from mcp_vendor_proxy.vendor.normalize import bson_type_name, infer_schema, to_json_compatible

OID = ObjectId("64b7f0c2a1b2c3d4e5f60718")


class TestToJsonCompatible:
    def test_relaxed_keeps_plain_numbers(self):
        result = to_json_compatible({"_id": OID, "n": 5, "big": Int64(2**40)})

        assert result == {"_id": {"$oid": str(OID)}, "n": 5, "big": 2**40}

    def test_canonical_wraps_numbers(self):
        result = to_json_compatible({"n": 5}, "canonical")

        assert result == {"n": {"$numberInt": "5"}}

    def test_plain_json_passes_through(self):
        value = {"a": [1, "two", None, True], "b": {"c": 1.5}}

        assert to_json_compatible(value) == value

    def test_none(self):
        assert to_json_compatible(None) is None

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="shell"):
            to_json_compatible({}, "shell")


class TestBsonTypeName:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "null"),
            (True, "boolean"),
            (3, "number"),
            (2.5, "number"),
            (Int64(7), "number"),
            (Decimal128("1.10"), "number"),
            ("x", "string"),
            (OID, "objectId"),
            (datetime.datetime(2024, 1, 1), "date"),
            (Binary(b"\x00"), "binary"),
            ([1], "array"),
            ({"a": 1}, "object"),
        ],
    )
    def test_names(self, value, expected):
        assert bson_type_name(value) == expected


class TestInferSchema:
    def test_types_in_order_of_appearance(self):
        schema = infer_schema([{"v": 1}, {"v": "one"}, {"v": 2}])

        assert schema["v"]["type"] == "number"
        assert schema["v"]["types"] == ["number", "string"]

    def test_examples_are_distinct_and_limited(self):
        docs = [{"color": c} for c in ["red", "red", "green", "blue", "cyan"]]

        schema = infer_schema(docs, example_limit=2)

        assert schema["color"]["examples"] == ["red", "green"]

    def test_examples_are_normalized(self):
        schema = infer_schema([{"_id": OID}])

        assert schema["_id"]["examples"] == [{"$oid": str(OID)}]

    def test_empty_sample(self):
        assert infer_schema([]) == {}
