"""Dynamic codec: decode, encode and native conversion."""

import math

import pytest

from protodyn import codec, samples, values
from protodyn.errors import EncodeError, MalformedWireDataError
from protodyn.values import Kind, Value
from protodyn.wire import WireType, encode_length_delimited, encode_tag, encode_varint


def field(value: Value, descriptor, name: str) -> Value:
    return value.get(descriptor.field_by_name[name].number)


class TestScenario:
    def test_name_flag_raw(self, params):
        value = codec.from_native({"name": "first parameter", "flag": True, "raw": b"\x00\x01\x02"}, params)
        decoded = codec.decode(codec.encode(value, params), params)
        assert field(decoded, params, "name") == values.string("first parameter")
        assert field(decoded, params, "flag") == values.boolean(True)
        assert field(decoded, params, "raw") == values.bytes_(b"\x00\x01\x02")

    def test_truncated_buffer(self, params):
        with pytest.raises(MalformedWireDataError):
            codec.decode(b"\x20\x96\x81", params)


class TestRoundTrip:
    @pytest.mark.parametrize("shape", list(samples.SHAPES))
    def test_samples(self, registry, shape):
        descriptor = registry.resolve_simple(shape)
        value = codec.from_native(samples.SHAPES[shape](), descriptor)
        assert codec.decode(codec.encode(value, descriptor), descriptor) == value

    def test_all_field_shapes(self, params):
        value = codec.from_native({
            "name": "n",
            "numbers": [3, -1, 0, 2147483647],
            "tags": {1: "one", -5: "minus five"},
            "color": "GREEN",
            "count": 0,
            "child": {"name": "inner", "child": {"flag": True}},
            "ratio": 1.5,
            "scores": [0.25, -8.0],
            "big": (1 << 64) - 1,
        }, params)
        assert codec.decode(codec.encode(value, params), params) == value

    def test_unknown_enum_number_survives(self, params):
        value = values.message({6: values.enum(42)})
        assert codec.decode(codec.encode(value, params), params) == value

    def test_empty_collections_left_at_defaults(self, registry):
        descriptor = registry.resolve_simple("ComplexMessage")
        value = codec.from_native(samples.ComplexMessage(param_03_int=3), descriptor)
        assert value == values.message({4: values.int_(3)})
        assert codec.decode(codec.encode(value, descriptor), descriptor) == value

    def test_negative_zero(self, params):
        value = values.message({10: values.float_(-0.0)})
        decoded = codec.decode(codec.encode(value, params), params)
        assert math.copysign(1.0, decoded.get(10).data) == -1.0


class TestOracle:
    """Byte-level compatibility with the protobuf runtime."""

    def test_encode_matches_runtime(self, registry, oracle):
        descriptor = registry.resolve_simple("SimpleMessage")
        ours = codec.encode(codec.from_native(samples.new_simple_message(), descriptor), descriptor)
        sample = samples.new_simple_message()
        theirs = oracle("protodyn.sample.SimpleMessage")(**sample.model_dump()).SerializeToString()
        assert ours == theirs

    def test_runtime_parses_our_bytes(self, registry, oracle):
        descriptor = registry.resolve_simple("ComposedMessage")
        data = codec.encode(codec.from_native(samples.new_composed_message(), descriptor), descriptor)
        msg = oracle("protodyn.sample.ComposedMessage").FromString(data)
        assert msg.param_01.param_05 == -32321323412
        assert msg.param_01.param_09 == -391
        assert msg.param_01.param_14 == pytest.approx(-0.2)
        assert list(msg.param_02.param_01) == ["one", "two", "three"]
        assert dict(msg.param_02.param_02)["winter"] == "blue"
        assert msg.param_02.WhichOneof("param_03") == "param_03_string"

    def test_decode_runtime_bytes(self, registry, oracle):
        descriptor = registry.resolve_simple("ImportMessage")
        cls = oracle("protodyn.sample.ImportMessage")
        msg = cls()
        msg.param_01.seconds = 1700000000
        msg.param_02.param_01 = 2
        msg.param_02.param_02 = "nested"
        value = codec.decode(msg.SerializeToString(), descriptor)
        assert value.get(1) == values.message({1: values.int_(1700000000)})
        assert value.get(2) == values.message({1: values.enum(2), 2: values.string("nested")})

    def test_negative_zero_matches_runtime(self, params, oracle):
        theirs = oracle("test.Params")(ratio=-0.0).SerializeToString()
        assert codec.encode(values.message({10: values.float_(-0.0)}), params) == theirs
        assert math.copysign(1.0, codec.decode(theirs, params).get(10).data) == -1.0


class TestRepeated:
    def test_packed_and_unpacked_agree(self, params):
        unpacked = b"".join(encode_tag(4, WireType.VARINT) + encode_varint(n) for n in (1, 2, 300))
        packed = encode_tag(4, WireType.LENGTH_DELIMITED) + encode_length_delimited(
            b"".join(encode_varint(n) for n in (1, 2, 300)))
        assert codec.decode(unpacked, params) == codec.decode(packed, params)
        assert codec.decode(packed, params).get(4) == values.list_([values.int_(1), values.int_(2), values.int_(300)])

    def test_mixed_occurrences_keep_file_order(self, params):
        data = (encode_tag(4, WireType.VARINT) + encode_varint(1)
                + encode_tag(4, WireType.LENGTH_DELIMITED) + encode_length_delimited(b"\x02\x03")
                + encode_tag(4, WireType.VARINT) + encode_varint(4))
        assert codec.decode(data, params).get(4) == values.list_([values.int_(n) for n in (1, 2, 3, 4)])

    def test_packed_encoding_is_used(self, params):
        data = codec.encode(values.message({4: values.list_([values.int_(1), values.int_(2)])}), params)
        assert data == b"\x22\x02\x01\x02"

    def test_unpacked_field_written_per_element(self, params):
        data = codec.encode(values.message({11: values.list_([values.float_(1.0), values.float_(2.0)])}), params)
        assert data.count(encode_tag(11, WireType.FIXED64)) == 2


class TestMap:
    def test_later_entry_wins(self, params):
        def entry(key: int, text: str) -> bytes:
            body = encode_tag(1, WireType.VARINT) + encode_varint(key) \
                + encode_tag(2, WireType.LENGTH_DELIMITED) + encode_length_delimited(text.encode())
            return encode_tag(5, WireType.LENGTH_DELIMITED) + encode_length_delimited(body)

        value = codec.decode(entry(1, "first") + entry(2, "other") + entry(1, "second"), params)
        assert value.get(5) == values.map_([
            (values.int_(1), values.string("second")),
            (values.int_(2), values.string("other")),
        ])

    def test_missing_key_and_value_default(self, params):
        data = encode_tag(5, WireType.LENGTH_DELIMITED) + encode_length_delimited(b"")
        assert codec.decode(data, params).get(5) == values.map_([(values.int_(0), values.string(""))])


class TestOneof:
    def test_last_member_wins(self, params):
        data = encode_tag(7, WireType.LENGTH_DELIMITED) + encode_length_delimited(b"hi") \
            + encode_tag(8, WireType.VARINT) + encode_varint(5)
        value = codec.decode(data, params)
        assert value.get(7) is None
        assert value.get(8) == values.int_(5)

    def test_zero_member_is_kept(self, params):
        value = values.message({8: values.int_(0)})
        data = codec.encode(value, params)
        assert data == b"\x40\x00"
        assert codec.decode(data, params) == value

    def test_two_members_rejected(self, params):
        with pytest.raises(EncodeError):
            codec.encode(values.message({7: values.string("a"), 8: values.int_(1)}), params)


class TestDecodeEdges:
    def test_unknown_fields_are_dropped(self, params):
        known = codec.encode(values.message({1: values.string("x")}), params)
        extra = encode_tag(99, WireType.VARINT) + encode_varint(7) \
            + encode_tag(100, WireType.LENGTH_DELIMITED) + encode_length_delimited(b"zzz") \
            + encode_tag(101, WireType.FIXED32) + b"\x00\x00\x00\x00"
        assert codec.decode(known + extra, params) == codec.decode(known, params)

    def test_length_exceeds_buffer(self, params):
        with pytest.raises(MalformedWireDataError):
            codec.decode(b"\x0a\x05ab", params)

    def test_invalid_utf8(self, params):
        with pytest.raises(MalformedWireDataError):
            codec.decode(b"\x0a\x02\xff\xfe", params)

    def test_unskippable_wire_type(self, params):
        with pytest.raises(MalformedWireDataError):
            codec.decode(encode_tag(50, 7) + b"\x00", params)

    def test_repeated_message_occurrences_merge(self, params):
        first = encode_tag(9, WireType.LENGTH_DELIMITED) + encode_length_delimited(b"\x0a\x01a")
        second = encode_tag(9, WireType.LENGTH_DELIMITED) + encode_length_delimited(b"\x10\x01")
        child = codec.decode(first + second, params).get(9)
        assert child == values.message({1: values.string("a"), 2: values.boolean(True)})

    def test_explicit_defaults_are_dropped(self, params):
        data = encode_tag(1, WireType.LENGTH_DELIMITED) + encode_length_delimited(b"") \
            + encode_tag(2, WireType.VARINT) + encode_varint(0)
        assert codec.decode(data, params) == values.message()

    def test_nesting_limit(self, params):
        data = b""
        for _ in range(3000):
            data = encode_tag(9, WireType.LENGTH_DELIMITED) + encode_length_delimited(data)
        with pytest.raises(MalformedWireDataError):
            codec.decode(data, params)

    def test_nesting_within_limit(self, params):
        data = b"\x0a\x01a"
        for _ in range(50):
            data = encode_tag(9, WireType.LENGTH_DELIMITED) + encode_length_delimited(data)
        value = codec.decode(data, params)
        for _ in range(50):
            value = value.get(9)
        assert value == values.message({1: values.string("a")})

    def test_negative_int32_sign_extended(self, registry):
        simple = registry.resolve_simple("SimpleMessage")
        data = codec.encode(values.message({4: values.int_(-32)}), simple)
        assert len(data) == 11
        assert codec.decode(data, simple).get(4) == values.int_(-32)


class TestEncodeErrors:
    def test_kind_mismatch(self, params):
        with pytest.raises(EncodeError) as exc:
            codec.encode(values.message({2: values.string("yes")}), params)
        assert exc.value.field == "flag"

    def test_signed_value_for_unsigned_field(self, params):
        with pytest.raises(EncodeError):
            codec.encode(values.message({12: values.int_(1)}), params)

    @pytest.mark.parametrize("number,value", [
        (8, values.int_(1 << 31)),
        (12, values.uint(1 << 64)),
        (12, values.uint(-1)),
        (6, values.enum(-(1 << 31) - 1)),
    ])
    def test_out_of_range(self, params, number, value):
        with pytest.raises(EncodeError):
            codec.encode(values.message({number: value}), params)

    def test_float32_overflow(self, params):
        with pytest.raises(EncodeError):
            codec.encode(values.message({10: values.float_(1e300)}), params)

    def test_unknown_field_number(self, params):
        with pytest.raises(EncodeError):
            codec.encode(values.message({77: values.int_(1)}), params)

    def test_not_a_message(self, params):
        with pytest.raises(EncodeError):
            codec.encode(values.string("x"), params)

    def test_absent_is_skipped(self, params):
        assert codec.encode(values.message({1: values.ABSENT}), params) == b""


class TestFromNative:
    def test_unknown_name(self, params):
        with pytest.raises(EncodeError):
            codec.from_native({"nope": 1}, params)

    def test_float32_rounding(self, params):
        value = codec.from_native({"ratio": 0.1}, params)
        assert value.get(10).data != 0.1
        assert value.get(10).data == pytest.approx(0.1)

    def test_pydantic_model(self, registry):
        descriptor = registry.resolve_simple("ImportMessage")
        value = codec.from_native(samples.new_import_message(), descriptor)
        assert value.get(1) == values.message()
        assert value.get(2) == values.message({1: values.enum(1), 2: values.string("this is nested!")})
        assert value.get(2).kind is Kind.MESSAGE

    def test_unknown_enum_symbol(self, params):
        with pytest.raises(EncodeError):
            codec.from_native({"color": "PURPLE"}, params)

    def test_empty_collections_are_absent(self, params):
        assert codec.from_native({"numbers": [], "tags": {}}, params) == values.message()

    @pytest.mark.parametrize("doc", [{"scores": [10 ** 400]}, {"ratio": 10 ** 400}, {"ratio": 1e300}])
    def test_float_out_of_range(self, params, doc):
        with pytest.raises(EncodeError):
            codec.from_native(doc, params)
