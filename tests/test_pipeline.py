"""Emit/parse pipelines and resolution strategies."""

import json

import pytest

from protodyn import pipeline
from protodyn.errors import EnvelopeFormatError, MalformedWireDataError, SchemaLoadError, TypeNotFoundError
from protodyn.resolvers import DynamicResolver, StaticResolver, parse_schema_uri, resolver_for


def test_parse_schema_uri():
    assert parse_schema_uri("file:///tmp/root.pb#SimpleMessage") == ("/tmp/root.pb", "SimpleMessage")
    assert parse_schema_uri("file://build/root.pb#X") == ("build/root.pb", "X")
    assert parse_schema_uri("build/root.pb#X").path == "build/root.pb"


@pytest.mark.parametrize("uri", ["https://example.com/root.pb#X", "file:///tmp/root.pb"])
def test_parse_schema_uri_rejects(uri):
    with pytest.raises(SchemaLoadError):
        parse_schema_uri(uri)


def test_resolver_selection():
    assert isinstance(resolver_for(True), DynamicResolver)
    assert isinstance(resolver_for(False), StaticResolver)


def test_static_resolver_reads_no_file():
    descriptor = StaticResolver().resolve("file:///does/not/exist.pb#ComplexMessage")
    assert descriptor.full_name == "protodyn.sample.ComplexMessage"


def test_dynamic_resolver(schema_file):
    descriptor = DynamicResolver().resolve(f"{schema_file.as_uri()}#ImportMessage")
    assert descriptor.full_name == "protodyn.sample.ImportMessage"


def test_dynamic_resolver_missing_file(tmp_path):
    with pytest.raises(OSError):
        DynamicResolver().resolve(f"{(tmp_path / 'missing.pb').as_uri()}#X")


@pytest.mark.parametrize("dynamic", [True, False])
def test_wrapped_round_trip(schema_file, dynamic):
    data = pipeline.emit("SimpleMessage", schema_file.as_uri())
    record = pipeline.parse(data, resolver_for(dynamic))
    assert record["type"] == "SimpleMessage"
    assert record["datacontenttype"] == "application/json"
    assert record["data"]["param_01"] == "first parameter"
    assert record["data"]["param_03"] == "AAEC"
    json.dumps(record)


@pytest.mark.parametrize("dynamic", [True, False])
def test_raw_round_trip(schema_file, dynamic):
    data = pipeline.emit("ImportMessage", schema_file.as_uri(), wrapped=False)
    out = pipeline.parse(data, resolver_for(dynamic), schema_uri=f"{schema_file.as_uri()}#ImportMessage",
                         wrapped=False)
    assert out == {"param_01": {}, "param_02": {"param_01": "VALUE_1", "param_02": "this is nested!"}}


def test_composed_message(schema_file):
    data = pipeline.emit("ComposedMessage", schema_file.as_uri())
    out = pipeline.parse(data, resolver_for(True))["data"]
    assert out["param_02"]["param_02"]["summer"] == "yellow"
    assert out["param_01"]["param_09"] == -391


def test_emit_unknown_shape():
    with pytest.raises(TypeNotFoundError):
        pipeline.emit("NoSuchMessage", "file:///x.pb")


def test_envelope_stage():
    with pytest.raises(EnvelopeFormatError) as exc:
        pipeline.parse(b"{}", resolver_for(False))
    assert exc.value.stage == pipeline.Stage.ENVELOPE_UNWRAPPED.value


def test_schema_stage(schema_file):
    with pytest.raises(TypeNotFoundError) as exc:
        pipeline.parse(b"", resolver_for(True), schema_uri=f"{schema_file.as_uri()}#DoesNotExist", wrapped=False)
    assert exc.value.stage == pipeline.Stage.SCHEMA_RESOLVED.value


def test_decode_stage(schema_file):
    with pytest.raises(MalformedWireDataError) as exc:
        pipeline.parse(b"\x08\x80", resolver_for(True), schema_uri=f"{schema_file.as_uri()}#SimpleMessage",
                       wrapped=False)
    assert exc.value.stage == pipeline.Stage.DECODED.value


def test_raw_requires_schema_uri():
    with pytest.raises(SchemaLoadError) as exc:
        pipeline.parse(b"", resolver_for(False), wrapped=False)
    assert exc.value.stage == pipeline.Stage.RAW_INPUT.value
