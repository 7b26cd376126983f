import json

import pytest

from swf_builders import sample_movie
from stardelta.core.errors import SchemaError, StorageError
from stardelta.core.swf import (
    decode_swf,
    dump_structural,
    encode_swf,
    load_structural,
    structure_from_dict,
    structure_to_dict,
)


def test_structural_document_layout():
    doc = structure_to_dict(decode_swf(sample_movie()))
    assert doc["format"] == "stardelta-structural/1"
    assert doc["header"]["frameSize"]["xMax"] == 11000
    by_code = {entry["code"]: entry for entry in doc["tags"]}
    assert by_code[32]["kind"] == "DefineShapeTag"
    assert by_code[32]["id"] == 1
    assert "properties" in by_code[32]
    assert by_code[12]["data"] == "AA=="
    assert "properties" not in by_code[12]


def test_structural_round_trip_rebuilds_the_movie(tmp_path):
    data = sample_movie()
    path = dump_structural(decode_swf(data), tmp_path / "movie.json")
    json.loads(path.read_text(encoding="utf-8"))
    structure = load_structural(path)
    assert encode_swf(structure) == data


def test_structural_edit_is_applied(tmp_path):
    doc = structure_to_dict(decode_swf(sample_movie()))
    for entry in doc["tags"]:
        if entry.get("kind") == "SetBackgroundColorTag":
            entry["properties"]["backgroundColor"] = {"r": 1, "g": 2, "b": 3}
    rebuilt = decode_swf(encode_swf(structure_from_dict(doc)))
    background = rebuilt.find_singleton("SetBackgroundColorTag")
    assert background.properties["backgroundColor"] == {"r": 1, "g": 2, "b": 3}


def test_invalid_properties_point_at_the_tag():
    doc = structure_to_dict(decode_swf(sample_movie()))
    index = next(i for i, e in enumerate(doc["tags"]) if e.get("id") == 1)
    doc["tags"][index]["properties"]["bounds"] = {"xMin": 0}
    with pytest.raises(SchemaError) as exc:
        structure_from_dict(doc)
    assert exc.value.section == "tags"
    assert exc.value.index == index


@pytest.mark.parametrize(
    "doc",
    [
        [],
        {"format": "other/1", "tags": []},
        {"header": {"version": 10, "frameSize": {}}},
        {"header": {"version": 0, "frameSize": {}}, "tags": []},
    ],
)
def test_malformed_documents(doc):
    with pytest.raises(SchemaError):
        structure_from_dict(doc)


def test_load_errors(tmp_path):
    with pytest.raises(StorageError):
        load_structural(tmp_path / "missing.json")
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(SchemaError):
        load_structural(bad)
