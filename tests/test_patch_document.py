import json

import pytest

from stardelta.core.errors import SchemaError, StorageError
from stardelta.core.patch_document import load_patch_document, parse_patch_document


def _doc(**overrides):
    doc = {"transparent": [], "file": [], "swf": {"modifications": []}}
    doc.update(overrides)
    return doc


def test_full_document(tmp_path):
    path = tmp_path / "mods" / "patch.json"
    path.parent.mkdir()
    path.write_text(
        json.dumps(
            {
                "transparent": [5, 6, 5],
                "file": [{"source": "art/box.svg", "shapes": [7, 8]}],
                "swf": {
                    "bounds": {"x": {"min": 0, "max": 12800}, "y": {"min": 0, "max": 7200}},
                    "modifications": [
                        {"tag": "FileAttributesTag", "properties": {"actionScript3": True}},
                        {"tag": "DefineShapeTag", "id": 7, "properties": {}},
                    ],
                },
            }
        ),
        encoding="utf-8",
    )
    document = load_patch_document(path)
    assert document.transparent_ids == [5, 6]
    assert document.source_path(document.file[0]) == path.resolve().parent / "art" / "box.svg"
    assert document.swf.bounds.to_rect() == {"xMin": 0, "xMax": 12800, "yMin": 0, "yMax": 7200}
    assert [m.tag for m in document.modifications] == ["FileAttributesTag", "DefineShapeTag"]
    assert document.modifications[0].id is None
    assert not document.is_empty


def test_minimal_document_is_empty():
    document = parse_patch_document(json.dumps({"swf": {"modifications": []}}))
    assert document.is_empty
    assert document.transparent == []
    assert document.file == []


@pytest.mark.parametrize(
    "doc",
    [
        {"transparent": []},
        _doc(extra=True),
        _doc(swf={"modifications": [], "frameRate": 30}),
        _doc(transparent=["5"]),
        _doc(transparent=[70000]),
        _doc(file=[{"source": "", "shapes": [1]}]),
        _doc(file=[{"source": "a.svg"}]),
        _doc(swf={"modifications": [{"tag": "DefineShapeTag", "id": -1, "properties": {}}]}),
        _doc(swf={"modifications": [{"tag": "DefineShapeTag", "id": 1}]}),
        _doc(swf={"modifications": [{"tag": "FrameLabelTag", "match": ["intro"], "properties": {}}]}),
        _doc(swf={"bounds": {"x": {"min": 10, "max": 0}, "y": {"min": 0, "max": 1}}, "modifications": []}),
    ],
)
def test_invalid_documents_are_rejected(doc):
    with pytest.raises(SchemaError):
        parse_patch_document(doc)


def test_invalid_json_and_missing_file(tmp_path):
    with pytest.raises(SchemaError):
        parse_patch_document(b"{nope")
    with pytest.raises(StorageError):
        load_patch_document(tmp_path / "absent.json")


def test_error_carries_document_path(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text(json.dumps({"swf": {}}), encoding="utf-8")
    with pytest.raises(SchemaError) as exc:
        load_patch_document(path)
    assert exc.value.path == str(path)


def test_match_selector_is_kept():
    document = parse_patch_document(
        _doc(swf={"modifications": [{"tag": "PlaceObjectTag", "match": {"name": "logo"}, "properties": {"ratio": 2}}]})
    )
    modification = document.modifications[0]
    assert modification.match == {"name": "logo"}
    assert modification.id is None
