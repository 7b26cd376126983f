import base64

import pytest

from swf_builders import edit_text_tag, sample_movie, shape_properties
from stardelta.core.errors import CodecError, SchemaError
from stardelta.core.swf import decode_swf, get_handler, handler_kinds
from stardelta.core.swf.handlers import deep_merge, handler_for_code


def test_handler_registry_is_closed():
    assert "DefineShapeTag" in handler_kinds()
    assert get_handler("DefineShapeTag") is handler_for_code(32)
    assert handler_for_code(12) is None
    with pytest.raises(SchemaError) as exc:
        get_handler("DoActionTag")
    assert "Supported" in str(exc.value)


def test_deep_merge_merges_objects_and_replaces_lists():
    base = {"a": {"x": 1, "y": 2}, "items": [1, 2, 3]}
    merged = deep_merge(base, {"a": {"y": 5}, "items": [9]})
    assert merged == {"a": {"x": 1, "y": 5}, "items": [9]}
    assert base["a"]["y"] == 2


@pytest.mark.parametrize("code", [2, 22, 32, 83])
def test_shape_versions_decode_what_they_encode(code):
    handler = get_handler("DefineShapeTag")
    props = shape_properties(code)
    raw = handler.encode(props, code, 9)
    assert handler.decode(raw, code) == props


def test_shape_merge_rejects_unknown_keys():
    handler = get_handler("DefineShapeTag")
    with pytest.raises(SchemaError):
        handler.merge(shape_properties(32), {"colour": 1}, 32, 1)


def test_shape_merge_validates_values():
    handler = get_handler("DefineShapeTag")
    bad_fill = {"fillStyles": [{"type": "solid", "color": {"r": 300, "g": 0, "b": 0}}]}
    with pytest.raises(SchemaError):
        handler.merge(shape_properties(32), bad_fill, 32, 1)


def test_alpha_is_rejected_for_rgb_shapes():
    handler = get_handler("DefineShapeTag")
    props = shape_properties(22)
    props["fillStyles"][0]["color"]["a"] = 10
    with pytest.raises(CodecError):
        handler.encode(props, 22, 1)


def test_style_index_out_of_range_is_rejected():
    handler = get_handler("DefineShapeTag")
    props = shape_properties(32)
    props["records"][0]["fillStyle1"] = 2
    with pytest.raises(CodecError):
        handler.encode(props, 32, 1)


def test_edit_text_properties():
    tag = edit_text_tag(3, "Score")
    handler = tag.handler
    decoded = handler.decode(tag.body(), 37)
    assert decoded["text"] == "Score"
    assert decoded["readOnly"] is True
    assert decoded["fontId"] is None
    assert decoded["layout"] is None

    merged = handler.merge(
        decoded,
        {"text": "Points", "layout": {"align": "center", "leading": -2}},
        37,
        3,
    )
    again = handler.decode(handler.encode(merged, 37, 3), 37)
    assert again["text"] == "Points"
    assert again["layout"] == {
        "align": "center",
        "leftMargin": 0,
        "rightMargin": 0,
        "indent": 0,
        "leading": -2,
    }


def test_edit_text_font_needs_height():
    handler = get_handler("DefineDynamicTextTag")
    decoded = handler.decode(edit_text_tag(3).body(), 37)
    with pytest.raises(SchemaError):
        handler.merge(decoded, {"fontId": 5}, 37, 3)


def test_singletons_from_movie():
    structure = decode_swf(sample_movie())
    attrs = structure.find_singleton("FileAttributesTag")
    assert attrs.properties["actionScript3"] is True
    background = structure.find_singleton("SetBackgroundColorTag")
    assert background.properties == {"backgroundColor": {"r": 16, "g": 32, "b": 48}}


def test_binary_data_and_symbol_class():
    binary = get_handler("DefineBinaryDataTag")
    raw = binary.encode({"data": "aGVsbG8="}, 87, 12)
    assert binary.decode(raw, 87) == {"data": "aGVsbG8="}
    with pytest.raises(CodecError):
        binary.encode({"data": "%%%"}, 87, 12)

    symbols = get_handler("SymbolClassTag")
    props = {"symbols": [{"id": 0, "name": "Main"}, {"id": 12, "name": "Blob"}]}
    assert symbols.decode(symbols.encode(props, 76, None), 76) == props


def test_sprite_and_scene_labels():
    sprite = get_handler("DefineSpriteTag")
    props = {"frameCount": 2, "tags": [{"code": 1, "data": ""}, {"code": 0, "data": ""}]}
    assert sprite.decode(sprite.encode(props, 39, 20), 39) == props

    scenes = get_handler("DefineSceneAndFrameLabelDataTag")
    props = {"scenes": [{"offset": 0, "name": "Scene 1"}], "labels": [{"frame": 3, "name": "open"}]}
    assert scenes.decode(scenes.encode(props, 86, None), 86) == props


def test_do_abc_defaults():
    abc = get_handler("DoAbcTag")
    decoded = abc.decode(abc.encode({"data": ""}, 82, None), 82)
    assert decoded == {"flags": 1, "name": "", "data": ""}


IDENTITY = {
    "scaleX": 1.0,
    "scaleY": 1.0,
    "rotateSkew0": 0.0,
    "rotateSkew1": 0.0,
    "translateX": 0,
    "translateY": 0,
}


def test_place_object2_bytes():
    place = get_handler("PlaceObjectTag")
    raw = b"\x06\x01\x00\x03\x00\x00"
    props = place.decode(raw, 26)
    assert props == {
        "move": False,
        "depth": 1,
        "characterId": 3,
        "matrix": IDENTITY,
        "colorTransform": None,
        "ratio": None,
        "name": None,
        "clipDepth": None,
        "clipActions": None,
    }
    assert place.encode(props, 26, None) == raw


def test_place_object_color_transforms():
    place = get_handler("PlaceObjectTag")
    v1 = {
        "characterId": 2,
        "depth": 1,
        "matrix": dict(IDENTITY, translateX=200),
        "colorTransform": {"redAdd": 10, "greenAdd": 0, "blueAdd": -5},
    }
    assert place.decode(place.encode(v1, 4, None), 4) == v1
    plain = dict(v1, colorTransform=None)
    assert place.decode(place.encode(plain, 4, None), 4) == plain

    v2 = place.decode(b"\x06\x01\x00\x03\x00\x00", 26)
    faded = place.merge(v2, {"colorTransform": {"alphaMult": 128}, "name": "logo"}, 26, None)
    decoded = place.decode(place.encode(faded, 26, None), 26)
    assert decoded["colorTransform"] == {"redMult": 256, "greenMult": 256, "blueMult": 256, "alphaMult": 128}
    assert decoded["name"] == "logo"


def test_place_object2_rejects_alpha_in_version_one():
    place = get_handler("PlaceObjectTag")
    props = {"characterId": 2, "depth": 1, "matrix": IDENTITY, "colorTransform": {"alphaMult": 0}}
    with pytest.raises(CodecError):
        place.encode(props, 4, None)


def test_place_object3_filters_and_trailing_fields():
    place = get_handler("PlaceObjectTag")
    filters = [
        {"type": "dropShadow", "data": base64.b64encode(bytes(range(23))).decode()},
        {"type": "blur", "data": base64.b64encode(b"\x01" * 9).decode()},
        {"type": "gradientGlow", "data": base64.b64encode(b"\x01" + b"\x02" * 24).decode()},
        {"type": "convolution", "data": base64.b64encode(b"\x02\x01" + b"\x03" * 21).decode()},
    ]
    props = {
        "move": False,
        "depth": 4,
        "hasImage": False,
        "className": "ui.Button",
        "characterId": None,
        "matrix": None,
        "colorTransform": None,
        "ratio": None,
        "name": "btn",
        "clipDepth": None,
        "filters": filters,
        "blendMode": 3,
        "bitmapCache": 1,
        "visible": 1,
        "backgroundColor": {"r": 1, "g": 2, "b": 3, "a": 4},
        "clipActions": None,
    }
    assert place.decode(place.encode(props, 70, None), 70) == props


def test_place_object3_image_needs_class_name():
    place = get_handler("PlaceObjectTag")
    props = {"depth": 1, "hasImage": True, "characterId": 5}
    with pytest.raises(SchemaError):
        place.validate(props, 70, None)
    named = dict(props, className="Photo")
    decoded = place.decode(place.encode(named, 70, None), 70)
    assert decoded["className"] == "Photo"
    assert decoded["characterId"] == 5


def test_remove_object_and_frame_label():
    remove = get_handler("RemoveObjectTag")
    assert remove.decode(remove.encode({"characterId": 3, "depth": 2}, 5, None), 5) == {"characterId": 3, "depth": 2}
    assert remove.encode({"depth": 2}, 28, None) == b"\x02\x00"

    label = get_handler("FrameLabelTag")
    assert label.encode({"name": "intro", "anchor": False}, 43, None) == b"intro\x00"
    assert label.decode(b"intro\x00\x01", 43) == {"name": "intro", "anchor": True}
