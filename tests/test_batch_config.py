import json

import pytest

from stardelta.core.batch_config import load_batch_config, parse_batch_config
from stardelta.core.errors import SchemaError


def test_loose_and_archive_mods(tmp_path):
    path = tmp_path / "batch.json"
    path.write_text(
        json.dumps(
            {
                "mods": [
                    {"name": "HUD", "config": "hud/patch.json"},
                    {
                        "name": "Pip-Boy",
                        "ba2": True,
                        "files": [{"path": "Interface/PipboyMenu.swf", "config": "pip.json"}],
                    },
                ]
            }
        ),
        encoding="utf-8",
    )
    config = load_batch_config(path)
    assert config.needs_archive
    assert config.resolve("hud/patch.json") == path.resolve().parent / "hud" / "patch.json"
    assert config.mods[1].files[0].path == "Interface/PipboyMenu.swf"


@pytest.mark.parametrize(
    "doc",
    [
        {},
        {"mods": [{"name": "a"}]},
        {"mods": [{"name": "a", "ba2": True}]},
        {"mods": [{"name": "a", "ba2": True, "config": "x.json", "files": [{"path": "p", "config": "c"}]}]},
        {"mods": [{"name": "a", "config": "x.json", "files": []}]},
        {"mods": [{"name": "a", "config": "x.json"}, {"name": "a", "config": "y.json"}]},
        {"mods": [{"name": "a", "config": "x.json", "priority": 1}]},
    ],
)
def test_invalid_batch_configs(doc):
    with pytest.raises(SchemaError):
        parse_batch_config(doc)


def test_resolve_keeps_absolute_paths(tmp_path):
    config = parse_batch_config({"mods": [{"name": "a", "config": "x.json"}]}, base_dir=tmp_path)
    absolute = tmp_path / "elsewhere" / "x.json"
    assert config.resolve(str(absolute)) == absolute
    assert not config.needs_archive
