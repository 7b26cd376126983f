import json
import threading

import pytest

from swf_builders import build_ba2, sample_movie
from stardelta.core.archive import Ba2Archive
from stardelta.core.batch import BatchOrchestrator
from stardelta.core.batch_config import parse_batch_config
from stardelta.core.errors import StorageError
from stardelta.core.settings import EngineSettings
from stardelta.core.swf import decode_swf


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def _patch(color):
    return {
        "swf": {
            "modifications": [
                {"tag": "SetBackgroundColorTag", "properties": {"backgroundColor": color}}
            ]
        }
    }


def _background(path):
    return decode_swf(path.read_bytes()).find_singleton("SetBackgroundColorTag").properties["backgroundColor"]


@pytest.fixture
def archive_setup(tmp_path):
    archive = build_ba2(
        tmp_path / "Main.ba2",
        [
            ("Interface/HUDMenu.swf", sample_movie()),
            ("Interface/PipboyMenu.swf", sample_movie("zlib")),
            ("Interface/Broken.swf", b"not a movie"),
        ],
        compress=True,
    )
    _write(tmp_path / "cfg" / "hud.json", _patch({"r": 1, "g": 0, "b": 0}))
    _write(tmp_path / "cfg" / "pip.json", _patch({"r": 2, "g": 0, "b": 0}))
    _write(tmp_path / "cfg" / "broken.json", _patch({"r": 3, "g": 0, "b": 0}))
    config = parse_batch_config(
        {
            "mods": [
                {
                    "name": "Interface",
                    "ba2": True,
                    "files": [
                        {"path": "Interface/HUDMenu.swf", "config": "cfg/hud.json"},
                        {"path": "Interface/Broken.swf", "config": "cfg/broken.json"},
                        {"path": "Interface/PipboyMenu.swf", "config": "cfg/pip.json"},
                    ],
                }
            ]
        },
        base_dir=tmp_path,
    )
    return archive, config


@pytest.mark.parametrize("workers", [1, 3])
def test_archive_batch_isolates_failures(tmp_path, archive_setup, workers):
    archive, config = archive_setup
    out = tmp_path / "out"
    result = BatchOrchestrator(EngineSettings(max_workers=workers)).run(config, out, archive)

    assert result.succeeded == [out / "Interface" / "HUDMenu.swf", out / "Interface" / "PipboyMenu.swf"]
    assert len(result.failed) == 1
    failure = result.failed[0]
    assert failure.path == "Interface/Broken.swf"
    assert failure.category == "codec"
    assert failure.error.entry == "Interface"
    assert not result.ok

    assert _background(out / "Interface" / "HUDMenu.swf") == {"r": 1, "g": 0, "b": 0}
    pip = (out / "Interface" / "PipboyMenu.swf").read_bytes()
    assert pip[:3] == b"CWS"
    assert _background(out / "Interface" / "PipboyMenu.swf") == {"r": 2, "g": 0, "b": 0}
    assert not (out / "Interface" / "Broken.swf").exists()


def test_missing_archive_fails_every_archive_job(tmp_path, archive_setup):
    _, config = archive_setup
    result = BatchOrchestrator().run(config, tmp_path / "out", None)
    assert result.succeeded == []
    assert len(result.failed) == 3
    assert {f.category for f in result.failed} == {"io"}
    assert len({id(f.error) for f in result.failed}) == 3


def test_loose_mods_use_mapped_inputs(tmp_path, movie_path):
    _write(tmp_path / "hud.json", _patch({"r": 7, "g": 7, "b": 7}))
    config = parse_batch_config(
        {"mods": [{"name": "HUD", "config": "hud.json"}, {"name": "Unmapped", "config": "hud.json"}]},
        base_dir=tmp_path,
    )
    out = tmp_path / "out"
    result = BatchOrchestrator().run(config, out, swf_paths={"HUD": movie_path})
    assert result.succeeded == [out / "movie.swf"]
    assert [f.name for f in result.failed] == ["Unmapped"]
    assert _background(out / "movie.swf") == {"r": 7, "g": 7, "b": 7}


def test_cancelled_batch_skips_jobs(tmp_path, archive_setup):
    archive, config = archive_setup
    event = threading.Event()
    event.set()
    result = BatchOrchestrator(cancel_event=event).run(config, tmp_path / "out", archive)
    assert result.skipped == ["Interface", "Interface", "Interface"]
    assert result.succeeded == []
    assert result.failed == []


def test_inner_paths_cannot_escape_output_dir(tmp_path):
    archive = build_ba2(tmp_path / "Main.ba2", [("../evil.swf", sample_movie())])
    _write(tmp_path / "p.json", _patch({"r": 1, "g": 1, "b": 1}))
    config = parse_batch_config(
        {"mods": [{"name": "Evil", "ba2": True, "files": [{"path": "../evil.swf", "config": "p.json"}]}]},
        base_dir=tmp_path,
    )
    result = BatchOrchestrator().run(config, tmp_path / "out", archive)
    assert result.succeeded == []
    assert result.failed[0].category == "io"
    assert not (tmp_path / "evil.swf").exists()


def test_archive_entry_without_archive_fails_alone(tmp_path, movie_path):
    _write(tmp_path / "a.json", _patch({"r": 4, "g": 4, "b": 4}))
    config = parse_batch_config(
        {
            "mods": [
                {"name": "Loose", "config": "a.json"},
                {"name": "Packed", "ba2": True, "files": [{"path": "x.swf", "config": "a.json"}]},
            ]
        },
        base_dir=tmp_path,
    )
    result = BatchOrchestrator().run(config, tmp_path / "out", None, {"Loose": movie_path})
    assert len(result.succeeded) == 1
    assert [(f.name, f.category) for f in result.failed] == [("Packed", "io")]


class _CountingOpener:
    """Opens real archives and remembers each one; optionally fails instead."""

    def __init__(self, error=None):
        self.error = error
        self.calls = 0
        self.archives = []

    def __call__(self, path):
        self.calls += 1
        if self.error is not None:
            raise self.error
        archive = Ba2Archive(path)
        self.archives.append(archive)
        return archive


def _two_archive_mods(tmp_path, archive_setup):
    archive, config = archive_setup
    data = config.model_dump()
    data["mods"].append(
        {
            "name": "Second",
            "ba2": True,
            "files": [
                {"path": "Interface/HUDMenu.swf", "config": "cfg/hud.json"},
                {"path": "Interface/PipboyMenu.swf", "config": "cfg/pip.json"},
            ],
        }
    )
    data["mods"].append({"name": "Loose", "config": "cfg/hud.json"})
    return archive, parse_batch_config(data, base_dir=tmp_path)


@pytest.mark.parametrize("workers", [1, 4])
def test_archive_is_opened_once_and_closed(tmp_path, archive_setup, movie_path, workers):
    archive, config = _two_archive_mods(tmp_path, archive_setup)
    opener = _CountingOpener()
    orchestrator = BatchOrchestrator(EngineSettings(max_workers=workers), archive_opener=opener)
    result = orchestrator.run(config, tmp_path / "out", archive, {"Loose": movie_path})

    assert opener.calls == 1
    assert opener.archives[0].closed
    assert len(result.succeeded) == 5
    assert [f.path for f in result.failed] == ["Interface/Broken.swf"]


def test_archive_is_closed_when_jobs_raise(tmp_path, archive_setup):
    archive, config = archive_setup

    class _Exploding:
        def apply(self, structure, document):
            raise RuntimeError("boom")

    opener = _CountingOpener()
    result = BatchOrchestrator(applicator=_Exploding(), archive_opener=opener).run(
        config, tmp_path / "out", archive
    )
    assert opener.calls == 1
    assert opener.archives[0].closed
    assert result.succeeded == []
    assert len(result.failed) == 3


def test_archive_open_error_fails_archive_jobs_only(tmp_path, archive_setup, movie_path):
    archive, config = _two_archive_mods(tmp_path, archive_setup)
    opener = _CountingOpener(StorageError("Unsupported archive", path=archive))
    result = BatchOrchestrator(archive_opener=opener).run(
        config, tmp_path / "out", archive, {"Loose": movie_path}
    )
    assert opener.calls == 1
    assert result.succeeded == [tmp_path / "out" / "movie.swf"]
    assert len(result.failed) == 5
    assert {f.category for f in result.failed} == {"io"}
