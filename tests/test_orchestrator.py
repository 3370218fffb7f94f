import json

import pytest
from conftest import FakeEngine, make_audio_file

from audio_tweaker.compiler import AdvancedCompiler
from audio_tweaker.processor import AudioProcessor
from task_runner import orchestrator


def test_presets_command(capsys):
    assert orchestrator.main(["presets", "--category", "music"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert [p["name"] for p in payload] == ["music-mastering"]


def test_load_operations_inline_and_file(tmp_path):
    inline = orchestrator.load_operations('{"volume": {"adjust_db": -4}}', None)
    assert inline.volume.adjust_db == -4
    path = tmp_path / "ops.json"
    path.write_text('{"effects": {"fade_in_sec": 0.5}}')
    from_file = orchestrator.load_operations(f"@{path}", None)
    assert from_file.effects.fade_in_sec == 0.5
    assert orchestrator.load_operations(None, "music-mastering").format.codec == "flac"


def test_bad_operations_exit_code(capsys):
    assert orchestrator.main(["process", "a.wav", "b.wav", "--operations", '{"volume": {"adjust_db": 99}}']) == 2
    assert "Invalid operations" in capsys.readouterr().err


def test_batch_command(monkeypatch, tmp_path, capsys):
    engine = FakeEngine()
    monkeypatch.setattr(
        orchestrator,
        "build_processor",
        lambda settings, concurrency=None: AudioProcessor(AdvancedCompiler(), engine, concurrency or 1),
    )
    source = tmp_path / "in"
    source.mkdir()
    make_audio_file(source, "a.wav")
    make_audio_file(source, "b.wav")
    code = orchestrator.main(["batch", str(source), str(tmp_path / "out"), "--preset", "sfx-optimization", "--format", "ogg"])
    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["successful_files"] == 2
    assert payload["results"][0]["output_path"].endswith("a_processed.ogg")


def test_batch_command_no_files(tmp_path, capsys):
    assert orchestrator.main(["batch", str(tmp_path), str(tmp_path / "out")]) == 2
    assert "no_files_found" in capsys.readouterr().err


def test_process_and_preset_are_exclusive():
    with pytest.raises(SystemExit):
        orchestrator.parse_args(["process", "a.wav", "b.wav", "--preset", "x", "--operations", "{}"])
