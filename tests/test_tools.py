import asyncio

from conftest import make_audio_file

from audio_tweaker.models import BatchResult, ProcessingResult, QueueStatus
from audio_tweaker.presets import get_preset
from audio_tweaker.tools import (
    HarmonicsOut,
    PresetResultOut,
    PresetsOut,
    QueueControlOut,
    ToolDispatcher,
    ToolErrorOut,
    VariationsOut,
    make_error,
)


def call(coro):
    return asyncio.run(coro)


def test_process_audio_file_from_dict(tmp_path, processor, input_wav):
    dispatcher = ToolDispatcher(processor)
    out = call(
        dispatcher.process_audio_file(
            {
                "input_path": input_wav,
                "output_path": str(tmp_path / "out.wav"),
                "operations": {"volume": {"adjust_db": -2}},
            }
        )
    )
    assert isinstance(out, ProcessingResult)
    assert out.success is True


def test_invalid_arguments_envelope(processor):
    out = call(ToolDispatcher(processor).process_audio_file({"output_path": "x.wav"}))
    assert isinstance(out, ToolErrorOut)
    assert out.code == "invalid_arguments"
    assert out.tool_name == "process_audio_file"


def test_out_of_range_value_is_rejected(tmp_path, processor, input_wav):
    out = call(
        ToolDispatcher(processor).process_audio_file(
            {
                "input_path": input_wav,
                "output_path": str(tmp_path / "o.wav"),
                "operations": {"volume": {"adjust_db": 50}},
            }
        )
    )
    assert isinstance(out, ToolErrorOut)
    assert out.code == "invalid_arguments"


def test_unknown_fields_are_rejected(tmp_path, processor, input_wav):
    out = call(
        ToolDispatcher(processor).process_audio_file(
            {"input_path": input_wav, "output_path": str(tmp_path / "o.wav"), "gain": 3}
        )
    )
    assert out.code == "invalid_arguments"


def test_apply_preset_echoes_operations(tmp_path, processor, fake_engine, input_wav):
    out = call(
        ToolDispatcher(processor).apply_preset(
            {"input_path": input_wav, "output_path": str(tmp_path / "voice.mp3"), "preset_name": "voice-processing"}
        )
    )
    preset = get_preset("voice-processing")
    assert isinstance(out, PresetResultOut)
    assert out.result.success is True
    assert out.result.operations == preset.operations
    assert out.preset_used == "voice-processing"
    assert out.preset_description == preset.description
    plan, _, _ = fake_engine.calls[0]
    assert plan.codec == "libmp3lame"
    assert plan.channels == 1
    assert "loudnorm=I=-23:LRA=7:tp=-2" in plan.filters


def test_unknown_preset(tmp_path, processor, input_wav):
    out = call(
        ToolDispatcher(processor).apply_preset(
            {"input_path": input_wav, "output_path": str(tmp_path / "o.wav"), "preset_name": "nope"}
        )
    )
    assert isinstance(out, ToolErrorOut)
    assert out.code == "unknown_preset"
    assert "nope" in out.message


def test_list_presets_by_category(processor):
    dispatcher = ToolDispatcher(processor)
    everything = call(dispatcher.list_presets())
    voice = call(dispatcher.list_presets("voice"))
    assert isinstance(everything, PresetsOut)
    assert everything.count == 13
    assert [p.name for p in voice.presets] == ["elevenLabs-optimize", "voice-processing"]


def test_batch_tool(tmp_path, processor):
    source = tmp_path / "in"
    source.mkdir()
    make_audio_file(source, "a.wav")
    make_audio_file(source, "b.wav")
    out = call(
        ToolDispatcher(processor).batch_process_audio(
            {"input_directory": str(source), "output_directory": str(tmp_path / "out")}
        )
    )
    assert isinstance(out, BatchResult)
    assert out.successful_files == 2


def test_batch_tool_no_files(tmp_path, processor):
    out = call(
        ToolDispatcher(processor).batch_process_audio(
            {"input_directory": str(tmp_path), "output_directory": str(tmp_path / "out"), "file_pattern": "*.flac"}
        )
    )
    assert isinstance(out, ToolErrorOut)
    assert out.code == "no_files_found"
    assert out.tool_name == "batch_process_audio"


def test_generate_variations_defaults(tmp_path, processor, input_wav):
    out = call(
        ToolDispatcher(processor).generate_variations(
            {"input_path": input_wav, "output_directory": str(tmp_path / "v"), "seed": 7}
        )
    )
    assert isinstance(out, VariationsOut)
    assert out.seed == 7
    assert len(out.results) == 5
    assert all(r.operations.volume.adjust_db is not None for r in out.results)


def test_generate_variations_count_limit(tmp_path, processor, input_wav):
    out = call(
        ToolDispatcher(processor).generate_variations(
            {"input_path": input_wav, "output_directory": str(tmp_path), "count": 21}
        )
    )
    assert out.code == "invalid_arguments"


def test_create_harmonics(tmp_path, processor, input_wav):
    dispatcher = ToolDispatcher(processor)
    out = call(
        dispatcher.create_harmonics(
            {"input_path": input_wav, "output_directory": str(tmp_path / "h"), "octave_down": 0.3, "third_up": 0.2}
        )
    )
    assert isinstance(out, HarmonicsOut)
    assert len(out.results) == 2
    empty = call(dispatcher.create_harmonics({"input_path": input_wav, "output_directory": str(tmp_path)}))
    assert empty.code == "no_harmonics"


def test_advanced_process(tmp_path, processor, fake_engine, input_wav):
    out = call(
        ToolDispatcher(processor).advanced_process(
            {
                "input_path": input_wav,
                "output_path": str(tmp_path / "adv.wav"),
                "pitch": {"semitones": 12},
                "spectral": {"bass_boost": 3},
            }
        )
    )
    assert out.success is True
    plan, _, _ = fake_engine.calls[0]
    assert plan.filters == ["asetrate=44100*2", "aresample=44100", "bass=g=3"]


def test_advanced_process_needs_advanced_processor(tmp_path, base_processor, input_wav):
    out = call(
        ToolDispatcher(base_processor).advanced_process(
            {"input_path": input_wav, "output_path": str(tmp_path / "adv.wav"), "pitch": {"semitones": 1}}
        )
    )
    assert out.code == "unsupported_operation"


def test_layer_sounds_tool(tmp_path, processor):
    first = make_audio_file(tmp_path, "a.wav")
    second = make_audio_file(tmp_path, "b.wav")
    out = call(
        ToolDispatcher(processor).layer_sounds(
            {
                "input_paths": [first, second],
                "output_path": str(tmp_path / "mix.wav"),
                "layers": [{"volume": 1}, {"volume": 0.5, "pan": -1}],
            }
        )
    )
    assert isinstance(out, ProcessingResult)
    assert out.success is True


def test_queue_tools(processor):
    dispatcher = ToolDispatcher(processor)
    status = call(dispatcher.get_queue_status())
    assert isinstance(status, QueueStatus)
    assert status.paused is False
    paused = call(dispatcher.pause_queue())
    assert isinstance(paused, QueueControlOut)
    assert paused.status.paused is True
    resumed = call(dispatcher.resume_queue())
    assert resumed.status.paused is False
    cleared = call(dispatcher.clear_queue())
    assert cleared.discarded == 0


def test_make_error_codes():
    assert make_error("t", ValueError("no_files_found: nothing here")).code == "no_files_found"
    assert make_error("t", ValueError("no_files_found: nothing here")).message == "nothing here"
    assert make_error("t", ValueError("Input file not found: x")).code == "invalid_request"
    failed = make_error("t", RuntimeError("boom"))
    assert failed.code == "tool_execution_failed"
    assert failed.tool_name == "t"
