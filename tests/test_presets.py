import pytest

from audio_tweaker.compiler import AdvancedCompiler
from audio_tweaker.presets import PRESETS, get_preset, list_presets, preset_exists


def test_all_presets_present():
    assert len(PRESETS) == 13
    assert preset_exists("game-audio-mobile")
    assert not preset_exists("missing")


def test_categories():
    assert [p.name for p in list_presets("game")] == [
        "game-audio-mobile",
        "game-audio-desktop",
        "game-audio-console",
    ]
    assert [p.name for p in list_presets("music")] == ["music-mastering"]
    assert [p.name for p in list_presets("effects")] == ["sfx-optimization"]
    assert len(list_presets("advanced")) == 6
    assert len(list_presets()) == 13


def test_unknown_preset():
    with pytest.raises(ValueError, match="unknown_preset"):
        get_preset("does-not-exist")


def test_mobile_preset_values():
    preset = get_preset("game-audio-mobile")
    assert preset.output_format == "m4a"
    fmt = preset.operations.format
    assert (fmt.sample_rate, fmt.bitrate_kbps, fmt.channels, fmt.codec) == (22050, 128, 2, "aac")
    assert preset.operations.volume.target_lufs == -16


def test_every_preset_compiles():
    compiler = AdvancedCompiler()
    for preset in list_presets():
        layering = preset.operations.advanced.layering if preset.operations.advanced else None
        inputs = len(layering.layers) if layering else 1
        plan = compiler.compile(preset.operations, input_count=inputs)
        assert plan.filters or plan.graph or plan.codec


def test_space_ambient_chain():
    plan = AdvancedCompiler().compile(get_preset("space-ambient").operations)
    assert plan.filters == [
        "loudnorm=I=-20:LRA=7:tp=-2",
        "equalizer=f=200:width=100:g=1.5,equalizer=f=8000:width=2000:g=1.2",
        "extrastereo=m=1.5",
        "adelay=150|150",
        "aecho=1:1:150:0.25",
        "aecho=0.8:0.9:400:0.4",
        "tremolo=f=0.3:d=0.2",
        "chorus=0.7:0.9:25:0.25:0.2:0.4",
    ]
