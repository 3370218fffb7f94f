from audio_tweaker.models import (
    AdvancedOperation,
    DynamicsOperation,
    LimiterSettings,
    OperationSet,
    VariationOperation,
    VolumeOperation,
)
from audio_tweaker.variations import SeededRandom, generate_variations, resolve_seed


def test_lcg_stream():
    rng = SeededRandom(42)
    assert rng.next() == 1083814273 / 2**32
    state = 1083814273
    state = (state * 1664525 + 1013904223) % 2**32
    assert rng.next() == state / 2**32


def test_values_in_unit_interval():
    rng = SeededRandom(7)
    values = [rng.next() for _ in range(500)]
    assert all(0 <= value < 1 for value in values)


def test_same_seed_same_variations():
    params = VariationOperation(count=5, pitch_range=2, volume_range=3, spectral_range=2, timing_range=1, seed=1234)
    seed_a, first = generate_variations(params)
    seed_b, second = generate_variations(params)
    assert seed_a == seed_b == 1234
    assert [ops.model_dump_json() for ops in first] == [ops.model_dump_json() for ops in second]


def test_different_seeds_differ():
    _, first = generate_variations(VariationOperation(count=3, pitch_range=2, seed=1))
    _, second = generate_variations(VariationOperation(count=3, pitch_range=2, seed=2))
    assert first != second


def test_draw_order_pitch_bass_treble_tempo():
    params = VariationOperation(count=2, pitch_range=2, spectral_range=3, timing_range=1, seed=99)
    _, variations = generate_variations(params)
    rng = SeededRandom(99)
    for ops in variations:
        advanced = ops.advanced
        assert advanced.pitch.semitones == (rng.next() - 0.5) * 2 * 2
        assert advanced.spectral.bass_boost == (rng.next() - 0.5) * 2 * 3
        assert advanced.spectral.treble_boost == (rng.next() - 0.5) * 2 * 3
        assert advanced.tempo.factor == 1 + (rng.next() - 0.5) * 0.2
        assert advanced.tempo.preserve_pitch is True


def test_perturbations_stay_in_range():
    params = VariationOperation(count=20, pitch_range=12, volume_range=10, spectral_range=6, timing_range=1, seed=5)
    _, variations = generate_variations(params)
    assert len(variations) == 20
    for ops in variations:
        assert -12 <= ops.advanced.pitch.semitones <= 12
        assert -6 <= ops.advanced.spectral.bass_boost <= 6
        assert 0.9 <= ops.advanced.tempo.factor <= 1.1
        assert -10 <= ops.volume.adjust_db <= 10


def test_unset_ranges_leave_fields_alone():
    _, variations = generate_variations(VariationOperation(count=2, seed=3))
    for ops in variations:
        assert ops.advanced is None
        assert ops.volume is None


def test_base_operations_are_kept_under_perturbation():
    base = OperationSet(
        volume=VolumeOperation(normalize=True),
        advanced=AdvancedOperation(dynamics=DynamicsOperation(limiter=LimiterSettings(threshold=-1))),
    )
    _, variations = generate_variations(VariationOperation(count=2, pitch_range=1, volume_range=2, seed=8), base)
    for ops in variations:
        assert ops.volume.normalize is True
        assert ops.volume.adjust_db is not None
        assert ops.advanced.dynamics == base.advanced.dynamics
        assert ops.advanced.pitch is not None


def test_random_seed_when_unset():
    seed = resolve_seed(None)
    assert 0 <= seed < 1_000_000
    assert resolve_seed(17) == 17
