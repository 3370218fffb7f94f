import asyncio
import os

from conftest import FakeEngine, make_audio_file

from audio_tweaker.compiler import AdvancedCompiler, BaseCompiler
from audio_tweaker.models import OperationSet, VolumeOperation
from audio_tweaker.presets import get_preset
from audio_tweaker.runner import Job, JobRunner

GAIN = OperationSet(volume=VolumeOperation(adjust_db=-3))


def run(runner, job):
    return asyncio.run(runner.run(job))


def test_successful_job(tmp_path, input_wav):
    engine = FakeEngine()
    output = str(tmp_path / "out" / "nested" / "result.wav")
    result = run(JobRunner(AdvancedCompiler(), engine), Job.single(input_wav, output, GAIN))
    assert result.success is True
    assert result.error is None
    assert result.output_path == output
    assert result.operations == GAIN
    assert result.processing_time_ms >= 0
    assert os.path.isfile(output)
    plan, inputs, _ = engine.calls[0]
    assert plan.filters == ["volume=-3dB"]
    assert inputs == [input_wav]


def test_missing_input_fails_before_engine(tmp_path):
    engine = FakeEngine()
    job = Job.single(str(tmp_path / "missing.wav"), str(tmp_path / "out.wav"), GAIN)
    result = run(JobRunner(AdvancedCompiler(), engine), job)
    assert result.success is False
    assert "not found" in result.error
    assert engine.calls == []


def test_unsupported_extension(tmp_path):
    engine = FakeEngine()
    source = make_audio_file(tmp_path, "notes.txt")
    result = run(JobRunner(AdvancedCompiler(), engine), Job.single(source, str(tmp_path / "o.wav"), GAIN))
    assert result.success is False
    assert "Unsupported input format" in result.error
    assert engine.calls == []


def test_directory_input_is_rejected(tmp_path):
    folder = tmp_path / "folder.wav"
    folder.mkdir()
    result = run(JobRunner(AdvancedCompiler(), FakeEngine()), Job.single(str(folder), str(tmp_path / "o.wav"), GAIN))
    assert result.success is False
    assert "not a regular file" in result.error


def test_existing_output_without_overwrite(tmp_path, input_wav):
    engine = FakeEngine()
    output = make_audio_file(tmp_path, "exists.wav")
    result = run(JobRunner(AdvancedCompiler(), engine), Job.single(input_wav, output, GAIN, overwrite=False))
    assert result.success is False
    assert "already exists" in result.error
    assert engine.calls == []


def test_existing_output_with_overwrite(tmp_path, input_wav):
    engine = FakeEngine()
    output = make_audio_file(tmp_path, "exists.wav")
    result = run(JobRunner(AdvancedCompiler(), engine), Job.single(input_wav, output, GAIN, overwrite=True))
    assert result.success is True
    with open(output, "rb") as f:
        assert f.read() == b"processed"


def test_engine_failure_is_reported(tmp_path, input_wav):
    engine = FakeEngine(fail_on=["bad.wav"])
    result = run(JobRunner(AdvancedCompiler(), engine), Job.single(input_wav, str(tmp_path / "bad.wav"), GAIN))
    assert result.success is False
    assert "Invalid data found" in result.error


def test_unexpected_exception_becomes_result(tmp_path, input_wav):
    class BrokenEngine:
        async def execute(self, plan, inputs, output):
            raise KeyError("codec")

    result = run(JobRunner(AdvancedCompiler(), BrokenEngine()), Job.single(input_wav, str(tmp_path / "o.wav"), GAIN))
    assert result.success is False
    assert result.error.startswith("Unexpected error")


def test_single_input_layering_repeats_input(tmp_path, input_wav):
    engine = FakeEngine()
    operations = get_preset("layered-impact").operations
    result = run(JobRunner(AdvancedCompiler(), engine), Job.single(input_wav, str(tmp_path / "impact.wav"), operations))
    assert result.success is True
    plan, inputs, _ = engine.calls[0]
    assert inputs == [input_wav] * 3
    assert plan.graph_output == "final"
    assert "amix=inputs=3" in plan.graph


def test_base_runner_never_layers(tmp_path, input_wav):
    engine = FakeEngine()
    operations = get_preset("layered-impact").operations
    run(JobRunner(BaseCompiler(), engine), Job.single(input_wav, str(tmp_path / "impact.wav"), operations))
    plan, inputs, _ = engine.calls[0]
    assert inputs == [input_wav]
    assert plan.graph is None
    assert plan.filters == ["loudnorm=I=-14:LRA=7:tp=-2"]


def test_multi_input_job_reports_joined_inputs(tmp_path):
    first = make_audio_file(tmp_path, "a.wav")
    second = make_audio_file(tmp_path, "b.wav")
    job = Job(input_paths=(first, second), output_path=str(tmp_path / "mix.wav"), operations=OperationSet())
    assert job.input_path == f"{first}, {second}"
