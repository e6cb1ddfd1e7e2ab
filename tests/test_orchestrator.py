import asyncio

import numpy as np
import pytest

from audio_pipeline.models import AudioSource, EncodedUnit, Job, PCMBuffer, UnitResult
from audio_pipeline.wav import encode_wav
from common.config import TranscriberSettings
from common.schemas import UnitStatus
from transcriber_service.errors import (
    InvalidCredential,
    MissingAudioSource,
    MissingInstruction,
    MissingTranscript,
    NoTranscriptionExtracted,
    ServiceError,
)
from transcriber_service.orchestrator import (
    run_units,
    transcribe,
    transform,
    validate_credential,
)


class FakeCapability:
    """Returns scripted outcomes per unit index and records every call."""

    def __init__(self, outcomes=None, delays=None):
        self.outcomes = outcomes or {}
        self.delays = delays or {}
        self.calls = []
        self.completed = []

    async def transcribe(self, unit, language):
        self.calls.append((unit.index, language))
        await asyncio.sleep(self.delays.get(unit.index, 0))
        self.completed.append(unit.index)
        outcome = self.outcomes.get(unit.index, f"text {unit.index}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeChat:
    def __init__(self, reply="transformed"):
        self.reply = reply
        self.prompts = []

    async def chat_completion(self, prompt):
        self.prompts.append(prompt)
        return self.reply


def _units(count, duration=1.0):
    return [EncodedUnit(index=i, data=b"RIFF", duration=duration) for i in range(count)]


def _wav(seconds, rate=16000):
    samples = (0.3 * np.sin(np.arange(int(seconds * rate)) / 10)).astype(np.float32)
    return encode_wav(PCMBuffer(sample_rate=rate, samples=samples))


class TestJob:
    def test_transcript_joins_ok_texts_in_order(self):
        job = Job.from_results([
            UnitResult(index=2, status=UnitStatus.ok, text="three"),
            UnitResult(index=0, status=UnitStatus.ok, text=" one"),
            UnitResult(index=1, status=UnitStatus.failed),
        ])
        assert job.transcript == "one three"
        assert job.success_count == 2
        assert job.failure_count == 1

    def test_empty_job(self):
        job = Job.from_results([])
        assert job.transcript == ""
        assert job.success_count == 0


class TestCredential:
    def test_strips_and_accepts_prefix(self):
        assert validate_credential("  sk-abc \n") == "sk-abc"

    @pytest.mark.parametrize("bad", [None, "", "   ", "pk-abc", "abc"])
    def test_rejects_bad_shape(self, bad):
        with pytest.raises(InvalidCredential):
            validate_credential(bad)


class TestRunUnits:
    @pytest.mark.asyncio
    async def test_statuses(self):
        capability = FakeCapability(outcomes={
            1: "   ",
            2: ServiceError(429, "Rate limit reached"),
            3: ConnectionError("boom"),
        })
        units = _units(5)
        units[4] = EncodedUnit(index=4, data=b"RIFF", duration=0.05)
        job = await run_units(units, capability)

        assert [r.status for r in job.results] == [
            UnitStatus.ok, UnitStatus.empty, UnitStatus.failed, UnitStatus.failed, UnitStatus.skipped,
        ]
        assert job.transcript == "text 0"
        assert job.failure_count == 4

    @pytest.mark.asyncio
    async def test_short_unit_never_reaches_service(self):
        capability = FakeCapability()
        units = [EncodedUnit(index=0, data=b"RIFF", duration=0.099)]
        job = await run_units(units, capability)
        assert capability.calls == []
        assert job.results[0].status is UnitStatus.skipped

    @pytest.mark.asyncio
    async def test_unknown_duration_is_decoded(self):
        capability = FakeCapability()
        units = [
            EncodedUnit(index=0, data=_wav(0.05)),
            EncodedUnit(index=1, data=_wav(0.5)),
        ]
        job = await run_units(units, capability)
        assert [c[0] for c in capability.calls] == [1]
        assert [r.status for r in job.results] == [UnitStatus.skipped, UnitStatus.ok]

    @pytest.mark.asyncio
    async def test_undecodable_unit_skipped(self, monkeypatch):
        def no_ffmpeg(*args, **kwargs):
            raise FileNotFoundError("ffmpeg")

        monkeypatch.setattr("audio_pipeline.decoder.subprocess.run", no_ffmpeg)
        capability = FakeCapability()
        job = await run_units([EncodedUnit(index=0, data=b"garbage bytes")], capability)
        assert capability.calls == []
        assert job.results[0].status is UnitStatus.skipped

    @pytest.mark.asyncio
    async def test_ffmpeg_launch_error_skips_only_that_unit(self, monkeypatch):
        def not_executable(*args, **kwargs):
            raise PermissionError("ffmpeg not executable")

        monkeypatch.setattr("audio_pipeline.decoder.subprocess.run", not_executable)
        capability = FakeCapability()
        units = [
            EncodedUnit(index=0, data=b"garbage bytes"),
            EncodedUnit(index=1, data=b"RIFF", duration=1.0),
        ]
        job = await run_units(units, capability)
        assert [r.status for r in job.results] == [UnitStatus.skipped, UnitStatus.ok]
        assert [c[0] for c in capability.calls] == [1]

    @pytest.mark.asyncio
    async def test_sequential_by_default(self):
        capability = FakeCapability(delays={0: 0.03, 1: 0.01, 2: 0.0})
        job = await run_units(_units(3), capability, language="en")
        assert capability.completed == [0, 1, 2]
        assert all(lang == "en" for _, lang in capability.calls)
        assert job.transcript == "text 0 text 1 text 2"

    @pytest.mark.asyncio
    async def test_out_of_order_completion_keeps_index_order(self):
        capability = FakeCapability(delays={0: 0.05, 1: 0.03, 2: 0.01, 3: 0.0})
        job = await run_units(_units(4), capability, max_concurrency=4)
        assert capability.completed == [3, 2, 1, 0]
        assert [r.index for r in job.results] == [0, 1, 2, 3]
        assert job.transcript == "text 0 text 1 text 2 text 3"


class TestTranscribe:
    @pytest.fixture
    def settings(self):
        return TranscriberSettings(chunk_duration_s=1.0, language="pt")

    @pytest.mark.asyncio
    async def test_aggregates_all_chunks(self, settings):
        capability = FakeCapability()
        job = await transcribe(AudioSource(data=_wav(2.5)), "sk-test", capability, settings)
        assert job.transcript == "text 0 text 1 text 2"
        assert (job.success_count, job.failure_count) == (3, 0)
        assert [c[1] for c in capability.calls] == ["pt", "pt", "pt"]

    @pytest.mark.asyncio
    async def test_one_success_is_enough(self, settings):
        capability = FakeCapability(outcomes={0: ServiceError(401, "bad key"), 2: ""})
        job = await transcribe(AudioSource(data=_wav(2.5)), "sk-test", capability, settings)
        assert job.transcript == "text 1"
        assert job.success_count == 1
        assert job.failure_count == 2

    @pytest.mark.asyncio
    async def test_all_failed_is_fatal(self, settings):
        capability = FakeCapability(outcomes={0: "", 1: ServiceError(500, "oops"), 2: TimeoutError()})
        with pytest.raises(NoTranscriptionExtracted) as info:
            await transcribe(AudioSource(data=_wav(2.5)), "sk-test", capability, settings)
        assert info.value.job.failure_count == 3

    @pytest.mark.asyncio
    async def test_bad_credential_rejected_before_processing(self, settings):
        capability = FakeCapability()
        with pytest.raises(InvalidCredential):
            await transcribe(AudioSource(data=_wav(2.5)), "not-a-key", capability, settings)
        assert capability.calls == []

    @pytest.mark.asyncio
    async def test_missing_source(self, settings):
        capability = FakeCapability()
        with pytest.raises(MissingAudioSource):
            await transcribe(None, "sk-test", capability, settings)
        with pytest.raises(MissingAudioSource):
            await transcribe(AudioSource(data=b""), "sk-test", capability, settings)
        assert capability.calls == []


class TestTransform:
    @pytest.mark.asyncio
    async def test_builds_prompt(self):
        chat = FakeChat()
        result = await transform("the transcript", "  Summarize  ", "sk-test", chat)
        assert result == "transformed"
        assert chat.prompts == ["Summarize\n\n---\n\nTranscription:\nthe transcript"]

    @pytest.mark.asyncio
    async def test_preconditions(self):
        chat = FakeChat()
        with pytest.raises(InvalidCredential):
            await transform("t", "i", "bad", chat)
        with pytest.raises(MissingTranscript):
            await transform("  ", "i", "sk-test", chat)
        with pytest.raises(MissingInstruction):
            await transform("t", "", "sk-test", chat)
        assert chat.prompts == []
