from __future__ import annotations

import subprocess
from types import SimpleNamespace

import pytest

from liquidcue.errors import MeasurementError
from liquidcue.samplers import BaseSampler, FfmpegSampler, LoudnessSampler, parse_ebur128_log
from liquidcue.samplers import ffmpeg as ffmpeg_module

EBUR128_REPORT = """\
Input #0, mp3, from 'Zażółć - Song.mp3':
  Duration: 00:03:00.05, start: 0.025057, bitrate: 320 kb/s
[Parsed_ebur128_0 @ 0x55d0c8a0] t: 0.1       TARGET:-23 LUFS    M:-120.7 S:-120.7     I: -70.0 LUFS       LRA:   0.0 LU
[Parsed_ebur128_0 @ 0x55d0c8a0] t: 0.2       TARGET:-23 LUFS    M: -60.2 S:-120.7     I: -70.0 LUFS       LRA:   0.0 LU
[Parsed_ebur128_0 @ 0x55d0c8a0] t: 0.4       TARGET:-23 LUFS    M: -21.3 S:-120.7     I: -21.3 LUFS       LRA:   0.0 LU
[Parsed_ebur128_0 @ 0x55d0c8a0] t: 179.9     TARGET:-23 LUFS    M: -45.0 S: -30.1     I: -14.2 LUFS       LRA:   6.1 LU
size=N/A time=00:02:59.97 bitrate=N/A speed= 800x\rsize=N/A time=00:03:00.05 bitrate=N/A speed= 812x
[Parsed_ebur128_0 @ 0x55d0c8a0] Summary:

  Integrated loudness:
    I:         -14.2 LUFS
    Threshold: -24.5 LUFS

  Loudness range:
    LRA:         6.1 LU
    Threshold: -34.6 LUFS
    LRA low:   -18.9 LUFS
    LRA high:  -12.8 LUFS
"""


def test_parse_report_extracts_samples_loudness_and_duration() -> None:
    profile = parse_ebur128_log(EBUR128_REPORT)

    assert [(s.time, s.momentary) for s in profile.samples] == [
        (0.1, -120.7),
        (0.2, -60.2),
        (0.4, -21.3),
        (179.9, -45.0),
    ]
    assert profile.integrated_loudness == pytest.approx(-14.2)
    assert profile.duration == pytest.approx(180.05)


def test_parse_report_without_progress_uses_last_sample_time() -> None:
    report = "\n".join(
        line for line in EBUR128_REPORT.splitlines() if "time=" not in line
    )

    profile = parse_ebur128_log(report)

    assert profile.duration == pytest.approx(179.9)


def test_parse_report_without_samples_fails() -> None:
    with pytest.raises(MeasurementError, match="no loudness samples"):
        parse_ebur128_log("Input #0, mp3\nInvalid data found when processing input\n")


def test_parse_report_without_summary_fails() -> None:
    report = EBUR128_REPORT.split("Summary:")[0]

    with pytest.raises(MeasurementError, match="integrated loudness"):
        parse_ebur128_log(report)


def test_parse_report_rejects_garbled_numbers() -> None:
    report = EBUR128_REPORT.replace("M: -21.3", "M:-2x.3")

    with pytest.raises(MeasurementError, match="momentary loudness"):
        parse_ebur128_log(report)


def test_sampler_satisfies_protocol() -> None:
    sampler = FfmpegSampler()

    assert isinstance(sampler, LoudnessSampler)
    assert isinstance(sampler, BaseSampler)
    assert sampler.name == "ffmpeg-ebur128"


def test_command_disables_video_streams() -> None:
    cmd = FfmpegSampler(binary="/opt/ffmpeg").command("cover art.mp3")

    assert cmd[0] == "/opt/ffmpeg"
    assert cmd[cmd.index("-i") + 1] == "cover art.mp3"
    assert "-vn" in cmd
    assert cmd[cmd.index("-af") + 1] == "ebur128"


def test_measure_decodes_invalid_utf8(monkeypatch) -> None:
    calls: list[dict] = []

    def fake_run(cmd, **kwargs):
        calls.append(kwargs)
        stderr = b"title : \xff\xfe broken tag\n" + EBUR128_REPORT.encode("utf-8")
        return SimpleNamespace(returncode=0, stdout=b"", stderr=stderr)

    monkeypatch.setattr(ffmpeg_module.subprocess, "run", fake_run)

    profile = FfmpegSampler(timeout=30).measure("song.mp3")

    assert len(profile.samples) == 4
    assert calls[0]["timeout"] == 30
    assert calls[0]["capture_output"] is True


def test_measure_reports_missing_binary(monkeypatch) -> None:
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(2, "No such file or directory")

    monkeypatch.setattr(ffmpeg_module.subprocess, "run", fake_run)

    with pytest.raises(MeasurementError, match="could not launch ffmpeg") as excinfo:
        FfmpegSampler().measure("song.mp3")

    assert excinfo.value.path == "song.mp3"


def test_measure_reports_timeout(monkeypatch) -> None:
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(ffmpeg_module.subprocess, "run", fake_run)

    with pytest.raises(MeasurementError, match="timed out after 5s"):
        FfmpegSampler(timeout=5).measure("hang.mp3")


def test_zero_timeout_waits_forever() -> None:
    assert FfmpegSampler(timeout=0).timeout is None


def test_measure_reports_ffmpeg_failure_with_last_line(monkeypatch) -> None:
    def fake_run(cmd, **kwargs):
        return SimpleNamespace(
            returncode=1,
            stdout=b"",
            stderr=b"missing.mp3: No such file or directory\n",
        )

    monkeypatch.setattr(ffmpeg_module.subprocess, "run", fake_run)

    with pytest.raises(MeasurementError) as excinfo:
        FfmpegSampler().measure("missing.mp3")

    assert "exited with status 1" in str(excinfo.value)
    assert "No such file or directory" in str(excinfo.value)
    assert excinfo.value.path == "missing.mp3"


def test_measure_handles_missing_stderr(monkeypatch) -> None:
    """Some subprocess wrappers may return stderr as None."""

    def fake_run(cmd, **kwargs):
        return SimpleNamespace(returncode=1, stdout=None, stderr=None)

    monkeypatch.setattr(ffmpeg_module.subprocess, "run", fake_run)

    with pytest.raises(MeasurementError, match="exited with status 1"):
        FfmpegSampler().measure("broken.mp3")
