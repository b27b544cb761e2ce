from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from tubely.core.errors import MalformedMedia, ProbeFailure, ProcessFailure
from tubely.ingest.aspect import AspectCategory, classify_aspect
from tubely.ingest.models import Geometry
from tubely.ingest.probe import FFprobeProber, parse_geometry


def _completed(stdout: str = "", stderr: str = "", returncode: int = 0) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=["ffprobe"], returncode=returncode, stdout=stdout, stderr=stderr)


def _streams(*streams: dict) -> str:
    return json.dumps({"streams": list(streams)})


@patch("tubely.ingest.tools.subprocess.run")
def test_probe_landscape(mock_run):
    mock_run.return_value = _completed(_streams({"width": 1920, "height": 1080}))

    geometry = FFprobeProber().probe(Path("/fake/path.mp4"))

    assert geometry == Geometry(1920, 1080)
    assert classify_aspect(geometry) is AspectCategory.landscape


@patch("tubely.ingest.tools.subprocess.run")
def test_probe_portrait(mock_run):
    mock_run.return_value = _completed(_streams({"width": 1080, "height": 1920}))

    assert classify_aspect(FFprobeProber().probe(Path("/fake/path.mp4"))) is AspectCategory.portrait


@patch("tubely.ingest.tools.subprocess.run")
def test_probe_other(mock_run):
    mock_run.return_value = _completed(_streams({"width": 800, "height": 600}))

    assert classify_aspect(FFprobeProber().probe(Path("/fake/path.mp4"))) is AspectCategory.other


@patch("tubely.ingest.tools.subprocess.run")
def test_probe_invokes_ffprobe_for_first_video_stream(mock_run):
    mock_run.return_value = _completed(_streams({"width": 640, "height": 360}))

    FFprobeProber("/opt/ffmpeg/bin/ffprobe", timeout_s=5).probe(Path("/media/in.mp4"))

    args, kwargs = mock_run.call_args
    assert args[0] == [
        "/opt/ffmpeg/bin/ffprobe",
        "-v",
        "error",
        "-select_streams",
        "v:0",
        "-show_entries",
        "stream=width,height",
        "-of",
        "json",
        "/media/in.mp4",
    ]
    assert kwargs["timeout"] == 5
    assert kwargs["check"] is False


@patch("tubely.ingest.tools.subprocess.run")
def test_probe_zero_dimensions_are_malformed(mock_run):
    mock_run.return_value = _completed(_streams({"width": 0, "height": 0}))

    with pytest.raises(MalformedMedia, match="Invalid video dimensions"):
        FFprobeProber().probe(Path("/fake/path.mp4"))


@patch("tubely.ingest.tools.subprocess.run")
def test_probe_nonzero_exit_raises_probe_failure(mock_run):
    mock_run.return_value = _completed(stderr="/fake/path.mp4: Invalid data found", returncode=1)

    with pytest.raises(ProbeFailure) as excinfo:
        FFprobeProber().probe(Path("/fake/path.mp4"))

    assert isinstance(excinfo.value, ProcessFailure)
    assert excinfo.value.exit_code == 1
    assert "Invalid data found" in excinfo.value.stderr
    assert "ffprobe exited with code 1" in str(excinfo.value)


@patch("tubely.ingest.tools.subprocess.run", side_effect=FileNotFoundError("ffprobe"))
def test_probe_missing_binary_is_a_process_failure(_mock_run):
    with pytest.raises(ProbeFailure) as excinfo:
        FFprobeProber().probe(Path("/fake/path.mp4"))
    assert excinfo.value.exit_code is None


@patch(
    "tubely.ingest.tools.subprocess.run",
    side_effect=subprocess.TimeoutExpired(cmd=["ffprobe"], timeout=1, output=b"", stderr=b"stalled"),
)
def test_probe_timeout_is_a_process_failure(_mock_run):
    with pytest.raises(ProbeFailure) as excinfo:
        FFprobeProber(timeout_s=1).probe(Path("/fake/path.mp4"))
    assert excinfo.value.stderr == "stalled"


@patch("tubely.ingest.tools.subprocess.run")
def test_probe_unparseable_output_is_malformed(mock_run):
    mock_run.return_value = _completed("not json")

    with pytest.raises(MalformedMedia):
        FFprobeProber().probe(Path("/fake/path.mp4"))


def test_parse_geometry_uses_first_stream_only():
    payload = {"streams": [{"width": 1080, "height": 1920}, {"width": 1920, "height": 1080}]}
    assert parse_geometry(payload) == Geometry(1080, 1920)


def test_parse_geometry_accepts_numeric_strings():
    assert parse_geometry({"streams": [{"width": "1280", "height": "720"}]}) == Geometry(1280, 720)


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"streams": []},
        {"streams": [{}]},
        {"streams": [{"width": 1920}]},
        {"streams": [{"width": 1920, "height": 0}]},
        {"streams": [{"width": -1, "height": 1080}]},
        {"streams": [{"width": "N/A", "height": 1080}]},
        {"streams": [{"width": True, "height": 1080}]},
        {"streams": ["video"]},
    ],
)
def test_parse_geometry_rejects_unusable_payloads(payload):
    with pytest.raises(MalformedMedia):
        parse_geometry(payload)
