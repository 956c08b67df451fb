import re
import shutil
import subprocess
import tempfile
from pathlib import Path

import pytest
import requests

from movielab import compiler, frames
from movielab.errors import InvalidRequestError, UpstreamError
from movielab.utils.ffprobe import FFprobeInfo


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code
        self.ok = status_code < 400
        self.headers = {"content-type": "video/mp4", "content-length": "10"}


@pytest.mark.parametrize("urls", [[], ["https://cdn/a.mp4"]])
def test_merge_needs_two_urls(urls, tmp_path):
    with pytest.raises(InvalidRequestError):
        compiler.merge_videos(urls, tmp_path)


def test_validate_urls_rejects_dead_link(monkeypatch):
    monkeypatch.setattr(compiler.requests, "head", lambda url, **kw: FakeResponse(404 if "dead" in url else 200))
    compiler.validate_urls(["https://cdn/a.mp4"])
    with pytest.raises(InvalidRequestError, match="dead"):
        compiler.validate_urls(["https://cdn/a.mp4", "https://cdn/dead.mp4"])


def test_validate_urls_network_error(monkeypatch):
    def boom(url, **kw):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(compiler.requests, "head", boom)
    with pytest.raises(InvalidRequestError):
        compiler.validate_urls(["https://cdn/a.mp4"])


@pytest.fixture
def ffmpeg(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/" + name)
    monkeypatch.setattr(
        frames, "get_video_info",
        lambda url, timeout=30: FFprobeInfo(1280, 720, 5.0, 30.0, "h264", True),
    )
    commands = []

    def run(cmd, **kwargs):
        commands.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout=b"\xff\xd8jpeg", stderr=b"")

    monkeypatch.setattr(frames.subprocess, "run", run)
    return commands


def test_extract_last_frame_seeks_near_end(ffmpeg):
    assert frames.extract_last_frame("https://cdn/v.mp4") == b"\xff\xd8jpeg"
    cmd = ffmpeg[0]
    assert cmd[cmd.index("-ss") + 1] == "4.900"
    assert cmd[-1] == "pipe:1"


def test_extract_last_frame_failure(ffmpeg, monkeypatch):
    monkeypatch.setattr(
        frames.subprocess, "run",
        lambda cmd, **kw: subprocess.CompletedProcess(cmd, 1, stdout=b"", stderr=b"boom"),
    )
    with pytest.raises(UpstreamError, match="Failed to extract frame"):
        frames.extract_last_frame("https://cdn/v.mp4")


def test_to_data_url():
    assert frames.to_data_url(b"abc") == "data:image/jpeg;base64,YWJj"


def test_extract_last_frame_without_ffmpeg(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: None)
    with pytest.raises(UpstreamError, match="Failed to extract frame"):
        frames.extract_last_frame("https://cdn/v.mp4")


@pytest.fixture
def merge_run(monkeypatch, tmp_path):
    """Runs merge_videos against fake downloads and a recording ffmpeg.

    The second clip has no audio track.
    """
    monkeypatch.setattr(shutil, "which", lambda name: "/usr/bin/" + name)
    monkeypatch.setattr(compiler.requests, "head", lambda url, **kw: FakeResponse())
    monkeypatch.setattr(compiler, "download", lambda url, path: path.write_bytes(b"raw") and path)
    monkeypatch.setattr(
        compiler, "get_video_info",
        lambda src: FFprobeInfo(640, 480, 5.0, 24.0, "h264", not src.endswith("raw_001.mp4")),
    )

    temp_dirs = []
    real_mkdtemp = tempfile.mkdtemp

    def mkdtemp(**kwargs):
        temp_dirs.append(Path(real_mkdtemp(dir=tmp_path, **kwargs)))
        return str(temp_dirs[-1])

    monkeypatch.setattr(compiler.tempfile, "mkdtemp", mkdtemp)

    state = {"commands": [], "concat_list": None, "fail": False}

    def run(cmd, **kwargs):
        state["commands"].append(cmd)
        if "concat" in cmd:
            state["concat_list"] = Path(cmd[cmd.index("-i") + 1]).read_text()
        if state["fail"]:
            return subprocess.CompletedProcess(cmd, 1, stdout=b"", stderr=b"encoder error")
        Path(cmd[-1]).write_bytes(b"merged")
        return subprocess.CompletedProcess(cmd, 0, stdout=b"", stderr=b"")

    monkeypatch.setattr(compiler.subprocess, "run", run)
    state["temp_dirs"] = temp_dirs
    state["output_dir"] = tmp_path / "out"
    return state


def test_merge_videos_writes_merged_file(merge_run):
    output = compiler.merge_videos(["https://cdn/a.mp4", "https://cdn/b.mp4"], merge_run["output_dir"])

    assert output.parent == merge_run["output_dir"]
    assert re.fullmatch(r"merged_\d{8}_\d{6}_\d{6}\.mp4", output.name)
    assert output.read_bytes() == b"merged"

    first, second, concat = merge_run["commands"]
    assert "anullsrc=channel_layout=stereo:sample_rate=44100" not in first
    assert first[first.index("-map", first.index("0:v:0")) + 1] == "0:a:0"
    assert "scale=1280:720" in first[first.index("-vf") + 1]

    assert "anullsrc=channel_layout=stereo:sample_rate=44100" in second
    assert "1:a:0" in second and "-shortest" in second

    assert concat[concat.index("-c") + 1] == "copy"
    lines = merge_run["concat_list"].splitlines()
    assert [line.rsplit("/", 1)[-1] for line in lines] == ["clip_000.mp4'", "clip_001.mp4'"]

    assert not merge_run["temp_dirs"][0].exists()


def test_merge_videos_failure_cleans_up(merge_run):
    merge_run["fail"] = True
    with pytest.raises(UpstreamError, match="Failed to merge videos"):
        compiler.merge_videos(["https://cdn/a.mp4", "https://cdn/b.mp4"], merge_run["output_dir"])
    assert not merge_run["temp_dirs"][0].exists()
    assert not merge_run["output_dir"].exists()


def test_merge_videos_without_ffmpeg(monkeypatch, tmp_path):
    monkeypatch.setattr(shutil, "which", lambda name: None)
    with pytest.raises(UpstreamError, match="Failed to merge videos"):
        compiler.merge_videos(["https://cdn/a.mp4", "https://cdn/b.mp4"], tmp_path)
