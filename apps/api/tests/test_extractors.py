import asyncio
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from extraction.base import (
    MOBILE_API_HINT,
    MOBILE_USER_AGENT,
    TIKTOK_REFERER,
    ClientIdentity,
    ExtractionStrategy,
)
from extraction.cli import YtDlpCliExtractor, build_cli_args
from extraction.library import YtDlpLibraryExtractor, build_ydl_options, parse_extractor_args

URL = "https://www.tiktok.com/@creator/video/1"
AUDIO_HINT = ExtractionStrategy("audio-mobile-api", "url", "bestaudio/best", (MOBILE_API_HINT,))
BYTES = ExtractionStrategy("audio-bytes", "bytes", "bestaudio/best")
GENERIC = ExtractionStrategy("generic", "url")


def _script(tmp_path: Path, body: str) -> str:
    path = tmp_path / "fake-yt-dlp"
    path.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
    os.chmod(path, 0o755)
    return str(path)


def test_cli_args_for_url_strategy_with_hint():
    args = build_cli_args(URL, AUDIO_HINT, ClientIdentity())
    assert args == [
        "--no-warnings", "--geo-bypass", "--no-check-certificate",
        "--referer", TIKTOK_REFERER,
        "--user-agent", MOBILE_USER_AGENT,
        "--extractor-args", MOBILE_API_HINT,
        "-g",
        "-f", "bestaudio/best",
        URL,
    ]


def test_cli_args_for_bytes_strategy_with_cookies_and_proxy():
    identity = ClientIdentity(proxy="http://proxy:3128", cookies_file="/tmp/c.txt")
    args = build_cli_args(URL, BYTES, identity)
    assert args == [
        "--no-warnings", "--geo-bypass", "--no-check-certificate",
        "--cookies", "/tmp/c.txt",
        "--proxy", "http://proxy:3128",
        "--referer", TIKTOK_REFERER,
        "--user-agent", MOBILE_USER_AGENT,
        "-f", "bestaudio/best",
        "-o", "-",
        URL,
    ]


def test_cli_args_for_generic_strategy_has_no_format():
    args = build_cli_args(URL, GENERIC, ClientIdentity())
    assert "-f" not in args
    assert "--extractor-args" not in args
    assert args[-2:] == ["-g", URL]


@pytest.mark.asyncio
async def test_cli_extractor_returns_stdout(tmp_path):
    binary = _script(tmp_path, 'echo "https://cdn.example/a.m4a"')
    result = await YtDlpCliExtractor(binary=binary).extract_media_url(URL, AUDIO_HINT, ClientIdentity())

    assert result.ok is True
    assert result.usable is True
    assert result.output == "https://cdn.example/a.m4a"


@pytest.mark.asyncio
async def test_cli_extractor_reports_stderr_on_failure(tmp_path):
    binary = _script(tmp_path, 'echo "ERROR: Unsupported URL" >&2\nexit 1')
    result = await YtDlpCliExtractor(binary=binary).extract_media_url(URL, GENERIC, ClientIdentity())

    assert result.ok is False
    assert result.error == "ERROR: Unsupported URL"


@pytest.mark.asyncio
async def test_cli_extractor_reports_exit_status_without_stderr(tmp_path):
    binary = _script(tmp_path, "exit 2")
    result = await YtDlpCliExtractor(binary=binary).extract_media_url(URL, GENERIC, ClientIdentity())

    assert result.ok is False
    assert result.error == "exit status 2"


@pytest.mark.asyncio
async def test_cli_extractor_missing_binary(tmp_path):
    binary = str(tmp_path / "does-not-exist")
    result = await YtDlpCliExtractor(binary=binary).extract_media_url(URL, GENERIC, ClientIdentity())

    assert result.ok is False
    assert result.error == f"{binary} executable not found"


@pytest.mark.asyncio
async def test_cli_extractor_times_out(tmp_path):
    binary = _script(tmp_path, "exec sleep 5")
    extractor = YtDlpCliExtractor(binary=binary, timeout_seconds=0.2)
    result = await extractor.extract_media_url(URL, GENERIC, ClientIdentity())

    assert result.ok is False
    assert result.error == f"{binary} timed out after 0.2s"


@pytest.mark.asyncio
async def test_cancelled_extraction_kills_child_process(tmp_path):
    pid_file = tmp_path / "child.pid"
    binary = _script(tmp_path, f'echo $$ > "{pid_file}"\nexec sleep 30')
    extractor = YtDlpCliExtractor(binary=binary, timeout_seconds=None)

    task = asyncio.create_task(extractor.extract_media_url(URL, GENERIC, ClientIdentity()))
    for _ in range(200):
        if pid_file.exists() and pid_file.read_text().strip():
            break
        await asyncio.sleep(0.02)
    pid = int(pid_file.read_text().strip())

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)


@pytest.mark.asyncio
async def test_cli_extractor_downloads_bytes(tmp_path):
    binary = _script(tmp_path, "printf 'ID3audio'")
    result = await YtDlpCliExtractor(binary=binary).download_audio_bytes(URL, BYTES, ClientIdentity())

    assert result.ok is True
    assert result.output == b"ID3audio"


def test_parse_extractor_args():
    assert parse_extractor_args([MOBILE_API_HINT]) == {
        "tiktok": {"app_info": ["android"], "download_api": ["tiktok"]},
    }
    assert parse_extractor_args(["TikTok:api_hostname=a,b;junk"]) == {
        "tiktok": {"api_hostname": ["a", "b"]},
    }


def test_ydl_options_mirror_cli_identity():
    identity = ClientIdentity(proxy="http://proxy:3128", cookies_file="/tmp/c.txt")
    opts = build_ydl_options(AUDIO_HINT, identity)

    assert opts["http_headers"] == {"User-Agent": MOBILE_USER_AGENT, "Referer": TIKTOK_REFERER}
    assert opts["cookiefile"] == "/tmp/c.txt"
    assert opts["proxy"] == "http://proxy:3128"
    assert opts["format"] == "bestaudio/best"
    assert opts["extractor_args"] == {"tiktok": {"app_info": ["android"], "download_api": ["tiktok"]}}
    assert opts["geo_bypass"] is True

    plain = build_ydl_options(GENERIC, ClientIdentity())
    assert "format" not in plain
    assert "proxy" not in plain
    assert "extractor_args" not in plain


class FakeYoutubeDL:
    info = {}
    error = None
    instances = []

    def __init__(self, opts):
        self.opts = opts
        FakeYoutubeDL.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def extract_info(self, url, download=False):
        if self.error:
            raise self.error
        return self.info

    def download(self, urls):
        Path(self.opts["outtmpl"].replace("%(ext)s", "m4a")).write_bytes(b"ID3library")
        return 0


@pytest.fixture
def fake_ydl():
    FakeYoutubeDL.info = {}
    FakeYoutubeDL.error = None
    FakeYoutubeDL.instances = []
    with patch("extraction.library.yt_dlp.YoutubeDL", FakeYoutubeDL):
        yield FakeYoutubeDL


@pytest.mark.asyncio
async def test_library_extractor_joins_requested_format_urls(fake_ydl):
    fake_ydl.info = {
        "requested_formats": [
            {"url": "https://cdn.example/video.mp4"},
            {"url": "https://cdn.example/audio.m4a"},
        ]
    }
    result = await YtDlpLibraryExtractor().extract_media_url(URL, AUDIO_HINT, ClientIdentity())

    assert result.ok is True
    assert result.output == "https://cdn.example/video.mp4\nhttps://cdn.example/audio.m4a"
    assert fake_ydl.instances[0].opts["format"] == "bestaudio/best"


@pytest.mark.asyncio
async def test_library_extractor_uses_first_playlist_entry(fake_ydl):
    fake_ydl.info = {"entries": [None, {"url": "https://cdn.example/first.mp4"}]}
    result = await YtDlpLibraryExtractor().extract_media_url(URL, GENERIC, ClientIdentity())

    assert result.output == "https://cdn.example/first.mp4"


@pytest.mark.asyncio
async def test_library_extractor_turns_exceptions_into_results(fake_ydl):
    fake_ydl.error = RuntimeError("ERROR: [TikTok] 1: Your IP address is blocked")
    result = await YtDlpLibraryExtractor().extract_media_url(URL, GENERIC, ClientIdentity())

    assert result.ok is False
    assert result.error == "ERROR: [TikTok] 1: Your IP address is blocked"


@pytest.mark.asyncio
async def test_library_extractor_downloads_bytes(fake_ydl):
    result = await YtDlpLibraryExtractor().download_audio_bytes(URL, BYTES, ClientIdentity())

    assert result.ok is True
    assert result.output == b"ID3library"


@pytest.mark.asyncio
async def test_library_downloads_never_share_a_target(fake_ydl):
    extractor = YtDlpLibraryExtractor()
    await extractor.download_audio_bytes(URL, BYTES, ClientIdentity())
    await extractor.download_audio_bytes(URL, BYTES, ClientIdentity())

    targets = [Path(instance.opts["outtmpl"]).parent for instance in fake_ydl.instances]
    assert len(targets) == 2
    assert targets[0] != targets[1]
    assert not any(target.exists() for target in targets)
