"""In-process extractor built on the yt_dlp Python package."""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yt_dlp

from extraction.base import ClientIdentity, ExtractionResult, ExtractionStrategy, MediaExtractor


def parse_extractor_args(hints: Iterable[str]) -> Dict[str, Dict[str, List[str]]]:
    """
    Convert CLI-style hints (``ie:key=value;key=value``) into the nested
    mapping the YoutubeDL options expect.
    """
    parsed: Dict[str, Dict[str, List[str]]] = {}
    for hint in hints:
        extractor, _, pairs = hint.partition(":")
        bucket = parsed.setdefault(extractor.strip().lower(), {})
        for pair in pairs.split(";"):
            key, sep, value = pair.partition("=")
            if not sep or not key.strip():
                continue
            bucket.setdefault(key.strip(), []).extend(v.strip() for v in value.split(","))
    return parsed


def build_ydl_options(strategy: ExtractionStrategy, identity: ClientIdentity) -> Dict[str, Any]:
    opts: Dict[str, Any] = {
        "quiet": True,
        "no_warnings": True,
        "geo_bypass": True,
        "nocheckcertificate": True,
        "http_headers": {"User-Agent": identity.user_agent, "Referer": identity.referer},
    }
    if identity.cookies_file:
        opts["cookiefile"] = identity.cookies_file
    if identity.proxy:
        opts["proxy"] = identity.proxy
    if strategy.format:
        opts["format"] = strategy.format
    if strategy.extractor_args:
        opts["extractor_args"] = parse_extractor_args(strategy.extractor_args)
    return opts


def _media_urls(info: Dict[str, Any]) -> List[str]:
    entries = info.get("entries")
    if entries:
        info = next((entry for entry in entries if entry), {})
    requested = info.get("requested_formats") or []
    urls = [fmt.get("url") for fmt in requested if fmt.get("url")]
    if not urls and info.get("url"):
        urls = [info["url"]]
    return urls


def _extract_urls_sync(url: str, opts: Dict[str, Any]) -> str:
    with yt_dlp.YoutubeDL(opts) as ydl:
        info = ydl.extract_info(url, download=False) or {}
    return "\n".join(_media_urls(info))


def _download_bytes_sync(url: str, opts: Dict[str, Any]) -> bytes:
    with tempfile.TemporaryDirectory(prefix="media_") as tmp_dir:
        opts = {**opts, "outtmpl": str(Path(tmp_dir) / "audio.%(ext)s"), "overwrites": True}
        with yt_dlp.YoutubeDL(opts) as ydl:
            ydl.download([url])
        matches = sorted(Path(tmp_dir).glob("audio*"))
        if not matches:
            raise FileNotFoundError("Audio not found after download")
        return matches[0].read_bytes()


class YtDlpLibraryExtractor(MediaExtractor):
    """Runs yt_dlp in a worker thread; no external binary required."""

    name = "library"

    def __init__(self, timeout_seconds: Optional[float] = 120.0) -> None:
        self.timeout_seconds = timeout_seconds

    async def _call(self, func, url: str, opts: Dict[str, Any]) -> ExtractionResult:
        """
        Run one yt_dlp call in a worker thread.

        A timeout abandons the call but cannot stop the thread; it finishes
        in the background. Every byte download writes into its own
        temporary directory, so a lingering thread never shares a target
        with the strategy that runs after it.
        """
        try:
            output = await asyncio.wait_for(
                asyncio.to_thread(func, url, opts),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            return ExtractionResult(ok=False, error=f"yt_dlp timed out after {self.timeout_seconds:g}s")
        except Exception as exc:
            return ExtractionResult(ok=False, error=str(exc) or type(exc).__name__)
        return ExtractionResult(ok=True, output=output)

    async def extract_media_url(
        self, url: str, strategy: ExtractionStrategy, identity: ClientIdentity
    ) -> ExtractionResult:
        return await self._call(_extract_urls_sync, url, build_ydl_options(strategy, identity))

    async def download_audio_bytes(
        self, url: str, strategy: ExtractionStrategy, identity: ClientIdentity
    ) -> ExtractionResult:
        return await self._call(_download_bytes_sync, url, build_ydl_options(strategy, identity))
