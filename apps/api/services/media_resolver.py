"""Source URL -> playable media resolution over a ladder of yt-dlp strategies."""

from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from typing import Optional, Sequence, Set
from urllib.parse import parse_qs, urlsplit

from extraction.base import (
    MOBILE_API_HINT,
    ClientIdentity,
    ExtractionResult,
    ExtractionStrategy,
    MediaExtractor,
)
from services.errors import ResolutionError

logger = logging.getLogger(__name__)

CANONICAL_VIDEO_URL = "https://www.tiktok.com/video/{video_id}"
ID_QUERY_PARAMS = ("video_id", "item_id")
_TIKTOK_HOST_RE = re.compile(r"(^|\.)tiktok\.com$", re.IGNORECASE)
_VIDEO_PATH_RE = re.compile(r"/video/(\d+)")

_materialized_cookie_files: Set[str] = set()

# Tried in order; the first usable result wins.
STRATEGIES: Sequence[ExtractionStrategy] = (
    ExtractionStrategy("audio-mobile-api", "url", "bestaudio/best", (MOBILE_API_HINT,)),
    ExtractionStrategy("av-mobile-api", "url", "mp4*+bestaudio/best/best", (MOBILE_API_HINT,)),
    ExtractionStrategy("generic", "url"),
    ExtractionStrategy("audio-bytes", "bytes", "bestaudio/best"),
)


@dataclass(frozen=True)
class MediaHandle:
    """Either a remote-fetchable URL or the audio bytes themselves."""

    url: Optional[str] = None
    data: Optional[bytes] = field(default=None, repr=False)
    strategy: str = ""

    @classmethod
    def from_url(cls, url: str, strategy: str = "") -> "MediaHandle":
        return cls(url=url, strategy=strategy)

    @classmethod
    def from_bytes(cls, data: bytes, strategy: str = "") -> "MediaHandle":
        return cls(data=data, strategy=strategy)

    @property
    def is_bytes(self) -> bool:
        return self.data is not None


@dataclass(frozen=True)
class ResolverConfig:
    backend: str = "cli"
    ytdlp_binary: str = "yt-dlp"
    proxy: Optional[str] = None
    cookies_file: Optional[str] = None
    timeout_seconds: Optional[float] = 120.0

    @classmethod
    def from_settings(cls, settings) -> "ResolverConfig":
        cookies_file = (settings.TIKTOK_COOKIES_FILE or "").strip() or None
        if not cookies_file and (settings.TIKTOK_COOKIES or "").strip():
            cookies_file = materialize_cookies(settings.TIKTOK_COOKIES)
        timeout = float(settings.RESOLVER_TIMEOUT_SECONDS or 0)
        return cls(
            backend=settings.MEDIA_EXTRACTOR_BACKEND,
            ytdlp_binary=settings.YTDLP_BINARY,
            proxy=(settings.MEDIA_PROXY_URL or "").strip() or None,
            cookies_file=cookies_file,
            timeout_seconds=timeout if timeout > 0 else None,
        )

    def identity(self) -> ClientIdentity:
        return ClientIdentity(proxy=self.proxy, cookies_file=self.cookies_file)


def materialize_cookies(cookies_text: str) -> str:
    """Write Netscape cookie text to a private temp file and return its path."""
    fd, path = tempfile.mkstemp(prefix="tiktok_cookies_", suffix=".txt")
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(cookies_text)
    _materialized_cookie_files.add(path)
    return path


def remove_materialized_cookies() -> int:
    """Delete cookie files written by ``materialize_cookies``; returns how many were removed."""
    removed = 0
    while _materialized_cookie_files:
        path = _materialized_cookie_files.pop()
        try:
            os.remove(path)
            removed += 1
        except FileNotFoundError:
            pass
    return removed


def normalize_source_url(source_url: str) -> str:
    """
    Rewrite share/redirect links to the canonical ``/video/<id>`` form.

    Best effort: anything without a recognizable numeric id comes back
    unchanged.
    """
    try:
        parts = urlsplit(source_url)
    except ValueError:
        return source_url

    host = parts.hostname or ""
    if _TIKTOK_HOST_RE.search(host) and _VIDEO_PATH_RE.search(parts.path):
        return source_url

    query = parse_qs(parts.query)
    for key in ID_QUERY_PARAMS:
        for value in query.get(key, []):
            if value.isdigit():
                return CANONICAL_VIDEO_URL.format(video_id=value)

    match = _VIDEO_PATH_RE.search(parts.path)
    if match:
        return CANONICAL_VIDEO_URL.format(video_id=match.group(1))
    return source_url


def _last_line(text: str) -> str:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return lines[-1] if lines else ""


class MediaResolver:
    """Runs the strategy ladder against a media extractor."""

    def __init__(
        self,
        extractor: MediaExtractor,
        config: Optional[ResolverConfig] = None,
        strategies: Sequence[ExtractionStrategy] = STRATEGIES,
    ) -> None:
        self.extractor = extractor
        self.config = config or ResolverConfig()
        self.strategies = tuple(strategies)

    async def _attempt(self, url: str, strategy: ExtractionStrategy) -> ExtractionResult:
        identity = self.config.identity()
        if strategy.mode == "bytes":
            return await self.extractor.download_audio_bytes(url, strategy, identity)
        return await self.extractor.extract_media_url(url, strategy, identity)

    async def resolve(self, source_url: str) -> MediaHandle:
        url = normalize_source_url(source_url)
        if url != source_url:
            logger.info("Normalized source URL %s -> %s", source_url, url)

        last_error = ""
        for strategy in self.strategies:
            result = await self._attempt(url, strategy)
            if result.usable:
                logger.info("Resolved %s with %s strategy %s", url, self.extractor.name, strategy.name)
                if strategy.mode == "bytes":
                    return MediaHandle.from_bytes(bytes(result.output), strategy=strategy.name)
                return MediaHandle.from_url(_last_line(str(result.output)), strategy=strategy.name)

            last_error = result.error or f"{strategy.name} produced no output"
            logger.warning(
                "Media strategy %s (%s) failed for %s: %s",
                strategy.name, self.extractor.name, url, last_error,
            )

        raise ResolutionError(last_error or "Could not resolve media for this URL")


def build_extractor(config: ResolverConfig) -> MediaExtractor:
    if config.backend == "library":
        from extraction.library import YtDlpLibraryExtractor

        return YtDlpLibraryExtractor(timeout_seconds=config.timeout_seconds)

    from extraction.cli import YtDlpCliExtractor

    return YtDlpCliExtractor(binary=config.ytdlp_binary, timeout_seconds=config.timeout_seconds)


def build_media_resolver(settings) -> MediaResolver:
    config = ResolverConfig.from_settings(settings)
    return MediaResolver(build_extractor(config), config)
