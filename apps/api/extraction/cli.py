"""yt-dlp command-line extractor (subprocess)."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import List, Optional

from extraction.base import ClientIdentity, ExtractionResult, ExtractionStrategy, MediaExtractor

logger = logging.getLogger(__name__)


def build_cli_args(url: str, strategy: ExtractionStrategy, identity: ClientIdentity) -> List[str]:
    """Translate a strategy into a yt-dlp argument list."""
    args = ["--no-warnings", "--geo-bypass", "--no-check-certificate"]
    if identity.cookies_file:
        args += ["--cookies", identity.cookies_file]
    if identity.proxy:
        args += ["--proxy", identity.proxy]
    args += ["--referer", identity.referer, "--user-agent", identity.user_agent]
    for hint in strategy.extractor_args:
        args += ["--extractor-args", hint]
    if strategy.mode == "url":
        args.append("-g")
    if strategy.format:
        args += ["-f", strategy.format]
    if strategy.mode == "bytes":
        args += ["-o", "-"]
    args.append(url)
    return args


class YtDlpCliExtractor(MediaExtractor):
    """Runs the yt-dlp binary once per strategy and captures its output."""

    name = "cli"

    def __init__(self, binary: str = "yt-dlp", timeout_seconds: Optional[float] = 120.0) -> None:
        self.binary = binary
        self.timeout_seconds = timeout_seconds

    async def _run(self, args: List[str]) -> tuple[int, bytes, bytes]:
        proc = await asyncio.create_subprocess_exec(
            self.binary,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_seconds)
        finally:
            # Timeout or cancellation: never leave yt-dlp running.
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()
        return proc.returncode, stdout, stderr

    async def _invoke(self, args: List[str]) -> tuple[Optional[int], bytes, str]:
        try:
            returncode, stdout, stderr = await self._run(args)
        except FileNotFoundError:
            return None, b"", f"{self.binary} executable not found"
        except asyncio.TimeoutError:
            return None, b"", f"{self.binary} timed out after {self.timeout_seconds:g}s"
        err = stderr.decode("utf-8", errors="replace").strip()
        if err and returncode == 0:
            logger.warning("[yt-dlp stderr] %s", err)
        return returncode, stdout, err

    async def extract_media_url(
        self, url: str, strategy: ExtractionStrategy, identity: ClientIdentity
    ) -> ExtractionResult:
        returncode, stdout, err = await self._invoke(build_cli_args(url, strategy, identity))
        out = stdout.decode("utf-8", errors="replace").strip()
        if returncode != 0:
            return ExtractionResult(ok=False, output=out, error=err or f"exit status {returncode}")
        return ExtractionResult(ok=True, output=out, error=err)

    async def download_audio_bytes(
        self, url: str, strategy: ExtractionStrategy, identity: ClientIdentity
    ) -> ExtractionResult:
        returncode, stdout, err = await self._invoke(build_cli_args(url, strategy, identity))
        if returncode != 0:
            return ExtractionResult(ok=False, output=b"", error=err or f"exit status {returncode}")
        return ExtractionResult(ok=True, output=stdout, error=err)
