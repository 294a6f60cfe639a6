"""AssemblyAI transcription client: upload, submit, poll."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from services.errors import ConfigurationError, TranscriptionError
from services.media_resolver import MediaHandle

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PollPolicy:
    """Fixed-interval polling, no backoff."""

    max_attempts: int = 120
    interval_seconds: float = 2.5


@dataclass(frozen=True)
class TranscriptionConfig:
    api_key: str = field(default="", repr=False)
    base_url: str = "https://api.assemblyai.com/v2"
    language_code: Optional[str] = None
    poll: PollPolicy = PollPolicy()
    request_timeout_seconds: float = 60.0

    @classmethod
    def from_settings(cls, settings) -> "TranscriptionConfig":
        return cls(
            api_key=(settings.ASSEMBLYAI_API_KEY or "").strip(),
            base_url=settings.ASSEMBLYAI_BASE_URL.rstrip("/"),
            language_code=(settings.ASSEMBLYAI_LANGUAGE_CODE or "").strip() or None,
            poll=PollPolicy(
                max_attempts=max(int(settings.TRANSCRIPT_MAX_POLL_ATTEMPTS), 1),
                interval_seconds=max(float(settings.TRANSCRIPT_POLL_INTERVAL_SECONDS), 0.0),
            ),
        )


class AssemblyAITranscriber:
    """
    Turns a ``MediaHandle`` into transcript text.

    Byte handles are uploaded first; the resulting reference URL (or the
    resolved media URL) is submitted and the transcript is polled until it
    reaches ``completed`` or ``error``. Only full-completion text is returned.
    """

    def __init__(
        self,
        config: TranscriptionConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.config = config
        self._transport = transport
        self._sleep = sleep

    def _headers(self) -> Dict[str, str]:
        api_key = (self.config.api_key or "").strip()
        if not api_key:
            raise ConfigurationError("ASSEMBLYAI_API_KEY is not configured")
        return {"authorization": api_key}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            headers=self._headers(),
            timeout=self.config.request_timeout_seconds,
            transport=self._transport,
        )

    async def _request(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise TranscriptionError(
                f"Transcription service returned HTTP {exc.response.status_code} for {url}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise TranscriptionError(f"Transcription service request failed: {exc}") from exc
        if not isinstance(payload, dict):
            raise TranscriptionError("Transcription service returned an unexpected payload")
        return payload

    async def upload(self, data: bytes) -> str:
        """Upload raw audio and return the service's reference URL."""
        async with self._client() as client:
            payload = await self._request(
                client,
                "POST",
                "/upload",
                content=data,
                headers={"content-type": "application/octet-stream"},
            )
        upload_url = payload.get("upload_url") or payload.get("url")
        if not upload_url:
            raise TranscriptionError("Upload response did not include an upload_url")
        logger.info("Uploaded %d bytes of audio", len(data))
        return str(upload_url)

    async def submit(self, audio_url: str) -> str:
        """Create a transcript request and return its id."""
        body: Dict[str, Any] = {"audio_url": audio_url}
        if self.config.language_code:
            body["language_code"] = self.config.language_code
        async with self._client() as client:
            payload = await self._request(client, "POST", "/transcript", json=body)
        transcript_id = payload.get("id")
        if not transcript_id:
            raise TranscriptionError(payload.get("error") or "Transcript request was not accepted")
        logger.info("Transcript %s submitted", transcript_id)
        return str(transcript_id)

    async def wait_for_transcript(self, transcript_id: str) -> str:
        """Poll until a terminal state; exactly ``max_attempts`` status checks at most."""
        policy = self.config.poll
        async with self._client() as client:
            for attempt in range(1, policy.max_attempts + 1):
                await self._sleep(policy.interval_seconds)
                payload = await self._request(client, "GET", f"/transcript/{transcript_id}")
                status = payload.get("status")
                if status == "completed":
                    logger.info("Transcript %s completed after %d polls", transcript_id, attempt)
                    return payload.get("text") or ""
                if status == "error":
                    raise TranscriptionError(payload.get("error") or "Transcription failed")
                logger.debug("Transcript %s poll #%d: status=%s", transcript_id, attempt, status)

        raise TranscriptionError(
            f"Transcription timed out after {policy.max_attempts} status checks"
        )

    async def transcribe_url(self, audio_url: str) -> str:
        return await self.wait_for_transcript(await self.submit(audio_url))

    async def transcribe(self, media: MediaHandle) -> str:
        if media.is_bytes:
            audio_url = await self.upload(media.data or b"")
        elif media.url:
            audio_url = media.url
        else:
            raise TranscriptionError("Media handle has neither a URL nor audio bytes")
        return await self.transcribe_url(audio_url)


def build_transcriber(settings) -> AssemblyAITranscriber:
    return AssemblyAITranscriber(TranscriptionConfig.from_settings(settings))
