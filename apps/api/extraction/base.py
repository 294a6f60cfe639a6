"""Media extractor contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple, Union

StrategyMode = Literal["url", "bytes"]

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_5 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.5 Mobile/15E148 Safari/604.1"
)
TIKTOK_REFERER = "https://www.tiktok.com/"
MOBILE_API_HINT = "tiktok:app_info=android;download_api=tiktok"


@dataclass(frozen=True)
class ClientIdentity:
    """Headers and network options applied to every extraction."""

    user_agent: str = MOBILE_USER_AGENT
    referer: str = TIKTOK_REFERER
    proxy: Optional[str] = None
    cookies_file: Optional[str] = None


@dataclass(frozen=True)
class ExtractionStrategy:
    name: str
    mode: StrategyMode
    format: Optional[str] = None
    extractor_args: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of a single extractor invocation."""

    ok: bool
    output: Union[str, bytes] = ""
    error: str = ""

    @property
    def usable(self) -> bool:
        if not self.ok:
            return False
        if isinstance(self.output, bytes):
            return len(self.output) > 0
        return bool(self.output.strip())


class MediaExtractor(ABC):
    """Capability the resolver drives; one call per strategy."""

    name: str

    @abstractmethod
    async def extract_media_url(
        self, url: str, strategy: ExtractionStrategy, identity: ClientIdentity
    ) -> ExtractionResult:
        """Return the direct media URL(s) as text, one per line."""
        raise NotImplementedError

    @abstractmethod
    async def download_audio_bytes(
        self, url: str, strategy: ExtractionStrategy, identity: ClientIdentity
    ) -> ExtractionResult:
        """Return the downloaded audio as bytes."""
        raise NotImplementedError
