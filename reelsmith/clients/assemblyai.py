"""Async client for AssemblyAI speech-to-text with word timings."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from reelsmith.clients.base import ApiError, AsyncApiClient
from reelsmith.config import get_api_key
from reelsmith.models import CaptionWord

logger = logging.getLogger(__name__)

_ASSEMBLYAI_BASE = "https://api.assemblyai.com"


class TranscriptionError(ApiError):
    """Raised when a transcript ends in the error state or never finishes."""


class AssemblyAIClient(AsyncApiClient):
    """Upload narration audio and fetch word-level captions.

    Usage::

        async with AssemblyAIClient(api_key="...") as client:
            words = await client.transcribe("narration.mp3")
    """

    def __init__(self, api_key: str, base_url: str = _ASSEMBLYAI_BASE, **kwargs: Any) -> None:
        super().__init__(base_url, headers={"authorization": api_key}, **kwargs)

    async def upload_audio(self, audio_path: str | Path) -> str:
        """Upload a local audio file and return its temporary URL."""
        path = Path(audio_path)
        if not path.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")

        logger.info("Uploading %s (%.1f KB)", path, path.stat().st_size / 1024)
        response = await self._request_with_retry(
            "POST",
            "/v2/upload",
            content=path.read_bytes(),
            headers={"Content-Type": "application/octet-stream"},
        )
        upload_url = response.json().get("upload_url")
        if not upload_url:
            raise ApiError(f"No upload_url in response: {response.text[:200]}", body=response.text)
        return upload_url

    async def create_transcript(self, audio_url: str) -> str:
        """Start a transcript job and return its id."""
        response = await self._request_with_retry(
            "POST",
            "/v2/transcript",
            json={"audio_url": audio_url, "language_detection": True},
        )
        data = response.json()
        transcript_id = data.get("id")
        if not transcript_id:
            raise ApiError(f"Could not extract transcript id from response: {data}", body=data)
        logger.info("Transcript created: %s", transcript_id)
        return transcript_id

    async def get_transcript(self, transcript_id: str) -> dict:
        response = await self._request_with_retry("GET", f"/v2/transcript/{transcript_id}")
        return response.json()

    async def wait_for_transcript(
        self,
        transcript_id: str,
        poll_interval: float = 3.0,
        max_wait: float = 1800.0,
    ) -> dict:
        """Poll a transcript until it completes.

        Raises:
            TranscriptionError: If the transcript fails or exceeds ``max_wait``.
        """
        elapsed = 0.0
        status = "unknown"
        while elapsed <= max_wait:
            transcript = await self.get_transcript(transcript_id)
            status = transcript.get("status", "unknown")
            logger.debug("Transcript %s: status=%s (%.0fs elapsed)", transcript_id, status, elapsed)
            if status == "completed":
                return transcript
            if status == "error":
                raise TranscriptionError(
                    f"Transcription failed: {transcript.get('error', 'unknown error')}",
                    body=transcript,
                )
            await asyncio.sleep(poll_interval)
            elapsed += poll_interval

        raise TranscriptionError(
            f"Transcript {transcript_id} did not complete within {max_wait}s. Last status: {status}"
        )

    async def transcribe(self, audio_path: str | Path, poll_interval: float = 3.0) -> list[CaptionWord]:
        """Upload, transcribe and return word captions in seconds."""
        audio_url = await self.upload_audio(audio_path)
        transcript_id = await self.create_transcript(audio_url)
        transcript = await self.wait_for_transcript(transcript_id, poll_interval=poll_interval)
        return parse_words(transcript)


def parse_words(transcript: dict) -> list[CaptionWord]:
    """Convert AssemblyAI word entries (milliseconds) to CaptionWords."""
    return [
        CaptionWord(
            text=w["text"],
            start=w["start"] / 1000,
            end=w["end"] / 1000,
            confidence=float(w.get("confidence", 1.0)),
        )
        for w in transcript.get("words") or []
    ]


def build_client(config: dict, **kwargs: Any) -> AssemblyAIClient:
    section = config.get("assemblyai") or {}
    return AssemblyAIClient(
        api_key=get_api_key(config, "assemblyai"),
        base_url=section.get("base_url", _ASSEMBLYAI_BASE),
        **kwargs,
    )
