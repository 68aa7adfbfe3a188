"""Clients for the external services the pipeline depends on."""

from reelsmith.clients.assemblyai import AssemblyAIClient, TranscriptionError
from reelsmith.clients.base import ApiError
from reelsmith.clients.openrouter import LLMError, OpenRouterClient
from reelsmith.clients.pexels import PexelsClient, best_video_file

__all__ = [
    "ApiError",
    "AssemblyAIClient",
    "LLMError",
    "OpenRouterClient",
    "PexelsClient",
    "TranscriptionError",
    "best_video_file",
]
