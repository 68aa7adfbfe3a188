"""LLM completions through OpenRouter's OpenAI-compatible API.

Used for idea generation, script writing and splitting a timed transcript
into visual sections.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from openai import OpenAI, OpenAIError

from reelsmith.config import get_api_key
from reelsmith.models import CaptionWord

logger = logging.getLogger(__name__)

_OPENROUTER_BASE = "https://openrouter.ai/api/v1"
_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL)


class LLMError(Exception):
    """Raised when the completion call fails or returns unusable output."""


def strip_code_fence(content: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    text = content.strip()
    m = _FENCE_RE.match(text)
    return m.group(1).strip() if m else text


def _parse_json_array(content: str, what: str) -> list:
    try:
        data = json.loads(strip_code_fence(content))
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse %s JSON: %s", what, content[:500])
        raise LLMError(f"Failed to parse {what} from AI response") from exc
    if not isinstance(data, list):
        raise LLMError(f"Expected a JSON array of {what}, got {type(data).__name__}")
    return data


class OpenRouterClient:
    """Chat completions via OpenRouter.

    Usage::

        llm = OpenRouterClient(api_key="...")
        script = llm.generate_script(system_prompt, "openai/gpt-4o", idea)
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = _OPENROUTER_BASE,
        app_title: str = "reelsmith",
        site_url: str = "http://localhost",
        client: OpenAI | None = None,
    ) -> None:
        self._client = client or OpenAI(
            api_key=api_key,
            base_url=base_url,
            default_headers={"HTTP-Referer": site_url, "X-Title": app_title},
        )

    def complete(
        self,
        model: str,
        messages: list[dict[str, str]],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Return the first choice's message content."""
        kwargs: dict[str, Any] = {"model": model, "messages": messages}
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        logger.info("Completion request: model=%s, %d message(s)", model, len(messages))
        try:
            response = self._client.chat.completions.create(**kwargs)
        except OpenAIError as exc:
            raise LLMError(f"Completion failed for model {model}: {exc}") from exc

        if not response.choices:
            raise LLMError(f"Empty completion from model {model}")
        return response.choices[0].message.content or ""

    def generate_ideas(
        self,
        system_prompt: str,
        model: str,
        count: int,
        previous_ideas: list[str] | None = None,
    ) -> list[str]:
        """Generate ``count`` one-sentence video ideas, avoiding previous ones."""
        avoid = ""
        if previous_ideas:
            listed = "\n".join(f"{i}. {idea}" for i, idea in enumerate(previous_ideas, 1))
            avoid = (
                "IMPORTANT: Do NOT generate any ideas similar to these previously "
                f"approved ideas:\n{listed}\n\n"
            )
        user_prompt = (
            f"Generate exactly {count} unique and compelling ideas for short narrated videos. "
            "Each idea should be a single sentence that describes what the video will be about.\n\n"
            f"{avoid}"
            'Return the ideas as a JSON array of strings, nothing else. Format: ["idea 1", "idea 2", ...]'
        )
        content = self.complete(
            model,
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.8,
        )
        return [str(idea) for idea in _parse_json_array(content, "ideas")]

    def generate_script(self, system_prompt: str, model: str, idea: str, words: int = 3000) -> str:
        """Write a narration script for ``idea``."""
        user_prompt = (
            f'Write a compelling {words}-word script for a video about: "{idea}"\n\n'
            "The script should:\n"
            f"- Be approximately {words} words long\n"
            "- Be engaging and emotional\n"
            "- Include a strong hook at the beginning\n"
            "- Have a clear narrative structure\n"
            "- Be suitable for narration\n\n"
            "Write ONLY the script text, nothing else."
        )
        return self.complete(
            model,
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.7,
            max_tokens=4000,
        ).strip()

    def generate_visual_sections(
        self,
        system_prompt: str,
        model: str,
        captions: list[CaptionWord],
    ) -> list[dict]:
        """Split a timed transcript into sections with stock search queries.

        Returns raw dicts with section_text, search_query, start_time and
        end_time.
        """
        total = captions[-1].end if captions else 0.0
        timings = " ".join(f"{c.text}[{c.start:.1f}s-{c.end:.1f}s]" for c in captions)
        user_prompt = (
            "Below is a transcript with word-level timestamps. Break it into visual sections "
            "for video editing. Each section needs a different background stock video.\n\n"
            f"TRANSCRIPT WITH TIMINGS:\n{timings}\n\n"
            f"TOTAL DURATION: {total:.2f} seconds\n\n"
            "Return ONLY a JSON array with this exact format (no markdown, no explanation):\n"
            "[\n"
            '  {\n'
            '    "section_text": "brief description of what this section covers",\n'
            '    "search_query": "stock footage search term",\n'
            '    "start_time": 0.0,\n'
            '    "end_time": 15.5\n'
            "  }\n"
            "]"
        )
        content = self.complete(
            model,
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.5,
        )
        sections = _parse_json_array(content, "visual sections")
        for s in sections:
            if not isinstance(s, dict):
                raise LLMError(f"Visual section is not an object: {s!r}")
            missing = {"search_query", "start_time", "end_time"} - set(s)
            if missing:
                raise LLMError(f"Visual section missing keys {sorted(missing)}: {s}")
        return sections


def build_client(config: dict) -> OpenRouterClient:
    section = config.get("openrouter") or {}
    return OpenRouterClient(
        api_key=get_api_key(config, "openrouter"),
        base_url=section.get("base_url", _OPENROUTER_BASE),
        app_title=section.get("app_title", "reelsmith"),
        site_url=section.get("site_url", "http://localhost"),
    )
