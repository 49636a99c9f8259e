"""Grok script generator over the x.ai chat completions API."""

import logging
import os

import httpx

from ..errors import ProviderAPIError, ProviderAuthError
from ..tts.models import AlarmTone
from .base import ScriptProvider

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.x.ai/v1"
DEFAULT_MODEL = "grok-beta"

TONE_GUIDANCE = {
    AlarmTone.GENTLE: "warm, calm and encouraging, like a kind friend easing you awake",
    AlarmTone.ENERGETIC: "upbeat, high energy and hyped, like a coach before a big game",
    AlarmTone.TOUGH_LOVE: "direct, firm and no excuses, but still on the user's side",
    AlarmTone.STORYTELLER: "narrative and vivid, framing the day as the next chapter of a story",
}

# Storytellers need more room, tough love is more direct
TONE_MAX_TOKENS = {
    AlarmTone.GENTLE: 200,
    AlarmTone.ENERGETIC: 200,
    AlarmTone.TOUGH_LOVE: 150,
    AlarmTone.STORYTELLER: 250,
}

TONE_TEMPERATURE = {
    AlarmTone.GENTLE: 0.6,
    AlarmTone.ENERGETIC: 0.7,
    AlarmTone.TOUGH_LOVE: 0.5,
    AlarmTone.STORYTELLER: 0.8,
}


def build_prompt(goal: str, tone: AlarmTone, context: dict[str, str]) -> str:
    """Build the script-writing prompt for one request."""
    lines = [
        "Create a personalized 60-90 second motivational wake-up message.",
        "",
        f"User's Goal: {goal}",
        f"Tone: {tone.value} - {TONE_GUIDANCE[tone]}",
    ]
    when = [context[k] for k in ("day_of_week", "target_time") if context.get(k)]
    if when:
        lines.append(f"Time: {' at '.join(when)}")
    if context.get("weather"):
        lines.append(f"Weather: {context['weather']}")
    if context.get("custom_note"):
        lines.append(f"Personal note: {context['custom_note']}")
    lines += [
        "",
        "Requirements:",
        "- Sound natural and authentic, not corporate or cheesy",
        "- Include their specific goal meaningfully, not just as a tag-on",
        "- Keep it 50-200 words",
        "- End with a specific, actionable call to action",
        "- Match the specified tone throughout the entire message",
        "",
        "Generate only the speech content, no extra text, quotes, or formatting.",
    ]
    return "\n".join(lines)


class GrokScriptProvider(ScriptProvider):
    """Script generator backed by the x.ai Grok chat completions endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize Grok provider.

        Args:
            api_key: x.ai API key. If not provided, reads from
                    XAI_API_KEY environment variable.
            model: Model name
            base_url: API base URL
            timeout: HTTP timeout in seconds
            client: Pre-built HTTP client (tests inject a mock transport here)

        Raises:
            ProviderAuthError: If API key is not provided.
        """
        self._api_key = api_key or os.getenv("XAI_API_KEY")
        if not self._api_key:
            raise ProviderAuthError(
                "x.ai API key not found. Set XAI_API_KEY environment "
                "variable or provide api_key parameter."
            )

        self.model = model
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def generate_script(
        self, goal: str, tone: str, context: dict[str, str]
    ) -> str:
        """Generate a spoken script for ``goal`` in ``tone``.

        Raises:
            ProviderAuthError: If the API rejects the key
            ProviderAPIError: If the request fails or returns no content
            ValueError: If goal is empty or tone is unknown
        """
        if not goal or not goal.strip():
            raise ValueError("Goal cannot be empty")

        alarm_tone = AlarmTone.parse(tone)
        payload = {
            "model": self.model,
            "messages": [
                {"role": "user", "content": build_prompt(goal, alarm_tone, context)}
            ],
            "max_tokens": TONE_MAX_TOKENS[alarm_tone],
            "temperature": TONE_TEMPERATURE[alarm_tone],
        }

        try:
            response = await self._client.post(
                "/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as e:
            raise ProviderAPIError(f"Script request failed: {e}", None, e) from e

        if response.status_code == 401:
            raise ProviderAuthError(f"Authentication failed: {response.text}")
        if response.status_code == 429:
            raise ProviderAPIError(f"Rate limit exceeded: {response.text}", 429)
        if response.status_code != 200:
            raise ProviderAPIError(
                f"Script API error {response.status_code}: {response.text}",
                response.status_code,
            )

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderAPIError(f"Malformed script response: {e}", 200, e) from e

        script = (content or "").strip()
        if not script:
            raise ProviderAPIError("No script content received from API", 200)

        logger.debug(f"Generated {len(script.split())}-word script for tone {alarm_tone.value}")
        return script

    async def aclose(self) -> None:
        await self._client.aclose()
