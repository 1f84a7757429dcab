from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from decisionlog_core.providers.base import BaseDigester


class OpenAIDigester(BaseDigester):
    MODEL = "gpt-4o"
    TEMPERATURE = 0.1

    def __init__(self, api_key: str, model: str | None = None):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for digests. Install it with: pip install 'decisionlog[openai]'"
            )
        self.client = _OpenAI(api_key=api_key)
        self.model = model or self.MODEL

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
            n=1,
        )
        choice = response.choices[0]
        if choice.finish_reason == "length":
            # A truncated list never parses; let the retry loop try again.
            raise RuntimeError(f"digest truncated at {self.MAX_TOKENS} tokens")
        return choice.message.content or ""
