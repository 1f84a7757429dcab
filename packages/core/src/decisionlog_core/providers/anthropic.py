from __future__ import annotations

from decisionlog_core.providers.base import BaseDigester

# Prefilling the assistant turn pins the reply to a JSON list.
_PREFILL = "["


class AnthropicDigester(BaseDigester):
    MODEL = "claude-sonnet-4-20250514"
    # Summaries should read the same on every run, so stay near-deterministic.
    TEMPERATURE = 0.2

    def __init__(self, api_key: str, model: str | None = None):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for digests. "
                "Install it with: pip install 'decisionlog[anthropic]'"
            )
        self.client = Anthropic(api_key=api_key)
        self.model = model or self.MODEL

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=self.model,
            system=system_prompt,
            messages=[
                {"role": "user", "content": user_prompt},
                {"role": "assistant", "content": _PREFILL},
            ],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        text = "".join(block.text for block in response.content if isinstance(block, TextBlock))
        return _PREFILL + text.strip()
