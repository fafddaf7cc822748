"""
DeepSeek LLM client — the editor's AI collaborator. DeepSeek implements the
OpenAI chat/completions API, so any compatible endpoint works here too.
"""

import json
import requests
from typing import List

from .base import LLMClient, Message
from ..cli_display import token_tracker, log


class DeepSeekClient(LLMClient):

    def __init__(self, base_url: str, model: str, api_key: str,
                 temperature: float = 0.3, max_tokens: int = 1000, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def _payload(self, messages: List[Message], stream: bool) -> dict:
        return {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": stream,
        }

    @staticmethod
    def _estimate_tokens(messages: List[Message]) -> int:
        words = sum(len(str(m.get("content", "")).split()) for m in messages)
        return int(words * 1.3)

    # ── Non-streaming generation ──

    def _generate(self, messages: List[Message]) -> str:
        est_tokens = self._estimate_tokens(messages)
        log.debug(f"[DeepSeek] Sending ~{est_tokens} est. tokens")

        url = f"{self.base_url}/chat/completions"
        response = requests.post(url, headers=self._headers(),
                                 json=self._payload(messages, stream=False),
                                 timeout=(10, 300))
        response.raise_for_status()
        data = response.json()

        usage = data.get("usage", {})
        prompt_tokens = usage.get("prompt_tokens", est_tokens)
        completion_tokens = usage.get("completion_tokens", 0)
        token_tracker.record(
            prompt_tokens if isinstance(prompt_tokens, int) else est_tokens,
            completion_tokens if isinstance(completion_tokens, int) else 0,
            model_name=self.model,
        )
        log.debug(f"[DeepSeek] Usage: prompt={prompt_tokens} completion={completion_tokens}")

        response_text = data["choices"][0]["message"]["content"]
        log.debug(f"[DeepSeek] Response:\n{response_text}")
        return response_text

    # ── Streaming generation ──

    def _generate_stream(self, messages: List[Message]) -> str:
        est_tokens = self._estimate_tokens(messages)
        log.debug(f"[DeepSeek] Streaming ~{est_tokens} est. tokens")

        url = f"{self.base_url}/chat/completions"
        content_parts: list[str] = []
        tokens_generated = 0

        response = requests.post(url, headers=self._headers(),
                                 json=self._payload(messages, stream=True),
                                 stream=True, timeout=(10, 120))
        response.raise_for_status()

        for line in response.iter_lines(decode_unicode=True):
            if not line:
                continue
            if line.startswith("data: "):
                data_str = line[6:]
                if data_str.strip() == "[DONE]":
                    break
                try:
                    chunk = json.loads(data_str)
                    delta = chunk.get("choices", [{}])[0].get("delta", {})
                    token = delta.get("content", "")
                    if token:
                        content_parts.append(token)
                        tokens_generated += 1
                        if self._stream_callback and tokens_generated % 10 == 0:
                            self._stream_callback(tokens_generated)
                except (json.JSONDecodeError, KeyError, IndexError):
                    continue

        result = "".join(content_parts)
        token_tracker.record(est_tokens, tokens_generated, model_name=self.model)
        log.debug(f"[DeepSeek] Streamed {tokens_generated} tokens")
        log.debug(f"[DeepSeek] Response:\n{result}")

        if self._stream_callback:
            self._stream_callback(tokens_generated)

        return result
