"""
LM Studio adapter (OpenAI-compatible /v1/completions, server-sent events).
"""

from ai.errors import DecodeError
from ai.providers.base import FimProvider, GenerationOptions, ProviderConfig


class LMStudioProvider(FimProvider):
    """Adapter for LM Studio's OpenAI-compatible completions endpoint."""

    name = "lmstudio"
    config = ProviderConfig(
        fim_api_path="/v1/completions",
        chat_api_path="/v1/chat/completions",
        default_port=1234,
    )

    def build_body(self, prompt: str, options: GenerationOptions) -> dict:
        return {
            "model": options.model,
            "prompt": prompt,
            "stream": True,
            "temperature": options.temperature,
            "max_tokens": options.num_predict,
        }

    def decode_chunk(self, data: dict) -> str | None:
        choices = data.get("choices")
        if choices is None:
            return None
        if not isinstance(choices, list):
            raise DecodeError(f"Unexpected choices field: {choices!r}")
        if not choices:
            return None

        choice = choices[0]
        if not isinstance(choice, dict):
            raise DecodeError(f"Unexpected choice: {choice!r}")
        text = choice.get("text")
        if text is not None and not isinstance(text, str):
            raise DecodeError(f"Unexpected text field: {text!r}")
        return text or None
