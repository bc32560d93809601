"""
llama.cpp server adapter (/completion, server-sent events).
"""

from ai.errors import DecodeError
from ai.providers.base import FimProvider, GenerationOptions, ProviderConfig


class LlamaCppProvider(FimProvider):
    """Adapter for the llama.cpp HTTP server."""

    name = "llamacpp"
    config = ProviderConfig(
        fim_api_path="/completion",
        chat_api_path="/completion",
        default_port=8080,
    )
    # The server answers with whatever model it was started with
    requires_model = False

    def build_body(self, prompt: str, options: GenerationOptions) -> dict:
        return {
            "prompt": prompt,
            "stream": True,
            "temperature": options.temperature,
            "n_predict": options.num_predict,
        }

    def decode_chunk(self, data: dict) -> str | None:
        text = data.get("content")
        if text is not None and not isinstance(text, str):
            raise DecodeError(f"Unexpected content field: {text!r}")
        return text or None
