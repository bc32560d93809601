"""
Ollama adapter (/api/generate, newline-delimited JSON stream).
"""

from ai.errors import DecodeError, TransportError
from ai.providers.base import FimProvider, GenerationOptions, ProviderConfig

DEFAULT_PORT = 11434


class OllamaProvider(FimProvider):
    """Adapter for Ollama's generate endpoint."""

    name = "ollama"
    config = ProviderConfig(
        fim_api_path="/api/generate",
        chat_api_path="/api/generate",
        default_port=DEFAULT_PORT,
    )

    def build_body(self, prompt: str, options: GenerationOptions) -> dict:
        # raw=True skips Ollama's own prompt template so FIM tokens pass through
        return {
            "model": options.model,
            "prompt": prompt,
            "stream": True,
            "raw": True,
            "options": {
                "temperature": options.temperature,
                "num_predict": options.num_predict,
            },
        }

    def decode_chunk(self, data: dict) -> str | None:
        # Ollama reports failures mid-stream (e.g. model unloaded) as an error object
        if "error" in data:
            raise TransportError(f"Ollama error: {data['error']}")
        text = data.get("response")
        if text is not None and not isinstance(text, str):
            raise DecodeError(f"Unexpected response field: {text!r}")
        return text or None
