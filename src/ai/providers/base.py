"""
Common shape of an inference server adapter.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderConfig:
    """Static endpoint details of an inference server."""

    fim_api_path: str
    chat_api_path: str
    default_port: int


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling parameters sent with every FIM request."""

    model: str
    temperature: float
    num_predict: int


class FimProvider(ABC):
    """Adapter between the completion pipeline and one server's wire schema."""

    name: str = ""
    config: ProviderConfig
    requires_model: bool = True

    @abstractmethod
    def build_body(self, prompt: str, options: GenerationOptions) -> dict:
        """Build the JSON request body for a streaming FIM request."""

    @abstractmethod
    def decode_chunk(self, data: dict) -> str | None:
        """Extract the token text from one decoded stream chunk.

        Returns None when the chunk carries no text (metadata-only chunks).
        Raises DecodeError when the chunk does not match the schema.
        Raises TransportError when the server reports a failure in the stream.
        """
