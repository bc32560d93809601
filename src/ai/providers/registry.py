"""
Provider lookup and wire request construction.
"""

from dataclasses import dataclass, field

from ai.errors import ConfigurationError
from ai.providers.base import FimProvider, GenerationOptions
from ai.providers.llamacpp import LlamaCppProvider
from ai.providers.lmstudio import LMStudioProvider
from ai.providers.ollama import OllamaProvider
from core.settings import CompletionConfig

API_PROVIDERS: dict[str, FimProvider] = {
    provider.name: provider
    for provider in (OllamaProvider(), LlamaCppProvider(), LMStudioProvider())
}

PROVIDER_NAMES = tuple(API_PROVIDERS)


@dataclass(frozen=True)
class FimRequest:
    """A wire-ready streaming request. The method is always POST."""

    url: str
    body: dict
    headers: dict[str, str] = field(default_factory=dict)
    method: str = "POST"


def get_provider(name: str) -> FimProvider:
    """Look up a provider adapter by id.

    Raises:
        ConfigurationError: The id is not a supported provider.
    """
    try:
        return API_PROVIDERS[name]
    except KeyError:
        supported = ", ".join(PROVIDER_NAMES)
        raise ConfigurationError(
            f"Unknown provider '{name}' (supported: {supported})"
        ) from None


def build_headers(bearer_token: str = "") -> dict[str, str]:
    """JSON content type plus an Authorization header when a token is set."""
    headers = {"Content-Type": "application/json"}
    if bearer_token:
        headers["Authorization"] = f"Bearer {bearer_token}"
    return headers


def build_fim_request(config: CompletionConfig, prompt: str) -> FimRequest:
    """Shape a rendered prompt into a request for the configured provider.

    Raises:
        ConfigurationError: Unknown provider, or a required setting is empty.
    """
    provider = get_provider(config.provider)

    if not config.api_hostname:
        raise ConfigurationError("No API hostname configured")
    if provider.requires_model and not config.model:
        raise ConfigurationError(f"No model configured for provider '{provider.name}'")

    port = config.api_port or provider.config.default_port
    path = config.api_path or provider.config.fim_api_path
    if not path.startswith("/"):
        path = f"/{path}"

    options = GenerationOptions(
        model=config.model,
        temperature=config.temperature,
        num_predict=config.num_predict,
    )

    return FimRequest(
        url=f"{config.api_protocol}://{config.api_hostname}:{port}{path}",
        body=provider.build_body(prompt, options),
        headers=build_headers(config.bearer_token),
    )
