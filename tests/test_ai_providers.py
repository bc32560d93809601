"""Tests for provider adapters and wire request construction."""

import pytest

from ai.errors import ConfigurationError, DecodeError, TransportError
from ai.providers.base import GenerationOptions
from ai.providers.registry import (
    API_PROVIDERS,
    build_fim_request,
    build_headers,
    get_provider,
)
from core.settings import CompletionConfig

OPTIONS = GenerationOptions(model="codellama:7b-code", temperature=0.2, num_predict=64)

# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistry:
    """Verify the static provider table."""

    @pytest.mark.parametrize(
        "name,path,port",
        [
            ("ollama", "/api/generate", 11434),
            ("llamacpp", "/completion", 8080),
            ("lmstudio", "/v1/completions", 1234),
        ],
    )
    def test_provider_endpoints(self, name, path, port):
        provider = get_provider(name)
        assert provider.config.fim_api_path == path
        assert provider.config.default_port == port

    def test_lmstudio_chat_path(self):
        assert API_PROVIDERS["lmstudio"].config.chat_api_path == "/v1/chat/completions"

    def test_unknown_provider_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown provider 'openai'"):
            get_provider("openai")


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class TestRequestBodies:
    """Verify each provider's body schema."""

    def test_ollama_body(self):
        body = get_provider("ollama").build_body("PROMPT", OPTIONS)
        assert body == {
            "model": "codellama:7b-code",
            "prompt": "PROMPT",
            "stream": True,
            "raw": True,
            "options": {"temperature": 0.2, "num_predict": 64},
        }

    def test_llamacpp_body(self):
        body = get_provider("llamacpp").build_body("PROMPT", OPTIONS)
        assert body == {"prompt": "PROMPT", "stream": True, "temperature": 0.2, "n_predict": 64}

    def test_lmstudio_body(self):
        body = get_provider("lmstudio").build_body("PROMPT", OPTIONS)
        assert body == {
            "model": "codellama:7b-code",
            "prompt": "PROMPT",
            "stream": True,
            "temperature": 0.2,
            "max_tokens": 64,
        }


# ---------------------------------------------------------------------------
# Chunk decoding
# ---------------------------------------------------------------------------


class TestDecodeChunk:
    """Verify each provider's chunk schema."""

    def test_ollama_response_text(self):
        assert get_provider("ollama").decode_chunk({"response": "x", "done": False}) == "x"

    def test_ollama_final_chunk_has_no_text(self):
        assert get_provider("ollama").decode_chunk({"response": "", "done": True}) is None

    def test_ollama_error_chunk_is_server_failure(self):
        with pytest.raises(TransportError, match="model not found"):
            get_provider("ollama").decode_chunk({"error": "model not found"})

    def test_llamacpp_content(self):
        assert get_provider("llamacpp").decode_chunk({"content": "y", "stop": False}) == "y"

    def test_llamacpp_metadata_chunk(self):
        assert get_provider("llamacpp").decode_chunk({"timings": {}}) is None

    def test_lmstudio_choice_text(self):
        chunk = {"choices": [{"index": 0, "text": "z"}]}
        assert get_provider("lmstudio").decode_chunk(chunk) == "z"

    def test_lmstudio_empty_choices(self):
        assert get_provider("lmstudio").decode_chunk({"choices": []}) is None
        assert get_provider("lmstudio").decode_chunk({"id": "cmpl-1"}) is None

    def test_wrong_type_is_decode_error(self):
        with pytest.raises(DecodeError):
            get_provider("llamacpp").decode_chunk({"content": 42})
        with pytest.raises(DecodeError):
            get_provider("lmstudio").decode_chunk({"choices": "nope"})


# ---------------------------------------------------------------------------
# build_fim_request()
# ---------------------------------------------------------------------------


class TestBuildFimRequest:
    """Verify URL, headers and body assembly from config."""

    def test_defaults_to_provider_port_and_path(self):
        request = build_fim_request(CompletionConfig(), "PROMPT")
        assert request.method == "POST"
        assert request.url == "http://localhost:11434/api/generate"
        assert request.body["prompt"] == "PROMPT"

    def test_explicit_port_and_path(self):
        config = CompletionConfig(
            provider="lmstudio", api_hostname="gpu-box", api_port=5000, api_path="v2/complete"
        )
        request = build_fim_request(config, "PROMPT")
        assert request.url == "http://gpu-box:5000/v2/complete"

    def test_headers_without_token(self):
        assert build_headers() == {"Content-Type": "application/json"}

    def test_bearer_token_header(self):
        request = build_fim_request(CompletionConfig(bearer_token="secret"), "PROMPT")
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["Content-Type"] == "application/json"

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            build_fim_request(CompletionConfig(provider="tgi"), "PROMPT")

    def test_missing_model(self):
        with pytest.raises(ConfigurationError, match="No model"):
            build_fim_request(CompletionConfig(model=""), "PROMPT")

    def test_llamacpp_does_not_need_model(self):
        request = build_fim_request(CompletionConfig(provider="llamacpp", model=""), "PROMPT")
        assert "model" not in request.body

    def test_missing_hostname(self):
        with pytest.raises(ConfigurationError, match="hostname"):
            build_fim_request(CompletionConfig(api_hostname=""), "PROMPT")
