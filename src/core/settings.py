"""
Completion settings: an immutable config struct plus QSettings persistence.
"""

import dataclasses
from dataclasses import dataclass

from PyQt6.QtCore import QSettings


@dataclass(frozen=True)
class CompletionConfig:
    """Snapshot of every setting the completion pipeline reads.

    Instances are never mutated; use replace() to derive a new one and hand
    it to CompletionManager.update_config().
    """

    enabled: bool = True
    debounce_wait: int = 300  # ms
    context_length: int = 100  # lines above and below the cursor
    model: str = "codellama:7b-code"
    api_hostname: str = "localhost"
    api_port: int = 0  # 0 selects the provider's default port
    api_path: str = ""  # empty selects the provider's FIM path
    api_protocol: str = "http"
    temperature: float = 0.2
    num_predict: int = 512
    provider: str = "ollama"
    use_file_context: bool = False
    template_format: str = "codellama"
    use_multiline: bool = True
    max_lines: int = 30
    auto_suggest: bool = True
    completion_cache: bool = True
    bearer_token: str = ""

    def replace(self, **changes) -> "CompletionConfig":
        """Return a copy with the given fields changed."""
        return dataclasses.replace(self, **changes)


_DEFAULTS = CompletionConfig()


def _clamp(value, low, high):
    return max(low, min(high, value))


class SettingsManager:
    """Persists completion settings using QSettings."""

    def __init__(self):
        self.settings = QSettings("InlineFim", "Completion")

    def _get_int(self, key: str, default: int) -> int:
        try:
            value = self.settings.value(key, default)
            return default if value is None else int(value)
        except (ValueError, TypeError):
            return default

    def _get_float(self, key: str, default: float) -> float:
        try:
            value = self.settings.value(key, default)
            return default if value is None else float(value)
        except (ValueError, TypeError):
            return default

    # General
    def get_completion_enabled(self) -> bool:
        """Get whether inline completion is enabled."""
        return self.settings.value("completion_enabled", _DEFAULTS.enabled, type=bool)

    def set_completion_enabled(self, enabled: bool):
        """Set whether inline completion is enabled."""
        self.settings.setValue("completion_enabled", enabled)

    def get_debounce_wait(self) -> int:
        """Get the debounce delay in milliseconds."""
        return _clamp(self._get_int("debounce_wait", _DEFAULTS.debounce_wait), 0, 5000)

    def set_debounce_wait(self, delay_ms: int):
        """Set the debounce delay in milliseconds."""
        self.settings.setValue("debounce_wait", _clamp(int(delay_ms), 0, 5000))

    def get_context_length(self) -> int:
        """Get the number of lines taken above and below the cursor."""
        return _clamp(self._get_int("context_length", _DEFAULTS.context_length), 1, 1000)

    def set_context_length(self, lines: int):
        """Set the number of lines taken above and below the cursor."""
        self.settings.setValue("context_length", _clamp(int(lines), 1, 1000))

    # Model and generation
    def get_model(self) -> str:
        """Get the FIM model name."""
        return self.settings.value("fim_model_name", _DEFAULTS.model)

    def set_model(self, model: str):
        """Set the FIM model name."""
        self.settings.setValue("fim_model_name", model)

    def get_temperature(self) -> float:
        """Get the sampling temperature."""
        return _clamp(self._get_float("temperature", _DEFAULTS.temperature), 0.0, 2.0)

    def set_temperature(self, temperature: float):
        """Set the sampling temperature."""
        self.settings.setValue("temperature", _clamp(float(temperature), 0.0, 2.0))

    def get_num_predict(self) -> int:
        """Get the maximum number of tokens to generate."""
        return max(1, self._get_int("num_predict_fim", _DEFAULTS.num_predict))

    def set_num_predict(self, tokens: int):
        """Set the maximum number of tokens to generate."""
        self.settings.setValue("num_predict_fim", max(1, int(tokens)))

    def get_template_format(self) -> str:
        """Get the FIM template format id."""
        return self.settings.value("fim_template_format", _DEFAULTS.template_format)

    def set_template_format(self, template_format: str):
        """Set the FIM template format id."""
        self.settings.setValue("fim_template_format", template_format)

    # Server
    def get_provider(self) -> str:
        """Get the inference server provider id."""
        return self.settings.value("api_provider", _DEFAULTS.provider)

    def set_provider(self, provider: str):
        """Set the inference server provider id."""
        self.settings.setValue("api_provider", provider)

    def get_api_hostname(self) -> str:
        """Get the inference server hostname."""
        return self.settings.value("api_hostname", _DEFAULTS.api_hostname)

    def set_api_hostname(self, hostname: str):
        """Set the inference server hostname."""
        self.settings.setValue("api_hostname", hostname)

    def get_api_port(self) -> int:
        """Get the inference server port (0 means provider default)."""
        return _clamp(self._get_int("fim_api_port", _DEFAULTS.api_port), 0, 65535)

    def set_api_port(self, port: int):
        """Set the inference server port."""
        self.settings.setValue("fim_api_port", _clamp(int(port), 0, 65535))

    def get_api_path(self) -> str:
        """Get the completion path override."""
        return self.settings.value("fim_api_path", _DEFAULTS.api_path)

    def set_api_path(self, path: str):
        """Set the completion path override."""
        self.settings.setValue("fim_api_path", path)

    def get_api_protocol(self) -> str:
        """Get the URL scheme used to reach the server."""
        return self.settings.value("api_protocol", _DEFAULTS.api_protocol)

    def set_api_protocol(self, protocol: str):
        """Set the URL scheme used to reach the server."""
        if protocol in ("http", "https"):
            self.settings.setValue("api_protocol", protocol)

    def get_bearer_token(self) -> str:
        """Get the bearer token sent in the Authorization header."""
        return self.settings.value("api_bearer_token", _DEFAULTS.bearer_token)

    def set_bearer_token(self, token: str):
        """Set the bearer token sent in the Authorization header."""
        self.settings.setValue("api_bearer_token", token)

    # Behaviour toggles
    def get_use_file_context(self) -> bool:
        """Get whether related open files are added to the prompt."""
        return self.settings.value("use_file_context", _DEFAULTS.use_file_context, type=bool)

    def set_use_file_context(self, enabled: bool):
        """Set whether related open files are added to the prompt."""
        self.settings.setValue("use_file_context", enabled)

    def get_use_multiline(self) -> bool:
        """Get whether multi-line completions are allowed."""
        return self.settings.value("use_multiline", _DEFAULTS.use_multiline, type=bool)

    def set_use_multiline(self, enabled: bool):
        """Set whether multi-line completions are allowed."""
        self.settings.setValue("use_multiline", enabled)

    def get_max_lines(self) -> int:
        """Get the maximum number of completion lines."""
        return _clamp(self._get_int("max_lines", _DEFAULTS.max_lines), 1, 100)

    def set_max_lines(self, lines: int):
        """Set the maximum number of completion lines."""
        self.settings.setValue("max_lines", _clamp(int(lines), 1, 100))

    def get_auto_suggest(self) -> bool:
        """Get whether typing a trigger character starts a completion."""
        return self.settings.value("auto_suggest", _DEFAULTS.auto_suggest, type=bool)

    def set_auto_suggest(self, enabled: bool):
        """Set whether typing a trigger character starts a completion."""
        self.settings.setValue("auto_suggest", enabled)

    def get_completion_cache(self) -> bool:
        """Get whether finished completions are cached."""
        return self.settings.value("completion_cache", _DEFAULTS.completion_cache, type=bool)

    def set_completion_cache(self, enabled: bool):
        """Set whether finished completions are cached."""
        self.settings.setValue("completion_cache", enabled)

    # Whole struct
    def get_completion_config(self) -> CompletionConfig:
        """Build an immutable config from the stored settings."""
        return CompletionConfig(
            enabled=self.get_completion_enabled(),
            debounce_wait=self.get_debounce_wait(),
            context_length=self.get_context_length(),
            model=self.get_model(),
            api_hostname=self.get_api_hostname(),
            api_port=self.get_api_port(),
            api_path=self.get_api_path(),
            api_protocol=self.get_api_protocol(),
            temperature=self.get_temperature(),
            num_predict=self.get_num_predict(),
            provider=self.get_provider(),
            use_file_context=self.get_use_file_context(),
            template_format=self.get_template_format(),
            use_multiline=self.get_use_multiline(),
            max_lines=self.get_max_lines(),
            auto_suggest=self.get_auto_suggest(),
            completion_cache=self.get_completion_cache(),
            bearer_token=self.get_bearer_token(),
        )

    def set_completion_config(self, config: CompletionConfig):
        """Persist every field of a config."""
        self.set_completion_enabled(config.enabled)
        self.set_debounce_wait(config.debounce_wait)
        self.set_context_length(config.context_length)
        self.set_model(config.model)
        self.set_api_hostname(config.api_hostname)
        self.set_api_port(config.api_port)
        self.set_api_path(config.api_path)
        self.set_api_protocol(config.api_protocol)
        self.set_temperature(config.temperature)
        self.set_num_predict(config.num_predict)
        self.set_provider(config.provider)
        self.set_use_file_context(config.use_file_context)
        self.set_template_format(config.template_format)
        self.set_use_multiline(config.use_multiline)
        self.set_max_lines(config.max_lines)
        self.set_auto_suggest(config.auto_suggest)
        self.set_completion_cache(config.completion_cache)
        self.set_bearer_token(config.bearer_token)
