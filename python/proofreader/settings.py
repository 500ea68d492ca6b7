import json
import os
import platform
from pathlib import Path
from typing import Literal, Optional

import structlog
from pydantic import BaseModel, Field, field_validator

from proofreader.models import SYNTAXES
from proofreader.normalize import TRUNCATION_CALLOUT

logger = structlog.get_logger(__name__)

ReasoningEffort = Literal["minimal", "low", "medium", "high"]
ProviderName = Literal["openai", "lmstudio"]

DEFAULT_PROMPT = (
    "Act as a professional editor. Please make suggestions how to improve clarity, readability, grammar, "
    "and language of the following text. Preserve the original meaning and any technical jargon. "
    "Suggest structural changes only if they significantly improve flow or understanding. "
    "Avoid unnecessary expansion or major reformatting (e.g., no unwarranted lists). "
    "Try to make as little changes as possible, refrain from doing any changes when the writing is "
    "already sufficiently clear and concise. Output only the revised text and nothing else. "
    "The text may contain Markdown formatting, which should be preserved when appropriate. The text is:"
)


class ModelSpec(BaseModel):
    provider: ProviderName
    display_text: str
    max_output_tokens: int
    input_cost_per_million: float = 0.0
    output_cost_per_million: float = 0.0

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        return (input_tokens * self.input_cost_per_million + output_tokens * self.output_cost_per_million) / 1_000_000


MODEL_SPECS = {
    "gpt-5-nano": ModelSpec(
        provider="openai",
        display_text="GPT 5 nano",
        max_output_tokens=128_000,
        input_cost_per_million=0.05,
        output_cost_per_million=0.4,
    ),
    "gpt-5-mini": ModelSpec(
        provider="openai",
        display_text="GPT 5 mini",
        max_output_tokens=128_000,
        input_cost_per_million=0.25,
        output_cost_per_million=2.0,
    ),
}

DEFAULT_MODEL = "gpt-5-nano"


class ProofreaderSettings(BaseModel):
    llm_provider: ProviderName = "openai"

    # OpenAI
    openai_api_key: str = Field("", description="Falls back to the OPENAI_API_KEY environment variable.")
    model: str = DEFAULT_MODEL
    reasoning_effort: ReasoningEffort = "minimal"
    openai_endpoint: str = Field("", description="OpenAI-compatible endpoint. Empty uses the regular OpenAI API.")

    # LM Studio (local, OpenAI-compatible chat completions)
    lmstudio_server_url: str = "http://localhost:1234"
    lmstudio_model: str = ""

    # Diff & markup
    markup_syntax: str = "critic"
    preserve_text_inside_quotes: bool = False
    preserve_non_smart_punctuation: bool = False
    diff_with_space: bool = False
    truncation_notice: str = TRUNCATION_CALLOUT

    # Advanced
    static_prompt: str = DEFAULT_PROMPT
    request_timeout: float = 300.0

    @field_validator("markup_syntax")
    @classmethod
    def _known_syntax(cls, value: str) -> str:
        if value not in SYNTAXES:
            raise ValueError(f"Unknown markup syntax '{value}'. Choose one of: {', '.join(SYNTAXES)}")
        return value

    @field_validator("static_prompt")
    @classmethod
    def _reset_blank_prompt(cls, value: str) -> str:
        return value.strip() or DEFAULT_PROMPT

    @field_validator("openai_api_key", "openai_endpoint", "lmstudio_server_url")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    def resolved_api_key(self) -> str:
        return self.openai_api_key or os.environ.get("OPENAI_API_KEY", "")


def default_settings_path() -> Path:
    """Per-OS location of settings.json."""
    system = platform.system()
    if system == "Windows":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "proofreader" / "settings.json"
        return Path.home() / "AppData" / "Roaming" / "proofreader" / "settings.json"
    elif system == "Darwin":  # macOS
        return Path.home() / "Library" / "Application Support" / "proofreader" / "settings.json"
    else:
        config_home = os.environ.get("XDG_CONFIG_HOME")
        base = Path(config_home) if config_home else Path.home() / ".config"
        return base / "proofreader" / "settings.json"


def load_settings(path: Optional[Path] = None) -> ProofreaderSettings:
    """
    Reads settings from ``path`` (default: ``default_settings_path()``),
    filling anything missing with defaults.

    A model that is no longer offered is replaced by the default model so an
    upgrade never leaves the user with an unusable configuration.
    """
    path = path or default_settings_path()
    data = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read().strip()
                if content:
                    data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(f"Settings file {path} is not valid JSON: {e}") from e

    settings = ProofreaderSettings(**data)

    if settings.llm_provider == "openai" and settings.model not in MODEL_SPECS:
        logger.warning(f"Model '{settings.model}' is outdated, falling back to '{DEFAULT_MODEL}'")
        settings = settings.model_copy(update={"model": DEFAULT_MODEL})
        if path.exists():
            save_settings(settings, path)

    return settings


def save_settings(settings: ProofreaderSettings, path: Optional[Path] = None) -> Path:
    path = path or default_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.model_dump(), f, indent=2)
    return path
