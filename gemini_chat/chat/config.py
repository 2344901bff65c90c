"""Configuration for the Gemini chat client.

Pydantic-based configuration with environment variable loading. ``AppConfig``
holds process-wide settings; ``SessionConfig`` is the per-conversation snapshot
the user edits through the settings panel.
"""

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_INSTRUCTION = (
    "You are a helpful and knowledgeable AI assistant. You can engage with any topic "
    "and provide comprehensive information while maintaining factual accuracy. You "
    "should aim to be direct and thorough in your responses. When discussing complex "
    "or sensitive topics, provide balanced and well-reasoned explanations."
)

# Appended to every system instruction sent to the provider
SYSTEM_INSTRUCTION_SUFFIX = (
    "Please provide direct, comprehensive responses. When encountering potentially "
    "sensitive topics, focus on providing factual, analytical insights while "
    "maintaining professionalism."
)


class ModelOption(BaseModel):
    """A selectable Gemini model and its defaults.

    Attributes:
        id: Provider model identifier.
        name: Human-readable name.
        description: Short description for the model picker.
        max_tokens: Output token ceiling applied when the model is selected.
        default_temperature: Temperature applied when the model is selected.
        thinking_enabled: Whether the thinking side-channel is offered.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    max_tokens: int
    default_temperature: float
    thinking_enabled: bool = False


AVAILABLE_MODELS: tuple[ModelOption, ...] = (
    ModelOption(
        id="gemini-2.0-flash-thinking-exp-01-21",
        name="Gemini 2.0 Flash Thinking",
        description="Supports visible reasoning process (Flash Thinking)",
        max_tokens=65536,
        default_temperature=0.9,
        thinking_enabled=True,
    ),
    ModelOption(
        id="gemini-2.0-flash",
        name="Gemini 2.0 Flash",
        description="Fast, lightweight model for quick responses",
        max_tokens=8192,
        default_temperature=1.0,
    ),
    ModelOption(
        id="gemini-2.0-flash-lite-preview-02-05",
        name="Gemini 2.0 Flash Lite",
        description="Preview version for leaner, faster responses",
        max_tokens=8192,
        default_temperature=1.0,
    ),
)

DEFAULT_MODEL_ID = AVAILABLE_MODELS[0].id


def get_model_option(model_id: str) -> ModelOption | None:
    """Look up a catalog entry by model id."""
    return next((m for m in AVAILABLE_MODELS if m.id == model_id), None)


def default_model_id() -> str:
    """Initial model from ``GEMINI_MODEL``, restricted to the catalog."""
    model_id = os.getenv("GEMINI_MODEL", "").strip()
    if not model_id:
        return DEFAULT_MODEL_ID
    if get_model_option(model_id) is None:
        logger.warning(f"GEMINI_MODEL={model_id} is not a known model, using {DEFAULT_MODEL_ID}")
        return DEFAULT_MODEL_ID
    return model_id


class GenerationConfig(BaseModel):
    """Sampling parameters bound to a chat session."""

    model_config = ConfigDict(frozen=True)

    temperature: float
    top_p: float
    top_k: int
    max_output_tokens: int
    response_mime_type: str = "text/plain"
    candidate_count: int = 1


class SessionConfig(BaseModel):
    """Settings snapshot read when a provider session is constructed.

    Instances are immutable; edits produce a new snapshot which the
    controller picks up on its next lazy session construction.

    Attributes:
        model_id: Gemini model identifier.
        system_instruction: System prompt for the model.
        temperature: Sampling temperature (0.0 = deterministic, 2.0 = creative).
        top_p: Nucleus sampling probability mass.
        top_k: Number of highest-probability tokens considered.
        max_output_tokens: Maximum tokens in a generated response.
        code_execution_enabled: Whether the code-execution tool is offered.
        thinking_enabled: Whether the user opted in to the thinking process.
    """

    model_config = ConfigDict(frozen=True)

    model_id: str = Field(
        default_factory=default_model_id,
        description="Model to use",
    )
    system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_p: float = Field(default=0.95, ge=0.0, le=1.0)
    top_k: int = Field(default=64, ge=1)
    max_output_tokens: int = Field(default=65536, ge=1)
    code_execution_enabled: bool = True
    thinking_enabled: bool = True

    @field_validator("model_id")
    @classmethod
    def validate_model_id(cls, v: str) -> str:
        """Reject blank model identifiers."""
        if not v or not v.strip():
            raise ValueError("model_id must not be empty")
        return v.strip()

    @property
    def model_option(self) -> ModelOption | None:
        return get_model_option(self.model_id)

    @property
    def model_supports_thinking(self) -> bool:
        option = self.model_option
        return option is not None and option.thinking_enabled

    @property
    def effective_system_instruction(self) -> str:
        """System instruction as sent to the provider."""
        return f"{self.system_instruction}\n{SYSTEM_INSTRUCTION_SUFFIX}"

    def generation_config(self) -> GenerationConfig:
        return GenerationConfig(
            temperature=self.temperature,
            top_p=self.top_p,
            top_k=self.top_k,
            max_output_tokens=self.max_output_tokens,
        )

    def with_model(self, model_id: str) -> "SessionConfig":
        """Switch to a catalog model, applying its token and temperature defaults.

        Raises:
            ValueError: If the model is not in the catalog.
        """
        option = get_model_option(model_id)
        if option is None:
            raise ValueError(f"Unknown model: {model_id}")
        return self.model_copy(
            update={
                "model_id": option.id,
                "max_output_tokens": option.max_tokens,
                "temperature": option.default_temperature,
            }
        )


class AppConfig(BaseModel):
    """Process-wide settings loaded from the environment.

    Attributes:
        api_key: Gemini API key.
    """

    api_key: str = Field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY", os.getenv("GOOGLE_API_KEY", "")),
        description="API key for the Gemini API",
    )

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Validate that API key is provided and non-empty."""
        if not v or not v.strip():
            raise ValueError(
                "API key required. Set GEMINI_API_KEY or GOOGLE_API_KEY in .env"
            )
        return v.strip()


def get_app_config() -> AppConfig:
    """Create application configuration from environment.

    Returns:
        Configured AppConfig instance.

    Raises:
        ValueError: If no API key is set.
    """
    return AppConfig()
