"""Unit tests for SessionConfig, AppConfig and the model catalog.

Tests validation bounds, defaults and model switching.
"""

from unittest.mock import patch

import pytest
import pytest_check as check
from pydantic import ValidationError

from gemini_chat.chat.config import (
    AVAILABLE_MODELS,
    DEFAULT_MODEL_ID,
    SYSTEM_INSTRUCTION_SUFFIX,
    AppConfig,
    SessionConfig,
    get_app_config,
    get_model_option,
)


class TestSessionConfig:
    """Tests for SessionConfig validation."""

    def test_config_with_default_values(self) -> None:
        """Config uses sensible defaults when nothing is provided."""
        config = SessionConfig(model_id=DEFAULT_MODEL_ID)

        check.equal(config.temperature, 0.7)
        check.equal(config.top_p, 0.95)
        check.equal(config.top_k, 64)
        check.equal(config.max_output_tokens, 65536)
        check.is_true(config.code_execution_enabled)
        check.is_true(config.thinking_enabled)

    def test_model_id_read_from_environment(self) -> None:
        """Default model comes from GEMINI_MODEL when set."""
        with patch.dict("os.environ", {"GEMINI_MODEL": "gemini-2.0-flash"}):
            config = SessionConfig()

        assert config.model_id == "gemini-2.0-flash"

    def test_unknown_environment_model_falls_back_to_default(self) -> None:
        """A GEMINI_MODEL outside the catalog is replaced by the default model."""
        with patch.dict("os.environ", {"GEMINI_MODEL": "gemini-99-ultra"}):
            config = SessionConfig()

        assert config.model_id == DEFAULT_MODEL_ID
        assert config.model_option is not None

    def test_config_fails_with_blank_model_id(self) -> None:
        """Config rejects a whitespace-only model id."""
        with pytest.raises(ValidationError) as exc_info:
            SessionConfig(model_id="   ")

        assert "model_id" in str(exc_info.value)

    @pytest.mark.parametrize(
        "field,value",
        [
            ("temperature", -0.1),
            ("temperature", 2.5),
            ("top_p", 1.1),
            ("top_k", 0),
            ("max_output_tokens", 0),
        ],
    )
    def test_config_rejects_out_of_range_values(self, field: str, value: float) -> None:
        """Config rejects sampling values outside their bounds."""
        with pytest.raises(ValidationError) as exc_info:
            SessionConfig(model_id=DEFAULT_MODEL_ID, **{field: value})

        assert field in str(exc_info.value)

    def test_config_accepts_boundary_temperatures(self) -> None:
        """Config accepts temperature at boundaries (0.0 and 2.0)."""
        config_low = SessionConfig(model_id=DEFAULT_MODEL_ID, temperature=0.0)
        config_high = SessionConfig(model_id=DEFAULT_MODEL_ID, temperature=2.0)

        assert config_low.temperature == 0.0
        assert config_high.temperature == 2.0

    def test_config_is_immutable(self) -> None:
        """Edits go through model_copy, not attribute assignment."""
        config = SessionConfig(model_id=DEFAULT_MODEL_ID)

        with pytest.raises(ValidationError):
            config.temperature = 1.0

    def test_effective_system_instruction_appends_suffix(self) -> None:
        config = SessionConfig(model_id=DEFAULT_MODEL_ID, system_instruction="Be brief.")

        assert config.effective_system_instruction == f"Be brief.\n{SYSTEM_INSTRUCTION_SUFFIX}"

    def test_generation_config_copies_sampling_values(self) -> None:
        config = SessionConfig(
            model_id=DEFAULT_MODEL_ID, temperature=0.3, top_p=0.5, top_k=10, max_output_tokens=100
        )

        generation = config.generation_config()

        check.equal(generation.temperature, 0.3)
        check.equal(generation.top_p, 0.5)
        check.equal(generation.top_k, 10)
        check.equal(generation.max_output_tokens, 100)
        check.equal(generation.response_mime_type, "text/plain")
        check.equal(generation.candidate_count, 1)


class TestModelCatalog:
    """Tests for the model catalog and model switching."""

    def test_catalog_ids_are_unique(self) -> None:
        ids = [m.id for m in AVAILABLE_MODELS]

        assert len(ids) == len(set(ids))

    def test_only_thinking_model_supports_thinking(self) -> None:
        flash = SessionConfig(model_id="gemini-2.0-flash")
        thinking = SessionConfig(model_id="gemini-2.0-flash-thinking-exp-01-21")
        custom = SessionConfig(model_id="some-future-model")

        check.is_false(flash.model_supports_thinking)
        check.is_true(thinking.model_supports_thinking)
        check.is_false(custom.model_supports_thinking)

    def test_get_model_option_unknown_returns_none(self) -> None:
        assert get_model_option("nope") is None

    def test_with_model_applies_catalog_defaults(self) -> None:
        """Switching models applies that model's token ceiling and temperature."""
        config = SessionConfig(model_id=DEFAULT_MODEL_ID, top_k=12, temperature=0.1)

        switched = config.with_model("gemini-2.0-flash")

        check.equal(switched.model_id, "gemini-2.0-flash")
        check.equal(switched.max_output_tokens, 8192)
        check.equal(switched.temperature, 1.0)
        check.equal(switched.top_k, 12)
        check.equal(config.model_id, DEFAULT_MODEL_ID)

    def test_with_model_rejects_unknown_model(self) -> None:
        config = SessionConfig(model_id=DEFAULT_MODEL_ID)

        with pytest.raises(ValueError, match="Unknown model"):
            config.with_model("gemini-99")


class TestAppConfig:
    """Tests for AppConfig validation."""

    def test_config_fails_with_missing_api_key(self) -> None:
        """Config raises ValueError when API key is missing."""
        with pytest.raises(ValidationError) as exc_info:
            AppConfig(api_key="")

        assert "API key required" in str(exc_info.value)

    def test_config_fails_with_whitespace_api_key(self) -> None:
        """Config rejects whitespace-only API key."""
        with pytest.raises(ValidationError):
            AppConfig(api_key="   ")

    def test_config_strips_api_key_whitespace(self) -> None:
        """Config strips leading/trailing whitespace from API key."""
        config = AppConfig(api_key="  test-key  ")

        assert config.api_key == "test-key"

    def test_google_api_key_is_fallback(self) -> None:
        """GOOGLE_API_KEY is used when GEMINI_API_KEY is not set."""
        with patch.dict("os.environ", {"GOOGLE_API_KEY": "google-key"}, clear=True):
            config = get_app_config()

        assert config.api_key == "google-key"

    def test_gemini_api_key_wins(self) -> None:
        env = {"GEMINI_API_KEY": "gemini-key", "GOOGLE_API_KEY": "google-key"}
        with patch.dict("os.environ", env, clear=True):
            config = get_app_config()

        assert config.api_key == "gemini-key"
