import uuid

from screentranslate.schemas.engine import (
    CompatibleConfig,
    EngineType,
    ProviderConfig,
    SceneBinding,
    StoredCredentials,
)


class TestEngineType:
    def test_api_key_engines(self) -> None:
        assert EngineType.DEEPL.requires_api_key
        assert EngineType.BAIDU.requires_api_key
        assert not EngineType.LOCAL.requires_api_key
        assert not EngineType.MTRAN.requires_api_key
        assert not EngineType.OLLAMA.requires_api_key

    def test_defaults(self) -> None:
        assert EngineType.OPENAI.default_base_url == "https://api.openai.com/v1"
        assert EngineType.CLAUDE.default_model == "claude-sonnet-4-20250514"
        assert EngineType.LOCAL.default_base_url is None

    def test_every_engine_has_display_name(self) -> None:
        assert all(engine.display_name for engine in EngineType)

    def test_prompt_engines(self) -> None:
        assert EngineType.OPENAI.uses_prompt
        assert EngineType.CUSTOM.uses_prompt
        assert not EngineType.DEEPL.uses_prompt
        assert not EngineType.LOCAL.uses_prompt


class TestSceneBinding:
    def test_default_binding(self) -> None:
        binding = SceneBinding()
        assert binding.primary_engine == EngineType.LOCAL
        assert binding.effective_fallback == EngineType.MTRAN

    def test_disabled_fallback(self) -> None:
        binding = SceneBinding(fallback_engine=EngineType.OPENAI, fallback_enabled=False)
        assert binding.effective_fallback is None


class TestProviderConfig:
    def test_default_for(self) -> None:
        config = ProviderConfig.default_for(EngineType.OPENAI)
        assert config.base_url == "https://api.openai.com/v1"
        assert config.timeout == 30.0
        assert config.temperature == 0.3
        assert config.max_tokens == 2048

    def test_ollama_has_longer_timeout(self) -> None:
        assert ProviderConfig.default_for(EngineType.OLLAMA).timeout == 60.0


class TestCompatibleConfig:
    def test_ids(self) -> None:
        config_id = uuid.uuid4()
        config = CompatibleConfig(
            id=config_id, display_name="LM Studio", base_url="http://x/v1", model_name="m"
        )
        assert config.credential_id == f"custom:{config_id}"
        assert CompatibleConfig.composite_id(2) == "custom:2"


class TestStoredCredentials:
    def test_secret_not_in_repr(self) -> None:
        creds = StoredCredentials(api_key="super-secret")  # type: ignore[arg-type]
        assert "super-secret" not in repr(creds)
        assert "super-secret" not in str(creds)
        assert creds.api_key.get_secret_value() == "super-secret"
