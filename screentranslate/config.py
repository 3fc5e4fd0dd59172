from functools import lru_cache
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from screentranslate.constants import Timeout
from screentranslate.schemas.engine import (
    EngineSelectionMode,
    EngineType,
    ProviderConfig,
    SceneBinding,
    TranslationScene,
)

VisionProvider = Literal["gemini", "openai", "claude", "ollama"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # App
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    # Vision (텍스트 추출)
    vision_provider: VisionProvider = "gemini"
    vision_base_url: str = ""  # 비어 있으면 provider 기본값
    vision_model: str = ""
    vision_timeout: float = Timeout.VISION
    vision_api_key: SecretStr | None = None

    # Translation
    translation_engine: EngineType = EngineType.LOCAL
    fallback_engine: EngineType | None = None
    source_language: str | None = None  # None이면 자동 감지
    target_language: str = "zh-Hans"
    request_timeout: float = Timeout.REQUEST

    # 엔진별 endpoint/model 재정의 (비어 있으면 엔진 기본값)
    mtran_base_url: str = "http://127.0.0.1:8989"
    local_model: str = "facebook/nllb-200-distilled-600M"
    openai_base_url: str = ""
    openai_model: str = ""
    claude_base_url: str = ""
    claude_model: str = ""
    gemini_model: str = ""
    ollama_base_url: str = ""
    ollama_model: str = ""
    custom_base_url: str = ""
    custom_model: str = ""
    deepl_base_url: str = ""

    # 엔진별 프롬프트 템플릿 ({source_language}, {target_language}, {text})
    engine_prompts: dict[EngineType, str] = {}

    # 엔진 선택 방식 (텍스트 번역 API 기본값)
    selection_mode: EngineSelectionMode = EngineSelectionMode.PRIMARY_WITH_FALLBACK
    parallel_engines: list[EngineType] = []
    # 번역 상황별 엔진/프롬프트 (JSON, 예: {"text_selection": {"primary_engine": "deepl"}})
    scene_bindings: dict[TranslationScene, SceneBinding] = {}

    # Overlay
    overlay_mode: Literal["below", "replace"] = "below"
    overlay_mask: Literal["solid", "inpaint"] = "solid"

    # Credentials
    gemini_api_key: SecretStr | None = None
    openai_api_key: SecretStr | None = None
    claude_api_key: SecretStr | None = None
    google_api_key: SecretStr | None = None
    deepl_api_key: SecretStr | None = None
    baidu_app_id: str | None = None
    baidu_secret_key: SecretStr | None = None
    mtran_api_key: SecretStr | None = None
    custom_api_key: SecretStr | None = None

    def provider_config(self, engine: EngineType) -> ProviderConfig:
        """엔진 기본값 위에 설정값을 덮어쓴 ProviderConfig 반환"""
        overrides: dict[EngineType, tuple[str, str]] = {
            EngineType.MTRAN: (self.mtran_base_url, ""),
            EngineType.LOCAL: ("", self.local_model),
            EngineType.OPENAI: (self.openai_base_url, self.openai_model),
            EngineType.CLAUDE: (self.claude_base_url, self.claude_model),
            EngineType.GEMINI: ("", self.gemini_model),
            EngineType.OLLAMA: (self.ollama_base_url, self.ollama_model),
            EngineType.CUSTOM: (self.custom_base_url, self.custom_model),
            EngineType.DEEPL: (self.deepl_base_url, ""),
        }
        base_url, model_name = overrides.get(engine, ("", ""))

        config = ProviderConfig.default_for(engine)
        updates: dict[str, object] = {}
        if base_url:
            updates["base_url"] = base_url
        if model_name:
            updates["model_name"] = model_name
        if engine in self.engine_prompts:
            updates["prompt_template"] = self.engine_prompts[engine]
        if engine != EngineType.OLLAMA:
            updates["timeout"] = self.request_timeout

        return config.model_copy(update=updates)


@lru_cache
def get_settings() -> Settings:
    return Settings()
