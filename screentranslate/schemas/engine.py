"""번역 엔진 설정 스키마

엔진 종류, 엔진별 접속 설정, 자격 증명 모델.
"""

import uuid
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from screentranslate.constants import Timeout


class EngineType(StrEnum):
    LOCAL = "local"
    MTRAN = "mtran"
    BAIDU = "baidu"
    GOOGLE = "google"
    DEEPL = "deepl"
    OPENAI = "openai"
    CLAUDE = "claude"
    GEMINI = "gemini"
    OLLAMA = "ollama"
    CUSTOM = "custom"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def requires_api_key(self) -> bool:
        """API 키가 있어야 사용할 수 있는 엔진인지 여부

        custom은 키 없는 self-hosted endpoint도 허용한다.
        """
        return self in {
            EngineType.BAIDU,
            EngineType.GOOGLE,
            EngineType.DEEPL,
            EngineType.OPENAI,
            EngineType.CLAUDE,
            EngineType.GEMINI,
        }

    @property
    def uses_prompt(self) -> bool:
        """프롬프트 템플릿으로 번역하는 LLM 엔진인지 여부"""
        return self in {
            EngineType.OPENAI,
            EngineType.CLAUDE,
            EngineType.GEMINI,
            EngineType.OLLAMA,
            EngineType.CUSTOM,
        }

    @property
    def default_base_url(self) -> str | None:
        return _DEFAULT_BASE_URLS.get(self)

    @property
    def default_model(self) -> str | None:
        return _DEFAULT_MODELS.get(self)


_DISPLAY_NAMES: dict[EngineType, str] = {
    EngineType.LOCAL: "Local (offline)",
    EngineType.MTRAN: "MTranServer",
    EngineType.BAIDU: "Baidu Translate",
    EngineType.GOOGLE: "Google Cloud Translation",
    EngineType.DEEPL: "DeepL",
    EngineType.OPENAI: "OpenAI",
    EngineType.CLAUDE: "Claude",
    EngineType.GEMINI: "Gemini",
    EngineType.OLLAMA: "Ollama",
    EngineType.CUSTOM: "OpenAI Compatible",
}

_DEFAULT_BASE_URLS: dict[EngineType, str] = {
    EngineType.MTRAN: "http://127.0.0.1:8989",
    EngineType.BAIDU: "https://fanyi-api.baidu.com/api/trans/vip/translate",
    EngineType.GOOGLE: "https://translation.googleapis.com/language/translate/v2",
    EngineType.DEEPL: "https://api.deepl.com/v2",
    EngineType.OPENAI: "https://api.openai.com/v1",
    EngineType.CLAUDE: "https://api.anthropic.com",
    EngineType.OLLAMA: "http://localhost:11434/v1",
}

_DEFAULT_MODELS: dict[EngineType, str] = {
    EngineType.LOCAL: "facebook/nllb-200-distilled-600M",
    EngineType.OPENAI: "gpt-4o-mini",
    EngineType.CLAUDE: "claude-sonnet-4-20250514",
    EngineType.GEMINI: "gemini-2.5-flash-lite",
    EngineType.OLLAMA: "llama3",
}


class EngineSelectionMode(StrEnum):
    """여러 번역 엔진을 고르는 방식"""

    PRIMARY_WITH_FALLBACK = "primary_fallback"  # 우선 엔진, 실패 시 fallback
    PARALLEL = "parallel"  # 여러 엔진 동시 실행 후 결과 비교
    QUICK_SWITCH = "quick_switch"  # 우선 엔진만 실행, 다른 엔진은 요청 시 실행
    SCENE_BINDING = "scene_binding"  # 번역 상황별로 지정한 엔진 사용


class TranslationScene(StrEnum):
    SCREENSHOT = "screenshot"
    TEXT_SELECTION = "text_selection"
    TRANSLATE_AND_INSERT = "translate_and_insert"


class SceneBinding(BaseModel):
    """번역 상황에 묶인 엔진 설정

    prompt_template이 있으면 LLM 엔진의 엔진별 프롬프트보다 우선한다.
    """

    model_config = ConfigDict(frozen=True)

    primary_engine: EngineType = EngineType.LOCAL
    fallback_engine: EngineType | None = EngineType.MTRAN
    fallback_enabled: bool = True
    prompt_template: str | None = None

    @property
    def effective_fallback(self) -> EngineType | None:
        return self.fallback_engine if self.fallback_enabled else None


class ProviderConfig(BaseModel):
    """엔진 접속 설정 (불변)"""

    model_config = ConfigDict(frozen=True)

    base_url: str | None = None
    model_name: str | None = None
    timeout: float = Timeout.REQUEST
    temperature: float = 0.3
    max_tokens: int = 2048
    prompt_template: str | None = None
    custom_headers: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def default_for(cls, engine: EngineType) -> "ProviderConfig":
        timeout = Timeout.OLLAMA if engine == EngineType.OLLAMA else Timeout.REQUEST
        return cls(
            base_url=engine.default_base_url,
            model_name=engine.default_model,
            timeout=timeout,
        )


class CompatibleConfig(BaseModel):
    """사용자가 추가한 OpenAI 호환 endpoint 설정"""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    display_name: str
    base_url: str
    model_name: str
    has_api_key: bool = True
    timeout: float = Timeout.REQUEST
    temperature: float = 0.3
    max_tokens: int = 2048
    prompt_template: str | None = None

    @property
    def credential_id(self) -> str:
        """자격 증명 저장소 키"""
        return f"{EngineType.CUSTOM}:{self.id}"

    @staticmethod
    def composite_id(index: int) -> str:
        """레지스트리 키 ("custom:0", "custom:1", ...)"""
        return f"{EngineType.CUSTOM}:{index}"


class StoredCredentials(BaseModel):
    """엔진 자격 증명

    SecretStr이라 repr/str/로그에 원문이 노출되지 않는다.
    """

    api_key: SecretStr
    app_id: str | None = None
    additional: dict[str, SecretStr] = Field(default_factory=dict)
