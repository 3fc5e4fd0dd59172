"""로컬(오프라인) 번역 구현체

기본 엔진은 Hugging Face transformers의 NLLB 모델. 첫 요청 시 로드하며
추론은 worker thread에서 실행한다. transformers는 선택 의존성([local] extra).
"""

import asyncio
import importlib.util
import logging
import threading
from typing import Any, Protocol

import httpx

from screentranslate.schemas.engine import EngineType, ProviderConfig
from screentranslate.schemas.pipeline import TranslationResult
from screentranslate.services.translation.base import (
    BaseProvider,
    InvalidConfigurationError,
    TranslationFailedError,
    ensure_count,
)

logger = logging.getLogger(__name__)

NLLB_CODES = {
    "en": "eng_Latn",
    "zh-Hans": "zho_Hans",
    "zh-Hant": "zho_Hant",
    "ja": "jpn_Jpan",
    "ko": "kor_Hang",
    "fr": "fra_Latn",
    "de": "deu_Latn",
    "es": "spa_Latn",
    "it": "ita_Latn",
    "pt": "por_Latn",
    "ru": "rus_Cyrl",
    "ar": "arb_Arab",
    "vi": "vie_Latn",
    "th": "tha_Thai",
}
DEFAULT_SOURCE = "en"  # NLLB는 자동 감지를 지원하지 않음
MAX_NEW_TOKENS = 512


class LocalEngineUnavailableError(Exception):
    pass


class LocalEngine(Protocol):
    """오프라인 번역 엔진

    구현체:
    - TransformersEngine: NLLB seq2seq 모델
    """

    def is_ready(self) -> bool: ...

    def translate(
        self, texts: list[str], source_language: str | None, target_language: str
    ) -> list[str]:
        """동기 일괄 번역 (worker thread에서 호출됨)

        Raises:
            LocalEngineUnavailableError: 엔진을 로드할 수 없는 경우
        """
        ...


def to_nllb(code: str) -> str:
    return NLLB_CODES.get(code, code)


class TransformersEngine:
    def __init__(self, model_name: str) -> None:
        self._model_name = model_name
        self._model: Any = None
        self._tokenizer: Any = None
        self._lock = threading.Lock()

    def is_ready(self) -> bool:
        return importlib.util.find_spec("transformers") is not None

    def _load(self) -> None:
        with self._lock:
            if self._model is not None:
                return
            try:
                from transformers import AutoModelForSeq2SeqLM, AutoTokenizer
            except ImportError as e:
                raise LocalEngineUnavailableError(
                    "transformers가 설치되지 않았습니다 (pip install 'screentranslate[local]')"
                ) from e

            logger.info(f"로컬 번역 모델 로드: {self._model_name}")
            self._tokenizer = AutoTokenizer.from_pretrained(self._model_name)
            self._model = AutoModelForSeq2SeqLM.from_pretrained(self._model_name)

    def translate(
        self, texts: list[str], source_language: str | None, target_language: str
    ) -> list[str]:
        self._load()
        self._tokenizer.src_lang = to_nllb(source_language or DEFAULT_SOURCE)
        inputs = self._tokenizer(texts, return_tensors="pt", padding=True, truncation=True)
        outputs = self._model.generate(
            **inputs,
            forced_bos_token_id=self._tokenizer.convert_tokens_to_ids(to_nllb(target_language)),
            max_new_tokens=MAX_NEW_TOKENS,
        )
        return list(self._tokenizer.batch_decode(outputs, skip_special_tokens=True))


class LocalTranslationProvider(BaseProvider):
    """오프라인 엔진 provider (자격 증명 불필요, 일괄 번역 지원)"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ProviderConfig,
        engine: LocalEngine | None = None,
    ) -> None:
        super().__init__(EngineType.LOCAL.value, EngineType.LOCAL.display_name, client, config)
        self._engine = engine or TransformersEngine(
            config.model_name or EngineType.LOCAL.default_model or ""
        )

    async def is_available(self) -> bool:
        return self._engine.is_ready()

    async def translate(
        self, text: str, source_language: str | None, target_language: str
    ) -> TranslationResult:
        results = await self.translate_batch([text], source_language, target_language)
        return results[0]

    async def translate_batch(
        self, texts: list[str], source_language: str | None, target_language: str
    ) -> list[TranslationResult]:
        if not texts:
            return []

        sources = [self._require_text(t) for t in texts]
        try:
            translated = await asyncio.to_thread(
                self._engine.translate, sources, source_language, target_language
            )
        except LocalEngineUnavailableError as e:
            raise InvalidConfigurationError(str(e)) from e
        except Exception as e:
            raise TranslationFailedError(f"로컬 엔진 오류: {e}") from e

        ensure_count(translated, len(sources), self.name)

        return [
            TranslationResult(
                source_text=source,
                translated_text=result.strip(),
                source_language=source_language,
                target_language=target_language,
            )
            for source, result in zip(sources, translated, strict=True)
        ]
