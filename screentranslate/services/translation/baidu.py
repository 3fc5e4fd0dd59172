"""Baidu 번역 API 구현체

요청마다 서명(sign = md5(appid + q + salt + secret))을 생성한다.
일괄 API가 없어 세그먼트별로 순차 요청한다.
"""

import hashlib
import random

import httpx

from screentranslate.infra.credentials import CredentialStore
from screentranslate.schemas.engine import EngineType, ProviderConfig
from screentranslate.schemas.pipeline import TranslationResult
from screentranslate.services.translation.base import (
    BaseProvider,
    InvalidConfigurationError,
    RateLimitedError,
    TranslationFailedError,
)

LANGUAGE_CODES = {
    "zh-Hans": "zh",
    "zh-CN": "zh",
    "zh-Hant": "cht",
    "zh-TW": "cht",
    "ja": "jp",
    "ko": "kor",
    "fr": "fra",
    "es": "spa",
    "ar": "ara",
    "vi": "vie",
}

AUTH_ERROR_CODES = {"52003", "54001", "58000"}  # 미승인 사용자, 서명 오류, 허용되지 않은 IP
RATE_LIMIT_ERROR_CODES = {"54003"}


def to_baidu_language(code: str | None) -> str:
    if code is None:
        return "auto"
    return LANGUAGE_CODES.get(code, code)


def sign(app_id: str, query: str, salt: str, secret: str) -> str:
    return hashlib.md5(f"{app_id}{query}{salt}{secret}".encode()).hexdigest()


class BaiduTranslationProvider(BaseProvider):
    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ProviderConfig,
        credentials: CredentialStore,
    ) -> None:
        super().__init__(
            EngineType.BAIDU.value, EngineType.BAIDU.display_name, client, config, credentials
        )

    async def translate(
        self, text: str, source_language: str | None, target_language: str
    ) -> TranslationResult:
        source = self._require_text(text)
        stored = await self._require_credentials()
        if not stored.app_id:
            raise InvalidConfigurationError("Baidu app id가 설정되지 않았습니다")

        salt = str(random.randint(100000, 999999))
        params = {
            "q": source,
            "from": to_baidu_language(source_language),
            "to": to_baidu_language(target_language),
            "appid": stored.app_id,
            "salt": salt,
            "sign": sign(stored.app_id, source, salt, stored.api_key.get_secret_value()),
        }
        response = await self._send("GET", self._base_url(), params=params)
        data = self._json(response)

        if not isinstance(data, dict):
            raise TranslationFailedError("응답 형식 오류")

        error_code = data.get("error_code")
        if error_code is not None and str(error_code) != "52000":
            self._raise_api_error(str(error_code), str(data.get("error_msg", "")))

        try:
            translated = "\n".join(item["dst"] for item in data["trans_result"])
        except (KeyError, TypeError) as e:
            raise TranslationFailedError("응답에 trans_result가 없습니다") from e

        return TranslationResult(
            source_text=source,
            translated_text=translated,
            source_language=source_language,
            target_language=target_language,
        )

    def _raise_api_error(self, code: str, message: str) -> None:
        if code in AUTH_ERROR_CODES:
            raise InvalidConfigurationError(f"Baidu 인증 오류 {code}: {message}")
        if code in RATE_LIMIT_ERROR_CODES:
            raise RateLimitedError()
        raise TranslationFailedError(f"Baidu 오류 {code}: {message}")
