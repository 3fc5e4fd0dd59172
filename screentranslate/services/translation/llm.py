"""LLM 번역 구현체

- LLMTranslationProvider: chat/completions 형식 (OpenAI, Ollama)
- ClaudeTranslationProvider: Anthropic messages 형식
"""

from typing import Any

import httpx

from screentranslate.infra.credentials import CredentialStore
from screentranslate.schemas.engine import EngineType, ProviderConfig
from screentranslate.services.translation.base import TranslationFailedError
from screentranslate.services.translation.prompting import PromptTranslationProvider

ANTHROPIC_VERSION = "2023-06-01"


def parse_chat_content(data: Any) -> str:
    """chat/completions 응답에서 choices[0].message.content 추출"""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise TranslationFailedError("응답 형식 오류: choices[0].message.content 없음") from e
    if not isinstance(content, str):
        raise TranslationFailedError("응답 형식 오류: content가 문자열이 아님")
    return content


class LLMTranslationProvider(PromptTranslationProvider):
    """chat/completions endpoint를 사용하는 LLM 번역

    openai는 Bearer 키가 필요하다. ollama/custom은 키가 저장되어 있을 때만 전송한다.
    """

    def __init__(
        self,
        engine: EngineType,
        client: httpx.AsyncClient,
        config: ProviderConfig,
        credentials: CredentialStore | None = None,
    ) -> None:
        super().__init__(engine.value, engine.display_name, client, config, credentials)
        self._engine = engine

    async def is_available(self) -> bool:
        if not self._engine.requires_api_key:
            return True
        return await super().is_available()

    async def _auth_headers(self) -> dict[str, str]:
        if self._engine.requires_api_key:
            stored = await self._require_credentials()
        else:
            stored = await self._optional_credentials()
            if stored is None:
                return {}
        return {"Authorization": f"Bearer {stored.api_key.get_secret_value()}"}

    async def _complete(self, prompt: str) -> str:
        base_url = self._base_url()
        body = {
            "model": self.config.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        response = await self._send(
            "POST",
            f"{base_url}/chat/completions",
            json=body,
            headers=self._headers(await self._auth_headers()),
        )
        return parse_chat_content(self._json(response))


class ClaudeTranslationProvider(PromptTranslationProvider):
    """Anthropic Messages API 번역"""

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ProviderConfig,
        credentials: CredentialStore,
    ) -> None:
        super().__init__(
            EngineType.CLAUDE.value, EngineType.CLAUDE.display_name, client, config, credentials
        )

    async def _complete(self, prompt: str) -> str:
        stored = await self._require_credentials()
        base_url = self._base_url()
        body = {
            "model": self.config.model_name,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = self._headers(
            {
                "x-api-key": stored.api_key.get_secret_value(),
                "anthropic-version": ANTHROPIC_VERSION,
            }
        )
        response = await self._send("POST", f"{base_url}/v1/messages", json=body, headers=headers)
        data = self._json(response)

        blocks = data.get("content") if isinstance(data, dict) else None
        if not isinstance(blocks, list):
            raise TranslationFailedError("응답 형식 오류: content 없음")

        return "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
