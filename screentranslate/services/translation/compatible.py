"""OpenAI 호환 endpoint 번역

사용자가 등록한 self-hosted/서드파티 endpoint. API 키는 선택 사항.
"""

import httpx

from screentranslate.infra.credentials import CredentialStore
from screentranslate.schemas.engine import CompatibleConfig, ProviderConfig
from screentranslate.services.translation.llm import parse_chat_content
from screentranslate.services.translation.prompting import PromptTranslationProvider


class CompatibleTranslationProvider(PromptTranslationProvider):
    def __init__(
        self,
        compatible: CompatibleConfig,
        index: int,
        client: httpx.AsyncClient,
        credentials: CredentialStore | None = None,
    ) -> None:
        config = ProviderConfig(
            base_url=compatible.base_url,
            model_name=compatible.model_name,
            timeout=compatible.timeout,
            temperature=compatible.temperature,
            max_tokens=compatible.max_tokens,
            prompt_template=compatible.prompt_template,
        )
        super().__init__(
            CompatibleConfig.composite_id(index),
            compatible.display_name,
            client,
            config,
            credentials,
            credential_id=compatible.credential_id,
        )
        self._compatible = compatible

    @property
    def compatible_config(self) -> CompatibleConfig:
        return self._compatible

    async def is_available(self) -> bool:
        if not self._compatible.has_api_key:
            return True
        return await super().is_available()

    async def _complete(self, prompt: str) -> str:
        headers: dict[str, str] = {}
        if self._compatible.has_api_key:
            stored = await self._require_credentials()
            headers["Authorization"] = f"Bearer {stored.api_key.get_secret_value()}"

        body = {
            "model": self.config.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        base_url = self._base_url()
        response = await self._send(
            "POST", f"{base_url}/chat/completions", json=body, headers=self._headers(headers)
        )
        return parse_chat_content(self._json(response))
