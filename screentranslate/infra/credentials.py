"""엔진 자격 증명 저장소

Provider는 요청 시점마다 저장소에서 자격 증명을 조회하며 캐싱하지 않는다.

구현체:
- SettingsCredentialStore: 환경변수/.env (pydantic-settings SecretStr)
- MemoryCredentialStore: 런타임 등록 (테스트, 사용자 정의 endpoint)
"""

import asyncio
from typing import Protocol

from pydantic import SecretStr

from screentranslate.config import Settings
from screentranslate.schemas.engine import EngineType, StoredCredentials


class CredentialStore(Protocol):
    """provider_id(엔진 값 또는 "custom:<id>") 기준 자격 증명 조회"""

    async def has_credentials(self, provider_id: str) -> bool: ...

    async def get_credentials(self, provider_id: str) -> StoredCredentials | None: ...


class SettingsCredentialStore:
    """Settings의 SecretStr 필드에서 자격 증명을 읽는 저장소"""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def has_credentials(self, provider_id: str) -> bool:
        return await self.get_credentials(provider_id) is not None

    async def get_credentials(self, provider_id: str) -> StoredCredentials | None:
        s = self._settings
        keys: dict[str, SecretStr | None] = {
            EngineType.GEMINI: s.gemini_api_key,
            EngineType.OPENAI: s.openai_api_key,
            EngineType.CLAUDE: s.claude_api_key,
            EngineType.GOOGLE: s.google_api_key,
            EngineType.DEEPL: s.deepl_api_key,
            EngineType.BAIDU: s.baidu_secret_key,
            EngineType.MTRAN: s.mtran_api_key,
            EngineType.CUSTOM: s.custom_api_key,
        }
        key = keys.get(provider_id)
        if provider_id.startswith(f"{EngineType.CUSTOM}:"):
            key = s.custom_api_key

        if key is None or not key.get_secret_value():
            return None

        if provider_id == EngineType.BAIDU:
            # Baidu는 app id와 secret이 모두 있어야 유효
            if not s.baidu_app_id:
                return None
            return StoredCredentials(api_key=key, app_id=s.baidu_app_id)

        return StoredCredentials(api_key=key)


class MemoryCredentialStore:
    """메모리 기반 자격 증명 저장소"""

    def __init__(self, initial: dict[str, StoredCredentials] | None = None) -> None:
        self._items: dict[str, StoredCredentials] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def save(self, provider_id: str, credentials: StoredCredentials) -> None:
        async with self._lock:
            self._items[provider_id] = credentials

    async def delete(self, provider_id: str) -> None:
        async with self._lock:
            self._items.pop(provider_id, None)

    async def has_credentials(self, provider_id: str) -> bool:
        async with self._lock:
            return provider_id in self._items

    async def get_credentials(self, provider_id: str) -> StoredCredentials | None:
        async with self._lock:
            return self._items.get(provider_id)
