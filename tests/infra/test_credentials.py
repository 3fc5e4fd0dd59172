from screentranslate.config import Settings
from screentranslate.infra.credentials import MemoryCredentialStore, SettingsCredentialStore
from screentranslate.schemas.engine import StoredCredentials


def _settings(**kwargs: object) -> Settings:
    return Settings(_env_file=None, **kwargs)  # type: ignore[arg-type]


class TestSettingsCredentialStore:
    async def test_missing_key(self) -> None:
        store = SettingsCredentialStore(_settings())
        assert not await store.has_credentials("deepl")
        assert await store.get_credentials("deepl") is None

    async def test_key_from_settings(self) -> None:
        store = SettingsCredentialStore(_settings(deepl_api_key="dl-key"))
        creds = await store.get_credentials("deepl")

        assert creds is not None
        assert creds.api_key.get_secret_value() == "dl-key"

    async def test_empty_key_is_missing(self) -> None:
        store = SettingsCredentialStore(_settings(openai_api_key=""))
        assert not await store.has_credentials("openai")

    async def test_baidu_requires_app_id(self) -> None:
        store = SettingsCredentialStore(_settings(baidu_secret_key="secret"))
        assert not await store.has_credentials("baidu")

        store = SettingsCredentialStore(_settings(baidu_secret_key="secret", baidu_app_id="app"))
        creds = await store.get_credentials("baidu")
        assert creds is not None
        assert creds.app_id == "app"

    async def test_compatible_ids_use_custom_key(self) -> None:
        store = SettingsCredentialStore(_settings(custom_api_key="ck"))
        assert await store.has_credentials("custom:0b7c")

    async def test_unknown_provider(self) -> None:
        store = SettingsCredentialStore(_settings(openai_api_key="x"))
        assert not await store.has_credentials("unknown")


class TestMemoryCredentialStore:
    async def test_save_and_delete(self) -> None:
        store = MemoryCredentialStore()
        await store.save("openai", StoredCredentials(api_key="k"))  # type: ignore[arg-type]
        assert await store.has_credentials("openai")

        await store.delete("openai")
        assert await store.get_credentials("openai") is None

    async def test_delete_missing_is_noop(self) -> None:
        await MemoryCredentialStore().delete("nothing")
