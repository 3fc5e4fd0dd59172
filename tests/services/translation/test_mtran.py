import httpx
import pytest

from screentranslate.schemas.engine import EngineType, ProviderConfig
from screentranslate.services.translation.base import (
    ConnectionFailedError,
    TranslationFailedError,
)
from screentranslate.services.translation.mtran import MTranServerProvider, normalize_base_url
from tests.conftest import RecordingHandler, json_response, mock_client


def _provider(handler: object, base_url: str = "http://localhost:8989") -> MTranServerProvider:
    config = ProviderConfig.default_for(EngineType.MTRAN).model_copy(update={"base_url": base_url})
    return MTranServerProvider(mock_client(handler), config)  # type: ignore[arg-type]


class TestNormalizeBaseUrl:
    def test_localhost_to_loopback(self) -> None:
        assert normalize_base_url("http://localhost:8989/") == "http://127.0.0.1:8989"

    def test_other_hosts_untouched(self) -> None:
        assert normalize_base_url("http://mtran.lan:8989") == "http://mtran.lan:8989"


class TestMTranServerProvider:
    async def test_translate_wire_format(self) -> None:
        handler = RecordingHandler(json_response({"translation": "你好"}))
        result = await _provider(handler).translate("Hello", "en", "zh-Hans")

        assert result.translated_text == "你好"
        assert str(handler.requests[0].url) == "http://127.0.0.1:8989/translate"
        assert handler.body() == {"text": "Hello", "source_lang": "en", "target_lang": "zh-Hans"}

    async def test_auto_source(self) -> None:
        handler = RecordingHandler(json_response({"translation": "안녕"}))
        await _provider(handler).translate("Hello", None, "ko")
        assert handler.body()["source_lang"] == "auto"

    async def test_batch_is_sequential(self) -> None:
        handler = RecordingHandler(
            json_response({"translation": "一"}), json_response({"translation": "二"})
        )
        results = await _provider(handler).translate_batch(["one", "two"], "en", "zh-Hans")

        assert [r.translated_text for r in results] == ["一", "二"]
        assert len(handler.requests) == 2

    async def test_service_unavailable(self) -> None:
        handler = RecordingHandler(httpx.Response(503))
        with pytest.raises(ConnectionFailedError):
            await _provider(handler).translate("Hello", None, "ko")

    async def test_connection_refused(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ConnectionFailedError):
            await _provider(refuse).translate("Hello", None, "ko")

    async def test_missing_translation_field(self) -> None:
        handler = RecordingHandler(json_response({"result": "x"}))
        with pytest.raises(TranslationFailedError):
            await _provider(handler).translate("Hello", None, "ko")

    async def test_available_when_server_answers(self) -> None:
        handler = RecordingHandler(httpx.Response(404))
        assert await _provider(handler).is_available()
        assert str(handler.requests[0].url) == "http://127.0.0.1:8989/health"

    async def test_unavailable_when_all_probes_fail(self) -> None:
        calls: list[str] = []

        def refuse(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            raise httpx.ConnectError("refused", request=request)

        assert not await _provider(refuse).is_available()
        assert calls == ["/health", "/", "/translate"]
