"""Gemini Vision 구현체"""

# pyright: reportMissingTypeStubs=false

import base64

import httpx
from google import genai
from google.genai import errors, types
from pydantic import SecretStr

from screentranslate.constants import Timeout
from screentranslate.services.extraction.base import AnalysisError

DEFAULT_MODEL = "gemini-2.5-flash"


class GeminiVisionBackend:
    """Google Gemini API를 사용한 텍스트 추출

    JSON 응답 모드(response_mime_type)로 호출한다.
    """

    name = "Gemini"

    def __init__(
        self,
        api_key: SecretStr | None,
        model: str = DEFAULT_MODEL,
        timeout: float = Timeout.VISION,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout

    async def complete(
        self, image_b64: str, mime_type: str, system_prompt: str, user_prompt: str
    ) -> str:
        if self._api_key is None or not self._api_key.get_secret_value():
            raise AnalysisError("GEMINI_API_KEY가 설정되지 않았습니다")

        client = genai.Client(
            api_key=self._api_key.get_secret_value(),
            http_options=types.HttpOptions(timeout=int(self._timeout * 1000)),
        )
        image_part = types.Part.from_bytes(data=base64.b64decode(image_b64), mime_type=mime_type)

        try:
            response = await client.aio.models.generate_content(
                model=self._model,
                contents=[user_prompt, image_part],
                config=types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    response_mime_type="application/json",
                    temperature=0.1,
                ),
            )
        except errors.APIError as e:
            raise AnalysisError(f"Gemini API 오류: {e.code} {e.message}") from e
        except httpx.TimeoutException as e:
            raise AnalysisError(f"{self.name} API 타임아웃") from e
        except httpx.TransportError as e:
            raise AnalysisError(f"{self.name} API 연결 실패: {e}") from e

        if not response.text:
            raise AnalysisError("빈 응답")

        return response.text
