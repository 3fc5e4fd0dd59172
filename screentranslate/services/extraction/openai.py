"""OpenAI (및 호환 API) Vision 구현체"""

from screentranslate.services.extraction.base import AnalysisError, HttpVisionBackend

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o"
MAX_TOKENS = 4096


class OpenAIVisionBackend(HttpVisionBackend):
    """chat/completions + image_url(data URI)

    API 키가 없으면 Authorization 헤더 없이 호출한다 (로컬 호환 서버).
    """

    name = "OpenAI"

    async def complete(
        self, image_b64: str, mime_type: str, system_prompt: str, user_prompt: str
    ) -> str:
        headers = {"Content-Type": "application/json"}
        if self._api_key is not None and self._api_key.get_secret_value():
            headers["Authorization"] = f"Bearer {self._api_key.get_secret_value()}"

        body = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": user_prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{mime_type};base64,{image_b64}"},
                        },
                    ],
                },
            ],
            "max_tokens": MAX_TOKENS,
            "temperature": 0.1,
        }
        data = await self._post(f"{self._base_url}/chat/completions", body, headers)

        try:
            choice = data["choices"][0]
            content = choice["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise AnalysisError("OpenAI 응답 형식 오류") from e

        if choice.get("finish_reason") == "length":
            raise AnalysisError("OpenAI 응답이 max_tokens에서 잘렸습니다")
        if not content:
            raise AnalysisError("OpenAI 빈 응답")
        return content
