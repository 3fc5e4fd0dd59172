"""Claude Vision 구현체 (Anthropic Messages API)"""

from screentranslate.services.extraction.base import AnalysisError, HttpVisionBackend

DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_MODEL = "claude-sonnet-4-20250514"
ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 8192


class ClaudeVisionBackend(HttpVisionBackend):
    name = "Claude"

    async def complete(
        self, image_b64: str, mime_type: str, system_prompt: str, user_prompt: str
    ) -> str:
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self._require_key(),
            "anthropic-version": ANTHROPIC_VERSION,
        }
        body = {
            "model": self._model,
            "max_tokens": MAX_TOKENS,
            "system": system_prompt,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {"type": "base64", "media_type": mime_type, "data": image_b64},
                        },
                        {"type": "text", "text": user_prompt},
                    ],
                }
            ],
        }
        data = await self._post(f"{self._base_url}/v1/messages", body, headers)

        if not isinstance(data, dict) or not isinstance(data.get("content"), list):
            raise AnalysisError("Claude 응답 형식 오류")
        if data.get("stop_reason") == "max_tokens":
            raise AnalysisError("Claude 응답이 max_tokens에서 잘렸습니다")

        text = "".join(
            block.get("text", "")
            for block in data["content"]
            if isinstance(block, dict) and block.get("type") == "text"
        )
        if not text:
            raise AnalysisError("Claude 빈 응답")
        return text
