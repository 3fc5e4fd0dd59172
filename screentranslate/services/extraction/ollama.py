"""Ollama Vision 구현체 (로컬 VLM)"""

from screentranslate.services.extraction.base import AnalysisError, HttpVisionBackend

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "llava"


class OllamaVisionBackend(HttpVisionBackend):
    """/api/generate (stream=false). 인증 없음."""

    name = "Ollama"

    async def complete(
        self, image_b64: str, mime_type: str, system_prompt: str, user_prompt: str
    ) -> str:
        body = {
            "model": self._model,
            "system": system_prompt,
            "prompt": user_prompt,
            "images": [image_b64],
            "stream": False,
            "format": "json",
            "options": {"temperature": 0.1, "num_predict": 4096},
        }
        data = await self._post(
            f"{self._base_url}/api/generate", body, {"Content-Type": "application/json"}
        )

        content = data.get("response") if isinstance(data, dict) else None
        if not content:
            raise AnalysisError("Ollama 빈 응답")
        return content
