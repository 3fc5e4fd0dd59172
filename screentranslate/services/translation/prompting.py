"""프롬프트 기반(LLM) 번역 공통 구현

일괄 번역 API가 없는 LLM 엔진은 세그먼트를 구분자로 이어붙여 한 번에 요청하고,
응답을 같은 구분자로 나눈다. 개수가 맞지 않으면 세그먼트별 순차 요청으로 전환한다.
"""

import logging
import re
from abc import abstractmethod

from screentranslate.constants import Delimiter, PromptVar
from screentranslate.schemas.pipeline import TranslationResult
from screentranslate.services.translation.base import BaseProvider, TranslationFailedError

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = """Translate the following text from {source_language} to {target_language}.
Provide ONLY the translated text without any explanations, notes, or quotation marks.
Preserve line breaks, numbers, and proper nouns.

{text}"""

INSERT_PROMPT = """Translate the following text from {source_language} to {target_language}.
The translation will be inserted at the cursor position.
Provide ONLY the translated text without any explanations, formatting, or quotation marks.
Keep the translation concise and natural for the target language.

{text}"""

BATCH_INSTRUCTION = """The text contains several independent segments separated by a line
containing only "---". Translate each segment separately and keep exactly the same
separators and the same number of segments in your answer."""

AUTO_DETECT = "auto-detect"

_SPLIT_PATTERN = re.compile(r"\n[ \t]*-{3,}[ \t]*\n")


def build_prompt(
    template: str | None,
    text: str,
    source_language: str | None,
    target_language: str,
) -> str:
    """템플릿 변수 치환

    str.format 대신 replace를 사용하여 본문의 중괄호를 그대로 둔다.
    """
    prompt = template or DEFAULT_PROMPT
    return (
        prompt.replace(PromptVar.SOURCE_LANGUAGE, source_language or AUTO_DETECT)
        .replace(PromptVar.TARGET_LANGUAGE, target_language)
        .replace(PromptVar.TEXT, text)
    )


def split_batch(content: str) -> list[str]:
    return [part.strip() for part in _SPLIT_PATTERN.split(content.strip())]


class PromptTranslationProvider(BaseProvider):
    """LLM 번역 provider 베이스

    하위 클래스는 _complete(prompt)만 구현한다.
    """

    @abstractmethod
    async def _complete(self, prompt: str) -> str:
        """프롬프트 하나를 보내고 응답 본문을 반환"""

    async def translate(
        self, text: str, source_language: str | None, target_language: str
    ) -> TranslationResult:
        source = self._require_text(text)
        prompt = build_prompt(self.config.prompt_template, source, source_language, target_language)

        content = (await self._complete(prompt)).strip()
        if not content:
            raise TranslationFailedError(f"{self.name} 빈 응답")

        return TranslationResult(
            source_text=source,
            translated_text=content,
            source_language=source_language,
            target_language=target_language,
        )

    async def translate_batch(
        self, texts: list[str], source_language: str | None, target_language: str
    ) -> list[TranslationResult]:
        if len(texts) <= 1:
            return await super().translate_batch(texts, source_language, target_language)

        sources = [self._require_text(t) for t in texts]
        joined = Delimiter.BATCH.join(sources)
        prompt = build_prompt(
            self.config.prompt_template, joined, source_language, target_language
        )
        content = await self._complete(f"{BATCH_INSTRUCTION}\n\n{prompt}")
        parts = split_batch(content)

        if len(parts) != len(sources) or not all(parts):
            logger.warning(
                f"{self.name} 일괄 응답 분할 불일치 ({len(parts)}/{len(sources)}), 순차 번역으로 전환"
            )
            return await super().translate_batch(sources, source_language, target_language)

        return [
            TranslationResult(
                source_text=source,
                translated_text=translated,
                source_language=source_language,
                target_language=target_language,
            )
            for source, translated in zip(sources, parts, strict=True)
        ]
