class Delimiter:
    BATCH = "\n---\n"  # LLM 일괄 번역 시 세그먼트 구분자


class Timeout:
    REQUEST = 30.0
    OLLAMA = 60.0
    VISION = 60.0
    HEALTH_PROBE = 2.0


class Sentinel:
    """연결 확인용 번역 요청"""

    TEXT = "Hello"
    SOURCE = "en"
    TARGET = "zh-Hans"


class Progress:
    IDLE = 0.0
    ANALYZING = 0.25
    TRANSLATING = 0.5
    RENDERING = 0.75
    COMPLETED = 1.0
    FAILED = 0.0


class Confidence:
    HIGH = 0.7  # 이 값 초과면 고신뢰 세그먼트
    DEFAULT = 1.0


class PromptVar:
    SOURCE_LANGUAGE = "{source_language}"
    TARGET_LANGUAGE = "{target_language}"
    TEXT = "{text}"
