"""API 응답 공통 스키마"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """camelCase 직렬화를 사용하는 API 스키마 베이스"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
