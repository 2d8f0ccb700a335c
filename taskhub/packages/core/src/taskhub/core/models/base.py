"""模型基类 -- Python 侧 snake_case，线上与落盘字段统一为 camelCase"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """按 camelCase 别名序列化的模型基类"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """序列化为 JSON 兼容的 camelCase 字典"""
        return self.model_dump(by_alias=True, mode="json")
