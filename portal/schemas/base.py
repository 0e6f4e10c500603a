"""
Schema 基类模块
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Schema 基类"""

    model_config = ConfigDict(
        from_attributes=True,  # 支持从 ORM 模型转换
        populate_by_name=True,  # 支持别名填充
        str_strip_whitespace=True,  # 自动去除字符串首尾空格
        use_enum_values=True,  # 枚举字段以值保存，直接写入 ORM
    )


class TimestampSchema(BaseSchema):
    """带整数 ID 与时间戳的响应基类"""

    id: int
    created_at: datetime
    updated_at: datetime
