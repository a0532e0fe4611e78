"""原始任务状态模型 -- 外部任务源的不可信边界

RawTaskStatus 所有字段可选，类型不符的字段被清洗为默认值而不是抛异常；
thinking_steps / tool_calls / slides / agents 仅保证是 list，
其中每一项由解码器用 RawThinkingStep 等模型单独校验，
单项失败只跳过该项，不影响整次轮询。
"""

import json
import math
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _coerce_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _coerce_error(value: Any) -> str | None:
    """错误字段可能是字符串或 {"message": ...} 对象"""
    if isinstance(value, dict):
        value = value.get("message")
    text = _coerce_str(value)
    return text or None


class RawTaskStatus(BaseModel):
    """GET status(task_id) 的响应

    只有 status 决定轮询流程；其余字段缺失或损坏时按“不存在”处理。
    """

    model_config = ConfigDict(extra="ignore")

    schema_version: int = Field(default=1, description="原始状态格式版本")
    id: str | None = None
    status: str | None = Field(default=None, description="小写后的外部状态")
    thinking_steps: list[Any] = Field(default_factory=list)
    tool_calls: list[Any] = Field(default_factory=list)
    slides: list[Any] = Field(default_factory=list)
    agents: list[Any] = Field(default_factory=list)
    progress: float | None = None
    output: Any = None
    result: Any = None
    error: str | None = None
    presentation_id: str | None = None

    @field_validator("schema_version", mode="before")
    @classmethod
    def _version(cls, value: Any) -> int:
        return value if isinstance(value, int) and not isinstance(value, bool) else 1

    @field_validator("id", "presentation_id", mode="before")
    @classmethod
    def _ids(cls, value: Any) -> str | None:
        return _coerce_str(value)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> str | None:
        text = _coerce_str(value)
        return text.strip().lower() if text else None

    @field_validator("thinking_steps", "tool_calls", "slides", "agents", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list[Any]:
        return value if isinstance(value, list) else []

    @field_validator("progress", mode="before")
    @classmethod
    def _progress(cls, value: Any) -> float | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            try:
                number = float(value)
            except ValueError:
                return None
        else:
            return None
        return number if math.isfinite(number) else None

    @field_validator("error", mode="before")
    @classmethod
    def _error(cls, value: Any) -> str | None:
        return _coerce_error(value)

    @property
    def final_output(self) -> Any:
        """output 优先，缺失时回退 result"""
        return self.output if self.output not in (None, "") else self.result

    @classmethod
    def parse(cls, data: Any) -> "RawTaskStatus":
        """非对象响应视为空状态"""
        if not isinstance(data, dict):
            return cls()
        return cls.model_validate(data)


class RawThinkingStep(BaseModel):
    """thinking_steps[] 中的一项"""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: str = "running"
    title: str | None = None
    description: str | None = None
    actions: list[str] = Field(default_factory=list)
    result: str | None = None
    started_at: Any = None
    completed_at: Any = None

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value: Any) -> Any:
        return _coerce_str(value) or value

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("actions", mode="before")
    @classmethod
    def _actions(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]


class RawToolCall(BaseModel):
    """tool_calls[] 中的一项"""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str = Field(validation_alias=AliasChoices("name", "tool_name", "type"))
    status: str = "running"
    arguments: Any = Field(default=None, validation_alias=AliasChoices("arguments", "args"))
    result: Any = None
    output: Any = None
    error: str | None = None
    created_at: Any = None
    completed_at: Any = None

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value: Any) -> Any:
        return _coerce_str(value) or value

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("error", mode="before")
    @classmethod
    def _error(cls, value: Any) -> str | None:
        return _coerce_error(value)

    @property
    def input_text(self) -> str:
        """调用参数序列化为 JSON 文本，缺失时为 {}"""
        arguments = self.arguments if self.arguments is not None else {}
        if isinstance(arguments, str):
            return arguments
        return json.dumps(arguments, ensure_ascii=False, default=str)

    @property
    def result_text(self) -> str | None:
        value = self.result if self.result not in (None, "") else self.output
        if value is None or isinstance(value, str):
            return value
        return json.dumps(value, ensure_ascii=False, default=str)


class RawSlide(BaseModel):
    """slides[] 中的一项；layout 保留原文，由 SlidePreview 归一化"""

    model_config = ConfigDict(extra="ignore")

    id: str
    order_index: int = Field(default=0, validation_alias=AliasChoices("order_index", "index", "order"))
    title: str = ""
    content: str = ""
    layout: Any = None

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value: Any) -> Any:
        return _coerce_str(value) or value

    @field_validator("title", "content", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, str):
            return value
        return json.dumps(value, ensure_ascii=False, default=str)


class RawAgentUpdate(BaseModel):
    """agents[] 中的一项"""

    model_config = ConfigDict(extra="ignore")

    agent: str = Field(validation_alias=AliasChoices("agent", "name"))
    status: str
    action: str | None = Field(
        default=None, validation_alias=AliasChoices("action", "current_action")
    )
    progress: int | None = Field(default=None, ge=0, le=100)

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value
