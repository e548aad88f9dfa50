"""
操作结果模型

公共操作通过 Outcome 显式返回成功 / 失败，而不是依赖异常控制流程。
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """失败类别"""

    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    INTEGRITY = "integrity"
    PARSE = "parse"
    IO = "io"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class Outcome:
    """操作结果，成功时为真值"""

    ok: bool
    error: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def success(cls, message: str = "") -> "Outcome":
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, error: ErrorKind, message: str = "") -> "Outcome":
        return cls(ok=False, error=error, message=message)

    def __bool__(self) -> bool:
        return self.ok
