"""錯誤與警告記錄。

代碼字首即等級：``E-`` 致命、``W-`` 可恢復、``I-`` 僅供參考。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorLevel(str, Enum):
    INFO = "I"
    RECOVERABLE = "W"
    FATAL = "E"


@dataclass
class ProcessError:
    code: str
    level: ErrorLevel
    message: str
    file_path: Optional[str] = None

    @property
    def is_fatal(self) -> bool:
        return self.level is ErrorLevel.FATAL

    def format_line(self) -> str:
        location = f" ({self.file_path})" if self.file_path else ""
        return f"[{self.code}] {self.message}{location}"

    def to_dict(self) -> dict[str, object]:
        return {
            "code": self.code,
            "level": self.level.value,
            "message": self.message,
            "file_path": self.file_path,
        }
