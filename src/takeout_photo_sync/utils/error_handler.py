"""錯誤收集與報告工具。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..models.error_record import ErrorLevel, ProcessError


class FatalReconciliationError(RuntimeError):
    """無法安全繼續的狀況，會中止整個執行。"""

    def __init__(self, code: str, message: str, file_path: Optional[str] = None) -> None:
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message
        self.file_path = file_path

    def to_process_error(self) -> ProcessError:
        return ProcessError(
            code=self.code,
            level=ErrorLevel.FATAL,
            message=self.message,
            file_path=self.file_path,
        )


@dataclass
class ErrorHandler:
    """集中管理錯誤與警告。"""

    errors: List[ProcessError] = field(default_factory=list)

    def add(self, error: ProcessError) -> None:
        self.errors.append(error)

    def add_info(self, code: str, message: str, file_path: Optional[str] = None) -> None:
        self.add(ProcessError(code=code, level=ErrorLevel.INFO, message=message, file_path=file_path))

    def add_warning(self, code: str, message: str, file_path: Optional[str] = None) -> None:
        self.add(
            ProcessError(code=code, level=ErrorLevel.RECOVERABLE, message=message, file_path=file_path)
        )

    def add_fatal(self, code: str, message: str, file_path: Optional[str] = None) -> None:
        self.add(ProcessError(code=code, level=ErrorLevel.FATAL, message=message, file_path=file_path))

    def get_by_level(self, level: ErrorLevel) -> List[ProcessError]:
        return [error for error in self.errors if error.level == level]

    def get_by_code(self, code: str) -> List[ProcessError]:
        return [error for error in self.errors if error.code == code]

    def count_by_code(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for error in self.errors:
            counts[error.code] = counts.get(error.code, 0) + 1
        return counts

    def to_dicts(self) -> List[dict[str, object]]:
        return [error.to_dict() for error in self.errors]
