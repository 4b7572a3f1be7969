"""日誌工具。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def get_logger(name: str, log_file: Optional[Path] = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)

    log_path = log_file or (Path.cwd() / "error.log")
    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = logging.FileHandler(log_path, encoding="utf-8", delay=True)
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.INFO)
    stream_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)

    return logger


class RunLogContext:
    """單次執行的 logging context。

    開始執行時建立 run.log 與 console handler，結束時 flush、關閉並移除，
    整個流程的元件都使用同一個 logger，不依賴全域狀態。
    """

    def __init__(self, run_dir: Path, *, console: bool = True) -> None:
        self.run_dir = run_dir
        self.log_path = run_dir / "run.log"
        self.console = console
        self.name = f"takeout_photo_sync.run.{run_dir.name}.{id(self):x}"
        self._logger: Optional[logging.Logger] = None
        self._handlers: list[logging.Handler] = []

    @property
    def logger(self) -> logging.Logger:
        if self._logger is None:
            raise RuntimeError("RunLogContext 尚未開啟")
        return self._logger

    def open(self) -> logging.Logger:
        if self._logger is not None:
            return self._logger

        self.run_dir.mkdir(parents=True, exist_ok=True)
        logger = logging.getLogger(self.name)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False

        formatter = logging.Formatter(LOG_FORMAT)
        file_handler = logging.FileHandler(self.log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        self._handlers.append(file_handler)

        if self.console:
            stream_handler = logging.StreamHandler()
            stream_handler.setLevel(logging.INFO)
            stream_handler.setFormatter(formatter)
            self._handlers.append(stream_handler)

        for handler in self._handlers:
            logger.addHandler(handler)
        self._logger = logger
        return logger

    def close(self) -> None:
        if self._logger is None:
            return
        for handler in self._handlers:
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)
        self._handlers = []
        self._logger = None

    def __enter__(self) -> logging.Logger:
        return self.open()

    def __exit__(self, exc_type, exc, traceback) -> None:
        self.close()
