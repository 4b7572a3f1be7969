"""工具模組。"""

from . import batching, file_classifier, path_utils, reporting, time_utils
from .error_handler import ErrorHandler, FatalReconciliationError

__all__ = [
    "batching",
    "file_classifier",
    "path_utils",
    "reporting",
    "time_utils",
    "ErrorHandler",
    "FatalReconciliationError",
]
