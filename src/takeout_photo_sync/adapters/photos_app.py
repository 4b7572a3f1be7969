"""目的地相片庫（macOS Photos）轉接層。

對帳引擎只依賴 ``DestinationLibraryClient``；``PhotosAppClient`` 透過
``osascript -`` 執行 AppleScript，所有使用者字串都以 argv 傳入而不拼進腳本。
"""

from __future__ import annotations

import re
import subprocess
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

from ..config import ConfigManager
from ..models import DestinationMediaInfo, ImportedMedia, SearchCriteria
from ..utils.logger import get_logger

Runner = Callable[..., subprocess.CompletedProcess]

DATA_POINT_DIVIDER = "✂"
ITEM_DIVIDER = "☇"
NOT_FOUND = "NOT FOUND"

_IMPORTED_ITEM_PATTERN = re.compile(r"^media item id (?P<photo>.*?) of album id (?P<album>.*)$")

_EPOCH_HELPER = """
on epochOf(theDate, nowDate, nowEpoch)
    return ((theDate - nowDate) + nowEpoch) as integer
end epochOf
"""

SEARCH_SCRIPT = (
    """
on run argv
    set output to ""
    tell application "Photos"
        repeat with search_term in argv
            set found to ""
            set images to search for (search_term as text)
            repeat with img in images
                set found to found & (get id of img) & "%(item)s"
            end repeat
            set output to output & found & "%(data)s"
        end repeat
    end tell
    return output
end run
"""
) % {"item": ITEM_DIVIDER, "data": DATA_POINT_DIVIDER}

GET_INFO_SCRIPT = (
    _EPOCH_HELPER
    + """
on run argv
    set nowEpoch to (do shell script "date +%%s") as integer
    set nowDate to current date
    set output to ""
    tell application "Photos"
        repeat with media_id in argv
            set img to media item id (media_id as text)
            set output to output & (media_id as text) & "%(data)s" & (filename of img) & "%(data)s" & (size of img) & "%(data)s" & (my epochOf(get date of img, nowDate, nowEpoch)) & "%(item)s"
        end repeat
    end tell
    return output
end run
"""
) % {"item": ITEM_DIVIDER, "data": DATA_POINT_DIVIDER}

CREATE_OR_GET_ALBUM_SCRIPT = """
on run argv
    tell application "Photos"
        set album_name to item 1 of argv
        if (exists album named album_name) then
            set a to album named album_name
        else
            set a to make new album named album_name
        end if
        return id of a
    end tell
end run
"""

ALBUM_COUNT_SCRIPT = """
on run argv
    tell application "Photos"
        set album_id to item 1 of argv
        if (exists album id album_id) then
            return count of media item in (album id album_id)
        else
            return "%s"
        end if
    end tell
end run
""" % NOT_FOUND

ADD_TO_ALBUM_SCRIPT = """
on run argv
    tell application "Photos"
        set album_name to item 1 of argv
        if (exists album named album_name) then
            set a to album named album_name
        else
            set a to make new album named album_name
        end if
        set media_items to {}
        repeat with i from 2 to (count of argv)
            set end of media_items to media item id (item i of argv)
        end repeat
        set originalCount to count of media item in a
        add media_items to a
        return (count of media item in a) - originalCount
    end tell
end run
"""

IMPORT_SCRIPT = """
on run argv
    tell application "Photos"
        set album_name to item 1 of argv
        if (exists album named album_name) then
            set a to album named album_name
        else
            set a to make new album named album_name
        end if
        set images to {}
        repeat with i from 2 to (count of argv)
            set end of images to (POSIX file (item i of argv))
        end repeat
        import images into a without skip check duplicates
    end tell
end run
"""

RESTART_SCRIPT = """
tell application "Photos"
    quit
    delay 2
    activate
end tell
"""


class DestinationLibraryError(RuntimeError):
    """目的地相片庫回報錯誤。"""


class DestinationLibraryClient(Protocol):
    def search(self, criteria: Sequence[SearchCriteria]) -> list[list[str]]:
        ...

    def get_info(self, media_ids: Sequence[str]) -> list[DestinationMediaInfo]:
        ...

    def create_or_get_album(self, title: str) -> str:
        ...

    def get_album_item_count(self, album_id: str) -> Optional[int]:
        ...

    def add_items_to_album(self, title: str, media_ids: Sequence[str]) -> int:
        ...

    def import_files(self, title: str, file_paths: Sequence[Path]) -> list[ImportedMedia]:
        ...

    def restart(self) -> None:
        ...


def search_term_for(filename: str) -> str:
    """Photos 的 search 以詞為單位；用不含副檔名與 (n) 後綴的主檔名搜尋。"""
    stem = Path(filename).stem
    return re.sub(r"\s?\(\d+\)$", "", stem) or stem


class PhotosAppClient:
    def __init__(
        self,
        config: ConfigManager | None = None,
        *,
        what_if: bool = False,
        logger=None,
        runner: Optional[Runner] = None,
    ) -> None:
        config = config or ConfigManager()
        self.logger = logger or get_logger(self.__class__.__name__)
        self.osascript_path = str(config.get("destination.osascript_path", "osascript"))
        self.timeout_sec = float(config.get("destination.timeout_sec", 600))
        self.what_if = what_if
        self.runner = runner or subprocess.run

    def _run_script(self, script: str, args: Sequence[str] = (), *, mutating: bool = False) -> str:
        if mutating and self.what_if:
            self.logger.info(f"[what-if] osascript {' '.join(args)}")
            self.logger.debug(script)
            return ""

        try:
            result = self.runner(
                [self.osascript_path, "-", *args],
                input=script,
                capture_output=True,
                text=True,
                timeout=self.timeout_sec,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise DestinationLibraryError(f"osascript 執行失敗: {exc}") from exc

        stderr = (result.stderr or "").strip()
        if stderr or result.returncode != 0:
            raise DestinationLibraryError(stderr or f"osascript 回傳 {result.returncode}")
        return result.stdout or ""

    def search(self, criteria: Sequence[SearchCriteria]) -> list[list[str]]:
        if not criteria:
            return []
        terms = [search_term_for(item.filename) for item in criteria]
        output = self._run_script(SEARCH_SCRIPT, terms)
        groups = output.rstrip("\n").split(DATA_POINT_DIVIDER)
        # 最後一段永遠是結尾分隔符後的空字串
        groups = groups[: len(criteria)]
        results: list[list[str]] = []
        for group in groups:
            results.append([media_id.strip() for media_id in group.split(ITEM_DIVIDER) if media_id.strip()])
        while len(results) < len(criteria):
            results.append([])
        return results

    def get_info(self, media_ids: Sequence[str]) -> list[DestinationMediaInfo]:
        if not media_ids:
            return []
        output = self._run_script(GET_INFO_SCRIPT, list(media_ids))
        infos: list[DestinationMediaInfo] = []
        for chunk in output.strip().split(ITEM_DIVIDER):
            if not chunk.strip():
                continue
            parts = chunk.strip().split(DATA_POINT_DIVIDER)
            if len(parts) != 4:
                self.logger.warning(f"無法解析 get-info 輸出: {chunk!r}")
                continue
            media_id, filename, size, timestamp = parts
            infos.append(
                DestinationMediaInfo(
                    media_id=media_id,
                    filename=filename,
                    size=_to_int(size),
                    timestamp=_to_float(timestamp),
                )
            )
        return infos

    def create_or_get_album(self, title: str) -> str:
        if self.what_if:
            self.logger.info(f"[what-if] create-or-get album: {title}")
            return ""
        return self._run_script(CREATE_OR_GET_ALBUM_SCRIPT, [title]).strip()

    def get_album_item_count(self, album_id: str) -> Optional[int]:
        output = self._run_script(ALBUM_COUNT_SCRIPT, [album_id]).strip()
        if output == NOT_FOUND:
            return None
        return _to_int(output)

    def add_items_to_album(self, title: str, media_ids: Sequence[str]) -> int:
        if not media_ids:
            self.logger.info(f"略過 {title}：沒有需要加入的項目")
            return 0
        output = self._run_script(ADD_TO_ALBUM_SCRIPT, [title, *media_ids], mutating=True)
        return _to_int(output.strip()) or 0

    def import_files(self, title: str, file_paths: Sequence[Path]) -> list[ImportedMedia]:
        if not file_paths:
            self.logger.info(f"略過 {title}：沒有需要匯入的檔案")
            return []
        output = self._run_script(
            IMPORT_SCRIPT,
            [title, *(str(path) for path in file_paths)],
            mutating=True,
        ).strip()
        self.logger.debug(output)
        if not output:
            return []

        imported: list[ImportedMedia] = []
        for item in output.split(","):
            match = _IMPORTED_ITEM_PATTERN.match(item.strip())
            if match is None:
                self.logger.warning(f"無法解析匯入結果: {item.strip()!r}")
                continue
            imported.append(ImportedMedia(photo_id=match.group("photo"), album_id=match.group("album")))
        return imported

    def restart(self) -> None:
        self.logger.info("重新啟動 Photos...")
        self._run_script(RESTART_SCRIPT, mutating=True)


def _to_int(value: str) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _to_float(value: str) -> Optional[float]:
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return None
