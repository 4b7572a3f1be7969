"""對帳流程協調：解析 → 配對 → 去重 → 疊加先前紀錄 → 比對 → 整理。"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..adapters.photos_app import DestinationLibraryClient, DestinationLibraryError, PhotosAppClient
from ..config import ConfigManager
from ..models import Library, ProcessError
from ..utils import path_utils, reporting, time_utils
from ..utils.error_handler import ErrorHandler, FatalReconciliationError
from ..utils.logger import RunLogContext, get_logger
from .album_titles import order_albums
from .destination_matcher import DestinationMatcher
from .library_store import dump_library, load_library
from .metadata_normalizer import MetadataNormalizer
from .organizer import LibraryOrganizer, OrganizeResult
from .run_state import RunRecordWriter, RunStateMerger, load_run_state
from .takeout_dirs import AlbumParser

FINAL_DUMP_FILE = "final.json"


@dataclass
class ReconcileResult:
    library: Library
    run_dir: Path
    summary_info: reporting.SummaryInfo
    summary_path: Path
    final_path: Path
    organize_results: List[OrganizeResult] = field(default_factory=list)
    errors: List[ProcessError] = field(default_factory=list)


def create_run_dir(output_root: Path, run_folder_prefix: str = "Run_") -> Path:
    base = output_root / f"{run_folder_prefix}{time_utils.get_timestamp_for_folder()}"
    run_dir = base
    counter = 1
    while run_dir.exists():
        run_dir = base.with_name(f"{base.name}_{counter}")
        counter += 1
    run_dir.mkdir(parents=True)
    return run_dir


class Reconciler:
    def __init__(
        self,
        config: ConfigManager,
        client: Optional[DestinationLibraryClient] = None,
        normalizer: Optional[MetadataNormalizer] = None,
        *,
        what_if: Optional[bool] = None,
        console: bool = True,
    ) -> None:
        self.config = config
        self.client = client
        self.normalizer = normalizer
        self.what_if = bool(config.get("run.what_if", False)) if what_if is None else what_if
        self.console = console
        self.run_folder_prefix = str(config.get("run.folder_prefix", "Run_"))
        self.title_prefixes = config.get_list("albums.default_title_prefixes")

    def build_library(self, source: Path, logger=None, error_handler: ErrorHandler | None = None) -> Library:
        """Takeout 目錄會完整解析；``.json`` 傾印檔直接讀回並套用相簿篩選。"""
        logger = logger or get_logger(self.__class__.__name__)
        error_handler = error_handler or ErrorHandler()
        if source.is_file() and source.suffix.lower() == ".json":
            library = load_library(source)
            include = self.config.get_list("albums.include")
            exclude = self.config.get_list("albums.exclude")
            library.albums = [
                album for album in library.albums if path_utils.is_album_selected(album.title, include, exclude)
            ]
            logger.info(f"由 {source} 載入 {len(library.albums)} 個相簿")
            return library

        parser = AlbumParser(self.config, self.normalizer, logger, error_handler)
        return parser.parse(source)

    def run(self, source: Path, output_root: Path, *, run_dir: Optional[Path] = None) -> ReconcileResult:
        if not source.exists():
            raise FileNotFoundError(f"來源不存在: {source}")

        run_dir = run_dir or create_run_dir(output_root, self.run_folder_prefix)
        error_handler = ErrorHandler()
        library = Library()
        organize_results: list[OrganizeResult] = []
        failure: Optional[Exception] = None

        with RunLogContext(run_dir, console=self.console) as logger:
            logger.info(f"開始執行: {source} -> {run_dir}{'（what-if）' if self.what_if else ''}")
            logger.debug(f"設定: {json.dumps(self.config.to_dict(), ensure_ascii=False)}")
            client = self.client or PhotosAppClient(self.config, what_if=self.what_if, logger=logger)
            writer = None if self.what_if else RunRecordWriter(run_dir, logger)
            try:
                library = self.build_library(source, logger, error_handler)
                state = load_run_state(output_root, self.run_folder_prefix, exclude=[run_dir], logger=logger)
                RunStateMerger(client, self.config, logger, error_handler).merge(library, state)

                matcher = DestinationMatcher(client, self.config, logger, error_handler)
                organizer = LibraryOrganizer(
                    client,
                    matcher,
                    writer,
                    self.config,
                    what_if=self.what_if,
                    logger=logger,
                    error_handler=error_handler,
                )
                for album in order_albums(library.albums, self.title_prefixes):
                    logger.info(f"處理相簿: {album.title}（{len(album.items)} 個項目）")
                    matcher.match_items(album, album.items)
                    organize_results.append(organizer.organize(album))
            except FatalReconciliationError as exc:
                error_handler.add(exc.to_process_error())
                logger.error(f"執行中止: {exc}")
                failure = exc
            except DestinationLibraryError as exc:
                logger.error(f"目的地相片庫錯誤，執行中止: {exc}")
                failure = exc
            except Exception as exc:
                logger.exception(f"未預期的錯誤，執行中止: {exc}")
                failure = exc
            finally:
                if writer is not None:
                    writer.close()

            final_path = dump_library(library, run_dir / FINAL_DUMP_FILE)
            summary_info = reporting.build_summary_info(
                library=library,
                source=source,
                run_dir=run_dir,
                what_if=self.what_if,
                error_handler=error_handler,
                imported_count=sum(result.imported_count for result in organize_results),
                created_album_count=sum(1 for result in organize_results if result.created_album),
                fatal_error=str(failure) if failure is not None else None,
            )
            summary_path = reporting.write_summary(run_dir, summary_info)
            logger.info(
                f"完成: ambiguous {len(summary_info.ambiguous)} 個，未解決 {len(summary_info.unresolved)} 個，"
                f"摘要 {summary_path}"
            )

        if failure is not None:
            raise failure

        return ReconcileResult(
            library=library,
            run_dir=run_dir,
            summary_info=summary_info,
            summary_path=summary_path,
            final_path=final_path,
            organize_results=organize_results,
            errors=list(error_handler.errors),
        )
