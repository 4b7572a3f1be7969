"""匯入單位：一張照片、一段影片或一組 Live Photo。"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional

from .media_metadata import NormalizedMetadata
from .sidecar_manifest import SidecarManifest


class FileKind(str, Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class ItemShape(str, Enum):
    IMAGE_ONLY = "IMAGE_ONLY"
    VIDEO_ONLY = "VIDEO_ONLY"
    PAIRED = "PAIRED"
    PAIRED_WITH_EXTRAS = "PAIRED_WITH_EXTRAS"


class MatchStatus(str, Enum):
    UNRESOLVED = "UNRESOLVED"
    BOUND = "BOUND"
    NO_CANDIDATE = "NO_CANDIDATE"
    AMBIGUOUS = "AMBIGUOUS"
    SKIPPED = "SKIPPED"


class BindingConflictError(ValueError):
    """項目已綁定到不同的目的地 id。"""


@dataclass
class MediaPart:
    path: Path
    kind: FileKind
    metadata: NormalizedMetadata = field(default_factory=NormalizedMetadata)
    manifest: Optional[SidecarManifest] = None

    @property
    def content_identifier(self) -> Optional[str]:
        return self.metadata.content_identifier

    @property
    def file_size(self) -> Optional[int]:
        return self.metadata.file_size

    def to_dict(self) -> dict[str, object]:
        return {
            "path": str(self.path),
            "kind": self.kind.value,
            "metadata": self.metadata.to_dict(),
            "manifest": self.manifest.to_dict() if self.manifest else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MediaPart":
        manifest_data = data.get("manifest")
        return cls(
            path=Path(data["path"]),
            kind=FileKind(data["kind"]),
            metadata=NormalizedMetadata.from_dict(data.get("metadata") or {}),
            manifest=(
                SidecarManifest.from_dict(manifest_data, Path(manifest_data["path"]))
                if manifest_data
                else None
            ),
        )


@dataclass
class MatchResult:
    status: MatchStatus = MatchStatus.UNRESOLVED
    destination_id: Optional[str] = None
    candidates: List[str] = field(default_factory=list)
    tier: Optional[int] = None
    source: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status.value,
            "destination_id": self.destination_id,
            "candidates": list(self.candidates),
            "tier": self.tier,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MatchResult":
        return cls(
            status=MatchStatus(data.get("status", MatchStatus.UNRESOLVED.value)),
            destination_id=data.get("destination_id"),
            candidates=list(data.get("candidates") or []),
            tier=data.get("tier"),
            source=data.get("source"),
        )


_SLOT_FIELDS = ("image", "video")


def _check_slots(image: Optional[MediaPart], video: Optional[MediaPart]) -> None:
    if image is None and video is None:
        raise ValueError("ContentItem 至少需要影像或影片其中之一")
    if image is not None and image.kind is not FileKind.IMAGE:
        raise ValueError(f"影像欄位放入非影像檔: {image.path}")
    if video is not None and video.kind is not FileKind.VIDEO:
        raise ValueError(f"影片欄位放入非影片檔: {video.path}")


@dataclass
class ContentItem:
    """Live Photo 的影像與影片共用一個項目；同型別的第二個檔案放進 extras。"""

    image: Optional[MediaPart] = None
    video: Optional[MediaPart] = None
    extras: List[MediaPart] = field(default_factory=list)
    match: MatchResult = field(default_factory=MatchResult)

    def __post_init__(self) -> None:
        _check_slots(self.image, self.video)
        object.__setattr__(self, "_slots_ready", True)

    def __setattr__(self, name: str, value: object) -> None:
        # 建構完成後，直接改寫欄位也必須維持形狀
        if name in _SLOT_FIELDS and self.__dict__.get("_slots_ready"):
            _check_slots(
                value if name == "image" else self.image,  # type: ignore[arg-type]
                value if name == "video" else self.video,  # type: ignore[arg-type]
            )
        super().__setattr__(name, value)

    @classmethod
    def from_part(cls, part: MediaPart) -> "ContentItem":
        if part.kind is FileKind.IMAGE:
            return cls(image=part)
        return cls(video=part)

    @property
    def shape(self) -> ItemShape:
        if self.image is not None and self.video is not None:
            return ItemShape.PAIRED_WITH_EXTRAS if self.extras else ItemShape.PAIRED
        if self.image is not None:
            return ItemShape.IMAGE_ONLY
        return ItemShape.VIDEO_ONLY

    @property
    def is_paired(self) -> bool:
        return self.image is not None and self.video is not None

    @property
    def main_part(self) -> MediaPart:
        return self.image if self.image is not None else self.video  # type: ignore[return-value]

    @property
    def content_identifier(self) -> Optional[str]:
        for part in self.parts():
            if part.content_identifier:
                return part.content_identifier
        return None

    @property
    def destination_id(self) -> Optional[str]:
        return self.match.destination_id

    @property
    def is_bound(self) -> bool:
        return self.match.status is MatchStatus.BOUND

    @property
    def is_resolved(self) -> bool:
        return self.match.status in {MatchStatus.BOUND, MatchStatus.SKIPPED}

    @property
    def has_manifest(self) -> bool:
        return any(part.manifest is not None for part in self.parts())

    def parts(self) -> Iterator[MediaPart]:
        if self.image is not None:
            yield self.image
        if self.video is not None:
            yield self.video

    def all_paths(self) -> list[Path]:
        paths = [part.path for part in self.parts()]
        paths.extend(part.path for part in self.extras)
        return paths

    def slot_for(self, kind: FileKind) -> Optional[MediaPart]:
        return self.image if kind is FileKind.IMAGE else self.video

    def add_part(self, part: MediaPart) -> bool:
        """放入空的欄位並回傳 True；欄位已佔用時改列為 extra 並回傳 False。"""
        if self.is_bound:
            raise ValueError(f"項目已綁定 {self.destination_id}，不可再變更: {part.path}")
        if self.slot_for(part.kind) is None:
            if part.kind is FileKind.IMAGE:
                self.image = part
            else:
                self.video = part
            return True
        self.extras.append(part)
        return False

    def bind(self, destination_id: str, *, tier: Optional[int] = None, source: str = "matcher") -> bool:
        if self.is_bound:
            if self.match.destination_id == destination_id:
                return False
            raise BindingConflictError(
                f"{self.main_part.path} 已綁定 {self.match.destination_id}，不可改綁 {destination_id}"
            )
        self.match = MatchResult(
            status=MatchStatus.BOUND,
            destination_id=destination_id,
            candidates=[destination_id],
            tier=tier,
            source=source,
        )
        return True

    def mark_ambiguous(self, candidates: list[str], tier: int) -> None:
        self.match = MatchResult(
            status=MatchStatus.AMBIGUOUS,
            candidates=list(candidates),
            tier=tier,
            source="matcher",
        )

    def mark_no_candidate(self) -> None:
        self.match = MatchResult(status=MatchStatus.NO_CANDIDATE, source="matcher")

    def mark_skipped(self, reason: str) -> None:
        self.match = MatchResult(status=MatchStatus.SKIPPED, source=reason)

    def to_dict(self) -> dict[str, object]:
        return {
            "shape": self.shape.value,
            "image": self.image.to_dict() if self.image else None,
            "video": self.video.to_dict() if self.video else None,
            "extras": [part.to_dict() for part in self.extras],
            "match": self.match.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ContentItem":
        return cls(
            image=MediaPart.from_dict(data["image"]) if data.get("image") else None,
            video=MediaPart.from_dict(data["video"]) if data.get("video") else None,
            extras=[MediaPart.from_dict(part) for part in data.get("extras") or []],
            match=MatchResult.from_dict(data.get("match") or {}),
        )
