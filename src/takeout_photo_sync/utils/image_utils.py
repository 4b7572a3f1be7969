"""以 Pillow / piexif 讀取影像 EXIF。"""

from __future__ import annotations

from fractions import Fraction
from pathlib import Path
from typing import Optional, Tuple

import piexif
from PIL import Image

from .geo_utils import round_coordinate

_HEIF_REGISTERED = False


def _register_heif_opener() -> None:
    global _HEIF_REGISTERED
    if _HEIF_REGISTERED:
        return
    from pillow_heif import register_heif_opener

    register_heif_opener()
    _HEIF_REGISTERED = True


def _load_exif_dict(path: Path, logger=None) -> Optional[dict]:
    _register_heif_opener()
    try:
        with Image.open(path) as image:
            exif_bytes = image.info.get("exif")
            if not exif_bytes:
                return None
        return piexif.load(exif_bytes)
    except Exception as exc:
        if logger is not None:
            logger.warning(f"無法讀取 EXIF: {path} ({exc})")
        return None


def _decode(value: object) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore").strip("\x00").strip()
    return str(value)


def _rational_to_float(value: object) -> float:
    numerator, denominator = value  # type: ignore[misc]
    if denominator == 0:
        return 0.0
    return float(Fraction(numerator, denominator))


def _dms_to_decimal(dms: object, ref: Optional[str]) -> Optional[float]:
    try:
        degrees, minutes, seconds = (_rational_to_float(part) for part in dms)  # type: ignore[union-attr]
    except (TypeError, ValueError):
        return None
    decimal = degrees + minutes / 60.0 + seconds / 3600.0
    if ref in {"S", "W"}:
        decimal = -decimal
    return decimal


def get_exif_datetime_original(path: Path, logger=None) -> Optional[str]:
    exif_dict = _load_exif_dict(path, logger)
    if not exif_dict:
        return None
    exif_ifd = exif_dict.get("Exif", {})
    return _decode(exif_ifd.get(piexif.ExifIFD.DateTimeOriginal))


def get_gps_coordinates(path: Path, precision: int = 6, logger=None) -> Optional[Tuple[float, float]]:
    exif_dict = _load_exif_dict(path, logger)
    if not exif_dict:
        return None
    gps_ifd = exif_dict.get("GPS", {})
    latitude_raw = gps_ifd.get(piexif.GPSIFD.GPSLatitude)
    longitude_raw = gps_ifd.get(piexif.GPSIFD.GPSLongitude)
    if not latitude_raw or not longitude_raw:
        return None

    latitude = _dms_to_decimal(latitude_raw, _decode(gps_ifd.get(piexif.GPSIFD.GPSLatitudeRef)))
    longitude = _dms_to_decimal(longitude_raw, _decode(gps_ifd.get(piexif.GPSIFD.GPSLongitudeRef)))
    if latitude is None or longitude is None:
        return None
    return round_coordinate(latitude, precision), round_coordinate(longitude, precision)
