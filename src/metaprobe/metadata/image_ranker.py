"""
Image candidate priorities, filtering and the merge-and-dedupe ranking.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Dict, Iterable, Optional, Tuple

from metaprobe.protocols import ImageSource, ImageType

OG_IMAGE_PRIORITY = 100
TWITTER_IMAGE_PRIORITY = 90
TWITTER_IMAGE_SRC_PRIORITY = 85
APPLE_TOUCH_ICON_PRIORITY = 80
STRUCTURED_IMAGE_PRIORITY = 60
INLINE_IMAGE_PRIORITY = 30
SCREENSHOT_PRIORITY = 10

_SIZES_RE = re.compile(r"(\d+)\s*[xX]\s*(\d+)")


def inline_priority(width: Optional[int], height: Optional[int]) -> int:
    """Inline images rank lowest, with a boost for large declared dimensions."""
    w, h = width or 0, height or 0
    if w >= 600 or h >= 400:
        return INLINE_IMAGE_PRIORITY + 20
    if w >= 300 or h >= 200:
        return INLINE_IMAGE_PRIORITY + 10
    return INLINE_IMAGE_PRIORITY


def is_tracking_pixel(width: Optional[int], height: Optional[int]) -> bool:
    return (width is not None and width <= 1) or (height is not None and height <= 1)


def is_small_data_uri(url: str, min_bytes: int) -> bool:
    if not url.lower().startswith("data:"):
        return False
    payload = url.split(",", 1)[1] if "," in url else ""
    return len(payload) < min_bytes


def parse_sizes(sizes: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """`"180x180"` -> (180, 180); `"any"` or garbage -> (None, None)."""
    if not sizes:
        return None, None
    match = _SIZES_RE.search(sizes)
    if not match:
        return None, None
    return int(match.group(1)), int(match.group(2))


def rank_images(candidates: Iterable[ImageSource]) -> Tuple[ImageSource, ...]:
    """
    Union image candidates into a ranked, duplicate-free tuple.

    Entries with the same URL collapse to the highest priority one, which
    borrows any width, height or alt it lacks from the others. The result is
    sorted by descending priority; ties keep first-seen order.
    """
    merged: Dict[str, ImageSource] = {}
    for candidate in candidates:
        if not candidate.url:
            continue
        existing = merged.get(candidate.url)
        if existing is None:
            merged[candidate.url] = candidate
            continue
        best, other = (candidate, existing) if candidate.priority > existing.priority else (existing, candidate)
        merged[candidate.url] = replace(
            best,
            width=best.width if best.width is not None else other.width,
            height=best.height if best.height is not None else other.height,
            alt=best.alt or other.alt,
        )
    return tuple(sorted(merged.values(), key=lambda image: -image.priority))


def screenshot_image(url: str, width: int, height: int) -> ImageSource:
    return ImageSource(url=url, type=ImageType.SCREENSHOT, priority=SCREENSHOT_PRIORITY, width=width, height=height)
