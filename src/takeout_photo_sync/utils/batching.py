"""批次切分工具。"""

from __future__ import annotations

from typing import Callable, Iterator, Sequence, TypeVar

T = TypeVar("T")


def chunked(items: Sequence[T], chunk_size: int) -> Iterator[list[T]]:
    if chunk_size <= 0:
        raise ValueError("chunk_size 必須是正整數")
    for start in range(0, len(items), chunk_size):
        yield list(items[start:start + chunk_size])


def chunked_by_weight(
    items: Sequence[T],
    max_weight: int,
    weight: Callable[[T], int],
) -> Iterator[list[T]]:
    """依權重（例如檔案數）切批；單一項目不會被拆開，超重的項目自成一批。"""
    if max_weight <= 0:
        raise ValueError("max_weight 必須是正整數")
    chunk: list[T] = []
    total = 0
    for item in items:
        item_weight = weight(item)
        if chunk and total + item_weight > max_weight:
            yield chunk
            chunk = []
            total = 0
        chunk.append(item)
        total += item_weight
    if chunk:
        yield chunk
