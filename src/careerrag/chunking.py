from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List

from .errors import InvalidArgumentError


@dataclass(frozen=True)
class Chunk:
    chunk_id: str
    text: str
    meta: Dict


def normalize_text(s: str) -> str:
    s = s.replace("\r\n", "\n").replace("\r", "\n")
    s = re.sub(r"[ \t]+", " ", s)
    s = re.sub(r"\n{3,}", "\n\n", s).strip()
    return s


def chunk_text(text: str, size: int, overlap: int) -> List[str]:
    """
    Fixed-size character windows:
    - each window is at most `size` characters
    - consecutive windows share exactly `overlap` characters
    - only the last window may be shorter

    Boundaries are character-based, so joining the windows after dropping the
    first `overlap` characters of every window but the first gives back `text`.
    """
    if size <= 0 or overlap < 0 or overlap >= size:
        raise InvalidArgumentError(
            "chunk size must be positive and 0 <= overlap < size",
            details={"size": size, "overlap": overlap},
        )
    if not text:
        return []
    if len(text) <= size:
        return [text]

    step = size - overlap
    chunks: List[str] = []
    start = 0
    while True:
        chunks.append(text[start : start + size])
        if start + size >= len(text):
            break
        start += step
    return chunks
