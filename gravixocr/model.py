from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

PNG_MIME = "image/png"


@dataclass(frozen=True)
class ImageBuffer:
    data: bytes
    mime_type: str
    filename: Optional[str] = None
    # size reported by the upload, when `data` was only partially read
    declared_size: Optional[int] = None

    @property
    def size(self) -> int:
        if self.declared_size is not None:
            return max(self.declared_size, len(self.data))
        return len(self.data)


@dataclass(frozen=True)
class ProcessedImageBuffer:
    data: bytes
    mime_type: str = PNG_MIME
    width: Optional[int] = None
    height: Optional[int] = None
    # True when preprocessing failed and `data` is the original upload
    fallback: bool = False

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ExtractionResult:
    text: str
    preprocessed: bool = True

    def to_dict(self) -> dict:
        return {"text": self.text}
