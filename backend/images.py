"""Tagged image references.

A cached or displayed image is either inline data (a base64 ``data:`` URL) or
a plain remote URL. The kind is stored next to the value so readers never
have to guess it from the string.
"""

from __future__ import annotations

import base64
import binascii
import json
import mimetypes
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RefKind(str, Enum):
    INLINE = "inline"
    URL = "url"


@dataclass(frozen=True)
class ImageRef:
    kind: RefKind
    value: str

    @classmethod
    def inline(cls, data: bytes, mime: str = "image/png") -> "ImageRef":
        b64 = base64.b64encode(data).decode("ascii")
        return cls(RefKind.INLINE, f"data:{mime};base64,{b64}")

    @classmethod
    def url(cls, u: str) -> "ImageRef":
        return cls(RefKind.URL, u)

    @classmethod
    def from_data_url(cls, s: str) -> "ImageRef":
        if not isinstance(s, str) or not s.startswith("data:"):
            raise ValueError("not a data URL")
        head, sep, body = s.partition(",")
        if not sep or not head.endswith(";base64"):
            raise ValueError("only base64 data URLs are supported")
        try:
            base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"bad base64 payload: {e}") from e
        return cls(RefKind.INLINE, s)

    @classmethod
    def from_file(cls, path: str, max_bytes: int) -> "ImageRef":
        size = os.path.getsize(path)
        if size > max_bytes:
            raise ValueError(f"{os.path.basename(path)} is larger than {max_bytes // (1024 * 1024)} MB")
        mime = mimetypes.guess_type(path)[0] or "application/octet-stream"
        with open(path, "rb") as f:
            return cls.inline(f.read(), mime)

    @property
    def is_inline(self) -> bool:
        return self.kind is RefKind.INLINE

    @property
    def mime(self) -> str:
        if not self.is_inline:
            return ""
        return self.value[5:].split(";", 1)[0]

    def payload(self) -> bytes:
        if not self.is_inline:
            raise ValueError("URL references carry no payload")
        _, _, body = self.value.partition(",")
        try:
            return base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"bad base64 payload: {e}") from e

    def dumps(self) -> str:
        return json.dumps({"kind": self.kind.value, "value": self.value})

    @classmethod
    def loads(cls, raw: Optional[str]) -> Optional["ImageRef"]:
        if not raw:
            return None
        try:
            obj = json.loads(raw)
            return cls(RefKind(obj["kind"]), str(obj["value"]))
        except (ValueError, KeyError, TypeError):
            return None
