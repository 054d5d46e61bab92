from __future__ import annotations

from datetime import timedelta

from pydantic import BaseModel, ConfigDict

# Remaining TTL reported for absent or expired keys.
NO_TTL = timedelta(milliseconds=-1)

# Text values are UTF-8; bytes that are not valid UTF-8 map to lone
# surrogates so that text -> bytes gives back the stored payload.
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "surrogateescape"


def to_text(data: bytes) -> str:
    return data.decode(TEXT_ENCODING, TEXT_ERRORS)


def to_bytes(text: str) -> bytes:
    return text.encode(TEXT_ENCODING, TEXT_ERRORS)


class KV(BaseModel):
    """A live entry as seen by ``range``: key, payload and remaining TTL."""

    key: str
    data: bytes
    ttl: timedelta

    model_config = ConfigDict(frozen=True)

    @property
    def value(self) -> str:
        return to_text(self.data)
