"""Time-bounded translation cache for provider-backed translations.

Responsibilities:
- Build cheap cache keys from a rolling text hash and a language key.
- Return cached translations only while they are younger than the TTL.
- Track basic cache telemetry (hits/misses).

The 32-bit rolling hash can collide for distinct texts; a collision returns
the other text's translation. This is a known limitation of the key format.
"""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Any, Callable

from ..io.storage import KeyValueStore


DEFAULT_TTL_SECONDS = 24 * 60 * 60
_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def text_hash(text: str) -> str:
    """Return the signed 32-bit rolling hash of `text` in base 36.

    Iterates UTF-16 code units so keys stay stable with the keys written
    by the browser extension sharing the same store.
    """

    encoded = text.encode("utf-16-le")
    value = 0
    for index in range(0, len(encoded), 2):
        code_unit = encoded[index] | (encoded[index + 1] << 8)
        value = ((value << 5) - value + code_unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return _to_base36(value)


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    remaining = abs(value)
    digits: list[str] = []
    while remaining:
        remaining, digit = divmod(remaining, 36)
        digits.append(_BASE36_DIGITS[digit])
    return sign + "".join(reversed(digits))


@dataclass(slots=True)
class TranslationCache:
    """Key-value-backed translation cache with time-based expiry."""

    storage: KeyValueStore
    ttl_seconds: float = DEFAULT_TTL_SECONDS
    clock: Callable[[], float] = time.time
    hits: int = 0
    misses: int = 0

    @staticmethod
    def make_key(text: str, language_key: str) -> str:
        """Return the storage key for (text, language)."""

        return f"translation_cache_{text_hash(text)}_{language_key}"

    def get(self, text: str, language_key: str, now: float | None = None) -> str | None:
        """Return a fresh cached translation, or `None` on a miss.

        Entries older than the TTL are treated as misses and left in place
        until the next `put` supersedes them.
        """

        key = self.make_key(text, language_key)
        entry = self.storage.get([key]).get(key)
        current = self.clock() if now is None else now
        translation = self._fresh_translation(entry, current)
        if translation is None:
            self.misses += 1
            return None
        self.hits += 1
        return translation

    def put(
        self,
        text: str,
        language_key: str,
        translation: str,
        now: float | None = None,
    ) -> None:
        """Store `translation`, overwriting any existing entry for the key."""

        current = self.clock() if now is None else now
        self.storage.set(
            {
                self.make_key(text, language_key): {
                    "translation": translation,
                    "timestamp": int(current * 1000),
                    "sourceText": text,
                    "targetLanguage": language_key,
                }
            }
        )

    def hit_rate(self) -> float:
        """Return cache hit rate for the current cache lifecycle."""

        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / float(total)

    def _fresh_translation(self, entry: Any, now: float) -> str | None:
        if not isinstance(entry, dict):
            return None
        translation = entry.get("translation")
        timestamp = entry.get("timestamp")
        if not isinstance(translation, str) or not translation:
            return None
        if isinstance(timestamp, bool) or not isinstance(timestamp, int | float):
            return None
        if now - (timestamp / 1000.0) > self.ttl_seconds:
            return None
        return translation
