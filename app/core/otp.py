"""
Expiring one-time code cache.

Bounded in both size and time. Expired entries are dropped lazily when
they are looked up; when full, the oldest entry is evicted on insert.
Instances are owned by the application (app.state.otp_cache) so a shared
backend can replace this one in multi-process deployments.
"""

import secrets
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class OtpResult(str, Enum):
    OK = "ok"
    MISSING = "missing"
    EXPIRED = "expired"
    MISMATCH = "mismatch"


@dataclass
class _Entry:
    code: str
    expires_at: float


def generate_numeric_code(digits: int = 6) -> str:
    low = 10 ** (digits - 1)
    return str(low + secrets.randbelow(9 * low))


class ExpiringCodeCache:
    def __init__(
        self,
        ttl_seconds: float = 300,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()

    @staticmethod
    def _key(key: str) -> str:
        return key.strip().lower()

    def __len__(self) -> int:
        return len(self._entries)

    def issue(self, key: str, code: Optional[str] = None) -> str:
        """Store a fresh code for key (replacing any previous one) and return it"""
        key = self._key(key)
        code = code or generate_numeric_code()
        self._entries.pop(key, None)
        while len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)
        self._entries[key] = _Entry(code=code, expires_at=self._clock() + self.ttl_seconds)
        return code

    def verify(self, key: str, code: str) -> OtpResult:
        """Check a code; a successful match consumes the entry"""
        key = self._key(key)
        entry = self._entries.get(key)
        if entry is None:
            return OtpResult.MISSING
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return OtpResult.EXPIRED
        if not secrets.compare_digest(entry.code, str(code)):
            return OtpResult.MISMATCH
        del self._entries[key]
        return OtpResult.OK
