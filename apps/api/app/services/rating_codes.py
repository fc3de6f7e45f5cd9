"""Short-lived customer rating codes.

Codes are one letter followed by one digit (260 values). The registry tracks
issued codes with an expiry in process memory; the ``code`` column of the
orders collection stays authoritative, so a code missing from memory is looked
up there and backfilled.
"""

import random
import string
from collections.abc import Callable
from datetime import datetime, timedelta
from threading import Lock

from app.models.domain import now_utc
from app.observability import log_event

CODE_LETTERS = string.ascii_uppercase
CODE_DIGITS = string.digits
CODE_SPACE_SIZE = len(CODE_LETTERS) * len(CODE_DIGITS)
DEFAULT_CODE_TTL = timedelta(days=7)

CodeLookup = Callable[[str], bool]


class RatingCodeSpaceExhaustedError(RuntimeError):
    def __init__(self) -> None:
        super().__init__(f"All {CODE_SPACE_SIZE} rating codes are currently live")


def normalize_code(code: str | None) -> str:
    if not isinstance(code, str):
        return ""
    return code.strip().upper()


class RatingCodeRegistry:
    def __init__(
        self,
        code_lookup: CodeLookup | None = None,
        ttl: timedelta = DEFAULT_CODE_TTL,
        clock: Callable[[], datetime] = now_utc,
        rng: random.Random | None = None,
    ) -> None:
        self._code_lookup = code_lookup
        self._ttl = ttl
        self._clock = clock
        self._rng = rng or random.SystemRandom()
        self._lock = Lock()
        # expired entries are kept so they are not revived by the fallback lookup
        self._expires_at: dict[str, datetime] = {}

    def issue_code(self) -> str:
        now = self._clock()
        with self._lock:
            live = {code for code, expires_at in self._expires_at.items() if expires_at > now}
            if len(live) >= CODE_SPACE_SIZE:
                raise RatingCodeSpaceExhaustedError()

            while True:
                code = self._rng.choice(CODE_LETTERS) + self._rng.choice(CODE_DIGITS)
                if code not in live:
                    break

            self._expires_at[code] = now + self._ttl
        log_event("rating_code_issued", code=code)
        return code

    def is_valid(self, code: str | None) -> bool:
        normalized = normalize_code(code)
        if not normalized:
            return False

        now = self._clock()
        with self._lock:
            expires_at = self._expires_at.get(normalized)
        if expires_at is not None:
            return expires_at > now

        if self._code_lookup is None or not self._code_lookup(normalized):
            return False

        with self._lock:
            self._expires_at[normalized] = now + self._ttl
        log_event("rating_code_backfilled", code=normalized)
        return True

    def invalidate(self, code: str | None) -> None:
        normalized = normalize_code(code)
        if not normalized:
            return
        with self._lock:
            self._expires_at.pop(normalized, None)

    def live_codes(self) -> set[str]:
        now = self._clock()
        with self._lock:
            return {code for code, expires_at in self._expires_at.items() if expires_at > now}

    def reset(self) -> None:
        with self._lock:
            self._expires_at.clear()
