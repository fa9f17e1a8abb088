"""Snowflake-style store identity generator.

Store ids are assigned by the service at creation (not by a DB sequence)
so the id is known before the INSERT and can be used to clear negative
cache entries. Ids are decimal strings that sort by creation time.
"""

import threading
import time

from config.settings import settings


class SnowflakeIdGenerator:
    """Layout (63 bits used):
      - 41 bits: milliseconds since custom epoch
      - 10 bits: machine_id (0-1023)
      - 12 bits: per-millisecond sequence
    """

    _EPOCH_MS = 1_700_000_000_000
    _MACHINE_BITS = 10
    _SEQUENCE_BITS = 12
    _MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1

    def __init__(self, machine_id: int = 0) -> None:
        if not (0 <= machine_id < (1 << self._MACHINE_BITS)):
            raise ValueError(f"machine_id must be 0-{(1 << self._MACHINE_BITS) - 1}")
        self._machine_id = machine_id
        self._sequence = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            now_ms = int(time.time() * 1000)
            # Clock went backwards: keep issuing from the last seen millisecond.
            now_ms = max(now_ms, self._last_ms)
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & self._MAX_SEQUENCE
                if self._sequence == 0:
                    while now_ms <= self._last_ms:
                        now_ms = int(time.time() * 1000)
            else:
                self._sequence = 0
            self._last_ms = now_ms
            value = (
                ((now_ms - self._EPOCH_MS) << (self._MACHINE_BITS + self._SEQUENCE_BITS))
                | (self._machine_id << self._SEQUENCE_BITS)
                | self._sequence
            )
            return str(value)


_default_generator = SnowflakeIdGenerator(machine_id=settings.MACHINE_ID)


def generate_store_id() -> str:
    """Next store id from the process-wide generator."""
    return _default_generator.next_id()
