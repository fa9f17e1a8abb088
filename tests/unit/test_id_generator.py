"""Tests for sp_common.id_generator and sp_common.datetime_utils."""

import time
from datetime import UTC, datetime
from unittest.mock import patch

import pytest

from src.sp_common.datetime_utils import epoch_seconds, utc_now
from src.sp_common.id_generator import SnowflakeIdGenerator, generate_store_id


class TestSnowflakeIdGenerator:
    def test_returns_decimal_str(self) -> None:
        result = SnowflakeIdGenerator(machine_id=1).next_id()
        assert isinstance(result, str)
        assert result.isdigit()

    def test_unique_ids(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        ids = {gen.next_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_monotonically_increasing(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        prev = int(gen.next_id())
        for _ in range(100):
            current = int(gen.next_id())
            assert current > prev
            prev = current

    def test_machine_id_is_encoded(self) -> None:
        value = int(SnowflakeIdGenerator(machine_id=5).next_id())
        assert (value >> 12) & 0x3FF == 5

    def test_rejects_out_of_range_machine_id(self) -> None:
        with pytest.raises(ValueError):
            SnowflakeIdGenerator(machine_id=1024)

    def test_clock_going_backwards_still_increases(self) -> None:
        gen = SnowflakeIdGenerator(machine_id=1)
        now = time.time()
        with patch("src.sp_common.id_generator.time.time", return_value=now):
            first = int(gen.next_id())
        with patch("src.sp_common.id_generator.time.time", return_value=now - 5):
            second = int(gen.next_id())
        assert second > first

    def test_module_generator(self) -> None:
        assert generate_store_id() != generate_store_id()


class TestDatetimeUtils:
    def test_utc_now_is_aware_utc(self) -> None:
        now = utc_now()
        assert isinstance(now, datetime)
        assert now.tzinfo == UTC

    def test_epoch_seconds_tracks_wall_clock(self) -> None:
        assert abs(epoch_seconds() - time.time()) < 1
