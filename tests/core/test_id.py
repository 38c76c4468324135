import time

import pytest

from solchat.core.id import _CLOCK_DIGITS, Identifier, _Clock


def test_ids_sort_in_creation_order() -> None:
    ids = [Identifier.ascending("message") for _ in range(50)]

    assert ids == sorted(ids)
    assert len(set(ids)) == 50
    assert all(value.startswith("msg_") for value in ids)


def test_timestamp_round_trips_clock() -> None:
    before = int(time.time() * 1000)
    value = Identifier.ascending("usage")
    after = int(time.time() * 1000)

    assert before <= Identifier.timestamp(value) <= after


def test_given_id_must_match_kind() -> None:
    assert Identifier.ascending("request", "req_abc") == "req_abc"
    with pytest.raises(ValueError):
        Identifier.ascending("request", "msg_abc")
    with pytest.raises(ValueError):
        Identifier.timestamp("nounderscore")


def test_clock_keeps_order_far_past_current_time() -> None:
    clock = _Clock()
    now = int(time.time() * 1000)
    later = now + 10 * 365 * 24 * 3600 * 1000
    values = [f"msg_{clock.tick(ms):0{_CLOCK_DIGITS}x}" for ms in (now, now, later)]

    assert values == sorted(values)
    assert all(len(value) == 4 + _CLOCK_DIGITS for value in values)
    assert Identifier.timestamp(values[-1] + "suffix") == later
