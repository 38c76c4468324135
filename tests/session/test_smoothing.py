from solchat.session.smoothing import WordSmoother


def test_releases_whole_words_with_trailing_whitespace() -> None:
    smoother = WordSmoother(delay_ms=10)

    assert smoother.push("Hel") == []
    assert smoother.push("lo wor") == ["Hello "]
    assert smoother.push("ld  and\nmore") == ["world  ", "and\n"]
    assert smoother.pending == "more"
    assert smoother.flush() == "more"
    assert smoother.flush() is None


def test_delay_is_in_seconds_and_never_negative() -> None:
    assert WordSmoother(10).delay == 0.01
    assert WordSmoother(-5).delay == 0.0
