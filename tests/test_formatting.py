import pytest

from minerhub.utils.formatting import humanize_hashrate, humanize_time


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "0 H/s"),
        (512.0, "512.00 H/s"),
        (1234.5, "1.23 KH/s"),
        (2_500_000, "2.50 MH/s"),
        (7.1e12, "7.10 TH/s"),
    ],
)
def test_humanize_hashrate(value, expected):
    assert humanize_hashrate(value) == expected


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "0s"),
        (-5, "0s"),
        (59, "59s"),
        (60, "1m"),
        (3725, "1h 2m 5s"),
        (90061, "1d 1h 1m 1s"),
        (172800, "2d"),
    ],
)
def test_humanize_time(seconds, expected):
    assert humanize_time(seconds) == expected
