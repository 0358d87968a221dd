"""Decimal amounts at the API boundary <-> integer minor units."""

import pytest

from app.core.exceptions import InvalidAmountError
from app.core.money import format_minor_units, to_minor_units


@pytest.mark.parametrize(
    "value, expected",
    [
        ("10.50", 1050),
        (10.5, 1050),
        (10, 1000),
        ("0.01", 1),
        (" 7.25 ", 725),
        ("10.505", 1051),  # half-up
        ("1.004", 100),
        (0.1 + 0.2, 30),
    ],
)
def test_to_minor_units(value, expected):
    assert to_minor_units(value) == expected


@pytest.mark.parametrize(
    "value",
    [None, True, "", "abc", "NaN", "Infinity", "0", "-5", "0.004", "1e30", "1e17"],
)
def test_to_minor_units_rejects(value):
    with pytest.raises(InvalidAmountError) as exc:
        to_minor_units(value)
    assert exc.value.code == "INVALID_AMOUNT"
    assert exc.value.status_code == 400


@pytest.mark.parametrize(
    "minor, expected",
    [(1050, "10.50"), (0, "0.00"), (5, "0.05"), (100_000_000, "1000000.00")],
)
def test_format_minor_units(minor, expected):
    assert format_minor_units(minor) == expected
