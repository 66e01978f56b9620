import pytest

from oncall_copilot.formatting import format_confidence, normalize_confidence


@pytest.mark.parametrize(
    "raw, expected",
    [(85, "85%"), (0.85, "85%"), (0.4, "40%"), (1, "100%"), (100, "100%"), (0, "0%")],
)
def test_format_confidence(raw, expected):
    assert format_confidence(raw) == expected


@pytest.mark.parametrize("raw", [-0.2, "high", None, float("nan")])
def test_garbage_confidence_normalizes_to_zero(raw):
    assert normalize_confidence(raw) == 0.0


def test_values_are_clamped():
    assert normalize_confidence(250) == 1.0
    assert normalize_confidence("0.6") == pytest.approx(0.6)
