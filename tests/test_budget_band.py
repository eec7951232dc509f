import pytest

from rigbudget.builder.budget import TolerancePolicy


def test_percentage_band_is_ten_percent_by_default():
    band = TolerancePolicy().band_for(250000)

    assert band.lower == 225000
    assert band.upper == 275000
    assert band.contains(248000)
    assert not band.contains(275001)


def test_absolute_band_uses_fixed_window():
    band = TolerancePolicy(kind="absolute").band_for(300000)

    assert band.lower == 210000
    assert band.upper == 390000


def test_absolute_band_lower_bound_never_negative():
    band = TolerancePolicy(kind="absolute", absolute=90000).band_for(50000)

    assert band.lower == 0
    assert band.upper == 140000


def test_band_edges_are_inclusive():
    band = TolerancePolicy(percent=0.1).band_for(100000)

    assert band.contains(90000)
    assert band.contains(110000)
    assert not band.contains(89999)


def test_invalid_policy_and_budget_are_rejected():
    with pytest.raises(ValueError):
        TolerancePolicy(kind="both")
    with pytest.raises(ValueError):
        TolerancePolicy().band_for(0)



@pytest.mark.parametrize(
    "budget, lower, upper",
    [
        (15, 14, 16),
        (250015, 225014, 275016),
        (250005, 225005, 275005),
    ],
)
def test_percentage_band_never_exceeds_exact_window(budget, lower, upper):
    band = TolerancePolicy().band_for(budget)

    assert (band.lower, band.upper) == (lower, upper)
    assert band.lower >= budget * 0.9
    assert band.upper <= budget * 1.1


def test_percentage_band_is_exact_for_float_unfriendly_ratios():
    band = TolerancePolicy(percent=0.3).band_for(10)

    assert band.lower == 7
    assert band.upper == 13
