"""
Tests of `mmrates.assertions`
"""

from __future__ import annotations

import re
from contextlib import nullcontext as does_not_raise

import numpy as np
import pandas as pd
import pytest

from mmrates.assertions import assert_exposure_is_partitioned, assert_rates_are_valid
from mmrates.exposure import calculate_exposures, exposures_to_frame
from mmrates.rates import RateRow
from mmrates.testing import get_random_sisters


def get_exposures(expo_last, expo_mid, expo_first, total_exposure_months):
    return pd.DataFrame(
        [[expo_last, expo_mid, expo_first, total_exposure_months]],
        columns=["expo_last", "expo_mid", "expo_first", "total_exposure_months"],
    )


@pytest.mark.parametrize(
    "exposures, age_group_width_months, exp",
    (
        pytest.param(get_exposures(18, 60, 6, 84), 60, does_not_raise(), id="valid"),
        pytest.param(
            get_exposures(60, 24, 0, 84), 60, does_not_raise(), id="full-last-group"
        ),
        pytest.param(
            get_exposures(-1, 60, 25, 84),
            60,
            pytest.raises(
                AssertionError,
                match="Some sisters have negative exposure in an age group",
            ),
            id="negative",
        ),
        pytest.param(
            get_exposures(24, 24, 36, 84),
            24,
            pytest.raises(
                AssertionError,
                match=re.escape(
                    "Some sisters have more exposure in an age group "
                    "than the age group is wide (age_group_width_months=24)"
                ),
            ),
            id="first-wider-than-group",
        ),
        pytest.param(
            get_exposures(1, 61, 22, 84),
            60,
            pytest.raises(
                AssertionError,
                match=re.escape("than the age group is wide"),
            ),
            id="mid-wider-than-group",
        ),
        pytest.param(
            get_exposures(18, 60, 5, 84),
            60,
            pytest.raises(AssertionError, match="does not add up"),
            id="not-summing",
        ),
        pytest.param(
            get_exposures(30, 60, 0, 90),
            60,
            pytest.raises(
                AssertionError,
                match=re.escape("total exposure is not between 1 and"),
            ),
            id="longer-than-window",
        ),
        pytest.param(
            get_exposures(0, 0, 0, 0),
            60,
            pytest.raises(
                AssertionError,
                match=re.escape("total exposure is not between 1 and"),
            ),
            id="no-exposure",
        ),
    ),
)
def test_assert_exposure_is_partitioned(exposures, age_group_width_months, exp):
    with exp:
        assert_exposure_is_partitioned(
            exposures, age_group_width_months=age_group_width_months
        )


def test_assert_exposure_is_partitioned_random_sisters():
    exposures = calculate_exposures(get_random_sisters(1000)).exposures

    assert_exposure_is_partitioned(exposures_to_frame(exposures))


def test_assert_exposure_is_partitioned_missing_column():
    exposures = get_exposures(18, 60, 6, 84).drop("expo_first", axis="columns")

    with pytest.raises(AssertionError, match=re.escape("['expo_first']")):
        assert_exposure_is_partitioned(exposures)


def get_rate_row(maternal_deaths=1.0, exposure_years=100.0, rate=10.0):
    return RateRow(
        age_group=3,
        age_group_label="15-19",
        maternal_deaths=maternal_deaths,
        exposure_years=exposure_years,
        rate=rate,
    )


@pytest.mark.parametrize(
    "row, exp",
    (
        pytest.param(get_rate_row(), does_not_raise(), id="valid"),
        pytest.param(
            get_rate_row(maternal_deaths=0.0, rate=0.0), does_not_raise(), id="zero"
        ),
        pytest.param(
            get_rate_row(rate=np.nan),
            pytest.raises(AssertionError, match="invalid values"),
            id="nan-rate",
        ),
        pytest.param(
            get_rate_row(rate=np.inf),
            pytest.raises(AssertionError, match="invalid values"),
            id="infinite-rate",
        ),
        pytest.param(
            get_rate_row(maternal_deaths=-1.0, rate=-10.0),
            pytest.raises(AssertionError, match="invalid values"),
            id="negative-deaths",
        ),
        pytest.param(
            get_rate_row(exposure_years=0.0),
            pytest.raises(AssertionError, match="invalid values"),
            id="zero-exposure",
        ),
    ),
)
def test_assert_rates_are_valid(row, exp):
    with exp:
        assert_rates_are_valid([get_rate_row(), row])
