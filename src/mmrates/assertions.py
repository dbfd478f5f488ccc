"""
Useful assertions
"""

from __future__ import annotations

import math
from collections.abc import Collection, Iterable
from typing import TYPE_CHECKING

import pandas as pd

from mmrates.constants import AGE_GROUP_WIDTH_MONTHS, REFERENCE_WINDOW_MONTHS
from mmrates.typing import ExposureDataFrame

if TYPE_CHECKING:
    from mmrates.rates import RateRow


def assert_has_columns(indf: pd.DataFrame, columns: Collection[str]) -> None:
    """
    Assert that a [pd.DataFrame][pandas.DataFrame] has the given columns

    Parameters
    ----------
    indf
        Data to verify

    columns
        Columns we expect `indf` to have

    Raises
    ------
    AssertionError
        `indf` is missing some of `columns`
    """
    missing_cols = [c for c in columns if c not in indf.columns]
    if missing_cols:
        msg = (
            f"The DataFrame is missing the following columns: {missing_cols}. "
            f"Available columns: {indf.columns.tolist()}"
        )
        raise AssertionError(msg)


def assert_exposure_is_partitioned(
    exposures: ExposureDataFrame,
    reference_window_months: int = REFERENCE_WINDOW_MONTHS,
    age_group_width_months: int = AGE_GROUP_WIDTH_MONTHS,
) -> None:
    """
    Assert that exposure is correctly split across the age groups

    In other words, that the exposure in each age group is non-negative
    and no more than the width of an age group,
    the age groups' exposure adds up to the total
    and the total is no more than the length of the reference window.

    Parameters
    ----------
    exposures
        Exposures to check, one row per sister
        (see [exposures_to_frame][mmrates.exposure.exposures_to_frame])

    reference_window_months
        Length of the reference window

    age_group_width_months
        Width of each age group

    Raises
    ------
    AssertionError
        The exposure is not correctly partitioned
    """
    expo_cols = ["expo_last", "expo_mid", "expo_first"]
    assert_has_columns(exposures, [*expo_cols, "total_exposure_months"])

    negative = exposures.loc[(exposures[expo_cols] < 0).any(axis="columns")]
    if not negative.empty:
        msg = f"Some sisters have negative exposure in an age group:\n{negative}"
        raise AssertionError(msg)

    too_wide = exposures.loc[
        (exposures[expo_cols] > age_group_width_months).any(axis="columns")
    ]
    if not too_wide.empty:
        msg = (
            "Some sisters have more exposure in an age group "
            f"than the age group is wide ({age_group_width_months=}):\n{too_wide}"
        )
        raise AssertionError(msg)

    not_summing = exposures.loc[
        exposures[expo_cols].sum(axis="columns") != exposures["total_exposure_months"]
    ]
    if not not_summing.empty:
        msg = (
            "Some sisters' age group exposure does not add up "
            f"to their total exposure:\n{not_summing}"
        )
        raise AssertionError(msg)

    out_of_window = exposures.loc[
        (exposures["total_exposure_months"] <= 0)
        | (exposures["total_exposure_months"] > reference_window_months)
    ]
    if not out_of_window.empty:
        msg = (
            "Some sisters' total exposure is not between 1 "
            f"and {reference_window_months=} months:\n{out_of_window}"
        )
        raise AssertionError(msg)


def assert_rates_are_valid(rows: Iterable[RateRow]) -> None:
    """
    Assert that rate table rows hold usable values

    Deaths and rates must be finite and non-negative
    and exposure must be finite and positive.

    Parameters
    ----------
    rows
        Rows of the rate table to check

    Raises
    ------
    AssertionError
        Some rows hold values that can't be used
    """
    invalid = [
        r
        for r in rows
        if not (
            math.isfinite(r.maternal_deaths)
            and math.isfinite(r.exposure_years)
            and math.isfinite(r.rate)
            and r.maternal_deaths >= 0
            and r.exposure_years > 0
            and r.rate >= 0
        )
    ]
    if invalid:
        msg = f"Some rate table rows hold invalid values: {invalid}"
        raise AssertionError(msg)
