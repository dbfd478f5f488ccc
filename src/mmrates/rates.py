"""
Calculation of age-specific maternal mortality rates
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import pandas as pd
from attrs import define

from mmrates.aggregation import AgeGroupAggregate, ExposureSlot
from mmrates.constants import (
    AGE_GROUP_WIDTH_MONTHS,
    MONTHS_PER_YEAR,
    RATE_MULTIPLIER,
    REPORTED_AGE_GROUPS,
)
from mmrates.exceptions import MissingAgeGroupError, ZeroExposureError
from mmrates.typing import AgeGroupSeries


@define(frozen=True)
class RateRow:
    """
    Maternal mortality rate for one age group
    """

    age_group: int | None
    """
    Index of the age group (`None` for rates across several age groups)
    """

    age_group_label: str
    """
    Label of the age group e.g. "15-19"
    """

    maternal_deaths: float
    """
    Weighted maternal deaths
    """

    exposure_years: float
    """
    Weighted person-years of exposure
    """

    rate: float
    """
    Maternal deaths per 1,000 person-years of exposure

    This is not rounded.
    """


def get_age_group_label(
    age_group: int, age_group_width_months: int = AGE_GROUP_WIDTH_MONTHS
) -> str:
    """
    Get the label for an age group

    Parameters
    ----------
    age_group
        Index of the age group

    age_group_width_months
        Width of each age group

    Returns
    -------
    :
        Label, giving the first and last age in completed years

    Examples
    --------
    >>> get_age_group_label(3)
    '15-19'
    >>> get_age_group_label(9)
    '45-49'
    """
    width_years = age_group_width_months // MONTHS_PER_YEAR
    start = width_years * age_group

    return f"{start}-{start + width_years - 1}"


def assert_has_all_age_groups(
    values: AgeGroupSeries,
    age_groups: Sequence[int],
    table_name: str,
) -> None:
    """
    Assert that an aggregate table has values for all the given age groups

    Parameters
    ----------
    values
        Table to check

    age_groups
        Age groups that must be present

    table_name
        Name of the table, used in the error message

    Raises
    ------
    MissingAgeGroupError
        Some age groups are missing (or NaN) in `values`
    """
    missing = [
        k for k in age_groups if k not in values.index or pd.isna(values.loc[k])
    ]
    if missing:
        raise MissingAgeGroupError(
            table_name=table_name, missing=missing, expected=age_groups
        )


def get_rate(maternal_deaths: float, exposure_years: float) -> float:
    """
    Get the rate per 1,000 person-years

    Parameters
    ----------
    maternal_deaths
        Weighted maternal deaths

    exposure_years
        Weighted person-years of exposure

    Returns
    -------
    :
        Rate per 1,000 person-years
    """
    return RATE_MULTIPLIER * maternal_deaths / exposure_years


def build_rate_table(
    aggregate: AgeGroupAggregate,
    age_groups: Sequence[int] = REPORTED_AGE_GROUPS,
    age_group_width_months: int = AGE_GROUP_WIDTH_MONTHS,
) -> tuple[RateRow, ...]:
    """
    Build the table of maternal mortality rates by age group

    Parameters
    ----------
    aggregate
        Aggregated exposure and deaths

    age_groups
        Age groups to include in the table

    age_group_width_months
        Width of each age group (only used for labels)

    Returns
    -------
    :
        One row per age group, in the order of `age_groups`

    Raises
    ------
    MissingAgeGroupError
        An age group is missing from one of the aggregate tables

    ZeroExposureError
        An age group has no exposure, so its rate is undefined
    """
    for slot in ExposureSlot:
        assert_has_all_age_groups(
            aggregate.get_exposure_years(slot),
            age_groups=age_groups,
            table_name=f"{slot.value} age group exposure",
        )

    assert_has_all_age_groups(
        aggregate.maternal_deaths,
        age_groups=age_groups,
        table_name="maternal deaths",
    )

    exposure_years = sum(
        aggregate.get_exposure_years(slot).loc[list(age_groups)]
        for slot in ExposureSlot
    )
    maternal_deaths = aggregate.maternal_deaths.loc[list(age_groups)]

    zero_exposure = exposure_years[exposure_years <= 0]
    if not zero_exposure.empty:
        raise ZeroExposureError(age_groups=zero_exposure.index.tolist())

    return tuple(
        RateRow(
            age_group=k,
            age_group_label=get_age_group_label(
                k, age_group_width_months=age_group_width_months
            ),
            maternal_deaths=float(maternal_deaths.loc[k]),
            exposure_years=float(exposure_years.loc[k]),
            rate=get_rate(float(maternal_deaths.loc[k]), float(exposure_years.loc[k])),
        )
        for k in age_groups
    )


def get_total_rate(
    rows: Sequence[RateRow],
    age_group_width_months: int = AGE_GROUP_WIDTH_MONTHS,
) -> RateRow:
    """
    Get the crude rate across all the age groups in a rate table

    This is total weighted deaths over total weighted exposure,
    without any standardisation for the age structure.

    If the age groups are contiguous, the label spans them (e.g. "15-49").
    Otherwise, the label lists each age group (e.g. "15-19, 45-49").

    Parameters
    ----------
    rows
        Rows of the rate table, as returned by [build_rate_table][(m).]

    age_group_width_months
        Width of each age group (only used for the label)

    Returns
    -------
    :
        Rate across all the age groups, e.g. for ages 15-49

    Raises
    ------
    ValueError
        `rows` is empty, includes a row which is already a total
        (i.e. its `age_group` is `None`) or includes an age group more than once
    """
    if not rows:
        msg = "Need at least one row to calculate the total rate"
        raise ValueError(msg)

    totals = [r for r in rows if r.age_group is None]
    if totals:
        msg = f"Rows must each be for a single age group, received totals: {totals}"
        raise ValueError(msg)

    age_groups = sorted(r.age_group for r in rows if r.age_group is not None)
    if len(set(age_groups)) != len(age_groups):
        msg = f"Each age group can only appear once, received {age_groups=}"
        raise ValueError(msg)

    if age_groups == list(range(age_groups[0], age_groups[-1] + 1)):
        start = get_age_group_label(age_groups[0], age_group_width_months).split("-")[0]
        end = get_age_group_label(age_groups[-1], age_group_width_months).split("-")[1]
        label = f"{start}-{end}"
    else:
        label = ", ".join(
            get_age_group_label(k, age_group_width_months) for k in age_groups
        )

    maternal_deaths = sum(r.maternal_deaths for r in rows)
    exposure_years = sum(r.exposure_years for r in rows)

    return RateRow(
        age_group=None,
        age_group_label=label,
        maternal_deaths=maternal_deaths,
        exposure_years=exposure_years,
        rate=get_rate(maternal_deaths, exposure_years),
    )


def rate_table_to_frame(rows: Iterable[RateRow], decimals: int = 1) -> pd.DataFrame:
    """
    Convert a rate table to a [pd.DataFrame][pandas.DataFrame] for presentation

    Parameters
    ----------
    rows
        Rows of the rate table

    decimals
        Number of decimal places to which to round the rate

    Returns
    -------
    :
        Rate table, indexed by age group label
    """
    res = pd.DataFrame(
        [
            {
                "age_group": r.age_group_label,
                "maternal_deaths": r.maternal_deaths,
                "exposure_years": r.exposure_years,
                "rate": r.rate,
            }
            for r in rows
        ]
    ).set_index("age_group")
    res["rate"] = res["rate"].round(decimals)

    return res
