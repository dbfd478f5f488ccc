"""
Aggregation of exposure and deaths into age groups

Each sister contributes exposure to up to three age groups
(the 'slots': the age group she was in at the end of her exposure,
the one before that and the one before that).
Each slot is aggregated separately, with the same function,
then the slots are combined when the rates are calculated
(see [mmrates.rates][]).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import StrEnum

import pandas as pd
from attrs import define

from mmrates.assertions import assert_has_columns
from mmrates.constants import MONTHS_PER_YEAR, REPORTED_AGE_GROUPS
from mmrates.exposure import DerivedExposure, exposures_to_frame
from mmrates.typing import AgeGroupSeries, ExposureDataFrame


class ExposureSlot(StrEnum):
    """Exposure slot i.e. which of a sister's age groups the exposure falls in"""

    LAST = "last"
    """The age group at the end of exposure (where any death happened)"""

    MID = "mid"
    """The age group before the last one"""

    FIRST = "first"
    """The age group before the mid one"""

    @property
    def age_group_column(self) -> str:
        """
        Column which holds the age group for this slot
        """
        return f"{self.value}_age_group"

    @property
    def exposure_column(self) -> str:
        """
        Column which holds the months of exposure for this slot
        """
        return f"expo_{self.value}"


def aggregate_exposure_slot(
    exposures: ExposureDataFrame,
    slot: ExposureSlot,
    age_groups: Sequence[int] = REPORTED_AGE_GROUPS,
    deaths: bool = False,
) -> AgeGroupSeries:
    """
    Aggregate the weighted exposure (or deaths) of one slot by age group

    Parameters
    ----------
    exposures
        Exposures, one row per sister
        (see [exposures_to_frame][mmrates.exposure.exposures_to_frame])

    slot
        Slot to aggregate

    age_groups
        Age groups to keep.
        The output is restricted to these age groups after summing
        and age groups without any observations are filled with zero.

    deaths
        If `True`, aggregate weighted maternal deaths rather than exposure.

        Deaths always happen in the last age group,
        so this is only supported for [ExposureSlot.LAST][(m).].

    Returns
    -------
    :
        Weighted person-years of exposure (or weighted maternal deaths)
        in each age group

    Raises
    ------
    ValueError
        `deaths` is `True` and `slot` is not [ExposureSlot.LAST][(m).]
    """
    if deaths and slot != ExposureSlot.LAST:
        msg = f"Deaths are only attributed to the last age group, received {slot=}"
        raise ValueError(msg)

    value_column = "is_maternal_death" if deaths else slot.exposure_column
    assert_has_columns(exposures, ["weight", slot.age_group_column, value_column])

    weighted = exposures["weight"].astype(float) * exposures[value_column].astype(
        float
    )
    if not deaths:
        weighted = weighted / MONTHS_PER_YEAR

    res = (
        weighted.groupby(exposures[slot.age_group_column].astype(int))
        .sum()
        .reindex(list(age_groups), fill_value=0.0)
    )
    res.index.name = "age_group"
    res.name = "maternal_deaths" if deaths else f"{slot.value}_exposure_years"

    return res


@define
class AgeGroupAggregate:
    """
    Weighted exposure and deaths by age group
    """

    last_exposure_years: AgeGroupSeries
    """
    Weighted person-years in each sister's last age group
    """

    mid_exposure_years: AgeGroupSeries
    """
    Weighted person-years in each sister's mid age group
    """

    first_exposure_years: AgeGroupSeries
    """
    Weighted person-years in each sister's first age group
    """

    maternal_deaths: AgeGroupSeries
    """
    Weighted maternal deaths (which are always in the last age group)
    """

    def get_exposure_years(self, slot: ExposureSlot) -> AgeGroupSeries:
        """
        Get the exposure for a given slot
        """
        return getattr(self, f"{slot.value}_exposure_years")


def aggregate_age_groups(
    exposures: Iterable[DerivedExposure] | ExposureDataFrame,
    age_groups: Sequence[int] = REPORTED_AGE_GROUPS,
) -> AgeGroupAggregate:
    """
    Aggregate exposure and deaths by age group

    Parameters
    ----------
    exposures
        Exposures to aggregate

    age_groups
        Age groups to keep

    Returns
    -------
    :
        Aggregated exposure and deaths
    """
    if isinstance(exposures, pd.DataFrame):
        exposures_df = exposures
    else:
        exposures_df = exposures_to_frame(exposures)

    return AgeGroupAggregate(
        **{
            f"{slot.value}_exposure_years": aggregate_exposure_slot(
                exposures_df, slot=slot, age_groups=age_groups
            )
            for slot in ExposureSlot
        },
        maternal_deaths=aggregate_exposure_slot(
            exposures_df, slot=ExposureSlot.LAST, age_groups=age_groups, deaths=True
        ),
    )


def merge_age_group_aggregates(
    partials: Sequence[AgeGroupAggregate],
) -> AgeGroupAggregate:
    """
    Merge partial aggregates, e.g. from different partitions of the records

    The partials are summed in the order given,
    so the result doesn't depend on the order in which they were calculated.

    If an age group is missing from any of the partials,
    it is NaN in the output
    (and will be reported as missing when the rates are calculated).

    Parameters
    ----------
    partials
        Partial aggregates to merge

    Returns
    -------
    :
        Merged aggregate

    Raises
    ------
    ValueError
        `partials` is empty
    """
    if not partials:
        msg = "Need at least one partial aggregate to merge"
        raise ValueError(msg)

    def merge(name: str) -> AgeGroupSeries:
        res = pd.concat(
            [getattr(p, name) for p in partials], axis="columns", join="outer"
        ).sum(axis="columns", min_count=len(partials))
        res.index.name = "age_group"
        res.name = getattr(partials[0], name).name

        return res

    return AgeGroupAggregate(
        last_exposure_years=merge("last_exposure_years"),
        mid_exposure_years=merge("mid_exposure_years"),
        first_exposure_years=merge("first_exposure_years"),
        maternal_deaths=merge("maternal_deaths"),
    )
