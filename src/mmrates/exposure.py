"""
Calculation of exposure within the reference window

For each sister, we work out how many months she was alive
during the reference window (the seven years before the interview)
and how those months are split across the (at most three)
five-year age groups she passed through in that time.

Exposure accumulates backwards from the end of her exposure
(the month before interview or the month she died, whichever is earlier),
so we fill the age group she was in at the end first,
then the one before that (up to its full width)
and give anything left over to the earliest group.
The age groups can be negative or otherwise outside the groups we report,
e.g. for young sisters.
We don't guard against that here,
such groups are dropped when the exposure is aggregated.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterable

import attr
import pandas as pd
from attrs import define

from mmrates.constants import AGE_GROUP_WIDTH_MONTHS, REFERENCE_WINDOW_MONTHS
from mmrates.exceptions import InvalidRecordError
from mmrates.records import (
    PREGNANCY_RELATED_CAUSES,
    MaternalDeathCause,
    Sex,
    SiblingRecord,
    SurvivalStatus,
)
from mmrates.typing import ExposureDataFrame

LOGGER = logging.getLogger(__name__)


@define(frozen=True)
class DerivedExposure:
    """
    Exposure of a single sister within the reference window
    """

    case_id: Hashable
    """
    Identifier of the interviewed woman who reported the sister
    """

    weight: float
    """
    Sampling weight
    """

    upper_limit: int
    """
    Last month of exposure (inclusive)
    """

    lower_limit: int
    """
    First month of exposure (inclusive)
    """

    total_exposure_months: int
    """
    Total months of exposure within the reference window
    """

    last_age_group: int
    """
    Age group at the end of exposure
    """

    mid_age_group: int
    """
    Age group before `last_age_group`
    """

    first_age_group: int
    """
    Age group before `mid_age_group`
    """

    expo_last: int
    """
    Months of exposure in `last_age_group`
    """

    expo_mid: int
    """
    Months of exposure in `mid_age_group`
    """

    expo_first: int
    """
    Months of exposure in `first_age_group`
    """

    is_maternal_death: bool
    """
    Whether the exposure ended in a pregnancy-related death

    The death is always in `last_age_group`.
    """


def is_pregnancy_related(cause: MaternalDeathCause | None) -> bool:
    """
    Determine whether a cause of death is pregnancy-related

    Parameters
    ----------
    cause
        Cause to check

    Returns
    -------
    :
        `True` if `cause` collapses to the pregnancy-related class
    """
    return cause in PREGNANCY_RELATED_CAUSES


def validate_record(record: SiblingRecord) -> None:
    """
    Validate that a record can be used to calculate exposure

    Parameters
    ----------
    record
        Record to validate

    Raises
    ------
    InvalidRecordError
        The record can't be used to calculate exposure
    """
    if record.birth_month is None:
        raise InvalidRecordError(
            case_id=record.case_id, reason="birth_month is missing"
        )

    if record.sex != Sex.FEMALE:
        raise InvalidRecordError(
            case_id=record.case_id,
            reason=f"only female siblings are processed, received {record.sex=}",
        )

    if record.survival_status == SurvivalStatus.UNKNOWN:
        raise InvalidRecordError(
            case_id=record.case_id, reason="survival status is unknown"
        )

    if record.survival_status == SurvivalStatus.DEAD and record.death_month is None:
        raise InvalidRecordError(
            case_id=record.case_id,
            reason="survival status is dead but death_month is missing",
        )

    # Written like this so NaN is caught too
    if not record.weight > 0:
        raise InvalidRecordError(
            case_id=record.case_id,
            reason=f"weight must be positive, received {record.weight=}",
        )


def validate_window(
    reference_window_months: int, age_group_width_months: int
) -> None:
    """
    Validate that the reference window can be split across three age groups

    Exposure is only ever allocated to three age groups,
    so the window can span at most two full age groups
    plus one month of a third.

    Parameters
    ----------
    reference_window_months
        Length of the reference window

    age_group_width_months
        Width of each age group

    Raises
    ------
    ValueError
        The window or width is not positive,
        or the window is too long for the width
    """
    if reference_window_months < 1 or age_group_width_months < 1:
        msg = (
            "reference_window_months and age_group_width_months must be positive. "
            f"Received {reference_window_months=} {age_group_width_months=}"
        )
        raise ValueError(msg)

    max_window = 2 * age_group_width_months + 1
    if reference_window_months > max_window:
        msg = (
            "The reference window is too long to split across three age groups. "
            f"Received {reference_window_months=} {age_group_width_months=}, "
            f"reference_window_months must be at most {max_window}"
        )
        raise ValueError(msg)


def calculate_exposure(
    record: SiblingRecord,
    reference_window_months: int = REFERENCE_WINDOW_MONTHS,
    age_group_width_months: int = AGE_GROUP_WIDTH_MONTHS,
) -> DerivedExposure | None:
    """
    Calculate a sister's exposure within the reference window

    Parameters
    ----------
    record
        Record of the sister

    reference_window_months
        Length of the reference window, ending the month before interview

    age_group_width_months
        Width of each age group

    Returns
    -------
    :
        Derived exposure.
        `None` if the sister has no exposure within the reference window
        (e.g. she died, or was born, before the window).

    Raises
    ------
    ValueError
        `reference_window_months` is too long for `age_group_width_months`,
        see [validate_window][(m).]

    InvalidRecordError
        The record can't be used to calculate exposure

    Examples
    --------
    A woman aged 36 and a half at interview, still alive

    >>> record = SiblingRecord(
    ...     case_id="1 1",
    ...     weight=1.0,
    ...     interview_month=1400,
    ...     sex="female",
    ...     survival_status="alive",
    ...     birth_month=1400 - 36 * 12 - 6,
    ... )
    >>> exposure = calculate_exposure(record)
    >>> exposure.last_age_group, exposure.mid_age_group, exposure.first_age_group
    (7, 6, 5)
    >>> exposure.expo_last, exposure.expo_mid, exposure.expo_first
    (18, 60, 6)
    """
    validate_window(reference_window_months, age_group_width_months)
    validate_record(record)
    # Checked by validate_record
    birth_month: int = record.birth_month  # type: ignore[assignment]

    upper_limit = record.interview_month - 1
    if record.survival_status == SurvivalStatus.DEAD:
        upper_limit = min(upper_limit, record.death_month)  # type: ignore[type-var]

    lower_limit = max(record.interview_month - reference_window_months, birth_month)

    total_exposure_months = upper_limit - lower_limit + 1
    if total_exposure_months <= 0:
        return None

    last_age_group = (upper_limit - birth_month) // age_group_width_months

    months_into_last_group = (
        upper_limit - (birth_month + last_age_group * age_group_width_months) + 1
    )
    expo_last = min(total_exposure_months, months_into_last_group)
    expo_mid = min(age_group_width_months, total_exposure_months - expo_last)
    expo_first = total_exposure_months - expo_last - expo_mid

    is_maternal_death = record.survival_status == SurvivalStatus.DEAD and (
        is_pregnancy_related(record.maternal_death_cause)
    )

    return DerivedExposure(
        case_id=record.case_id,
        weight=record.weight,
        upper_limit=upper_limit,
        lower_limit=lower_limit,
        total_exposure_months=total_exposure_months,
        last_age_group=last_age_group,
        mid_age_group=last_age_group - 1,
        first_age_group=last_age_group - 2,
        expo_last=expo_last,
        expo_mid=expo_mid,
        expo_first=expo_first,
        is_maternal_death=is_maternal_death,
    )


@define
class ExposureCalculationResult:
    """
    Result of calculating exposure for a collection of records
    """

    exposures: tuple[DerivedExposure, ...]
    """
    Exposure of each record which had exposure in the reference window
    """

    n_no_exposure: int
    """
    Number of records with no exposure in the reference window

    These are expected and simply excluded from everything downstream.
    """

    invalid_records: tuple[InvalidRecordError, ...]
    """
    Records which could not be used, with the reason
    """

    @property
    def n_invalid(self) -> int:
        """
        Number of invalid records
        """
        return len(self.invalid_records)


def calculate_exposures(
    records: Iterable[SiblingRecord],
    reference_window_months: int = REFERENCE_WINDOW_MONTHS,
    age_group_width_months: int = AGE_GROUP_WIDTH_MONTHS,
) -> ExposureCalculationResult:
    """
    Calculate exposure for a collection of records

    Invalid records don't stop the calculation,
    they are collected and returned alongside the exposures.

    Parameters
    ----------
    records
        Records for which to calculate exposure

    reference_window_months
        Length of the reference window, ending the month before interview

    age_group_width_months
        Width of each age group

    Returns
    -------
    :
        Calculated exposures, plus information about the records we dropped

    Raises
    ------
    ValueError
        `reference_window_months` is too long for `age_group_width_months`,
        see [validate_window][(m).]
    """
    validate_window(reference_window_months, age_group_width_months)

    exposures = []
    invalid_records = []
    n_no_exposure = 0
    for record in records:
        try:
            exposure = calculate_exposure(
                record,
                reference_window_months=reference_window_months,
                age_group_width_months=age_group_width_months,
            )
        except InvalidRecordError as exc:
            invalid_records.append(exc)
            continue

        if exposure is None:
            n_no_exposure += 1
            continue

        exposures.append(exposure)

    if invalid_records:
        LOGGER.warning(
            "%d invalid sibling records were excluded. Reasons: %s",
            len(invalid_records),
            sorted({exc.reason for exc in invalid_records}),
        )

    LOGGER.debug(
        "Calculated exposure for %d records (%d with no exposure)",
        len(exposures),
        n_no_exposure,
    )

    return ExposureCalculationResult(
        exposures=tuple(exposures),
        n_no_exposure=n_no_exposure,
        invalid_records=tuple(invalid_records),
    )


EXPOSURE_COLUMNS: tuple[str, ...] = tuple(
    a.name for a in attr.fields(DerivedExposure)
)
"""
Columns of the table produced by [exposures_to_frame][(m).]
"""


def exposures_to_frame(exposures: Iterable[DerivedExposure]) -> ExposureDataFrame:
    """
    Convert [DerivedExposure][(m).]'s to a table with one row per sister

    Parameters
    ----------
    exposures
        Exposures to convert

    Returns
    -------
    :
        Table with columns [EXPOSURE_COLUMNS][(m).]
    """
    return pd.DataFrame(
        [attr.astuple(e, recurse=False) for e in exposures],
        columns=list(EXPOSURE_COLUMNS),
    )
