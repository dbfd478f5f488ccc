"""
Calculation of maternal mortality rates from sibling records, end to end

The calculation is split into partitions of records.
Exposure is calculated and aggregated for each partition independently
(optionally in parallel), then the partial aggregates are merged
and turned into rates.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from typing import Any

import attr
import pandas as pd
from attrs import define, field
from pandas_openscm.parallelisation import ParallelOpConfig, apply_op_parallel_progress

from mmrates.aggregation import (
    AgeGroupAggregate,
    aggregate_age_groups,
    merge_age_group_aggregates,
)
from mmrates.assertions import (
    assert_exposure_is_partitioned,
    assert_rates_are_valid,
)
from mmrates.constants import (
    AGE_GROUP_WIDTH_MONTHS,
    REFERENCE_WINDOW_MONTHS,
    REPORTED_AGE_GROUPS,
)
from mmrates.exceptions import InvalidRecordError
from mmrates.exposure import (
    calculate_exposures,
    exposures_to_frame,
    validate_window,
)
from mmrates.rates import (
    RateRow,
    build_rate_table,
    get_total_rate,
    rate_table_to_frame,
)
from mmrates.records import SiblingRecord, records_from_frame

LOGGER = logging.getLogger(__name__)


@define
class PartitionResult:
    """
    Result of processing a single partition of records
    """

    partition: int
    """
    Index of the partition, used to merge partitions in a fixed order
    """

    aggregate: AgeGroupAggregate
    """
    Aggregated exposure and deaths for the partition
    """

    n_accepted: int
    """
    Number of records with exposure in the reference window
    """

    n_no_exposure: int
    """
    Number of records without exposure in the reference window
    """

    invalid_records: tuple[InvalidRecordError, ...]
    """
    Records which could not be used
    """


def process_partition(  # noqa: PLR0913
    partition: tuple[int, tuple[SiblingRecord, ...]],
    reference_window_months: int,
    age_group_width_months: int,
    age_groups: Sequence[int],
    run_checks: bool,
) -> PartitionResult:
    """
    Calculate and aggregate exposure for a single partition of records

    Parameters
    ----------
    partition
        Index of the partition and the records in it

    reference_window_months
        Length of the reference window, ending the month before interview

    age_group_width_months
        Width of each age group

    age_groups
        Age groups to keep when aggregating

    run_checks
        If `True`, check that exposure is correctly split across age groups

    Returns
    -------
    :
        Aggregated exposure and deaths for the partition
    """
    partition_idx, records = partition
    exposure_res = calculate_exposures(
        records,
        reference_window_months=reference_window_months,
        age_group_width_months=age_group_width_months,
    )
    exposures_df = exposures_to_frame(exposure_res.exposures)
    if run_checks:
        assert_exposure_is_partitioned(
            exposures_df,
            reference_window_months=reference_window_months,
            age_group_width_months=age_group_width_months,
        )

    LOGGER.debug(
        "Partition %d: %d records, %d with exposure",
        partition_idx,
        len(records),
        len(exposure_res.exposures),
    )

    return PartitionResult(
        partition=partition_idx,
        aggregate=aggregate_age_groups(exposures_df, age_groups=age_groups),
        n_accepted=len(exposure_res.exposures),
        n_no_exposure=exposure_res.n_no_exposure,
        invalid_records=exposure_res.invalid_records,
    )


def partition_records(
    records: Sequence[SiblingRecord], n_partitions: int
) -> tuple[tuple[SiblingRecord, ...], ...]:
    """
    Split records into contiguous partitions of (nearly) equal size

    Parameters
    ----------
    records
        Records to split

    n_partitions
        Maximum number of partitions.
        Fewer are returned if there are fewer records than partitions,
        but there is always at least one partition.

    Returns
    -------
    :
        Partitions of records, in the original order
    """
    if n_partitions < 1:
        msg = f"n_partitions must be at least 1, received {n_partitions=}"
        raise ValueError(msg)

    if not records:
        return ((),)

    size = math.ceil(len(records) / n_partitions)

    return tuple(
        tuple(records[i : i + size]) for i in range(0, len(records), size)
    )


@define
class MaternalMortalityRateResult:
    """
    Result of calculating maternal mortality rates
    """

    rates: tuple[RateRow, ...]
    """
    Rate for each age group
    """

    total: RateRow
    """
    Crude rate across all the age groups
    """

    aggregate: AgeGroupAggregate
    """
    Aggregated exposure and deaths from which the rates were calculated
    """

    n_records: int
    """
    Number of records supplied

    When a table is supplied, this includes rows which were skipped
    (see [n_skipped][(c).]) or failed to decode.
    """

    n_skipped: int
    """
    Number of rows skipped when decoding a table

    These are brothers and siblings with unknown survival status.
    Always zero when records are supplied directly.
    """

    n_accepted: int
    """
    Number of records with exposure in the reference window
    """

    n_no_exposure: int
    """
    Number of records without exposure in the reference window
    """

    invalid_records: tuple[InvalidRecordError, ...]
    """
    Records which could not be used, with the reason
    """

    def to_frame(self, decimals: int = 1, include_total: bool = True) -> pd.DataFrame:
        """
        Convert to a [pd.DataFrame][pandas.DataFrame] for presentation

        Parameters
        ----------
        decimals
            Number of decimal places to which to round the rates

        include_total
            Include the total rate as the last row

        Returns
        -------
        :
            Rate table, indexed by age group label
        """
        rows = [*self.rates, self.total] if include_total else list(self.rates)

        return rate_table_to_frame(rows, decimals=decimals)


@define
class MaternalMortalityRateCalculator:
    """
    Calculator of age-specific maternal mortality rates from sibling records
    """

    reference_window_months: int = field(default=REFERENCE_WINDOW_MONTHS)
    """
    Length of the reference window, ending the month before interview

    This can be at most two age groups plus one month long,
    see [validate_window][mmrates.exposure.validate_window].
    """

    @reference_window_months.validator
    def reference_window_months_validator(
        self, attribute: attr.Attribute[Any], value: int
    ) -> None:
        """
        Validate the reference window length against the age group width
        """
        validate_window(
            reference_window_months=value,
            age_group_width_months=self.age_group_width_months,
        )

    age_group_width_months: int = field(default=AGE_GROUP_WIDTH_MONTHS)
    """
    Width of each age group
    """

    @age_group_width_months.validator
    def age_group_width_months_validator(
        self, attribute: attr.Attribute[Any], value: int
    ) -> None:
        """
        Validate the age group width against the reference window length
        """
        validate_window(
            reference_window_months=self.reference_window_months,
            age_group_width_months=value,
        )

    age_groups: tuple[int, ...] = field(default=REPORTED_AGE_GROUPS, converter=tuple)
    """
    Age groups for which to calculate rates
    """

    run_checks: bool = True
    """
    If `True`, run checks on the intermediate and output data

    If you are sure about your workflow,
    you can disable the checks to speed things up
    (but we don't recommend this unless you really
    are confident about what you're doing).
    """

    progress: bool = False
    """
    Should progress bars be shown for each operation?

    This requires `tqdm` to be installed.
    """

    n_processes: int | None = None
    """
    Number of processes to use for parallel processing.

    Set to `None` to process in serial.
    """

    n_partitions: int | None = None
    """
    Number of partitions into which to split the records

    If `None`, we use `n_processes` (or one partition if processing in serial).
    """

    def __call__(
        self, records: Iterable[SiblingRecord] | pd.DataFrame
    ) -> MaternalMortalityRateResult:
        """
        Calculate maternal mortality rates

        Parameters
        ----------
        records
            Sibling records.
            If a [pd.DataFrame][pandas.DataFrame] is supplied,
            it is decoded with [records_from_frame][mmrates.records.records_from_frame]
            and rows which can't be decoded are reported as invalid records.

        Returns
        -------
        :
            Rates by age group, plus information about the records used

        Raises
        ------
        MissingAgeGroupError
            An age group is missing after aggregation

        ZeroExposureError
            An age group has no exposure, so its rate is undefined

        AssertionError
            `self.run_checks` is `True` and the checks fail
        """
        decoding_failures: tuple[InvalidRecordError, ...] = ()
        n_skipped = 0
        if isinstance(records, pd.DataFrame):
            decoded = records_from_frame(records)
            records_t = decoded.records
            decoding_failures = decoded.failures
            n_skipped = decoded.n_skipped
        else:
            records_t = tuple(records)

        n_partitions = self.n_partitions
        if n_partitions is None:
            n_partitions = self.n_processes if self.n_processes is not None else 1

        partition_results = apply_op_parallel_progress(
            func_to_call=process_partition,
            iterable_input=enumerate(partition_records(records_t, n_partitions)),
            parallel_op_config=ParallelOpConfig.from_user_facing(
                progress=self.progress,
                max_workers=self.n_processes,
                progress_results_kwargs=dict(desc="Record partitions"),
            ),
            reference_window_months=self.reference_window_months,
            age_group_width_months=self.age_group_width_months,
            age_groups=self.age_groups,
            run_checks=self.run_checks,
        )
        # Results can come back in any order when running in parallel
        partition_results_sorted = sorted(partition_results, key=lambda r: r.partition)

        aggregate = merge_age_group_aggregates(
            [r.aggregate for r in partition_results_sorted]
        )
        invalid_records = decoding_failures + tuple(
            exc for r in partition_results_sorted for exc in r.invalid_records
        )
        n_accepted = sum(r.n_accepted for r in partition_results_sorted)
        n_no_exposure = sum(r.n_no_exposure for r in partition_results_sorted)
        n_records = len(records_t) + len(decoding_failures) + n_skipped

        LOGGER.info(
            "Calculating rates from %d records "
            "(%d with exposure, %d without exposure, %d invalid, %d skipped)",
            n_records,
            n_accepted,
            n_no_exposure,
            len(invalid_records),
            n_skipped,
        )

        rates = build_rate_table(
            aggregate,
            age_groups=self.age_groups,
            age_group_width_months=self.age_group_width_months,
        )
        total = get_total_rate(
            rates, age_group_width_months=self.age_group_width_months
        )
        if self.run_checks:
            assert_rates_are_valid([*rates, total])

        return MaternalMortalityRateResult(
            rates=rates,
            total=total,
            aggregate=aggregate,
            n_records=n_records,
            n_skipped=n_skipped,
            n_accepted=n_accepted,
            n_no_exposure=n_no_exposure,
            invalid_records=invalid_records,
        )
