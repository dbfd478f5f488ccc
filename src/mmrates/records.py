"""
Sibling records and decoding of survey values into them

The survey file itself is parsed elsewhere.
Here we take values that have already been reshaped
to one row per sibling and decode the categorical labels
into closed enumerations,
so that invalid categories are caught when the data comes in
rather than when we are part way through calculating exposure.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterable, Mapping
from enum import StrEnum
from typing import Any

import attr
import numpy as np
import pandas as pd
from attrs import define, field

from mmrates.assertions import assert_has_columns
from mmrates.constants import DHS_WEIGHT_SCALE
from mmrates.exceptions import InvalidRecordError, UnrecognisedValueError

LOGGER = logging.getLogger(__name__)


class Sex(StrEnum):
    """Sex of the sibling"""

    FEMALE = "female"
    MALE = "male"


class SurvivalStatus(StrEnum):
    """Survival status of the sibling at the time of interview"""

    ALIVE = "alive"
    DEAD = "dead"
    UNKNOWN = "unknown"


class MaternalDeathCause(StrEnum):
    """
    Timing of a sister's death relative to pregnancy

    These are the DHS categories.
    Several of them collapse into a single pregnancy-related class,
    see [PREGNANCY_RELATED_CAUSES][(m).].
    """

    NOT_PREGNANCY_RELATED = "not pregnancy related"
    """Not pregnant and not recently pregnant when she died"""

    DIED_WHILE_PREGNANT = "died while pregnant"

    DIED_DURING_DELIVERY = "died during delivery"

    DIED_SINCE_DELIVERY = "died since delivery"
    """Died within six weeks of delivery"""

    DIED_WITHIN_TWO_MONTHS_OF_DELIVERY = "died within two months of delivery"

    DIED_MORE_THAN_TWO_MONTHS_AFTER_DELIVERY = (
        "died more than two months after delivery"
    )


PREGNANCY_RELATED_CAUSES: frozenset[MaternalDeathCause] = frozenset(
    {
        MaternalDeathCause.DIED_WHILE_PREGNANT,
        MaternalDeathCause.DIED_DURING_DELIVERY,
        MaternalDeathCause.DIED_SINCE_DELIVERY,
        MaternalDeathCause.DIED_WITHIN_TWO_MONTHS_OF_DELIVERY,
    }
)
"""
Causes which are counted as pregnancy-related (i.e. maternal) deaths
"""

SEX_LABELS: dict[str, Sex] = {
    "female": Sex.FEMALE,
    "sister": Sex.FEMALE,
    "f": Sex.FEMALE,
    "male": Sex.MALE,
    "brother": Sex.MALE,
    "m": Sex.MALE,
}
"""
Labels, as they appear in survey data, mapped to [Sex][(m).]
"""

SURVIVAL_STATUS_LABELS: dict[str, SurvivalStatus] = {
    "alive": SurvivalStatus.ALIVE,
    "yes": SurvivalStatus.ALIVE,
    "dead": SurvivalStatus.DEAD,
    "no": SurvivalStatus.DEAD,
    "don't know": SurvivalStatus.UNKNOWN,
    "dk": SurvivalStatus.UNKNOWN,
    "unknown": SurvivalStatus.UNKNOWN,
}
"""
Labels, as they appear in survey data, mapped to [SurvivalStatus][(m).]

In DHS data the survival question is "is the sibling still alive?"
hence "yes" means alive.
"""

MATERNAL_DEATH_CAUSE_LABELS: dict[str, MaternalDeathCause] = {
    "not pregnant or not recently pregnant": MaternalDeathCause.NOT_PREGNANCY_RELATED,
    "not pregnancy related": MaternalDeathCause.NOT_PREGNANCY_RELATED,
    "died while pregnant": MaternalDeathCause.DIED_WHILE_PREGNANT,
    "pregnant when died": MaternalDeathCause.DIED_WHILE_PREGNANT,
    "died during delivery": MaternalDeathCause.DIED_DURING_DELIVERY,
    "during childbirth": MaternalDeathCause.DIED_DURING_DELIVERY,
    "died since delivery": MaternalDeathCause.DIED_SINCE_DELIVERY,
    "6 weeks after delivery": MaternalDeathCause.DIED_SINCE_DELIVERY,
    "within 6 weeks after delivery": MaternalDeathCause.DIED_SINCE_DELIVERY,
    "died within two months of delivery": (
        MaternalDeathCause.DIED_WITHIN_TWO_MONTHS_OF_DELIVERY
    ),
    "2 months after delivery": MaternalDeathCause.DIED_WITHIN_TWO_MONTHS_OF_DELIVERY,
    "within 2 months after delivery": (
        MaternalDeathCause.DIED_WITHIN_TWO_MONTHS_OF_DELIVERY
    ),
    "died more than two months after delivery": (
        MaternalDeathCause.DIED_MORE_THAN_TWO_MONTHS_AFTER_DELIVERY
    ),
    "more than 2 months after delivery": (
        MaternalDeathCause.DIED_MORE_THAN_TWO_MONTHS_AFTER_DELIVERY
    ),
}
"""
Labels, as they appear in survey data, mapped to [MaternalDeathCause][(m).]
"""


def _decode_label(value: Any, labels: Mapping[str, Any], name: str) -> Any:
    key = str(value).strip().lower()
    try:
        return labels[key]
    except KeyError as exc:
        raise UnrecognisedValueError(
            unrecognised_value=value,
            name=name,
            known_values=sorted(labels),
        ) from exc


def decode_sex(value: Any) -> Sex:
    """
    Decode a sex label

    Parameters
    ----------
    value
        Label to decode (case-insensitive), or a [Sex][(m).] already

    Returns
    -------
    :
        Decoded value

    Raises
    ------
    UnrecognisedValueError
        `value` is not a known label
    """
    if isinstance(value, Sex):
        return value

    return _decode_label(value, SEX_LABELS, name="sex")


def decode_survival_status(value: Any) -> SurvivalStatus:
    """
    Decode a survival status label

    Parameters
    ----------
    value
        Label to decode (case-insensitive), or a [SurvivalStatus][(m).] already

    Returns
    -------
    :
        Decoded value

    Raises
    ------
    UnrecognisedValueError
        `value` is not a known label
    """
    if isinstance(value, SurvivalStatus):
        return value

    return _decode_label(value, SURVIVAL_STATUS_LABELS, name="survival_status")


def decode_maternal_death_cause(value: Any) -> MaternalDeathCause | None:
    """
    Decode a maternal death cause label

    Missing values (`None` or NaN) decode to `None`,
    as the cause is only asked about for dead sisters.

    Parameters
    ----------
    value
        Label to decode (case-insensitive), or a [MaternalDeathCause][(m).] already

    Returns
    -------
    :
        Decoded value

    Raises
    ------
    UnrecognisedValueError
        `value` is not a known label
    """
    if isinstance(value, MaternalDeathCause):
        return value

    if _is_missing(value):
        return None

    return _decode_label(
        value, MATERNAL_DEATH_CAUSE_LABELS, name="maternal_death_cause"
    )


def normalise_dhs_weight(raw_weight: int) -> float:
    """
    Convert a raw DHS sampling weight into a real-valued multiplier

    Parameters
    ----------
    raw_weight
        Weight as stored in DHS files (six implied decimal places)

    Returns
    -------
    :
        Weight as a multiplier
    """
    return raw_weight / DHS_WEIGHT_SCALE


def _is_missing(value: Any) -> bool:
    return value is None or bool(pd.isna(value))


def _optional_int(value: Any) -> int | None:
    if _is_missing(value):
        return None

    return int(value)


@define(frozen=True)
class SiblingRecord:
    """
    One sibling, as reported by an interviewed woman

    All dates are century month codes.
    """

    case_id: Hashable
    """
    Identifier of the interviewed woman (only used for traceability)
    """

    weight: float
    """
    Sampling weight of the interviewed woman, as a real-valued multiplier
    """

    interview_month: int
    """
    Month of the interview
    """

    sex: Sex = field(converter=decode_sex)
    """
    Sex of the sibling
    """

    survival_status: SurvivalStatus = field(converter=decode_survival_status)
    """
    Survival status of the sibling at interview
    """

    birth_month: int | None = field(converter=_optional_int)
    """
    Month in which the sibling was born

    This is required to calculate exposure,
    but we allow it to be missing here so that the record
    can be rejected with a clear reason by the exposure calculation.
    """

    death_month: int | None = field(default=None, converter=_optional_int)
    """
    Month in which the sibling died (only for dead siblings)
    """

    maternal_death_cause: MaternalDeathCause | None = field(
        default=None, converter=decode_maternal_death_cause
    )
    """
    Timing of the death relative to pregnancy (only for dead sisters)
    """

    @death_month.validator
    def validate_death_month(
        self, attribute: attr.Attribute[Any], value: int | None
    ) -> None:
        """
        Validate the death month

        A death month only makes sense for dead siblings
        """
        if value is not None and self.survival_status != SurvivalStatus.DEAD:
            msg = (
                f"{attribute.name} should only be set for dead siblings. "
                f"{self.survival_status=} {value=}"
            )
            raise ValueError(msg)


@define
class RecordDecodingResult:
    """
    Result of decoding a table of sibling records
    """

    records: tuple[SiblingRecord, ...]
    """
    Successfully decoded records
    """

    failures: tuple[InvalidRecordError, ...]
    """
    Rows which could not be decoded, with the reason
    """

    n_skipped: int
    """
    Number of rows skipped because they were filtered out

    For example brothers, when only sisters are kept.
    """


RECORD_COLUMNS: tuple[str, ...] = (
    "case_id",
    "weight",
    "interview_month",
    "sex",
    "survival_status",
    "birth_month",
    "death_month",
    "maternal_death_cause",
)
"""
Columns expected by [records_from_frame][(m).]

`death_month` and `maternal_death_cause` are optional.
"""


def records_from_frame(
    indf: pd.DataFrame, only_female: bool = True, drop_unknown_survival: bool = True
) -> RecordDecodingResult:
    """
    Decode a table with one row per sibling into [SiblingRecord][(m).]'s

    Parameters
    ----------
    indf
        Table to decode.
        It must have the columns in [RECORD_COLUMNS][(m).]
        (`death_month` and `maternal_death_cause` may be omitted).

    only_female
        Only keep female siblings

    drop_unknown_survival
        Drop siblings whose survival status is unknown

    Returns
    -------
    :
        Decoded records, plus the rows that failed to decode

    Raises
    ------
    AssertionError
        `indf` is missing required columns
    """
    required = [
        c for c in RECORD_COLUMNS if c not in ("death_month", "maternal_death_cause")
    ]
    assert_has_columns(indf, required)

    records = []
    failures = []
    n_skipped = 0
    for row in indf.to_dict(orient="records"):
        try:
            record = SiblingRecord(
                case_id=row["case_id"],
                weight=float(row["weight"]),
                interview_month=int(row["interview_month"]),
                sex=row["sex"],
                survival_status=row["survival_status"],
                birth_month=row["birth_month"],
                death_month=row.get("death_month"),
                maternal_death_cause=row.get("maternal_death_cause"),
            )
        except (ValueError, TypeError) as exc:
            failures.append(InvalidRecordError(case_id=row["case_id"], reason=str(exc)))
            continue

        if only_female and record.sex != Sex.FEMALE:
            n_skipped += 1
            continue

        if drop_unknown_survival and record.survival_status == SurvivalStatus.UNKNOWN:
            n_skipped += 1
            continue

        records.append(record)

    LOGGER.info(
        "Decoded %d sibling records (%d skipped, %d failed to decode)",
        len(records),
        n_skipped,
        len(failures),
    )

    return RecordDecodingResult(
        records=tuple(records), failures=tuple(failures), n_skipped=n_skipped
    )


def records_to_frame(records: Iterable[SiblingRecord]) -> pd.DataFrame:
    """
    Convert [SiblingRecord][(m).]'s to a table with one row per sibling

    This is the inverse of [records_from_frame][(m).],
    with enumerations written out as their values.

    Parameters
    ----------
    records
        Records to convert

    Returns
    -------
    :
        Table with columns [RECORD_COLUMNS][(m).]
    """
    rows = [
        {
            "case_id": r.case_id,
            "weight": r.weight,
            "interview_month": r.interview_month,
            "sex": r.sex.value,
            "survival_status": r.survival_status.value,
            "birth_month": r.birth_month,
            "death_month": np.nan if r.death_month is None else r.death_month,
            "maternal_death_cause": (
                None if r.maternal_death_cause is None else r.maternal_death_cause.value
            ),
        }
        for r in records
    ]

    return pd.DataFrame(rows, columns=list(RECORD_COLUMNS))
