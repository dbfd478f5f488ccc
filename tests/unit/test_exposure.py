"""
Tests of `mmrates.exposure`
"""

from __future__ import annotations

import re
from contextlib import nullcontext as does_not_raise

import pytest

from mmrates.constants import REFERENCE_WINDOW_MONTHS
from mmrates.exceptions import InvalidRecordError
from mmrates.exposure import (
    EXPOSURE_COLUMNS,
    DerivedExposure,
    calculate_exposure,
    calculate_exposures,
    exposures_to_frame,
    is_pregnancy_related,
    validate_window,
)
from mmrates.records import MaternalDeathCause, SiblingRecord
from mmrates.testing import DEFAULT_INTERVIEW_MONTH, get_random_sisters, make_sister


@pytest.mark.parametrize(
    "sister, exp",
    (
        pytest.param(
            make_sister(age_months_at_interview=36 * 12 + 6),
            dict(
                upper_limit=DEFAULT_INTERVIEW_MONTH - 1,
                lower_limit=DEFAULT_INTERVIEW_MONTH - 84,
                total_exposure_months=84,
                last_age_group=7,
                mid_age_group=6,
                first_age_group=5,
                expo_last=18,
                expo_mid=60,
                expo_first=6,
                is_maternal_death=False,
            ),
            id="aged-36-and-a-half",
        ),
        pytest.param(
            make_sister(age_months_at_interview=36 * 12),
            dict(
                total_exposure_months=84,
                last_age_group=7,
                expo_last=12,
                expo_mid=60,
                expo_first=12,
            ),
            id="turned-36-in-interview-month",
        ),
        pytest.param(
            make_sister(age_months_at_interview=35 * 12),
            dict(
                total_exposure_months=84,
                last_age_group=6,
                expo_last=60,
                expo_mid=24,
                expo_first=0,
            ),
            id="turned-35-in-interview-month",
        ),
        pytest.param(
            make_sister(age_months_at_interview=3 * 12),
            dict(
                lower_limit=DEFAULT_INTERVIEW_MONTH - 36,
                total_exposure_months=36,
                last_age_group=0,
                mid_age_group=-1,
                first_age_group=-2,
                expo_last=36,
                expo_mid=0,
                expo_first=0,
            ),
            id="aged-3",
        ),
        pytest.param(
            make_sister(age_months_at_interview=6 * 12),
            dict(
                total_exposure_months=72,
                last_age_group=1,
                mid_age_group=0,
                first_age_group=-1,
                expo_last=12,
                expo_mid=60,
                expo_first=0,
            ),
            id="aged-6",
        ),
        pytest.param(
            make_sister(
                age_months_at_interview=30 * 12,
                months_before_interview_of_death=24,
                maternal_death_cause=MaternalDeathCause.DIED_DURING_DELIVERY,
            ),
            dict(
                upper_limit=DEFAULT_INTERVIEW_MONTH - 24,
                lower_limit=DEFAULT_INTERVIEW_MONTH - 84,
                total_exposure_months=61,
                last_age_group=5,
                expo_last=37,
                expo_mid=24,
                expo_first=0,
                is_maternal_death=True,
            ),
            id="maternal-death-in-window",
        ),
        pytest.param(
            make_sister(
                age_months_at_interview=30 * 12,
                months_before_interview_of_death=24,
                maternal_death_cause=MaternalDeathCause.NOT_PREGNANCY_RELATED,
            ),
            dict(
                total_exposure_months=61,
                last_age_group=5,
                is_maternal_death=False,
            ),
            id="non-maternal-death-in-window",
        ),
        pytest.param(
            make_sister(
                age_months_at_interview=50 * 12,
                months_before_interview_of_death=84,
                maternal_death_cause=MaternalDeathCause.DIED_WHILE_PREGNANT,
            ),
            dict(
                upper_limit=DEFAULT_INTERVIEW_MONTH - 84,
                lower_limit=DEFAULT_INTERVIEW_MONTH - 84,
                total_exposure_months=1,
                expo_last=1,
                expo_mid=0,
                expo_first=0,
                is_maternal_death=True,
            ),
            id="died-in-first-month-of-window",
        ),
        pytest.param(
            make_sister(
                age_months_at_interview=40 * 12,
                months_before_interview_of_death=0,
                maternal_death_cause=MaternalDeathCause.DIED_WHILE_PREGNANT,
            ),
            dict(
                upper_limit=DEFAULT_INTERVIEW_MONTH - 1,
                total_exposure_months=84,
                is_maternal_death=True,
            ),
            id="died-in-interview-month",
        ),
    ),
)
def test_calculate_exposure(sister, exp):
    res = calculate_exposure(sister)

    assert isinstance(res, DerivedExposure)
    for k, v in exp.items():
        assert getattr(res, k) == v, k

    assert res.mid_age_group == res.last_age_group - 1
    assert res.first_age_group == res.last_age_group - 2
    assert res.expo_last + res.expo_mid + res.expo_first == res.total_exposure_months


@pytest.mark.parametrize(
    "sister",
    (
        pytest.param(
            make_sister(
                age_months_at_interview=40 * 12, months_before_interview_of_death=100
            ),
            id="died-before-window",
        ),
        pytest.param(
            make_sister(
                age_months_at_interview=40 * 12, months_before_interview_of_death=85
            ),
            id="died-month-before-window",
        ),
        pytest.param(
            make_sister(age_months_at_interview=0), id="born-in-interview-month"
        ),
    ),
)
def test_calculate_exposure_no_exposure(sister):
    assert calculate_exposure(sister) is None


def test_calculate_exposure_born_month_before_interview():
    res = calculate_exposure(make_sister(age_months_at_interview=1))

    assert res.total_exposure_months == 1
    assert res.last_age_group == 0


@pytest.mark.parametrize(
    "record, reason",
    (
        pytest.param(
            SiblingRecord(
                case_id="3 4",
                weight=1.0,
                interview_month=1386,
                sex="female",
                survival_status="alive",
                birth_month=None,
            ),
            "birth_month is missing",
            id="missing-birth-month",
        ),
        pytest.param(
            SiblingRecord(
                case_id="3 4",
                weight=1.0,
                interview_month=1386,
                sex="female",
                survival_status="dead",
                birth_month=1000,
            ),
            "survival status is dead but death_month is missing",
            id="dead-without-death-month",
        ),
        pytest.param(
            SiblingRecord(
                case_id="3 4",
                weight=1.0,
                interview_month=1386,
                sex="female",
                survival_status="unknown",
                birth_month=1000,
            ),
            "survival status is unknown",
            id="unknown-survival",
        ),
        pytest.param(
            SiblingRecord(
                case_id="3 4",
                weight=1.0,
                interview_month=1386,
                sex="male",
                survival_status="alive",
                birth_month=1000,
            ),
            "only female siblings are processed",
            id="brother",
        ),
        pytest.param(
            SiblingRecord(
                case_id="3 4",
                weight=0.0,
                interview_month=1386,
                sex="female",
                survival_status="alive",
                birth_month=1000,
            ),
            "weight must be positive",
            id="zero-weight",
        ),
        pytest.param(
            SiblingRecord(
                case_id="3 4",
                weight=float("nan"),
                interview_month=1386,
                sex="female",
                survival_status="alive",
                birth_month=1000,
            ),
            "weight must be positive",
            id="nan-weight",
        ),
    ),
)
def test_calculate_exposure_invalid(record, reason):
    with pytest.raises(
        InvalidRecordError,
        match=re.escape("Invalid sibling record (case_id='3 4'): ") + re.escape(reason),
    ):
        calculate_exposure(record)


@pytest.mark.parametrize(
    "cause, exp",
    (
        (None, False),
        (MaternalDeathCause.NOT_PREGNANCY_RELATED, False),
        (MaternalDeathCause.DIED_WHILE_PREGNANT, True),
        (MaternalDeathCause.DIED_DURING_DELIVERY, True),
        (MaternalDeathCause.DIED_SINCE_DELIVERY, True),
        (MaternalDeathCause.DIED_WITHIN_TWO_MONTHS_OF_DELIVERY, True),
        (MaternalDeathCause.DIED_MORE_THAN_TWO_MONTHS_AFTER_DELIVERY, False),
    ),
)
def test_is_pregnancy_related(cause, exp):
    assert is_pregnancy_related(cause) == exp


def test_exposure_properties_random_sisters():
    sisters = get_random_sisters(2000)

    n_checked = 0
    for sister in sisters:
        res = calculate_exposure(sister)
        if res is None:
            continue

        assert res.expo_last >= 0
        assert res.expo_mid >= 0
        assert res.expo_first >= 0
        assert (
            res.expo_last + res.expo_mid + res.expo_first == res.total_exposure_months
        )
        assert 0 < res.total_exposure_months <= REFERENCE_WINDOW_MONTHS
        assert res.expo_mid <= 60
        assert res.expo_last <= 60

        age_months = sister.interview_month - sister.birth_month
        if sister.death_month is None and age_months > REFERENCE_WINDOW_MONTHS:
            assert res.total_exposure_months == REFERENCE_WINDOW_MONTHS

        n_checked += 1

    # Make sure the test isn't vacuous
    assert n_checked > 1000


def test_calculate_exposures_collects_failures():
    records = [
        make_sister(age_months_at_interview=30 * 12, case_id="1 1"),
        make_sister(
            age_months_at_interview=40 * 12,
            months_before_interview_of_death=100,
            case_id="1 2",
        ),
        SiblingRecord(
            case_id="2 1",
            weight=1.0,
            interview_month=1386,
            sex="female",
            survival_status="alive",
            birth_month=None,
        ),
        SiblingRecord(
            case_id="2 2",
            weight=1.0,
            interview_month=1386,
            sex="female",
            survival_status="dead",
            birth_month=1000,
        ),
        make_sister(age_months_at_interview=20 * 12, case_id="3 1"),
    ]

    res = calculate_exposures(records)

    assert [e.case_id for e in res.exposures] == ["1 1", "3 1"]
    assert res.n_no_exposure == 1
    assert res.n_invalid == 2
    assert [e.case_id for e in res.invalid_records] == ["2 1", "2 2"]
    assert [e.reason for e in res.invalid_records] == [
        "birth_month is missing",
        "survival status is dead but death_month is missing",
    ]


def test_calculate_exposures_logs_invalid(caplog):
    records = [
        SiblingRecord(
            case_id="2 1",
            weight=1.0,
            interview_month=1386,
            sex="female",
            survival_status="alive",
            birth_month=None,
        ),
    ]

    with caplog.at_level("WARNING", logger="mmrates.exposure"):
        calculate_exposures(records)

    assert "1 invalid sibling records were excluded" in caplog.text
    assert "birth_month is missing" in caplog.text


def test_exposures_to_frame():
    exposures = [
        calculate_exposure(make_sister(age_months_at_interview=36 * 12 + 6)),
        calculate_exposure(make_sister(age_months_at_interview=3 * 12)),
    ]

    res = exposures_to_frame(exposures)

    assert res.columns.tolist() == list(EXPOSURE_COLUMNS)
    assert res.shape == (2, len(EXPOSURE_COLUMNS))
    assert res["expo_last"].tolist() == [18, 36]
    assert res["first_age_group"].tolist() == [5, -2]


def test_exposures_to_frame_empty():
    res = exposures_to_frame([])

    assert res.empty
    assert res.columns.tolist() == list(EXPOSURE_COLUMNS)


@pytest.mark.parametrize(
    "reference_window_months, age_group_width_months, exp",
    (
        pytest.param(84, 60, does_not_raise(), id="default"),
        pytest.param(121, 60, does_not_raise(), id="longest-window"),
        pytest.param(85, 42, does_not_raise(), id="narrower-groups"),
        pytest.param(
            122,
            60,
            pytest.raises(
                ValueError,
                match=re.escape(
                    "The reference window is too long to split across "
                    "three age groups. "
                    "Received reference_window_months=122 "
                    "age_group_width_months=60, "
                    "reference_window_months must be at most 121"
                ),
            ),
            id="window-too-long",
        ),
        pytest.param(
            84,
            24,
            pytest.raises(
                ValueError, match="reference_window_months must be at most 49"
            ),
            id="groups-too-narrow",
        ),
        pytest.param(
            0,
            60,
            pytest.raises(ValueError, match="must be positive"),
            id="zero-window",
        ),
        pytest.param(
            84,
            0,
            pytest.raises(ValueError, match="must be positive"),
            id="zero-width",
        ),
    ),
)
def test_validate_window(reference_window_months, age_group_width_months, exp):
    with exp:
        validate_window(
            reference_window_months=reference_window_months,
            age_group_width_months=age_group_width_months,
        )


def test_calculate_exposure_window_too_long_for_groups():
    # Otherwise exposure from a fourth age group would end up in the first one
    with pytest.raises(ValueError, match="reference_window_months must be at most 49"):
        calculate_exposure(
            make_sister(age_months_at_interview=30 * 12), age_group_width_months=24
        )


def test_calculate_exposures_window_too_long_for_groups():
    # Checked even if there are no records
    with pytest.raises(ValueError, match="reference_window_months must be at most 49"):
        calculate_exposures([], age_group_width_months=24)


def test_calculate_exposure_narrower_age_groups():
    res = calculate_exposure(
        make_sister(age_months_at_interview=36 * 12 + 6), age_group_width_months=42
    )

    assert res.last_age_group == 10
    assert (res.expo_last, res.expo_mid, res.expo_first) == (18, 42, 24)
