"""
Code to support our tests

This is here, rather than in our `tests` directory
because of the issues that come
when you turn your tests into a package using `__init__.py` files
(for details, see https://docs.pytest.org/en/7.1.x/explanation/goodpractices.html#choosing-an-import-mode).
"""

from __future__ import annotations

from collections.abc import Hashable

import numpy as np

from mmrates.constants import MONTHS_PER_YEAR
from mmrates.records import (
    MaternalDeathCause,
    Sex,
    SiblingRecord,
    SurvivalStatus,
)

RNG = np.random.default_rng(seed=4238)

DEFAULT_INTERVIEW_MONTH: int = 1386
"""
Interview month used in tests (June 2015)
"""


def make_sister(  # noqa: PLR0913
    age_months_at_interview: int,
    weight: float = 1.0,
    interview_month: int = DEFAULT_INTERVIEW_MONTH,
    months_before_interview_of_death: int | None = None,
    maternal_death_cause: MaternalDeathCause | None = None,
    case_id: Hashable = "1 1 2",
) -> SiblingRecord:
    """
    Make a sister's record from her age rather than her birth month

    Parameters
    ----------
    age_months_at_interview
        Age she would have been at the interview, in months

    weight
        Sampling weight

    interview_month
        Month of the interview

    months_before_interview_of_death
        If supplied, she died this many months before the interview

    maternal_death_cause
        Cause of death (only used if she died)

    case_id
        Identifier of the interviewed woman

    Returns
    -------
    :
        Sister's record
    """
    if months_before_interview_of_death is None:
        return SiblingRecord(
            case_id=case_id,
            weight=weight,
            interview_month=interview_month,
            sex=Sex.FEMALE,
            survival_status=SurvivalStatus.ALIVE,
            birth_month=interview_month - age_months_at_interview,
        )

    return SiblingRecord(
        case_id=case_id,
        weight=weight,
        interview_month=interview_month,
        sex=Sex.FEMALE,
        survival_status=SurvivalStatus.DEAD,
        birth_month=interview_month - age_months_at_interview,
        death_month=interview_month - months_before_interview_of_death,
        maternal_death_cause=(
            MaternalDeathCause.NOT_PREGNANCY_RELATED
            if maternal_death_cause is None
            else maternal_death_cause
        ),
    )


def get_random_sisters(
    n: int,
    rng: np.random.Generator = RNG,
    interview_month: int = DEFAULT_INTERVIEW_MONTH,
    max_age_years: int = 60,
    p_dead: float = 0.15,
) -> tuple[SiblingRecord, ...]:
    """
    Get random sisters' records

    Ages are drawn uniformly up to `max_age_years`.
    Dead sisters died at a uniformly drawn time up to fifteen years
    before interview (but not before they were born)
    and their cause of death is drawn uniformly from all the causes.

    Parameters
    ----------
    n
        Number of records to generate

    rng
        Random number generator

    interview_month
        Month of the interview

    max_age_years
        Maximum age of the sisters at interview

    p_dead
        Probability that each sister has died

    Returns
    -------
    :
        Random records
    """
    causes = list(MaternalDeathCause)

    res = []
    for i in range(n):
        age_months = int(rng.integers(0, max_age_years * MONTHS_PER_YEAR))
        weight = float(rng.uniform(0.2, 3.0))
        if rng.random() < p_dead:
            months_before_interview_of_death = int(
                rng.integers(0, min(age_months, 15 * MONTHS_PER_YEAR) + 1)
            )
            cause = causes[int(rng.integers(0, len(causes)))]
        else:
            months_before_interview_of_death = None
            cause = None

        res.append(
            make_sister(
                age_months_at_interview=age_months,
                weight=weight,
                interview_month=interview_month,
                months_before_interview_of_death=months_before_interview_of_death,
                maternal_death_cause=cause,
                case_id=f"{i // 4} {i % 4}",
            )
        )

    return tuple(res)
