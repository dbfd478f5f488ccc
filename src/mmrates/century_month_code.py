"""
Helpers for century month codes (CMC)

DHS surveys store dates as the number of months since December 1899,
so January 1900 is 1 and December 1900 is 12.
"""

from __future__ import annotations

from mmrates.constants import MONTHS_PER_YEAR


def to_century_month_code(year: int, month: int) -> int:
    """
    Convert a calendar year and month to a century month code

    Parameters
    ----------
    year
        Calendar year

    month
        Calendar month (1 to 12)

    Returns
    -------
    :
        Century month code

    Raises
    ------
    ValueError
        `month` is not between 1 and 12

    Examples
    --------
    >>> to_century_month_code(1900, 1)
    1
    >>> to_century_month_code(2015, 6)
    1386
    """
    if not 1 <= month <= MONTHS_PER_YEAR:
        msg = f"month must be between 1 and 12, received {month=}"
        raise ValueError(msg)

    return (year - 1900) * MONTHS_PER_YEAR + month


def from_century_month_code(cmc: int) -> tuple[int, int]:
    """
    Convert a century month code to a calendar year and month

    This is the inverse of [to_century_month_code][(m).].

    Parameters
    ----------
    cmc
        Century month code

    Returns
    -------
    :
        Year and month

    Examples
    --------
    >>> from_century_month_code(1386)
    (2015, 6)
    >>> from_century_month_code(12)
    (1900, 12)
    """
    year, month_zero_based = divmod(cmc - 1, MONTHS_PER_YEAR)

    return 1900 + year, month_zero_based + 1


def age_in_completed_years(birth_month: int, at_month: int) -> int:
    """
    Get age in completed years

    Parameters
    ----------
    birth_month
        Century month code of birth

    at_month
        Century month code at which to calculate the age

    Returns
    -------
    :
        Age in completed years
    """
    return (at_month - birth_month) // MONTHS_PER_YEAR
