"""
Constants used throughout

Throughout this package, we follow these conventions:

- months are century month codes (CMC), i.e. months since December 1899
- age groups are indexed by five-year band, starting from 0 (ages 0-4)
- "reported" age groups are the ones that appear in the output rate table
"""

from __future__ import annotations

REFERENCE_WINDOW_MONTHS: int = 84
"""
Length of the reference window preceding the interview, in months (seven years)
"""

AGE_GROUP_WIDTH_MONTHS: int = 60
"""
Width of each age group, in months (five years)
"""

MONTHS_PER_YEAR: int = 12
"""
Months per year, used to convert person-months to person-years
"""

RATE_MULTIPLIER: float = 1000.0
"""
Rates are reported per this many person-years of exposure
"""

REPORTED_AGE_GROUPS: tuple[int, ...] = tuple(range(3, 10))
"""
Age groups that appear in the rate table (ages 15-19 to 45-49)
"""

DHS_WEIGHT_SCALE: int = 1_000_000
"""
Raw DHS sampling weights are stored as integers with six implied decimals
"""
