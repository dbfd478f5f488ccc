# ---
# jupyter:
#   jupytext:
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
#       jupytext_version: 1.16.6
#   kernelspec:
#     display_name: Python 3 (ipykernel)
#     language: python
#     name: python3
# ---

# %% [markdown]
# # How to calculate age-specific maternal mortality rates
#
# Here we demonstrate how to go from a table of sibling histories
# to age-specific maternal mortality rates,
# using the direct sisterhood method.

# %% [markdown]
# ## Imports

# %%
import logging

import pandas as pd

from mmrates.calculator import MaternalMortalityRateCalculator
from mmrates.century_month_code import to_century_month_code
from mmrates.exposure import calculate_exposures, exposures_to_frame
from mmrates.records import records_from_frame, records_to_frame
from mmrates.testing import get_random_sisters

# %%
logging.basicConfig(level=logging.INFO)

# %% [markdown]
# ## Starting point
#
# The starting point is a table with one row per sibling,
# as reported by the interviewed women.
# Dates are century month codes (months since December 1899).
# Sex, survival status and cause of death can be given
# using the labels that appear in survey data.

# %%
interview_month = to_century_month_code(2015, 6)
sibling_table = pd.DataFrame(
    [
        ("1 1", 1.2, interview_month, "sister", "yes", interview_month - 400, None, None),
        (
            "1 1",
            1.2,
            interview_month,
            "sister",
            "no",
            interview_month - 350,
            interview_month - 20,
            "during childbirth",
        ),
        ("1 1", 1.2, interview_month, "brother", "yes", interview_month - 380, None, None),
        ("2 1", 0.8, interview_month, "sister", "dk", interview_month - 300, None, None),
    ],
    columns=[
        "case_id",
        "weight",
        "interview_month",
        "sex",
        "survival_status",
        "birth_month",
        "death_month",
        "maternal_death_cause",
    ],
)
sibling_table

# %% [markdown]
# Brothers and sisters whose survival is unknown are skipped
# when we decode the table.

# %%
decoded = records_from_frame(sibling_table)
records_to_frame(decoded.records)

# %% [markdown]
# ## Exposure
#
# Each sister's exposure in the seven years before the interview
# is split across up to three five-year age groups.

# %%
exposures_to_frame(calculate_exposures(decoded.records).exposures)

# %% [markdown]
# ## Rates
#
# A handful of sisters won't give exposure in every age group,
# so here we use some randomly generated records instead.
# In practice, you would use the records from your survey.

# %%
records = get_random_sisters(10_000)
calculator = MaternalMortalityRateCalculator()
res = calculator(records)
res.to_frame()

# %% [markdown]
# The aggregated exposure and deaths are also available,
# along with the records that couldn't be used.

# %%
res.aggregate.maternal_deaths

# %%
res.n_records, res.n_accepted, res.n_no_exposure, len(res.invalid_records)

# %% [markdown]
# ## Processing in parallel
#
# For large surveys, the records can be split into partitions
# and processed in parallel.
# The result is the same as processing in serial
# (up to floating point rounding).

# %%
calculator_parallel = MaternalMortalityRateCalculator(n_processes=2)
res_parallel = calculator_parallel(records)
res_parallel.to_frame()
