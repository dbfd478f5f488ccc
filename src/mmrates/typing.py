"""
Type hints that are used throughout
"""

from __future__ import annotations

import pandas as pd
from typing_extensions import TypeAlias

AgeGroupSeries: TypeAlias = pd.Series
"""
Type alias for the [pandas.Series][pd.Series] shape we use for aggregates

For typing purposes, this is just a direct alias of [pandas.Series][pd.Series].
However, the point of defining this
is to provide greater clarity of the kind of data we expect.

We expect weighted values (person-years of exposure or maternal deaths),
indexed by age group index (0 is ages 0-4, 1 is ages 5-9 etc.).
The index is called "age_group".

```python
age_group
3     12.5
4     30.25
5      0.0
Name: last_exposure_years, dtype: float64
```
"""

ExposureDataFrame: TypeAlias = pd.DataFrame
"""
Type alias for the [pandas.DataFrame][pd.DataFrame] shape we use for exposures

We expect one row per sister,
with the columns given by
[EXPOSURE_COLUMNS][mmrates.exposure.EXPOSURE_COLUMNS]
(see [exposures_to_frame][mmrates.exposure.exposures_to_frame]).
"""
