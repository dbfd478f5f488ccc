"""
Exceptions that are used throughout
"""

from __future__ import annotations

from collections.abc import Collection
from typing import Any


class UnrecognisedValueError(ValueError):
    """
    Raised when a value is not recognised
    """

    def __init__(
        self, unrecognised_value: Any, name: str, known_values: Collection[Any]
    ) -> None:
        """
        Initialise the error

        Parameters
        ----------
        unrecognised_value
            The value that was not recognised

        name
            Name of the thing being decoded, used to make the message clearer

        known_values
            The values we do recognise
        """
        error_msg = (
            f"{unrecognised_value!r} is not a recognised value for {name}. "
            f"{known_values=}"
        )
        super().__init__(error_msg)

        self.unrecognised_value = unrecognised_value
        self.name = name
        self.known_values = known_values


class InvalidRecordError(ValueError):
    """
    Raised when a sibling record cannot be used to calculate exposure
    """

    def __init__(self, case_id: Any, reason: str) -> None:
        """
        Initialise the error

        Parameters
        ----------
        case_id
            Identifier of the interviewed woman who reported the sibling

        reason
            Why the record is invalid
        """
        error_msg = f"Invalid sibling record ({case_id=}): {reason}"
        super().__init__(error_msg)

        self.case_id = case_id
        self.reason = reason

    def __reduce__(self) -> tuple[type[InvalidRecordError], tuple[Any, str]]:
        # __init__ takes the original arguments, not the message,
        # which is what pickle would pass by default
        return (self.__class__, (self.case_id, self.reason))


class MissingAgeGroupError(ValueError):
    """
    Raised when an expected age group is missing from an aggregate table
    """

    def __init__(
        self,
        table_name: str,
        missing: Collection[int],
        expected: Collection[int],
    ) -> None:
        """
        Initialise the error

        Parameters
        ----------
        table_name
            Name of the table in which the age groups are missing

        missing
            The missing age groups

        expected
            All the age groups we expected
        """
        error_msg = (
            f"The {table_name} table is missing age groups. "
            f"missing={sorted(missing)} expected={sorted(expected)}"
        )
        super().__init__(error_msg)

        self.table_name = table_name
        self.missing = missing


class ZeroExposureError(ZeroDivisionError):
    """
    Raised when an age group has no exposure so its rate is undefined
    """

    def __init__(self, age_groups: Collection[int]) -> None:
        """
        Initialise the error

        Parameters
        ----------
        age_groups
            Age groups which have zero exposure
        """
        error_msg = (
            "The rate is undefined because there is no exposure "
            f"in the following age groups: {sorted(age_groups)}"
        )
        super().__init__(error_msg)

        self.age_groups = age_groups
