"""
Table model: attribute roles and schema checks.

Tables are plain pandas DataFrames; a table's schema is its ordered column
set. Transforms never mutate a table, they return a new one. Attribute roles
are external configuration, never inferred from the data.
"""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Optional

import pandas as pd

from tabular_privacy.errors import ConfigurationError, SchemaError


class AttributeRole(Enum):
    """Role of an attribute with respect to disclosure risk."""

    IDENTIFIER = "identifier"
    QUASI_IDENTIFIER = "quasi_identifier"
    SENSITIVE = "sensitive"
    OTHER = "other"


class AttributeRoles:
    """
    Role tagging for the attributes of a table.

    Attributes not tagged are treated as ``AttributeRole.OTHER``. At most one
    attribute may be sensitive.

    Parameters
    ----------
    attribute_to_role : Mapping[str, AttributeRole | str]
        Mapping from attribute name to role. Roles may be given by value,
        e.g. ``"quasi_identifier"``.

    Raises
    ------
    ConfigurationError
        If a role is unknown or more than one attribute is sensitive.

    Examples
    --------
    >>> roles = AttributeRoles({
    ...     "PatientID": "identifier",
    ...     "PatientAge": "quasi_identifier",
    ...     "Gender": "quasi_identifier",
    ...     "Diagnosis": "sensitive",
    ... })
    >>> roles.quasi_identifiers
    ['PatientAge', 'Gender']
    """

    def __init__(self, attribute_to_role: Mapping[str, object]) -> None:
        self.attribute_to_role: dict[str, AttributeRole] = {}
        for attribute, role in attribute_to_role.items():
            try:
                self.attribute_to_role[attribute] = AttributeRole(role)
            except ValueError as err:
                raise ConfigurationError(
                    f"Unknown attribute role ({role})", attribute=attribute
                ) from err
        sensitive = self.with_role(AttributeRole.SENSITIVE)
        if len(sensitive) > 1:
            raise ConfigurationError(
                f"Only a single sensitive attribute is supported, got {sensitive}"
            )

    def role(self, attribute: str) -> AttributeRole:
        return self.attribute_to_role.get(attribute, AttributeRole.OTHER)

    def with_role(self, role: AttributeRole) -> list[str]:
        return [attr for attr, attr_role in self.attribute_to_role.items() if attr_role == role]

    @property
    def identifiers(self) -> list[str]:
        return self.with_role(AttributeRole.IDENTIFIER)

    @property
    def quasi_identifiers(self) -> list[str]:
        return self.with_role(AttributeRole.QUASI_IDENTIFIER)

    @property
    def sensitive(self) -> Optional[str]:
        sensitive = self.with_role(AttributeRole.SENSITIVE)
        return sensitive[0] if sensitive else None

    def validate(self, input_df: pd.DataFrame) -> None:
        """
        Check that every tagged attribute is a column of the table.

        Raises
        ------
        SchemaError
            If a tagged attribute is absent from ``input_df``.
        """
        require_attributes(input_df, self.attribute_to_role.keys())

    def __repr__(self) -> str:
        return f"AttributeRoles({ {k: v.value for k, v in self.attribute_to_role.items()} })"


def require_attributes(input_df: pd.DataFrame, attributes: Iterable[str]) -> None:
    """
    Check that the table has a well-formed schema containing ``attributes``.

    Parameters
    ----------
    input_df : pd.DataFrame
        Table to check.
    attributes : Iterable[str]
        Attributes that must be present.

    Raises
    ------
    SchemaError
        If the table has duplicate column names or an attribute is missing.
    """
    cols = [str(col_name) for col_name in input_df.columns]
    if len(set(cols)) != len(cols):
        duplicates = sorted({col for col in cols if cols.count(col) > 1})
        raise SchemaError(f"Table has duplicate attributes {duplicates}")
    for attribute in attributes:
        if attribute not in cols:
            raise SchemaError("Attribute is not a column in the input table", attribute=attribute)
