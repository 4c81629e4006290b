"""
Base Schema Classes

This module provides the base class shared by every wire schema, with the
common serialization and deserialization methods so the concrete schemas
only describe their own fields.
"""

import json
from typing import Any, Dict, Tuple, Type, TypeVar, Union

T = TypeVar("T", bound="BaseSchema")


class BaseSchema:
    """
    Base class for wire schemas.

    Subclasses implement ``to_dict`` and ``_from_data``; this class supplies
    the JSON helpers and the dictionary entry point.
    """

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary for JSON serialization.

        Should be overridden by subclasses.
        """
        raise NotImplementedError("Subclasses must define to_dict")

    def to_json(self) -> str:
        """
        Convert to JSON string.

        Returns:
            JSON string representation of the schema.
        """
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """
        Create instance from dictionary.

        Args:
            data: Dictionary containing the schema fields.

        Returns:
            Instance of the schema class.

        Raises:
            TypeError: If data is not a dictionary or a field has the
                wrong type.
            KeyError: If a required field is missing.
            ValueError: If a field value is out of range.
        """
        if not isinstance(data, dict):
            raise TypeError(
                f"{cls.__name__} expects an object, got {type(data).__name__}"
            )
        return cls._from_data(data)

    @classmethod
    def from_json(cls: Type[T], json_str: Union[str, bytes]) -> T:
        """
        Create instance from JSON string.

        Args:
            json_str: JSON string containing the schema fields.

        Returns:
            Instance of the schema class.
        """
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def _from_data(cls: Type[T], data: Dict[str, Any]) -> T:
        """
        Create instance from a validated dictionary.

        Should be overridden by subclasses.
        """
        raise NotImplementedError("Subclasses must define _from_data")


def require_field(
    data: Dict[str, Any],
    key: str,
    expected: Union[type, Tuple[type, ...]],
) -> Any:
    """
    Fetch a required field and check its type.

    ``bool`` is rejected where ``int`` is expected, since JSON ``true`` would
    otherwise pass as the integer 1.

    Args:
        data: Dictionary to read from
        key: Field name
        expected: Accepted type or tuple of types

    Returns:
        The field value.

    Raises:
        KeyError: If the field is missing
        TypeError: If the field has the wrong type
    """
    if key not in data:
        raise KeyError(f"missing field '{key}'")
    value = data[key]
    if isinstance(value, bool) and expected is int:
        raise TypeError(f"field '{key}' must be int, got bool")
    if not isinstance(value, expected):
        raise TypeError(
            f"field '{key}' has type {type(value).__name__}"
        )
    return value
