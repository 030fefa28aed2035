r"""Adapt schema engines to the validation interface used by the
executor.

The executor only needs ``validate(value) -> ValidationResult``. Pydantic
models, plain types and ``TypeAdapter`` instances are wrapped in
``PydanticSchema``; any other object exposing a ``validate`` method
(sync or async) returning a ``ValidationResult`` is used as-is.
"""

from __future__ import annotations

__all__ = ["PydanticSchema", "Schema", "ValidationResult", "as_schema", "validate_value"]

import inspect
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from pydantic import TypeAdapter, ValidationError

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


@dataclass(frozen=True)
class ValidationResult(Generic[T]):
    r"""Outcome of validating a value against a schema.

    Attributes:
        success: ``True`` if the value matched the schema.
        value: The validated (possibly coerced) value on success.
        issues: The structured issues on failure.
    """

    success: bool
    value: T | None = None
    issues: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def ok(cls, value: T) -> ValidationResult[T]:
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, issues: list[dict[str, Any]]) -> ValidationResult[T]:
        return cls(success=False, issues=list(issues))


@runtime_checkable
class Schema(Protocol[T_co]):
    r"""Define the interface of a response schema."""

    def validate(self, value: Any) -> Any:
        r"""Validate ``value``.

        Returns:
            A ``ValidationResult``, or an awaitable resolving to one.
        """


class PydanticSchema(Generic[T]):
    r"""Validate values with a pydantic ``TypeAdapter``.

    Args:
        type_: A pydantic model, any type pydantic understands
            (e.g. ``list[int]``), or an existing ``TypeAdapter``.

    Example:
        ```pycon
        >>> import asyncio
        >>> from schemafetch.schema import PydanticSchema
        >>> schema = PydanticSchema(dict[str, int])
        >>> asyncio.run(schema.validate({"count": 1}))
        ValidationResult(success=True, value={'count': 1}, issues=[])

        ```
    """

    def __init__(self, type_: Any) -> None:
        self.adapter: TypeAdapter[T] = type_ if isinstance(type_, TypeAdapter) else TypeAdapter(type_)

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}({self.adapter!r})"

    async def validate(self, value: Any) -> ValidationResult[T]:
        try:
            validated = self.adapter.validate_python(value)
        except ValidationError as exc:
            return ValidationResult.fail(exc.errors(include_url=False))
        return ValidationResult.ok(validated)


def as_schema(schema: Any) -> Schema[Any]:
    r"""Coerce ``schema`` into an object implementing ``Schema``.

    Args:
        schema: A ``Schema`` implementation, a pydantic model, a type, a
            typing construct, or a ``TypeAdapter``.

    Returns:
        The schema object.

    Example:
        ```pycon
        >>> from schemafetch.schema import PydanticSchema, as_schema
        >>> isinstance(as_schema(int), PydanticSchema)
        True

        ```
    """
    if isinstance(schema, PydanticSchema):
        return schema
    # Classes are wrapped even if they expose a ``validate`` attribute
    # (pydantic's BaseModel has a deprecated classmethod with that name).
    if isinstance(schema, (type, TypeAdapter)) or not callable(getattr(schema, "validate", None)):
        return PydanticSchema(schema)
    return schema


async def validate_value(schema: Schema[T], value: Any) -> ValidationResult[T]:
    r"""Run ``schema.validate`` whether it is sync or async.

    Args:
        schema: The schema to validate against.
        value: The value to validate.

    Returns:
        The validation result.

    Raises:
        TypeError: If the schema does not return a ``ValidationResult``.
    """
    result = schema.validate(value)
    if inspect.isawaitable(result):
        result = await result
    if not isinstance(result, ValidationResult):
        msg = f"{schema!r}.validate() must return a ValidationResult, got {type(result).__name__}"
        raise TypeError(msg)
    return result
