import numpy as np
from typing import Any, Callable, Iterable, Optional, TypeVar

from eobscreen.errors import ConfigError

_Numeric = TypeVar("_Numeric", int, float)


def _check_bounds(v, min_allowed, max_allowed, inclusive_min, inclusive_max):
    """Raise ValueError if v falls outside the requested interval."""

    if min_allowed is not None:
        if inclusive_min:
            ok, op = v >= min_allowed, ">="
        else:
            ok, op = v > min_allowed, ">"
        if not ok:
            raise ValueError(f"Value must be {op} {min_allowed}.")

    if max_allowed is not None:
        if inclusive_max:
            ok, op = v <= max_allowed, "<="
        else:
            ok, op = v < max_allowed, "<"
        if not ok:
            raise ValueError(f"Value must be {op} {max_allowed}.")


def check_number(
    value: Any,
    param_name: Optional[str] = None,
    cast_type: Callable[[Any], _Numeric] = float,
    min_allowed: Optional[_Numeric] = None,
    max_allowed: Optional[_Numeric] = None,
    inclusive_min: bool = True,
    inclusive_max: bool = True,
    allow_none: bool = False,
) -> Optional[_Numeric]:
    """
    Cast a scalar setting (seed, draw counts, prior scales, ...) to
    `cast_type` and make sure it lies in the allowed interval.

    Bools are rejected even though Python treats them as integers, and a
    value that would be truncated by an `int` cast (2.5) is refused rather
    than rounded.

    Parameters
    ----------
    value : Any
        value to check
    param_name : str, optional
        name of the setting, used in error messages
    cast_type : callable, default float
        type to cast to (usually `int` or `float`)
    min_allowed, max_allowed : number, optional
        interval bounds. None means unbounded on that side.
    inclusive_min, inclusive_max : bool, default True
        whether the bounds themselves are allowed
    allow_none : bool, default False
        return None for a None value instead of raising

    Returns
    -------
    number or None

    Raises
    ------
    ConfigError
        if the value cannot be used
    """

    if value is None:
        if allow_none:
            return None
        raise ConfigError(f"'{param_name}' cannot be None")

    try:

        if isinstance(value, (str, bytes)) or not np.isscalar(value):
            raise TypeError("Value must be a numeric scalar.")
        if isinstance(value, (bool, np.bool_)):
            raise TypeError("Value must be a number, not a bool.")

        v = cast_type(value)
        if cast_type is int and float(value) != v:
            raise ValueError("Value must be a whole number.")

        _check_bounds(v, min_allowed, max_allowed, inclusive_min, inclusive_max)

    except (ValueError, TypeError) as e:
        raise ConfigError(
            f"Invalid value '{value}' for '{param_name}'. {e}"
        ) from e

    return v


def check_choice(value: Any,
                 param_name: str,
                 allowed: Iterable[str]) -> str:
    """
    Make sure a string setting is one of `allowed` and return it.
    """

    allowed = list(allowed)
    if not isinstance(value, str) or value not in allowed:
        raise ConfigError(
            f"'{param_name}' must be one of {allowed}. Got '{value}'."
        )

    return value
