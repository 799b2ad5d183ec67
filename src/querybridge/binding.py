"""
Parameter binding for prepared commands (caller → Database direction).

Each entry of a parameter set becomes one named parameter on the command,
holding the native equivalent of its value. Nothing is validated here: names
the driver rejects surface when the command executes.
"""
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

from querybridge.sql import normalize_param_name
from querybridge.value import Value

if TYPE_CHECKING:
    from querybridge.command import Command

__all__ = ['bind', 'to_native']

logger = logging.getLogger(__name__)


def to_native(value: Any) -> Any:
    """Return the DB-API equivalent of a parameter value.

    `Value` instances are unwrapped, numpy scalars become Python scalars and
    missing-value markers become None, the DB-API null sentinel.
    """
    if isinstance(value, Value):
        return value.to_native()

    if value is None or value is pd.NA or value is pd.NaT:
        return None

    if isinstance(value, np.datetime64 | np.timedelta64) and np.isnat(value):
        return None

    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).to_pydatetime()

    if isinstance(value, np.timedelta64):
        return pd.Timedelta(value).to_pytimedelta()

    if isinstance(value, np.generic):
        return value.item()

    if isinstance(value, np.ndarray):
        return value.tolist()

    return value


def bind(command: 'Command', parameters: Mapping[str, Any] | None) -> None:
    """Attach every parameter to the command, in the caller's order.
    """
    if not parameters:
        return
    for key, value in parameters.items():
        command.add_parameter(normalize_param_name(str(key)), to_native(value))
    logger.debug(f'Bound {len(parameters)} parameters')
