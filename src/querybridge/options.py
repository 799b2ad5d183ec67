import logging
from dataclasses import dataclass, fields, replace
from typing import Any

__all__ = [
    'BridgeOptions',
    'KNOWN_DEFAULT_DRIVERS',
    'get_options',
    'set_options',
    'load_options',
]

logger = logging.getLogger(__name__)

KNOWN_DEFAULT_DRIVERS = ('sqlite', 'postgresql', 'sqlserver', 'sqlalchemy')


@dataclass
class BridgeOptions:
    """Options

    supported default driver names: `sqlite`, `postgresql`, `sqlserver`, `sqlalchemy`

    Driver registration options:
    - auto_register: Register the default drivers on configure (default: True)
    - default_drivers: Which default drivers to register (default: all)

    SQLite options:
    - sqlite_detect_types: Convert declared date/datetime/timestamp columns (default: True)
    - sqlite_check_same_thread: Reject use of a connection from another thread (default: False)

    SQLAlchemy options:
    - engine_echo: Echo statements from SQLAlchemy engines (default: False)
    """
    auto_register: bool = True
    default_drivers: tuple[str, ...] = KNOWN_DEFAULT_DRIVERS
    sqlite_detect_types: bool = True
    sqlite_check_same_thread: bool = False
    engine_echo: bool = False

    def __post_init__(self):
        if isinstance(self.default_drivers, str):
            self.default_drivers = (self.default_drivers,)
        self.default_drivers = tuple(self.default_drivers)
        unknown = [d for d in self.default_drivers if d not in KNOWN_DEFAULT_DRIVERS]
        if unknown:
            raise ValueError(f'default_drivers must be among: {list(KNOWN_DEFAULT_DRIVERS)}, got {unknown}')


_active_options = BridgeOptions()


def load_options(options: BridgeOptions | dict[str, Any] | None = None,
                 **kw: Any) -> BridgeOptions:
    """Build a BridgeOptions from an instance, a dict, or keyword overrides.

    Keyword overrides win over values carried by `options`. Unknown keys
    raise ValueError.
    """
    if options is None:
        options = {}
    if isinstance(options, BridgeOptions):
        return replace(options, **kw) if kw else options
    if not isinstance(options, dict):
        raise ValueError(f'options must be BridgeOptions or dict, not {type(options).__name__}')

    merged = {**options, **kw}
    valid = {f.name for f in fields(BridgeOptions)}
    unknown = set(merged) - valid
    if unknown:
        raise ValueError(f'Unknown options: {sorted(unknown)}')
    return BridgeOptions(**merged)


def get_options() -> BridgeOptions:
    """Return the active options."""
    return _active_options


def set_options(options: BridgeOptions) -> None:
    """Replace the active options."""
    global _active_options
    _active_options = options
    logger.debug(f'Active options set: {options}')
