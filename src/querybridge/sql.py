"""
SQL named-parameter processing.

Statements are written with `:name` placeholders. They are tokenized once and
rebuilt for the driver's DB-API paramstyle:

    SQL + params → Tokenize → Rewrite placeholders → (sql, args)

- `named`     :name        args passed as a dict
- `pyformat`  %(name)s     args passed as a dict
- `qmark`     ?            args ordered as the placeholders appear
- `format`    %s           args ordered as the placeholders appear
- `numeric`   :1           args ordered as the placeholders appear

String literals, quoted identifiers, comments and `::` casts are never
rewritten. A `[...]` span is a quoted identifier only when it starts with a
letter or underscore and holds no colon, so `ARRAY[:a]` and `arr[:i]` are
rewritten.
"""
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

__all__ = [
    'TokenType',
    'Token',
    'tokenize_sql',
    'rewrite_placeholders',
    'normalize_param_name',
    'PARAMSTYLES',
]

PARAMSTYLES = ('named', 'pyformat', 'qmark', 'format', 'numeric')


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    QUOTED_IDENT = auto()
    COMMENT = auto()
    CAST = auto()               # ::type
    NAMED_PH = auto()           # :name


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    name: str | None = None


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*')
    |(?P<ident>"(?:[^"]|"")*"|\[[A-Za-z_][^\]:]*\]|`[^`]*`)
    |(?P<comment>--[^\n]*|/\*.*?\*/)
    |(?P<cast>::)
    |(?P<named>(?<![\w:]):(?P<pname>[A-Za-z_]\w*))
""", re.VERBOSE | re.DOTALL)

_SIGILS = ':@$'


def normalize_param_name(name: str) -> str:
    """Strip a single leading parameter sigil (`:id`, `@id`, `$id` → `id`)."""
    if name and name[0] in _SIGILS:
        return name[1:]
    return name


def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.

    Parameters
        sql: SQL query string

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start]))

        if match.group('string'):
            tokens.append(Token(TokenType.STRING_LITERAL, match.group(0)))
        elif match.group('ident'):
            tokens.append(Token(TokenType.QUOTED_IDENT, match.group(0)))
        elif match.group('comment'):
            tokens.append(Token(TokenType.COMMENT, match.group(0)))
        elif match.group('cast'):
            tokens.append(Token(TokenType.CAST, match.group(0)))
        else:
            tokens.append(Token(TokenType.NAMED_PH, match.group(0), match.group('pname')))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:]))

    return tokens


def _escape_percent(text: str) -> str:
    return text.replace('%', '%%')


def rewrite_placeholders(sql: str, params: Mapping[str, Any] | None,
                         paramstyle: str = 'named') -> tuple[str, dict[str, Any] | tuple]:
    """Rewrite `:name` placeholders for a DB-API paramstyle.

    Parameters
        sql: SQL query string with `:name` placeholders
        params: Parameter values keyed by name (sigils already stripped)
        paramstyle: Target DB-API paramstyle

    Returns
        Tuple of (processed_sql, processed_args)

    Raises
        KeyError: a placeholder has no parameter (positional styles only;
            dict styles leave that to the driver)
        ValueError: unsupported paramstyle
    """
    if paramstyle not in PARAMSTYLES:
        raise ValueError(f'Unsupported paramstyle: {paramstyle}')

    params = dict(params or {})

    if paramstyle == 'named':
        return sql, params

    escape = paramstyle in {'pyformat', 'format'}
    parts: list[str] = []
    ordered: list[Any] = []

    for token in tokenize_sql(sql):
        if token.type is not TokenType.NAMED_PH:
            parts.append(_escape_percent(token.text) if escape else token.text)
            continue
        if paramstyle == 'pyformat':
            parts.append(f'%({token.name})s')
            continue
        ordered.append(params[token.name])
        if paramstyle == 'qmark':
            parts.append('?')
        elif paramstyle == 'format':
            parts.append('%s')
        else:
            parts.append(f':{len(ordered)}')

    rebuilt = ''.join(parts)
    if paramstyle == 'pyformat':
        return rebuilt, params
    return rebuilt, tuple(ordered)
