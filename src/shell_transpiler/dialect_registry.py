"""
Dialect Registry - static lexical rules for each supported shell

ARCHITECTURE:
- One immutable Dialect record per shell (bash, zsh, fish, powershell, cmd)
- Records are hand-authored constants built once at import time
- Consumed by ShellLexer (scanning rules), InvocationBuilder (operators)
  and RequoteEmitter / translation table (protection sets)

RESPONSIBILITIES:
- Describe quote delimiters, escape character, variable syntax, here-doc
  style, comment marker and operator table of each dialect
- Resolve dialect names (with aliases) via get_dialect()

NOT RESPONSIBLE FOR:
- Scanning text (ShellLexer)
- Rendering constructs (translation_table)

USAGE PATTERN:
    bash = get_dialect('bash')
    bash.literal_quote        # ("'", "'")
    get_dialect('pwsh').name  # 'powershell'
    get_dialect('tcsh')       # raises UnknownDialectError
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional, Tuple, Union

from .constants import DIALECT_ALIASES, PLACEHOLDER_CLOSE, PLACEHOLDER_OPEN, SUPPORTED_DIALECTS
from .errors import UnknownDialectError


PLACEHOLDER_CHARS = frozenset((PLACEHOLDER_OPEN, PLACEHOLDER_CLOSE))


@dataclass(frozen=True)
class HeredocStyle:
    """
    How a dialect spells multi-line literal/expandable bodies.

    kind 'delimited'   - bash/zsh <<DELIM ... DELIM (body follows the line)
    kind 'here_string' - PowerShell @' ... '@ (body inline)
    """
    kind: str
    literal_open: str
    expandable_open: str
    literal_close: str
    expandable_close: str


@dataclass(frozen=True)
class Dialect:
    """
    Lexical rule set of one shell dialect.

    Immutable after construction. Character sets:
        word_breaking_chars - end a bare word while scanning input
        protected_chars     - force quoting when they appear in literal text
        raw_unsafe_chars    - cannot stay bare when re-emitting unquoted text
    """
    name: str
    family: str                                   # posix | fish | powershell | cmd
    literal_quote: Optional[Tuple[str, str]]      # None: no literal quoting (cmd)
    expandable_quote: Tuple[str, str]
    escape_char: str
    variable_prefix: str
    variable_suffix: str
    comment_marker: str
    heredoc: Optional[HeredocStyle]
    operators: Tuple[str, ...]                    # longest first
    command_separators: FrozenSet[str]
    word_breaking_chars: FrozenSet[str]
    protected_chars: FrozenSet[str]
    raw_unsafe_chars: FrozenSet[str]
    literal_escapes: FrozenSet[str] = frozenset()
    literal_doubled_quote: bool = False
    # None means the escape character escapes any character inside the quote
    expandable_escapes: Optional[FrozenSet[str]] = frozenset()
    expandable_doubled_quote: bool = False
    splits_unquoted_expansions: bool = False
    escape_decodes: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}), compare=False)

    def __str__(self) -> str:
        return self.name

    def is_redirect(self, op: str) -> bool:
        """Check if operator redirects a stream (its next word is a target)"""
        return ('>' in op or '<' in op) and op not in ('(', ')')

    def needs_protection(self, text: str) -> bool:
        """
        Check if literal text must be quoted or escaped to survive as-is.

        Interpolation placeholders count as protected: the value they stand
        for is unknown.
        """
        return any(c in self.protected_chars or c in PLACEHOLDER_CHARS or not c.isprintable()
                   for c in text)

    def is_raw_safe(self, text: str) -> bool:
        """Check if unquoted text can be emitted bare in this dialect"""
        return not any(c in self.raw_unsafe_chars
                       or (not c.isprintable() and c not in PLACEHOLDER_CHARS)
                       for c in text)


# ============================================================================
# SHARED CHARACTER SETS
# ============================================================================

_WHITESPACE = frozenset(' \t\r\n')

_POSIX_OPERATORS = (
    '&>>', '2>&1', '<<<', '&&', '||', ';;', '|&', '&>', '>>', '>|', '>&',
    '<&', '<>', '|', ';', '&', '>', '<', '(', ')',
)

_POSIX_SEPARATORS = frozenset({'&&', '||', ';;', '|&', '|', ';', '&', '(', ')', '\n'})

_POSIX_BREAKING = _WHITESPACE | frozenset('\'"\\$`|&;<>()')

_POSIX_PROTECTED = _WHITESPACE | frozenset('\'"\\$`|&;<>()*?[]{}~#!^')

_POSIX_RAW_UNSAFE = _WHITESPACE | frozenset('\'"\\$`|&;<>()#!')

_POSIX_HEREDOC = HeredocStyle(
    kind='delimited',
    literal_open="<<'{delimiter}'",
    expandable_open='<<{delimiter}',
    literal_close='{delimiter}',
    expandable_close='{delimiter}',
)

# `\x` inside "..." is an escape only for these characters
_POSIX_DQ_ESCAPES = frozenset('$`"\\\n')

_CONTROL_DECODES = {
    'a': '\a', 'b': '\b', 'e': '\x1b', 'f': '\f',
    'n': '\n', 'r': '\r', 't': '\t', 'v': '\v',
}


def _posix_dialect(name: str) -> Dialect:
    return Dialect(
        name=name,
        family='posix',
        literal_quote=("'", "'"),
        expandable_quote=('"', '"'),
        escape_char='\\',
        variable_prefix='$',
        variable_suffix='',
        comment_marker='#',
        heredoc=_POSIX_HEREDOC,
        operators=_POSIX_OPERATORS,
        command_separators=_POSIX_SEPARATORS,
        word_breaking_chars=_POSIX_BREAKING,
        protected_chars=_POSIX_PROTECTED,
        raw_unsafe_chars=_POSIX_RAW_UNSAFE,
        expandable_escapes=_POSIX_DQ_ESCAPES,
        # zsh does not word-split unquoted parameter expansions by default
        splits_unquoted_expansions=(name == 'bash'),
    )


# ============================================================================
# DIALECT RECORDS
# ============================================================================

BASH = _posix_dialect('bash')

ZSH = _posix_dialect('zsh')

FISH = Dialect(
    name='fish',
    family='fish',
    literal_quote=("'", "'"),
    expandable_quote=('"', '"'),
    escape_char='\\',
    variable_prefix='$',
    variable_suffix='',
    comment_marker='#',
    heredoc=None,
    operators=('&>>', '2>&1', '&&', '||', '&>', '>>', '>?', '|', ';', '&', '>', '<'),
    command_separators=frozenset({'&&', '||', '|', ';', '&', '\n'}),
    word_breaking_chars=_WHITESPACE | frozenset('\'"\\$|&;<>()'),
    protected_chars=_WHITESPACE | frozenset('\'"\\$|&;<>()*?[]{}~#%'),
    raw_unsafe_chars=_WHITESPACE | frozenset('\'"\\$|&;<>()#'),
    literal_escapes=frozenset("'\\"),
    expandable_escapes=frozenset('$"\\\n'),
    escape_decodes=MappingProxyType(dict(_CONTROL_DECODES)),
)

# Typographic quotes are string delimiters in PowerShell as well
_PS_SINGLE_QUOTES = frozenset("'‘’‚‛")
_PS_DOUBLE_QUOTES = frozenset('"“”„')

POWERSHELL = Dialect(
    name='powershell',
    family='powershell',
    literal_quote=("'", "'"),
    expandable_quote=('"', '"'),
    escape_char='`',
    variable_prefix='$',
    variable_suffix='',
    comment_marker='#',
    heredoc=HeredocStyle(
        kind='here_string',
        literal_open="@'",
        expandable_open='@"',
        literal_close="'@",
        expandable_close='"@',
    ),
    operators=(
        '*>&1', '2>&1', '*>>', '&&', '||', '*>', '>>', '|', ';', '&',
        '>', '<', '(', ')', '{', '}',
    ),
    command_separators=frozenset({'&&', '||', '|', ';', '(', ')', '{', '}', '\n'}),
    word_breaking_chars=_WHITESPACE | frozenset('\'"`$|&;<>(){}'),
    protected_chars=(_WHITESPACE | frozenset('\'"`$|&;<>(){}@,#')
                     | _PS_SINGLE_QUOTES | _PS_DOUBLE_QUOTES),
    raw_unsafe_chars=(_WHITESPACE | frozenset('\'"`$|&;<>(){}@,#')
                      | _PS_SINGLE_QUOTES | _PS_DOUBLE_QUOTES),
    literal_doubled_quote=True,
    expandable_escapes=None,
    expandable_doubled_quote=True,
    escape_decodes=MappingProxyType(dict(_CONTROL_DECODES, **{'0': '\0'})),
)

CMD = Dialect(
    name='cmd',
    family='cmd',
    literal_quote=None,
    expandable_quote=('"', '"'),
    escape_char='^',
    variable_prefix='%',
    variable_suffix='%',
    comment_marker='REM',
    heredoc=None,
    operators=('2>&1', '&&', '||', '>>', '|', '&', '>', '<', '(', ')'),
    command_separators=frozenset({'&&', '||', '|', '&', '(', ')', '\n'}),
    word_breaking_chars=_WHITESPACE | frozenset('"^%&|<>()'),
    protected_chars=_WHITESPACE | frozenset('"^%&|<>()'),
    raw_unsafe_chars=_WHITESPACE | frozenset('"^%&|<>()'),
    expandable_escapes=frozenset(),
    expandable_doubled_quote=True,
)

_REGISTRY: Dict[str, Dialect] = {
    dialect.name: dialect for dialect in (BASH, ZSH, FISH, POWERSHELL, CMD)
}


# ============================================================================
# PUBLIC API
# ============================================================================

def get_dialect(name: Union[str, Dialect]) -> Dialect:
    """
    Look up a dialect by name.

    Args:
        name: Dialect name or alias (case-insensitive), or a Dialect

    Returns:
        The registered Dialect record

    Raises:
        UnknownDialectError: name is not a supported dialect
    """
    if isinstance(name, Dialect):
        return name
    key = str(name).strip().lower()
    key = DIALECT_ALIASES.get(key, key)
    try:
        return _REGISTRY[key]
    except KeyError:
        raise UnknownDialectError(str(name), SUPPORTED_DIALECTS) from None


def supported_dialects() -> Tuple[str, ...]:
    """Canonical names of every registered dialect"""
    return SUPPORTED_DIALECTS
