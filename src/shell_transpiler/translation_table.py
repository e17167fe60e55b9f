"""
Dialect Translation Table - construct rendering per target dialect

ARCHITECTURE:
- Static table of RenderRule keyed by (ConstructKind, target dialect)
- Pair overrides keyed by (ConstructKind, source, target) win over defaults
- Built once at import, read-only afterwards

RESPONSIBILITIES:
- Quote and escape text for each target (literal, expandable, bare escape)
- Render variables, special parameters, substitutions and here-docs
- Raise UnsupportedConstructError where a target has no equivalent

USAGE PATTERN:
    rule = lookup(ConstructKind.LITERAL_QUOTE, 'bash', 'powershell')
    rule.render("it's")          # "'it''s'"
    lookup(ConstructKind.LITERAL_QUOTE, 'bash', 'cmd')
    # raises UnsupportedConstructError (the emitter falls back to ^ escapes)
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .dialect_registry import PLACEHOLDER_CHARS, Dialect, get_dialect
from .errors import UnsupportedConstructError
from .shell_lexer import Comment, Substitution, VariableRef


class ConstructKind(Enum):
    """Constructs the emitter asks the table to render"""
    LITERAL_QUOTE = 'literal quote'
    EXPANDABLE_QUOTE = 'expandable quote'
    ESCAPE = 'escape'
    VARIABLE = 'variable'
    SPECIAL_PARAMETER = 'special parameter'
    PARAMETER_EXPANSION = 'parameter expansion'
    COMMAND_SUBSTITUTION = 'command substitution'
    ARITHMETIC = 'arithmetic expansion'
    HEREDOC_LITERAL = 'literal here-doc'
    HEREDOC_EXPANDABLE = 'expandable here-doc'
    COMMENT = 'comment'
    COMMAND_SEPARATOR = 'command separator'


@dataclass(frozen=True)
class RenderRule:
    """
    One table entry.

    render signatures by kind:
        LITERAL_QUOTE          render(text) -> quoted text
        EXPANDABLE_QUOTE       render(inner) -> inner wrapped in quotes
        ESCAPE                 render(char) -> escaped char or None
        VARIABLE               render(ref, quoted, next_text) -> str
        SPECIAL_PARAMETER      render(meaning, position, quoted) -> str
        PARAMETER_EXPANSION    render(ref, quoted) -> str
        COMMAND_SUBSTITUTION   render(substitution, quoted) -> str
        ARITHMETIC             render(substitution, quoted) -> str
        HEREDOC_*              render(body, delimiter) -> (inline, deferred)
        COMMENT                render(comment, at_command_start) -> str
        COMMAND_SEPARATOR      render(op) -> str

    escape is set for quote rules: text -> text safe inside the quotes.
    """
    kind: ConstructKind
    dialect: str
    render: Callable[..., Any]
    description: str = ''
    escape: Optional[Callable[[str], str]] = None


# ============================================================================
# SPECIAL PARAMETERS
# ============================================================================
# Shell-specific names with a shared meaning, keyed by source family.

SPECIAL_PARAMETERS = {
    'posix': {
        '?': 'exit_status', '@': 'all_args', '*': 'all_args', '$': 'pid',
        '!': 'last_background_pid', '#': 'arg_count', '0': 'script_name',
    },
    'fish': {
        'status': 'exit_status', 'argv': 'all_args', 'fish_pid': 'pid',
        'last_pid': 'last_background_pid',
    },
    'powershell': {
        'lastexitcode': 'exit_status', 'args': 'all_args', 'pid': 'pid',
        'pscommandpath': 'script_name',
    },
    'cmd': {
        'errorlevel': 'exit_status', '*': 'all_args', '0': 'script_name',
    },
}


def special_parameter_meaning(ref: VariableRef) -> Optional[Tuple[str, int]]:
    """
    Classify a variable as a special parameter of its source dialect.

    Returns (meaning, position) where position is the 1-based argument
    number for 'positional' and 0 otherwise, or None for ordinary variables.
    """
    if ref.expression is not None or ref.scope is not None:
        return None
    family = get_dialect(ref.source).family
    name = ref.name

    if family in ('posix', 'cmd') and name.isdigit() and name != '0':
        return 'positional', int(name)
    if family == 'fish' and name == 'argv' and ref.index and ref.index.isdigit():
        return 'positional', int(ref.index)
    if family == 'powershell' and name.lower() == 'args' and ref.index and ref.index.isdigit():
        return 'positional', int(ref.index) + 1
    if ref.index is not None:
        return None

    key = name.lower() if family in ('powershell', 'cmd') else name
    meaning = SPECIAL_PARAMETERS[family].get(key)
    return (meaning, 0) if meaning else None


def _special_table(dialect: str, names: Dict[str, str],
                   positional: Callable[[int, bool], str],
                   quoted_names: Optional[Dict[str, str]] = None) -> Callable[..., str]:
    def render(meaning: str, position: int, quoted: bool) -> str:
        if meaning == 'positional':
            return positional(position, quoted)
        if quoted and quoted_names and meaning in quoted_names:
            return quoted_names[meaning]
        if meaning not in names:
            raise UnsupportedConstructError(f"special parameter '{meaning}'", dialect)
        return names[meaning]
    return render


def _posix_positional(position: int, quoted: bool) -> str:
    return f"${position}" if position < 10 else f"${{{position}}}"


def _fish_positional(position: int, quoted: bool) -> str:
    return f"$argv[{position}]"


def _powershell_positional(position: int, quoted: bool) -> str:
    if quoted:
        return f"$($args[{position - 1}])"
    return f"$args[{position - 1}]"


def _cmd_positional(position: int, quoted: bool) -> str:
    if position > 9:
        raise UnsupportedConstructError(f"positional parameter {position}", 'cmd',
                                        'only %1 to %9 are addressable')
    return f"%{position}"


_POSIX_SPECIALS = {
    'exit_status': '$?', 'all_args': '$@', 'pid': '$$',
    'last_background_pid': '$!', 'arg_count': '$#', 'script_name': '$0',
}


# ============================================================================
# QUOTING AND ESCAPING
# ============================================================================

_IDENT_CHAR = re.compile(r'[A-Za-z0-9_]')

_CONTROL_CODES = {
    '\a': 'a', '\b': 'b', '\x1b': 'e', '\f': 'f',
    '\n': 'n', '\r': 'r', '\t': 't', '\v': 'v',
}

_PS_SINGLE_QUOTES = "'‘’‚‛"
_PS_DOUBLE_QUOTES = '"“”„'


def _has_control(text: str) -> bool:
    return any(not c.isprintable() and c not in "\n\t" and c not in PLACEHOLDER_CHARS
               for c in text)


def _posix_literal_escape(text: str) -> str:
    return text.replace("'", "'\\''")


def _posix_ansi_c(text: str) -> str:
    chars = []
    for char in text:
        if char in ('\\', "'"):
            chars.append('\\' + char)
        elif char in _CONTROL_CODES:
            chars.append('\\' + _CONTROL_CODES[char])
        elif not char.isprintable() and char not in PLACEHOLDER_CHARS:
            chars.append(f"\\x{ord(char):02x}" if ord(char) < 0x100 else f"\\u{ord(char):04x}")
        else:
            chars.append(char)
    return "$'" + ''.join(chars) + "'"


def _posix_literal(text: str) -> str:
    if _has_control(text):
        return _posix_ansi_c(text)
    return "'" + _posix_literal_escape(text) + "'"


def _posix_expandable_escape(text: str) -> str:
    return re.sub(r'([\\"$`])', r'\\\1', text)


def _posix_escape(char: str) -> Optional[str]:
    if char == '\n' or not char.isprintable():
        return None
    return '\\' + char


def _fish_literal_escape(text: str) -> str:
    return text.replace('\\', '\\\\').replace("'", "\\'")


def _fish_literal(text: str) -> str:
    return "'" + _fish_literal_escape(text) + "'"


def _fish_expandable_escape(text: str) -> str:
    return re.sub(r'([\\"$])', r'\\\1', text)


def _fish_escape(char: str) -> Optional[str]:
    if char in _CONTROL_CODES:
        return '\\' + _CONTROL_CODES[char]
    if not char.isprintable():
        return None
    return '\\' + char


def _powershell_literal_escape(text: str) -> str:
    return ''.join(c * 2 if c in _PS_SINGLE_QUOTES else c for c in text)


def _powershell_literal(text: str) -> str:
    return "'" + _powershell_literal_escape(text) + "'"


def _powershell_expandable_escape(text: str) -> str:
    chars = []
    for char in text:
        if char in '`$' or char in _PS_DOUBLE_QUOTES:
            chars.append('`' + char)
        elif char == '\0':
            chars.append('`0')
        elif char in _CONTROL_CODES and char not in '\n\t':
            chars.append('`' + _CONTROL_CODES[char])
        else:
            chars.append(char)
    return ''.join(chars)


def _powershell_escape(char: str) -> Optional[str]:
    if char == '\0':
        return '`0'
    if char in _CONTROL_CODES:
        return '`' + _CONTROL_CODES[char]
    if not char.isprintable():
        return None
    return '`' + char


def _cmd_expandable_escape(text: str) -> str:
    """
    Escape text for cmd "...".

    Output targets batch-file (.bat/.cmd) context, where %% is one percent.
    At an interactive prompt %% stays two characters.
    """
    if '\n' in text or '\r' in text:
        raise UnsupportedConstructError('newline inside a quoted string', 'cmd')
    return text.replace('"', '""').replace('%', '%%')


def _cmd_escape(char: str) -> Optional[str]:
    """Caret escape; % doubles as in a batch file"""
    if char == '%':
        return '%%'
    if char in '^&|<>()':
        return '^' + char
    return None


def _wrap(open_quote: str, close_quote: str) -> Callable[[str], str]:
    def render(inner: str) -> str:
        return open_quote + inner + close_quote
    return render


# ============================================================================
# VARIABLES
# ============================================================================

def _continues_name(next_text: str) -> bool:
    return bool(next_text) and bool(_IDENT_CHAR.match(next_text[0]))


def _render_posix_variable(ref: VariableRef, quoted: bool, next_text: str = '') -> str:
    name = ref.name
    if ref.index is not None:
        return f"${{{name}[{ref.index}]}}"
    if len(name) == 1 and name in '@*#?$!-':
        return '$' + name
    if name.isdigit():
        return f"${name}" if len(name) == 1 else f"${{{name}}}"
    if not re.fullmatch(r'[A-Za-z_][A-Za-z0-9_]*', name):
        raise UnsupportedConstructError(f"variable name {name!r}", 'bash/zsh')
    if ref.braced or _continues_name(next_text):
        return f"${{{name}}}"
    return '$' + name


def _render_fish_variable(ref: VariableRef, quoted: bool, next_text: str = '') -> str:
    if not re.fullmatch(r'[A-Za-z0-9_]+', ref.name):
        raise UnsupportedConstructError(f"variable name {ref.name!r}", 'fish')
    text = '$' + ref.name
    if ref.index is not None:
        text += f"[{ref.index}]"
    if _continues_name(next_text) or (next_text[:1] == '[' and ref.index is None):
        # fish has no ${name}; end the name by closing the token piece
        return text + '""' if quoted else '{' + text + '}'
    return text


def _render_powershell_variable(ref: VariableRef, quoted: bool, next_text: str = '') -> str:
    body = f"{ref.scope}:{ref.name}" if ref.scope else ref.name
    simple = re.fullmatch(r'[A-Za-z0-9_]+', ref.name) or ref.name in ('?', '$', '^')
    if not simple or _continues_name(next_text) or next_text[:1] == ':':
        text = '${' + body.replace('}', '`}') + '}'
    else:
        text = '$' + body
    if ref.index is not None:
        if quoted:
            return f"$({text}[{ref.index}])"
        return f"{text}[{ref.index}]"
    return text


def _render_cmd_variable(ref: VariableRef, quoted: bool, next_text: str = '') -> str:
    if ref.index is not None:
        raise UnsupportedConstructError('indexed variable', 'cmd', ref.name)
    if '%' in ref.name or not ref.name.strip():
        raise UnsupportedConstructError(f"variable name {ref.name!r}", 'cmd')
    if ref.name == '*' or ref.name.isdigit() or ref.name.startswith('~'):
        return '%' + ref.name
    return f"%{ref.name}%"


def _render_posix_expression(ref: VariableRef, quoted: bool) -> str:
    return '${' + ref.expression + '}'


def _render_cmd_expression(ref: VariableRef, quoted: bool) -> str:
    return '%' + ref.expression + '%'


# ============================================================================
# SUBSTITUTIONS
# ============================================================================

def _render_posix_substitution(sub: Substitution, quoted: bool) -> str:
    if sub.style == 'backtick':
        return f"`{sub.body}`"
    return f"$({sub.body})"


def _render_fish_substitution(sub: Substitution, quoted: bool) -> str:
    if sub.style == 'fish' and not quoted:
        return f"({sub.body})"
    return f"$({sub.body})"


def _render_powershell_substitution(sub: Substitution, quoted: bool) -> str:
    if sub.style == 'array' and not quoted:
        return f"@({sub.body})"
    return f"$({sub.body})"


def _render_posix_arithmetic(sub: Substitution, quoted: bool) -> str:
    return f"$(({sub.body}))"


# ============================================================================
# HERE-DOCS
# ============================================================================

def _unique_delimiter(body: str, delimiter: str) -> str:
    lines = body.split('\n')
    while delimiter in lines:
        delimiter += '_'
    return delimiter


def _posix_heredoc_literal(body: str, delimiter: Optional[str]) -> Tuple[str, str]:
    delimiter = _unique_delimiter(body, delimiter or 'EOF')
    return f"<<'{delimiter}'", body + delimiter


def _posix_heredoc_expandable(body: str, delimiter: Optional[str]) -> Tuple[str, str]:
    delimiter = _unique_delimiter(body, delimiter or 'EOF')
    return f"<<{delimiter}", body + delimiter


def _here_string(quote: str) -> Callable[[str, Optional[str]], Tuple[str, str]]:
    closer = quote + '@'

    def render(body: str, delimiter: Optional[str] = None) -> Tuple[str, str]:
        if any(line.startswith(closer) for line in body.split('\n')):
            raise UnsupportedConstructError('here-string', 'powershell',
                                            f"body line starts with {closer}")
        return f"@{quote}\n{body}{closer}", ''
    return render


# ============================================================================
# COMMENTS AND SEPARATORS
# ============================================================================

def _render_hash_comment(comment: Comment, at_command_start: bool) -> str:
    return '#' + comment.text.replace('\n', '\n#')


def _render_powershell_comment(comment: Comment, at_command_start: bool) -> str:
    if comment.block or '\n' in comment.text:
        return f"<#{comment.text}#>"
    return '#' + comment.text


def _render_cmd_comment(comment: Comment, at_command_start: bool) -> str:
    if comment.marker == '::':
        rendered = '::' + comment.text.replace('\n', '\n::')
    else:
        text = comment.text
        if text[:1] not in ('', ' ', '\t'):
            text = ' ' + text
        rendered = 'REM' + text.replace('\n', '\nREM ')
    # REM only starts a comment in command position
    return rendered if at_command_start else '& ' + rendered


def _separator_map(dialect: str, mapping: Dict[str, Optional[str]]) -> Callable[[str], str]:
    def render(op: str) -> str:
        if op not in mapping:
            return op
        if mapping[op] is None:
            raise UnsupportedConstructError(f"operator {op!r}", dialect)
        return mapping[op]
    return render


# ============================================================================
# TABLE
# ============================================================================

def _posix_rules(name: str) -> Dict[Tuple[ConstructKind, str], RenderRule]:
    return {
        (ConstructKind.LITERAL_QUOTE, name): RenderRule(
            ConstructKind.LITERAL_QUOTE, name, _posix_literal,
            "'...' with '\\'' for embedded quotes, $'...' for control characters",
            _posix_literal_escape),
        (ConstructKind.EXPANDABLE_QUOTE, name): RenderRule(
            ConstructKind.EXPANDABLE_QUOTE, name, _wrap('"', '"'),
            '"..." with \\ before \\ " $ `', _posix_expandable_escape),
        (ConstructKind.ESCAPE, name): RenderRule(
            ConstructKind.ESCAPE, name, _posix_escape, 'backslash escape'),
        (ConstructKind.VARIABLE, name): RenderRule(
            ConstructKind.VARIABLE, name, _render_posix_variable, '$name or ${name}'),
        (ConstructKind.SPECIAL_PARAMETER, name): RenderRule(
            ConstructKind.SPECIAL_PARAMETER, name,
            _special_table(name, _POSIX_SPECIALS, _posix_positional), '$? $@ $$ $1'),
        (ConstructKind.COMMAND_SUBSTITUTION, name): RenderRule(
            ConstructKind.COMMAND_SUBSTITUTION, name, _render_posix_substitution, '$(...)'),
        (ConstructKind.ARITHMETIC, name): RenderRule(
            ConstructKind.ARITHMETIC, name, _render_posix_arithmetic, '$((...))'),
        (ConstructKind.HEREDOC_LITERAL, name): RenderRule(
            ConstructKind.HEREDOC_LITERAL, name, _posix_heredoc_literal, "<<'DELIM'"),
        (ConstructKind.HEREDOC_EXPANDABLE, name): RenderRule(
            ConstructKind.HEREDOC_EXPANDABLE, name, _posix_heredoc_expandable, '<<DELIM'),
        (ConstructKind.COMMENT, name): RenderRule(
            ConstructKind.COMMENT, name, _render_hash_comment, '# comment'),
        (ConstructKind.COMMAND_SEPARATOR, name): RenderRule(
            ConstructKind.COMMAND_SEPARATOR, name, _separator_map(name, {}), 'unchanged'),
    }


DEFAULT_RULES: Dict[Tuple[ConstructKind, str], RenderRule] = {}
DEFAULT_RULES.update(_posix_rules('bash'))
DEFAULT_RULES.update(_posix_rules('zsh'))

DEFAULT_RULES.update({
    (ConstructKind.LITERAL_QUOTE, 'fish'): RenderRule(
        ConstructKind.LITERAL_QUOTE, 'fish', _fish_literal,
        "'...' with \\' and \\\\", _fish_literal_escape),
    (ConstructKind.EXPANDABLE_QUOTE, 'fish'): RenderRule(
        ConstructKind.EXPANDABLE_QUOTE, 'fish', _wrap('"', '"'),
        '"..." with \\ before \\ " $', _fish_expandable_escape),
    (ConstructKind.ESCAPE, 'fish'): RenderRule(
        ConstructKind.ESCAPE, 'fish', _fish_escape, 'backslash escape, \\n for newline'),
    (ConstructKind.VARIABLE, 'fish'): RenderRule(
        ConstructKind.VARIABLE, 'fish', _render_fish_variable, '$name, $name[i]'),
    (ConstructKind.SPECIAL_PARAMETER, 'fish'): RenderRule(
        ConstructKind.SPECIAL_PARAMETER, 'fish',
        _special_table('fish', {
            'exit_status': '$status', 'all_args': '$argv', 'pid': '$fish_pid',
            'last_background_pid': '$last_pid', 'arg_count': '(count $argv)',
        }, _fish_positional, quoted_names={'arg_count': '$(count $argv)'}),
        '$status $argv $fish_pid $argv[N]'),
    (ConstructKind.COMMAND_SUBSTITUTION, 'fish'): RenderRule(
        ConstructKind.COMMAND_SUBSTITUTION, 'fish', _render_fish_substitution, '(...) or $(...)'),
    (ConstructKind.COMMENT, 'fish'): RenderRule(
        ConstructKind.COMMENT, 'fish', _render_hash_comment, '# comment'),
    (ConstructKind.COMMAND_SEPARATOR, 'fish'): RenderRule(
        ConstructKind.COMMAND_SEPARATOR, 'fish',
        _separator_map('fish', {';;': None, '|&': '&|'}), '|& becomes &|'),
})

DEFAULT_RULES.update({
    (ConstructKind.LITERAL_QUOTE, 'powershell'): RenderRule(
        ConstructKind.LITERAL_QUOTE, 'powershell', _powershell_literal,
        "'...' with doubled ''", _powershell_literal_escape),
    (ConstructKind.EXPANDABLE_QUOTE, 'powershell'): RenderRule(
        ConstructKind.EXPANDABLE_QUOTE, 'powershell', _wrap('"', '"'),
        '"..." with ` before ` " $', _powershell_expandable_escape),
    (ConstructKind.ESCAPE, 'powershell'): RenderRule(
        ConstructKind.ESCAPE, 'powershell', _powershell_escape, 'backtick escape'),
    (ConstructKind.VARIABLE, 'powershell'): RenderRule(
        ConstructKind.VARIABLE, 'powershell', _render_powershell_variable,
        '$name, ${name}, $env:NAME'),
    (ConstructKind.SPECIAL_PARAMETER, 'powershell'): RenderRule(
        ConstructKind.SPECIAL_PARAMETER, 'powershell',
        _special_table('powershell', {
            'exit_status': '$LASTEXITCODE', 'all_args': '$args', 'pid': '$PID',
            'arg_count': '$($args.Count)', 'script_name': '$PSCommandPath',
        }, _powershell_positional),
        '$LASTEXITCODE $args $PID $args[N-1]'),
    (ConstructKind.COMMAND_SUBSTITUTION, 'powershell'): RenderRule(
        ConstructKind.COMMAND_SUBSTITUTION, 'powershell', _render_powershell_substitution,
        '$(...) subexpression'),
    (ConstructKind.HEREDOC_LITERAL, 'powershell'): RenderRule(
        ConstructKind.HEREDOC_LITERAL, 'powershell', _here_string("'"), "@' ... '@"),
    (ConstructKind.HEREDOC_EXPANDABLE, 'powershell'): RenderRule(
        ConstructKind.HEREDOC_EXPANDABLE, 'powershell', _here_string('"'), '@" ... "@'),
    (ConstructKind.COMMENT, 'powershell'): RenderRule(
        ConstructKind.COMMENT, 'powershell', _render_powershell_comment, '# or <# #>'),
    (ConstructKind.COMMAND_SEPARATOR, 'powershell'): RenderRule(
        ConstructKind.COMMAND_SEPARATOR, 'powershell',
        _separator_map('powershell', {';;': None, '|&': None}), 'unchanged'),
})

DEFAULT_RULES.update({
    (ConstructKind.EXPANDABLE_QUOTE, 'cmd'): RenderRule(
        ConstructKind.EXPANDABLE_QUOTE, 'cmd', _wrap('"', '"'),
        '"..." with "" and %%', _cmd_expandable_escape),
    (ConstructKind.ESCAPE, 'cmd'): RenderRule(
        ConstructKind.ESCAPE, 'cmd', _cmd_escape, '^ before & | < > ( ) ^, %% for %'),
    (ConstructKind.VARIABLE, 'cmd'): RenderRule(
        ConstructKind.VARIABLE, 'cmd', _render_cmd_variable, '%NAME%, %1, %*'),
    (ConstructKind.SPECIAL_PARAMETER, 'cmd'): RenderRule(
        ConstructKind.SPECIAL_PARAMETER, 'cmd',
        _special_table('cmd', {
            'exit_status': '%ERRORLEVEL%', 'all_args': '%*', 'script_name': '%0',
        }, _cmd_positional),
        '%ERRORLEVEL% %* %N'),
    (ConstructKind.COMMENT, 'cmd'): RenderRule(
        ConstructKind.COMMENT, 'cmd', _render_cmd_comment, 'REM comment'),
    (ConstructKind.COMMAND_SEPARATOR, 'cmd'): RenderRule(
        ConstructKind.COMMAND_SEPARATOR, 'cmd',
        _separator_map('cmd', {';': '&', ';;': None, '|&': None}), '; becomes &'),
})

# Parameter expansions (${x:-y}, %x:~0,5%) only survive within their own
# syntax family.
PAIR_OVERRIDES: Dict[Tuple[ConstructKind, str, str], RenderRule] = {
    (ConstructKind.PARAMETER_EXPANSION, source, target): RenderRule(
        ConstructKind.PARAMETER_EXPANSION, target, _render_posix_expression, '${expression}')
    for source in ('bash', 'zsh') for target in ('bash', 'zsh')
}
PAIR_OVERRIDES[(ConstructKind.PARAMETER_EXPANSION, 'cmd', 'cmd')] = RenderRule(
    ConstructKind.PARAMETER_EXPANSION, 'cmd', _render_cmd_expression, '%expression%')


# ============================================================================
# PUBLIC API
# ============================================================================

def lookup(kind: ConstructKind, source: Union[str, Dialect],
           target: Union[str, Dialect]) -> RenderRule:
    """
    Find the rule rendering `kind` from source into target.

    Raises:
        UnsupportedConstructError: target has no rendering for kind
    """
    source_name = get_dialect(source).name
    target_name = get_dialect(target).name
    rule = PAIR_OVERRIDES.get((kind, source_name, target_name))
    if rule is None:
        rule = DEFAULT_RULES.get((kind, target_name))
    if rule is None:
        raise UnsupportedConstructError(kind.value, target_name)
    return rule


def has_rule(kind: ConstructKind, source: Union[str, Dialect],
             target: Union[str, Dialect]) -> bool:
    try:
        lookup(kind, source, target)
    except UnsupportedConstructError:
        return False
    return True
