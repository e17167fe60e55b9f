"""
Shell Lexer - dialect-parameterized tokenization into quoting segments

OBJECTIVE: Split a command string into Segments that record HOW each piece
was quoted, so it can be re-quoted for another shell without changing the
argument values a program receives.

============================================================================
USAGE
============================================================================

    >>> from shell_transpiler.shell_lexer import tokenize
    >>> tokenize('echo "Value: $var"', 'bash')
    [RawUnquoted('echo'), Whitespace(' '), Expandable('Value: $var')]

============================================================================
SEGMENT TYPES
============================================================================

    Literal          - '...' (no expansion); also $'...' and here-doc bodies
    Expandable       - "..." with marked VariableRef/Substitution parts
    VariableRef      - $name, ${name}, $env:NAME, %NAME%
    EscapeSequence   - one escaped character outside quotes
    RawUnquoted      - bare word text
    Substitution     - $(...), `...`, $((...)), fish (...), PowerShell @(...)
    Operator         - | && || ; & redirects and newline
    Whitespace       - spaces and tabs between words
    Comment          - # ..., <# ... #>, REM ..., :: ...

============================================================================
LIMITATIONS
============================================================================

- Expansions are marked, never evaluated
- Control structures are not recognized (if/for/while are plain words)
- PowerShell typographic quotes are treated as ordinary characters on input
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .dialect_registry import Dialect, get_dialect
from .errors import UnterminatedHeredocError, UnterminatedQuoteError


# ============================================================================
# SEGMENT TYPES
# ============================================================================

@dataclass(frozen=True)
class Segment:
    """Base class for segments. pos is the character index in the source."""
    pos: int


@dataclass(frozen=True)
class HeredocMarker:
    """Here-doc metadata attached to a body segment"""
    delimiter: str
    strip_tabs: bool = False


@dataclass(frozen=True)
class Literal(Segment):
    """
    Text taken verbatim, no expansion.

    quote is the opening delimiter that produced it ("'", "$'" or '' for
    text pieces inside an Expandable).
    """
    text: str
    quote: str = "'"
    heredoc: Optional[HeredocMarker] = None

    def __repr__(self):
        return f"Literal({self.text!r})"


@dataclass(frozen=True)
class VariableRef(Segment):
    """
    Reference to a variable, kept by name.

    Example: $HOME, ${name}, $env:PATH (scope='env'), $argv[1] (index='1'),
    ${x:-default} (expression='x:-default')
    """
    name: str
    source: str
    braced: bool = False
    scope: Optional[str] = None
    index: Optional[str] = None
    expression: Optional[str] = None

    def __repr__(self):
        return f"VariableRef({self.name!r})"


@dataclass(frozen=True)
class EscapeSequence(Segment):
    """Escaped character. code is what followed the escape char, value the decoded char."""
    code: str
    value: str

    def __repr__(self):
        return f"EscapeSequence({self.code!r})"


@dataclass(frozen=True)
class Substitution(Segment):
    """
    Embedded command or arithmetic expansion, body kept as opaque text.

    style: 'command' ($(...)), 'backtick', 'arithmetic' ($((...))),
    'fish' (fish (...)), 'array' (PowerShell @(...))
    """
    body: str
    style: str = 'command'

    def __repr__(self):
        return f"Substitution({self.style}:{self.body!r})"


@dataclass(frozen=True)
class Expandable(Segment):
    """Double-quoted (or here-doc) text with marked expansion parts"""
    text: str
    parts: Tuple[Segment, ...] = ()
    quote: str = '"'
    heredoc: Optional[HeredocMarker] = None

    def __repr__(self):
        return f"Expandable({self.text!r})"


@dataclass(frozen=True)
class RawUnquoted(Segment):
    """Bare word text"""
    text: str

    def __repr__(self):
        return f"RawUnquoted({self.text!r})"


@dataclass(frozen=True)
class Operator(Segment):
    """Control or redirect operator, or a newline"""
    op: str

    def __repr__(self):
        return f"Operator({self.op!r})"


@dataclass(frozen=True)
class Whitespace(Segment):
    text: str

    def __repr__(self):
        return f"Whitespace({self.text!r})"


@dataclass(frozen=True)
class Comment(Segment):
    """Comment text without its marker. block is True for PowerShell <# #>."""
    text: str
    marker: str = '#'
    block: bool = False

    def __repr__(self):
        return f"Comment({self.text!r})"


WORD_PART_TYPES = (Literal, Expandable, VariableRef, EscapeSequence, RawUnquoted, Substitution)


def is_word_part(segment: Segment) -> bool:
    """Check if segment is part of a word (here-doc bodies are not)"""
    if isinstance(segment, (Literal, Expandable)) and segment.heredoc is not None:
        return False
    return isinstance(segment, WORD_PART_TYPES)


def is_heredoc(segment: Segment) -> bool:
    return isinstance(segment, (Literal, Expandable)) and segment.heredoc is not None


# ============================================================================
# LEXER
# ============================================================================

_IDENT_START = re.compile(r'[A-Za-z_]')
_IDENT = re.compile(r'[A-Za-z0-9_]*')
_FISH_NAME = re.compile(r'[A-Za-z0-9_]+')
_FD_REDIRECT = re.compile(r'\d+(?:>>|>&\d+|>&-|>|<&\d+|<)')
_POSIX_BRACED = re.compile(
    r'^(?P<name>[A-Za-z_][A-Za-z0-9_]*|[0-9]+|[@*#?$!-])'
    r'(?:\[(?P<index>[^\]]*)\])?$'
)
_POSIX_EXPRESSION_NAME = re.compile(r'^[#!]?([A-Za-z_][A-Za-z0-9_]*|[0-9]+|[@*#?$!-])')
_CMD_VARIABLE = re.compile(r'%([^%\s]+)%')
_CMD_POSITIONAL = re.compile(r'%(~[A-Za-z]*)?([0-9*])')

_POSIX_SPECIAL = '@*#?$!-'
_POWERSHELL_SPECIAL = '?$^'

# ANSI-C $'...' single-character escapes
_ANSI_C_ESCAPES = {
    'a': '\a', 'b': '\b', 'e': '\x1b', 'E': '\x1b', 'f': '\f', 'n': '\n',
    'r': '\r', 't': '\t', 'v': '\v', '\\': '\\', "'": "'", '"': '"', '?': '?',
}


def _is_scalar_value(code_point: int) -> bool:
    """Encodable code point: at most 0x10FFFF and not a surrogate"""
    return code_point <= 0x10FFFF and not 0xD800 <= code_point <= 0xDFFF


class ShellLexer:
    """
    Lexer for one command string in one dialect.

    Handles:
    - Literal and expandable quotes with per-dialect escapes
    - Escapes and line continuations outside quotes
    - Variables, substitutions, comments, operators
    - bash/zsh here-docs and PowerShell here-strings

    The quote stack never holds more than one level: an open quote is only
    ever closed by its own delimiter.
    """

    def __init__(self, text: str, dialect: Union[str, Dialect], logger=None):
        self.text = text
        self.dialect = get_dialect(dialect)
        self.logger = logger or logging.getLogger('ShellLexer')
        self.pos = 0
        self.length = len(text)
        self.segments: List[Optional[Segment]] = []
        self.quote_stack: List[Tuple[str, int]] = []
        # (segment index, delimiter, literal, strip_tabs, opener position)
        self.pending_heredocs: List[Tuple[int, str, bool, bool, int]] = []
        self.in_word = False
        self.at_command_start = True

    def tokenize(self) -> List[Segment]:
        """Tokenize input into list of segments"""
        while self.pos < self.length:
            char = self._current()

            if char in ' \t\r':
                self._read_whitespace()
                continue

            if char == '\n':
                self._append(Operator(self.pos, '\n'))
                self.pos += 1
                self.in_word = False
                self.at_command_start = True
                self._read_pending_heredocs()
                continue

            if not self.in_word and self._try_comment():
                continue

            if self._try_heredoc():
                continue

            if self._try_operator():
                continue

            segment = self._read_word_part()
            self.in_word = True
            self.at_command_start = False
            if segment is not None:
                self._append(segment)

        if self.pending_heredocs:
            _, delimiter, _, _, start = self.pending_heredocs[0]
            raise UnterminatedHeredocError(delimiter, start, self.text)

        self.logger.debug(f"Tokenized {self.length} chars into {len(self.segments)} "
                          f"segments ({self.dialect.name})")
        return list(self.segments)

    # ------------------------------------------------------------------
    # Cursor helpers
    # ------------------------------------------------------------------

    def _current(self) -> str:
        """Get current character"""
        if self.pos >= self.length:
            return ''
        return self.text[self.pos]

    def _peek(self, offset: int = 1) -> str:
        """Peek ahead"""
        pos = self.pos + offset
        if pos >= self.length:
            return ''
        return self.text[pos]

    def _append(self, segment: Segment):
        self.segments.append(segment)

    def _open_quote(self, delimiter: str, start: int):
        assert not self.quote_stack, "quote stack holds at most one level"
        self.quote_stack.append((delimiter, start))

    def _close_quote(self):
        self.quote_stack.pop()

    def _unterminated(self) -> UnterminatedQuoteError:
        delimiter, start = self.quote_stack[-1]
        return UnterminatedQuoteError(delimiter, start, self.text)

    # ------------------------------------------------------------------
    # Top-level constructs
    # ------------------------------------------------------------------

    def _read_whitespace(self):
        start = self.pos
        while self._current() in (' ', '\t', '\r') and self.pos < self.length:
            self.pos += 1
        self._append(Whitespace(start, self.text[start:self.pos]))
        self.in_word = False

    def _try_comment(self) -> bool:
        """Try to read a comment at word start"""
        family = self.dialect.family
        start = self.pos

        if family == 'cmd':
            if not self.at_command_start:
                return False
            if self.text.startswith('::', self.pos):
                marker = '::'
            elif (self.text[self.pos:self.pos + 3].lower() == 'rem'
                  and self._peek(3) in ('', ' ', '\t', '\n', '\r')):
                marker = 'REM'
            else:
                return False
            self.pos += len(marker)
            end = self._line_end()
            self._append(Comment(start, self.text[self.pos:end], marker=marker))
            self.pos = end
            return True

        if family == 'powershell' and self.text.startswith('<#', self.pos):
            self._open_quote('<#', start)
            end = self.text.find('#>', self.pos + 2)
            if end == -1:
                raise self._unterminated()
            self._close_quote()
            self._append(Comment(start, self.text[self.pos + 2:end], marker='<#', block=True))
            self.pos = end + 2
            return True

        if self._current() != '#':
            return False
        end = self._line_end()
        self._append(Comment(start, self.text[self.pos + 1:end]))
        self.pos = end
        return True

    def _line_end(self) -> int:
        end = self.text.find('\n', self.pos)
        return self.length if end == -1 else end

    def _try_operator(self) -> bool:
        """Try to match operator (longest first, fd redirects at word start)"""
        if not self.in_word:
            match = _FD_REDIRECT.match(self.text, self.pos)
            if match:
                self._append(Operator(self.pos, match.group(0)))
                self.pos = match.end()
                self._after_operator(match.group(0))
                return True

        for op in self.dialect.operators:
            if self.text.startswith(op, self.pos):
                self._append(Operator(self.pos, op))
                self.pos += len(op)
                self._after_operator(op)
                return True
        return False

    def _after_operator(self, op: str):
        self.in_word = False
        self.at_command_start = op in self.dialect.command_separators

    # ------------------------------------------------------------------
    # Here-docs
    # ------------------------------------------------------------------

    def _try_heredoc(self) -> bool:
        """Try to read a bash/zsh here-doc opener (body comes after newline)"""
        if self.dialect.family != 'posix':
            return False
        if not self.text.startswith('<<', self.pos) or self._peek(2) == '<':
            return False

        start = self.pos
        pos = self.pos + 2
        strip_tabs = False
        if pos < self.length and self.text[pos] == '-':
            strip_tabs = True
            pos += 1
        while pos < self.length and self.text[pos] in ' \t':
            pos += 1

        delimiter, literal, end = self._read_heredoc_delimiter(pos)
        if not delimiter:
            return False

        self.pending_heredocs.append((len(self.segments), delimiter, literal, strip_tabs, start))
        self.segments.append(None)
        self.pos = end
        self.in_word = False
        self.at_command_start = False
        self.logger.debug(f"Here-doc opener {delimiter!r} at {start} (literal={literal})")
        return True

    def _read_heredoc_delimiter(self, pos: int) -> Tuple[str, bool, int]:
        """
        Read the delimiter word after << with its quotes removed.

        Any quoting in the word makes the body literal.
        """
        chars = []
        literal = False
        while pos < self.length:
            char = self.text[pos]
            if char in ' \t\n;&|<>()':
                break
            if char in ('"', "'"):
                close = self.text.find(char, pos + 1)
                if close == -1:
                    raise UnterminatedQuoteError(char, pos, self.text)
                chars.append(self.text[pos + 1:close])
                literal = True
                pos = close + 1
                continue
            if char == '\\' and pos + 1 < self.length:
                chars.append(self.text[pos + 1])
                literal = True
                pos += 2
                continue
            chars.append(char)
            pos += 1
        return ''.join(chars), literal, pos

    def _read_pending_heredocs(self):
        """Consume the bodies of every here-doc opened on the previous line"""
        pending, self.pending_heredocs = self.pending_heredocs, []
        for index, delimiter, literal, strip_tabs, start in pending:
            lines = []
            while True:
                if self.pos >= self.length:
                    raise UnterminatedHeredocError(delimiter, start, self.text)
                end = self._line_end()
                line = self.text[self.pos:end]
                self.pos = min(end + 1, self.length)
                if strip_tabs:
                    line = line.lstrip('\t')
                if line.rstrip('\r') == delimiter:
                    break
                lines.append(line)

            body = ''.join(line + '\n' for line in lines)
            marker = HeredocMarker(delimiter, strip_tabs)
            if literal:
                segment = Literal(start, body, quote='<<', heredoc=marker)
            else:
                segment = Expandable(start, body, (Literal(start, body, quote=''),),
                                     quote='<<', heredoc=marker)
            self.segments[index] = segment

    def _read_here_string(self) -> Optional[Segment]:
        """
        Read a PowerShell here-string: @' or @" at end of line, body lines,
        closing '@ or "@ at the start of a line.
        """
        start = self.pos
        quote = self._peek()
        line_end = self._line_end()
        if self.text[self.pos + 2:line_end].strip(' \t\r') or line_end >= self.length:
            return None

        closer = quote + '@'
        self.pos = line_end + 1
        lines = []
        while True:
            if self.pos >= self.length:
                raise UnterminatedHeredocError('@' + quote, start, self.text)
            if self.text.startswith(closer, self.pos):
                self.pos += 2
                break
            end = self._line_end()
            lines.append(self.text[self.pos:end].rstrip('\r'))
            self.pos = min(end + 1, self.length)

        body = ''.join(line + '\n' for line in lines)
        marker = HeredocMarker(closer)
        if quote == "'":
            return Literal(start, body, quote="@'", heredoc=marker)
        return Expandable(start, body, (Literal(start, body, quote=''),),
                          quote='@"', heredoc=marker)

    # ------------------------------------------------------------------
    # Word parts
    # ------------------------------------------------------------------

    def _read_word_part(self) -> Optional[Segment]:
        """
        Read one piece of a word.

        Returns None for a line continuation, which yields nothing.
        """
        dialect = self.dialect
        family = dialect.family
        char = self._current()
        next_char = self._peek()

        if family == 'posix' and char == '$' and next_char == "'":
            return self._read_ansi_c_quote()
        if family == 'posix' and char == '$' and next_char == '"':
            self.pos += 1
            return self._read_expandable_quote(prefix="$")
        if dialect.literal_quote and char == dialect.literal_quote[0]:
            return self._read_literal_quote()
        if char == dialect.expandable_quote[0]:
            return self._read_expandable_quote()
        if char == dialect.escape_char:
            return self._read_escape()
        if family == 'powershell' and char == '@' and not self.in_word:
            if next_char in ("'", '"'):
                segment = self._read_here_string()
                if segment is not None:
                    return segment
            if next_char == '(':
                start = self.pos
                body, end = self._scan_balanced(self.pos + 1, '@(')
                self.pos = end
                return Substitution(start, body, 'array')
        if family == 'posix' and char == '`':
            return self._read_backtick()
        if family == 'fish' and char == '(':
            start = self.pos
            body, end = self._scan_balanced(self.pos, '(')
            self.pos = end
            return Substitution(start, body, 'fish')
        if char == '$' and family != 'cmd':
            return self._read_variable(quoted=False)
        if family == 'cmd' and char == '%':
            return self._read_cmd_percent()
        return self._read_raw()

    def _read_raw(self) -> RawUnquoted:
        start = self.pos
        breaking = self.dialect.word_breaking_chars
        self.pos += 1
        while self.pos < self.length and self._current() not in breaking:
            self.pos += 1
        return RawUnquoted(start, self.text[start:self.pos])

    def _read_escape(self) -> Optional[Segment]:
        """Read escape char + exactly one character"""
        start = self.pos
        next_char = self._peek()

        if next_char == '':
            self.pos += 1
            return RawUnquoted(start, self.dialect.escape_char)

        if next_char == '\n':
            self.pos += 2
            return None
        if next_char == '\r' and self._peek(2) == '\n':
            self.pos += 3
            return None

        self.pos += 2
        value = self.dialect.escape_decodes.get(next_char, next_char)
        return EscapeSequence(start, next_char, value)

    def _read_literal_quote(self) -> Literal:
        """Read '...' with the dialect's literal-quote escapes"""
        start = self.pos
        open_quote, close_quote = self.dialect.literal_quote
        escape = self.dialect.escape_char
        self._open_quote(open_quote, start)
        self.pos += 1
        chars = []

        while self.pos < self.length:
            char = self._current()
            if char == close_quote:
                if self.dialect.literal_doubled_quote and self._peek() == close_quote:
                    chars.append(close_quote)
                    self.pos += 2
                    continue
                self.pos += 1
                self._close_quote()
                return Literal(start, ''.join(chars), quote=open_quote)
            if char == escape and self._peek() and self._peek() in self.dialect.literal_escapes:
                chars.append(self._peek())
                self.pos += 2
                continue
            chars.append(char)
            self.pos += 1

        raise self._unterminated()

    def _read_ansi_c_quote(self) -> Literal:
        """Read bash/zsh $'...' and decode its escapes"""
        start = self.pos
        self._open_quote("$'", start)
        self.pos += 2
        chars = []

        while self.pos < self.length:
            char = self._current()
            if char == "'":
                self.pos += 1
                self._close_quote()
                return Literal(start, ''.join(chars), quote="$'")
            if char != '\\':
                chars.append(char)
                self.pos += 1
                continue

            code = self._peek()
            if code in _ANSI_C_ESCAPES:
                chars.append(_ANSI_C_ESCAPES[code])
                self.pos += 2
            elif code in ('x', 'u', 'U'):
                width = {'x': 2, 'u': 4, 'U': 8}[code]
                match = re.match(r'[0-9A-Fa-f]{1,%d}' % width, self.text[self.pos + 2:])
                value = int(match.group(0), 16) if match else None
                if value is not None and _is_scalar_value(value):
                    chars.append(chr(value))
                    self.pos += 2 + match.end()
                elif match:
                    # not a Unicode scalar value: bash leaves the escape as written
                    chars.append(self.text[self.pos:self.pos + 2 + match.end()])
                    self.pos += 2 + match.end()
                else:
                    chars.append('\\' + code)
                    self.pos += 2
            elif code and code in '01234567':
                match = re.match(r'[0-7]{1,3}', self.text[self.pos + 1:])
                chars.append(chr(int(match.group(0), 8)))
                self.pos += 1 + match.end()
            elif code == 'c' and self._peek(2):
                chars.append(chr(ord(self._peek(2)) & 0x1f))
                self.pos += 3
            else:
                chars.append('\\')
                self.pos += 1

        raise self._unterminated()

    def _read_expandable_quote(self, prefix: str = '') -> Expandable:
        """Read "..." marking expansions and escapes, evaluating nothing"""
        dialect = self.dialect
        family = dialect.family
        start = self.pos
        open_quote, close_quote = dialect.expandable_quote
        escape = dialect.escape_char
        self._open_quote(open_quote, start)
        self.pos += 1
        body_start = self.pos
        parts: List[Segment] = []
        chars: List[str] = []
        chars_start = self.pos

        def flush():
            if chars:
                parts.append(Literal(chars_start, ''.join(chars), quote=''))
                chars.clear()

        while self.pos < self.length:
            char = self._current()

            if char == close_quote:
                if dialect.expandable_doubled_quote and self._peek() == close_quote:
                    if not chars:
                        chars_start = self.pos
                    chars.append(close_quote)
                    self.pos += 2
                    continue
                flush()
                text = self.text[body_start:self.pos]
                self.pos += 1
                self._close_quote()
                return Expandable(start, text, tuple(parts), quote=prefix + open_quote)

            if char == escape and family != 'cmd':
                next_char = self._peek()
                if family != 'powershell' and next_char == '\n':
                    self.pos += 2
                    continue
                if next_char and (dialect.expandable_escapes is None
                                  or next_char in dialect.expandable_escapes):
                    flush()
                    value = next_char
                    if family == 'powershell':
                        value = dialect.escape_decodes.get(next_char, next_char)
                    parts.append(EscapeSequence(self.pos, next_char, value))
                    self.pos += 2
                    chars_start = self.pos
                    continue

            if family == 'posix' and char == '`':
                flush()
                parts.append(self._read_backtick(nested_in_quote=True))
                chars_start = self.pos
                continue

            if char == '$' and family != 'cmd':
                segment = self._read_variable(quoted=True)
                if isinstance(segment, RawUnquoted):
                    if not chars:
                        chars_start = segment.pos
                    chars.append(segment.text)
                else:
                    flush()
                    parts.append(segment)
                    chars_start = self.pos
                continue

            if family == 'cmd' and char == '%':
                segment = self._read_cmd_percent()
                if isinstance(segment, VariableRef):
                    flush()
                    parts.append(segment)
                    chars_start = self.pos
                else:
                    if not chars:
                        chars_start = segment.pos
                    chars.append(segment.value if isinstance(segment, EscapeSequence)
                                 else segment.text)
                continue

            if not chars:
                chars_start = self.pos
            chars.append(char)
            self.pos += 1

        raise self._unterminated()

    def _read_backtick(self, nested_in_quote: bool = False) -> Substitution:
        """Read `...` command substitution (body kept verbatim)"""
        start = self.pos
        if not nested_in_quote:
            self._open_quote('`', start)
        pos = self.pos + 1
        while pos < self.length:
            char = self.text[pos]
            if char == '\\' and pos + 1 < self.length:
                pos += 2
                continue
            if char == '`':
                if not nested_in_quote:
                    self._close_quote()
                self.pos = pos + 1
                return Substitution(start, self.text[start + 1:pos], 'backtick')
            pos += 1
        raise UnterminatedQuoteError('`', start, self.text)

    def _scan_balanced(self, open_pos: int, opener: str) -> Tuple[str, int]:
        """
        Scan from the '(' at open_pos to its matching ')'.

        Quoted spans inside the body are skipped so parentheses in strings
        do not count. Returns (body, position after the closing paren).
        """
        start = open_pos if opener == '(' else open_pos - (len(opener) - 1)
        pos = open_pos + 1
        depth = 1
        literal = self.dialect.literal_quote[0] if self.dialect.literal_quote else None
        expandable = self.dialect.expandable_quote[0]
        escape = self.dialect.escape_char

        while pos < self.length:
            char = self.text[pos]
            if char == escape and pos + 1 < self.length:
                pos += 2
                continue
            if char == literal or char == expandable:
                close = pos + 1
                while close < self.length and self.text[close] != char:
                    if char == expandable and self.text[close] == escape:
                        close += 1
                    close += 1
                if close >= self.length:
                    raise UnterminatedQuoteError(char, pos, self.text)
                pos = close + 1
                continue
            if char == '(':
                depth += 1
            elif char == ')':
                depth -= 1
                if depth == 0:
                    return self.text[open_pos + 1:pos], pos + 1
            pos += 1

        raise UnterminatedQuoteError(opener, start, self.text)

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------

    def _read_variable(self, quoted: bool) -> Segment:
        """Read an expansion starting at '$'. A lone '$' is plain text."""
        family = self.dialect.family
        if family == 'posix':
            return self._read_posix_variable()
        if family == 'fish':
            return self._read_fish_variable(quoted)
        return self._read_powershell_variable(quoted)

    def _read_name(self, pos: int, pattern=_IDENT) -> str:
        match = pattern.match(self.text, pos)
        return match.group(0) if match else ''

    def _read_posix_variable(self) -> Segment:
        start = self.pos
        source = self.dialect.name
        next_char = self._peek()

        if next_char == '(':
            if self._peek(2) == '(':
                body, end = self._scan_balanced(self.pos + 2, '$((')
                if self.text[end:end + 1] == ')':
                    self.pos = end + 1
                    return Substitution(start, body, 'arithmetic')
            body, end = self._scan_balanced(self.pos + 1, '$(')
            self.pos = end
            return Substitution(start, body, 'command')

        if next_char == '{':
            close = self._find_brace_close(self.pos + 2)
            if close == -1:
                raise UnterminatedQuoteError('${', start, self.text)
            inner = self.text[self.pos + 2:close]
            self.pos = close + 1
            match = _POSIX_BRACED.match(inner)
            if match:
                return VariableRef(start, match.group('name'), source, braced=True,
                                   index=match.group('index'))
            name_match = _POSIX_EXPRESSION_NAME.match(inner)
            name = name_match.group(1) if name_match else inner
            return VariableRef(start, name, source, braced=True, expression=inner)

        if next_char and _IDENT_START.match(next_char):
            name = self._read_name(self.pos + 1)
            self.pos += 1 + len(name)
            return VariableRef(start, name, source)

        if next_char.isdigit() or (next_char and next_char in _POSIX_SPECIAL):
            self.pos += 2
            return VariableRef(start, next_char, source)

        self.pos += 1
        return RawUnquoted(start, '$')

    def _find_brace_close(self, pos: int) -> int:
        depth = 1
        while pos < self.length:
            char = self.text[pos]
            if char == '\\':
                pos += 2
                continue
            if char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
                if depth == 0:
                    return pos
            pos += 1
        return -1

    def _read_fish_variable(self, quoted: bool) -> Segment:
        start = self.pos
        next_char = self._peek()

        if next_char == '(':
            body, end = self._scan_balanced(self.pos + 1, '$(')
            self.pos = end
            return Substitution(start, body, 'command')

        name = self._read_name(self.pos + 1, _FISH_NAME)
        if not name:
            self.pos += 1
            return RawUnquoted(start, '$')

        self.pos += 1 + len(name)
        index = None
        if self._current() == '[':
            close = self.text.find(']', self.pos)
            if close == -1:
                raise UnterminatedQuoteError('[', self.pos, self.text)
            index = self.text[self.pos + 1:close]
            self.pos = close + 1
        return VariableRef(start, name, 'fish', index=index)

    def _read_powershell_variable(self, quoted: bool) -> Segment:
        start = self.pos
        next_char = self._peek()

        if next_char == '(':
            body, end = self._scan_balanced(self.pos + 1, '$(')
            self.pos = end
            return Substitution(start, body, 'command')

        if next_char == '{':
            pos = self.pos + 2
            chars = []
            while pos < self.length and self.text[pos] != '}':
                if self.text[pos] == '`' and pos + 1 < self.length:
                    pos += 1
                chars.append(self.text[pos])
                pos += 1
            if pos >= self.length:
                raise UnterminatedQuoteError('${', start, self.text)
            self.pos = pos + 1
            scope, name = self._split_scope(''.join(chars))
            return VariableRef(start, name, 'powershell', braced=True, scope=scope)

        if next_char and next_char in _POWERSHELL_SPECIAL:
            self.pos += 2
            return VariableRef(start, next_char, 'powershell')

        name = self._read_name(self.pos + 1, _FISH_NAME)
        if not name:
            self.pos += 1
            return RawUnquoted(start, '$')

        self.pos += 1 + len(name)
        scope = None
        if self._current() == ':' and _IDENT_START.match(self._peek()):
            scope = name
            name = self._read_name(self.pos + 1, _FISH_NAME)
            self.pos += 1 + len(name)

        index = None
        if not quoted and self._current() == '[':
            close = self.text.find(']', self.pos)
            if close == -1:
                raise UnterminatedQuoteError('[', self.pos, self.text)
            index = self.text[self.pos + 1:close]
            self.pos = close + 1
        return VariableRef(start, name, 'powershell', scope=scope, index=index)

    @staticmethod
    def _split_scope(inner: str) -> Tuple[Optional[str], str]:
        scope, sep, name = inner.partition(':')
        if sep and scope and name and re.fullmatch(r'[A-Za-z_][A-Za-z0-9_]*', scope):
            return scope, name
        return None, inner

    def _read_cmd_percent(self) -> Segment:
        """Read %NAME%, %1, %*, %~dp0 or the %% escape"""
        start = self.pos
        if self._peek() == '%':
            self.pos += 2
            return EscapeSequence(start, '%', '%')

        match = _CMD_POSITIONAL.match(self.text, self.pos)
        if match:
            self.pos = match.end()
            return VariableRef(start, match.group(0)[1:], 'cmd')

        match = _CMD_VARIABLE.match(self.text, self.pos)
        if match:
            self.pos = match.end()
            inner = match.group(1)
            name, sep, _ = inner.partition(':')
            return VariableRef(start, name, 'cmd', expression=inner if sep else None)

        self.pos += 1
        return RawUnquoted(start, '%')


# ============================================================================
# PUBLIC API
# ============================================================================

def tokenize(text: str, dialect: Union[str, Dialect], logger=None) -> List[Segment]:
    """
    Tokenize a command string under the given dialect.

    Raises:
        UnterminatedQuoteError: quote, substitution or block comment left open
        UnterminatedHeredocError: here-doc body never reached its delimiter
        UnknownDialectError: dialect name not supported
    """
    return ShellLexer(text, dialect, logger=logger).tokenize()
