"""
Requote Emitter - render an Invocation tree in a target dialect

ARCHITECTURE:
    Invocation (source dialect) →
        words      → per-segment quoting via the translation table
        operators  → command separator rule
        here-docs  → inline opener + body deferred to the next newline
        nested     → emit child in its own dialect, then wrap ONCE in the
                     outer target's quoting (escaping compounds per level)

WRAP STYLE FOR NESTED COMMAND STRINGS:
    interpolations present           → expandable (outer expansions must reach)
    nested text has variable prefix  → literal
    otherwise                        → style whose delimiter occurs least
                                       (ties → literal)

Pure: emitting never mutates the Invocation.
"""
import logging
from typing import Dict, List, Optional, Sequence, Union

from .constants import PLACEHOLDER_CLOSE, PLACEHOLDER_OPEN
from .dialect_registry import Dialect, get_dialect
from .errors import UnsupportedConstructError
from .invocation_builder import Invocation, NestedInvocation, iter_items
from .shell_lexer import (
    Comment,
    EscapeSequence,
    Expandable,
    Literal,
    Operator,
    RawUnquoted,
    Segment,
    Substitution,
    VariableRef,
    Whitespace,
    is_heredoc,
)
from .translation_table import ConstructKind, lookup, special_parameter_meaning


class RequoteEmitter:
    """
    Emits Invocations as command text.

    nested_overrides maps a launcher name (e.g. 'ssh', 'docker exec bash -c')
    to the dialect its command string is emitted in, instead of the dialect
    it was parsed with.
    """

    def __init__(self, nested_overrides: Optional[Dict[str, Union[str, Dialect]]] = None,
                 logger=None):
        self.nested_overrides = {
            launcher: get_dialect(dialect)
            for launcher, dialect in (nested_overrides or {}).items()
        }
        self.logger = logger or logging.getLogger('RequoteEmitter')

    def emit(self, invocation: Invocation, target: Union[str, Dialect]) -> str:
        """
        Render invocation in the target dialect.

        Raises:
            UnsupportedConstructError: a construct has no target equivalent
        """
        return self._emit_invocation(invocation, get_dialect(target))

    # ------------------------------------------------------------------
    # Invocation level
    # ------------------------------------------------------------------

    def _emit_invocation(self, invocation: Invocation, target: Dialect) -> str:
        source = invocation.dialect
        segments = invocation.segments
        nested = invocation.nested_at()
        out: List[str] = []
        deferred: List[str] = []
        needs_newline = False
        at_command_start = True

        for kind, start, end in iter_items(segments):
            if needs_newline:
                out.append('\n')
                needs_newline = False

            if kind == 'word':
                if start in nested:
                    out.append(self._emit_nested(nested[start], source, target))
                else:
                    out.append(self._render_word(segments[start:end], source, target))
                at_command_start = False
                continue

            segment = segments[start]
            if isinstance(segment, Whitespace):
                out.append(segment.text.replace('\r', ''))
            elif isinstance(segment, Operator):
                if segment.op == '\n':
                    out.append('\n')
                    if deferred:
                        out.append('\n'.join(deferred))
                        deferred = []
                        needs_newline = True
                    at_command_start = True
                else:
                    rule = lookup(ConstructKind.COMMAND_SEPARATOR, source, target)
                    out.append(rule.render(segment.op))
                    at_command_start = segment.op in source.command_separators
            elif isinstance(segment, Comment):
                rule = lookup(ConstructKind.COMMENT, source, target)
                out.append(rule.render(segment, at_command_start))
            elif is_heredoc(segment):
                inline, later = self._render_heredoc(segment, source, target)
                out.append(inline)
                if later:
                    deferred.append(later)

        if deferred:
            out.append('\n' + '\n'.join(deferred))
        return ''.join(out)

    def _render_heredoc(self, segment: Segment, source: Dialect, target: Dialect):
        kind = (ConstructKind.HEREDOC_EXPANDABLE if isinstance(segment, Expandable)
                else ConstructKind.HEREDOC_LITERAL)
        rule = lookup(kind, source, target)
        delimiter = None
        if source.heredoc is not None and source.heredoc.kind == 'delimited':
            delimiter = segment.heredoc.delimiter
        return rule.render(segment.text, delimiter)

    # ------------------------------------------------------------------
    # Nested command strings
    # ------------------------------------------------------------------

    def _emit_nested(self, nested: NestedInvocation, source: Dialect, target: Dialect) -> str:
        inner_dialect = self.nested_overrides.get(nested.launcher, nested.dialect)
        inner = self._emit_invocation(nested.invocation, inner_dialect)
        style = self._wrap_style(inner, nested, target)
        self.logger.debug(f"Wrapping {nested.launcher!r} command string in {style} "
                          f"{target.name} quotes")

        if style == 'literal':
            return lookup(ConstructKind.LITERAL_QUOTE, source, target).render(inner)

        rule = lookup(ConstructKind.EXPANDABLE_QUOTE, source, target)
        body = rule.escape(inner)
        for index, part in enumerate(nested.interpolations):
            placeholder = f"{PLACEHOLDER_OPEN}{index}{PLACEHOLDER_CLOSE}"
            _, _, after = body.partition(placeholder)
            rendered = self._render_expansion(part, source, target, True, after[:1])
            body = body.replace(placeholder, rendered)
        return rule.render(body)

    @staticmethod
    def _wrap_style(inner: str, nested: NestedInvocation, target: Dialect) -> str:
        if nested.interpolations or target.literal_quote is None:
            return 'expandable'
        if target.variable_prefix in inner:
            return 'literal'
        literal_count = inner.count(target.literal_quote[1])
        expandable_count = inner.count(target.expandable_quote[1])
        return 'literal' if literal_count <= expandable_count else 'expandable'

    # ------------------------------------------------------------------
    # Words
    # ------------------------------------------------------------------

    def _render_word(self, word: Sequence[Segment], source: Dialect, target: Dialect) -> str:
        if target.family == 'powershell' and source.family != 'powershell' and len(word) > 1:
            return self._coalesce(word, source, target)

        pieces = []
        for index, segment in enumerate(word):
            next_text = _leading_text(word[index + 1:])
            pieces.append(self._render_part(segment, source, target, next_text))
        if _pieces_fuse(pieces, target):
            self.logger.debug(f"Adjacent quoted pieces would fuse in {target.name}; coalescing")
            return self._coalesce(word, source, target)
        return ''.join(pieces)

    def _render_part(self, segment: Segment, source: Dialect, target: Dialect,
                     next_text: str) -> str:
        if isinstance(segment, RawUnquoted):
            if target.is_raw_safe(segment.text):
                return segment.text
            return self._render_text(segment.text, source, target)
        if isinstance(segment, Literal):
            return self._render_text(segment.text, source, target)
        if isinstance(segment, EscapeSequence):
            return self._render_escape(segment.value, source, target)
        if isinstance(segment, Expandable):
            rule = lookup(ConstructKind.EXPANDABLE_QUOTE, source, target)
            return rule.render(self._expandable_inner(segment.parts, source, target, rule))
        return self._render_expansion(segment, source, target, False, next_text)

    def _coalesce(self, word: Sequence[Segment], source: Dialect, target: Dialect) -> str:
        """
        Render a multi-segment word as ONE quoted string.

        PowerShell splits 'a'"b" into separate arguments in some contexts
        and reads $x.txt as member access, so pieces from other dialects are
        merged into a single quoted token. PowerShell and cmd words whose
        pieces would meet on a doubled quote are merged the same way.
        """
        parts: List[Segment] = []
        for segment in word:
            if isinstance(segment, Expandable):
                parts.extend(segment.parts)
            elif isinstance(segment, (Literal, RawUnquoted)):
                parts.append(Literal(segment.pos, segment.text, quote=''))
            elif isinstance(segment, EscapeSequence):
                parts.append(Literal(segment.pos, segment.value, quote=''))
            else:
                parts.append(segment)

        if all(isinstance(part, Literal) for part in parts):
            return self._render_text(''.join(part.text for part in parts), source, target)
        rule = lookup(ConstructKind.EXPANDABLE_QUOTE, source, target)
        return rule.render(self._expandable_inner(parts, source, target, rule))

    def _expandable_inner(self, parts: Sequence[Segment], source: Dialect, target: Dialect,
                          rule) -> str:
        pieces = []
        for index, part in enumerate(parts):
            if isinstance(part, (Literal, RawUnquoted)):
                pieces.append(rule.escape(part.text))
            elif isinstance(part, EscapeSequence):
                pieces.append(rule.escape(part.value))
            else:
                next_text = _leading_text(parts[index + 1:])
                pieces.append(self._render_expansion(part, source, target, True, next_text))
        return ''.join(pieces)

    def _render_text(self, text: str, source: Dialect, target: Dialect) -> str:
        """Literal text: bare when safe, else the target's literal quoting"""
        if text and not target.needs_protection(text):
            return text
        try:
            rule = lookup(ConstructKind.LITERAL_QUOTE, source, target)
        except UnsupportedConstructError:
            return self._fallback_quote(text, source, target)
        return rule.render(text)

    def _fallback_quote(self, text: str, source: Dialect, target: Dialect) -> str:
        """
        Quote text in a dialect without literal quotes (cmd).

        Caret-escape when possible; whitespace and quotes need "..." with
        doubled "" and %%.
        """
        if not text or any(char.isspace() or char == '"' for char in text):
            rule = lookup(ConstructKind.EXPANDABLE_QUOTE, source, target)
            return rule.render(rule.escape(text))
        escape = lookup(ConstructKind.ESCAPE, source, target)
        return ''.join(escape.render(char) or char for char in text)

    def _render_escape(self, value: str, source: Dialect, target: Dialect) -> str:
        if not target.needs_protection(value):
            return value
        escaped = lookup(ConstructKind.ESCAPE, source, target).render(value)
        if escaped is None:
            return self._render_text(value, source, target)
        return escaped

    # ------------------------------------------------------------------
    # Expansions
    # ------------------------------------------------------------------

    def _render_expansion(self, segment: Segment, source: Dialect, target: Dialect,
                          quoted: bool, next_text: str = '') -> str:
        if isinstance(segment, VariableRef):
            return self._render_variable(segment, source, target, quoted, next_text)
        if isinstance(segment, Substitution):
            kind = (ConstructKind.ARITHMETIC if segment.style == 'arithmetic'
                    else ConstructKind.COMMAND_SUBSTITUTION)
            return lookup(kind, source, target).render(segment, quoted)
        raise TypeError(f"Not an expansion: {segment!r}")

    def _render_variable(self, ref: VariableRef, source: Dialect, target: Dialect,
                         quoted: bool, next_text: str) -> str:
        if ref.expression is not None:
            rule = lookup(ConstructKind.PARAMETER_EXPANSION, source, target)
            return rule.render(ref, quoted)
        if get_dialect(ref.source).family != target.family:
            special = special_parameter_meaning(ref)
            if special is not None:
                meaning, position = special
                rule = lookup(ConstructKind.SPECIAL_PARAMETER, source, target)
                return rule.render(meaning, position, quoted)
        return lookup(ConstructKind.VARIABLE, source, target).render(ref, quoted, next_text)


def _pieces_fuse(pieces: Sequence[str], target: Dialect) -> bool:
    """
    True when two adjacent rendered pieces meet on a quote the target reads
    doubled as an escape ('a''b' in PowerShell, "a""b" in cmd).
    """
    doubled = set()
    if target.literal_quote is not None and target.literal_doubled_quote:
        doubled.add(target.literal_quote[1])
    if target.expandable_doubled_quote:
        doubled.add(target.expandable_quote[1])
    if not doubled:
        return False
    for left, right in zip(pieces, pieces[1:]):
        if left and right and left[-1] == right[0] and left[-1] in doubled:
            return True
    return False


def _leading_text(segments: Sequence[Segment]) -> str:
    """First literal characters following an expansion, if any"""
    for segment in segments:
        if isinstance(segment, (Literal, RawUnquoted)):
            if segment.text:
                return segment.text
            continue
        if isinstance(segment, EscapeSequence):
            return segment.value
        return ''
    return ''


def emit(invocation: Invocation, target: Union[str, Dialect],
         nested_overrides: Optional[Dict[str, Union[str, Dialect]]] = None,
         logger=None) -> str:
    """Render invocation in the target dialect"""
    return RequoteEmitter(nested_overrides=nested_overrides, logger=logger).emit(invocation, target)
