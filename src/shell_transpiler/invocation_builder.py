"""
Invocation Builder - command structure and nested launcher detection

OBJECTIVE: Group segments into words and commands, recognize launchers
(bash -c, ssh host CMD, powershell -Command, cmd /c, docker exec ...) and
parse their command-string argument recursively under the launcher's dialect.

============================================================================
USAGE
============================================================================

    >>> from shell_transpiler.invocation_builder import parse_invocation
    >>> inv = parse_invocation("ssh user@host 'echo \"hi\"'", 'bash')
    >>> inv.nested[0].launcher
    'ssh'
    >>> print(format_invocation_tree(inv))
    Invocation[bash] depth=0
      Nested 'ssh' -> bash (words 4..5)
        Invocation[bash] depth=1

============================================================================
ARCHITECTURE
============================================================================

    segments (outer dialect) →
        words / commands →
            launcher match (literal words only) →
                nested source (placeholders for quoted outer expansions) →
                    ShellLexer + InvocationBuilder at depth + 1

============================================================================
FAILURE MODES
============================================================================

    depth + 1 > max_depth      → NestingTooDeepError (fatal)
    nested text unterminated   → NestedParseError in diagnostics (degraded,
                                 argument stays opaque)
    ambiguous launcher usage   → argument stays opaque, no diagnostic
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .constants import (
    CMD_COMMAND_FLAGS,
    CMD_SWITCH_PATTERN,
    CONTAINER_EXEC_NO_VALUE_FLAGS,
    CONTAINER_EXEC_PROGRAMS,
    CONTAINER_EXEC_VALUE_FLAGS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_REMOTE_DIALECT,
    ENV_VALUE_FLAGS,
    FISH_NO_VALUE_FLAGS,
    KUBECTL_EXEC_NO_VALUE_FLAGS,
    KUBECTL_EXEC_VALUE_FLAGS,
    PLACEHOLDER_CLOSE,
    PLACEHOLDER_OPEN,
    PLAIN_FORWARDING_PREFIXES,
    POSIX_SHELL_FLAG_LETTERS,
    POSIX_SHELL_LAUNCHERS,
    POSIX_SHELL_LONG_FLAGS,
    POSIX_SHELL_VALUE_FLAGS,
    POWERSHELL_COMMAND_FLAGS,
    POWERSHELL_NO_VALUE_FLAGS,
    POWERSHELL_PROGRAMS,
    POWERSHELL_VALUE_FLAGS,
    SSH_NO_VALUE_FLAG_LETTERS,
    SSH_VALUE_FLAG_LETTERS,
    SUDO_NO_VALUE_FLAGS,
    SUDO_VALUE_FLAGS,
)
from .dialect_registry import Dialect, get_dialect
from .errors import (
    NestedParseError,
    NestingTooDeepError,
    UnterminatedHeredocError,
    UnterminatedQuoteError,
)
from .shell_lexer import (
    Comment,
    EscapeSequence,
    Expandable,
    Literal,
    Operator,
    RawUnquoted,
    Segment,
    ShellLexer,
    Substitution,
    VariableRef,
    Whitespace,
    is_heredoc,
    is_word_part,
)


# ============================================================================
# INVOCATION TREE
# ============================================================================

@dataclass
class NestedInvocation:
    """
    Launcher boundary: the argument word segments[start:end] of the parent
    is a command string parsed as `invocation`.

    interpolations are outer-level expansions that were inside the argument;
    the nested source holds PLACEHOLDER_OPEN + index + PLACEHOLDER_CLOSE for each.
    """
    launcher: str
    dialect: Dialect
    invocation: 'Invocation'
    start: int
    end: int
    interpolations: Tuple[Segment, ...] = ()

    def __repr__(self):
        return f"Nested({self.launcher!r} -> {self.dialect.name})"

    def signature(self) -> tuple:
        return ('nested', self.launcher, self.dialect.name,
                self.invocation.signature(),
                tuple(_part_atom(seg, quoted=True, dialect=None) for seg in self.interpolations))


@dataclass
class Invocation:
    """
    One parsed command string in one dialect.

    Owns its segments and nested children. path lists the launchers crossed
    to reach it from the top level.
    """
    dialect: Dialect
    segments: List[Segment]
    nested: List[NestedInvocation] = field(default_factory=list)
    diagnostics: List[NestedParseError] = field(default_factory=list)
    depth: int = 0
    path: List[str] = field(default_factory=list)
    source_text: str = ''

    def __repr__(self):
        return (f"Invocation({self.dialect.name}, {len(self.segments)} segments, "
                f"{len(self.nested)} nested)")

    def nested_at(self) -> Dict[int, NestedInvocation]:
        """Nested children keyed by the start index of their argument word"""
        return {child.start: child for child in self.nested}

    def walk(self):
        """Yield this invocation and every nested invocation, depth first"""
        yield self
        for child in self.nested:
            yield from child.invocation.walk()

    def all_diagnostics(self) -> List[NestedParseError]:
        return [diag for inv in self.walk() for diag in inv.diagnostics]

    def deepest_level(self) -> int:
        return max(inv.depth for inv in self.walk())

    def signature(self) -> tuple:
        """
        Structural fingerprint used to compare two parses.

        Adjacent text merges regardless of quoting (so 'a'b and ab match);
        variable atoms carry their quoting only where the dialect word-splits
        unquoted expansions.
        """
        items = []
        nested = self.nested_at()
        for kind, start, end in iter_items(self.segments):
            if kind == 'word':
                if start in nested:
                    items.append(('word', (nested[start].signature(),)))
                else:
                    items.append(('word', _word_atoms(self.segments[start:end], self.dialect)))
                continue
            segment = self.segments[start]
            if isinstance(segment, Operator):
                items.append(('op', segment.op))
            elif isinstance(segment, Comment):
                items.append(('comment', segment.text.strip()))
            elif is_heredoc(segment):
                items.append(('heredoc', isinstance(segment, Expandable), segment.text))
        return tuple(items)


# ============================================================================
# WORD HELPERS
# ============================================================================

def iter_items(segments: Sequence[Segment]):
    """
    Yield ('word', start, end) for each run of word parts and
    ('segment', index, index + 1) for everything else.
    """
    index = 0
    count = len(segments)
    while index < count:
        if is_word_part(segments[index]):
            start = index
            while index < count and is_word_part(segments[index]):
                index += 1
            yield 'word', start, index
        else:
            yield 'segment', index, index + 1
            index += 1


def literal_value(word: Sequence[Segment]) -> Optional[str]:
    """Text value of a word, or None if it contains any expansion"""
    chars = []
    for segment in word:
        if isinstance(segment, (Literal, RawUnquoted)):
            chars.append(segment.text)
        elif isinstance(segment, EscapeSequence):
            chars.append(segment.value)
        elif isinstance(segment, Expandable):
            for part in segment.parts:
                if isinstance(part, Literal):
                    chars.append(part.text)
                elif isinstance(part, EscapeSequence):
                    chars.append(part.value)
                else:
                    return None
        else:
            return None
    return ''.join(chars)


def _part_atom(segment: Segment, quoted: bool, dialect: Optional[Dialect]) -> tuple:
    if isinstance(segment, VariableRef):
        atom = ('var', segment.scope, segment.name, segment.index, segment.expression)
        if dialect is not None and dialect.splits_unquoted_expansions:
            atom += (quoted,)
        return atom
    style = 'arithmetic' if segment.style == 'arithmetic' else 'command'
    return ('subst', style, segment.body)


def _word_atoms(word: Sequence[Segment], dialect: Dialect) -> tuple:
    atoms = []
    text = []

    def flush():
        if text:
            atoms.append(('text', ''.join(text)))
            text.clear()

    for segment in word:
        if isinstance(segment, (Literal, RawUnquoted)):
            text.append(segment.text)
        elif isinstance(segment, EscapeSequence):
            text.append(segment.value)
        elif isinstance(segment, Expandable):
            for part in segment.parts:
                if isinstance(part, Literal):
                    text.append(part.text)
                elif isinstance(part, EscapeSequence):
                    text.append(part.value)
                else:
                    flush()
                    atoms.append(_part_atom(part, True, dialect))
        else:
            flush()
            atoms.append(_part_atom(segment, False, dialect))
    flush()
    return tuple(atoms)


def program_name(word: str) -> str:
    """Launcher name of a program word: basename, lowercased, .exe stripped"""
    name = re.split(r'[\\/]', word)[-1].lower()
    if name.endswith('.exe'):
        name = name[:-4]
    return name


@dataclass
class _Word:
    start: int
    end: int
    literal: Optional[str]


# ============================================================================
# BUILDER
# ============================================================================

class InvocationBuilder:
    """
    Builds an Invocation tree from segments.

    One builder per depth: nested strings get a child builder at depth + 1
    with the launcher appended to path.
    """

    def __init__(self, dialect: Union[str, Dialect], max_depth: int = DEFAULT_MAX_DEPTH,
                 remote_dialect: Union[str, Dialect] = DEFAULT_REMOTE_DIALECT,
                 logger=None, depth: int = 0, path: Optional[List[str]] = None):
        self.dialect = get_dialect(dialect)
        self.max_depth = max_depth
        self.remote_dialect = get_dialect(remote_dialect)
        self.logger = logger or logging.getLogger('InvocationBuilder')
        self.depth = depth
        self.path = list(path or [])

    def build(self, segments: Sequence[Segment], source_text: str = '') -> Invocation:
        """
        Build the invocation for already-tokenized segments.

        Raises:
            NestingTooDeepError: a launcher chain exceeds max_depth
        """
        invocation = Invocation(
            dialect=self.dialect,
            segments=list(segments),
            depth=self.depth,
            path=list(self.path),
            source_text=source_text,
        )

        for words in self._split_commands(invocation.segments):
            match = self._match_launcher(words)
            if match is None:
                continue
            launcher, dialect, argument = match
            nested = self._build_nested(invocation, argument, launcher, dialect)
            if nested is not None:
                invocation.nested.append(nested)

        self.logger.debug(f"Built invocation at depth {self.depth} with "
                          f"{len(invocation.nested)} nested launcher(s)")
        return invocation

    # ------------------------------------------------------------------
    # Commands and argv
    # ------------------------------------------------------------------

    def _split_commands(self, segments: List[Segment]) -> List[List[_Word]]:
        """
        Group words into commands' argv.

        Redirect targets and leading VAR=value assignments are left out.
        """
        commands: List[List[_Word]] = []
        current: List[_Word] = []
        skip_next_word = False

        for kind, start, end in iter_items(segments):
            if kind == 'word':
                if skip_next_word:
                    skip_next_word = False
                    continue
                word = segments[start:end]
                value = literal_value(word)
                if not current and self._is_assignment(word):
                    continue
                current.append(_Word(start, end, value))
                continue

            segment = segments[start]
            if isinstance(segment, Operator):
                if segment.op in self.dialect.command_separators:
                    commands.append(current)
                    current = []
                    skip_next_word = False
                elif self.dialect.is_redirect(segment.op):
                    skip_next_word = not re.search(r'&(\d+|-)$', segment.op)

        commands.append(current)
        return [command for command in commands if command]

    def _is_assignment(self, word: Sequence[Segment]) -> bool:
        if self.dialect.family not in ('posix', 'fish'):
            return False
        first = word[0]
        return isinstance(first, RawUnquoted) and bool(
            re.match(r'^[A-Za-z_][A-Za-z0-9_]*=', first.text))

    # ------------------------------------------------------------------
    # Launcher recognition
    # ------------------------------------------------------------------

    def _match_launcher(self, words: List[_Word]) -> Optional[Tuple[str, Dialect, _Word]]:
        """
        Match argv against the launcher table.

        Returns (launcher name, nested dialect, argument word) or None.
        """
        prefixes = []
        index = 0
        while index < len(words):
            word = words[index].literal
            if word is None:
                return None
            name = program_name(word)
            next_index = self._skip_prefix(name, words, index)
            if next_index is None:
                break
            if next_index < 0:
                return None
            prefixes.append(f"{name} exec" if name in CONTAINER_EXEC_PROGRAMS
                            or name == 'kubectl' else name)
            index = next_index

        if index >= len(words):
            return None

        name = program_name(words[index].literal)
        rest = words[index + 1:]

        if name in POSIX_SHELL_LAUNCHERS:
            position = self._match_posix_shell(rest)
            dialect = get_dialect(POSIX_SHELL_LAUNCHERS[name])
            launcher = f"{name} -c"
        elif name == 'fish':
            position = self._match_fish(rest)
            dialect = get_dialect('fish')
            launcher = 'fish -c'
        elif name in POWERSHELL_PROGRAMS:
            position = self._match_powershell(rest)
            dialect = get_dialect('powershell')
            launcher = f"{name} -Command"
        elif name == 'cmd':
            position = self._match_cmd(rest)
            dialect = get_dialect('cmd')
            launcher = 'cmd /c'
        elif name == 'ssh':
            position = self._match_ssh(rest)
            dialect = self.remote_dialect
            launcher = 'ssh'
        else:
            return None

        if position is None:
            return None
        launcher = ' '.join(prefixes + [launcher])
        self.logger.debug(f"Recognized launcher {launcher!r} -> {dialect.name}")
        return launcher, dialect, rest[position]

    def _skip_prefix(self, name: str, words: List[_Word], index: int) -> Optional[int]:
        """
        Skip an argv-forwarding prefix starting at words[index].

        Returns the index of the forwarded program, None if words[index] is
        not a prefix, or -1 if the prefix usage is ambiguous.
        """
        if name in PLAIN_FORWARDING_PREFIXES:
            return index + 1

        if name == 'sudo':
            return self._skip_options(words, index + 1, SUDO_VALUE_FLAGS, SUDO_NO_VALUE_FLAGS)

        if name == 'env':
            position = index + 1
            while position < len(words):
                word = words[position].literal
                if word is None:
                    return -1
                if word in ENV_VALUE_FLAGS:
                    position += 2
                elif word in ('-i', '-', '--ignore-environment') or '=' in word:
                    position += 1
                else:
                    break
            return position

        if name in CONTAINER_EXEC_PROGRAMS or name == 'kubectl':
            if index + 1 >= len(words) or words[index + 1].literal != 'exec':
                return None
            if name == 'kubectl':
                value_flags, flags = KUBECTL_EXEC_VALUE_FLAGS, KUBECTL_EXEC_NO_VALUE_FLAGS
            else:
                value_flags, flags = CONTAINER_EXEC_VALUE_FLAGS, CONTAINER_EXEC_NO_VALUE_FLAGS
            position = self._skip_options(words, index + 2, value_flags, flags)
            if position < 0 or position >= len(words):
                return -1
            # container / pod name
            position = self._skip_options(words, position + 1, value_flags, flags)
            if name == 'kubectl':
                if position < 0 or position >= len(words) or words[position].literal != '--':
                    return -1
                position += 1
            return position

        return None

    @staticmethod
    def _skip_options(words: List[_Word], position: int, value_flags, flags) -> int:
        while position < len(words):
            word = words[position].literal
            if word is None:
                return -1
            if word in value_flags:
                position += 2
            elif word in flags or (word.startswith('--') and '=' in word):
                position += 1
            elif word.startswith('-') and word != '--' and len(word) > 1:
                return -1
            else:
                break
        return position

    def _match_posix_shell(self, rest: List[_Word]) -> Optional[int]:
        position = 0
        while position < len(rest):
            word = rest[position].literal
            if word is None:
                return None
            if word in POSIX_SHELL_VALUE_FLAGS:
                position += 2
                continue
            if word in POSIX_SHELL_LONG_FLAGS:
                if word == '--':
                    return None
                position += 1
                continue
            if re.fullmatch(r'[-+][A-Za-z]+', word):
                letters = word[1:]
                if word[0] == '-' and 'c' in letters:
                    if letters.count('c') != 1 or not all(
                            letter == 'c' or letter in POSIX_SHELL_FLAG_LETTERS
                            for letter in letters):
                        return None
                    return position + 1 if position + 1 < len(rest) else None
                if all(letter in POSIX_SHELL_FLAG_LETTERS for letter in letters):
                    position += 1
                    continue
            return None
        return None

    def _match_fish(self, rest: List[_Word]) -> Optional[int]:
        position = 0
        while position < len(rest):
            word = rest[position].literal
            if word is None:
                return None
            if word in ('-c', '--command'):
                return position + 1 if position + 1 < len(rest) else None
            if word.startswith('--command='):
                return None
            if word in FISH_NO_VALUE_FLAGS:
                position += 1
                continue
            return None
        return None

    def _match_powershell(self, rest: List[_Word]) -> Optional[int]:
        position = 0
        while position < len(rest):
            word = rest[position].literal
            if word is None:
                return None
            flag = word.lower()
            if flag in POWERSHELL_COMMAND_FLAGS:
                remaining = rest[position + 1:]
                if len(remaining) == 1 and remaining[0].literal != '-':
                    return position + 1
                return None
            if flag in POWERSHELL_NO_VALUE_FLAGS:
                position += 1
                continue
            if flag in POWERSHELL_VALUE_FLAGS:
                position += 2
                continue
            # -EncodedCommand, -File and anything unknown stay opaque
            return None
        return None

    def _match_cmd(self, rest: List[_Word]) -> Optional[int]:
        position = 0
        while position < len(rest):
            word = rest[position].literal
            if word is None:
                return None
            switch = word.lower()
            if switch in CMD_COMMAND_FLAGS:
                if len(rest) - position - 1 == 1:
                    return position + 1
                return None
            if re.match(CMD_SWITCH_PATTERN, switch):
                position += 1
                continue
            return None
        return None

    def _match_ssh(self, rest: List[_Word]) -> Optional[int]:
        position = 0
        while position < len(rest):
            word = rest[position].literal
            if word is None:
                break
            if word == '--':
                position += 1
                break
            if not word.startswith('-') or len(word) == 1:
                break
            takes_value = False
            for offset, letter in enumerate(word[1:]):
                if letter in SSH_NO_VALUE_FLAG_LETTERS:
                    continue
                if letter in SSH_VALUE_FLAG_LETTERS:
                    # value is the rest of the cluster or the next word
                    takes_value = offset == len(word) - 2
                    break
                return None
            position += 2 if takes_value else 1

        if position >= len(rest):
            return None
        if len(rest) - position - 1 == 1:
            return position + 1
        return None

    # ------------------------------------------------------------------
    # Nested parsing
    # ------------------------------------------------------------------

    def _build_nested(self, invocation: Invocation, argument: _Word, launcher: str,
                      dialect: Dialect) -> Optional[NestedInvocation]:
        depth = self.depth + 1
        path = self.path + [launcher]
        if depth > self.max_depth:
            raise NestingTooDeepError(depth, self.max_depth, path)

        source, interpolations = self._nested_source(invocation.segments[argument.start:argument.end])
        if source is None:
            self.logger.debug(f"Argument of {launcher!r} has no recoverable value; kept opaque")
            return None

        try:
            segments = ShellLexer(source, dialect, logger=self.logger).tokenize()
        except (UnterminatedQuoteError, UnterminatedHeredocError) as e:
            error = NestedParseError(path, e)
            self.logger.warning(str(error))
            invocation.diagnostics.append(error)
            return None

        child = InvocationBuilder(
            dialect,
            max_depth=self.max_depth,
            remote_dialect=self.remote_dialect,
            logger=self.logger,
            depth=depth,
            path=path,
        ).build(segments, source_text=source)

        return NestedInvocation(
            launcher=launcher,
            dialect=dialect,
            invocation=child,
            start=argument.start,
            end=argument.end,
            interpolations=tuple(interpolations),
        )

    @staticmethod
    def _nested_source(word: Sequence[Segment]) -> Tuple[Optional[str], List[Segment]]:
        """
        Outer value of the argument word.

        Quoted expansions become placeholders; unquoted ones make the value
        unknowable, which returns (None, []). So does text that already holds
        a placeholder character.
        """
        chars = []
        interpolations: List[Segment] = []
        for segment in word:
            if isinstance(segment, (Literal, RawUnquoted)):
                chars.append(segment.text)
            elif isinstance(segment, EscapeSequence):
                chars.append(segment.value)
            elif isinstance(segment, Expandable):
                for part in segment.parts:
                    if isinstance(part, Literal):
                        chars.append(part.text)
                    elif isinstance(part, EscapeSequence):
                        chars.append(part.value)
                    else:
                        chars.append(f"{PLACEHOLDER_OPEN}{len(interpolations)}{PLACEHOLDER_CLOSE}")
                        interpolations.append(part)
            else:
                return None, []
        source = ''.join(chars)
        if (source.count(PLACEHOLDER_OPEN) != len(interpolations)
                or source.count(PLACEHOLDER_CLOSE) != len(interpolations)):
            return None, []
        return source, interpolations


# ============================================================================
# PUBLIC API
# ============================================================================

def build(segments: Sequence[Segment], dialect: Union[str, Dialect],
          max_depth: int = DEFAULT_MAX_DEPTH,
          remote_dialect: Union[str, Dialect] = DEFAULT_REMOTE_DIALECT,
          logger=None) -> Invocation:
    """Build an Invocation tree from top-level segments"""
    return InvocationBuilder(dialect, max_depth=max_depth, remote_dialect=remote_dialect,
                             logger=logger).build(segments)


def parse_invocation(text: str, dialect: Union[str, Dialect],
                     max_depth: int = DEFAULT_MAX_DEPTH,
                     remote_dialect: Union[str, Dialect] = DEFAULT_REMOTE_DIALECT,
                     logger=None) -> Invocation:
    """
    Tokenize and build in one step.

    Raises:
        TranslationError subclasses from the lexer and builder
    """
    segments = ShellLexer(text, dialect, logger=logger).tokenize()
    return InvocationBuilder(dialect, max_depth=max_depth, remote_dialect=remote_dialect,
                             logger=logger).build(segments, source_text=text)


# ============================================================================
# INVOCATION UTILITIES - Pretty print and summary
# ============================================================================

def format_invocation_tree(invocation: Invocation, indent: int = 0) -> str:
    """
    Render an Invocation tree as indented text.

    Useful for debugging and understanding nesting structure.
    """
    prefix = "  " * indent
    lines = [f"{prefix}Invocation[{invocation.dialect.name}] depth={invocation.depth}"]
    nested = invocation.nested_at()

    for kind, start, end in iter_items(invocation.segments):
        if kind == 'word':
            if start in nested:
                child = nested[start]
                lines.append(f"{prefix}  Nested {child.launcher!r} -> {child.dialect.name} "
                             f"(words {child.start}..{child.end})")
                for number, part in enumerate(child.interpolations):
                    lines.append(f"{prefix}    Interpolation {number}: {part!r}")
                lines.append(format_invocation_tree(child.invocation, indent + 2))
            else:
                parts = ' '.join(repr(seg) for seg in invocation.segments[start:end])
                lines.append(f"{prefix}  Word: {parts}")
            continue
        segment = invocation.segments[start]
        if isinstance(segment, Whitespace):
            continue
        lines.append(f"{prefix}  {segment!r}")

    for diagnostic in invocation.diagnostics:
        lines.append(f"{prefix}  Diagnostic: {diagnostic.message}")
    return '\n'.join(lines)


def invocation_summary(invocation: Invocation) -> dict:
    """
    Extract a summary of an Invocation tree.

    Returns dict with:
        - dialect: Dialect name
        - depth: Depth of this invocation
        - launchers: Launcher path of every nested invocation, outer first
        - variables: Names of every variable reference (all levels)
        - substitutions: Number of command/arithmetic substitutions
        - diagnostics: Serialized degraded nested parses
        - max_depth: Deepest nesting level reached
    """
    summary = {
        'dialect': invocation.dialect.name,
        'depth': invocation.depth,
        'launchers': [],
        'variables': [],
        'substitutions': 0,
        'diagnostics': [diag.to_dict() for diag in invocation.all_diagnostics()],
        'max_depth': invocation.deepest_level(),
    }

    for inv in invocation.walk():
        for child in inv.nested:
            summary['launchers'].append(' > '.join(child.invocation.path))
        for segment in _flatten(inv.segments):
            if isinstance(segment, VariableRef):
                summary['variables'].append(segment.name)
            elif isinstance(segment, Substitution):
                summary['substitutions'] += 1
    return summary


def _flatten(segments: Sequence[Segment]):
    for segment in segments:
        if isinstance(segment, Expandable):
            yield from segment.parts
        else:
            yield segment

