"""
Dialect Translator - entry point for shell command translation

RESPONSIBILITIES:
- Tokenize the command in its source dialect (ShellLexer)
- Build the invocation tree with nested launchers (InvocationBuilder)
- Emit the tree in the target dialect (RequoteEmitter)
- Turn TranslationError into a TranslationResult instead of raising

ARCHITECTURE:
This is a THIN COORDINATOR that delegates to specialized components:
- ShellLexer: quoting-aware tokenization
- InvocationBuilder: commands, launchers, nested parsing
- RequoteEmitter + translation table: target rendering

DATA FLOW:
command string → ShellLexer → InvocationBuilder → Invocation →
RequoteEmitter → TranslationResult
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .constants import DEFAULT_MAX_DEPTH, DEFAULT_REMOTE_DIALECT
from .dialect_registry import Dialect, get_dialect
from .errors import NestedParseError, TranslationError
from .invocation_builder import (
    Invocation,
    InvocationBuilder,
    format_invocation_tree,
    invocation_summary,
)
from .requote_emitter import RequoteEmitter
from .shell_lexer import ShellLexer


@dataclass
class TranslationResult:
    """
    Outcome of one translation request.

    Exactly one of output / error is set. warnings lists nested command
    strings that could not be parsed and were passed through opaque.

    DESIGN PATTERN: Data Transfer Object (DTO)
    """
    source: str
    target: str
    output: Optional[str] = None
    error: Optional[TranslationError] = None
    warnings: List[NestedParseError] = field(default_factory=list)
    invocation: Optional[Invocation] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        """Translated text, or re-raise the stored error"""
        if self.error is not None:
            raise self.error
        return self.output

    def to_dict(self) -> Dict:
        return {
            'source': self.source,
            'target': self.target,
            'ok': self.ok,
            'output': self.output,
            'error': self.error.to_dict() if self.error else None,
            'warnings': [warning.to_dict() for warning in self.warnings],
        }

    def __str__(self) -> str:
        """Human-readable representation for debugging"""
        if self.error is not None:
            return f"{self.source} -> {self.target}: error: {self.error}"
        suffix = f" ({len(self.warnings)} warning(s))" if self.warnings else ''
        return f"{self.source} -> {self.target}: {self.output}{suffix}"


class DialectTranslator:
    """
    Shell dialect translator.

    Configuration is per instance; each call builds its own invocation tree,
    so one translator can serve any number of requests.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH,
                 remote_dialect: Union[str, Dialect] = DEFAULT_REMOTE_DIALECT,
                 nested_overrides: Optional[Dict[str, Union[str, Dialect]]] = None,
                 logger=None):
        """
        Initialize DialectTranslator

        Args:
            max_depth: Maximum launcher nesting depth (NestingTooDeepError beyond)
            remote_dialect: Dialect presumed for `ssh host CMD` command strings
            nested_overrides: Launcher name -> dialect the nested string is emitted in
            logger: Logger shared with the components (default 'DialectTranslator')
        """
        self.max_depth = max_depth
        self.remote_dialect = get_dialect(remote_dialect)
        self.logger = logger or logging.getLogger('DialectTranslator')
        self.emitter = RequoteEmitter(nested_overrides=nested_overrides, logger=self.logger)

    def parse(self, command: str, dialect: Union[str, Dialect],
              max_depth: Optional[int] = None) -> Invocation:
        """
        Parse command into an Invocation tree.

        Raises:
            TranslationError subclasses (never NestedParseError, which degrades)
        """
        dialect = get_dialect(dialect)
        segments = ShellLexer(command, dialect, logger=self.logger).tokenize()
        builder = InvocationBuilder(
            dialect,
            max_depth=self.max_depth if max_depth is None else max_depth,
            remote_dialect=self.remote_dialect,
            logger=self.logger,
        )
        return builder.build(segments, source_text=command)

    def translate(self, command: str, source: Union[str, Dialect],
                  target: Union[str, Dialect],
                  max_depth: Optional[int] = None) -> TranslationResult:
        """
        Translate command from source to target dialect.

        Never raises TranslationError: failures are returned in
        TranslationResult.error.
        """
        result = TranslationResult(source=str(source), target=str(target))
        self.logger.debug(f"Translating {result.source} -> {result.target}: {command[:100]}")

        try:
            source_dialect = get_dialect(source)
            target_dialect = get_dialect(target)
            result.source = source_dialect.name
            result.target = target_dialect.name

            invocation = self.parse(command, source_dialect, max_depth=max_depth)
            result.invocation = invocation
            result.warnings = invocation.all_diagnostics()
            result.output = self.emitter.emit(invocation, target_dialect)

        except TranslationError as e:
            self.logger.error(f"Translation failed ({e.kind}): {e}")
            result.error = e
            result.output = None

        return result

    def roundtrip_equivalent(self, command: str, dialect: Union[str, Dialect]) -> bool:
        """
        Check that emitting command in its own dialect parses back to the
        same structure.

        Raises:
            TranslationError: command itself does not parse or emit
        """
        dialect = get_dialect(dialect)
        original = self.parse(command, dialect)
        emitted = self.emitter.emit(original, dialect)
        reparsed = self.parse(emitted, dialect)
        equivalent = original.signature() == reparsed.signature()
        if not equivalent:
            self.logger.debug(f"Round trip changed structure: {command!r} -> {emitted!r}")
        return equivalent


def translate(command: str, source_dialect: Union[str, Dialect],
              target_dialect: Union[str, Dialect],
              max_depth: int = DEFAULT_MAX_DEPTH,
              remote_dialect: Union[str, Dialect] = DEFAULT_REMOTE_DIALECT,
              nested_overrides: Optional[Dict[str, Union[str, Dialect]]] = None,
              logger=None) -> TranslationResult:
    """
    Translate one command string between dialects.

    Example:
        >>> translate('echo "Value: $var"', 'bash', 'powershell').output
        'echo "Value: $var"'
        >>> translate("echo 'it'\\''s'", 'bash', 'powershell').output
        "echo 'it''s'"

    An unknown remote_dialect or nested_overrides dialect is returned in
    TranslationResult.error like any other failure.
    """
    try:
        translator = DialectTranslator(
            max_depth=max_depth,
            remote_dialect=remote_dialect,
            nested_overrides=nested_overrides,
            logger=logger,
        )
    except TranslationError as e:
        (logger or logging.getLogger('DialectTranslator')).error(
            f"Translation failed ({e.kind}): {e}")
        return TranslationResult(source=str(source_dialect), target=str(target_dialect), error=e)
    return translator.translate(command, source_dialect, target_dialect)


__all__ = [
    'DialectTranslator',
    'TranslationResult',
    'translate',
    'format_invocation_tree',
    'invocation_summary',
]
