"""
Error taxonomy for the shell dialect transpiler

ARCHITECTURE:
- One base class (TranslationError) carrying kind + position + message
- Raised by the tokenizer, builder, translation table and emitter
- Caught only by DialectTranslator (turned into TranslationResult.error)
  and by InvocationBuilder (NestedParseError degrades to an opaque argument)

PROPAGATION:
    UnknownDialectError        → fatal to the request
    UnterminatedQuoteError     → fatal (malformed input)
    UnterminatedHeredocError   → fatal (malformed input)
    NestedParseError           → recoverable: outer invocation still succeeds
    UnsupportedConstructError  → fatal to emission (cmd literal quote has a fallback)
    NestingTooDeepError        → fatal, configurable threshold
"""
from typing import Dict, List, Optional, Sequence


class TranslationError(Exception):
    """
    Base class for every transpiler failure.

    Attributes:
        kind: Stable machine-readable error kind
        position: Character index of the offending construct (or None)
        byte_offset: UTF-8 byte offset matching position (or None)
    """

    kind = 'translation_error'

    def __init__(self, message: str, position: Optional[int] = None,
                 text: Optional[str] = None):
        self.message = message
        self.position = position
        self.byte_offset = position
        if position is not None and text is not None:
            self.byte_offset = len(text[:position].encode('utf-8'))
        super().__init__(self._format())

    def _format(self) -> str:
        if self.position is None:
            return self.message
        return f"{self.message} (offset {self.byte_offset})"

    def to_dict(self) -> Dict:
        """Structured form for callers that log or serialize errors"""
        return {
            'kind': self.kind,
            'message': self.message,
            'position': self.position,
            'byte_offset': self.byte_offset,
        }


class UnknownDialectError(TranslationError):
    """Requested dialect is not one of the supported set"""

    kind = 'unknown_dialect'

    def __init__(self, name: str, supported: Sequence[str] = ()):
        self.name = name
        message = f"Unknown dialect: {name!r}"
        if supported:
            message += f" (supported: {', '.join(supported)})"
        super().__init__(message)


class UnterminatedQuoteError(TranslationError):
    """A quote, substitution or block comment reached end of input"""

    kind = 'unterminated_quote'

    def __init__(self, delimiter: str, position: int, text: Optional[str] = None):
        self.delimiter = delimiter
        super().__init__(f"Unterminated {delimiter} opened", position, text)


class UnterminatedHeredocError(TranslationError):
    """A here-doc or here-string body never met its closing marker"""

    kind = 'unterminated_heredoc'

    def __init__(self, delimiter: str, position: int, text: Optional[str] = None):
        self.delimiter = delimiter
        super().__init__(f"Unterminated here-doc {delimiter!r} opened", position, text)


class NestedParseError(TranslationError):
    """
    A nested command string failed to tokenize under its inferred dialect.

    Never aborts a translation: the builder records it and keeps the
    argument as opaque literal text.
    """

    kind = 'nested_parse_error'

    def __init__(self, path: Sequence[str], cause: TranslationError):
        self.path: List[str] = list(path)
        self.cause = cause
        super().__init__(
            f"Nested command under {' > '.join(self.path)} left unparsed: {cause.message}",
            cause.position,
        )
        self.byte_offset = cause.byte_offset

    def to_dict(self) -> Dict:
        data = super().to_dict()
        data['path'] = list(self.path)
        data['cause'] = self.cause.to_dict()
        return data


class UnsupportedConstructError(TranslationError):
    """The target dialect has no rendering for a construct"""

    kind = 'unsupported_construct'

    def __init__(self, construct: str, dialect: str, detail: str = '',
                 position: Optional[int] = None):
        self.construct = construct
        self.dialect = dialect
        message = f"{dialect} has no equivalent for {construct}"
        if detail:
            message += f": {detail}"
        super().__init__(message, position)


class NestingTooDeepError(TranslationError):
    """Launcher nesting exceeded the configured maximum depth"""

    kind = 'nesting_too_deep'

    def __init__(self, depth: int, max_depth: int, path: Sequence[str] = ()):
        self.depth = depth
        self.max_depth = max_depth
        self.path: List[str] = list(path)
        super().__init__(
            f"Nesting depth {depth} exceeds maximum {max_depth}"
            + (f" ({' > '.join(self.path)})" if self.path else '')
        )

    def to_dict(self) -> Dict:
        data = super().to_dict()
        data['depth'] = self.depth
        data['max_depth'] = self.max_depth
        data['path'] = list(self.path)
        return data
