"""
Shell Transpiler - shell command translation between dialects

Main components:
- DialectTranslator: Main orchestrator (parse, translate, round-trip check)
- ShellLexer: Quoting-aware tokenization into segments
- InvocationBuilder: Commands, launchers and nested command strings
- RequoteEmitter: Rendering an invocation tree in a target dialect
- translation_table: Per-dialect rendering rules
- dialect_registry: Lexical rules of bash, zsh, fish, powershell and cmd
"""

from .dialect_registry import Dialect, get_dialect, supported_dialects
from .dialect_translator import (
    DialectTranslator,
    TranslationResult,
    format_invocation_tree,
    invocation_summary,
    translate,
)
from .errors import (
    NestedParseError,
    NestingTooDeepError,
    TranslationError,
    UnknownDialectError,
    UnsupportedConstructError,
    UnterminatedHeredocError,
    UnterminatedQuoteError,
)
from .invocation_builder import Invocation, InvocationBuilder, NestedInvocation
from .requote_emitter import RequoteEmitter
from .shell_lexer import ShellLexer, tokenize

__all__ = [
    'DialectTranslator',
    'TranslationResult',
    'translate',
    'format_invocation_tree',
    'invocation_summary',
    'Dialect',
    'get_dialect',
    'supported_dialects',
    'ShellLexer',
    'tokenize',
    'Invocation',
    'InvocationBuilder',
    'NestedInvocation',
    'RequoteEmitter',
    'TranslationError',
    'UnknownDialectError',
    'UnterminatedQuoteError',
    'UnterminatedHeredocError',
    'NestedParseError',
    'UnsupportedConstructError',
    'NestingTooDeepError',
]

__version__ = '0.1.0'
