"""
Command-line interface: shell-transpile

Examples:
    shell-transpile --from bash --to powershell 'echo "Value: $var"'
    echo 'ssh host "ls $HOME"' | shell-transpile --from bash --to fish -
    shell-transpile --from bash --to bash --tree "bash -c 'echo hi'"

Exit status: 0 on success (degraded nested parses only warn), 1 when the
translation fails.
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from .constants import DEFAULT_MAX_DEPTH, DEFAULT_REMOTE_DIALECT, SUPPORTED_DIALECTS
from .dialect_translator import DialectTranslator, format_invocation_tree, invocation_summary
from .errors import TranslationError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='shell-transpile',
        description="Translate a shell command between bash, zsh, fish, powershell and cmd",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Dialects: {', '.join(SUPPORTED_DIALECTS)} (aliases: sh, pwsh, batch)
cmd output is written for batch files (.bat/.cmd), where %%%% is one percent sign.

Examples:
  %(prog)s --from bash --to powershell 'echo "Value: $var"'
  %(prog)s --from bash --to cmd - < command.txt
  %(prog)s --from bash --to bash --tree "ssh host 'bash -c \\"echo hi\\"'"
        """
    )

    parser.add_argument(
        "command",
        nargs="?",
        default="-",
        help="Command string to translate ('-' or omitted reads stdin)"
    )

    parser.add_argument(
        "--from",
        dest="source",
        required=True,
        help="Dialect the command is written in"
    )

    parser.add_argument(
        "--to",
        dest="target",
        required=True,
        help="Dialect to emit"
    )

    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f"Maximum launcher nesting depth (default: {DEFAULT_MAX_DEPTH})"
    )

    parser.add_argument(
        "--remote-dialect",
        default=DEFAULT_REMOTE_DIALECT,
        help=f"Dialect presumed for ssh command strings (default: {DEFAULT_REMOTE_DIALECT})"
    )

    output = parser.add_mutually_exclusive_group()
    output.add_argument(
        "--tree",
        action="store_true",
        help="Print the parsed invocation tree after the translation"
    )
    output.add_argument(
        "--json",
        action="store_true",
        help="Print the result and an invocation summary as JSON"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    return parser


def read_command(command: str) -> str:
    """Command text from the argument, or stdin for '-'"""
    if command != '-':
        return command
    text = sys.stdin.read()
    if text.endswith('\n'):
        text = text[:-1]
    return text


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI usage"""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(name)s - %(levelname)s - %(message)s',
    )
    logger = logging.getLogger('shell-transpile')

    command = read_command(args.command)

    try:
        translator = DialectTranslator(max_depth=args.max_depth,
                                       remote_dialect=args.remote_dialect)
    except TranslationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result = translator.translate(command, args.source, args.target)

    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    if args.json:
        data = result.to_dict()
        if result.invocation is not None:
            data['summary'] = invocation_summary(result.invocation)
        print(json.dumps(data, indent=2))
    elif result.ok:
        print(result.output)
        if args.tree:
            print(format_invocation_tree(result.invocation))

    if not result.ok:
        logger.debug(f"Failed command: {command!r}")
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
