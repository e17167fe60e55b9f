"""Tests for launcher recognition and nested command parsing"""

import logging
import re

import pytest

from shell_transpiler.constants import PLACEHOLDER_CLOSE, PLACEHOLDER_OPEN
from shell_transpiler.errors import NestingTooDeepError
from shell_transpiler.invocation_builder import (
    format_invocation_tree,
    invocation_summary,
    literal_value,
    parse_invocation,
    program_name,
)
from shell_transpiler.shell_lexer import Expandable, RawUnquoted, VariableRef, tokenize


def _launchers(invocation):
    return [child.launcher for child in invocation.nested]


def _nested_bash(command, levels):
    for _ in range(levels):
        escaped = re.sub(r'([\\"$`])', r'\\\1', command)
        command = f'bash -c "{escaped}"'
    return command


# ============================================================================
# LAUNCHERS
# ============================================================================

# (command, outer dialect, launcher, nested dialect)
LAUNCHER_CASES = [
    ("ssh user@host 'echo \"hi\"'", 'bash', 'ssh', 'bash'),
    ("ssh -p 2222 -i key.pem host 'uptime'", 'bash', 'ssh', 'bash'),
    ("ssh -tt host 'top'", 'bash', 'ssh', 'bash'),
    ("bash -c 'echo $HOME'", 'bash', 'bash -c', 'bash'),
    ("bash -lc 'make'", 'bash', 'bash -c', 'bash'),
    ("/bin/sh -e -c 'ls'", 'bash', 'sh -c', 'bash'),
    ("zsh -c 'print -r hi'", 'bash', 'zsh -c', 'zsh'),
    ("fish -c 'echo (date)'", 'bash', 'fish -c', 'fish'),
    ('powershell -NoProfile -Command "Get-ChildItem"', 'bash', 'powershell -Command', 'powershell'),
    ("pwsh -c 'Get-Date'", 'bash', 'pwsh -Command', 'powershell'),
    ('cmd /c "dir & echo done"', 'bash', 'cmd /c', 'cmd'),
    ('cmd.exe /d /s /c "dir"', 'powershell', 'cmd /c', 'cmd'),
    ("sudo -u deploy bash -c 'whoami'", 'bash', 'sudo bash -c', 'bash'),
    ("sudo docker exec -it web sh -c 'ls /'", 'bash', 'sudo docker exec sh -c', 'bash'),
    ("kubectl exec -it pod -- sh -c 'ls'", 'bash', 'kubectl exec sh -c', 'bash'),
    ("env FOO=1 bash -c 'echo $FOO'", 'bash', 'env bash -c', 'bash'),
    ("nohup bash -c 'sleep 1' &", 'bash', 'nohup bash -c', 'bash'),
    ("FOO=1 bash -c 'echo hi'", 'bash', 'bash -c', 'bash'),
    ("bash -c 'echo hi'", 'fish', 'bash -c', 'bash'),
    ("bash -c 'echo hi'", 'powershell', 'bash -c', 'bash'),
    ('bash -c "echo hi"', 'cmd', 'bash -c', 'bash'),
]


@pytest.mark.parametrize("command,dialect,launcher,nested_dialect", LAUNCHER_CASES)
def test_recognized_launchers(command, dialect, launcher, nested_dialect):
    invocation = parse_invocation(command, dialect)
    assert _launchers(invocation) == [launcher]
    child = invocation.nested[0]
    assert child.dialect.name == nested_dialect
    assert child.invocation.depth == 1
    assert child.invocation.path == [launcher]


@pytest.mark.parametrize("command,dialect", [
    ('ssh host ls -la', 'bash'),
    ('ssh host', 'bash'),
    ('bash script.sh', 'bash'),
    ('bash -c', 'bash'),
    ("bash -- -c 'x'", 'bash'),
    ('bash -c $CMD', 'bash'),
    ('$SHELL -c "ls"', 'bash'),
    ('powershell -EncodedCommand ZQBjAGgAbwA=', 'bash'),
    ('powershell -Command Get-Date -Verbose', 'bash'),
    ('cmd /c dir /s', 'bash'),
    ("docker run img sh -c 'ls'", 'bash'),
    ("echo bash -c 'ls'", 'bash'),
    ("kubectl exec pod sh -c 'ls'", 'bash'),
])
def test_ambiguous_or_unknown_usage_stays_opaque(command, dialect):
    invocation = parse_invocation(command, dialect)
    assert invocation.nested == []
    assert invocation.diagnostics == []


def test_launcher_after_separator_and_redirect():
    invocation = parse_invocation("echo a > log; bash -c 'ls' 2>&1 | ssh h 'cat'", 'bash')
    assert _launchers(invocation) == ['bash -c', 'ssh']


def test_redirect_target_is_not_a_program():
    invocation = parse_invocation("cat > bash -c 'x'", 'bash')
    assert invocation.nested == []


def test_remote_dialect_is_configurable():
    invocation = parse_invocation("ssh host 'echo $argv'", 'bash', remote_dialect='fish')
    assert invocation.nested[0].dialect.name == 'fish'


@pytest.mark.parametrize("word,expected", [
    ('bash', 'bash'),
    ('/usr/bin/bash', 'bash'),
    ('C:\\Windows\\System32\\CMD.EXE', 'cmd'),
    ('pwsh.exe', 'pwsh'),
])
def test_program_name(word, expected):
    assert program_name(word) == expected


# ============================================================================
# NESTED SOURCE
# ============================================================================

def test_nested_source_is_the_outer_value():
    invocation = parse_invocation("bash -c 'echo '\\''quoted'\\'''", 'bash')
    child = invocation.nested[0].invocation
    assert child.source_text == "echo 'quoted'"


def test_quoted_outer_expansion_becomes_interpolation():
    invocation = parse_invocation('bash -c "echo $HOME"', 'bash')
    nested = invocation.nested[0]
    placeholder = f"{PLACEHOLDER_OPEN}0{PLACEHOLDER_CLOSE}"
    assert nested.invocation.source_text == f"echo {placeholder}"
    assert [part.name for part in nested.interpolations] == ['HOME']
    assert RawUnquoted(5, placeholder) in nested.invocation.segments


def test_escaped_dollar_reaches_inner_shell():
    invocation = parse_invocation('bash -c "echo \\$HOME"', 'bash')
    nested = invocation.nested[0]
    assert nested.interpolations == ()
    refs = [seg for seg in nested.invocation.segments if isinstance(seg, VariableRef)]
    assert [ref.name for ref in refs] == ['HOME']


def test_two_levels_of_nesting():
    invocation = parse_invocation("ssh host 'bash -c \"ls $HOME\"'", 'bash')
    ssh = invocation.nested[0]
    inner = ssh.invocation.nested[0]
    assert inner.launcher == 'bash -c'
    assert inner.invocation.path == ['ssh', 'bash -c']
    assert inner.invocation.depth == 2
    assert [part.name for part in inner.interpolations] == ['HOME']
    assert invocation.deepest_level() == 2


@pytest.mark.parametrize("command", [
    f"bash -c 'echo {PLACEHOLDER_OPEN}0{PLACEHOLDER_CLOSE}'",
    f'bash -c "echo {PLACEHOLDER_CLOSE} $HOME"',
])
def test_argument_holding_placeholder_characters_stays_opaque(command):
    invocation = parse_invocation(command, 'bash')
    assert invocation.nested == []
    assert invocation.diagnostics == []


def test_unterminated_nested_string_degrades(caplog):
    with caplog.at_level(logging.WARNING):
        invocation = parse_invocation("bash -c 'echo \"oops'", 'bash')
    assert invocation.nested == []
    diagnostics = invocation.all_diagnostics()
    assert len(diagnostics) == 1
    assert diagnostics[0].path == ['bash -c']
    assert diagnostics[0].cause.kind == 'unterminated_quote'
    assert 'left unparsed' in caplog.text


def test_degraded_parse_deep_in_the_tree():
    invocation = parse_invocation("ssh host 'bash -c \"echo \\\"x\"'", 'bash')
    assert invocation.diagnostics == []
    diagnostics = invocation.all_diagnostics()
    assert [diag.path for diag in diagnostics] == [['ssh', 'bash -c']]


def test_nesting_depth_limit():
    command = _nested_bash('echo hi', 9)
    with pytest.raises(NestingTooDeepError) as excinfo:
        parse_invocation(command, 'bash', max_depth=8)
    assert excinfo.value.depth == 9
    assert excinfo.value.max_depth == 8
    assert len(excinfo.value.path) == 9

    invocation = parse_invocation(command, 'bash', max_depth=9)
    assert invocation.deepest_level() == 9


def test_max_depth_zero_rejects_any_launcher():
    with pytest.raises(NestingTooDeepError):
        parse_invocation("bash -c 'ls'", 'bash', max_depth=0)
    assert parse_invocation('ls -la', 'bash', max_depth=0).nested == []


# ============================================================================
# SIGNATURES
# ============================================================================

@pytest.mark.parametrize("first,second,dialect", [
    ("echo 'a'b", 'echo ab', 'bash'),
    ('echo "a b"', "echo 'a b'", 'bash'),
    ('echo a\\ b', "echo 'a b'", 'bash'),
    ("echo 'it''s'", 'echo "it\'s"', 'powershell'),
    ('echo $x', 'echo "$x"', 'zsh'),
    ("ssh h 'ls'", 'ssh h "ls"', 'bash'),
])
def test_equivalent_spellings_share_a_signature(first, second, dialect):
    assert (parse_invocation(first, dialect).signature()
            == parse_invocation(second, dialect).signature())


@pytest.mark.parametrize("first,second,dialect", [
    ('echo $x', 'echo "$x"', 'bash'),
    ('echo a b', "echo 'a b'", 'bash'),
    ('echo $x', "echo '$x'", 'bash'),
    ("bash -c 'ls'", "bash -c 'ls -la'", 'bash'),
])
def test_different_structures_differ(first, second, dialect):
    assert (parse_invocation(first, dialect).signature()
            != parse_invocation(second, dialect).signature())


def test_literal_value():
    segments = tokenize("'a'\"b\"\\c", 'bash')
    assert literal_value(segments) == 'abc'
    assert literal_value(tokenize('"a$x"', 'bash')) is None
    assert isinstance(tokenize('"a"', 'bash')[0], Expandable)


# ============================================================================
# UTILITIES
# ============================================================================

def test_format_invocation_tree():
    invocation = parse_invocation("ssh user@host 'echo \"hi\"' # done", 'bash')
    tree = format_invocation_tree(invocation)
    lines = tree.split('\n')
    assert lines[0] == 'Invocation[bash] depth=0'
    assert "  Nested 'ssh' -> bash (words 4..5)" in lines
    assert '    Invocation[bash] depth=1' in lines
    assert "  Comment(' done')" in lines


def test_invocation_summary():
    invocation = parse_invocation("ssh host 'bash -c \"ls $HOME $(pwd)\"'", 'bash')
    summary = invocation_summary(invocation)
    assert summary['dialect'] == 'bash'
    assert summary['depth'] == 0
    assert summary['launchers'] == ['ssh', 'ssh > bash -c']
    assert summary['max_depth'] == 2
    assert summary['diagnostics'] == []
    assert summary['variables'] == ['HOME']
    assert summary['substitutions'] == 1
