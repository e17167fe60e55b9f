"""Tests for RequoteEmitter output per target dialect"""

import pytest

from shell_transpiler.errors import UnsupportedConstructError
from shell_transpiler.invocation_builder import parse_invocation
from shell_transpiler.requote_emitter import RequoteEmitter, emit


def _emit(command, source, target, **kwargs):
    return emit(parse_invocation(command, source), target, **kwargs)


# ============================================================================
# WORDS
# ============================================================================

# (command, source, target, expected)
WORD_CASES = [
    ('echo "Value: $var"', 'bash', 'powershell', 'echo "Value: $var"'),
    ("echo 'it'\\''s'", 'bash', 'powershell', "echo 'it''s'"),
    ("echo 'it'\\''s'", 'bash', 'fish', "echo it\\'s"),
    ("echo \"it's\"", 'bash', 'fish', "echo \"it's\""),
    ("Write-Output 'it''s'", 'powershell', 'bash', "Write-Output 'it'\\''s'"),
    ("echo 'a b'", 'bash', 'cmd', 'echo "a b"'),
    ("echo 'a&b'", 'bash', 'cmd', 'echo a^&b'),
    ("echo 'x y&z'", 'bash', 'cmd', 'echo "x y&z"'),
    ('echo 50%', 'bash', 'cmd', 'echo 50%%'),
    ("echo 'say \"hi\"'", 'bash', 'cmd', 'echo "say ""hi"""'),
    ("echo 'a'\"b\"", 'bash', 'powershell', 'echo ab'),
    ('echo pre"$x"', 'bash', 'powershell', 'echo "pre$x"'),
    ('cp $src ${dest}.bak', 'bash', 'powershell', 'cp $src "$dest.bak"'),
    ('echo "${name}suffix"', 'bash', 'powershell', 'echo "${name}suffix"'),
    ('echo "${name}suffix"', 'bash', 'fish', 'echo "$name""suffix"'),
    ('echo ${name}_x', 'bash', 'fish', 'echo {$name}_x'),
    ('echo "${name}suffix"', 'bash', 'bash', 'echo "${name}suffix"'),
    ('echo $HOME/bin', 'bash', 'cmd', 'echo %HOME%/bin'),
    ('echo $env:USERPROFILE', 'powershell', 'bash', 'echo $USERPROFILE'),
    ('echo %USERPROFILE%\\Desktop', 'cmd', 'powershell', 'echo "$USERPROFILE\\Desktop"'),
    ('Get-ChildItem | Where-Object { $_.Length -gt 1kb }', 'powershell', 'powershell',
     'Get-ChildItem | Where-Object { $_.Length -gt 1kb }'),
    ('echo a\\ b', 'bash', 'powershell', "echo 'a b'"),
    ('echo a\\ b', 'bash', 'zsh', 'echo a\\ b'),
    ("printf $'a\\x1bb'", 'bash', 'zsh', "printf $'a\\eb'"),
    ("printf $'tab\\there'", 'bash', 'powershell', "printf 'tab\there'"),
    # adjacent pieces meeting on a doubled-quote escape are merged
    ("echo a#'b c'", 'powershell', 'powershell', "echo 'a#b c'"),
    ("echo 'a b'\"c\"", 'bash', 'cmd', 'echo "a bc"'),
    ("echo \"a b\"'c d'", 'bash', 'cmd', 'echo "a bc d"'),
    ("echo \"$x\"' y'", 'bash', 'cmd', 'echo "%x% y"'),
    ("echo 'a b'\\ c", 'bash', 'cmd', 'echo "a b c"'),
    ("echo a'b c'd", 'bash', 'cmd', 'echo a"b c"d'),
]


@pytest.mark.parametrize("command,source,target,expected", WORD_CASES)
def test_word_rendering(command, source, target, expected):
    assert _emit(command, source, target) == expected


# ============================================================================
# SPECIAL PARAMETERS AND SUBSTITUTIONS
# ============================================================================

@pytest.mark.parametrize("command,source,target,expected", [
    ('echo $?', 'bash', 'powershell', 'echo $LASTEXITCODE'),
    ('echo $?', 'bash', 'fish', 'echo $status'),
    ('echo $?', 'bash', 'cmd', 'echo %ERRORLEVEL%'),
    ('echo $?', 'zsh', 'bash', 'echo $?'),
    ('echo "$1"', 'bash', 'powershell', 'echo "$($args[0])"'),
    ('echo "$1"', 'bash', 'fish', 'echo "$argv[1]"'),
    ('echo "$1"', 'bash', 'cmd', 'echo "%1"'),
    ('echo "$@"', 'bash', 'fish', 'echo "$argv"'),
    ('echo $status', 'fish', 'bash', 'echo $?'),
    ('echo $LASTEXITCODE', 'powershell', 'cmd', 'echo %ERRORLEVEL%'),
    ('echo %ERRORLEVEL%', 'cmd', 'powershell', 'echo $LASTEXITCODE'),
    ('echo $(date)', 'bash', 'powershell', 'echo $(date)'),
    ('echo "now: $(date)"', 'bash', 'fish', 'echo "now: $(date)"'),
    ('echo (date)', 'fish', 'bash', 'echo $(date)'),
    ('echo `date`', 'bash', 'zsh', 'echo `date`'),
    ('echo $((1+2))', 'bash', 'zsh', 'echo $((1+2))'),
    ('echo ${x:-default}', 'bash', 'zsh', 'echo ${x:-default}'),
])
def test_expansion_rendering(command, source, target, expected):
    assert _emit(command, source, target) == expected


@pytest.mark.parametrize("command,source,target", [
    ('echo $$', 'bash', 'cmd'),
    ('echo $(date)', 'bash', 'cmd'),
    ('echo $((1+2))', 'bash', 'powershell'),
    ('echo ${x:-default}', 'bash', 'fish'),
    ('echo %x:~0,5%', 'cmd', 'bash'),
    ("echo $'a\\nb'", 'bash', 'cmd'),
    ('a ;; b', 'bash', 'powershell'),
])
def test_constructs_without_target_equivalent(command, source, target):
    with pytest.raises(UnsupportedConstructError):
        _emit(command, source, target)


# ============================================================================
# OPERATORS, COMMENTS, WHITESPACE
# ============================================================================

@pytest.mark.parametrize("command,source,target,expected", [
    ('a; b', 'bash', 'cmd', 'a& b'),
    ('a && b || c', 'bash', 'fish', 'a && b || c'),
    ('a |& b', 'bash', 'fish', 'a &| b'),
    ('ls # list', 'bash', 'cmd', 'ls & REM list'),
    ('# only', 'bash', 'cmd', 'REM only'),
    ('REM note', 'cmd', 'powershell', '# note'),
    ('<# a\nb #>', 'powershell', 'bash', '# a\n#b '),
    ('echo a\r\necho b', 'bash', 'bash', 'echo a\necho b'),
    ('echo a\\\nb', 'bash', 'bash', 'echo ab'),
])
def test_operators_and_comments(command, source, target, expected):
    assert _emit(command, source, target) == expected


# ============================================================================
# HERE-DOCS
# ============================================================================

@pytest.mark.parametrize("command,source,target,expected", [
    ("cat <<'EOF'\nhello $x\nEOF\n", 'bash', 'powershell', "cat @'\nhello $x\n'@\n"),
    ('cat <<EOF\nhello\nEOF\n', 'bash', 'powershell', 'cat @"\nhello\n"@\n'),
    ("cat <<'EOF'\nhello\nEOF\necho done", 'bash', 'bash', "cat <<'EOF'\nhello\nEOF\necho done"),
    ('cat <<-EOF\n\thi\n\tEOF\n', 'bash', 'zsh', 'cat <<EOF\nhi\nEOF'),
    ('cat <<EOF | grep x\nhi\nEOF', 'bash', 'bash', 'cat <<EOF | grep x\nhi\nEOF'),
    ("cat <<A <<'B'\na\nA\nb\nB\n", 'bash', 'bash', "cat <<A <<'B'\na\nA\nb\nB"),
    ("@'\nline\n'@", 'powershell', 'bash', "<<'EOF'\nline\nEOF"),
])
def test_heredoc_rendering(command, source, target, expected):
    assert _emit(command, source, target) == expected


@pytest.mark.parametrize("target", ['fish', 'cmd'])
def test_heredoc_without_target_equivalent(target):
    with pytest.raises(UnsupportedConstructError):
        _emit("cat <<'EOF'\nhi\nEOF\n", 'bash', target)


# ============================================================================
# NESTED COMMAND STRINGS
# ============================================================================

@pytest.mark.parametrize("command,source,target,expected", [
    ("ssh user@host 'echo \"hi\"'", 'bash', 'bash', "ssh user@host 'echo \"hi\"'"),
    ("bash -c 'echo $HOME'", 'bash', 'powershell', "bash -c 'echo $HOME'"),
    ("bash -c 'echo $HOME'", 'bash', 'cmd', 'bash -c "echo $HOME"'),
    ('bash -c "echo $HOME"', 'bash', 'powershell', 'bash -c "echo $HOME"'),
    ('bash -c "echo $HOME"', 'bash', 'fish', 'bash -c "echo $HOME"'),
    ('bash -c "echo $HOME"', 'bash', 'cmd', 'bash -c "echo %HOME%"'),
    ('bash -c "echo $?"', 'bash', 'powershell', 'bash -c "echo $LASTEXITCODE"'),
    ("bash -c \"echo 'a b'\"", 'bash', 'bash', "bash -c \"echo 'a b'\""),
    ("bash -c \"echo 'a b'\"", 'bash', 'powershell', "bash -c \"echo 'a b'\""),
    ('cmd /c "echo %PATH%"', 'bash', 'bash', "cmd /c 'echo %PATH%'"),
    ("powershell -Command 'Get-Date'", 'bash', 'cmd', 'powershell -Command "Get-Date"'),
    ("bash -c 'echo \"oops'", 'bash', 'powershell', "bash -c 'echo \"oops'"),
    ('ssh host "bash -c \'echo \\$HOME\'"', 'bash', 'bash',
     "ssh host 'bash -c '\\''echo $HOME'\\'''"),
])
def test_nested_rendering(command, source, target, expected):
    assert _emit(command, source, target) == expected


def test_nested_override_changes_inner_dialect():
    output = _emit("ssh host 'echo $?'", 'bash', 'bash',
                   nested_overrides={'ssh': 'powershell'})
    assert output == "ssh host 'echo $LASTEXITCODE'"


def test_escaping_compounds_per_level():
    command = "bash -c 'ssh host \"ls \\\"$DIR\\\"\"'"
    inner = parse_invocation(command, 'bash').nested[0]
    assert inner.invocation.nested[0].launcher == 'ssh'
    assert _emit(command, 'bash', 'bash') == command
    assert _emit(command, 'bash', 'powershell') == command


def test_emit_does_not_mutate_invocation():
    invocation = parse_invocation("ssh h 'bash -c \"echo $x\"' # c", 'bash')
    before = invocation.signature()
    emitter = RequoteEmitter()
    first = emitter.emit(invocation, 'powershell')
    second = emitter.emit(invocation, 'powershell')
    assert first == second
    assert invocation.signature() == before
