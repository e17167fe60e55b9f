"""Tests for the per-dialect rendering rules"""

import pytest

from shell_transpiler.errors import UnsupportedConstructError
from shell_transpiler.shell_lexer import Comment, Substitution, VariableRef
from shell_transpiler.translation_table import (
    ConstructKind,
    has_rule,
    lookup,
    special_parameter_meaning,
)


# ============================================================================
# QUOTING
# ============================================================================

@pytest.mark.parametrize("target,expected", [
    ('bash', "'it'\\''s'"),
    ('zsh', "'it'\\''s'"),
    ('fish', "'it\\'s'"),
    ('powershell', "'it''s'"),
])
def test_literal_quote_embedded_single_quote(target, expected):
    assert lookup(ConstructKind.LITERAL_QUOTE, 'bash', target).render("it's") == expected


def test_posix_literal_uses_ansi_c_for_control_characters():
    rule = lookup(ConstructKind.LITERAL_QUOTE, 'bash', 'bash')
    assert rule.render('a\nb') == "'a\nb'"
    assert rule.render('esc\x1b[0m') == "$'esc\\e[0m'"
    assert rule.render("it's\a") == "$'it\\'s\\a'"


def test_fish_literal_escapes_backslash():
    assert lookup(ConstructKind.LITERAL_QUOTE, 'bash', 'fish').render('C:\\x') == "'C:\\\\x'"


def test_powershell_literal_doubles_typographic_quotes():
    rule = lookup(ConstructKind.LITERAL_QUOTE, 'bash', 'powershell')
    assert rule.render('don’t') == "'don’’t'"


def test_cmd_has_no_literal_quote():
    with pytest.raises(UnsupportedConstructError) as excinfo:
        lookup(ConstructKind.LITERAL_QUOTE, 'bash', 'cmd')
    assert excinfo.value.dialect == 'cmd'
    assert not has_rule(ConstructKind.LITERAL_QUOTE, 'bash', 'cmd')
    assert has_rule(ConstructKind.EXPANDABLE_QUOTE, 'bash', 'cmd')


@pytest.mark.parametrize("target,text,expected", [
    ('bash', 'cost $5 "now" `x` \\', 'cost \\$5 \\"now\\" \\`x\\` \\\\'),
    ('fish', 'cost $5 "now" \\', 'cost \\$5 \\"now\\" \\\\'),
    ('powershell', 'cost $5 "now" `x`', 'cost `$5 `"now`" ``x``'),
    ('powershell', 'tab\there\r', 'tab\there`r'),
    ('cmd', '50% "off"', '50%% ""off""'),
])
def test_expandable_escape(target, text, expected):
    rule = lookup(ConstructKind.EXPANDABLE_QUOTE, 'bash', target)
    assert rule.escape(text) == expected
    assert rule.render(expected) == f'"{expected}"'


def test_cmd_quoted_string_cannot_hold_newline():
    rule = lookup(ConstructKind.EXPANDABLE_QUOTE, 'bash', 'cmd')
    with pytest.raises(UnsupportedConstructError):
        rule.escape('line1\nline2')


@pytest.mark.parametrize("target,char,expected", [
    ('bash', ' ', '\\ '),
    ('bash', '\n', None),
    ('fish', '\n', '\\n'),
    ('powershell', '$', '`$'),
    ('powershell', '\0', '`0'),
    ('cmd', '&', '^&'),
    ('cmd', '%', '%%'),
    ('cmd', ' ', None),
])
def test_escape(target, char, expected):
    assert lookup(ConstructKind.ESCAPE, 'bash', target).render(char) == expected


# ============================================================================
# VARIABLES
# ============================================================================

@pytest.mark.parametrize("ref,expected", [
    (VariableRef(0, '?', 'bash'), ('exit_status', 0)),
    (VariableRef(0, '@', 'zsh'), ('all_args', 0)),
    (VariableRef(0, '1', 'bash'), ('positional', 1)),
    (VariableRef(0, 'status', 'fish'), ('exit_status', 0)),
    (VariableRef(0, 'argv', 'fish', index='2'), ('positional', 2)),
    (VariableRef(0, 'LASTEXITCODE', 'powershell'), ('exit_status', 0)),
    (VariableRef(0, 'args', 'powershell', index='0'), ('positional', 1)),
    (VariableRef(0, 'ERRORLEVEL', 'cmd'), ('exit_status', 0)),
    (VariableRef(0, '3', 'cmd'), ('positional', 3)),
    (VariableRef(0, 'HOME', 'bash'), None),
    (VariableRef(0, 'status', 'bash'), None),
    (VariableRef(0, 'x', 'bash', expression='x:-y'), None),
    (VariableRef(0, 'pid', 'powershell', scope='env'), None),
])
def test_special_parameter_meaning(ref, expected):
    assert special_parameter_meaning(ref) == expected


@pytest.mark.parametrize("target,meaning,position,quoted,expected", [
    ('bash', 'exit_status', 0, False, '$?'),
    ('powershell', 'exit_status', 0, False, '$LASTEXITCODE'),
    ('fish', 'exit_status', 0, False, '$status'),
    ('cmd', 'exit_status', 0, False, '%ERRORLEVEL%'),
    ('powershell', 'all_args', 0, False, '$args'),
    ('fish', 'all_args', 0, False, '$argv'),
    ('cmd', 'all_args', 0, False, '%*'),
    ('powershell', 'pid', 0, False, '$PID'),
    ('fish', 'pid', 0, False, '$fish_pid'),
    ('bash', 'positional', 12, False, '${12}'),
    ('fish', 'positional', 1, False, '$argv[1]'),
    ('powershell', 'positional', 1, False, '$args[0]'),
    ('powershell', 'positional', 2, True, '$($args[1])'),
    ('cmd', 'positional', 9, False, '%9'),
    ('fish', 'arg_count', 0, False, '(count $argv)'),
    ('fish', 'arg_count', 0, True, '$(count $argv)'),
])
def test_special_parameter_rendering(target, meaning, position, quoted, expected):
    rule = lookup(ConstructKind.SPECIAL_PARAMETER, 'bash', target)
    assert rule.render(meaning, position, quoted) == expected


@pytest.mark.parametrize("target,meaning,position", [
    ('cmd', 'pid', 0),
    ('cmd', 'positional', 10),
    ('powershell', 'last_background_pid', 0),
])
def test_special_parameter_without_equivalent(target, meaning, position):
    rule = lookup(ConstructKind.SPECIAL_PARAMETER, 'bash', target)
    with pytest.raises(UnsupportedConstructError):
        rule.render(meaning, position, False)


@pytest.mark.parametrize("target,ref,quoted,next_text,expected", [
    ('bash', VariableRef(0, 'x', 'fish'), False, '', '$x'),
    ('bash', VariableRef(0, 'x', 'fish'), False, 'y', '${x}'),
    ('bash', VariableRef(0, 'x', 'bash', braced=True), True, '', '${x}'),
    ('bash', VariableRef(0, 'a', 'bash', index='1'), False, '', '${a[1]}'),
    ('fish', VariableRef(0, 'x', 'bash'), True, 'y', '$x""'),
    ('fish', VariableRef(0, 'x', 'bash'), False, 'y', '{$x}'),
    ('fish', VariableRef(0, 'a', 'fish', index='2'), False, '', '$a[2]'),
    ('powershell', VariableRef(0, 'PATH', 'powershell', scope='env'), False, '', '$env:PATH'),
    ('powershell', VariableRef(0, 'x', 'bash'), True, 'y', '${x}'),
    ('powershell', VariableRef(0, 'x', 'bash'), True, ':', '${x}'),
    ('powershell', VariableRef(0, 'my var', 'powershell'), False, '', '${my var}'),
    ('powershell', VariableRef(0, 'a', 'powershell', index='0'), True, '', '$($a[0])'),
    ('cmd', VariableRef(0, 'x', 'bash'), False, '', '%x%'),
    ('cmd', VariableRef(0, '~dp0', 'cmd'), False, '', '%~dp0'),
    ('cmd', VariableRef(0, 'PATH', 'powershell', scope='env'), False, '', '%PATH%'),
])
def test_variable_rendering(target, ref, quoted, next_text, expected):
    rule = lookup(ConstructKind.VARIABLE, ref.source, target)
    assert rule.render(ref, quoted, next_text) == expected


def test_variable_name_without_target_spelling():
    rule = lookup(ConstructKind.VARIABLE, 'powershell', 'bash')
    with pytest.raises(UnsupportedConstructError):
        rule.render(VariableRef(0, 'my var', 'powershell'), False, '')
    with pytest.raises(UnsupportedConstructError):
        lookup(ConstructKind.VARIABLE, 'bash', 'cmd').render(
            VariableRef(0, 'a', 'bash', index='1'), False, '')


def test_parameter_expansion_only_within_its_family():
    ref = VariableRef(0, 'x', 'bash', braced=True, expression='x:-default')
    assert lookup(ConstructKind.PARAMETER_EXPANSION, 'bash', 'zsh').render(ref, False) == '${x:-default}'
    for target in ('fish', 'powershell', 'cmd'):
        assert not has_rule(ConstructKind.PARAMETER_EXPANSION, 'bash', target)
    cmd_ref = VariableRef(0, 'var', 'cmd', expression='var:~0,5')
    assert lookup(ConstructKind.PARAMETER_EXPANSION, 'cmd', 'cmd').render(cmd_ref, False) == '%var:~0,5%'
    assert not has_rule(ConstructKind.PARAMETER_EXPANSION, 'cmd', 'bash')


# ============================================================================
# SUBSTITUTIONS
# ============================================================================

@pytest.mark.parametrize("target,sub,quoted,expected", [
    ('bash', Substitution(0, 'date', 'backtick'), False, '`date`'),
    ('bash', Substitution(0, 'date', 'fish'), False, '$(date)'),
    ('fish', Substitution(0, 'date'), False, '$(date)'),
    ('fish', Substitution(0, 'date', 'fish'), False, '(date)'),
    ('fish', Substitution(0, 'date', 'fish'), True, '$(date)'),
    ('powershell', Substitution(0, 'Get-Date'), True, '$(Get-Date)'),
    ('powershell', Substitution(0, '1, 2', 'array'), False, '@(1, 2)'),
    ('zsh', Substitution(0, '1 + 2', 'arithmetic'), False, '$((1 + 2))'),
])
def test_substitution_rendering(target, sub, quoted, expected):
    kind = (ConstructKind.ARITHMETIC if sub.style == 'arithmetic'
            else ConstructKind.COMMAND_SUBSTITUTION)
    assert lookup(kind, 'bash', target).render(sub, quoted) == expected


@pytest.mark.parametrize("kind,target", [
    (ConstructKind.COMMAND_SUBSTITUTION, 'cmd'),
    (ConstructKind.ARITHMETIC, 'fish'),
    (ConstructKind.ARITHMETIC, 'powershell'),
    (ConstructKind.ARITHMETIC, 'cmd'),
])
def test_missing_substitution_rules(kind, target):
    with pytest.raises(UnsupportedConstructError):
        lookup(kind, 'bash', target)


# ============================================================================
# HERE-DOCS
# ============================================================================

def test_posix_heredoc_defers_body():
    rule = lookup(ConstructKind.HEREDOC_LITERAL, 'bash', 'bash')
    assert rule.render('hello\n', 'EOF') == ("<<'EOF'", 'hello\nEOF')
    rule = lookup(ConstructKind.HEREDOC_EXPANDABLE, 'bash', 'zsh')
    assert rule.render('hi $x\n', None) == ('<<EOF', 'hi $x\nEOF')


def test_posix_heredoc_delimiter_avoids_body_lines():
    rule = lookup(ConstructKind.HEREDOC_LITERAL, 'powershell', 'bash')
    assert rule.render('EOF\nEOF_\n', 'EOF') == ("<<'EOF__'", 'EOF\nEOF_\nEOF__')


def test_powershell_here_string_is_inline():
    rule = lookup(ConstructKind.HEREDOC_LITERAL, 'bash', 'powershell')
    assert rule.render('line\n', 'EOF') == ("@'\nline\n'@", '')
    rule = lookup(ConstructKind.HEREDOC_EXPANDABLE, 'bash', 'powershell')
    assert rule.render('line\n', 'EOF') == ('@"\nline\n"@', '')
    with pytest.raises(UnsupportedConstructError):
        rule.render('"@ early\n', 'EOF')


@pytest.mark.parametrize("target", ['fish', 'cmd'])
def test_heredoc_unsupported(target):
    assert not has_rule(ConstructKind.HEREDOC_LITERAL, 'bash', target)
    assert not has_rule(ConstructKind.HEREDOC_EXPANDABLE, 'bash', target)


# ============================================================================
# COMMENTS AND SEPARATORS
# ============================================================================

@pytest.mark.parametrize("target,comment,at_start,expected", [
    ('bash', Comment(0, ' note'), True, '# note'),
    ('powershell', Comment(0, ' note'), False, '# note'),
    ('powershell', Comment(0, 'a\nb', marker='<#', block=True), True, '<#a\nb#>'),
    ('fish', Comment(0, 'a\nb', marker='<#', block=True), True, '#a\n#b'),
    ('cmd', Comment(0, ' note'), True, 'REM note'),
    ('cmd', Comment(0, 'note'), True, 'REM note'),
    ('cmd', Comment(0, ' note'), False, '& REM note'),
    ('cmd', Comment(0, ' note', marker='::'), True, ':: note'),
])
def test_comment_rendering(target, comment, at_start, expected):
    assert lookup(ConstructKind.COMMENT, 'bash', target).render(comment, at_start) == expected


@pytest.mark.parametrize("target,op,expected", [
    ('bash', ';', ';'),
    ('cmd', ';', '&'),
    ('cmd', '&&', '&&'),
    ('fish', '|&', '&|'),
    ('powershell', '|', '|'),
])
def test_separator_rendering(target, op, expected):
    assert lookup(ConstructKind.COMMAND_SEPARATOR, 'bash', target).render(op) == expected


@pytest.mark.parametrize("target,op", [
    ('fish', ';;'),
    ('powershell', '|&'),
    ('cmd', ';;'),
])
def test_separator_without_equivalent(target, op):
    with pytest.raises(UnsupportedConstructError):
        lookup(ConstructKind.COMMAND_SEPARATOR, 'bash', target).render(op)
