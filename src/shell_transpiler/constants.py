"""
Constants and configuration for the shell dialect transpiler
"""

# ============================================================================
# DIALECTS
# ============================================================================
# Canonical dialect names, in registry order.
SUPPORTED_DIALECTS = ('bash', 'zsh', 'fish', 'powershell', 'cmd')

# Accepted spellings → canonical name.
DIALECT_ALIASES = {
    'sh': 'bash',
    'pwsh': 'powershell',
    'ps': 'powershell',
    'ps1': 'powershell',
    'cmd.exe': 'cmd',
    'batch': 'cmd',
}

# ============================================================================
# NESTING
# ============================================================================
# Every launcher boundary (bash -c, ssh, powershell -Command ...) adds one
# level. Deeper inputs fail with NestingTooDeepError.
DEFAULT_MAX_DEPTH = 8

# Dialect presumed for the command string handed to `ssh host CMD`.
# The remote login shell is unknown at parse time.
DEFAULT_REMOTE_DIALECT = 'bash'

# Interpolated outer expansions inside a nested command string are replaced
# by PLACEHOLDER_OPEN + index + PLACEHOLDER_CLOSE while the nested string is
# tokenized. Private-use code points are plain text in every dialect.
PLACEHOLDER_OPEN = '\ue000'
PLACEHOLDER_CLOSE = '\ue001'

# ============================================================================
# LAUNCHERS
# ============================================================================
# POSIX-family shells reached through `-c`. Value is the dialect the nested
# string is parsed with.
POSIX_SHELL_LAUNCHERS = {
    'bash': 'bash',
    'sh': 'bash',
    'dash': 'bash',
    'ksh': 'bash',
    'zsh': 'zsh',
}

# Single-letter options that may share a cluster with `c` (e.g. -lc, -ec).
POSIX_SHELL_FLAG_LETTERS = set('abefhiklmnprstuvxBCEHPT')

POSIX_SHELL_LONG_FLAGS = {
    '--login', '--norc', '--noprofile', '--posix', '--restricted',
    '--noediting', '--verbose', '--',
}

POSIX_SHELL_VALUE_FLAGS = {'-o', '+o', '-O', '+O', '--rcfile', '--init-file'}

FISH_NO_VALUE_FLAGS = {
    '-l', '--login', '-i', '--interactive', '-N', '--no-config',
    '-P', '--private', '-n', '--no-execute',
}

# PowerShell parameters are case-insensitive; compared lowercased.
POWERSHELL_PROGRAMS = {'powershell', 'pwsh'}

POWERSHELL_COMMAND_FLAGS = {'-c', '-command', '/c', '/command'}

POWERSHELL_NO_VALUE_FLAGS = {
    '-noprofile', '-nop', '-noninteractive', '-noni', '-nologo',
    '-mta', '-sta', '-noexit', '-noprofileloadtime',
}

POWERSHELL_VALUE_FLAGS = {
    '-executionpolicy', '-ep', '-ex', '-exec', '-windowstyle', '-w',
    '-inputformat', '-if', '-outputformat', '-of', '-o', '-version',
    '-workingdirectory', '-wd', '-configurationname', '-settingsfile',
}

CMD_COMMAND_FLAGS = {'/c', '/k'}

# /d /q /s /a /u and /x:on style switches accepted before /c.
CMD_SWITCH_PATTERN = r'^/[a-z](:[a-z]+)?$'

# `ssh` options that consume the following word (or an attached value).
SSH_VALUE_FLAG_LETTERS = set('BbcDEeFIiJLlmOopQRSWw')
SSH_NO_VALUE_FLAG_LETTERS = set('46AaCfGgKkMNnqsTtVvXxYy')

# ============================================================================
# ARGV-FORWARDING PREFIXES
# ============================================================================
# Programs that run another program from their remaining arguments without
# re-parsing them through a shell. Skipped before launcher matching.
CONTAINER_EXEC_PROGRAMS = {'docker', 'podman'}

CONTAINER_EXEC_VALUE_FLAGS = {
    '-u', '--user', '-w', '--workdir', '-e', '--env', '--env-file',
    '--detach-keys',
}

CONTAINER_EXEC_NO_VALUE_FLAGS = {
    '-i', '-t', '-it', '-ti', '-d', '-dit', '--interactive', '--tty',
    '--privileged', '--detach',
}

KUBECTL_EXEC_VALUE_FLAGS = {'-c', '--container', '-n', '--namespace', '--context'}

KUBECTL_EXEC_NO_VALUE_FLAGS = {'-i', '-t', '-it', '-ti', '--stdin', '--tty', '-q', '--quiet'}

SUDO_VALUE_FLAGS = {'-u', '--user', '-g', '--group', '-C', '-D', '-h', '-p', '-r', '-t'}

SUDO_NO_VALUE_FLAGS = {'-E', '-H', '-n', '-S', '-k', '-A', '-b', '-P', '--preserve-env'}

ENV_VALUE_FLAGS = {'-u', '--unset', '-C', '--chdir'}

# Prefixes that take no options of their own.
PLAIN_FORWARDING_PREFIXES = {'nohup', 'exec', 'command', 'time', 'nice'}
