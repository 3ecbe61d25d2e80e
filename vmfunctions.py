# vmfunctions.py - VMware Automation Scripts Core Functions Library
# Version 1.0 - October 2026
# Author - Automation Scripts Team
# Shared configuration, output, command execution and session context helpers

import os
import sys
import datetime
import logging
import subprocess
from configparser import ConfigParser

from Tools.session_cache import SessionCache

# Default logging level is WARNING (other levels are DEBUG, INFO, ERROR and CRITICAL)
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

#==============================================================================
# STATIC VARIABLES
#==============================================================================

home = os.path.expanduser('~')
vmroot = os.environ.get('VMSCRIPTS_HOME', f'{home}/.vmscripts')
configname = 'config.ini'
configini = os.environ.get('VMSCRIPTS_CONFIG', f'{vmroot}/{configname}')

# Credential files default to ~/.vmscripts/credentials/{server}-{username}.cred
credential_dir = f'{vmroot}/credentials'

# Log file name
logfile = 'vmscripts.log'
logfiles = [f'{vmroot}/{logfile}']

# Cache namespaces, one per target system
VCENTER = 'vCenter'
NSX = 'NSX'
VCLOUD = 'vCloud'
CREDENTIALS = 'Credentials'

request_timeout = 30
task_poll_interval = 3
task_timeout = 600
skip_certificate_check = False
interactive = False

# Config parser
config = ConfigParser()

# Console output flag (progress lines go to stderr so stdout only carries results)
console_output = True

#==============================================================================
# INITIALIZATION
#==============================================================================

def init(configfile=None, **kwargs):
    """
    Initialize the vmfunctions module

    :param configfile: Path to config.ini (defaults to VMSCRIPTS_CONFIG or ~/.vmscripts/config.ini)
    :param kwargs:
        debug - enable DEBUG logging
        console - enable/disable console progress output
    """
    global configini, credential_dir, logfiles, request_timeout
    global task_poll_interval, task_timeout, skip_certificate_check, interactive
    global console_output

    if configfile:
        configini = configfile

    if os.path.isfile(configini):
        config.read(configini)
        logger.debug(f'Read configuration from {configini}')

    credential_dir = os.path.expanduser(
        get_config_value('GENERAL', 'credential_dir', credential_dir))
    interactive = get_config_bool('GENERAL', 'interactive', interactive)
    skip_certificate_check = get_config_bool('GENERAL', 'skip_certificate_check',
                                             skip_certificate_check)
    request_timeout = get_config_int('GENERAL', 'request_timeout', request_timeout)
    task_poll_interval = get_config_int('TASKS', 'poll_interval', task_poll_interval)
    task_timeout = get_config_int('TASKS', 'timeout', task_timeout)

    configured_logs = get_config_list('GENERAL', 'logfile')
    if configured_logs:
        logfiles = [os.path.expanduser(lf) for lf in configured_logs]

    level = get_config_value('GENERAL', 'log_level', '')
    if kwargs.get('debug', False):
        level = 'DEBUG'
    if level:
        logging.getLogger().setLevel(level.upper())

    console_output = kwargs.get('console', console_output)

def new_context():
    """
    Create the session context shared by all calls of one invocation.

    The context replaces global per-session variables: every resolved server,
    token, connection handle and credential lives in it and is dropped with it.
    """
    return SessionCache()

def sync_value(ctx, namespace, name, value=None, option=None, fallback=None, mandatory=False):
    """
    Resolve a per-target setting: explicit value, then cached value, then
    config.ini [NAMESPACE] option, then fallback.

    :param ctx: SessionCache
    :param namespace: Cache namespace (VCENTER, NSX, VCLOUD)
    :param name: Cache key (e.g. 'Server')
    :param value: Explicitly provided value
    :param option: config.ini option name (defaults to name lowercased)
    :param fallback: Value used when nothing else is set
    :param mandatory: Raise MissingValueError when no value can be found
    """
    cache = ctx.namespace(namespace)
    result = cache.sync(name, value)
    if result is None:
        result = get_config_value(namespace.upper(), option or name.lower(), '') or fallback
        if result:
            cache.set(name, result)
    if not result and mandatory:
        # raises MissingValueError
        cache.sync(name, None, mandatory=True)
    return result

def setting(value, default):
    """Command-line flag if given (not None), else the configured default"""
    return default if value is None else value

def add_connection_args(parser, default_user=None):
    """Options shared by every script that talks to a management endpoint"""
    parser.add_argument('--server', '-s', help='Server FQDN (default from config.ini or cache)')
    parser.add_argument('--username', '-u', default=None,
                        help=f'Username (default {default_user})' if default_user else 'Username')
    parser.add_argument('--password', '-p', default=None,
                        help='Password, plaintext or pre-encoded (default: stored credential)')
    parser.add_argument('--interactive', '-i', action='store_true', default=None,
                        help='Prompt for missing credentials')
    parser.add_argument('--skip-certificate-check', '-k', action='store_true', default=None,
                        help='Do not validate TLS certificates')
    parser.add_argument('--config', help='Path to config.ini')
    parser.add_argument('--debug', action='store_true', help='Enable debug output')
    return parser

def read_body(body=None, body_file=None):
    """Request body from --body or --body-file"""
    if body_file:
        with open(body_file, 'r') as f:
            return f.read()
    return body

#==============================================================================
# CONFIG HELPER FUNCTIONS
#==============================================================================

def get_config_list(section: str, option: str, fallback: list = None) -> list:
    """
    Get a config option as a list, filtering out commented lines.

    Multiline values are split by newline, single-line values by comma.
    Entries starting with '#' or ';' are treated as if they don't exist.

    :param section: Config section name (e.g., 'GENERAL', 'VCLOUD')
    :param option: Config option name
    :param fallback: Default value if option doesn't exist (default: empty list)
    :return: List of non-commented, non-empty values
    """
    if fallback is None:
        fallback = []

    if not config.has_option(section, option):
        return fallback

    raw_value = config.get(section, option)
    if not raw_value:
        return fallback

    if '\n' in raw_value:
        lines = raw_value.split('\n')
    else:
        lines = raw_value.split(',')

    result = []
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith('#') or stripped.startswith(';'):
            continue
        result.append(stripped)

    return result


def get_config_value(section: str, option: str, fallback: str = '') -> str:
    """
    Get a config option value, returning fallback if commented out.

    :param section: Config section name
    :param option: Config option name
    :param fallback: Default value if option doesn't exist or is commented
    :return: Config value or fallback
    """
    if not config.has_option(section, option):
        return fallback

    value = config.get(section, option).strip()

    if not value or value.startswith('#') or value.startswith(';'):
        return fallback

    return value


def get_config_bool(section: str, option: str, fallback: bool = False) -> bool:
    """Get a config option as a boolean (true/yes/on/1)"""
    value = get_config_value(section, option, '')
    if not value:
        return fallback
    return value.lower() in ('true', 'yes', 'on', '1')


def get_config_int(section: str, option: str, fallback: int = 0) -> int:
    """Get a config option as an integer, falling back on bad values"""
    value = get_config_value(section, option, '')
    if not value:
        return fallback
    try:
        return int(value)
    except ValueError:
        logger.warning(f'Ignoring non-integer [{section}] {option} = {value}')
        return fallback

#==============================================================================
# OUTPUT AND LOGGING
#==============================================================================

def write_output(msg, **kwargs):
    """
    Write a progress line to the log files and optionally to the console

    :param msg: Message to write
    :param kwargs:
        logfile - specific logfile path
        console - override console output setting (True/False)

    Console output goes to stderr; stdout is reserved for script results.
    """
    timestamp = datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    formatted_msg = f'[{timestamp}] {msg}'

    lfile = kwargs.get('logfile', None)
    print_to_console = kwargs.get('console', console_output)

    targets = [lfile] if lfile else logfiles
    for lf in targets:
        try:
            os.makedirs(os.path.dirname(lf), exist_ok=True)
            with open(lf, 'a') as f:
                f.write(formatted_msg + '\n')
        except OSError as e:
            logger.debug(f'Error writing to {lf}: {e}')

    if print_to_console:
        print(formatted_msg, file=sys.stderr)

def write_error(msg):
    """Log an error and print a single ERROR line to stderr"""
    write_output(f'ERROR: {msg}', console=False)
    print(f'ERROR: {msg}', file=sys.stderr)

#==============================================================================
# COMMAND EXECUTION
#==============================================================================

def run_command(cmd, **kwargs):
    """
    Execute an external command

    :param cmd: Command string or list
    :param kwargs: timeout, shell, capture_output, cwd, env
    :return: subprocess.CompletedProcess
    """
    timeout = kwargs.get('timeout', 3600)
    shell = kwargs.get('shell', isinstance(cmd, str))
    capture = kwargs.get('capture_output', True)

    try:
        result = subprocess.run(
            cmd,
            shell=shell,
            capture_output=capture,
            text=True,
            timeout=timeout,
            cwd=kwargs.get('cwd', None),
            env=kwargs.get('env', None)
        )
        return result
    except subprocess.TimeoutExpired:
        write_output(f'Command timed out: {cmd}')
        return subprocess.CompletedProcess(cmd, 1, '', 'Timeout')
    except OSError as e:
        write_output(f'Command failed: {cmd} - {e}')
        return subprocess.CompletedProcess(cmd, 1, '', str(e))
