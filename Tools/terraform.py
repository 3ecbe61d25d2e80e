#!/usr/bin/env python3
# terraform.py - VMware Automation Scripts Terraform Wrapper
# Version 1.0 - October 2026
# Author - Automation Scripts Team
# Runs the Terraform CLI with -var flags assembled from a JSON input map

import os
import sys
import json
import shutil
import logging
import argparse
from typing import Any, Dict, List

import vmfunctions as vmf
from Tools.errors import AutomationError, CommandError
from Tools.result_shaper import parse_json, to_text

logger = logging.getLogger(__name__)

#==============================================================================
# CONFIGURATION
#==============================================================================

TERRAFORM_BINARY = 'terraform'
TERRAFORM_TIMEOUT = 3600  # seconds

# Commands that accept -var flags; console takes -var but rejects -input
VAR_COMMANDS = ('plan', 'apply', 'destroy', 'refresh', 'import', 'console')
INPUT_COMMANDS = ('plan', 'apply', 'destroy', 'refresh', 'import')
APPROVE_COMMANDS = ('apply', 'destroy')

#==============================================================================
# FUNCTIONS
#==============================================================================

def format_var_value(value: Any) -> str:
    """
    Render one input value the way Terraform parses -var values.

    Strings are passed verbatim, booleans as true/false, numbers as text,
    lists and maps as JSON literals.
    """
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(',', ':'))
    return str(value)


def build_var_args(variables: Dict[str, Any]) -> List[str]:
    """
    :param variables: Input map (e.g. parsed from '{"vm_name": "web01", "cpus": 2}')
    :return: ['-var', 'vm_name=web01', '-var', 'cpus=2']; None values are skipped
    """
    args = []
    for key, value in (variables or {}).items():
        if value is None:
            continue
        args.extend(['-var', f'{key}={format_var_value(value)}'])
    return args


def load_variables(vars_json: str = None, vars_file: str = None) -> Dict[str, Any]:
    """Read the input map from a JSON string and/or a JSON file (string wins on conflicts)"""
    variables = {}
    sources = []
    if vars_file:
        with open(vars_file, 'r') as f:
            sources.append(f.read())
    if vars_json:
        sources.append(vars_json)

    for source in sources:
        parsed = parse_json(source)
        if not isinstance(parsed, dict):
            raise AutomationError('Terraform variables must be a JSON object')
        variables.update(parsed)
    return variables


def find_terraform(binary: str = None) -> str:
    """Locate the terraform binary (explicit path, config.ini, then PATH)"""
    candidate = binary or vmf.get_config_value('TERRAFORM', 'binary', TERRAFORM_BINARY)
    if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
        return candidate
    found = shutil.which(candidate)
    if not found:
        raise AutomationError(f'Terraform binary not found: {candidate}')
    return found


def invoke_terraform(command: str, variables: Dict[str, Any] = None,
                     working_dir: str = None, binary: str = None,
                     extra_args: List[str] = None, auto_approve: bool = False):
    """
    Run a Terraform command.

    :param command: Terraform subcommand (init, plan, apply, destroy, output, ...)
    :param variables: Input map turned into -var flags
    :param working_dir: Directory holding the configuration (-chdir)
    :param binary: terraform executable
    :param extra_args: Additional arguments appended as-is
    :param auto_approve: Add -auto-approve to apply/destroy
    :return: subprocess.CompletedProcess
    :raises CommandError: non-zero exit code
    """
    working_dir = working_dir or vmf.get_config_value('TERRAFORM', 'working_dir', '')
    cmd = [find_terraform(binary)]
    if working_dir:
        cmd.append(f'-chdir={os.path.expanduser(working_dir)}')
    cmd.append(command)

    if command in INPUT_COMMANDS:
        cmd.append('-input=false')
    if command in VAR_COMMANDS:
        cmd.extend(build_var_args(variables))
    elif variables:
        logger.warning(f'Ignoring variables for terraform {command}')

    if auto_approve and command in APPROVE_COMMANDS:
        cmd.append('-auto-approve')

    cmd.extend(extra_args or [])

    # Never echo -var values, they may hold secrets
    vmf.write_output(f'Running terraform {command} ({len(variables or {})} variables)')
    result = vmf.run_command(cmd, shell=False, timeout=TERRAFORM_TIMEOUT,
                             env={**os.environ, 'TF_IN_AUTOMATION': '1'})

    if result.returncode != 0:
        raise CommandError(cmd[:1] + [command], result.returncode, result.stderr)
    return result


def terraform_output(working_dir: str = None, binary: str = None) -> Dict[str, Any]:
    """terraform output -json, reduced to {name: value}"""
    result = invoke_terraform('output', working_dir=working_dir, binary=binary,
                              extra_args=['-json'])
    outputs = parse_json(result.stdout) if result.stdout.strip() else {}
    return {name: entry.get('value') if isinstance(entry, dict) else entry
            for name, entry in outputs.items()}

#==============================================================================
# STANDALONE EXECUTION
#==============================================================================

def main(argv=None):
    """Main entry point for standalone execution"""
    parser = argparse.ArgumentParser(description='Run Terraform with variables from a JSON map')
    parser.add_argument('command', help='Terraform command (init, plan, apply, destroy, output, ...)')
    parser.add_argument('--vars', help='JSON object of input variables')
    parser.add_argument('--vars-file', help='JSON file of input variables')
    parser.add_argument('--chdir', help='Terraform working directory')
    parser.add_argument('--binary', help='Path to the terraform executable')
    parser.add_argument('--auto-approve', action='store_true', help='Skip apply/destroy approval')
    parser.add_argument('--config', help='Path to config.ini')
    parser.add_argument('--debug', action='store_true', help='Enable debug output')
    args, extra = parser.parse_known_args(argv)
    vmf.init(args.config, debug=args.debug)

    try:
        if args.command == 'output':
            print(to_text(terraform_output(args.chdir, args.binary)))
            return 0

        variables = load_variables(args.vars, args.vars_file)
        result = invoke_terraform(args.command, variables, args.chdir, args.binary,
                                  extra_args=[a for a in extra if a != '--'],
                                  auto_approve=args.auto_approve)
        print(result.stdout, end='')
    except AutomationError as e:
        vmf.write_error(e.message)
        return 1
    except OSError as e:
        vmf.write_error(str(e))
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
