#!/usr/bin/env python3
# test_terraform.py - VMware Automation Scripts Terraform Wrapper Unit Tests
# Version 1.0 - October 2026
# Author - Automation Scripts Team

import pytest
import os
import json
from unittest.mock import MagicMock, patch

from Tools.errors import AutomationError, CommandError, ResultParseError
from Tools.terraform import (build_var_args, format_var_value, invoke_terraform,
                             load_variables, main, terraform_output)

TERRAFORM = '/usr/local/bin/terraform'


@pytest.fixture
def terraform_on_path():
    with patch('Tools.terraform.shutil.which', return_value=TERRAFORM) as mock_which:
        yield mock_which


class TestVarArgs:
    """Test -var flag assembly"""

    def test_build_var_args(self):
        """Each map entry becomes a -var key=value pair in order"""
        args = build_var_args({'vm_name': 'web01', 'cpus': 2})

        assert args == ['-var', 'vm_name=web01', '-var', 'cpus=2']

    def test_none_values_skipped(self):
        assert build_var_args({'vm_name': 'web01', 'folder': None}) == ['-var', 'vm_name=web01']

    def test_empty_map(self):
        assert build_var_args({}) == []
        assert build_var_args(None) == []

    @pytest.mark.parametrize('value,expected', [
        (True, 'true'),
        (False, 'false'),
        (4096, '4096'),
        (['10.0.0.1', '10.0.0.2'], '["10.0.0.1","10.0.0.2"]'),
        ({'env': 'lab'}, '{"env":"lab"}'),
        ('has spaces', 'has spaces'),
    ])
    def test_format_var_value(self, value, expected):
        assert format_var_value(value) == expected


class TestLoadVariables:

    def test_json_string(self):
        assert load_variables('{"vm_name": "web01"}') == {'vm_name': 'web01'}

    def test_file_then_string_override(self, temp_dir):
        """Values from --vars override the same keys from --vars-file"""
        path = os.path.join(temp_dir, 'vars.json')
        with open(path, 'w') as f:
            json.dump({'vm_name': 'from-file', 'cpus': 2}, f)

        variables = load_variables('{"vm_name": "from-string"}', path)

        assert variables == {'vm_name': 'from-string', 'cpus': 2}

    def test_non_object_rejected(self, temp_dir):
        path = os.path.join(temp_dir, 'vars.json')
        with open(path, 'w') as f:
            f.write('[1, 2]')

        with pytest.raises(AutomationError):
            load_variables(vars_file=path)
        with pytest.raises(AutomationError):
            load_variables('"just a string"')

    def test_malformed_json(self):
        with pytest.raises(ResultParseError):
            load_variables('{oops')


class TestInvokeTerraform:
    """Test command construction and execution"""

    def test_apply_command_line(self, mock_subprocess, terraform_on_path):
        """apply gets -chdir, -input=false, -var flags and -auto-approve"""
        invoke_terraform('apply', {'vm_name': 'web01'}, working_dir='/srv/tf', auto_approve=True)

        cmd = mock_subprocess.call_args[0][0]
        assert cmd == [TERRAFORM, '-chdir=/srv/tf', 'apply', '-input=false',
                       '-var', 'vm_name=web01', '-auto-approve']
        kwargs = mock_subprocess.call_args[1]
        assert kwargs['shell'] is False
        assert kwargs['env']['TF_IN_AUTOMATION'] == '1'

    def test_init_gets_no_vars(self, mock_subprocess, terraform_on_path):
        """Commands that do not take -var flags ignore the variables"""
        invoke_terraform('init', {'vm_name': 'web01'})

        cmd = mock_subprocess.call_args[0][0]
        assert cmd == [TERRAFORM, 'init']

    def test_console_gets_vars_without_input_flag(self, mock_subprocess, terraform_on_path):
        """console accepts -var but rejects -input=false"""
        invoke_terraform('console', {'vm_name': 'web01'})

        cmd = mock_subprocess.call_args[0][0]
        assert cmd == [TERRAFORM, 'console', '-var', 'vm_name=web01']

    def test_plan_ignores_auto_approve(self, mock_subprocess, terraform_on_path):
        invoke_terraform('plan', {}, auto_approve=True)

        assert '-auto-approve' not in mock_subprocess.call_args[0][0]

    def test_working_dir_from_config(self, mock_subprocess, terraform_on_path, isolated_vmf):
        isolated_vmf.config.add_section('TERRAFORM')
        isolated_vmf.config.set('TERRAFORM', 'working_dir', '/opt/lab/tf')

        invoke_terraform('plan')

        assert '-chdir=/opt/lab/tf' in mock_subprocess.call_args[0][0]

    def test_non_zero_exit_raises(self, mock_subprocess, terraform_on_path):
        """A failed terraform run raises CommandError with its stderr"""
        mock_subprocess.return_value = MagicMock(returncode=1, stdout='', stderr='Error: bad config')

        with pytest.raises(CommandError) as exc_info:
            invoke_terraform('plan', {'password': 'VMware1!'})

        assert exc_info.value.returncode == 1
        assert 'bad config' in str(exc_info.value)
        assert 'VMware1!' not in str(exc_info.value)

    def test_missing_binary(self):
        with patch('Tools.terraform.shutil.which', return_value=None):
            with pytest.raises(AutomationError) as exc_info:
                invoke_terraform('plan')

        assert 'not found' in str(exc_info.value)

    def test_output_values(self, mock_subprocess, terraform_on_path):
        """terraform output -json is reduced to name: value"""
        mock_subprocess.return_value = MagicMock(returncode=0, stderr='', stdout=json.dumps({
            'vm_ip': {'sensitive': False, 'type': 'string', 'value': '10.0.0.5'}
        }))

        assert terraform_output() == {'vm_ip': '10.0.0.5'}
        assert mock_subprocess.call_args[0][0] == [TERRAFORM, 'output', '-json']


class TestMain:

    def test_main_success(self, mock_subprocess, terraform_on_path, capsys):
        mock_subprocess.return_value = MagicMock(returncode=0, stdout='Plan: 1 to add\n', stderr='')

        assert main(['plan', '--vars', '{"vm_name": "web01"}']) == 0
        assert 'Plan: 1 to add' in capsys.readouterr().out

    def test_main_failure(self, mock_subprocess, terraform_on_path, capsys):
        mock_subprocess.return_value = MagicMock(returncode=1, stdout='', stderr='Error: boom')

        assert main(['apply']) == 1
        assert 'ERROR:' in capsys.readouterr().err
