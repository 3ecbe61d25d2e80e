#!/usr/bin/env python3
# conftest.py - VMware Automation Scripts Pytest Configuration and Fixtures
# Version 1.0 - October 2026
# Author - Automation Scripts Team
# Shared fixtures for all test modules

import pytest
import os
import sys
import tempfile
from unittest.mock import MagicMock, patch
from configparser import ConfigParser

# Add parent directory to path for imports
parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, parent_dir)

#==============================================================================
# SAMPLE PAYLOADS
#==============================================================================

VCLOUD_NS = 'http://www.vmware.com/vcloud/v1.5'
TASK_HREF = 'https://vcd.example.com/api/task/5a3c1f0e-0000-4000-8000-000000000001'


def task_xml(status, error_message=None):
    """vCloud <Task> document with the given status"""
    error = ''
    if error_message:
        error = f'<Error majorErrorCode="500" message="{error_message}" minorErrorCode="INTERNAL_SERVER_ERROR"/>'
    return (
        f'<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<Task xmlns="{VCLOUD_NS}" status="{status}" name="task" '
        f'operation="Deploying Virtual Application web01" operationName="vappDeploy" '
        f'startTime="2026-10-16T09:00:00.000Z" href="{TASK_HREF}">'
        f'{error}</Task>'
    )


SESSION_XML = (
    f'<?xml version="1.0" encoding="UTF-8"?>\n'
    f'<Session xmlns="{VCLOUD_NS}" user="admin" org="System" '
    f'href="https://vcd.example.com/api/session/"></Session>'
)

#==============================================================================
# FIXTURES - Isolation
#==============================================================================

@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture(autouse=True)
def isolated_vmf(temp_dir, monkeypatch):
    """Point vmfunctions at an empty config and temporary log/credential paths"""
    import vmfunctions as vmf

    monkeypatch.setattr(vmf, 'config', ConfigParser())
    monkeypatch.setattr(vmf, 'configini', os.path.join(temp_dir, 'missing-config.ini'))
    monkeypatch.setattr(vmf, 'logfiles', [os.path.join(temp_dir, 'vmscripts.log')])
    monkeypatch.setattr(vmf, 'credential_dir', os.path.join(temp_dir, 'credentials'))
    monkeypatch.setattr(vmf, 'console_output', False)
    monkeypatch.setattr(vmf, 'interactive', False)
    monkeypatch.setattr(vmf, 'skip_certificate_check', False)
    monkeypatch.setattr(vmf, 'task_poll_interval', 3)
    monkeypatch.setattr(vmf, 'task_timeout', 600)
    return vmf

#==============================================================================
# FIXTURES - Context and Credentials
#==============================================================================

@pytest.fixture
def ctx():
    """Fresh session context"""
    from Tools.session_cache import SessionCache
    return SessionCache()


@pytest.fixture
def credential_dir(temp_dir):
    return os.path.join(temp_dir, 'credentials')


@pytest.fixture
def file_store(credential_dir):
    """Encrypted file store in a temporary directory"""
    from Tools.credentials import EncryptedFileStore
    return EncryptedFileStore(credential_dir)


@pytest.fixture
def temp_config_ini(temp_dir):
    """Create a temporary config.ini file"""
    config_path = os.path.join(temp_dir, 'config.ini')

    config = ConfigParser()
    config.add_section('GENERAL')
    config.set('GENERAL', 'credential_dir', os.path.join(temp_dir, 'creds-from-config'))
    config.set('GENERAL', 'interactive', 'no')
    config.set('GENERAL', 'skip_certificate_check', 'true')
    config.add_section('TASKS')
    config.set('TASKS', 'poll_interval', '5')
    config.set('TASKS', 'timeout', '#120')
    config.add_section('NSX')
    config.set('NSX', 'server', 'nsx-01a.example.com')
    config.add_section('VCLOUD')
    config.set('VCLOUD', 'server', 'vcd.example.com')
    config.set('VCLOUD', 'api_version', '37.2')

    with open(config_path, 'w') as f:
        config.write(f)

    return config_path

#==============================================================================
# FIXTURES - Mock Network Operations
#==============================================================================

@pytest.fixture
def make_response():
    """Factory for fake requests.Response objects"""
    def _make(status_code=200, text='', headers=None):
        response = MagicMock()
        response.status_code = status_code
        response.text = text
        response.headers = headers or {}
        return response
    return _make


@pytest.fixture
def mock_requests(make_response):
    """Mock requests.Session for HTTP tests; set .request.return_value/side_effect"""
    with patch('requests.Session') as mock_session:
        mock_instance = MagicMock()
        mock_instance.request.return_value = make_response(200, 'OK', {'Content-Type': 'text/plain'})
        mock_session.return_value = mock_instance
        yield mock_instance


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for command execution tests"""
    with patch('subprocess.run') as mock_run:
        mock_run.return_value = MagicMock(
            returncode=0,
            stdout='Success',
            stderr=''
        )
        yield mock_run


class FakeClock:
    """Stand-in for the time module: sleep() advances time() instantly"""

    def __init__(self, start=1000.0):
        self.now = start
        self.sleeps = []

    def time(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    clock = FakeClock()
    with patch('Tools.task_wait.time', clock):
        yield clock

#==============================================================================
# MARKERS
#==============================================================================

def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "network: marks tests that require network access"
    )
