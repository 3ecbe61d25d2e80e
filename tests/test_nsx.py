#!/usr/bin/env python3
# test_nsx.py - VMware Automation Scripts NSX Module Unit Tests
# Version 1.0 - October 2026
# Author - Automation Scripts Team

import pytest
import base64
import xml.etree.ElementTree as ET
from unittest.mock import patch

from Scripts.nsx import invoke_nsx_request, main, payload_type
from Tools.credentials import Credential, InjectedSecretStore
from Tools.errors import ApiError, MissingValueError

NSX = 'nsx-01a.example.com'


@pytest.fixture
def store():
    return InjectedSecretStore({f'{NSX}-admin': Credential('admin', 'VMware1!VMware1!')})


class TestPayloadType:

    @pytest.mark.parametrize('endpoint,expected', [
        ('/api/v1/logical-switches', 'application/json'),
        ('/policy/api/v1/infra/segments', 'application/json'),
        ('/api/2.0/vdn/scopes', 'application/xml'),
        ('api/4.0/edges', 'application/xml'),
        ('https://nsx.example.com/api/2.0/services/usermgmt', 'application/xml'),
    ])
    def test_by_endpoint(self, endpoint, expected):
        """NSX-V endpoints use XML, everything else JSON"""
        assert payload_type(endpoint) == expected

    def test_xml_body(self):
        assert payload_type('/api/v1/x', '<edge/>') == 'application/xml'

    def test_explicit_content_type(self):
        assert payload_type('/api/2.0/x', None, 'application/json') == 'application/json'


class TestInvokeNsxRequest:
    """Test NSX requests against a mocked requests.Session"""

    def test_json_request(self, ctx, store, mock_requests, make_response):
        """Basic auth from the stored credential, JSON parsed"""
        mock_requests.request.return_value = make_response(
            200, '{"results": [{"id": "seg-1"}]}', {'Content-Type': 'application/json'})

        result = invoke_nsx_request(ctx, '/policy/api/v1/infra/segments', server=NSX, store=store)

        assert result == {'results': [{'id': 'seg-1'}]}
        args, kwargs = mock_requests.request.call_args
        assert args == ('GET', f'https://{NSX}/policy/api/v1/infra/segments')
        auth = kwargs['headers']['Authorization'].split(' ', 1)[1]
        assert base64.b64decode(auth).decode('utf-8') == 'admin:VMware1!VMware1!'
        assert kwargs['headers']['Accept'] == 'application/json'
        assert 'Content-Type' not in kwargs['headers']

    def test_xml_request(self, ctx, store, mock_requests, make_response):
        mock_requests.request.return_value = make_response(
            200, '<vdnScopes><vdnScope><name>tz</name></vdnScope></vdnScopes>',
            {'Content-Type': 'application/xml'})

        result = invoke_nsx_request(ctx, '/api/2.0/vdn/scopes', server=NSX, store=store)

        assert isinstance(result, ET.Element)
        assert mock_requests.request.call_args[1]['headers']['Accept'] == 'application/xml'

    def test_raw(self, ctx, store, mock_requests, make_response):
        mock_requests.request.return_value = make_response(200, '{"a": 1}', {})

        assert invoke_nsx_request(ctx, '/api/v1/node', raw=True, server=NSX, store=store) == '{"a": 1}'

    def test_server_cached_between_calls(self, ctx, store, mock_requests, make_response):
        """The server given once is reused by later calls"""
        mock_requests.request.return_value = make_response(200, '{}', {'Content-Type': 'application/json'})
        invoke_nsx_request(ctx, '/api/v1/node', server=NSX, store=store)
        invoke_nsx_request(ctx, '/api/v1/node', store=store)

        assert mock_requests.request.call_args[0][1] == f'https://{NSX}/api/v1/node'

    def test_server_from_config(self, ctx, store, mock_requests, make_response,
                                isolated_vmf, temp_config_ini):
        isolated_vmf.init(temp_config_ini)
        mock_requests.request.return_value = make_response(200, '{}', {'Content-Type': 'application/json'})

        invoke_nsx_request(ctx, '/api/v1/node', store=store)

        assert mock_requests.request.call_args[0][1] == f'https://{NSX}/api/v1/node'
        assert mock_requests.request.call_args[1]['verify'] is False

    def test_missing_server(self, ctx, store):
        with pytest.raises(MissingValueError):
            invoke_nsx_request(ctx, '/api/v1/node', store=store)

    def test_http_error(self, ctx, store, mock_requests, make_response):
        mock_requests.request.return_value = make_response(404, 'The requested URI was not found')

        with pytest.raises(ApiError) as exc_info:
            invoke_nsx_request(ctx, '/api/v1/missing', server=NSX, store=store)

        assert exc_info.value.status_code == 404


class TestMain:

    def test_success(self, mock_requests, make_response, capsys):
        mock_requests.request.return_value = make_response(
            200, '{"node_version": "4.1.0"}', {'Content-Type': 'application/json'})

        rc = main(['/api/v1/node', '-s', NSX, '-u', 'admin', '-p', 'VMware1!'])

        assert rc == 0
        assert '"node_version": "4.1.0"' in capsys.readouterr().out

    def test_error_exit_code(self, mock_requests, make_response, capsys):
        """HTTP errors print a single ERROR line and exit 1"""
        mock_requests.request.return_value = make_response(403, 'forbidden')

        rc = main(['/api/v1/node', '-s', NSX, '-u', 'admin', '-p', 'VMware1!'])

        captured = capsys.readouterr()
        assert rc == 1
        assert captured.out == ''
        assert 'HTTP 403' in captured.err

    def test_no_credential(self, capsys):
        rc = main(['/api/v1/node', '-s', NSX])

        assert rc == 1
        assert 'No credential found' in capsys.readouterr().err

    def test_interactive_without_terminal(self, capsys):
        """A closed stdin at the password prompt is an ERROR line, not a traceback"""
        with patch('Tools.credentials.getpass.getpass', side_effect=EOFError):
            rc = main(['/api/v1/node', '-s', NSX, '--interactive'])

        assert rc == 1
        assert 'ERROR: No input for prompt' in capsys.readouterr().err
