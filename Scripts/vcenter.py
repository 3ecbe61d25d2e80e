#!/usr/bin/env python3
# vcenter.py - VMware Automation Scripts vCenter Module
# Version 1.0 - October 2026
# Author - Automation Scripts Team
# vCenter SDK connection (pyVmomi) and REST API requests

import sys
import logging
import argparse

import vmfunctions as vmf
from Tools.api_invoker import basic_auth_header, invoke_api
from Tools.credentials import get_credential
from Tools.errors import ApiError, AutomationError, TransportError
from Tools.result_shaper import VCenterSession, shape_result, to_text

logger = logging.getLogger(__name__)

#==============================================================================
# MODULE CONFIGURATION
#==============================================================================

MODULE_NAME = 'vCenter'
DEFAULT_USER = 'administrator@vsphere.local'
SESSION_ENDPOINT = '/api/session'
LEGACY_SESSION_ENDPOINT = '/rest/com/vmware/cis/session'

#==============================================================================
# SDK CONNECTION
#==============================================================================

def connect_vcenter(ctx, server=None, username=None, password=None, port=443,
                    skip_certificate_check=None, interactive=None, store=None):
    """
    Connect to a vCenter or ESXi host with pyVmomi.

    A connection already opened for the same server and user in this
    context is reused.

    :param ctx: SessionCache
    :return: pyVmomi ServiceInstance
    """
    from pyVim import connect
    from pyVmomi import vim, vmodl

    cache = ctx.namespace(vmf.VCENTER)
    server = vmf.sync_value(ctx, vmf.VCENTER, 'Server', server, mandatory=True)
    username = vmf.sync_value(ctx, vmf.VCENTER, 'Username', username, fallback=DEFAULT_USER)

    si = cache.get('Connection')
    if si is not None and cache.get('ConnectedServer') == server \
            and cache.get('ConnectedUser') == username:
        logger.debug(f'Reusing vCenter connection to {server}')
        return si

    credential = get_credential(ctx, server, username, password,
                                interactive=vmf.setting(interactive, vmf.interactive),
                                store=store)
    skip = vmf.setting(skip_certificate_check, vmf.skip_certificate_check)

    try:
        si = connect.SmartConnect(
            host=server,
            user=credential.username,
            pwd=credential.secret,
            port=port,
            disableSslCertValidation=skip
        )
    except vim.fault.InvalidLogin as e:
        raise ApiError(401, e.msg, f'https://{server}/sdk')
    except vmodl.MethodFault as e:
        raise ApiError(500, e.msg, f'https://{server}/sdk')
    except OSError as e:
        raise TransportError(f'https://{server}:{port}/sdk', e)

    cache.set('Connection', si)
    cache.set('ConnectedServer', server)
    cache.set('ConnectedUser', username)
    vmf.write_output(f'Connected to {server}')
    return si


def disconnect_vcenter(ctx):
    """Close the cached SDK connection, if any"""
    from pyVim import connect

    cache = ctx.namespace(vmf.VCENTER)
    si = cache.get('Connection')
    if si is None:
        return
    try:
        connect.Disconnect(si)
    finally:
        cache.set('Connection', None)
        cache.set('ConnectedServer', None)
        cache.set('ConnectedUser', None)


def describe_connection(si) -> dict:
    """Summary of a ServiceInstance for output"""
    about = si.content.about
    session = si.content.sessionManager.currentSession
    return {
        'fullName': about.fullName,
        'apiVersion': about.apiVersion,
        'instanceUuid': about.instanceUuid,
        'userName': session.userName if session else None
    }

#==============================================================================
# REST API
#==============================================================================

def get_rest_session(ctx, server=None, username=None, password=None,
                     skip_certificate_check=None, interactive=None, store=None) -> VCenterSession:
    """
    Create (or reuse) a vCenter REST API session.

    Tries /api/session (vSphere 7+) first and falls back to the
    /rest/com/vmware/cis/session endpoint on 404.
    """
    cache = ctx.namespace(vmf.VCENTER)
    server = vmf.sync_value(ctx, vmf.VCENTER, 'Server', server, mandatory=True)
    username = vmf.sync_value(ctx, vmf.VCENTER, 'Username', username, fallback=DEFAULT_USER)

    session = cache.get('Session')
    if session is not None and cache.get('SessionServer') == server \
            and cache.get('SessionUser') == username:
        return session

    credential = get_credential(ctx, server, username, password,
                                interactive=vmf.setting(interactive, vmf.interactive),
                                store=store)
    skip = vmf.setting(skip_certificate_check, vmf.skip_certificate_check)
    headers = basic_auth_header(credential)
    headers['Accept'] = 'application/json'

    try:
        response = invoke_api(server, SESSION_ENDPOINT, 'POST', headers,
                              skip_certificate_check=skip, timeout=vmf.request_timeout)
        endpoint = SESSION_ENDPOINT
    except ApiError as e:
        if e.status_code != 404:
            raise
        response = invoke_api(server, LEGACY_SESSION_ENDPOINT, 'POST', headers,
                              skip_certificate_check=skip, timeout=vmf.request_timeout)
        endpoint = LEGACY_SESSION_ENDPOINT

    session = VCenterSession.from_json(shape_result(response.content, content_type='application/json'))
    cache.set('Session', session)
    cache.set('SessionServer', server)
    cache.set('SessionUser', username)
    cache.set('SessionEndpoint', endpoint)
    cache.set('Token', session.token)
    vmf.write_output(f'Created REST session on {server}')
    return session


def invoke_vcenter_request(ctx, endpoint, method='GET', body=None, raw=False,
                           server=None, username=None, password=None,
                           skip_certificate_check=None, interactive=None, store=None):
    """
    Call a vCenter REST endpoint with the session token.

    :return: Raw text when raw, else the parsed JSON document
    """
    session = get_rest_session(ctx, server, username, password,
                               skip_certificate_check, interactive, store)
    server = ctx.namespace(vmf.VCENTER).get('Server')
    headers = {
        'vmware-api-session-id': session.token,
        'Accept': 'application/json'
    }
    response = invoke_api(server, endpoint, method, headers, body,
                          skip_certificate_check=vmf.setting(skip_certificate_check,
                                                             vmf.skip_certificate_check),
                          timeout=vmf.request_timeout)
    return shape_result(response.content, raw, response.content_type)

#==============================================================================
# STANDALONE EXECUTION
#==============================================================================

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='vCenter connection and REST requests')
    sub = parser.add_subparsers(dest='action', required=True)

    connect_parser = sub.add_parser('connect', help='Open an SDK session and show its details')
    vmf.add_connection_args(connect_parser, DEFAULT_USER)
    connect_parser.add_argument('--port', type=int, default=443, help='SDK port')

    request_parser = sub.add_parser('request', help='Call a REST endpoint')
    vmf.add_connection_args(request_parser, DEFAULT_USER)
    request_parser.add_argument('endpoint', help='API path, e.g. /api/vcenter/vm')
    request_parser.add_argument('--method', '-m', default='GET', help='HTTP method')
    request_parser.add_argument('--body', help='Request body')
    request_parser.add_argument('--body-file', help='File holding the request body')
    request_parser.add_argument('--raw', action='store_true', help='Print the response unparsed')

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the vCenter script"""
    args = parse_args(argv)
    vmf.init(args.config, debug=args.debug)
    ctx = vmf.new_context()

    try:
        if args.action == 'connect':
            si = connect_vcenter(ctx, args.server, args.username, args.password, args.port,
                                 args.skip_certificate_check, args.interactive)
            try:
                result = describe_connection(si)
            finally:
                disconnect_vcenter(ctx)
        else:
            result = invoke_vcenter_request(ctx, args.endpoint, args.method,
                                            vmf.read_body(args.body, args.body_file), args.raw,
                                            args.server, args.username, args.password,
                                            args.skip_certificate_check, args.interactive)
        print(to_text(result))
    except AutomationError as e:
        vmf.write_error(e.message)
        return 1
    except OSError as e:
        vmf.write_error(str(e))
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
