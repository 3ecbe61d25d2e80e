#!/usr/bin/env python3
# vcloud.py - VMware Automation Scripts vCloud Director Module
# Version 1.0 - October 2026
# Author - Automation Scripts Team
# vCloud Director session login, REST API requests and task polling

"""
vCloud Director API Integration Module

  Login:   POST /api/sessions, Basic auth as user@org, Accept
           application/*+xml;version={api_version}
  Token:   x-vcloud-authorization response header, sent back on every call
  Tasks:   GET {task href}; status queued/preRunning/running until one of
           success/error/canceled/aborted
"""

import sys
import logging
import argparse

import vmfunctions as vmf
from Tools.api_invoker import basic_auth_header, invoke_api
from Tools.credentials import get_credential
from Tools.errors import AutomationError, TaskFailedError
from Tools.result_shaper import (VCloudSession, VCloudTask, local_name,
                                 shape_result, to_text)
from Tools.task_wait import wait_for_task

logger = logging.getLogger(__name__)

#==============================================================================
# MODULE CONFIGURATION
#==============================================================================

MODULE_NAME = 'vCloud'
DEFAULT_ORG = 'System'
DEFAULT_API_VERSION = '36.0'
SESSIONS_ENDPOINT = '/api/sessions'

#==============================================================================
# SESSION
#==============================================================================

def accept_header(api_version: str, fmt: str = 'xml') -> str:
    return f'application/*+{fmt};version={api_version}'


def connect_vcloud(ctx, server=None, org=None, username=None, password=None,
                   api_version=None, skip_certificate_check=None, interactive=None,
                   store=None) -> VCloudSession:
    """
    Log in to vCloud Director (or reuse the session cached in ctx).

    :param ctx: SessionCache
    :param org: Organization to log in to (System for provider admins)
    :return: VCloudSession
    """
    cache = ctx.namespace(vmf.VCLOUD)
    server = vmf.sync_value(ctx, vmf.VCLOUD, 'Server', server, mandatory=True)
    org = vmf.sync_value(ctx, vmf.VCLOUD, 'Org', org, fallback=DEFAULT_ORG)
    username = vmf.sync_value(ctx, vmf.VCLOUD, 'Username', username)
    api_version = vmf.sync_value(ctx, vmf.VCLOUD, 'ApiVersion', api_version,
                                 option='api_version', fallback=DEFAULT_API_VERSION)

    session = cache.get('Session')
    if session is not None and cache.get('SessionServer') == server \
            and cache.get('SessionUser') == username:
        logger.debug(f'Reusing vCloud session on {server}')
        return session

    credential = get_credential(ctx, server, username, password,
                                interactive=vmf.setting(interactive, vmf.interactive),
                                store=store)
    headers = basic_auth_header(credential, f'{credential.username}@{org}')
    headers['Accept'] = accept_header(api_version)

    response = invoke_api(server, SESSIONS_ENDPOINT, 'POST', headers,
                          skip_certificate_check=vmf.setting(skip_certificate_check,
                                                             vmf.skip_certificate_check),
                          timeout=vmf.request_timeout)
    session = VCloudSession.from_response(response)

    cache.set('Session', session)
    cache.set('SessionServer', server)
    cache.set('SessionUser', username)
    cache.set('Token', session.token)
    vmf.write_output(f'Logged in to {server} as {session.user}@{session.org}')
    return session

#==============================================================================
# REQUESTS
#==============================================================================

def call_vcloud(ctx, endpoint, method='GET', body=None, content_type=None,
                skip_certificate_check=None, **kwargs):
    """
    Authenticated call returning the ApiResponse; kwargs go to connect_vcloud.
    """
    session = connect_vcloud(ctx, skip_certificate_check=skip_certificate_check, **kwargs)
    cache = ctx.namespace(vmf.VCLOUD)
    headers = {
        'x-vcloud-authorization': session.token,
        'Accept': accept_header(cache.get('ApiVersion'))
    }
    if content_type:
        headers['Content-Type'] = content_type
    return invoke_api(cache.get('Server'), endpoint, method, headers, body,
                      skip_certificate_check=vmf.setting(skip_certificate_check,
                                                         vmf.skip_certificate_check),
                      timeout=vmf.request_timeout)


def invoke_vcloud_request(ctx, endpoint, method='GET', body=None, content_type=None,
                          raw=False, **kwargs):
    """
    Call a vCloud REST endpoint (path or absolute href).

    :return: Raw text when raw, else the parsed XML Element / JSON document
    """
    response = call_vcloud(ctx, endpoint, method, body, content_type, **kwargs)
    return shape_result(response.content, raw, response.content_type)

#==============================================================================
# TASKS
#==============================================================================

def task_endpoint(task_ref: str) -> str:
    """Accept a task href, an /api/task/... path or a bare task id"""
    if task_ref.startswith('http://') or task_ref.startswith('https://') or task_ref.startswith('/'):
        return task_ref
    return f'/api/task/{task_ref.rsplit(":", 1)[-1]}'


def get_vcloud_task(ctx, task_ref, **kwargs) -> VCloudTask:
    response = call_vcloud(ctx, task_endpoint(task_ref), **kwargs)
    return VCloudTask.from_content(response.content, response.content_type)


def wait_vcloud_task(ctx, task_ref, timeout=None, poll_interval=None, **kwargs) -> VCloudTask:
    """
    Poll a vCloud task until it reaches a terminal state.

    :return: VCloudTask in its terminal state
    :raises TaskTimeoutError: no terminal state before the timeout
    """
    return wait_for_task(
        lambda: get_vcloud_task(ctx, task_ref, **kwargs),
        timeout=vmf.setting(timeout, vmf.task_timeout),
        poll_interval=vmf.setting(poll_interval, vmf.task_poll_interval),
        task_ref=task_ref,
        write_output=vmf.write_output
    )


def returned_task(document):
    """
    Task element of a response: the root <Task>, or the first <Tasks><Task>
    of an entity (e.g. an instantiated <VApp>). None when there is none.
    """
    if document is None or isinstance(document, (str, dict, list)):
        return None
    if local_name(document.tag) == 'Task':
        return document
    tasks = next((c for c in document if local_name(c.tag) == 'Tasks'), None)
    if tasks is None:
        return None
    return next((c for c in tasks if local_name(c.tag) == 'Task'), None)


def require_success(task: VCloudTask) -> VCloudTask:
    if not task.succeeded:
        raise TaskFailedError(task.href, task.status, task.error_message)
    return task

#==============================================================================
# STANDALONE EXECUTION
#==============================================================================

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='vCloud Director session, requests and tasks')
    sub = parser.add_subparsers(dest='action', required=True)

    def add_vcloud_args(p):
        vmf.add_connection_args(p)
        p.add_argument('--org', '-o', help=f'Organization (default {DEFAULT_ORG})')
        p.add_argument('--api-version', help=f'API version (default {DEFAULT_API_VERSION})')

    connect_parser = sub.add_parser('connect', help='Log in and show the session')
    add_vcloud_args(connect_parser)

    request_parser = sub.add_parser('request', help='Call a REST endpoint')
    add_vcloud_args(request_parser)
    request_parser.add_argument('endpoint', help='API path or href, e.g. /api/org')
    request_parser.add_argument('--method', '-m', default='GET', help='HTTP method')
    request_parser.add_argument('--body', help='Request body')
    request_parser.add_argument('--body-file', help='File holding the request body')
    request_parser.add_argument('--content-type', help='Request media type, e.g. application/vnd.vmware.vcloud.instantiateVAppTemplateParams+xml')
    request_parser.add_argument('--raw', action='store_true', help='Print the response unparsed')
    request_parser.add_argument('--wait', action='store_true', help='Wait for a returned Task to finish')
    request_parser.add_argument('--timeout', type=int, help='Task wait timeout in seconds')

    wait_parser = sub.add_parser('wait-task', help='Wait for a task to finish')
    add_vcloud_args(wait_parser)
    wait_parser.add_argument('task', help='Task href or id')
    wait_parser.add_argument('--timeout', type=int, help='Timeout in seconds')
    wait_parser.add_argument('--interval', type=int, help='Seconds between status checks')

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the vCloud script"""
    args = parse_args(argv)
    vmf.init(args.config, debug=args.debug)
    ctx = vmf.new_context()
    login = dict(server=args.server, org=args.org, username=args.username,
                 password=args.password, api_version=args.api_version,
                 skip_certificate_check=args.skip_certificate_check,
                 interactive=args.interactive)

    try:
        if args.action == 'connect':
            result = connect_vcloud(ctx, **login)
        elif args.action == 'wait-task':
            result = require_success(wait_vcloud_task(ctx, args.task, args.timeout,
                                                      args.interval, **login))
        else:
            result = invoke_vcloud_request(ctx, args.endpoint, args.method,
                                           vmf.read_body(args.body, args.body_file),
                                           args.content_type, args.raw and not args.wait,
                                           **login)
            task_element = returned_task(result) if args.wait else None
            if task_element is not None:
                task = VCloudTask.from_xml(task_element)
                result = require_success(wait_vcloud_task(ctx, task.href, args.timeout,
                                                          **login))
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
