#!/usr/bin/env python3
# nsx.py - VMware Automation Scripts NSX Manager Module
# Version 1.0 - October 2026
# Author - Automation Scripts Team
# NSX Manager REST API requests (NSX-T JSON /api/v1, /policy/api/v1 and NSX-V XML /api/2.0, /api/4.0)

import sys
import logging
import argparse
from urllib.parse import urlsplit

import vmfunctions as vmf
from Tools.api_invoker import basic_auth_header, invoke_api
from Tools.credentials import get_credential
from Tools.errors import AutomationError
from Tools.result_shaper import shape_result, to_text

logger = logging.getLogger(__name__)

#==============================================================================
# MODULE CONFIGURATION
#==============================================================================

MODULE_NAME = 'NSX'
DEFAULT_USER = 'admin'

# NSX-V (NSX for vSphere) endpoints speak XML
XML_API_PREFIXES = ('/api/2.0/', '/api/3.0/', '/api/4.0/')

#==============================================================================
# FUNCTIONS
#==============================================================================

def payload_type(endpoint: str, body=None, content_type: str = None) -> str:
    """
    Media type for a request: explicit, else XML for NSX-V endpoints or
    XML bodies, else JSON.
    """
    if content_type:
        return content_type
    path = urlsplit(endpoint).path if '://' in endpoint else endpoint
    if ('/' + path.lstrip('/')).startswith(XML_API_PREFIXES):
        return 'application/xml'
    if isinstance(body, str) and body.lstrip().startswith('<'):
        return 'application/xml'
    return 'application/json'


def invoke_nsx_request(ctx, endpoint, method='GET', body=None, raw=False,
                       server=None, username=None, password=None, content_type=None,
                       skip_certificate_check=None, interactive=None, store=None):
    """
    Call an NSX Manager REST endpoint with Basic authorization.

    :param ctx: SessionCache
    :param endpoint: API path, e.g. /api/v1/logical-switches
    :param method: HTTP method
    :param body: Request body (dict for JSON, str for XML/JSON text)
    :param raw: Return the response text unparsed
    :return: Raw text, parsed JSON (dict/list) or XML Element
    """
    server = vmf.sync_value(ctx, vmf.NSX, 'Server', server, mandatory=True)
    username = vmf.sync_value(ctx, vmf.NSX, 'Username', username, fallback=DEFAULT_USER)
    credential = get_credential(ctx, server, username, password,
                                interactive=vmf.setting(interactive, vmf.interactive),
                                store=store)

    media_type = payload_type(endpoint, body, content_type)
    headers = basic_auth_header(credential)
    headers['Accept'] = media_type
    if body is not None:
        headers['Content-Type'] = media_type

    response = invoke_api(server, endpoint, method, headers, body,
                          skip_certificate_check=vmf.setting(skip_certificate_check,
                                                             vmf.skip_certificate_check),
                          timeout=vmf.request_timeout)
    return shape_result(response.content, raw, response.content_type or media_type)

#==============================================================================
# STANDALONE EXECUTION
#==============================================================================

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='NSX Manager REST requests')
    vmf.add_connection_args(parser, DEFAULT_USER)
    parser.add_argument('endpoint', help='API path, e.g. /api/v1/logical-switches')
    parser.add_argument('--method', '-m', default='GET', help='HTTP method')
    parser.add_argument('--body', help='Request body')
    parser.add_argument('--body-file', help='File holding the request body')
    parser.add_argument('--content-type', help='Override the request/response media type')
    parser.add_argument('--raw', action='store_true', help='Print the response unparsed')
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the NSX script"""
    args = parse_args(argv)
    vmf.init(args.config, debug=args.debug)
    ctx = vmf.new_context()

    try:
        result = invoke_nsx_request(ctx, args.endpoint, args.method,
                                    vmf.read_body(args.body, args.body_file), args.raw,
                                    args.server, args.username, args.password,
                                    args.content_type, args.skip_certificate_check,
                                    args.interactive)
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
