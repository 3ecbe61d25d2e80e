#!/usr/bin/env python3
# api_invoker.py - VMware Automation Scripts REST API Invoker
# Version 1.0 - October 2026
# Author - Automation Scripts Team
# One synchronous HTTP call per invocation; non-2xx and transport failures raise

import json
import base64
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import requests
import urllib3

from Tools.errors import ApiError, TransportError

logger = logging.getLogger(__name__)

#==============================================================================
# MODULE CONFIGURATION
#==============================================================================

REQUEST_TIMEOUT = 30  # seconds for API requests

#==============================================================================
# RESPONSE TYPE
#==============================================================================

@dataclass
class ApiResponse:
    status_code: int
    content: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == 'content-type':
                return value
        return ''

    def header(self, name: str, default: str = None) -> Optional[str]:
        """Case-insensitive header lookup"""
        for key, value in self.headers.items():
            if key.lower() == name.lower():
                return value
        return default

#==============================================================================
# HELPERS
#==============================================================================

def get_encoded_token(username: str, password: str) -> str:
    """
    Create a base64 encoded token for Basic authentication.

    :param username: Username (e.g., admin, administrator@vsphere.local, user@org)
    :param password: Password
    :return: Base64 encoded credentials string
    """
    credentials = f'{username}:{password}'
    return base64.b64encode(credentials.encode('utf-8')).decode('utf-8')


def basic_auth_header(credential, username: str = None) -> Dict[str, str]:
    """
    Authorization header for a Credential.

    :param credential: Credential (username/secret)
    :param username: Override the login name (vCloud uses user@org)
    """
    login = username or credential.username
    return {'Authorization': f'Basic {get_encoded_token(login, credential.secret)}'}


def join_url(base_url: str, endpoint: str) -> str:
    """Join base URL and endpoint path; absolute endpoint URLs are used as-is"""
    if endpoint.startswith('http://') or endpoint.startswith('https://'):
        return endpoint
    if not base_url.startswith('http://') and not base_url.startswith('https://'):
        base_url = f'https://{base_url}'
    if not endpoint:
        return base_url
    return f'{base_url.rstrip("/")}/{endpoint.lstrip("/")}'

#==============================================================================
# INVOKER
#==============================================================================

def invoke_api(base_url: str, endpoint: str, method: str = 'GET',
               headers: Dict[str, str] = None, body=None,
               skip_certificate_check: bool = False,
               timeout: int = REQUEST_TIMEOUT,
               session: requests.Session = None) -> ApiResponse:
    """
    Perform one HTTP request.

    :param base_url: https://server or server FQDN
    :param endpoint: API path (or absolute href)
    :param method: HTTP method
    :param headers: Request headers
    :param body: dict/list (sent as JSON), str or bytes (sent as-is), or None
    :param skip_certificate_check: Disable TLS verification
    :param timeout: Seconds before the request is abandoned
    :param session: requests.Session to use (a new one by default)
    :return: ApiResponse
    :raises ApiError: non-2xx status
    :raises TransportError: connection, DNS, TLS or timeout failure
    """
    url = join_url(base_url, endpoint)
    request_headers = dict(headers or {})

    data = None
    if isinstance(body, (dict, list)):
        data = json.dumps(body)
        if not any(k.lower() == 'content-type' for k in request_headers):
            request_headers['Content-Type'] = 'application/json'
    elif body is not None:
        data = body

    if skip_certificate_check:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    if session is None:
        session = requests.Session()
        session.trust_env = False  # Ignore proxy environment vars

    logger.debug(f'{method.upper()} {url}')

    try:
        response = session.request(
            method.upper(),
            url,
            headers=request_headers,
            data=data,
            verify=not skip_certificate_check,
            timeout=timeout
        )
    except requests.exceptions.RequestException as e:
        logger.error(f'Connection Error: {e}')
        raise TransportError(url, e)

    result = ApiResponse(response.status_code, response.text, dict(response.headers))

    if not 200 <= response.status_code < 300:
        logger.error(f'HTTP Error: {response.status_code} {method.upper()} {url}')
        logger.debug(f'Response: {response.text}')
        raise ApiError(response.status_code, response.text, url)

    return result
