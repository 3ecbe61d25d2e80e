#!/usr/bin/env python3
# result_shaper.py - VMware Automation Scripts Result Shaper
# Version 1.0 - October 2026
# Author - Automation Scripts Team
# Turns raw XML/JSON response content into raw text, parsed documents or typed records

import json
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Optional

from Tools.errors import ResultParseError

logger = logging.getLogger(__name__)

#==============================================================================
# TASK STATES
#==============================================================================

# queued, preRunning, running and any unknown state count as in progress
TASK_TERMINAL = ('success', 'error', 'canceled', 'aborted')

#==============================================================================
# PARSING
#==============================================================================

def detect_format(content: str, content_type: str = None) -> str:
    """Return 'json' or 'xml' from the content type, else by sniffing the content"""
    if content_type:
        lowered = content_type.lower()
        if 'json' in lowered:
            return 'json'
        if 'xml' in lowered:
            return 'xml'
    if content.lstrip().startswith('<'):
        return 'xml'
    return 'json'


def parse_json(content: str):
    try:
        return json.loads(content)
    except ValueError as e:
        raise ResultParseError(f'Malformed JSON response: {e}')


def parse_xml(content: str) -> ET.Element:
    try:
        return ET.fromstring(content)
    except ET.ParseError as e:
        raise ResultParseError(f'Malformed XML response: {e}')


def shape_result(content: str, raw: bool = False, content_type: str = None):
    """
    Shape response content for the caller.

    :param content: Response body text
    :param raw: Return the content unchanged
    :param content_type: Response Content-Type, used to pick the parser
    :return: str when raw; dict/list for JSON; ElementTree Element for XML;
             None for empty content
    :raises ResultParseError: malformed content
    """
    if raw:
        return content
    if content is None or not content.strip():
        return None
    if detect_format(content, content_type) == 'xml':
        return parse_xml(content)
    return parse_json(content)


def local_name(tag: str) -> str:
    """Strip the {namespace} prefix from an XML tag"""
    return tag.rsplit('}', 1)[-1] if '}' in tag else tag


def get_path(document, path: str, default=None):
    """
    Navigate a shaped document by dotted field path.

    Dicts by key, lists by numeric index. For XML, each part matches a
    child by local tag name (first match) and '@name' reads an attribute;
    a leaf element without children yields its text.

    Examples:
        get_path({'results': [{'id': 'a'}]}, 'results.0.id')  -> 'a'
        get_path(task_element, 'Error.@message')
    """
    current = document
    for part in path.split('.') if path else []:
        if current is None:
            return default
        if isinstance(current, ET.Element):
            if part.startswith('@'):
                current = current.attrib.get(part[1:])
            else:
                current = next((c for c in current if local_name(c.tag) == part), None)
        elif isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return default
        else:
            return default

    if current is None:
        return default
    if isinstance(current, ET.Element) and len(current) == 0:
        return current.text
    return current


def to_text(document) -> str:
    """Render a shaped result for standard output"""
    if document is None:
        return ''
    if isinstance(document, str):
        return document
    if isinstance(document, ET.Element):
        return ET.tostring(document, encoding='unicode')
    if hasattr(document, 'to_dict'):
        document = document.to_dict()
    return json.dumps(document, indent=2, default=str)

#==============================================================================
# TYPED RECORDS
#==============================================================================

def _require(value, what: str):
    if value is None or value == '':
        raise ResultParseError(f'Unexpected response shape: missing {what}')
    return value


def _as_xml(document) -> ET.Element:
    if isinstance(document, ET.Element):
        return document
    if isinstance(document, str):
        return parse_xml(document)
    raise ResultParseError(f'Expected an XML document, got {type(document).__name__}')


def _as_json(document):
    if isinstance(document, str):
        return parse_json(document)
    return document


@dataclass
class VCenterSession:
    token: str

    @classmethod
    def from_json(cls, document) -> 'VCenterSession':
        """/api/session returns a bare JSON string, /rest/com/vmware/cis/session {"value": token}"""
        data = _as_json(document)
        if isinstance(data, str):
            return cls(_require(data, 'session token'))
        if isinstance(data, dict):
            return cls(_require(data.get('value'), 'value'))
        raise ResultParseError(f'Unexpected vCenter session response: {type(data).__name__}')

    def to_dict(self):
        return {'token': '***'}


@dataclass
class VCloudSession:
    token: str
    user: str
    org: str
    href: str = ''

    @classmethod
    def from_response(cls, response) -> 'VCloudSession':
        """Build from the ApiResponse of POST /api/sessions"""
        token = (response.header('x-vcloud-authorization')
                 or response.header('X-VMWARE-VCLOUD-ACCESS-TOKEN'))
        token = _require(token, 'x-vcloud-authorization header')
        if detect_format(response.content, response.content_type) == 'json':
            data = _as_json(response.content)
            if not isinstance(data, dict):
                raise ResultParseError('Unexpected vCloud session response')
            return cls(token, _require(data.get('user'), 'user'),
                       _require(data.get('org'), 'org'), data.get('href', ''))
        root = _as_xml(response.content)
        if local_name(root.tag) != 'Session':
            raise ResultParseError(f'Expected <Session>, got <{local_name(root.tag)}>')
        return cls(token, _require(root.get('user'), 'Session@user'),
                   _require(root.get('org'), 'Session@org'), root.get('href', ''))

    def to_dict(self):
        return {'user': self.user, 'org': self.org, 'href': self.href}


@dataclass
class VCloudTask:
    href: str
    name: str
    status: str
    operation: str = ''
    operation_name: str = ''
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    error_message: str = ''

    @property
    def is_terminal(self) -> bool:
        return self.status in TASK_TERMINAL

    @property
    def succeeded(self) -> bool:
        return self.status == 'success'

    @classmethod
    def from_xml(cls, document) -> 'VCloudTask':
        root = _as_xml(document)
        if local_name(root.tag) != 'Task':
            raise ResultParseError(f'Expected <Task>, got <{local_name(root.tag)}>')
        error = next((c for c in root if local_name(c.tag) == 'Error'), None)
        return cls(
            href=_require(root.get('href'), 'Task@href'),
            name=root.get('name', ''),
            status=_require(root.get('status'), 'Task@status'),
            operation=root.get('operation', ''),
            operation_name=root.get('operationName', ''),
            start_time=root.get('startTime'),
            end_time=root.get('endTime'),
            error_message=error.get('message', '') if error is not None else ''
        )

    @classmethod
    def from_json(cls, document) -> 'VCloudTask':
        data = _as_json(document)
        if not isinstance(data, dict):
            raise ResultParseError(f'Expected a task object, got {type(data).__name__}')
        error = data.get('error') or {}
        return cls(
            href=_require(data.get('href'), 'href'),
            name=data.get('name', ''),
            status=_require(data.get('status'), 'status'),
            operation=data.get('operation', ''),
            operation_name=data.get('operationName', ''),
            start_time=data.get('startTime'),
            end_time=data.get('endTime'),
            error_message=error.get('message', '') if isinstance(error, dict) else str(error)
        )

    @classmethod
    def from_content(cls, content: str, content_type: str = None) -> 'VCloudTask':
        if detect_format(content, content_type) == 'json':
            return cls.from_json(content)
        return cls.from_xml(content)

    def to_dict(self):
        return {
            'href': self.href,
            'name': self.name,
            'status': self.status,
            'operation': self.operation,
            'operationName': self.operation_name,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'errorMessage': self.error_message
        }
