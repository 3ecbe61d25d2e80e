#!/usr/bin/env python3
# errors.py - VMware Automation Scripts Error Types
# Version 1.0 - October 2026
# Author - Automation Scripts Team
# Every error a script can surface derives from AutomationError


class AutomationError(Exception):
    """Base class for errors surfaced to the caller of a script"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class CredentialNotFoundError(AutomationError):
    """No credential could be resolved from any source"""

    def __init__(self, attempted: list):
        self.attempted = list(attempted)
        locations = ', '.join(self.attempted) if self.attempted else 'no location'
        super().__init__(f'No credential found (tried: {locations})')


class CredentialFormatError(AutomationError):
    """A persisted credential exists but cannot be read or decrypted"""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f'Unreadable credential {location}: {reason}')


class MissingValueError(AutomationError):
    """A mandatory value was neither provided nor cached"""

    def __init__(self, name: str, namespace: str = ''):
        self.name = name
        self.namespace = namespace
        scope = f'{namespace}.' if namespace else ''
        super().__init__(f'No value found for mandatory variable {scope}{name}')


class TransportError(AutomationError):
    """Connection, DNS, TLS or timeout failure talking to an endpoint"""

    def __init__(self, url: str, cause: Exception):
        self.url = url
        self.cause = cause
        super().__init__(f'Connection to {url} failed: {cause}')


class ApiError(AutomationError):
    """The endpoint answered with a non-2xx status"""

    def __init__(self, status_code: int, body: str, url: str = ''):
        self.status_code = status_code
        self.body = body or ''
        self.url = url
        target = f' from {url}' if url else ''
        super().__init__(f'HTTP {status_code}{target}: {self.body}')


class ResultParseError(AutomationError):
    """Malformed response content or a document of the wrong shape"""


class TaskTimeoutError(AutomationError):
    """A polled task did not reach a terminal state before the deadline"""

    def __init__(self, task_ref: str, timeout: float, last_status: str = ''):
        self.task_ref = task_ref
        self.timeout = timeout
        self.last_status = last_status
        super().__init__(
            f'Task {task_ref} did not finish within {timeout}s (last status: {last_status or "unknown"})')


class TaskFailedError(AutomationError):
    """A polled task ended in a terminal state other than success"""

    def __init__(self, task_ref: str, status: str, detail: str = ''):
        self.task_ref = task_ref
        self.status = status
        self.detail = detail
        suffix = f': {detail}' if detail else ''
        super().__init__(f'Task {task_ref} ended with status {status}{suffix}')


class CommandError(AutomationError):
    """An external command exited with a non-zero code"""

    def __init__(self, cmd, returncode: int, stderr: str = ''):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr or ''
        name = cmd[0] if isinstance(cmd, (list, tuple)) and cmd else str(cmd)
        super().__init__(f'{name} exited with code {returncode}: {self.stderr.strip()}')


class CredentialStoreError(AutomationError):
    """The secret store itself is unavailable (e.g. no keyring backend)"""

    def __init__(self, location: str, cause: Exception):
        self.location = location
        self.cause = cause
        super().__init__(f'Credential store {location} unavailable: {cause}')


class PromptAbortedError(AutomationError):
    """Interactive input ended (EOF or Ctrl-C) before a value was entered"""

    def __init__(self, prompt: str):
        self.prompt = prompt
        super().__init__(f'No input for prompt {prompt.strip()!r} (no terminal or interrupted)')
