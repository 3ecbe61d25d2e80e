#!/usr/bin/env python3
# session_cache.py - VMware Automation Scripts Session Cache
# Version 1.0 - October 2026
# Author - Automation Scripts Team
# Namespaced key/value store for values reused across the calls of one invocation

import logging
from typing import Any, Dict, Optional

from Tools.errors import MissingValueError

logger = logging.getLogger(__name__)


def _is_empty(value) -> bool:
    return value is None or (isinstance(value, str) and value == '')


class CacheNamespace:
    """
    View of one namespace (e.g. 'NSX', 'vCenter', 'vCloud') of a SessionCache.

    Last write wins, entries never expire.
    """

    def __init__(self, name: str, values: Dict[str, Any]):
        self.name = name
        self._values = values

    def get(self, key: str, default=None):
        return self._values.get(key, default)

    def set(self, key: str, value):
        self._values[key] = value
        return value

    def has(self, key: str) -> bool:
        return not _is_empty(self._values.get(key))

    def clear(self):
        self._values.clear()

    def keys(self):
        return list(self._values.keys())

    def sync(self, name: str, provided_value=None, mandatory: bool = False):
        """
        Store a provided value, or fall back to the cached one.

        :param name: Variable name (e.g. 'Server')
        :param provided_value: Value given by the caller; empty means "not given"
        :param mandatory: Raise if neither provided nor cached
        :return: The effective value, or None
        :raises MissingValueError: mandatory and nothing cached
        """
        if not _is_empty(provided_value):
            logger.debug(f'Caching {self.name}.{name}')
            return self.set(name, provided_value)

        cached = self._values.get(name)
        if not _is_empty(cached):
            return cached

        if mandatory:
            raise MissingValueError(name, self.name)
        return None

    def __contains__(self, key):
        return self.has(key)

    def __repr__(self):
        return f'CacheNamespace({self.name!r}, keys={self.keys()!r})'


class SessionCache:
    """
    Explicit session context holding every value resolved during one invocation.

    Callers create one (vmfunctions.new_context()) and pass it to each
    function that needs to share servers, tokens, connection handles or
    credentials. Not thread-safe.
    """

    def __init__(self):
        self._namespaces: Dict[str, Dict[str, Any]] = {}

    def namespace(self, prefix: str) -> CacheNamespace:
        values = self._namespaces.setdefault(prefix, {})
        return CacheNamespace(prefix, values)

    def get(self, prefix: str, key: str, default=None):
        return self.namespace(prefix).get(key, default)

    def set(self, prefix: str, key: str, value):
        return self.namespace(prefix).set(key, value)

    def sync(self, prefix: str, name: str, provided_value=None,
             mandatory: bool = False) -> Optional[Any]:
        return self.namespace(prefix).sync(name, provided_value, mandatory)

    def namespaces(self):
        return list(self._namespaces.keys())
