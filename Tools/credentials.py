#!/usr/bin/env python3
# credentials.py - VMware Automation Scripts Credential Resolution
# Version 1.0 - October 2026
# Author - Automation Scripts Team
# Resolves the credential for a server from explicit input, persisted files,
# an interactive prompt or a username-only fallback file

"""
Credential resolution and secret storage.

Resolution order (first success wins):
  1. Explicit username and password (pre-encoded secrets are decoded,
     anything else is taken as plaintext)
  2. Persisted credential named {server}-{username}
  3. Interactive prompt (optionally persisted after confirmation)
  4. Persisted credential named {username}
  5. CredentialNotFoundError naming the attempted locations

A credential resolved once for (server, username) is kept in the session
context and returned as-is on later lookups without new input.

Storage backends:
  EncryptedFileStore  - {dir}/{name}.cred, Fernet-encrypted secret
  KeyringStore        - OS keychain via keyring
  InjectedSecretStore - in-memory mapping
"""

import os
import sys
import json
import getpass
import logging
import argparse
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional

import keyring
from keyring.errors import KeyringError
from cryptography.fernet import Fernet, InvalidToken

from Tools.errors import (AutomationError, CredentialFormatError, CredentialNotFoundError,
                          CredentialStoreError, PromptAbortedError)
from Tools.session_cache import SessionCache

logger = logging.getLogger(__name__)

#==============================================================================
# CONFIGURATION
#==============================================================================

CACHE_NAMESPACE = 'Credentials'
CREDENTIAL_EXTENSION = '.cred'
KEY_FILENAME = '.key'
KEYRING_SERVICE = 'vmscripts'

#==============================================================================
# CREDENTIAL TYPE
#==============================================================================

@dataclass(frozen=True)
class Credential:
    username: str
    secret: str = field(repr=False)

    def to_dict(self) -> Dict[str, str]:
        return {'username': self.username, 'secret': self.secret}


def credential_name(server: Optional[str], username: str) -> str:
    """Storage/cache name for a credential: {server}-{username} or {username}"""
    if server:
        return f'{server}-{username}'
    return username

#==============================================================================
# SECRET STORES
#==============================================================================

class SecretStore(ABC):
    """Where persisted credentials live"""

    @abstractmethod
    def location(self, name: str) -> str:
        pass

    @abstractmethod
    def exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def load(self, name: str) -> Optional[Credential]:
        """
        :return: Credential, or None when nothing is stored under name
        :raises CredentialFormatError: stored data is unreadable
        """

    @abstractmethod
    def save(self, name: str, credential: Credential) -> str:
        """:return: location written"""

    def encode(self, secret: str) -> str:
        return secret

    def decode(self, value: str) -> str:
        """Decode a pre-encoded secret, returning value unchanged if it is plaintext"""
        return value


class EncryptedFileStore(SecretStore):
    """
    Credential files in a directory, one JSON document per credential:
    {"username": "...", "secret": "<Fernet token>"}

    The Fernet key is kept next to the files in .key (mode 0600) and is
    generated on the first save.
    """

    def __init__(self, directory: str):
        self.directory = os.path.expanduser(directory)
        self._fernet = None

    def location(self, name: str) -> str:
        return os.path.join(self.directory, f'{name}{CREDENTIAL_EXTENSION}')

    def exists(self, name: str) -> bool:
        return os.path.isfile(self.location(name))

    def _ensure_directory(self):
        if not os.path.isdir(self.directory):
            os.makedirs(self.directory, mode=0o700, exist_ok=True)
            logger.debug(f'Created credential directory {self.directory}')

    def _get_fernet(self, create: bool = False) -> Optional[Fernet]:
        if self._fernet is not None:
            return self._fernet

        key_path = os.path.join(self.directory, KEY_FILENAME)
        if os.path.isfile(key_path):
            with open(key_path, 'rb') as f:
                key = f.read().strip()
        elif create:
            self._ensure_directory()
            key = Fernet.generate_key()
            fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, 'wb') as f:
                f.write(key)
        else:
            return None

        try:
            self._fernet = Fernet(key)
        except ValueError as e:
            raise CredentialFormatError(key_path, f'invalid key: {e}')
        return self._fernet

    def encode(self, secret: str) -> str:
        return self._get_fernet(create=True).encrypt(secret.encode('utf-8')).decode('utf-8')

    def decode(self, value: str) -> str:
        try:
            fernet = self._get_fernet()
        except CredentialFormatError as e:
            logger.warning(f'{e.message} - treating password as plaintext')
            return value
        if fernet is None:
            return value
        try:
            return fernet.decrypt(value.encode('utf-8')).decode('utf-8')
        except (InvalidToken, ValueError):
            return value

    def load(self, name: str) -> Optional[Credential]:
        path = self.location(name)
        if not os.path.isfile(path):
            return None

        try:
            with open(path, 'r') as f:
                data = json.load(f)
            username = data['username']
            token = data['secret']
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise CredentialFormatError(path, str(e) or type(e).__name__)

        if not isinstance(username, str) or not isinstance(token, str):
            raise CredentialFormatError(path, 'username and secret must be strings')

        fernet = self._get_fernet()
        if fernet is None:
            raise CredentialFormatError(path, f'missing key file {KEY_FILENAME}')
        try:
            secret = fernet.decrypt(token.encode('utf-8')).decode('utf-8')
        except InvalidToken:
            raise CredentialFormatError(path, 'secret cannot be decrypted with the current key')

        return Credential(username, secret)

    def save(self, name: str, credential: Credential) -> str:
        self._ensure_directory()
        path = self.location(name)
        document = {
            'username': credential.username,
            'secret': self.encode(credential.secret)
        }
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, 'w') as f:
            json.dump(document, f)
        logger.info(f'Saved credential to {path}')
        return path


class KeyringStore(SecretStore):
    """Credentials in the OS keychain, stored as JSON under (service, name)"""

    def __init__(self, service: str = KEYRING_SERVICE):
        self.service = service

    def location(self, name: str) -> str:
        return f'keyring:{self.service}/{name}'

    def _get(self, name: str) -> Optional[str]:
        try:
            return keyring.get_password(self.service, name)
        except KeyringError as e:
            raise CredentialStoreError(self.location(name), e)

    def exists(self, name: str) -> bool:
        return self._get(name) is not None

    def load(self, name: str) -> Optional[Credential]:
        raw = self._get(name)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            return Credential(data['username'], data['secret'])
        except (ValueError, KeyError, TypeError) as e:
            raise CredentialFormatError(self.location(name), str(e) or type(e).__name__)

    def save(self, name: str, credential: Credential) -> str:
        try:
            keyring.set_password(self.service, name, json.dumps(credential.to_dict()))
        except KeyringError as e:
            raise CredentialStoreError(self.location(name), e)
        return self.location(name)


class InjectedSecretStore(SecretStore):
    """In-memory credentials handed in by the caller"""

    def __init__(self, credentials: Dict[str, Credential] = None):
        self._credentials = dict(credentials or {})

    def location(self, name: str) -> str:
        return f'injected:{name}'

    def exists(self, name: str) -> bool:
        return name in self._credentials

    def load(self, name: str) -> Optional[Credential]:
        value = self._credentials.get(name)
        if value is None or isinstance(value, Credential):
            return value
        raise CredentialFormatError(self.location(name), f'unexpected type {type(value).__name__}')

    def save(self, name: str, credential: Credential) -> str:
        self._credentials[name] = credential
        return self.location(name)

#==============================================================================
# RESOLVER
#==============================================================================

def read_input(read, prompt: str) -> str:
    """
    Call an input function (input, getpass.getpass), turning a closed stdin
    or Ctrl-C into PromptAbortedError.
    """
    try:
        return read(prompt)
    except (EOFError, KeyboardInterrupt):
        raise PromptAbortedError(prompt)


class CredentialResolver:
    """
    Resolve a credential for (server, username) using the fixed priority order.

    :param store: SecretStore holding persisted credentials
    :param context: SessionCache shared with the rest of the invocation
    :param interactive: Allow prompting on the terminal
    :param prompt: Secret prompt function (default getpass.getpass)
    :param ask: Line input function used for username and save confirmation (default input)
    """

    def __init__(self, store: SecretStore, context: SessionCache = None,
                 interactive: bool = False, prompt=None, ask=None):
        self.store = store
        self.context = context if context is not None else SessionCache()
        self.cache = self.context.namespace(CACHE_NAMESPACE)
        self.interactive = interactive
        self._prompt = prompt or getpass.getpass
        self._ask = ask or input

    def resolve(self, server: Optional[str], username: Optional[str],
                password: Optional[str] = None) -> Credential:
        """
        :return: Credential
        :raises CredentialNotFoundError: no strategy produced a credential
        """
        # 1. Explicit input always wins and replaces any cached credential
        if username and password:
            credential = Credential(username, self.store.decode(password))
            self.cache.set(credential_name(server, username), credential)
            return credential

        if not username:
            if not self.interactive:
                raise CredentialNotFoundError(['no username given'])
            username = read_input(self._ask, f'Username for {server or "server"}: ').strip()
            if not username:
                raise CredentialNotFoundError(['no username given'])

        key = credential_name(server, username)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f'Using cached credential for {key}')
            return cached

        attempted = []

        # 2. {server}-{username}
        if server:
            credential = self._load(key, attempted)
            if credential is not None:
                return self.cache.set(key, credential)

        # 3. Interactive prompt
        if self.interactive:
            credential = self._prompt_for(server, username)
            return self.cache.set(key, credential)

        # 4. {username}
        credential = self._load(username, attempted)
        if credential is not None:
            return self.cache.set(key, credential)

        raise CredentialNotFoundError(attempted)

    def _load(self, name: str, attempted: list) -> Optional[Credential]:
        location = self.store.location(name)
        attempted.append(location)
        try:
            credential = self.store.load(name)
        except CredentialFormatError as e:
            logger.warning(f'{e.message} - trying next credential source')
            return None
        if credential is not None:
            logger.debug(f'Loaded credential from {location}')
        return credential

    def _prompt_for(self, server: Optional[str], username: str) -> Credential:
        target = f'{username}@{server}' if server else username
        secret = read_input(self._prompt, f'Password for {target}: ')
        credential = Credential(username, secret)

        answer = read_input(self._ask, f"Save credential for '{server or username}'? [y/N] ").strip().lower()
        if answer in ('y', 'yes'):
            location = self.store.save(credential_name(server, username), credential)
            logger.info(f'Credential saved to {location}')
        return credential


def get_store(credential_dir: str = None, backend: str = 'file') -> SecretStore:
    """Build the configured secret store ('file' or 'keyring')"""
    if backend == 'keyring':
        return KeyringStore()
    if credential_dir is None:
        import vmfunctions as vmf
        credential_dir = vmf.credential_dir
    return EncryptedFileStore(credential_dir)


def get_credential(context: SessionCache, server: Optional[str], username: Optional[str],
                   password: Optional[str] = None, interactive: bool = False,
                   store: SecretStore = None) -> Credential:
    """Resolve a credential with the default file store"""
    resolver = CredentialResolver(store or get_store(), context, interactive=interactive)
    return resolver.resolve(server, username, password)

#==============================================================================
# STANDALONE EXECUTION
#==============================================================================

def main(argv=None):
    """Export or inspect persisted credentials"""
    import vmfunctions as vmf

    parser = argparse.ArgumentParser(description='Manage persisted credentials')
    parser.add_argument('--dir', help='Credential directory (default from config.ini)')
    parser.add_argument('--keyring', action='store_true', help='Use the OS keychain instead of files')
    parser.add_argument('--debug', action='store_true', help='Enable debug output')
    sub = parser.add_subparsers(dest='action', required=True)

    export = sub.add_parser('export', help='Prompt for a secret and persist it')
    export.add_argument('--server', default='', help='Server the credential belongs to')
    export.add_argument('--username', '-u', required=True, help='Username')

    show = sub.add_parser('show', help='Show which stored credential would be used')
    show.add_argument('--server', default='', help='Server the credential belongs to')
    show.add_argument('--username', '-u', required=True, help='Username')

    args = parser.parse_args(argv)
    vmf.init(debug=args.debug)
    store = get_store(args.dir or vmf.credential_dir, 'keyring' if args.keyring else 'file')

    try:
        if args.action == 'export':
            secret = read_input(getpass.getpass, f'Password for {args.username}: ')
            if not secret:
                raise AutomationError('Empty password, nothing exported')
            location = store.save(credential_name(args.server, args.username),
                                  Credential(args.username, secret))
            vmf.write_output(f'Exported credential for {args.username} to {location}')
            print(location)
        else:
            candidates = [credential_name(args.server, args.username), args.username]
            name = next((n for n in candidates if store.exists(n)), None)
            if name is None:
                raise CredentialNotFoundError([store.location(n) for n in candidates])
            credential = store.load(name)
            print(json.dumps({'username': credential.username,
                              'location': store.location(name)}, indent=2))
    except AutomationError as e:
        vmf.write_error(e.message)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
