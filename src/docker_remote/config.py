"""
Client configuration
Locates the Docker daemon and holds connection settings
"""

import os
import platform
import ssl
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_UNIX_SOCKET = '/var/run/docker.sock'
DEFAULT_TIMEOUT = 60.0
DEFAULT_TLS_PORT = 2376
DEFAULT_TCP_PORT = 2375


def default_socket_path() -> str:
    """Platform default Docker socket"""
    if platform.system() == 'Darwin':  # macOS
        socket_path = os.path.expanduser('~/.docker/run/docker.sock')
        # Fallback to default Unix socket
        if os.path.exists(socket_path):
            return socket_path
    return DEFAULT_UNIX_SOCKET


def _truthy(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower() not in ('0', 'false', 'no', 'off')


@dataclass
class DockerConfig:
    """
    Connection settings for the Docker daemon

    Args:
        base_url: unix:///path, tcp://host:port, http(s)://host:port or a socket path
        api_version: Pin requests to /v{api_version}; None sends unversioned paths
        timeout: Request timeout in seconds (streams have no read timeout)
        tls: Use TLS for TCP connections
        tls_verify: Verify the daemon certificate against ca.pem
        cert_path: Directory holding ca.pem, cert.pem and key.pem
        headers: Extra headers sent with every request
    """
    base_url: Optional[str] = None
    api_version: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    tls: bool = False
    tls_verify: bool = False
    cert_path: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> 'DockerConfig':
        """
        Build a config from DOCKER_* environment variables

        Args:
            environ: Environment mapping (default: os.environ)
            **overrides: Explicit settings, these win over the environment

        Returns:
            DockerConfig
        """
        env = os.environ if environ is None else environ

        settings: Dict[str, Any] = {}
        if env.get('DOCKER_HOST'):
            settings['base_url'] = env['DOCKER_HOST']
        if env.get('DOCKER_API_VERSION'):
            settings['api_version'] = env['DOCKER_API_VERSION']
        if env.get('DOCKER_CERT_PATH'):
            settings['cert_path'] = env['DOCKER_CERT_PATH']
        if _truthy(env.get('DOCKER_TLS_VERIFY')):
            settings['tls'] = True
            settings['tls_verify'] = True

        # Merge with overrides (explicit settings override the environment)
        settings.update({k: v for k, v in overrides.items() if v is not None})

        config = cls(**settings)
        if config.tls and not config.cert_path:
            config = replace(config, cert_path=os.path.join(os.path.expanduser('~'), '.docker'))
        return config

    @property
    def socket_path(self) -> Optional[str]:
        """Path of the Unix socket, or None for TCP endpoints"""
        if not self.base_url:
            return default_socket_path()
        if self.base_url.startswith('unix://'):
            # Remove unix:// prefix
            return self.base_url[len('unix://'):]
        if self.base_url.startswith('/'):
            return self.base_url
        return None

    @property
    def http_url(self) -> str:
        """Base URL handed to the HTTP layer"""
        if self.socket_path:
            # host is ignored when dialing a Unix socket
            return 'http://docker'

        parsed = urlparse(self.base_url)
        if parsed.scheme not in ('tcp', 'http', 'https'):
            raise ConfigError(f"Unsupported Docker host: {self.base_url}")

        secure = self.tls or parsed.scheme == 'https'
        host = parsed.hostname or 'localhost'
        port = parsed.port or (DEFAULT_TLS_PORT if secure else DEFAULT_TCP_PORT)
        if ':' in host:
            host = f"[{host}]"
        return f"{'https' if secure else 'http'}://{host}:{port}"

    @property
    def path_prefix(self) -> str:
        if not self.api_version:
            return ''
        return f"/v{self.api_version.lstrip('v')}"

    def api_older_than(self, version: str) -> bool:
        """Whether requests are pinned to an API version below ``version``"""
        if not self.api_version:
            return False
        try:
            pinned = tuple(int(part) for part in self.api_version.lstrip('v').split('.'))
            wanted = tuple(int(part) for part in version.split('.'))
        except ValueError as e:
            raise ConfigError(f"Invalid API version: {self.api_version}") from e
        return pinned < wanted

    def ssl_context(self) -> Optional[ssl.SSLContext]:
        """
        Build the TLS context for TCP connections

        Returns:
            SSLContext, or None when TLS is disabled
        """
        if not self.http_url.startswith('https://'):
            return None

        ca_file = cert_file = key_file = None
        if self.cert_path:
            ca_file = os.path.join(self.cert_path, 'ca.pem')
            cert_file = os.path.join(self.cert_path, 'cert.pem')
            key_file = os.path.join(self.cert_path, 'key.pem')

        if self.tls_verify:
            if not ca_file or not os.path.exists(ca_file):
                raise ConfigError(f"TLS verification needs a CA certificate: {ca_file}")
            context = ssl.create_default_context(cafile=ca_file)
        else:
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

        if cert_file and os.path.exists(cert_file):
            if not os.path.exists(key_file):
                raise ConfigError(f"Client certificate without key: {key_file}")
            context.load_cert_chain(cert_file, key_file)
        elif self.tls_verify:
            logger.warning(f"No client certificate in {self.cert_path}, connecting without one")

        return context
