"""
Async client for the Docker Engine remote API
Works with the Docker daemon over a Unix socket, TCP or TLS
"""

from .client import DockerClient
from .config import DockerConfig
from .containers import Container, ContainerCollection, ContainerFs
from .descriptor import ACCEPT, CallDescriptor, Decoded, Streamed
from .exceptions import (
    APIError,
    BadRequest,
    ConfigError,
    Conflict,
    DecodeError,
    DockerException,
    NotFound,
    RemoteStatusError,
    StreamError,
    TransportError,
    UnmappedStatusError,
)
from .execs import Exec, ExecManager
from .http_client import DockerHTTPClient
from .images import Image, ImageCollection
from .services import Service, ServiceCollection
from .streams import STDERR, STDOUT, DockerStream, Frame

__all__ = [
    'ACCEPT',
    'APIError',
    'BadRequest',
    'CallDescriptor',
    'ConfigError',
    'Conflict',
    'Container',
    'ContainerCollection',
    'ContainerFs',
    'DecodeError',
    'Decoded',
    'DockerClient',
    'DockerConfig',
    'DockerException',
    'DockerHTTPClient',
    'DockerStream',
    'Exec',
    'ExecManager',
    'Frame',
    'Image',
    'ImageCollection',
    'NotFound',
    'RemoteStatusError',
    'STDERR',
    'STDOUT',
    'Service',
    'ServiceCollection',
    'StreamError',
    'Streamed',
    'TransportError',
    'UnmappedStatusError',
]

__version__ = '1.0.0'
