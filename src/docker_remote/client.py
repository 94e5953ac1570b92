"""
Docker Client - Main API entry point
"""

from dataclasses import replace
from typing import Any, Dict, Optional

from .config import DockerConfig
from .containers import ContainerCollection
from .exceptions import DecodeError
from .http_client import DockerHTTPClient
from .images import ImageCollection
from .models import call
from .services import ServiceCollection


class DockerClient:
    """
    Docker API Client

    Usage:
        async with DockerClient() as docker:
            container = await docker.containers.create({'Image': 'alpine'})
            await container.start()
    """

    def __init__(self, config: Optional[DockerConfig] = None, *, http=None, transport=None,
                 **settings: Any):
        """
        Initialize Docker client

        Args:
            config: Connection settings (default: read from DOCKER_* variables)
            http: Object with an async ``dial(descriptor)`` to use as transport
            transport: httpx transport handed to the default DockerHTTPClient
            **settings: DockerConfig fields overriding config/environment
                (base_url, api_version, timeout, tls, tls_verify, cert_path)
        """
        if config is None:
            config = DockerConfig.from_env(**settings)
        elif settings:
            config = replace(config, **settings)

        self.config = config
        self.http = http if http is not None else DockerHTTPClient(config, transport=transport)
        self.containers = ContainerCollection(self.http)
        self.images = ImageCollection(self.http)
        self.services = ServiceCollection(self.http)

    async def version(self) -> Dict[str, Any]:
        """Get Docker version info"""
        result = await call(self.http, 'system.version')
        return result.value

    async def info(self) -> Dict[str, Any]:
        """Get Docker system info"""
        result = await call(self.http, 'system.info')
        return result.value

    async def ping(self) -> str:
        """
        Ping Docker daemon

        Returns:
            The daemon's reply text (normally 'OK')

        Raises:
            DecodeError: If the daemon answered without a text body
        """
        result = await call(self.http, 'system.ping')
        value = result.value
        if isinstance(value, bytes):
            try:
                value = value.decode('utf-8')
            except UnicodeDecodeError as e:
                raise DecodeError(f"Invalid ping reply: {e}", body=value) from e
        if not isinstance(value, str) or not value:
            raise DecodeError(f"Unexpected ping reply: {value!r}")
        return value

    async def aclose(self):
        """Close the transport's connections"""
        aclose = getattr(self.http, 'aclose', None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
