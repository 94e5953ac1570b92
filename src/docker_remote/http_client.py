"""
HTTP transport for the Docker daemon
Async implementation on top of httpx, over a Unix socket, TCP or TLS
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import httpx
import websockets
from websockets.exceptions import InvalidHandshake, InvalidStatus

from .config import DockerConfig
from .descriptor import ACCEPT, CallDescriptor, Decoded, Result, Streamed
from .exceptions import (
    DecodeError,
    TransportError,
    UnmappedStatusError,
    status_error_class,
)
from .streams import CONNECTION_ERRORS, DockerStream, multiplexed_from_content_type

logger = logging.getLogger(__name__)

FRAMED_CONTENT_TYPE_VERSION = '1.42'


def build_query(params: Optional[Mapping[str, Any]]) -> str:
    """
    Serialize query parameters the way the daemon expects them

    Booleans become true/false, lists and dicts become JSON (filters,
    buildargs, labels) and None values are dropped.
    """
    if not params:
        return ''
    query_parts = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        elif isinstance(value, (list, dict)):
            value = json.dumps(value)
        query_parts.append(f"{quote(str(key))}={quote(str(value))}")
    return '&'.join(query_parts)


def error_explanation(body: bytes) -> Optional[str]:
    """Pull the daemon's message out of an error body"""
    if not body:
        return None
    text = body.decode('utf-8', errors='replace').strip()
    try:
        error_data = json.loads(text)
    except ValueError:
        return text or None
    if isinstance(error_data, dict):
        return error_data.get('message', text)
    return text


class DockerHTTPClient:
    """HTTP client for Docker daemon"""

    def __init__(self, config: Optional[DockerConfig] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize Docker HTTP client

        Args:
            config: Connection settings (default: read from the environment)
            transport: httpx transport to use instead of dialing the daemon
        """
        self.config = config or DockerConfig.from_env()

        if transport is None:
            socket_path = self.config.socket_path
            if socket_path:
                transport = httpx.AsyncHTTPTransport(uds=socket_path)
            else:
                context = self.config.ssl_context()
                transport = httpx.AsyncHTTPTransport(verify=context if context else True)

        self._client = httpx.AsyncClient(
            base_url=self.config.http_url,
            transport=transport,
            timeout=httpx.Timeout(self.config.timeout),
            headers=self.config.headers,
        )

    def url(self, path: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """Build the request path, version prefix and query included"""
        url = f"{self.config.path_prefix}{path}"
        query = build_query(params)
        if query:
            url = f"{url}?{query}"
        return url

    async def dial(self, descriptor: CallDescriptor) -> Result:
        """
        Perform one call against the daemon

        Args:
            descriptor: Description of the call

        Returns:
            Streamed when the descriptor asks for a stream, Decoded otherwise

        Raises:
            TransportError: If the daemon cannot be reached
            RemoteStatusError: If the status maps to an error reason
            UnmappedStatusError: If the status is not in the descriptor's table
            DecodeError: If a JSON body cannot be decoded
        """
        url = self.url(descriptor.path, descriptor.query)

        # Prepare headers
        req_headers: Dict[str, str] = dict(descriptor.headers)
        if descriptor.hijack:
            req_headers['Connection'] = 'Upgrade'
            req_headers['Upgrade'] = 'tcp'

        # Prepare body
        content = None
        if descriptor.body is not None:
            content = json.dumps(descriptor.body).encode('utf-8')
            req_headers.setdefault('Content-Type', 'application/json')
        elif descriptor.data is not None:
            content = descriptor.data

        timeout = httpx.Timeout(self.config.timeout)
        if descriptor.stream:
            # Streams stay open as long as the daemon keeps them open
            timeout = httpx.Timeout(self.config.timeout, read=None)

        logger.debug(f"{descriptor.method} {url} stream={descriptor.stream} hijack={descriptor.hijack}")

        request = self._client.build_request(
            descriptor.method, url, content=content, headers=req_headers, timeout=timeout
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.TransportError as e:
            raise TransportError(f"Cannot reach Docker daemon at {self.config.base_url or self.config.socket_path}: {e}") from e
        except OSError as e:
            raise TransportError(f"Docker connection error: {e}") from e

        try:
            return await self._handle_response(descriptor, response)
        except BaseException:
            await response.aclose()
            raise

    async def _handle_response(self, descriptor: CallDescriptor, response: httpx.Response) -> Result:
        status = response.status_code
        if descriptor.outcome(status) is not ACCEPT:
            body = await self._read_body(descriptor, response)
            self.raise_for_status(descriptor, status, body, response)

        headers = {key.lower(): value for key, value in response.headers.items()}

        # Stream response - DON'T close connection yet
        if descriptor.stream:
            network_stream = None
            if status == 101:
                network_stream = response.extensions.get('network_stream')
                logger.debug(f"Connection upgraded for {descriptor.path}")

            multiplexed = descriptor.multiplexed
            if multiplexed is None:
                multiplexed = self._multiplexed_from_response(response)

            stream = DockerStream(response, multiplexed=multiplexed, network_stream=network_stream)
            return Streamed(stream, status_code=status, headers=headers)

        try:
            body = await self._read_body(descriptor, response)
        finally:
            await response.aclose()

        return Decoded(self.decode(body, response.headers.get('content-type')),
                       status_code=status, headers=headers)

    @staticmethod
    async def _read_body(descriptor: CallDescriptor, response: httpx.Response) -> bytes:
        try:
            return await response.aread()
        except CONNECTION_ERRORS as e:
            raise TransportError(f"Connection lost while reading {descriptor.path}: {e}") from e

    def _multiplexed_from_response(self, response: httpx.Response) -> bool:
        multiplexed = multiplexed_from_content_type(response.headers.get('content-type'))
        # Daemons before API 1.42 label every attach/logs stream as raw-stream
        if multiplexed is False and self.config.api_older_than(FRAMED_CONTENT_TYPE_VERSION):
            return True
        return bool(multiplexed)

    @staticmethod
    def decode(body: bytes, content_type: Optional[str]) -> Any:
        """
        Decode a buffered body

        JSON (or untyped) bodies are parsed, text bodies become str and
        anything else (tar archives) is returned as bytes.
        """
        if not body:
            return None

        content_type = (content_type or '').lower()
        if not content_type or 'json' in content_type:
            try:
                return json.loads(body.decode('utf-8'))
            except ValueError as e:
                raise DecodeError(f"Invalid JSON from Docker daemon: {e}", body=body) from e

        if content_type.startswith('text/'):
            return body.decode('utf-8', errors='replace')
        return body

    @staticmethod
    def raise_for_status(descriptor: CallDescriptor, status: int, body: bytes = b'', response=None):
        """Raise the error the descriptor's status table assigns to a status"""
        outcome = descriptor.outcome(status)
        if outcome is ACCEPT:
            return

        explanation = error_explanation(body)
        if outcome is None:
            raise UnmappedStatusError(
                f"Unexpected status {status} from {descriptor.method} {descriptor.path}"
                + (f": {explanation}" if explanation else ''),
                response=response,
                status_code=status,
                explanation=explanation,
            )

        error_class = status_error_class(status)
        raise error_class(
            f"{outcome} ({explanation})" if explanation else outcome,
            response=response,
            status_code=status,
            reason=outcome,
            explanation=explanation,
        )

    async def websocket(self, descriptor: CallDescriptor):
        """
        Open a websocket to the daemon (attach/ws)

        Returns:
            websockets client connection; the caller closes it
        """
        path = self.url(descriptor.path, descriptor.query)
        socket_path = self.config.socket_path
        headers = dict(self.config.headers)
        headers.update(descriptor.headers)

        logger.debug(f"WEBSOCKET {path}")

        try:
            if socket_path:
                return await websockets.unix_connect(
                    socket_path, f"ws://docker{path}", additional_headers=headers
                )
            base = self.config.http_url
            ws_url = 'wss' + base[len('https'):] if base.startswith('https') else 'ws' + base[len('http'):]
            kwargs: Dict[str, Any] = {'additional_headers': headers}
            context = self.config.ssl_context()
            if context:
                kwargs['ssl'] = context
            return await websockets.connect(f"{ws_url}{path}", **kwargs)
        except InvalidStatus as e:
            status = e.response.status_code
            self.raise_for_status(descriptor, status, e.response.body or b'')
            raise TransportError(f"Websocket handshake failed with status {status}") from e
        except (InvalidHandshake, OSError) as e:
            raise TransportError(f"Websocket connection to Docker daemon failed: {e}") from e

    async def aclose(self):
        """Close pooled connections"""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

