"""
Docker Containers API
"""

import base64
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from .descriptor import Streamed
from .exceptions import DecodeError
from .execs import ExecManager
from .http_client import FRAMED_CONTENT_TYPE_VERSION
from .images import Image
from .endpoints import endpoint
from .models import Model, call
from .options import (
    BODY,
    ArchiveOptions,
    AttachOptions,
    CommitOptions,
    CreateContainerOptions,
    DeleteOptions,
    ExportOptions,
    InspectOptions,
    KillOptions,
    ListContainersOptions,
    LogsOptions,
    Options,
    OptionsLike,
    PruneOptions,
    PutArchiveOptions,
    RenameOptions,
    ResizeOptions,
    RestartOptions,
    StartOptions,
    StatsOptions,
    StopOptions,
    TopOptions,
    UpdateOptions,
    WaitOptions,
    option,
    prepare,
)
from .streams import DockerStream
from .tar_utils import create_tar

logger = logging.getLogger(__name__)

PATH_STAT_HEADER = 'x-docker-container-path-stat'


def _path_query(path: Optional[str]) -> Optional[Dict[str, str]]:
    return {'path': path} if path is not None else None


class ContainerFs:
    """Filesystem of a container, read and written as tar archives"""

    def __init__(self, container):
        self.container = container

    @property
    def http(self):
        return self.container.http

    async def info(self, opts: OptionsLike = None, path: Optional[str] = None) -> str:
        """
        Get information about a file or folder in the container

        Args:
            opts: ArchiveOptions or mapping with path
            path: Path in the container (overrides opts)

        Returns:
            JSON text describing the resource (name, size, mode, mtime, linkTarget)
        """
        result = await call(self.http, 'archive.info', opts, ArchiveOptions,
                            query=_path_query(path), id=self.container.id)
        header = result.headers.get(PATH_STAT_HEADER)
        if not header:
            raise DecodeError(f"Daemon sent no {PATH_STAT_HEADER} header")
        try:
            return base64.b64decode(header).decode('utf-8')
        except ValueError as e:
            raise DecodeError(f"Invalid {PATH_STAT_HEADER} header: {e}") from e

    async def stat(self, opts: OptionsLike = None, path: Optional[str] = None) -> Dict[str, Any]:
        """Same as info, parsed into a dict"""
        info = await self.info(opts, path=path)
        try:
            return json.loads(info)
        except ValueError as e:
            raise DecodeError(f"Invalid path stat: {e}", body=info.encode('utf-8')) from e

    async def get(self, opts: OptionsLike = None, path: Optional[str] = None) -> DockerStream:
        """
        Download a path from the container as a tar archive

        Args:
            opts: ArchiveOptions or mapping with path
            path: Path in the container (overrides opts)

        Returns:
            Stream of the tar archive
        """
        result = await call(self.http, 'archive.get', opts, ArchiveOptions,
                            query=_path_query(path), id=self.container.id, multiplexed=False)
        return result.stream

    async def put(self, data: Union[bytes, AsyncIterator[bytes]], opts: OptionsLike = None,
                  path: Optional[str] = None) -> None:
        """
        Extract a tar archive into a directory of the container

        Args:
            data: Tar archive as bytes or an async iterator of chunks
            opts: PutArchiveOptions or mapping with path
            path: Directory in the container (overrides opts)
        """
        headers = {'Content-Type': 'application/x-tar'}
        await call(self.http, 'archive.put', opts, PutArchiveOptions, query=_path_query(path),
                   id=self.container.id, data=data, headers=headers)

    async def put_path(self, local_path: str, opts: OptionsLike = None, path: Optional[str] = None,
                       arcname: Optional[str] = None) -> None:
        """
        Upload a local file or directory into the container

        Args:
            local_path: File or directory on this machine
            opts: PutArchiveOptions or mapping with path
            path: Directory in the container (overrides opts)
            arcname: Name inside the archive (default: basename of local_path)
        """
        await self.put(create_tar(local_path, arcname), opts, path=path)


class Container(Model):
    """Docker Container object"""

    def __init__(self, http, id: str, attrs: Optional[Dict[str, Any]] = None):
        super().__init__(http, id, attrs)
        self.fs = ContainerFs(self)
        self.exec = ExecManager(self)
        self.warnings: List[str] = []

    def __repr__(self):
        return f"<Container: {self.name or self.short_id}>"

    @property
    def name(self) -> str:
        attrs = self.attrs or {}
        names = attrs.get('Names') or ['']
        return (attrs.get('Name') or names[0]).lstrip('/')

    @property
    def state(self) -> str:
        # Handle different status formats
        attrs = self.attrs or {}
        state = attrs.get('State', {})
        if isinstance(state, dict):
            return state.get('Status', 'unknown')
        return state if isinstance(state, str) else 'unknown'

    @property
    def tty(self) -> Optional[bool]:
        """Whether the container has a TTY, when the snapshot says so"""
        config = (self.attrs or {}).get('Config')
        if isinstance(config, dict) and 'Tty' in config:
            return bool(config['Tty'])
        return None

    def _multiplexed(self, opts: OptionsLike = None) -> Optional[bool]:
        tty = option(opts, 'tty')
        if tty is None:
            tty = self.tty
        return None if tty is None else not tty

    async def _framing(self, opts: OptionsLike = None) -> Optional[bool]:
        multiplexed = self._multiplexed(opts)
        if multiplexed is not None:
            return multiplexed
        config = getattr(self.http, 'config', None)
        if config is not None and config.api_older_than(FRAMED_CONTENT_TYPE_VERSION):
            # older daemons do not label the stream, so ask the container
            await self.status()
            multiplexed = self._multiplexed(opts)
        return multiplexed

    async def _post(self, name: str, opts: OptionsLike = None, record=Options) -> 'Container':
        await call(self.http, name, opts, record, id=self.id)
        return self

    async def status(self, opts: OptionsLike = None) -> 'Container':
        """
        Get low-level information on this container

        Args:
            opts: InspectOptions or mapping (size)

        Returns:
            This container, with attrs replaced by the daemon's answer
        """
        result = await call(self.http, 'container.inspect', opts, InspectOptions, id=self.id)
        return self._snapshot(result.value)

    async def top(self, opts: OptionsLike = None) -> Dict[str, Any]:
        """
        List processes running inside the container

        Args:
            opts: TopOptions or mapping (ps_args)

        Returns:
            Dict with Titles and Processes
        """
        result = await call(self.http, 'container.top', opts, TopOptions, id=self.id)
        return result.value

    async def logs(self, opts: OptionsLike = None) -> DockerStream:
        """
        Get stdout and stderr logs

        Args:
            opts: LogsOptions or mapping (follow, stdout, stderr, since, tail, ...)

        Returns:
            Live stream of log output
        """
        result = await call(self.http, 'container.logs', opts, LogsOptions,
                            id=self.id, multiplexed=await self._framing(opts))
        return result.stream

    async def changes(self) -> List[Dict[str, Any]]:
        """Changes on the container's filesystem"""
        result = await call(self.http, 'container.changes', id=self.id)
        return result.value or []

    async def export(self, opts: OptionsLike = None) -> Union[DockerStream, bytes]:
        """
        Export the container's filesystem as a tar archive

        Args:
            opts: ExportOptions or mapping; stream=True returns the live
                stream, otherwise the whole archive is read into memory

        Returns:
            DockerStream or the archive bytes
        """
        stream = bool(option(opts, 'stream', False))
        result = await call(self.http, 'container.export', opts, ExportOptions,
                            id=self.id, stream=stream, multiplexed=False)
        if isinstance(result, Streamed):
            return result.stream
        value = result.value
        if value is None:
            return b''
        if isinstance(value, str):
            return value.encode('utf-8')
        return value

    async def stats(self, opts: OptionsLike = None) -> Union[DockerStream, Dict[str, Any]]:
        """
        Resource usage statistics

        Args:
            opts: StatsOptions or mapping; stream=False returns one sample

        Returns:
            Stream of JSON samples, or a single decoded sample
        """
        stream = option(opts, 'stream', True) is not False
        result = await call(self.http, 'container.stats', opts, StatsOptions,
                            id=self.id, stream=stream, multiplexed=False)
        if isinstance(result, Streamed):
            return result.stream
        return result.value

    async def resize(self, opts: OptionsLike = None) -> Any:
        """
        Resize the container's TTY

        Args:
            opts: ResizeOptions or mapping with h and w
        """
        result = await call(self.http, 'container.resize', opts, ResizeOptions, id=self.id)
        return result.value

    async def start(self, opts: OptionsLike = None) -> 'Container':
        """Start this container"""
        return await self._post('container.start', opts, StartOptions)

    async def stop(self, opts: OptionsLike = None) -> 'Container':
        """Stop this container"""
        return await self._post('container.stop', opts, StopOptions)

    async def restart(self, opts: OptionsLike = None) -> 'Container':
        """Restart this container"""
        return await self._post('container.restart', opts, RestartOptions)

    async def kill(self, opts: OptionsLike = None) -> 'Container':
        """Kill this container"""
        return await self._post('container.kill', opts, KillOptions)

    async def rename(self, opts: OptionsLike = None) -> 'Container':
        """Rename this container"""
        return await self._post('container.rename', opts, RenameOptions)

    async def pause(self) -> 'Container':
        """Pause all processes in this container"""
        return await self._post('container.pause')

    async def unpause(self) -> 'Container':
        """Resume a paused container"""
        return await self._post('container.unpause')

    async def update(self, opts: OptionsLike = None) -> 'Container':
        """
        Update resource limits and restart policy

        Args:
            opts: UpdateOptions or mapping (Memory, CpuShares, RestartPolicy, ...)

        Returns:
            This container, with warnings set from the daemon's answer
        """
        result = await call(self.http, 'container.update', opts, UpdateOptions, BODY, id=self.id)
        self.warnings = list((result.value or {}).get('Warnings') or [])
        return self

    async def attach(self, opts: OptionsLike = None) -> DockerStream:
        """
        Attach to the container's stdio

        Args:
            opts: AttachOptions or mapping; stdin=True makes the stream writable

        Returns:
            Live stream of the container's output
        """
        if opts is None:
            opts = AttachOptions()
        hijack = bool(option(opts, 'stdin', False))
        result = await call(self.http, 'container.attach', opts, AttachOptions,
                            id=self.id, hijack=hijack, multiplexed=await self._framing(opts))
        return result.stream

    async def attach_ws(self, opts: OptionsLike = None):
        """
        Attach to the container over a websocket

        Args:
            opts: AttachOptions or mapping (stream, logs, stdin, stdout, stderr)

        Returns:
            websockets client connection
        """
        query, _ = prepare(opts, AttachOptions)
        descriptor = endpoint('container.attach_ws').descriptor(query=query, id=self.id)
        return await self.http.websocket(descriptor)

    async def wait(self, opts: OptionsLike = None) -> int:
        """
        Block until the container stops

        Args:
            opts: WaitOptions or mapping (condition)

        Returns:
            The container's exit code
        """
        result = await call(self.http, 'container.wait', opts, WaitOptions, id=self.id)
        return int(result.value['StatusCode'])

    async def delete(self, opts: OptionsLike = None) -> None:
        """
        Remove this container

        Args:
            opts: DeleteOptions or mapping (force, v, link)
        """
        await call(self.http, 'container.delete', opts, DeleteOptions, id=self.id)

    async def commit(self, opts: OptionsLike = None) -> Image:
        """
        Create a new image from this container

        Args:
            opts: CommitOptions or mapping (repo, tag, comment, author, ...)

        Returns:
            Image handle for the new image
        """
        result = await call(self.http, 'container.commit', opts, CommitOptions,
                            query={'container': self.id})
        image_id = result.value['Id'].replace('sha256:', '')
        return Image(self.http, image_id)


class ContainerCollection:
    """Docker Containers collection"""

    def __init__(self, http):
        self.http = http

    def get(self, container_id: str) -> Container:
        """
        Container handle for a known ID or name (no request is made)

        Args:
            container_id: Container ID or name

        Returns:
            Container object
        """
        return Container(self.http, container_id)

    async def list(self, opts: OptionsLike = None) -> List[Container]:
        """
        List containers

        Args:
            opts: ListContainersOptions or mapping (all, limit, size, filters)

        Returns:
            List of Container objects in the order the daemon returned them
        """
        result = await call(self.http, 'container.list', opts, ListContainersOptions)
        return [Container(self.http, c_data['Id'], c_data) for c_data in result.value or []]

    async def create(self, opts: OptionsLike = None) -> Container:
        """
        Create container

        Args:
            opts: CreateContainerOptions or a container config mapping
                ({'Image': 'alpine', 'Cmd': [...], ...})

        Returns:
            Container object holding the create response
        """
        result = await call(self.http, 'container.create', opts, CreateContainerOptions, BODY)
        conf = result.value
        logger.debug(f"Container {conf['Id'][:12]} created")
        container = Container(self.http, conf['Id'], conf)
        container.warnings = list(conf.get('Warnings') or [])
        return container

    async def run(self, opts: OptionsLike = None) -> Container:
        """
        Create and start container

        Args:
            opts: Same as create

        Returns:
            Started Container object
        """
        container = await self.create(opts)
        return await container.start()

    async def prune(self, opts: OptionsLike = None) -> Dict[str, Any]:
        """
        Remove stopped containers

        Args:
            opts: PruneOptions or mapping with filters

        Returns:
            Dict with ContainersDeleted and SpaceReclaimed
        """
        result = await call(self.http, 'container.prune', opts, PruneOptions)
        return result.value or {}
