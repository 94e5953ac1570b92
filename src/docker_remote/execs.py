"""
Docker Exec API
Commands run inside an existing container
"""

import logging
from typing import Any, Dict, Optional

from .descriptor import Streamed
from .models import Model, call
from .options import (
    BODY,
    ExecCreateOptions,
    ExecStartOptions,
    InspectOptions,
    OptionsLike,
    ResizeOptions,
    option,
)
from .streams import DockerStream

logger = logging.getLogger(__name__)


class Exec(Model):
    """Exec instance bound to the container that owns it"""

    def __init__(self, http, container, id: str, attrs: Optional[Dict[str, Any]] = None):
        super().__init__(http, id, attrs)
        self.container = container

    async def create(self, opts: OptionsLike = None) -> 'Exec':
        """Create another exec instance in the same container"""
        return await self.container.exec.create(opts)

    async def start(self, opts: OptionsLike = None) -> DockerStream:
        """
        Start this exec instance

        Args:
            opts: ExecStartOptions or mapping; hijack/stdin upgrade the
                connection so stdin can be written, tty turns off
                stdout/stderr framing, detach returns immediately

        Returns:
            Stream of the command's output (empty when detached)
        """
        hijack = bool(option(opts, 'hijack', False) or option(opts, 'stdin', False))
        tty = bool(option(opts, 'tty', option(opts, 'Tty', False)))
        detach = bool(option(opts, 'detach', option(opts, 'Detach', False)))

        result = await call(
            self.http, 'exec.start', opts, ExecStartOptions, BODY,
            id=self.id, hijack=hijack, multiplexed=not tty,
        )
        stream = result.stream if isinstance(result, Streamed) else None

        if detach:
            # Nothing is written back to a detached exec
            if stream is not None:
                await stream.aclose()
            return DockerStream.empty()
        return stream

    async def resize(self, opts: OptionsLike = None) -> None:
        """
        Resize the TTY of this exec instance

        Args:
            opts: ResizeOptions or mapping with h and w
        """
        await call(self.http, 'exec.resize', opts, ResizeOptions, id=self.id)

    async def status(self, opts: OptionsLike = None) -> 'Exec':
        """Refresh this exec's data (running, exit code, ...)"""
        result = await call(self.http, 'exec.inspect', opts, InspectOptions, id=self.id)
        return self._snapshot(result.value)

    @property
    def exit_code(self) -> Optional[int]:
        if not self.attrs:
            return None
        return self.attrs.get('ExitCode')

    @property
    def running(self) -> bool:
        return bool(self.attrs and self.attrs.get('Running'))


class ExecManager:
    """Exec instances of one container"""

    def __init__(self, container):
        self.container = container

    @property
    def http(self):
        return self.container.http

    def get(self, exec_id: str) -> Exec:
        """Exec handle for a known ID (no request is made)"""
        return Exec(self.http, self.container, exec_id)

    async def create(self, opts: OptionsLike = None) -> Exec:
        """
        Create an exec instance in the container

        Args:
            opts: ExecCreateOptions or mapping (Cmd, AttachStdout, Tty, ...)

        Returns:
            Exec handle holding the create response
        """
        result = await call(self.http, 'exec.create', opts, ExecCreateOptions, BODY,
                            id=self.container.id)
        conf = result.value
        logger.debug(f"Exec {conf['Id'][:12]} created in {self.container.short_id}")
        return Exec(self.http, self.container, conf['Id'], conf)

    async def run(self, opts: OptionsLike = None, start: OptionsLike = None) -> bytes:
        """
        Create and start an exec instance, returning its output

        Args:
            opts: Exec create options
            start: Exec start options

        Returns:
            Demultiplexed stdout and stderr
        """
        exec_instance = await self.create(opts)
        async with await exec_instance.start(start) as stream:
            return await stream.output()
