"""
Per-operation option records

Each record names the fields an operation understands. Fields left as None
are not sent. Anything in ``extra`` is merged verbatim into the request, and
plain mappings are accepted wherever a record is, so options the record does
not know about can still reach the daemon. Nothing is validated here; the
daemon's own errors are the only validation.
"""

from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Union

QUERY = 'query'
BODY = 'body'
LOCAL = 'local'


def _query(name: str, default: Any = None):
    return field(default=default, metadata={QUERY: name})


def _body(name: str, default: Any = None):
    return field(default=default, metadata={BODY: name})


def _local(default: Any = None):
    """Field that steers the client and is never sent"""
    return field(default=default, metadata={LOCAL: True})


@dataclass
class Options:
    """Base class for option records"""

    # where ``extra`` (and plain mappings) are merged
    PLACEMENT: ClassVar[str] = QUERY

    extra: Dict[str, Any] = field(default_factory=dict)

    def _collect(self, where: str) -> Dict[str, Any]:
        values = {}
        for f in fields(self):
            wire = f.metadata.get(where)
            if wire is None:
                continue
            value = getattr(self, f.name)
            if value is not None:
                values[wire] = value
        return values

    def query(self) -> Dict[str, Any]:
        values = self._collect(QUERY)
        if self.PLACEMENT == QUERY:
            values.update(self.extra)
        return values

    def body(self) -> Optional[Dict[str, Any]]:
        values = self._collect(BODY)
        if self.PLACEMENT == BODY:
            values.update(self.extra)
            return values
        return values or None


OptionsLike = Union[Options, Mapping[str, Any], None]


def prepare(opts: OptionsLike, record=Options,
            placement: Optional[str] = None) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    """
    Split options into query parameters and JSON body

    Args:
        opts: Option record, plain mapping or None
        record: Record class used when opts is None
        placement: Where a plain mapping goes (default: the record's placement)

    Returns:
        (query, body) tuple; body is None when nothing goes in the body
    """
    if opts is None:
        opts = record()
    if isinstance(opts, Options):
        return opts.query(), opts.body()
    if isinstance(opts, Mapping):
        local_names = {f.name for f in fields(record) if f.metadata.get(LOCAL)}
        opts = {k: v for k, v in opts.items() if k not in local_names}
        where = placement or record.PLACEMENT
        if where == BODY:
            # names the record sends as query parameters stay in the query
            query_names = {f.metadata[QUERY] for f in fields(record) if QUERY in f.metadata}
            query = {k: v for k, v in opts.items() if k in query_names}
            body = {k: v for k, v in opts.items() if k not in query_names}
            return query, body
        return dict(opts), None
    raise TypeError(f"Options must be an Options record or a mapping, not {type(opts).__name__}")


def option(opts: OptionsLike, name: str, default: Any = None) -> Any:
    """Read a client-side flag from a record or a plain mapping"""
    if opts is None:
        return default
    if isinstance(opts, Options):
        return getattr(opts, name, default)
    return opts.get(name, default)


def env_list(env: Union[Mapping[str, str], List[str], None]) -> Optional[List[str]]:
    """Convert an environment mapping into the daemon's KEY=VALUE list"""
    if env is None or isinstance(env, list):
        return env
    return [f"{k}={v}" for k, v in env.items()]


def command_list(cmd: Union[str, List[str], None]) -> Optional[List[str]]:
    """Strings run through the shell, lists are passed as-is"""
    if cmd is None or isinstance(cmd, list):
        return cmd
    return ['sh', '-c', cmd]


# Containers

@dataclass
class ListContainersOptions(Options):
    """
    Args:
        all: Show all containers (default shows just running)
        limit: Return this number of most recently created containers
        size: Return the size of container as SizeRw and SizeRootFs
        filters: Filters to apply, e.g. {'status': ['exited']}
    """
    all: Optional[bool] = _query('all')
    limit: Optional[int] = _query('limit')
    size: Optional[bool] = _query('size')
    filters: Optional[Dict[str, Any]] = _query('filters')


@dataclass
class CreateContainerOptions(Options):
    """
    Args:
        image: Image name or ID
        name: Container name
        platform: Platform (e.g., linux/amd64)
        cmd: Command to run (a string is run through sh -c)
        entrypoint: Entrypoint override
        env: Environment variables, mapping or KEY=VALUE list
        working_dir: Working directory inside the container
        user: User to run as
        hostname: Container hostname
        labels: Container labels
        tty: Allocate TTY
        open_stdin: Keep STDIN open
        stdin_once: Close STDIN after the first attach detaches
        attach_stdin: Attach STDIN
        attach_stdout: Attach STDOUT
        attach_stderr: Attach STDERR
        exposed_ports: Ports exposed by the container
        volumes: Volume mounts {host_path: {'bind': container_path, 'mode': 'rw'}}
        ports: Port bindings {container_port: host_port}
        network_mode: Network mode
        auto_remove: Auto-remove when stopped
        host_config: Raw HostConfig, merged over what volumes/ports/etc. produce
    """
    PLACEMENT: ClassVar[str] = BODY

    image: Optional[str] = _body('Image')
    name: Optional[str] = _query('name')
    platform: Optional[str] = _query('platform')
    cmd: Union[str, List[str], None] = None
    entrypoint: Union[str, List[str], None] = _body('Entrypoint')
    env: Union[Dict[str, str], List[str], None] = None
    working_dir: Optional[str] = _body('WorkingDir')
    user: Optional[str] = _body('User')
    hostname: Optional[str] = _body('Hostname')
    labels: Optional[Dict[str, str]] = _body('Labels')
    tty: Optional[bool] = _body('Tty')
    open_stdin: Optional[bool] = _body('OpenStdin')
    stdin_once: Optional[bool] = _body('StdinOnce')
    attach_stdin: Optional[bool] = _body('AttachStdin')
    attach_stdout: Optional[bool] = _body('AttachStdout')
    attach_stderr: Optional[bool] = _body('AttachStderr')
    exposed_ports: Optional[Dict[str, Any]] = _body('ExposedPorts')
    volumes: Optional[Dict[str, Dict[str, str]]] = None
    ports: Optional[Dict[str, int]] = None
    network_mode: Optional[str] = None
    auto_remove: Optional[bool] = None
    host_config: Optional[Dict[str, Any]] = None

    def body(self) -> Dict[str, Any]:
        config = self._collect(BODY)

        if self.cmd is not None:
            config['Cmd'] = command_list(self.cmd)
        if self.env is not None:
            config['Env'] = env_list(self.env)

        # Host config
        host_config: Dict[str, Any] = {}

        if self.auto_remove is not None:
            host_config['AutoRemove'] = self.auto_remove

        if self.network_mode:
            host_config['NetworkMode'] = self.network_mode

        if self.volumes:
            binds = []
            for host_path, mount_info in self.volumes.items():
                container_path = mount_info.get('bind', '')
                mode = mount_info.get('mode', 'rw')
                binds.append(f"{host_path}:{container_path}:{mode}")
            host_config['Binds'] = binds

        if self.ports:
            port_bindings = {}
            exposed_ports = dict(config.get('ExposedPorts') or {})
            for container_port, host_port in self.ports.items():
                port_key = str(container_port)
                if '/' not in port_key:
                    port_key = f"{port_key}/tcp"
                exposed_ports[port_key] = {}
                port_bindings[port_key] = [{'HostPort': str(host_port)}]
            config['ExposedPorts'] = exposed_ports
            host_config['PortBindings'] = port_bindings

        if self.host_config:
            host_config.update(self.host_config)

        if host_config:
            config['HostConfig'] = host_config

        config.update(self.extra)
        return config


@dataclass
class InspectOptions(Options):
    """
    Args:
        size: Return the size of container as SizeRw and SizeRootFs
    """
    size: Optional[bool] = _query('size')


@dataclass
class TopOptions(Options):
    """
    Args:
        ps_args: Arguments passed to ps (default: -ef)
    """
    ps_args: Optional[str] = _query('ps_args')


@dataclass
class LogsOptions(Options):
    """
    Args:
        follow: Keep the connection open and stream new output
        stdout: Return stdout
        stderr: Return stderr
        since: Only logs since this UNIX timestamp
        until: Only logs before this UNIX timestamp
        timestamps: Prefix every line with its timestamp
        tail: Number of lines from the end ('all' for everything)
    """
    follow: Optional[bool] = _query('follow')
    stdout: Optional[bool] = _query('stdout', True)
    stderr: Optional[bool] = _query('stderr', True)
    since: Optional[int] = _query('since')
    until: Optional[int] = _query('until')
    timestamps: Optional[bool] = _query('timestamps')
    tail: Union[str, int, None] = _query('tail')


@dataclass
class ExportOptions(Options):
    """
    Args:
        stream: Return the live tar stream instead of buffering it into memory
    """
    stream: bool = _local(False)


@dataclass
class StatsOptions(Options):
    """
    Args:
        stream: Keep pushing samples (False returns a single decoded sample)
        one_shot: With stream=False, skip the extra cycle used to compute CPU usage
    """
    stream: Optional[bool] = _query('stream')
    one_shot: Optional[bool] = _query('one-shot')


@dataclass
class ResizeOptions(Options):
    """
    Args:
        h: TTY height in rows
        w: TTY width in columns
    """
    h: Optional[int] = _query('h')
    w: Optional[int] = _query('w')


@dataclass
class StartOptions(Options):
    """
    Args:
        detach_keys: Key sequence for detaching from the container
    """
    detach_keys: Optional[str] = _query('detachKeys')


@dataclass
class StopOptions(Options):
    """
    Args:
        t: Seconds to wait before killing the container
        signal: Signal to send instead of the container's stop signal
    """
    t: Optional[int] = _query('t')
    signal: Optional[str] = _query('signal')


@dataclass
class RestartOptions(StopOptions):
    pass


@dataclass
class KillOptions(Options):
    """
    Args:
        signal: Signal to send (default: SIGKILL)
    """
    signal: Optional[str] = _query('signal')


@dataclass
class UpdateOptions(Options):
    """
    Args:
        cpu_shares: Relative CPU weight
        nano_cpus: CPU quota in units of 1e-9 CPUs
        cpuset_cpus: CPUs in which to allow execution (e.g. '0-3')
        memory: Memory limit in bytes
        memory_swap: Total memory limit (memory + swap), -1 for unlimited
        memory_reservation: Memory soft limit in bytes
        pids_limit: Maximum number of processes
        restart_policy: e.g. {'Name': 'on-failure', 'MaximumRetryCount': 3}
    """
    PLACEMENT: ClassVar[str] = BODY

    cpu_shares: Optional[int] = _body('CpuShares')
    nano_cpus: Optional[int] = _body('NanoCpus')
    cpuset_cpus: Optional[str] = _body('CpusetCpus')
    memory: Optional[int] = _body('Memory')
    memory_swap: Optional[int] = _body('MemorySwap')
    memory_reservation: Optional[int] = _body('MemoryReservation')
    pids_limit: Optional[int] = _body('PidsLimit')
    restart_policy: Optional[Dict[str, Any]] = _body('RestartPolicy')


@dataclass
class RenameOptions(Options):
    """
    Args:
        name: New name for the container
    """
    name: Optional[str] = _query('name')


@dataclass
class AttachOptions(Options):
    """
    Args:
        stream: Stream attached output
        logs: Replay previous output first
        stdin: Attach stdin; the connection is hijacked so it can be written
        stdout: Attach stdout
        stderr: Attach stderr
        detach_keys: Key sequence for detaching
        tty: Container runs with a TTY, so output is not multiplexed
    """
    stream: Optional[bool] = _query('stream', True)
    logs: Optional[bool] = _query('logs')
    stdin: Optional[bool] = _query('stdin')
    stdout: Optional[bool] = _query('stdout', True)
    stderr: Optional[bool] = _query('stderr', True)
    detach_keys: Optional[str] = _query('detachKeys')
    tty: Optional[bool] = _local()


@dataclass
class WaitOptions(Options):
    """
    Args:
        condition: 'not-running' (default), 'next-exit' or 'removed'
    """
    condition: Optional[str] = _query('condition')


@dataclass
class DeleteOptions(Options):
    """
    Args:
        v: Remove anonymous volumes associated with the container
        force: Kill the container first if it is running
        link: Remove the specified link instead of the container
    """
    v: Optional[bool] = _query('v')
    force: Optional[bool] = _query('force')
    link: Optional[bool] = _query('link')


@dataclass
class CommitOptions(Options):
    """
    Args:
        repo: Repository name for the new image
        tag: Tag for the new image
        comment: Commit message
        author: Author of the image
        pause: Pause the container while committing
        changes: Dockerfile instructions to apply
        config: Container config to bake into the image
    """
    repo: Optional[str] = _query('repo')
    tag: Optional[str] = _query('tag')
    comment: Optional[str] = _query('comment')
    author: Optional[str] = _query('author')
    pause: Optional[bool] = _query('pause')
    changes: Optional[str] = _query('changes')
    config: Optional[Dict[str, Any]] = None

    def body(self) -> Optional[Dict[str, Any]]:
        return self.config


@dataclass
class PruneOptions(Options):
    """
    Args:
        filters: Filters to apply, e.g. {'until': ['24h']}
    """
    filters: Optional[Dict[str, Any]] = _query('filters')


# Container filesystem

@dataclass
class ArchiveOptions(Options):
    """
    Args:
        path: Resource in the container's filesystem
    """
    path: Optional[str] = _query('path')


@dataclass
class PutArchiveOptions(ArchiveOptions):
    """
    Args:
        path: Directory in the container to extract the archive into
        no_overwrite_dir_non_dir: Fail if a directory would replace a file or the reverse
        copy_uidgid: Keep UID/GID from the archive
    """
    no_overwrite_dir_non_dir: Optional[bool] = _query('noOverwriteDirNonDir')
    copy_uidgid: Optional[bool] = _query('copyUIDGID')


# Exec

@dataclass
class ExecCreateOptions(Options):
    """
    Args:
        cmd: Command to run (a string is run through sh -c)
        env: Environment variables, mapping or KEY=VALUE list
        attach_stdin: Attach stdin
        attach_stdout: Attach stdout
        attach_stderr: Attach stderr
        tty: Allocate a pseudo-TTY
        privileged: Run with extended privileges
        user: User to run as
        working_dir: Working directory
        detach_keys: Key sequence for detaching
    """
    PLACEMENT: ClassVar[str] = BODY

    cmd: Union[str, List[str], None] = None
    env: Union[Dict[str, str], List[str], None] = None
    attach_stdin: Optional[bool] = _body('AttachStdin')
    attach_stdout: Optional[bool] = _body('AttachStdout', True)
    attach_stderr: Optional[bool] = _body('AttachStderr', True)
    tty: Optional[bool] = _body('Tty')
    privileged: Optional[bool] = _body('Privileged')
    user: Optional[str] = _body('User')
    working_dir: Optional[str] = _body('WorkingDir')
    detach_keys: Optional[str] = _body('DetachKeys')

    def body(self) -> Dict[str, Any]:
        config = self._collect(BODY)
        if self.cmd is not None:
            config['Cmd'] = command_list(self.cmd)
        if self.env is not None:
            config['Env'] = env_list(self.env)
        config.update(self.extra)
        return config


@dataclass
class ExecStartOptions(Options):
    """
    Args:
        detach: Start and return immediately without output
        tty: Exec runs with a TTY, so output is not multiplexed
        hijack: Upgrade the connection so stdin can be written
        stdin: Alias for hijack, matching the exec's AttachStdin
    """
    PLACEMENT: ClassVar[str] = BODY

    detach: Optional[bool] = _body('Detach', False)
    tty: Optional[bool] = _body('Tty', False)
    hijack: bool = _local(False)
    stdin: bool = _local(False)


# Images

@dataclass
class ListImagesOptions(Options):
    """
    Args:
        all: Show intermediate images too
        filters: Filters to apply, e.g. {'dangling': ['true']}
        digests: Show digest information
    """
    all: Optional[bool] = _query('all')
    filters: Optional[Dict[str, Any]] = _query('filters')
    digests: Optional[bool] = _query('digests')


@dataclass
class PullOptions(Options):
    """
    Args:
        from_image: Image to pull
        tag: Tag or digest (default: latest)
        platform: Platform (e.g., linux/amd64)
        from_src: Source to import from ('-' for the request body)
        repo: Repository name when importing
    """
    from_image: Optional[str] = _query('fromImage')
    tag: Optional[str] = _query('tag')
    platform: Optional[str] = _query('platform')
    from_src: Optional[str] = _query('fromSrc')
    repo: Optional[str] = _query('repo')


@dataclass
class BuildOptions(Options):
    """
    Args:
        tag: Name and optional tag for the image
        dockerfile: Path of the Dockerfile within the context
        buildargs: Build-time variables
        labels: Labels for the image
        platform: Target platform
        rm: Remove intermediate containers
        nocache: Do not use the cache
        pull: Always pull newer base images
    """
    tag: Optional[str] = _query('t')
    dockerfile: Optional[str] = _query('dockerfile')
    buildargs: Optional[Dict[str, str]] = _query('buildargs')
    labels: Optional[Dict[str, str]] = _query('labels')
    platform: Optional[str] = _query('platform')
    rm: Optional[bool] = _query('rm', True)
    nocache: Optional[bool] = _query('nocache')
    pull: Optional[bool] = _query('pull')


@dataclass
class TagOptions(Options):
    """
    Args:
        repo: Repository to tag in
        tag: Tag name
    """
    repo: Optional[str] = _query('repo')
    tag: Optional[str] = _query('tag')


@dataclass
class RemoveImageOptions(Options):
    """
    Args:
        force: Remove even if it is being used by stopped containers
        noprune: Do not delete untagged parents
    """
    force: Optional[bool] = _query('force')
    noprune: Optional[bool] = _query('noprune')


# Services

@dataclass
class ListServicesOptions(Options):
    """
    Args:
        filters: Filters to apply, e.g. {'name': ['web']}
        status: Include service status
    """
    filters: Optional[Dict[str, Any]] = _query('filters')
    status: Optional[bool] = _query('status')


@dataclass
class ServiceOptions(Options):
    """
    Service spec for create and update

    Args:
        name: Service name
        task_template: Task template (ContainerSpec, Resources, ...)
        mode: Replicated or global mode
        update_config: Rolling update settings
        networks: Networks to attach
        endpoint_spec: Ports and resolution mode
        labels: Service labels
        version: Version of the object being updated (update only)
        registry_auth_from: 'spec' or 'previous-spec' (update only)
    """
    PLACEMENT: ClassVar[str] = BODY

    name: Optional[str] = _body('Name')
    task_template: Optional[Dict[str, Any]] = _body('TaskTemplate')
    mode: Optional[Dict[str, Any]] = _body('Mode')
    update_config: Optional[Dict[str, Any]] = _body('UpdateConfig')
    networks: Optional[List[Dict[str, Any]]] = _body('Networks')
    endpoint_spec: Optional[Dict[str, Any]] = _body('EndpointSpec')
    labels: Optional[Dict[str, str]] = _body('Labels')
    version: Optional[int] = _query('version')
    registry_auth_from: Optional[str] = _query('registryAuthFrom')
