# tests/conftest.py
"""
Pytest fixtures - an in-memory Docker daemon behind httpx.MockTransport
"""

import base64
import io
import json
import re
import struct
import sys
import tarfile
from collections import deque
from pathlib import Path
from urllib.parse import unquote

import httpx
import pytest

# Add src dir to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from docker_remote import DockerClient, DockerConfig  # noqa: E402

MULTIPLEXED = 'application/vnd.docker.multiplexed-stream'
RAW = 'application/vnd.docker.raw-stream'


def frame(stream: int, data: bytes) -> bytes:
    """Encode one stdout/stderr frame the way the daemon does"""
    return struct.pack('>BxxxL', stream, len(data)) + data


def make_tar(files: dict) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode='w') as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))
    return buf.getvalue()


def error(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={'message': message})


class FakeNetworkStream:
    """Upgraded connection that echoes stdin back as stdout frames"""

    def __init__(self, greeting: bytes = b''):
        self.outgoing = deque()
        self.written = []
        self.closed = False
        if greeting:
            self.outgoing.append(frame(1, greeting))

    async def read(self, max_bytes, timeout=None):
        if self.outgoing:
            return self.outgoing.popleft()
        return b''

    async def write(self, buffer, timeout=None):
        self.written.append(buffer)
        self.outgoing.append(frame(1, buffer))

    async def aclose(self):
        self.closed = True


class FakeDaemon:
    """Just enough of the Docker Engine API to exercise the client"""

    def __init__(self):
        self.requests = []
        self.faults = {}
        self.containers = {}
        self.images = {
            'alpine': {'Id': 'sha256:' + 'a' * 64, 'RepoTags': ['alpine:latest'], 'Size': 7},
            'busybox': {'Id': 'sha256:' + 'b' * 64, 'RepoTags': ['busybox:latest'], 'Size': 4},
        }
        self.execs = {}
        self.services = {}
        self.archives = {}
        self.network_streams = []
        self._counter = 0

    def _new_id(self) -> str:
        self._counter += 1
        return f"{self._counter:012x}" + '0' * 52

    def fault(self, method: str, path: str, response: httpx.Response):
        """Answer the next matching request with a canned response"""
        self.faults[(method, path)] = response

    def add_container(self, name: str, image: str = 'alpine', running: bool = False,
                      tty: bool = False, exit_code: int = 0) -> str:
        container_id = self._new_id()
        self.containers[container_id] = {
            'Id': container_id,
            'Name': '/' + name,
            'Image': image,
            'State': {'Status': 'running' if running else 'created', 'Running': running,
                      'Paused': False, 'ExitCode': exit_code},
            'Config': {'Image': image, 'Tty': tty, 'Cmd': None},
            'logs': [(1, b'hello\n'), (2, b'oops\n')],
        }
        return container_id

    def _find_container(self, ref: str):
        if ref in self.containers:
            return self.containers[ref]
        for container in self.containers.values():
            if container['Name'] == '/' + ref or container['Id'].startswith(ref):
                return container
        return None

    def _find_image(self, ref: str):
        ref = ref.replace('sha256:', '')
        for name, image in self.images.items():
            tags = image.get('RepoTags') or []
            if ref in (name, image['Id'].replace('sha256:', '')) or ref in tags \
                    or f"{ref}:latest" in tags:
                return image
        return None

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        raw_path = request.url.raw_path.decode('ascii').split('?', 1)[0]
        segments = [unquote(s) for s in raw_path.strip('/').split('/')]
        # drop a /v1.xx prefix
        if segments and re.match(r'^v\d+\.\d+$', segments[0]):
            segments = segments[1:]
        path = '/' + '/'.join(segments)

        fault = self.faults.pop((request.method, path), None)
        if fault is not None:
            return fault

        params = request.url.params
        body = json.loads(request.content) if request.headers.get('content-type') == 'application/json' else None

        route = getattr(self, f"_route_{segments[0].lstrip('_')}", None) if segments else None
        if route is None:
            return httpx.Response(418, text='no route')
        return route(request.method, segments[1:], params, body, request)

    # system

    def _route_ping(self, method, segments, params, body, request):
        return httpx.Response(200, text='OK', headers={'Content-Type': 'text/plain; charset=utf-8'})

    def _route_version(self, method, segments, params, body, request):
        return httpx.Response(200, json={'Version': '27.0.0', 'ApiVersion': '1.46'})

    def _route_info(self, method, segments, params, body, request):
        return httpx.Response(200, json={'ServerVersion': '27.0.0', 'Containers': len(self.containers)})

    def _route_commit(self, method, segments, params, body, request):
        container = self._find_container(params.get('container', ''))
        if container is None:
            return error(404, 'No such container')
        image_id = 'sha256:' + 'c' * 64
        repo = params.get('repo', 'committed')
        self.images[repo] = {'Id': image_id, 'RepoTags': [f"{repo}:{params.get('tag', 'latest')}"]}
        return httpx.Response(201, json={'Id': image_id})

    # containers

    def _route_containers(self, method, segments, params, body, request):
        if segments == ['json'] and method == 'GET':
            show_all = params.get('all') == 'true'
            return httpx.Response(200, json=[
                {'Id': c['Id'], 'Names': [c['Name']], 'Image': c['Image'], 'State': c['State']['Status']}
                for c in self.containers.values()
                if show_all or c['State']['Running']
            ])

        if segments == ['create'] and method == 'POST':
            if self._find_image(body.get('Image', '')) is None:
                return error(404, f"No such image: {body.get('Image')}")
            name = params.get('name') or f"container{self._counter + 1}"
            container_id = self.add_container(name, image=body['Image'], tty=bool(body.get('Tty')))
            self.containers[container_id]['Config'].update(body)
            return httpx.Response(201, json={'Id': container_id, 'Warnings': []})

        if segments == ['prune'] and method == 'POST':
            deleted = [cid for cid, c in self.containers.items() if not c['State']['Running']]
            for cid in deleted:
                del self.containers[cid]
            return httpx.Response(200, json={'ContainersDeleted': deleted, 'SpaceReclaimed': 0})

        container = self._find_container(segments[0])
        if container is None:
            return error(404, f"No such container: {segments[0]}")

        if len(segments) == 1 and method == 'DELETE':
            if container['State']['Running'] and params.get('force') != 'true':
                return error(409, 'You cannot remove a running container')
            del self.containers[container['Id']]
            return httpx.Response(204)

        action = segments[1] if len(segments) > 1 else ''
        handler = getattr(self, f"_container_{action}", None)
        if handler is None:
            return httpx.Response(418, text='no route')
        return handler(container, method, params, body, request)

    def _set_state(self, container, status, running, paused=False):
        container['State'].update({'Status': status, 'Running': running, 'Paused': paused})

    def _container_json(self, container, method, params, body, request):
        return httpx.Response(200, json={k: v for k, v in container.items() if k != 'logs'})

    def _container_start(self, container, method, params, body, request):
        if container['State']['Running']:
            return httpx.Response(304)
        self._set_state(container, 'running', True)
        return httpx.Response(204)

    def _container_stop(self, container, method, params, body, request):
        if not container['State']['Running']:
            return httpx.Response(304)
        self._set_state(container, 'exited', False)
        return httpx.Response(204)

    def _container_restart(self, container, method, params, body, request):
        self._set_state(container, 'running', True)
        return httpx.Response(204)

    def _container_kill(self, container, method, params, body, request):
        if not container['State']['Running']:
            return error(409, f"Container {container['Id']} is not running")
        container['State']['ExitCode'] = 137
        self._set_state(container, 'exited', False)
        return httpx.Response(204)

    def _container_pause(self, container, method, params, body, request):
        if container['State']['Paused'] or not container['State']['Running']:
            return error(409, f"Container {container['Id']} is already paused")
        self._set_state(container, 'paused', True, paused=True)
        return httpx.Response(204)

    def _container_unpause(self, container, method, params, body, request):
        if not container['State']['Paused']:
            return error(409, f"Container {container['Id']} is not paused")
        self._set_state(container, 'running', True)
        return httpx.Response(204)

    def _container_rename(self, container, method, params, body, request):
        new_name = params.get('name')
        if self._find_container(new_name) is not None:
            return error(409, f"Conflict. The container name \"/{new_name}\" is already in use")
        container['Name'] = '/' + new_name
        return httpx.Response(204)

    def _container_update(self, container, method, params, body, request):
        warnings = []
        if body and 'Memory' in body:
            warnings.append('Your kernel does not support swap limit capabilities')
        return httpx.Response(200, json={'Warnings': warnings})

    def _container_wait(self, container, method, params, body, request):
        self._set_state(container, 'exited', False)
        return httpx.Response(200, json={'StatusCode': container['State']['ExitCode']})

    def _container_top(self, container, method, params, body, request):
        return httpx.Response(200, json={
            'Titles': ['PID', 'CMD'],
            'Processes': [['1', 'sleep 100']],
            'ps_args': params.get('ps_args'),
        })

    def _container_changes(self, container, method, params, body, request):
        return httpx.Response(200, json=[{'Path': '/tmp/file', 'Kind': 1}])

    def _container_logs(self, container, method, params, body, request):
        if container['Config']['Tty']:
            content = b''.join(data for _, data in container['logs'])
            return httpx.Response(200, content=content, headers={'Content-Type': RAW})
        content = b''.join(frame(s, d) for s, d in container['logs'])
        return httpx.Response(200, content=content, headers={'Content-Type': MULTIPLEXED})

    def _container_stats(self, container, method, params, body, request):
        sample = {'read': '2024-01-01T00:00:00Z', 'memory_stats': {'usage': 1024}}
        if params.get('stream') == 'false':
            return httpx.Response(200, json=sample)
        lines = b''.join(json.dumps(dict(sample, n=n)).encode() + b'\n' for n in range(2))
        return httpx.Response(200, content=lines, headers={'Content-Type': 'application/json'})

    def _container_export(self, container, method, params, body, request):
        return httpx.Response(200, content=make_tar({'etc/hostname': b'box\n'}),
                              headers={'Content-Type': 'application/x-tar'})

    def _container_resize(self, container, method, params, body, request):
        container['tty_size'] = (params.get('h'), params.get('w'))
        return httpx.Response(200, content=b'')

    def _container_attach(self, container, method, params, body, request):
        if request.headers.get('upgrade') == 'tcp':
            stream = FakeNetworkStream(greeting=b'attached\n')
            self.network_streams.append(stream)
            return httpx.Response(101, headers={'Content-Type': MULTIPLEXED},
                                  extensions={'network_stream': stream})
        content = b''.join(frame(s, d) for s, d in container['logs'])
        return httpx.Response(200, content=content, headers={'Content-Type': MULTIPLEXED})

    def _container_archive(self, container, method, params, body, request):
        path = params.get('path')
        if not path:
            return error(400, 'path is required')
        if method == 'PUT':
            self.archives[(container['Id'], path)] = request.content
            return httpx.Response(200)
        stat = {'name': path.rsplit('/', 1)[-1], 'size': 5, 'mode': 420, 'mtime': '2024-01-01T00:00:00Z',
                'linkTarget': ''}
        headers = {
            'X-Docker-Container-Path-Stat': base64.b64encode(json.dumps(stat).encode()).decode(),
            'Content-Type': 'application/x-tar',
        }
        if method == 'HEAD':
            return httpx.Response(200, headers=headers)
        content = make_tar({stat['name']: b'hello'})
        return httpx.Response(200, content=content, headers=headers)

    def _container_exec(self, container, method, params, body, request):
        if container['State']['Paused']:
            return error(409, f"Container {container['Id']} is paused, unpause the container before exec")
        exec_id = 'e' + self._new_id()[1:]
        self.execs[exec_id] = {
            'ID': exec_id,
            'ContainerID': container['Id'],
            'Running': False,
            'ExitCode': None,
            'ProcessConfig': {'entrypoint': (body.get('Cmd') or [''])[0],
                              'arguments': (body.get('Cmd') or [])[1:],
                              'tty': bool(body.get('Tty'))},
            'config': body,
        }
        return httpx.Response(201, json={'Id': exec_id})

    # exec

    def _route_exec(self, method, segments, params, body, request):
        instance = self.execs.get(segments[0])
        if instance is None:
            return error(404, f"No such exec instance: {segments[0]}")
        action = segments[1]

        if action == 'json':
            return httpx.Response(200, json={k: v for k, v in instance.items() if k != 'config'})

        if action == 'resize':
            instance['tty_size'] = (params.get('h'), params.get('w'))
            return httpx.Response(201)

        if action == 'start':
            cmd = instance['config'].get('Cmd') or []
            instance['ExitCode'] = 0
            if body and body.get('Detach'):
                return httpx.Response(200)
            if request.headers.get('upgrade') == 'tcp':
                stream = FakeNetworkStream()
                self.network_streams.append(stream)
                return httpx.Response(101, extensions={'network_stream': stream})
            output = b''
            if cmd and cmd[0] == 'echo':
                output = (' '.join(cmd[1:]) + '\n').encode()
            if body and body.get('Tty'):
                return httpx.Response(200, content=output, headers={'Content-Type': RAW})
            content = frame(1, output) if output else b''
            return httpx.Response(200, content=content, headers={'Content-Type': MULTIPLEXED})

        return httpx.Response(418, text='no route')

    # images

    def _route_images(self, method, segments, params, body, request):
        if segments == ['json']:
            return httpx.Response(200, json=list(self.images.values()))

        if segments == ['create']:
            name = params.get('fromImage')
            if name == 'doesnotexist':
                return error(404, f"pull access denied for {name}")
            tag = params.get('tag', 'latest')
            self.images[name] = {'Id': 'sha256:' + 'd' * 64, 'RepoTags': [f"{name}:{tag}"]}
            progress = [{'status': f"Pulling from library/{name}"}, {'status': 'Download complete'}]
            content = b''.join(json.dumps(p).encode() + b'\r\n' for p in progress)
            return httpx.Response(200, content=content, headers={'Content-Type': 'application/json'})

        if segments == ['prune']:
            return httpx.Response(200, json={'ImagesDeleted': [], 'SpaceReclaimed': 0})

        image = self._find_image('/'.join(segments[:-1]) if len(segments) > 1 else segments[0])
        action = segments[-1] if len(segments) > 1 else ''

        if method == 'DELETE':
            image = self._find_image('/'.join(segments))
            if image is None:
                return error(404, f"No such image: {'/'.join(segments)}")
            for name in [n for n, i in self.images.items() if i is image]:
                del self.images[name]
            return httpx.Response(200, json=[{'Untagged': t} for t in image['RepoTags']] +
                                  [{'Deleted': image['Id']}])

        if image is None:
            return error(404, 'No such image')
        if action == 'json':
            return httpx.Response(200, json=image)
        if action == 'history':
            return httpx.Response(200, json=[{'Id': image['Id'], 'CreatedBy': '/bin/sh'}])
        if action == 'tag':
            image['RepoTags'].append(f"{params.get('repo')}:{params.get('tag', 'latest')}")
            return httpx.Response(201)
        return httpx.Response(418, text='no route')

    def _route_build(self, method, segments, params, body, request):
        self.archives[('build', params.get('t'))] = request.content
        lines = [{'stream': 'Step 1/1 : FROM alpine\n'}, {'aux': {'ID': 'sha256:' + 'f' * 64}}]
        content = b''.join(json.dumps(line).encode() + b'\n' for line in lines)
        return httpx.Response(200, content=content, headers={'Content-Type': 'application/json'})

    # services

    def _route_services(self, method, segments, params, body, request):
        if not segments and method == 'GET':
            return httpx.Response(200, json=list(self.services.values()))

        if segments == ['create']:
            name = body.get('Name')
            if any(s['Spec'].get('Name') == name for s in self.services.values()):
                return error(409, f"service {name} already exists")
            service_id = 's' + self._new_id()[1:25]
            self.services[service_id] = {'ID': service_id, 'Version': {'Index': 1}, 'Spec': body}
            return httpx.Response(201, json={'ID': service_id})

        service = self.services.get(segments[0])
        if service is None:
            return error(404, f"service {segments[0]} not found")

        if method == 'DELETE':
            del self.services[service['ID']]
            return httpx.Response(200)
        if len(segments) == 1:
            return httpx.Response(200, json=service)
        if segments[1] == 'update':
            if params.get('version') != str(service['Version']['Index']):
                return error(400, 'update out of sequence')
            service['Spec'] = body
            service['Version'] = {'Index': service['Version']['Index'] + 1}
            return httpx.Response(200, json={'Warnings': ['image could not be accessed']})
        return httpx.Response(418, text='no route')


@pytest.fixture
def daemon():
    return FakeDaemon()


@pytest.fixture
def docker(daemon):
    config = DockerConfig(base_url='unix:///var/run/docker.sock')
    return DockerClient(config, transport=httpx.MockTransport(daemon.handle))
