"""
Docker Engine endpoint registry

Every endpoint the client talks to is declared once here, together with the
status codes the daemon may answer with.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

from .descriptor import ACCEPT, CallDescriptor, StatusTable

SERVER_ERROR = 'server error'
BAD_REQUEST = 'bad request'
NO_SUCH_CONTAINER = 'no such container'
NO_SUCH_EXEC = 'no such exec instance'
NO_SUCH_IMAGE = 'no such image'
NO_SUCH_SERVICE = 'no such service'
NOT_IN_SWARM = 'node is not part of a swarm'


@dataclass(frozen=True)
class Endpoint:
    """Method, path template and status table of one daemon endpoint"""
    method: str
    path: str
    statuses: StatusTable
    stream: bool = False

    def descriptor(self, query: Optional[Mapping[str, Any]] = None, body: Any = None,
                   data=None, headers: Optional[Mapping[str, str]] = None,
                   stream: Optional[bool] = None, hijack: bool = False,
                   multiplexed: Optional[bool] = None, **path_args) -> CallDescriptor:
        """
        Build a call descriptor for this endpoint

        Args:
            query: URL query parameters
            body: JSON request body
            data: Raw request body (bytes or async iterator)
            headers: Extra HTTP headers
            stream: Override the endpoint's default stream flag
            hijack: Ask the daemon to upgrade the connection
            multiplexed: Whether the returned stream uses stdout/stderr framing
            **path_args: Values interpolated into the path template

        Returns:
            CallDescriptor
        """
        quoted = {key: quote(str(value), safe='') for key, value in path_args.items()}
        return CallDescriptor(
            method=self.method,
            path=self.path.format(**quoted),
            statuses=self.statuses,
            query=dict(query or {}),
            body=body,
            data=data,
            headers=dict(headers or {}),
            stream=self.stream if stream is None else stream,
            hijack=hijack,
            multiplexed=multiplexed,
        )


def _table(*accepted: int, **errors: str) -> Dict[int, Any]:
    table: Dict[int, Any] = {code: ACCEPT for code in accepted}
    for code, reason in errors.items():
        table[int(code.lstrip('_'))] = reason
    return table


def _container(*accepted: int, **errors: str) -> Dict[int, Any]:
    return _table(*accepted, _404=NO_SUCH_CONTAINER, _500=SERVER_ERROR, **errors)


ENDPOINTS: Dict[str, Endpoint] = {
    # system
    'system.version': Endpoint('GET', '/version', _table(200, _500=SERVER_ERROR)),
    'system.info': Endpoint('GET', '/info', _table(200, _500=SERVER_ERROR)),
    'system.ping': Endpoint('GET', '/_ping', _table(200, _500=SERVER_ERROR)),

    # containers
    'container.list': Endpoint('GET', '/containers/json',
                               _table(200, _400=BAD_REQUEST, _500=SERVER_ERROR)),
    'container.create': Endpoint('POST', '/containers/create',
                                 _table(200, 201, _400=BAD_REQUEST, _404=NO_SUCH_IMAGE,
                                        _406='impossible to attach', _409='conflict',
                                        _500=SERVER_ERROR)),
    'container.inspect': Endpoint('GET', '/containers/{id}/json', _container(200)),
    'container.top': Endpoint('GET', '/containers/{id}/top', _container(200)),
    'container.logs': Endpoint('GET', '/containers/{id}/logs', _container(101, 200),
                               stream=True),
    'container.changes': Endpoint('GET', '/containers/{id}/changes', _container(200)),
    'container.export': Endpoint('GET', '/containers/{id}/export', _container(200)),
    'container.stats': Endpoint('GET', '/containers/{id}/stats', _container(200),
                                stream=True),
    'container.resize': Endpoint('POST', '/containers/{id}/resize', _container(200)),
    'container.start': Endpoint('POST', '/containers/{id}/start', _container(204, 304)),
    'container.stop': Endpoint('POST', '/containers/{id}/stop', _container(204, 304)),
    'container.restart': Endpoint('POST', '/containers/{id}/restart', _container(204)),
    'container.kill': Endpoint('POST', '/containers/{id}/kill',
                               _container(204, _409='container is not running')),
    'container.update': Endpoint('POST', '/containers/{id}/update',
                                 _container(200, _400=BAD_REQUEST)),
    'container.rename': Endpoint('POST', '/containers/{id}/rename',
                                 _container(204, _409='name already taken')),
    'container.pause': Endpoint('POST', '/containers/{id}/pause',
                                _container(204, _409='container is already paused or not running')),
    'container.unpause': Endpoint('POST', '/containers/{id}/unpause',
                                  _container(204, _409='container is not paused')),
    'container.attach': Endpoint('POST', '/containers/{id}/attach',
                                 _container(101, 200, _400=BAD_REQUEST), stream=True),
    'container.attach_ws': Endpoint('GET', '/containers/{id}/attach/ws',
                                    _container(101, 200, _400=BAD_REQUEST)),
    'container.wait': Endpoint('POST', '/containers/{id}/wait',
                               _container(200, _400=BAD_REQUEST)),
    'container.delete': Endpoint('DELETE', '/containers/{id}',
                                 _container(204, _400=BAD_REQUEST, _409='conflict')),
    'container.commit': Endpoint('POST', '/commit', _container(201)),
    'container.prune': Endpoint('POST', '/containers/prune', _table(200, _500=SERVER_ERROR)),

    # container filesystem
    'archive.info': Endpoint('HEAD', '/containers/{id}/archive',
                             _container(200, _400=BAD_REQUEST)),
    'archive.get': Endpoint('GET', '/containers/{id}/archive',
                            _container(200, _400=BAD_REQUEST), stream=True),
    'archive.put': Endpoint('PUT', '/containers/{id}/archive',
                            _container(200, _400=BAD_REQUEST, _403='permission denied')),

    # exec
    'exec.create': Endpoint('POST', '/containers/{id}/exec',
                            _container(200, 201, _409='container is paused')),
    'exec.start': Endpoint('POST', '/exec/{id}/start',
                           _table(101, 200, _404=NO_SUCH_EXEC, _409='container is paused'),
                           stream=True),
    'exec.resize': Endpoint('POST', '/exec/{id}/resize',
                            _table(200, 201, _400=BAD_REQUEST, _404=NO_SUCH_EXEC,
                                   _500=SERVER_ERROR)),
    'exec.inspect': Endpoint('GET', '/exec/{id}/json',
                             _table(200, _404=NO_SUCH_EXEC, _500=SERVER_ERROR)),

    # images
    'image.list': Endpoint('GET', '/images/json',
                           _table(200, _400=BAD_REQUEST, _500=SERVER_ERROR)),
    'image.create': Endpoint('POST', '/images/create',
                             _table(200, _404='repository does not exist or no read access',
                                    _500=SERVER_ERROR), stream=True),
    'image.build': Endpoint('POST', '/build',
                            _table(200, _400=BAD_REQUEST, _500=SERVER_ERROR), stream=True),
    'image.inspect': Endpoint('GET', '/images/{id}/json',
                              _table(200, _404=NO_SUCH_IMAGE, _500=SERVER_ERROR)),
    'image.history': Endpoint('GET', '/images/{id}/history',
                              _table(200, _404=NO_SUCH_IMAGE, _500=SERVER_ERROR)),
    'image.tag': Endpoint('POST', '/images/{id}/tag',
                          _table(201, _400=BAD_REQUEST, _404=NO_SUCH_IMAGE,
                                 _409='conflict', _500=SERVER_ERROR)),
    'image.delete': Endpoint('DELETE', '/images/{id}',
                             _table(200, _404=NO_SUCH_IMAGE, _409='conflict',
                                    _500=SERVER_ERROR)),
    'image.prune': Endpoint('POST', '/images/prune', _table(200, _500=SERVER_ERROR)),

    # services
    'service.list': Endpoint('GET', '/services',
                             _table(200, _500=SERVER_ERROR, _503=NOT_IN_SWARM)),
    'service.create': Endpoint('POST', '/services/create',
                               _table(201, _400=BAD_REQUEST,
                                      _403='network is not eligible for services',
                                      _409='name conflicts with an existing service',
                                      _500=SERVER_ERROR, _503=NOT_IN_SWARM)),
    'service.inspect': Endpoint('GET', '/services/{id}',
                                _table(200, _404=NO_SUCH_SERVICE, _500=SERVER_ERROR,
                                       _503=NOT_IN_SWARM)),
    'service.update': Endpoint('POST', '/services/{id}/update',
                               _table(200, _400=BAD_REQUEST, _404=NO_SUCH_SERVICE,
                                      _500=SERVER_ERROR, _503=NOT_IN_SWARM)),
    'service.delete': Endpoint('DELETE', '/services/{id}',
                               _table(200, _404=NO_SUCH_SERVICE, _500=SERVER_ERROR,
                                      _503=NOT_IN_SWARM)),
}


def endpoint(name: str) -> Endpoint:
    """Look up a registered endpoint by name"""
    return ENDPOINTS[name]
