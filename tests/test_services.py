import asyncio

import httpx
import pytest

from docker_remote import BadRequest, Conflict, NotFound, RemoteStatusError, Service
from docker_remote.options import ListServicesOptions, ServiceOptions

SPEC = {
    'Name': 'web',
    'TaskTemplate': {'ContainerSpec': {'Image': 'nginx'}},
    'Mode': {'Replicated': {'Replicas': 1}},
}


def test_create_list_and_status(docker, daemon):
    async def scenario():
        created = await docker.services.create(ServiceOptions(
            name='web',
            task_template={'ContainerSpec': {'Image': 'nginx'}},
        ))
        listed = await docker.services.list(ListServicesOptions(filters={'name': ['web']}))
        refreshed = await docker.services.get(created.id).status()
        return created, listed, refreshed

    created, listed, refreshed = asyncio.run(scenario())
    assert isinstance(created, Service)
    assert listed == [created]
    assert refreshed.name == 'web'
    assert refreshed.version == 1
    assert daemon.requests[1].url.params['filters'] == '{"name": ["web"]}'


def test_duplicate_name_conflicts(docker):
    async def scenario():
        await docker.services.create(SPEC)
        await docker.services.create(SPEC)

    with pytest.raises(Conflict) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.reason == 'name conflicts with an existing service'


def test_update_uses_snapshot_version(docker, daemon):
    async def scenario():
        service = await docker.services.create(SPEC)
        await service.status()
        await service.update(dict(SPEC, Labels={'tier': 'front'}))
        return service

    service = asyncio.run(scenario())
    assert daemon.requests[-1].url.params['version'] == '1'
    assert service.warnings == ['image could not be accessed']
    assert daemon.services[service.id]['Spec']['Labels'] == {'tier': 'front'}


def test_update_with_stale_version_is_rejected(docker):
    async def scenario():
        service = await docker.services.create(SPEC)
        await service.update(ServiceOptions(name='web', version=7))

    with pytest.raises(BadRequest):
        asyncio.run(scenario())


def test_delete(docker, daemon):
    async def scenario():
        service = await docker.services.create(SPEC)
        await service.delete()
        await service.status()

    with pytest.raises(NotFound) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.reason == 'no such service'
    assert daemon.services == {}


def test_not_in_swarm(docker, daemon):
    daemon.fault('GET', '/services', httpx.Response(503, json={'message': 'This node is not a swarm manager'}))
    with pytest.raises(RemoteStatusError) as exc_info:
        asyncio.run(docker.services.list())
    assert exc_info.value.reason == 'node is not part of a swarm'
    assert exc_info.value.status_code == 503
