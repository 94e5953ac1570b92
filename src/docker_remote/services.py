"""
Docker Services API (swarm mode)
"""

from typing import Any, Dict, List, Optional

from .models import Model, call
from .options import BODY, InspectOptions, ListServicesOptions, OptionsLike, ServiceOptions


class Service(Model):
    """Docker swarm service"""

    def __init__(self, http, id: str, attrs: Optional[Dict[str, Any]] = None):
        super().__init__(http, id, attrs)
        self.warnings: List[str] = []

    def __repr__(self):
        return f"<Service: {self.name or self.short_id}>"

    @property
    def name(self) -> Optional[str]:
        spec = (self.attrs or {}).get('Spec') or {}
        return spec.get('Name')

    @property
    def version(self) -> Optional[int]:
        """Version index of the snapshot, needed to update the service"""
        return ((self.attrs or {}).get('Version') or {}).get('Index')

    async def status(self, opts: OptionsLike = None) -> 'Service':
        """Refresh this service's data"""
        result = await call(self.http, 'service.inspect', opts, InspectOptions, id=self.id)
        return self._snapshot(result.value)

    async def update(self, opts: OptionsLike = None) -> 'Service':
        """
        Update this service

        Args:
            opts: ServiceOptions or mapping with the new spec; the version
                defaults to the one in the current snapshot

        Returns:
            This service, with warnings set from the daemon's answer
        """
        query = None
        if self.version is not None and not _has_version(opts):
            query = {'version': self.version}
        result = await call(self.http, 'service.update', opts, ServiceOptions, BODY,
                            query=query, id=self.id)
        self.warnings = list((result.value or {}).get('Warnings') or [])
        return self

    async def delete(self) -> None:
        """Remove this service"""
        await call(self.http, 'service.delete', id=self.id)


def _has_version(opts: OptionsLike) -> bool:
    if opts is None:
        return False
    if isinstance(opts, ServiceOptions):
        return opts.version is not None
    return 'version' in opts


class ServiceCollection:
    """Docker Services collection"""

    def __init__(self, http):
        self.http = http

    def get(self, service_id: str) -> Service:
        """Service handle for a known ID or name (no request is made)"""
        return Service(self.http, service_id)

    async def list(self, opts: OptionsLike = None) -> List[Service]:
        """
        List services

        Args:
            opts: ListServicesOptions or mapping with filters

        Returns:
            List of Service objects in the order the daemon returned them
        """
        result = await call(self.http, 'service.list', opts, ListServicesOptions)
        return [Service(self.http, data['ID'], data) for data in result.value or []]

    async def create(self, opts: OptionsLike = None) -> Service:
        """
        Create a service

        Args:
            opts: ServiceOptions or a service spec mapping

        Returns:
            Service holding the create response ({'ID': ..., 'Warnings': ...})
        """
        result = await call(self.http, 'service.create', opts, ServiceOptions, BODY)
        conf: Dict[str, Any] = result.value
        service = Service(self.http, conf['ID'], conf)
        service.warnings = list(conf.get('Warnings') or [])
        return service
