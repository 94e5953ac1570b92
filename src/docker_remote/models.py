"""
Base class for handles on remote Docker objects
"""

from typing import Any, Dict, Mapping, Optional

from .descriptor import Result
from .endpoints import endpoint
from .options import Options, OptionsLike, prepare


async def call(http, name: str, opts: OptionsLike = None, record=Options,
               placement: Optional[str] = None, query: Optional[Mapping[str, Any]] = None,
               **kwargs) -> Result:
    """
    Build the descriptor for a registered endpoint and dial it

    Args:
        http: Transport (anything with an async ``dial``)
        name: Endpoint name in the registry
        opts: Option record or plain mapping
        record: Record class describing the operation's options
        placement: Where a plain mapping goes ('query' or 'body')
        query: Parameters the operation always sends, merged over opts
        **kwargs: Passed to Endpoint.descriptor (path args, stream, data, ...)

    Returns:
        Decoded or Streamed result
    """
    params, body = prepare(opts, record, placement)
    if query:
        params.update(query)
    if body is not None and kwargs.get('data') is not None:
        raise ValueError(f"{name} sends raw data; options cannot add a JSON body")
    descriptor = endpoint(name).descriptor(query=params, body=body, **kwargs)
    return await http.dial(descriptor)


class Model:
    """
    Handle on a remote object

    ``id`` never changes once set; ``attrs`` holds the last representation
    the daemon returned and is replaced wholesale on every refresh.
    """

    def __init__(self, http, id: str, attrs: Optional[Dict[str, Any]] = None):
        if not id:
            raise ValueError(f"{type(self).__name__} needs an id")
        self.http = http
        self._id = id
        self.attrs = attrs

    @property
    def id(self) -> str:
        return self._id

    @property
    def short_id(self) -> str:
        """ID truncated to 12 characters, without the sha256: prefix"""
        if self._id.startswith('sha256:'):
            return self._id[7:19]
        return self._id[:12]

    def __repr__(self):
        return f"<{type(self).__name__}: {self.short_id}>"

    def __eq__(self, other):
        return isinstance(other, type(self)) and other.id == self.id

    def __hash__(self):
        return hash(f"{type(self).__name__}:{self.id}")

    def _snapshot(self, attrs: Any):
        self.attrs = attrs
        return self
