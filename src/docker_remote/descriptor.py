"""
Call descriptors and transport results
"""

import enum
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, Mapping, Optional, Union


class Outcome(enum.Enum):
    """Marker for status codes that count as success"""
    ACCEPT = 'accept'

    def __repr__(self):
        return 'ACCEPT'


ACCEPT = Outcome.ACCEPT

StatusTable = Mapping[int, Union[Outcome, str]]

METHODS = ('GET', 'POST', 'PUT', 'DELETE', 'HEAD')


@dataclass(frozen=True)
class CallDescriptor:
    """
    Description of a single HTTP call to the daemon

    ``statuses`` maps every status code the endpoint may return either to
    ``ACCEPT`` or to a human readable reason. Codes missing from the table
    are treated as failures by the transport.
    """
    method: str
    path: str
    statuses: StatusTable
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    data: Union[bytes, AsyncIterator[bytes], None] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    stream: bool = False
    hijack: bool = False
    multiplexed: Optional[bool] = None

    def __post_init__(self):
        if self.method not in METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method}")
        if self.body is not None and self.data is not None:
            raise ValueError("A call carries either a JSON body or raw data, not both")

    def outcome(self, status_code: int) -> Union[Outcome, str, None]:
        """Look up a status code; None when the table does not declare it"""
        return self.statuses.get(status_code)


@dataclass
class Decoded:
    """Fully read response, JSON decoded when the daemon sent JSON"""
    value: Any
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class Streamed:
    """Live response stream; the caller owns closing it"""
    stream: Any
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)


Result = Union[Decoded, Streamed]
