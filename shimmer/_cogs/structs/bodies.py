"""
All the structures coming from the watch-streams and the caches.

The objects are Kubernetes-like: plain JSON-decoded dicts with the well-known
``apiVersion``, ``kind``, ``metadata`` fields. The framework only relies on
a few metadata fields: the names, the deletion marker, the owner references.
All other payload falls into `Any`, and is not type-checked.

For convenience, the raw dicts are wrapped into read-only views (`Body`,
`Meta`) with typed accessors for the well-known fields. The views do not copy
the underlying dicts: they are cheap to create on every event or lookup.

.. note::

    The views are read-only. The framework never modifies the objects;
    it only reads them to decide which parent should be reconciled and when.
    All modifications are the business of the reconcilers.
"""
import collections.abc
import datetime
from collections.abc import Iterator, Mapping, Sequence
from typing import Any, Literal, TypedDict, cast

import iso8601

from shimmer._cogs.structs import references

RawEventType = Literal['ADDED', 'MODIFIED', 'DELETED']


class OwnerReference(TypedDict, total=False):
    controller: bool
    blockOwnerDeletion: bool
    apiVersion: str
    kind: str
    name: str
    uid: str


class RawMeta(TypedDict, total=False):
    uid: str
    name: str
    namespace: str
    resourceVersion: str
    creationTimestamp: str
    deletionTimestamp: str
    ownerReferences: list[OwnerReference]


class RawBody(TypedDict, total=False):
    apiVersion: str
    kind: str
    metadata: RawMeta
    spec: Mapping[str, Any]
    status: Mapping[str, Any]


# As received from the stream before the validation.
class RawEvent(TypedDict, total=True):
    type: RawEventType
    object: RawBody


class Meta(Mapping[str, Any]):
    """ A read-only view of the object's ``metadata``, with typed accessors. """

    def __init__(self, __src: "Body") -> None:
        super().__init__()
        self._src = __src

    def _data(self) -> Mapping[str, Any]:
        data = self._src.raw.get('metadata')
        return data if isinstance(data, collections.abc.Mapping) else {}

    def __getitem__(self, item: str) -> Any:
        return self._data()[item]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data())

    def __len__(self) -> int:
        return len(self._data())

    @property
    def uid(self) -> str | None:
        return cast(str | None, self.get('uid'))

    @property
    def name(self) -> str | None:
        return cast(str | None, self.get('name'))

    @property
    def namespace(self) -> references.Namespace | None:
        return cast(references.Namespace | None, self.get('namespace') or None)

    @property
    def deletion_timestamp(self) -> str | None:
        return cast(str | None, self.get('deletionTimestamp'))

    @property
    def owner_references(self) -> Sequence[OwnerReference]:
        refs = self.get('ownerReferences')
        return cast(Sequence[OwnerReference], refs) if isinstance(refs, list) else []


class Body(Mapping[str, Any]):
    """
    A read-only view of an object as seen in the streams or in the caches.
    """

    def __init__(self, __src: Mapping[str, Any]) -> None:
        super().__init__()
        self._raw = __src
        self._meta = Meta(self)

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}({self._raw!r})'

    def __getitem__(self, item: str) -> Any:
        return self._raw[item]

    def __iter__(self) -> Iterator[str]:
        return iter(self._raw)

    def __len__(self) -> int:
        return len(self._raw)

    @property
    def raw(self) -> Mapping[str, Any]:
        return self._raw

    @property
    def kind(self) -> str | None:
        return cast(str | None, self._raw.get('kind'))

    @property
    def metadata(self) -> Meta:
        return self._meta

    @property
    def meta(self) -> Meta:
        return self._meta


def get_controller_of(body: Body) -> OwnerReference | None:
    """
    Get the owner reference of the object's controller, if there is one.

    The platform guarantees that there is at most one controller reference
    per object, so the first one found is the only one. It is not re-validated.
    """
    for ref in body.meta.owner_references:
        if isinstance(ref, collections.abc.Mapping) and ref.get('controller'):
            return ref
    return None


def get_key(body: Body) -> references.WorkKey:
    name = body.meta.name
    if not name:
        raise ValueError(f"The object has no name: {body!r}")
    return references.make_key(body.meta.namespace, name)


def is_terminating(body: Body) -> bool:
    """ Check if the object is marked for deletion (but still exists). """
    return body.meta.deletion_timestamp is not None


def deletion_time(body: Body) -> datetime.datetime | None:
    """
    Parse the deletion marker into a timestamp, if it is set and parseable.

    The deletion marker's presence is what matters, not its value:
    an unparseable marker still means the object is terminating.
    """
    value = body.meta.deletion_timestamp
    if value is None:
        return None
    try:
        return iso8601.parse_date(value)
    except iso8601.ParseError:
        return None

