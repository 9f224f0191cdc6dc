"""
A gateway-shim with in-memory streams: run it with ``shimmer run example.py -v``.

The gateways are listed first; the certificates are then "created" by the
reconciler into the certificates' stream, and the next reconciliations
see them in the cache. Stop it with Ctrl+C.
"""
import asyncio
from typing import Any

import shimmer

GATEWAYS = ['gateway-1', 'gateway-2']


def make_gateway(name: str) -> dict[str, Any]:
    return {'apiVersion': 'gateway.networking.k8s.io/v1', 'kind': 'Gateway',
            'metadata': {'namespace': 'default', 'name': name, 'uid': f'uid-{name}'}}


def make_certificate(gateway: shimmer.Body) -> dict[str, Any]:
    return {'apiVersion': 'cert-manager.io/v1', 'kind': 'Certificate',
            'metadata': {'namespace': gateway.metadata.namespace,
                         'name': f'{gateway.metadata.name}-tls',
                         'ownerReferences': [{'apiVersion': gateway['apiVersion'],
                                              'kind': 'Gateway',
                                              'name': gateway.metadata.name,
                                              'uid': gateway.metadata.uid,
                                              'controller': True}]}}


def controllers() -> list[shimmer.Controller]:
    certificates_stream: asyncio.Queue[Any] = asyncio.Queue()

    async def gateway_events():
        for name in GATEWAYS:
            yield {'type': 'ADDED', 'object': make_gateway(name)}
        yield shimmer.Bookmark.LISTED

    async def certificate_events():
        yield shimmer.Bookmark.LISTED
        while True:
            yield await certificates_stream.get()

    gateways = shimmer.Informer(kind='Gateway', source=gateway_events())
    certificates = shimmer.Informer(kind='Certificate', source=certificate_events())

    async def reconcile_gateway(parent: shimmer.Body, key: shimmer.WorkKey, logger, **_: Any) -> None:
        certificate = make_certificate(parent)
        if certificates.cache.get(key.namespace, certificate['metadata']['name']) is None:
            logger.info(f"Creating a certificate for {key.name}.")
            await certificates_stream.put({'type': 'ADDED', 'object': certificate})
        else:
            logger.info(f"The certificate of {key.name} is in place.")

    return [
        shimmer.Controller(
            name='gateway-shim',
            parent_kind='Gateway',
            parents=gateways,
            dependents=certificates,
            reconciler=reconcile_gateway,
        ),
    ]
