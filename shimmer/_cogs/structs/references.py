"""
Identities of the reconciled objects, as used in the queues and in the logs.
"""
from typing import NamedTuple, NewType

# Namespaces are optional: cluster-scoped parents have no namespace at all.
Namespace = NewType('Namespace', str)
Name = NewType('Name', str)


class WorkKey(NamedTuple):
    """
    A unit of work: a parent object to be reconciled, identified by its name.

    The key carries no kind: every queue serves one parent kind only,
    so the namespace & name are sufficient for the identity & deduplication.
    """
    namespace: Namespace | None
    name: Name

    def __str__(self) -> str:
        return f'{self.namespace}/{self.name}' if self.namespace else f'{self.name}'


def make_key(namespace: str | None, name: str) -> WorkKey:
    return WorkKey(Namespace(namespace) if namespace else None, Name(name))
