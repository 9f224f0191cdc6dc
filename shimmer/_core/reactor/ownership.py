"""
Redirection of the dependents' events to their controlling parents.

A dependent is linked to its parent by the owner reference marked as the
controller (at most one per object, as guaranteed by the platform):

.. code-block:: yaml

    kind: Certificate
    metadata:
      namespace: ns1                        # Note that the owner reference
      name: cert-1                          # does not have a namespace,
      ownerReferences:                      # since owner references only
      - controller: true                    # work inside the same namespace.
        apiVersion: gateway.networking.k8s.io/v1
        kind: Gateway
        name: gateway-1
        uid: 7d3897c2-ce27-4144-883a-e1b5f89bd65a

The parent is assumed to be in the same namespace as the dependent.
Cross-namespace ownership is not supported: the references cannot express it.

The ``apiVersion`` of the reference is not checked: there is no realistic
chance that another resource of the same kind is the controller of a dependent.
"""
from shimmer._cogs.structs import bodies, references


def match_owner(
        dependent: bodies.Body,
        *,
        kind: str,
) -> references.WorkKey | None:
    """
    Get the parent's key to reconcile for a dependent, if it is controlled by such a parent.

    Orphans, dependents controlled by other kinds, or dependents that are only
    owned (but not controlled) by the parents, produce no keys.
    """
    ref = bodies.get_controller_of(dependent)
    if ref is None:
        return None
    if ref.get('kind') != kind:
        return None
    name = ref.get('name')
    if not name:
        return None
    return references.make_key(dependent.meta.namespace, name)
