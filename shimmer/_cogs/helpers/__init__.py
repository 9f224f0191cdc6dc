"""
General-purpose helpers not related to the reconciliation itself
(neither to the reactor nor to the engines nor to the structs),
which are used to prepare and control the runtime environment.

Helpers do not depend on anything in the framework. They implement
no entities or behaviours of the domain of controllers,
but rather some unrelated low-level patterns.
"""
