"""
All the structures that describe the watched resources and the work items.

Used in the routing and dispatching routines to identify the parents,
to follow the ownership links from the dependents to their parents,
and to decide whether a parent should be reconciled at all.

All the functions are purely data-manipulative and computational.
No external calls or any i/o activities are done here.
"""
