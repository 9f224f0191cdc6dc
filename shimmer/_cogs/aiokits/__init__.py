"""
Asyncio-related kits: primitives & utilities missing in the standard library.

Like the helpers, they implement nothing of the controllers' domain,
and could be extracted as reusable libraries.
"""
