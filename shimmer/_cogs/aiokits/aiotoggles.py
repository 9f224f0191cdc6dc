import asyncio


class Toggle:
    """
    An awaitable readiness state, e.g. of a cache that has listed its objects.

    Unlike `asyncio.Event`, the readiness can be checked from the sync code
    (e.g. the liveness reports) without touching the loop, and is named for
    the logs. The caches only turn it on once; turning it off is supported
    for symmetry, so that both states can be awaited.
    """

    def __init__(
            self,
            __state: bool = False,
            *,
            name: str | None = None,
    ) -> None:
        super().__init__()
        self._name = name
        self._state = bool(__state)
        self._changed = asyncio.Condition()

    def __repr__(self) -> str:
        label = f'{self._name}: ' if self._name is not None else ''
        return f'<{self.__class__.__name__}: {label}{"on" if self._state else "off"}>'

    def __bool__(self) -> bool:
        raise NotImplementedError("Use .is_on() or .is_off() explicitly.")

    @property
    def name(self) -> str | None:
        return self._name

    def is_on(self) -> bool:
        return self._state

    def is_off(self) -> bool:
        return not self._state

    async def turn_to(self, __state: bool) -> None:
        async with self._changed:
            self._state = bool(__state)
            self._changed.notify_all()

    async def wait_for(self, __state: bool) -> None:
        """ Return as soon as the toggle is in the requested state, or at once if it is. """
        async with self._changed:
            await self._changed.wait_for(lambda: self._state is bool(__state))
