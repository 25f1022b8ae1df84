"""Startup/shutdown of shared resources, exposed to handlers through a State container."""

from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine, Iterator
from typing import Any, Generic, TypeVar

from robyn import Robyn

from app.core.logger import LogIcon, logger
from app.core.settings import settings as st

AsyncHandler = Callable[[], Coroutine[Any, Any, None]]


class State:
    """Attribute-style container for resources created at startup."""

    __slots__ = ("_data",)

    def __init__(self) -> None:
        object.__setattr__(self, "_data", {})

    def __getattr__(self, name: str) -> Any:
        if name in self._data:
            return self._data[name]
        raise AttributeError(f"State has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        self._data[name] = value

    def __delattr__(self, name: str) -> None:
        if self._data.pop(name, _MISSING) is _MISSING:
            raise AttributeError(f"State has no attribute '{name}'")

    def __contains__(self, name: str) -> bool:
        return name in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def __repr__(self) -> str:
        return f"State({self._data})"

    def get(self, name: str, default: Any = None) -> Any:
        return self._data.get(name, default)

    def clear(self) -> None:
        self._data.clear()


_MISSING = object()

T = TypeVar("T")


class BaseEvent(ABC, Generic[T]):
    """A named resource with an async startup and an optional shutdown."""

    name: str
    state: State

    @abstractmethod
    async def startup(self) -> T: ...

    async def shutdown(self, instance: T) -> None:  # noqa: B027
        """Override when the resource needs cleanup."""

    @classmethod
    def has_shutdown(cls) -> bool:
        return cls.shutdown is not BaseEvent.shutdown


class Lifespan:
    """Runs registered events in order at startup and in reverse at shutdown."""

    def __init__(self, app: Robyn) -> None:
        self._app = app
        self._event_classes: list[type[BaseEvent[Any]]] = []
        self._events: list[BaseEvent[Any]] = []
        self._state: State | None = None

    def register(self, event_cls: type[BaseEvent[Any]]) -> "Lifespan":
        self._event_classes.append(event_cls)
        return self

    @property
    def state(self) -> State | None:
        return self._state

    @property
    def events(self) -> list[BaseEvent[Any]]:
        return self._events

    async def _startup(self) -> None:
        logger.info("Starting application lifespan", icon=LogIcon.START, version=st.API_VERSION)
        state = self._state = State()

        for event_cls in self._event_classes:
            event = event_cls()
            event.state = state
            setattr(state, event.name, await event.startup())
            self._events.append(event)
            logger.info(f"Event ready: {event.name}", icon=LogIcon.SUCCESS)

        self._app.inject_global(state=state)
        logger.info("App state ready", icon=LogIcon.COMPLETE, events=len(self._events))

    async def _shutdown(self) -> None:
        if self._state is None:
            logger.info("No state to clean up", icon=LogIcon.WARNING)
            return

        for event in reversed(self._events):
            if event.has_shutdown() and event.name in self._state:
                await event.shutdown(getattr(self._state, event.name))
                logger.info(f"Shutdown complete: {event.name}", icon=LogIcon.SUCCESS)

        self._events.clear()
        self._state.clear()
        logger.info("Cleanup complete", icon=LogIcon.COMPLETE)

    @property
    def startup(self) -> AsyncHandler:
        return self._startup

    @property
    def shutdown(self) -> AsyncHandler:
        return self._shutdown


def create_lifespan(app: Robyn) -> Lifespan:
    return Lifespan(app)
