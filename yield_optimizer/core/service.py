"""
Background service lifecycle
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from enum import IntEnum, auto
from threading import Event


class ServiceLifecycleState(IntEnum):
    """
    NEW -> STARTING -> RUNNING -> STOPPING -> STOPPED

    STARTING -> START_FAILED -> STOPPED when `_start` raises. A STOPPED service can be started again.
    """

    NEW = auto()
    STARTING = auto()
    START_FAILED = auto()
    RUNNING = auto()
    STOPPING = auto()
    STOPPED = auto()


@dataclass(slots=True)
class ServiceError(Exception):
    service_name: str
    cause: Exception | str

    def __str__(self) -> str:
        return f"[{self.service_name}] [{self.__class__.__name__}] {self.cause}"


class ServiceStartError(ServiceError):
    """
    Service failed to start
    """


class ServiceStopError(ServiceError):
    """
    Service raised an error while stopping. The service still ends up STOPPED.
    """


class Service(ABC):
    """
    Subclasses hook into the lifecycle by implementing `_start` and `_stop`.

    Lifecycle transitions are logged at INFO using the service name as the logger name.
    """

    def __init__(self):
        self._state = ServiceLifecycleState.NEW
        self._logger = logging.getLogger(self.name)
        self._running_event = Event()
        self._stopped_event = Event()

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @property
    def state(self) -> ServiceLifecycleState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state == ServiceLifecycleState.RUNNING

    @property
    def stopped(self) -> bool:
        return self._state == ServiceLifecycleState.STOPPED

    def await_running(self, timeout: timedelta | None = None):
        """
        :exception TimeoutError: if the service is not running within the timeout
        """
        if not self._running_event.wait(timeout.total_seconds() if timeout else None):
            raise TimeoutError

    def await_stopped(self, timeout: timedelta | None = None):
        """
        :exception TimeoutError: if the service is not stopped within the timeout
        """
        if not self._stopped_event.wait(timeout.total_seconds() if timeout else None):
            raise TimeoutError

    def start(self):
        """
        Starting a RUNNING or STARTING service is a noop.

        If `_start` fails, then the service is stopped to release anything acquired while starting.

        :exception ServiceStartError: if the service is not NEW or STOPPED, or if `_start` raised an error
        """
        if self._state in (ServiceLifecycleState.RUNNING, ServiceLifecycleState.STARTING):
            return
        if self._state not in (ServiceLifecycleState.NEW, ServiceLifecycleState.STOPPED):
            raise ServiceStartError(
                self.name, f"service cannot be started when state is: {self._state.name}"
            )

        self._set_state(ServiceLifecycleState.STARTING)
        try:
            self._start()
        except Exception as err:
            self._set_state(ServiceLifecycleState.START_FAILED)
            self.stop()
            raise ServiceStartError(self.name, "error occurred while starting") from err
        self._set_state(ServiceLifecycleState.RUNNING)

    def stop(self):
        """
        Stopping a STOPPED or STOPPING service is a noop. A NEW service goes straight to STOPPED.

        :exception ServiceStopError: if the service is STARTING, or if `_stop` raised an error
        """
        if self._state in (ServiceLifecycleState.STOPPED, ServiceLifecycleState.STOPPING):
            return
        if self._state == ServiceLifecycleState.NEW:
            self._set_state(ServiceLifecycleState.STOPPED)
            return
        if self._state == ServiceLifecycleState.STARTING:
            raise ServiceStopError(
                self.name, f"service cannot be stopped when state is: {self._state.name}"
            )

        self._set_state(ServiceLifecycleState.STOPPING)
        try:
            self._stop()
        except Exception as err:
            raise ServiceStopError(self.name, "error occurred while stopping") from err
        finally:
            self._set_state(ServiceLifecycleState.STOPPED)

    def _set_state(self, state: ServiceLifecycleState):
        self._logger.info("state transition: %s -> %s", self._state.name, state.name)
        self._state = state

        match state:
            case ServiceLifecycleState.STARTING:
                self._stopped_event.clear()
            case ServiceLifecycleState.RUNNING:
                self._running_event.set()
            case ServiceLifecycleState.STOPPING:
                self._running_event.clear()
            case ServiceLifecycleState.STOPPED:
                self._stopped_event.set()

    @abstractmethod
    def _start(self):
        pass

    @abstractmethod
    def _stop(self):
        pass
