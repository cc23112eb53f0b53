from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager


class IResourceLock(ABC):
    @abstractmethod
    def hold(self, *, key: str) -> AbstractAsyncContextManager[None]:
        """
        Enter the critical section for ``key``

        Raises:
            ResourceBusyError: When the section cannot be entered within the configured timeout
        """
        pass


def resource_lock_key(resource_id: str) -> str:
    return f'resource:{resource_id}'
