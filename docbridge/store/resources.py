"""Lazy resource resolution shared by servers and databases.

A server resolves databases and a database resolves collections the same
way: look in the working set first, otherwise consult the backend under
the control of the CONNECT, CREATE and ASSERT flags. This module holds
that protocol once; the owners inject the backend hooks.
"""

import logging
from typing import Callable, Dict, Generic, List, Optional, TypeVar

from docbridge.store.exceptions import NotFoundError
from docbridge.store.options import Flags, Options

logger = logging.getLogger(__name__)

R = TypeVar("R")

ConnectHook = Callable[[Flags], bool]
ListHook = Callable[[Options], List[str]]
CreateHook = Callable[[str, Options], R]
RetrieveHook = Callable[[str, Options], Optional[R]]
DropHook = Callable[[R, Options], None]


class ResourceManager(Generic[R]):
    """Working set of named child resources.

    Resolved resources are cached by name, so repeated lookups return the
    same instance until the entry is forgotten or dropped.
    """

    def __init__(
        self,
        kind: str,
        connect: ConnectHook,
        list_names: ListHook,
        create: "CreateHook[R]",
        retrieve: "RetrieveHook[R]",
        drop: "DropHook[R]",
    ):
        """Initialize the manager.

        Args:
            kind: Resource kind used in messages (e.g. "database")
            connect: Returns True if the parent is connected, connecting
                first when the CONNECT flag is passed
            list_names: Lists resource names at the backend
            create: Creates a resource at the backend
            retrieve: Returns an existing resource, or None
            drop: Deletes a resource at the backend
        """
        self.kind = kind
        self._connect = connect
        self._list = list_names
        self._create = create
        self._retrieve = retrieve
        self._drop = drop
        self._working: Dict[str, R] = {}

    def __contains__(self, name: object) -> bool:
        return str(name) in self._working

    def __len__(self) -> int:
        return len(self._working)

    def get(
        self,
        name: str,
        flags: Flags = Flags.DEFAULT,
        options: Optional[Options] = None,
    ) -> Optional[R]:
        """Resolve a resource by name.

        Args:
            name: Resource name
            flags: CONNECT, CREATE and ASSERT bits
            options: Options forwarded to the backend hooks

        Returns:
            The resource, or None if it could not be resolved

        Raises:
            NotFoundError: If unresolved and ASSERT is set
        """
        name = str(name)
        if name in self._working:
            return self._working[name]

        options = Options.coerce(options)
        if self._connect(flags):
            resource = self._retrieve(name, options)
            if resource is None and flags & Flags.CREATE:
                resource = self._create(name, options)
                logger.info(f"Created {self.kind} '{name}'")
            if resource is not None:
                self._working[name] = resource
                return resource

        if flags & Flags.ASSERT:
            raise NotFoundError(self.kind, name)
        return None

    def list(self, flags: Flags = Flags.DEFAULT, options: Optional[Options] = None) -> List[str]:
        """List resource names at the backend.

        Returns:
            list: Names, or an empty list if not connected
        """
        if not self._connect(flags):
            return []
        return list(self._list(Options.coerce(options)))

    def working(self) -> List[str]:
        """Names of the cached resources."""
        return list(self._working)

    def cached(self) -> List[R]:
        """The cached resources."""
        return list(self._working.values())

    def forget(self, name: str) -> Optional[R]:
        """Remove a resource from the working set without deleting it."""
        return self._working.pop(str(name), None)

    def clear(self) -> None:
        self._working.clear()

    def drop(
        self,
        name: str,
        flags: Flags = Flags.CONNECT,
        options: Optional[Options] = None,
    ) -> bool:
        """Delete a resource at the backend and forget it.

        CREATE is ignored: a resource is never created only to be dropped.

        Returns:
            bool: True if the resource was found and dropped

        Raises:
            NotFoundError: If not found and ASSERT is set
        """
        name = str(name)
        options = Options.coerce(options)
        resource = self.get(name, flags & ~Flags.CREATE, options)
        if resource is None:
            return False

        self._drop(resource, options)
        self._working.pop(name, None)
        logger.info(f"Dropped {self.kind} '{name}'")
        return True
