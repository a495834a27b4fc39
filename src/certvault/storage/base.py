"""Base protocol for object store clients."""

from typing import Iterator, Protocol

from ..models import ObjectEntry


class ObjectClient(Protocol):
    """
    Protocol for object store clients.

    These five calls are the only primitives the blob store and the lock
    manager rely on. No conditional write or atomic create-if-absent is
    assumed.

    Implementations raise ``NotExistError`` for missing keys and wrap every
    other client failure in ``TransientStoreError``.
    """

    def put_object(self, key: str, data: bytes) -> None:
        """
        Write an object, replacing any previous content.

        Args:
            key: Full object key
            data: Object content
        """
        ...

    def get_object(self, key: str) -> bytes:
        """
        Read an object's content.

        Args:
            key: Full object key

        Returns:
            Exact bytes previously written

        Raises:
            NotExistError: If the object does not exist
        """
        ...

    def head_object(self, key: str) -> ObjectEntry:
        """
        Get an object's metadata without reading its content.

        Args:
            key: Full object key

        Returns:
            ObjectEntry for exactly this key

        Raises:
            NotExistError: If the object does not exist
        """
        ...

    def delete_object(self, key: str) -> None:
        """
        Remove an object.

        Args:
            key: Full object key

        Raises:
            NotExistError: If the object does not exist
        """
        ...

    def list_objects(self, prefix: str) -> Iterator[ObjectEntry]:
        """
        Enumerate objects whose key starts with ``prefix``.

        Matching is plain string prefix matching at any depth; segment
        boundaries are the caller's concern.

        Args:
            prefix: Raw key prefix ("" lists everything)

        Returns:
            Iterator of ObjectEntry
        """
        ...
