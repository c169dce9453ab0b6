"""In-memory document collections.

Holds collections and their uploaded PDFs for the lifetime of the
process. Mock answers cite these files, and view links served by the API
resolve against them.
"""

import logging
import uuid
from dataclasses import dataclass

from docchat.models.schemas import Collection, FileItem
from docchat.parsing.pdf_parser import PDFContent

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "Default"


class UnknownFileError(LookupError):
    """Raised when a file id is not found in any collection."""

    pass


@dataclass
class StoredFile:
    item: FileItem
    content: PDFContent
    data: bytes


def file_view_url(file_id: str) -> str:
    return f"/api/files/{file_id}"


class CollectionStore:
    """Collections keyed by id, files kept newest first."""

    def __init__(self) -> None:
        self._collections: dict[str, Collection] = {}
        self._files: dict[str, list[StoredFile]] = {}

    def get_collections(self) -> list[Collection]:
        """List collections, creating the default one on first use."""
        if not self._collections:
            self.create_collection(DEFAULT_COLLECTION)
        return list(self._collections.values())

    def create_collection(self, name: str, description: str | None = None) -> Collection:
        """Create a collection, or return the existing one with that name."""
        existing = self.find_collection(name)
        if existing is not None:
            return existing
        collection = Collection(id=str(uuid.uuid4()), name=name, description=description)
        self._collections[collection.id] = collection
        self._files[collection.id] = []
        logger.info(f"Created collection: {name}")
        return collection

    def find_collection(self, id_or_name: str) -> Collection | None:
        """Look up a collection by id, then by case-insensitive name."""
        if id_or_name in self._collections:
            return self._collections[id_or_name]
        lowered = id_or_name.lower()
        for collection in self._collections.values():
            if collection.name.lower() == lowered:
                return collection
        return None

    def add_file(
        self,
        collection_name: str,
        filename: str,
        data: bytes,
        content: PDFContent,
        content_type: str = "application/pdf",
    ) -> tuple[Collection, FileItem]:
        """Store a parsed file, creating the collection if needed."""
        collection = self.create_collection(collection_name)
        file_id = str(uuid.uuid4())
        item = FileItem(
            id=file_id,
            name=filename,
            size=len(data),
            type=content_type,
            url=file_view_url(file_id),
            pages=content.pages,
        )
        self._files[collection.id].insert(0, StoredFile(item=item, content=content, data=data))
        return collection, item

    def get_files(self, id_or_name: str) -> list[FileItem]:
        """List a collection's files, newest first. Unknown collections have none."""
        collection = self.find_collection(id_or_name)
        if collection is None:
            return []
        return [stored.item for stored in self._files[collection.id]]

    def find_file(self, collection_name: str | None, filename: str) -> StoredFile | None:
        """Find a stored file by name, within one collection or across all."""
        for collection_id in self._collection_ids(collection_name):
            for stored in self._files[collection_id]:
                if stored.item.name == filename:
                    return stored
        return None

    def get_file(self, file_id: str, collection_name: str | None = None) -> StoredFile:
        """Return a stored file by id.

        Raises:
            UnknownFileError: If no collection holds the file.
        """
        for collection_id in self._collection_ids(collection_name):
            for stored in self._files[collection_id]:
                if stored.item.id == file_id:
                    return stored
        raise UnknownFileError(f"File not found: {file_id}")

    def _collection_ids(self, collection_name: str | None) -> list[str]:
        if collection_name:
            collection = self.find_collection(collection_name)
            if collection is not None:
                return [collection.id]
        return list(self._collections)


# Module-level singleton instance
_collection_store: CollectionStore | None = None


def get_collection_store() -> CollectionStore:
    """Get or create the global collection store."""
    global _collection_store
    if _collection_store is None:
        _collection_store = CollectionStore()
    return _collection_store
