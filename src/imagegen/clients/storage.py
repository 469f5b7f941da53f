"""Artifact store implementations.

Two backends share the :class:`~imagegen.clients.base.ArtifactStore`
interface:

``AzureBlobArtifactStore``
    Production store.  All groups live in a single container; each group is
    a virtual folder, so an artifact is the blob ``{group}/{request_id}``.
    A group "exists" once at least one blob has been written under it.

``LocalArtifactStore``
    File-backed store for local development and tests.  An artifact is the
    file ``{root}/{group}/{request_id}``; a group exists once its directory
    does.

Both backends convert their own exceptions into
:class:`~imagegen.errors.StorageError` so that nothing backend-specific
leaks into the HTTP layer.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path

from azure.core.exceptions import AzureError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContainerClient, ContentSettings

from imagegen.clients.base import ArtifactStore
from imagegen.errors import StorageError

logger = logging.getLogger(__name__)

CONTENT_TYPE = "image/jpeg"


def _blob_name(namespace: str, key: str) -> str:
    return f"{namespace}/{key}"


class AzureBlobArtifactStore(ArtifactStore):
    """Artifact store backed by one Azure Blob Storage container."""

    def __init__(self, container: ContainerClient) -> None:
        self._container = container

    @classmethod
    def from_connection_string(cls, connection_string: str, container_name: str):
        service = BlobServiceClient.from_connection_string(connection_string)
        return cls(service.get_container_client(container_name))

    def create_namespace_if_absent(self, namespace: str) -> None:
        # Groups are virtual folders; only the container has to exist.
        try:
            self._container.create_container()
            logger.info(f"Created storage container '{self._container.container_name}'")
        except ResourceExistsError:
            logger.debug("Storage container already exists")
        except AzureError as exc:
            logger.exception("Failed to create storage container")
            raise StorageError("Failed to prepare storage") from exc

    def namespace_exists(self, namespace: str) -> bool:
        try:
            blobs = self._container.list_blobs(
                name_starts_with=f"{namespace}/", results_per_page=1
            )
            return next(iter(blobs), None) is not None
        except ResourceNotFoundError:
            return False
        except AzureError as exc:
            logger.exception(f"Failed to list group '{namespace}'")
            raise StorageError("Failed to query storage") from exc

    def write(self, namespace: str, key: str, data: bytes) -> None:
        try:
            self._container.upload_blob(
                name=_blob_name(namespace, key),
                data=data,
                overwrite=True,
                content_settings=ContentSettings(content_type=CONTENT_TYPE),
            )
        except AzureError as exc:
            logger.exception(f"Failed to upload '{_blob_name(namespace, key)}'")
            raise StorageError("Failed to store image") from exc

    def exists(self, namespace: str, key: str) -> bool:
        try:
            return self._container.get_blob_client(_blob_name(namespace, key)).exists()
        except AzureError as exc:
            logger.exception(f"Failed to check '{_blob_name(namespace, key)}'")
            raise StorageError("Failed to query storage") from exc

    def read(self, namespace: str, key: str) -> bytes:
        try:
            return self._container.download_blob(_blob_name(namespace, key)).readall()
        except AzureError as exc:
            logger.exception(f"Failed to download '{_blob_name(namespace, key)}'")
            raise StorageError("Failed to read image") from exc


class LocalArtifactStore(ArtifactStore):
    """Artifact store that keeps each group as a directory under *root*."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _safe_part(self, part: str) -> bool:
        return bool(part) and part not in (".", "..") and "/" not in part and "\\" not in part

    def _group_dir(self, namespace: str) -> Path:
        if not self._safe_part(namespace):
            raise StorageError(f"Invalid namespace: {namespace!r}")
        return self.root / namespace

    def _artifact_path(self, namespace: str, key: str) -> Path:
        if not self._safe_part(key):
            raise StorageError(f"Invalid key: {key!r}")
        return self._group_dir(namespace) / key

    def create_namespace_if_absent(self, namespace: str) -> None:
        try:
            self._group_dir(namespace).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError("Failed to prepare storage") from exc

    def namespace_exists(self, namespace: str) -> bool:
        if not self._safe_part(namespace):
            return False
        return self._group_dir(namespace).is_dir()

    def write(self, namespace: str, key: str, data: bytes) -> None:
        target = self._artifact_path(namespace, key)
        tmp_name = None
        try:
            # Readers never see a partially written artifact.
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{key}.")
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, target)
        except OSError as exc:
            logger.exception(f"Failed to write '{target}'")
            if tmp_name is not None:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_name)
            raise StorageError("Failed to store image") from exc

    def exists(self, namespace: str, key: str) -> bool:
        if not (self._safe_part(namespace) and self._safe_part(key)):
            return False
        return self._artifact_path(namespace, key).is_file()

    def read(self, namespace: str, key: str) -> bytes:
        path = self._artifact_path(namespace, key)
        try:
            return path.read_bytes()
        except OSError as exc:
            logger.exception(f"Failed to read '{path}'")
            raise StorageError("Failed to read image") from exc
