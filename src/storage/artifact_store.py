"""
Storage for translated documents.

Artifacts are written once per completed job under
``user-<owner>/<md5>.<ext>`` and served through signed, expiring download
links.
"""

import hashlib
import mimetypes
import os
import re
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from itsdangerous import BadSignature, URLSafeTimedSerializer

from src.config import ARTIFACT_DIR, DOWNLOAD_URL_TTL_SECONDS, SECRET_KEY
from src.core.exceptions import ArtifactStoreError


#: Owner ids become a path segment of the artifact key
OWNER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def is_valid_owner_id(owner_id: str) -> bool:
    return isinstance(owner_id, str) and OWNER_ID_PATTERN.match(owner_id) is not None


def generate_artifact_key(owner_id: str, name: str) -> str:
    """Unique key for an artifact, keeping the extension of ``name``."""
    if not is_valid_owner_id(owner_id):
        raise ArtifactStoreError("Invalid owner id", context={'owner_id': owner_id})
    digest = hashlib.md5(f"{owner_id}-{time.time_ns()}-{name}".encode("utf-8")).hexdigest()
    extension = name.rsplit('.', 1)[-1].lower() if '.' in name else 'bin'
    return f"user-{owner_id}/{digest}.{extension}"


class ArtifactStore(ABC):
    """Write-once storage for reconstructed documents."""

    @abstractmethod
    async def put(self, data: bytes, owner_id: str, name: str, mime_type: str) -> str:
        """Store a document and return its artifact key."""
        pass

    @abstractmethod
    def get_download_url(self, artifact_key: str, ttl_seconds: int = DOWNLOAD_URL_TTL_SECONDS,
                         download_name: Optional[str] = None) -> str:
        """Return a URL that downloads the artifact until the TTL runs out."""
        pass


class LocalArtifactStore(ArtifactStore):
    """
    Artifact store on the local filesystem.

    Download URLs point at the API download route and carry a token signed
    with ``SECRET_KEY``.
    """

    def __init__(self, base_dir: str = ARTIFACT_DIR, secret_key: str = SECRET_KEY,
                 url_prefix: str = "/api/artifacts"):
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.url_prefix = url_prefix.rstrip('/')
        self._serializer = URLSafeTimedSerializer(secret_key, salt="artifact-download")

    def _path_for(self, artifact_key: str) -> Path:
        path = (self.base_dir / artifact_key).resolve()
        if self.base_dir.resolve() not in path.parents:
            raise ArtifactStoreError("Invalid artifact key", context={'key': artifact_key})
        return path

    async def put(self, data: bytes, owner_id: str, name: str, mime_type: str) -> str:
        key = generate_artifact_key(owner_id, name)
        path = self._path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, 'wb') as f:
                await f.write(data)
        except OSError as e:
            raise ArtifactStoreError("Could not write artifact", context={'key': key, 'error': str(e)})
        return key

    def get_download_url(self, artifact_key: str, ttl_seconds: int = DOWNLOAD_URL_TTL_SECONDS,
                         download_name: Optional[str] = None) -> str:
        token = self._serializer.dumps({
            'key': artifact_key,
            'ttl': int(ttl_seconds),
            'name': download_name or os.path.basename(artifact_key),
        })
        return f"{self.url_prefix}/{token}"

    def resolve_token(self, token: str) -> Tuple[Path, str, str]:
        """
        Validate a download token.

        Returns:
            (file path, download name, mime type)

        Raises:
            ArtifactStoreError: if the token is invalid, expired or the file is gone
        """
        try:
            payload, signed_at = self._serializer.loads(token, return_timestamp=True)
        except BadSignature:
            raise ArtifactStoreError("Invalid download link")

        if signed_at.tzinfo is None:
            signed_at = signed_at.replace(tzinfo=timezone.utc)
        age = (datetime.now(timezone.utc) - signed_at).total_seconds()
        if age > payload.get('ttl', DOWNLOAD_URL_TTL_SECONDS):
            raise ArtifactStoreError("Download link expired")

        path = self._path_for(payload['key'])
        if not path.exists():
            raise ArtifactStoreError("Artifact not found", context={'key': payload['key']})

        name = payload.get('name') or path.name
        mime_type = mimetypes.guess_type(name)[0] or 'application/octet-stream'
        return path, name, mime_type

    async def read(self, artifact_key: str) -> bytes:
        async with aiofiles.open(self._path_for(artifact_key), 'rb') as f:
            return await f.read()
