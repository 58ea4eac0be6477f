"""
Tests for the local artifact store and its signed download links.
"""

import re

import pytest

from src.core.exceptions import ArtifactStoreError
from src.storage import LocalArtifactStore
from src.storage.artifact_store import generate_artifact_key


def token_of(url):
    return url.rsplit('/', 1)[-1]


class TestArtifactKeys:

    def test_key_format(self):
        key = generate_artifact_key("alice", "translated-book.epub")

        assert re.fullmatch(r"user-alice/[0-9a-f]{32}\.epub", key)

    def test_keys_are_unique(self):
        assert generate_artifact_key("alice", "a.pdf") != generate_artifact_key("alice", "a.pdf")

    def test_name_without_extension(self):
        assert generate_artifact_key("bob", "README").endswith(".bin")

    @pytest.mark.parametrize("owner_id", ["../..", "", "alice/bob", "a" * 65])
    def test_owner_must_be_a_single_path_segment(self, owner_id):
        with pytest.raises(ArtifactStoreError):
            generate_artifact_key(owner_id, "book.epub")


@pytest.mark.asyncio
class TestLocalArtifactStore:

    async def test_put_and_read(self, artifact_store):
        key = await artifact_store.put(b"%PDF-1.7", "alice", "translated-doc.pdf", "application/pdf")

        assert key.startswith("user-alice/")
        assert await artifact_store.read(key) == b"%PDF-1.7"

    async def test_download_url_resolves(self, artifact_store):
        key = await artifact_store.put(b"epub", "alice", "translated-book.epub", "application/epub+zip")

        url = artifact_store.get_download_url(key, 600, download_name="translated-book.epub")
        path, name, mime_type = artifact_store.resolve_token(token_of(url))

        assert url.startswith("/api/artifacts/")
        assert path.read_bytes() == b"epub"
        assert name == "translated-book.epub"
        assert mime_type == "application/epub+zip"

    async def test_expired_link(self, artifact_store):
        key = await artifact_store.put(b"data", "alice", "out.pdf", "application/pdf")

        url = artifact_store.get_download_url(key, -1)

        with pytest.raises(ArtifactStoreError, match="expired"):
            artifact_store.resolve_token(token_of(url))

    async def test_tampered_token(self, artifact_store):
        key = await artifact_store.put(b"data", "alice", "out.pdf", "application/pdf")
        token = token_of(artifact_store.get_download_url(key, 600))

        with pytest.raises(ArtifactStoreError, match="Invalid"):
            artifact_store.resolve_token(token[:-2] + "xx")

    async def test_token_from_other_secret(self, artifact_store, tmp_path):
        key = await artifact_store.put(b"data", "alice", "out.pdf", "application/pdf")
        other = LocalArtifactStore(str(tmp_path / "artifacts"), secret_key="another-secret")

        with pytest.raises(ArtifactStoreError):
            other.resolve_token(token_of(artifact_store.get_download_url(key, 600)))

    async def test_deleted_artifact(self, artifact_store):
        key = await artifact_store.put(b"data", "alice", "out.pdf", "application/pdf")
        url = artifact_store.get_download_url(key, 600)
        (artifact_store.base_dir / key).unlink()

        with pytest.raises(ArtifactStoreError, match="not found"):
            artifact_store.resolve_token(token_of(url))

    async def test_key_outside_base_dir(self, artifact_store):
        with pytest.raises(ArtifactStoreError):
            await artifact_store.read("../../etc/passwd")
