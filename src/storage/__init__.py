"""
Artifact storage for translated documents.
"""

from .artifact_store import ArtifactStore, LocalArtifactStore, generate_artifact_key, is_valid_owner_id

__all__ = ['ArtifactStore', 'LocalArtifactStore', 'generate_artifact_key', 'is_valid_owner_id']
