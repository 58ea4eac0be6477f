"""
Artifact download route
"""
from flask import Blueprint, jsonify, send_file

from src.core.exceptions import ArtifactStoreError


def create_file_blueprint(artifact_store):
    """
    Create and configure the file blueprint

    Args:
        artifact_store: Store that signed the download links
    """
    bp = Blueprint('files', __name__)

    @bp.route('/api/artifacts/<token>', methods=['GET'])
    def download_artifact(token):
        """Download a translated document through a signed link"""
        try:
            path, name, mime_type = artifact_store.resolve_token(token)
        except ArtifactStoreError as e:
            return jsonify({"error": e.message}), 404

        return send_file(path, mimetype=mime_type, as_attachment=True, download_name=name)

    return bp
