"""
API Routes
"""
from .config_routes import create_config_blueprint
from .job_routes import create_job_blueprint
from .file_routes import create_file_blueprint

__all__ = [
    'create_config_blueprint',
    'create_job_blueprint',
    'create_file_blueprint'
]
