"""
Utility modules

Import helpers directly from their module:

    from src.utils.unified_logger import get_logger
    from src.utils.file_utils import default_output_path
"""

__all__ = []
