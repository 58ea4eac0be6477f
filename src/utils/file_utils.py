"""
File helpers for the command line interface
"""
from pathlib import Path


def default_output_path(input_path, target_language):
    """
    Output path next to the input, tagged with the target language.

    Examples:
        book.epub, French -> book_translated_french.epub
    """
    path = Path(input_path)
    language = target_language.lower().replace(' ', '_')
    return str(path.with_name(f"{path.stem}_translated_{language}{path.suffix}"))


def get_unique_output_path(output_path):
    """
    Generate a unique output path by adding a number suffix if the file already exists.

    Args:
        output_path (str): Desired output path

    Returns:
        str: Unique output path (original or with numeric suffix)

    Examples:
        book.epub -> book.epub (if doesn't exist)
        book.epub -> book (1).epub (if book.epub exists)
        book.epub -> book (2).epub (if book.epub and book (1).epub exist)
    """
    path = Path(output_path)
    if not path.exists():
        return output_path

    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
        if not candidate.exists():
            return str(candidate)
        counter += 1
