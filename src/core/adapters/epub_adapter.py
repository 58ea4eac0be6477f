"""
EPUB format adapter.

This adapter handles EPUB files by:
1. Locating the OPF package through META-INF/container.xml
2. Walking the spine in reading order (one unit per XHTML document)
3. Reading chapter titles from the NCX table of contents or the EPUB 3 nav
4. Rewriting only the translated XHTML entries when rebuilding the archive
"""

import io
import posixpath
import zipfile
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote

from lxml import etree

from .format_adapter import FormatAdapter, register_adapter
from .translation_unit import TranslatableUnit, TranslatedUnit
from src.config import NAMESPACES
from src.core.exceptions import ExtractionError, ReconstructionError

XHTML_MEDIA_TYPES = ('application/xhtml+xml', 'text/html')
NCX_MEDIA_TYPE = 'application/x-dtbncx+xml'

# (unit id, archive path) for each spine document
SpineEntry = Tuple[str, str]


@register_adapter
class EpubAdapter(FormatAdapter):
    """
    Adapter for EPUB (.epub) files.

    Each spine XHTML document is one unit. The unit id is the manifest id of
    the document, the content is its full markup.
    """

    format_name = "epub"
    mime_type = "application/epub+zip"

    def extract(self, document_bytes: bytes) -> List[TranslatableUnit]:
        with self._open(document_bytes, ExtractionError) as archive:
            spine, opf_dir, opf_root = self._read_spine(archive)
            titles = self._read_titles(archive, opf_root, opf_dir)

            units = []
            for index, (unit_id, path) in enumerate(spine, start=1):
                try:
                    content = archive.read(path).decode('utf-8')
                except KeyError:
                    # Spine points at a missing file, skip it
                    continue
                except UnicodeDecodeError as e:
                    raise ExtractionError(
                        "Chapter is not valid UTF-8",
                        context={'path': path, 'error': str(e)}
                    )
                units.append(TranslatableUnit(
                    id=unit_id,
                    title=titles.get(path) or f"Chapter {index}",
                    content=content
                ))

        if not units:
            raise ExtractionError("EPUB has no readable chapters in its spine")
        return units

    def reconstruct(self, original_bytes: bytes, translated_units: List[TranslatedUnit]) -> bytes:
        translations = {unit.id: unit.translated_content for unit in translated_units}

        with self._open(original_bytes, ReconstructionError) as archive:
            try:
                spine, _, _ = self._read_spine(archive)
            except ExtractionError as e:
                raise ReconstructionError(e.message, context=e.context)

            replacements: Dict[str, bytes] = {}
            for unit_id, path in spine:
                if unit_id not in translations:
                    continue
                new_bytes = translations[unit_id].encode('utf-8')
                try:
                    if archive.read(path) != new_bytes:
                        replacements[path] = new_bytes
                except KeyError:
                    continue

            if not replacements:
                return original_bytes

            output = io.BytesIO()
            try:
                with zipfile.ZipFile(output, 'w') as rebuilt:
                    # infolist() keeps archive order, so "mimetype" stays first and stored
                    for info in archive.infolist():
                        data = replacements.get(info.filename)
                        if data is None:
                            data = archive.read(info.filename)
                        rebuilt.writestr(info, data)
            except (zipfile.BadZipFile, OSError, ValueError) as e:
                raise ReconstructionError("Failed to rebuild EPUB archive", context={'error': str(e)})

        return output.getvalue()

    # ------------------------------------------------------------------
    # Archive helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _open(document_bytes: bytes, error_cls) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(io.BytesIO(document_bytes), 'r')
        except zipfile.BadZipFile as e:
            raise error_cls("Not a valid EPUB (ZIP) archive", context={'error': str(e)})

    def _find_opf_path(self, archive: zipfile.ZipFile) -> Optional[str]:
        try:
            container = etree.fromstring(archive.read('META-INF/container.xml'))
            rootfile = container.find('.//container:rootfile', namespaces=NAMESPACES)
            if rootfile is not None and rootfile.get('full-path'):
                return rootfile.get('full-path')
        except (KeyError, etree.XMLSyntaxError):
            pass

        for name in archive.namelist():
            if name.endswith('.opf'):
                return name
        return None

    def _read_spine(self, archive: zipfile.ZipFile) -> Tuple[List[SpineEntry], str, etree._Element]:
        """Return spine documents in reading order, the OPF directory and the OPF root."""
        opf_path = self._find_opf_path(archive)
        if not opf_path:
            raise ExtractionError("EPUB has no OPF package document")

        try:
            opf_root = etree.fromstring(archive.read(opf_path))
        except (KeyError, etree.XMLSyntaxError) as e:
            raise ExtractionError("Unreadable OPF package document", context={'path': opf_path, 'error': str(e)})

        opf_dir = posixpath.dirname(opf_path)
        manifest = opf_root.find('.//opf:manifest', namespaces=NAMESPACES)
        spine = opf_root.find('.//opf:spine', namespaces=NAMESPACES)
        if manifest is None or spine is None:
            raise ExtractionError("OPF package has no manifest or spine", context={'path': opf_path})

        items = {}
        for item in manifest.findall('opf:item', namespaces=NAMESPACES):
            items[item.get('id')] = item

        entries: List[SpineEntry] = []
        seen = set()
        for position, itemref in enumerate(spine.findall('opf:itemref', namespaces=NAMESPACES), start=1):
            idref = itemref.get('idref')
            item = items.get(idref)
            if item is None or item.get('media-type') not in XHTML_MEDIA_TYPES or not item.get('href'):
                continue
            unit_id = idref or f"chapter-{position}"
            if unit_id in seen:
                continue
            seen.add(unit_id)
            entries.append((unit_id, self._resolve(opf_dir, item.get('href'))))

        return entries, opf_dir, opf_root

    @staticmethod
    def _resolve(base_dir: str, href: str) -> str:
        href = unquote(href.split('#', 1)[0])
        return posixpath.normpath(posixpath.join(base_dir, href)) if base_dir else posixpath.normpath(href)

    def _read_titles(self, archive: zipfile.ZipFile, opf_root: etree._Element, opf_dir: str) -> Dict[str, str]:
        """Map archive paths to table-of-contents titles (NCX first, then EPUB 3 nav)."""
        titles: Dict[str, str] = {}
        manifest_items = opf_root.findall('.//opf:manifest/opf:item', namespaces=NAMESPACES)

        for item in manifest_items:
            if item.get('media-type') == NCX_MEDIA_TYPE:
                ncx_path = self._resolve(opf_dir, item.get('href', ''))
                titles.update(self._titles_from_ncx(archive, ncx_path))

        for item in manifest_items:
            if 'nav' in (item.get('properties') or '').split():
                nav_path = self._resolve(opf_dir, item.get('href', ''))
                for path, title in self._titles_from_nav(archive, nav_path).items():
                    titles.setdefault(path, title)

        return titles

    def _titles_from_ncx(self, archive: zipfile.ZipFile, ncx_path: str) -> Dict[str, str]:
        try:
            root = etree.fromstring(archive.read(ncx_path))
        except (KeyError, etree.XMLSyntaxError):
            return {}

        ncx_dir = posixpath.dirname(ncx_path)
        titles = {}
        for nav_point in root.iterfind('.//ncx:navPoint', namespaces=NAMESPACES):
            text = nav_point.findtext('ncx:navLabel/ncx:text', namespaces=NAMESPACES)
            content = nav_point.find('ncx:content', namespaces=NAMESPACES)
            if text and content is not None and content.get('src'):
                titles.setdefault(self._resolve(ncx_dir, content.get('src')), text.strip())
        return titles

    def _titles_from_nav(self, archive: zipfile.ZipFile, nav_path: str) -> Dict[str, str]:
        try:
            root = etree.fromstring(archive.read(nav_path))
        except (KeyError, etree.XMLSyntaxError):
            return {}

        nav_dir = posixpath.dirname(nav_path)
        titles = {}
        for link in root.iterfind('.//xhtml:nav//xhtml:a', namespaces=NAMESPACES):
            href = link.get('href')
            text = ''.join(link.itertext()).strip()
            if href and text:
                titles.setdefault(self._resolve(nav_dir, href), text)
        return titles
