"""
In-memory EPUB and PDF documents used across the test suite.
"""

import io
import zipfile

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="OEBPS/content.opf" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>"""

CONTENT_OPF = """<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="bookid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:title>Sample Book</dc:title>
    <dc:language>en</dc:language>
  </metadata>
  <manifest>
    <item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>
    <item id="style" href="style.css" media-type="text/css"/>
    <item id="ch1" href="text/chapter1.xhtml" media-type="application/xhtml+xml"/>
    <item id="ch2" href="text/chapter2.xhtml" media-type="application/xhtml+xml"/>
    <item id="ch3" href="text/chapter3.xhtml" media-type="application/xhtml+xml"/>
  </manifest>
  <spine toc="ncx">
    <itemref idref="ch1"/>
    <itemref idref="ch2"/>
    <itemref idref="ch3"/>
  </spine>
</package>"""

TOC_NCX = """<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <navMap>
    <navPoint id="np1" playOrder="1">
      <navLabel><text>The Beginning</text></navLabel>
      <content src="text/chapter1.xhtml"/>
    </navPoint>
    <navPoint id="np2" playOrder="2">
      <navLabel><text>The Middle</text></navLabel>
      <content src="text/chapter2.xhtml#start"/>
    </navPoint>
  </navMap>
</ncx>"""

CHAPTER_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head><title>{title}</title><link rel="stylesheet" href="../style.css"/></head>
<body><h1>{title}</h1><p>{text}</p></body>
</html>"""

CHAPTERS = {
    'ch1': ('OEBPS/text/chapter1.xhtml', 'Chapter One', 'It was a bright cold day in April.'),
    'ch2': ('OEBPS/text/chapter2.xhtml', 'Chapter Two', 'The clocks were striking thirteen.'),
    'ch3': ('OEBPS/text/chapter3.xhtml', 'Chapter Three', 'Nobody answered the door.'),
}


def chapter_markup(title, text):
    return CHAPTER_TEMPLATE.format(title=title, text=text)


def build_epub(chapters=None):
    """Build a small EPUB 2 archive in memory."""
    chapters = chapters or CHAPTERS
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as archive:
        archive.writestr(zipfile.ZipInfo('mimetype'), 'application/epub+zip')
        archive.writestr('META-INF/container.xml', CONTAINER_XML, compress_type=zipfile.ZIP_DEFLATED)
        archive.writestr('OEBPS/content.opf', CONTENT_OPF, compress_type=zipfile.ZIP_DEFLATED)
        archive.writestr('OEBPS/toc.ncx', TOC_NCX, compress_type=zipfile.ZIP_DEFLATED)
        archive.writestr('OEBPS/style.css', 'p { margin: 0; }', compress_type=zipfile.ZIP_DEFLATED)
        for path, title, text in chapters.values():
            archive.writestr(path, chapter_markup(title, text), compress_type=zipfile.ZIP_DEFLATED)
    return buffer.getvalue()


def build_pdf(pages):
    """Build a PDF with one page per text (an empty string gives a blank page)."""
    import fitz

    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data

