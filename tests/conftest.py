"""Pytest fixtures for clima tests."""
import io
import zipfile
from datetime import datetime
from typing import List, Optional, Tuple

import pytest
from PIL import Image as PILImage

from clima.core.edition import Article, ContentKind, Edition
from clima.core.edition.models import Image
from clima.core.session import SessionData, UserInfo

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

DOCUMENT = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head><title>{title}</title><link rel="stylesheet" type="text/css" href="{css}"/></head>
<body><h0>{title}</h0><p><img src="{img}" alt=""/></p><quote>{title} text</quote>
<p><a href="https://ilmanifesto.it/">il manifesto</a> <a href="#top">top</a></p></body>
</html>
"""

NAV = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops">
<body><nav epub:type="toc"><ol><li><a href="{doc}">{title}</a></li></ol></nav></body>
</html>
"""

CSS = "body { background: url('{img}') no-repeat; }\nh1 { font-weight: bold; }\n"


def png_bytes(size: Tuple[int, int] = (4, 4), mode: str = 'RGB') -> bytes:
    """Small PNG image."""
    color = (200, 30, 30, 128) if mode == 'RGBA' else (200, 30, 30)
    output = io.BytesIO()
    PILImage.new(mode, size, color).save(output, format='PNG')
    return output.getvalue()


def build_epub(
    title: str,
    items: List[Tuple[str, str, str, bytes, str]],
    spine: List[str],
    opf_dir: str = 'OEBPS'
) -> bytes:
    """
    Zip an ePub from manifest entries.

    Args:
        title: dc:title of the package
        items: (id, href, media_type, content, properties), hrefs relative to opf_dir
        spine: Manifest ids in reading order
        opf_dir: Directory of the OPF package inside the zip
    """
    opf_path = f"{opf_dir}/content.opf" if opf_dir else 'content.opf'
    manifest = "\n".join(
        f'    <item id="{item_id}" href="{href}" media-type="{media_type}"'
        + (f' properties="{properties}"' if properties else '') + '/>'
        for item_id, href, media_type, _, properties in items
    )
    itemrefs = "\n".join(f'    <itemref idref="{idref}"/>' for idref in spine)
    opf = f"""<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="id">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:identifier id="id">{title}</dc:identifier>
    <dc:title>{title}</dc:title>
    <dc:language>it</dc:language>
  </metadata>
  <manifest>
{manifest}
  </manifest>
  <spine>
{itemrefs}
  </spine>
</package>
"""
    output = io.BytesIO()
    with zipfile.ZipFile(output, 'w') as archive:
        archive.writestr('mimetype', 'application/epub+zip', compress_type=zipfile.ZIP_STORED)
        archive.writestr('META-INF/container.xml', CONTAINER_XML.format(opf_path=opf_path))
        archive.writestr(opf_path, opf)
        prefix = f"{opf_dir}/" if opf_dir else ''
        for _, href, _, content, _ in items:
            archive.writestr(prefix + href, content)
    return output.getvalue()


def article_fragment(title: str, nested: bool = False) -> bytes:
    """
    Single-article fragment as the site serves it.

    Every fragment uses the same file names (index.html, img.png, style.css),
    so merging two of them collides unless they are re-keyed.
    """
    if nested:
        doc, css, img = 'Text/index.html', 'Styles/style.css', 'Images/img.png'
        css_ref, img_ref, css_img_ref = '../Styles/style.css', '../Images/img.png', '../Images/img.png'
    else:
        doc, css, img = 'index.html', 'style.css', 'img.png'
        css_ref, img_ref, css_img_ref = 'style.css', 'img.png', 'img.png'

    items = [
        ('nav', 'nav.xhtml', 'application/xhtml+xml',
         NAV.format(doc=doc, title=title).encode('utf-8'), 'nav'),
        ('index', doc, 'application/xhtml+xml',
         DOCUMENT.format(title=title, css=css_ref, img=img_ref).encode('utf-8'), ''),
        ('css', css, 'text/css', CSS.replace('{img}', css_img_ref).encode('utf-8'), ''),
        ('img', img, 'image/png', png_bytes(), ''),
    ]
    return build_epub(title, items, ['nav', 'index'])


def make_article(title: str, index: int, nested: bool = False, content: Optional[bytes] = None) -> Article:
    return Article(
        identifier=title.lower().replace(' ', '-'),
        title=title,
        ordering_index=index,
        raw_content=content if content is not None else article_fragment(title, nested),
        content_kind=ContentKind.EPUB_FRAGMENT,
    )


@pytest.fixture
def session_data():
    """A freshly issued session."""
    return SessionData(
        access_token='access-token-0123456789abcdef',
        refresh_token='refresh-token-0123456789abcdef',
        expires_in=3600,
        user=UserInfo(user_id=42, email='reader@example.com', first_name='Rosa', last_name='Rossi'),
        created_at=datetime.now(),
    )


@pytest.fixture
def login_response():
    """Answer of the login endpoint."""
    return {
        'user': {
            'userId': 42,
            'email': 'reader@example.com',
            'membershipCode': 'M-0042',
            'firstName': 'Rosa',
            'lastName': 'Rossi',
        },
        'token': {
            'expiresIn': 3600,
            'accessToken': 'access-token-0123456789abcdef',
            'refreshToken': 'refresh-token-0123456789abcdef',
        },
    }


@pytest.fixture
def edition():
    return Edition(
        id=7,
        slug='il-manifesto-del-19-10-2026',
        pdf='edizione-19-10-2026',
        title='il manifesto del 19.10.2026',
        featured_image=Image(src='https://static.ilmanifesto.it/2026/10/cover.png'),
    )


@pytest.fixture
def posts_response():
    """Post listing, deliberately not in reading order."""
    return {
        'data': [
            {'slug': 'sport', 'title': 'Sport', 'coverPosition': None},
            {'slug': 'apertura', 'title': 'Apertura', 'coverPosition': 1},
            {'slug': 'cultura', 'title': 'Cultura'},
            {'slug': 'taglio', 'title': 'Taglio', 'coverPosition': 2},
        ]
    }


@pytest.fixture
def article_factory():
    """make_article(title, index, nested=False, content=None) -> Article"""
    return make_article


@pytest.fixture
def fragment_factory():
    """article_fragment(title, nested=False) -> ePub bytes"""
    return article_fragment


@pytest.fixture
def epub_builder():
    """build_epub(title, items, spine, opf_dir='OEBPS') -> ePub bytes"""
    return build_epub


@pytest.fixture
def png_factory():
    """png_bytes(size=(4, 4), mode='RGB') -> PNG bytes"""
    return png_bytes
