"""
Rewriting of intra-fragment references after re-keying.

Once a fragment's files are renamed, every relative link between them
(XHTML attributes, CSS ``url()``) has to point at the new names. Links that
leave the fragment (absolute URLs, ``mailto:``, same-document anchors) are
not touched.
"""
import posixpath
import re
from html.entities import name2codepoint
from typing import Dict, Optional
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from .container import normalize_href

REFERENCE_ATTRIBUTES = ('src', 'href', 'xlink:href', 'poster', 'data')

# Markup the site emits that e-readers do not know
LEGACY_TAGS = {
    'h0': 'h1',
    'quote': 'blockquote',
}

CSS_URL = re.compile(r"""url\(\s*(['"]?)([^'")]+?)\1\s*\)""")
CSS_IMPORT = re.compile(r"""@import\s+(['"])([^'"]+)\1""")

# HTML named entities; the XML parser only knows the five XML ones
NAMED_ENTITY = re.compile(rb"&([A-Za-z][A-Za-z0-9]*);")
XML_ENTITIES = {'amp', 'lt', 'gt', 'quot', 'apos'}


def numeric_entities(content: bytes) -> bytes:
    """Replace HTML named entities such as ``&nbsp;`` with numeric references."""
    def replace(match: re.Match) -> bytes:
        name = match.group(1).decode('ascii')
        if name in XML_ENTITIES or name not in name2codepoint:
            return match.group(0)
        return b'&#%d;' % name2codepoint[name]

    return NAMED_ENTITY.sub(replace, content)


class ReferenceRewriter:
    """
    Maps a fragment's old hrefs to their merged names.

    Args:
        path_map: old href (relative to the fragment's OPF directory) ->
            new href (relative to the merged book's content directory)
    """

    def __init__(self, path_map: Dict[str, str]):
        self._path_map = path_map

    def resolve(self, source_href: str, reference: str) -> Optional[str]:
        """
        New value for ``reference`` found in ``source_href``, or None to keep it.
        """
        reference = reference.strip()
        if not reference or reference.startswith('#') or reference.startswith('/'):
            return None

        parts = urlsplit(reference)
        if parts.scheme or parts.netloc:
            return None

        target = normalize_href(parts.path, posixpath.dirname(source_href))
        new_href = self._path_map.get(target)
        if new_href is None:
            return None
        if parts.fragment:
            return f"{new_href}#{parts.fragment}"
        return new_href

    def rewrite_document(self, href: str, content: bytes) -> bytes:
        """Rewrite an XHTML document's links and legacy tags."""
        soup = BeautifulSoup(numeric_entities(content), 'lxml-xml')

        for tag in soup.find_all(True):
            if tag.name in LEGACY_TAGS:
                tag.name = LEGACY_TAGS[tag.name]
            for attribute in REFERENCE_ATTRIBUTES:
                value = tag.get(attribute)
                if not isinstance(value, str):
                    continue
                new_value = self.resolve(href, value)
                if new_value is not None:
                    tag[attribute] = new_value

        return str(soup).encode('utf-8')

    def rewrite_stylesheet(self, href: str, content: bytes) -> bytes:
        """Rewrite ``url()`` and ``@import`` references of a stylesheet."""
        try:
            text = content.decode('utf-8')
        except UnicodeDecodeError:
            return content

        def replace_url(match: re.Match) -> str:
            new_value = self.resolve(href, match.group(2))
            if new_value is None:
                return match.group(0)
            return f"url({match.group(1)}{new_value}{match.group(1)})"

        def replace_import(match: re.Match) -> str:
            new_value = self.resolve(href, match.group(2))
            if new_value is None:
                return match.group(0)
            return f"@import {match.group(1)}{new_value}{match.group(1)}"

        text = CSS_URL.sub(replace_url, text)
        text = CSS_IMPORT.sub(replace_import, text)
        return text.encode('utf-8')
