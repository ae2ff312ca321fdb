"""
Element tree used by the map walkers

=============================================================================
WHY A WRAPPER?
=============================================================================

xml.etree.ElementTree does the actual parsing, but its elements don't know
their parent. Tile layers need it: a TMX <layer> takes its tile size from
the enclosing <map>:

    <map tilewidth="32" tileheight="32">      <- parent
        <layer name="Ground" width="10" height="10">
            ...

So every ET element is copied into an Element that remembers its parent
and offers typed attribute getters with defaults, the way map formats are
read everywhere in this package:

    width = elem.get_int('width', 0)
    opacity = elem.get_float('opacity', 1.0)
    image = elem.require_child('image')     # StructuralError if missing

=============================================================================
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from .errors import ResourceResolutionError, StructuralError


class Element:
    """A parsed markup element with attributes, children, text and parent."""

    def __init__(self, name: str, attributes: Optional[Dict[str, str]] = None,
                 text: str = "", parent: Optional['Element'] = None):
        self.name = name
        self.attributes: Dict[str, str] = dict(attributes or {})
        self.text = text
        self.parent = parent
        self.children: List['Element'] = []

    def __repr__(self) -> str:
        return f"<Element {self.name} {self.attributes}>"

    def __iter__(self) -> Iterator['Element']:
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)

    # =========================================================================
    # ATTRIBUTES
    # =========================================================================

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(name, default)

    def get_int(self, name: str, default: int = 0) -> int:
        value = self.attributes.get(name)
        if value is None or value.strip() == "":
            return default
        try:
            return int(value)
        except ValueError:
            # Tiled writes some integral attributes as "32.0"
            try:
                return int(float(value))
            except ValueError:
                raise StructuralError(
                    f"Attribute '{name}' of <{self.name}> is not an integer: {value!r}"
                ) from None

    def get_float(self, name: str, default: float = 0.0) -> float:
        value = self.attributes.get(name)
        if value is None or value.strip() == "":
            return default
        try:
            return float(value)
        except ValueError:
            raise StructuralError(
                f"Attribute '{name}' of <{self.name}> is not a number: {value!r}"
            ) from None

    def get_bool(self, name: str, default: bool = False) -> bool:
        value = self.attributes.get(name)
        if value is None:
            return default
        return value.strip().lower() in ('1', 'true', 'yes')

    def require(self, name: str) -> str:
        """Return attribute ``name`` or fail with StructuralError."""
        value = self.attributes.get(name)
        if value is None:
            raise StructuralError(f"<{self.name}> is missing attribute '{name}'")
        return value

    # =========================================================================
    # CHILDREN
    # =========================================================================

    def child(self, name: str) -> Optional['Element']:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def require_child(self, name: str) -> 'Element':
        """Return the first child called ``name`` or fail with StructuralError."""
        child = self.child(name)
        if child is None:
            raise StructuralError(f"<{self.name}> is missing child element <{name}>")
        return child

    def children_named(self, name: str) -> List['Element']:
        return [child for child in self.children if child.name == name]


# =============================================================================
# PARSING
# =============================================================================

def _wrap(et_elem: ET.Element, parent: Optional[Element] = None) -> Element:
    elem = Element(et_elem.tag, et_elem.attrib, et_elem.text or "", parent)
    for et_child in et_elem:
        elem.children.append(_wrap(et_child, elem))
    return elem


def parse_string(text: Union[str, bytes]) -> Element:
    """Parse a document held in memory and return its root element."""
    try:
        return _wrap(ET.fromstring(text))
    except ET.ParseError as e:
        raise ResourceResolutionError(f"Malformed document: {e}") from e


def parse_document(path: Union[str, Path]) -> Element:
    """
    Parse a document on disk and return its root element.

    Raises ResourceResolutionError when the file is missing, unreadable
    or not well-formed.
    """
    path = Path(path)
    try:
        tree = ET.parse(path)
    except OSError as e:
        raise ResourceResolutionError(f"Couldn't read '{path}': {e}") from e
    except ET.ParseError as e:
        raise ResourceResolutionError(f"Couldn't parse '{path}': {e}") from e
    return _wrap(tree.getroot())
