"""
Class map and role resolution.

The detection service returns an identifier -> name mapping whose keys
may be ints or their string form. Two classes play a role in counting:
the container ("microgel") and the contained ("cell"). Roles are found
by name first and by a fixed identifier second.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterator, List, NamedTuple, Optional

logger = logging.getLogger(__name__)

CONTAINER_ROLE = "microgel"
CONTAINED_ROLE = "cell"

DEFAULT_CONTAINER_ID = 0
DEFAULT_CONTAINED_ID = 1

FALLBACK_CLASS_NAME = "class"


class Roles(NamedTuple):
    """Class identifiers playing the container and contained roles."""

    container: int
    contained: int


def as_class_id(key: Any) -> Optional[int]:
    """
    Convert a class map key to an integer identifier.

    Accepts ints, integral floats and their string forms ("1", "1.0").

    Returns:
        The identifier, or None if the key is not an integer
    """
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    try:
        value = float(key)
    except (TypeError, ValueError):
        return None
    if not value.is_integer():
        return None
    return int(value)


def resolve_roles(class_map: Mapping) -> Roles:
    """
    Resolve which class identifiers are the container and the contained.

    Step 1 matches class names case-insensitively against "microgel" and
    "cell" (the last matching entry wins). Step 2 falls back to the
    default identifiers 0 and 1 for any role no name matched.

    Args:
        class_map: Mapping of class identifier (int or str) to name

    Returns:
        Roles(container, contained)
    """
    container = DEFAULT_CONTAINER_ID
    contained = DEFAULT_CONTAINED_ID

    for key, name in class_map.items():
        class_id = as_class_id(key)
        if class_id is None:
            logger.debug(f"Ignoring non-numeric class map key {key!r}")
            continue
        lowered = str(name).lower()
        if lowered == CONTAINER_ROLE:
            container = class_id
        if lowered == CONTAINED_ROLE:
            contained = class_id

    return Roles(container=container, contained=contained)


class ClassMap(Mapping):
    """
    Read-only mapping of integer class identifier to class name.

    Lookups accept either the integer or its string representation, so
    `class_map[1]` and `class_map["1"]` are the same entry. Iteration
    follows the order of the mapping it was built from.
    """

    def __init__(self, mapping: Optional[Mapping] = None):
        self._names: Dict[int, str] = {}
        for key, name in (mapping or {}).items():
            class_id = as_class_id(key)
            if class_id is None:
                logger.debug(f"Dropping non-numeric class map key {key!r}")
                continue
            self._names[class_id] = str(name)

    def __getitem__(self, key) -> str:
        class_id = as_class_id(key)
        if class_id is None or class_id not in self._names:
            raise KeyError(key)
        return self._names[class_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"ClassMap({self._names!r})"

    def name_for(self, class_id, default: str = FALLBACK_CLASS_NAME) -> str:
        """Display name for a class, or `default` if it is not mapped."""
        return self.get(class_id, default)

    def ids(self) -> List[int]:
        return list(self._names)

    def nth(self, index: int) -> Optional[int]:
        """Class identifier at a 0-based position, or None."""
        ids = self.ids()
        if 0 <= index < len(ids):
            return ids[index]
        return None

    def first_id(self) -> int:
        """Identifier of the first class, 0 for an empty map."""
        first = self.nth(0)
        return DEFAULT_CONTAINER_ID if first is None else first

    def roles(self) -> Roles:
        return resolve_roles(self)

    def merged(self, other: Mapping) -> "ClassMap":
        """New map with the entries of `other` added; `other` wins on clashes."""
        result = ClassMap(self._names)
        for class_id, name in ClassMap(other).items():
            result._names[class_id] = name
        return result

    def to_dict(self) -> Dict[str, str]:
        """Convert to a JSON-friendly dictionary (string keys)."""
        return {str(class_id): name for class_id, name in self._names.items()}
