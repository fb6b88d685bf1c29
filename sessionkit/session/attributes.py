"""Attribute access for active sessions.

The AttributeStore is a view over the attributes of the session owned by a
SessionManager. It holds no data of its own, so every operation observes the
manager's current lifecycle state.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterator, Mapping, Optional, Set

if TYPE_CHECKING:
    from sessionkit.session.manager import SessionManager

logger = logging.getLogger(__name__)


class _Absent:
    """Marker returned by get() for keys that are not set."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self):
        return (_Absent, ())


ABSENT = _Absent()

_JSON_SCALARS = (bool, int, float, str)


def check_attribute_value(value: Any, _seen: Optional[Set[int]] = None) -> None:
    """Check that a value survives a JSON round trip unchanged.

    Accepted values are None, bool, int, float, str, lists of accepted values
    and dicts with string keys and accepted values. Tuples, sets, bytes,
    datetimes and other objects are rejected because persisted sessions come
    back from JSON and could not return them as stored.

    Raises:
        TypeError: If the value or anything nested in it is not JSON native
    """
    if value is None or type(value) in _JSON_SCALARS:
        return
    if type(value) not in (list, dict):
        raise TypeError(
            f"Session attribute values must be JSON native, got {type(value).__name__}"
        )

    seen = _seen if _seen is not None else set()
    if id(value) in seen:
        raise TypeError("Session attribute values must not contain reference cycles")
    seen.add(id(value))
    if type(value) is dict:
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(
                    f"Session attribute dict keys must be strings, got {type(key).__name__}"
                )
            check_attribute_value(item, seen)
    else:
        for item in value:
            check_attribute_value(item, seen)
    seen.discard(id(value))


def check_attributes(attributes: Mapping[str, Any]) -> None:
    """Check every key and value of an attribute mapping.

    Raises:
        TypeError: If a key is not a string or a value is not JSON native
    """
    for key, value in attributes.items():
        if not isinstance(key, str):
            raise TypeError(f"Session attribute keys must be strings, got {type(key).__name__}")
        check_attribute_value(value)


class AttributeStore:
    """Key/value operations on the attributes of an active session.

    Every operation raises InvalidStateError unless the owning manager's
    session is active.
    """

    def __init__(self, manager: "SessionManager"):
        self._manager = manager

    def _data(self) -> Dict[str, Any]:
        return self._manager._active_attributes()

    def has(self, key: str) -> bool:
        return key in self._data()

    def get(self, key: str, default: Any = ABSENT) -> Any:
        """Get an attribute by key.

        Args:
            key: Attribute name
            default: Value returned when the key is not set

        Returns:
            The stored value, or ``default`` (ABSENT unless given) if the key
            is not set. A stored None is returned as None.
        """
        return self._data().get(key, default)

    def all(self) -> Dict[str, Any]:
        """Return a snapshot of all attributes."""
        return dict(self._data())

    def set(self, key: str, value: Any) -> None:
        """Set an attribute.

        Raises:
            TypeError: If the key is not a string or the value is not JSON native
        """
        data = self._data()
        check_attributes({key: value})
        data[key] = value
        logger.debug("Session attribute set", extra={"key": key})

    def replace(self, attributes: Mapping[str, Any]) -> None:
        """Set several attributes at once, keeping keys not mentioned."""
        data = self._data()
        check_attributes(attributes)
        data.update(attributes)

    def remove(self, key: str) -> None:
        self._data().pop(key, None)

    def clear(self) -> None:
        """Remove all attributes without touching the session id or state."""
        self._data().clear()

    def count(self) -> int:
        return len(self._data())

    def __contains__(self, key: object) -> bool:
        return key in self._data()

    def __len__(self) -> int:
        return self.count()

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data()))
