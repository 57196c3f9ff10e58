from typing import Any, Optional
from collections.abc import Iterator, Mapping, MutableMapping

FLASH_PREFIX = "__flash_"
FLASH_SUFFIX = "__"


def flash_key(name: str) -> str:
    return f"{FLASH_PREFIX}{name}{FLASH_SUFFIX}"


class SessionData(MutableMapping[str, Any]):
    """Session dict-like object.

    Holds the data persisted by a session storage under ``session_id``.
    An empty ``session_id`` means the session has not been stored yet.

    Flash values (set with ``flash()``) are returned by the next read of
    the same key and removed from the session at that moment.
    """

    # Internal attributes that should not be stored in _data
    _internal_attrs = frozenset({
        '_data', '_changed', '_id_', '_new', '_destroyed'
    })

    def __init__(
        self,
        data: Optional[Mapping[str, Any]] = None,
        id: str = ''
    ) -> None:
        object.__setattr__(self, '_data', dict(data or {}))
        object.__setattr__(self, '_changed', False)
        self._id_ = id
        self._new = not id
        self._destroyed = False

    def __repr__(self) -> str:
        return (
            f'<Session [id:{self._id_!r}, new:{self.new}] '
            f'data={self._data!r}>'
        )

    # --- Properties ---

    @property
    def id(self) -> str:
        return self._id_

    @property
    def session_id(self) -> str:
        return self._id_

    @property
    def data(self) -> dict[str, Any]:
        """Raw data, flash entries included, as persisted by storages."""
        return self._data

    @property
    def new(self) -> bool:
        return self._new

    @property
    def empty(self) -> bool:
        return not bool(self._data)

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def is_changed(self) -> bool:
        return self._changed

    @is_changed.setter
    def is_changed(self, value: bool) -> None:
        self._changed = value

    def changed(self) -> None:
        self._changed = True

    def flash(self, key: str, value: Any) -> None:
        """Store a value that is removed after its first read."""
        self._data[flash_key(key)] = value
        self._changed = True

    def invalidate(self) -> None:
        """Clear all session data and mark it for destruction."""
        self._data = {}
        self._changed = True
        self._destroyed = True

    # --- Magic Methods ---

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __iter__(self) -> Iterator[str]:
        for key in list(self._data):
            if key.startswith(FLASH_PREFIX) and key.endswith(FLASH_SUFFIX):
                name = key[len(FLASH_PREFIX):-len(FLASH_SUFFIX)]
                # a plain value under the same name is yielded on its own
                if name not in self._data:
                    yield name
            else:
                yield key

    def __contains__(self, key: object) -> bool:
        return key in self._data or flash_key(str(key)) in self._data

    def __getitem__(self, key: str) -> Any:
        if key in self._data:
            return self._data[key]
        flashed = flash_key(key)
        if flashed in self._data:
            self._changed = True
            return self._data.pop(flashed)
        raise KeyError(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._changed = True

    def __delitem__(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
        elif flash_key(key) in self._data:
            del self._data[flash_key(key)]
        else:
            raise KeyError(key)
        self._changed = True

    def __getattr__(self, key: str) -> Any:
        # Avoid infinite recursion for internal attributes
        if key.startswith('_'):
            raise AttributeError(key)
        try:
            return self[key]
        except KeyError:
            raise AttributeError(key) from None

    def __setattr__(self, key: str, value: Any) -> None:
        if (
            key in self._internal_attrs
            or key.startswith('_')
            or isinstance(getattr(type(self), key, None), property)
        ):
            # properties (is_changed) are never stored as session data
            object.__setattr__(self, key, value)
        else:
            self[key] = value
