from typing import Any


def safe_get(node: Any, *path: int) -> Any:
    """Follow list indices in `path`; return None at the first miss.

    A miss is anything that is not a list/tuple, or an index out of range.
    """
    current = node
    for index in path:
        if not isinstance(current, (list, tuple)):
            return None
        if index < 0 or index >= len(current):
            return None
        current = current[index]
    return current


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
