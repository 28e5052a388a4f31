import logging
from typing import AbstractSet, Optional

from .errors import UnauthorizedCaller

log = logging.getLogger(__name__)


def require_caller(caller: Optional[str], allowed: AbstractSet[str], action: str) -> None:
    """Raise UnauthorizedCaller unless ``caller`` holds the role for ``action``.

    An empty ``allowed`` set leaves the action open.
    """
    if not allowed:
        return
    if caller not in allowed:
        log.warning("rejected %s from %r", action, caller)
        raise UnauthorizedCaller(f"{caller!r} may not {action}")
