"""IP allow-list and deny-list."""


class IPAccessList:
    """Allow/deny decisions by exact client IP.

    The deny-list always wins. A non-empty allow-list admits only its
    members; an empty one admits everyone not denied.
    """

    def __init__(
        self,
        allowed: set[str] | frozenset[str] | None = None,
        denied: set[str] | frozenset[str] | None = None,
    ) -> None:
        self._allowed: set[str] = set(allowed or ())
        self._denied: set[str] = set(denied or ())

    def allow(self, ip: str) -> None:
        self._allowed.add(ip)

    def deny(self, ip: str) -> None:
        self._denied.add(ip)

    def is_allowed(self, ip: str) -> bool:
        """Whether requests from ``ip`` may proceed."""
        if ip in self._denied:
            return False
        if self._allowed and ip not in self._allowed:
            return False
        return True
