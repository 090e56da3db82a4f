from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Tuple


def parse_set_cookie(header: str) -> Optional[Tuple[str, str]]:
    """
    Return ``(name, value)`` from a raw Set-Cookie header value.

    Attributes after the first ";" (Path, Expires, HttpOnly, ...) are ignored.
    Headers without a name are skipped.
    """
    name_value = header.split(";", 1)[0]
    name, _, value = name_value.partition("=")
    name = name.strip()
    if not name:
        return None
    return name, value.strip()


class CookieJar:
    """
    Name -> value cookie store for one authentication domain.

    Insertion order is kept so the Cookie header is stable; updating an
    existing name replaces its value in place.
    """

    def __init__(self, cookies: Optional[Mapping[str, str]] = None) -> None:
        self._cookies: Dict[str, str] = dict(cookies or {})

    @classmethod
    def from_browser_cookies(
        cls,
        cookies: Iterable[Mapping[str, object]],
        domain: str,
    ) -> "CookieJar":
        """Keep only cookies scoped exactly to ``domain``."""
        return cls(
            {
                str(c["name"]): str(c["value"])
                for c in cookies
                if c.get("domain") == domain
            }
        )

    def update_from_headers(self, set_cookie_headers: Iterable[str]) -> None:
        for header in set_cookie_headers:
            parsed = parse_set_cookie(header)
            if parsed is None:
                continue
            name, value = parsed
            self._cookies[name] = value

    def header(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self._cookies.items())

    def as_dict(self) -> Dict[str, str]:
        return dict(self._cookies)

    def __len__(self) -> int:
        return len(self._cookies)

    def __contains__(self, name: object) -> bool:
        return name in self._cookies
