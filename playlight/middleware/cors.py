import re
from typing import Iterable, Optional

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


def split_origins(entries: Iterable[str]) -> tuple[list[str], Optional[str]]:
    """Separate exact origins from ``/regex/`` entries, joining the regexes into one."""
    exact: list[str] = []
    patterns: list[str] = []
    for entry in entries:
        if len(entry) > 2 and entry.startswith("/") and entry.endswith("/"):
            pattern = entry[1:-1]
            re.compile(pattern)
            patterns.append(f"(?:{pattern})")
        else:
            exact.append(entry)
    return exact, ("|".join(patterns) or None)


def origin_allowed(
    origin: str,
    path: str,
    origins: Iterable[str],
    public_prefixes: Iterable[str],
) -> bool:
    if not origin:
        return False
    if path.startswith(tuple(public_prefixes)):
        return True
    exact, regex = split_origins(origins)
    return origin in exact or "*" in exact or bool(regex and re.fullmatch(regex, origin))


class PathAwareCORSMiddleware:
    """Open CORS for the embeddable platform API, configured origins elsewhere."""

    def __init__(
        self,
        app: ASGIApp,
        origins: Iterable[str] = (),
        public_prefixes: Iterable[str] = ("/platform/",),
    ) -> None:
        exact, regex = split_origins(origins)
        self.public_prefixes = tuple(public_prefixes)
        self.public = CORSMiddleware(
            app,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )
        self.restricted = CORSMiddleware(
            app,
            allow_origins=exact,
            allow_origin_regex=regex,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope.get("path", "").startswith(self.public_prefixes):
            await self.public(scope, receive, send)
            return
        await self.restricted(scope, receive, send)
