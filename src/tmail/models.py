"""
Typed shapes passed across the client's public surface.
"""

from __future__ import annotations
from typing import NamedTuple, Optional, TypedDict


class Credentials(NamedTuple):
    """XSRF token and the cookie header it was issued with."""
    token: str
    cookie: str


# "from" is a keyword, hence the functional form.
Message = TypedDict(
    "Message",
    {
        "from": str,
        "messageID": str,
        "subject": Optional[str],
    },
)


class ClientState(TypedDict):
    """Read-only snapshot returned by ``TmailClient.get_state``."""
    email: Optional[str]
    has_credentials: bool
