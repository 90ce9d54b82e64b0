import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from warpbuild.src.apple.authentication_helper import AppleAuthData, authenticate


@dataclass(frozen=True)
class AppleContext:
    auth_data: AppleAuthData
    bundle_identifier: str
    username: str

    @property
    def api(self):
        return self.auth_data.api

    @property
    def team_id(self) -> str:
        return self.auth_data.team.team_id


class AppleContextProvider:
    """Signs in to Apple at most once and hands out contexts built on that session.

    The lock is held while signing in, so callers that arrive during an
    in-flight sign-in wait for it and reuse its result instead of starting
    their own. A failed sign-in is not cached.
    """

    def __init__(self, options, authenticate: Callable = authenticate):
        self.options = options
        self._authenticate = authenticate
        self._lock = threading.Lock()
        self._auth_data: Optional[AppleAuthData] = None
        self._contexts: Dict[Tuple[str, str], AppleContext] = {}

    @property
    def authenticated(self) -> bool:
        return self._auth_data is not None

    def get(self, bundle_identifier: str, username: str) -> AppleContext:
        with self._lock:
            if self._auth_data is None:
                self._auth_data = self._authenticate(self.options)

            key = (bundle_identifier, username)
            if key not in self._contexts:
                self._contexts[key] = AppleContext(
                    auth_data=self._auth_data,
                    bundle_identifier=bundle_identifier,
                    username=username,
                )
            return self._contexts[key]
