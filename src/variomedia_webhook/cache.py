"""Thread safe cache of DNS record URLs created by present()."""

import threading
from typing import NamedTuple


class EntryKey(NamedTuple):
    """Identifies the TXT record created for one challenge."""

    domain: str
    host_label: str
    challenge_key: str


class EntryLocationCache:
    """Maps (domain, host label, challenge key) to the record's URL.

    Variomedia deletes records by URL only, so the URL returned on creation
    is kept until clean up. Entries live until deleted or process exit; the
    cache starts empty after a restart.
    """

    def __init__(self) -> None:
        self._entries: dict[EntryKey, str] = {}
        self._lock = threading.Lock()

    def put(self, domain: str, host_label: str, challenge_key: str, url: str) -> None:
        with self._lock:
            self._entries[EntryKey(domain, host_label, challenge_key)] = url

    def get(self, domain: str, host_label: str, challenge_key: str) -> str | None:
        with self._lock:
            return self._entries.get(EntryKey(domain, host_label, challenge_key))

    def delete(self, domain: str, host_label: str, challenge_key: str) -> str | None:
        """Remove an entry, returning its URL if it was present."""
        with self._lock:
            return self._entries.pop(EntryKey(domain, host_label, challenge_key), None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
