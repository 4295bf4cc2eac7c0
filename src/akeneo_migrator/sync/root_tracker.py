"""Per-run record of hierarchies already copied."""

import structlog

log = structlog.stdlib.get_logger()


class RootSyncSet:
    """Set of root keys copied during one sync run.

    A new instance is created for every run and never persisted, so a later
    run copies every touched hierarchy again.
    """

    def __init__(self) -> None:
        self._synced: set[str] = set()

    def should_sync(self, root_key: str) -> bool:
        """Claim ``root_key`` for this run.

        Returns True the first time a key is seen and False on every later
        call with the same key.
        """
        if root_key in self._synced:
            return False
        self.mark_synced(root_key)
        return True

    def mark_synced(self, root_key: str) -> None:
        self._synced.add(root_key)
        log.debug("root_marked_synced", root_key=root_key, roots_synced=len(self._synced))

    def __contains__(self, root_key: object) -> bool:
        return root_key in self._synced

    def __len__(self) -> int:
        return len(self._synced)
