import logging
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class MatchQueue:
    """FIFO pool of participant ids waiting to be paired. Ids are unique."""

    def __init__(self):
        self._ids: List[str] = []

    def __len__(self):
        return len(self._ids)

    def __contains__(self, sid):
        return sid in self._ids

    def ids(self) -> List[str]:
        return list(self._ids)

    def position(self, sid: str) -> Optional[int]:
        try:
            return self._ids.index(sid) + 1
        except ValueError:
            return None

    def set_desired(self, sid: str, wants: bool) -> None:
        if wants:
            if sid not in self._ids:
                self._ids.append(sid)
        else:
            self.discard(sid)

    def discard(self, sid: str) -> None:
        if sid in self._ids:
            self._ids.remove(sid)

    def try_pair_all(self, is_eligible: Callable[[str], bool]) -> List[Tuple[str, str]]:
        """Pop the two oldest entries until fewer than two remain.

        Eligibility is re-checked here because state may have changed since
        enqueue. Ineligible entries are dropped; an eligible entry whose
        partner was dropped keeps the head of the queue.
        """
        pairs = []
        while len(self._ids) >= 2:
            a, b = self._ids[0], self._ids[1]
            del self._ids[:2]
            ok_a, ok_b = is_eligible(a), is_eligible(b)
            if ok_a and ok_b:
                pairs.append((a, b))
                continue
            dropped = [sid for sid, ok in ((a, ok_a), (b, ok_b)) if not ok]
            logger.debug(f"[pair-skip] dropped={dropped}")
            if ok_a:
                self._ids.insert(0, a)
            elif ok_b:
                self._ids.insert(0, b)
        return pairs
