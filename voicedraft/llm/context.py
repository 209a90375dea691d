"""Rolling history of recent dictation inputs."""

import logging
import threading
from collections import deque
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 3


class ContextManager:
    """Keeps the last few inputs for the {context} prompt placeholder."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self.max_entries = max_entries
        self.history = deque(maxlen=max_entries)
        self.lock = threading.Lock()

    def add_entry(self, text: str) -> None:
        with self.lock:
            self.history.append(text)
            logger.debug(f"Context history now has {len(self.history)} entries")

    def get_context(self) -> Optional[str]:
        """Numbered history ("[1] first\\n[2] second"), or None when empty."""
        with self.lock:
            if not self.history:
                return None
            return "\n".join(f"[{i}] {entry}" for i, entry in enumerate(self.history, 1))

    def clear(self) -> None:
        with self.lock:
            self.history.clear()
