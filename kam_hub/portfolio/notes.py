"""
Restaurant Notes

One free-text note per restaurant per user, kept in a small JSON file
under NOTES_DIR. Write-on-save, read-on-open; nothing is shared between
users.
"""

import json
import logging
import re
import threading
from pathlib import Path
from typing import Dict, Optional

from ..config import config

logger = logging.getLogger(__name__)

_file_lock = threading.Lock()


def note_key(res_id: str) -> str:
    return f"restaurant-note-{res_id}"


class RestaurantNotes:
    """
    Usage:
        notes = RestaurantNotes(user_email)
        text = notes.load("R1")
        notes.save("R1", "Owner prefers calls after 4pm")
    """

    def __init__(self, owner_email: str, base_dir: Optional[str] = None):
        base = Path(base_dir or config.get_app_setting("NOTES_DIR", ".notes"))
        safe_owner = re.sub(r'[^a-zA-Z0-9_.-]', '_', (owner_email or 'anonymous').lower())
        self.path = base / f"{safe_owner}.json"

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open('r', encoding='utf-8') as f:
            return json.load(f)

    def load(self, res_id: str) -> str:
        """Saved note, or empty string."""
        with _file_lock:
            return self._read().get(note_key(res_id), '')

    def save(self, res_id: str, text: str):
        with _file_lock:
            notes = self._read()
            notes[note_key(res_id)] = text
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open('w', encoding='utf-8') as f:
                json.dump(notes, f, ensure_ascii=False, indent=2)
        logger.info(f"📝 Note saved for {res_id} ({len(text)} chars)")

    def is_modified(self, res_id: str, text: str) -> bool:
        return text != self.load(res_id)
