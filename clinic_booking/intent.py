"""Keyword intent detection for inbound WhatsApp text.

Matching is case-insensitive on trimmed text. Command words must stand on a
word boundary so names like "Stopford" or "Bookman" in a details message are
not read as commands.
"""
import re
from enum import Enum
from typing import List, Optional

from clinic_booking.state import Department


class Command(str, Enum):
    """Top-level commands understood while idle."""
    BOOK = "book"
    MY_APPOINTMENTS = "my_appointments"
    HELP = "help"
    WEEKLY = "weekly"


class IntentDetector:
    """
    Pattern: ordered regex lists, first match wins.
    """

    CANCEL_PATTERNS: List[str] = [
        r'\bcancel\w*\b',
        r'\bstop\b',
    ]

    CONFIRM_WORDS = {"yes", "continue", "ok", "proceed"}

    COMMAND_PATTERNS = [
        (Command.BOOK, r'\bbook'),
        (Command.MY_APPOINTMENTS, r'\bmy\s+appointments?\b|\bcheck\b'),
        (Command.HELP, r'\bhelp\b'),
        (Command.WEEKLY, r'\bweek(ly)?\b'),
    ]

    DEPARTMENT_CHOICES = {
        "1": Department.ORTHO,
        "ortho": Department.ORTHO,
        "2": Department.ENT,
        "ent": Department.ENT,
    }

    @staticmethod
    def _clean(message: str) -> str:
        return message.strip().lower()

    def is_cancel(self, message: str) -> bool:
        """User wants to abandon the booking."""
        text = self._clean(message)
        return any(re.search(pattern, text) for pattern in self.CANCEL_PATTERNS)

    def is_confirmation(self, message: str) -> bool:
        """User accepted the booking rules."""
        return self._clean(message) in self.CONFIRM_WORDS

    def detect_command(self, message: str) -> Optional[Command]:
        text = self._clean(message)
        for command, pattern in self.COMMAND_PATTERNS:
            if re.search(pattern, text):
                return command
        return None

    def parse_department(self, message: str) -> Optional[Department]:
        """'1'/'ortho' -> Ortho, '2'/'ent' -> ENT, else None."""
        return self.DEPARTMENT_CHOICES.get(self._clean(message))
