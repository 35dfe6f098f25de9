"""
TruFraudBot - Rules Store
User-editable rules kept in a flat text file, one rule per line.
Rules are addressed by 1-based position over the non-blank lines.
"""

import os
import re
import threading
from typing import List, Optional

from exceptions import StorageError
from prometheus_metrics import metrics_manager
import logger as log


# Line breaks inside a rule, with the spaces around them
_LINE_BREAKS = re.compile(r"\s*[\r\n]+\s*")


def single_line(text: str) -> str:
    """Collapse a rule onto one line so it stays one rule in the file."""
    return _LINE_BREAKS.sub(" ", text.strip())


class RuleStore:
    """Ordered list of rule strings backed by a text file.

    Mutations are serialized process-wide. Removal and edits rewrite the
    whole file through a temporary file so an interrupted write never
    leaves a truncated rules file behind.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or os.path.join(os.getcwd(), "rules.txt")
        self._lock = threading.Lock()

    def read(self) -> str:
        """Full rules content, trimmed; empty string if there is none."""
        if not os.path.isfile(self.path):
            return ""
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                return f.read().strip()
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Could not read rules file {self.path}: {e}") from e

    def list_rules(self) -> List[str]:
        """Non-empty trimmed lines in file order."""
        return [line.strip() for line in self.read().split("\n") if line.strip()]

    def add(self, text: str) -> bool:
        """Append a rule. Returns False (and writes nothing) for blank text."""
        text = single_line(text)
        if not text:
            return False

        with self._lock:
            self._ensure_dir()
            try:
                with open(self.path, 'ab+') as f:
                    # hand-edited files may lack a trailing newline
                    line = text + "\n"
                    f.seek(0, os.SEEK_END)
                    if f.tell() > 0:
                        f.seek(-1, os.SEEK_END)
                        if f.read(1) != b"\n":
                            line = "\n" + line
                    f.write(line.encode('utf-8'))
            except OSError as e:
                raise StorageError(f"Could not write rules file {self.path}: {e}") from e

        metrics_manager.record_rule_mutation("add")
        log.debug(f"Rule added ({len(text)} chars)")
        return True

    def remove_at(self, number: int) -> bool:
        """Delete the rule at a 1-based position; later rules shift up."""
        with self._lock:
            rules = self.list_rules()
            if number < 1 or number > len(rules):
                return False
            del rules[number - 1]
            self._write(rules)

        metrics_manager.record_rule_mutation("remove")
        log.debug(f"Rule {number} removed")
        return True

    def edit_at(self, number: int, new_text: str) -> bool:
        """Replace the rule at a 1-based position, keeping its position."""
        new_text = single_line(new_text)
        with self._lock:
            rules = self.list_rules()
            if number < 1 or number > len(rules) or not new_text:
                return False
            rules[number - 1] = new_text
            self._write(rules)

        metrics_manager.record_rule_mutation("edit")
        log.debug(f"Rule {number} edited")
        return True

    def _ensure_dir(self):
        directory = os.path.dirname(self.path)
        if directory and not os.path.isdir(directory):
            try:
                os.makedirs(directory, exist_ok=True)
            except OSError as e:
                raise StorageError(f"Could not create rules directory {directory}: {e}") from e

    def _write(self, rules: List[str]):
        """Rewrite the whole file from the given list."""
        self._ensure_dir()
        content = "".join(rule + "\n" for rule in rules)
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                f.write(content)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Could not write rules file {self.path}: {e}") from e
