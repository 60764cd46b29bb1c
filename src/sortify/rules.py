"""
Sorting rules.

A RuleSet is an immutable snapshot: the enabled flag plus an ordered list
of extension -> folder rules. LiveRules holds the snapshot currently in
force and swaps in a new one whenever settings are saved, so a lookup
always sees one whole rule set, old or new.
"""

import threading
from dataclasses import dataclass, field
from pathlib import PurePosixPath, PureWindowsPath
from typing import Iterable, Optional, Tuple


def is_relative_folder(folder_name: str) -> bool:
    """True if the folder name is a subfolder path: relative, no "..", not "."."""
    for path in (PurePosixPath(folder_name), PureWindowsPath(folder_name)):
        if path.anchor or not path.parts or ".." in path.parts:
            return False
    return True


@dataclass(frozen=True)
class SortingRule:
    """Move files with ``extension`` into the ``folder_name`` subfolder."""

    extension: str
    folder_name: str

    def __post_init__(self):
        if not self.extension or not self.extension.strip():
            raise ValueError("Rule extension must not be blank")
        if not self.folder_name or not self.folder_name.strip():
            raise ValueError("Rule folder name must not be blank")
        if not is_relative_folder(self.folder_name):
            raise ValueError(f"Rule folder must stay inside the watched folder: {self.folder_name!r}")

    def matches(self, extension: str) -> bool:
        return self.extension.lower() == extension.lower()


@dataclass(frozen=True)
class RuleSet:
    enabled: bool = True
    rules: Tuple[SortingRule, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept any iterable but always store a tuple
        object.__setattr__(self, "rules", tuple(self.rules))

    @classmethod
    def default(cls) -> "RuleSet":
        """Enabled rule set with the built-in extension rules."""
        from sortify import config

        return cls(
            enabled=True,
            rules=tuple(SortingRule(ext, folder) for ext, folder in config.DEFAULT_RULES),
        )

    def lookup(self, extension: str) -> Optional[SortingRule]:
        """
        Find the rule for an extension.

        Comparison is case-insensitive and the first matching rule wins,
        so a later rule with the same extension is never used.

        Args:
            extension: Extension including the leading dot, e.g. ".PDF"

        Returns:
            The first matching rule, or None
        """
        for rule in self.rules:
            if rule.matches(extension):
                return rule
        return None

    def with_enabled(self, enabled: bool) -> "RuleSet":
        return RuleSet(enabled=enabled, rules=self.rules)


class LiveRules:
    """
    The rule set currently in force.

    Readers grab ``current`` once and work from that snapshot without
    locking. Writers build a complete new RuleSet and swap the reference.
    """

    def __init__(self, initial: Optional[RuleSet] = None):
        self._current = initial if initial is not None else RuleSet()
        self._write_lock = threading.Lock()

    @property
    def current(self) -> RuleSet:
        return self._current

    @property
    def enabled(self) -> bool:
        return self._current.enabled

    def lookup(self, extension: str) -> Optional[SortingRule]:
        return self._current.lookup(extension)

    def replace(self, new_rules: Iterable[SortingRule], new_enabled: bool) -> RuleSet:
        """Swap in a whole new rule set and return it."""
        snapshot = RuleSet(enabled=new_enabled, rules=tuple(new_rules))
        with self._write_lock:
            self._current = snapshot
        return snapshot

    def replace_with(self, rule_set: RuleSet) -> RuleSet:
        return self.replace(rule_set.rules, rule_set.enabled)

    def set_enabled(self, enabled: bool) -> RuleSet:
        """Toggle sorting on or off, keeping the current rules."""
        with self._write_lock:
            self._current = self._current.with_enabled(enabled)
            return self._current
