from typing import List


class HistoryNavigator:
    """Linear command log with an up/down cursor.

    cursor == len(entries) means the live edit buffer is active.
    """

    def __init__(self):
        self.entries: List[str] = []
        self.cursor = 0

    def __len__(self) -> int:
        return len(self.entries)

    def submit(self, command: str) -> None:
        if command and command.strip():
            self.entries.append(command)
        self.cursor = len(self.entries)

    def up(self, current: str = "") -> str:
        if self.cursor <= 0 or not self.entries:
            return current
        self.cursor -= 1
        return self.entries[self.cursor]

    def down(self) -> str:
        if self.cursor < len(self.entries) - 1:
            self.cursor += 1
            return self.entries[self.cursor]
        self.cursor = len(self.entries)
        return ""
