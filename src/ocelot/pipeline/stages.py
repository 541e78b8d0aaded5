"""Build stages and item processor results."""

import enum


class Stage(enum.IntEnum):
    """Fixed order of a build.

    Sources are scanned between BEFORE_LOAD and BEFORE_INIT; the output
    tree is written after AFTER_RUN.
    """

    BEFORE_LOAD = 0
    BEFORE_INIT = 1
    BEFORE_PROCESS = 2
    PROCESS = 3
    RUN = 4
    AFTER_PROCESS = 5
    AFTER_RUN = 6

    @property
    def label(self) -> str:
        return self.name.lower()


class ProcessResult(enum.Enum):
    """What an item processor did with an item.

    NONE: not applicable, offer the item to the next processor.
    CONTINUE: the item changed, rescan from the highest priority.
    BREAK: stop processing this item.
    """

    NONE = "none"
    CONTINUE = "continue"
    BREAK = "break"
