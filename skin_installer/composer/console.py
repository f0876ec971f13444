"""Console input/output for installer prompts and messages."""

import sys
from typing import TextIO


class ConsoleIO:
    """Console I/O used by the installer.

    Attributes:
        interactive: Whether prompts may be shown (defaults to stdin being a TTY)
        stream: Output stream for messages (defaults to stdout)
        error_stream: Output stream for errors (defaults to stderr)
    """

    def __init__(
        self,
        interactive: bool | None = None,
        stream: TextIO | None = None,
        error_stream: TextIO | None = None,
    ):
        self.interactive = sys.stdin.isatty() if interactive is None else interactive
        self.stream = stream or sys.stdout
        self.error_stream = error_stream or sys.stderr

    def is_interactive(self) -> bool:
        return self.interactive

    def ask_confirmation(self, question: str, default: bool = False) -> bool:
        """Ask a yes/no question, blocking until answered.

        Returns the default for an empty answer or when not interactive.
        """
        if not self.interactive:
            return default

        while True:
            response = input(question).strip().lower()
            if not response:
                return default
            if response in ("y", "yes"):
                return True
            if response in ("n", "no"):
                return False

    def write(self, message: str) -> None:
        print(message, file=self.stream)

    def write_error(self, message: str) -> None:
        print(message, file=self.error_stream)


class NullIO(ConsoleIO):
    """Non-interactive I/O that discards all output."""

    def __init__(self):
        super().__init__(interactive=False)

    def write(self, message: str) -> None:
        pass

    def write_error(self, message: str) -> None:
        pass
