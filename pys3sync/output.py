"""User-facing output for the CLI and sync engine."""

import json
from typing import Any, Optional

from rich.console import Console


class OutputFormatter:
    """Prints status messages, honouring quiet and JSON modes.

    In JSON mode only the final ``output_json`` payload is written to stdout;
    errors still go to stderr.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False, soft_wrap=True)
        self.err_console = err_console or Console(
            stderr=True, highlight=False, soft_wrap=True
        )

    def _silenced(self) -> bool:
        return self.quiet or self.json_output

    def print(self, message: str = "") -> None:
        if not self._silenced():
            self.console.print(message, markup=False)

    def info(self, message: str) -> None:
        if not self._silenced():
            self.console.print(message, markup=False)

    def success(self, message: str) -> None:
        if not self._silenced():
            self.console.print(message, style="green", markup=False)

    def warning(self, message: str) -> None:
        if not self._silenced():
            self.console.print(message, style="yellow", markup=False)

    def error(self, message: str) -> None:
        self.err_console.print(f"[ERROR] {message}", style="red", markup=False)

    def output_json(self, data: Any) -> None:
        """Write data as JSON to stdout."""
        self.console.print_json(json.dumps(data, default=str))
