"""Diagnostics sink emitting GitHub Actions workflow commands."""
import sys
from typing import Optional, TextIO


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


class ActionsReporter:
    """
    Writes info lines, annotations and log groups to a text stream.

    On a GitHub Actions runner, `::error` lines become file annotations and
    `::group::` lines fold the log. Elsewhere they stay readable as plain text.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # Resolved late so pytest's capsys sees the output
        return self._stream if self._stream is not None else sys.stdout

    def _command(self, name: str, message: str, **properties) -> None:
        props = ",".join(
            f"{key}={_escape_property(str(value))}"
            for key, value in properties.items()
            if value is not None
        )
        head = f"::{name} {props}" if props else f"::{name}"
        print(f"{head}::{_escape_data(message)}", file=self.stream)

    def info(self, message: str) -> None:
        print(message, file=self.stream)

    def warning(self, message: str, file: Optional[str] = None, line: Optional[int] = None,
                col: Optional[int] = None) -> None:
        self._command("warning", message, file=file, line=line, col=col)

    def error(self, message: str, file: Optional[str] = None, line: Optional[int] = None,
              col: Optional[int] = None) -> None:
        self._command("error", message, file=file, line=line, col=col)

    def group_start(self, label: str) -> None:
        print(f"::group::{_escape_data(label)}", file=self.stream)

    def group_end(self) -> None:
        print("::endgroup::", file=self.stream)
