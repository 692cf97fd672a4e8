"""Secret reference scanning for workflow expression blocks."""
import re
from typing import Iterator, Tuple

from .models import SecretReference

# `${{ ... }}` blocks; bodies may span lines, blocks never nest.
EXPRESSION_PATTERN = re.compile(r"\$\{\{(.*?)\}\}", re.DOTALL)

# A reference token starts at its single leading separator, when there is one.
# `secrets.` glued to an identifier or a `.` is some other property access.
REFERENCE_PATTERN = re.compile(
    r"[^\w.!\-\r\n]?"
    r"(?<![\w.\-])"
    r"(?P<negation>!*)"
    r"secrets\.(?P<name>[A-Za-z0-9_-]+)"
)

_FOLLOWING_OPERATOR = re.compile(r"\s*(?:&&|\|\|)")
_OPERATORS = ("&&", "||")
_LINE_BREAK = re.compile(r"\r\n|\n\r|\n|\r")


def line_and_column(text: str, offset: int) -> Tuple[int, int]:
    """
    Convert a character offset into a 1-based line and 0-based column.

    Any of `\\n`, `\\r`, `\\r\\n` and `\\n\\r` counts as one line break.
    """
    segments = _LINE_BREAK.split(text[:offset])
    return len(segments), len(segments[-1])


class _LineCursor:
    """Tracks line and column for increasing offsets, reading each character once."""

    def __init__(self, text: str):
        self.text = text
        self.offset = 0
        self.line = 1
        self.column = 0

    def advance(self, offset: int) -> Tuple[int, int]:
        # Reference offsets never land on a line break, so a two-character
        # break is never split between two advances.
        segments = _LINE_BREAK.split(self.text[self.offset:offset])
        if len(segments) > 1:
            self.line += len(segments) - 1
            self.column = len(segments[-1])
        else:
            self.column += len(segments[0])
        self.offset = offset
        return self.line, self.column


def _preceded_by_operator(body: str, end: int) -> bool:
    position = end
    while position > 0 and body[position - 1].isspace():
        position -= 1
    return body[max(0, position - 2):position] in _OPERATORS


def _is_guarded(body: str, match: "re.Match[str]") -> bool:
    if match.group("negation"):
        return True
    if _FOLLOWING_OPERATOR.match(body, match.end()):
        return True
    return _preceded_by_operator(body, match.start("negation"))


def scan_secret_references(text: str) -> Iterator[SecretReference]:
    """
    Yield every secret reference found inside `${{ }}` expression blocks.

    Args:
        text: Raw workflow document text

    Yields:
        SecretReference for each `secrets.<name>` occurrence, in document order

    Behavior:
        - A reference is guarded when a `!` run sits right before it, or when
          a `&&`/`||` operator directly precedes or follows it
        - Operators are inspected, not consumed, so two references joined by
          one operator are both guarded
        - Text outside expression blocks is ignored
        - Runs in time linear in the document length
    """
    cursor = _LineCursor(text)
    for block in EXPRESSION_PATTERN.finditer(text):
        body = block.group(1)
        body_start = block.start(1)
        for match in REFERENCE_PATTERN.finditer(body):
            offset = body_start + match.start()
            line, column = cursor.advance(offset)
            yield SecretReference(
                name=match.group("name"),
                guarded=_is_guarded(body, match),
                offset=offset,
                line=line,
                column=column,
            )
