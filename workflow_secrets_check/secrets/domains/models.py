"""Domain models for workflow secret checks."""
import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class SecretVisibility(Enum):
    """Visibility scope of an organization secret."""
    ALL = "all"
    PRIVATE = "private"
    SELECTED = "selected"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SecretVisibility":
        """Parse an API visibility string. Missing or unknown scopes mean ALL."""
        if not value:
            return cls.ALL
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.ALL


class Classification(Enum):
    """Outcome of checking a single secret reference."""
    CONFIGURED = "configured"
    OPTIONAL_MISSING = "optional-missing"
    HARD_MISSING = "hard-missing"


@dataclass(frozen=True)
class RepositoryDescriptor:
    """Repository the check runs against."""
    owner: str
    name: str
    full_name: str
    owner_type: str  # "User" or "Organization"
    visibility: str  # "public", "private" or "internal"

    @property
    def is_organization(self) -> bool:
        return self.owner_type.lower() == "organization"


@dataclass(frozen=True)
class OrganizationSecret:
    """Organization-level secret, without its selected repositories."""
    name: str
    visibility: SecretVisibility = SecretVisibility.ALL


@dataclass(frozen=True)
class WorkflowDocument:
    """Workflow file text as read from the repository."""
    path: str
    text: str
    ref: Optional[str] = None


@dataclass(frozen=True)
class SecretReference:
    """A `secrets.<name>` occurrence inside a `${{ }}` expression."""
    name: str
    guarded: bool
    offset: int
    line: int
    column: int


@dataclass(frozen=True)
class Diagnostic:
    """Classification of one reference in one document."""
    path: str
    name: str
    classification: Classification
    line: int
    column: int


@dataclass(frozen=True)
class ForbiddenFinding:
    """A forbidden secret that is accessible to the repository."""
    name: str


@dataclass(frozen=True)
class Verdict:
    """Final result of a check run."""
    diagnostics: Tuple[Diagnostic, ...] = ()
    forbidden: Tuple[ForbiddenFinding, ...] = ()
    has_unknown_secrets: bool = False
    has_forbidden_secrets: bool = False
    accessible: Tuple[str, ...] = field(default=(), compare=False)

    @property
    def passed(self) -> bool:
        return not (self.has_unknown_secrets or self.has_forbidden_secrets)


@dataclass(frozen=True)
class DirectoryEntry:
    """Entry of a repository directory listing."""
    name: str
    path: str
    type: str  # "file", "dir", "symlink" or "submodule"


@dataclass(frozen=True)
class FileContent:
    """File payload as returned by the contents API."""
    content: str
    encoding: str = ""

    def decode(self) -> str:
        """Return the file text, undoing base64 transport encoding."""
        if self.encoding.lower() == "base64":
            return base64.b64decode(self.content).decode("UTF-8")
        return self.content
