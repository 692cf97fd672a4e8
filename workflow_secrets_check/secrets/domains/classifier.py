"""Classification of secret references against the accessible set."""
from typing import Collection

from .models import Classification, Diagnostic, SecretReference


def classify_reference(
    path: str,
    reference: SecretReference,
    accessible: Collection[str],
    optional: Collection[str],
) -> Diagnostic:
    """
    Classify a reference found in the workflow at `path`.

    An accessible secret is always configured. A missing one is only a hard
    failure when it is neither guarded in the expression nor listed as optional.
    """
    if reference.name in accessible:
        classification = Classification.CONFIGURED
    elif reference.guarded or reference.name in optional:
        classification = Classification.OPTIONAL_MISSING
    else:
        classification = Classification.HARD_MISSING

    return Diagnostic(
        path=path,
        name=reference.name,
        classification=classification,
        line=reference.line,
        column=reference.column,
    )
