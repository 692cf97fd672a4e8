"""Verdict aggregation."""
from typing import Collection, Iterable

from .models import Classification, Diagnostic, ForbiddenFinding, Verdict


def aggregate_verdict(
    diagnostics: Iterable[Diagnostic],
    forbidden: Iterable[str],
    accessible: Collection[str],
) -> Verdict:
    """
    Combine document diagnostics and the forbidden-secret check.

    Args:
        diagnostics: Diagnostics of every scanned document, in report order
        forbidden: Secret names that must not be accessible
        accessible: Accessible secret names

    Returns:
        Verdict carrying every diagnostic and one finding per accessible
        forbidden name
    """
    diagnostics = tuple(diagnostics)

    findings = []
    seen = set()
    for name in forbidden:
        if name in accessible and name not in seen:
            seen.add(name)
            findings.append(ForbiddenFinding(name=name))

    has_unknown = any(
        diagnostic.classification is Classification.HARD_MISSING
        for diagnostic in diagnostics
    )

    return Verdict(
        diagnostics=diagnostics,
        forbidden=tuple(findings),
        has_unknown_secrets=has_unknown,
        has_forbidden_secrets=bool(findings),
        accessible=tuple(accessible),
    )
