"""Tests for visibility resolution, inventory, classification and verdicts."""
import asyncio

import pytest

from workflow_secrets_check.secrets.domains.classifier import classify_reference
from workflow_secrets_check.secrets.domains.github_client import TransportError
from workflow_secrets_check.secrets.domains.inventory import build_accessible_set
from workflow_secrets_check.secrets.domains.models import (
    Classification,
    Diagnostic,
    ForbiddenFinding,
    OrganizationSecret,
    RepositoryDescriptor,
    SecretReference,
    SecretVisibility,
    WorkflowDocument,
)
from workflow_secrets_check.secrets.domains.verdict import aggregate_verdict
from workflow_secrets_check.secrets.domains.visibility import resolve_visible_org_secrets
from workflow_secrets_check.secrets.workflows.check_operations import check_document


def _repo(visibility, full_name="octo-org/service"):
    owner, name = full_name.split("/")
    return RepositoryDescriptor(
        owner=owner,
        name=name,
        full_name=full_name,
        owner_type="Organization",
        visibility=visibility,
    )


class RecordingLookup:
    """Selected-repository lookup that counts calls per secret."""

    def __init__(self, selected):
        self.selected = selected
        self.calls = []

    async def __call__(self, secret_name):
        self.calls.append(secret_name)
        return self.selected.get(secret_name, [])


class TestSecretVisibility:
    """Test suite for parsing visibility scopes."""

    @pytest.mark.parametrize("value,expected", [
        ("all", SecretVisibility.ALL),
        ("ALL", SecretVisibility.ALL),
        ("Private", SecretVisibility.PRIVATE),
        ("selected", SecretVisibility.SELECTED),
        (None, SecretVisibility.ALL),
        ("", SecretVisibility.ALL),
        ("something-new", SecretVisibility.ALL),
    ])
    def test_parse(self, value, expected):
        """Test visibility strings parse case-insensitively, defaulting to ALL."""
        assert SecretVisibility.parse(value) is expected


class TestVisibilityResolver:
    """Test suite for resolve_visible_org_secrets."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("visibility", ["public", "private", "internal"])
    async def test_all_scope_always_visible(self, visibility):
        """Test `all` secrets are visible whatever the repository visibility."""
        lookup = RecordingLookup({})
        visible = await resolve_visible_org_secrets(
            _repo(visibility), [OrganizationSecret("ORG_ALL")], lookup
        )
        assert [secret.name for secret in visible] == ["ORG_ALL"]
        assert lookup.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("visibility,expected", [
        ("private", ["ORG_PRIVATE"]),
        ("public", []),
        ("internal", []),
    ])
    async def test_private_scope_requires_private_repository(self, visibility, expected):
        """Test `private` secrets are visible only to literally private repositories."""
        lookup = RecordingLookup({})
        secret = OrganizationSecret("ORG_PRIVATE", visibility=SecretVisibility.PRIVATE)
        visible = await resolve_visible_org_secrets(_repo(visibility), [secret], lookup)
        assert [s.name for s in visible] == expected
        assert lookup.calls == []

    @pytest.mark.asyncio
    async def test_selected_scope_uses_lookup_once_per_secret(self, org_secrets):
        """Test each `selected` secret is looked up exactly once, others never."""
        lookup = RecordingLookup({"ORG_SELECTED": ["octo-org/other", "octo-org/service"]})
        visible = await resolve_visible_org_secrets(_repo("private"), org_secrets, lookup)

        assert [secret.name for secret in visible] == ["ORG_ALL", "ORG_PRIVATE", "ORG_SELECTED"]
        assert lookup.calls == ["ORG_SELECTED"]

    @pytest.mark.asyncio
    async def test_selected_scope_not_granted(self):
        """Test a `selected` secret granted to other repositories is not visible."""
        secrets = [
            OrganizationSecret("ONE", visibility=SecretVisibility.SELECTED),
            OrganizationSecret("TWO", visibility=SecretVisibility.SELECTED),
        ]
        lookup = RecordingLookup({"ONE": ["octo-org/other"], "TWO": ["octo-org/service"]})
        visible = await resolve_visible_org_secrets(_repo("public"), secrets, lookup)

        assert [secret.name for secret in visible] == ["TWO"]
        assert sorted(lookup.calls) == ["ONE", "TWO"]

    @pytest.mark.asyncio
    async def test_no_secrets(self):
        """Test an organization without secrets resolves to nothing."""
        assert await resolve_visible_org_secrets(_repo("private"), [], RecordingLookup({})) == []

    @pytest.mark.asyncio
    async def test_failed_lookup_cancels_pending_lookups(self):
        """Test a failing lookup cancels the others before the error propagates."""
        cancelled = []

        async def lookup(secret_name):
            if secret_name == "BROKEN":
                raise TransportError("GET /orgs/octo-org/actions/secrets/BROKEN/repositories returned 500")
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(secret_name)
                raise
            return []

        secrets = [
            OrganizationSecret("SLOW", visibility=SecretVisibility.SELECTED),
            OrganizationSecret("BROKEN", visibility=SecretVisibility.SELECTED),
        ]
        with pytest.raises(TransportError):
            await resolve_visible_org_secrets(_repo("private"), secrets, lookup)

        assert cancelled == ["SLOW"]


class TestSecretInventory:
    """Test suite for build_accessible_set."""

    def test_deduplicates_across_sources(self):
        """Test a name present in several sources appears once."""
        accessible = build_accessible_set(["GITHUB_TOKEN"], ["NPM_TOKEN", "GITHUB_TOKEN"], ["NPM_TOKEN"])
        assert accessible == ("GITHUB_TOKEN", "NPM_TOKEN")

    def test_names_are_case_sensitive(self):
        """Test names differing only in case are kept apart."""
        assert build_accessible_set([], ["npm_token"], ["NPM_TOKEN"]) == ("NPM_TOKEN", "npm_token")

    def test_output_is_sorted(self):
        """Test the result order does not depend on input order."""
        assert build_accessible_set(["B"], ["C"], ["A"]) == build_accessible_set(["A"], ["B"], ["C"])
        assert build_accessible_set(["B"], ["C"], ["A"]) == ("A", "B", "C")

    def test_empty_sources(self):
        """Test empty inputs give an empty set."""
        assert build_accessible_set([], [], []) == ()


class TestReferenceClassifier:
    """Test suite for classify_reference."""

    @staticmethod
    def _ref(name, guarded=False):
        return SecretReference(name=name, guarded=guarded, offset=3, line=1, column=3)

    @pytest.mark.parametrize("guarded", [False, True])
    def test_accessible_is_configured(self, guarded):
        """Test an accessible secret is configured regardless of guard."""
        diagnostic = classify_reference("ci.yml", self._ref("TOKEN", guarded), {"TOKEN"}, [])
        assert diagnostic.classification is Classification.CONFIGURED

    def test_missing_unguarded_is_hard_missing(self):
        """Test a bare reference to an inaccessible secret is hard-missing."""
        diagnostic = classify_reference("ci.yml", self._ref("MISSING"), {"TOKEN"}, [])
        assert diagnostic == Diagnostic(
            path="ci.yml",
            name="MISSING",
            classification=Classification.HARD_MISSING,
            line=1,
            column=3,
        )

    def test_missing_guarded_is_optional(self):
        """Test a guarded reference to an inaccessible secret is optional-missing."""
        diagnostic = classify_reference("ci.yml", self._ref("MISSING", guarded=True), {"TOKEN"}, [])
        assert diagnostic.classification is Classification.OPTIONAL_MISSING

    def test_missing_listed_optional_is_optional(self):
        """Test a secret in the optional list is optional-missing."""
        diagnostic = classify_reference("ci.yml", self._ref("SLACK"), {"TOKEN"}, ["SLACK"])
        assert diagnostic.classification is Classification.OPTIONAL_MISSING

    def test_classification_is_idempotent(self):
        """Test classifying twice gives identical diagnostics."""
        ref = self._ref("MISSING")
        assert classify_reference("ci.yml", ref, set(), []) == classify_reference("ci.yml", ref, set(), [])


class TestVerdictAggregator:
    """Test suite for aggregate_verdict, including end-to-end scenarios."""

    DOCUMENT = WorkflowDocument(
        path=".github/workflows/ci.yml",
        text="env:\n  A: ${{ secrets.TOKEN }}\n  B: ${{ secrets.MISSING }}\n",
    )

    def test_unknown_secret_fails(self):
        """Test one configured and one hard-missing reference fail the run."""
        accessible = ("TOKEN",)
        diagnostics = check_document(self.DOCUMENT, accessible, [])
        verdict = aggregate_verdict(diagnostics, ["LEGACY_KEY"], accessible)

        assert [(d.name, d.classification) for d in verdict.diagnostics] == [
            ("TOKEN", Classification.CONFIGURED),
            ("MISSING", Classification.HARD_MISSING),
        ]
        assert verdict.has_unknown_secrets is True
        assert verdict.has_forbidden_secrets is False
        assert verdict.forbidden == ()
        assert verdict.passed is False

    def test_forbidden_secret_fails_without_references(self):
        """Test an accessible forbidden secret fails even with no references."""
        verdict = aggregate_verdict([], ["LEGACY_KEY"], ("LEGACY_KEY", "TOKEN"))

        assert verdict.has_forbidden_secrets is True
        assert verdict.has_unknown_secrets is False
        assert verdict.forbidden == (ForbiddenFinding("LEGACY_KEY"),)
        assert verdict.passed is False

    def test_both_conditions_reported(self):
        """Test unknown and forbidden findings are both surfaced."""
        accessible = ("LEGACY_KEY", "TOKEN")
        diagnostics = check_document(self.DOCUMENT, accessible, [])
        verdict = aggregate_verdict(diagnostics, ["LEGACY_KEY", "OTHER", "LEGACY_KEY"], accessible)

        assert verdict.has_unknown_secrets is True
        assert verdict.has_forbidden_secrets is True
        assert verdict.forbidden == (ForbiddenFinding("LEGACY_KEY"),)

    def test_optional_missing_passes(self):
        """Test optional-missing references never fail the run."""
        accessible = ("TOKEN",)
        diagnostics = check_document(self.DOCUMENT, accessible, ["MISSING"])
        verdict = aggregate_verdict(diagnostics, [], accessible)

        assert verdict.diagnostics[1].classification is Classification.OPTIONAL_MISSING
        assert verdict.passed is True

    def test_aggregation_is_deterministic(self):
        """Test repeated runs produce identical verdicts."""
        accessible = ("TOKEN",)
        first = aggregate_verdict(check_document(self.DOCUMENT, accessible, []), [], accessible)
        second = aggregate_verdict(check_document(self.DOCUMENT, accessible, []), [], accessible)
        assert first == second
