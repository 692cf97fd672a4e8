"""Workflow for checking workflow secret references against a repository."""
import logging
from typing import Collection, Iterable, List, Optional, Sequence, Tuple

from ..domains.classifier import classify_reference
from ..domains.concurrency import gather_or_cancel
from ..domains.config_loader import CheckConfig
from ..domains.github_client import GitHubClient
from ..domains.inventory import build_accessible_set
from ..domains.models import (
    Classification,
    Diagnostic,
    DirectoryEntry,
    RepositoryDescriptor,
    Verdict,
    WorkflowDocument,
)
from ..domains.reporter import ActionsReporter
from ..domains.scanner import scan_secret_references
from ..domains.verdict import aggregate_verdict
from ..domains.visibility import resolve_visible_org_secrets

logger = logging.getLogger(__name__)

WORKFLOW_SUFFIX = ".yml"


def is_workflow_candidate(entry: DirectoryEntry) -> bool:
    return entry.type == "file" and entry.name.endswith(WORKFLOW_SUFFIX)


async def collect_accessible_secrets(
    config: CheckConfig,
    client: GitHubClient,
    reporter: ActionsReporter,
) -> Tuple[RepositoryDescriptor, Tuple[str, ...]]:
    """
    Fetch the repository and compute every secret name its workflows can resolve.

    Organization secrets are only listed for organization-owned repositories.
    Any transport failure propagates.
    """
    repo = await client.fetch_repository(config.owner, config.repo)
    logger.debug(f"Repository {repo.full_name}: owner type {repo.owner_type}, visibility {repo.visibility}")

    org_visible: List[str] = []
    if repo.is_organization:
        reporter.info("Getting organisation secrets")
        org_secrets = await client.list_organization_secrets(config.owner)

        async def selected_lookup(secret_name: str) -> List[str]:
            return await client.list_selected_repositories_for_secret(config.owner, secret_name)

        visible = await resolve_visible_org_secrets(repo, org_secrets, selected_lookup)
        org_visible = [secret.name for secret in visible]

    reporter.info("Getting repository secrets")
    repo_secrets = await client.list_repository_secrets(config.owner, config.repo)

    accessible = build_accessible_set(config.predefined_secrets, org_visible, repo_secrets)
    return repo, accessible


async def load_workflow_documents(config: CheckConfig, client: GitHubClient) -> List[WorkflowDocument]:
    """
    Read every `.yml` file in the workflows directory.

    Contents are fetched concurrently; the result keeps directory-listing order.
    The first failed fetch cancels the rest and propagates.
    """
    entries = await client.list_directory(config.owner, config.repo, config.workflows_path, config.ref)
    candidates = [entry for entry in entries if is_workflow_candidate(entry)]
    logger.debug(f"Found {len(candidates)} workflow files in {config.workflows_path}")

    async def load(entry: DirectoryEntry) -> WorkflowDocument:
        content = await client.fetch_file_content(config.owner, config.repo, entry.path, config.ref)
        return WorkflowDocument(path=entry.path, text=content.decode(), ref=config.ref)

    return await gather_or_cancel(load(entry) for entry in candidates)


def check_document(
    document: WorkflowDocument,
    accessible: Collection[str],
    optional: Collection[str],
) -> List[Diagnostic]:
    """Classify every secret reference of one document, in scan order."""
    return [
        classify_reference(document.path, reference, accessible, optional)
        for reference in scan_secret_references(document.text)
    ]


def report_diagnostic(diagnostic: Diagnostic, reporter: ActionsReporter) -> None:
    location = f"{diagnostic.path}:{diagnostic.line}:{diagnostic.column}"
    if diagnostic.classification is Classification.CONFIGURED:
        reporter.info(f"{location}: secret {diagnostic.name} is configured")
    elif diagnostic.classification is Classification.OPTIONAL_MISSING:
        reporter.info(f"{location}: optional secret {diagnostic.name} is not configured")
    else:
        reporter.error(
            f"Unknown secret: {diagnostic.name}",
            file=diagnostic.path,
            line=diagnostic.line,
            # Passed through 0-based, unlike the 1-based columns Actions expects
            col=diagnostic.column,
        )


def check_documents(
    documents: Iterable[WorkflowDocument],
    accessible: Collection[str],
    optional: Collection[str],
    forbidden: Sequence[str],
    reporter: ActionsReporter,
) -> Verdict:
    """
    Classify all documents, run the forbidden check and report everything.

    Each document's diagnostics are buffered and reported in one log group;
    buffers are merged in document order before the verdict is computed.
    """
    accessible = frozenset(accessible)
    optional = frozenset(optional)

    buffers: List[List[Diagnostic]] = []
    for document in documents:
        reporter.group_start(f"Processing {document.path}")
        diagnostics = check_document(document, accessible, optional)
        if not diagnostics:
            reporter.info("No secret references found")
        for diagnostic in diagnostics:
            report_diagnostic(diagnostic, reporter)
        reporter.group_end()
        buffers.append(diagnostics)

    merged = [diagnostic for buffer in buffers for diagnostic in buffer]
    verdict = aggregate_verdict(merged, forbidden, sorted(accessible))

    for finding in verdict.forbidden:
        reporter.error(f"Forbidden secret is accessible: {finding.name}")

    if verdict.has_unknown_secrets:
        reporter.error("Some workflows reference secrets that are not accessible to this repository")
    if verdict.passed:
        reporter.info("All referenced secrets are accessible")
    return verdict


async def run_check(
    config: CheckConfig,
    client: GitHubClient,
    reporter: Optional[ActionsReporter] = None,
) -> Verdict:
    """
    Run the full check against GitHub.

    Args:
        config: Run configuration
        client: GitHub API client
        reporter: Diagnostics sink (stdout workflow commands by default)

    Returns:
        Verdict over every workflow document and the forbidden list

    Raises:
        TransportError: If any API call fails; no partial verdict is produced
    """
    reporter = reporter or ActionsReporter()

    repo, accessible = await collect_accessible_secrets(config, client, reporter)

    reporter.group_start("Accessible secrets")
    reporter.info("\n".join(accessible) if accessible else "(none)")
    reporter.group_end()

    documents = await load_workflow_documents(config, client)
    logger.info(f"Checking {len(documents)} workflow files of {repo.full_name}")

    return check_documents(
        documents,
        accessible,
        config.optional_secrets,
        config.forbidden_secrets,
        reporter,
    )
