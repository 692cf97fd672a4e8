"""CLI entrypoint for workflow-secrets-check."""
import sys
import asyncio
import argparse
import logging
from pathlib import Path

from .validators import validate_repository, validate_secret_names

VERSION = "0.1.0"

# Configure logging to stderr; workflow commands go to stdout
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s %(name)s: %(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def cmd_version(args):
    """Show version information."""
    print(f"workflow-secrets-check {VERSION}")


async def _run_check(config, reporter):
    from workflow_secrets_check.secrets.domains.github_client import GitHubClient
    from workflow_secrets_check.secrets.workflows.check_operations import run_check

    async with GitHubClient(config.github_token, api_url=config.api_url) as client:
        return await run_check(config, client, reporter)


def cmd_check(args):
    """Check workflow secret references against the repository's secrets on GitHub."""
    from workflow_secrets_check.secrets.domains.config_loader import ConfigError, load_config, split_list
    from workflow_secrets_check.secrets.domains.github_client import TransportError
    from workflow_secrets_check.secrets.domains.reporter import ActionsReporter

    if args.repository:
        validate_repository(args.repository)

    overrides = {
        "repository": args.repository,
        "ref": args.ref,
        "workflows_path": args.workflows_path,
    }
    for key in ("predefined", "optional", "forbidden"):
        value = getattr(args, key)
        if value is not None:
            names = split_list(value)
            validate_secret_names(names, f"--{key}")
            overrides[f"{key}_secrets"] = names

    reporter = ActionsReporter()

    try:
        config = load_config(config_path=args.config, overrides=overrides)
    except ConfigError as e:
        reporter.error(f"Configuration error: {e}")
        sys.exit(1)

    try:
        verdict = asyncio.run(_run_check(config, reporter))
    except TransportError as e:
        reporter.error(f"GitHub API error: {e}")
        sys.exit(1)

    sys.exit(0 if verdict.passed else 1)


def cmd_scan(args):
    """Scan local workflow files against a given list of accessible secrets."""
    from workflow_secrets_check.secrets.domains.config_loader import split_list
    from workflow_secrets_check.secrets.domains.models import WorkflowDocument
    from workflow_secrets_check.secrets.domains.reporter import ActionsReporter
    from workflow_secrets_check.secrets.workflows.check_operations import check_documents

    accessible = split_list(args.accessible)
    optional = split_list(args.optional)
    forbidden = split_list(args.forbidden)
    validate_secret_names(accessible, "--accessible")
    validate_secret_names(optional, "--optional")
    validate_secret_names(forbidden, "--forbidden")

    reporter = ActionsReporter()
    documents = []
    for file_name in args.files:
        path = Path(file_name)
        if not path.is_file():
            reporter.error(f"File not found: {path}")
            sys.exit(1)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            reporter.error(f"Could not read {path}: {e}")
            sys.exit(1)
        documents.append(WorkflowDocument(path=str(path), text=text))

    verdict = check_documents(documents, accessible, optional, forbidden, reporter)
    sys.exit(0 if verdict.passed else 1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-secrets-check",
        description="Check that every secret referenced by GitHub Actions workflows is accessible to the repository",
        epilog="""
Exit codes:
  0 - All referenced secrets are accessible and no forbidden secret is accessible
  1 - Unknown or forbidden secrets found, or a runtime error (configuration, GitHub API)
  2 - Usage error (invalid arguments, invalid secret name format, etc.)

Environment variables:
  GITHUB_REPOSITORY              - OWNER/REPO to check
  GITHUB_TOKEN                   - Token used when no 'githubToken' input is set
  GITHUB_API_URL                 - GitHub API base URL
  INPUT_GITHUBTOKEN, INPUT_REF, INPUT_PREDEFINEDSECRETS,
  INPUT_OPTIONALSECRETS, INPUT_FORBIDDENSECRETS
                                 - GitHub Actions inputs
  WORKFLOW_SECRETS_CHECK_CONFIG  - Path to a YAML config file

Secret name lists are separated by commas, semicolons or newlines.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging on stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # version command
    _version_parser = subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of workflow-secrets-check"
    )

    # check command
    check_parser = subparsers.add_parser(
        "check",
        help="Check workflows of a GitHub repository",
        description="""
Read the workflows under .github/workflows through the GitHub API and verify
that every `${{ secrets.NAME }}` reference resolves for the repository.

Accessible secrets are the predefined names, the organization secrets visible
to the repository and the repository secrets. Missing references that are
negated (!secrets.NAME), joined with && or ||, or listed with --optional are
reported but do not fail the check.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    check_parser.add_argument("--config", help="Path to a YAML config file")
    check_parser.add_argument("--repository", help="Repository to check, as OWNER/REPO")
    check_parser.add_argument("--ref", help="Branch, tag or commit to read workflows at")
    check_parser.add_argument("--workflows-path", help="Directory holding workflow files")
    check_parser.add_argument("--predefined", help="Secret names always available (default: GITHUB_TOKEN)")
    check_parser.add_argument("--optional", help="Secret names allowed to be missing")
    check_parser.add_argument("--forbidden", help="Secret names that must not be accessible")

    # scan command
    scan_parser = subparsers.add_parser(
        "scan",
        help="Check local workflow files",
        description="""
Scan local workflow files and classify their secret references against the
names given with --accessible. No GitHub API calls are made.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    scan_parser.add_argument("files", nargs="+", help="Workflow files to scan")
    scan_parser.add_argument("--accessible", default="GITHUB_TOKEN", help="Accessible secret names")
    scan_parser.add_argument("--optional", default="", help="Secret names allowed to be missing")
    scan_parser.add_argument("--forbidden", default="", help="Secret names that must not be accessible")

    return parser


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Findings or runtime errors (configuration, GitHub API, etc.)
        2 - Usage errors (invalid arguments, invalid secret name format, etc.)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # If no command provided, show help and exit with usage error code
    if not args.command:
        parser.print_help()
        sys.exit(2)

    # Route to command handlers
    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "check":
            cmd_check(args)
        elif args.command == "scan":
            cmd_scan(args)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
