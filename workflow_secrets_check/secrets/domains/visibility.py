"""Organization secret visibility resolution."""
import logging
from typing import Awaitable, Callable, Iterable, List

from .concurrency import gather_or_cancel
from .models import OrganizationSecret, RepositoryDescriptor, SecretVisibility

logger = logging.getLogger(__name__)

SelectedLookup = Callable[[str], Awaitable[Iterable[str]]]


async def _is_visible(
    repo: RepositoryDescriptor,
    secret: OrganizationSecret,
    selected_lookup: SelectedLookup,
) -> bool:
    if secret.visibility is SecretVisibility.ALL:
        return True

    if secret.visibility is SecretVisibility.PRIVATE:
        # Only literal "private" qualifies; "internal" repositories do not.
        return repo.visibility == "private"

    selected = await selected_lookup(secret.name)
    return repo.full_name in set(selected)


async def resolve_visible_org_secrets(
    repo: RepositoryDescriptor,
    org_secrets: Iterable[OrganizationSecret],
    selected_lookup: SelectedLookup,
) -> List[OrganizationSecret]:
    """
    Filter organization secrets down to those visible to a repository.

    Args:
        repo: Repository being checked
        org_secrets: Every secret defined on the organization
        selected_lookup: Coroutine returning the repository full names a
            `selected` secret is granted to

    Returns:
        Visible secrets, in input order

    Behavior:
        - `all` secrets are always visible
        - `private` secrets are visible only to private repositories
        - `selected` secrets trigger exactly one lookup each; lookups for
          different secrets run concurrently
        - If one lookup fails, the remaining lookups are cancelled and the
          error propagates
    """
    secrets = list(org_secrets)
    decisions = await gather_or_cancel(
        _is_visible(repo, secret, selected_lookup) for secret in secrets
    )

    visible = []
    for secret, is_visible in zip(secrets, decisions):
        if is_visible:
            visible.append(secret)
        else:
            logger.debug(
                f"Organization secret {secret.name} ({secret.visibility.value}) "
                f"is not visible to {repo.full_name}"
            )
    return visible
