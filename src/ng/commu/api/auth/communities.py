"""Resolve a hostname to the community it serves.

A community is reachable on `{slug}.{main domain}` and, once verified, on its
custom domain. Deleted communities never resolve.
"""
import logging
from typing import Optional

from sqlalchemy import and_, false, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ng.commu.api.auth.errors import AuthError
from ng.commu.api.model.community import Community, normalize_domain

logger = logging.getLogger(__name__)


def subdomain_slug(domain: str, main_domain: str) -> Optional[str]:
    """Return the slug for `{slug}.{main_domain}`, or None for any other hostname."""
    domain = normalize_domain(domain)
    suffix = "." + normalize_domain(main_domain)
    if not domain.endswith(suffix):
        return None
    slug = domain[: -len(suffix)]
    if len(slug) == 0 or "." in slug:
        return None
    return slug


async def resolve_community(
    database_session: AsyncSession, domain: str, main_domain: str
) -> Community:
    """
    Find the live community served on `domain`.

    Args:
        database_session: Session used for the lookup; the caller owns the transaction
        domain: Hostname to resolve
        main_domain: The console domain that community subdomains hang off

    Returns:
        The matching Community

    Raises:
        AuthError: invalid_domain when no live community serves the hostname
    """
    domain = normalize_domain(domain)
    slug = subdomain_slug(domain, main_domain)

    stmt = select(Community).where(
        or_(
            and_(
                Community.custom_domain == domain,
                Community.domain_verified_at.is_not(None),
            ),
            Community.slug == slug if slug is not None else false(),
        ),
        Community.deleted_at.is_(None),
    )
    community: Optional[Community] = (await database_session.scalars(stmt)).first()
    if community is None:
        logger.debug("no community for domain %s", domain)
        raise AuthError.invalid_domain()
    return community
