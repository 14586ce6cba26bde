"""
Input validation utilities for custom domains, project names and repository ids
"""

import re
from typing import Tuple


class ValidationError(Exception):
    """Custom exception for validation errors"""
    pass


class DomainValidator:
    """Validator for custom domain names"""

    # RFC-compliant domain regex
    DOMAIN_REGEX = re.compile(
        r'^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}$'
    )

    @classmethod
    def validate(cls, domain: str) -> str:
        """
        Validate a domain name.

        Args:
            domain: Domain name to validate

        Returns:
            Cleaned domain name (lowercase, stripped)

        Raises:
            ValidationError: If domain is invalid
        """
        if not domain:
            raise ValidationError("Domain name cannot be empty")

        # Clean the domain
        domain = domain.strip().lower()

        # Remove http(s):// if present
        domain = re.sub(r'^https?://', '', domain)

        # Remove trailing slash and trailing root dot
        domain = domain.rstrip('/').rstrip('.')

        # Check length
        if len(domain) > 253:  # RFC 1035
            raise ValidationError("Domain name too long (max 253 characters)")

        if not cls.DOMAIN_REGEX.match(domain):
            raise ValidationError(
                f"Invalid domain format: {domain}. "
                "Domain must contain only letters, numbers, and hyphens."
            )

        return domain

    @classmethod
    def is_apex(cls, domain: str) -> bool:
        """
        Check whether a domain is an apex domain (exactly two labels).

        Args:
            domain: Domain name (e.g., 'example.com' or 'blog.example.com')

        Returns:
            True for 'example.com', False for 'blog.example.com'
        """
        return len(domain.split('.')) == 2

    @classmethod
    def record_name(cls, domain: str) -> str:
        """
        Host label to use in a DNS record for this domain.

        Returns '@' for an apex domain, otherwise everything left of the
        registrable domain ('blog' for 'blog.example.com').
        """
        if cls.is_apex(domain):
            return '@'
        return '.'.join(domain.split('.')[:-2])


class ProjectNameValidator:
    """Normalises repository names into platform project names"""

    INVALID_CHARS = re.compile(r'[^a-z0-9-]')

    @classmethod
    def sanitize(cls, name: str) -> str:
        """
        Convert a repository name into a name accepted by Vercel,
        Netlify and Cloudflare Pages.

        Args:
            name: Repository name (e.g., 'My_Blog.io')

        Returns:
            Sanitized name (e.g., 'my-blog-io')

        Raises:
            ValidationError: If nothing usable is left
        """
        sanitized = cls.INVALID_CHARS.sub('-', name.strip().lower()).strip('-')
        if not sanitized:
            raise ValidationError(f"Cannot derive a project name from: {name!r}")
        return sanitized


def validate_domain(domain: str) -> str:
    """Convenience function for domain validation"""
    return DomainValidator.validate(domain)


def is_apex_domain(domain: str) -> bool:
    """Convenience function for apex detection"""
    return DomainValidator.is_apex(domain)


def sanitize_project_name(name: str) -> str:
    """Convenience function for project name sanitizing"""
    return ProjectNameValidator.sanitize(name)


def split_repo_id(project_id: str) -> Tuple[str, str]:
    """
    Split an 'owner/repo' identifier.

    Raises:
        ValidationError: If the id is not exactly 'owner/repo'
    """
    parts = project_id.split('/')
    if len(parts) != 2 or not all(parts):
        raise ValidationError(
            f'Invalid project ID format: {project_id}. Expected "owner/repo"'
        )
    return parts[0], parts[1]
