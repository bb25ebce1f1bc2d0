"""
Security utilities for the OAuth App middleware.

This module provides the security headers applied to every response and the
parsing of the ``Authorization`` header used by the token routes.
"""

import re
from typing import Optional


# "token <t>" is the documented format, "bearer <t>" is accepted as well
TOKEN_HEADER_PATTERN = re.compile(r'^(?:token|bearer)\s+(\S+)\s*$', re.IGNORECASE)


class SecurityHeaders:
    """
    Security headers for HTTP responses.

    Provides standard security headers to protect against
    common web vulnerabilities.
    """

    @staticmethod
    def get_oauth_security_headers() -> dict:
        """
        Get security headers for OAuth endpoints.

        Returns:
            dict: Dictionary of security headers
        """
        return {
            'X-Content-Type-Options': 'nosniff',
            'X-Frame-Options': 'DENY',
            'X-XSS-Protection': '1; mode=block',
            'Strict-Transport-Security': 'max-age=31536000; includeSubDomains',
            'Cache-Control': 'no-cache, no-store, must-revalidate',
            'Pragma': 'no-cache',
            'Expires': '0'
        }


def extract_token(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the token from an ``Authorization`` header value.

    Args:
        authorization: Raw header value, possibly None

    Returns:
        Optional[str]: The token, or None if the header is missing or malformed
    """
    if not authorization or not isinstance(authorization, str):
        return None

    match = TOKEN_HEADER_PATTERN.match(authorization.strip())
    if not match:
        return None

    return match.group(1)
