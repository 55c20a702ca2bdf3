"""IP allowlist access decision.

Validates the configured allowlist, extracts the client IP from the raw
request header value and returns ALLOW or DENY. Any failure, including an
invalid allowlist, results in DENY.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from idpflows.errors import AllowlistConfigError
from idpflows.logging_config import get_logger

logger = get_logger(__name__)

UNKNOWN_IP = "unknown"
DISALLOWED_ADDRESSES = frozenset({UNKNOWN_IP, "localhost", "127.0.0.1"})

_OCTET = r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)"
_IPV4_PATTERN = re.compile(rf"(?:{_OCTET}\.){{3}}{_OCTET}")


class AccessOutcome(StrEnum):
    ALLOW = "allow"
    DENY = "deny"
    ERROR = "error"  # denied because the check itself failed


@dataclass(frozen=True)
class AccessDecision:
    outcome: AccessOutcome
    reason: str | None = None
    client_ip: str | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is AccessOutcome.ALLOW


def is_valid_ipv4(ip: object) -> bool:
    """Dotted-quad IPv4 syntax check that also rejects loopback/unknown sentinels."""
    if not isinstance(ip, str) or ip in DISALLOWED_ADDRESSES:
        return False
    return _IPV4_PATTERN.fullmatch(ip) is not None


def validate_allowlist(allowlist: Sequence[str]) -> None:
    """Raise AllowlistConfigError unless the allowlist is non-empty and fully valid."""
    if isinstance(allowlist, str) or not allowlist:
        raise AllowlistConfigError("Allowlist must be a non-empty array.")
    for ip in allowlist:
        if not is_valid_ipv4(ip):
            raise AllowlistConfigError(f"Invalid IP address in allowlist: {ip}")


def extract_client_ip(raw_ip: str | None) -> str:
    """First comma-separated token of the client IP header, or 'unknown'."""
    if raw_ip is None:
        return UNKNOWN_IP
    return raw_ip.split(",")[0].strip()


def decide_access(
    allowlist: Sequence[str],
    raw_ip: str | None,
    ip_override: str | None = None,
) -> AccessDecision:
    """Decide whether the client IP may proceed. Never raises."""
    try:
        validate_allowlist(allowlist)

        ip = extract_client_ip(raw_ip)
        if ip_override:
            logger.warning("IP override is enabled, ignoring detected IP", detected_ip=ip)
            ip = ip_override

        if not is_valid_ipv4(ip):
            logger.warning("Invalid or private IP address detected", client_ip=ip)
            return AccessDecision(
                AccessOutcome.DENY,
                reason="Access denied: Invalid or private IP address.",
                client_ip=ip,
            )

        if ip not in allowlist:
            logger.warning("IP address is not in the allowlist", client_ip=ip)
            return AccessDecision(
                AccessOutcome.DENY,
                reason=f"Access denied: IP address {ip} is not in the allowlist.",
                client_ip=ip,
            )

        logger.info("IP check passed", client_ip=ip)
        return AccessDecision(AccessOutcome.ALLOW, client_ip=ip)
    except Exception as e:
        logger.error("IP allowlist check failed", error=str(e), exc_info=e)
        return AccessDecision(
            AccessOutcome.ERROR,
            reason=f"Access blocked due to an issue: {e}",
        )
