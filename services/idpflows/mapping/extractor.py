"""Attribute extraction from identity assertions.

Turns OIDC claims or SAML attribute statements into a normalized attribute
map: lower-cased, trimmed names mapped to ordered lists of non-empty,
trimmed string values.
"""

import json
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from idpflows.events import (
    ClaimsAssertion,
    IdentityAssertion,
    SamlAssertion,
    SamlAttributeStatement,
)

NormalizedAttributeMap = dict[str, list[str]]

CLAIM_ARRAY_DELIMITER = ", "


def normalize_name(name: str) -> str:
    """Normalize an attribute or claim name for case/whitespace-insensitive lookup."""
    return name.strip().lower()


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return CLAIM_ARRAY_DELIMITER.join(_stringify(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def extract_claims(
    claims: Mapping[str, Any],
    claim_names: Iterable[str] | None = None,
) -> NormalizedAttributeMap:
    """Normalize OIDC claims.

    Only claims named in ``claim_names`` are considered (all claims when None).
    Falsy claims are omitted; arrays become a single ``", "``-joined value.
    When two claims normalize to the same name, the later one wins.
    """
    wanted = {normalize_name(n) for n in claim_names} if claim_names is not None else None
    attributes: NormalizedAttributeMap = {}

    for raw_name, raw_value in claims.items():
        name = normalize_name(str(raw_name))
        if not name or (wanted is not None and name not in wanted):
            continue
        if not raw_value:
            continue
        value = _stringify(raw_value).strip()
        if value:
            attributes[name] = [value]

    return attributes


def extract_saml(statements: Sequence[SamlAttributeStatement]) -> NormalizedAttributeMap:
    """Normalize SAML attribute statements.

    Attributes from all statements are flattened in order. A later attribute
    with the same normalized name replaces the earlier one entirely.
    Attributes without any non-empty value are skipped.
    """
    attributes: NormalizedAttributeMap = {}

    for statement in statements:
        for attribute in statement.attributes or ():
            name = normalize_name(attribute.name or "")
            if not name:
                continue
            values = [
                v.value.strip()
                for v in attribute.values or ()
                if v.value is not None and v.value.strip()
            ]
            if values:
                attributes[name] = values

    return attributes


def extract(
    assertion: IdentityAssertion | None,
    claim_names: Iterable[str] | None = None,
) -> NormalizedAttributeMap:
    """Normalize either assertion form. A missing assertion yields an empty map."""
    if isinstance(assertion, ClaimsAssertion):
        return extract_claims(assertion.claims, claim_names)
    if isinstance(assertion, SamlAssertion):
        return extract_saml(assertion.attribute_statements)
    return {}
