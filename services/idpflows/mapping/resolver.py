"""Mapping table resolver.

Projects a normalized attribute map onto output property keys using ordered
mapping rules. For each rule the first alias with a non-empty match wins.
"""

from collections.abc import Iterable

from idpflows.config import MappingRule, MappingTable
from idpflows.events import IdentityAssertion
from idpflows.logging_config import get_logger
from idpflows.mapping.extractor import NormalizedAttributeMap, extract, normalize_name

logger = get_logger(__name__)

PropertyBatch = dict[str, str]


def _first_match(attributes: NormalizedAttributeMap, aliases: Iterable[str]) -> list[str] | None:
    for alias in aliases:
        values = attributes.get(normalize_name(alias))
        if values:
            return values
    return None


def resolve_properties(
    attributes: NormalizedAttributeMap,
    rules: Iterable[MappingRule],
    delimiter: str = ",",
) -> PropertyBatch:
    """Resolve mapping rules against a normalized attribute map.

    Args:
        attributes: Output of the extractor.
        rules: Mapping rules, applied in order.
        delimiter: Separator for multi-valued rules.

    Returns:
        Property key -> value. Rules with no matching alias contribute nothing.
    """
    properties: PropertyBatch = {}

    for rule in rules:
        values = _first_match(attributes, rule.aliases)
        if not values:
            continue

        properties[rule.target] = delimiter.join(values) if rule.multi_valued else values[0]
        logger.debug("Mapped attribute", target=rule.target, multi_valued=rule.multi_valued)

    return properties


class AttributeMapper:
    """Extract-then-resolve for one immutable mapping table."""

    def __init__(self, table: MappingTable) -> None:
        self._table = table
        self._claim_names = tuple(alias for rule in table.rules for alias in rule.aliases)

    @property
    def table(self) -> MappingTable:
        return self._table

    def extract(self, assertion: IdentityAssertion | None) -> NormalizedAttributeMap:
        return extract(assertion, self._claim_names)

    def resolve(self, attributes: NormalizedAttributeMap) -> PropertyBatch:
        return resolve_properties(attributes, self._table.rules, self._table.delimiter)

    def map(self, assertion: IdentityAssertion | None) -> PropertyBatch:
        return self.resolve(self.extract(assertion))
