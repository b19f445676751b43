"""Grouping and ordering of an entity's links for display and duplicate detection."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Final

from powermap.domain.model import ExtensionKind, PrimaryType, RelationshipCategory

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from powermap.domain.model import Link, Relationship, Triplet

SECTION_HEADINGS: Final[dict[str, str]] = {
    "business_positions": "Business Positions",
    "government_positions": "Government Positions",
    "in_the_office_positions": "In The Office Of",
    "other_positions_and_memberships": "Other Positions & Memberships",
    "schools": "Education",
    "students": "Students",
    "holdings": "Holdings",
    "owners": "Owners",
    "services_transactions": "Services/Transactions",
    "family": "Family",
    "professional_relationships": "Professional Associates",
    "friendships": "Friends",
    "donors": "Donors",
    "donation_recipients": "Donation/Grant Recipients",
    "political_fundraising_committees": "Political Fundraising Committees",
    "staff": "Leadership & Staff",
    "members": "Members",
    "lobbying": "Lobbying",
    "lobbied_by": "Lobbied By",
    "parents": "Parent Organizations",
    "children": "Child Organizations",
    "miscellaneous": "Other Affiliations",
}

PERSON_SECTION_ORDER: Final[tuple[str, ...]] = (
    "business_positions",
    "government_positions",
    "in_the_office_positions",
    "other_positions_and_memberships",
    "schools",
    "holdings",
    "services_transactions",
    "family",
    "professional_relationships",
    "friendships",
    "donors",
    "donation_recipients",
    "staff",
    "political_fundraising_committees",
    "lobbying",
    "miscellaneous",
)

ORG_SECTION_ORDER: Final[tuple[str, ...]] = (
    "parents",
    "children",
    "staff",
    "members",
    "owners",
    "holdings",
    "other_positions_and_memberships",
    "students",
    "donors",
    "donation_recipients",
    "political_fundraising_committees",
    "services_transactions",
    "lobbying",
    "lobbied_by",
    "professional_relationships",
    "miscellaneous",
)

_TEMPORAL_CATEGORIES: Final = frozenset({RelationshipCategory.POSITION, RelationshipCategory.MEMBERSHIP})

# category -> (forward section, reverse section) for categories without special routing
_PLAIN_SECTIONS: Final[dict[RelationshipCategory, tuple[str, str]]] = {
    RelationshipCategory.EDUCATION: ("schools", "students"),
    RelationshipCategory.MEMBERSHIP: ("other_positions_and_memberships", "members"),
    RelationshipCategory.FAMILY: ("family", "family"),
    RelationshipCategory.TRANSACTION: ("services_transactions", "services_transactions"),
    RelationshipCategory.LOBBYING: ("lobbying", "lobbied_by"),
    RelationshipCategory.SOCIAL: ("friendships", "friendships"),
    RelationshipCategory.PROFESSIONAL: ("professional_relationships", "professional_relationships"),
    RelationshipCategory.OWNERSHIP: ("holdings", "owners"),
    RelationshipCategory.HIERARCHY: ("parents", "children"),
    RelationshipCategory.GENERIC: ("miscellaneous", "miscellaneous"),
}


def _current_rank(link: Link) -> int:
    is_current = link.relationship.is_current
    if is_current is True:
        return 0
    if is_current is None:
        return 1
    return 2


def temporal_order(links: Iterable[Link]) -> list[Link]:
    """Current before unknown before past, then latest end date, then latest start date.

    A missing end date counts as ongoing and sorts first; a missing start date
    sorts last.
    """

    ordered = list(links)
    # stable passes, least significant key first
    ordered.sort(key=lambda link: link.relationship.start_date or "", reverse=True)
    ordered.sort(key=lambda link: link.relationship.end_date or "", reverse=True)
    ordered.sort(key=lambda link: link.relationship.end_date is not None)
    ordered.sort(key=_current_rank)
    return ordered


def _amount(link: Link) -> int:
    return link.relationship.amount or 0


class LinksGroup:
    """Links of one section, grouped by counterpart and ordered by category."""

    def __init__(self, links: Sequence[Link], keyword: str, heading: str) -> None:
        self.keyword = keyword
        self.heading = heading
        self.category: RelationshipCategory | None = links[0].category if links else None
        self.links: list[list[Link]] = self._group(self.order(links))

    @property
    def count(self) -> int:
        return len(self.links)

    def order(self, links: Iterable[Link]) -> list[Link]:
        if self.category is RelationshipCategory.DONATION:
            return sorted(links, key=_amount, reverse=True)
        if self.category in _TEMPORAL_CATEGORIES:
            return temporal_order(links)
        return list(links)

    def _group(self, links: list[Link]) -> list[list[Link]]:
        groups: dict[int, list[Link]] = {}
        for link in links:
            groups.setdefault(link.entity2_id, []).append(link)
        grouped = list(groups.values())
        if self.category is RelationshipCategory.DONATION:
            grouped.sort(key=lambda group: max(_amount(link) for link in group), reverse=True)
        return grouped

    def __repr__(self) -> str:
        return f"LinksGroup(keyword={self.keyword!r}, count={self.count})"


class SortedLinks:
    """An entity's links partitioned into named sections.

    ``counterparts`` maps each related entity id to its extension kinds; it
    decides which position and donation sections a link lands in.
    """

    def __init__(
        self,
        entity_id: int,
        relationships: Iterable[Relationship],
        counterparts: Mapping[int, Iterable[ExtensionKind]] | None = None,
    ) -> None:
        self.entity_id = entity_id
        kinds = {key: frozenset(value) for key, value in (counterparts or {}).items()}
        buckets: dict[str, list[Link]] = {keyword: [] for keyword in SECTION_HEADINGS}
        for relationship in relationships:
            if relationship.is_deleted or not relationship.involves(entity_id):
                continue
            link = relationship.link_for(entity_id)
            buckets[self._section_for(link, kinds.get(link.entity2_id, frozenset()))].append(link)
        self.sections: dict[str, LinksGroup] = {
            keyword: LinksGroup(links, keyword, SECTION_HEADINGS[keyword])
            for keyword, links in buckets.items()
        }

    def __getitem__(self, keyword: str) -> LinksGroup:
        return self.sections[keyword]

    def in_order(self, primary_type: PrimaryType) -> list[LinksGroup]:
        """Non-empty sections in display order for ``primary_type``."""

        order = PERSON_SECTION_ORDER if primary_type is PrimaryType.PERSON else ORG_SECTION_ORDER
        return [self.sections[keyword] for keyword in order if self.sections[keyword].count]

    @staticmethod
    def _section_for(link: Link, counterpart: frozenset[ExtensionKind]) -> str:
        category = link.category
        if category is RelationshipCategory.POSITION:
            if link.is_reverse:
                return "staff"
            if ExtensionKind.BUSINESS in counterpart:
                return "business_positions"
            if ExtensionKind.GOVERNMENT_BODY in counterpart:
                return "government_positions"
            if ExtensionKind.PERSON in counterpart:
                return "in_the_office_positions"
            return "other_positions_and_memberships"
        if category is RelationshipCategory.DONATION:
            if link.is_reverse:
                return "donors"
            if ExtensionKind.POLITICAL_FUNDRAISING in counterpart:
                return "political_fundraising_committees"
            return "donation_recipients"
        forward, reverse = _PLAIN_SECTIONS[category]
        return reverse if link.is_reverse else forward


def find_duplicate_triplets(relationships: Iterable[Relationship]) -> list[Triplet]:
    """Triplets carried by more than one live relationship, in first-seen order."""

    counts = Counter(
        relationship.triplet for relationship in relationships if not relationship.is_deleted
    )
    return [triplet for triplet, count in counts.items() if count > 1]
