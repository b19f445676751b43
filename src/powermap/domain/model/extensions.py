"""Static registry of entity extension types and their attribute schemas.

Every extension an entity can carry is declared here once. Merge planning
relies on the declared ``fields`` to decide which attributes belong to an
extension record and which of them may be filled from another record.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from .enums import PrimaryType

if TYPE_CHECKING:
    from .entity import Entity


class ExtensionKind(StrEnum):
    PERSON = "Person"
    ORG = "Org"
    POLITICAL_CANDIDATE = "PoliticalCandidate"
    ELECTED_REPRESENTATIVE = "ElectedRepresentative"
    BUSINESS = "Business"
    GOVERNMENT_BODY = "GovernmentBody"
    SCHOOL = "School"
    MEMBERSHIP_ORG = "MembershipOrg"
    PHILANTHROPY = "Philanthropy"
    NON_PROFIT = "NonProfit"
    POLITICAL_FUNDRAISING = "PoliticalFundraising"
    PRIVATE_COMPANY = "PrivateCompany"
    PUBLIC_COMPANY = "PublicCompany"
    INDUSTRY_TRADE = "IndustryTrade"
    LAW_FIRM = "LawFirm"
    LOBBYING_FIRM = "LobbyingFirm"
    PUBLIC_RELATIONS_FIRM = "PublicRelationsFirm"
    INDIVIDUAL_CAMPAIGN_COMMITTEE = "IndividualCampaignCommittee"
    PAC = "Pac"
    OTHER_CAMPAIGN_COMMITTEE = "OtherCampaignCommittee"
    MEDIA_ORG = "MediaOrg"
    THINK_TANK = "ThinkTank"
    CULTURAL = "Cultural"
    SOCIAL_CLUB = "SocialClub"
    PROFESSIONAL_ASSOCIATION = "ProfessionalAssociation"
    POLITICAL_PARTY = "PoliticalParty"
    LABOR_UNION = "LaborUnion"
    GSE = "Gse"
    BUSINESS_PERSON = "BusinessPerson"
    LOBBYIST = "Lobbyist"
    ACADEMIC = "Academic"
    MEDIA_PERSONALITY = "MediaPersonality"
    CONSULTING_FIRM = "ConsultingFirm"
    PUBLIC_INTELLECTUAL = "PublicIntellectual"
    PUBLIC_OFFICIAL = "PublicOfficial"
    LAWYER = "Lawyer"


type ExtensionAttributes = Mapping[str, object]


class ExtensionSchemaError(ValueError):
    """Raised when extension attributes do not fit the declared schema."""

    def __init__(self, *, kind: ExtensionKind, unknown_fields: tuple[str, ...]) -> None:
        self.kind = kind
        self.unknown_fields = unknown_fields
        super().__init__(f"{kind} has no fields named: {', '.join(unknown_fields)}")


@dataclass(frozen=True, slots=True)
class ExtensionDefinition:
    id: int
    kind: ExtensionKind
    display_name: str
    tier: int
    parent: PrimaryType | None
    fields: tuple[str, ...] = ()

    @property
    def has_fields(self) -> bool:
        return bool(self.fields)

    def applies_to(self, primary_type: PrimaryType) -> bool:
        return self.parent is None or self.parent is primary_type


def _define(
    id_: int,
    kind: ExtensionKind,
    display_name: str,
    *,
    tier: int,
    parent: PrimaryType | None,
    fields: tuple[str, ...] = (),
) -> ExtensionDefinition:
    return ExtensionDefinition(
        id=id_,
        kind=kind,
        display_name=display_name,
        tier=tier,
        parent=parent,
        fields=fields,
    )


_PERSON = PrimaryType.PERSON
_ORG = PrimaryType.ORG

_DEFINITIONS: Final[tuple[ExtensionDefinition, ...]] = (
    _define(
        1,
        ExtensionKind.PERSON,
        "Person",
        tier=1,
        parent=None,
        fields=(
            "name_last",
            "name_first",
            "name_middle",
            "name_prefix",
            "name_suffix",
            "name_nick",
            "name_maiden",
            "birthplace",
            "gender_id",
            "party_id",
            "is_independent",
            "net_worth",
            "nationality",
        ),
    ),
    _define(
        2,
        ExtensionKind.ORG,
        "Organization",
        tier=1,
        parent=None,
        fields=(
            "name",
            "name_nick",
            "employees",
            "revenue",
            "fedspending_id",
            "lda_registrant_id",
        ),
    ),
    _define(
        3,
        ExtensionKind.POLITICAL_CANDIDATE,
        "Political Candidate",
        tier=2,
        parent=_PERSON,
        fields=(
            "is_federal",
            "is_state",
            "is_local",
            "pres_fec_id",
            "senate_fec_id",
            "house_fec_id",
            "crp_id",
        ),
    ),
    _define(
        4,
        ExtensionKind.ELECTED_REPRESENTATIVE,
        "Elected Representative",
        tier=2,
        parent=_PERSON,
        fields=("bioguide_id", "govtrack_id", "crp_id", "pvs_id", "watchdog_id"),
    ),
    _define(
        5,
        ExtensionKind.BUSINESS,
        "Business",
        tier=2,
        parent=_ORG,
        fields=("annual_profit", "assets", "marketcap", "net_income"),
    ),
    _define(
        6,
        ExtensionKind.GOVERNMENT_BODY,
        "Government Body",
        tier=2,
        parent=_ORG,
        fields=("is_federal", "state_id", "city", "county", "municipality"),
    ),
    _define(
        7,
        ExtensionKind.SCHOOL,
        "School",
        tier=2,
        parent=_ORG,
        fields=("endowment", "students", "faculty", "tuition", "is_private"),
    ),
    _define(8, ExtensionKind.MEMBERSHIP_ORG, "Membership Organization", tier=2, parent=_ORG),
    _define(9, ExtensionKind.PHILANTHROPY, "Philanthropy", tier=2, parent=_ORG),
    _define(10, ExtensionKind.NON_PROFIT, "Other Not-for-Profit", tier=2, parent=_ORG),
    _define(
        11,
        ExtensionKind.POLITICAL_FUNDRAISING,
        "Political Fundraising Committee",
        tier=2,
        parent=_ORG,
        fields=("fec_id", "type_id", "state_id"),
    ),
    _define(12, ExtensionKind.PRIVATE_COMPANY, "Private Company", tier=3, parent=_ORG),
    _define(
        13,
        ExtensionKind.PUBLIC_COMPANY,
        "Public Company",
        tier=3,
        parent=_ORG,
        fields=("ticker", "sec_cik"),
    ),
    _define(14, ExtensionKind.INDUSTRY_TRADE, "Industry/Trade Association", tier=3, parent=_ORG),
    _define(15, ExtensionKind.LAW_FIRM, "Law Firm", tier=3, parent=_ORG),
    _define(16, ExtensionKind.LOBBYING_FIRM, "Lobbying Firm", tier=3, parent=_ORG),
    _define(17, ExtensionKind.PUBLIC_RELATIONS_FIRM, "Public Relations Firm", tier=3, parent=_ORG),
    _define(
        18,
        ExtensionKind.INDIVIDUAL_CAMPAIGN_COMMITTEE,
        "Individual Campaign Committee",
        tier=3,
        parent=_ORG,
    ),
    _define(19, ExtensionKind.PAC, "PAC", tier=3, parent=_ORG),
    _define(
        20,
        ExtensionKind.OTHER_CAMPAIGN_COMMITTEE,
        "Other Campaign Committee",
        tier=3,
        parent=_ORG,
    ),
    _define(21, ExtensionKind.MEDIA_ORG, "Media Organization", tier=3, parent=_ORG),
    _define(22, ExtensionKind.THINK_TANK, "Policy/Think Tank", tier=3, parent=_ORG),
    _define(23, ExtensionKind.CULTURAL, "Cultural/Arts", tier=3, parent=_ORG),
    _define(24, ExtensionKind.SOCIAL_CLUB, "Social Club", tier=3, parent=_ORG),
    _define(
        25,
        ExtensionKind.PROFESSIONAL_ASSOCIATION,
        "Professional Association",
        tier=3,
        parent=_ORG,
    ),
    _define(26, ExtensionKind.POLITICAL_PARTY, "Political Party", tier=3, parent=_ORG),
    _define(27, ExtensionKind.LABOR_UNION, "Labor Union", tier=3, parent=_ORG),
    _define(28, ExtensionKind.GSE, "Government-Sponsored Enterprise", tier=3, parent=_ORG),
    _define(
        29,
        ExtensionKind.BUSINESS_PERSON,
        "Business Person",
        tier=2,
        parent=_PERSON,
        fields=("sec_cik",),
    ),
    _define(
        30,
        ExtensionKind.LOBBYIST,
        "Lobbyist",
        tier=2,
        parent=_PERSON,
        fields=("lda_registrant_id",),
    ),
    _define(31, ExtensionKind.ACADEMIC, "Academic", tier=2, parent=_PERSON),
    _define(32, ExtensionKind.MEDIA_PERSONALITY, "Media Personality", tier=2, parent=_PERSON),
    _define(33, ExtensionKind.CONSULTING_FIRM, "Consulting Firm", tier=3, parent=_ORG),
    _define(34, ExtensionKind.PUBLIC_INTELLECTUAL, "Public Intellectual", tier=2, parent=_PERSON),
    _define(35, ExtensionKind.PUBLIC_OFFICIAL, "Public Official", tier=2, parent=_PERSON),
    _define(36, ExtensionKind.LAWYER, "Lawyer", tier=2, parent=_PERSON),
)

EXTENSION_REGISTRY: Final[Mapping[ExtensionKind, ExtensionDefinition]] = MappingProxyType(
    {definition.kind: definition for definition in _DEFINITIONS}
)
_BY_ID: Final[Mapping[int, ExtensionDefinition]] = MappingProxyType(
    {definition.id: definition for definition in _DEFINITIONS}
)

PRIMARY_EXTENSIONS: Final[Mapping[PrimaryType, ExtensionKind]] = MappingProxyType(
    {
        PrimaryType.PERSON: ExtensionKind.PERSON,
        PrimaryType.ORG: ExtensionKind.ORG,
    }
)


def definition_for(kind: ExtensionKind) -> ExtensionDefinition:
    return EXTENSION_REGISTRY[kind]


def definition_by_id(definition_id: int) -> ExtensionDefinition:
    try:
        return _BY_ID[definition_id]
    except KeyError:
        raise KeyError(f"Unknown extension definition id: {definition_id}") from None


def attributes_schema(kind: ExtensionKind) -> tuple[str, ...]:
    return EXTENSION_REGISTRY[kind].fields


def primary_extension(primary_type: PrimaryType) -> ExtensionKind:
    return PRIMARY_EXTENSIONS[primary_type]


def extensions_for(entity: Entity) -> tuple[ExtensionDefinition, ...]:
    """Return the definitions of every extension record the entity carries."""

    definitions = [EXTENSION_REGISTRY[record.kind] for record in entity.extension_records]
    return tuple(sorted(definitions, key=lambda definition: definition.id))


def types_for(primary_type: PrimaryType, *, tier: int | None = None) -> tuple[ExtensionDefinition, ...]:
    """Return the non-primary extensions selectable for a primary type, by name."""

    candidates = [
        definition
        for definition in _DEFINITIONS
        if definition.tier != 1
        and definition.applies_to(primary_type)
        and (tier is None or definition.tier == tier)
    ]
    return tuple(sorted(candidates, key=lambda definition: definition.kind.value))


def validate_attributes(kind: ExtensionKind, attributes: ExtensionAttributes) -> None:
    schema = set(attributes_schema(kind))
    unknown = tuple(sorted(name for name in attributes if name not in schema))
    if unknown:
        raise ExtensionSchemaError(kind=kind, unknown_fields=unknown)


def is_blank(value: object) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def fillable_attributes(
    kind: ExtensionKind,
    source: ExtensionAttributes,
    dest: ExtensionAttributes,
) -> dict[str, object]:
    """Source values for schema fields that are still blank on ``dest``.

    Populated destination values are never overwritten.
    """

    fillable: dict[str, object] = {}
    for name in attributes_schema(kind):
        value = source.get(name)
        if is_blank(value):
            continue
        if is_blank(dest.get(name)):
            fillable[name] = value
    return fillable
