"""Entity aggregate: a person or organization node and the records it owns."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, ClassVar

from .enums import ContactKind, PrimaryType, ReferenceableType, TaggableType
from .extensions import (
    ExtensionKind,
    definition_for,
    primary_extension,
    validate_attributes,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .snapshots import AssociationData


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(eq=False, kw_only=True)
class Alias:
    id: int | None = None
    entity_id: int | None = None
    name: str
    is_primary: bool = False


@dataclass(eq=False, kw_only=True)
class ExtensionRecord:
    """One applicable extension on an entity, with its attribute values."""

    id: int | None = None
    entity_id: int | None = None
    kind: ExtensionKind
    attributes: dict[str, object] = field(default_factory=dict[str, object])

    def __post_init__(self) -> None:
        validate_attributes(self.kind, self.attributes)


@dataclass(eq=False, kw_only=True)
class Address:
    id: int | None = None
    entity_id: int | None = None
    street1: str | None = None
    street2: str | None = None
    city: str | None = None
    state: str | None = None
    postal: str | None = None
    country: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    KIND: ClassVar[ContactKind] = ContactKind.ADDRESS

    @property
    def merge_key(self) -> tuple[object, ...]:
        if self.latitude is not None and self.longitude is not None:
            return ("geo", round(self.latitude, 6), round(self.longitude, 6))
        parts = (self.street1, self.city, self.postal, self.country)
        return ("street", *((part or "").strip().casefold() for part in parts))

    def contact_attributes(self) -> dict[str, object]:
        return {
            "street1": self.street1,
            "street2": self.street2,
            "city": self.city,
            "state": self.state,
            "postal": self.postal,
            "country": self.country,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


@dataclass(eq=False, kw_only=True)
class Phone:
    id: int | None = None
    entity_id: int | None = None
    number: str
    kind: str | None = None

    KIND: ClassVar[ContactKind] = ContactKind.PHONE

    @property
    def merge_key(self) -> tuple[object, ...]:
        return ("phone", "".join(self.number.split()))

    def contact_attributes(self) -> dict[str, object]:
        return {"number": self.number, "kind": self.kind}


@dataclass(eq=False, kw_only=True)
class Email:
    id: int | None = None
    entity_id: int | None = None
    address: str

    KIND: ClassVar[ContactKind] = ContactKind.EMAIL

    @property
    def merge_key(self) -> tuple[object, ...]:
        return ("email", self.address.strip().casefold())

    def contact_attributes(self) -> dict[str, object]:
        return {"address": self.address}


type ContactItem = Address | Phone | Email


@dataclass(eq=False, kw_only=True)
class Image:
    id: int | None = None
    entity_id: int | None = None
    filename: str
    caption: str | None = None
    url: str | None = None
    is_featured: bool = False
    is_deleted: bool = False


@dataclass(eq=False, kw_only=True)
class Reference:
    """Attachment of a document to an entity or relationship."""

    id: int | None = None
    document_id: int
    referenceable_type: ReferenceableType
    referenceable_id: int | None = None


@dataclass(eq=False, kw_only=True)
class Tagging:
    id: int | None = None
    tag_id: int
    tagable_type: TaggableType
    tagable_id: int | None = None


@dataclass(eq=False, kw_only=True)
class ListMembership:
    id: int | None = None
    list_id: int
    entity_id: int | None = None


@dataclass(eq=False, kw_only=True)
class ArticleLink:
    id: int | None = None
    article_id: int
    entity_id: int | None = None
    is_featured: bool = False


@dataclass(eq=False, kw_only=True)
class ExternalCategoryLink:
    """Classification of an entity by an external dataset (e.g. an industry code)."""

    id: int | None = None
    entity_id: int | None = None
    category_id: str
    source: str | None = None


@dataclass(eq=False, kw_only=True)
class Entity:
    """A person or organization in the power map.

    A new entity always gets its primary alias and its primary extension record;
    rows loaded from storage are left as they are.
    """

    id: int | None = None
    name: str
    primary_type: PrimaryType
    blurb: str | None = None
    summary: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    is_deleted: bool = False
    merged_id: int | None = None
    link_count: int = 0
    created_by_user_id: int | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
    association_data: AssociationData | None = None

    _aliases: list[Alias] = field(default_factory=list["Alias"], repr=False)
    _extension_records: list[ExtensionRecord] = field(
        default_factory=list["ExtensionRecord"], repr=False
    )
    _addresses: list[Address] = field(default_factory=list["Address"], repr=False)
    _phones: list[Phone] = field(default_factory=list["Phone"], repr=False)
    _emails: list[Email] = field(default_factory=list["Email"], repr=False)
    _images: list[Image] = field(default_factory=list["Image"], repr=False)
    _references: list[Reference] = field(default_factory=list["Reference"], repr=False)
    _taggings: list[Tagging] = field(default_factory=list["Tagging"], repr=False)
    _list_memberships: list[ListMembership] = field(
        default_factory=list["ListMembership"], repr=False
    )
    _article_links: list[ArticleLink] = field(default_factory=list["ArticleLink"], repr=False)
    _external_categories: list[ExternalCategoryLink] = field(
        default_factory=list["ExternalCategoryLink"], repr=False
    )

    def __post_init__(self) -> None:
        self.name = self.name.strip()
        if not self.name:
            raise ValueError("Entity name must not be blank")
        self.ensure_primary_records()

    # Read-only views ---------------------------------------------------------

    @property
    def aliases(self) -> tuple[Alias, ...]:
        return tuple(self._aliases)

    @property
    def primary_alias(self) -> Alias:
        primaries = [alias for alias in self._aliases if alias.is_primary]
        if len(primaries) != 1:
            raise ValueError(f"Entity {self.id} has {len(primaries)} primary aliases")
        return primaries[0]

    @property
    def alias_names(self) -> frozenset[str]:
        return frozenset(alias.name for alias in self._aliases)

    @property
    def extension_records(self) -> tuple[ExtensionRecord, ...]:
        return tuple(self._extension_records)

    @property
    def extension_kinds(self) -> frozenset[ExtensionKind]:
        return frozenset(record.kind for record in self._extension_records)

    @property
    def addresses(self) -> tuple[Address, ...]:
        return tuple(self._addresses)

    @property
    def phones(self) -> tuple[Phone, ...]:
        return tuple(self._phones)

    @property
    def emails(self) -> tuple[Email, ...]:
        return tuple(self._emails)

    @property
    def contact_items(self) -> tuple[ContactItem, ...]:
        return (*self._addresses, *self._phones, *self._emails)

    @property
    def images(self) -> tuple[Image, ...]:
        return tuple(image for image in self._images if not image.is_deleted)

    @property
    def references(self) -> tuple[Reference, ...]:
        return tuple(self._references)

    @property
    def document_ids(self) -> frozenset[int]:
        return frozenset(reference.document_id for reference in self._references)

    @property
    def taggings(self) -> tuple[Tagging, ...]:
        return tuple(self._taggings)

    @property
    def tag_ids(self) -> frozenset[int]:
        return frozenset(tagging.tag_id for tagging in self._taggings)

    @property
    def list_ids(self) -> frozenset[int]:
        return frozenset(membership.list_id for membership in self._list_memberships)

    @property
    def article_links(self) -> tuple[ArticleLink, ...]:
        return tuple(self._article_links)

    @property
    def external_categories(self) -> tuple[ExternalCategoryLink, ...]:
        return tuple(self._external_categories)

    @property
    def has_merges(self) -> bool:
        return self.merged_id is not None

    # Mutation ----------------------------------------------------------------

    def ensure_primary_records(self) -> None:
        """Add the primary alias and primary extension record if either is missing."""

        if not any(alias.is_primary for alias in self._aliases):
            self._aliases.append(Alias(name=self.name, is_primary=True))
        primary_kind = primary_extension(self.primary_type)
        if not self.has_extension(primary_kind):
            self._extension_records.append(ExtensionRecord(kind=primary_kind))

    def has_extension(self, kind: ExtensionKind) -> bool:
        return any(record.kind is kind for record in self._extension_records)

    def extension_record(self, kind: ExtensionKind) -> ExtensionRecord | None:
        for record in self._extension_records:
            if record.kind is kind:
                return record
        return None

    def add_extension(
        self,
        kind: ExtensionKind,
        attributes: Mapping[str, object] | None = None,
    ) -> ExtensionRecord:
        definition = definition_for(kind)
        if not definition.applies_to(self.primary_type):
            raise ValueError(f"{kind} does not apply to {self.primary_type} entities")
        existing = self.extension_record(kind)
        if existing is not None:
            return existing
        record = ExtensionRecord(kind=kind, attributes=dict(attributes or {}))
        self._extension_records.append(record)
        return record

    def add_alias(self, name: str) -> Alias:
        for alias in self._aliases:
            if alias.name == name:
                return alias
        alias = Alias(name=name, is_primary=False)
        self._aliases.append(alias)
        return alias

    def add_address(self, address: Address) -> None:
        self._addresses.append(address)

    def add_phone(self, number: str, *, kind: str | None = None) -> Phone:
        phone = Phone(number=number, kind=kind)
        self._phones.append(phone)
        return phone

    def add_email(self, address: str) -> Email:
        email = Email(address=address)
        self._emails.append(email)
        return email

    def add_image(self, filename: str, *, caption: str | None = None) -> Image:
        image = Image(filename=filename, caption=caption)
        self._images.append(image)
        return image

    def attach_document(self, document_id: int) -> None:
        if document_id in self.document_ids:
            return
        self._references.append(
            Reference(document_id=document_id, referenceable_type=ReferenceableType.ENTITY)
        )

    def add_tag(self, tag_id: int) -> None:
        if tag_id in self.tag_ids:
            return
        self._taggings.append(Tagging(tag_id=tag_id, tagable_type=TaggableType.ENTITY))

    def add_to_list(self, list_id: int) -> None:
        if list_id in self.list_ids:
            return
        self._list_memberships.append(ListMembership(list_id=list_id))

    def link_article(self, article_id: int, *, is_featured: bool = False) -> None:
        self._article_links.append(ArticleLink(article_id=article_id, is_featured=is_featured))

    def add_external_category(self, category_id: str, *, source: str | None = None) -> None:
        self._external_categories.append(
            ExternalCategoryLink(category_id=category_id, source=source)
        )
