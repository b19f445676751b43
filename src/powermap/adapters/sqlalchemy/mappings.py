"""SQLAlchemy mapping metadata for the power-map domain model."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from enum import IntEnum
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    and_,
    event,
    orm,
)
from sqlalchemy.orm import configure_mappers, relationship

from powermap.domain.model import (
    Ability,
    Address,
    Alias,
    Article,
    ArticleLink,
    AssociationData,
    Document,
    Email,
    Entity,
    EntityList,
    EntityMerge,
    ExtensionKind,
    ExtensionRecord,
    ExternalCategoryLink,
    Image,
    ListAccess,
    ListMembership,
    NyDisclosure,
    NyMatch,
    OsDonation,
    OsMatch,
    Phone,
    PrimaryType,
    Reference,
    ReferenceableType,
    Relationship,
    RelationshipCategory,
    Tag,
    TaggableType,
    Tagging,
    User,
    UserPermission,
)

from .schema import AssociationDataPayload, MergeSummaryPayload

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class IntEnumType[TEnum: IntEnum](TypeDecorator[TEnum]):
    """Store an ``IntEnum`` as its integer value."""

    impl = Integer
    cache_ok = True

    def __init__(self, enum_cls: type[TEnum]) -> None:
        super().__init__()
        self.enum_cls = enum_cls

    def process_bind_param(self, value: TEnum | int | None, dialect: Dialect) -> int | None:
        _ = dialect
        if value is None:
            return None
        return int(self.enum_cls(value))

    def process_result_value(self, value: int | None, dialect: Dialect) -> TEnum | None:
        _ = dialect
        if value is None:
            return None
        return self.enum_cls(value)


class AbilitySetType(TypeDecorator[frozenset[Ability]]):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: frozenset[Ability] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(sorted(ability.value for ability in value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> frozenset[Ability]:
        _ = dialect
        if value is None:
            return frozenset()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return frozenset()
        items = cast(list[Any], loaded)
        return frozenset(Ability(item) for item in items if isinstance(item, str))


class AssociationDataType(TypeDecorator[AssociationData]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: AssociationData | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return AssociationDataPayload.from_domain(value).model_dump_json()

    def process_result_value(self, value: str | None, dialect: Dialect) -> AssociationData | None:
        _ = dialect
        if value is None:
            return None
        return AssociationDataPayload.model_validate_json(value).to_domain()


class MergeSummaryType(TypeDecorator[dict[str, int]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: dict[str, int] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return MergeSummaryPayload(value).model_dump_json()

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, int]:
        _ = dialect
        if value is None:
            return {}
        return dict(MergeSummaryPayload.model_validate_json(value).root)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _entity_fk(name: str, *, nullable: bool = False) -> Column[int]:
    return Column(name, Integer, ForeignKey("entity.id", ondelete="CASCADE"), nullable=nullable)


# Accounts --------------------------------------------------------------------

user_table = Table(
    "user_account",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(64), nullable=False, unique=True),
    Column("email", String, nullable=True),
    Column("abilities", AbilitySetType(), nullable=False, default=frozenset),
    Column("created_at", UTCDateTime(), nullable=False),
)

user_permission_table = Table(
    "user_permission",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "user_id", Integer, ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False
    ),
    Column("resource_type", String(32), nullable=False),
    Column("access_rules", JSON, nullable=False, default=dict),
    UniqueConstraint("user_id", "resource_type"),
)

# Entities --------------------------------------------------------------------

entity_table = Table(
    "entity",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("primary_type", Enum(PrimaryType, native_enum=False), nullable=False),
    Column("blurb", String(200), nullable=True),
    Column("summary", Text, nullable=True),
    Column("start_date", String(10), nullable=True),
    Column("end_date", String(10), nullable=True),
    Column("is_deleted", Boolean, nullable=False, default=False),
    Column("merged_id", Integer, ForeignKey("entity.id"), nullable=True),
    Column("link_count", Integer, nullable=False, default=0),
    Column("created_by_user_id", Integer, ForeignKey("user_account.id"), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=True),
    Column("association_data", AssociationDataType(), nullable=True),
    Index("ix_entity_merged_id", "merged_id"),
)

alias_table = Table(
    "alias",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    _entity_fk("entity_id"),
    Column("name", String(200), nullable=False),
    Column("is_primary", Boolean, nullable=False, default=False),
    UniqueConstraint("entity_id", "name"),
)

extension_record_table = Table(
    "extension_record",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    _entity_fk("entity_id"),
    Column("kind", Enum(ExtensionKind, native_enum=False), nullable=False),
    Column("attributes", JSON, nullable=False, default=dict),
    UniqueConstraint("entity_id", "kind"),
)

address_table = Table(
    "address",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    _entity_fk("entity_id"),
    Column("street1", String, nullable=True),
    Column("street2", String, nullable=True),
    Column("city", String, nullable=True),
    Column("state", String, nullable=True),
    Column("postal", String(20), nullable=True),
    Column("country", String, nullable=True),
    Column("latitude", Float, nullable=True),
    Column("longitude", Float, nullable=True),
)

phone_table = Table(
    "phone",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    _entity_fk("entity_id"),
    Column("number", String(40), nullable=False),
    Column("kind", String(20), nullable=True),
)

email_table = Table(
    "email",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    _entity_fk("entity_id"),
    Column("address", String, nullable=False),
)

image_table = Table(
    "image",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    _entity_fk("entity_id"),
    Column("filename", String, nullable=False),
    Column("caption", Text, nullable=True),
    Column("url", String, nullable=True),
    Column("is_featured", Boolean, nullable=False, default=False),
    Column("is_deleted", Boolean, nullable=False, default=False),
)

# Catalog records -------------------------------------------------------------

document_table = Table(
    "document",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("url", String, nullable=False, unique=True),
    Column("name", String, nullable=True),
)

reference_table = Table(
    "reference",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "document_id", Integer, ForeignKey("document.id", ondelete="CASCADE"), nullable=False
    ),
    Column("referenceable_type", Enum(ReferenceableType, native_enum=False), nullable=False),
    Column("referenceable_id", Integer, nullable=False),
    UniqueConstraint("document_id", "referenceable_type", "referenceable_id"),
    Index("ix_reference_owner", "referenceable_type", "referenceable_id"),
)

tag_table = Table(
    "tag",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False, unique=True),
    Column("description", Text, nullable=True),
    Column("restricted", Boolean, nullable=False, default=False),
)

tagging_table = Table(
    "tagging",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("tag_id", Integer, ForeignKey("tag.id", ondelete="CASCADE"), nullable=False),
    Column("tagable_type", Enum(TaggableType, native_enum=False), nullable=False),
    Column("tagable_id", Integer, nullable=False),
    UniqueConstraint("tag_id", "tagable_type", "tagable_id"),
    Index("ix_tagging_owner", "tagable_type", "tagable_id"),
)

list_table = Table(
    "entity_list",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("description", Text, nullable=True),
    Column("access", IntEnumType(ListAccess), nullable=False, default=ListAccess.OPEN),
    Column("creator_user_id", Integer, ForeignKey("user_account.id"), nullable=True),
    Column("is_deleted", Boolean, nullable=False, default=False),
    Column("created_at", UTCDateTime(), nullable=False),
)

list_membership_table = Table(
    "list_membership",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("list_id", Integer, ForeignKey("entity_list.id", ondelete="CASCADE"), nullable=False),
    _entity_fk("entity_id"),
    UniqueConstraint("list_id", "entity_id"),
)

article_table = Table(
    "article",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String, nullable=False),
    Column("url", String, nullable=False),
)

article_link_table = Table(
    "article_entity",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("article_id", Integer, ForeignKey("article.id", ondelete="CASCADE"), nullable=False),
    _entity_fk("entity_id"),
    Column("is_featured", Boolean, nullable=False, default=False),
    UniqueConstraint("article_id", "entity_id"),
)

external_category_table = Table(
    "external_category",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    _entity_fk("entity_id"),
    Column("category_id", String(64), nullable=False),
    Column("source", String(32), nullable=True),
    UniqueConstraint("entity_id", "category_id"),
)

# Relationships and donations -------------------------------------------------

relationship_table = Table(
    "relationship",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    _entity_fk("entity1_id"),
    _entity_fk("entity2_id"),
    Column("category_id", IntEnumType(RelationshipCategory), key="category", nullable=False),
    Column("description1", String(100), nullable=True),
    Column("description2", String(100), nullable=True),
    Column("amount", BigInteger, nullable=True),
    Column("filings", Integer, nullable=True),
    Column("start_date", String(10), nullable=True),
    Column("end_date", String(10), nullable=True),
    Column("is_current", Boolean, nullable=True),
    Column("notes", Text, nullable=True),
    Column("is_deleted", Boolean, nullable=False, default=False),
    Column("created_by_user_id", Integer, ForeignKey("user_account.id"), nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=True),
    CheckConstraint("entity1_id <> entity2_id", name="distinct_endpoints"),
    Index("ix_relationship_triplet", "entity1_id", "entity2_id", "category"),
    Index("ix_relationship_entity2", "entity2_id"),
)

os_donation_table = Table(
    "os_donation",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("fec_cycle_id", String(64), nullable=False, unique=True),
    Column("cycle", String(4), nullable=True),
    Column("amount", BigInteger, nullable=False, default=0),
    Column("date", String(10), nullable=True),
    Column("recipid", String(16), nullable=True),
    Column("cmteid", String(16), nullable=True),
)

os_match_table = Table(
    "os_match",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "os_donation_id",
        Integer,
        ForeignKey("os_donation.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("donor_id", Integer, ForeignKey("entity.id"), nullable=True),
    Column("recip_id", Integer, ForeignKey("entity.id"), nullable=True),
    Column("cmte_id", Integer, ForeignKey("entity.id"), nullable=True),
    Column(
        "relationship_id", Integer, ForeignKey("relationship.id", ondelete="SET NULL"), nullable=True
    ),
)

ny_disclosure_table = Table(
    "ny_disclosure",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("filer_id", String(16), nullable=True),
    Column("amount", BigInteger, nullable=False, default=0),
    Column("date", String(10), nullable=True),
)

ny_match_table = Table(
    "ny_match",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "ny_disclosure_id",
        Integer,
        ForeignKey("ny_disclosure.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("donor_id", Integer, ForeignKey("entity.id"), nullable=True),
    Column("recip_id", Integer, ForeignKey("entity.id"), nullable=True),
    Column(
        "relationship_id", Integer, ForeignKey("relationship.id", ondelete="SET NULL"), nullable=True
    ),
)

# Audit -----------------------------------------------------------------------

entity_merge_table = Table(
    "entity_merge",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("source_id", Integer, ForeignKey("entity.id"), nullable=False),
    Column("dest_id", Integer, ForeignKey("entity.id"), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("created_by_user_id", Integer, ForeignKey("user_account.id"), nullable=True),
    Column("summary", MergeSummaryType(), nullable=False, default=dict),
    Column("potential_duplicate_ids", JSON, nullable=False, default=list),
    Index("ix_entity_merge_source", "source_id"),
)


def _references_relationship(
    owner_table: Table, owner_type: ReferenceableType
) -> orm.RelationshipProperty[Reference]:
    return relationship(
        Reference,
        cascade="all, delete-orphan",
        primaryjoin=and_(
            reference_table.c.referenceable_id == owner_table.c.id,
            reference_table.c.referenceable_type == owner_type,
        ),
        foreign_keys=[reference_table.c.referenceable_id],
        overlaps="_references",
    )


def _taggings_relationship(
    owner_table: Table, owner_type: TaggableType
) -> orm.RelationshipProperty[Tagging]:
    return relationship(
        Tagging,
        cascade="all, delete-orphan",
        primaryjoin=and_(
            tagging_table.c.tagable_id == owner_table.c.id,
            tagging_table.c.tagable_type == owner_type,
        ),
        foreign_keys=[tagging_table.c.tagable_id],
        overlaps="_taggings",
    )


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        User,
        user_table,
        properties={
            "_permissions": relationship(UserPermission, cascade="all, delete-orphan"),
        },
    )
    mapper_registry.map_imperatively(UserPermission, user_permission_table)

    mapper_registry.map_imperatively(
        Entity,
        entity_table,
        properties={
            "_aliases": relationship(
                Alias,
                cascade="all, delete-orphan",
                order_by=alias_table.c.id,
            ),
            "_extension_records": relationship(
                ExtensionRecord,
                cascade="all, delete-orphan",
                order_by=extension_record_table.c.id,
            ),
            "_addresses": relationship(
                Address,
                cascade="all, delete-orphan",
                order_by=address_table.c.id,
            ),
            "_phones": relationship(
                Phone,
                cascade="all, delete-orphan",
                order_by=phone_table.c.id,
            ),
            "_emails": relationship(
                Email,
                cascade="all, delete-orphan",
                order_by=email_table.c.id,
            ),
            "_images": relationship(
                Image,
                cascade="save-update, merge",
                order_by=image_table.c.id,
            ),
            "_references": _references_relationship(entity_table, ReferenceableType.ENTITY),
            "_taggings": _taggings_relationship(entity_table, TaggableType.ENTITY),
            "_list_memberships": relationship(
                ListMembership,
                cascade="all, delete-orphan",
                order_by=list_membership_table.c.id,
            ),
            "_article_links": relationship(
                ArticleLink,
                cascade="save-update, merge",
                order_by=article_link_table.c.id,
            ),
            "_external_categories": relationship(
                ExternalCategoryLink,
                cascade="save-update, merge",
                order_by=external_category_table.c.id,
            ),
        },
    )
    mapper_registry.map_imperatively(Alias, alias_table)
    mapper_registry.map_imperatively(ExtensionRecord, extension_record_table)
    mapper_registry.map_imperatively(Address, address_table)
    mapper_registry.map_imperatively(Phone, phone_table)
    mapper_registry.map_imperatively(Email, email_table)
    mapper_registry.map_imperatively(Image, image_table)
    mapper_registry.map_imperatively(ListMembership, list_membership_table)
    mapper_registry.map_imperatively(ArticleLink, article_link_table)
    mapper_registry.map_imperatively(ExternalCategoryLink, external_category_table)

    mapper_registry.map_imperatively(Document, document_table)
    mapper_registry.map_imperatively(Reference, reference_table)
    mapper_registry.map_imperatively(Tag, tag_table)
    mapper_registry.map_imperatively(Tagging, tagging_table)
    mapper_registry.map_imperatively(EntityList, list_table)
    mapper_registry.map_imperatively(Article, article_table)

    mapper_registry.map_imperatively(
        Relationship,
        relationship_table,
        properties={
            "_references": _references_relationship(
                relationship_table, ReferenceableType.RELATIONSHIP
            ),
        },
    )

    mapper_registry.map_imperatively(OsDonation, os_donation_table)
    mapper_registry.map_imperatively(
        OsMatch,
        os_match_table,
        properties={"_donation": relationship(OsDonation, lazy="joined")},
    )
    mapper_registry.map_imperatively(NyDisclosure, ny_disclosure_table)
    mapper_registry.map_imperatively(
        NyMatch,
        ny_match_table,
        properties={"_disclosure": relationship(NyDisclosure, lazy="joined")},
    )

    mapper_registry.map_imperatively(EntityMerge, entity_merge_table)

    configure_mappers()
    return mapper_registry


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Turn on foreign-key enforcement for every new SQLite connection of ``engine``."""

    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:  # pyright: ignore[reportUnusedFunction]
        _ = connection_record
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
