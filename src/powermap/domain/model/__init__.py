"""Domain model for the power map."""

from __future__ import annotations

from .aggregate import EntityAggregate
from .audit import EntityMerge
from .catalog import Article, Document, EntityList, Tag
from .donations import DonationMatch, NyDisclosure, NyMatch, OsDonation, OsMatch, role_of
from .entity import (
    Address,
    Alias,
    ArticleLink,
    ContactItem,
    Email,
    Entity,
    ExtensionRecord,
    ExternalCategoryLink,
    Image,
    ListMembership,
    Phone,
    Reference,
    Tagging,
    utcnow,
)
from .enums import (
    Ability,
    ContactKind,
    DonationDataset,
    DonationRole,
    ListAccess,
    PrimaryType,
    ReferenceableType,
    RelationshipCategory,
    TaggableType,
)
from .extensions import (
    EXTENSION_REGISTRY,
    ExtensionDefinition,
    ExtensionKind,
    ExtensionSchemaError,
    attributes_schema,
    definition_by_id,
    definition_for,
    extensions_for,
    fillable_attributes,
    primary_extension,
    types_for,
    validate_attributes,
)
from .relationship import Link, Relationship, Triplet
from .snapshots import AssociationData
from .user import (
    InvalidOperationError,
    SetOperation,
    TagAccessRules,
    User,
    UserPermission,
)

__all__ = [
    "EXTENSION_REGISTRY",
    "Ability",
    "Address",
    "Alias",
    "Article",
    "ArticleLink",
    "AssociationData",
    "ContactItem",
    "ContactKind",
    "Document",
    "DonationDataset",
    "DonationMatch",
    "DonationRole",
    "Email",
    "Entity",
    "EntityAggregate",
    "EntityList",
    "EntityMerge",
    "ExtensionDefinition",
    "ExtensionKind",
    "ExtensionRecord",
    "ExtensionSchemaError",
    "ExternalCategoryLink",
    "Image",
    "InvalidOperationError",
    "Link",
    "ListAccess",
    "ListMembership",
    "NyDisclosure",
    "NyMatch",
    "OsDonation",
    "OsMatch",
    "Phone",
    "PrimaryType",
    "Reference",
    "ReferenceableType",
    "Relationship",
    "RelationshipCategory",
    "SetOperation",
    "Tag",
    "TagAccessRules",
    "TaggableType",
    "Tagging",
    "Triplet",
    "User",
    "UserPermission",
    "attributes_schema",
    "definition_by_id",
    "definition_for",
    "extensions_for",
    "fillable_attributes",
    "primary_extension",
    "role_of",
    "types_for",
    "utcnow",
    "validate_attributes",
]
