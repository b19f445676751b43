"""Enumerations shared across the domain model."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class PrimaryType(StrEnum):
    PERSON = "Person"
    ORG = "Org"


class RelationshipCategory(IntEnum):
    POSITION = 1
    EDUCATION = 2
    MEMBERSHIP = 3
    FAMILY = 4
    DONATION = 5
    TRANSACTION = 6
    LOBBYING = 7
    SOCIAL = 8
    PROFESSIONAL = 9
    OWNERSHIP = 10
    HIERARCHY = 11
    GENERIC = 12

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


class ListAccess(IntEnum):
    OPEN = 0
    CLOSED = 1
    PRIVATE = 2


class Ability(StrEnum):
    EDIT = "edit"
    DELETE = "delete"
    MERGE = "merge"
    ADMIN = "admin"
    LIST = "list"
    BULK = "bulk"
    MATCH = "match"


class TaggableType(StrEnum):
    ENTITY = "entity"
    LIST = "list"
    RELATIONSHIP = "relationship"


class ReferenceableType(StrEnum):
    ENTITY = "entity"
    RELATIONSHIP = "relationship"


class ContactKind(StrEnum):
    ADDRESS = "address"
    PHONE = "phone"
    EMAIL = "email"


class DonationDataset(StrEnum):
    """External campaign-finance datasets that back donation relationships."""

    OPEN_SECRETS = "os"
    NYS = "ny"


class DonationRole(StrEnum):
    DONOR = "donor"
    RECIPIENT = "recipient"
