"""Commit stage: validate merge commands and hand them to a storage writer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from powermap.domain.model import ContactKind, ExtensionSchemaError, definition_for
from powermap.domain.model import validate_attributes as validate_extension_attributes

from .commands import (
    AddAlias,
    AddContactItem,
    AddExtension,
    AddListMembership,
    AddTagging,
    AttachDocument,
    CreateRelationship,
    ExistingRelationship,
    FillExtensionAttributes,
    RefreshDonationTotals,
    RepointArticleLink,
    RepointDonationMatch,
    RepointExternalCategory,
    RepointImage,
)
from .errors import ValidationFailureError
from .plan import MergeEvent

if TYPE_CHECKING:
    from powermap.domain.model import PrimaryType
    from powermap.domain.ports.persistence import MergeWriter

    from .commands import MergeCommand, RelationshipTarget
    from .plan import MergePlan

log = logging.getLogger(__name__)

MAX_ALIAS_LENGTH: Final[int] = 200


def validate_command(command: MergeCommand, *, dest_id: int, primary_type: PrimaryType) -> None:
    """Raise ``ValidationFailureError`` if ``command`` must not be written."""

    category = command.CATEGORY

    def fail(field: str, reason: str) -> ValidationFailureError:
        return ValidationFailureError(field=field, reason=reason, category=category)

    entity_id = getattr(command, "entity_id", None)
    if entity_id is not None and entity_id != dest_id:
        raise fail("entity_id", f"targets entity {entity_id}, expected {dest_id}")

    match command:
        case AddExtension() | FillExtensionAttributes():
            if not definition_for(command.kind).applies_to(primary_type):
                raise fail("kind", f"{command.kind} does not apply to {primary_type} entities")
            try:
                validate_extension_attributes(command.kind, command.attributes)
            except ExtensionSchemaError as exc:
                raise fail("attributes", str(exc)) from exc
        case AddAlias():
            name = command.name.strip()
            if not name:
                raise fail("name", "alias name must not be blank")
            if len(name) > MAX_ALIAS_LENGTH:
                raise fail("name", f"alias name exceeds {MAX_ALIAS_LENGTH} characters")
        case AddContactItem(kind=ContactKind.EMAIL):
            address = str(command.attributes.get("address") or "")
            if "@" not in address:
                raise fail("address", f"{address!r} is not an email address")
        case AddContactItem(kind=ContactKind.PHONE):
            number = str(command.attributes.get("number") or "")
            if not number.strip():
                raise fail("number", "phone number must not be blank")
        case CreateRelationship():
            if command.entity1_id == command.entity2_id:
                raise fail("entity2_id", "relationship endpoints must differ")
            if dest_id not in (command.entity1_id, command.entity2_id):
                raise fail("entity1_id", f"relationship does not involve entity {dest_id}")
        case _:
            pass


def apply_merge_plan(
    plan: MergePlan,
    writer: MergeWriter,
    *,
    primary_type: PrimaryType,
) -> list[MergeEvent]:
    """Validate every command, then write them in plan order.

    Nothing is written unless every command validates. Writer failures propagate
    unchanged; the caller's unit of work rolls back.
    """

    for command in plan.commands:
        validate_command(command, dest_id=plan.dest_id, primary_type=primary_type)

    staged: dict[str, int] = {}
    events: list[MergeEvent] = []
    for command in plan.commands:
        record_id = _apply(command, writer, staged)
        events.append(MergeEvent(command.CATEGORY, command, record_id))

    log.debug("Applied %d merge command(s) for %s -> %s", len(events), plan.source_id, plan.dest_id)
    return events


def _resolve(target: RelationshipTarget, staged: dict[str, int], command: MergeCommand) -> int:
    if isinstance(target, ExistingRelationship):
        return target.relationship_id
    try:
        return staged[target.key]
    except KeyError:
        raise ValidationFailureError(
            field="relationship",
            reason=f"staged relationship {target.key!r} was never created",
            category=command.CATEGORY,
        ) from None


def _apply(  # noqa: C901, PLR0911
    command: MergeCommand,
    writer: MergeWriter,
    staged: dict[str, int],
) -> int | None:
    match command:
        case AddExtension():
            return writer.add_extension(command.entity_id, command.kind, command.attributes)
        case FillExtensionAttributes():
            writer.fill_extension_attributes(command.entity_id, command.kind, command.attributes)
            return None
        case AddContactItem():
            return writer.add_contact_item(command.entity_id, command.kind, command.attributes)
        case AddListMembership():
            return writer.add_list_membership(command.entity_id, command.list_id)
        case RepointImage():
            writer.repoint_image(command.image_id, command.entity_id)
            return command.image_id
        case AddAlias():
            return writer.add_alias(command.entity_id, command.name.strip())
        case AttachDocument():
            return writer.attach_entity_document(command.entity_id, command.document_id)
        case AddTagging():
            return writer.add_tagging(command.entity_id, command.tag_id)
        case RepointArticleLink():
            writer.repoint_article_link(command.link_id, command.entity_id)
            return command.link_id
        case RepointExternalCategory():
            writer.repoint_external_category(command.link_id, command.entity_id)
            return command.link_id
        case CreateRelationship():
            relationship_id = writer.create_relationship(
                entity1_id=command.entity1_id,
                entity2_id=command.entity2_id,
                category=command.category,
                attributes=command.attributes,
            )
            for document_id in command.document_ids:
                writer.attach_relationship_document(relationship_id, document_id)
            staged[command.key] = relationship_id
            return relationship_id
        case RepointDonationMatch():
            relationship_id = (
                _resolve(command.relationship, staged, command)
                if command.relationship is not None
                else None
            )
            writer.repoint_donation_match(
                command.dataset,
                command.match_id,
                role=command.role,
                entity_id=command.entity_id,
                relationship_id=relationship_id,
            )
            return command.match_id
        case RefreshDonationTotals():
            relationship_id = _resolve(command.relationship, staged, command)
            writer.refresh_donation_totals(relationship_id)
            return relationship_id
