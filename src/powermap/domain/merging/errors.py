"""Error taxonomy for entity merges and merge-chain resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from powermap.domain.model import Entity, PrimaryType

    from .commands import MergeCategory


class MergeError(Exception):
    """Base class for every failure surfaced by a merge."""


class MissingArgumentError(MergeError, TypeError):
    """Raised when a merge is constructed without two distinct entity aggregates."""

    def __init__(self, *, argument: str, reason: str) -> None:
        self.argument = argument
        self.reason = reason
        super().__init__(f"{argument}: {reason}")


class ExtensionMismatchError(MergeError, ValueError):
    """Raised when source and dest have different primary types."""

    def __init__(self, *, source_type: PrimaryType, dest_type: PrimaryType) -> None:
        self.source_type = source_type
        self.dest_type = dest_type
        super().__init__(f"Cannot merge a {source_type} entity into a {dest_type} entity")


class AlreadyMergedError(MergeError):
    """Raised when an entity taking part in a merge has already been merged away."""

    def __init__(self, *, entity_id: int, merged_id: int) -> None:
        self.entity_id = entity_id
        self.merged_id = merged_id
        super().__init__(f"Entity {entity_id} has already been merged into {merged_id}")


class ValidationFailureError(MergeError, ValueError):
    """Raised when a staged write fails validation at commit time."""

    def __init__(
        self,
        *,
        field: str,
        reason: str,
        category: MergeCategory | None = None,
    ) -> None:
        self.field = field
        self.reason = reason
        self.category = category
        prefix = f"[{category}] " if category is not None else ""
        super().__init__(f"{prefix}{field}: {reason}")


class ReferenceInvalidError(MergeError):
    """Raised when a staged write points at a record storage does not accept."""

    def __init__(self, *, category: MergeCategory, detail: str) -> None:
        self.category = category
        self.detail = detail
        super().__init__(f"[{category}] invalid reference: {detail}")


class MergeChainError(RuntimeError):
    """Raised when the ``merged_id`` chain is corrupt."""

    def __init__(self, message: str, *, chain: tuple[int, ...]) -> None:
        self.chain = chain
        super().__init__(message)


class MergeCycleError(MergeChainError):
    """Raised when following ``merged_id`` revisits an entity."""


class BrokenMergeChainError(MergeChainError):
    """Raised when ``merged_id`` points at an entity that does not exist."""


class MergeChainTooDeepError(MergeChainError):
    """Raised when a chain is longer than the configured maximum."""


class EntityNotFoundError(LookupError):
    def __init__(self, entity_id: int) -> None:
        self.entity_id = entity_id
        super().__init__(f"Entity {entity_id} not found")


class MergedEntityError(LookupError):
    """Raised by merge-aware lookups; ``entity`` is where the chain ends."""

    def __init__(self, *, requested_id: int, entity: Entity) -> None:
        self.requested_id = requested_id
        self.entity = entity
        super().__init__(f"Entity {requested_id} has been merged into {entity.id}")
