"""Entity merging: planning, validation, commit and merge-chain resolution."""

from __future__ import annotations

from .apply import MAX_ALIAS_LENGTH, apply_merge_plan, validate_command
from .chain import DEFAULT_MAX_MERGE_DEPTH, find_with_merges, resolve_merge_chain
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
    MergeCategory,
    MergeCommand,
    RefreshDonationTotals,
    RepointArticleLink,
    RepointDonationMatch,
    RepointExternalCategory,
    RepointImage,
    StagedRelationship,
)
from .errors import (
    AlreadyMergedError,
    BrokenMergeChainError,
    EntityNotFoundError,
    ExtensionMismatchError,
    MergeChainError,
    MergeChainTooDeepError,
    MergeCycleError,
    MergedEntityError,
    MergeError,
    MissingArgumentError,
    ReferenceInvalidError,
    ValidationFailureError,
)
from .merger import RELATIONSHIP_COPY_FIELDS, EntityMerger
from .plan import MergeEvent, MergePlan, MergeResult, PotentialDuplicate
from .service import commit_merge, merge_entities, plan_merge

__all__ = [
    "DEFAULT_MAX_MERGE_DEPTH",
    "MAX_ALIAS_LENGTH",
    "RELATIONSHIP_COPY_FIELDS",
    "AddAlias",
    "AddContactItem",
    "AddExtension",
    "AddListMembership",
    "AddTagging",
    "AlreadyMergedError",
    "AttachDocument",
    "BrokenMergeChainError",
    "CreateRelationship",
    "EntityMerger",
    "EntityNotFoundError",
    "ExistingRelationship",
    "ExtensionMismatchError",
    "FillExtensionAttributes",
    "MergeCategory",
    "MergeChainError",
    "MergeChainTooDeepError",
    "MergeCommand",
    "MergeCycleError",
    "MergeError",
    "MergeEvent",
    "MergePlan",
    "MergeResult",
    "MergedEntityError",
    "MissingArgumentError",
    "PotentialDuplicate",
    "ReferenceInvalidError",
    "RefreshDonationTotals",
    "RepointArticleLink",
    "RepointDonationMatch",
    "RepointExternalCategory",
    "RepointImage",
    "StagedRelationship",
    "ValidationFailureError",
    "apply_merge_plan",
    "commit_merge",
    "find_with_merges",
    "merge_entities",
    "plan_merge",
    "resolve_merge_chain",
    "validate_command",
]
