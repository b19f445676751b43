"""Pydantic payloads for JSON columns."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, RootModel

from powermap.domain.model import AssociationData, ExtensionKind


class PayloadModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class AssociationDataPayload(PayloadModel):
    """Serialised form of ``AssociationData``."""

    extension_kinds: list[ExtensionKind] = Field(default_factory=list["ExtensionKind"])
    relationship_ids: list[int] = Field(default_factory=list[int])
    aliases: list[str] = Field(default_factory=list[str])
    tag_ids: list[int] = Field(default_factory=list[int])

    @classmethod
    def from_domain(cls, data: AssociationData) -> AssociationDataPayload:
        return cls(
            extension_kinds=list(data.extension_kinds),
            relationship_ids=list(data.relationship_ids),
            aliases=list(data.aliases),
            tag_ids=list(data.tag_ids),
        )

    def to_domain(self) -> AssociationData:
        return AssociationData(
            extension_kinds=tuple(self.extension_kinds),
            relationship_ids=tuple(self.relationship_ids),
            aliases=tuple(self.aliases),
            tag_ids=tuple(self.tag_ids),
        )


class MergeSummaryPayload(RootModel[dict[str, NonNegativeInt]]):
    """Per-category counts recorded on a merge audit row."""
