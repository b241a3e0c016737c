"""Rule analysis result models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class LabelAnalysis(BaseModel):
    """Label changes decided by one pass over the label rules."""

    model_config = ConfigDict(frozen=True)

    add: list[str] = Field(default_factory=list, description="Labels to add, in rule order")
    remove: list[str] = Field(default_factory=list, description="Labels to remove, in rule order")

    @property
    def has_changes(self) -> bool:
        """Check if the pass decided anything."""
        return bool(self.add or self.remove)


class CommentAnalysis(BaseModel):
    """Comment bodies decided by one pass over the comment rules."""

    model_config = ConfigDict(frozen=True)

    add: list[str] = Field(default_factory=list, description="New comments to post")
    update: list[str] = Field(
        default_factory=list,
        description="Replacement bodies for the triggering comment or issue",
    )

    @property
    def has_changes(self) -> bool:
        """Check if the pass decided anything."""
        return bool(self.add or self.update)
