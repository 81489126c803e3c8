import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel

TAGS_REGEX = re.compile(r"refs/tags/(.+)$")
HEADS_REGEX = re.compile(r"refs/heads/(.+)$")


class RefKind(str, Enum):
    TAG = "tag"
    HEAD = "head"


class SplitInstruction(BaseModel):
    """
    What to publish for a push: one branch or one tag, never both.
    """

    kind: RefKind
    name: str

    @classmethod
    def tag(cls, name: str) -> "SplitInstruction":
        return cls(kind=RefKind.TAG, name=name)

    @classmethod
    def head(cls, name: str) -> "SplitInstruction":
        return cls(kind=RefKind.HEAD, name=name)

    @property
    def heads_filter(self) -> str:
        if self.kind is RefKind.HEAD:
            return f"--heads={self.name}"
        return "--no-heads"

    @property
    def tags_filter(self) -> str:
        if self.kind is RefKind.TAG:
            return f"--tags={self.name}"
        return "--no-tags"

    def describe(self) -> str:
        if self.kind is RefKind.TAG:
            return f"tag {self.name}"
        return f"branch {self.name}"


def classify(ref: str) -> Optional[SplitInstruction]:
    """
    Map a push reference to a split instruction.

    Tags are checked before heads. Returns None for any other reference
    (pull request refs, notes, etc).
    """
    tag = TAGS_REGEX.search(ref)
    if tag is not None:
        return SplitInstruction.tag(tag.group(1))
    head = HEADS_REGEX.search(ref)
    if head is not None:
        return SplitInstruction.head(head.group(1))
    return None
