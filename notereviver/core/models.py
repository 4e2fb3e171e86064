"""Typed data models for documents, pages and rebuild results."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class Document(BaseModel):
    """One exported note as read from disk."""

    source_path: Path = Field(..., description="Absolute path of the note file")
    raw_text: str = Field(..., description="Full UTF-8 text content")


class ParsedPage(BaseModel):
    """Result of splitting a document into front matter and body."""

    has_front_matter: bool = Field(
        default=False, description="Whether the text opens with a delimited block"
    )
    title: Optional[str] = Field(None, description="Quote-stripped title value")
    aliases: Optional[list[str]] = Field(
        None, description="Declared path-like identifiers in declaration order"
    )
    body: str = Field(default="", description="Text after the metadata block")

    @model_validator(mode="after")
    def check_plain_text_has_no_metadata(self) -> "ParsedPage":
        """Plain documents never carry a title or aliases."""
        if not self.has_front_matter and (
            self.title is not None or self.aliases is not None
        ):
            raise ValueError("title and aliases require a front-matter block")
        return self

    @property
    def first_alias(self) -> Optional[str]:
        """The first declared alias ("true path" convention)."""
        if not self.aliases:
            return None
        return self.aliases[0]


class Page(BaseModel):
    """A parsed document that declares at least one alias."""

    source_path: Path
    alias_raw: str = Field(..., description="First alias exactly as declared")
    alias_norm: str = Field(..., description="Normalized relative path")
    title: Optional[str] = None
    body: str = ""


class ActionKind(str, Enum):
    """Kind of filesystem action planned for a page."""

    MKDIR = "mkdir"
    WRITE = "write"
    SKIP = "skip"


class PlannedAction(BaseModel):
    """One filesystem action derived from a page."""

    kind: ActionKind
    target: Path
    source_path: Path
    reason: Optional[str] = Field(None, description="Why the page was skipped")


class ListingSnapshot(BaseModel):
    """Directory listing snapshot used to pick the extracted content root.

    Only counts of matching documents are recorded, which keeps content root
    selection a pure function of this snapshot.
    """

    root_documents: int = Field(
        default=0, description="Matching documents directly under the root"
    )
    subdirectories: dict[str, int] = Field(
        default_factory=dict,
        description="Top-level subdirectory name -> recursive document count",
    )


class ProcessResult(BaseModel):
    """Outcome of an external process invocation."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class RebuildResult(BaseModel):
    """Aggregate outcome of a revive run."""

    output_root: Path
    dry_run: bool = False
    documents_total: int = 0
    pages_total: int = 0
    dirs_created: int = 0
    files_written: int = 0
    files_skipped: int = 0
    root_prefix: Optional[str] = Field(
        None, description="Prefix stripped from each alias, if any"
    )
    staging_dir: Optional[Path] = None
    source_deleted: bool = False
    elapsed_seconds: float = 0.0
    actions: list[PlannedAction] = Field(default_factory=list)

    def to_dict(self) -> dict:
        """Return a JSON-serializable summary (actions omitted)."""
        return self.model_dump(mode="json", exclude={"actions"})
