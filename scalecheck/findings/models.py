# Pydantic data models for findings: Finding and the Location it points at.

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class Location(BaseModel):
    """Where in the source a finding was reported: the span of the offending expression."""

    path: Path
    line: int = Field(..., ge=1, description="1-based line number")
    column: int = Field(..., ge=1, description="1-based column number")
    end_line: Optional[int] = Field(None, ge=1)
    end_column: Optional[int] = Field(None, ge=1)
    snippet: Optional[str] = None

    model_config = {"arbitrary_types_allowed": True}


class Finding(BaseModel):
    """A single issue reported by a rule (e.g. a badly scaled offset at line 42)."""

    rule_id: str
    message: str
    location: Location
    severity: str = Field(default="warning", description="e.g. error, warning, info")
    category: Optional[str] = Field(None, description="Bug category, e.g. 'Suspicious operation'")
    bug_type: Optional[str] = Field(None, description="Human-readable bug type name")

    model_config = {"arbitrary_types_allowed": True}

    def sort_key(self) -> tuple[str, int, int, str]:
        loc = self.location
        return str(loc.path), loc.line, loc.column, self.rule_id
