"""
nsreload/dependencies/snapshot.py - Pydantic Snapshot Models

Plain-data descriptions of graphs and trackers, for handing state to
another process or an editor integration. Turning a snapshot back into
a value re-validates every edge, so a cyclic snapshot never becomes a
graph.
"""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field, field_validator


class GraphSnapshot(BaseModel):
    """Dependency graph as name -> direct dependencies."""

    dependencies: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Declared names and what each one directly depends on",
    )


class TrackerSnapshot(BaseModel):
    """Tracker state: graph plus the pending unload/load sequences."""

    graph: GraphSnapshot = Field(default_factory=GraphSnapshot)
    unload: List[str] = Field(
        default_factory=list,
        description="Names pending unload, most-dependent first",
    )
    load: List[str] = Field(
        default_factory=list,
        description="Names pending load, least-dependent first",
    )

    @field_validator("unload", "load")
    @classmethod
    def validate_unique(cls, v):
        seen = set()
        for name in v:
            if name in seen:
                raise ValueError(f"duplicate name in pending sequence: {name}")
            seen.add(name)
        return v
