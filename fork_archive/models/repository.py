"""
Repository Models — Immutable descriptions of upstreams and forks.

These are plain value records. A ForkRepository carries its upstream as a
lookup key for the archive location; nothing here talks to the hosting API.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field


class SourceRepository(BaseModel):
    """The canonical upstream project that was forked."""

    model_config = ConfigDict(frozen=True)

    organization: str = Field(min_length=1)
    name: str = Field(min_length=1)
    clone_url: str = Field(min_length=1)

    @property
    def full_name(self) -> str:
        return f"{self.organization}/{self.name}"

    @classmethod
    def from_github(cls, payload: Dict[str, Any]) -> "SourceRepository":
        """Build from a GitHub REST repository payload."""
        return cls(
            organization=(payload.get("owner") or {}).get("login", ""),
            name=payload.get("name", ""),
            clone_url=payload.get("clone_url", ""),
        )


class ForkRepository(BaseModel):
    """A contributor's fork of a SourceRepository."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(min_length=1)
    clone_url: str = Field(min_length=1)
    source: SourceRepository
    name: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name or self.source.name}"

    @classmethod
    def from_github(cls, payload: Dict[str, Any]) -> "ForkRepository":
        """
        Build from a GitHub REST repository payload.

        Only the single-repository endpoint includes ``source``; a payload
        without it does not describe a fork.
        """
        source = payload.get("source")
        if not source:
            raise ValueError(
                f"{payload.get('full_name') or payload.get('name')}: payload has no source repository"
            )
        return cls(
            owner=(payload.get("owner") or {}).get("login", ""),
            clone_url=payload.get("clone_url", ""),
            name=payload.get("name"),
            source=SourceRepository.from_github(source),
        )

    @classmethod
    def from_entry(cls, entry: Dict[str, Any]) -> "ForkRepository":
        """Accept either a GitHub payload or the flat model shape."""
        if isinstance(entry.get("owner"), dict):
            return cls.from_github(entry)
        return cls.model_validate(entry)


def load_forks(path: Path) -> List[ForkRepository]:
    """
    Load a fork list from a YAML or JSON file.

    The document is either a list of entries or a mapping with a
    ``forks`` key holding that list.
    """
    with Path(path).open("r", encoding="utf-8") as f:
        if Path(path).suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if isinstance(data, dict):
        data = data.get("forks")
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of forks")

    return [ForkRepository.from_entry(entry) for entry in data]
