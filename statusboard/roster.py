"""
Static domain roster.

The roster is plain configuration: an ordered list of (id, hostname) pairs
read once at startup from data/roster.yaml and never mutated afterwards.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import RosterError
from .settings import ProbeConfig, resolve_path


class Domain(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., gt=0)
    hostname: str = Field(..., min_length=1)

    @field_validator("hostname")
    @classmethod
    def _bare_hostname(cls, v: str) -> str:
        if not v.strip() or "/" in v or any(c.isspace() for c in v):
            raise ValueError(f"not a bare hostname: {v!r}")
        return v


class Roster(BaseModel):
    model_config = ConfigDict(frozen=True)

    domains: tuple[Domain, ...]

    @field_validator("domains")
    @classmethod
    def _unique_ids(cls, v: tuple[Domain, ...]) -> tuple[Domain, ...]:
        if not v:
            raise ValueError("roster is empty")
        seen: set[int] = set()
        for d in v:
            if d.id in seen:
                raise ValueError(f"duplicate domain id {d.id}")
            seen.add(d.id)
        return v


def parse_roster(data) -> Roster:
    """
    Validate raw roster data (a list of {id, hostname} mappings, or a mapping
    with a `domains` key holding that list).
    """
    if isinstance(data, dict):
        data = data.get("domains")
    if not isinstance(data, list):
        raise RosterError(f"expected a list of domains, got {type(data).__name__}")
    try:
        return Roster(domains=tuple(data))
    except ValidationError as e:
        raise RosterError(f"invalid roster: {e}") from e


def load_roster(path: str | Path | None = None, config: ProbeConfig | None = None) -> Roster:
    """
    Load and validate the roster file.

    A missing file is an error: the service has nothing to probe without it.
    """
    if path is None:
        path = (config or ProbeConfig()).roster_path
    p = resolve_path(path)

    if not p.exists():
        raise RosterError(f"roster file not found: {p}")

    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    return parse_roster(data)
