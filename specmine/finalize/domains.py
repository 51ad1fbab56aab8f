"""Domain registry backed by a YAML file.

domains.yml:

    domains:
      auth:
        description: Authentication and sessions
        path: src/auth
        specs: [auth/user-service]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import yaml

from specmine.extraction.models import SuggestedDomain
from specmine.result import ErrorCode, Result

logger = logging.getLogger(__name__)


@dataclass
class DomainEntry:
    id: str
    description: str = ""
    path: str = ""
    specs: list[str] = field(default_factory=list)


@dataclass
class DomainSyncResult:
    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)  # Already registered
    errors: list[dict] = field(default_factory=list)


class DomainLinker(Protocol):
    def list_domains(self) -> Result[list[DomainEntry]]: ...

    def create_domain(self, domain_id: str, description: str = "", path: str = "") -> Result[DomainEntry]: ...

    def link_spec(self, domain_id: str, spec_id: str) -> Result[DomainEntry]: ...


class DomainRegistry:
    def __init__(self, registry_path: Path) -> None:
        self.path = Path(registry_path)

    def _read(self) -> dict[str, DomainEntry]:
        if not self.path.exists():
            return {}
        data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"top level of {self.path} must be a mapping")
        raw = data.get("domains") or {}
        if not isinstance(raw, dict):
            raise ValueError(f"'domains' in {self.path} must be a mapping")
        entries = {}
        for domain_id, info in raw.items():
            info = info or {}
            if not isinstance(info, dict):
                raise ValueError(f"domain {domain_id!r} in {self.path} must be a mapping")
            entries[str(domain_id)] = DomainEntry(
                id=str(domain_id),
                description=str(info.get("description") or ""),
                path=str(info.get("path") or ""),
                specs=[str(s) for s in info.get("specs") or []],
            )
        return entries

    def _write(self, entries: dict[str, DomainEntry]) -> None:
        data = {
            "domains": {
                e.id: {"description": e.description, "path": e.path, "specs": e.specs}
                for e in entries.values()
            }
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")

    def list_domains(self) -> Result[list[DomainEntry]]:
        try:
            return Result.success(list(self._read().values()))
        except OSError as e:
            return Result.failure(f"Failed to read domain registry: {e}", ErrorCode.IO_ERROR)
        except (yaml.YAMLError, ValueError) as e:
            return Result.failure(f"Malformed domain registry {self.path}: {e}", ErrorCode.PARSE_ERROR)

    def has_domain(self, domain_id: str) -> bool:
        listed = self.list_domains()
        return listed.ok and any(d.id == domain_id for d in listed.value)

    def create_domain(self, domain_id: str, description: str = "", path: str = "") -> Result[DomainEntry]:
        try:
            entries = self._read()
            if domain_id in entries:
                return Result.failure(f"Domain already exists: {domain_id}", ErrorCode.INVALID_INPUT)
            entry = DomainEntry(id=domain_id, description=description, path=path)
            entries[domain_id] = entry
            self._write(entries)
        except OSError as e:
            return Result.failure(f"Failed to create domain {domain_id}: {e}", ErrorCode.IO_ERROR)
        except (yaml.YAMLError, ValueError) as e:
            return Result.failure(f"Malformed domain registry {self.path}: {e}", ErrorCode.PARSE_ERROR)
        logger.info(f"Created domain {domain_id}")
        return Result.success(entry)

    def link_spec(self, domain_id: str, spec_id: str) -> Result[DomainEntry]:
        try:
            entries = self._read()
            entry = entries.get(domain_id)
            if entry is None:
                return Result.failure(f"Domain not found: {domain_id}", ErrorCode.NOT_FOUND)
            if spec_id not in entry.specs:
                entry.specs.append(spec_id)
                self._write(entries)
        except OSError as e:
            return Result.failure(f"Failed to link {spec_id} to {domain_id}: {e}", ErrorCode.IO_ERROR)
        except (yaml.YAMLError, ValueError) as e:
            return Result.failure(f"Malformed domain registry {self.path}: {e}", ErrorCode.PARSE_ERROR)
        return Result.success(entry)


def create_suggested_domains(linker: DomainLinker, suggested: list[SuggestedDomain]) -> Result[DomainSyncResult]:
    """Register scan-suggested domains, skipping ones that already exist."""
    listed = linker.list_domains()
    if not listed.ok:
        return Result.failure(listed.error, listed.code or ErrorCode.IO_ERROR)

    existing = {d.id for d in listed.value}
    result = DomainSyncResult()
    for domain in suggested:
        if domain.name in existing:
            result.skipped.append(domain.name)
            continue
        description = domain.description or f"Inferred from {domain.path} ({domain.file_count} files)"
        created = linker.create_domain(domain.name, description, domain.path)
        if created.ok:
            result.created.append(domain.name)
        else:
            result.errors.append({"domain": domain.name, "error": created.error})
    return Result.success(result)
