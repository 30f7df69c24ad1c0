"""
webcase - Fixture Loading & Reference Resolution.

Fixtures are declared as ``key -> (entity, fields)``::

    FIXTURES = {
        "alice": ("User", {"username": "alice", "password": "secret"}),
        "hello": ("Post", {"title": "Hello", "author": "~alice"}),
    }

A string value starting with ``~`` is a *reference*: it is replaced by
the entity materialized earlier under that key.  :class:`FixtureInstaller`
purges the tables involved, builds every entity in declaration order,
and records them in a :class:`ReferenceRepository` for later lookup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Union

import yaml
from sqlalchemy import delete
from sqlalchemy.orm import Session

from .orm import EntityRegistry

logger = logging.getLogger("webcase.loader")

REFERENCE_SIGIL = "~"


class UnresolvedReferenceError(LookupError):
    """A ``~key`` reference named no fixture materialized before it."""


@dataclass
class FixtureRecord:
    key: str
    entity: Union[str, type]
    fields: Dict[str, Any] = field(default_factory=dict)


FixtureSpec = Union[Mapping[str, Any], Iterable[FixtureRecord]]


def parse_fixtures(spec: Optional[FixtureSpec]) -> List[FixtureRecord]:
    """
    Normalise a fixture specification into records, preserving order.

    Accepted shapes per key: ``(entity, fields)`` or
    ``{"entity": ..., "fields": {...}}``.  An iterable of
    :class:`FixtureRecord` is returned as a list.
    """
    if not spec:
        return []
    if not isinstance(spec, Mapping):
        records = list(spec)
        for item in records:
            if not isinstance(item, FixtureRecord):
                raise ValueError(f"Expected FixtureRecord items, got {item!r}")
        return records

    records = []
    for key, value in spec.items():
        if isinstance(value, FixtureRecord):
            records.append(value)
        elif isinstance(value, Mapping):
            if "entity" not in value:
                raise ValueError(f"Fixture {key!r} does not declare an entity")
            records.append(FixtureRecord(key, value["entity"], dict(value.get("fields") or {})))
        elif isinstance(value, (tuple, list)) and len(value) == 2:
            entity, fields = value
            records.append(FixtureRecord(key, entity, dict(fields or {})))
        else:
            raise ValueError(f"Cannot parse fixture {key!r}: {value!r}")
    return records


def load_fixture_directory(directory: Union[str, Path]) -> List[FixtureRecord]:
    """
    Read every ``*.yml`` / ``*.yaml`` file of *directory*.

    Files are read in name order and keys keep their order within a file,
    so prefix file names (``01_users.yml``, ``02_posts.yml``) to control
    the order references are resolved in.  A key declared twice raises
    ``ValueError``.
    """
    path = Path(directory)
    if not path.is_dir():
        raise FileNotFoundError(f"Fixture directory not found: {path}")

    files = sorted(p for p in path.iterdir() if p.suffix in (".yml", ".yaml"))
    records: List[FixtureRecord] = []
    seen: Dict[str, Path] = {}
    for file in files:
        with open(file, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, Mapping):
            raise ValueError(
                f"{file.name} must map fixture keys to entities, "
                f"not a {type(data).__name__}"
            )
        for record in parse_fixtures(data):
            if record.key in seen:
                raise ValueError(
                    f"Fixture {record.key!r} declared in both "
                    f"{seen[record.key].name} and {file.name}"
                )
            seen[record.key] = file
            records.append(record)
        logger.debug("Read %d fixture(s) from %s", len(data), file.name)
    return records


class ReferenceRepository:
    """
    Insertion-ordered ``key -> entity`` table for one manager.
    """

    def __init__(self):
        self._references: Dict[str, Any] = {}

    def add_reference(self, key: str, entity: Any) -> None:
        self._references[key] = entity

    def get_reference(self, key: str) -> Any:
        return self._references[key]

    def has_reference(self, key: str) -> bool:
        return key in self._references

    def copy(self) -> "ReferenceRepository":
        clone = ReferenceRepository()
        clone._references.update(self._references)
        return clone

    def update(self, other: "ReferenceRepository") -> None:
        self._references.update(other._references)

    @property
    def references(self) -> Dict[str, Any]:
        return dict(self._references)

    def __contains__(self, key: str) -> bool:
        return key in self._references

    def __iter__(self) -> Iterator[str]:
        return iter(self._references)

    def __len__(self) -> int:
        return len(self._references)

    def __repr__(self) -> str:
        return f"<ReferenceRepository {list(self._references)}>"


class FixtureInstaller:
    """
    Purge-and-load fixture executor bound to one ORM session.

    Usage::

        installer = FixtureInstaller(session, entities)
        refs = installer.install(parse_fixtures(FIXTURES))
        alice = refs.get_reference("alice")

    With ``strict_references=False`` (the default) a reference to an
    unknown or not-yet-materialized key resolves to ``None`` and is
    logged; with ``True`` it raises :class:`UnresolvedReferenceError`.
    """

    def __init__(
        self,
        session: Session,
        entities: EntityRegistry,
        *,
        strict_references: bool = False,
    ):
        self.session = session
        self.entities = entities
        self.strict_references = strict_references

    def install(
        self,
        records: List[FixtureRecord],
        append: bool = False,
        repository: Optional[ReferenceRepository] = None,
    ) -> ReferenceRepository:
        """
        Load *records* and return the repository they were recorded in.

        Unless *append* is true, rows of every entity type in *records*
        are deleted first.  *repository* is extended in place when given,
        so references from an earlier appended install stay resolvable.
        It is only extended once the batch is committed.
        """
        repository = repository if repository is not None else ReferenceRepository()
        staged = repository.copy()
        try:
            if not append:
                self.purge(records)
            for record in records:
                entity = self.load(record, staged)
                staged.add_reference(record.key, entity)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        repository.update(staged)
        logger.info(
            "Installed %d fixture(s)%s", len(records), " (append)" if append else "",
        )
        return repository

    def purge(self, records: List[FixtureRecord]) -> None:
        """Delete all rows of the entity types used, last-declared first."""
        mappings = []
        for record in records:
            mapping = self.entities.resolve(record.entity)
            if mapping not in mappings:
                mappings.append(mapping)
        for mapping in reversed(mappings):
            result = self.session.execute(delete(mapping.table))
            logger.debug("Purged %s (%s rows)", mapping.name, result.rowcount)
        # deleted rows may still sit in the identity map
        self.session.expunge_all()

    def load(self, record: FixtureRecord, repository: ReferenceRepository) -> Any:
        """Build, persist and refresh the entity for one record."""
        mapping = self.entities.resolve(record.entity)
        values = {
            name: self.resolve_value(value, repository, record.key)
            for name, value in record.fields.items()
        }
        entity = mapping.build(values)
        self.session.add(entity)
        self.session.flush()
        self.session.refresh(entity)
        logger.debug("Loaded fixture %s (%s)", record.key, mapping.name)
        return entity

    def resolve_value(self, value: Any, repository: ReferenceRepository, owner: str = "") -> Any:
        if isinstance(value, list):
            return [self.resolve_value(v, repository, owner) for v in value]
        if not isinstance(value, str) or not value.startswith(REFERENCE_SIGIL):
            return value

        key = value[len(REFERENCE_SIGIL):]
        if repository.has_reference(key):
            return repository.get_reference(key)
        if self.strict_references:
            raise UnresolvedReferenceError(
                f"Fixture {owner!r} references {key!r}, which is not loaded yet"
            )
        logger.warning("Fixture %r references unknown fixture %r; using None", owner, key)
        return None
