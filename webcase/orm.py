"""
webcase - ORM Manager & Entity Registries.

:class:`ManagerRegistry` hands out one SQLAlchemy :class:`~sqlalchemy.orm.Session`
per manager name (``"default"``, ``"audit"``, ...) and is what the harness
registers as the ``"orm"`` service.

:class:`EntityRegistry` maps entity names used in fixture files to
:class:`EntityMapping` objects.  A mapping's field table is computed from
the mapper metadata once, at registration time, so building an entity
never looks attributes up by arbitrary string.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Type, Union

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .utils import to_camel_case, to_snake_case

logger = logging.getLogger("webcase.orm")

Builder = Callable[[Dict[str, Any]], Any]


class EntityMapping:
    """
    How to build one entity type from fixture fields.

    ``fields`` maps every accepted fixture field name to the attribute it
    sets.  By default each mapped attribute is accepted under its own name
    and its camelCase spelling; *extra_fields* adds or overrides entries
    (e.g. to target a plain property setter).

    When *builder* is given it receives the resolved field values and must
    return the entity; the field table is then only used for validation.
    """

    def __init__(
        self,
        model: Type[Any],
        name: Optional[str] = None,
        extra_fields: Optional[Mapping[str, str]] = None,
        builder: Optional[Builder] = None,
    ):
        self.model = model
        self.name = name or model.__name__
        self.builder = builder
        self.fields: Dict[str, str] = {}
        for key in sa_inspect(model).attrs.keys():
            self.fields[key] = key
            self.fields.setdefault(to_camel_case(key), key)
        self.fields.update(extra_fields or {})

    def attribute_for(self, field: str) -> str:
        """Attribute set by *field*; unknown fields raise ``AttributeError``."""
        attr = self.fields.get(field) or self.fields.get(to_snake_case(field))
        if attr is None:
            raise AttributeError(
                f"{self.name} has no attribute for fixture field {field!r}"
            )
        return attr

    def build(self, values: Mapping[str, Any]) -> Any:
        attributes = {self.attribute_for(k): v for k, v in values.items()}
        if self.builder is not None:
            return self.builder(attributes)
        instance = self.model()
        for attr, value in attributes.items():
            setattr(instance, attr, value)
        return instance

    @property
    def table(self):
        return sa_inspect(self.model).local_table

    def __repr__(self) -> str:
        return f"<EntityMapping {self.name} fields={sorted(set(self.fields.values()))}>"


class EntityRegistry:
    """
    Entity name -> :class:`EntityMapping`.

    Usage::

        entities = EntityRegistry.from_base(Base)
        entities.register(User, extra_fields={"roles": "roles"})
        entities.resolve("User").build({"username": "alice"})
    """

    def __init__(self):
        self._by_name: Dict[str, EntityMapping] = {}
        self._by_model: Dict[type, EntityMapping] = {}

    @classmethod
    def from_base(cls, base: Any) -> "EntityRegistry":
        """Register every class mapped by a declarative base."""
        registry = cls()
        for mapper in base.registry.mappers:
            registry.register(mapper.class_)
        return registry

    def register(
        self,
        model: Type[Any],
        name: Optional[str] = None,
        extra_fields: Optional[Mapping[str, str]] = None,
        builder: Optional[Builder] = None,
    ) -> EntityMapping:
        """Register (or re-register) *model*; returns its mapping."""
        mapping = EntityMapping(model, name=name, extra_fields=extra_fields, builder=builder)
        self._by_name[mapping.name] = mapping
        self._by_model[model] = mapping
        logger.debug("Registered entity %s", mapping.name)
        return mapping

    def resolve(self, entity: Union[str, type]) -> EntityMapping:
        """
        Look an entity up by registered name or mapped class.

        Mapped classes that were never registered are registered on first
        use.  Unknown names raise ``KeyError``.
        """
        if isinstance(entity, type):
            mapping = self._by_model.get(entity)
            return mapping if mapping is not None else self.register(entity)
        try:
            return self._by_name[entity]
        except KeyError:
            raise KeyError(f"Unknown entity type {entity!r}") from None

    def __contains__(self, entity: Union[str, type]) -> bool:
        return entity in self._by_name or entity in self._by_model

    def __iter__(self) -> Iterator[EntityMapping]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)


class ManagerRegistry:
    """
    Named SQLAlchemy sessions ("managers").

    Each name is backed by a session factory; the session for a name is
    created on first :meth:`get_manager` and reused until :meth:`close`.

    Usage::

        orm = ManagerRegistry(
            {"default": sessionmaker(bind=engine)},
            entities=EntityRegistry.from_base(Base),
        )
        session = orm.get_manager()          # the "default" manager
    """

    def __init__(
        self,
        factories: Mapping[str, Callable[[], Session]],
        entities: Optional[EntityRegistry] = None,
        default_manager: str = "default",
    ):
        self._factories = dict(factories)
        self._managers: Dict[str, Session] = {}
        self.entities = entities if entities is not None else EntityRegistry()
        self.default_manager = default_manager

    @classmethod
    def from_engine(
        cls,
        engine: Engine,
        entities: Optional[EntityRegistry] = None,
        name: str = "default",
    ) -> "ManagerRegistry":
        return cls({name: sessionmaker(bind=engine)}, entities=entities, default_manager=name)

    @property
    def manager_names(self) -> list[str]:
        return list(self._factories)

    def get_manager(self, name: Optional[str] = None) -> Session:
        """Return the session for *name*; unknown names raise ``KeyError``."""
        name = name or self.default_manager
        if name not in self._managers:
            try:
                factory = self._factories[name]
            except KeyError:
                raise KeyError(f"Unknown ORM manager {name!r}") from None
            self._managers[name] = factory()
        return self._managers[name]

    def close(self) -> None:
        """Close every opened session."""
        for name, session in self._managers.items():
            session.close()
            logger.debug("Closed ORM manager %s", name)
        self._managers.clear()
