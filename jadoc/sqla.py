"""
SQLAlchemy repositories

Expose SQLAlchemy declarative models: the descriptor is derived from the model mapper,
the repositories use the session passed to the constructor (a Session or a scoped_session).

    descriptor = descriptor_from_model(Task, type_names={Project: "projects"})
    registry.register(Task, descriptor, SQLAlchemyRepository(session, Task, descriptor))
"""
from typing import Dict, Iterable, Optional
from sqlalchemy import func, inspect as sqla_inspect, select
from sqlalchemy.exc import SQLAlchemyError
import jadoc
from .descriptor import Cardinality, RelationshipField, ResourceDescriptor, ResourceField
from .errors import GenericError, RegistrationError, ResourceNotFoundError
from .query_params import SortingValues
from .repository import RelationshipRepository, ResourceList, ResourceRepository
from .config import get_int_config


def get_resource_type(model, type_names: Optional[Dict[type, str]] = None) -> str:
    """
    :return: the jsonapi type of `model`, the table name unless specified in `type_names`
    """
    if type_names and model in type_names:
        return type_names[model]
    return getattr(model, "__tablename__", model.__name__)


def column_python_type(column):
    try:
        return column.type.python_type
    except NotImplementedError:
        return object


def descriptor_from_model(
    model,
    resource_type: Optional[str] = None,
    type_names: Optional[Dict[type, str]] = None,
    include_by_default: Iterable[str] = (),
    lazy: Iterable[str] = (),
    lookup_if_null: Iterable[str] = (),
) -> ResourceDescriptor:
    """
    Build a ResourceDescriptor from the mapper of a declarative model
    - the (single column) primary key is the id field
    - the other column attributes are the attribute fields
    - the mapper relationships are the relationship fields
    """
    mapper = sqla_inspect(model)
    primary_keys = mapper.primary_key
    if len(primary_keys) != 1:
        raise RegistrationError(f"{model.__name__}: only single column primary keys are supported")
    pk_column = primary_keys[0]
    id_name = mapper.get_property_by_column(pk_column).key
    id_field = ResourceField(id_name, column_python_type(pk_column))

    attribute_fields = []
    for column_attr in mapper.column_attrs:
        if column_attr.key == id_name:
            continue
        attribute_fields.append(ResourceField(column_attr.key, column_python_type(column_attr.columns[0])))

    relationship_fields = []
    for relationship in mapper.relationships:
        rel_name = relationship.key
        cardinality = Cardinality.TO_MANY if relationship.uselist else Cardinality.TO_ONE
        relationship_fields.append(
            RelationshipField(
                rel_name,
                get_resource_type(relationship.mapper.class_, type_names),
                cardinality,
                lazy=rel_name in lazy,
                include_by_default=rel_name in include_by_default,
                lookup_if_null=rel_name in lookup_if_null,
            )
        )

    return ResourceDescriptor(resource_type or get_resource_type(model, type_names), model, id_field, attribute_fields, relationship_fields)


class SQLAlchemySessionMixin:
    session = None
    commit = True
    # a Session (and the lazy loads of its instances) is bound to one thread
    thread_safe = False

    def _commit(self) -> None:
        if not self.commit:
            self.session.flush()
            return
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise GenericError(f"Failed to commit: {exc}")


class SQLAlchemyRepository(SQLAlchemySessionMixin, ResourceRepository):
    """
    Resource repository for a declarative model
    """

    def __init__(self, session, model, descriptor: Optional[ResourceDescriptor] = None, commit: bool = True):
        self.session = session
        self.model = model
        self.descriptor = descriptor or descriptor_from_model(model)
        self.commit = commit

    @property
    def id_column(self):
        return getattr(self.model, self.descriptor.id_field.name)

    def find_one(self, id, query_params=None):
        return self.session.get(self.model, id)

    def find_all(self, ids=None, query_params=None):
        query = select(self.model)
        if ids is not None:
            query = query.where(self.id_column.in_(list(ids)))
        if query_params is None:
            instances = self.session.scalars(query).all()
            return ResourceList(list(instances), meta={"total": len(instances)})

        query = self.filter(query, query_params)
        count = self.session.scalar(select(func.count()).select_from(query.subquery()))
        query = self.sort(query, query_params)
        query = self.paginate(query, query_params)
        instances = self.session.scalars(query).all()
        return ResourceList(list(instances), meta={"total": count})

    def _get_column(self, attr_name):
        column = getattr(self.model, attr_name, None) if "." not in attr_name else None
        if column is None or not hasattr(column, "in_"):
            jadoc.log.warning(f"Invalid attribute for {self.descriptor.resource_type}: {attr_name}")
            return None
        return column

    def _parse_filter_value(self, attr_name, value):
        if attr_name == self.descriptor.id_field.name:
            return self.descriptor.parse_id(value)
        attr_field = self.descriptor.find_attribute_field(attr_name)
        if attr_field is None:
            return value
        return self.descriptor.parse_attribute_value(attr_field, value)

    def filter(self, query, query_params):
        for attr_name, values in query_params.filters_for(self.descriptor).items():
            column = self._get_column(attr_name)
            if column is None:
                continue
            query = query.where(column.in_([self._parse_filter_value(attr_name, value) for value in values]))
        return query

    def sort(self, query, query_params):
        for attr_name, direction in query_params.sorting_for(self.descriptor).items():
            column = self._get_column(attr_name)
            if column is None:
                continue
            query = query.order_by(column.desc() if direction is SortingValues.DESC else column.asc())
        return query

    @staticmethod
    def paginate(query, query_params):
        offset = max(query_params.offset or 0, 0)
        limit = query_params.limit
        if limit is None:
            limit = get_int_config("DEFAULT_PAGE_LIMIT", 250)
        limit = min(max(limit, 1), get_int_config("MAX_PAGE_LIMIT", 100000))
        return query.offset(offset).limit(limit)

    def save(self, resource):
        self.session.add(resource)
        self._commit()
        return resource

    def delete(self, id) -> None:
        resource = self.session.get(self.model, id)
        if resource is None:
            raise ResourceNotFoundError(f"{self.descriptor.resource_type} {id}")
        self.session.delete(resource)
        self._commit()


class SQLAlchemyRelationshipRepository(SQLAlchemySessionMixin, RelationshipRepository):
    """
    Relationship repository for the relationships between two declarative models
    """

    def __init__(self, session, source_model, target_model, source_type: Optional[str] = None, target_type: Optional[str] = None, commit: bool = True):
        self.session = session
        self.source_model = source_model
        self.target_model = target_model
        self.source_type = source_type or get_resource_type(source_model)
        self.target_type = target_type or get_resource_type(target_model)
        self.commit = commit

    def _get_source(self, source_id):
        source = self.session.get(self.source_model, source_id)
        if source is None:
            raise ResourceNotFoundError(f"{self.source_type} {source_id}")
        return source

    def _get_target(self, target_id):
        target = self.session.get(self.target_model, target_id)
        if target is None:
            raise ResourceNotFoundError(f"{self.target_type} {target_id}")
        return target

    def set_relation(self, source, target_id, field_name: str) -> None:
        target = None if target_id is None else self._get_target(target_id)
        setattr(source, field_name, target)
        self._commit()

    def set_relations(self, source, target_ids, field_name: str) -> None:
        setattr(source, field_name, [self._get_target(target_id) for target_id in target_ids])
        self._commit()

    def add_relations(self, source, target_ids, field_name: str) -> None:
        targets = [self._get_target(target_id) for target_id in target_ids]
        relation = getattr(source, field_name)
        for target in targets:
            if target not in relation:
                relation.append(target)
        self._commit()

    def remove_relations(self, source, target_ids, field_name: str) -> None:
        targets = [self._get_target(target_id) for target_id in target_ids]
        relation = getattr(source, field_name)
        for target in targets:
            if target in relation:
                relation.remove(target)
        self._commit()

    def find_one_target(self, source_id, field_name: str, query_params=None):
        return getattr(self._get_source(source_id), field_name)

    def find_many_targets(self, source_id, field_name: str, query_params=None):
        return list(getattr(self._get_source(source_id), field_name))


def register_model(registry, session, model, type_names=None, **descriptor_kwargs):
    """
    Register `model` with a SQLAlchemyRepository and a SQLAlchemyRelationshipRepository
    for every relationship target (one repository per target type)
    :return: registry entry
    """
    descriptor = descriptor_from_model(model, type_names=type_names, **descriptor_kwargs)
    relationship_repositories = {}
    for relationship in sqla_inspect(model).relationships:
        target_model = relationship.mapper.class_
        target_type = get_resource_type(target_model, type_names)
        if target_type not in relationship_repositories:
            relationship_repositories[target_type] = SQLAlchemyRelationshipRepository(
                session, model, target_model, descriptor.resource_type, target_type
            )
    repository = SQLAlchemyRepository(session, model, descriptor)
    return registry.register(model, descriptor, repository, relationship_repositories.values())


__all__ = [
    "descriptor_from_model",
    "get_resource_type",
    "register_model",
    "SQLAlchemyRepository",
    "SQLAlchemyRelationshipRepository",
]
