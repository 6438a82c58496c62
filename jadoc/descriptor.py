"""
Resource descriptors: the static description of a resource type

A descriptor is built once, at startup, either explicitly:

    Task.descriptor = ResourceDescriptor(
        "tasks",
        Task,
        id_field=ResourceField("id", int),
        attribute_fields=(ResourceField("name", str),),
        relationship_fields=(RelationshipField("project", "projects", Cardinality.TO_ONE),),
    )

or from a SQLAlchemy model with `jadoc.sqla.descriptor_from_model`.
The core never inspects resource classes, it only uses the descriptor.
"""
import decimal
import enum
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple
from .attr_parse import parse_attr
from .errors import ValidationError


class Cardinality(enum.Enum):
    TO_ONE = "to-one"
    TO_MANY = "to-many"


@dataclass(frozen=True)
class ResourceField:
    """
    An identifier or attribute field
    :param name: attribute name, used both on the wire and on the resource instance
    :param type: declared python type (or a callable used to parse incoming values)
    """

    name: str
    type: Any = str


@dataclass(frozen=True)
class RelationshipField:
    """
    A relationship field
    :param name: relationship name
    :param target: jsonapi type of the related resource
    :param cardinality: to-one or to-many
    :param lazy: linkage is only rendered when the relationship is included
    :param include_by_default: always add the related resources to "included"
    :param lookup_if_null: fetch the related resources from the relationship repository when
                           the value is None and the relationship is included
    """

    name: str
    target: str
    cardinality: Cardinality = Cardinality.TO_ONE
    lazy: bool = False
    include_by_default: bool = False
    lookup_if_null: bool = False

    @property
    def is_collection(self) -> bool:
        return self.cardinality is Cardinality.TO_MANY


@dataclass(frozen=True)
class ResourceDescriptor:
    """
    Describes a resource type: id, attributes and relationships
    """

    resource_type: str
    resource_class: type
    id_field: ResourceField = ResourceField("id", str)
    attribute_fields: Tuple[ResourceField, ...] = ()
    relationship_fields: Tuple[RelationshipField, ...] = ()
    factory: Optional[Callable[[], Any]] = field(default=None, compare=False)

    def __post_init__(self):
        # accept lists, store tuples so the descriptor stays immutable
        object.__setattr__(self, "attribute_fields", tuple(self.attribute_fields))
        object.__setattr__(self, "relationship_fields", tuple(self.relationship_fields))

    @property
    def class_name(self) -> str:
        return self.resource_class.__name__

    def find_attribute_field(self, name: str) -> Optional[ResourceField]:
        for attr_field in self.attribute_fields:
            if attr_field.name == name:
                return attr_field
        return None

    def find_relationship_field(self, name: str) -> Optional[RelationshipField]:
        for rel_field in self.relationship_fields:
            if rel_field.name == name:
                return rel_field
        return None

    def new_instance(self):
        factory = self.factory or self.resource_class
        return factory()

    def parse_id(self, raw_id):
        """
        Convert a jsonapi id (a string) to the value of the id field type
        """
        return parse_id(self.id_field.type, raw_id)

    def get_id(self, instance):
        return getattr(instance, self.id_field.name, None)

    def get_value(self, instance, name: str):
        return getattr(instance, name, None)

    def set_value(self, instance, name: str, value) -> None:
        setattr(instance, name, value)

    def parse_attribute_value(self, attr_field: ResourceField, value):
        return parse_attr(attr_field, value)


def parse_id(id_type, raw_id):
    """
    :param id_type: the declared type of the id field
    :param raw_id: jsonapi id
    :return: id value
    """
    if raw_id is None or id_type is None or id_type is object:
        return raw_id
    if isinstance(id_type, type) and isinstance(raw_id, id_type) and not isinstance(raw_id, bool):
        return raw_id
    try:
        if id_type in (int, float, decimal.Decimal):
            return id_type(str(raw_id).strip())
        if id_type is uuid.UUID:
            return uuid.UUID(str(raw_id))
        return id_type(raw_id)
    except (TypeError, ValueError, ArithmeticError):
        raise ValidationError(f"Invalid id: '{raw_id}'.")


def stringify_id(id_value) -> Optional[str]:
    """
    jsonapi ids are always strings
    """
    if id_value is None:
        return None
    return str(id_value)
