"""
Request body model: a single-or-multiple jsonapi payload

    {"data": {"type": "tasks", "attributes": {...}, "relationships": {...}}}   single
    {"data": null}                                                            single, no data
    {"data": [{"type": "projects", "id": "1"}, ...]}                           multiple
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union
from .errors import RequestBodyError
from .jsonapi_types import JSONAPIDocument

# attribute values are json values
ATTRIBUTE_VALUE_TYPES = (str, int, float, bool, type(None), dict, list)


@dataclass(frozen=True)
class ResourceIdentifier:
    type: Optional[str]
    id: Optional[str]


Linkage = Union[ResourceIdentifier, Tuple[ResourceIdentifier, ...], None]


@dataclass(frozen=True)
class RelationshipData:
    """
    The "data" of a relationship object in a request body
    """

    linkage: Linkage = None

    @property
    def is_multiple(self) -> bool:
        return isinstance(self.linkage, tuple)

    @property
    def ids(self) -> Tuple[str, ...]:
        if self.linkage is None:
            return ()
        if isinstance(self.linkage, tuple):
            return tuple(identifier.id for identifier in self.linkage)
        return (self.linkage.id,)


@dataclass(frozen=True)
class DataBody:
    type: Optional[str] = None
    id: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)
    relationships: Dict[str, RelationshipData] = field(default_factory=dict)


@dataclass(frozen=True)
class RequestBody:
    """
    :param single_data: the resource of a single payload, None for `"data": null`
    :param multiple_data: the resources of a multiple payload, None for a single payload
    """

    single_data: Optional[DataBody] = None
    multiple_data: Optional[Tuple[DataBody, ...]] = None

    @property
    def is_multiple(self) -> bool:
        return self.multiple_data is not None

    @classmethod
    def single(cls, data_body: Optional[DataBody]) -> "RequestBody":
        return cls(single_data=data_body)

    @classmethod
    def multiple(cls, data_bodies) -> "RequestBody":
        return cls(multiple_data=tuple(data_bodies))


def parse_request_body(payload: Optional[JSONAPIDocument], method: str = "", resource_name: str = "") -> Optional[RequestBody]:
    """
    :param payload: decoded json request body
    :return: RequestBody or None if there's no payload
    """
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise RequestBodyError(method, resource_name, f"Invalid JSON Payload : {payload}")
    if "data" not in payload:
        raise RequestBodyError(method, resource_name, "No data field in the body.")
    data = payload["data"]
    if isinstance(data, list):
        return RequestBody.multiple(parse_data_body(item, method, resource_name) for item in data)
    if data is None:
        return RequestBody.single(None)
    return RequestBody.single(parse_data_body(data, method, resource_name))


def parse_data_body(data, method: str = "", resource_name: str = "") -> DataBody:
    if not isinstance(data, dict):
        raise RequestBodyError(method, resource_name, f"Invalid data object: {data}")

    attributes = data.get("attributes") or {}
    if not isinstance(attributes, dict):
        raise RequestBodyError(method, resource_name, "Invalid attributes object")
    for attr_name, attr_val in attributes.items():
        if not isinstance(attr_val, ATTRIBUTE_VALUE_TYPES):
            raise RequestBodyError(method, resource_name, f"Invalid value for attribute {attr_name}")

    relationships = data.get("relationships") or {}
    if not isinstance(relationships, dict):
        raise RequestBodyError(method, resource_name, "Invalid relationships object")

    parsed_relationships = {}
    for rel_name, rel_val in relationships.items():
        if not isinstance(rel_val, dict) or "data" not in rel_val:
            raise RequestBodyError(method, resource_name, f"Invalid relationship payload: {rel_val}")
        parsed_relationships[rel_name] = RelationshipData(parse_linkage(rel_val["data"], method, resource_name))

    return DataBody(
        type=data.get("type"),
        id=_id_to_str(data.get("id")),
        attributes=dict(attributes),
        relationships=parsed_relationships,
    )


def parse_linkage(linkage, method: str = "", resource_name: str = "") -> Linkage:
    if linkage is None:
        return None
    if isinstance(linkage, list):
        return tuple(parse_resource_identifier(item, method, resource_name) for item in linkage)
    return parse_resource_identifier(linkage, method, resource_name)


def parse_resource_identifier(data, method: str = "", resource_name: str = "") -> ResourceIdentifier:
    if not isinstance(data, dict) or data.get("id") is None:
        raise RequestBodyError(method, resource_name, f"Invalid resource identifier: {data}")
    return ResourceIdentifier(type=data.get("type"), id=_id_to_str(data["id"]))


def _id_to_str(value) -> Optional[str]:
    return None if value is None else str(value)
