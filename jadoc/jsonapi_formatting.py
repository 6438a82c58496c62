"""
Serialization of the response envelopes to jsonapi documents
(http://jsonapi.org/format/#document-structure)

The returned documents contain python values, the JSON encoding (dates, uuids, ...)
is done by the JadocJSONProvider.
"""
from typing import Any, Dict, List, Optional
from .descriptor import RelationshipField, stringify_id
from .inclusion import IncludedRelationshipExtractor
from .jsonapi_types import JSONAPIResourceIdentifier, JSONAPIResourceObject, JSONAPIResponseDocument
from .path import RelationshipsPath
from .query_params import QueryParams
from .repository import unwrap
from .response import BaseResponse, CollectionResponse

JSONAPI_VERSION = "1.0"


def jsonapi_format_response(data=None, meta=None, links=None, errors=None, included=None) -> JSONAPIResponseDocument:
    """
    Create a response dict according to the json:api document format
    :param data : the serialized primary data
    :return: jsonapi formatted dictionary
    """
    jsonapi = dict(version=JSONAPI_VERSION)
    result = dict(data=data)

    if errors:
        result["errors"] = errors
    if meta:
        result["meta"] = meta
    if jsonapi:
        result["jsonapi"] = jsonapi
    if links:
        result["links"] = links

    result["included"] = list(included) if included else []

    return result


class DocumentSerializer:
    """
    Serializes a controller response:
    - "data": resource objects, or resource identifiers for relationship urls
    - "included": the resources collected by the IncludedRelationshipExtractor
    - "meta" and "links" as returned by the repositories
    """

    def __init__(self, registry, extractor: Optional[IncludedRelationshipExtractor] = None):
        self.registry = registry
        self.extractor = extractor or IncludedRelationshipExtractor(registry)

    def serialize(self, response: BaseResponse, service_url: Optional[str] = None) -> Optional[JSONAPIResponseDocument]:
        """
        :param response: controller response
        :param service_url: url prefix for the links, defaults to the registry service url
        :return: jsonapi document, None if the response has no content
        """
        if not response.has_content:
            return None
        query_params = response.query_params or QueryParams()

        if isinstance(response.json_path, RelationshipsPath):
            data = self.serialize_linkage(response)
            return jsonapi_format_response(data, response.meta, response.links)

        if isinstance(response, CollectionResponse):
            resources = unwrap(response.data) or []
            data = [self.serialize_resource(resource, query_params, service_url) for resource in resources]
        else:
            resources = [response.data] if response.data is not None else []
            data = self.serialize_resource(response.data, query_params, service_url) if resources else None

        containers = self.extractor.extract_included_resources(resources, query_params)
        included = [self.serialize_resource(container.resource, query_params, service_url) for container in containers]
        return jsonapi_format_response(data, response.meta, response.links, included=included)

    def serialize_linkage(self, response: BaseResponse):
        json_path = response.json_path
        entry = self.registry.get_entry(json_path.resource_name)
        rel_field = entry.descriptor.find_relationship_field(json_path.element_name)
        if isinstance(response, CollectionResponse):
            return [self.resource_identifier(target, rel_field) for target in unwrap(response.data) or []]
        if response.data is None:
            return None
        return self.resource_identifier(response.data, rel_field)

    def serialize_resource(self, resource, query_params: Optional[QueryParams] = None, service_url: Optional[str] = None) -> JSONAPIResourceObject:
        """
        :param resource: registered resource instance
        :return: resource object, restricted to the sparse fieldset of its type
        """
        if query_params is None:
            query_params = QueryParams()
        entry = self.registry.get_entry_for(resource)
        descriptor = entry.descriptor
        resource_id = stringify_id(descriptor.get_id(resource))
        self_link = f"{self.registry.get_resource_url(entry, service_url)}/{resource_id}"
        fields = query_params.included_fields_for(descriptor)
        included_names = {inclusion.path_list[0] for inclusion in query_params.inclusions_for(descriptor)}

        attributes: Dict[str, Any] = {}
        for attr_field in descriptor.attribute_fields:
            if fields and attr_field.name not in fields:
                continue
            attributes[attr_field.name] = descriptor.get_value(resource, attr_field.name)

        relationships: Dict[str, Any] = {}
        for rel_field in descriptor.relationship_fields:
            rel_name = rel_field.name
            if fields and rel_name not in fields:
                continue
            relationship = dict(links={"self": f"{self_link}/relationships/{rel_name}", "related": f"{self_link}/{rel_name}"})
            # lazy relationships only contain linkage when they're included
            if not rel_field.lazy or rel_name in included_names:
                relationship["data"] = self.relationship_linkage(rel_field, descriptor.get_value(resource, rel_name))
            relationships[rel_name] = relationship

        return dict(type=entry.resource_type, id=resource_id, attributes=attributes, relationships=relationships, links={"self": self_link})

    def relationship_linkage(self, rel_field: RelationshipField, value):
        if rel_field.is_collection:
            return [self.resource_identifier(target, rel_field) for target in unwrap(value) or []]
        if value is None:
            return None
        return self.resource_identifier(value, rel_field)

    def resource_identifier(self, target, rel_field: Optional[RelationshipField] = None) -> JSONAPIResourceIdentifier:
        """
        :param target: related resource, or the id of the related resource
        """
        entry = self.registry.find_entry_for_class(type(target))
        if entry is not None:
            return dict(type=entry.resource_type, id=stringify_id(entry.descriptor.get_id(target)))
        if rel_field is None:
            raise ValueError(f"Can't create a resource identifier for {target!r}")
        target_entry = self.registry.find_entry(rel_field.target)
        if isinstance(target, (str, int)) or target_entry is None:
            return dict(type=rel_field.target, id=stringify_id(target))
        return dict(type=rel_field.target, id=stringify_id(target_entry.descriptor.get_id(target)))

    def serialize_resources(self, resources, query_params: Optional[QueryParams] = None, service_url=None) -> List[JSONAPIResourceObject]:
        return [self.serialize_resource(resource, query_params, service_url) for resource in unwrap(resources) or []]
