#  This file contains the jsonapi dispatch controllers:
#  - resource controllers (collections and instances): CollectionGet, ResourceGet, ResourcePost, ResourcePatch, ResourceDelete
#  - field controllers (related resources): FieldResourceGet, FieldResourcePost
#  - relationship controllers (linkage): RelationshipsResourceGet, RelationshipsResourcePost, -Patch, -Delete
#
# A controller accepts a (path, http method) pair and handles the request by calling the repositories
# registered in the ResourceRegistry. The result is a response envelope (cfr. response.py) that will be
# serialized by the DocumentSerializer.
#
# All validation happens before the first repository mutation (save, set_relation, ...):
# an invalid request never results in a partial update.
# Repository errors are not caught here.
#
# pylint: disable=unused-argument
#
from collections import OrderedDict
from http import HTTPStatus
from typing import Any, Dict, List, Optional, Tuple
import jadoc
from .config import get_config
from .errors import (
    RequestBodyError,
    RequestBodyNotFoundError,
    ResourceFieldNotFoundError,
    ResourceNotFoundError,
    TypeMismatchError,
    ValidationError,
)
from .inclusion import IncludeLookupSetter
from .path import FieldPath, JsonPath, RelationshipsPath, ResourcePath
from .query_params import QueryParams
from .registry import RegistryEntry, ResourceRegistry
from .repository import ResourceList, unwrap
from .request_types import DataBody, RequestBody
from .response import BaseResponse, CollectionResponse, ResourceResponse


def get_meta_information(repository, resources, query_params, root=None) -> Optional[Dict[str, Any]]:
    """
    :param repository: resource or relationship repository, may implement `get_meta_information`
    :param resources: the resources returned by the repository (a ResourceList may carry its own meta)
    :return: top level meta
    """
    get_meta = getattr(repository, "get_meta_information", None)
    if callable(get_meta):
        return get_meta(root, unwrap(resources), query_params)
    if isinstance(resources, ResourceList):
        return resources.meta
    return None


def get_links_information(repository, resources, query_params) -> Optional[Dict[str, Any]]:
    """
    :return: top level links
    """
    get_links = getattr(repository, "get_links_information", None)
    if callable(get_links):
        return get_links(unwrap(resources), query_params)
    if isinstance(resources, ResourceList):
        return resources.links
    return None


class BaseController:
    """
    Superclass for the dispatch controllers

    `http_method`: the http method handled by the controller
    `path_class`: the type of JsonPath handled by the controller
    """

    http_method: str = None
    path_class: type = None
    # None: accept both, True: accept collection paths only, False: single resource paths only
    collection: Optional[bool] = None

    def __init__(self, registry: ResourceRegistry, include_lookup_setter: Optional[IncludeLookupSetter] = None):
        self.registry = registry
        self.include_lookup_setter = include_lookup_setter or IncludeLookupSetter(registry)

    def is_acceptable(self, json_path: JsonPath, method: str) -> bool:
        if method != self.http_method or type(json_path) is not self.path_class:
            return False
        if self.collection is None:
            return True
        return json_path.is_collection is self.collection

    def handle(self, json_path: JsonPath, query_params: QueryParams, request_body: Optional[RequestBody]) -> BaseResponse:
        raise NotImplementedError

    def get_path_entry(self, json_path: JsonPath) -> RegistryEntry:
        return self.registry.get_entry(json_path.resource_name)

    @staticmethod
    def parse_path_ids(entry: RegistryEntry, json_path: JsonPath) -> Optional[List]:
        if json_path.ids is None:
            return None
        return [entry.descriptor.parse_id(path_id) for path_id in json_path.ids]

    def get_relationship_field(self, entry: RegistryEntry, json_path: JsonPath):
        rel_field = entry.descriptor.find_relationship_field(json_path.element_name)
        if rel_field is None:
            raise ResourceFieldNotFoundError(f"{entry.resource_type}.{json_path.element_name}")
        return rel_field

    def find_resource(self, entry: RegistryEntry, resource_id, query_params):
        resource = entry.resource_repository.find_one(resource_id, query_params)
        if resource is None:
            raise ResourceNotFoundError(f"{entry.resource_type} {resource_id}")
        return resource

    def get_compatible_entry(self, target_entry: RegistryEntry, resource_type: Optional[str]) -> RegistryEntry:
        """
        :param target_entry: the entry of the expected type
        :param resource_type: type specified in the request body
        :return: entry of `resource_type`, which is either the expected type or a registered subtype
        """
        if resource_type is None or resource_type == target_entry.resource_type:
            return target_entry
        entry = self.registry.find_entry(resource_type)
        if entry is None or not entry.is_parent(target_entry):
            raise TypeMismatchError(f"Invalid type {resource_type} != {target_entry.resource_type}")
        return entry

    def parse_identifier(self, target_entry: RegistryEntry, resource_type, resource_id) -> Tuple[RegistryEntry, Any]:
        """
        Validate a resource identifier ({type, id}) and convert the id
        """
        if resource_id is None:
            raise ValidationError(f"no target id for {target_entry.resource_type}")
        entry = self.get_compatible_entry(target_entry, resource_type)
        return entry, entry.descriptor.parse_id(resource_id)


class ResourceUpsert(BaseController):
    """
    Common functionality for the controllers creating or updating resources from a request body
    """

    def get_single_data(self, json_path: JsonPath, request_body: Optional[RequestBody]) -> DataBody:
        """
        The request MUST include a single resource object as primary data
        """
        if request_body is None:
            raise RequestBodyNotFoundError(self.http_method, json_path.resource_name)
        if request_body.is_multiple:
            raise RequestBodyError(self.http_method, json_path.resource_name, "Multiple data in body")
        data_body = request_body.single_data
        if data_body is None:
            raise RequestBodyError(self.http_method, json_path.resource_name, "No data field in the body.")
        return data_body

    def get_body_entry(self, endpoint_entry: RegistryEntry, data_body: DataBody) -> RegistryEntry:
        """
        The resource object MUST contain at least a type member,
        the type must be the endpoint type or one of its registered subtypes
        """
        if not data_body.type:
            raise RequestBodyError(self.http_method, endpoint_entry.resource_type, "Invalid type member: None")
        return self.get_compatible_entry(endpoint_entry, data_body.type)

    @staticmethod
    def parse_attributes(data_body: DataBody, entry: RegistryEntry) -> Dict[str, Any]:
        """
        :return: attribute name -> parsed value, attributes that aren't declared are ignored
        """
        descriptor = entry.descriptor
        result = OrderedDict()
        for attr_name, attr_val in data_body.attributes.items():
            attr_field = descriptor.find_attribute_field(attr_name)
            if attr_field is None:
                jadoc.log.debug(f"Ignoring unknown attribute {entry.resource_type}.{attr_name}")
                continue
            result[attr_name] = descriptor.parse_attribute_value(attr_field, attr_val)
        return result

    def resolve_relations(self, data_body: DataBody, entry: RegistryEntry) -> Dict[str, Any]:
        """
        Look up the resources referenced by the relationships in the request body
        :return: relationship name -> related resource(s)
        """
        result = OrderedDict()
        lookup_params = QueryParams()
        for rel_name, rel_data in data_body.relationships.items():
            rel_field = entry.descriptor.find_relationship_field(rel_name)
            if rel_field is None:
                jadoc.log.warning(f"Ignoring unknown relationship {entry.resource_type}.{rel_name}")
                continue
            if rel_field.is_collection != rel_data.is_multiple:
                raise RequestBodyError(self.http_method, entry.resource_type, f'Invalid relationship payload for "{rel_name}"')
            target_entry = self.registry.get_entry(rel_field.target)
            if rel_field.is_collection:
                result[rel_name] = self._find_targets(target_entry, rel_data.linkage)
            elif rel_data.linkage is None:
                result[rel_name] = None
            else:
                identifier = rel_data.linkage
                id_entry, target_id = self.parse_identifier(target_entry, identifier.type, identifier.id)
                target = id_entry.resource_repository.find_one(target_id, lookup_params)
                if target is None:
                    raise ResourceNotFoundError(f"{id_entry.resource_type} {target_id}")
                result[rel_name] = target
        return result

    def _find_targets(self, target_entry: RegistryEntry, identifiers) -> List:
        # batch find per (sub)type, without query params: every requested id must be returned
        ids_per_entry: Dict[RegistryEntry, List] = OrderedDict()
        for identifier in identifiers:
            id_entry, target_id = self.parse_identifier(target_entry, identifier.type, identifier.id)
            ids_per_entry.setdefault(id_entry, []).append(target_id)
        result = []
        for id_entry, target_ids in ids_per_entry.items():
            targets = unwrap(id_entry.resource_repository.find_all(target_ids, None)) or []
            found_ids = {id_entry.descriptor.get_id(target) for target in targets}
            missing_ids = [target_id for target_id in target_ids if target_id not in found_ids]
            if missing_ids:
                raise ResourceNotFoundError(f"{id_entry.resource_type} {', '.join(map(str, missing_ids))}")
            result.extend(targets)
        return result

    @staticmethod
    def apply(resource, entry: RegistryEntry, attributes: Dict[str, Any], relations: Dict[str, Any]) -> None:
        descriptor = entry.descriptor
        for attr_name, attr_val in attributes.items():
            descriptor.set_value(resource, attr_name, attr_val)
        for rel_name, rel_val in relations.items():
            descriptor.set_value(resource, rel_name, rel_val)

    def create_resource(self, endpoint_entry: RegistryEntry, data_body: DataBody, query_params):
        """
        Create, save and re-fetch a resource
        :return: (body entry, saved resource)
        """
        body_entry = self.get_body_entry(endpoint_entry, data_body)
        attributes = self.parse_attributes(data_body, body_entry)
        relations = self.resolve_relations(data_body, body_entry)
        client_generated_id = None
        if data_body.id is not None:
            if get_config("ALLOW_CLIENT_GENERATED_IDS"):
                client_generated_id = body_entry.descriptor.parse_id(data_body.id)
            else:
                jadoc.log.warning(f"Client-generated ids are not allowed for {body_entry.resource_type}")

        resource = body_entry.descriptor.new_instance()
        if client_generated_id is not None:
            body_entry.descriptor.set_value(resource, body_entry.descriptor.id_field.name, client_generated_id)
        self.apply(resource, body_entry, attributes, relations)

        repository = endpoint_entry.resource_repository
        saved_resource = repository.save(resource)
        resource_id = body_entry.descriptor.get_id(saved_resource)
        # query the saved resource again, the repository may have set server side relations
        saved_with_relations = repository.find_one(resource_id, query_params)
        if saved_with_relations is None:
            jadoc.log.warning(f"Saved resource {body_entry.resource_type} {resource_id} can't be retrieved")
            saved_with_relations = saved_resource
        return body_entry, saved_with_relations


class CollectionGet(BaseController):
    """
    GET /tasks, GET /tasks/1,2
    """

    http_method = "GET"
    path_class = ResourcePath
    collection = True

    def handle(self, json_path, query_params, request_body=None):
        entry = self.get_path_entry(json_path)
        ids = self.parse_path_ids(entry, json_path)
        repository = entry.resource_repository
        resources = repository.find_all(ids, query_params)
        instances = unwrap(resources) or []
        self.include_lookup_setter.set_included_elements(instances, query_params)
        meta = get_meta_information(repository, resources, query_params)
        links = get_links_information(repository, resources, query_params)
        return CollectionResponse(instances, json_path, query_params, meta, links)


class ResourceGet(BaseController):
    """
    GET /tasks/1
    """

    http_method = "GET"
    path_class = ResourcePath
    collection = False

    def handle(self, json_path, query_params, request_body=None):
        entry = self.get_path_entry(json_path)
        resource_id = entry.descriptor.parse_id(json_path.id)
        resource = self.find_resource(entry, resource_id, query_params)
        self.include_lookup_setter.set_included_elements(resource, query_params)
        repository = entry.resource_repository
        meta = get_meta_information(repository, [resource], query_params, resource_id)
        links = get_links_information(repository, [resource], query_params)
        return ResourceResponse(resource, json_path, query_params, meta, links)


class ResourcePost(ResourceUpsert):
    """
    POST /tasks

    http://jsonapi.org/format/#crud-creating
    The request MUST include a single resource object as primary data.
    The resource object MUST contain at least a type member.
    If a relationship is provided in the relationships member of the resource object,
    its value MUST be a relationship object with a data member.
    """

    http_method = "POST"
    path_class = ResourcePath

    def is_acceptable(self, json_path, method):
        # POSTing to an instance isn't jsonapi-compliant
        return super().is_acceptable(json_path, method) and json_path.ids is None

    def handle(self, json_path, query_params, request_body):
        endpoint_entry = self.get_path_entry(json_path)
        data_body = self.get_single_data(json_path, request_body)
        body_entry, resource = self.create_resource(endpoint_entry, data_body, query_params)
        self.include_lookup_setter.set_included_elements(resource, query_params)
        repository = endpoint_entry.resource_repository
        meta = get_meta_information(repository, [resource], query_params)
        links = get_links_information(repository, [resource], query_params)
        return ResourceResponse(resource, json_path, query_params, meta, links, HTTPStatus.CREATED)


class ResourcePatch(ResourceUpsert):
    """
    PATCH /tasks/1

    https://jsonapi.org/format/#crud-updating
    Attributes and relationships that are not included in the request are left unchanged
    """

    http_method = "PATCH"
    path_class = ResourcePath
    collection = False

    def handle(self, json_path, query_params, request_body):
        entry = self.get_path_entry(json_path)
        data_body = self.get_single_data(json_path, request_body)
        body_entry = self.get_body_entry(entry, data_body)
        resource_id = entry.descriptor.parse_id(json_path.id)
        if data_body.id is not None:
            body_id = body_entry.descriptor.parse_id(data_body.id)
            if body_id != resource_id:
                raise ValidationError(f"Invalid ID {body_id} != {resource_id}")

        repository = entry.resource_repository
        resource = self.find_resource(entry, resource_id, query_params)
        attributes = self.parse_attributes(data_body, body_entry)
        relations = self.resolve_relations(data_body, body_entry)

        self.apply(resource, body_entry, attributes, relations)
        repository.save(resource)
        updated = repository.find_one(resource_id, query_params) or resource

        self.include_lookup_setter.set_included_elements(updated, query_params)
        meta = get_meta_information(repository, [updated], query_params, resource_id)
        links = get_links_information(repository, [updated], query_params)
        return ResourceResponse(updated, json_path, query_params, meta, links)


class ResourceDelete(BaseController):
    """
    DELETE /tasks/1, DELETE /tasks/1,2
    """

    http_method = "DELETE"
    path_class = ResourcePath

    def is_acceptable(self, json_path, method):
        return super().is_acceptable(json_path, method) and json_path.ids is not None

    def handle(self, json_path, query_params, request_body=None):
        entry = self.get_path_entry(json_path)
        ids = self.parse_path_ids(entry, json_path)
        for resource_id in ids:
            entry.resource_repository.delete(resource_id)
        return BaseResponse(None, json_path, query_params, status=HTTPStatus.NO_CONTENT)


class RelationshipTargetGet(BaseController):
    """
    Retrieve the target(s) of a relationship with the relationship repository
    """

    http_method = "GET"
    collection = False

    def handle(self, json_path, query_params, request_body=None):
        entry = self.get_path_entry(json_path)
        resource_id = entry.descriptor.parse_id(json_path.id)
        rel_field = self.get_relationship_field(entry, json_path)
        relationship_repository = entry.relationship_repository_for(rel_field.target)

        if rel_field.is_collection:
            targets = relationship_repository.find_many_targets(resource_id, rel_field.name, query_params)
            instances = unwrap(targets) or []
            self.include_lookup_setter.set_included_elements(instances, query_params)
            meta = get_meta_information(relationship_repository, targets, query_params, resource_id)
            links = get_links_information(relationship_repository, targets, query_params)
            return CollectionResponse(instances, json_path, query_params, meta, links)

        target = relationship_repository.find_one_target(resource_id, rel_field.name, query_params)
        targets = [target] if target is not None else []
        self.include_lookup_setter.set_included_elements(target, query_params)
        meta = get_meta_information(relationship_repository, targets, query_params, resource_id)
        links = get_links_information(relationship_repository, targets, query_params)
        return ResourceResponse(target, json_path, query_params, meta, links)


class FieldResourceGet(RelationshipTargetGet):
    """
    GET /tasks/1/project: the related resource(s)
    """

    path_class = FieldPath


class RelationshipsResourceGet(RelationshipTargetGet):
    """
    GET /tasks/1/relationships/project: the relationship linkage
    """

    path_class = RelationshipsPath


class FieldResourcePost(ResourceUpsert):
    """
    POST /tasks/1/project: create a related resource and add it to the relationship
    """

    http_method = "POST"
    path_class = FieldPath
    collection = False

    def handle(self, json_path, query_params, request_body):
        entry = self.get_path_entry(json_path)
        resource_id = entry.descriptor.parse_id(json_path.id)
        rel_field = self.get_relationship_field(entry, json_path)
        data_body = self.get_single_data(json_path, request_body)
        target_entry = self.registry.get_entry(rel_field.target)
        relationship_repository = entry.relationship_repository_for(rel_field.target)
        source = self.find_resource(entry, resource_id, query_params)

        body_entry, target = self.create_resource(target_entry, data_body, query_params)
        target_id = body_entry.descriptor.get_id(target)
        if rel_field.is_collection:
            relationship_repository.add_relations(source, [target_id], rel_field.name)
        else:
            relationship_repository.set_relation(source, target_id, rel_field.name)

        self.include_lookup_setter.set_included_elements(target, query_params)
        repository = target_entry.resource_repository
        meta = get_meta_information(repository, [target], query_params)
        links = get_links_information(repository, [target], query_params)
        return ResourceResponse(target, json_path, query_params, meta, links, HTTPStatus.CREATED)


class RelationshipsResourceUpsert(BaseController):
    """
    Modify a relationship: /tasks/1/relationships/project

    http://jsonapi.org/format/#crud-updating-relationships
    The body of a request to a to-many relationship MUST contain a data member
    whose value is an empty array or an array of resource identifier objects.
    The body of a request to a to-one relationship contains a resource identifier object or null.

    Subclasses implement `process_to_many` and `process_to_one`
    """

    path_class = RelationshipsPath
    collection = False

    def process_to_many(self, resource, field_name: str, target_ids: List, relationship_repository) -> None:
        raise NotImplementedError

    def process_to_one(self, resource, field_name: str, target_id, relationship_repository) -> None:
        raise NotImplementedError

    def handle(self, json_path, query_params, request_body):
        resource_name = json_path.resource_name
        entry = self.get_path_entry(json_path)
        if request_body is None:
            raise RequestBodyNotFoundError(self.http_method, resource_name)

        resource_id = entry.descriptor.parse_id(json_path.id)
        rel_field = self.get_relationship_field(entry, json_path)
        repository = entry.resource_repository
        resource = self.find_resource(entry, resource_id, query_params)
        target_entry = self.registry.get_entry(rel_field.target)
        relationship_repository = entry.relationship_repository_for(rel_field.target)

        if rel_field.is_collection:
            if not request_body.is_multiple:
                raise RequestBodyError(self.http_method, resource_name, "Non-multiple data in body")
            target_ids = [self.parse_identifier(target_entry, data.type, data.id)[1] for data in request_body.multiple_data]
            self.process_to_many(resource, rel_field.name, target_ids, relationship_repository)
        else:
            if request_body.is_multiple:
                raise RequestBodyError(self.http_method, resource_name, "Multiple data in body")
            data_body = request_body.single_data
            target_id = None
            if data_body is not None:
                target_id = self.parse_identifier(target_entry, data_body.type, data_body.id)[1]
            self.process_to_one(resource, rel_field.name, target_id, relationship_repository)

        meta = get_meta_information(repository, [resource], query_params, resource_id)
        links = get_links_information(repository, [resource], query_params)
        return BaseResponse(None, json_path, query_params, meta, links, HTTPStatus.NO_CONTENT)


class RelationshipsResourcePost(RelationshipsResourceUpsert):
    """
    Add members to a relationship
    """

    http_method = "POST"

    def process_to_many(self, resource, field_name, target_ids, relationship_repository):
        relationship_repository.add_relations(resource, target_ids, field_name)

    def process_to_one(self, resource, field_name, target_id, relationship_repository):
        relationship_repository.set_relation(resource, target_id, field_name)


class RelationshipsResourcePatch(RelationshipsResourceUpsert):
    """
    Replace all members of a relationship, an empty array clears a to-many relationship
    """

    http_method = "PATCH"

    def process_to_many(self, resource, field_name, target_ids, relationship_repository):
        relationship_repository.set_relations(resource, target_ids, field_name)

    def process_to_one(self, resource, field_name, target_id, relationship_repository):
        relationship_repository.set_relation(resource, target_id, field_name)


class RelationshipsResourceDelete(RelationshipsResourceUpsert):
    """
    Remove members from a relationship
    """

    http_method = "DELETE"

    def process_to_many(self, resource, field_name, target_ids, relationship_repository):
        relationship_repository.remove_relations(resource, target_ids, field_name)

    def process_to_one(self, resource, field_name, target_id, relationship_repository):
        relationship_repository.set_relation(resource, None, field_name)
