"""
In-memory repositories, for stateless resources, prototypes and tests.

Collections are processed in the order filter -> sort -> paginate, using the
resource scoped query parameters of the repository's resource type.
"""
import itertools
import uuid
from typing import Any, Dict, List
import jadoc
from .config import get_int_config
from .errors import ResourceNotFoundError
from .query_params import SortingValues
from .repository import RelationshipRepository, ResourceList, ResourceRepository


def get_path_value(resource, property_path: str):
    """
    :param property_path: dot delimited attribute path, eg. "owner.name"
    """
    value = resource
    for attr_name in property_path.split("."):
        if value is None:
            return None
        value = getattr(value, attr_name, None)
    return value


class InMemoryRepository(ResourceRepository):
    """
    Resource repository keeping the resources in a dict, keyed by id
    """

    def __init__(self, descriptor, resources=(), id_generator=None):
        self.descriptor = descriptor
        self._resources: Dict[Any, Any] = {}
        if id_generator is None:
            if descriptor.id_field.type is int:
                id_generator = itertools.count(1).__next__
            else:
                id_generator = lambda: str(uuid.uuid4())  # noqa: E731
        self._id_generator = id_generator
        for resource in resources:
            self.save(resource)

    def find_one(self, id, query_params=None):
        return self._resources.get(id)

    def find_all(self, ids=None, query_params=None):
        if ids is None:
            instances = list(self._resources.values())
        else:
            instances = [self._resources[id] for id in ids if id in self._resources]
        if query_params is None:
            return ResourceList(instances, meta={"total": len(instances)})
        instances = self.filter(instances, query_params)
        instances = self.sort(instances, query_params)
        count = len(instances)
        instances = self.paginate(instances, query_params)
        return ResourceList(instances, meta={"total": count})

    def save(self, resource):
        resource_id = self.descriptor.get_id(resource)
        if resource_id is None:
            resource_id = self._id_generator()
            while resource_id in self._resources:
                resource_id = self._id_generator()
            self.descriptor.set_value(resource, self.descriptor.id_field.name, resource_id)
        self._resources[resource_id] = resource
        return resource

    def delete(self, id) -> None:
        if id not in self._resources:
            raise ResourceNotFoundError(f"{self.descriptor.resource_type} {id}")
        del self._resources[id]

    def filter(self, instances: List, query_params) -> List:
        """
        Keep the instances whose (stringified) attribute value is one of the filter values
        """
        filters = query_params.filters_for(self.descriptor)
        for property_path, values in filters.items():
            if not property_path:
                jadoc.log.warning(f"Empty filter property for {self.descriptor.resource_type}")
                continue
            accepted = set(values)
            instances = [instance for instance in instances if str(get_path_value(instance, property_path)) in accepted]
        return instances

    def sort(self, instances: List, query_params) -> List:
        sorting = list(query_params.sorting_for(self.descriptor).items())
        # apply the least significant key first, sorted() is stable
        for property_path, direction in reversed(sorting):

            def sort_key(obj, path=property_path):
                value = get_path_value(obj, path)
                return (value is None, value)

            try:
                instances = sorted(instances, key=sort_key, reverse=direction is SortingValues.DESC)
            except TypeError as exc:
                jadoc.log.warning(f"Sort failed for {self.descriptor.resource_type}.{property_path}: {exc}")
        return instances

    @staticmethod
    def paginate(instances: List, query_params) -> List:
        offset = query_params.offset or 0
        limit = query_params.limit
        if limit is None:
            limit = get_int_config("DEFAULT_PAGE_LIMIT", 250)
        max_limit = get_int_config("MAX_PAGE_LIMIT", 100000)
        limit = min(max(limit, 1), max_limit)
        offset = max(offset, 0)
        return instances[offset : offset + limit]


class InMemoryRelationshipRepository(RelationshipRepository):
    """
    Relationship repository for in-memory resources:
    relationship values are stored as plain attributes on the source instance
    """

    def __init__(self, source_repository: InMemoryRepository, target_repository: InMemoryRepository):
        self.source_repository = source_repository
        self.target_repository = target_repository
        self.source_type = source_repository.descriptor.resource_type
        self.target_type = target_repository.descriptor.resource_type

    def _get_target(self, target_id):
        target = self.target_repository.find_one(target_id)
        if target is None:
            raise ResourceNotFoundError(f"{self.target_type} {target_id}")
        return target

    def _get_targets(self, target_ids) -> List:
        return [self._get_target(target_id) for target_id in target_ids]

    def set_relation(self, source, target_id, field_name: str) -> None:
        target = None if target_id is None else self._get_target(target_id)
        setattr(source, field_name, target)

    def set_relations(self, source, target_ids, field_name: str) -> None:
        setattr(source, field_name, self._get_targets(target_ids))

    def add_relations(self, source, target_ids, field_name: str) -> None:
        current = list(getattr(source, field_name, None) or [])
        target_descriptor = self.target_repository.descriptor
        current_ids = {target_descriptor.get_id(item) for item in current}
        for target in self._get_targets(target_ids):
            if target_descriptor.get_id(target) not in current_ids:
                current.append(target)
                current_ids.add(target_descriptor.get_id(target))
        setattr(source, field_name, current)

    def remove_relations(self, source, target_ids, field_name: str) -> None:
        removed = set(target_ids)
        target_descriptor = self.target_repository.descriptor
        current = list(getattr(source, field_name, None) or [])
        setattr(source, field_name, [item for item in current if target_descriptor.get_id(item) not in removed])

    def find_one_target(self, source_id, field_name: str, query_params=None):
        source = self.source_repository.find_one(source_id, query_params)
        if source is None:
            raise ResourceNotFoundError(f"{self.source_type} {source_id}")
        return getattr(source, field_name, None)

    def find_many_targets(self, source_id, field_name: str, query_params=None):
        source = self.source_repository.find_one(source_id, query_params)
        if source is None:
            raise ResourceNotFoundError(f"{self.source_type} {source_id}")
        return list(getattr(source, field_name, None) or [])
