"""
Inclusion of related resources (https://jsonapi.org/format/#fetching-includes)

- IncludeLookupSetter: before serialization, fetch the relationships that are requested with
  the `include` parameter and flagged `lookup_if_null` when their value is None
- IncludedRelationshipExtractor: during serialization, collect the resources of the
  "included" member: relationships flagged `include_by_default` (recursively) and the explicit
  `include` paths

For collections, the per-resource work is spread over a thread pool, the results are merged
in the order of the primary data.
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence
import jadoc
from .config import get_int_config
from .descriptor import stringify_id
from .errors import NotFoundError, RelationshipRepositoryNotFoundError
from .query_params import QueryParams
from .repository import ResourceList, unwrap


def fan_out(func, resources: Sequence, workers: int) -> List:
    """
    :return: [func(resource) for resource in resources], calculated by `workers` threads
    """
    if workers <= 1 or len(resources) <= 1:
        return [func(resource) for resource in resources]
    with ThreadPoolExecutor(max_workers=min(workers, len(resources))) as executor:
        # map() yields the results in order of submission
        return list(executor.map(func, resources))


def inclusion_workers(registry, workers: Optional[int] = None) -> int:
    """
    :param workers: thread count, INCLUSION_WORKERS if None
    :return: the thread count, 1 when the registry holds repositories that aren't thread safe
    """
    if not registry.thread_safe:
        return 1
    if workers is not None:
        return workers
    return get_int_config("INCLUSION_WORKERS", 1)


class Container:
    """
    Wraps a resource for inclusion,
    two containers are equal when they hold resources with the same (type, id)
    """

    __slots__ = ("resource", "resource_type", "resource_id")

    def __init__(self, resource, resource_type: str, resource_id: Optional[str]):
        self.resource = resource
        self.resource_type = resource_type
        self.resource_id = resource_id

    def _key(self):
        if self.resource_id is None:
            return (self.resource_type, id(self.resource))
        return (self.resource_type, self.resource_id)

    def __eq__(self, other):
        return isinstance(other, Container) and self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return f"<Container {self.resource_type} {self.resource_id}>"


class IncludedRelationshipExtractor:
    """
    Collects the related resources for the "included" member of a document
    """

    def __init__(self, registry, max_depth: Optional[int] = None, workers: Optional[int] = None):
        self.registry = registry
        self._max_depth = max_depth
        self._workers = workers

    @property
    def max_depth(self) -> int:
        if self._max_depth is not None:
            return self._max_depth
        return get_int_config("MAX_INCLUSION_DEPTH", 42)

    @property
    def workers(self) -> int:
        return inclusion_workers(self.registry, self._workers)

    def container(self, resource) -> Optional[Container]:
        entry = self.registry.find_entry_for_class(type(resource))
        if entry is None:
            jadoc.log.warning(f"Can't include unregistered resource {type(resource).__name__}")
            return None
        return Container(resource, entry.resource_type, stringify_id(entry.descriptor.get_id(resource)))

    def extract_included_resources(self, resources, query_params: Optional[QueryParams] = None) -> List[Container]:
        """
        :param resources: the primary data (a resource or a list of resources)
        :return: the related resources, de-duplicated, without the primary data
        """
        if query_params is None:
            query_params = QueryParams()
        if resources is None:
            return []
        if not isinstance(resources, (list, tuple, ResourceList)):
            resources = [resources]
        resources = [resource for resource in unwrap(resources) if resource is not None]

        max_depth = self.max_depth
        partial_results = fan_out(lambda resource: self._extract(resource, query_params, max_depth), resources, self.workers)

        primary = {self.container(resource) for resource in resources}
        result: Dict[Container, Container] = {}
        for partial_result in partial_results:
            for container in partial_result:
                if container not in primary and container not in result:
                    result[container] = container
        return list(result)

    def _extract(self, resource, query_params, max_depth) -> List[Container]:
        return self.extract_default_included(resource, max_depth) + self.extract_included_relationships(resource, query_params)

    def extract_default_included(self, resource, max_depth: Optional[int] = None) -> List[Container]:
        """
        Follow the relationships flagged `include_by_default`, at most `max_depth` levels deep
        """
        if max_depth is None:
            max_depth = self.max_depth
        result: List[Container] = []
        root = self.container(resource)
        visited = {root} if root is not None else set()
        self._default_included(resource, 0, max_depth, visited, result)
        return result

    def _default_included(self, resource, depth, max_depth, visited, result) -> None:
        if resource is None or depth >= max_depth:
            return
        entry = self.registry.find_entry_for_class(type(resource))
        if entry is None:
            return
        for rel_field in entry.descriptor.relationship_fields:
            if not rel_field.include_by_default:
                continue
            value = entry.descriptor.get_value(resource, rel_field.name)
            if value is None:
                continue
            targets = unwrap(value) if rel_field.is_collection else [value]
            for target in targets:
                container = self.container(target)
                if container is None or container in visited:
                    continue
                visited.add(container)
                result.append(container)
                self._default_included(target, depth + 1, max_depth, visited, result)

    def extract_included_relationships(self, resource, query_params: QueryParams) -> List[Container]:
        """
        Follow the `include` paths requested for the type of `resource`,
        the intermediate resources of a path are included as well
        """
        entry = self.registry.find_entry_for_class(type(resource))
        if entry is None:
            return []
        result: List[Container] = []
        for inclusion in query_params.inclusions_for(entry.descriptor):
            result.extend(self._get_elements(resource, inclusion.path_list))
        return result

    def _get_elements(self, resource, path_list: List[str]) -> List[Container]:
        if resource is None or not path_list:
            return []
        entry = self.registry.find_entry_for_class(type(resource))
        if entry is None:
            return []
        rel_name = path_list[0]
        rel_field = entry.descriptor.find_relationship_field(rel_name)
        if rel_field is None:
            jadoc.log.warning(f"Invalid include path: {entry.resource_type} has no relationship {rel_name}")
            return []
        value = entry.descriptor.get_value(resource, rel_name)
        if value is None:
            return []
        targets = unwrap(value) if rel_field.is_collection else [value]
        result = []
        for target in targets:
            container = self.container(target)
            if container is None:
                continue
            result.append(container)
            result.extend(self._get_elements(target, path_list[1:]))
        return result


class IncludeLookupSetter:
    """
    Sets the value of included `lookup_if_null` relationships, using the relationship repositories
    """

    def __init__(self, registry, workers: Optional[int] = None):
        self.registry = registry
        self._workers = workers

    @property
    def workers(self) -> int:
        return inclusion_workers(self.registry, self._workers)

    def set_included_elements(self, resources, query_params: Optional[QueryParams]) -> None:
        """
        :param resources: a resource, a list of resources or a ResourceList
        """
        if resources is None or query_params is None:
            return
        if isinstance(resources, (list, tuple, ResourceList)):
            instances = [resource for resource in unwrap(resources) if resource is not None]
            fan_out(lambda resource: self._set_for_resource(resource, query_params), instances, self.workers)
        else:
            self._set_for_resource(resources, query_params)

    def _set_for_resource(self, resource, query_params) -> None:
        entry = self.registry.find_entry_for_class(type(resource))
        if entry is None:
            return
        for inclusion in query_params.inclusions_for(entry.descriptor):
            self._load_elements(resource, inclusion.path_list, query_params)

    def _load_elements(self, resource, path_list, query_params) -> None:
        if resource is None or not path_list:
            return
        entry = self.registry.find_entry_for_class(type(resource))
        if entry is None:
            jadoc.log.debug(f"No registry entry for {type(resource).__name__}")
            return
        rel_field = entry.descriptor.find_relationship_field(path_list[0])
        if rel_field is None:
            jadoc.log.warning(f"Invalid include path: {entry.resource_type} has no relationship {path_list[0]}")
            return

        value = entry.descriptor.get_value(resource, rel_field.name)
        if value is None and rel_field.lookup_if_null:
            value = self._load_relationship(resource, entry, rel_field, query_params)
            if value is not None:
                entry.descriptor.set_value(resource, rel_field.name, value)
        if value is None:
            return

        targets = unwrap(value) if rel_field.is_collection else [value]
        for target in targets:
            self._load_elements(target, path_list[1:], query_params)

    @staticmethod
    def _load_relationship(resource, entry, rel_field, query_params):
        source_id = entry.descriptor.get_id(resource)
        try:
            relationship_repository = entry.relationship_repository_for(rel_field.target)
            if rel_field.is_collection:
                return unwrap(relationship_repository.find_many_targets(source_id, rel_field.name, query_params))
            return relationship_repository.find_one_target(source_id, rel_field.name, query_params)
        except (RelationshipRepositoryNotFoundError, NotFoundError) as exc:
            jadoc.log.warning(f"Can't look up {entry.resource_type}.{rel_field.name}: {exc}")
            return None
