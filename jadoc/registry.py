"""
The resource registry maps jsonapi types and python classes to registry entries.

A registry entry binds a resource descriptor to its resource repository and
relationship repositories. The registry is built once, at startup, and is read-only afterwards.
"""
from typing import Dict, Iterable, Iterator, Optional
import jadoc
from .descriptor import ResourceDescriptor
from .errors import RegistrationError, RelationshipRepositoryNotFoundError, ResourceNotFoundError


class RegistryEntry:
    """
    Holds information about a resource type and its repositories:
    - the resource descriptor
    - the resource repository
    - the relationship repositories, keyed by their (declared) target type
    - the parent entry if the resource class inherits from another registered resource
    """

    def __init__(self, descriptor: ResourceDescriptor, resource_repository, relationship_repositories=(), parent=None):
        self.descriptor = descriptor
        self.resource_repository = resource_repository
        self._relationship_repositories: Dict[str, object] = {}
        self.parent = None
        for relationship_repository in relationship_repositories:
            self._add_relationship_repository(relationship_repository)
        if parent is not None:
            self.set_parent(parent)

    def _add_relationship_repository(self, relationship_repository) -> None:
        target_type = getattr(relationship_repository, "target_type", None)
        if not target_type:
            raise RegistrationError(f"Relationship repository {relationship_repository} has no target_type")
        if target_type in self._relationship_repositories:
            # two repositories for the same target: we can't tell which one to use
            raise RegistrationError(f"Duplicate relationship repository for {self.resource_type} -> {target_type}")
        self._relationship_repositories[target_type] = relationship_repository

    def set_parent(self, parent: "RegistryEntry") -> None:
        """
        Set the parent entry, the chain must remain acyclic
        """
        entry = parent
        while entry is not None:
            if entry is self:
                raise RegistrationError(f"Cyclic parent chain for {self.resource_type}")
            entry = entry.parent
        self.parent = parent

    @property
    def resource_type(self) -> str:
        return self.descriptor.resource_type

    @property
    def relationship_repositories(self):
        return list(self._relationship_repositories.values())

    @property
    def thread_safe(self) -> bool:
        repositories = [self.resource_repository] + self.relationship_repositories
        return all(getattr(repository, "thread_safe", True) for repository in repositories)

    def relationship_repository_for(self, target_type: str):
        """
        :param target_type: jsonapi type of the relationship target
        :return: relationship repository
        """
        result = self._relationship_repositories.get(target_type)
        if result is None:
            raise RelationshipRepositoryNotFoundError(self.resource_type, target_type)
        return result

    def is_parent(self, entry: "RegistryEntry") -> bool:
        """
        :return: True if `entry` is one of the ancestors of this entry
        """
        parent = self.parent
        while parent is not None:
            if parent is entry:
                return True
            parent = parent.parent
        return False

    def __repr__(self):
        return f"<RegistryEntry {self.resource_type}>"


class ResourceRegistry:
    """
    Registry of all exposed resources
    """

    def __init__(self, service_url: str = ""):
        self._resources: Dict[type, RegistryEntry] = {}
        self._service_url = service_url

    @property
    def service_url(self) -> str:
        return self._service_url

    @service_url.setter
    def service_url(self, value: str) -> None:
        self._service_url = value

    @property
    def thread_safe(self) -> bool:
        """
        :return: whether the resources may be processed by several threads, cfr. INCLUSION_WORKERS
        """
        return all(entry.thread_safe for entry in self._resources.values())

    def register(
        self, resource_class: type, descriptor: ResourceDescriptor, resource_repository, relationship_repositories: Iterable = (), parent=None
    ) -> RegistryEntry:
        """
        Create an entry for `resource_class` and add it to the registry
        If no parent is given, the nearest registered ancestor class is used
        """
        if parent is None:
            parent = self._find_ancestor_entry(resource_class)
        entry = RegistryEntry(descriptor, resource_repository, relationship_repositories, parent)
        self.add_entry(resource_class, entry)
        return entry

    def add_entry(self, resource_class: type, entry: RegistryEntry) -> None:
        if resource_class in self._resources:
            jadoc.log.warning(f"Replacing registry entry for {resource_class.__name__}")
        self._resources[resource_class] = entry
        jadoc.log.debug(f"Added resource {resource_class.__name__} ({entry.resource_type}) to the registry")

    def entries(self) -> Iterator[RegistryEntry]:
        return iter(self._resources.values())

    def get_entry(self, resource_type: str) -> RegistryEntry:
        """
        :param resource_type: jsonapi type
        :return: the entry whose descriptor declares `resource_type`
        """
        for entry in self._resources.values():
            if entry.resource_type == resource_type:
                return entry
        raise ResourceNotFoundError(resource_type)

    def find_entry(self, resource_type: str) -> Optional[RegistryEntry]:
        for entry in self._resources.values():
            if entry.resource_type == resource_type:
                return entry
        return None

    def get_entry_for_class(self, resource_class: type) -> RegistryEntry:
        """
        Exact match first, then walk the ancestors of `resource_class` until a registered class is found
        """
        entry = self.find_entry_for_class(resource_class)
        if entry is None:
            raise ResourceNotFoundError(getattr(resource_class, "__qualname__", str(resource_class)))
        return entry

    def get_entry_for(self, instance) -> RegistryEntry:
        return self.get_entry_for_class(type(instance))

    def find_entry_for_class(self, resource_class: type) -> Optional[RegistryEntry]:
        entry = self._resources.get(resource_class)
        if entry is None:
            entry = self._find_ancestor_entry(resource_class)
        return entry

    def _find_ancestor_entry(self, resource_class: type) -> Optional[RegistryEntry]:
        for ancestor in resource_class.__mro__[1:]:
            if ancestor is object:
                break
            entry = self._resources.get(ancestor)
            if entry is not None:
                return entry
        return None

    def relationship_repository_for(self, entry: RegistryEntry, target_type: str):
        return entry.relationship_repository_for(target_type)

    def get_resource_type(self, resource_class: type) -> str:
        return self.get_entry_for_class(resource_class).resource_type

    def get_resource_url(self, entry: RegistryEntry, service_url: Optional[str] = None) -> str:
        """
        :return: url of the resource collection, eg. http://localhost:5000/api/tasks
        """
        if service_url is None:
            service_url = self._service_url
        return f"{service_url.rstrip('/')}/{entry.resource_type}"
