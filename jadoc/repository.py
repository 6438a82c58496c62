"""
Repository interfaces consumed by the dispatch controllers

- ResourceRepository: find, save and delete resources of one type
- RelationshipRepository: read and modify a named relationship between a source and a target type
- MetaRepository, LinksRepository: optional capabilities providing top level "meta" and "links"
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


@dataclass
class ResourceList:
    """
    A list of resources returned by a repository together with its meta and links
    """

    items: List[Any] = field(default_factory=list)
    meta: Optional[Dict[str, Any]] = None
    links: Optional[Dict[str, Any]] = None

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, index):
        return self.items[index]


def unwrap(resources) -> Optional[list]:
    """
    :return: the plain list of resources held by `resources` (a ResourceList or any iterable)
    """
    if resources is None:
        return None
    if isinstance(resources, ResourceList):
        return list(resources.items)
    return list(resources)


class ResourceRepository(ABC):
    """
    `thread_safe`: False when the repository, or the resources it returns, must only be used
    from the request thread, the inclusion fan-out is disabled for registries holding such repositories
    """

    thread_safe = True

    @abstractmethod
    def find_one(self, id, query_params):
        """
        :return: the resource with `id` or None
        """

    @abstractmethod
    def find_all(self, ids, query_params):
        """
        :param ids: list of ids, None to retrieve all resources
        :param query_params: None to skip filtering, sorting and pagination
        :return: iterable of resources or ResourceList
        """

    @abstractmethod
    def save(self, resource):
        """
        :return: the saved resource
        """

    def delete(self, id) -> None:
        raise NotImplementedError(f"{type(self).__name__} doesn't support delete")


class RelationshipRepository(ABC):
    """
    Subclasses must set `target_type`, the jsonapi type of the relationship target.
    The registry uses it to select the repository for a relationship field.
    """

    source_type: Optional[str] = None
    target_type: Optional[str] = None
    thread_safe = True

    @abstractmethod
    def set_relation(self, source, target_id, field_name: str) -> None:
        """
        Set a to-one relationship, `target_id` None clears the relation
        """

    @abstractmethod
    def set_relations(self, source, target_ids: Iterable, field_name: str) -> None:
        """
        Replace all members of a to-many relationship
        """

    @abstractmethod
    def add_relations(self, source, target_ids: Iterable, field_name: str) -> None:
        pass

    @abstractmethod
    def remove_relations(self, source, target_ids: Iterable, field_name: str) -> None:
        pass

    @abstractmethod
    def find_one_target(self, source_id, field_name: str, query_params):
        pass

    @abstractmethod
    def find_many_targets(self, source_id, field_name: str, query_params):
        pass


class MetaRepository(ABC):
    @abstractmethod
    def get_meta_information(self, root, resources, query_params) -> Optional[Dict[str, Any]]:
        """
        :param root: id of the requested resource, or None
        :param resources: the resources that will be returned
        :return: top level "meta"
        """


class LinksRepository(ABC):
    @abstractmethod
    def get_links_information(self, resources, query_params) -> Optional[Dict[str, Any]]:
        """
        :return: top level "links"
        """
