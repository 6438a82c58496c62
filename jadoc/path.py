"""
Parsed request paths

    /tasks                         ResourcePath, collection
    /tasks/1                       ResourcePath, single
    /tasks/1,2                     ResourcePath, collection
    /tasks/1/project               FieldPath
    /tasks/1/relationships/project RelationshipsPath
"""
from dataclasses import dataclass
from typing import Optional, Tuple
from .errors import ResourceNotFoundError

RELATIONSHIPS_MARK = "relationships"
ID_SEPARATOR = ","


@dataclass(frozen=True)
class JsonPath:
    """
    :param resource_name: jsonapi type of the resource in the url
    :param ids: ids in the url, None for a collection url
    :param element_name: relationship field name (FieldPath and RelationshipsPath)
    """

    resource_name: str
    ids: Optional[Tuple[str, ...]] = None
    element_name: Optional[str] = None

    @property
    def is_collection(self) -> bool:
        return self.ids is None or len(self.ids) > 1

    @property
    def id(self) -> Optional[str]:
        return self.ids[0] if self.ids else None


class ResourcePath(JsonPath):
    pass


class FieldPath(JsonPath):
    pass


class RelationshipsPath(JsonPath):
    pass


class PathBuilder:
    """
    Build a JsonPath from an url path (relative to the api prefix)
    """

    def build(self, path: str) -> JsonPath:
        segments = [segment for segment in path.strip("/").split("/") if segment]
        if not segments:
            raise ResourceNotFoundError(path)
        resource_name = segments[0]
        if len(segments) == 1:
            return ResourcePath(resource_name)
        ids = tuple(resource_id for resource_id in segments[1].split(ID_SEPARATOR) if resource_id)
        if not ids:
            raise ResourceNotFoundError(path)
        if len(segments) == 2:
            return ResourcePath(resource_name, ids)
        if len(segments) == 3 and segments[2] != RELATIONSHIPS_MARK:
            return FieldPath(resource_name, ids, segments[2])
        if len(segments) == 4 and segments[2] == RELATIONSHIPS_MARK:
            return RelationshipsPath(resource_name, ids, segments[3])
        raise ResourceNotFoundError(path)
