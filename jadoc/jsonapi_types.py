"""
Typed shapes of the jsonapi documents read from request bodies and written by the DocumentSerializer
"""
from typing import Any, Optional, TypedDict, Union


class JSONAPIResourceIdentifier(TypedDict):
    # id is None for resources created by the client without a client-generated id
    id: Optional[str]
    type: str


Linkage = Union[JSONAPIResourceIdentifier, list[JSONAPIResourceIdentifier], None]


class JSONAPIRelationshipObject(TypedDict, total=False):
    # "data" is omitted for lazy relationships that are not included
    data: Linkage
    links: dict[str, str]


class JSONAPIResourceObject(JSONAPIResourceIdentifier, total=False):
    attributes: dict[str, Any]
    relationships: dict[str, JSONAPIRelationshipObject]
    links: dict[str, str]


class JSONAPIErrorObject(TypedDict):
    title: str
    detail: str
    code: str


class JSONAPIDocument(TypedDict, total=False):
    """
    Request body: a resource object for resource endpoints,
    resource identifier(s) for relationship endpoints
    """

    data: Union[JSONAPIResourceObject, list[JSONAPIResourceObject], None]


class JSONAPIResponseDocument(TypedDict, total=False):
    data: Union[JSONAPIResourceObject, list[JSONAPIResourceObject], Linkage]
    included: list[JSONAPIResourceObject]
    meta: dict[str, Any]
    links: dict[str, Any]
    errors: list[JSONAPIErrorObject]
    jsonapi: dict[str, str]
