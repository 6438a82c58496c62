# Response envelopes returned by the dispatch controllers and the flask response class
from http import HTTPStatus
from typing import Any, Dict, Optional
from flask import Response

JSONAPI_MEDIA_TYPE = "application/vnd.api+json"


class BaseResponse:
    """
    Result of a controller: the data that will be serialized with the status, meta and links
    """

    def __init__(
        self,
        data: Any = None,
        json_path=None,
        query_params=None,
        meta: Optional[Dict[str, Any]] = None,
        links: Optional[Dict[str, Any]] = None,
        status: int = HTTPStatus.OK,
    ):
        self.data = data
        self.json_path = json_path
        self.query_params = query_params
        self.meta = meta
        self.links = links
        self.status = HTTPStatus(status)

    @property
    def has_content(self) -> bool:
        return self.status != HTTPStatus.NO_CONTENT

    def __repr__(self):
        return f"<{type(self).__name__} {self.status.value} {self.json_path}>"


class ResourceResponse(BaseResponse):
    """
    A single resource (or None) as primary data
    """


class CollectionResponse(BaseResponse):
    """
    A list of resources as primary data
    """

    def __init__(self, data=None, *args, **kwargs):
        super().__init__(list(data) if data is not None else [], *args, **kwargs)


class JadocResponse(Response):
    """
    Response class
    """

    default_mimetype = JSONAPI_MEDIA_TYPE
