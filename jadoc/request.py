"""
Flask request class used by JadocAPI

Request bodies of POST and PATCH requests are expected to have the jsonapi media type
(http://jsonapi.org/format/#content-negotiation-servers), "application/json" is accepted as well.
"""
from flask import Request
from werkzeug.utils import cached_property
import jadoc
from .errors import ValidationError
from .query_params import QueryParams, QueryParamsBuilder
from .request_types import RequestBody, parse_request_body
from .response import JSONAPI_MEDIA_TYPE


# pylint: disable=too-many-ancestors
class JadocRequest(Request):
    """
    Parse the jsonapi-related request arguments:
    - query args: filter, sort, group, fields, include and page parameters
    - body: a json object
    """

    jsonapi_content_types = ("application/json", JSONAPI_MEDIA_TYPE)
    query_params_builder = QueryParamsBuilder()

    @property
    def is_jsonapi(self) -> bool:
        """
        :return: whether the content type (without parameters) is a json media type
        """
        return self.mimetype in self.jsonapi_content_types

    @cached_property
    def query_params(self) -> QueryParams:
        """
        :return: the parsed query parameters, a ParametersDeserializationError is raised for malformed parameters
        """
        return self.query_params_builder.build(self.args)

    def get_jsonapi_payload(self):
        """
        :return: jsonapi request payload, None if the request has no body
        """
        if not self.get_data():
            return None
        if not self.is_jsonapi:
            jadoc.log.warning(f'Invalid Media Type! "{self.content_type}"')
        payload = self.get_json(force=True, silent=True)
        if not isinstance(payload, dict):
            raise ValidationError(f"Invalid JSON Payload : {payload}")
        return payload

    def get_request_body(self, resource_name: str = "") -> RequestBody:
        """
        :return: the parsed request body or None
        """
        return parse_request_body(self.get_jsonapi_payload(), self.method, resource_name)
