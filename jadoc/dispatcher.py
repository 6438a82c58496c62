"""
Request dispatching: select the controller that accepts the (path, method) pair and let it handle the request
"""
from typing import List, Optional
import jadoc
from .errors import MethodNotAllowedError
from .inclusion import IncludeLookupSetter
from .jsonapi import (
    BaseController,
    CollectionGet,
    FieldResourceGet,
    FieldResourcePost,
    RelationshipsResourceDelete,
    RelationshipsResourceGet,
    RelationshipsResourcePatch,
    RelationshipsResourcePost,
    ResourceDelete,
    ResourceGet,
    ResourcePatch,
    ResourcePost,
)
from .path import JsonPath
from .query_params import QueryParams, QueryParamsBuilder
from .request_types import RequestBody
from .response import BaseResponse

DEFAULT_CONTROLLERS = [
    CollectionGet,
    ResourceGet,
    ResourcePost,
    ResourcePatch,
    ResourceDelete,
    FieldResourceGet,
    FieldResourcePost,
    RelationshipsResourceGet,
    RelationshipsResourcePost,
    RelationshipsResourcePatch,
    RelationshipsResourceDelete,
]


class ControllerRegistry:
    """
    Ordered list of controllers, the first controller that accepts a request handles it
    """

    def __init__(self, controllers=()):
        self._controllers: List[BaseController] = list(controllers)

    @classmethod
    def build_default(cls, registry, include_lookup_setter: Optional[IncludeLookupSetter] = None) -> "ControllerRegistry":
        include_lookup_setter = include_lookup_setter or IncludeLookupSetter(registry)
        return cls(controller_class(registry, include_lookup_setter) for controller_class in DEFAULT_CONTROLLERS)

    def add_controller(self, controller: BaseController) -> None:
        self._controllers.append(controller)

    @property
    def controllers(self) -> List[BaseController]:
        return list(self._controllers)

    def get_controller(self, json_path: JsonPath, method: str) -> BaseController:
        for controller in self._controllers:
            if controller.is_acceptable(json_path, method):
                return controller
        raise MethodNotAllowedError(f"{method} {json_path}")


class RequestDispatcher:
    def __init__(self, controller_registry: ControllerRegistry, query_params_builder: Optional[QueryParamsBuilder] = None):
        self.controller_registry = controller_registry
        self.query_params_builder = query_params_builder or QueryParamsBuilder()

    def dispatch_request(self, json_path: JsonPath, method: str, query_params=None, request_body: Optional[RequestBody] = None) -> BaseResponse:
        """
        :param json_path: parsed request path
        :param method: http method
        :param query_params: QueryParams, or the raw query parameters (a dict or a MultiDict)
        :param request_body: parsed request body or None
        :return: response envelope
        """
        if query_params is None:
            query_params = QueryParams()
        elif not isinstance(query_params, QueryParams):
            query_params = self.query_params_builder.build(query_params)
        controller = self.controller_registry.get_controller(json_path, method.upper())
        jadoc.log.debug(f"Dispatching {method} {json_path} to {type(controller).__name__}")
        return controller.handle(json_path, query_params, request_body)
