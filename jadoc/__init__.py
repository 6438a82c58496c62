# flake8: noqa: F401
#
# jadoc: JSON:API request dispatching and document serialization
#
from .jadoc_init import JADOC, log
from .errors import (
    JsonapiError,
    GenericError,
    ValidationError,
    NotFoundError,
    ResourceNotFoundError,
    ResourceFieldNotFoundError,
    RelationshipRepositoryNotFoundError,
    RegistrationError,
    MethodNotAllowedError,
    RequestBodyError,
    RequestBodyNotFoundError,
    TypeMismatchError,
    ParametersDeserializationError,
)
from .descriptor import Cardinality, ResourceField, RelationshipField, ResourceDescriptor
from .registry import RegistryEntry, ResourceRegistry
from .query_params import QueryParams, QueryParamsBuilder
from .path import PathBuilder, ResourcePath, FieldPath, RelationshipsPath
from .request_types import RequestBody, DataBody, parse_request_body
from .repository import ResourceRepository, RelationshipRepository, MetaRepository, LinksRepository, ResourceList
from .memory import InMemoryRepository, InMemoryRelationshipRepository
from .response import BaseResponse, ResourceResponse, CollectionResponse
from .dispatcher import ControllerRegistry, RequestDispatcher
from .inclusion import IncludedRelationshipExtractor, IncludeLookupSetter
from .jsonapi_formatting import DocumentSerializer, jsonapi_format_response
from .json_encoder import JadocJSONProvider, JadocJSONEncoder
from .request import JadocRequest
from .jadoc_api import JadocAPI
from .__about__ import __version__, __description__

__all__ = (
    "__version__",
    "__description__",
    "JADOC",
    "log",
    # api:
    "JadocAPI",
    "JadocRequest",
    "JadocJSONProvider",
    "JadocJSONEncoder",
    # model:
    "Cardinality",
    "ResourceField",
    "RelationshipField",
    "ResourceDescriptor",
    "RegistryEntry",
    "ResourceRegistry",
    # repositories:
    "ResourceRepository",
    "RelationshipRepository",
    "MetaRepository",
    "LinksRepository",
    "ResourceList",
    "InMemoryRepository",
    "InMemoryRelationshipRepository",
    # dispatch:
    "QueryParams",
    "QueryParamsBuilder",
    "PathBuilder",
    "ResourcePath",
    "FieldPath",
    "RelationshipsPath",
    "RequestBody",
    "DataBody",
    "parse_request_body",
    "ControllerRegistry",
    "RequestDispatcher",
    "BaseResponse",
    "ResourceResponse",
    "CollectionResponse",
    "IncludedRelationshipExtractor",
    "IncludeLookupSetter",
    "DocumentSerializer",
    "jsonapi_format_response",
    # errors:
    "JsonapiError",
    "GenericError",
    "ValidationError",
    "NotFoundError",
    "ResourceNotFoundError",
    "ResourceFieldNotFoundError",
    "RelationshipRepositoryNotFoundError",
    "RegistrationError",
    "MethodNotAllowedError",
    "RequestBodyError",
    "RequestBodyNotFoundError",
    "TypeMismatchError",
    "ParametersDeserializationError",
)
