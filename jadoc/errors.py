# Exception Handlers
#
# The application loglevel determines the level of detail shown to the user.
# If set to debug, too much sensitive info might be shown !
#
# The exceptions will be caught by the jadoc api view and formatted, for example:
# {
#     "errors": [
#         {
#             "title": "Request Body Error: Multiple data in body",
#             "detail": "Request Body Error: Multiple data in body",
#             "code": "400"
#         }
#     ]
# }
#
import logging
import traceback
from http import HTTPStatus
from flask import has_request_context, request
from sqlalchemy.exc import DontWrapMixin
from werkzeug.exceptions import NotFound
import jadoc
from .config import is_debug

HIDDEN_LOG = "(debug logging disabled)"


class JsonapiError(Exception, DontWrapMixin):
    """
    Base class of all jadoc errors

    `message` is the prefix of the message returned to the client, the message passed to
    the constructor is appended when `hide_message` is False or when running in debug mode
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    message = ""
    api_code = None
    hide_message = True
    log_level = logging.ERROR

    def __init__(self, message="", status_code=None, api_code=None):
        Exception.__init__(self, message)
        if status_code is not None:
            self.status_code = status_code
        self.api_code = api_code
        jadoc.log.log(self.log_level, "%s%s", self.message, message)
        if not self.hide_message or is_debug():
            self.message += str(message)
        else:
            self.message += HIDDEN_LOG

    @property
    def detail(self):
        return self.message

    def __str__(self):
        return self.message


class NotFoundError(JsonapiError, NotFound):
    """
    This exception is raised when an item was not found
    """

    status_code = HTTPStatus.NOT_FOUND.value
    message = "NotFoundError "


class ResourceNotFoundError(NotFoundError):
    """
    Raised for unknown resource types and ids that can't be resolved
    """

    message = "Resource Not Found: "


class ResourceFieldNotFoundError(NotFoundError):
    """
    Raised when a path refers to a relationship field the resource doesn't declare
    """

    message = "Resource Field Not Found: "


class GenericError(JsonapiError):
    """
    This exception is raised when an error has been detected
    """

    message = "Generic Error: "

    def __init__(self, message, status_code=None, api_code=None):
        super().__init__(message, status_code, api_code)
        if is_debug():
            if has_request_context():
                jadoc.log.info(f"Error in {request.url}")
            jadoc.log.debug(traceback.format_exc(120))


class RelationshipRepositoryNotFoundError(GenericError):
    """
    No relationship repository has been registered for the requested target type
    """

    message = "Relationship Repository Not Found: "

    def __init__(self, source_type, target_type, status_code=None, api_code=None):
        self.source_type = source_type
        self.target_type = target_type
        super().__init__(f"{source_type} -> {target_type}", status_code, api_code)


class RegistrationError(GenericError):
    """
    Raised while building the registry, i.e. at startup
    """

    message = "Registration Error: "


class MethodNotAllowedError(GenericError):
    """
    None of the controllers accepts the request
    """

    status_code = HTTPStatus.METHOD_NOT_ALLOWED.value
    message = "Method Not Allowed: "


class ValidationError(JsonapiError):
    """
    This exception is raised when invalid input has been detected (client side input)
    Always send back the message to the client in the response
    """

    status_code = HTTPStatus.BAD_REQUEST.value
    message = "Validation Error: "
    hide_message = False
    log_level = logging.WARNING


class RequestBodyError(ValidationError):
    """
    The request body doesn't match the operation, eg. single data sent to a to-many relationship
    """

    message = "Request Body Error: "

    def __init__(self, method, resource_name, message="", status_code=None, api_code=None):
        self.method = method
        self.resource_name = resource_name
        super().__init__(message, status_code, api_code)


class RequestBodyNotFoundError(RequestBodyError):
    """
    The operation requires a request body
    """

    def __init__(self, method, resource_name, status_code=None, api_code=None):
        super().__init__(method, resource_name, f"Request body not found, {method} {resource_name}", status_code, api_code)


class TypeMismatchError(ValidationError):
    """
    The type in the request body is not the endpoint type or one of its registered subtypes
    """

    status_code = HTTPStatus.CONFLICT.value
    message = "Type Mismatch: "


class ParametersDeserializationError(ValidationError):
    """
    Malformed query parameters, eg. page[offset][minimal]
    """

    message = "Parameters Deserialization Error: "
