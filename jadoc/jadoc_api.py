"""
Flask integration: expose the registered resources on a single catch-all route

    app = Flask(__name__)
    registry = ResourceRegistry()
    registry.register(Task, task_descriptor, InMemoryRepository(task_descriptor))
    api = JadocAPI(app, registry, prefix="/api")
"""
import logging
from functools import wraps
from http import HTTPStatus
from typing import Callable, Optional
from werkzeug.exceptions import HTTPException, NotFound
from flask import Blueprint, Flask, current_app, request
import jadoc
from .config import get_config
from .dispatcher import ControllerRegistry, RequestDispatcher
from .errors import JsonapiError, GenericError
from .json_encoder import JadocJSONProvider
from .jsonapi_formatting import DocumentSerializer
from .path import PathBuilder
from .registry import ResourceRegistry
from .request import JadocRequest
from .response import JadocResponse

HTTP_METHODS = ["GET", "POST", "PATCH", "DELETE"]
# methods that require a jsonapi content type
BODY_METHODS = ["POST", "PATCH"]


def make_jsonapi_response(document, status=HTTPStatus.OK, headers=None) -> JadocResponse:
    """
    :param document: jsonapi document, None for an empty body
    """
    body = "" if document is None else current_app.json.dumps(document)
    return JadocResponse(body, status=int(status), headers=headers)


def http_method_decorator(fun: Callable) -> Callable:
    """Decorator for the jsonapi view
    - convert all exceptions to a jsonapi errors document

    This method will be called for all requests
    :param fun:
    :return: wrapped fun
    """

    @wraps(fun)
    def method_wrapper(*args, **kwargs):
        """Wrap the method and perform error handling
        :param *args:
        :param **kwargs:
        :return: result of the wrapped method
        """
        jadoc_exception = None
        status_code = 500
        message = ""
        try:
            if request.method in BODY_METHODS and request.get_data() and not request.is_jsonapi:
                # require jsonapi content type for requests with a body
                raise GenericError(HTTPStatus.UNSUPPORTED_MEDIA_TYPE.description, HTTPStatus.UNSUPPORTED_MEDIA_TYPE.value)
            return fun(*args, **kwargs)

        except NotFound as exc:
            # this also catches jadoc.errors.NotFoundError
            status_code = 404
            jadoc_exception = exc
            message = HTTPStatus.NOT_FOUND.description

        except JsonapiError as exc:
            jadoc.log.exception(exc)
            jadoc_exception = exc

        except HTTPException as exc:
            status_code = exc.code
            message = exc.description
            jadoc.log.error(message)

        except Exception as exc:
            jadoc.log.exception(exc)
            if jadoc.log.getEffectiveLevel() > logging.DEBUG:
                message = "Logging Disabled"
            else:
                message = str(exc)

        status_code = getattr(jadoc_exception, "status_code", status_code)
        api_code = getattr(jadoc_exception, "api_code", None) or status_code
        title = getattr(jadoc_exception, "message", message)
        detail = getattr(jadoc_exception, "detail", title)

        errors = dict(title=title, detail=detail, code=str(api_code))
        return make_jsonapi_response({"errors": [errors]}, status_code)

    return method_wrapper


class JadocAPI:
    """
    Registers the jsonapi route on a flask app and wires the request dispatcher
    """

    def __init__(self, app: Optional[Flask] = None, registry: Optional[ResourceRegistry] = None, prefix: str = "", **kwargs):
        """
        :param app: flask app, `init_app` can be called later
        :param registry: the resource registry
        :param prefix: url prefix of the api, eg. "/api"
        :param kwargs: configuration options, cfr. JADOC
        """
        self.registry = registry if registry is not None else ResourceRegistry()
        self.prefix = prefix.rstrip("/")
        self.path_builder = PathBuilder()
        self.dispatcher = RequestDispatcher(ControllerRegistry.build_default(self.registry))
        self.serializer = DocumentSerializer(self.registry)
        if app is not None:
            self.init_app(app, **kwargs)

    def init_app(self, app: Flask, **kwargs) -> None:
        if not isinstance(app, Flask):
            raise TypeError("'app' should be Flask.")

        jadoc.JADOC.configure(**kwargs)
        if app.config.get("DEBUG", False):
            jadoc.log.setLevel(logging.DEBUG)
        elif "LOGLEVEL" in kwargs:
            jadoc.log.setLevel(kwargs["LOGLEVEL"])

        app.request_class = JadocRequest
        app.json = JadocJSONProvider(app)

        blueprint = Blueprint("jadoc", __name__, url_prefix=self.prefix or None)
        blueprint.add_url_rule("/<path:path>", "dispatch", http_method_decorator(self.dispatch), methods=HTTP_METHODS)
        app.register_blueprint(blueprint)
        app.extensions["jadoc"] = self
        jadoc.log.info(f"Exposing {len(list(self.registry.entries()))} resources on {self.prefix or '/'}")

    def service_url(self) -> str:
        """
        :return: url prefix used in the "links", SERVICE_URL or the url of the api
        """
        service_url = get_config("SERVICE_URL")
        if service_url:
            return service_url
        return request.url_root.rstrip("/") + self.prefix

    def dispatch(self, path: str) -> JadocResponse:
        json_path = self.path_builder.build(path)
        query_params = request.query_params
        request_body = request.get_request_body(json_path.resource_name)
        response = self.dispatcher.dispatch_request(json_path, request.method, query_params, request_body)
        document = self.serializer.serialize(response, self.service_url())

        headers = {}
        if response.status == HTTPStatus.CREATED and document and isinstance(document.get("data"), dict):
            headers["Location"] = document["data"]["links"]["self"]
        return make_jsonapi_response(document, response.status, headers)
