# jadoc to json encoding
#
# The DocumentSerializer leaves attribute values untouched, values that json can't represent
# (dates, uuids, decimals, ...) are converted here when the document is dumped
import datetime
import decimal
import enum
import json
from uuid import UUID
from flask.json.provider import DefaultJSONProvider
import jadoc
from .config import is_debug
from .response import JSONAPI_MEDIA_TYPE


def _encode_bytes(value: bytes) -> str:
    jadoc.log.debug("JadocJSONEncoder: serializing bytes obj")
    return value.hex()


# checked in order: datetime.datetime is a subclass of datetime.date
ENCODERS = (
    (datetime.datetime, lambda value: value.isoformat(" ")),
    ((datetime.date, datetime.time), lambda value: value.isoformat()),
    (datetime.timedelta, str),
    ((set, frozenset, tuple), list),
    (UUID, str),
    (decimal.Decimal, float),
    (enum.Enum, lambda value: value.value),
    (bytes, _encode_bytes),
)


class _JadocJSONEncoder:
    """
    JSON encoding for the attribute values of jadoc resources
    """

    encoders = ENCODERS

    def default(self, obj, **kwargs):
        """
        :param obj: value json can't encode
        :return: json encodable value
        """
        for types, encode in self.encoders:
            if isinstance(obj, types):
                return encode(obj)

        # an attribute of a resource has an unsupported type
        if not is_debug():
            jadoc.log.warning(f'JSON Encoding Error: Unknown object type "{type(obj)}" for {obj}')
            return {"error": "JadocJSONEncoder invalid object"}
        return self.public_attributes(obj)

    @staticmethod
    def public_attributes(obj):
        """
        Debug representation of an object: its attributes without a _ prefix
        """
        try:
            attributes = vars(obj)
        except TypeError:
            return str(obj)
        return {k: v if isinstance(v, (int, float)) or v is None else str(v) for k, v in attributes.items() if not k.startswith("_")}


class JadocJSONProvider(_JadocJSONEncoder, DefaultJSONProvider):
    """
    Flask JSON provider, set as `app.json` by JadocAPI
    """

    mimetype = JSONAPI_MEDIA_TYPE
    sort_keys = False


class JadocJSONEncoder(_JadocJSONEncoder, json.JSONEncoder):
    """
    Encoder for use outside of a flask app: json.dumps(document, cls=JadocJSONEncoder)
    """
