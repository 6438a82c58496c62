"""
Resource scoped query parameters

The query string parameters have the form `group[ResourceType][segment]...=value`:

    filter[Task][name]=Super task              filter[Task][name][$startWith]=Super
    sort[Task][name]=asc                       sort[Project][owner][name]=desc
    group[Task]=name
    fields[Task]=name,dueDate                  fields[Task][]=name&fields[Task][]=dueDate
    include[Task]=project,comments.author
    page[offset]=0&page[limit]=10

The resource key may be the jsonapi type ("tasks") or the resource class name ("Task").
filter and sort accept any number of property segments, which are joined with "." into a property path.
group, fields and include accept a single segment (the resource key), page a single segment (the page key).
"""
import enum
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple
from collections.abc import Mapping as MappingABC
from .errors import ParametersDeserializationError

FILTER = "filter"
SORT = "sort"
GROUP = "group"
FIELDS = "fields"
INCLUDE = "include"
PAGE = "page"
RESTRICTED_MEMBERS = (FILTER, SORT, GROUP, FIELDS, INCLUDE, PAGE)

BRACKETS_RE = re.compile(r"^(\[[^\[\]]*\])+$")
SEGMENT_RE = re.compile(r"\[([^\[\]]*)\]")


class SortingValues(enum.Enum):
    ASC = "asc"
    DESC = "desc"


class PaginationKeys(enum.Enum):
    OFFSET = "offset"
    LIMIT = "limit"


class Inclusion:
    """
    Dot delimited relationship path, eg. "comments.author"
    """

    __slots__ = ("path", "path_list")

    def __init__(self, path: str):
        self.path = path
        self.path_list = tuple(segment for segment in path.split(".") if segment)

    def __eq__(self, other):
        return isinstance(other, Inclusion) and other.path == self.path

    def __hash__(self):
        return hash(self.path)

    def __repr__(self):
        return f"Inclusion({self.path!r})"


@dataclass(frozen=True)
class FilterParams:
    params: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class SortingParams:
    params: Mapping[str, SortingValues] = field(default_factory=dict)


@dataclass(frozen=True)
class GroupingParams:
    params: Tuple[str, ...] = ()


@dataclass(frozen=True)
class IncludedFieldsParams:
    params: Tuple[str, ...] = ()


@dataclass(frozen=True)
class IncludedRelationsParams:
    params: Tuple[Inclusion, ...] = ()


class TypedParams(MappingABC):
    """
    Read-only mapping of resource key -> params
    """

    def __init__(self, params: Optional[Dict[str, Any]] = None):
        self._params = MappingProxyType(dict(params or {}))

    def __getitem__(self, key):
        return self._params[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def __repr__(self):
        return f"TypedParams({dict(self._params)!r})"


@dataclass(frozen=True)
class QueryParams:
    """
    Parsed, immutable query parameters
    """

    filters: TypedParams = field(default_factory=TypedParams)
    sorting: TypedParams = field(default_factory=TypedParams)
    grouping: TypedParams = field(default_factory=TypedParams)
    included_fields: TypedParams = field(default_factory=TypedParams)
    included_relations: TypedParams = field(default_factory=TypedParams)
    pagination: Mapping[PaginationKeys, int] = field(default_factory=lambda: MappingProxyType({}))

    @staticmethod
    def _for(typed_params: TypedParams, descriptor):
        result = typed_params.get(descriptor.resource_type)
        if result is None:
            result = typed_params.get(descriptor.class_name)
        return result

    def filters_for(self, descriptor) -> Mapping[str, Tuple[str, ...]]:
        params = self._for(self.filters, descriptor)
        return params.params if params else {}

    def sorting_for(self, descriptor) -> Mapping[str, SortingValues]:
        params = self._for(self.sorting, descriptor)
        return params.params if params else {}

    def grouping_for(self, descriptor) -> Tuple[str, ...]:
        params = self._for(self.grouping, descriptor)
        return params.params if params else ()

    def included_fields_for(self, descriptor) -> Tuple[str, ...]:
        """
        :return: the sparse fieldset, an empty tuple means "render all fields"
        """
        params = self._for(self.included_fields, descriptor)
        return params.params if params else ()

    def inclusions_for(self, descriptor) -> Tuple[Inclusion, ...]:
        params = self._for(self.included_relations, descriptor)
        return params.params if params else ()

    @property
    def offset(self) -> Optional[int]:
        return self.pagination.get(PaginationKeys.OFFSET)

    @property
    def limit(self) -> Optional[int]:
        return self.pagination.get(PaginationKeys.LIMIT)


def _iter_lists(params) -> Iterator[Tuple[str, List[str]]]:
    """
    iterate (key, values) of a werkzeug MultiDict or a plain dict
    """
    if hasattr(params, "lists"):
        yield from params.lists()
        return
    for key, value in params.items():
        if isinstance(value, (list, tuple)):
            yield key, list(value)
        else:
            yield key, [value]


def _split_csv(values: List[str]) -> List[str]:
    return [item.strip() for value in values for item in str(value).split(",") if item.strip()]


class QueryParamsBuilder:
    """
    Build `QueryParams` from the raw, multi-valued request parameters
    """

    def build(self, params) -> QueryParams:
        raw: Dict[str, List[Tuple[List[str], List[str]]]] = {member: [] for member in RESTRICTED_MEMBERS}

        for key, values in _iter_lists(params or {}):
            prefix, bracket, _ = key.partition("[")
            if prefix not in RESTRICTED_MEMBERS or not bracket:
                # not one of ours, eg. a bare "include" or a custom argument
                continue
            raw[prefix].append((self.build_property_list(key, prefix), list(values)))

        return QueryParams(
            filters=self._parse_filters(raw[FILTER]),
            sorting=self._parse_sorting(raw[SORT]),
            grouping=self._parse_single_level(raw[GROUP], GROUP, GroupingParams),
            included_fields=self._parse_single_level(raw[FIELDS], FIELDS, IncludedFieldsParams),
            included_relations=self._parse_inclusions(raw[INCLUDE]),
            pagination=self._parse_pagination(raw[PAGE]),
        )

    @staticmethod
    def build_property_list(key: str, prefix: str) -> List[str]:
        """
        :return: the non-empty bracket segments of `key`, eg. "filter[Task][name]" -> ["Task", "name"]
        """
        brackets = key[len(prefix) :]
        if not BRACKETS_RE.match(brackets):
            raise ParametersDeserializationError(f"Malformed {prefix} parameter: {key}")
        segments = [segment for segment in SEGMENT_RE.findall(brackets) if segment]
        if not segments:
            raise ParametersDeserializationError(f"Malformed {prefix} parameter: {key}")
        return segments

    @staticmethod
    def _parse_filters(entries) -> TypedParams:
        result: Dict[str, Dict[str, Tuple[str, ...]]] = {}
        for property_list, values in entries:
            resource_key, property_path = property_list[0], ".".join(property_list[1:])
            resource_params = result.setdefault(resource_key, {})
            previous = resource_params.get(property_path, ())
            resource_params[property_path] = tuple(dict.fromkeys(previous + tuple(values)))
        return TypedParams({key: FilterParams(MappingProxyType(params)) for key, params in result.items()})

    @staticmethod
    def _parse_sorting(entries) -> TypedParams:
        result: Dict[str, Dict[str, SortingValues]] = {}
        for property_list, values in entries:
            resource_key, property_path = property_list[0], ".".join(property_list[1:])
            value = values[0] if values else ""
            try:
                sorting_value = SortingValues(value)
            except ValueError:
                raise ParametersDeserializationError(f'Invalid sort value "{value}" for sort[{"][".join(property_list)}], use asc or desc')
            result.setdefault(resource_key, {})[property_path] = sorting_value
        return TypedParams({key: SortingParams(MappingProxyType(params)) for key, params in result.items()})

    @staticmethod
    def _check_nesting(property_list, prefix) -> None:
        if len(property_list) > 1:
            raise ParametersDeserializationError(
                f"Exceeded maximum level of nesting of '{prefix}' parameter (1) eg. {prefix}[Task][name] <-- #2 level and more are not allowed"
            )

    def _parse_single_level(self, entries, prefix, params_class) -> TypedParams:
        result: Dict[str, Dict[str, None]] = {}
        for property_list, values in entries:
            self._check_nesting(property_list, prefix)
            resource_params = result.setdefault(property_list[0], {})
            resource_params.update(dict.fromkeys(_split_csv(values)))
        return TypedParams({key: params_class(tuple(params)) for key, params in result.items()})

    def _parse_inclusions(self, entries) -> TypedParams:
        result: Dict[str, Dict[Inclusion, None]] = {}
        for property_list, values in entries:
            self._check_nesting(property_list, INCLUDE)
            resource_params = result.setdefault(property_list[0], {})
            resource_params.update(dict.fromkeys(Inclusion(path) for path in _split_csv(values)))
        return TypedParams({key: IncludedRelationsParams(tuple(params)) for key, params in result.items()})

    def _parse_pagination(self, entries) -> Mapping[PaginationKeys, int]:
        result: Dict[PaginationKeys, int] = {}
        for property_list, values in entries:
            self._check_nesting(property_list, PAGE)
            try:
                page_key = PaginationKeys(property_list[0])
            except ValueError:
                raise ParametersDeserializationError(f"Invalid pagination key: page[{property_list[0]}]")
            value = values[0] if values else ""
            try:
                result[page_key] = int(value)
            except (TypeError, ValueError):
                raise ParametersDeserializationError(f'Pagination Value Error: page[{page_key.value}]="{value}"')
        return MappingProxyType(result)
