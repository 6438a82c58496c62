import pytest
from werkzeug.datastructures import MultiDict

from jadoc import ParametersDeserializationError, QueryParamsBuilder
from jadoc.query_params import Inclusion, PaginationKeys, SortingValues

from conftest import PROJECT_DESCRIPTOR, TASK_DESCRIPTOR


@pytest.fixture
def builder() -> QueryParamsBuilder:
    return QueryParamsBuilder()


def test_filters_join_property_segments(builder: QueryParamsBuilder) -> None:
    params = builder.build(MultiDict([("filter[tasks][project][name]", "jadoc"), ("filter[tasks][name]", "fix bug")]))

    filters = params.filters_for(TASK_DESCRIPTOR)
    assert filters["project.name"] == ("jadoc",)
    assert filters["name"] == ("fix bug",)


def test_filter_values_are_merged_without_duplicates(builder: QueryParamsBuilder) -> None:
    params = builder.build(MultiDict([("filter[tasks][name]", "a"), ("filter[tasks][name]", "b"), ("filter[tasks][name]", "a")]))

    assert params.filters_for(TASK_DESCRIPTOR)["name"] == ("a", "b")


def test_resource_key_matches_class_name(builder: QueryParamsBuilder) -> None:
    params = builder.build({"sort[Task][name]": "desc"})

    assert params.sorting_for(TASK_DESCRIPTOR) == {"name": SortingValues.DESC}
    assert params.sorting_for(PROJECT_DESCRIPTOR) == {}


def test_invalid_sort_value(builder: QueryParamsBuilder) -> None:
    with pytest.raises(ParametersDeserializationError) as exc_info:
        builder.build({"sort[tasks][name]": "sideways"})
    assert "sideways" in exc_info.value.message


def test_fields_accept_comma_separated_and_repeated_values(builder: QueryParamsBuilder) -> None:
    params = builder.build(MultiDict([("fields[tasks]", "name,done"), ("fields[tasks][]", "due"), ("fields[tasks]", "name")]))

    assert params.included_fields_for(TASK_DESCRIPTOR) == ("name", "done", "due")
    assert params.included_fields_for(PROJECT_DESCRIPTOR) == ()


def test_include_paths(builder: QueryParamsBuilder) -> None:
    params = builder.build({"include[tasks]": "project,project.tasks"})

    inclusions = params.inclusions_for(TASK_DESCRIPTOR)
    assert inclusions == (Inclusion("project"), Inclusion("project.tasks"))
    assert inclusions[1].path_list == ("project", "tasks")


@pytest.mark.parametrize("key", ["include[tasks][project]", "fields[tasks][name]", "group[tasks][name]", "page[offset][minimal]"])
def test_single_level_parameters_reject_nesting(builder: QueryParamsBuilder, key: str) -> None:
    with pytest.raises(ParametersDeserializationError) as exc_info:
        builder.build({key: "1"})
    assert "Exceeded maximum level of nesting" in exc_info.value.message


@pytest.mark.parametrize("key", ["filter[tasks", "sort[tasks]]", "filter[]", "include[][]"])
def test_malformed_parameters(builder: QueryParamsBuilder, key: str) -> None:
    with pytest.raises(ParametersDeserializationError) as exc_info:
        builder.build({key: "x"})
    assert "Malformed" in exc_info.value.message


def test_pagination(builder: QueryParamsBuilder) -> None:
    params = builder.build({"page[offset]": "10", "page[limit]": "5"})

    assert params.offset == 10
    assert params.limit == 5
    assert params.pagination[PaginationKeys.LIMIT] == 5


def test_pagination_rejects_unknown_keys_and_values(builder: QueryParamsBuilder) -> None:
    with pytest.raises(ParametersDeserializationError):
        builder.build({"page[number]": "1"})
    with pytest.raises(ParametersDeserializationError) as exc_info:
        builder.build({"page[limit]": "ten"})
    assert "Pagination Value Error" in exc_info.value.message


def test_unrelated_and_bare_parameters_are_ignored(builder: QueryParamsBuilder) -> None:
    params = builder.build({"include": "project", "q": "search", "filtered[tasks]": "x"})

    assert params.inclusions_for(TASK_DESCRIPTOR) == ()
    assert params.filters_for(TASK_DESCRIPTOR) == {}
    assert params.offset is None and params.limit is None


def test_query_params_are_read_only(builder: QueryParamsBuilder) -> None:
    params = builder.build({"filter[tasks][name]": "a"})

    with pytest.raises(TypeError):
        params.filters["tasks"] = None
    with pytest.raises(TypeError):
        params.filters_for(TASK_DESCRIPTOR)["name"] = ("b",)
