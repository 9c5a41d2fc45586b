"""Tests for the decoded-node accessors."""

import pytest

from uapi_air.errors import AirError, ErrorKind
from uapi_air.utils.accessor import (
    as_list,
    attr,
    collect,
    first,
    get,
    index_by_key,
    merge_leaves,
    node_text,
    ns,
    require,
    text,
)


class TestAsList:
    """Tests for as_list function."""

    def test_none_gives_empty_list(self) -> None:
        assert as_list(None) == []

    def test_single_node_is_wrapped(self) -> None:
        assert as_list({'Key': '1'}) == [{'Key': '1'}]

    def test_list_is_returned_as_is(self) -> None:
        nodes = [{'Key': '1'}, {'Key': '2'}]
        assert as_list(nodes) == nodes

    def test_scalar_is_wrapped(self) -> None:
        assert as_list('x') == ['x']

    def test_first(self) -> None:
        assert first([{'Key': '1'}, {'Key': '2'}]) == {'Key': '1'}
        assert first(None) is None


class TestGetAndText:
    """Tests for path navigation."""

    def test_get_walks_a_slash_separated_path(self) -> None:
        node = {'air:AirReservation': {'air:AirSegment': {'Key': 'S1'}}}
        assert get(node, 'air:AirReservation/air:AirSegment') == {'Key': 'S1'}

    def test_get_unwraps_single_element_lists(self) -> None:
        node = {'a': [{'b': 'x'}]}
        assert get(node, 'a/b') == 'x'

    def test_get_stops_on_multi_element_lists(self) -> None:
        node = {'a': [{'b': 'x'}, {'b': 'y'}]}
        assert get(node, 'a/b') is None

    def test_get_missing_path_gives_default(self) -> None:
        assert get({'a': {}}, 'a/b', default='d') == 'd'

    def test_text_reads_wrapped_text(self) -> None:
        node = {'air:FareCalc': {'_': 'IEV PS LON 100.00 END'}}
        assert text(node, 'air:FareCalc') == 'IEV PS LON 100.00 END'

    def test_text_of_non_string_gives_default(self) -> None:
        assert text({'a': {'b': '1'}}, 'a', default='none') == 'none'

    def test_attr_only_reads_string_leaves(self) -> None:
        node = {'Key': 'S1', 'air:Connection': {}}
        assert attr(node, 'Key') == 'S1'
        assert attr(node, 'air:Connection') is None
        assert attr(None, 'Key') is None

    def test_node_text(self) -> None:
        assert node_text('x') == 'x'
        assert node_text({'Code': '1', '_': 'x'}) == 'x'
        assert node_text({'Code': '1'}) is None


class TestMergeLeaves:
    """Tests for merge_leaves function."""

    def test_collapses_wrappers(self) -> None:
        assert merge_leaves({'a': [{'_': 'x'}], 'b': [{'c': ['1']}]}) == {'a': 'x', 'b': {'c': '1'}}

    def test_keeps_multi_element_lists(self) -> None:
        assert merge_leaves({'a': ['1', '2']}) == {'a': ['1', '2']}

    def test_keeps_text_next_to_attributes(self) -> None:
        assert merge_leaves({'Code': '1', '_': 'x'}) == {'Code': '1', '_': 'x'}


class TestIndexAndCollect:
    """Tests for index_by_key and collect."""

    def test_first_occurrence_wins(self) -> None:
        nodes = [{'Key': 'A', 'n': '1'}, {'Key': 'A', 'n': '2'}, {'n': '3'}]
        assert index_by_key(nodes) == {'A': {'Key': 'A', 'n': '1'}}

    def test_index_of_single_node(self) -> None:
        assert index_by_key({'Key': 'A'}) == {'A': {'Key': 'A'}}

    def test_collect_flattens_one_or_many_children(self) -> None:
        nodes = [{'b': 'x'}, {'b': ['y', 'z']}, {}]
        assert collect(nodes, 'b') == ['x', 'y', 'z']

    def test_ns(self) -> None:
        assert ns('v52_0', 'common', 'Code') == 'common_v52_0:Code'


class TestRequire:
    """Tests for require function."""

    def test_returns_present_value(self) -> None:
        assert require({'a': {'b': '1'}}, 'a/b') == '1'

    def test_missing_value_raises_response_data_missing(self) -> None:
        with pytest.raises(AirError) as excinfo:
            require({'a': {}}, 'a/b')

        assert excinfo.value.kind is ErrorKind.RESPONSE_DATA_MISSING
        assert excinfo.value.data == {'missing': 'a/b'}

    def test_empty_list_counts_as_missing(self) -> None:
        with pytest.raises(AirError):
            require({'a': []}, 'a')

    def test_custom_kind(self) -> None:
        with pytest.raises(AirError) as excinfo:
            require({}, ['x', 'y'], kind=ErrorKind.RESERVATIONS_MISSING)

        assert excinfo.value.kind is ErrorKind.RESERVATIONS_MISSING
        assert excinfo.value.data == {'missing': 'x/y'}
