"""
Tests for GraphModelBuilder: bridge records -> GraphSnapshot.
"""

import pytest

from graphlens.builder import (
    GraphModelBuilder,
    NodeShape,
    RelationshipShape,
    ScalarShape,
    classify,
    records_summary,
)


def node(element_id, labels=('Person',), **props):
    return {'elementId': element_id, 'labels': list(labels), 'properties': props}


def rel(element_id, start, end, rel_type='KNOWS', **props):
    return {
        'elementId': element_id,
        'startNodeElementId': start,
        'endNodeElementId': end,
        'type': rel_type,
        'properties': props,
    }


@pytest.fixture
def builder():
    return GraphModelBuilder()


class TestClassify:

    def test_node(self):
        shape = classify(node('n1', name='Alice'))
        assert isinstance(shape, NodeShape)
        assert shape.element_id == 'n1'
        assert shape.labels == ('Person',)

    def test_relationship(self):
        shape = classify(rel('r1', 'n1', 'n2'))
        assert isinstance(shape, RelationshipShape)
        assert (shape.start_id, shape.end_id, shape.type) == ('n1', 'n2', 'KNOWS')

    def test_relationship_without_properties_key(self):
        value = rel('r1', 'n1', 'n2')
        del value['properties']
        assert isinstance(classify(value), RelationshipShape)

    @pytest.mark.parametrize('value', [None, 42, 'text', {'elementId': 'x'}, [1, 2]])
    def test_scalars(self, value):
        assert isinstance(classify(value), ScalarShape)

    def test_bad_labels_is_scalar(self):
        assert isinstance(classify({'elementId': 'x', 'labels': 'Person', 'properties': {}}), ScalarShape)


class TestBuild:

    def test_single_node_example(self, builder):
        snap = builder.build([{'n': node('n1', name='Alice')}], [])
        assert len(snap.nodes) == 1
        assert snap.nodes[0].id == 'n1'
        assert snap.nodes[0].labels == ('Person',)
        assert snap.nodes[0].properties['name'] == 'Alice'
        assert snap.edges == ()

    def test_maps_records_one_to_one(self, builder):
        snap = builder.build(
            [{'n': node('n1')}, {'n': node('n2')}],
            [{'r': rel('r1', 'n1', 'n2')}],
        )
        assert snap.node_ids == ['n1', 'n2']
        assert [(e.source_id, e.target_id) for e in snap.edges] == [('n1', 'n2')]

    def test_keeps_raw_payload(self, builder):
        raw = node('n1', name='Alice')
        snap = builder.build([{'n': raw}], [])
        assert snap.nodes[0].raw['elementId'] == 'n1'

    def test_dangling_edge_kept_but_not_renderable(self, builder):
        snap = builder.build([{'n': node('n1')}], [{'r': rel('r1', 'n1', 'ghost')}])
        assert len(snap.edges) == 1
        assert snap.renderable_edges() == ()

    def test_malformed_records_skipped_and_counted(self, builder):
        snap = builder.build(
            [{'n': node('n1')}, {'m': node('n2')}, {'n': 42}, 'not-a-record'],
            [{'r': node('n3')}],
        )
        assert snap.node_ids == ['n1']
        assert snap.edges == ()
        assert snap.skipped_records == 4

    def test_custom_keys(self):
        builder = GraphModelBuilder(node_key='p', relationship_key='k')
        snap = builder.build([{'p': node('n1')}], [])
        assert snap.node_ids == ['n1']


class TestBuildFromRecords:

    def test_mixed_aliases(self, builder):
        records = [
            {'a': node('n1'), 'rel': rel('r1', 'n1', 'n2'), 'b': node('n2'), 'count': 3},
            {'a': node('n1'), 'rel': rel('r1', 'n1', 'n2'), 'b': node('n2'), 'count': 3},
        ]
        snap = builder.build_from_records(records)
        assert snap.node_ids == ['n1', 'n2']
        assert [e.id for e in snap.edges] == ['r1']

    def test_paths_and_lists(self, builder):
        path = {
            'start': node('n1'),
            'end': node('n3'),
            'segments': [
                {'start': node('n1'), 'relationship': rel('r1', 'n1', 'n2'), 'end': node('n2')},
                {'start': node('n2'), 'relationship': rel('r2', 'n2', 'n3'), 'end': node('n3')},
            ],
            'length': 2,
        }
        snap = builder.build_from_records([{'p': path, 'extra': [node('n4')]}])
        assert snap.node_ids == ['n1', 'n2', 'n3', 'n4']
        assert [e.id for e in snap.edges] == ['r1', 'r2']

    def test_zero_length_path_keeps_its_node(self, builder):
        path = {'start': node('n1'), 'end': node('n1'), 'segments': [], 'length': 0}
        snap = builder.build_from_records([{'p': path}])
        assert snap.node_ids == ['n1']
        assert snap.edges == ()

    def test_scalar_only_result_is_empty(self, builder):
        snap = builder.build_from_records([{'message': 'hello'}])
        assert snap.is_empty()
        assert snap.skipped_records == 0


def test_records_summary():
    assert records_summary([]) == "No records returned"
    assert records_summary([{'n': 1, 'm': 2}]) == "1 record(s), columns: n, m"
