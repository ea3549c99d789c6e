"""
Tests for scene rendering and SVG output.
"""

import json

import pytest

from graphlens.interaction import ContextMenu, InteractionState, Mode, Selection
from graphlens.layout import NodePosition
from graphlens.model import EMPTY_SNAPSHOT, EdgeDescriptor, GraphSnapshot, NodeDescriptor
from graphlens.renderer import DetailsOverlay, MenuOverlay, render
from graphlens.svg import scene_to_svg


@pytest.fixture
def snapshot():
    return GraphSnapshot(
        [
            NodeDescriptor('n1', ('Person',), {'name': 'Alice'}, {'elementId': 'n1', 'labels': ['Person']}),
            NodeDescriptor('n2', ('Person',), {'name': 'Bob'}),
        ],
        [
            EdgeDescriptor('r1', 'n1', 'n2', 'KNOWS', {'since': 2020}),
            EdgeDescriptor('r2', 'n1', 'ghost', 'KNOWS'),
        ],
    )


@pytest.fixture
def positions():
    return {
        'n1': NodePosition(100, 100, 1.5, -0.5),
        'n2': NodePosition(300, 200),
    }


class TestRender:

    def test_single_node(self):
        snap = GraphSnapshot([NodeDescriptor('n1', ('Person',))])
        scene = render(snap, {'n1': NodePosition(10, 20)}, InteractionState())
        assert len(scene.circles) == 1
        assert len(scene.labels) == 1
        assert scene.lines == ()
        assert scene.labels[0].text == 'Person'

    def test_empty_snapshot(self):
        scene = render(EMPTY_SNAPSHOT, {}, InteractionState())
        assert scene.circles == () and scene.lines == () and scene.overlays == ()

    def test_dangling_edge_is_counted_not_drawn(self, snapshot, positions):
        scene = render(snapshot, positions, InteractionState())
        assert [line.edge_id for line in scene.lines] == ['r1']
        assert scene.dropped_edges == 1

    def test_edge_label_at_midpoint(self, snapshot, positions):
        scene = render(snapshot, positions, InteractionState())
        edge_label = next(lb for lb in scene.labels if lb.kind == 'edge')
        assert (edge_label.x, edge_label.y) == (200, 150)
        assert edge_label.text == 'KNOWS'

    def test_node_without_position_is_skipped(self, snapshot):
        scene = render(snapshot, {'n1': NodePosition(0, 0)}, InteractionState())
        assert [c.node_id for c in scene.circles] == ['n1']
        assert scene.lines == ()

    def test_mode_changes_style(self, snapshot, positions):
        read_only = render(snapshot, positions, InteractionState(), Mode.READ_ONLY)
        editable = render(snapshot, positions, InteractionState(), Mode.EDITABLE)
        assert read_only.circles[0].fill != editable.circles[0].fill

    def test_banner_passes_through(self):
        scene = render(EMPTY_SNAPSHOT, {}, InteractionState(), banner='Error fetching graph data')
        assert scene.banner == 'Error fetching graph data'


class TestOverlays:

    def test_canvas_menu(self, snapshot, positions):
        state = InteractionState(context_menu=ContextMenu(50, 60, 'canvas'))
        menu = render(snapshot, positions, state, Mode.EDITABLE).menu
        assert menu == MenuOverlay(50, 60, 'canvas', None, ('add_node',))

    def test_node_menu(self, snapshot, positions):
        state = InteractionState(context_menu=ContextMenu(100, 100, 'node', 'n1'))
        menu = render(snapshot, positions, state, Mode.EDITABLE).menu
        assert menu.actions == ('delete_node', 'add_link')
        assert menu.target_id == 'n1'

    def test_node_details(self, snapshot, positions):
        state = InteractionState(selection=Selection('n1', 'node'))
        details = render(snapshot, positions, state).details
        assert isinstance(details, DetailsOverlay)
        fields = dict(details.fields)
        assert fields['Label'] == 'Person'
        assert fields['Id'] == 'n1'
        assert fields['Position'] == 'x: 100.00, y: 100.00'
        assert json.loads(details.properties_json) == {'name': 'Alice'}
        assert json.loads(details.raw_json) == {'elementId': 'n1', 'labels': ['Person']}
        assert not details.show_raw

    def test_link_details(self, snapshot, positions):
        state = InteractionState(selection=Selection('r1', 'link'), show_raw=True)
        details = render(snapshot, positions, state).details
        fields = dict(details.fields)
        assert fields['Type'] == 'KNOWS'
        assert (fields['Source Node'], fields['Target Node']) == ('n1', 'n2')
        assert details.show_raw
        # Locally authored items get a synthesized raw payload
        assert json.loads(details.raw_json)['source'] == 'n1'

    def test_selected_items_highlighted(self, snapshot, positions):
        plain = render(snapshot, positions, InteractionState())
        selected = render(snapshot, positions, InteractionState(selection=Selection('n1', 'node')))
        assert selected.circles[0].stroke != plain.circles[0].stroke

    def test_selection_of_missing_item_has_no_details(self, snapshot, positions):
        state = InteractionState(selection=Selection('missing', 'node'))
        assert render(snapshot, positions, state).details is None


class TestSvg:

    def test_paint_order(self, snapshot, positions):
        svg = scene_to_svg(render(snapshot, positions, InteractionState()))
        assert svg.index('<line') < svg.index('<circle')
        assert svg.count('<circle') == 2
        assert svg.count('<line') == 1

    def test_text_is_escaped(self):
        snap = GraphSnapshot([NodeDescriptor('x', ('<script>&',))])
        svg = scene_to_svg(render(snap, {'x': NodePosition(0, 0)}, InteractionState()))
        assert '<script>' not in svg
        assert '&lt;script&gt;&amp;' in svg

    def test_empty_scene(self):
        assert scene_to_svg(render(EMPTY_SNAPSHOT, {}, InteractionState())) == ''
