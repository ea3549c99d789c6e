"""
SVG serialization for Scenes.

``scene_to_svg`` returns the inner markup used as ``ui.interactive_image``
content; the element supplies the outer <svg>.
"""

from html import escape

from graphlens.renderer import Scene


def _num(value: float) -> str:
    return f"{value:.2f}"


def scene_to_svg(scene: Scene) -> str:
    """Lines, edge labels, circles, node labels - in that paint order."""
    parts = []
    for line in scene.lines:
        parts.append(
            f'<line data-edge="{escape(line.edge_id)}" '
            f'x1="{_num(line.x1)}" y1="{_num(line.y1)}" x2="{_num(line.x2)}" y2="{_num(line.y2)}" '
            f'stroke="{line.stroke}" stroke-width="{line.stroke_width}" />'
        )
    edge_labels = [lb for lb in scene.labels if lb.kind == 'edge']
    node_labels = [lb for lb in scene.labels if lb.kind == 'node']
    for label in edge_labels:
        parts.append(_text(label))
    for circle in scene.circles:
        parts.append(
            f'<circle data-node="{escape(circle.node_id)}" '
            f'cx="{_num(circle.x)}" cy="{_num(circle.y)}" r="{circle.r}" '
            f'fill="{circle.fill}" stroke="{circle.stroke}" stroke-width="{circle.stroke_width}" />'
        )
    for label in node_labels:
        parts.append(_text(label))
    return '\n'.join(parts)


def _text(label) -> str:
    return (
        f'<text x="{_num(label.x)}" y="{_num(label.y)}" '
        f'font-size="{label.font_size}" fill="{label.fill}" '
        f'font-family="system-ui, sans-serif" style="user-select: none">'
        f'{escape(label.text)}</text>'
    )

