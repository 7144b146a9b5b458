"""Plotly 3D dome renderer for the live point cloud.

Plotly's y axis is up in our dome coordinates, so points are passed as
(x, z, y) to keep the zenith at the top of the scene.
"""

import numpy as np
import plotly.graph_objects as go

from skydome.models import SkyData
from skydome.twinkle import LivePointCloud

_BG = "#050a1a"
_PLANET_COLOR = "#ffd98a"
_HORIZON_COLOR = "#334466"
_LABEL_COLOR = "#c8c8c8"

# Star labels sit just outside the sky sphere
_LABEL_OFFSET = 1.5

# Plotly marker size is in screen pixels; dome sizes are scene units
_MARKER_SCALE = 2.2


def _rgba_colors(alphas: np.ndarray) -> list[str]:
    return [f"rgba(255,255,255,{a:.3f})" for a in alphas]


def _star_label_trace(sky_data: SkyData) -> go.Scatter3d:
    named = [obj for obj in sky_data.stars if obj.record.name.strip()]
    r = sky_data.sky_radius
    scale = (r + _LABEL_OFFSET) / r
    return go.Scatter3d(
        x=[obj.point.x * scale for obj in named],
        y=[obj.point.z * scale for obj in named],
        z=[obj.point.y * scale for obj in named],
        mode="text",
        text=[obj.record.name for obj in named],
        textfont=dict(color=_LABEL_COLOR, size=10),
        hoverinfo="skip",
        name="star labels",
    )


def render_dome_figure(sky_data: SkyData, cloud: LivePointCloud) -> go.Figure:
    """Render the current twinkle frame of the dome as a Plotly 3D figure.

    Args:
        sky_data: The projection pass the cloud was built from (planets, star
            labels and dome radius come from here).
        cloud: Live point cloud with the current per-frame sizes/alphas.

    Returns:
        Plotly Figure with the horizon ring, stars, named-star labels and planets.
    """
    r = sky_data.sky_radius
    pos = cloud.positions

    star_trace = go.Scatter3d(
        x=pos[:, 0],
        y=pos[:, 2],
        z=pos[:, 1],
        mode="markers",
        marker=dict(
            size=list(cloud.sizes * _MARKER_SCALE),
            color=_rgba_colors(cloud.alphas),
            line=dict(width=0),
        ),
        text=cloud.names,
        hoverinfo="text",
        name="stars",
    )

    planet_trace = go.Scatter3d(
        x=[p.point.x for p in sky_data.planets],
        y=[p.point.z for p in sky_data.planets],
        z=[p.point.y for p in sky_data.planets],
        mode="markers+text",
        marker=dict(
            size=[p.size * _MARKER_SCALE * 1.5 for p in sky_data.planets],
            color=_PLANET_COLOR,
            line=dict(width=0),
        ),
        text=[p.record.name for p in sky_data.planets],
        textfont=dict(color=_PLANET_COLOR, size=11),
        textposition="top center",
        hoverinfo="text",
        name="planets",
    )

    theta = np.linspace(0.0, 2.0 * np.pi, 181)
    horizon_trace = go.Scatter3d(
        x=r * np.sin(theta),
        y=r * np.cos(theta),
        z=np.zeros_like(theta),
        mode="lines",
        line=dict(color=_HORIZON_COLOR, width=2),
        hoverinfo="skip",
        name="horizon",
    )

    label_trace = _star_label_trace(sky_data)
    fig = go.Figure(data=[horizon_trace, star_trace, label_trace, planet_trace])

    extent = r + _LABEL_OFFSET
    hidden_axis = dict(visible=False, range=[-extent, extent], autorange=False)
    fig.update_layout(
        paper_bgcolor=_BG,
        showlegend=False,
        margin=dict(l=0, r=0, t=0, b=0),
        scene=dict(
            bgcolor=_BG,
            xaxis=hidden_axis,
            yaxis=hidden_axis,
            zaxis=dict(visible=False, range=[0, extent], autorange=False),
            aspectmode="manual",
            aspectratio=dict(x=1, y=1, z=0.5),
            # From the south, slightly above the horizon plane
            camera=dict(eye=dict(x=0.0, y=-1.6, z=0.9)),
        ),
    )
    return fig
