"""Default plot state shared by the control panel, the scenes and the view widget."""

from __future__ import annotations

import copy
from typing import Dict, Mapping

DEFAULTS = dict(
    plot=dict(
        expression="sin(x)*cos(y)", dimension="3d", plotMode="auto",
        showContour=False, showColorbar=True,
    ),
    view3d=dict(
        rotationX=0.6, rotationZ=0.8,
        rangeX=5.0, rangeY=5.0, rangeZ=5.0,
        panX=0.0, panY=0.0,
        focalLength=500.0, zoomAxis="free",
        minRange=1.0, maxRange=50.0, rotateSpeed=0.01,
    ),
    view2d=dict(xMin=-5.0, xMax=5.0, yMin=-5.0, yMax=5.0, zoomAxis="free", axisZonePx=60.0),
    sampling=dict(
        curveSteps=1000, standingCurveSteps=300, surfaceGrid=50,
        heatmapGrid=40, scalarDots2d=25, arrows2d=20,
        fieldLattice=12, arrowCount3d=8, magnitudeLattice=10,
        contourLevels=10, autoZSamples=6, dropLineEvery=15,
    ),
    field=dict(unitConvention="ijk", surfaceMode="auto"),
    appearance=dict(
        surfaceColors="#1E88E5@0,#00ACC1@0.25,#00897B@0.5,#43A047@0.75,#FDD835@1",
        jetColors="#000080@0,#0000FF@0.125,#00FFFF@0.375,#FFFF00@0.625,#FF0000@0.875,#800000@1",
        surfaceAlpha=0.7, jetSurfaceAlpha=0.85, heatmapAlpha=0.6,
        background="#101418", grid="#FFFFFF", label="#E0E0E0",
        axisX="#EF5350", axisY="#66BB6A", axisZ="#42A5F5",
        curve="#FFB300", contour="#FFFFFF",
    ),
    system=dict(transparent=False, backend="auto"),
)

TOOLTIPS = {
    "plot.expression": "Scalar function of x, y, z or a vector field such as 'y*i - x*j'.",
    "plot.dimension": "Draw a flat 2D plot or a rotatable 3D scene.",
    "plot.plotMode": "Function draws curves, surfaces and arrows; field draws coloured samples. Auto picks field for expressions in z.",
    "plot.showContour": "Overlay iso-lines of the plotted value.",
    "plot.showColorbar": "Show the colour scale for heatmaps and vector fields.",
    "view3d.rotationX": "Elevation of the camera in radians.",
    "view3d.rotationZ": "Azimuth of the camera in radians.",
    "view3d.rangeX": "Half-width of the visible x domain.",
    "view3d.rangeY": "Half-width of the visible y domain.",
    "view3d.rangeZ": "Half-height of the visible value range.",
    "view3d.zoomAxis": "Restrict mouse-wheel zoom to a single axis.",
    "view3d.focalLength": "Perspective strength: small values exaggerate depth.",
    "view2d.zoomAxis": "Restrict mouse-wheel zoom to a single axis.",
    "sampling.surfaceGrid": "Number of cells per side of the surface mesh.",
    "sampling.curveSteps": "Number of samples along a 2D curve.",
    "field.unitConvention": "Unit vector notation: 'ijk' for 3i+4j or yi-xj, 'e_xyz' for 3e_x+4e_y.",
    "field.surfaceMode": "Value shown as a surface or heatmap for vector fields. Auto shows the magnitude of planar fields.",
    "appearance.surfaceColors": "Colour stops of the surface gradient (#hex@position).",
    "system.transparent": "Draw the plot over a transparent background.",
}

DIMENSIONS = ("2d", "3d")
PLOT_MODES = ("auto", "function", "field")
ZOOM_AXES = ("free", "x", "y", "z")
SURFACE_MODES = ("auto", "none", "x", "y", "z", "magnitude")
UNIT_CONVENTIONS = ("ijk", "e_xyz")


def default_state() -> Dict[str, dict]:
    return copy.deepcopy(DEFAULTS)


def merge_state(state: Dict[str, dict], payload: Mapping[str, object]) -> Dict[str, dict]:
    """Merge a partial ``{section: {key: value}}`` payload into ``state`` in place."""

    for key, value in payload.items():
        if key not in state or not isinstance(state[key], dict) or not isinstance(value, Mapping):
            state[key] = value  # type: ignore[assignment]
            continue
        for sub_key, sub_value in value.items():
            if isinstance(state[key].get(sub_key), dict) and isinstance(sub_value, Mapping):
                state[key][sub_key].update(sub_value)
            else:
                state[key][sub_key] = sub_value
    return state
