import json
import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from roofsim.core.config import HouseModel, PANEL, platform_for
from roofsim.core.errors import LayoutError
from roofsim.core.geometry import PanelSpec
from roofsim.physics.layout import (Installation, Layout, RowConfiguration, footprint,
                                    layout_installations)

logger = logging.getLogger(__name__)

DEFAULT_LAYOUT_ID = "current"
OVERLAP_TOLERANCE = 1e-4  # m^2

_HOUSE = HouseModel()
_ROOF_Z = _HOUSE.roof_top

# Installation anchors in the house frame (edge of the local origin).
# se: rows run north from the south parapet, panels face south.
# sw1/sw2: rows run east, columns run south from the anchor, panels face west.
ANCHORS = {
    "se": ((0.2, -0.3, _ROOF_Z), (0.0, 0.0, 0.0)),
    "sw1": ((2.9, 8.5, _ROOF_Z), (0.0, 0.0, -np.pi / 2)),
    "sw2": ((2.9, 3.7, _ROOF_Z), (0.0, 0.0, -np.pi / 2)),
}


def _rows(rows: Sequence) -> tuple:
    """[(columns, connector_or_None), ...] -> RowConfiguration tuple"""
    return tuple(RowConfiguration(columns=c, connector_length=p) for c, p in rows)


def make_installation(install_id: str, rows: Sequence, orientation: str = "landscape",
                      position=None, rotation=None) -> Installation:
    anchor_pos, anchor_rot = ANCHORS.get(install_id, ((0.0, 0.0, _ROOF_Z), (0.0, 0.0, 0.0)))
    return Installation(
        id=install_id,
        rows=_rows(rows),
        platform=platform_for(orientation),
        position=tuple(float(v) for v in (position if position is not None else anchor_pos)),
        rotation=tuple(float(v) for v in (rotation if rotation is not None else anchor_rot)),
    )


def _se(pitch):
    return make_installation("se", [(1, pitch)] * 5 + [(1, None)])


PRESETS: List[Layout] = [
    Layout(
        id="current",
        name="Current (1320mm)",
        description="SE string: 6 panels, Connector 1320mm. SW string: 6 panels, Connector 1320mm",
        installations=(
            _se(1.320),
            make_installation("sw1", [(1, 1.320), (1, None)]),
            make_installation("sw2", [(2, 1.320), (2, None)]),
        ),
    ),
    Layout(
        id="longer-connectors",
        name="Longer connectors (1500mm)",
        description="SE string: 6 panels, Connector 1500mm. SW string: 6 panels, Connector 1500mm",
        installations=(
            _se(1.500),
            make_installation("sw1", [(1, 1.500), (1, None)]),
            make_installation("sw2", [(2, 1.500), (2, None)]),
        ),
    ),
    Layout(
        id="sw-reposition",
        name="SW Reposition",
        description="SE string: 6 panels, Connector 1500mm. "
                    "SW string: 6 panels repositioned, Connector 1320mm",
        installations=(
            _se(1.500),
            make_installation("sw1", [(2, None)]),
            make_installation("sw2", [(2, 1.320), (2, None)]),
        ),
    ),
    Layout(
        id="sw-reposition-1500",
        name="SW Reposition (1500mm)",
        description="SE string: 6 panels, Connector 1500mm. "
                    "SW string: 6 panels repositioned, Connector 1500mm",
        installations=(
            _se(1.500),
            make_installation("sw1", [(2, None)]),
            make_installation("sw2", [(2, 1.500), (2, None)]),
        ),
    ),
    Layout(
        id="sw-portrait",
        name="SW Portrait",
        description="SE string: 6 panels, Connector 1500mm. SW string: 6 panels in portrait orientation",
        installations=(
            _se(1.500),
            make_installation("sw1", [(3, None)], orientation="portrait"),
            make_installation("sw2", [(3, None)], orientation="portrait"),
        ),
    ),
]


def validate_layout(layout: Layout, panel: PanelSpec = PANEL) -> None:
    """
    Lays out every installation (raising LayoutError for the offending
    row) and rejects installations whose footprints overlap.
    """
    results = layout_installations(layout, panel)
    ids = list(results)
    shapes = {k: footprint(v) for k, v in results.items()}
    for a in range(len(ids)):
        for b in range(a + 1, len(ids)):
            area = shapes[ids[a]].intersection(shapes[ids[b]]).area
            if area > OVERLAP_TOLERANCE:
                raise LayoutError(
                    f"footprint overlaps installation '{ids[b]}' by {area:.3f} m2",
                    installation_id=ids[a])


class LayoutCatalog:
    """
    Lookup and selection of rooftop layouts.
    Selection validates eagerly so that a bad layout never reaches the
    renderer.
    """

    def __init__(self, layouts: Optional[Sequence[Layout]] = None,
                 default_id: str = DEFAULT_LAYOUT_ID, panel: PanelSpec = PANEL):
        self.layouts: Dict[str, Layout] = {l.id: l for l in (layouts if layouts is not None else PRESETS)}
        self.default_id = default_id
        self.panel = panel
        self.selected: Optional[Layout] = None

    def available(self) -> List[Layout]:
        return list(self.layouts.values())

    def get(self, layout_id: str) -> Optional[Layout]:
        return self.layouts.get(layout_id)

    def default(self) -> Layout:
        layout = self.layouts.get(self.default_id)
        if layout is None:
            raise KeyError(f"Default layout '{self.default_id}' not found")
        return layout

    def is_valid_id(self, layout_id: str) -> bool:
        return layout_id in self.layouts

    def select_options(self) -> List[Dict[str, str]]:
        return [{"value": l.id, "label": l.name, "description": l.description}
                for l in self.layouts.values()]

    def select(self, layout_id: str) -> Layout:
        layout = self.layouts.get(layout_id)
        if layout is None:
            raise KeyError(f"Layout not found: {layout_id}")
        try:
            validate_layout(layout, self.panel)
        except LayoutError as e:
            logger.warning("Layout '%s' rejected: %s", layout_id, e)
            raise
        self.selected = layout
        logger.info("Selected layout '%s' (%d panels)", layout_id, layout.panel_count)
        return layout

    def ui_description(self, layout_id: str) -> Dict[str, object]:
        layout = self.layouts.get(layout_id)
        if layout is None:
            raise KeyError(f"Layout not found: {layout_id}")

        se = next((i for i in layout.installations if i.id == "se"), None)
        se_count = se.panel_count if se else 0
        se_conn = (se.first_connector if se else None) or 1.320
        se_info = f"SE string: {se_count} panels, Connector {se_conn * 1000:.0f}mm"

        sw = [i for i in layout.installations if i.id.startswith("sw")]
        details = []
        for inst in sw:
            if inst.first_connector:
                details.append(f"{inst.panel_count} panels ({inst.first_connector * 1000:.0f}mm)")
            else:
                details.append(f"{inst.panel_count} panels")
        sw_total = sum(i.panel_count for i in sw)
        sw_info = f"SW string: {sw_total} panels in {len(sw)} installations: " + " + ".join(details)

        return {
            "name": layout.name,
            "description": layout.description,
            "total_panels": layout.panel_count,
            "se_info": se_info,
            "sw_info": sw_info,
        }


def load_layouts(path: str) -> List[Layout]:
    """
    Reads layouts from a JSON document:

    {"layouts": [{"id": ..., "name": ..., "description": ...,
                  "installations": [{"id": "se", "orientation": "landscape",
                                     "rows": [{"columns": 1, "connector_length": 1.32}, ...],
                                     "position": [x, y, z], "rotation": [rx, ry, rz]}]}]}

    position/rotation are optional and default to the built-in anchors.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    layouts = []
    for entry in data.get("layouts", []):
        installations = []
        for inst in entry["installations"]:
            rows = [(r["columns"], r.get("connector_length")) for r in inst["rows"]]
            installations.append(make_installation(
                inst["id"], rows,
                orientation=inst.get("orientation", "landscape"),
                position=inst.get("position"),
                rotation=inst.get("rotation"),
            ))
        layouts.append(Layout(
            id=entry["id"],
            name=entry.get("name", entry["id"]),
            description=entry.get("description", ""),
            installations=tuple(installations),
        ))
    logger.info("Loaded %d layouts from %s", len(layouts), path)
    return layouts
