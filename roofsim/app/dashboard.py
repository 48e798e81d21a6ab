import streamlit as st
import sys
import os

# --- PATH SETUP ---
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if project_root not in sys.path:
    sys.path.append(project_root)

import logging
import pandas as pd
import plotly.graph_objects as go

# --- MODULE IMPORTS ---
from roofsim.core.config import SimulatorSettings
from roofsim.core.errors import LayoutError
from roofsim.core.layouts import LayoutCatalog
from roofsim.core.solar import SimulatedMoment, cardinal
from roofsim.physics.engine import ShadowKernel
from roofsim.simulation import SimulationRunner
from roofsim.app.visualizer import RoofVisualizer

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

SETTINGS = SimulatorSettings()

# ==========================================
# 1. PAGE CONFIG
# ==========================================
st.set_page_config(page_title="Roof Shadow Simulator", layout="wide", initial_sidebar_state="expanded")

st.markdown("""
<style>
    .block-container {
        padding-top: 2rem;
        padding-left: 2rem;
        padding-right: 2rem;
    }
    .stApp > header {
        display: none;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def get_catalog():
    return LayoutCatalog()


@st.cache_resource
def get_kernel(layout_id: str):
    layout = get_catalog().select(layout_id)
    return ShadowKernel(layout, settings=SETTINGS)


catalog = get_catalog()

# ==========================================
# 2. SIDEBAR
# ==========================================
st.sidebar.title("Roof Shadow Simulator")

options = catalog.select_options()
labels = {o["value"]: o["label"] for o in options}
ids = list(labels)
layout_id = st.sidebar.selectbox(
    "Layout", options=ids, index=ids.index(catalog.default_id),
    format_func=lambda v: labels[v]
)

with st.sidebar.expander("Time", expanded=True):
    sim_date = st.date_input("Date", SETTINGS.default_date)
    sim_hour = st.slider("Hour", 0.0, 23.9, float(SETTINGS.default_hour), 0.1)

show_sweep = st.sidebar.checkbox("Day sweep", value=False)
step_minutes = st.sidebar.number_input("Sweep step (min)", 5, 60, 15, 5, disabled=not show_sweep)

# ==========================================
# 3. LAYOUT
# ==========================================
try:
    kernel = get_kernel(layout_id)
except LayoutError as e:
    st.error(f"Layout '{labels[layout_id]}' cannot be shown: {e}")
    st.stop()

info = catalog.ui_description(layout_id)
st.title(info["name"])
st.caption(info["description"])
c1, c2, c3 = st.columns(3)
c1.metric("Total Panels", info["total_panels"])
c2.markdown(info["se_info"])
c3.markdown(info["sw_info"])

# ==========================================
# 4. SHADOW VIEW
# ==========================================
moment = SimulatedMoment(day=sim_date, hour=sim_hour)
sun, states = kernel.solve(moment)

if sun.is_daylight:
    st.markdown(f"**Sun**: Az {sun.azimuth:.1f}° ({cardinal(sun.azimuth)}), El {sun.elevation:.1f}°")
else:
    st.markdown(f"**Sun**: below horizon (altitude {sun.altitude:.1f}°)")

fractions = kernel.shaded_fraction()
cols = st.columns(max(1, len(fractions)))
for col, (inst_id, frac) in zip(cols, fractions.items()):
    col.metric(f"Shade {inst_id.upper()}", f"{frac * 100:.0f}%")

viz = RoofVisualizer(kernel)
fig = viz.render_scene(sun, states)
fig.update_layout(height=600, uirevision="roof_3d_view")
st.plotly_chart(fig, use_container_width=True)

# ==========================================
# 5. DAY SWEEP
# ==========================================
if show_sweep:
    with st.spinner("Sweeping day..."):
        runner = SimulationRunner(layout_id, catalog=catalog, settings=SETTINGS)
        df = runner.run_day(sim_date, int(step_minutes))

    day = df[df["is_daylight"]]
    fig_shade = go.Figure()
    for c in [c for c in df.columns if c.startswith("shade_")]:
        fig_shade.add_trace(go.Scatter(x=day["time"], y=day[c] * 100.0, mode="lines",
                                       name=c.replace("shade_", "").upper()))
    fig_shade.update_layout(title="Shaded fraction over the day", yaxis_title="Shade (%)",
                            height=350, margin=dict(l=0, r=0, b=0, t=40))
    st.plotly_chart(fig_shade, use_container_width=True)

    summary = SimulationRunner.summarize(df)
    st.dataframe(pd.DataFrame({"installation": [s.replace("shade_", "") for s in summary.index],
                               "mean shade (%)": (summary.values * 100.0).round(1)}),
                 hide_index=True)
