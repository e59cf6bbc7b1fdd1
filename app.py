"""
Memory Management Visualizer — Dynamic Allocation & Cache Hierarchy

This application provides an interactive simulation and visualization of two
classical Operating System memory subsystems:
    - Dynamic segment allocation (First-Fit, Best-Fit, Worst-Fit)
      with splitting, coalescing and fragmentation analysis
    - A two-level (L1/L2) direct-mapped cache hierarchy with FIFO replacement

Built with Streamlit for the web interface and Plotly for visualizations.
The simulation engines live in engine.py and cache.py.
"""

# =============================================================================
# IMPORTS
# =============================================================================

import time                                  # For pacing sequence playback

import plotly.graph_objects as go            # Interactive plotting library
import streamlit as st                       # Web application framework

from cache import CacheHierarchy
from config import cache_geometry, load_config
from engine import AllocationStatus, AllocationStrategy, MemoryEngine
from errors import SimulatorError
from utils import format_percent, format_range, get_color

DEFAULTS = load_config()


# =============================================================================
# STREAMLIT UI - Web Application Interface
# =============================================================================

st.set_page_config(page_title="Memory Management Visualizer", layout="wide")

st.title("Memory Management Visualizer — Allocation & Cache Hierarchy")

# -----------------------------------------------------------------------------
# SIDEBAR - Allocator Settings
# -----------------------------------------------------------------------------

st.sidebar.header("Memory Pool")

pool_size = st.sidebar.number_input(
    "Pool size (bytes)",
    min_value=1,
    max_value=1 << 20,
    value=DEFAULTS["memory"]["pool_size"],
    step=64,
)

strategy = st.sidebar.selectbox(
    "Allocation strategy",
    options=[s.value for s in AllocationStrategy],
)

# -----------------------------------------------------------------------------
# SESSION STATE - Engine Persistence
# -----------------------------------------------------------------------------

# Engines persist across Streamlit reruns; a new pool size means a new pool
if "memory" not in st.session_state:
    st.session_state.memory = MemoryEngine(pool_size)
elif st.session_state.memory.capacity != pool_size:
    st.session_state.memory.initialize(pool_size)

memory: MemoryEngine = st.session_state.memory
if memory.strategy.value != strategy:
    memory.set_strategy(strategy)

# -----------------------------------------------------------------------------
# SIDEBAR - Allocate / Free
# -----------------------------------------------------------------------------

alloc_size = st.sidebar.number_input("Allocation size (bytes)", min_value=0, value=128)

if st.sidebar.button("Allocate"):
    result = memory.allocate(alloc_size)
    if result:
        st.sidebar.success(f"ID {result.owner_id} at 0x{result.base_address:x}")
    elif result.status is AllocationStatus.ZERO_SIZE:
        st.sidebar.error("Cannot allocate zero bytes")
    else:
        st.sidebar.error("Insufficient space")

free_id = st.sidebar.number_input("Owner ID to free", min_value=1, value=1)

if st.sidebar.button("Free"):
    if memory.deallocate(free_id):
        st.sidebar.success(f"Freed ID {free_id}")
    else:
        st.sidebar.error(f"ID {free_id} not found")

if st.sidebar.button("Reset Pool"):
    memory.initialize(pool_size)
    st.sidebar.success("Pool reset")

st.sidebar.markdown("---")

# -----------------------------------------------------------------------------
# SIDEBAR - Cache Hierarchy Settings
# -----------------------------------------------------------------------------

st.sidebar.header("Cache Hierarchy")

d_l1, d_b1, d_l2, d_b2 = cache_geometry(DEFAULTS)
l1_capacity = st.sidebar.number_input("L1 capacity (bytes)", min_value=1, value=d_l1)
l1_block = st.sidebar.selectbox("L1 block size (bytes)", options=[16, 32, 64, 128], index=1)
l2_capacity = st.sidebar.number_input("L2 capacity (bytes)", min_value=1, value=d_l2)
l2_block = st.sidebar.selectbox("L2 block size (bytes)", options=[16, 32, 64, 128], index=2)

geometry = (l1_capacity, l1_block, l2_capacity, l2_block)

if "caches" not in st.session_state:
    st.session_state.caches = CacheHierarchy()
    st.session_state.cache_geometry = None

caches: CacheHierarchy = st.session_state.caches

# Rebuild when the geometry changes
if st.session_state.cache_geometry != geometry:
    st.session_state.cache_geometry = geometry
    try:
        caches.initialize(*geometry)
    except SimulatorError as e:
        st.sidebar.error(str(e))

access_input = st.sidebar.text_area(
    "Address sequence (comma separated, decimal or 0x hex)",
    value="0,32,64,1024,0,2048,32,0",
)

run_speed = st.sidebar.slider(
    "Playback speed (ops/sec)",
    min_value=1.0,
    max_value=50.0,
    value=50.0,
)

if st.sidebar.button("Run Sequence"):
    try:
        seq = [int(x.strip(), 0) for x in access_input.split(",") if x.strip() != ""]
        for address in seq:
            caches.access(address)
            time.sleep(1.0 / run_speed)
        st.sidebar.success(f"Ran {len(seq)} accesses")
    except (ValueError, SimulatorError) as e:
        st.sidebar.error(str(e))

if st.sidebar.button("Flush Caches"):
    try:
        caches.flush_all()
        st.sidebar.success("Caches flushed")
    except SimulatorError as e:
        st.sidebar.error(str(e))

if st.sidebar.button("Reset Statistics"):
    if caches.reset_statistics():
        st.sidebar.success("Cache statistics reset")
    else:
        st.sidebar.error("Cache hierarchy not initialized")

# =============================================================================
# MAIN CONTENT AREA - Two Column Layout
# =============================================================================

col1, col2 = st.columns([1, 2])

# -----------------------------------------------------------------------------
# LEFT COLUMN - Statistics and Event Log
# -----------------------------------------------------------------------------

with col1:
    st.subheader("Fragmentation")
    report = memory.fragmentation_report()
    st.metric("Utilization", format_percent(report.utilization))
    st.metric("External fragmentation", format_percent(report.external_fragmentation))
    st.metric("Largest free block", f"{report.largest_free_block} B")

    st.subheader("Allocation Statistics")
    st.table([{
        "attempts": report.stats.attempts,
        "successes": report.stats.successes,
        "failures": report.stats.failures,
        "success rate": format_percent(report.stats.success_rate),
    }])

    # Most recent events first
    st.subheader("Event Log")
    for ev in (list(memory.event_log) + list(caches.event_log))[-20:][::-1]:
        st.write(ev)

# -----------------------------------------------------------------------------
# RIGHT COLUMN - Visualizations
# -----------------------------------------------------------------------------

with col2:
    # ----- Segment Layout -----
    st.subheader("Memory Layout")
    segments = memory.layout()

    fig = go.Figure()
    for seg in segments:
        label = f"ID {seg.owner_id}" if seg.allocated else "Free"
        fig.add_trace(go.Bar(
            x=[seg.size],
            y=["pool"],
            orientation="h",
            marker_color=get_color(seg.allocated, seg.owner_id),
            text=label,
            hovertext=f"{format_range(seg)} {label} ({seg.size} B)",
            hoverinfo="text",
        ))
    fig.update_layout(
        barmode="stack",
        height=150,
        showlegend=False,
        yaxis=dict(showticklabels=False),
    )
    st.plotly_chart(fig, use_container_width=True)

    st.table([{
        "range": format_range(s),
        "size": s.size,
        "state": "allocated" if s.allocated else "free",
        "id": s.owner_id,
    } for s in segments])

    # ----- Cache Levels -----
    if caches.initialized:
        stats = caches.statistics()

        st.subheader("Cache Statistics")
        st.metric("Combined hit ratio", format_percent(stats["combined_hit_ratio"]))

        fig2 = go.Figure()
        for name in ("l1", "l2"):
            fig2.add_trace(go.Bar(
                name=name.upper(),
                x=["Hits", "Misses"],
                y=[stats[name]["hits"], stats[name]["misses"]],
            ))
        fig2.update_layout(height=300, title="Hits vs Misses", barmode="group")
        st.plotly_chart(fig2, use_container_width=True)

        for name, level in (("L1", caches.l1), ("L2", caches.l2)):
            info = level.info()
            st.subheader(
                f"{name} — {info['valid_blocks']}/{info['block_count']} valid blocks"
            )
            st.table([{
                "index": i,
                "valid": b.valid,
                "tag": b.tag,
                "address": f"0x{b.stored_address:x}",
            } for i, b in enumerate(level.blocks) if b.valid] or [{"index": "-"}])
            st.write(f"Replacement queue (FIFO order): {list(level.fifo_queue)}")
    else:
        st.write("Cache hierarchy not initialized")

# =============================================================================
# FOOTER - Usage Tips
# =============================================================================

st.markdown("---")
st.markdown(
    "**Usage tips**:\n"
    "- Allocate a few blocks, free one in the middle, and switch strategies "
    "to compare where the next allocation lands.\n"
    "- Addresses that share an L1 index but differ in tag evict each other "
    "(e.g. `0` and `1024` with a 1KB L1).\n"
    "- Flushing keeps the hit/miss counters; Reset Statistics clears them."
)
