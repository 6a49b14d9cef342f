"""
RescueNet Command Center

Live ambulance map, nearest-ambulance lookup and route status board on top
of the rescuenet package. Snapshots are read from the /data directory; route
status changes made here live in the session only.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import logging

import pandas as pd
import streamlit as st

from rescuenet.config import Settings, load_settings
from rescuenet.data_loader import FLEET_FILE, ROUTES_FILE, load_fleet, load_routes
from rescuenet.fleet_view import FleetView, compute_fleet_view, summarize_fleet
from rescuenet.geo import estimate, format_distance, format_eta
from rescuenet.map_utils import build_fleet_map, render_fleet_map
from rescuenet.models import (
    Actor,
    EntityStatus,
    Position,
    Priority,
    RouteAssignment,
    RouteStatus,
    TrackedEntity,
    ValidationError,
)
from rescuenet.nearest import available_candidates, select_for_priority
from rescuenet.roles import UserRole, can_request, capabilities_for
from rescuenet.route_filters import RouteFilter, RouteSortOption, filter_routes, summarize_routes
from rescuenet.route_status import transition, valid_next_statuses
from rescuenet.staleness import format_last_update
from rescuenet.ui_utils import render_route_timeline

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# Page config
# =============================================================================

st.set_page_config(
    page_title="RescueNet Command Center",
    page_icon="🚑",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown(
    """
<style>
.block-container { padding-top: 2.5rem !important; max-width: 1400px; }
div[data-testid="stMetricValue"] { font-size: 1.6rem; }
</style>
""",
    unsafe_allow_html=True,
)


# =============================================================================
# Data Loading
# =============================================================================

@st.cache_data(show_spinner=False)
def load_snapshots(data_dir: str) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    try:
        data = {
            "fleet": load_fleet(Path(data_dir) / FLEET_FILE),
            "routes": load_routes(Path(data_dir) / ROUTES_FILE),
        }
        return data, None
    except FileNotFoundError as e:
        return None, str(e)
    except ValueError as e:
        return None, f"Malformed snapshot: {e}"


def snapshot_time(entities: List[TrackedEntity]) -> datetime:
    """Latest position report in the snapshot, or now for an empty fleet."""
    reports = [e.last_update for e in entities if e.last_update is not None]
    return max(reports) if reports else datetime.now(timezone.utc)


def session_routes(routes: List[RouteAssignment]) -> Dict[str, RouteAssignment]:
    # Routes are copied into the session once so status changes survive reruns
    if "routes" not in st.session_state:
        st.session_state.routes = {r.id: r for r in routes}
    return st.session_state.routes


# =============================================================================
# Rendering
# =============================================================================

def render_header(role: UserRole):
    caps = capabilities_for(role)
    st.markdown(f"## RescueNet · {caps.dashboard}")
    st.caption(f"Signed in as {role.display_name}")


def render_fleet_metrics(entities: List[TrackedEntity], now: datetime, settings: Settings):
    stats = summarize_fleet(entities, now=now, settings=settings)
    cols = st.columns(6)
    cols[0].metric("Ambulances", stats["total"])
    cols[1].metric("Available", stats[EntityStatus.AVAILABLE.value])
    cols[2].metric("On Duty", stats[EntityStatus.ON_DUTY.value])
    cols[3].metric("Maintenance", stats[EntityStatus.MAINTENANCE.value])
    cols[4].metric("Stale", stats["stale"])
    cols[5].metric("No Position", stats["no_position"])


def render_nearest(view: FleetView, entities: List[TrackedEntity], target: Position,
                   priority: Priority, settings: Settings):
    st.markdown("### Nearest Ambulance")

    if view.nearest is None or not view.nearest.found:
        st.warning("No available ambulance with a known position.")
        return

    col1, col2, col3 = st.columns(3)
    col1.metric("Ambulance", view.nearest.entity.label)
    col2.metric("Distance", format_distance(view.eta.distance_km))
    col3.metric("ETA", format_eta(view.eta.eta_minutes))

    match = select_for_priority(
        target, available_candidates(entities), priority, settings.avg_speed_kmh
    )
    if match.alternatives:
        with st.expander(f"Alternatives for {priority.display_name} priority"):
            df = pd.DataFrame(
                [
                    {
                        "Ambulance": c.entity.label,
                        "Distance": format_distance(c.distance_km),
                        "ETA": format_eta(c.eta_minutes),
                    }
                    for c in match.alternatives
                ]
            )
            st.dataframe(df, use_container_width=True, hide_index=True)


def render_fleet_table(view: FleetView, entities: List[TrackedEntity], now: datetime):
    rows = []
    for e in entities:
        rows.append(
            {
                "Ambulance": e.label,
                "Model": e.model,
                "Status": e.status.display_name,
                "Latitude": e.position.latitude if e.position else None,
                "Longitude": e.position.longitude if e.position else None,
                "Last Update": format_last_update(e, now),
                "Stale": e.id in view.stale,
            }
        )
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


def render_map_controls() -> Dict[str, Any]:
    """Sidebar controls for the fleet map. Kept outside the refreshing fragment."""
    with st.sidebar:
        st.markdown("### Map")
        zoom = st.slider("Zoom", min_value=5, max_value=18, value=12)
        status_label = st.selectbox(
            "Status Filter",
            ["All"] + [s.display_name for s in EntityStatus],
        )
        replay = st.checkbox("Use snapshot time", value=True,
                             help="Judge staleness against the latest report in the snapshot")

        st.markdown("### Patient")
        use_target = st.checkbox("Locate nearest ambulance", value=False)
        lat = st.number_input("Latitude", value=24.7000, format="%.5f", disabled=not use_target)
        lng = st.number_input("Longitude", value=46.6900, format="%.5f", disabled=not use_target)
        priority = Priority(
            st.selectbox("Priority", [p.value for p in Priority], index=2,
                         format_func=lambda v: Priority(v).display_name)
        )

        target = None
        if use_target:
            try:
                target = Position(lat, lng)
            except ValidationError as e:
                st.error(str(e))

    return {
        "zoom": zoom,
        "status_filter": next((s for s in EntityStatus if s.display_name == status_label), None),
        "replay": replay,
        "target": target,
        "priority": priority,
    }


def render_live_fleet(entities: List[TrackedEntity], routes: List[RouteAssignment],
                      settings: Settings, role: UserRole, controls: Dict[str, Any]):
    zoom = controls["zoom"]
    target = controls["target"]
    now = snapshot_time(entities) if controls["replay"] else datetime.now(timezone.utc)

    view = compute_fleet_view(
        entities,
        zoom=zoom,
        now=now,
        status_filter=controls["status_filter"],
        target=target,
        settings=settings,
    )

    render_fleet_metrics(entities, now, settings)

    if target is not None and capabilities_for(role).can_assign:
        render_nearest(view, entities, target, controls["priority"], settings)

    active = [r for r in routes if r.status is RouteStatus.ACTIVE]
    m = build_fleet_map(view, zoom=zoom, target=target, routes=active)
    render_fleet_map(m, height=520)

    st.caption(
        f"{len(view.markers)} markers, {len(view.clusters)} clusters, "
        f"{len(view.stale)} stale · reference time {now:%H:%M:%S} UTC · "
        f"refreshed {datetime.now(timezone.utc):%H:%M:%S} UTC"
    )

    with st.expander("Fleet Table", expanded=False):
        render_fleet_table(view, entities, now)


def render_fleet_tab(settings: Settings, role: UserRole):
    if not capabilities_for(role).can_view_fleet_map:
        st.info("The fleet map is only available to hospital users.")
        return

    controls = render_map_controls()
    interval = settings.refresh_interval_seconds
    run_every = timedelta(seconds=interval) if interval > 0 else None

    # Each tick re-reads the fleet snapshot; the previous render is replaced
    @st.fragment(run_every=run_every)
    def live_fleet():
        try:
            entities = load_fleet(Path(settings.data_dir) / FLEET_FILE)
        except (FileNotFoundError, ValueError) as e:
            st.error(f"Fleet snapshot unavailable: {e}")
            return
        routes = list(st.session_state.get("routes", {}).values())
        render_live_fleet(entities, routes, settings, role, controls)

    live_fleet()



def render_route_controls(route: RouteAssignment, role: UserRole):
    allowed = [s for s in valid_next_statuses(route.status) if can_request(role, s)]
    if not allowed:
        st.caption("No status changes available for your role.")
        return

    notes = st.text_input("Notes", key=f"notes_{route.id}")
    cols = st.columns(len(allowed))
    for col, status in zip(cols, allowed):
        if col.button(f"Mark {status.display_name}", key=f"{route.id}_{status.value}",
                      use_container_width=True):
            actor = Actor(id=f"{role.value}-session", name=role.display_name)
            result = transition(route, status, actor, notes=notes or None)
            if result.ok:
                st.session_state.routes[route.id] = result.assignment
                st.rerun()
            else:
                st.error(str(result.error))


def render_routes_tab(routes: Dict[str, RouteAssignment], role: UserRole, settings: Settings):
    stats = summarize_routes(list(routes.values()))
    cols = st.columns(5)
    cols[0].metric("Routes", stats["total"])
    for col, status in zip(cols[1:], RouteStatus):
        col.metric(status.display_name, stats[status.value])

    col1, col2, col3, col4 = st.columns([1, 1, 1, 1.5])
    status_label = col1.selectbox("Status", ["All"] + [s.display_name for s in RouteStatus])
    priority_label = col2.selectbox("Priority", ["All"] + [p.display_name for p in Priority])
    sort_by = RouteSortOption(
        col3.selectbox("Sort", [o.value for o in RouteSortOption],
                       format_func=lambda v: v.replace("_", " ").title())
    )
    query = col4.text_input("Search", placeholder="Plate, location, officer...")

    route_filter = RouteFilter(
        status=next((s for s in RouteStatus if s.display_name == status_label), None),
        priority=next((p for p in Priority if p.display_name == priority_label), None),
        search_query=query.strip(),
        sort_by=sort_by,
    )
    shown = filter_routes(list(routes.values()), route_filter, settings.avg_speed_kmh)

    if not shown:
        st.info("No routes match the current filters.")
        return

    for route in shown:
        leg = estimate(route.origin, route.destination, settings.avg_speed_kmh)
        title = (
            f"{route.ambulance_plate or route.id} · {route.priority.display_name} · "
            f"{route.status.display_name} · {format_distance(leg.distance_km)}, "
            f"{format_eta(leg.eta_minutes)}"
        )
        with st.expander(title, expanded=False):
            st.markdown(f"**Patient:** {route.patient_location or 'Unknown'}")
            if route.actor:
                st.markdown(f"**Last changed by:** {route.actor.name}")
            if route.notes:
                st.markdown(f"**Notes:** {route.notes}")
            render_route_controls(route, role)
            render_route_timeline(route, height=280)


# =============================================================================
# Main App
# =============================================================================

def main():
    settings = load_settings()

    data, error = load_snapshots(str(settings.data_dir))
    if error:
        st.error(f"Data Loading Error: {error}")
        st.info(f"Ensure {FLEET_FILE} and {ROUTES_FILE} exist in {settings.data_dir}")
        st.stop()

    with st.sidebar:
        st.markdown("### Session")
        role = UserRole(
            st.selectbox("Role", [r.value for r in UserRole],
                         format_func=lambda v: UserRole(v).display_name)
        )
        if st.button("Reload Snapshot", use_container_width=True):
            load_snapshots.clear()
            st.session_state.pop("routes", None)
            st.rerun()
        st.markdown("---")

    render_header(role)
    routes = session_routes(data["routes"])

    fleet_tab, routes_tab = st.tabs(["Fleet Map", "Routes"])
    with fleet_tab:
        render_fleet_tab(settings, role)
    with routes_tab:
        render_routes_tab(routes, role, settings)

    with st.sidebar:
        st.markdown("---")
        st.caption(
            f"Stale after {int(settings.stale_threshold.total_seconds())} s · "
            f"ETA at {settings.avg_speed_kmh:.0f} km/h · "
            f"map refresh every {settings.refresh_interval_seconds} s"
        )


if __name__ == "__main__":
    main()
